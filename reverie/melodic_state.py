"""Markov melody walker.

Provides :class:`MelodicState`, the stateful process that picks each melody
note.  Two independent walks combine into one pitch list index:

- **Degree**: a :class:`~reverie.markov_chain.MarkovChain` over the scale
  degrees, biased by the mood's transition matrix toward stepwise motion
  and periodically pulled back to the root.
- **Octave**: a random walk that starts on the middle octave of the range,
  prefers to stay put, and when it moves is pulled back toward the middle.
  Edge octaves are reachable but visited less often.

The index is ``octave * degree_count + degree`` and is always inside the
pitch list, because both walks are clamped to the pitch list's shape.
"""

import random
import typing

import reverie.markov_chain


# Weights for the octave walk: stay, step toward the middle, step away from it.
OCTAVE_STAY_WEIGHT = 0.5
OCTAVE_TOWARD_WEIGHT = 0.35
OCTAVE_AWAY_WEIGHT = 0.15


class MelodicState:

	"""Persistent melodic context combining a degree chain and an octave walk."""

	def __init__ (
		self,
		matrix: reverie.markov_chain.Matrix,
		degree_count: int,
		octave_count: int,
		rng: typing.Optional[random.Random] = None,
		anchor_probability: float = 0.2
	) -> None:

		"""Initialise the walker for a pitch list of ``degree_count * octave_count`` pitches.

		Parameters:
			matrix: Transition matrix; must be ``degree_count`` square.
			degree_count: Scale degrees per octave (the pattern length).
			octave_count: Number of octaves in the pitch list.
			rng: Optional seeded ``random.Random`` for repeatable walks.
			anchor_probability: Chance per step of returning to the root.
		"""

		if len(matrix) != degree_count:
			raise ValueError(f"Matrix size {len(matrix)} does not match {degree_count} scale degrees")

		if octave_count <= 0:
			raise ValueError("Octave count must be positive")

		self.rng = rng or random.Random()
		self.chain = reverie.markov_chain.MarkovChain(matrix, rng=self.rng, anchor_probability=anchor_probability)
		self.degree_count = degree_count
		self.octave_count = octave_count
		self.middle_octave = (octave_count - 1) // 2
		self.octave = self.middle_octave


	@property
	def degree (self) -> int:

		"""Current degree, or -1 before the first step."""

		return self.chain.state


	def reset (self) -> None:

		"""Return both walks to their starting points."""

		self.chain.reset()
		self.octave = self.middle_octave


	def next_octave (self) -> int:

		"""Advance the octave walk by at most one octave and return the offset."""

		if self.octave_count == 1:
			return 0

		centre = (self.octave_count - 1) / 2.0

		if self.octave > centre:
			toward, away = -1, 1
		elif self.octave < centre:
			toward, away = 1, -1
		else:
			# Already central: either direction moves away from the middle.
			toward, away = self.rng.choice([(-1, 1), (1, -1)])

		move = reverie.markov_chain.weighted_choice(
			[(0, OCTAVE_STAY_WEIGHT), (toward, OCTAVE_TOWARD_WEIGHT), (away, OCTAVE_AWAY_WEIGHT)],
			self.rng
		)

		self.octave = max(0, min(self.octave_count - 1, self.octave + move))

		return self.octave


	def next_index (self) -> int:

		"""Choose the next pitch list index."""

		degree = self.chain.step()
		octave = self.next_octave()

		return octave * self.degree_count + degree
