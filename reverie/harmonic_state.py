import random
import typing


# Seconds a chord is held before the next melody tick may replace it.
MIN_CHORD_SECONDS = 8.0
MAX_CHORD_SECONDS = 16.0

ChordBuilder = typing.Callable[[int], typing.List[str]]


class HarmonyState:

	"""The slowly changing chord shared by the melody and ambience voices."""

	def __init__ (self, rng: typing.Optional[random.Random] = None) -> None:

		self.rng = rng or random.Random()
		self.current_chord: typing.Optional[typing.List[str]] = None
		self.next_chord_deadline: float = 0.0


	def update (self, now: float, pitch_count: int, build: ChordBuilder) -> bool:

		"""
		Replace the chord if its deadline has passed.

		Parameters:
			now: Current clock time in seconds.
			pitch_count: Length of the pitch list; the new root is drawn from it.
			build: Builds chord note names on a pitch list index.

		Returns:
			True when a new chord was chosen.
		"""

		if now <= self.next_chord_deadline:
			return False

		self.current_chord = build(self.rng.randrange(pitch_count))
		self.next_chord_deadline = now + self.rng.uniform(MIN_CHORD_SECONDS, MAX_CHORD_SECONDS)

		return True


	def chord (self, build: ChordBuilder) -> typing.List[str]:

		"""Return the current chord, or a chord on the first index if none is active."""

		if self.current_chord is None:
			return build(0)

		return list(self.current_chord)


	def clear (self) -> None:

		"""Forget the chord so the next update chooses a new one."""

		self.current_chord = None
		self.next_chord_deadline = 0.0
