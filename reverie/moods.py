"""Mood profiles: the musical envelope each mood plays within.

A :class:`MoodProfile` is an immutable template.  Each engine copies the
active profile into a mutable :class:`MoodSettings`, which parameter
evolution and the variation system then nudge at runtime without touching
the template.

Every mood also has a 7x7 melodic transition matrix (rows sum to 1) and a
set of three 16-step rhythm patterns ordered from sparsest to densest.
"""

import dataclasses
import typing

import reverie.errors
import reverie.markov_chain
import reverie.scales


RhythmPattern = typing.Tuple[bool, ...]


@dataclasses.dataclass
class Range:

	"""A mutable ``[low, high]`` pair."""

	low: float
	high: float

	def clamp (self, value: float) -> float:

		return max(self.low, min(self.high, value))

	def order (self) -> None:

		"""Swap the bounds if they have crossed."""

		if self.low > self.high:
			self.low, self.high = self.high, self.low


@dataclasses.dataclass(frozen=True)
class MoodProfile:

	"""Immutable template for one mood."""

	name: str
	tempo: typing.Tuple[float, float]
	note_length: typing.Tuple[float, float]
	velocity: typing.Tuple[float, float]
	octave_range: typing.Tuple[int, int]
	chord_probability: float
	rest_probability: float
	filter_sweep_rate: float
	reverb_wet: float
	dissonance_factor: float
	hue: int


@dataclasses.dataclass
class MoodSettings:

	"""Per-engine mutable copy of a mood profile."""

	name: str
	tempo: Range
	note_length: Range
	velocity: Range
	octave_range: reverie.scales.OctaveRange
	chord_probability: float
	rest_probability: float
	filter_sweep_rate: float
	reverb_wet: float
	dissonance_factor: float
	hue: int

	@classmethod
	def from_profile (cls, profile: MoodProfile) -> "MoodSettings":

		"""Create fresh mutable settings from a profile template."""

		return cls(
			name = profile.name,
			tempo = Range(*profile.tempo),
			note_length = Range(*profile.note_length),
			velocity = Range(*profile.velocity),
			octave_range = reverie.scales.OctaveRange(*profile.octave_range),
			chord_probability = profile.chord_probability,
			rest_probability = profile.rest_probability,
			filter_sweep_rate = profile.filter_sweep_rate,
			reverb_wet = profile.reverb_wet,
			dissonance_factor = profile.dissonance_factor,
			hue = profile.hue,
		)

	def enforce_invariants (self) -> None:

		"""Clamp probabilities to [0, 1] and order every range pair."""

		self.chord_probability = min(1.0, max(0.0, self.chord_probability))
		self.rest_probability = min(1.0, max(0.0, self.rest_probability))
		self.reverb_wet = min(1.0, max(0.0, self.reverb_wet))
		self.dissonance_factor = min(1.0, max(0.0, self.dissonance_factor))

		for pair in (self.tempo, self.note_length, self.velocity):
			pair.order()


MOOD_PROFILES: typing.Dict[str, MoodProfile] = {
	"calm": MoodProfile(
		name = "calm",
		tempo = (60, 80),
		note_length = (0.5, 2.5),
		velocity = (0.3, 0.6),
		octave_range = (3, 5),
		chord_probability = 0.15,
		rest_probability = 0.35,
		filter_sweep_rate = 0.03,
		reverb_wet = 0.4,
		dissonance_factor = 0.1,
		hue = 200,
	),
	"melancholic": MoodProfile(
		name = "melancholic",
		tempo = (70, 90),
		note_length = (0.4, 2.0),
		velocity = (0.4, 0.7),
		octave_range = (2, 4),
		chord_probability = 0.25,
		rest_probability = 0.25,
		filter_sweep_rate = 0.08,
		reverb_wet = 0.6,
		dissonance_factor = 0.3,
		hue = 260,
	),
	"intense": MoodProfile(
		name = "intense",
		tempo = (110, 150),
		note_length = (0.1, 0.6),
		velocity = (0.6, 1.0),
		octave_range = (3, 6),
		chord_probability = 0.4,
		rest_probability = 0.05,
		filter_sweep_rate = 0.25,
		reverb_wet = 0.2,
		dissonance_factor = 0.5,
		hue = 0,
	),
	"playful": MoodProfile(
		name = "playful",
		tempo = (90, 130),
		note_length = (0.2, 1.0),
		velocity = (0.5, 0.9),
		octave_range = (4, 6),
		chord_probability = 0.2,
		rest_probability = 0.15,
		filter_sweep_rate = 0.15,
		reverb_wet = 0.3,
		dissonance_factor = 0.2,
		hue = 120,
	),
	"mysterious": MoodProfile(
		name = "mysterious",
		tempo = (60, 100),
		note_length = (0.5, 1.5),
		velocity = (0.2, 0.6),
		octave_range = (2, 5),
		chord_probability = 0.3,
		rest_probability = 0.4,
		filter_sweep_rate = 0.05,
		reverb_wet = 0.7,
		dissonance_factor = 0.4,
		hue = 300,
	),
}


TRANSITION_MATRICES: typing.Dict[str, reverie.markov_chain.Matrix] = {
	"calm": [
		[0.25, 0.35, 0.15, 0.1, 0.1, 0.05, 0],
		[0.3, 0.15, 0.25, 0.15, 0.1, 0.05, 0],
		[0.15, 0.25, 0.15, 0.3, 0.1, 0.05, 0],
		[0.2, 0.15, 0.2, 0.15, 0.25, 0.05, 0],
		[0.35, 0.1, 0.1, 0.15, 0.15, 0.15, 0],
		[0.2, 0.15, 0.1, 0.15, 0.25, 0.1, 0.05],
		[0.4, 0.05, 0.15, 0.15, 0.15, 0.1, 0],
	],
	"melancholic": [
		[0.15, 0.1, 0.3, 0.15, 0.1, 0.15, 0.05],
		[0.2, 0.1, 0.25, 0.15, 0.1, 0.15, 0.05],
		[0.1, 0.2, 0.15, 0.2, 0.15, 0.15, 0.05],
		[0.15, 0.15, 0.2, 0.1, 0.2, 0.15, 0.05],
		[0.25, 0.1, 0.15, 0.2, 0.15, 0.1, 0.05],
		[0.1, 0.15, 0.2, 0.15, 0.15, 0.15, 0.1],
		[0.3, 0.1, 0.15, 0.15, 0.15, 0.1, 0.05],
	],
	"intense": [
		[0.1, 0.2, 0.15, 0.15, 0.25, 0.1, 0.05],
		[0.15, 0.1, 0.15, 0.2, 0.15, 0.15, 0.1],
		[0.2, 0.15, 0.1, 0.15, 0.2, 0.1, 0.1],
		[0.15, 0.2, 0.15, 0.1, 0.2, 0.15, 0.05],
		[0.25, 0.15, 0.15, 0.15, 0.1, 0.1, 0.1],
		[0.15, 0.2, 0.15, 0.15, 0.1, 0.1, 0.15],
		[0.3, 0.15, 0.15, 0.1, 0.15, 0.1, 0.05],
	],
	"playful": [
		[0.15, 0.3, 0.15, 0.15, 0.15, 0.1, 0],
		[0.2, 0.15, 0.25, 0.15, 0.15, 0.1, 0],
		[0.15, 0.2, 0.1, 0.3, 0.15, 0.1, 0],
		[0.15, 0.15, 0.2, 0.1, 0.25, 0.15, 0],
		[0.2, 0.15, 0.15, 0.2, 0.15, 0.15, 0],
		[0.15, 0.2, 0.15, 0.15, 0.25, 0.1, 0],
		[0.35, 0.15, 0.15, 0.15, 0.15, 0.05, 0],
	],
	"mysterious": [
		[0.15, 0.1, 0.15, 0.15, 0.2, 0.15, 0.1],
		[0.2, 0.1, 0.15, 0.1, 0.25, 0.15, 0.05],
		[0.15, 0.15, 0.1, 0.2, 0.15, 0.2, 0.05],
		[0.15, 0.1, 0.2, 0.15, 0.15, 0.2, 0.05],
		[0.2, 0.15, 0.15, 0.15, 0.1, 0.15, 0.1],
		[0.15, 0.15, 0.2, 0.15, 0.15, 0.1, 0.1],
		[0.25, 0.15, 0.15, 0.2, 0.15, 0.1, 0],
	],
}


def _pattern (steps: str) -> RhythmPattern:

	"""Parse ``"x . . . x"`` notation into a boolean step tuple."""

	return tuple(step == "x" for step in steps.split())


# Ordered sparsest to densest per mood; pattern weights index into this order.
RHYTHM_PATTERNS: typing.Dict[str, typing.Tuple[RhythmPattern, RhythmPattern, RhythmPattern]] = {
	"calm": (
		_pattern("x . . . . . . . x . . . . . . ."),  # sparse
		_pattern("x . . . x . . . x . . . x . . ."),  # subtle pulse
		_pattern("x . x . . . x . x . . . x . x ."),  # gentle sway
	),
	"melancholic": (
		_pattern("x . . . x . . . x . . . x . . ."),  # slow heartbeat
		_pattern("x . . x . . . . x . . x . . . ."),  # lagging
		_pattern("x . . x . . x . . . x . . x . ."),  # wistful
	),
	"intense": (
		_pattern("x . x . x . x . x x . x . x . x"),  # driving
		_pattern("x . x x . x . x x . x x . x . x"),  # chaotic
		_pattern("x x . x x . x x . x x . x x . x"),  # relentless
	),
	"playful": (
		_pattern("x . x . . x . x x . . x . x . ."),  # bouncy
		_pattern("x x . x . . x . x x . x . . x ."),  # skipping
		_pattern("x . . x x . x . . x . x x . . x"),  # whimsical
	),
	"mysterious": (
		_pattern("x . . . . x . . . . x . . . . x"),  # eerie
		_pattern("x . . x . . . . x . . . . x . ."),  # unpredictable
		_pattern("x . . . x . . x . . . x . . x ."),  # haunting
	),
}


def get_profile (mood: str) -> MoodProfile:

	"""Return the profile for a mood name."""

	if mood not in MOOD_PROFILES:
		raise reverie.errors.ConfigurationError(
			f"Unknown mood: {mood!r}. Available: {sorted(MOOD_PROFILES)}"
		)

	return MOOD_PROFILES[mood]


def settings_for (mood: str) -> MoodSettings:

	"""Return fresh mutable settings for a mood."""

	return MoodSettings.from_profile(get_profile(mood))


def transition_matrix_for (mood: str, degree_count: int) -> reverie.markov_chain.Matrix:

	"""Return a copy of the mood's transition matrix sized for ``degree_count`` scale degrees."""

	get_profile(mood)

	return reverie.markov_chain.resize_matrix(TRANSITION_MATRICES[mood], degree_count)


def rhythm_patterns_for (mood: str) -> typing.Tuple[RhythmPattern, ...]:

	"""Return the mood's rhythm patterns, sparsest first."""

	get_profile(mood)

	return RHYTHM_PATTERNS[mood]
