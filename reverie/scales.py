"""Scale patterns and pitch list construction.

A scale is a root note, an interval pattern (semitone offsets from the
root) and an octave range.  Expanding it gives the **pitch list**: the
ordered, strictly increasing MIDI pitches every melodic voice draws from.

    root=C, pattern=major, octaves 3..5
    -> [36, 38, 40, 41, 43, 45, 47, 48, ..., 71]   (21 pitches)

Octave ``n`` starts at pitch ``n * 12``, so the octave numbers here are
one higher than the MIDI note-name octave (pitch 36 is named ``"C2"``).
"""

import dataclasses
import logging
import typing

import reverie.errors
import reverie.notes


logger = logging.getLogger(__name__)


SCALE_PATTERNS: typing.Dict[str, typing.List[int]] = {
	"major": [0, 2, 4, 5, 7, 9, 11],
	"minor": [0, 2, 3, 5, 7, 8, 10],
	"pentatonic": [0, 2, 4, 7, 9],
	"blues": [0, 3, 5, 6, 7, 10],
	"chromatic": [0, 1, 2, 3, 4, 5, 6, 7, 8, 9, 10, 11],
	"dorian": [0, 2, 3, 5, 7, 9, 10],
	"phrygian": [0, 1, 3, 5, 7, 8, 10],
	"lydian": [0, 2, 4, 6, 7, 9, 11],
	"mixolydian": [0, 2, 4, 5, 7, 9, 10],
	"locrian": [0, 1, 3, 5, 6, 8, 10],
}

# Used when the derived drone pitches fall outside the MIDI range: C2, C1, G1.
FALLBACK_DRONE_PITCHES: typing.Tuple[int, int, int] = (36, 24, 43)

PatternLike = typing.Union[str, typing.Sequence[int]]


@dataclasses.dataclass(frozen=True)
class OctaveRange:

	"""Inclusive range of octaves a scale spans."""

	low: int
	high: int

	def __post_init__ (self) -> None:

		if self.low > self.high:
			raise reverie.errors.ConfigurationError(
				f"Octave range low ({self.low}) must be <= high ({self.high})"
			)

	@property
	def count (self) -> int:

		"""Number of octaves in the range."""

		return self.high - self.low + 1


def register_scale (name: str, pattern: typing.Sequence[int]) -> None:

	"""Register a custom scale pattern for use by name.

	Parameters:
		name: Scale name (e.g. ``"hirajoshi"``).
		pattern: Semitone offsets from the root. Must start at 0, be strictly
			increasing and stay within 0-11.

	Example:
		```python
		register_scale("hirajoshi", [0, 2, 3, 7, 8])
		engine.update_config(scale="hirajoshi")
		```
	"""

	offsets = list(pattern)

	if not offsets or offsets[0] != 0:
		raise reverie.errors.ConfigurationError("Scale pattern must start at 0")

	if any(b <= a for a, b in zip(offsets, offsets[1:])):
		raise reverie.errors.ConfigurationError("Scale pattern must be strictly increasing")

	if offsets[-1] > 11:
		raise reverie.errors.ConfigurationError("Scale pattern offsets must be within 0-11")

	SCALE_PATTERNS[name] = offsets


def get_pattern (pattern: PatternLike) -> typing.List[int]:

	"""Resolve a scale name (or pass through an explicit offset list)."""

	if isinstance(pattern, str):

		if pattern not in SCALE_PATTERNS:
			raise reverie.errors.ConfigurationError(
				f"Unknown scale: {pattern!r}. Available: {sorted(SCALE_PATTERNS)}"
			)

		return list(SCALE_PATTERNS[pattern])

	offsets = list(pattern)

	if not offsets:
		raise reverie.errors.ConfigurationError("Scale pattern cannot be empty")

	return offsets


def build_pitch_list (root: str, pattern: PatternLike, octave_range: OctaveRange) -> typing.List[int]:

	"""Expand a root, pattern and octave range into an ordered pitch list.

	For each octave in range, for each offset in the pattern, emits
	``octave * 12 + root_pc + offset``.

	Raises:
		ConfigurationError: For an unknown root or scale name.
	"""

	root_pc = reverie.notes.key_name_to_pc(root)
	offsets = get_pattern(pattern)

	return [
		octave * 12 + root_pc + offset
		for octave in range(octave_range.low, octave_range.high + 1)
		for offset in offsets
	]


def drone_pitches (root: str, octave_range: OctaveRange) -> typing.List[int]:

	"""Derive three low drone pitches below the melodic range.

	Returns the root one octave below the range, the root two octaves below,
	and a perfect fifth above the upper one.  If the octave range is so low
	that any of these leave the MIDI range, a fixed safe triple is returned.
	"""

	root_pc = reverie.notes.key_name_to_pc(root)

	upper = (octave_range.low - 1) * 12 + root_pc
	lower = (octave_range.low - 2) * 12 + root_pc
	candidates = [upper, lower, upper + 7]

	pitches = [p for p in candidates if 0 <= p <= 127]

	if len(pitches) < 3:
		logger.warning(f"Drone pitches out of range for {root} {octave_range}, using fallback")
		return list(FALLBACK_DRONE_PITCHES)

	return pitches


def third_interval (pattern: PatternLike) -> int:

	"""Return 3 for scales with a minor but no major third, otherwise 4."""

	offsets = get_pattern(pattern)

	if 3 in offsets and 4 not in offsets:
		return 3

	return 4


@dataclasses.dataclass(frozen=True)
class Scale:

	"""A root, pattern and octave range, validated on construction."""

	root: str
	pattern_name: str
	octave_range: OctaveRange

	def __post_init__ (self) -> None:

		# Fail fast: resolving both names raises ConfigurationError.
		reverie.notes.key_name_to_pc(self.root)
		get_pattern(self.pattern_name)

	@property
	def pattern (self) -> typing.List[int]:

		return get_pattern(self.pattern_name)

	@property
	def degree_count (self) -> int:

		"""Number of scale degrees per octave."""

		return len(self.pattern)

	@property
	def pitches (self) -> typing.List[int]:

		return build_pitch_list(self.root, self.pattern_name, self.octave_range)

	@property
	def drone_pitches (self) -> typing.List[int]:

		return drone_pitches(self.root, self.octave_range)
