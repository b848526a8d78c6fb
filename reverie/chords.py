"""Scale-degree chord building.

Chords are built from pitch list indices rather than semitones, so every
chord tone is a member of the active scale.  The root index's degree
selects a chord quality from a per-scale table; the quality then decides
how many scale steps above the root the third and fifth sit.

Module-level constants:
- `QUALITY_STEPS`: Maps a quality to its ``(third, fifth)`` scale-step offsets
- `SCALE_QUALITIES`: Maps scale names to one quality per degree

Example:
	```python
	# C major, octaves 3..5: index 7 is C (degree 0 of the second octave block)
	build_chord(7, "major", 7, dissonance=0.0, rng=rng)   # [7, 9, 11]
	```
"""

import random
import typing

import reverie.notes


QUALITY_STEPS: typing.Dict[str, typing.Tuple[int, int]] = {
	"major": (2, 4),
	"minor": (1, 4),
	"diminished": (1, 3),
}

IONIAN_QUALITIES: typing.List[str] = [
	"major", "minor", "minor", "major", "major", "minor", "diminished"
]

DORIAN_QUALITIES: typing.List[str] = [
	"minor", "minor", "major", "major", "minor", "diminished", "major"
]

PHRYGIAN_QUALITIES: typing.List[str] = [
	"minor", "major", "major", "minor", "diminished", "major", "minor"
]

LYDIAN_QUALITIES: typing.List[str] = [
	"major", "major", "minor", "diminished", "major", "minor", "minor"
]

MIXOLYDIAN_QUALITIES: typing.List[str] = [
	"major", "minor", "diminished", "major", "minor", "minor", "major"
]

AEOLIAN_QUALITIES: typing.List[str] = [
	"minor", "diminished", "major", "minor", "minor", "major", "major"
]

LOCRIAN_QUALITIES: typing.List[str] = [
	"diminished", "major", "minor", "minor", "major", "major", "minor"
]

SCALE_QUALITIES: typing.Dict[str, typing.List[str]] = {
	"major": IONIAN_QUALITIES,
	"minor": AEOLIAN_QUALITIES,
	"dorian": DORIAN_QUALITIES,
	"phrygian": PHRYGIAN_QUALITIES,
	"lydian": LYDIAN_QUALITIES,
	"mixolydian": MIXOLYDIAN_QUALITIES,
	"locrian": LOCRIAN_QUALITIES,
}


def degree_quality (scale_name: str, degree: int) -> str:

	"""Return the chord quality on a scale degree.

	Scales without a quality table (pentatonic, blues, chromatic and custom
	scales) build every chord with major offsets.
	"""

	qualities = SCALE_QUALITIES.get(scale_name)

	if qualities is None:
		return "major"

	return qualities[degree % len(qualities)]


def build_chord (
	root_index: int,
	scale_name: str,
	degree_count: int,
	dissonance: float,
	rng: random.Random
) -> typing.List[int]:

	"""Build a chord on a pitch list index and return the chord's indices.

	The third and fifth wrap within the root's octave block, so the result
	never leaves the block that holds the root.  With probability
	``dissonance`` one extra, randomly chosen scale tone from that block is
	appended.

	Parameters:
		root_index: Pitch list index of the chord root.
		scale_name: Scale name used to look up the degree's quality.
		degree_count: Scale degrees per octave.
		dissonance: Probability (0-1) of an added tone.
		rng: Random source.

	Returns:
		Three or four pitch list indices, root first.
	"""

	if degree_count <= 0:
		raise ValueError("Degree count must be positive")

	if root_index < 0:
		raise ValueError("Root index cannot be negative")

	degree = root_index % degree_count
	block = (root_index // degree_count) * degree_count
	third, fifth = QUALITY_STEPS[degree_quality(scale_name, degree)]

	chord = [
		root_index,
		block + (degree + third) % degree_count,
		block + (degree + fifth) % degree_count,
	]

	if rng.random() < dissonance:
		chord.append(block + (degree + rng.randrange(degree_count)) % degree_count)

	return chord


def chord_names (indices: typing.Sequence[int], pitches: typing.Sequence[int]) -> typing.List[str]:

	"""Convert pitch list indices to note names (e.g. ``["C3", "E3", "G3"]``)."""

	return [reverie.notes.pitch_to_name(pitches[index]) for index in indices]
