"""Note names and pitch conversion.

Pitches are MIDI note numbers.  Names follow the MIDI convention
**C4 = 60** (Middle C), so a pitch's octave is ``pitch // 12 - 1``.

Module-level constants:
- `NOTE_NAME_TO_PC`: Maps note names (e.g. `"C"`, `"F#"`, `"Bb"`) to pitch classes (0-11)
- `PC_TO_NOTE_NAME`: Maps pitch classes to sharp-spelled note names

Example:
	```python
	pitch_to_name(69)       # "A4"
	name_to_pitch("A4")     # 69
	name_to_pitch("Bb3")    # 58
	```
"""

import re
import typing

import reverie.errors


NOTE_NAME_TO_PC: typing.Dict[str, int] = {
	"C": 0,
	"C#": 1,
	"Db": 1,
	"D": 2,
	"D#": 3,
	"Eb": 3,
	"E": 4,
	"F": 5,
	"F#": 6,
	"Gb": 6,
	"G": 7,
	"G#": 8,
	"Ab": 8,
	"A": 9,
	"A#": 10,
	"Bb": 10,
	"B": 11,
}

PC_TO_NOTE_NAME: typing.List[str] = [
	"C",
	"C#",
	"D",
	"D#",
	"E",
	"F",
	"F#",
	"G",
	"G#",
	"A",
	"A#",
	"B",
]

_NAME_PATTERN = re.compile(r"^([A-Ga-g])([#b]?)(-?\d+)$")

PitchLike = typing.Union[int, str]


def key_name_to_pc (key_name: str) -> int:

	"""Validate a key name and return its pitch class (0-11).

	Raises:
		ConfigurationError: If the key name is not recognised.
	"""

	if key_name not in NOTE_NAME_TO_PC:
		raise reverie.errors.ConfigurationError(
			f"Unknown root note: {key_name!r}. Expected e.g. 'C', 'F#', 'Bb'."
		)

	return NOTE_NAME_TO_PC[key_name]


def pitch_to_name (pitch: int) -> str:

	"""Convert a MIDI note number to a name with octave (60 -> ``"C4"``)."""

	octave = (pitch // 12) - 1

	return f"{PC_TO_NOTE_NAME[pitch % 12]}{octave}"


def name_to_pitch (name: str) -> int:

	"""Parse a note name with octave (``"C4"``, ``"F#2"``, ``"Bb-1"``) into a MIDI note number."""

	match = _NAME_PATTERN.match(name.strip())

	if match is None:
		raise reverie.errors.ConfigurationError(f"Invalid note name: {name!r}")

	letter, accidental, octave = match.groups()
	pc = key_name_to_pc(letter.upper() + accidental)

	return (int(octave) + 1) * 12 + pc


def to_pitch (note: PitchLike) -> int:

	"""Accept either a MIDI number or a note name and return the MIDI number."""

	if isinstance(note, str):
		return name_to_pitch(note)

	return int(note)


def to_pitches (notes: typing.Union[PitchLike, typing.Sequence[PitchLike]]) -> typing.List[int]:

	"""Normalise a single note or a list of notes to a list of MIDI numbers."""

	if isinstance(notes, (str, int)):
		return [to_pitch(notes)]

	return [to_pitch(note) for note in notes]
