import pytest

import reverie.errors
import reverie.notes


def test_middle_c_is_c4 () -> None:

	"""MIDI 60 is named C4 and parses back to 60."""

	assert reverie.notes.pitch_to_name(60) == "C4"
	assert reverie.notes.name_to_pitch("C4") == 60


def test_names_use_sharps () -> None:

	assert reverie.notes.pitch_to_name(61) == "C#4"
	assert reverie.notes.pitch_to_name(70) == "A#4"


def test_flats_and_lowercase_parse () -> None:

	assert reverie.notes.name_to_pitch("Bb3") == 58
	assert reverie.notes.name_to_pitch("a4") == 69
	assert reverie.notes.name_to_pitch("Bb-1") == 10
	assert reverie.notes.name_to_pitch("Bb3") == reverie.notes.name_to_pitch("A#3")


def test_every_midi_pitch_survives_naming () -> None:

	"""Naming a pitch and parsing the name gives the pitch back across the MIDI range."""

	for pitch in range(128):
		assert reverie.notes.name_to_pitch(reverie.notes.pitch_to_name(pitch)) == pitch


def test_invalid_names_raise () -> None:

	with pytest.raises(reverie.errors.ConfigurationError):
		reverie.notes.name_to_pitch("H4")

	with pytest.raises(reverie.errors.ConfigurationError):
		reverie.notes.name_to_pitch("C")

	with pytest.raises(reverie.errors.ConfigurationError):
		reverie.notes.key_name_to_pc("Cb#")


def test_configuration_error_is_a_value_error () -> None:

	with pytest.raises(ValueError):
		reverie.notes.key_name_to_pc("X")


def test_to_pitches_accepts_mixed_input () -> None:

	assert reverie.notes.to_pitches("C4") == [60]
	assert reverie.notes.to_pitches(64) == [64]
	assert reverie.notes.to_pitches([60, "E4", "G4"]) == [60, 64, 67]
