import pytest

import reverie.errors
import reverie.moods


def test_five_moods () -> None:

	assert set(reverie.moods.MOOD_PROFILES) == {"calm", "melancholic", "intense", "playful", "mysterious"}


def test_profiles_are_consistent () -> None:

	"""Every profile has ordered ranges and probabilities in [0, 1]."""

	for profile in reverie.moods.MOOD_PROFILES.values():

		for low, high in (profile.tempo, profile.note_length, profile.velocity, profile.octave_range):
			assert low <= high, profile.name

		for value in (profile.chord_probability, profile.rest_probability, profile.reverb_wet, profile.dissonance_factor):
			assert 0.0 <= value <= 1.0, profile.name

		assert profile.filter_sweep_rate > 0


def test_settings_are_independent_copies () -> None:

	"""Mutating one engine's settings never touches another's or the template."""

	first = reverie.moods.settings_for("calm")
	second = reverie.moods.settings_for("calm")

	first.velocity.low = 0.9
	first.dissonance_factor = 0.7

	assert second.velocity.low == pytest.approx(0.3)
	assert second.dissonance_factor == pytest.approx(0.1)
	assert reverie.moods.MOOD_PROFILES["calm"].velocity == (0.3, 0.6)


def test_enforce_invariants () -> None:

	settings = reverie.moods.settings_for("playful")
	settings.note_length.low, settings.note_length.high = 1.2, 0.4
	settings.rest_probability = 1.4
	settings.dissonance_factor = -0.2

	settings.enforce_invariants()

	assert (settings.note_length.low, settings.note_length.high) == (0.4, 1.2)
	assert settings.rest_probability == 1.0
	assert settings.dissonance_factor == 0.0


def test_rhythm_patterns_are_ordered_sparse_to_dense () -> None:

	for mood in reverie.moods.MOOD_PROFILES:

		patterns = reverie.moods.rhythm_patterns_for(mood)
		hits = [sum(pattern) for pattern in patterns]

		assert len(patterns) == 3
		assert all(len(pattern) == 16 for pattern in patterns)
		assert hits == sorted(hits), mood
		assert all(pattern[0] for pattern in patterns)


def test_transition_matrix_is_resized_for_the_scale () -> None:

	matrix = reverie.moods.transition_matrix_for("mysterious", 5)

	assert len(matrix) == 5
	assert all(len(row) == 5 for row in matrix)

	# A copy: editing it leaves the mood's table alone.
	full = reverie.moods.transition_matrix_for("calm", 7)
	full[0][0] = 1.0
	assert reverie.moods.TRANSITION_MATRICES["calm"][0][0] == 0.25


def test_unknown_mood_raises () -> None:

	with pytest.raises(reverie.errors.ConfigurationError):
		reverie.moods.settings_for("grumpy")

	with pytest.raises(reverie.errors.ConfigurationError):
		reverie.moods.transition_matrix_for("grumpy", 7)
