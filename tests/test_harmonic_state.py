import random

import reverie.harmonic_state


def _builder (calls: list[int]):

	def build (index: int) -> list[str]:
		calls.append(index)
		return [f"n{index}"]

	return build


def test_chord_is_held_until_the_deadline () -> None:

	"""A chord is chosen on the first update and held for 8-16 seconds."""

	calls: list[int] = []
	build = _builder(calls)
	harmony = reverie.harmonic_state.HarmonyState(random.Random(2))

	assert harmony.update(1.0, 21, build) is True
	chord = harmony.current_chord
	deadline = harmony.next_chord_deadline

	assert 9.0 <= deadline <= 17.0

	assert harmony.update(deadline, 21, build) is False
	assert harmony.current_chord == chord
	assert len(calls) == 1

	assert harmony.update(deadline + 0.1, 21, build) is True
	assert len(calls) == 2


def test_roots_come_from_the_pitch_list () -> None:

	calls: list[int] = []
	build = _builder(calls)
	harmony = reverie.harmonic_state.HarmonyState(random.Random(5))

	for step in range(200):
		harmony.update(step * 20.0 + 1.0, 15, build)

	assert all(0 <= index < 15 for index in calls)


def test_chord_falls_back_to_the_first_index () -> None:

	calls: list[int] = []
	harmony = reverie.harmonic_state.HarmonyState(random.Random(1))

	assert harmony.chord(_builder(calls)) == ["n0"]
	assert harmony.current_chord is None


def test_clear () -> None:

	harmony = reverie.harmonic_state.HarmonyState(random.Random(1))
	harmony.update(1.0, 7, _builder([]))
	harmony.clear()

	assert harmony.current_chord is None
	assert harmony.next_chord_deadline == 0.0
