import random
import typing

import mido
import pytest

import reverie.engine
import reverie.sequencer


class FakeMidiOut:

	"""MIDI output stub that records every message sent."""

	def __init__ (self) -> None:

		self.messages: typing.List[mido.Message] = []
		self.closed = False

	def send (self, message: mido.Message) -> None:

		"""Record an outgoing MIDI message."""

		self.messages.append(message)


	def close (self) -> None:

		"""Mark the fake device closed."""

		self.closed = True


	def of_type (self, message_type: str) -> typing.List[mido.Message]:

		return [m for m in self.messages if m.type == message_type]


def _fake_get_output_names () -> list[str]:

	"""Return a fixed list of MIDI output names for tests."""

	return ["Dummy MIDI"]


def _fake_open_output (name: str) -> FakeMidiOut:

	"""Return a fake MIDI output regardless of the name."""

	return FakeMidiOut()


@pytest.fixture
def patch_midi (monkeypatch: pytest.MonkeyPatch) -> None:

	"""Patch mido to use a fake MIDI output for all tests that need it."""

	monkeypatch.setattr(mido, "get_output_names", _fake_get_output_names)
	monkeypatch.setattr(mido, "open_output", _fake_open_output)


class FakeSynth:

	"""Synth double that records calls; optionally raises on every note call."""

	def __init__ (self, fail: bool = False) -> None:

		self.fail = fail
		self.calls: typing.List[typing.Dict[str, typing.Any]] = []
		self.released = 0

	def _record (self, method: str, **fields: typing.Any) -> None:

		if self.fail:
			raise RuntimeError("synth unavailable")

		self.calls.append({"method": method, **fields})

	def note_on (self, pitches: typing.Any, time: float, velocity: float) -> None:

		self._record("note_on", pitches=pitches, time=time, velocity=velocity)

	def note_off (self, pitches: typing.Any, time: float) -> None:

		self._record("note_off", pitches=pitches, time=time)

	def note_on_off (self, pitches: typing.Any, duration: typing.Any, time: float, velocity: float) -> None:

		self._record("note_on_off", pitches=pitches, duration=duration, time=time, velocity=velocity)

	def release_all (self) -> None:

		self.released += 1

	def of (self, method: str) -> typing.List[typing.Dict[str, typing.Any]]:

		return [call for call in self.calls if call["method"] == method]


class FakeFilter:

	"""Filter double whose ramps land instantly."""

	def __init__ (self, frequency: float = 1000.0, fail: bool = False) -> None:

		self.frequency = frequency
		self.fail = fail
		self.ramps: typing.List[typing.Tuple[float, float, str]] = []

	def ramp_filter_frequency (self, hz: float, seconds: float, curve: str = "linear") -> None:

		if self.fail:
			raise RuntimeError("filter unavailable")

		self.ramps.append((hz, seconds, curve))
		self.frequency = hz

	def current_filter_frequency (self) -> float:

		return self.frequency


class FakeVisualizer:

	def __init__ (self) -> None:

		self.highlights: typing.List[typing.Tuple[str, float]] = []

	def highlight (self, pitch_name: str, seconds: float) -> None:

		self.highlights.append((pitch_name, seconds))


@pytest.fixture
def clock () -> reverie.sequencer.Sequencer:

	"""A render-mode clock; time moves only through advance()."""

	return reverie.sequencer.Sequencer(render=True)


@pytest.fixture
def synth () -> FakeSynth:

	return FakeSynth()


@pytest.fixture
def engine () -> reverie.engine.Engine:

	"""An idle A minor, calm engine with a seeded random source."""

	return reverie.engine.Engine({"scale": "minor", "root": "A", "mood": "calm"}, rng=random.Random(42))


@pytest.fixture
def failing_synth () -> FakeSynth:

	"""A synth whose every note call raises."""

	return FakeSynth(fail=True)


@pytest.fixture
def fake_filter () -> FakeFilter:

	return FakeFilter()


@pytest.fixture
def visualizer () -> FakeVisualizer:

	return FakeVisualizer()


@pytest.fixture
def midi_out () -> FakeMidiOut:

	return FakeMidiOut()


@pytest.fixture
def make_synth () -> typing.Type[FakeSynth]:

	"""The synth double class, for tests that need several."""

	return FakeSynth
