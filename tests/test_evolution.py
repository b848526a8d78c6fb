import pytest

import reverie.engine
import reverie.evolution
import reverie.sequencer


def test_bounded_after_many_steps (engine: reverie.engine.Engine, clock: reverie.sequencer.Sequencer, fake_filter) -> None:

	"""However long evolution runs, filter, tempo and mood bounds stay within their limits."""

	engine.clock = clock
	engine.filter = fake_filter
	clock.start()
	clock.set_tempo(engine.initial_tempo)

	mood = engine.mood_settings

	for _ in range(1000):

		engine.evolution.tick()
		clock.advance(1.0)

		assert 80.0 <= fake_filter.frequency <= 20000.0
		assert mood.tempo.low <= clock.tempo() <= mood.tempo.high
		assert 0.1 <= mood.note_length.low <= mood.note_length.high <= 4.0
		assert mood.note_length.high - mood.note_length.low >= 0.1 - 1e-9
		assert 0.2 <= mood.velocity.low <= mood.velocity.high <= 1.0

	assert fake_filter.ramps
	assert all(seconds == 3.0 and curve == "exponential" for _, seconds, curve in fake_filter.ramps)


def test_filter_jitter_is_at_most_twenty_percent (engine: reverie.engine.Engine, clock: reverie.sequencer.Sequencer, fake_filter) -> None:

	engine.clock = clock
	engine.filter = fake_filter

	for _ in range(200):
		before = fake_filter.frequency
		engine.evolution.evolve_filter()
		assert before * 0.8 - 1e-6 <= fake_filter.frequency <= before * 1.2 + 1e-6


def test_timer_fires_every_interval (engine: reverie.engine.Engine, clock: reverie.sequencer.Sequencer, synth, monkeypatch: pytest.MonkeyPatch) -> None:

	"""With evolution at 40 the engine evolves every 12.5 seconds, not at start."""

	ticks: list[int] = []
	monkeypatch.setattr(engine.evolution, "tick", lambda: ticks.append(1))

	engine.start(synth, clock=clock)
	assert engine.derived.evolution_interval == pytest.approx(12.5)

	clock.advance(12.4)
	assert ticks == []

	clock.advance(0.2)
	assert ticks == [1]

	clock.advance(12.5)
	assert ticks == [1, 1]


def test_stop_cancels_the_timer (engine: reverie.engine.Engine, clock: reverie.sequencer.Sequencer, synth) -> None:

	engine.start(synth, clock=clock)
	handle = engine.evolution.handle
	engine.stop()

	assert not engine.evolution.running
	assert handle not in clock.active_handles()


def test_a_failing_step_does_not_block_the_others (engine: reverie.engine.Engine, clock: reverie.sequencer.Sequencer, monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture) -> None:

	class BrokenFilter:

		def current_filter_frequency (self) -> float:
			raise RuntimeError("filter unavailable")

		def ramp_filter_frequency (self, hz: float, seconds: float, curve: str = "linear") -> None:
			raise RuntimeError("filter unavailable")

	engine.clock = clock
	engine.filter = BrokenFilter()
	clock.start()
	clock.set_tempo(70)

	# Every roll succeeds, so all three steps are attempted.
	monkeypatch.setattr(engine.rng, "random", lambda: 0.0)
	engine.evolution.tick()

	assert "evolve_filter skipped" in caplog.text
	assert engine.evolution.tempo_target == pytest.approx(70 * 0.95)


def test_tempo_target_respects_the_mood_range (engine: reverie.engine.Engine, clock: reverie.sequencer.Sequencer) -> None:

	engine.clock = clock
	clock.set_tempo(engine.mood_settings.tempo.high)

	for _ in range(100):
		engine.evolution.evolve_tempo()
		assert engine.evolution.tempo_target <= engine.mood_settings.tempo.high


def test_evolve_events (engine: reverie.engine.Engine, clock: reverie.sequencer.Sequencer, fake_filter) -> None:

	events: list[str] = []
	engine.events.on("evolve", lambda parameter, value: events.append(parameter))
	engine.clock = clock
	engine.filter = fake_filter

	engine.evolution.evolve_filter()
	engine.evolution.evolve_tempo()
	engine.evolution.evolve_mood()

	assert events == ["filter", "tempo", "mood"]
