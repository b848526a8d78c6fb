import random

import pytest

import reverie
import reverie.engine
import reverie.errors
import reverie.midi_synth
import reverie.sequencer


def test_new_engine_is_idle (engine: reverie.engine.Engine) -> None:

	assert engine.state is reverie.engine.EngineState.IDLE
	assert engine.root == "A"
	assert len(engine.pitches) == 21
	assert engine.mood_settings.tempo.low <= engine.initial_tempo <= engine.mood_settings.tempo.high


def test_invalid_config_raises () -> None:

	for config in ({"mood": "grumpy"}, {"root": "H"}, {"scale": "nope"}, {"density": 150}, {"speed": 1}):
		with pytest.raises(reverie.errors.ConfigurationError):
			reverie.engine.Engine(config)


def test_package_exports () -> None:

	engine = reverie.Engine(reverie.Config(scale="dorian", root="D"))

	assert engine.config.scale == "dorian"
	assert issubclass(reverie.ConfigurationError, reverie.ReverieError)


def test_start_play_stop (engine: reverie.engine.Engine, clock: reverie.sequencer.Sequencer, synth) -> None:

	"""After stop nothing the engine scheduled is left on the clock."""

	engine.start(synth, clock=clock)
	assert engine.playing
	assert clock.tempo() == pytest.approx(engine.initial_tempo)

	clock.advance(30.0)
	assert synth.of("note_on_off")
	assert synth.of("note_on")

	melody_handle = engine.voices["melody"].handles[0]
	engine.stop()

	assert not engine.playing
	assert clock.active_handles() == []
	assert synth.released == 1

	with pytest.raises(KeyError):
		clock.trigger(melody_handle)

	played = len(synth.calls)
	clock.advance(30.0)
	assert len(synth.calls) == played


def test_start_and_stop_are_idempotent (engine: reverie.engine.Engine, clock: reverie.sequencer.Sequencer, synth) -> None:

	engine.stop()

	engine.start(synth, clock=clock)
	handles = len(clock.active_handles())
	engine.start(synth, clock=clock)
	assert len(clock.active_handles()) == handles

	engine.stop()
	engine.stop()
	assert synth.released == 1


def test_engine_can_restart (engine: reverie.engine.Engine, clock: reverie.sequencer.Sequencer, synth) -> None:

	engine.start(synth, clock=clock)
	clock.advance(5.0)
	engine.stop()

	engine.start(synth, clock=clock)
	clock.advance(5.0)

	assert engine.playing
	assert all(voice.running for voice in engine.voices.values())


def test_owned_clock_is_stopped (engine: reverie.engine.Engine, synth) -> None:

	engine.start(synth)
	owned = engine.clock

	assert isinstance(owned, reverie.sequencer.Sequencer)
	assert owned.running

	engine.stop()
	assert not owned.running


def test_injected_clock_keeps_running (engine: reverie.engine.Engine, clock: reverie.sequencer.Sequencer, synth) -> None:

	engine.start(synth, clock=clock)
	engine.stop()

	assert clock.running


def test_per_voice_synths (engine: reverie.engine.Engine, clock: reverie.sequencer.Sequencer, make_synth) -> None:

	synths = {name: make_synth() for name in ("melody", "drone", "rhythm", "ambience")}

	engine.start(synths, clock=clock)
	clock.advance(20.0)

	assert synths["drone"].of("note_on")[0]["pitches"] == [33, 40]
	assert all(call["pitches"] in (36, 38, 43) for call in synths["rhythm"].calls)


def test_synth_mapping_must_cover_every_voice (engine: reverie.engine.Engine, clock: reverie.sequencer.Sequencer, synth) -> None:

	with pytest.raises(reverie.errors.ConfigurationError):
		engine.start({"melody": synth, "drone": synth}, clock=clock)

	assert not engine.playing


def test_disabled_voices_do_not_start (clock: reverie.sequencer.Sequencer, synth) -> None:

	engine = reverie.engine.Engine(rhythm_enabled=False, ambienceEnabled=False)
	engine.start(synth, clock=clock)

	assert engine.voices["melody"].running
	assert engine.voices["drone"].running
	assert not engine.voices["rhythm"].running
	assert not engine.voices["ambience"].running


def test_voice_toggling (engine: reverie.engine.Engine, clock: reverie.sequencer.Sequencer, synth) -> None:

	"""Flipping an enabled flag starts or stops only that voice."""

	engine.start(synth, clock=clock)
	clock.advance(1.0)
	melody_handles = list(engine.voices["melody"].handles)

	assert engine.update_config(droneEnabled=False) == ["drone_enabled"]

	drone = engine.voices["drone"]
	assert not drone.running
	assert drone.handles == []
	assert synth.of("note_off")[-1]["pitches"] == [33, 40]
	assert engine.voices["melody"].handles[:1] == melody_handles[:1]

	engine.update_config(drone_enabled=True)
	assert drone.running


def test_mood_change_while_playing (engine: reverie.engine.Engine, clock: reverie.sequencer.Sequencer, synth) -> None:

	"""A new mood ramps the tempo into its range and rebuilds the pitch list, leaving every voice running."""

	engine.start(synth, clock=clock)
	clock.advance(2.0)

	melody_handle = engine.voices["melody"].handles[0]
	drone_handle = engine.voices["drone"].handles[0]
	rhythm = engine.voices["rhythm"]
	rhythm_handles = rhythm.handles[:2]
	loop = rhythm.loop

	assert engine.update_config({"mood": "intense"}) == ["mood"]

	ramp = clock._bpm_transition.ramp
	assert 110 <= ramp.end <= 150
	assert ramp.duration == pytest.approx(reverie.engine.MOOD_TEMPO_RAMP_SECONDS)

	assert engine.mood_settings.name == "intense"
	assert len(engine.pitches) == 7 * 4
	assert engine.voices["melody"].handles[0] is melody_handle
	assert engine.voices["drone"].handles[0] is drone_handle

	# The rhythm swaps its pattern in place: same loop handles, same meter.
	assert rhythm.handles[:2] == rhythm_handles
	assert all(handle in clock.active_handles() for handle in rhythm_handles)
	assert rhythm.loop == loop
	assert rhythm.pattern in engine.rhythm_patterns

	clock.advance(3.0)
	assert 110 <= clock.tempo() <= 150


def test_unknown_mood_leaves_the_engine_unchanged (engine: reverie.engine.Engine, clock: reverie.sequencer.Sequencer, synth) -> None:

	engine.start(synth, clock=clock)
	pitches = list(engine.pitches)
	settings = engine.mood_settings

	with pytest.raises(reverie.errors.ConfigurationError):
		engine.update_config(mood="grumpy", density=90)

	assert engine.config.mood == "calm"
	assert engine.config.density == 60
	assert engine.pitches == pitches
	assert engine.mood_settings is settings
	assert engine.playing


def test_update_config_while_idle (engine: reverie.engine.Engine) -> None:

	changed = engine.update_config(scale="pentatonic", root="C#")

	assert changed == ["scale", "root"]
	assert len(engine.pitches) == 15
	assert engine.pitches[0] % 12 == 1
	assert not engine.playing


def test_unchanged_config_is_a_no_op (engine: reverie.engine.Engine) -> None:

	events: list[list[str]] = []
	engine.events.on("config", events.append)

	assert engine.update_config(mood="calm") == []
	assert events == []


def test_density_changes_take_effect_without_restart (engine: reverie.engine.Engine, clock: reverie.sequencer.Sequencer, synth) -> None:

	engine.start(synth, clock=clock)
	handles = list(engine.voices["melody"].handles)

	engine.update_config(density=100)

	assert engine.note_probability == pytest.approx(0.9)
	assert engine.voices["melody"].handles == handles


def test_evolution_change_restarts_the_timer (engine: reverie.engine.Engine, clock: reverie.sequencer.Sequencer, synth) -> None:

	engine.start(synth, clock=clock)
	old = engine.evolution.handle

	engine.update_config(evolution=100)

	assert engine.evolution.handle is not old
	assert engine.derived.evolution_interval == pytest.approx(3.5)
	assert old not in clock.active_handles()


def test_stop_ends_a_filter_sweep (engine: reverie.engine.Engine, clock: reverie.sequencer.Sequencer, synth, midi_out) -> None:

	"""No control changes go out once the engine has stopped mid-sweep."""

	midi_filter = reverie.midi_synth.MidiFilter(midi_out, clock)

	engine.start(synth, midi_filter, clock=clock)
	engine.trigger_variation("filter")
	clock.advance(1.0)

	engine.stop()
	sent = len(midi_out.of_type("control_change"))

	assert clock.active_handles() == []

	clock.advance(5.0)
	assert len(midi_out.of_type("control_change")) == sent


def test_failing_backend_keeps_the_engine_playing (engine: reverie.engine.Engine, clock: reverie.sequencer.Sequencer, failing_synth) -> None:

	engine.start(failing_synth, clock=clock)
	clock.advance(40.0)

	assert engine.playing
	assert all(voice.running for voice in engine.voices.values())

	engine.stop()
	assert clock.active_handles() == []


def test_visualizer_and_note_events (engine: reverie.engine.Engine, clock: reverie.sequencer.Sequencer, synth, visualizer) -> None:

	notes: list[str] = []
	chords: list[list[str]] = []
	engine.events.on("note", lambda voice, names, velocity, time: notes.append(voice))
	engine.events.on("chord", chords.append)

	engine.start(synth, clock=clock, visualizer=visualizer)
	clock.advance(20.0)

	assert visualizer.highlights
	assert {"melody", "drone"} <= set(notes)
	assert chords and all(len(chord) in (3, 4) for chord in chords)


def test_failing_visualizer_is_ignored (engine: reverie.engine.Engine, clock: reverie.sequencer.Sequencer, synth) -> None:

	class BrokenVisualizer:

		def highlight (self, pitch_name: str, seconds: float) -> None:
			raise RuntimeError("no display")

	engine.start(synth, clock=clock, visualizer=BrokenVisualizer())
	clock.advance(5.0)

	assert synth.of("note_on")


def test_seeded_engines_are_repeatable (make_synth) -> None:

	def perform () -> list:
		clock = reverie.sequencer.Sequencer(render=True)
		synth = make_synth()
		engine = reverie.engine.Engine(mood="playful", rng=random.Random(99))
		engine.start(synth, clock=clock)
		clock.advance(30.0)
		engine.stop()
		return synth.calls

	assert perform() == perform()


def test_phrase_end_triggers_variations_by_probability (clock: reverie.sequencer.Sequencer, synth) -> None:

	always = reverie.engine.Engine(variation=100, rng=random.Random(1))
	never = reverie.engine.Engine(variation=0, rng=random.Random(1))

	counts = []

	for engine in (always, never):
		kinds: list[str] = []
		engine.events.on("variation", kinds.append)
		engine.start(synth, clock=reverie.sequencer.Sequencer(render=True))
		for _ in range(10):
			engine.phrase_ended()
		engine.stop()

		counts.append(len(kinds))

	assert counts == [10, 0]
