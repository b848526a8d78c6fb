"""The voice coordinator.

:class:`Engine` owns everything a performance needs: the config, the
mood's mutable settings, its transition matrix, the pitch list, the
melody walker, the shared harmony state and the four voices.  The clock,
synths, filter and visualizer are injected at :meth:`Engine.start`.

States are ``IDLE`` and ``PLAYING``.  ``start()`` and ``stop()`` are no-ops
when already in the target state, and ``update_config()`` works in both.

Example:
	```python
	import reverie

	clock = reverie.Sequencer(render=True)
	engine = reverie.Engine({"scale": "minor", "root": "A", "mood": "calm"})
	engine.start(synth, clock=clock)
	clock.advance(30.0)
	engine.update_config(mood="intense")
	clock.advance(30.0)
	engine.stop()
	```

With a real-time clock, await ``clock.run()`` on an asyncio loop to drive
playback.
"""

import collections.abc
import enum
import logging
import random
import typing

import reverie.backend
import reverie.chords
import reverie.config
import reverie.errors
import reverie.event_emitter
import reverie.evolution
import reverie.harmonic_state
import reverie.markov_chain
import reverie.melodic_state
import reverie.moods
import reverie.notes
import reverie.scales
import reverie.sequencer
import reverie.variation
import reverie.voices


logger = logging.getLogger(__name__)


MOOD_TEMPO_RAMP_SECONDS = 2.0
MIN_NOTE_PROBABILITY = 0.1
MAX_NOTE_PROBABILITY = 0.9

SynthArg = typing.Union[reverie.backend.Synth, typing.Mapping[str, reverie.backend.Synth]]


class EngineState (enum.Enum):

	IDLE = "idle"
	PLAYING = "playing"


class Engine:

	"""Procedural composition engine coordinating melody, drone, rhythm and ambience voices."""

	def __init__ (
		self,
		config: typing.Union[reverie.config.Config, typing.Mapping[str, typing.Any], None] = None,
		rng: typing.Optional[random.Random] = None,
		**overrides: typing.Any
	) -> None:

		"""Create an idle engine.

		Parameters:
			config: A ``Config``, a (partial) mapping of config keys, or None
				for the defaults.
			rng: Optional seeded ``random.Random`` for repeatable performances.
			**overrides: Individual config fields, applied on top of ``config``.

		Raises:
			ConfigurationError: For an unknown root, scale, mood or key, or an
				out-of-range value.
		"""

		if isinstance(config, reverie.config.Config):
			base = config
			base.validate()
		else:
			base = reverie.config.Config.from_mapping(config)

		self.config = base.replace(**overrides) if overrides else base

		self.rng = rng or random.Random()
		self.events = reverie.event_emitter.EventEmitter()
		self.state = EngineState.IDLE

		self.clock: typing.Optional[reverie.backend.Clock] = None
		self.synths: typing.Dict[str, reverie.backend.Synth] = {}
		self.filter: typing.Optional[reverie.backend.Filter] = None
		self.visualizer: typing.Optional[reverie.backend.Visualizer] = None
		self._owns_clock = False

		self.note_probability_offset = 0.0
		self._active_root: typing.Optional[str] = None

		self.harmony = reverie.harmonic_state.HarmonyState(self.rng)

		self._apply_mood()
		self._rebuild_scale()

		self.voices: typing.Dict[str, reverie.voices.Voice] = {
			name: cls(self) for name, cls in reverie.voices.VOICE_CLASSES.items()
		}

		self.evolution = reverie.evolution.Evolution(self)
		self.variation = reverie.variation.VariationSystem(self)


	# ------------------------------------------------------------------
	# Derived state
	# ------------------------------------------------------------------

	@property
	def playing (self) -> bool:

		return self.state is EngineState.PLAYING


	@property
	def derived (self) -> reverie.config.DerivedSettings:

		return reverie.config.derive_settings(self.config)


	@property
	def root (self) -> str:

		"""The sounding root: the config root unless a transposition is active."""

		return self._active_root or self.config.root


	@property
	def note_probability (self) -> float:

		"""Melody note probability including any density variation offset."""

		base = self.derived.note_probability

		if self.note_probability_offset == 0.0:
			return base

		return max(MIN_NOTE_PROBABILITY, min(MAX_NOTE_PROBABILITY, base + self.note_probability_offset))


	def _apply_mood (self) -> None:

		"""Load fresh settings, matrix and rhythm patterns for the configured mood."""

		self.mood_settings = reverie.moods.settings_for(self.config.mood)
		self.rhythm_patterns = reverie.moods.rhythm_patterns_for(self.config.mood)
		self.initial_tempo = reverie.markov_chain.random_in_range(
			self.mood_settings.tempo.low, self.mood_settings.tempo.high, self.rng
		)


	def _rebuild_scale (self) -> None:

		"""Regenerate the scale, pitch list, drone pitches, matrix and walker."""

		self.scale = reverie.scales.Scale(self.root, self.config.scale, self.mood_settings.octave_range)
		self.pitches = self.scale.pitches
		self.drone_pitches = self.scale.drone_pitches
		self.transition_matrix = reverie.moods.transition_matrix_for(self.config.mood, self.scale.degree_count)

		self.walker = reverie.melodic_state.MelodicState(
			self.transition_matrix,
			self.scale.degree_count,
			self.mood_settings.octave_range.count,
			rng = self.rng
		)

		logger.debug(f"Pitch list {self.root} {self.config.scale}: {self.pitches}")


	def set_active_root (self, root: typing.Optional[str]) -> None:

		"""Temporarily sound in another root (None returns to the config root)."""

		if root is not None:
			reverie.notes.key_name_to_pc(root)

		self._active_root = root
		self._rebuild_scale()
		self.harmony.clear()


	# ------------------------------------------------------------------
	# Lifecycle
	# ------------------------------------------------------------------

	def start (
		self,
		synth: SynthArg,
		filter_ref: typing.Optional[reverie.backend.Filter] = None,
		clock: typing.Optional[reverie.backend.Clock] = None,
		visualizer: typing.Optional[reverie.backend.Visualizer] = None
	) -> None:

		"""Start playing.

		Parameters:
			synth: One synth for every voice, or a mapping from voice name
				(``"melody"``, ``"drone"``, ``"rhythm"``, ``"ambience"``) to synth.
			filter_ref: Optional filter for evolution and filter sweeps.
			clock: Clock to schedule on; a real-time ``Sequencer`` when omitted.
			visualizer: Optional note highlighter.
		"""

		if self.playing:
			return

		if isinstance(synth, collections.abc.Mapping):
			missing = [name for name in reverie.config.VOICE_NAMES if name not in synth]
			if missing:
				raise reverie.errors.ConfigurationError(f"No synth given for voices: {missing}")
			self.synths = {name: synth[name] for name in reverie.config.VOICE_NAMES}
		else:
			self.synths = {name: synth for name in reverie.config.VOICE_NAMES}

		self.filter = filter_ref
		self.visualizer = visualizer
		self._owns_clock = clock is None
		self.clock = clock if clock is not None else reverie.sequencer.Sequencer(initial_bpm=self.initial_tempo)

		try:
			start_clock = getattr(self.clock, "start", None)
			if callable(start_clock):
				start_clock()

			self.clock.set_tempo(self.initial_tempo)
			self.state = EngineState.PLAYING

			for name, voice in self.voices.items():
				if self.config.enabled(name):
					voice.start()

			self.evolution.start()

		except Exception:
			logger.exception("Engine failed to start")
			self.stop()
			raise

		logger.info(f"Engine playing: {self.root} {self.config.scale}, {self.config.mood}")
		self.events.emit("start")


	def stop (self) -> None:

		"""Stop every voice, the evolution timer and pending variation reverts."""

		if self.clock is None:
			return

		if not self.playing and not self.evolution.running and not any(voice.running for voice in self.voices.values()):
			return

		self.state = EngineState.IDLE

		for voice in self.voices.values():
			voice.stop()

		self.evolution.stop()
		self.variation.reset()
		self.harmony.clear()
		self.walker.reset()

		hold_filter = getattr(self.filter, "hold", None)
		if callable(hold_filter):
			try:
				hold_filter()
			except Exception as e:
				logger.warning(f"Filter hold failed: {e}")

		for synth in {id(s): s for s in self.synths.values()}.values():
			release_all = getattr(synth, "release_all", None)
			if callable(release_all):
				try:
					release_all()
				except Exception as e:
					logger.warning(f"Synth release failed: {e}")

		if self._owns_clock:
			stop_clock = getattr(self.clock, "stop", None)
			if callable(stop_clock):
				stop_clock()

		logger.info("Engine stopped")
		self.events.emit("stop")


	# ------------------------------------------------------------------
	# Live configuration
	# ------------------------------------------------------------------

	def update_config (self, partial: typing.Optional[typing.Mapping[str, typing.Any]] = None, **changes: typing.Any) -> typing.List[str]:

		"""Apply a partial config change and return the names of the fields that changed.

		The new config is validated in full before anything changes.  Only
		work tied to the changed fields is redone: a mood change reloads the
		mood settings, matrix and pitch list and ramps the tempo into the new
		range; a scale or root change rebuilds the pitch list and walker; an
		evolution change restarts the evolution timer; and only voices whose
		enabled flag flipped are started or stopped.

		Example:
			```python
			engine.update_config({"mood": "intense"})
			engine.update_config(droneEnabled=False)
			```
		"""

		merged: typing.Dict[str, typing.Any] = dict(partial or {})
		merged.update(changes)

		new_config = self.config.replace(**merged)
		changed = new_config.diff(self.config)

		if not changed:
			return []

		self.config = new_config

		if "mood" in changed:
			self.variation.discard("dissonance")
			self._apply_mood()

			if self.playing:
				self.clock.ramp_tempo(self.initial_tempo, MOOD_TEMPO_RAMP_SECONDS)

		if "root" in changed:
			# An explicit root change wins over a transposition in progress.
			self.variation.discard("transpose")
			self._active_root = None

		if {"mood", "scale", "root"} & set(changed):
			self._rebuild_scale()
			self.harmony.clear()

		if self.playing:

			if "evolution" in changed:
				self.evolution.restart()

			if "mood" in changed:
				rhythm = self.voices["rhythm"]
				if isinstance(rhythm, reverie.voices.RhythmVoice):
					rhythm.swap_pattern()

			for name, voice in self.voices.items():
				if f"{name}_enabled" in changed:
					if self.config.enabled(name):
						voice.start()
					else:
						voice.stop()

		logger.info(f"Config updated: {', '.join(f'{name}={getattr(self.config, name)!r}' for name in changed)}")
		self.events.emit("config", changed)

		return changed


	def trigger_variation (self, kind: typing.Optional[str] = None) -> typing.Optional[str]:

		"""Apply a variation now (random kind unless given). Only while playing."""

		if not self.playing:
			return None

		return self.variation.trigger(kind)


	# ------------------------------------------------------------------
	# Hooks used by the voices
	# ------------------------------------------------------------------

	def synth_for (self, voice_name: str) -> reverie.backend.Synth:

		if voice_name not in self.synths:
			raise reverie.errors.ReverieError(f"No synth for voice {voice_name!r}")

		return self.synths[voice_name]


	def chord_names_on (self, index: int) -> typing.List[str]:

		"""Build a chord on a pitch list index and return its note names."""

		indices = reverie.chords.build_chord(
			index,
			self.config.scale,
			self.scale.degree_count,
			self.mood_settings.dissonance_factor,
			self.rng
		)

		return reverie.chords.chord_names(indices, self.pitches)


	def update_harmony (self, now: float) -> None:

		if self.harmony.update(now, len(self.pitches), self.chord_names_on):
			logger.debug(f"Chord: {self.harmony.current_chord}")
			self.events.emit("chord", list(self.harmony.current_chord or []))


	def phrase_ended (self) -> None:

		"""Called by the melody voice after every phrase; may trigger a variation."""

		if self.rng.random() < self.config.variation / 100:
			self.variation.trigger()


	def notify (self, voice: str, names: typing.List[str], velocity: float, time: float, seconds: float) -> None:

		"""Report played notes to the visualizer and event listeners. Never raises."""

		if self.visualizer is not None:
			for name in names:
				try:
					self.visualizer.highlight(name, seconds)
				except Exception as e:
					logger.debug(f"Visualizer highlight failed: {e}")

		self.events.emit("note", voice, list(names), velocity, time)
