"""The four generative voices.

Each voice is a small state machine (``STOPPED`` / ``RUNNING``) that owns
every clock handle it creates: its recurring tick and any one-shot
callbacks chained from it.  ``stop()`` cancels them all at once, and every
callback checks the state before doing anything, so a voice that has been
stopped stays silent even if a callback was already in flight.

Voices read shared state (pitch list, mood settings, harmony, walker)
from the engine that owns them rather than keeping copies, so a live
config change is picked up at the next tick.

A failing backend call inside a tick is logged and skips only that tick;
the melody skips only the failed note and keeps counting its phrase.
"""

import enum
import logging
import typing

import reverie.backend
import reverie.chords
import reverie.durations
import reverie.markov_chain
import reverie.notes
import reverie.scales

if typing.TYPE_CHECKING:
	from reverie.engine import Engine


logger = logging.getLogger(__name__)


# Forward offset added to note times so a note is never scheduled in the past.
SAFETY_OFFSET = 0.05


class VoiceState (enum.Enum):

	STOPPED = "stopped"
	RUNNING = "running"


class Voice:

	"""
	Base class: lifecycle, owned handles and guarded callbacks.
	"""

	name = "voice"

	def __init__ (self, engine: "Engine") -> None:

		self.engine = engine
		self.state = VoiceState.STOPPED
		self.handles: typing.List[reverie.backend.Handle] = []


	@property
	def running (self) -> bool:

		return self.state is VoiceState.RUNNING


	def start (self) -> None:

		"""Enter RUNNING and schedule the voice. Does nothing if already running."""

		if self.running:
			return

		self.state = VoiceState.RUNNING
		self._enter()

		logger.info(f"{self.name} voice started")


	def stop (self) -> None:

		"""Cancel every owned handle and return to STOPPED. Does nothing if already stopped."""

		if not self.running:
			return

		self.state = VoiceState.STOPPED

		for handle in self.handles:
			self.engine.clock.cancel(handle)

		self.handles.clear()
		self._exit()

		logger.info(f"{self.name} voice stopped")


	def _enter (self) -> None:
		...

	def _exit (self) -> None:
		...


	def _guard (self, callback: reverie.backend.ClockCallback) -> reverie.backend.ClockCallback:

		"""Wrap a callback so it runs only while RUNNING and never raises into the clock."""

		def guarded (time: float) -> None:

			if not self.running:
				return

			try:
				callback(time)
			except Exception as e:
				logger.warning(f"{self.name} tick skipped: {e}")

		return guarded


	def _every (self, interval: reverie.durations.TimeSpec, callback: reverie.backend.ClockCallback) -> reverie.backend.Handle:

		handle = self.engine.clock.schedule_periodic(interval, self._guard(callback))
		self.handles.append(handle)

		return handle


	def _after (self, delay: reverie.durations.TimeSpec, callback: reverie.backend.ClockCallback) -> reverie.backend.Handle:

		"""Schedule an owned one-shot that forgets its handle once it has fired."""

		handle_box: typing.List[reverie.backend.Handle] = []
		guarded = self._guard(callback)

		def fire (time: float) -> None:

			if handle_box and handle_box[0] in self.handles:
				self.handles.remove(handle_box[0])

			guarded(time)

		handle = self.engine.clock.schedule_once(delay, fire)
		handle_box.append(handle)
		self.handles.append(handle)

		return handle


	@property
	def synth (self) -> reverie.backend.Synth:

		return self.engine.synth_for(self.name)


class MelodyVoice (Voice):

	"""Markov-walked notes and harmony chords on an eighth-note tick."""

	name = "melody"

	TICK = "8n"
	PHRASE_TICKS = 16
	MIN_NOTE_GAP = 0.01
	HELD_CHORD_PROBABILITY = 0.5

	def _enter (self) -> None:

		self.step = 0
		self.last_note_time = float("-inf")
		self._every(self.TICK, self._tick)


	def _exit (self) -> None:

		self.step = 0


	def _tick (self, time: float) -> None:

		engine = self.engine
		rng = engine.rng
		mood = engine.mood_settings
		now = engine.clock.now()

		engine.update_harmony(now)

		note_time = max(now + SAFETY_OFFSET, self.last_note_time + self.MIN_NOTE_GAP)
		self.last_note_time = note_time

		should_play = rng.random() < engine.note_probability
		should_rest = rng.random() < mood.rest_probability
		should_chord = rng.random() < mood.chord_probability

		if should_play and not should_rest:
			try:
				self._play(should_chord, note_time)
			except Exception as e:
				logger.warning(f"melody note skipped: {e}")

		self.step = (self.step + 1) % self.PHRASE_TICKS

		if self.step == 0:
			engine.phrase_ended()


	def _play (self, should_chord: bool, note_time: float) -> None:

		engine = self.engine
		rng = engine.rng
		mood = engine.mood_settings

		# Decision path: a held chord is reused half the time even when this tick did not ask for one.
		if should_chord or (engine.harmony.current_chord is not None and rng.random() < self.HELD_CHORD_PROBABILITY):
			names = engine.harmony.chord(engine.chord_names_on)
		else:
			names = [reverie.notes.pitch_to_name(engine.pitches[engine.walker.next_index()])]

		gate = reverie.markov_chain.random_in_range(mood.note_length.low, mood.note_length.high, rng)
		velocity = reverie.markov_chain.random_in_range(mood.velocity.low, mood.velocity.high, rng)
		duration = gate * engine.clock.to_seconds(self.TICK)

		self.synth.note_on_off(names, duration, note_time, velocity)
		engine.notify(self.name, names, velocity, note_time, duration)


class DroneVoice (Voice):

	"""Low sustained notes cycling through four harmonic patterns every eight measures."""

	name = "drone"

	TICK = "8m"
	PATTERNS = ("root_fifth", "triad", "octave", "shift")
	VELOCITY = 0.5
	MIN_NOTE_GAP = 0.02
	SHIFT_ADD_SECONDS = 1.5
	SHIFT_RELEASE_SECONDS = 3.0

	def _enter (self) -> None:

		self.pattern_index = 0
		self.held: typing.List[int] = []
		self.last_note_time = float("-inf")
		self._every(self.TICK, self._tick)


	def _exit (self) -> None:

		self.pattern_index = 0

		if self.held:
			try:
				self.synth.note_off(self.held, self.engine.clock.now())
			except Exception as e:
				logger.warning(f"drone release failed: {e}")
			self.held = []


	@property
	def current_pattern (self) -> str:

		return self.PATTERNS[self.pattern_index]


	def _tick (self, time: float) -> None:

		now = self.engine.clock.now()
		note_time = max(now + SAFETY_OFFSET, self.last_note_time + self.MIN_NOTE_GAP)
		self.last_note_time = note_time

		pattern = self.current_pattern
		self.pattern_index = (self.pattern_index + 1) % len(self.PATTERNS)

		root, deep, fifth = self.engine.drone_pitches[:3]
		third = root + reverie.scales.third_interval(self.engine.config.scale)

		self._release(max(now, note_time - 0.01))

		if pattern == "root_fifth":
			self._hold([root, fifth], note_time)

		elif pattern == "triad":
			self._hold([root, third, fifth], note_time)

		elif pattern == "octave":
			self._hold([deep, root], note_time)

		else:
			self._hold([root, fifth], note_time)
			self._after(self.SHIFT_ADD_SECONDS, lambda t: self._hold([deep], self.engine.clock.now() + SAFETY_OFFSET, add=True))
			self._after(self.SHIFT_RELEASE_SECONDS, lambda t: self._release(self.engine.clock.now() + SAFETY_OFFSET))

		logger.debug(f"drone pattern {pattern}")


	def _hold (self, pitches: typing.List[int], time: float, add: bool = False) -> None:

		self.synth.note_on(pitches, time, self.VELOCITY)
		self.held = (self.held + pitches) if add else list(pitches)

		names = [reverie.notes.pitch_to_name(p) for p in pitches]
		self.engine.notify(self.name, names, self.VELOCITY, time, self.engine.clock.to_seconds(self.TICK))


	def _release (self, time: float) -> None:

		if not self.held:
			return

		self.synth.note_off(self.held, time)
		self.held = []


class RhythmVoice (Voice):

	"""
	A 16-step percussion loop that drifts by mutating its pattern.

	The loop is one 4/4 measure, or a dotted half for the 3-beat meter.  All
	16 steps are spread evenly over whichever loop was chosen, so in the
	3-beat meter a step lasts 3/16 of a beat rather than a sixteenth note.
	"""

	name = "rhythm"

	STEPS = 16
	FOUR_FOUR_PROBABILITY = 0.8
	FOUR_FOUR_LOOP = "1m"
	THREE_BEAT_LOOP = "2n."
	MUTATION_CHECK = "16m"
	MUTATION_PROBABILITY = 0.2
	STEP_FLIP_PROBABILITY = 0.15
	HUMANIZE_SECONDS = 0.02
	HIT_PITCH = 36
	HIT_DURATION = "16n"
	ACCENT_PROBABILITY = 0.2
	ACCENT_PITCHES = (43, 38)
	ACCENT_VELOCITY = 0.4
	ACCENT_DURATION = "32n"
	ACCENT_DELAY = 0.05

	def _enter (self) -> None:

		rng = self.engine.rng
		patterns = self.engine.rhythm_patterns
		weights = self.engine.derived.pattern_weights

		self.pattern_index = reverie.markov_chain.weighted_index(weights, rng)
		self.pattern: typing.Tuple[bool, ...] = tuple(patterns[self.pattern_index])
		self.loop = self.FOUR_FOUR_LOOP if rng.random() < self.FOUR_FOUR_PROBABILITY else self.THREE_BEAT_LOOP

		self._every(self.loop, self._cycle)
		self._every(self.MUTATION_CHECK, self._maybe_mutate)

		logger.debug(f"rhythm pattern {self.pattern_index} loop {self.loop}")


	def swap_pattern (self) -> None:

		"""Pick a new pattern from the current mood, keeping the loop, meter and phase."""

		if not self.running:
			return

		patterns = self.engine.rhythm_patterns

		self.pattern_index = reverie.markov_chain.weighted_index(self.engine.derived.pattern_weights, self.engine.rng)
		self.pattern = tuple(patterns[self.pattern_index])

		logger.debug(f"rhythm pattern swapped to {self.pattern_index}")


	def reselect (self) -> None:

		"""Choose a fresh pattern and meter, restarting the loop."""

		if not self.running:
			return

		self.stop()
		self.start()


	def _cycle (self, time: float) -> None:

		step_seconds = self.engine.clock.to_seconds(self.loop) / self.STEPS

		for step, active in enumerate(self.pattern):
			if active:
				delay = step * step_seconds + self.engine.rng.uniform(0, self.HUMANIZE_SECONDS)
				self._after(delay, self._hit)


	def _hit (self, time: float) -> None:

		rng = self.engine.rng
		note_time = self.engine.clock.now() + SAFETY_OFFSET
		velocity = 0.6 + rng.random() * 0.4

		self.synth.note_on_off(self.HIT_PITCH, self.HIT_DURATION, note_time, velocity)
		self.engine.notify(self.name, [reverie.notes.pitch_to_name(self.HIT_PITCH)], velocity, note_time, 0.1)

		if rng.random() < self.ACCENT_PROBABILITY:
			accent = rng.choice(self.ACCENT_PITCHES)
			self.synth.note_on_off(accent, self.ACCENT_DURATION, note_time + self.ACCENT_DELAY, self.ACCENT_VELOCITY)


	def _maybe_mutate (self, time: float) -> None:

		rng = self.engine.rng

		if rng.random() >= self.MUTATION_PROBABILITY:
			return

		mutated = [(not step) if rng.random() < self.STEP_FLIP_PROBABILITY else step for step in self.pattern]

		if not any(mutated):
			mutated[0] = True

		self.pattern = tuple(mutated)

		logger.debug(f"rhythm mutated to {''.join('x' if s else '.' for s in self.pattern)}")


class AmbienceVoice (Voice):

	"""Rare, long notes drawn from anywhere in the pitch list."""

	name = "ambience"

	TICK = "1m"
	TRIGGER_PROBABILITY = 0.1
	DURATIONS = ("1n", "2n", "2n.")
	VELOCITY_RANGE = (0.4, 0.6)

	def _enter (self) -> None:

		self._every(self.TICK, self._tick)


	def _tick (self, time: float) -> None:

		rng = self.engine.rng

		if rng.random() >= self.TRIGGER_PROBABILITY:
			return

		pitches = self.engine.pitches
		name = reverie.notes.pitch_to_name(pitches[rng.randrange(len(pitches))])
		duration = rng.choice(self.DURATIONS)
		velocity = rng.uniform(*self.VELOCITY_RANGE)
		note_time = self.engine.clock.now() + SAFETY_OFFSET

		self.synth.note_on_off([name], duration, note_time, velocity)
		self.engine.notify(self.name, [name], velocity, note_time, self.engine.clock.to_seconds(duration))


VOICE_CLASSES: typing.Dict[str, typing.Type[Voice]] = {
	"melody": MelodyVoice,
	"drone": DroneVoice,
	"rhythm": RhythmVoice,
	"ambience": AmbienceVoice,
}
