"""Parameter evolution: the engine slowly nudging its own settings.

While the engine plays, a timer fires every ``evolution_interval`` seconds
(shorter when the ``evolution`` config value is higher).  Each firing
independently may:

- jitter the filter cutoff by up to +-20% and ramp to it over 3 s,
- nudge the tempo by up to +-5% and ramp to it over 5 s,
- jitter the mood's note length and velocity bounds by a few percent.

Every result is clamped (filter to 80-20000 Hz, tempo to the mood's tempo
range, mood bounds to fixed absolute limits), so this is a bounded random
walk: nothing drifts outside those limits however long it runs.
"""

import logging
import typing

import reverie.backend

if typing.TYPE_CHECKING:
	from reverie.engine import Engine


logger = logging.getLogger(__name__)


FILTER_PROBABILITY = 0.5
TEMPO_PROBABILITY = 0.3
MOOD_PROBABILITY = 0.2

MIN_FILTER_HZ = 80.0
MAX_FILTER_HZ = 20000.0
FILTER_JITTER = 0.2
FILTER_RAMP_SECONDS = 3.0

TEMPO_JITTER = 0.05
TEMPO_RAMP_SECONDS = 5.0

NOTE_LENGTH_JITTER = 0.1
NOTE_LENGTH_LIMITS = (0.1, 4.0)
VELOCITY_JITTER = 0.05
VELOCITY_LIMITS = (0.2, 1.0)
MIN_RANGE_SPAN = 0.1


def _clamp (value: float, low: float, high: float) -> float:

	return max(low, min(high, value))


class Evolution:

	"""The periodic timer that perturbs filter, tempo and mood bounds."""

	def __init__ (self, engine: "Engine") -> None:

		self.engine = engine
		self.handle: typing.Optional[reverie.backend.Handle] = None
		self.filter_target: typing.Optional[float] = None
		self.tempo_target: typing.Optional[float] = None


	@property
	def running (self) -> bool:

		return self.handle is not None


	def start (self) -> None:

		if self.running:
			return

		self._schedule_next()

		logger.info(f"Evolution every {self.engine.derived.evolution_interval:.1f}s")


	def stop (self) -> None:

		if self.handle is not None:
			self.engine.clock.cancel(self.handle)
			self.handle = None


	def restart (self) -> None:

		"""Pick up a changed interval. Does nothing while stopped."""

		if not self.running:
			return

		self.stop()
		self.start()


	def _schedule_next (self) -> None:

		self.handle = self.engine.clock.schedule_once(self.engine.derived.evolution_interval, self._fire)


	def _fire (self, time: float) -> None:

		if self.handle is None:
			return

		self._schedule_next()
		self.tick()


	def tick (self) -> None:

		"""Run one evolution step. Each perturbation fails independently."""

		rng = self.engine.rng

		if self.engine.filter is not None and rng.random() < FILTER_PROBABILITY:
			self._attempt(self.evolve_filter)

		if rng.random() < TEMPO_PROBABILITY:
			self._attempt(self.evolve_tempo)

		if rng.random() < MOOD_PROBABILITY:
			self._attempt(self.evolve_mood)


	def _attempt (self, step: typing.Callable[[], None]) -> None:

		try:
			step()
		except Exception as e:
			logger.warning(f"Evolution step {step.__name__} skipped: {e}")


	def evolve_filter (self) -> None:

		engine_filter = self.engine.filter

		if engine_filter is None:
			return

		current = engine_filter.current_filter_frequency()
		jitter = self.engine.rng.uniform(-FILTER_JITTER, FILTER_JITTER)
		target = _clamp(current * (1 + jitter), MIN_FILTER_HZ, MAX_FILTER_HZ)

		self.filter_target = target
		engine_filter.ramp_filter_frequency(target, FILTER_RAMP_SECONDS, "exponential")

		self.engine.events.emit("evolve", "filter", target)


	def evolve_tempo (self) -> None:

		clock = self.engine.clock
		jitter = self.engine.rng.uniform(-TEMPO_JITTER, TEMPO_JITTER)
		target = self.engine.mood_settings.tempo.clamp(clock.tempo() * (1 + jitter))

		self.tempo_target = target
		clock.ramp_tempo(target, TEMPO_RAMP_SECONDS)

		self.engine.events.emit("evolve", "tempo", target)


	def evolve_mood (self) -> None:

		rng = self.engine.rng
		mood = self.engine.mood_settings
		note_length = mood.note_length
		velocity = mood.velocity

		low, high = NOTE_LENGTH_LIMITS
		note_length.low = _clamp(note_length.low * (1 + rng.uniform(-NOTE_LENGTH_JITTER, NOTE_LENGTH_JITTER)), low, high - MIN_RANGE_SPAN)
		note_length.high = _clamp(note_length.high * (1 + rng.uniform(-NOTE_LENGTH_JITTER, NOTE_LENGTH_JITTER)), note_length.low + MIN_RANGE_SPAN, high)

		low, high = VELOCITY_LIMITS
		velocity.low = _clamp(velocity.low * (1 + rng.uniform(-VELOCITY_JITTER, VELOCITY_JITTER)), low, high - MIN_RANGE_SPAN)
		velocity.high = _clamp(velocity.high * (1 + rng.uniform(-VELOCITY_JITTER, VELOCITY_JITTER)), velocity.low + MIN_RANGE_SPAN, high)

		mood.enforce_invariants()

		logger.debug(
			f"Mood bounds: note length {note_length.low:.2f}-{note_length.high:.2f}, "
			f"velocity {velocity.low:.2f}-{velocity.high:.2f}"
		)

		self.engine.events.emit("evolve", "mood", None)
