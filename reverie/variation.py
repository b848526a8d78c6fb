"""Temporary variations triggered at phrase boundaries.

One of five transformations is chosen uniformly:

- ``transpose``: move to a random root, reverting after 8 s.
- ``rhythm``: make the rhythm voice pick a new pattern.
- ``density``: offset the melody's note probability, reverting after 5-10 s.
- ``filter``: one exponential sweep to double or half the cutoff.
- ``dissonance``: raise the chord dissonance factor, reverting after 10 s.

Reverts are one-shot clock callbacks owned by :class:`VariationSystem`.
Repeating a variation while its revert is pending cancels that revert and
keeps the baseline from the first application, so the value always
returns to where it was before the streak began.
"""

import logging
import typing

import reverie.backend
import reverie.notes

if typing.TYPE_CHECKING:
	from reverie.engine import Engine


logger = logging.getLogger(__name__)


KINDS: typing.Tuple[str, ...] = ("transpose", "rhythm", "density", "filter", "dissonance")

TRANSPOSE_SECONDS = 8.0
DENSITY_OFFSET = 0.2
DENSITY_SECONDS = (5.0, 10.0)
MIN_FILTER_HZ = 80.0
MAX_FILTER_HZ = 20000.0
DISSONANCE_BUMP = 0.2
MAX_DISSONANCE = 0.7
DISSONANCE_SECONDS = 10.0


class VariationSystem:

	"""Applies variations and owns their pending reverts."""

	def __init__ (self, engine: "Engine") -> None:

		self.engine = engine
		self._pending: typing.Dict[str, reverie.backend.Handle] = {}
		self._restore: typing.Dict[str, typing.Callable[[], None]] = {}


	@property
	def pending (self) -> typing.List[str]:

		"""Kinds with a revert still scheduled."""

		return list(self._pending)


	def trigger (self, kind: typing.Optional[str] = None) -> typing.Optional[str]:

		"""
		Apply a variation (a random kind unless one is given) and return its kind.

		A backend failure is logged and returns None.
		"""

		if kind is None:
			kind = self.engine.rng.choice(KINDS)

		if kind not in KINDS:
			raise ValueError(f"Unknown variation: {kind!r}. Available: {list(KINDS)}")

		try:
			getattr(self, f"_{kind}")()
		except Exception as e:
			logger.warning(f"Variation {kind} skipped: {e}")
			return None

		logger.info(f"Variation: {kind}")
		self.engine.events.emit("variation", kind)

		return kind


	def reset (self) -> None:

		"""Cancel every pending revert and restore the baselines now."""

		for kind in list(self._pending):
			self.engine.clock.cancel(self._pending.pop(kind))
			self._run_restore(kind)


	def discard (self, kind: str) -> None:

		"""Cancel a pending revert without restoring its baseline."""

		handle = self._pending.pop(kind, None)

		if handle is not None:
			self.engine.clock.cancel(handle)

		self._restore.pop(kind, None)


	def _schedule_revert (self, kind: str, delay: float, restore: typing.Callable[[], None]) -> None:

		"""Schedule ``restore``, or extend a pending revert of the same kind while keeping its baseline."""

		if kind in self._pending:
			self.engine.clock.cancel(self._pending.pop(kind))
		else:
			self._restore[kind] = restore

		def revert (time: float) -> None:
			self._pending.pop(kind, None)
			self._run_restore(kind)

		self._pending[kind] = self.engine.clock.schedule_once(delay, revert)


	def _run_restore (self, kind: str) -> None:

		restore = self._restore.pop(kind, None)

		if restore is None:
			return

		try:
			restore()
		except Exception as e:
			logger.warning(f"Reverting {kind} failed: {e}")


	def _transpose (self) -> None:

		engine = self.engine
		new_root = engine.rng.choice(reverie.notes.PC_TO_NOTE_NAME)

		engine.set_active_root(new_root)
		self._schedule_revert("transpose", TRANSPOSE_SECONDS, lambda: engine.set_active_root(None))


	def _rhythm (self) -> None:

		self.engine.voices["rhythm"].reselect()


	def _density (self) -> None:

		engine = self.engine

		engine.note_probability_offset = engine.rng.uniform(-DENSITY_OFFSET, DENSITY_OFFSET)

		def restore () -> None:
			engine.note_probability_offset = 0.0

		self._schedule_revert("density", engine.rng.uniform(*DENSITY_SECONDS), restore)


	def _filter (self) -> None:

		engine = self.engine
		engine_filter = engine.filter

		if engine_filter is None:
			return

		current = engine_filter.current_filter_frequency()

		if engine.rng.random() > 0.5:
			target = min(MAX_FILTER_HZ, current * 2)
		else:
			target = max(MIN_FILTER_HZ, current / 2)

		engine_filter.ramp_filter_frequency(target, 1.0 / engine.mood_settings.filter_sweep_rate, "exponential")


	def _dissonance (self) -> None:

		engine = self.engine
		settings = engine.mood_settings
		baseline = settings.dissonance_factor

		settings.dissonance_factor = min(MAX_DISSONANCE, settings.dissonance_factor + DISSONANCE_BUMP)

		def restore () -> None:
			# A mood change replaces the settings object; the new mood keeps its own value.
			if engine.mood_settings is settings:
				settings.dissonance_factor = baseline

		self._schedule_revert("dissonance", DISSONANCE_SECONDS, restore)
