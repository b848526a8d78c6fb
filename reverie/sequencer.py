import asyncio
import dataclasses
import heapq
import itertools
import logging
import time
import typing

import reverie.backend
import reverie.durations
import reverie.easing


logger = logging.getLogger(__name__)

# Longest the real-time loop sleeps, so callbacks scheduled from outside a tick are picked up promptly.
MAX_SLEEP_SECONDS = 0.01


@dataclasses.dataclass(eq=False)
class ScheduledCallback:

	"""
	A one-shot or repeating callback and its scheduling metadata.
	"""

	id: int
	callback: reverie.backend.ClockCallback
	next_time: float
	interval: typing.Optional[reverie.durations.TimeSpec] = None
	cancelled: bool = False


	@property
	def periodic (self) -> bool:

		return self.interval is not None


@dataclasses.dataclass
class BpmTransition:

	"""State for a gradual BPM transition."""

	ramp: reverie.easing.Ramp


class Sequencer:

	"""
	The clock that drives an engine's timing.

	In real-time mode ``run()`` must be awaited on an asyncio loop; callbacks
	fire as wall-clock time reaches them.  In render mode (``render=True``)
	time stands still until ``advance()`` moves it, firing every callback due
	in between in time order.  Render mode is deterministic, which makes it
	the clock of choice for offline rendering and tests.

	Callbacks receive their nominal fire time.  A callback that raises is
	logged and the clock carries on.
	"""

	def __init__ (self, initial_bpm: float = 120, render: bool = False) -> None:

		"""Initialize the clock.

		Parameters:
			initial_bpm: Starting tempo.
			render: When True, time advances only through ``advance()``.
		"""

		if initial_bpm <= 0:
			raise ValueError("BPM must be positive")

		self.render_mode = render
		self.running = False
		self.current_bpm: float = initial_bpm

		self._bpm_transition: typing.Optional[BpmTransition] = None
		self._epoch = time.perf_counter()
		self._render_time = 0.0
		self._ids = itertools.count(1)
		self._counter = itertools.count()
		self._queue: typing.List[typing.Tuple[float, int, ScheduledCallback]] = []
		self._active: typing.Dict[int, ScheduledCallback] = {}


	def now (self) -> float:

		"""Seconds on the clock's timeline."""

		if self.render_mode:
			return self._render_time

		return time.perf_counter() - self._epoch


	def tempo (self) -> float:

		"""Current tempo, following any ramp in progress."""

		if self._bpm_transition is not None:

			now = self.now()
			ramp = self._bpm_transition.ramp

			if ramp.finished(now):
				self._bpm_transition = None
				self.current_bpm = ramp.end
			else:
				self.current_bpm = ramp.value_at(now)

		return self.current_bpm


	def set_tempo (self, bpm: float) -> None:

		"""
		Instantly change the tempo.
		"""

		if bpm <= 0:
			raise ValueError("BPM must be positive")

		self._bpm_transition = None
		self.current_bpm = bpm

		logger.info(f"BPM set to {self.current_bpm:.2f}")


	def ramp_tempo (self, bpm: float, seconds: float, shape: typing.Union[str, reverie.easing.EasingFn] = "ease_in_out") -> None:

		"""
		Smoothly move to a new tempo over ``seconds``.
		"""

		if bpm <= 0:
			raise ValueError("Target BPM must be positive")

		if seconds <= 0:
			self.set_tempo(bpm)
			return

		start_bpm = self.tempo()

		self._bpm_transition = BpmTransition(
			ramp = reverie.easing.Ramp(start_bpm, bpm, self.now(), seconds, shape)
		)

		logger.info(f"BPM transition: {start_bpm:.2f} → {bpm:.2f} over {seconds:.1f}s")


	def to_seconds (self, spec: reverie.durations.TimeSpec) -> float:

		return reverie.durations.to_seconds(spec, self.tempo())


	def _push (self, scheduled: ScheduledCallback) -> ScheduledCallback:

		self._active[scheduled.id] = scheduled
		heapq.heappush(self._queue, (scheduled.next_time, next(self._counter), scheduled))

		return scheduled


	def schedule_periodic (
		self,
		interval: reverie.durations.TimeSpec,
		callback: reverie.backend.ClockCallback,
		start: typing.Optional[reverie.durations.TimeSpec] = None
	) -> ScheduledCallback:

		"""Call ``callback(time)`` every ``interval``.

		The first firing is immediate, or ``start`` after now when given.
		Musical interval specs are resolved at every firing, so a tempo ramp
		changes the spacing of later firings.
		"""

		if self.to_seconds(interval) <= 0:
			raise ValueError("Interval must be positive")

		first = self.now() + (self.to_seconds(start) if start is not None else 0.0)

		return self._push(ScheduledCallback(next(self._ids), callback, first, interval=interval))


	def schedule_once (self, delay: reverie.durations.TimeSpec, callback: reverie.backend.ClockCallback) -> ScheduledCallback:

		"""Call ``callback(time)`` once, ``delay`` from now."""

		return self.schedule_at(self.now() + self.to_seconds(delay), callback)


	def schedule_at (self, when: float, callback: reverie.backend.ClockCallback) -> ScheduledCallback:

		"""Call ``callback(time)`` once at an absolute clock time."""

		return self._push(ScheduledCallback(next(self._ids), callback, when))


	def cancel (self, handle: reverie.backend.Handle) -> None:

		"""
		Cancel a scheduled callback. Unknown or already cancelled handles are ignored.
		"""

		if not isinstance(handle, ScheduledCallback):
			return

		handle.cancelled = True
		self._active.pop(handle.id, None)


	def trigger (self, handle: reverie.backend.Handle) -> None:

		"""Fire an active handle's callback immediately, outside its schedule.

		Raises:
			KeyError: If the handle is unknown, cancelled or already spent.
		"""

		if not isinstance(handle, ScheduledCallback) or handle.id not in self._active:
			raise KeyError("handle not found")

		if not handle.periodic:
			handle.cancelled = True
			del self._active[handle.id]

		self._invoke(handle, self.now())


	def active_handles (self) -> typing.List[ScheduledCallback]:

		return list(self._active.values())


	def start (self) -> None:

		"""Start dispatching callbacks."""

		if self.running:
			return

		self.running = True

		logger.info("Sequencer started")


	def stop (self) -> None:

		"""
		Stop dispatching and discard everything still scheduled.
		"""

		if not self.running:
			return

		self.running = False

		for scheduled in self._active.values():
			scheduled.cancelled = True

		self._active.clear()
		self._queue = []

		logger.info("Sequencer stopped")


	def advance (self, seconds: float) -> None:

		"""Move render time forward, firing every callback that falls due."""

		if not self.render_mode:
			raise RuntimeError("advance() is only available in render mode")

		if seconds < 0:
			raise ValueError("Cannot advance by a negative time")

		target = self._render_time + seconds

		while self.running and self._queue and self._queue[0][0] <= target:
			when, _, scheduled = heapq.heappop(self._queue)
			self._render_time = max(self._render_time, when)
			self._dispatch(scheduled, when)

		self._render_time = target


	async def run (self) -> None:

		"""
		Real-time loop: fire callbacks as they fall due until ``stop()`` is called.
		"""

		if self.render_mode:
			raise RuntimeError("run() is not available in render mode")

		self.start()

		try:
			while self.running:

				now = self.now()

				while self.running and self._queue and self._queue[0][0] <= now:
					when, _, scheduled = heapq.heappop(self._queue)
					self._dispatch(scheduled, when)

				if self._queue:
					sleep_time = min(MAX_SLEEP_SECONDS, self._queue[0][0] - self.now())
				else:
					sleep_time = MAX_SLEEP_SECONDS

				await asyncio.sleep(max(0.0, sleep_time))

		except asyncio.CancelledError:
			pass

		finally:
			self.stop()


	def _dispatch (self, scheduled: ScheduledCallback, when: float) -> None:

		"""Fire one queue entry, rescheduling periodic callbacks first so they may cancel themselves."""

		if scheduled.cancelled:
			return

		if scheduled.periodic:
			scheduled.next_time = when + self.to_seconds(scheduled.interval)
			heapq.heappush(self._queue, (scheduled.next_time, next(self._counter), scheduled))
		else:
			scheduled.cancelled = True
			self._active.pop(scheduled.id, None)

		self._invoke(scheduled, when)


	def _invoke (self, scheduled: ScheduledCallback, when: float) -> None:

		try:
			scheduled.callback(when)
		except Exception:
			logger.exception(f"Scheduled callback {scheduled.id} failed")
