"""Collaborator interfaces.

The engine never renders audio or keeps time itself.  It drives four kinds
of injected collaborator, described here as protocols so any object with
the right methods can stand in (a MIDI port, a software synth, a test
double):

- :class:`Clock`: tempo, current time and callback scheduling.
- :class:`Synth`: note on/off.
- :class:`Filter`: cutoff frequency ramps.
- :class:`Visualizer`: fire-and-forget note highlighting.

Times are seconds on the clock's timeline.  Interval and delay specs are
either seconds or musical strings (see :mod:`reverie.durations`).
"""

import typing

import reverie.durations
import reverie.notes


Handle = typing.Hashable

ClockCallback = typing.Callable[[float], typing.Any]

Pitches = typing.Union[reverie.notes.PitchLike, typing.Sequence[reverie.notes.PitchLike]]


@typing.runtime_checkable
class Clock (typing.Protocol):

	"""
	Transport and scheduler.
	"""

	def now (self) -> float:
		...

	def tempo (self) -> float:
		...

	def set_tempo (self, bpm: float) -> None:
		...

	def ramp_tempo (self, bpm: float, seconds: float) -> None:
		...

	def to_seconds (self, spec: reverie.durations.TimeSpec) -> float:
		...

	def schedule_periodic (self, interval: reverie.durations.TimeSpec, callback: ClockCallback) -> Handle:

		"""
		Call ``callback(time)`` now and then every ``interval``, re-resolving musical specs at each firing.
		"""

		...

	def schedule_once (self, delay: reverie.durations.TimeSpec, callback: ClockCallback) -> Handle:
		...

	def cancel (self, handle: Handle) -> None:

		"""
		Cancel a handle; cancelling twice is harmless.
		"""

		...


@typing.runtime_checkable
class Synth (typing.Protocol):

	"""
	Note output. Velocity is 0-1; pitches are MIDI numbers or names, single or listed.
	"""

	def note_on (self, pitches: Pitches, time: float, velocity: float) -> None:
		...

	def note_off (self, pitches: Pitches, time: float) -> None:
		...

	def note_on_off (self, pitches: Pitches, duration: reverie.durations.TimeSpec, time: float, velocity: float) -> None:
		...


@typing.runtime_checkable
class Filter (typing.Protocol):

	def ramp_filter_frequency (self, hz: float, seconds: float, curve: str = "linear") -> None:
		...

	def current_filter_frequency (self) -> float:
		...


@typing.runtime_checkable
class Visualizer (typing.Protocol):

	def highlight (self, pitch_name: str, seconds: float) -> None:
		...
