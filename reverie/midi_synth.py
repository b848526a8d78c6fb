"""MIDI implementations of the synth and filter collaborators.

:class:`MidiSynth` turns note calls into ``mido`` note messages on one
channel, and :class:`MidiFilter` expresses a cutoff frequency as a control
change (CC 74, "brightness", by default).  Both schedule their messages on
the engine's clock, so a note-on requested for a future time is sent when
the clock reaches it.

Example:
	```python
	clock = reverie.sequencer.Sequencer()
	_, port = reverie.midi_utils.select_output_device("IAC Driver Bus 1")
	synth = MidiSynth(port, clock, channel=0)
	synth.note_on_off(["C4", "E4", "G4"], "4n", clock.now() + 0.05, 0.8)
	```
"""

import logging
import math
import typing

import mido

import reverie.backend
import reverie.durations
import reverie.easing
import reverie.notes


logger = logging.getLogger(__name__)


MIN_FILTER_HZ = 80.0
MAX_FILTER_HZ = 20000.0
FILTER_CC = 74
FILTER_STEP_SECONDS = 0.05


def velocity_to_midi (velocity: float) -> int:

	"""Map a 0-1 velocity to MIDI 1-127."""

	return max(1, min(127, int(round(velocity * 127))))


def frequency_to_cc (hz: float) -> int:

	"""Map a cutoff in Hz to a CC value on a logarithmic scale (80 Hz -> 0, 20 kHz -> 127)."""

	hz = max(MIN_FILTER_HZ, min(MAX_FILTER_HZ, hz))

	return int(round(127 * math.log(hz / MIN_FILTER_HZ) / math.log(MAX_FILTER_HZ / MIN_FILTER_HZ)))


class MidiSynth:

	"""Send scheduled note messages to a MIDI port on one channel."""

	def __init__ (self, port: typing.Any, clock: reverie.backend.Clock, channel: int = 0) -> None:

		"""
		Parameters:
			port: An open ``mido`` output port (anything with ``send()``).
			clock: Clock used to schedule future messages.
			channel: MIDI channel, 0-15.
		"""

		if channel < 0 or channel > 15:
			raise ValueError(f"MIDI channel must be 0-15, got {channel}")

		self.port = port
		self.clock = clock
		self.channel = channel
		self.active_notes: typing.Set[int] = set()
		self._pending: typing.Set[reverie.backend.Handle] = set()


	def note_on (self, pitches: reverie.backend.Pitches, time: float, velocity: float) -> None:

		notes = reverie.notes.to_pitches(pitches)
		midi_velocity = velocity_to_midi(velocity)

		def send (_time: float) -> None:
			for note in notes:
				self._send(mido.Message("note_on", channel=self.channel, note=note, velocity=midi_velocity))
				self.active_notes.add(note)

		self._schedule(time, send)


	def note_off (self, pitches: reverie.backend.Pitches, time: float) -> None:

		notes = reverie.notes.to_pitches(pitches)

		def send (_time: float) -> None:
			for note in notes:
				self._send(mido.Message("note_off", channel=self.channel, note=note, velocity=0))
				self.active_notes.discard(note)

		self._schedule(time, send)


	def note_on_off (
		self,
		pitches: reverie.backend.Pitches,
		duration: reverie.durations.TimeSpec,
		time: float,
		velocity: float
	) -> None:

		"""Play notes for ``duration`` starting at ``time``."""

		self.note_on(pitches, time, velocity)
		self.note_off(pitches, time + self.clock.to_seconds(duration))


	def release_all (self) -> None:

		"""
		Cancel every pending message and silence every sounding note now.
		"""

		for handle in list(self._pending):
			self.clock.cancel(handle)

		self._pending.clear()

		for note in sorted(self.active_notes):
			self._send(mido.Message("note_off", channel=self.channel, note=note, velocity=0))

		self.active_notes.clear()


	@property
	def pending_count (self) -> int:

		return len(self._pending)


	def _schedule (self, time: float, send: reverie.backend.ClockCallback) -> None:

		handle_box: typing.List[reverie.backend.Handle] = []

		def fire (fire_time: float) -> None:
			self._pending.discard(handle_box[0])
			send(fire_time)

		handle = self.clock.schedule_once(max(0.0, time - self.clock.now()), fire)
		handle_box.append(handle)
		self._pending.add(handle)


	def _send (self, message: mido.Message) -> None:

		try:
			self.port.send(message)
		except Exception:
			logger.exception("MIDI send failed (device may be disconnected)")


class MidiFilter:

	"""A filter cutoff expressed as a MIDI control change and ramped on the clock."""

	def __init__ (
		self,
		port: typing.Any,
		clock: reverie.backend.Clock,
		channel: int = 0,
		control: int = FILTER_CC,
		initial_hz: float = 2000.0
	) -> None:

		if control < 0 or control > 127:
			raise ValueError(f"MIDI control number must be 0-127, got {control}")

		self.port = port
		self.clock = clock
		self.channel = channel
		self.control = control
		self._frequency = max(MIN_FILTER_HZ, min(MAX_FILTER_HZ, initial_hz))
		self._ramp: typing.Optional[reverie.easing.Ramp] = None
		self._ramp_handle: typing.Optional[reverie.backend.Handle] = None
		self._last_cc: typing.Optional[int] = None


	def current_filter_frequency (self) -> float:

		if self._ramp is not None:
			return self._ramp.value_at(self.clock.now())

		return self._frequency


	def set_filter_frequency (self, hz: float) -> None:

		"""Jump to a cutoff immediately, abandoning any ramp in progress."""

		self._stop_ramp()
		self._frequency = max(MIN_FILTER_HZ, min(MAX_FILTER_HZ, hz))
		self._send_cc(self._frequency)


	def ramp_filter_frequency (self, hz: float, seconds: float, curve: str = "linear") -> None:

		"""
		Move the cutoff to ``hz`` over ``seconds``, stepping the CC every 50 ms.

		``curve`` is an easing shape name; ``"exponential"`` moves by a constant ratio.
		"""

		target = max(MIN_FILTER_HZ, min(MAX_FILTER_HZ, hz))
		start = self.current_filter_frequency()

		if seconds <= 0:
			self.set_filter_frequency(target)
			return

		self._stop_ramp()
		self._frequency = start
		self._ramp = reverie.easing.Ramp(start, target, self.clock.now(), seconds, curve)
		self._ramp_handle = self.clock.schedule_periodic(FILTER_STEP_SECONDS, self._step)

		logger.debug(f"Filter ramp {start:.0f} → {target:.0f} Hz over {seconds:.2f}s ({curve})")


	def hold (self) -> None:

		"""Freeze the cutoff where it is now and cancel any ramp in progress."""

		self._stop_ramp()


	def _step (self, time: float) -> None:

		if self._ramp is None:
			return

		value = self._ramp.value_at(time)
		self._send_cc(value)

		if self._ramp.finished(time):
			self._frequency = self._ramp.end
			self._stop_ramp()


	def _stop_ramp (self) -> None:

		if self._ramp is not None:
			self._frequency = self._ramp.value_at(self.clock.now())

		if self._ramp_handle is not None:
			self.clock.cancel(self._ramp_handle)

		self._ramp = None
		self._ramp_handle = None


	def _send_cc (self, hz: float) -> None:

		value = frequency_to_cc(hz)

		if value == self._last_cc:
			return

		self._last_cc = value

		try:
			self.port.send(mido.Message("control_change", channel=self.channel, control=self.control, value=value))
		except Exception:
			logger.exception("MIDI send failed (device may be disconnected)")
