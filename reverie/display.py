"""Live terminal status line.

:class:`Display` is a visualizer: the engine calls ``highlight()`` for
every note it plays, and the display keeps a one-line summary of the
performance on stderr::

	72.4 BPM  calm  A minor  Chord: A3 C4 E4  Notes: E4 G4 A2  [variation: transpose]

Log messages scroll above the status line without disruption.

```python
display = reverie.display.Display(engine)
display.start()
engine.start(synth, clock=clock, visualizer=display)
```
"""

import collections
import logging
import sys
import typing

if typing.TYPE_CHECKING:
	from reverie.engine import Engine


MAX_RECENT_NOTES = 6


class StatusLineHandler (logging.Handler):

	"""Writes log records above the status line, then redraws it.

	Installed by ``Display.start()`` and removed by ``Display.stop()``.
	"""

	def __init__ (self, display: "Display") -> None:

		super().__init__()
		self._display = display

	def emit (self, record: logging.LogRecord) -> None:

		try:
			self._display.clear_line()

			msg = self.format(record)
			self._display.stream.write(msg + "\n")
			self._display.stream.flush()

			self._display.draw()

		except Exception:
			self.handleError(record)


class Display:

	"""Terminal status line showing tempo, mood, key, chord and recent notes."""

	def __init__ (self, engine: "Engine", stream: typing.Optional[typing.TextIO] = None) -> None:

		"""
		Parameters:
			engine: The engine to read state from and listen to.
			stream: Output stream; stderr by default.
		"""

		self._engine = engine
		self.stream: typing.TextIO = stream if stream is not None else sys.stderr
		self._active = False
		self._handler: typing.Optional[StatusLineHandler] = None
		self._previous_handlers: typing.List[logging.Handler] = []
		self._last_line = ""
		self._last_variation: typing.Optional[str] = None
		self.recent_notes: typing.Deque[str] = collections.deque(maxlen=MAX_RECENT_NOTES)

		engine.events.on("chord", self._on_event)
		engine.events.on("config", self._on_event)
		engine.events.on("variation", self._on_variation)

	def start (self) -> None:

		"""Install the log handler and activate the display."""

		if self._active:
			return

		self._active = True

		root_logger = logging.getLogger()
		self._previous_handlers = list(root_logger.handlers)
		self._handler = StatusLineHandler(self)

		if self._previous_handlers and self._previous_handlers[0].formatter:
			self._handler.setFormatter(self._previous_handlers[0].formatter)
		else:
			self._handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))

		root_logger.handlers.clear()
		root_logger.addHandler(self._handler)

	def stop (self) -> None:

		"""Clear the status line and restore the original log handlers."""

		if not self._active:
			return

		self.clear_line()
		self._active = False

		root_logger = logging.getLogger()
		root_logger.handlers.clear()

		for handler in self._previous_handlers:
			root_logger.addHandler(handler)

		self._previous_handlers = []
		self._handler = None

	def highlight (self, pitch_name: str, seconds: float) -> None:

		"""Record a played note and redraw."""

		self.recent_notes.append(pitch_name)
		self.update()

	def update (self) -> None:

		if not self._active:
			return

		self._last_line = self.format_status()
		self.draw()

	def draw (self) -> None:

		if not self._active or not self._last_line:
			return

		self.stream.write(f"\r\033[K{self._last_line}")
		self.stream.flush()

	def clear_line (self) -> None:

		if not self._active:
			return

		self.stream.write("\r\033[K")
		self.stream.flush()

	def format_status (self) -> str:

		"""Build the status string from current engine state."""

		engine = self._engine
		parts: typing.List[str] = []

		if engine.clock is not None:
			parts.append(f"{engine.clock.tempo():.1f} BPM")

		parts.append(engine.config.mood)
		parts.append(f"{engine.root} {engine.config.scale}")

		if engine.harmony.current_chord:
			parts.append(f"Chord: {' '.join(engine.harmony.current_chord)}")

		if self.recent_notes:
			parts.append(f"Notes: {' '.join(self.recent_notes)}")

		if self._last_variation:
			parts.append(f"[variation: {self._last_variation}]")

		return "  ".join(parts)

	def _on_event (self, *_: typing.Any) -> None:

		self.update()

	def _on_variation (self, kind: str) -> None:

		self._last_variation = kind
		self.update()
