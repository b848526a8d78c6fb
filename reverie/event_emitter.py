import collections
import inspect
import logging
import typing


logger = logging.getLogger(__name__)

Listener = typing.Callable[..., typing.Any]


class EventEmitter:

	"""
	Named engine events with synchronous listeners.

	The engine emits ``start``, ``stop``, ``config``, ``chord``, ``note``,
	``variation`` and ``evolve``.  Listeners run in registration order from
	inside clock callbacks, so a listener that raises is logged and skipped
	rather than allowed to stall playback.
	"""

	def __init__ (self) -> None:

		self._listeners: typing.DefaultDict[str, typing.List[Listener]] = collections.defaultdict(list)


	def on (self, event_name: str, callback: Listener) -> None:

		"""
		Add a listener. Coroutine functions are rejected; listeners must be plain callables.
		"""

		if inspect.iscoroutinefunction(callback):
			raise ValueError("Async listeners are not supported; start a task from a plain listener instead")

		self._listeners[event_name].append(callback)


	def off (self, event_name: str, callback: Listener) -> None:

		"""
		Remove a listener added with ``on()``; raises ``ValueError`` if it was never added.
		"""

		listeners = self._listeners.get(event_name, [])

		if callback not in listeners:
			raise ValueError(f"No such listener for {event_name!r}")

		listeners.remove(callback)


	def emit (self, event_name: str, *args: typing.Any, **kwargs: typing.Any) -> None:

		for callback in list(self._listeners.get(event_name, [])):

			try:
				callback(*args, **kwargs)
			except Exception:
				logger.warning(f"Listener for {event_name!r} failed", exc_info=True)
