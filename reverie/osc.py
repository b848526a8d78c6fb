"""OSC control surface.

Start the server alongside a playing engine to turn its parameters from
any OSC controller.  It listens on a UDP port (default 9000) and sends
state updates to a target host/port (default 127.0.0.1:9001).

Receive Handlers
────────────────
- ``/config/<field> <value>``: Update one config field (``mood``,
  ``density``, ``melody_enabled``, ``droneEnabled``...)
- ``/variation [kind]``: Trigger a variation now

Send Events
───────────
- ``/chord <string>``: On chord change (space separated note names)
- ``/variation <string>``: When a variation is applied
- ``/tempo <float>``: When evolution ramps toward a new tempo
"""

import asyncio
import logging
import typing

import pythonosc.dispatcher
import pythonosc.osc_server
import pythonosc.udp_client

import reverie.config
import reverie.errors

if typing.TYPE_CHECKING:
	from reverie.engine import Engine


logger = logging.getLogger(__name__)


def coerce_value (field: str, value: typing.Any) -> typing.Any:

	"""Convert an OSC argument to the type a config field expects."""

	name = reverie.config.FIELD_ALIASES.get(field, field)

	if name.endswith("_enabled"):
		if isinstance(value, str):
			return value.strip().lower() in ("1", "true", "on", "yes")
		return bool(value)

	if name in reverie.config.PERCENT_FIELDS:
		return float(value)

	return str(value)


class OscServer:

	"""Listen for control messages over UDP and report engine events back."""

	def __init__ (
		self,
		engine: "Engine",
		receive_port: int = 9000,
		send_port: int = 9001,
		send_host: str = "127.0.0.1"
	) -> None:

		"""
		Parameters:
			engine: The engine to control and observe.
			receive_port: UDP port to listen on (0 picks a free port).
			send_port: Port that state updates are sent to.
			send_host: Host that state updates are sent to.
		"""

		self.engine = engine
		self.listen_port = receive_port
		self.reply_address = (send_host, send_port)

		self._transport: typing.Optional[asyncio.DatagramTransport] = None
		self._reply: typing.Optional[pythonosc.udp_client.SimpleUDPClient] = None

		self.dispatcher = pythonosc.dispatcher.Dispatcher()
		self.dispatcher.map("/config/*", self._handle_config)
		self.dispatcher.map("/variation", self._handle_variation)

		engine.events.on("chord", self._on_chord)
		engine.events.on("variation", self._on_variation)
		engine.events.on("evolve", self._on_evolve)


	@property
	def port (self) -> typing.Optional[int]:

		"""The bound UDP port while listening."""

		if self._transport is None:
			return None

		return self._transport.get_extra_info("sockname")[1]


	async def start (self) -> None:

		"""Bind the listening socket on the running event loop."""

		if self._transport is not None:
			return

		self._reply = pythonosc.udp_client.SimpleUDPClient(*self.reply_address)

		server = pythonosc.osc_server.AsyncIOOSCUDPServer(
			("0.0.0.0", self.listen_port),
			self.dispatcher,
			asyncio.get_running_loop()  # type: ignore[arg-type]
		)

		self._transport, _ = await server.create_serve_endpoint()

		host, port = self.reply_address
		logger.info(f"OSC control on UDP {self.port}, replies to {host}:{port}")


	async def stop (self) -> None:

		if self._transport is None:
			return

		self._transport.close()
		self._transport = None
		self._reply = None

		logger.info("OSC control closed")


	def send (self, address: str, *args: typing.Any) -> None:

		"""Send a message to the reply address. Failures are logged, never raised."""

		if self._reply is None:
			return

		try:
			self._reply.send_message(address, list(args))
		except Exception as e:
			logger.warning(f"OSC reply to {address} failed: {e}")


	def map (self, address: str, handler: typing.Callable[..., None]) -> None:

		"""Route another OSC address to ``handler(address, *args)``."""

		self.dispatcher.map(address, handler)


	def _handle_config (self, address: str, *args: typing.Any) -> None:

		# /config/<field> <value>
		field = address[len("/config/"):]

		if not field or not args:
			logger.warning(f"Ignoring OSC {address} without a field or value")
			return

		try:
			self.engine.update_config({field: coerce_value(field, args[0])})
		except (reverie.errors.ConfigurationError, ValueError, TypeError) as e:
			logger.warning(f"Rejected OSC {address} {args[0]!r}: {e}")


	def _handle_variation (self, address: str, *args: typing.Any) -> None:

		kind = str(args[0]) if args else None

		try:
			self.engine.trigger_variation(kind)
		except ValueError as e:
			logger.warning(f"Rejected OSC {address}: {e}")


	def _on_chord (self, names: typing.List[str]) -> None:

		self.send("/chord", " ".join(names))


	def _on_variation (self, kind: str) -> None:

		self.send("/variation", kind)


	def _on_evolve (self, parameter: str, value: typing.Any) -> None:

		if parameter == "tempo":
			self.send("/tempo", float(value))
