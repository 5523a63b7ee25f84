"""OSC remote control and state broadcasting.

The server listens on a UDP port (default 9000) for control messages and sends
state updates to a target host/port (default 127.0.0.1:9001). Every incoming
message becomes a :class:`padseq.commands.Command` handed to ``submit``, so
OSC input goes through the same queue as the keyboard.

Receive Handlers
────────────────
- ``/bpm <number>``: Set tempo
- ``/play``: Toggle play/stop
- ``/record``: Toggle recording
- ``/clear``: Clear the active pattern
- ``/rewind``: Move every group back to step 0
- ``/group <index|name>``: Select the active group
- ``/pattern <index>``: Select the active group's pattern (0-based)
- ``/pad/press <group> <pad>`` and ``/pad/release <group> <pad>``
- ``/mixer/master <gain>``: Set master gain
- ``/mixer/group <group> <gain>``: Set one group's gain
- ``/mute/master``: Toggle master mute
- ``/mute/<group>``: Toggle a group's mute

Send Events
───────────
- ``/step <int>``: The active group's step, on each tick
- ``/bpm <float>``: Current tempo, on each tick
- ``/transport <str> <int>``: ``playing``/``stopped`` and the record flag, on each tick
"""

import asyncio
import logging
import typing

import pythonosc.dispatcher
import pythonosc.osc_server
import pythonosc.udp_client

import padseq.commands
import padseq.errors
import padseq.groups
import padseq.sequencer


logger = logging.getLogger(__name__)


CommandType = padseq.commands.CommandType


class OscServer:

	"""Async OSC server/client for remote control of a session."""

	def __init__ (
		self,
		submit: typing.Callable[[padseq.commands.Command], None],
		receive_port: int = 9000,
		send_port: int = 9001,
		send_host: str = "127.0.0.1"
	) -> None:

		"""
		Parameters:
			submit: Receives each decoded command. Called on the event loop.
			receive_port: UDP port to listen on (0 picks a free port).
			send_port: UDP port state updates are sent to.
			send_host: Host state updates are sent to.
		"""

		self._submit = submit
		self._receive_port = receive_port
		self._send_port = send_port
		self._send_host = send_host

		self._server: typing.Optional[typing.Any] = None
		self._transport: typing.Optional[asyncio.BaseTransport] = None
		self._client: typing.Optional[pythonosc.udp_client.SimpleUDPClient] = None
		self._dispatcher = pythonosc.dispatcher.Dispatcher()

		self._dispatcher.map("/bpm", self._handle_bpm)
		self._dispatcher.map("/play", self._simple(CommandType.PLAY_STOP))
		self._dispatcher.map("/record", self._simple(CommandType.TOGGLE_RECORD))
		self._dispatcher.map("/clear", self._simple(CommandType.CLEAR_PATTERN))
		self._dispatcher.map("/rewind", self._simple(CommandType.REWIND))
		self._dispatcher.map("/group", self._handle_group)
		self._dispatcher.map("/pattern", self._handle_pattern)
		self._dispatcher.map("/pad/press", self._handle_pad)
		self._dispatcher.map("/pad/release", self._handle_pad)
		self._dispatcher.map("/mixer/master", self._handle_master_volume)
		self._dispatcher.map("/mixer/group", self._handle_group_volume)
		self._dispatcher.map("/mute/*", self._handle_mute)

	@property
	def port (self) -> typing.Optional[int]:

		"""The UDP port actually bound, once started."""

		if self._transport is None:
			return None

		return self._transport.get_extra_info("sockname")[1]

	async def start (self) -> None:

		"""Start the OSC server and client."""

		self._client = pythonosc.udp_client.SimpleUDPClient(self._send_host, self._send_port)

		self._server = pythonosc.osc_server.AsyncIOOSCUDPServer(
			("0.0.0.0", self._receive_port),
			self._dispatcher,
			asyncio.get_running_loop()  # type: ignore[arg-type]
		)

		transport, _ = await self._server.create_serve_endpoint()
		self._transport = transport

		logger.info(f"OSC listening on :{self.port}, sending to {self._send_host}:{self._send_port}")

	async def stop (self) -> None:

		"""Stop the OSC server."""

		if self._transport:
			self._transport.close()
			self._transport = None
			logger.info("OSC server stopped")

	def send (self, address: str, *args: typing.Any) -> None:

		"""Send an OSC message."""

		if self._client:
			try:
				self._client.send_message(address, args)
			except Exception as e:
				logger.warning(f"OSC send error: {e}")

	def send_status (self, info: padseq.sequencer.TickInfo, tempo: float) -> None:

		"""Broadcast step, tempo and transport after a tick."""

		self.send("/step", info.step_index)
		self.send("/bpm", float(tempo))
		self.send("/transport", info.mode.value, int(info.recording))

	def map (self, address: str, handler: typing.Callable) -> None:

		"""Register a custom OSC handler."""

		self._dispatcher.map(address, handler)

	# Handlers

	def _queue (self, command_type: padseq.commands.CommandType, **kwargs: typing.Any) -> None:
		self._submit(padseq.commands.Command(command_type, **kwargs))

	def _simple (self, command_type: padseq.commands.CommandType) -> typing.Callable[..., None]:

		def handler (address: str, *args: typing.Any) -> None:
			self._queue(command_type)

		return handler

	def _handle_bpm (self, address: str, *args: typing.Any) -> None:
		if not args:
			return
		try:
			self._queue(CommandType.SET_TEMPO, value=float(args[0]))
		except (ValueError, TypeError):
			logger.warning(f"Invalid OSC BPM argument: {args[0]}")

	def _handle_group (self, address: str, *args: typing.Any) -> None:
		if not args:
			return
		try:
			self._queue(CommandType.SELECT_GROUP, group=padseq.groups.Group.parse(args[0]))
		except padseq.errors.InputOutOfRange as e:
			logger.warning(f"Invalid OSC group: {e}")

	def _handle_pattern (self, address: str, *args: typing.Any) -> None:
		if not args:
			return
		try:
			self._queue(CommandType.SELECT_PATTERN, value=int(args[0]))
		except (ValueError, TypeError):
			logger.warning(f"Invalid OSC pattern argument: {args[0]}")

	def _handle_pad (self, address: str, *args: typing.Any) -> None:

		# address is /pad/press or /pad/release
		if len(args) < 2:
			logger.warning(f"{address} needs a group and a pad")
			return

		command_type = CommandType.PAD_PRESS if address.endswith("/press") else CommandType.PAD_RELEASE

		try:
			group = padseq.groups.Group.parse(args[0])
			pad = padseq.groups.validate_pad(args[1])
		except padseq.errors.InputOutOfRange as e:
			logger.warning(f"Invalid OSC pad: {e}")
			return

		self._queue(command_type, group=group, pad=pad)

	def _handle_master_volume (self, address: str, *args: typing.Any) -> None:
		if not args:
			return
		try:
			self._queue(CommandType.SET_MASTER_VOLUME, value=float(args[0]))
		except (ValueError, TypeError):
			logger.warning(f"Invalid OSC gain argument: {args[0]}")

	def _handle_group_volume (self, address: str, *args: typing.Any) -> None:
		if len(args) < 2:
			return
		try:
			self._queue(CommandType.SET_GROUP_VOLUME, group=padseq.groups.Group.parse(args[0]), value=float(args[1]))
		except (ValueError, TypeError) as e:
			logger.warning(f"Invalid OSC group volume: {e}")

	def _handle_mute (self, address: str, *args: typing.Any) -> None:

		# address is like /mute/drums or /mute/master
		parts = address.split("/")
		if len(parts) < 3:
			return

		name = parts[2]

		if name.lower() == "master":
			self._queue(CommandType.MASTER_MUTE_TOGGLE)
			return

		try:
			self._queue(CommandType.GROUP_MUTE_TOGGLE, group=padseq.groups.Group.parse(name))
		except padseq.errors.InputOutOfRange as e:
			logger.warning(f"Invalid OSC mute target: {e}")
