import asyncio
import collections
import json
import logging
import time
import typing

import websockets
import websockets.asyncio.server
import websockets.exceptions

import padseq.groups
import padseq.mixer
import padseq.sequencer


logger = logging.getLogger(__name__)


class WebFeed:

	"""
	WebSocket rendering feed.

	Broadcasts a JSON snapshot of the transport, the active pattern grid, the
	mixer and the most recent triggers to every connected client, about ten
	times a second, without blocking the clock. Clients are read-only; any
	message they send is ignored.
	"""

	def __init__ (
		self,
		sequencer: padseq.sequencer.Sequencer,
		mixer: padseq.mixer.Mixer,
		host: str = "localhost",
		port: int = 8765,
		interval: float = 0.1,
		history: int = 32
	) -> None:

		self.sequencer = sequencer
		self.mixer = mixer
		self.host = host
		self.port = port
		self.interval = interval
		self._ws_server: typing.Optional[websockets.asyncio.server.Server] = None
		self._broadcast_task: typing.Optional[asyncio.Task] = None
		self._clients: typing.Set[websockets.asyncio.server.ServerConnection] = set()
		self._recent: typing.Deque[typing.Dict[str, typing.Any]] = collections.deque(maxlen=history)

	@property
	def client_count (self) -> int:
		return len(self._clients)

	def on_trigger (self, info: padseq.sequencer.TriggerInfo) -> None:

		"""Remember a trigger for the next broadcast. Subscribe to the ``"trigger"`` event."""

		self._recent.append({
			"group": info.group.name,
			"pad": info.pad,
			"gain": round(info.gain, 4),
			"result": info.result.value,
			"live": info.live,
			"time": time.time(),
		})

	async def start (self) -> None:

		try:
			self._ws_server = await websockets.asyncio.server.serve(self._handle_client, self.host, self.port)
		except OSError as e:
			logger.error(f"WebSocket server error: {e}")
			return

		self._broadcast_task = asyncio.get_running_loop().create_task(self._broadcast_loop())
		logger.info(f"Web feed on ws://{self.host}:{self.port}")

	async def stop (self) -> None:

		if self._broadcast_task:
			self._broadcast_task.cancel()
			try:
				await self._broadcast_task
			except asyncio.CancelledError:
				pass
			self._broadcast_task = None

		if self._ws_server:
			self._ws_server.close()
			await self._ws_server.wait_closed()
			self._ws_server = None

	async def _handle_client (self, websocket: websockets.asyncio.server.ServerConnection) -> None:

		self._clients.add(websocket)

		try:
			await websocket.send(json.dumps(self.get_state()))
			async for _message in websocket:
				pass
		except websockets.exceptions.ConnectionClosed:
			pass
		finally:
			self._clients.discard(websocket)

	async def _broadcast_loop (self) -> None:

		while True:
			await asyncio.sleep(self.interval)

			if not self._clients:
				continue

			try:
				websockets.broadcast(self._clients, json.dumps(self.get_state()))
			except Exception:
				logger.exception("Error broadcasting feed state")

	def get_state (self) -> typing.Dict[str, typing.Any]:

		"""The snapshot sent to clients."""

		seq = self.sequencer
		pattern = seq.store.peek(seq.group, seq.pattern_index)
		steps = seq.store.steps_per_pattern

		grid = pattern.to_data() if pattern is not None else [[] for _ in range(steps)]

		return {
			"transport": seq.state().as_dict(),
			"last_step": seq.group_transport(seq.group).last_step,
			"steps_per_pattern": steps,
			"pattern": grid,
			"mixer": self.mixer.snapshot().as_dict(),
			"triggers": list(self._recent),
		}
