import asyncio
import logging
import typing


logger = logging.getLogger(__name__)


CallbackType = typing.Callable[..., typing.Any]


class EventEmitter:

	"""
	Named-event fan-out for the rendering feed.

	Plain callbacks run inline, in registration order. Coroutine callbacks are
	scheduled as tasks on the running loop so a slow listener can never delay a
	tick. A listener that raises is logged and the remaining listeners still run.
	"""

	def __init__ (self) -> None:

		self._listeners: typing.Dict[str, typing.List[CallbackType]] = {}
		self._tasks: typing.Set[asyncio.Task] = set()

	def on (self, event_name: str, callback: CallbackType) -> None:

		"""
		Register a callback for an event name.
		"""

		self._listeners.setdefault(event_name, []).append(callback)

	def off (self, event_name: str, callback: CallbackType) -> None:

		"""
		Unregister a previously registered callback.

		Raises ``ValueError`` if the callback is not registered for the event.
		"""

		if callback not in self._listeners.get(event_name, []):
			raise ValueError(f"Callback not registered for event {event_name!r}")

		self._listeners[event_name].remove(callback)

	def listener_count (self, event_name: str) -> int:
		return len(self._listeners.get(event_name, []))

	def emit (self, event_name: str, *args: typing.Any, **kwargs: typing.Any) -> None:

		for callback in list(self._listeners.get(event_name, [])):

			if asyncio.iscoroutinefunction(callback):
				self._schedule(event_name, callback(*args, **kwargs))
				continue

			try:
				callback(*args, **kwargs)
			except Exception:
				logger.exception(f"Listener for {event_name!r} failed")

	def _schedule (self, event_name: str, coro: typing.Coroutine) -> None:

		try:
			loop = asyncio.get_running_loop()
		except RuntimeError:
			coro.close()
			logger.warning(f"Async listener for {event_name!r} skipped: no running event loop")
			return

		task = loop.create_task(coro)
		self._tasks.add(task)
		task.add_done_callback(self._tasks.discard)
