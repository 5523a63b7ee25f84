"""Tempo-driven step clock.

Turns a BPM value into a steady stream of "advance one step" ticks on the
asyncio event loop. The clock owns no musical state. It calls ``on_tick``
once per step and reads the tempo through ``get_bpm`` before each interval,
so a tempo change applies from the next interval and never stretches or
shortens a tick already in flight.

Ticks never stack. When the loop falls a whole interval or more behind (a slow
tick, a busy event loop, a suspended laptop), the missed ticks are dropped and
the schedule is realigned to the step grid instead of firing a burst of
backlogged triggers.
"""

import asyncio
import logging
import math
import time
import typing

import padseq.constants


logger = logging.getLogger(__name__)


TickCallback = typing.Callable[[], typing.Any]


def clamp_bpm (bpm: float) -> float:

	"""Clamp a tempo into [MIN_BPM, MAX_BPM]."""

	return float(min(padseq.constants.MAX_BPM, max(padseq.constants.MIN_BPM, bpm)))


def step_interval (bpm: float, steps_per_beat: int = padseq.constants.DEFAULT_STEPS_PER_BEAT) -> float:

	"""
	Seconds per step: ``60 / bpm / steps_per_beat``. 120 BPM at 4 steps per beat gives 0.125.
	"""

	if steps_per_beat <= 0:
		raise ValueError("steps_per_beat must be positive")

	return 60.0 / clamp_bpm(bpm) / steps_per_beat


class Clock:

	"""
	Emits step ticks while running.

	Example::

		clock = Clock(on_tick=sequencer.on_tick, get_bpm=lambda: sequencer.tempo)
		clock.start()
		...
		await clock.stop()
	"""

	def __init__ (
		self,
		on_tick: TickCallback,
		get_bpm: typing.Callable[[], float],
		steps_per_beat: int = padseq.constants.DEFAULT_STEPS_PER_BEAT,
		spin_wait: bool = True
	) -> None:

		"""
		Parameters:
			on_tick: Called once per step. May be a plain function or return an awaitable.
			get_bpm: Returns the current tempo; read once per interval.
			steps_per_beat: Step subdivision of one beat (4 = sixteenth notes).
			spin_wait: When True, sleep to within ``_spin_threshold`` of the target
				and busy-wait the rest, trading a little CPU for tighter timing.
		"""

		if steps_per_beat <= 0:
			raise ValueError("steps_per_beat must be positive")

		self.on_tick = on_tick
		self.get_bpm = get_bpm
		self.steps_per_beat = steps_per_beat
		self.running: bool = False
		self.task: typing.Optional[asyncio.Task] = None
		self.tick_count: int = 0
		self.dropped_ticks: int = 0
		self.failed_ticks: int = 0

		self._spin_wait = spin_wait
		self._spin_threshold: float = 0.001
		self._next_tick_time: float = 0.0

	@property
	def interval (self) -> float:

		"""Length of the next tick interval in seconds, from the current tempo."""

		return step_interval(self.get_bpm(), self.steps_per_beat)

	def start (self) -> None:

		"""
		Start emitting ticks; the first tick fires immediately. No-op when already running.
		"""

		if self.running:
			return

		self.running = True
		self.task = asyncio.get_running_loop().create_task(self._run_loop())
		logger.debug("Clock started")

	async def stop (self) -> None:

		"""
		Stop emitting ticks. Once this returns, no further tick will fire.
		"""

		self.running = False

		task = self.task
		self.task = None

		if task is None or task is asyncio.current_task():
			return

		task.cancel()

		try:
			await task
		except asyncio.CancelledError:
			pass

		logger.debug("Clock stopped")

	def halt (self) -> None:

		"""
		Synchronous stop for callers already on the loop (e.g. from inside a tick).
		"""

		self.running = False

		if self.task is not None and self.task is not asyncio.current_task():
			self.task.cancel()

		self.task = None

	async def _fire (self) -> None:

		# A failing tick handler is logged and the clock keeps its schedule.
		try:
			result = self.on_tick()

			if asyncio.iscoroutine(result):
				await result

		except asyncio.CancelledError:
			raise

		except Exception:
			self.failed_ticks += 1
			logger.exception("Tick handler failed")

		self.tick_count += 1

	def _realign (self, now: float, interval: float) -> None:

		"""
		Drop every tick that is already overdue and move the schedule to the next grid point.
		"""

		if now < self._next_tick_time:
			return

		missed = math.floor((now - self._next_tick_time) / interval) + 1
		self.dropped_ticks += missed
		self._next_tick_time += missed * interval
		logger.debug(f"Clock behind schedule - dropped {missed} tick(s)")

	async def _run_loop (self) -> None:

		self._next_tick_time = time.perf_counter()

		try:
			while self.running:

				await self._fire()

				if not self.running:
					break

				# Tempo is sampled here, after the tick, so it only affects the next interval.
				interval = self.interval
				self._next_tick_time += interval
				self._realign(time.perf_counter(), interval)

				sleep_time = self._next_tick_time - time.perf_counter()

				if sleep_time > 0:
					if self._spin_wait and sleep_time > self._spin_threshold:
						await asyncio.sleep(sleep_time - self._spin_threshold)
						while time.perf_counter() < self._next_tick_time:
							pass
					else:
						await asyncio.sleep(sleep_time)
				else:
					await asyncio.sleep(0)

		except asyncio.CancelledError:
			raise

		except Exception:
			logger.exception("Clock loop failed")
			self.running = False
