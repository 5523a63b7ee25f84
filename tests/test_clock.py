import asyncio
import logging
import time
import typing

import pytest

import padseq.clock


def test_step_interval () -> None:

	assert padseq.clock.step_interval(120, 4) == pytest.approx(0.125)
	assert padseq.clock.step_interval(60, 4) == pytest.approx(0.25)
	assert padseq.clock.step_interval(300, 4) == pytest.approx(0.05)


def test_step_interval_clamps_tempo () -> None:

	assert padseq.clock.step_interval(1000, 4) == padseq.clock.step_interval(300, 4)
	assert padseq.clock.step_interval(10, 4) == padseq.clock.step_interval(60, 4)


def test_clamp_bpm () -> None:

	assert padseq.clock.clamp_bpm(55) == 60
	assert padseq.clock.clamp_bpm(305) == 300
	assert padseq.clock.clamp_bpm(123) == 123


def test_rejects_bad_subdivision () -> None:

	with pytest.raises(ValueError):
		padseq.clock.step_interval(120, 0)

	with pytest.raises(ValueError):
		padseq.clock.Clock(on_tick=lambda: None, get_bpm=lambda: 120, steps_per_beat=0)


@pytest.mark.asyncio
async def test_first_tick_is_immediate_and_stop_is_final () -> None:

	ticks: typing.List[float] = []
	clock = padseq.clock.Clock(on_tick=lambda: ticks.append(time.perf_counter()), get_bpm=lambda: 60, spin_wait=False)

	clock.start()
	await asyncio.sleep(0.02)

	# 60 BPM at 4 steps per beat is 250 ms per step: only the immediate tick so far.
	assert len(ticks) == 1
	assert clock.running

	await clock.stop()
	count = clock.tick_count
	await asyncio.sleep(0.3)

	assert clock.tick_count == count
	assert not clock.running


@pytest.mark.asyncio
async def test_ticks_at_tempo () -> None:

	clock = padseq.clock.Clock(on_tick=lambda: None, get_bpm=lambda: 300, spin_wait=False)

	clock.start()
	await asyncio.sleep(0.5)
	await clock.stop()

	# 300 BPM -> 50 ms per step -> about 10 ticks plus the immediate one.
	assert 6 <= clock.tick_count <= 13


@pytest.mark.asyncio
async def test_start_twice_is_a_no_op () -> None:

	clock = padseq.clock.Clock(on_tick=lambda: None, get_bpm=lambda: 120, spin_wait=False)

	clock.start()
	task = clock.task
	clock.start()

	assert clock.task is task

	await clock.stop()


@pytest.mark.asyncio
async def test_tempo_change_applies_to_next_interval () -> None:

	bpm = [60.0]
	ticks: typing.List[float] = []

	def on_tick () -> None:
		ticks.append(time.perf_counter())
		# Tempo is read after the tick, so this governs the very next interval.
		bpm[0] = 300.0

	clock = padseq.clock.Clock(on_tick=on_tick, get_bpm=lambda: bpm[0], spin_wait=False)

	clock.start()
	await asyncio.sleep(0.2)
	await clock.stop()

	# At 60 BPM only one tick would fit in 200 ms; at 300 BPM several do.
	assert len(ticks) >= 3


@pytest.mark.asyncio
async def test_late_ticks_are_dropped_not_stacked () -> None:

	ticks: typing.List[float] = []

	def slow_tick () -> None:
		ticks.append(time.perf_counter())
		if len(ticks) == 1:
			# Block the loop for several intervals (50 ms each at 300 BPM).
			time.sleep(0.22)

	clock = padseq.clock.Clock(on_tick=slow_tick, get_bpm=lambda: 300, spin_wait=False)

	clock.start()
	await asyncio.sleep(0.3)
	await clock.stop()

	assert clock.dropped_ticks >= 3

	# No burst: every gap after the slow tick is at least most of one interval.
	gaps = [b - a for a, b in zip(ticks[1:], ticks[2:])]
	assert all(gap > 0.03 for gap in gaps)


@pytest.mark.asyncio
async def test_async_tick_callback_is_awaited () -> None:

	calls: typing.List[int] = []

	async def on_tick () -> None:
		calls.append(1)

	clock = padseq.clock.Clock(on_tick=on_tick, get_bpm=lambda: 120, spin_wait=False)

	clock.start()
	await asyncio.sleep(0.01)
	await clock.stop()

	assert calls == [1]
	assert clock.tick_count == 1


@pytest.mark.asyncio
async def test_halt_from_inside_a_tick () -> None:

	clock: typing.Optional[padseq.clock.Clock] = None

	def on_tick () -> None:
		assert clock is not None
		clock.halt()

	clock = padseq.clock.Clock(on_tick=on_tick, get_bpm=lambda: 300, spin_wait=False)

	clock.start()
	await asyncio.sleep(0.15)

	assert clock.tick_count == 1
	assert not clock.running


@pytest.mark.asyncio
async def test_spin_wait_timing () -> None:

	clock = padseq.clock.Clock(on_tick=lambda: None, get_bpm=lambda: 300, spin_wait=True)

	clock.start()
	await asyncio.sleep(0.26)
	await clock.stop()

	assert 3 <= clock.tick_count <= 8


@pytest.mark.asyncio
async def test_failing_tick_is_logged_and_ticking_continues (caplog: pytest.LogCaptureFixture) -> None:

	calls: typing.List[int] = []

	def on_tick () -> None:
		calls.append(len(calls))
		if len(calls) == 1:
			raise RuntimeError("bad step")

	clock = padseq.clock.Clock(on_tick=on_tick, get_bpm=lambda: 300, spin_wait=False)

	with caplog.at_level(logging.ERROR):
		clock.start()
		await asyncio.sleep(0.12)

	assert clock.running
	await clock.stop()

	assert len(calls) >= 2
	assert clock.failed_ticks == 1
	assert "Tick handler failed" in caplog.text
