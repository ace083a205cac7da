from __future__ import annotations

import asyncio

import numpy as np
import pytest

from audiogram.captions import DEFAULT_CAPTIONS
from audiogram.scheduler import (
    CancellationToken,
    FrameClock,
    LiveScheduler,
    frame_count,
    iter_offline_frames,
)
from audiogram.state import Phase, Session


def test_frame_clock() -> None:
    clock = FrameClock()
    assert clock() == 0.0
    clock.set(1.5)
    assert clock() == 1.5


def test_frame_count() -> None:
    assert frame_count(24.0, 30) == 720
    assert frame_count(1.01, 30) == 31
    assert frame_count(0.0, 30) == 0


def test_offline_frames_use_frame_time(make_source) -> None:
    clock = FrameClock()
    source = make_source(duration=2.0, clock=clock)
    session = Session(source, DEFAULT_CAPTIONS)
    source.emit("metadata", 2.0)

    frames = list(iter_offline_frames(session, clock, fps=30))
    assert len(frames) == 60
    for index, frame in frames:
        assert frame.time == pytest.approx(index / 30)
        assert frame.playback.phase is Phase.PLAYING
    assert frames[-1][1].progress == pytest.approx(59 / 60 * 100)


def test_offline_duration_override(make_source) -> None:
    clock = FrameClock()
    source = make_source(duration=10.0, clock=clock)
    session = Session(source, DEFAULT_CAPTIONS)
    frames = list(iter_offline_frames(session, clock, fps=10, duration=1.0))
    assert [index for index, _ in frames] == list(range(10))


def test_live_and_offline_agree_on_fallback_data(make_source) -> None:
    offline_clock, live_clock = FrameClock(), FrameClock()
    offline = Session(make_source(fail_open=True, clock=offline_clock), DEFAULT_CAPTIONS)
    live = Session(make_source(fail_open=True, clock=live_clock), DEFAULT_CAPTIONS)

    offline_frames = dict(iter_offline_frames(offline, offline_clock, fps=30, duration=1.0))

    live.play(0.0)
    for index in (0, 7, 15, 29):
        live_clock.set(index / 30)
        frame = live.tick(live_clock())
        np.testing.assert_array_equal(frame.snapshot, offline_frames[index].snapshot)
        assert frame.bars == offline_frames[index].bars
        assert frame.caption == offline_frames[index].caption
        assert frame.bass_level == offline_frames[index].bass_level


@pytest.mark.asyncio
async def test_live_scheduler_ticks_until_cancelled(make_source) -> None:
    clock = FrameClock()
    session = Session(make_source(clock=clock), DEFAULT_CAPTIONS)
    frames = []

    async def refresh() -> None:
        clock.set(clock() + 1 / 60)
        await asyncio.sleep(0)

    def on_frame(frame) -> None:
        frames.append(frame)
        if len(frames) == 5:
            scheduler.token.cancel()

    scheduler = LiveScheduler(session, on_frame, refresh=refresh, clock=clock)
    session.play(clock())
    await scheduler.start()

    assert len(frames) == 5
    assert scheduler.ticks == 5
    assert [f.time for f in frames] == pytest.approx([i / 60 for i in range(5)])
    assert not scheduler.running


@pytest.mark.asyncio
async def test_live_scheduler_stop_is_idempotent(make_source) -> None:
    session = Session(make_source(), DEFAULT_CAPTIONS)
    frames = []

    async def refresh() -> None:
        await asyncio.sleep(0.001)

    scheduler = LiveScheduler(session, frames.append, refresh=refresh)
    scheduler.start()
    await asyncio.sleep(0.01)
    await scheduler.stop()
    await scheduler.stop()
    assert not scheduler.running
    assert frames


@pytest.mark.asyncio
async def test_cancellation_token() -> None:
    token = CancellationToken()
    assert not token.cancelled
    token.cancel()
    token.cancel()
    await asyncio.wait_for(token.wait(), timeout=1)
    assert token.cancelled


@pytest.mark.asyncio
async def test_failed_loop_wakes_token_waiters(make_source) -> None:
    session = Session(make_source(), DEFAULT_CAPTIONS)

    def on_frame(frame) -> None:
        raise RuntimeError("window closed")

    scheduler = LiveScheduler(session, on_frame)
    task = scheduler.start()
    await asyncio.wait_for(scheduler.token.wait(), timeout=1)
    with pytest.raises(RuntimeError, match="window closed"):
        await task
