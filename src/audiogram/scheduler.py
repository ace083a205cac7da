"""
Drives Session ticks.

Live mode ties ticks to a refresh notification on an asyncio task; offline mode
walks frame indices at a fixed rate. Both call `Session.tick`, so the derived
values only differ in how `now` is produced.
"""

import asyncio
import logging
import math
import time

from audiogram.constants import DEFAULT_FPS, REFRESH_RATE

logger = logging.getLogger(__name__)


class FrameClock:
    """A virtual clock that only moves when told to."""

    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now

    def set(self, now):
        self.now = now


class CancellationToken:
    def __init__(self):
        self._event = asyncio.Event()

    @property
    def cancelled(self):
        return self._event.is_set()

    def cancel(self):
        self._event.set()

    async def wait(self):
        await self._event.wait()


def interval_refresh(rate=REFRESH_RATE):
    """A refresh notification that fires `rate` times per second."""

    async def refresh():
        await asyncio.sleep(1 / rate)

    return refresh


class LiveScheduler:
    """
    Ticks a session once per refresh notification until cancelled.

    `on_frame` receives each Frame synchronously inside the tick; it must not
    block. Cancelling is safe at any time and more than once.
    """

    def __init__(self, session, on_frame, refresh=None, clock=time.monotonic):
        self.session = session
        self.on_frame = on_frame
        self.refresh = refresh or interval_refresh()
        self.clock = clock
        self.token = CancellationToken()
        self.ticks = 0
        self._task = None

    @property
    def running(self):
        return self._task is not None and not self._task.done()

    async def run(self):
        logger.debug("Live scheduler started")
        try:
            while not self.token.cancelled:
                frame = self.session.tick(self.clock())
                self.ticks += 1
                self.on_frame(frame)
                if self.token.cancelled:
                    break
                await self.refresh()
        finally:
            # Wake anyone waiting on the token, including after an error
            self.token.cancel()
            logger.debug(f"Live scheduler stopped after {self.ticks} ticks")

    def start(self):
        if not self.running:
            self.token = CancellationToken()
            self._task = asyncio.get_running_loop().create_task(self.run())
        return self._task

    async def stop(self):
        self.token.cancel()
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass


def frame_count(duration, fps=DEFAULT_FPS):
    return max(0, math.ceil(duration * fps - 1e-9))


def iter_offline_frames(session, clock, fps=DEFAULT_FPS, duration=None):
    """
    Yields (frame_index, Frame) with time = frame_index / fps.

    `clock` must be the FrameClock the session's source reads, so the source's
    transport lands exactly on each frame time.
    """
    clock.set(0.0)
    session.play(clock())
    total = frame_count(session.duration if duration is None else duration, fps)
    logger.info(f"[+] Rendering {total} frames at {fps}fps")
    for index in range(total):
        clock.set(index / fps)
        yield index, session.tick(clock())
