from __future__ import annotations

import numpy as np
import pytest

from audiogram.errors import PlaybackError, SourceUnavailableError


class FakeTap:
    def __init__(self, reading) -> None:
        self.reading = reading
        self.reads: list[float] = []
        self.close_calls = 0
        self.fail_reads = False

    def read(self, t):
        if self.fail_reads:
            raise SourceUnavailableError("stream went away")
        self.reads.append(t)
        return self.reading

    def close(self) -> None:
        self.close_calls += 1


class FakeSource:
    """In-memory SignalSource whose time is set by the test or read from a clock."""

    def __init__(
        self,
        duration: float = 10.0,
        reading=None,
        fail_open: bool = False,
        fail_play: bool = False,
        clock=None,
    ) -> None:
        self.duration = duration
        self.reading = np.full(64, 200.0) if reading is None else reading
        self.fail_open = fail_open
        self.fail_play = fail_play
        self.clock = clock
        self.playing = False
        self.taps: list[FakeTap] = []
        self.listeners: dict[str, list] = {"metadata": [], "ended": []}
        self._time = 0.0

    @property
    def current_time(self) -> float:
        if self.clock is not None and self.playing:
            return self.clock()
        return self._time

    @current_time.setter
    def current_time(self, value: float) -> None:
        self._time = value

    def play(self) -> None:
        if self.fail_play:
            raise PlaybackError("autoplay blocked")
        self.playing = True

    def pause(self) -> None:
        self.playing = False

    def seek(self, t: float) -> None:
        self._time = t

    def poll(self) -> None:
        if self.playing and self.current_time >= self.duration:
            self.playing = False
            self.emit("ended")

    def on(self, event, callback) -> None:
        self.listeners[event].append(callback)

    def off(self, event, callback) -> None:
        if callback in self.listeners[event]:
            self.listeners[event].remove(callback)

    def emit(self, event, *args) -> None:
        for callback in list(self.listeners[event]):
            callback(*args)

    def open_analysis(self, fft_size):
        if self.fail_open:
            raise SourceUnavailableError("analysis denied")
        tap = FakeTap(self.reading)
        self.taps.append(tap)
        return tap


@pytest.fixture
def source() -> FakeSource:
    return FakeSource()


@pytest.fixture
def make_source():
    return FakeSource
