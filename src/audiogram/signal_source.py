import logging
import time
from typing import Protocol

import librosa
import numpy as np

from audiogram.constants import MAX_DECIBELS, MIN_DECIBELS
from audiogram.errors import PlaybackError, SourceUnavailableError

logger = logging.getLogger(__name__)

EVENTS = ("metadata", "ended")


class AnalysisTap(Protocol):
    def read(self, t): ...

    def close(self): ...


class SignalSource(Protocol):
    """
    What the engine expects from an audio stream. The engine only samples it;
    decoding and transport belong to the source.
    """

    current_time: float
    duration: float

    def play(self): ...

    def pause(self): ...

    def poll(self): ...

    def on(self, event, callback): ...

    def off(self, event, callback): ...

    def open_analysis(self, fft_size) -> AnalysisTap: ...


def spectrum_to_bytes(magnitude, fft_size):
    """
    Scale STFT magnitudes into 0-255 bytes over the analyser decibel range.
    """
    decibels = librosa.amplitude_to_db(magnitude / fft_size, ref=1.0, amin=1e-10, top_db=None)
    scaled = 255 * (decibels - MIN_DECIBELS) / (MAX_DECIBELS - MIN_DECIBELS)
    return np.clip(scaled, 0, 255)


class SpectrumTap:
    """
    Reads precomputed byte spectra out of a decoded signal.
    Closing it drops the spectrogram; reading a closed tap is an error.
    """

    def __init__(self, y, sr, fft_size):
        self.sr = sr
        self.fft_size = fft_size
        self.bin_count = fft_size // 2
        if len(y) < fft_size:
            y = np.pad(y, (0, fft_size - len(y)))

        stft = librosa.stft(y, n_fft=fft_size, hop_length=fft_size, window="blackman")
        # Drop the Nyquist bin so a reading has exactly fft_size / 2 bins
        self._spectrum = spectrum_to_bytes(np.abs(stft[: self.bin_count]), fft_size)
        self.closed = False

    def read(self, t):
        if self.closed:
            raise SourceUnavailableError("Analysis tap has been closed")

        frame_index = int(librosa.time_to_frames(max(0.0, t), sr=self.sr, hop_length=self.fft_size))
        frame_index = min(frame_index, self._spectrum.shape[1] - 1)
        return self._spectrum[:, frame_index]

    def close(self):
        self.closed = True
        self._spectrum = None


class FileSignalSource:
    """
    A file-backed SignalSource with a virtual transport.

    Audio is decoded with librosa on `load()`; time advances with the injected
    clock while playing, so the same file can drive a live preview (wall clock)
    or an offline export (frame clock).
    """

    def __init__(self, filepath, clock=time.monotonic):
        self.filepath = filepath
        self.clock = clock
        self.y = None
        self.sr = None
        self.duration = float("nan")
        self.playing = False
        self._position = 0.0
        self._started_at = 0.0
        self._listeners = {event: [] for event in EVENTS}

    @property
    def loaded(self):
        return self.y is not None

    def load(self):
        if self.loaded:
            return
        logger.info(f"[+] Loading audio: {self.filepath}...")
        try:
            self.y, self.sr = librosa.load(self.filepath, sr=None, mono=True)
            self.duration = librosa.get_duration(y=self.y, sr=self.sr)
        except Exception as e:
            raise SourceUnavailableError(f"Error loading audio file: {e}") from e
        self._emit("metadata", self.duration)

    def on(self, event, callback):
        self._listeners[event].append(callback)
        # Late subscribers still learn the duration
        if event == "metadata" and self.loaded:
            callback(self.duration)

    def off(self, event, callback):
        if callback in self._listeners[event]:
            self._listeners[event].remove(callback)

    def _emit(self, event, *args):
        for callback in list(self._listeners[event]):
            callback(*args)

    @property
    def current_time(self):
        if not self.playing:
            return self._position
        return min(self.duration, self.clock() - self._started_at)

    def play(self):
        try:
            self.load()
        except SourceUnavailableError as e:
            raise PlaybackError(str(e)) from e
        if self.playing:
            return
        if self._position >= self.duration:
            self._position = 0.0
        self._started_at = self.clock() - self._position
        self.playing = True

    def pause(self):
        if not self.playing:
            return
        self._position = self.current_time
        self.playing = False

    def seek(self, t):
        t = min(max(0.0, t), self.duration) if self.loaded else max(0.0, t)
        self._position = t
        if self.playing:
            self._started_at = self.clock() - t

    def poll(self):
        """Fires "ended" once the transport reaches the end of the audio."""
        if self.playing and self.clock() - self._started_at >= self.duration:
            self._position = self.duration
            self.playing = False
            self._emit("ended")

    def open_analysis(self, fft_size):
        self.load()
        return SpectrumTap(self.y, self.sr, fft_size)
