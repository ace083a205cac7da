import logging

import numpy as np

from audiogram.constants import BASS_BINS, FFT_SIZE, SMOOTHING_FACTOR
from audiogram.fallback import FallbackSignalGenerator

logger = logging.getLogger(__name__)


def freeze(values):
    """Clamp to bytes and return a read-only snapshot."""
    snapshot = np.clip(np.rint(values), 0, 255).astype(np.uint8)
    snapshot.flags.writeable = False
    return snapshot


def bass_level(snapshot, bins=BASS_BINS):
    """
    Mean of the lowest `bins` frequency bins, normalised to 0-1.
    """
    low = np.asarray(snapshot[:bins], dtype=np.float64)
    if low.size == 0:
        return 0.0
    return float(np.clip(low.mean() / 255, 0.0, 1.0))


class FrequencyAnalyser:
    """
    Turns a connected SignalSource into one frequency snapshot per tick.

    Owns the source's analysis tap: exactly one binding is live at a time and
    `disconnect()` releases it once, however often it is called. When no tap can
    be opened the analyser quietly switches to synthetic data.
    """

    def __init__(self, fft_size=FFT_SIZE, smoothing=SMOOTHING_FACTOR, fallback=None):
        self.fft_size = fft_size
        self.bin_count = fft_size // 2
        self.smoothing = smoothing
        self.fallback = fallback or FallbackSignalGenerator(self.bin_count)

        self.source = None
        self._tap = None
        self._analyzing = False
        self._prev_spec = np.zeros(self.bin_count)  # For smoothing
        self._last = freeze(np.zeros(self.bin_count))

    @property
    def is_analyzing(self):
        return self._analyzing

    @property
    def is_fallback(self):
        return self._analyzing and self._tap is None

    @property
    def is_bound(self):
        return self._tap is not None

    def connect(self, source):
        if self._tap is not None and source is self.source:
            self._analyzing = True
            return

        # Rebinding requires a full teardown of the previous binding
        self._release()
        self.source = source
        self._analyzing = True

        if source is None:
            logger.warning("[!] No audio source connected, using simulated data")
            return

        try:
            self._tap = source.open_analysis(self.fft_size)
        except Exception as e:
            logger.warning(f"[!] Failed to connect audio analyser, using simulated data: {e}")
            self._tap = None
            return
        logger.debug(f"Analyser bound with {self.bin_count} bins")

    def disconnect(self):
        self._analyzing = False
        self._release()

    def _release(self):
        tap, self._tap = self._tap, None
        self._prev_spec = np.zeros(self.bin_count)
        if tap is not None:
            tap.close()
            logger.debug("Analysis tap released")

    def tick(self, t):
        """
        Returns the snapshot for playback time `t`.
        While not analysing, the last snapshot is returned unchanged.
        """
        if not self._analyzing:
            return self._last

        if self._tap is not None:
            try:
                raw_spec = np.asarray(self._tap.read(t), dtype=np.float64)
            except Exception as e:
                logger.warning(f"[!] Analysis read failed, switching to simulated data: {e}")
                self._release()
            else:
                # Exponential moving average against the previous reading
                smooth_spec = self.smoothing * self._prev_spec + (1 - self.smoothing) * raw_spec
                self._prev_spec = smooth_spec
                self._last = freeze(smooth_spec)
                return self._last

        self._last = self.fallback.snapshot(t)
        return self._last
