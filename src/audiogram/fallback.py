import numpy as np

from audiogram.constants import FFT_SIZE


class FallbackSignalGenerator:
    """
    Produces organic-looking frequency snapshots when no real audio is available.

    The output is a pure function of the playback time `t` and the seed, so a
    live preview and an offline export agree whenever they sample the same `t`.
    """

    def __init__(self, bin_count=FFT_SIZE // 2, seed=0):
        self.bin_count = bin_count
        self.seed = seed
        self._index = np.arange(bin_count)
        # Higher values for lower frequencies (bass emphasis)
        self._frequency_factor = 1 - (self._index / bin_count) * 0.5

    def snapshot(self, t):
        """Returns a read-only uint8 snapshot for playback time `t` (seconds)."""
        i = self._index
        base = np.sin(t * 2 + i * 0.3) * 0.3 + 0.5
        variation = np.sin(t * 3.7 + i * 0.5) * 0.2

        # Noise is keyed on the millisecond so equal timestamps draw equal noise
        rng = np.random.default_rng([self.seed, max(0, int(round(t * 1000)))])
        noise = (rng.random(self.bin_count) - 0.5) * 0.1

        values = (base + variation + noise) * self._frequency_factor * 200
        data = np.floor(np.clip(values, 0, 255)).astype(np.uint8)
        data.flags.writeable = False
        return data
