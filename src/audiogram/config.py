from dataclasses import dataclass

from audiogram.constants import (
    BASS_BINS,
    DEFAULT_FPS,
    DEFAULT_RESOLUTION,
    FFT_SIZE,
    MAX_PARTICLES,
    PARTICLE_THRESHOLD,
    RETAINED_FRACTION,
    SMOOTHING_FACTOR,
    WAVEFORM_HEIGHT,
)


def card_geometry(width, height):
    """The 16:9 card inset in a width x height frame, as (x, y, w, h)."""
    pad = max(4, int(min(width, height) * 0.035))
    card_w = min(width - 2 * pad, int((height - 2 * pad) * 16 / 9))
    card_h = int(card_w * 9 / 16)
    return (width - card_w) // 2, (height - card_h) // 2, card_w, card_h


def waveform_geometry(width, height):
    """Size of the waveform strip that fits beside the play button."""
    waveform_height = max(WAVEFORM_HEIGHT, height // 18)
    _, _, card_w, _ = card_geometry(width, height)
    column_w = card_w - int(card_w * 0.45)
    # Play button diameter plus its margins on both sides and a right margin
    waveform_width = column_w - (waveform_height + 48) - 24
    return max(1, waveform_width), waveform_height


@dataclass(frozen=True)
class EngineConfig:
    """
    Tunables shared by the analyser, the particle spawner and the renderer.
    Defaults mirror the module constants.
    """

    fft_size: int = FFT_SIZE
    smoothing: float = SMOOTHING_FACTOR
    bass_bins: int = BASS_BINS
    retained_fraction: float = RETAINED_FRACTION
    particle_threshold: float = PARTICLE_THRESHOLD
    max_particles: int = MAX_PARTICLES
    waveform_width: int = 400
    waveform_height: int = WAVEFORM_HEIGHT
    fps: int = DEFAULT_FPS
    width: int = DEFAULT_RESOLUTION[0]
    height: int = DEFAULT_RESOLUTION[1]
    seed: int = 0

    @property
    def bin_count(self):
        return self.fft_size // 2

    @classmethod
    def from_args(cls, args):
        """Build a config from parsed command-line options."""
        width = getattr(args, "width", DEFAULT_RESOLUTION[0])
        height = getattr(args, "height", DEFAULT_RESOLUTION[1])
        waveform_width, waveform_height = waveform_geometry(width, height)
        return cls(
            fps=getattr(args, "fps", DEFAULT_FPS),
            width=width,
            height=height,
            seed=getattr(args, "seed", 0),
            waveform_width=waveform_width,
            waveform_height=waveform_height,
        )
