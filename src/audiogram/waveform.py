from dataclasses import dataclass

import numpy as np

from audiogram.constants import (
    BAR_HEIGHT_BOOST,
    BAR_POWER,
    BAR_WIDTH_RATIO,
    MIN_BAR_HEIGHT,
    RETAINED_FRACTION,
)


@dataclass(frozen=True)
class Bar:
    index: int
    x: float
    y: float
    width: float
    height: float


def retained_count(bin_count, retained_fraction=RETAINED_FRACTION):
    return int(bin_count * retained_fraction)


def map_bars(snapshot, width, height, retained_fraction=RETAINED_FRACTION):
    """
    Converts a frequency snapshot into bar geometry for a width x height strip.

    Only the lower part of the spectrum is kept as the high end is mostly empty.
    Heights follow a power curve so quiet bins stay low and loud ones pop, and
    each bar is centred in its evenly divided slot.
    """
    count = retained_count(len(snapshot), retained_fraction)
    if count == 0:
        return ()

    values = np.asarray(snapshot[:count], dtype=np.float64)
    normalized = (values / 255) ** BAR_POWER
    heights = np.clip(normalized * height * BAR_HEIGHT_BOOST, MIN_BAR_HEIGHT, max(MIN_BAR_HEIGHT, height))

    slot = width / count
    bar_width = slot * BAR_WIDTH_RATIO
    offset = (slot - bar_width) / 2

    return tuple(
        Bar(
            index=i,
            x=i * slot + offset,
            y=(height - bar_height) / 2,
            width=bar_width,
            height=float(bar_height),
        )
        for i, bar_height in enumerate(heights)
    )


def map_liquid_outline(snapshot, width, height, playing=True):
    """
    The liquid waveform variant: a band mirrored around the centre line.

    Returns (top, bottom) as float arrays of (x, y) points, one per bin.
    While paused the band rests at a fixed thickness.
    """
    values = np.asarray(snapshot, dtype=np.float64)
    n = len(values)
    if n == 0:
        empty = np.zeros((0, 2))
        return empty, empty

    xs = np.linspace(0, width, n) if n > 1 else np.array([width / 2])
    if playing:
        amplitude = values / 255 * (height * 0.7)
    else:
        amplitude = np.full(n, height * 0.15)

    center_y = height / 2
    top = np.column_stack([xs, center_y - amplitude / 2])
    bottom = np.column_stack([xs, center_y + amplitude / 2])
    return top, bottom
