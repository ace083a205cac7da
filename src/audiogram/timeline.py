"""
Time-driven derivations: which caption is showing and how far playback has got.
Both are pure functions of the current time.
"""

import bisect


def select_caption(t, captions):
    """
    Returns the caption with start <= t < end, or None.

    Captions must be sorted and non-overlapping. The upper bound is exclusive, so
    a timestamp shared by two adjacent captions belongs to the later one.
    """
    starts = [caption.start for caption in captions]
    index = bisect.bisect_right(starts, t) - 1
    if index < 0:
        return None
    caption = captions[index]
    return caption if t < caption.end else None


def progress_percent(t, duration):
    if duration <= 0:
        return 0.0
    return min(100.0, max(0.0, t / duration * 100))
