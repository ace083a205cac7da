from __future__ import annotations

import pytest

from audiogram.captions import Caption
from audiogram.timeline import progress_percent, select_caption

CAPTIONS = (
    Caption(0.0, 4.6, "A"),
    Caption(4.6, 7.5, "B"),
    Caption(7.5, 14.2, "C"),
)


@pytest.mark.parametrize(
    ("t", "expected"),
    [
        (0.0, "A"),
        (2.0, "A"),
        (4.6, "B"),
        (7.4999, "B"),
        (7.5, "C"),
        (10.0, "C"),
    ],
)
def test_select_caption(t: float, expected: str) -> None:
    caption = select_caption(t, CAPTIONS)
    assert caption is not None
    assert caption.text == expected


def test_end_bound_is_exclusive() -> None:
    assert select_caption(14.2, CAPTIONS) is None
    assert select_caption(4.6, CAPTIONS).text != "A"


def test_no_caption_before_first_or_in_gaps() -> None:
    captions = (Caption(1.0, 2.0, "x"), Caption(3.0, 4.0, "y"))
    assert select_caption(0.5, captions) is None
    assert select_caption(2.5, captions) is None
    assert select_caption(99.0, captions) is None


def test_empty_caption_list() -> None:
    assert select_caption(1.0, ()) is None


def test_at_most_one_caption_matches() -> None:
    for step in range(0, 160):
        t = step / 10
        matches = [c for c in CAPTIONS if c.start <= t < c.end]
        selected = select_caption(t, CAPTIONS)
        assert len(matches) <= 1
        assert selected == (matches[0] if matches else None)


def test_progress_bounds() -> None:
    assert progress_percent(0.0, 24.0) == 0.0
    assert progress_percent(24.0, 24.0) == 100.0
    assert progress_percent(12.0, 24.0) == pytest.approx(50.0)
    assert progress_percent(30.0, 24.0) == 100.0
    assert progress_percent(-1.0, 24.0) == 0.0


def test_progress_with_unknown_duration() -> None:
    assert progress_percent(5.0, 0.0) == 0.0


def test_progress_is_monotonic() -> None:
    values = [progress_percent(step / 4, 20.0) for step in range(100)]
    assert values == sorted(values)
