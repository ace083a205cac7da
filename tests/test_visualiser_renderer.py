from __future__ import annotations

import cv2
import numpy as np
import pytest

from audiogram.config import EngineConfig, card_geometry, waveform_geometry
from audiogram.constants import ACCENT_COLOR, BG_COLOR
from audiogram.scheduler import FrameClock, iter_offline_frames
from audiogram.state import Session
from audiogram.visualiser_renderer import AudiogramRenderer, load_portrait, wrap_text

WIDTH, HEIGHT = 320, 180


def _config() -> EngineConfig:
    waveform_width, waveform_height = waveform_geometry(WIDTH, HEIGHT)
    return EngineConfig(width=WIDTH, height=HEIGHT, waveform_width=waveform_width, waveform_height=waveform_height)


def test_render_produces_bgr_frame(source) -> None:
    session = Session(source, config=_config())
    renderer = AudiogramRenderer(session, speaker=("Name", "Title", "Role"))
    image = renderer.render(session.tick(0.0))
    assert image.shape == (HEIGHT, WIDTH, 3)
    assert image.dtype == np.uint8
    assert tuple(image[0, 0]) == BG_COLOR


def test_make_frame_starts_playback(make_source) -> None:
    clock = FrameClock()
    source = make_source(reading=np.full(64, 255.0), clock=clock)
    session = Session(source, config=_config())
    renderer = AudiogramRenderer(session, clock)
    for index in range(10):
        image = renderer.make_frame(index / 30)
        assert image.shape == (HEIGHT, WIDTH, 3)
    assert session.is_playing
    assert clock() == pytest.approx(9 / 30)
    assert session.current_time == pytest.approx(9 / 30)


def test_liquid_style(source) -> None:
    session = Session(source, config=_config())
    session.play(0.0)
    renderer = AudiogramRenderer(session, style="liquid")
    assert renderer.render(session.tick(0.0)).shape == (HEIGHT, WIDTH, 3)


def test_progress_bar_fills(make_source) -> None:
    clock = FrameClock()
    source = make_source(clock=clock)
    session = Session(source, config=_config())
    source.emit("metadata", 1.0)
    renderer = AudiogramRenderer(session, clock)
    renderer.make_frame(0.0)
    image = renderer.make_frame(0.99)
    x0, y0, card_w, card_h = card_geometry(WIDTH, HEIGHT)
    row = image[y0 + card_h - 1, x0 + renderer.portrait_w : x0 + card_w]
    assert (row == np.array(ACCENT_COLOR, dtype=np.uint8)).all(axis=1).mean() > 0.9


def test_load_portrait_covers_and_crops(tmp_path) -> None:
    path = tmp_path / "portrait.png"
    image = np.zeros((400, 200, 3), dtype=np.uint8)
    image[:200] = (0, 0, 255)
    cv2.imwrite(str(path), image)
    portrait = load_portrait(path, 100, 100)
    assert portrait.shape == (100, 100, 3)
    # Anchored to the top of the image
    assert tuple(portrait[0, 50]) == (0, 0, 255)


def test_missing_portrait_uses_placeholder(tmp_path) -> None:
    portrait = load_portrait(tmp_path / "nope.png", 40, 30)
    assert portrait.shape == (30, 40, 3)
    assert (portrait == BG_COLOR).all()


def test_wrap_text_respects_width() -> None:
    text = "A lifetime of struggling with a seemingly insurmountable problem vanishes"
    lines = wrap_text(text, cv2.FONT_HERSHEY_COMPLEX, 0.5, 1, 150)
    assert len(lines) > 1
    assert " ".join(lines) == text
    for line in lines:
        (width, _), _ = cv2.getTextSize(line, cv2.FONT_HERSHEY_COMPLEX, 0.5, 1)
        assert width <= 150 or " " not in line


def test_repeated_make_frame_matches_offline_frames(make_source) -> None:
    offline_clock, export_clock = FrameClock(), FrameClock()
    offline = Session(make_source(reading=np.full(64, 255.0), clock=offline_clock), config=_config())
    exported = Session(make_source(reading=np.full(64, 255.0), clock=export_clock), config=_config())
    expected = dict(iter_offline_frames(offline, offline_clock, fps=30, duration=0.1))

    renderer = AudiogramRenderer(exported, export_clock)
    # VideoClip asks for t=0 once up front to size the clip
    first = renderer.make_frame(0.0)
    assert renderer.make_frame(0.0) is first
    for index in range(3):
        renderer.make_frame(index / 30)
        np.testing.assert_array_equal(renderer.frame.snapshot, expected[index].snapshot)
        assert len(renderer.frame.particles) == len(expected[index].particles)
