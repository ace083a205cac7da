import logging

import cv2
import numpy as np

from audiogram.constants import (
    ACCENT_COLOR,
    BG_COLOR,
    CAPTION_COLOR,
    CARD_COLOR,
    CONTROLS_COLOR,
    GRADIENT_STOPS,
    PLACEHOLDER_COLOR,
    TRACK_COLOR,
)
from audiogram.config import card_geometry
from audiogram.state import Phase
from audiogram.waveform import map_liquid_outline

logger = logging.getLogger(__name__)

CAPTION_FONT = cv2.FONT_HERSHEY_COMPLEX
LABEL_FONT = cv2.FONT_HERSHEY_DUPLEX
PLACEHOLDER_TEXT = "Press play to listen"


def wrap_text(text, font, scale, thickness, max_width):
    """Greedy word wrap using OpenCV text metrics."""
    lines = []
    current = ""
    for word in text.split():
        candidate = f"{current} {word}".strip()
        (w, _), _ = cv2.getTextSize(candidate, font, scale, thickness)
        if w <= max_width or not current:
            current = candidate
        else:
            lines.append(current)
            current = word
    if current:
        lines.append(current)
    return lines


def load_portrait(path, width, height, fill=BG_COLOR):
    """
    Load an image and crop it to cover width x height, anchored to the top.
    A missing or unreadable image yields a flat placeholder.
    """
    image = cv2.imread(str(path)) if path else None
    if image is None:
        if path:
            logger.warning(f"[!] Could not read portrait {path}, using a placeholder")
        return np.full((height, width, 3), fill, dtype=np.uint8)

    h, w = image.shape[:2]
    scale = max(width / w, height / h)
    resized = cv2.resize(image, (max(width, round(w * scale)), max(height, round(h * scale))), interpolation=cv2.INTER_AREA)
    left = (resized.shape[1] - width) // 2
    return resized[:height, left : left + width].copy()


class AudiogramRenderer:
    """
    Draws the audiogram card with OpenCV: portrait and speaker details on the
    left, caption, waveform, particles and progress bar on the right.
    """

    def __init__(self, session, clock=None, speaker=("", "", ""), style="bars"):
        self.session = session
        self.clock = clock
        self.config = session.config
        self.w = self.config.width
        self.h = self.config.height
        self.speaker = speaker
        self.style = style
        self._started = False
        self.frame = None
        self._frame_time = None
        self._image = None

        self.card = card_geometry(self.w, self.h)
        card_w, card_h = self.card[2], self.card[3]
        self.portrait_w = int(card_w * 0.45)

        self.controls_h = self.config.waveform_height + 2 * max(4, int(min(self.w, self.h) * 0.035))
        self.progress_h = max(2, card_h // 180)
        self.button_r = max(4, self.config.waveform_height // 2)

        self._portrait_path = None
        self._portrait = None

    def _portrait_image(self):
        path = self.session.portrait
        if self._portrait is None or path != self._portrait_path:
            self._portrait = load_portrait(path, self.portrait_w, self.card[3])
            self._portrait_path = path
        return self._portrait

    def _gradient_color(self, index, total):
        position = index / max(1, total) * (len(GRADIENT_STOPS) - 1)
        idx = int(position)
        if idx >= len(GRADIENT_STOPS) - 1:
            return GRADIENT_STOPS[-1]
        t = position - idx
        color = np.array(GRADIENT_STOPS[idx]) * (1 - t) + np.array(GRADIENT_STOPS[idx + 1]) * t
        return tuple(map(int, color))

    def _draw_portrait(self, canvas):
        x0, y0, _, card_h = self.card
        canvas[y0 : y0 + card_h, x0 : x0 + self.portrait_w] = self._portrait_image()

        # Darken the bottom third so the speaker details stay legible
        shade_h = card_h // 3
        region = canvas[y0 + card_h - shade_h : y0 + card_h, x0 : x0 + self.portrait_w].astype(np.float32)
        ramp = np.linspace(0.0, 0.7, shade_h, dtype=np.float32)[:, None, None]
        canvas[y0 + card_h - shade_h : y0 + card_h, x0 : x0 + self.portrait_w] = (region * (1 - ramp)).astype(np.uint8)

        name, title, role = self.speaker
        scale = card_h / 700
        y = y0 + card_h - int(card_h * 0.05)
        for text, size, color in ((role, 0.8, (204, 204, 204)), (title, 0.8, (204, 204, 204)), (name, 1.4, (255, 255, 255))):
            if not text:
                continue
            cv2.putText(canvas, text, (x0 + int(card_h * 0.04), y), LABEL_FONT, size * scale, color, max(1, int(2 * scale)), cv2.LINE_AA)
            y -= int(40 * size * scale)

    def _draw_caption(self, canvas, frame, area):
        x, y, w, h = area
        caption = frame.caption
        text = caption.text if caption else PLACEHOLDER_TEXT
        color = CAPTION_COLOR if caption else PLACEHOLDER_COLOR
        scale = self.card[3] / 600
        thickness = max(1, int(2 * scale))

        lines = wrap_text(text, CAPTION_FONT, scale, thickness, int(w * 0.85))
        line_h = int(cv2.getTextSize("Ag", CAPTION_FONT, scale, thickness)[0][1] * 1.9)
        top = y + (h - line_h * len(lines)) // 2 + line_h
        for i, line in enumerate(lines):
            (tw, _), _ = cv2.getTextSize(line, CAPTION_FONT, scale, thickness)
            cv2.putText(canvas, line, (x + (w - tw) // 2, top + i * line_h), CAPTION_FONT, scale, color, thickness, cv2.LINE_AA)

    def _draw_waveform(self, canvas, frame, origin):
        ox, oy = origin
        if self.style == "liquid":
            top, bottom = map_liquid_outline(frame.snapshot, self.config.waveform_width, self.config.waveform_height, frame.playback.phase is Phase.PLAYING)
            outline = np.vstack([top, bottom[::-1]]) + (ox, oy)
            cv2.fillPoly(canvas, [outline.astype(np.int32)], ACCENT_COLOR, cv2.LINE_AA)
            return

        total = len(frame.bars)
        for bar in frame.bars:
            pt1 = (int(ox + bar.x), int(oy + bar.y))
            pt2 = (int(ox + bar.x + bar.width), int(oy + bar.y + bar.height))
            cv2.rectangle(canvas, pt1, pt2, self._gradient_color(bar.index, total), -1, cv2.LINE_AA)

    def _draw_particles(self, canvas, frame, area):
        x, y, w, h = area
        sx = w / max(1, self.config.waveform_width)
        for particle in frame.particles:
            alpha = particle.get_alpha(frame.time)
            if alpha <= 0:
                continue
            cx = int(x + particle.x * sx)
            cy = int(y + h + particle.rise(frame.time, h))
            radius = max(1, int(particle.size * particle.get_scale(frame.time) / 2 * sx))
            if not (x <= cx < x + w and y <= cy < y + h):
                continue

            # Blend only the patch around the particle
            left, top = max(0, cx - radius - 1), max(0, cy - radius - 1)
            right, bottom = min(self.w, cx + radius + 2), min(self.h, cy + radius + 2)
            patch = canvas[top:bottom, left:right]
            overlay = patch.copy()
            cv2.circle(overlay, (cx - left, cy - top), radius, ACCENT_COLOR, -1, cv2.LINE_AA)
            canvas[top:bottom, left:right] = cv2.addWeighted(overlay, alpha, patch, 1 - alpha, 0)

    def render(self, frame):
        """Draws one Frame and returns a BGR image."""
        canvas = np.full((self.h, self.w, 3), BG_COLOR, dtype=np.uint8)
        x0, y0, card_w, card_h = self.card
        cv2.rectangle(canvas, (x0, y0), (x0 + card_w - 1, y0 + card_h - 1), CARD_COLOR, -1)

        self._draw_portrait(canvas)

        # Right column: caption, controls strip, progress bar
        col_x = x0 + self.portrait_w
        col_w = card_w - self.portrait_w
        controls_y = y0 + card_h - self.progress_h - self.controls_h
        caption_area = (col_x, y0, col_w, controls_y - y0)

        self._draw_caption(canvas, frame, caption_area)
        if frame.playback.phase is Phase.PLAYING:
            self._draw_particles(canvas, frame, caption_area)

        cv2.rectangle(canvas, (col_x, controls_y), (col_x + col_w - 1, controls_y + self.controls_h - 1), CONTROLS_COLOR, -1)
        center = (col_x + self.button_r + 24, controls_y + self.controls_h // 2)
        cv2.circle(canvas, center, self.button_r, ACCENT_COLOR, -1, cv2.LINE_AA)

        wave_x = center[0] + self.button_r + 24
        wave_y = controls_y + (self.controls_h - self.config.waveform_height) // 2
        self._draw_waveform(canvas, frame, (wave_x, wave_y))

        bar_y = y0 + card_h - self.progress_h
        cv2.rectangle(canvas, (col_x, bar_y), (col_x + col_w - 1, y0 + card_h - 1), TRACK_COLOR, -1)
        filled = int(col_w * frame.progress / 100)
        if filled > 0:
            cv2.rectangle(canvas, (col_x, bar_y), (col_x + filled - 1, y0 + card_h - 1), ACCENT_COLOR, -1)

        return canvas

    def make_frame(self, t):
        """
        The callback function for MoviePy.
        Generates a single video frame at time t. Asking for the same t again
        returns the previous image without ticking the session.
        """
        if self._image is not None and t == self._frame_time:
            return self._image
        if self.clock is not None:
            self.clock.set(t)
        if not self._started:
            self.session.play(t)
            self._started = True
        self.frame = self.session.tick(t)
        self._frame_time = t
        self._image = self.render(self.frame)
        return self._image
