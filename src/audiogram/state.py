import enum
import logging
import math
from dataclasses import dataclass, replace

from audiogram.audio_analyser import FrequencyAnalyser, bass_level
from audiogram.captions import DEFAULT_CAPTIONS
from audiogram.config import EngineConfig
from audiogram.constants import PROVISIONAL_DURATION
from audiogram.errors import PlaybackError
from audiogram.fallback import FallbackSignalGenerator
from audiogram.particle import ParticleSpawner
from audiogram.timeline import progress_percent, select_caption
from audiogram.waveform import map_bars

logger = logging.getLogger(__name__)


class Phase(enum.Enum):
    IDLE = "idle"
    PLAYING = "playing"
    STOPPED = "stopped"


@dataclass(frozen=True)
class PlaybackState:
    current_time: float = 0.0
    duration: float = PROVISIONAL_DURATION
    phase: Phase = Phase.IDLE


@dataclass(frozen=True)
class Frame:
    """Everything a consumer needs to draw one tick."""

    time: float
    playback: PlaybackState
    snapshot: object
    bass_level: float
    bars: tuple
    particles: tuple
    caption: object
    progress: float
    degraded: bool = False


def derive_frame(playback, snapshot, captions, config, particles=(), degraded=False):
    """
    The pure part of a tick: snapshot -> bass level -> bars, caption, progress.
    Live and offline ticks both go through here.
    """
    t = playback.current_time
    return Frame(
        time=t,
        playback=playback,
        snapshot=snapshot,
        bass_level=bass_level(snapshot, config.bass_bins),
        bars=map_bars(snapshot, config.waveform_width, config.waveform_height, config.retained_fraction),
        particles=particles,
        caption=select_caption(t, captions),
        progress=0.0 if playback.phase is Phase.STOPPED else progress_percent(t, playback.duration),
        degraded=degraded,
    )


class Session:
    """
    Owns one audiogram's playback state, its signal source and its analyser.

    Transitions never fail: anything not listed is a no-op.

        IDLE | STOPPED --play--> PLAYING
        PLAYING --pause--> IDLE
        PLAYING --end of stream--> STOPPED (time reset to 0)
        any --replace source / portrait--> IDLE
    """

    def __init__(self, source=None, captions=DEFAULT_CAPTIONS, config=None, portrait=None):
        self.config = config or EngineConfig()
        self.captions = tuple(captions)
        self.portrait = portrait

        self.analyser = FrequencyAnalyser(
            fft_size=self.config.fft_size,
            smoothing=self.config.smoothing,
            fallback=FallbackSignalGenerator(self.config.bin_count, seed=self.config.seed),
        )
        self.spawner = ParticleSpawner(
            width=self.config.waveform_width,
            threshold=self.config.particle_threshold,
            max_particles=self.config.max_particles,
            seed=self.config.seed,
        )

        self.phase = Phase.IDLE
        self.current_time = 0.0
        self.duration = PROVISIONAL_DURATION
        self.playback_degraded = False  # Synthetic timer instead of audio time
        self._duration_confirmed = False
        self._last_now = None
        self._last_frame = None

        self.source = None
        self._bind(source)

    @property
    def playback(self):
        return PlaybackState(self.current_time, self.duration, self.phase)

    @property
    def is_playing(self):
        return self.phase is Phase.PLAYING

    @property
    def degraded(self):
        return self.playback_degraded or self.analyser.is_fallback

    # --- Source wiring ---

    def _bind(self, source):
        self.source = source
        if source is not None:
            source.on("metadata", self._on_metadata)
            source.on("ended", self._on_ended)

    def _unbind(self):
        if self.source is not None:
            self.source.off("metadata", self._on_metadata)
            self.source.off("ended", self._on_ended)
        self.source = None

    def _on_metadata(self, duration):
        if self._duration_confirmed:
            return
        if duration and duration > 0 and math.isfinite(duration):
            self.duration = float(duration)
            self._duration_confirmed = True
            logger.info(f"[+] Duration: {self.duration:.2f} seconds")

    def _on_ended(self):
        if self.phase is not Phase.PLAYING:
            return
        logger.info("[+] Playback finished")
        self._stop()

    # --- Transitions ---

    def play(self, now=0.0):
        if self.phase is Phase.PLAYING:
            return
        self.analyser.connect(self.source)
        if self.phase is Phase.STOPPED:
            self.current_time = 0.0

        self.playback_degraded = False
        if self.source is None:
            self.playback_degraded = True
        else:
            try:
                self.source.play()
            except PlaybackError as e:
                logger.warning(f"[!] Playback failed, advancing a synthetic timer instead: {e}")
                self.playback_degraded = True

        self._last_now = now
        self.phase = Phase.PLAYING

    def pause(self, now=0.0):
        if self.phase is not Phase.PLAYING:
            return
        self._advance(now)
        if self.source is not None and not self.playback_degraded:
            self.source.pause()
        self.analyser.disconnect()
        self.phase = Phase.IDLE

    def stop(self):
        if self.phase is Phase.STOPPED:
            return
        self._stop()

    def _stop(self):
        if self.source is not None and not self.playback_degraded:
            self.source.pause()
            if hasattr(self.source, "seek"):
                self.source.seek(0.0)
        self.analyser.disconnect()
        self.spawner.clear()
        self.current_time = 0.0
        self.playback_degraded = False
        self.phase = Phase.STOPPED

    def _force_idle(self):
        if self.phase is Phase.PLAYING:
            self.pause(self._last_now or 0.0)
        self.analyser.disconnect()
        self.phase = Phase.IDLE

    def replace_source(self, source):
        """Swap the audio. Any binding to the old source is torn down first."""
        self._force_idle()
        self._unbind()
        self.spawner.clear()
        self.current_time = 0.0
        self.duration = PROVISIONAL_DURATION
        self._duration_confirmed = False
        self.playback_degraded = False
        self._bind(source)
        logger.info("[+] Audio source replaced")

    def replace_portrait(self, portrait):
        self._force_idle()
        self.portrait = portrait
        logger.info("[+] Portrait replaced")

    # --- Ticking ---

    def _advance(self, now):
        """Move current_time forward, from the source or the synthetic timer."""
        if self.playback_degraded:
            elapsed = 0.0 if self._last_now is None else max(0.0, now - self._last_now)
            self.current_time += elapsed
        elif self.source is not None:
            self.current_time = max(self.current_time, float(self.source.current_time))
        self._last_now = now

    def tick(self, now):
        """
        Runs one pass of the pipeline and returns a Frame. Never raises; on an
        unexpected error the previous frame is returned marked as degraded.
        """
        try:
            frame = self._tick(now)
        except Exception:
            logger.exception("[!] Tick failed, reusing the previous frame")
            if self._last_frame is None:
                snapshot = self.analyser.fallback.snapshot(self.current_time)
                return derive_frame(self.playback, snapshot, self.captions, self.config, degraded=True)
            return replace(self._last_frame, degraded=True)
        self._last_frame = frame
        return frame

    def _tick(self, now):
        if self.phase is Phase.PLAYING:
            if self.source is not None and not self.playback_degraded:
                self.source.poll()
            if self.phase is Phase.PLAYING:
                self._advance(now)
                if self.playback_degraded and self.current_time >= self.duration:
                    logger.info("[+] Synthetic playback finished")
                    self._stop()

        playing = self.phase is Phase.PLAYING
        snapshot = self.analyser.tick(self.current_time)
        bass = bass_level(snapshot, self.config.bass_bins)
        particles = self.spawner.update(self.current_time, bass, playing)
        return derive_frame(
            self.playback,
            snapshot,
            self.captions,
            self.config,
            particles=particles if playing else (),
            degraded=self.degraded,
        )
