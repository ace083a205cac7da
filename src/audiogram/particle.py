import logging
import math
from dataclasses import dataclass

import numpy as np

from audiogram.constants import (
    MAX_PARTICLES,
    MAX_PARTICLES_PER_TICK,
    PARTICLE_LIFETIME,
    PARTICLE_MAX_DELAY,
    PARTICLE_OPACITY,
    PARTICLE_OVERSHOOT,
    PARTICLE_SIZE,
    PARTICLE_STAGGER,
    PARTICLE_THRESHOLD,
)

logger = logging.getLogger(__name__)

_KEYFRAMES = (0.0, 1 / 3, 2 / 3, 1.0)


@dataclass(frozen=True)
class Particle:
    """Represents a single particle rising from the bottom edge."""

    id: int
    spawn_time: float
    delay: float
    lifetime: float
    x: float
    size: float
    opacity: float

    @property
    def end_time(self):
        return self.spawn_time + self.delay + self.lifetime

    def is_alive(self, current_time):
        """Check if particle should still be rendered."""
        return current_time < self.end_time

    def progress(self, current_time):
        """Fraction of the rise completed, 0 until the delay has passed."""
        started = current_time - self.spawn_time - self.delay
        return min(1.0, max(0.0, started / self.lifetime))

    def rise(self, current_time, height):
        """Upward offset in pixels from the bottom edge (negative is up)."""
        p = self.progress(current_time)
        eased = 1 - (1 - p) ** 2
        return -(height + PARTICLE_OVERSHOOT) * eased

    def get_alpha(self, current_time):
        """Fades in, holds, then fades out over the lifetime."""
        p = self.progress(current_time)
        return float(np.interp(p, _KEYFRAMES, (0.0, self.opacity, self.opacity, 0.0)))

    def get_scale(self, current_time):
        p = self.progress(current_time)
        return float(np.interp(p, _KEYFRAMES, (0.5, 1.0, 1.0, 0.3)))


def spawn_intensity(bass, threshold=PARTICLE_THRESHOLD):
    """Number of particles a bass level spawns on one tick."""
    if bass < threshold:
        return 0
    return min(MAX_PARTICLES_PER_TICK, math.floor((bass - threshold) / 0.1) + 1)


class ParticleSpawner:
    """
    Bounded, time-evolving set of bass-reactive particles.

    Randomness is drawn from a generator keyed on the seed and the tick time,
    so replaying the same ticks reproduces the same particles.
    """

    def __init__(self, width=400, threshold=PARTICLE_THRESHOLD, max_particles=MAX_PARTICLES, seed=0):
        self.width = width
        self.threshold = threshold
        self.max_particles = max_particles
        self.seed = seed
        self.particles = []
        self.next_id = 0

    def clear(self):
        self.particles = []

    def update(self, t, bass, playing=True):
        """
        Expire finished particles and, while playing, spawn new ones for this tick.
        Returns the live particles as a tuple.
        """
        self.particles = [p for p in self.particles if p.is_alive(t)]

        count = spawn_intensity(bass, self.threshold) if playing else 0
        if count:
            rng = np.random.default_rng([self.seed, max(0, int(round(t * 1000)))])
            for i in range(count):
                self.particles.append(
                    Particle(
                        id=self.next_id,
                        spawn_time=t + i * PARTICLE_STAGGER,
                        delay=rng.uniform(0, PARTICLE_MAX_DELAY),
                        lifetime=rng.uniform(*PARTICLE_LIFETIME),
                        x=rng.uniform(0, self.width),
                        size=rng.uniform(*PARTICLE_SIZE),
                        opacity=rng.uniform(*PARTICLE_OPACITY),
                    )
                )
                self.next_id += 1
            logger.debug(f"Spawned {count} particles at bass {bass:.2f}")

        # Oldest particles are evicted first
        if len(self.particles) > self.max_particles:
            self.particles = self.particles[-self.max_particles :]

        return tuple(self.particles)
