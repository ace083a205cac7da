# --- Configuration Constants ---
DEFAULT_FPS = 30
DEFAULT_RESOLUTION = (1920, 1080)
REFRESH_RATE = 60  # Live preview ticks per second

# Analysis settings
FFT_SIZE = 128  # 64 frequency bins
SMOOTHING_FACTOR = 0.75  # smoothed = 0.75 * previous + 0.25 * raw
MIN_DECIBELS = -100  # Byte scaling range for raw spectra
MAX_DECIBELS = -30
BASS_BINS = 4  # Lowest bins averaged into the bass level

# Playback settings
PROVISIONAL_DURATION = 24.0  # seconds, until the source reports its length

# Waveform settings
RETAINED_FRACTION = 0.75  # Drop the noisy high-frequency tail
BAR_POWER = 1.1
BAR_HEIGHT_BOOST = 1.2
BAR_WIDTH_RATIO = 0.4
MIN_BAR_HEIGHT = 2
WAVEFORM_HEIGHT = 60

# Particle system settings
PARTICLE_THRESHOLD = 0.6
MAX_PARTICLES = 12
MAX_PARTICLES_PER_TICK = 3
PARTICLE_STAGGER = 0.1  # seconds between particles spawned on the same tick
PARTICLE_MAX_DELAY = 0.3
PARTICLE_LIFETIME = (3.0, 5.0)  # seconds
PARTICLE_SIZE = (3.0, 9.0)
PARTICLE_OPACITY = (0.3, 0.7)
PARTICLE_OVERSHOOT = 20  # pixels above the top edge where particles finish

# Colors (BGR format for OpenCV)
BG_COLOR = (42, 42, 42)
CARD_COLOR = (245, 248, 250)
CONTROLS_COLOR = (237, 242, 245)
ACCENT_COLOR = (33, 76, 200)  # Burnt orange
CAPTION_COLOR = (61, 61, 61)
PLACEHOLDER_COLOR = (138, 138, 138)
TRACK_COLOR = (222, 228, 232)
GRADIENT_STOPS = [
    (0, 85, 255),  # Orange
    (0, 221, 255),  # Yellow
    (128, 0, 255),  # Pink
    (255, 0, 179),  # Violet
    (255, 102, 0),  # Blue
]
