import math
from dataclasses import dataclass
from enum import Enum

# ============================================================================
# AUDIO STREAM CONFIGURATION
# ============================================================================

CHUNK = 2048
"""
Number of audio samples per analysis window (one FFT).

Impact on Spectrum:
  - Bin count = CHUNK // 2 + 1 (1025 bins for 2048)
  - Bin width = RATE / CHUNK (21.5 Hz @ 44.1 kHz)
  - Note detection below ~150 Hz needs fine bins; 2048 is the smallest
    size where adjacent bass semitones land in different bins most of the time

Watch Out For:
  - Changing CHUNK resizes every per-bin buffer (echo memory, previous
    spectrum, chord bin map). The engine reconfigures itself, but only
    between ticks.
  - 4096 doubles latency (~93ms) for little visual benefit
"""

RATE = 44100
"""
Sample rate in Hz for live capture.

File playback uses the file's native rate instead (librosa.load(sr=None)),
so the analysis core never assumes this value.

Watch Out For:
  - Mismatch between config and device default causes silent input or distortion
  - If chord colors seem "shifted", verify RATE matches the device's actual rate
"""

TARGET_FPS = 60
"""
Analysis ticks per second for file playback (one tick = one rendered frame).

Live capture is paced by the audio device instead: each read blocks for
CHUNK / RATE seconds, so live FPS is whatever the device delivers.

Frame-based constants (beat interval in ticks, chord hold times, sustain
countdown) were tuned at ~60 ticks per second.
"""

# ============================================================================
# ANALYSIS CONFIGURATION
# ============================================================================

ECHO_FRAMES = 10
"""
Depth of the spectrum echo memory (number of past spectra kept).

Used for:
  - Echo terms added to the low and mid band scores
  - Onset comparison in chord detection (energy now vs. 5 ticks ago)

Must be > 5 for the onset comparison to have history to look at.
"""

# ============================================================================
# NETWORK CONFIGURATION
# ============================================================================

UDP_IP = "127.0.0.1"
"""
IP address used for both the snapshot stream and the control feed.

Default: 127.0.0.1 (renderer on the same machine)
  - Change to 0.0.0.0 to accept control messages from other machines
"""

UDP_PORT_ENGINE = 5005
"""
Port where the engine sends per-tick snapshots (Engine -> Renderer).

Data sent: uint32 tick + 12 floats (4 bands, beat, beat intensity,
dominant note, intensity, high energy, r/g/b color)
Size: 52 bytes per packet, one packet per tick
"""

UDP_PORT_COMMANDS = 5006
"""
Port where the engine listens for control messages (Controls -> Engine).

Commands sent: JSON objects, e.g. {"input_mode": "voice"} or {"decay_rate": 10}
Frequency: only when a physical control or slider changes
"""


class InputMode(Enum):
    """Where the spectrum comes from. Selects the beat and intensity profiles."""

    MUSIC = "music"
    VOICE = "voice"


class ColorSystem(Enum):
    """Pitch-class to color mapping used for the published chord color."""

    SCRIABIN = "scriabin"
    RAINBOW = "rainbow"


class LayoutMode(Enum):
    """Renderer layout. Carried through the control feed, never read by the core."""

    RECTANGULAR = "rectangular"
    CIRCULAR = "circular"


@dataclass
class AnalysisConfig:
    """Tunable parameters of the analysis core.

    energy_threshold has no default: it depends on how loud the source is
    (values between 180 and 1200 are all reasonable) and must be tuned per
    source.
    """

    energy_threshold: float
    input_mode: InputMode = InputMode.MUSIC
    color_system: ColorSystem = ColorSystem.SCRIABIN
    beat_threshold: float = 0.5
    smoothing_factor: float = 0.3
    decay_rate: float = 15.0
    min_chord_duration: int = 15
    chord_mode: bool = True
    color_blend_rate: float = 0.1

    def validate(self) -> None:
        """Raise ValueError if any parameter is outside its usable range."""
        for name in ("energy_threshold", "beat_threshold", "smoothing_factor", "decay_rate", "color_blend_rate"):
            if not math.isfinite(getattr(self, name)):
                raise ValueError(f"{name} must be finite, got {getattr(self, name)}")
        if self.energy_threshold <= 0:
            raise ValueError(f"energy_threshold must be positive, got {self.energy_threshold}")
        if self.beat_threshold <= 0:
            raise ValueError(f"beat_threshold must be positive, got {self.beat_threshold}")
        if not (0.0 < self.smoothing_factor <= 1.0):
            raise ValueError(f"smoothing_factor must be in (0, 1], got {self.smoothing_factor}")
        if self.decay_rate <= 0:
            raise ValueError(f"decay_rate must be positive, got {self.decay_rate}")
        if self.min_chord_duration < 0:
            raise ValueError(f"min_chord_duration must be >= 0, got {self.min_chord_duration}")
        if not (0.0 < self.color_blend_rate <= 1.0):
            raise ValueError(f"color_blend_rate must be in (0, 1], got {self.color_blend_rate}")
