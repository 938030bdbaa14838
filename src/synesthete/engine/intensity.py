from dataclasses import dataclass

import numpy as np

from synesthete.config import InputMode
from synesthete.engine.bands import BandScores

COUNTER_MAX = 30
COUNTER_STEP_UP = 2
ACTIVATE_ABOVE = 15
DEACTIVATE_BELOW = 8
SUSTAINED_CEILING = 8.0  # sustained energy is clamped to this many energy thresholds


@dataclass(frozen=True)
class IntensityProfile:
    """Per-input-mode weighting of the global intensity."""

    band_weights: tuple[float, float, float, float]  # low, low-mid, mid, high
    band_gain: float
    rms_weight: float
    sustain_rate: float
    threshold_scale: float
    counter_step_down: int
    section_boost: float
    beat_boost: float


# Voice is quieter and less percussive: louder weighting, quicker release
VOICE_PROFILE = IntensityProfile(
    band_weights=(1.2, 1.3, 1.2, 0.9),
    band_gain=1.7,
    rms_weight=220.0,
    sustain_rate=0.15,
    threshold_scale=0.7,
    counter_step_down=3,
    section_boost=1.4,
    beat_boost=1.45,
)

# Music releases slowly so a chorus lingers after its last loud bar
MUSIC_PROFILE = IntensityProfile(
    band_weights=(0.9, 1.0, 1.1, 0.95),
    band_gain=1.0,
    rms_weight=400.0,
    sustain_rate=0.12,
    threshold_scale=0.8,
    counter_step_down=1,
    section_boost=1.8,
    beat_boost=1.6,
)


def intensity_profile(mode: InputMode) -> IntensityProfile:
    return VOICE_PROFILE if mode == InputMode.VOICE else MUSIC_PROFILE


@dataclass
class IntensityState:
    value: float = 0.0
    sustained_energy: float = 0.0
    high_energy_counter: int = 0
    high_energy_section: bool = False


class IntensityAggregator:
    def __init__(self, energy_threshold: float, mode: InputMode = InputMode.MUSIC):
        """Folds band scores, loudness and beats into one global intensity.

        A high-energy section (chorus, drop) is detected with a Schmitt trigger
        on a bounded counter rather than by comparing intensity to a threshold
        directly, so short dips do not make it flicker.

        Args:
            energy_threshold: Loudness level that counts as "high energy".
                Depends on the source; tune it per input.
            mode: Selects the voice or music weighting profile.
        """
        self.energy_threshold = energy_threshold
        self.profile = intensity_profile(mode)
        self.state = IntensityState()

    def set_mode(self, mode: InputMode) -> None:
        self.profile = intensity_profile(mode)

    def raw_intensity(self, bands: BandScores, rms: float) -> float:
        p = self.profile
        weighted = float(np.dot(bands.as_array(), p.band_weights))
        return p.band_gain * weighted + p.rms_weight * rms

    def compute(self, bands: BandScores, rms: float, beat_detected: bool = False) -> float:
        p = self.profile
        s = self.state
        raw = self.raw_intensity(bands, rms)

        s.sustained_energy += (raw - s.sustained_energy) * p.sustain_rate
        s.sustained_energy = float(np.clip(s.sustained_energy, 0.0, self.energy_threshold * SUSTAINED_CEILING))

        if s.sustained_energy > self.energy_threshold * p.threshold_scale:
            s.high_energy_counter = min(s.high_energy_counter + COUNTER_STEP_UP, COUNTER_MAX)
        else:
            s.high_energy_counter = max(s.high_energy_counter - p.counter_step_down, 0)

        if not s.high_energy_section and s.high_energy_counter > ACTIVATE_ABOVE:
            s.high_energy_section = True
        elif s.high_energy_section and s.high_energy_counter < DEACTIVATE_BELOW:
            s.high_energy_section = False

        value = raw
        if s.high_energy_section:
            value *= p.section_boost
        if beat_detected:
            value *= p.beat_boost
        s.value = value
        return value
