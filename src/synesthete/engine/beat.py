"""
Spectral-flux beat detection.

The detector is a two-state machine: idle, or "beat just fired" for exactly
one tick. A beat needs the smoothed flux to clear an absolute threshold, to
stand out against its own slow running average, and to arrive at least one
minimum interval after the previous beat.

Cold start: the previous spectrum begins all-zero, so the first tick sees the
whole first spectrum as flux and may report a beat. This is accepted rather
than special-cased.
"""

from dataclasses import dataclass

import numpy as np

from synesthete.config import InputMode

RAW_FLUX_WEIGHT = 0.4
AVERAGE_FLUX_RATE = 0.01
MAX_BEAT_INTENSITY = 3.0


@dataclass(frozen=True)
class BeatProfile:
    """Per-input-mode detection constants."""

    threshold_scale: float
    sensitivity: float  # how far above the running average the flux must be
    min_interval_ms: float


MUSIC_PROFILE = BeatProfile(threshold_scale=1.0, sensitivity=1.5, min_interval_ms=250.0)
VOICE_PROFILE = BeatProfile(threshold_scale=0.7, sensitivity=1.3, min_interval_ms=300.0)


def beat_profile(mode: InputMode) -> BeatProfile:
    return VOICE_PROFILE if mode == InputMode.VOICE else MUSIC_PROFILE


def spectral_flux(current: np.ndarray, previous: np.ndarray) -> float:
    """Sum of positive-only bin increases between two spectra."""
    return float(np.sum(np.maximum(0.0, current - previous)))


@dataclass
class BeatState:
    spectral_flux: float = 0.0
    average_flux: float = 0.0
    beat_detected: bool = False
    beat_intensity: float = 0.0
    beat_timer: float | None = None  # timestamp (ms) of the last beat
    beat_interval: float = MUSIC_PROFILE.min_interval_ms


class BeatDetector:
    def __init__(self, n_bins: int, beat_threshold: float = 0.5, mode: InputMode = InputMode.MUSIC):
        self.beat_threshold = beat_threshold
        self.state = BeatState()
        self.prev_spectrum = np.zeros(n_bins, dtype=np.float64)
        self.set_mode(mode)

    @property
    def effective_threshold(self) -> float:
        return self.beat_threshold * self.profile.threshold_scale

    def set_mode(self, mode: InputMode) -> None:
        """Switch detection profile. The beat timer restarts so the new gate applies cleanly."""
        self.profile = beat_profile(mode)
        self.state.beat_interval = self.profile.min_interval_ms
        self.state.beat_timer = None
        self.state.beat_detected = False

    def resize(self, n_bins: int) -> None:
        """New spectrum size: forget the previous spectrum."""
        self.prev_spectrum = np.zeros(n_bins, dtype=np.float64)

    def update(self, spectrum: np.ndarray, now_ms: float) -> BeatState:
        """Feed one spectrum taken at ``now_ms`` and return the updated state."""
        s = self.state
        raw = spectral_flux(spectrum, self.prev_spectrum)
        self.prev_spectrum = np.array(spectrum, dtype=np.float64, copy=True)

        s.spectral_flux = RAW_FLUX_WEIGHT * raw + (1.0 - RAW_FLUX_WEIGHT) * s.spectral_flux
        s.average_flux = (1.0 - AVERAGE_FLUX_RATE) * s.average_flux + AVERAGE_FLUX_RATE * s.spectral_flux

        elapsed = float("inf") if s.beat_timer is None else now_ms - s.beat_timer
        threshold = self.effective_threshold
        s.beat_detected = (
            s.spectral_flux > threshold
            and s.spectral_flux > self.profile.sensitivity * s.average_flux
            and elapsed >= s.beat_interval
        )
        if s.beat_detected:
            s.beat_timer = now_ms
            s.beat_intensity = float(np.clip(s.spectral_flux / (threshold * 1.5), 0.0, MAX_BEAT_INTENSITY))
        return s
