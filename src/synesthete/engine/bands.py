from dataclasses import dataclass

import numpy as np

from synesthete.engine.echo import EchoMemory

# Band edges as fractions of the bin count. Bins above 40% are not scored.
LOW_RANGE = (0.0, 0.05)
LOW_MID_RANGE = (0.05, 0.15)
MID_RANGE = (0.15, 0.25)
HIGH_RANGE = (0.25, 0.40)

LOW_ECHO_DECAY = 3.0
LOW_ECHO_GAIN = 0.2
MID_ECHO_DECAY = 2.5
MID_ECHO_GAIN = 0.15

BEAT_SMOOTHING = 0.5  # snappier attack on the tick a beat fires


@dataclass
class BandScores:
    """Smoothed energy of the four scored frequency bands."""

    low: float = 0.0
    low_mid: float = 0.0
    mid: float = 0.0
    high: float = 0.0

    def as_array(self) -> np.ndarray:
        return np.array([self.low, self.low_mid, self.mid, self.high], dtype=np.float64)


def band_slices(n_bins: int) -> tuple[slice, slice, slice, slice]:
    """Contiguous bin ranges for low, low-mid, mid and high."""

    def _slice(rng):
        return slice(int(n_bins * rng[0]), int(n_bins * rng[1]))

    return _slice(LOW_RANGE), _slice(LOW_MID_RANGE), _slice(MID_RANGE), _slice(HIGH_RANGE)


def _position(n: int) -> np.ndarray:
    # Fractional offset of each bin inside its band, 0 at the first bin
    return np.arange(n, dtype=np.float64) / max(n, 1)


class BandScorer:
    def __init__(self, n_bins: int, smoothing_factor: float = 0.3, decay_rate: float = 15.0):
        """Frequency-weighted band energies with fast attack and limited release.

        Args:
            n_bins: Spectrum size the weights are built for.
            smoothing_factor: Blend factor toward the new raw value on ticks without a beat.
            decay_rate: Largest drop a band score may make in one tick.
        """
        self.smoothing_factor = smoothing_factor
        self.decay_rate = decay_rate
        self.scores = BandScores()
        self.resize(n_bins)

    def resize(self, n_bins: int) -> None:
        """Rebuild the per-bin weights for a new spectrum size. Scores are kept."""
        self.n_bins = n_bins
        self.low_bins, self.low_mid_bins, self.mid_bins, self.high_bins = band_slices(n_bins)

        # Sub-bass emphasis: 2.0 at bin 0 falling to 1.0 at the band's end
        pos = _position(self.low_bins.stop - self.low_bins.start)
        self.low_weights = 2.0 - pos

        # Bell curves: strongest at the band centre
        pos = _position(self.low_mid_bins.stop - self.low_mid_bins.start)
        self.low_mid_weights = 0.5 + 0.5 * np.sin(pos * np.pi)
        pos = _position(self.mid_bins.stop - self.mid_bins.start)
        self.mid_weights = 0.5 + 0.5 * np.sin(pos * np.pi)

        # Air emphasis: 1.0 rising to 1.5 across the band
        pos = _position(self.high_bins.stop - self.high_bins.start)
        self.high_weights = 1.0 + 0.5 * pos

    def raw_scores(self, spectrum: np.ndarray, echo: EchoMemory) -> BandScores:
        """Unsmoothed band energies for ``spectrum``. Deterministic, touches no state."""
        low = float(np.dot(spectrum[self.low_bins], self.low_weights))
        low_mid = float(np.dot(spectrum[self.low_mid_bins], self.low_mid_weights))
        mid = float(np.dot(spectrum[self.mid_bins], self.mid_weights))
        high = float(np.dot(spectrum[self.high_bins], self.high_weights))

        # Only low and mid carry an echo tail
        low += float(np.sum(echo.echo_values(LOW_ECHO_DECAY, self.low_bins.start, self.low_bins.stop))) * LOW_ECHO_GAIN
        mid += float(np.sum(echo.echo_values(MID_ECHO_DECAY, self.mid_bins.start, self.mid_bins.stop))) * MID_ECHO_GAIN

        return BandScores(low, low_mid, mid, high)

    def _follow(self, prev: float, raw: float, factor: float) -> float:
        score = prev + (raw - prev) * factor
        if prev > score:
            score = max(score, prev - self.decay_rate)
        return score

    def update(self, spectrum: np.ndarray, echo: EchoMemory, beat_detected: bool = False) -> BandScores:
        """Blend the scores toward this tick's raw energies and return them."""
        raw = self.raw_scores(spectrum, echo)
        factor = BEAT_SMOOTHING if beat_detected else self.smoothing_factor
        prev = self.scores
        self.scores = BandScores(
            low=self._follow(prev.low, raw.low, factor),
            low_mid=self._follow(prev.low_mid, raw.low_mid, factor),
            mid=self._follow(prev.mid, raw.mid, factor),
            high=self._follow(prev.high, raw.high, factor),
        )
        return self.scores

    def reset(self) -> None:
        self.scores = BandScores()
