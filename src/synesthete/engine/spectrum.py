from dataclasses import dataclass

import numpy as np
import numpy.typing as npt
from scipy.signal import get_window


@dataclass(frozen=True)
class SpectrumFrame:
    """One tick of input: magnitude spectrum plus the RMS of the window it came from."""

    spectrum: npt.NDArray[np.float64]
    rms: float


def magnitude_spectrum(samples: np.ndarray, window: np.ndarray) -> npt.NDArray[np.float64]:
    """Windowed real-FFT magnitudes, scaled so a full-scale sine peaks near 1.0."""
    mags = np.abs(np.fft.rfft(samples * window))
    return mags * (2.0 / np.sum(window))


def analyse_window(samples: np.ndarray, window: np.ndarray) -> SpectrumFrame:
    rms = float(np.sqrt(np.mean(np.square(samples)))) if len(samples) else 0.0
    return SpectrumFrame(magnitude_spectrum(samples, window), rms)


class SpectrumSource:
    """Base for everything that hands the engine one spectrum per tick."""

    def __init__(self, sample_rate: float, buffer_size: int):
        self.sample_rate = float(sample_rate)
        self.buffer_size = int(buffer_size)
        self.window = get_window("hann", self.buffer_size, fftbins=True)

    @property
    def n_bins(self) -> int:
        return self.buffer_size // 2 + 1

    def silent_frame(self) -> SpectrumFrame:
        return SpectrumFrame(np.zeros(self.n_bins), 0.0)

    def read(self) -> SpectrumFrame:
        raise NotImplementedError

    def close(self) -> None:
        pass
