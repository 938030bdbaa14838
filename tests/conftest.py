"""Pytest configuration and shared fixtures."""

import numpy as np
import pytest

from synesthete.config import AnalysisConfig
from synesthete.engine.analyzer import AnalysisEngine

# Default input geometry for tests
TEST_SR = 44100
TEST_BUFFER = 2048
FRAME_MS = 1000.0 / 60.0


@pytest.fixture
def sample_rate() -> int:
    """Default sample rate for tests."""
    return TEST_SR


@pytest.fixture
def buffer_size() -> int:
    """Default FFT size for tests."""
    return TEST_BUFFER


@pytest.fixture
def n_bins(buffer_size: int) -> int:
    return buffer_size // 2 + 1


@pytest.fixture
def config() -> AnalysisConfig:
    return AnalysisConfig(energy_threshold=200.0)


@pytest.fixture
def engine(config, sample_rate, buffer_size) -> AnalysisEngine:
    return AnalysisEngine(config, sample_rate, buffer_size)


@pytest.fixture
def make_tone(sample_rate, buffer_size):
    """
    Build a spectrum with a single spike at the bin nearest ``freq``.

    Returns:
        Function (freq, amplitude=1.0) -> spectrum array.
    """

    def _make(freq: float, amplitude: float = 1.0) -> np.ndarray:
        spectrum = np.zeros(buffer_size // 2 + 1)
        spectrum[int(round(freq * buffer_size / sample_rate))] = amplitude
        return spectrum

    return _make


@pytest.fixture
def sine_wave(sample_rate: int) -> np.ndarray:
    """One second of a full-scale 440Hz sine (A4)."""
    t = np.arange(sample_rate) / sample_rate
    return np.sin(2 * np.pi * 440.0 * t).astype(np.float32)
