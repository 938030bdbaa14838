import time
from dataclasses import dataclass, replace

import numpy as np

from synesthete.config import AnalysisConfig, ColorSystem, InputMode, LayoutMode
from synesthete.engine.bands import BandScorer
from synesthete.engine.beat import BeatDetector
from synesthete.engine.chords import ChordDetector
from synesthete.engine.echo import EchoMemory
from synesthete.engine.intensity import IntensityAggregator
from synesthete.logging_utils import log_event
from synesthete.palettes import get_palette


@dataclass(frozen=True)
class AnalysisSnapshot:
    """Everything the renderer reads for one tick."""

    tick: int = 0
    low: float = 0.0
    low_mid: float = 0.0
    mid: float = 0.0
    high: float = 0.0
    beat: bool = False
    beat_intensity: float = 0.0
    dominant_note: int = 0
    color: tuple[float, float, float] = (0.0, 0.0, 0.0)
    intensity: float = 0.0
    high_energy: bool = False

    def to_message(self) -> dict:
        """Per-tick snapshot message as exchanged with a networked renderer."""
        return {
            "tick": self.tick,
            "low": self.low,
            "lowMid": self.low_mid,
            "mid": self.mid,
            "high": self.high,
            "beat": self.beat,
            "beatIntensity": self.beat_intensity,
            "dominantNote": self.dominant_note,
            "intensity": self.intensity,
            "highEnergy": self.high_energy,
        }


def _as_enum(enum_cls, value):
    return value if isinstance(value, enum_cls) else enum_cls(str(value).lower())


class AnalysisEngine:
    def __init__(self, config: AnalysisConfig, sample_rate: float, buffer_size: int):
        """Owns all analysis state and runs one tick per spectrum.

        Per tick: echo store -> beat -> chords (if enabled) -> bands -> intensity.

        Args:
            config: Tunables. Validated here; a bad value raises ValueError.
            sample_rate: Sample rate of the incoming spectra.
            buffer_size: FFT size of the incoming spectra (bins = buffer_size // 2 + 1).
        """
        config.validate()
        self.config = config
        self.layout_mode = LayoutMode.RECTANGULAR
        self.tick_count = 0
        self.last_snapshot = AnalysisSnapshot()

        n_bins = buffer_size // 2 + 1
        self.echo = EchoMemory(n_bins)
        self.beats = BeatDetector(n_bins, config.beat_threshold, config.input_mode)
        self.bands = BandScorer(n_bins, config.smoothing_factor, config.decay_rate)
        self.chords = ChordDetector(
            sample_rate,
            buffer_size,
            get_palette(config.color_system),
            min_chord_duration=config.min_chord_duration,
            color_blend_rate=config.color_blend_rate,
        )
        self.intensity = IntensityAggregator(config.energy_threshold, config.input_mode)
        self.sample_rate = float(sample_rate)
        self.buffer_size = int(buffer_size)
        self.n_bins = n_bins

    def configure(self, sample_rate: float, buffer_size: int) -> None:
        """Resize every per-bin buffer for a new source. Call between ticks only."""
        n_bins = buffer_size // 2 + 1
        self.echo = EchoMemory(n_bins)
        self.beats.resize(n_bins)
        self.bands.resize(n_bins)
        self.chords.configure(sample_rate, buffer_size)
        self.chords.reset_sustain()
        self.sample_rate = float(sample_rate)
        self.buffer_size = int(buffer_size)
        self.n_bins = n_bins
        log_event("INFO", "Engine", "Reconfigured", sample_rate=sample_rate, buffer_size=buffer_size, bins=n_bins)

    def set_input_mode(self, mode: InputMode) -> None:
        self.config.input_mode = mode
        self.beats.set_mode(mode)
        self.intensity.set_mode(mode)
        self.chords.reset_sustain()
        log_event("INFO", "Engine", "Input mode switched", mode=mode.value)

    def set_color_system(self, system: ColorSystem) -> None:
        self.config.color_system = system
        self.chords.set_palette(get_palette(system))
        log_event("INFO", "Engine", "Color system switched", system=system.value)

    def update_parameter(self, key: str, value) -> bool:
        """Apply one control update. Returns False if it was rejected."""
        try:
            if key == "input_mode":
                self.set_input_mode(_as_enum(InputMode, value))
            elif key == "color_system":
                self.set_color_system(_as_enum(ColorSystem, value))
            elif key == "layout_mode":
                self.layout_mode = _as_enum(LayoutMode, value)
            elif key == "chord_mode":
                self.config.chord_mode = bool(value)
            elif key in ("energy_threshold", "beat_threshold", "smoothing_factor", "decay_rate", "min_chord_duration"):
                cast = int if key == "min_chord_duration" else float
                candidate = replace(self.config, **{key: cast(value)})
                candidate.validate()
                self.config = candidate
                self.intensity.energy_threshold = candidate.energy_threshold
                self.beats.beat_threshold = candidate.beat_threshold
                self.bands.smoothing_factor = candidate.smoothing_factor
                self.bands.decay_rate = candidate.decay_rate
                self.chords.min_chord_duration = candidate.min_chord_duration
            else:
                log_event("WARN", "Engine", "Unknown parameter ignored", key=key)
                return False
        except (TypeError, ValueError) as e:
            log_event("WARN", "Engine", "Rejected parameter", key=key, value=value, error=e)
            return False
        return True

    def tick(self, spectrum, rms: float = 0.0, now_ms: float | None = None) -> AnalysisSnapshot:
        """Analyse one spectrum and publish the snapshot for this tick.

        A missing spectrum holds the last snapshot. A spectrum whose size does
        not match the configured bin count skips the tick; neither raises.
        """
        if spectrum is None:
            return self.last_snapshot
        spectrum = np.asarray(spectrum, dtype=np.float64)
        if spectrum.shape != (self.n_bins,):
            log_event("WARN", "Engine", "Spectrum size mismatch, skipping tick", got=spectrum.shape, expected=self.n_bins)
            return self.last_snapshot
        if now_ms is None:
            now_ms = time.monotonic() * 1000.0

        self.tick_count += 1
        self.echo.store(spectrum)
        beat = self.beats.update(spectrum, now_ms)
        if self.config.chord_mode:
            self.chords.update(spectrum, self.echo)
        scores = self.bands.update(spectrum, self.echo, beat.beat_detected)
        value = self.intensity.compute(scores, rms, beat.beat_detected)

        chord = self.chords.state
        self.last_snapshot = AnalysisSnapshot(
            tick=self.tick_count,
            low=scores.low,
            low_mid=scores.low_mid,
            mid=scores.mid,
            high=scores.high,
            beat=beat.beat_detected,
            beat_intensity=beat.beat_intensity,
            dominant_note=chord.dominant_note,
            color=tuple(float(c) for c in chord.current_color),
            intensity=value,
            high_energy=self.intensity.state.high_energy_section,
        )
        return self.last_snapshot
