"""
Chord / dominant-note detection.

Each spectrum bin is snapped to the nearest of 96 equal-tempered notes
(C1..B8, A4 = 440 Hz), weighted and folded into 12 pitch-class buckets.
Buckets feed 12 decaying note strengths, and a hysteresis state machine picks
the single dominant note that drives the published color.

The weighting tables below are calibration data, tuned by ear against real
songs to correct systematic over/under-detection of particular notes. They
are not music theory and are expected to be retuned.
"""

from dataclasses import dataclass, field

import librosa
import numpy as np

from synesthete.engine.echo import EchoMemory

NOTE_COUNT = 12
OCTAVES = 8
LOWEST_MIDI = 24  # C1

MIN_FREQ = 20.0
MAX_FREQ = 16000.0
FIRST_BIN = 2  # bins 0-1 are DC / sub-audible
BASS_CUTOFF = 150.0

BASS_TOLERANCE_CENTS = 70.0
TOLERANCE_CENTS = 50.0
BASS_NOISE_FLOOR = 0.08
NOISE_FLOOR = 0.15
EDGE_WEIGHT = 0.5  # closeness weight at the edge of the tolerance window

#                       C    C#   D    D#   E    F    F#   G    G#   A    A#   B
CALIBRATION = np.array([0.5, 1.5, 1.5, 2.5, 2.2, 0.6, 1.5, 1.2, 1.5, 1.0, 1.6, 2.8])
NOTE_BOOST = np.ones(NOTE_COUNT)
NOTE_BOOST[3] = 1.5  # D#
NOTE_BOOST[4] = 1.3  # E
NOTE_BOOST[11] = 1.3 * 1.2  # B

CHORD_TEMPLATES = (
    (0, 4, 7),  # C
    (4, 7, 11),  # Em
    (7, 11, 2),  # G
    (9, 0, 4),  # Am
    (11, 2, 5),  # Bdim
    (2, 6, 9),  # D
    (3, 7, 10),  # Eb
    (3, 6, 10),  # Ebm
    (1, 4, 8),  # C#m
)
TEMPLATE_MIN_MEAN = 0.4
TEMPLATE_GAIN = 0.45
D_SHARP_TEMPLATE_BOOST = 1.4

STRENGTH_MEMORY = 0.75  # weight of the old strength when folding in a new bucket
SUSTAIN_RATE = 0.99
DECAY_RATE = 0.85

FADE_THRESHOLD = 0.1
SOUND_LEVEL = 0.7  # a note this strong counts as "something is playing"
FADING_LEVEL = 0.5
SOFT_RATIO = 1.3
HARD_RATIO = 1.7
STUCK_RATIO = 1.5
STUCK_FRAMES = 120
SUSTAIN_FRAMES = 90

ONSET_RANGE = 0.15  # low + low-mid bins
ONSET_LAG = 5
ONSET_RATIO = 2.0
ONSET_MIN_ENERGY = 1.0

CHANGE_BLEND_BOOST = 4.0


def note_frequencies() -> np.ndarray:
    """Equal-tempered frequencies of the 96 notes C1..B8."""
    midi = np.arange(LOWEST_MIDI, LOWEST_MIDI + NOTE_COUNT * OCTAVES)
    return librosa.midi_to_hz(midi)


def cents(freq, ref):
    """Pitch distance from ``ref`` to ``freq`` in cents (100 per semitone)."""
    return 1200.0 * np.log2(freq / ref)


def range_weight(freq: float) -> float:
    """Perceptual multiplier for the frequency range a bin falls in."""
    if freq < BASS_CUTOFF:
        return 1.0
    if freq < 250.0:
        return 0.9
    if freq <= 1500.0:
        return 1.5
    return 1.0


@dataclass
class ChordState:
    dominant_note: int = 0
    last_chord_change_frame: int = 0
    sustain_countdown: int = 0
    current_color: np.ndarray = field(default_factory=lambda: np.zeros(3))
    frame: int = 0
    changed: bool = False  # the dominant note changed on the latest tick


class ChordDetector:
    def __init__(
        self,
        sample_rate: float,
        buffer_size: int,
        palette: np.ndarray,
        min_chord_duration: int = 15,
        color_blend_rate: float = 0.1,
    ):
        """Tracks the dominant pitch class of a magnitude spectrum.

        Args:
            sample_rate: Sample rate the spectrum was computed at.
            buffer_size: FFT size; bin ``i`` sits at ``i * sample_rate / buffer_size``.
            palette: (12, 3) RGB table the published color is blended toward.
            min_chord_duration: Ticks a dominant note is held before ordinary changes.
            color_blend_rate: Per-tick color blend toward the target.
        """
        self.min_chord_duration = min_chord_duration
        self.color_blend_rate = color_blend_rate
        self.palette = palette
        self.note_strengths = np.zeros(NOTE_COUNT)
        self.state = ChordState(current_color=np.array(palette[0], dtype=np.float64))
        self.configure(sample_rate, buffer_size)

    def configure(self, sample_rate: float, buffer_size: int) -> None:
        """Precompute which bins map to which pitch class, and with what weight."""
        self.sample_rate = float(sample_rate)
        self.buffer_size = int(buffer_size)
        self.n_bins = self.buffer_size // 2 + 1
        self.onset_bins = int(self.n_bins * ONSET_RANGE)

        idx = np.arange(self.n_bins)
        freqs = librosa.fft_frequencies(sr=self.sample_rate, n_fft=self.buffer_size)
        audible = (idx >= FIRST_BIN) & (freqs >= MIN_FREQ) & (freqs <= MAX_FREQ)
        idx, freqs = idx[audible], freqs[audible]

        notes = note_frequencies()
        dist = cents(freqs[:, None], notes[None, :])
        nearest = np.argmin(np.abs(dist), axis=1)
        off = np.abs(dist[np.arange(len(freqs)), nearest])

        bass = freqs < BASS_CUTOFF
        tolerance = np.where(bass, BASS_TOLERANCE_CENTS, TOLERANCE_CENTS)
        keep = off <= tolerance

        pitch_class = (nearest + LOWEST_MIDI) % NOTE_COUNT
        closeness = 1.0 - (1.0 - EDGE_WEIGHT) * off / tolerance
        ranges = np.array([range_weight(f) for f in freqs])
        weights = closeness * ranges * CALIBRATION[pitch_class] * NOTE_BOOST[pitch_class]

        self.bins = idx[keep]
        self.bin_notes = pitch_class[keep]
        self.bin_weights = weights[keep]
        self.bin_floors = np.where(bass, BASS_NOISE_FLOOR, NOISE_FLOOR)[keep]

    def set_palette(self, palette: np.ndarray) -> None:
        self.palette = palette

    def reset_sustain(self) -> None:
        """Clear the fade hold and restart the minimum-duration clock."""
        self.state.sustain_countdown = 0
        self.state.last_chord_change_frame = self.state.frame

    def note_buckets(self, spectrum: np.ndarray) -> np.ndarray:
        """Weighted per-pitch-class energy of ``spectrum``, including chord-template boosts."""
        mags = spectrum[self.bins]
        loud = mags > self.bin_floors
        buckets = np.bincount(
            self.bin_notes[loud], weights=mags[loud] * self.bin_weights[loud], minlength=NOTE_COUNT
        ).astype(np.float64)

        boost = np.zeros(NOTE_COUNT)
        for template in CHORD_TEMPLATES:
            members = list(template)
            mean = buckets[members].mean()
            if mean > TEMPLATE_MIN_MEAN:
                boost[members] += mean * TEMPLATE_GAIN
        if boost[3] != 0:
            boost[3] *= D_SHARP_TEMPLATE_BOOST
        return buckets + boost

    def _onset(self, spectrum: np.ndarray, echo: EchoMemory) -> bool:
        now = float(np.sum(spectrum[: self.onset_bins]))
        past = float(np.sum(echo.frame(ONSET_LAG)[: self.onset_bins]))
        return now > ONSET_RATIO * past and now > ONSET_MIN_ENERGY

    def update(self, spectrum: np.ndarray, echo: EchoMemory) -> ChordState:
        st = self.state
        st.frame += 1
        st.changed = False
        if st.sustain_countdown > 0:
            st.sustain_countdown -= 1

        dominant = st.dominant_note
        rates = np.full(NOTE_COUNT, DECAY_RATE)
        rates[dominant] = SUSTAIN_RATE
        self.note_strengths *= rates
        self.note_strengths = self.note_strengths * STRENGTH_MEMORY + self.note_buckets(spectrum) * (
            1.0 - STRENGTH_MEMORY
        )

        s = self.note_strengths
        strongest = dominant
        for i in range(NOTE_COUNT):
            if s[i] > s[strongest]:
                strongest = i
        dom_strength, top_strength = s[dominant], s[strongest]
        since_change = st.frame - st.last_chord_change_frame

        should_change = False
        if strongest != dominant:
            if since_change >= self.min_chord_duration and st.sustain_countdown <= 0:
                if dom_strength < FADE_THRESHOLD and top_strength > SOFT_RATIO * dom_strength:
                    should_change = True
                elif top_strength > HARD_RATIO * dom_strength:
                    should_change = True
                elif since_change > STUCK_FRAMES and top_strength > STUCK_RATIO * dom_strength:
                    should_change = True

            # Silence-to-sound and attack overrides skip the hold time
            if dom_strength < FADE_THRESHOLD and top_strength > SOUND_LEVEL:
                should_change = True
            elif top_strength > SOUND_LEVEL and self._onset(spectrum, echo):
                should_change = True

        if should_change:
            st.dominant_note = strongest
            st.last_chord_change_frame = st.frame
            st.sustain_countdown = 0
            st.changed = True
        elif (
            st.sustain_countdown <= 0
            and FADE_THRESHOLD <= dom_strength < FADING_LEVEL
            and top_strength < SOUND_LEVEL
        ):
            # The held note is fading: freeze the color while it dies away.
            # Below the fade threshold the note already counts as gone.
            st.sustain_countdown = SUSTAIN_FRAMES

        target = self.palette[st.dominant_note]
        rate = self.color_blend_rate * (CHANGE_BLEND_BOOST if st.changed else 1.0)
        st.current_color = st.current_color + (target - st.current_color) * min(rate, 1.0)
        return st
