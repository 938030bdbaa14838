"""Tests for chord / dominant-note detection."""

import numpy as np
import pytest

from synesthete.engine.chords import (
    DECAY_RATE,
    STRENGTH_MEMORY,
    SUSTAIN_FRAMES,
    SUSTAIN_RATE,
    ChordDetector,
    cents,
    note_frequencies,
    range_weight,
)
from synesthete.engine.echo import EchoMemory
from synesthete.palettes import SCRIABIN

A, D_SHARP, E = 9, 3, 4

# per-tick factor on a silent tick for the dominant note and for the others
HOLD = SUSTAIN_RATE * STRENGTH_MEMORY
FADE = DECAY_RATE * STRENGTH_MEMORY


@pytest.fixture
def detector(sample_rate, buffer_size):
    return ChordDetector(sample_rate, buffer_size, SCRIABIN)


@pytest.fixture
def echo(n_bins):
    return EchoMemory(n_bins)


def prime(detector, dominant, other, since_change, countdown=0):
    """Set state so that after the next silent tick C (dominant) sits at ``dominant``
    and E at ``other``, ``since_change`` ticks after the last change."""
    detector.note_strengths[:] = 0.0
    detector.note_strengths[0] = dominant / HOLD
    detector.note_strengths[E] = other / FADE
    st = detector.state
    st.frame = 200
    st.last_chord_change_frame = 201 - since_change
    st.sustain_countdown = countdown


def run(detector, echo, spectrum, ticks):
    """Feed ``spectrum`` for ``ticks`` ticks, returning the dominant note after each."""
    notes = []
    for _ in range(ticks):
        echo.store(spectrum)
        notes.append(detector.update(spectrum, echo).dominant_note)
    return notes


class TestTuning:
    def test_note_table_spans_eight_octaves(self):
        freqs = note_frequencies()

        assert len(freqs) == 96
        assert freqs[45] == pytest.approx(440.0)  # A4
        assert freqs[0] == pytest.approx(32.703, abs=1e-3)  # C1
        assert freqs[12] / freqs[0] == pytest.approx(2.0)

    def test_cents(self):
        assert cents(880.0, 440.0) == pytest.approx(1200.0)
        assert cents(440.0 * 2 ** (1 / 12), 440.0) == pytest.approx(100.0)

    def test_range_weights(self):
        assert range_weight(100.0) == 1.0
        assert range_weight(200.0) == 0.9
        assert range_weight(440.0) == 1.5
        assert range_weight(1500.0) == 1.5
        assert range_weight(3000.0) == 1.0


class TestBinMap:
    def test_bin_near_a4_maps_to_a(self, detector):
        (pos,) = np.nonzero(detector.bins == 20)[0]

        assert detector.bin_notes[pos] == A
        assert detector.bin_floors[pos] == 0.15

    def test_dc_and_ultrasonic_bins_are_skipped(self, detector, sample_rate, buffer_size):
        top_bin = int(16000 * buffer_size / sample_rate)

        assert 0 not in detector.bins and 1 not in detector.bins
        assert detector.bins.max() <= top_bin

    def test_bass_bins_use_wider_window_and_lower_floor(self, detector, sample_rate, buffer_size):
        freqs = detector.bins * sample_rate / buffer_size
        bass = freqs < 150.0

        assert np.all(detector.bin_floors[bass] == 0.08)
        assert np.all(detector.bin_floors[~bass] == 0.15)

    def test_reconfigure_rebuilds_map(self, detector):
        detector.configure(22050, 1024)

        assert detector.n_bins == 513
        assert detector.bins.max() < 513


class TestNoteBuckets:
    def test_pure_tone_weighting(self, detector, make_tone, sample_rate, buffer_size):
        buckets = detector.note_buckets(make_tone(440.0))

        off = abs(cents(20 * sample_rate / buffer_size, 440.0))
        expected = (1.0 - 0.5 * off / 50.0) * 1.5  # closeness x 250-1500Hz range x A calibration 1.0
        assert buckets[A] == pytest.approx(expected)
        assert np.count_nonzero(buckets) == 1

    def test_below_noise_floor_is_ignored(self, detector, make_tone):
        assert not detector.note_buckets(make_tone(440.0, amplitude=0.1)).any()

    def test_template_boost_spreads_to_chord_members(self, detector, make_tone):
        lone_c = detector.note_buckets(make_tone(261.63))
        triad = make_tone(261.63) + make_tone(329.63) + make_tone(392.0)
        chord = detector.note_buckets(triad)

        assert chord[0] > lone_c[0]
        # B is not played, but E-G-B shares two strong members with the triad
        assert chord[11] > 0.0
        assert lone_c[11] == 0.0

    def test_d_sharp_template_boost_gets_extra_gain(self, detector, make_tone):
        spectrum = make_tone(622.25, amplitude=0.5)  # D#5
        (pos,) = np.nonzero(detector.bins == 29)[0]
        direct = 0.5 * detector.bin_weights[pos]

        buckets = detector.note_buckets(spectrum)

        # D# sits in two templates; G only in one. D#'s boost is then scaled by 1.4
        assert buckets[7] > 0.0
        assert buckets[D_SHARP] - direct == pytest.approx(2 * 1.4 * buckets[7])
        assert buckets[10] == pytest.approx(2 * buckets[7])


class TestDominantNote:
    def test_pure_tone_takes_over_after_min_duration(self, detector, echo, make_tone):
        notes = run(detector, echo, make_tone(440.0), 30)

        assert notes[13] == 0  # held through the minimum chord duration
        assert notes[14] == A
        assert notes[-1] == A

    def test_held_tone_does_not_oscillate(self, detector, echo, make_tone):
        notes = run(detector, echo, make_tone(440.0), 200)

        assert set(notes[14:]) == {A}

    def test_silence_holds_last_note(self, detector, echo, make_tone):
        run(detector, echo, make_tone(440.0), 40)
        notes = run(detector, echo, np.zeros_like(make_tone(440.0)), 300)

        assert set(notes) == {A}
        assert detector.note_strengths.min() >= 0.0

    def test_fade_out_holds_color_until_countdown_expires(self, detector, echo, make_tone):
        run(detector, echo, make_tone(440.0), 50)

        weak_e = make_tone(329.63, amplitude=0.16)
        prev_countdown = detector.state.sustain_countdown
        change_tick = None
        saw_countdown = False
        for tick in range(1, 201):
            echo.store(weak_e)
            st = detector.update(weak_e, echo)
            assert st.sustain_countdown >= 0
            saw_countdown |= st.sustain_countdown > 0
            if st.changed:
                # the note may only move once the countdown has run out
                assert prev_countdown <= 1
                change_tick = change_tick or tick
            prev_countdown = st.sustain_countdown

        assert saw_countdown
        assert detector.state.dominant_note == E
        assert change_tick is not None and change_tick > 80

    def test_onset_overrides_min_duration(self, detector, echo, make_tone):
        run(detector, echo, make_tone(440.0), 15)
        assert detector.state.dominant_note == A

        # E arrives with three times the bass energy of five ticks ago
        notes = run(detector, echo, make_tone(329.63, amplitude=3.0), 1)

        assert notes == [E]

    def test_without_onset_change_waits_for_min_duration(self, detector, echo, make_tone):
        run(detector, echo, make_tone(440.0), 15)

        notes = run(detector, echo, make_tone(329.63, amplitude=1.0), 15)

        assert notes[:14] == [A] * 14
        assert notes[14] == E

    def test_ties_keep_current_note(self, detector, echo, n_bins):
        detector.note_strengths[:] = 0.5
        run(detector, echo, np.zeros(n_bins), 1)

        assert detector.state.dominant_note == 0


class TestTransitionRules:
    """Each rule checked on both sides of its boundary after one silent tick."""

    @pytest.mark.parametrize("since_change, changes", [(14, False), (15, True)])
    def test_hard_ratio_waits_for_min_duration(self, detector, echo, n_bins, since_change, changes):
        prime(detector, dominant=0.6, other=1.05, since_change=since_change)

        notes = run(detector, echo, np.zeros(n_bins), 1)

        assert (notes == [E]) is changes

    @pytest.mark.parametrize("since_change, changes", [(120, False), (121, True)])
    def test_stuck_note_safety_valve(self, detector, echo, n_bins, since_change, changes):
        # 1.6x: above the safety-valve ratio, below the ordinary one
        prime(detector, dominant=0.6, other=0.96, since_change=since_change)

        notes = run(detector, echo, np.zeros(n_bins), 1)

        assert (notes == [E]) is changes

    @pytest.mark.parametrize("other, changes", [(0.06, False), (0.07, True)])
    def test_faded_note_yields_to_soft_ratio(self, detector, echo, n_bins, other, changes):
        prime(detector, dominant=0.05, other=other, since_change=100)

        notes = run(detector, echo, np.zeros(n_bins), 1)

        assert (notes == [E]) is changes
        assert detector.state.sustain_countdown == 0

    def test_quiet_dominant_starts_countdown(self, detector, echo, n_bins):
        prime(detector, dominant=0.3, other=0.0, since_change=100)

        run(detector, echo, np.zeros(n_bins), 1)

        assert detector.state.sustain_countdown == SUSTAIN_FRAMES

    def test_countdown_blocks_ratio_change(self, detector, echo, n_bins):
        prime(detector, dominant=0.3, other=0.6, since_change=100, countdown=50)

        notes = run(detector, echo, np.zeros(n_bins), 1)

        assert notes == [0]
        assert detector.state.sustain_countdown == 49

    def test_strong_note_does_not_start_countdown(self, detector, echo, n_bins):
        prime(detector, dominant=0.3, other=0.75, since_change=5)

        notes = run(detector, echo, np.zeros(n_bins), 1)

        assert notes == [0]
        assert detector.state.sustain_countdown == 0

    def test_silence_to_sound_bypasses_countdown(self, detector, echo, n_bins):
        prime(detector, dominant=0.05, other=0.8, since_change=5, countdown=50)

        notes = run(detector, echo, np.zeros(n_bins), 1)

        assert notes == [E]
        assert detector.state.sustain_countdown == 0

    def test_weak_note_waits_out_the_countdown(self, detector, echo, n_bins, make_tone):
        prime(detector, dominant=0.3, other=0.0, since_change=100)
        weak_e = make_tone(329.63, amplitude=0.2)

        notes = run(detector, echo, weak_e, 100)

        assert notes[:SUSTAIN_FRAMES] == [0] * SUSTAIN_FRAMES
        assert notes[SUSTAIN_FRAMES] == E


class TestColor:
    def test_color_snaps_faster_on_change(self, detector, echo, make_tone):
        run(detector, echo, make_tone(440.0), 14)
        before = detector.state.current_color.copy()

        run(detector, echo, make_tone(440.0), 1)
        after_change = detector.state.current_color.copy()
        run(detector, echo, make_tone(440.0), 1)
        after_drift = detector.state.current_color.copy()

        target = SCRIABIN[A]
        np.testing.assert_allclose(after_change, before + (target - before) * 0.4)
        np.testing.assert_allclose(after_drift, after_change + (target - after_change) * 0.1)

    def test_palette_swap_changes_target(self, detector, echo, n_bins):
        rainbow = np.zeros((12, 3))
        detector.set_palette(rainbow)
        run(detector, echo, np.zeros(n_bins), 100)

        assert np.all(detector.state.current_color < 1.0)
