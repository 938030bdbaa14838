"""Tests for the DebugMonitor counters."""

import pytest

from synesthete.engine.analyzer import AnalysisSnapshot
from synesthete.engine.debug_monitor import DebugMonitor


def test_counts_beats_changes_and_skips():
    monitor = DebugMonitor(summary_interval=3600.0)
    monitor.update(2.0, AnalysisSnapshot(tick=1, dominant_note=0))
    monitor.update(4.0, AnalysisSnapshot(tick=2, dominant_note=9, beat=True, beat_intensity=1.2))
    monitor.update(3.0, AnalysisSnapshot(tick=2, dominant_note=9))
    monitor.log_command("decay_rate", 10.0)

    s = monitor.summary()

    assert s["skipped"] == 1
    assert s["chord_changes"] == 1
    assert s["note"] == "A"
    assert s["commands"] == 1
    assert s["latency_ms"] == 3.0
    assert s["max_latency_ms"] == 4.0
    assert s["fps"] == pytest.approx(1000.0 / 3.0)


def test_empty_summary():
    s = DebugMonitor().summary()

    assert s["fps"] == 0.0
    assert s["intensity"] == 0.0
    assert not s["high_energy"]


def test_log_summary_resets_window(caplog):
    monitor = DebugMonitor(summary_interval=3600.0)
    monitor.update(1.0, AnalysisSnapshot(tick=1, beat=True))
    monitor._log_summary()

    assert monitor.beat_count == 0
    assert monitor.skipped == 0
    assert "FPS" in caplog.text
