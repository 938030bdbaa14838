"""
Debug monitoring and performance tracking for the analysis engine.

Tracks tick rate, processing latency, beats and chord changes, logging a
summary every few seconds and (optionally) discrete events.
"""

import time
from collections import deque

import numpy as np

from synesthete.engine.analyzer import AnalysisSnapshot
from synesthete.logging_utils import log_event
from synesthete.palettes import NOTE_NAMES


class DebugMonitor:
    """
    Real-time monitor for engine performance and signal sanity.

    Summary line every ``summary_interval`` seconds:
    - FPS: ticks per second actually processed.
    - Latency: average tick processing time in ms, with the window maximum.
    - Beats: beat detections per second (sanity check against the music).
    - Note: current dominant note and how many chord changes happened.
    - Intensity: mean global intensity, and whether a high-energy section is active.
    - Cmds: control updates applied in this window.

    Discrete events (BEAT, CHORD, CMD, SKIP) are logged when enable_event_logging=True.
    """

    def __init__(self, summary_interval: float = 2.0, enable_event_logging: bool = False):
        self.summary_interval = summary_interval
        self.enable_event_logging = enable_event_logging
        self.last_summary_time = time.time()

        self.frame_times = deque(maxlen=256)  # ms
        self.intensities = deque(maxlen=256)
        self.frame_count = 0
        self.beat_count = 0
        self.chord_changes = 0
        self.command_count = 0
        self.skipped = 0
        self._last_tick = 0
        self._last_note = None
        self._last_snapshot = AnalysisSnapshot()

    def update(self, frame_time_ms: float, snapshot: AnalysisSnapshot) -> None:
        """Record one tick's processing time and published snapshot."""
        if snapshot.tick == self._last_tick:
            # the engine held its last snapshot instead of analysing
            self.skipped += 1
            self.log_event("SKIP", f"tick {snapshot.tick} held")
        self._last_tick = snapshot.tick
        self._last_snapshot = snapshot

        self.frame_count += 1
        self.frame_times.append(frame_time_ms)
        self.intensities.append(snapshot.intensity)

        if snapshot.beat:
            self.beat_count += 1
            self.log_event("BEAT", f"intensity {snapshot.beat_intensity:.2f}")

        if self._last_note is not None and snapshot.dominant_note != self._last_note:
            self.chord_changes += 1
            self.log_event("CHORD", f"{NOTE_NAMES[self._last_note]} -> {NOTE_NAMES[snapshot.dominant_note]}")
        self._last_note = snapshot.dominant_note

        if time.time() - self.last_summary_time >= self.summary_interval:
            self._log_summary()
            self.last_summary_time = time.time()

    def log_event(self, event_type: str, message: str) -> None:
        if not self.enable_event_logging:
            return
        log_event("DEBUG", "Monitor", f"{event_type:6s} {message}")

    def log_command(self, key: str, value) -> None:
        self.command_count += 1
        self.log_event("CMD", f"{key}={value}")

    def summary(self) -> dict:
        """Stats for the current window."""
        if self.frame_times:
            total_s = sum(self.frame_times) / 1000.0
            fps = len(self.frame_times) / total_s if total_s > 0 else 0.0
            avg_latency = float(np.mean(self.frame_times))
            max_latency = float(np.max(self.frame_times))
        else:
            fps = avg_latency = max_latency = 0.0
        return {
            "fps": fps,
            "latency_ms": avg_latency,
            "max_latency_ms": max_latency,
            "beats_per_s": self.beat_count / self.summary_interval,
            "note": NOTE_NAMES[self._last_snapshot.dominant_note],
            "chord_changes": self.chord_changes,
            "intensity": float(np.mean(self.intensities)) if self.intensities else 0.0,
            "high_energy": self._last_snapshot.high_energy,
            "commands": self.command_count,
            "skipped": self.skipped,
        }

    def _log_summary(self) -> None:
        s = self.summary()
        log_event(
            "INFO",
            "Monitor",
            f"FPS: {s['fps']:5.1f} | "
            f"Latency: {s['latency_ms']:5.2f}ms (max {s['max_latency_ms']:5.2f}ms) | "
            f"Beats: {s['beats_per_s']:4.1f}/s | "
            f"Note: {s['note']:2s} ({s['chord_changes']} changes) | "
            f"Intensity: {s['intensity']:7.1f}{' HIGH' if s['high_energy'] else ''} | "
            f"Cmds: {s['commands']} | Skipped: {s['skipped']}",
        )

        # Reset counters for next interval
        self.frame_count = 0
        self.beat_count = 0
        self.chord_changes = 0
        self.command_count = 0
        self.skipped = 0
