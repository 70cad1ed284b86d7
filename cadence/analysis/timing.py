"""Speaking-rate and rhythm analysis from elapsed time and per-word timestamps.

- words-per-minute over the whole session
- rolling WPM over a recent window of word timestamps
- rhythm stability from the coefficient of variation of inter-word gaps
- spontaneity from the variance of periodic WPM snapshots
"""

from __future__ import annotations

import math
import statistics
from dataclasses import dataclass, field
from typing import Sequence

from cadence.utils.config import TimingConfig

RHYTHM_UNMEASURED = -1.0

_DEFAULT = TimingConfig()


def round_half_up(x: float) -> int:
    """Round to the nearest integer, halves away from zero (0.5 -> 1, 12.5 -> 13)."""
    return int(math.floor(x + 0.5)) if x >= 0 else -int(math.floor(-x + 0.5))


def compute_wpm(word_count: int, elapsed_seconds: float) -> int:
    """Words per minute; zero when no time has elapsed."""
    if elapsed_seconds <= 0 or word_count <= 0:
        return 0
    return round_half_up(word_count / (elapsed_seconds / 60.0))


def inter_word_gaps(timestamps: Sequence[float], cfg: TimingConfig = _DEFAULT) -> list[float]:
    """Consecutive gaps of the most recent timestamps, outliers removed."""
    window = list(timestamps)[-cfg.max_timestamps:]
    gaps = []
    for prev, cur in zip(window, window[1:]):
        gap = cur - prev
        # Shorter gaps are recognizer hiccups, longer ones deliberate pauses
        if cfg.min_gap_sec <= gap <= cfg.max_gap_sec:
            gaps.append(gap)
    return gaps


def rhythm_stability(timestamps: Sequence[float], cfg: TimingConfig = _DEFAULT) -> float:
    """Rhythm consistency in [floor, 100], or -1 when there is too little data.

    stability = clamp(100 - cv * cv_weight, floor, 100) where cv is the
    coefficient of variation (population stddev / mean) of valid gaps.
    """
    if len(timestamps) < cfg.min_timestamps:
        return RHYTHM_UNMEASURED
    gaps = inter_word_gaps(timestamps, cfg)
    if len(gaps) < cfg.min_valid_gaps:
        return RHYTHM_UNMEASURED
    mean = statistics.fmean(gaps)
    if mean <= 0:
        return RHYTHM_UNMEASURED
    cv = statistics.pstdev(gaps, mu=mean) / mean
    stability = max(cfg.stability_floor, min(100.0, 100.0 - cv * cfg.cv_weight))
    return round(stability, 1)


def rolling_wpm(
    timestamps: Sequence[float],
    words: Sequence[str] | None = None,
    hard_fillers: frozenset[str] | set[str] = frozenset(),
    cfg: TimingConfig = _DEFAULT,
) -> int:
    """WPM over a window ending at the latest timestamp.

    The window grows from rolling_min_window_sec to rolling_max_window_sec as
    speech accumulates, so a figure appears within the first few words.
    ``words`` (parallel to ``timestamps``) lets hard fillers be excluded.
    """
    if len(timestamps) < 2:
        return 0
    latest = timestamps[-1]
    target = min(cfg.rolling_max_window_sec, max(cfg.rolling_min_window_sec, latest))
    cutoff = latest - target
    recent = [i for i, ts in enumerate(timestamps) if ts >= cutoff]
    if len(recent) < 2:
        return 0
    span = latest - timestamps[recent[0]]
    if span <= cfg.rolling_min_span_sec:
        return 0
    if words is not None and len(words) == len(timestamps):
        count = sum(1 for i in recent if words[i] not in hard_fillers)
    else:
        count = len(recent)
    return int(count / (span / 60.0))


@dataclass
class SpontaneityTracker:
    """Tracks WPM drift across a session; monotone pacing scores low."""
    cfg: TimingConfig = field(default_factory=TimingConfig)
    score: float = 50.0
    snapshots: list[tuple[float, int]] = field(default_factory=list)
    _last_snapshot: float = 0.0

    def observe(self, elapsed: float, wpm: int) -> float:
        if wpm <= 0 or elapsed - self._last_snapshot < self.cfg.spontaneity_interval_sec:
            return self.score
        self.snapshots.append((elapsed, wpm))
        if len(self.snapshots) > self.cfg.spontaneity_history:
            self.snapshots.pop(0)
        self._last_snapshot = elapsed
        if len(self.snapshots) >= 3:
            vals = [float(w) for _, w in self.snapshots]
            mean = statistics.fmean(vals)
            cv = statistics.pstdev(vals, mu=mean) / mean if mean > 0 else 0.0
            self.score = min(100.0, max(0.0, cv * self.cfg.spontaneity_multiplier))
        return self.score

    def reset(self) -> None:
        self.score = 50.0
        self.snapshots.clear()
        self._last_snapshot = 0.0
