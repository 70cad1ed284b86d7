"""Composite performance score (0-100) and human-readable badges.

| Component   | Weight |
|-------------|--------|
| Pacing      | 35     |
| Fillers     | 25     |
| Eye contact | 25     |
| Rhythm      | 15     |

Sessions shorter than ``short_session_sec`` are capped, and nothing is
scored at all without a minimum amount of real speech.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from cadence.analysis.timing import RHYTHM_UNMEASURED, round_half_up
from cadence.utils.config import ScoringConfig

WPM_WEIGHT = 35
FILLER_WEIGHT = 25
EYE_WEIGHT = 25
RHYTHM_WEIGHT = 15

# (low, high, points), inclusive bounds; first hit wins
_WPM_BANDS: tuple[tuple[int, int, int], ...] = (
    (130, 150, 35),
    (120, 129, 30), (151, 160, 30),
    (110, 119, 23), (161, 170, 23),
    (95, 109, 15), (171, 190, 15),
    (70, 94, 7), (191, 220, 7),
)
_WPM_FALLBACK = 2
_WPM_UNRELIABLE = 15

_RHYTHM_BANDS: tuple[tuple[float, int], ...] = (
    (85.0, 15),
    (70.0, 12),
    (55.0, 9),
    (40.0, 5),
)
_RHYTHM_FALLBACK = 1

_DEFAULT = ScoringConfig()


@dataclass(frozen=True)
class ScoreBreakdown:
    wpm_points: int = 0
    filler_points: int = 0
    eye_points: int = 0
    rhythm_points: int = 0
    total: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "wpm_points": self.wpm_points,
            "filler_points": self.filler_points,
            "eye_points": self.eye_points,
            "rhythm_points": self.rhythm_points,
            "total": self.total,
            "badge": score_badge(self.total),
        }


def wpm_points(wpm: int, duration: float, cfg: ScoringConfig = _DEFAULT) -> int:
    if duration < cfg.wpm_reliable_sec:
        return _WPM_UNRELIABLE
    for low, high, pts in _WPM_BANDS:
        if low <= wpm <= high:
            return pts
    return _WPM_FALLBACK


def filler_points(filler_count: int, duration: float, cfg: ScoringConfig = _DEFAULT) -> int:
    minutes = max(cfg.filler_min_minutes, duration / 60.0)
    per_min = filler_count / minutes
    excess = max(0.0, per_min - cfg.filler_allowance_per_min)
    fraction = max(0.0, 1.0 - excess / cfg.filler_tolerance_per_min)
    return round_half_up(FILLER_WEIGHT * fraction)


def eye_points(eye_contact_percent: float) -> int:
    pct = max(0.0, min(100.0, float(eye_contact_percent)))
    return round_half_up(pct / 100.0 * EYE_WEIGHT)


def rhythm_points(rhythm_stability: float, cfg: ScoringConfig = _DEFAULT) -> int:
    # The neutral baseline stands in for "unmeasured" only here, never in reports
    value = cfg.neutral_rhythm if rhythm_stability == RHYTHM_UNMEASURED else rhythm_stability
    for floor, pts in _RHYTHM_BANDS:
        if value >= floor:
            return pts
    return _RHYTHM_FALLBACK


def has_real_speech(wpm: int, duration: float, cfg: ScoringConfig = _DEFAULT) -> bool:
    return wpm > 0 and duration >= cfg.min_speech_sec


def score_session(
    wpm: int,
    filler_count: int,
    eye_contact_percent: float,
    rhythm_stability: float,
    duration: float,
    cfg: ScoringConfig = _DEFAULT,
) -> ScoreBreakdown:
    if not has_real_speech(wpm, duration, cfg):
        return ScoreBreakdown()

    parts = (
        wpm_points(wpm, duration, cfg),
        filler_points(filler_count, duration, cfg),
        eye_points(eye_contact_percent),
        rhythm_points(rhythm_stability, cfg),
    )
    total = min(100, sum(parts))
    if duration < cfg.short_session_sec:
        total = min(total, cfg.short_session_cap)
    return ScoreBreakdown(*parts, total=total)


# ── Badges ───────────────────────────────────────────────────────────────────

def score_badge(total: int) -> str:
    if total >= 90:
        return "Excellent"
    if total >= 75:
        return "Strong"
    if total >= 60:
        return "Decent"
    return "Needs Work"


def accuracy_badge(accuracy: float) -> str:
    if accuracy >= 95:
        return "Flawless"
    if accuracy >= 85:
        return "Strong"
    if accuracy >= 70:
        return "Decent"
    return "Needs Work"


def wpm_badge(wpm: int) -> str:
    if wpm == 0:
        return "No Speech"
    if 120 <= wpm <= 180:
        return "Natural Pace"
    if 100 <= wpm < 120:
        return "Slightly Slow"
    if 180 < wpm <= 220:
        return "Slightly Fast"
    return "Too Fast" if wpm > 220 else "Too Slow"


def filler_badge(filler_count: int) -> str:
    if filler_count == 0:
        return "Flawless"
    if filler_count <= 3:
        return "Great"
    if filler_count <= 7:
        return "Noticeable"
    return "Needs Work"


def rhythm_badge(rhythm_stability: float) -> str:
    if rhythm_stability == RHYTHM_UNMEASURED:
        return "Unmeasured"
    if rhythm_stability >= 85:
        return "Consistent"
    if rhythm_stability >= 65:
        return "Decent"
    if rhythm_stability >= 40:
        return "Uneven"
    return "Choppy"


def coach_insight(
    wpm: int,
    filler_count: int,
    accuracy: float,
    flow_breaks: int,
    speech_detected: bool,
) -> tuple[str, str]:
    """Pick the single most useful piece of feedback as (title, body)."""
    if not speech_detected:
        return ("No Speech Detected",
                "We couldn't measure this session. Speak clearly and check that the microphone is available.")
    if flow_breaks >= 3:
        return ("High Cognitive Load",
                f"You lost flow {flow_breaks} times. Pause silently instead of filling. Silence sounds confident.")
    if filler_count > 8:
        return ("Filler Word Habit",
                f"You used {filler_count} filler words. Replace each with a deliberate one-second pause.")
    if wpm > 175:
        return ("Speaking Too Fast",
                f"At {wpm} WPM your audience struggles to keep up. Aim for 130-155 WPM.")
    if 0 < wpm < 110:
        return ("Speaking Too Slowly",
                f"At {wpm} WPM the delivery drags. Aim for 130-155 WPM and let sentences flow.")
    if accuracy < 70:
        return ("Stay With the Text",
                f"Only {accuracy:.0f}% of the passage came through. Slow down at the words you skipped.")
    return ("Steady Delivery",
            "Pace, fillers and rhythm are all in a good range. Keep practising to make it habit.")
