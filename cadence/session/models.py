"""Session value types: live snapshots and the final result."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from cadence.analysis.alignment import AlignedWord
from cadence.analysis.flow import FlowEvent, FlowEventKind
from cadence.analysis.scoring import (
    ScoreBreakdown,
    accuracy_badge,
    filler_badge,
    rhythm_badge,
    wpm_badge,
)
from cadence.analysis.text_stats import WordFrequency


class SessionPhase(str, Enum):
    IDLE = "idle"
    RECORDING = "recording"
    FINISHED = "finished"


class SessionStateError(RuntimeError):
    """Raised when a session method is called in a phase that forbids it."""


@dataclass(frozen=True)
class SessionMetrics:
    """Measurements of one finished session. Built once, never mutated."""
    wpm: int
    filler_count: int
    filler_words: tuple[str, ...]
    accuracy_percent: float
    missed_words: tuple[str, ...]
    rhythm_stability: float             # -1 when unmeasured
    duration: float
    transcript: str
    alignment_accuracy: float = 100.0
    stumbled_words: tuple[str, ...] = ()
    skipped_words: tuple[str, ...] = ()
    top_repeated_words: tuple[WordFrequency, ...] = ()
    spontaneity: float = 50.0
    speech_detected: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "wpm": self.wpm,
            "wpm_badge": wpm_badge(self.wpm),
            "filler_count": self.filler_count,
            "filler_badge": filler_badge(self.filler_count),
            "filler_words": list(self.filler_words),
            "accuracy_percent": round(self.accuracy_percent, 1),
            "accuracy_badge": accuracy_badge(self.accuracy_percent),
            "alignment_accuracy": round(self.alignment_accuracy, 1),
            "missed_words": list(self.missed_words),
            "stumbled_words": list(self.stumbled_words),
            "skipped_words": list(self.skipped_words),
            "rhythm_stability": self.rhythm_stability,
            "rhythm_badge": rhythm_badge(self.rhythm_stability),
            "spontaneity": round(self.spontaneity, 1),
            "top_repeated_words": [w.to_dict() for w in self.top_repeated_words],
            "duration": round(self.duration, 2),
            "speech_detected": self.speech_detected,
            "transcript": self.transcript,
        }


@dataclass(frozen=True)
class SessionResult:
    metrics: SessionMetrics
    score: ScoreBreakdown
    flow_events: tuple[FlowEvent, ...] = ()
    words: tuple[AlignedWord, ...] = ()
    insight: tuple[str, str] = ("", "")
    passage: str = ""

    @property
    def flow_break_count(self) -> int:
        return sum(1 for e in self.flow_events if e.kind == FlowEventKind.FLOW_BREAK)

    def to_dict(self) -> dict[str, Any]:
        return {
            "metrics": self.metrics.to_dict(),
            "score": self.score.to_dict(),
            "insight": {"title": self.insight[0], "body": self.insight[1]},
            "words": [w.to_dict() for w in self.words],
            "flow_events": [e.to_dict() for e in self.flow_events],
        }


@dataclass(frozen=True)
class SessionSnapshot:
    """Read-only view of the live session handed to subscribers."""
    phase: SessionPhase
    elapsed: float
    words: tuple[AlignedWord, ...] = ()
    current_index: int = 0
    live_filler_count: int = 0
    live_wpm: int = 0
    rolling_wpm: int = 0
    rhythm_stability: float = -1.0
    flow_events: tuple[FlowEvent, ...] = ()
    cognitive_load_warning: bool = False
    is_speaking: bool = False
    transcript: str = ""
    result: SessionResult | None = field(default=None, repr=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "phase": self.phase.value,
            "elapsed": round(self.elapsed, 2),
            "current_index": self.current_index,
            "live_filler_count": self.live_filler_count,
            "live_wpm": self.live_wpm,
            "rolling_wpm": self.rolling_wpm,
            "rhythm_stability": self.rhythm_stability,
            "cognitive_load_warning": self.cognitive_load_warning,
            "is_speaking": self.is_speaking,
            "words": [w.to_dict() for w in self.words],
            "flow_events": [e.to_dict() for e in self.flow_events],
        }
