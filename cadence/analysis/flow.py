"""Flow events: fillers, hesitations, flow breaks and strong moments over time."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from cadence.utils.config import FlowConfig


class FlowEventKind(str, Enum):
    FILLER = "filler"
    HESITATION = "hesitation"
    FLOW_BREAK = "flowBreak"
    STRONG_MOMENT = "strongMoment"


_DEBOUNCED = (FlowEventKind.STRONG_MOMENT, FlowEventKind.FLOW_BREAK, FlowEventKind.HESITATION)


@dataclass(frozen=True)
class FlowEvent:
    timestamp: float
    kind: FlowEventKind
    word: str | None = None    # only for fillers

    @property
    def label(self) -> str:
        if self.kind == FlowEventKind.FILLER:
            return f'"{self.word or ""}"'
        return {
            FlowEventKind.HESITATION: "Pause",
            FlowEventKind.STRONG_MOMENT: "Strong",
            FlowEventKind.FLOW_BREAK: "Lost Flow",
        }[self.kind]

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"timestamp": round(self.timestamp, 3), "kind": self.kind.value}
        if self.kind == FlowEventKind.FILLER:
            d["word"] = self.word or ""
        return d

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> FlowEvent:
        try:
            kind = FlowEventKind(d.get("kind", ""))
        except ValueError:
            kind = FlowEventKind.FLOW_BREAK
        word = d.get("word", "") if kind == FlowEventKind.FILLER else None
        return cls(timestamp=float(d.get("timestamp", 0.0)), kind=kind, word=word)


@dataclass
class FlowTracker:
    """Append-only event log with debouncing and cognitive-load detection."""
    cfg: FlowConfig = field(default_factory=FlowConfig)
    events: list[FlowEvent] = field(default_factory=list)
    cognitive_load_warning: bool = False
    is_speaking: bool = False
    _recent_fillers: list[float] = field(default_factory=list)
    _clean_words_seen: int = 0
    _last_voice: float | None = None
    _pause_start: float | None = None

    def record(self, kind: FlowEventKind, timestamp: float, word: str | None = None) -> FlowEvent | None:
        """Append an event unless it repeats the previous one within the debounce window."""
        if self.events and kind in _DEBOUNCED:
            last = self.events[-1]
            window = (self.cfg.strong_moment_debounce_sec if kind == FlowEventKind.STRONG_MOMENT
                      else self.cfg.event_debounce_sec)
            if last.kind == kind and timestamp - last.timestamp < window:
                return None
        event = FlowEvent(timestamp=timestamp, kind=kind, word=word)
        self.events.append(event)
        return event

    def record_filler(self, word: str, timestamp: float) -> None:
        self.record(FlowEventKind.FILLER, timestamp, word)
        self._recent_fillers.append(timestamp)
        self._update_cognitive_load(timestamp)

    def _update_cognitive_load(self, now: float) -> None:
        window = self.cfg.cognitive_load_window_sec
        self._recent_fillers = [t for t in self._recent_fillers if now - t < window]
        overloaded = len(self._recent_fillers) >= self.cfg.cognitive_load_fillers
        if overloaded and not self.cognitive_load_warning:
            self.record(FlowEventKind.FLOW_BREAK, now)
        self.cognitive_load_warning = overloaded

    def observe_clean_words(self, total_clean_words: int, timestamp: float) -> None:
        """Emit a strong moment for every N clean words, capped per update."""
        per = self.cfg.words_per_strong_moment
        due = total_clean_words // per - self._clean_words_seen // per
        for _ in range(min(max(due, 0), self.cfg.max_strong_moments_per_update)):
            self.record(FlowEventKind.STRONG_MOMENT, timestamp)
        self._clean_words_seen = max(self._clean_words_seen, total_clean_words)

    def observe_amplitude(self, level: float, timestamp: float) -> bool:
        """Track speech onsets and pauses from a normalised 0..1 level. Returns True on voice."""
        if level >= self.cfg.voice_threshold:
            if not self.is_speaking:
                if (self._pause_start is not None
                        and timestamp - self._pause_start > self.cfg.hesitation_pause_sec):
                    self.record(FlowEventKind.HESITATION, timestamp)
                self._pause_start = None
                self.record(FlowEventKind.STRONG_MOMENT, timestamp)
            self.is_speaking = True
            self._last_voice = timestamp
            return True

        if self.is_speaking and self._last_voice is not None \
                and timestamp - self._last_voice > self.cfg.speaking_release_sec:
            self.is_speaking = False
            self._pause_start = timestamp
        return False

    def tick(self, timestamp: float) -> None:
        """Let the cognitive-load window expire without new fillers."""
        if self.cognitive_load_warning:
            self._update_cognitive_load(timestamp)

    def count(self, kind: FlowEventKind) -> int:
        return sum(1 for e in self.events if e.kind == kind)
