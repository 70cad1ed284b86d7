"""Two-tier filler word classification.

Tier 1, hard fillers ("um", "uh", ...): never intentional, every use counts.

Tier 2, context words ("like", "so", "actually", ...): normal words in good
speech. Each has an allowed rate per minute; only the occurrences beyond
``floor(allowed * minutes)`` count, and only once the word's rate exceeds
the allowance. Saying "so" three times in a minute with an allowance of 2.0
is one filler, not three.

Speaking rate counts every token except hard fillers. Context words, even
the flagged excess, remain real speech for pacing.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Sequence

from cadence.analysis.timing import compute_wpm
from cadence.utils.config import FillerConfig


@dataclass(frozen=True)
class ContextFillerStat:
    word: str
    count: int
    allowed_per_min: float
    rate_per_min: float
    excess: int


@dataclass(frozen=True)
class FillerReport:
    hard_filler_count: int
    context_excess: dict[str, int]
    filler_words: list[str]           # flagged occurrences, in spoken order
    speech_word_count: int            # all tokens except hard fillers
    minutes: float
    context_stats: list[ContextFillerStat] = field(default_factory=list)

    @property
    def filler_count(self) -> int:
        return self.hard_filler_count + sum(self.context_excess.values())

    @property
    def speech_wpm(self) -> int:
        return compute_wpm(self.speech_word_count, self.minutes * 60.0)

    def to_dict(self) -> dict[str, Any]:
        return {
            "filler_count": self.filler_count,
            "hard_filler_count": self.hard_filler_count,
            "context_excess": dict(self.context_excess),
            "filler_words": list(self.filler_words),
            "speech_word_count": self.speech_word_count,
            "speech_wpm": self.speech_wpm,
        }


def _find_occurrences(tokens: Sequence[str], phrase: tuple[str, ...]) -> list[int]:
    """Start positions of a (possibly multi-word) phrase in the token stream."""
    n = len(phrase)
    if n == 0:
        return []
    return [i for i in range(len(tokens) - n + 1) if tuple(tokens[i:i + n]) == phrase]


class FillerClassifier:
    def __init__(self, cfg: FillerConfig | None = None):
        self.cfg = cfg or FillerConfig()
        self.hard_fillers = frozenset(w.lower() for w in self.cfg.hard_fillers)
        self.context_thresholds = {k.lower(): v for k, v in self.cfg.context_thresholds.items()}

    def is_hard_filler(self, token: str) -> bool:
        return token in self.hard_fillers

    def classify(self, tokens: Sequence[str], minutes: float) -> FillerReport:
        """Classify a normalised token stream spoken over ``minutes``."""
        tokens = list(tokens)
        flagged: list[tuple[int, str]] = []

        hard = 0
        for i, tok in enumerate(tokens):
            if tok in self.hard_fillers:
                flagged.append((i, tok))
                hard += 1

        context_excess: dict[str, int] = {}
        stats: list[ContextFillerStat] = []
        for word, allowed in self.context_thresholds.items():
            positions = _find_occurrences(tokens, tuple(word.split()))
            count = len(positions)
            if count == 0:
                continue
            rate = count / minutes if minutes > 0 else math.inf
            excess = 0
            if rate > allowed:
                allowance = math.floor(allowed * minutes) if minutes > 0 else 0
                excess = max(0, count - allowance)
            stats.append(ContextFillerStat(word, count, allowed, rate, excess))
            if excess:
                context_excess[word] = excess
                # The latest occurrences are the ones over the allowance
                for pos in positions[count - excess:]:
                    flagged.append((pos, word))

        speech_words = sum(1 for t in tokens if t not in self.hard_fillers)
        return FillerReport(
            hard_filler_count=hard,
            context_excess=context_excess,
            filler_words=[w for _, w in sorted(flagged)],
            speech_word_count=speech_words,
            minutes=minutes,
            context_stats=stats,
        )
