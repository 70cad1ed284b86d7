"""Order-independent passage accuracy with near-match tolerance."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Sequence

from cadence.utils.config import FuzzyConfig
from cadence.utils.logging import debug

_DEFAULT = FuzzyConfig()


def levenshtein(a: str, b: str) -> int:
    """Single-character insert/delete/substitute edit distance."""
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)
    prev = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        cur = [i] + [0] * len(b)
        for j, cb in enumerate(b, start=1):
            cost = 0 if ca == cb else 1
            cur[j] = min(prev[j] + 1, cur[j - 1] + 1, prev[j - 1] + cost)
        prev = cur
    return prev[-1]


def fuzzy_match(a: str, b: str, cfg: FuzzyConfig = _DEFAULT) -> bool:
    """Near-equality of two normalised words.

    Short words (< min_length) must match exactly. Otherwise a long enough
    shared prefix or a small edit distance (1 up to short_word_max_len
    characters, 2 beyond) is accepted.
    """
    if a == b:
        return True
    if len(a) < cfg.min_length or len(b) < cfg.min_length:
        return False
    shorter, longer = (a, b) if len(a) <= len(b) else (b, a)
    if longer.startswith(shorter) and len(shorter) / len(longer) >= cfg.prefix_ratio:
        return True
    allowed = cfg.short_word_distance if len(longer) <= cfg.short_word_max_len else cfg.long_word_distance
    return levenshtein(a, b) <= allowed


@dataclass(frozen=True)
class PassageAccuracy:
    total_words: int
    matched_words: int
    missed_words: list[str] = field(default_factory=list)   # capped for reporting
    missed_count: int = 0

    @property
    def accuracy_percent(self) -> float:
        if self.total_words == 0:
            return 100.0
        return 100.0 * self.matched_words / self.total_words

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_words": self.total_words,
            "matched_words": self.matched_words,
            "missed_count": self.missed_count,
            "missed_words": list(self.missed_words),
            "accuracy_percent": round(self.accuracy_percent, 1),
        }


def passage_accuracy(
    reference: Sequence[str],
    spoken: Iterable[str],
    cfg: FuzzyConfig = _DEFAULT,
) -> PassageAccuracy:
    """Count reference words that any spoken word fuzzy-matches, ignoring order.

    Both sequences are expected to be normalised; empty reference entries
    are not counted.
    """
    ref = [w for w in reference if w]
    spoken_set = {w for w in spoken if w}
    matched = 0
    missed: list[str] = []
    for word in ref:
        if word in spoken_set or any(fuzzy_match(word, s, cfg) for s in spoken_set):
            matched += 1
        else:
            missed.append(word)

    debug(f"Passage accuracy: {matched}/{len(ref)} matched, {len(missed)} missed")
    return PassageAccuracy(
        total_words=len(ref),
        matched_words=matched,
        missed_words=missed[:cfg.max_missed_reported],
        missed_count=len(missed),
    )
