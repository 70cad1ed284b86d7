"""Live alignment of a growing transcript onto the reference passage.

The recognizer delivers the *cumulative* transcript on every update. The
matcher walks only the spoken words it has not accounted for yet:

1. exact match at the cursor -> CORRECT, cursor + 1
2. match within the next ``max_lookahead`` words -> words jumped over become
   STUMBLED, the matched word CORRECT, cursor moves past it
3. no match -> the cursor word is STUMBLED with what was heard, cursor + 1

Exactly one spoken word is consumed per step, matched or not, so the cursor
keeps advancing under noisy recognition. Words never reached are SKIPPED at
finish time. Reference tokens that normalise to nothing (a lone dash) can
never be spoken, so they are left out of the summary counts.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

from cadence.analysis.timing import compute_wpm
from cadence.analysis.tokenizer import ReferenceToken, normalized_tokens
from cadence.utils.logging import debug, session_log


# AlignmentConfig.max_lookahead carries the same default.
MAX_LOOKAHEAD = 2


class WordAlignmentState(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    CORRECT = "correct"
    STUMBLED = "stumbled"
    SKIPPED = "skipped"


_RESOLVED = (WordAlignmentState.CORRECT, WordAlignmentState.STUMBLED)
_OPEN = (WordAlignmentState.PENDING, WordAlignmentState.ACTIVE)


@dataclass(frozen=True)
class AlignedWord:
    token: ReferenceToken
    state: WordAlignmentState = WordAlignmentState.PENDING
    recognized_as: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "index": self.token.index,
            "text": self.token.text,
            "normalized": self.token.normalized,
            "state": self.state.value,
            "recognized_as": self.recognized_as,
        }


@dataclass(frozen=True)
class IngestResult:
    """Outcome of one transcript update."""
    consumed: int = 0             # spoken words processed this update
    current_index: int = 0
    reached_end: bool = False     # caller should arm the finish grace timer

    @property
    def changed(self) -> bool:
        return self.consumed > 0


@dataclass(frozen=True)
class AlignmentSummary:
    total_words: int
    correct_count: int
    stumbled_words: list[str] = field(default_factory=list)
    skipped_words: list[str] = field(default_factory=list)
    accuracy_percent: float = 100.0
    wpm: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_words": self.total_words,
            "correct_count": self.correct_count,
            "stumbled_words": list(self.stumbled_words),
            "skipped_words": list(self.skipped_words),
            "accuracy_percent": round(self.accuracy_percent, 1),
            "wpm": self.wpm,
        }


class AlignmentMatcher:
    """State machine mapping spoken words onto reference tokens.

    Owns the AlignedWord list; callers only read copies via ``words``.
    Not thread-safe on its own: the session serialises calls.
    """

    def __init__(self, reference: list[ReferenceToken], max_lookahead: int = MAX_LOOKAHEAD):
        self._reference = list(reference)
        self._words = [AlignedWord(token=t) for t in self._reference]
        self.max_lookahead = max_lookahead
        self._source_idx = 0
        self._summary: AlignmentSummary | None = None

    # ── Read-only views ─────────────────────────────────────────────────────

    @property
    def words(self) -> list[AlignedWord]:
        return list(self._words)

    @property
    def reference(self) -> list[ReferenceToken]:
        return list(self._reference)

    @property
    def current_index(self) -> int:
        return self._source_idx

    @property
    def finished(self) -> bool:
        return self._summary is not None

    @property
    def summary(self) -> AlignmentSummary | None:
        return self._summary

    def already_matched(self) -> int:
        return sum(1 for w in self._words if w.state in _RESOLVED)

    def correct_count(self) -> int:
        return sum(1 for w in self._words if w.state == WordAlignmentState.CORRECT)

    def active_index(self) -> int | None:
        for i, w in enumerate(self._words):
            if w.state == WordAlignmentState.ACTIVE:
                return i
        return None

    # ── Transitions ─────────────────────────────────────────────────────────

    def _set(self, idx: int, state: WordAlignmentState, recognized_as: str | None = None) -> None:
        word = self._words[idx]
        if recognized_as is None:
            recognized_as = word.recognized_as
        self._words[idx] = replace(word, state=state, recognized_as=recognized_as)

    def _lookahead_match(self, spoken: str, source_idx: int) -> int | None:
        for lookahead in range(1, self.max_lookahead + 1):
            ahead = source_idx + lookahead
            if ahead >= len(self._reference):
                break
            if spoken == self._reference[ahead].normalized:
                return ahead
        return None

    def ingest(self, full_transcript: str) -> IngestResult:
        """Apply a cumulative transcript snapshot.

        Snapshots that are no longer than what is already accounted for are
        recognizer artifacts (repeats, rewrites) and leave state untouched.
        """
        if self._summary is not None:
            return IngestResult(current_index=self._source_idx)

        spoken = normalized_tokens(full_transcript)
        already = self.already_matched()
        if len(spoken) <= already:
            session_log(f"no-op update: {len(spoken)} spoken <= {already} matched")
            return IngestResult(current_index=self._source_idx)

        source_idx = already
        consumed = 0
        total = len(self._reference)

        for spoken_word in spoken[already:]:
            if source_idx >= total:
                break
            consumed += 1

            if spoken_word == self._reference[source_idx].normalized:
                self._set(source_idx, WordAlignmentState.CORRECT, spoken_word)
                source_idx += 1
                continue

            ahead = self._lookahead_match(spoken_word, source_idx)
            if ahead is not None:
                for jumped in range(source_idx, ahead):
                    if self._words[jumped].state in _OPEN:
                        self._set(jumped, WordAlignmentState.STUMBLED)
                self._set(ahead, WordAlignmentState.CORRECT, spoken_word)
                session_log(f"lookahead +{ahead - source_idx}: '{spoken_word}' -> #{ahead}")
                source_idx = ahead + 1
            else:
                self._set(source_idx, WordAlignmentState.STUMBLED, spoken_word)
                source_idx += 1

        self._source_idx = max(self._source_idx, source_idx)
        self._activate_next()

        reached_end = self._source_idx >= total - 1
        return IngestResult(consumed=consumed, current_index=self._source_idx, reached_end=reached_end)

    def _activate_next(self) -> None:
        for i in range(self._source_idx, len(self._words)):
            state = self._words[i].state
            if state == WordAlignmentState.ACTIVE:
                return
            if state == WordAlignmentState.PENDING:
                self._set(i, WordAlignmentState.ACTIVE)
                return

    def finish(self, elapsed_seconds: float) -> AlignmentSummary:
        """Resolve open words as SKIPPED and summarise. Runs once; later calls return the same summary."""
        if self._summary is not None:
            return self._summary

        for i, w in enumerate(self._words):
            if w.state in _OPEN:
                self._set(i, WordAlignmentState.SKIPPED)

        scored = [w for w in self._words if w.token.normalized]
        total = len(scored)
        correct = self.correct_count()
        accuracy = 100.0 * correct / total if total else 100.0

        self._summary = AlignmentSummary(
            total_words=total,
            correct_count=correct,
            stumbled_words=[w.token.text for w in scored if w.state == WordAlignmentState.STUMBLED],
            skipped_words=[w.token.text for w in scored if w.state == WordAlignmentState.SKIPPED],
            accuracy_percent=accuracy,
            wpm=compute_wpm(correct, elapsed_seconds),
        )
        debug(f"Alignment finished: {correct}/{total} correct ({accuracy:.1f}%)")
        return self._summary
