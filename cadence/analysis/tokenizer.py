"""Passage and transcript tokenization."""

from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass
from typing import Any

_EDGE_RE = re.compile(r"^[\W_]+|[\W_]+$", flags=re.UNICODE)


@dataclass(frozen=True)
class ReferenceToken:
    """One word of the passage being read aloud."""
    index: int
    text: str          # original display form
    normalized: str    # lowercase, edge punctuation stripped

    def to_dict(self) -> dict[str, Any]:
        return {"index": self.index, "text": self.text, "normalized": self.normalized}

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> ReferenceToken:
        return cls(index=d["index"], text=d["text"], normalized=d.get("normalized", normalize(d["text"])))


def tokenize(text: str) -> list[str]:
    """Split on any whitespace (spaces, tabs, newlines), dropping empty fragments."""
    if not text:
        return []
    return text.split()


def normalize(token: str) -> str:
    """Normalise a token for matching: lowercase, strip leading/trailing punctuation.

    Inner apostrophes and hyphens survive ("don't", "well-known").
    """
    norm = unicodedata.normalize("NFC", token).strip().lower()
    return _EDGE_RE.sub("", norm)


def normalized_tokens(text: str) -> list[str]:
    """Tokenize and normalize, dropping tokens that normalise to nothing."""
    return [n for n in (normalize(t) for t in tokenize(text)) if n]


def load_passage(text: str) -> list[ReferenceToken]:
    """Build the immutable reference token list for a passage.

    Every whitespace-separated fragment becomes a token, even one that
    normalises to empty, so indices line up with the displayed passage.
    """
    return [
        ReferenceToken(index=i, text=raw, normalized=normalize(raw))
        for i, raw in enumerate(tokenize(text))
    ]
