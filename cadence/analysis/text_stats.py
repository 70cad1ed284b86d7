"""Transcript word statistics: repeated content words."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Any, Iterable

# Everyday function words that are never worth flagging as repetition
COMMON_WORDS: frozenset[str] = frozenset({
    "the", "a", "an", "is", "it", "in", "of", "to", "and", "for", "on", "at", "by", "as", "be",
    "or", "was", "are", "were", "been", "has", "have", "had", "will", "would", "could", "should",
    "may", "might", "do", "does", "did", "can", "not", "no", "i", "you", "he", "she", "we", "they",
    "my", "your", "his", "her", "its", "our", "their", "this", "that", "these", "those", "with",
    "from", "about", "into", "just", "but", "so", "if", "then", "than", "when", "what", "how",
    "who", "which", "there", "here", "where", "up", "out", "very", "some", "more", "also", "me",
    "him", "us", "them", "am", "got", "get", "let", "go", "going", "now", "well", "even", "really",
    "think", "know", "see", "one", "two", "three", "yeah", "yes",
    "want", "need", "make", "made", "good", "great", "say", "said", "back", "look", "come",
})


@dataclass(frozen=True)
class WordFrequency:
    word: str
    count: int

    def to_dict(self) -> dict[str, Any]:
        return {"word": self.word, "count": self.count}


def top_repeated_words(
    tokens: Iterable[str],
    top_n: int = 5,
    min_count: int = 2,
    stop_words: frozenset[str] | set[str] | None = None,
) -> list[WordFrequency]:
    """Most repeated content words in a normalised token stream.

    Words of two characters or fewer and common words are ignored. Ties keep
    first-spoken order.
    """
    if stop_words is None:
        stop_words = COMMON_WORDS
    freq = Counter(t for t in tokens if len(t) > 2 and t not in stop_words)
    return [WordFrequency(w, c) for w, c in freq.most_common() if c >= min_count][:top_n]

