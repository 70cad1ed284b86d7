"""Built-in reading passages for read-aloud practice."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from cadence.analysis.tokenizer import tokenize

_DIFFICULTY_LABELS = ("Easy", "Medium", "Advanced")


@dataclass(frozen=True)
class ReadingPrompt:
    title: str
    category: str
    text: str
    difficulty: int = 1     # 1-3

    @property
    def word_count(self) -> int:
        return len(tokenize(self.text))

    @property
    def difficulty_label(self) -> str:
        return _DIFFICULTY_LABELS[max(1, min(3, self.difficulty)) - 1]

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "category": self.category,
            "difficulty": self.difficulty,
            "difficulty_label": self.difficulty_label,
            "word_count": self.word_count,
            "text": self.text,
        }


PASSAGES: tuple[ReadingPrompt, ...] = (
    ReadingPrompt(
        title="The Power of Habit",
        category="Psychology",
        text=("Every habit starts with a simple loop. There is a cue that triggers a routine, and at the end "
              "of the routine there is a reward. Over time the brain begins to crave this reward more and more. "
              "Understanding this cycle is the first step to changing any habit that holds you back."),
        difficulty=1,
    ),
    ReadingPrompt(
        title="How Stars Are Born",
        category="Science",
        text=("Stars are born inside enormous clouds of gas and dust called nebulae. Gravity slowly pulls the "
              "material inward until it collapses under its own weight. The core heats up to millions of degrees "
              "and nuclear fusion begins. The star pushes outward with light and energy, balancing the crush of "
              "gravity, and shines for billions of years."),
        difficulty=2,
    ),
    ReadingPrompt(
        title="The Art of Listening",
        category="Communication",
        text=("Most people listen to reply rather than to understand. Real listening means setting aside your own "
              "thoughts and giving full attention to the speaker. Notice their tone, their pauses, and the emotion "
              "behind the words. A single conversation where someone feels truly heard can change the entire "
              "relationship."),
        difficulty=1,
    ),
    ReadingPrompt(
        title="Climate and the Ocean",
        category="Environment",
        text=("The ocean absorbs roughly a quarter of all the carbon dioxide we release into the atmosphere. As "
              "carbon levels rise, seawater becomes more acidic. This process, called ocean acidification, "
              "threatens the shells and skeletons of countless marine creatures. Protecting the ocean means "
              "protecting the very systems that keep our climate stable."),
        difficulty=2,
    ),
    ReadingPrompt(
        title="Why Sleep Matters",
        category="Health",
        text=("During sleep the brain replays the day, consolidating memories and clearing out waste products that "
              "build up during waking hours. A single night of poor sleep can reduce focus, slow reaction time, and "
              "elevate stress hormones. Adults who consistently sleep less than seven hours are at significantly "
              "higher risk of heart disease and depression."),
        difficulty=2,
    ),
    ReadingPrompt(
        title="The Speed of Light",
        category="Physics",
        text=("Nothing in the universe can travel faster than light in a vacuum. Light covers three hundred thousand "
              "kilometres every single second. At this speed it takes only about eight minutes to travel from the "
              "sun to the Earth. Yet the nearest star beyond our sun is so far away that its light takes over four "
              "years to reach us."),
        difficulty=1,
    ),
    ReadingPrompt(
        title="The Courage to Begin",
        category="Motivation",
        text=("The gap between where you are and where you want to be is bridged by a single act: beginning. Most "
              "people wait for the perfect moment, the perfect conditions, the perfect plan. But clarity does not "
              "come before action. It comes from action. Every expert was once a beginner who refused to stop."),
        difficulty=1,
    ),
    ReadingPrompt(
        title="Artificial Intelligence Today",
        category="Technology",
        text=("Modern artificial intelligence systems learn from vast collections of data rather than following "
              "rigid rules written by programmers. They find patterns no human would notice across millions of "
              "examples and use those patterns to make predictions. This approach has transformed fields from "
              "medicine to language translation, yet the systems still have no genuine understanding of what "
              "they process."),
        difficulty=3,
    ),
)


def list_passages(category: str | None = None) -> list[ReadingPrompt]:
    if category is None:
        return list(PASSAGES)
    return [p for p in PASSAGES if p.category.lower() == category.lower()]


def get_passage(title: str) -> ReadingPrompt | None:
    """Case-insensitive lookup by title."""
    key = title.strip().lower()
    for p in PASSAGES:
        if p.title.lower() == key:
            return p
    return None
