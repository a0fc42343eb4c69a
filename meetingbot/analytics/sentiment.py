"""Pluggable sentiment strategies."""

from abc import ABC, abstractmethod
from typing import FrozenSet

from ..models.session import SentimentScore

POSITIVE_WORDS: FrozenSet[str] = frozenset([
    'good', 'great', 'excellent', 'amazing', 'fantastic', 'wonderful',
    'perfect', 'love', 'like', 'happy', 'pleased',
])
NEGATIVE_WORDS: FrozenSet[str] = frozenset([
    'bad', 'terrible', 'awful', 'horrible', 'hate', 'dislike',
    'angry', 'frustrated', 'disappointed', 'sad',
])


class SentimentAnalyzer(ABC):
    """Scores the sentiment of a piece of transcript text."""

    @abstractmethod
    def analyze(self, text: str) -> SentimentScore:
        pass


class LexicalSentimentAnalyzer(SentimentAnalyzer):
    """Counts positive and negative keywords.

    A token counts as positive (negative) when it contains any of the
    keywords, so "loved" and "disliked" both register. The score is
    (positive - negative) / (positive + negative); beyond +/-threshold the
    label flips from neutral.
    """

    def __init__(self,
                 positive_words: FrozenSet[str] = POSITIVE_WORDS,
                 negative_words: FrozenSet[str] = NEGATIVE_WORDS,
                 threshold: float = 0.2):
        self.positive_words = positive_words
        self.negative_words = negative_words
        self.threshold = threshold

    def analyze(self, text: str) -> SentimentScore:
        positive_count = 0
        negative_count = 0
        for token in text.lower().split():
            if any(word in token for word in self.positive_words):
                positive_count += 1
            if any(word in token for word in self.negative_words):
                negative_count += 1

        total = positive_count + negative_count
        score = 0.0
        label = "neutral"
        if total > 0:
            score = (positive_count - negative_count) / total
            if score > self.threshold:
                label = "positive"
            elif score < -self.threshold:
                label = "negative"

        return SentimentScore(
            label=label,
            score=score,
            emotions={
                "joy": max(0.0, score),
                "sadness": max(0.0, -score),
                "anger": 0.3 if negative_count > 2 else 0.0,
                "fear": 0.0,
            },
        )
