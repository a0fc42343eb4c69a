"""Session and participant data models."""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .transcription import TranscriptSegment


SENTIMENT_LABELS = ("positive", "neutral", "negative")


def _neutral_emotions() -> Dict[str, float]:
    return {"joy": 0.0, "sadness": 0.0, "anger": 0.0, "fear": 0.0}


@dataclass
class SentimentScore:
    """Sentiment of a participant's latest utterance."""
    label: str = "neutral"
    score: float = 0.0  # -1.0 (negative) to 1.0 (positive)
    emotions: Dict[str, float] = field(default_factory=_neutral_emotions)

    def __post_init__(self):
        if self.label not in SENTIMENT_LABELS:
            raise ValueError(f"Unknown sentiment label: {self.label}")
        if not -1.0 <= self.score <= 1.0:
            raise ValueError(f"Sentiment score out of range: {self.score}")


@dataclass
class ParticipantRecord:
    """Analytics identity a speaker index resolves to."""
    participant_id: str
    display_name: str
    join_timestamp: int  # Epoch milliseconds
    leave_timestamp: Optional[int] = None
    accumulated_speaking_ms: int = 0
    total_time_attended_ms: int = 0
    sentiment: SentimentScore = field(default_factory=SentimentScore)
    transcript: List[TranscriptSegment] = field(default_factory=list)

    @property
    def has_left(self) -> bool:
        return self.leave_timestamp is not None


@dataclass
class MeetingSession:
    """Aggregate root for one analyzed meeting."""
    session_id: str
    source_url: str
    start_timestamp: int  # Epoch milliseconds
    end_timestamp: Optional[int] = None
    participants: Dict[str, ParticipantRecord] = field(default_factory=dict)
    full_transcript: List[TranscriptSegment] = field(default_factory=list)

    @property
    def is_finalized(self) -> bool:
        return self.end_timestamp is not None


@dataclass
class SessionSummary:
    """Computed session-wide statistics."""
    total_participants: int
    total_duration_ms: int
    total_words: int
    average_participation: float  # Percentage of session time spent speaking
    sentiment_distribution: Dict[str, int]
