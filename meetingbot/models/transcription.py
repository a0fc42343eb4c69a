"""Transcription-related data models."""

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass(frozen=True)
class WordSegment:
    """A single recognized word with timing in milliseconds."""
    word: str
    start_time_ms: int
    end_time_ms: int
    confidence: float
    speaker: Optional[int] = None


@dataclass(frozen=True)
class RecognitionEvent:
    """One recognition result as delivered by the speech backend."""
    speaker_index: int
    text: str
    words: List[WordSegment] = field(default_factory=list)
    confidence: float = 0.0
    is_final: bool = False
    speech_final: bool = False  # Backend detected an utterance boundary


@dataclass
class TranscriptSegment:
    """The reconciled unit of the transcript timeline."""
    speaker_label: str
    speaker_index: int
    text: str
    start_time_ms: int
    end_time_ms: int
    confidence: float
    words: List[WordSegment] = field(default_factory=list)
    is_final: bool = False
    degraded_timing: bool = False  # Wall-clock fallback, no word timing from backend

    def __post_init__(self):
        if self.start_time_ms > self.end_time_ms:
            raise ValueError(
                f"Segment ends before it starts: {self.start_time_ms} > {self.end_time_ms}"
            )
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"Segment confidence out of range: {self.confidence}")

    @property
    def duration_ms(self) -> int:
        return self.end_time_ms - self.start_time_ms


@dataclass
class ReconciledSegment:
    """Outcome of applying one recognition event to the timeline."""
    slot: int  # Index in the session-wide timeline
    segment: TranscriptSegment
    previous: Optional[TranscriptSegment] = None  # Segment replaced in place, None for an append

    @property
    def is_update(self) -> bool:
        return self.previous is not None
