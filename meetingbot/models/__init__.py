"""Data models for the meeting bot."""

from .transcription import WordSegment, RecognitionEvent, TranscriptSegment, ReconciledSegment
from .session import SentimentScore, ParticipantRecord, MeetingSession, SessionSummary
from .audio import AudioChunk, AudioStats
from .export import ExportFormat, ExportOptions, ExportPayload

__all__ = [
    "WordSegment",
    "RecognitionEvent",
    "TranscriptSegment",
    "ReconciledSegment",
    "SentimentScore",
    "ParticipantRecord",
    "MeetingSession",
    "SessionSummary",
    "AudioChunk",
    "AudioStats",
    "ExportFormat",
    "ExportOptions",
    "ExportPayload",
]
