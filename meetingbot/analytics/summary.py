"""Session-wide statistics shared by the aggregator and the export encoder."""

from typing import Iterable

from ..models.session import MeetingSession, SessionSummary, SENTIMENT_LABELS
from ..models.transcription import TranscriptSegment


def count_words(text: str) -> int:
    """Split on runs of whitespace, trim, drop empty tokens, count the rest."""
    if not text:
        return 0
    # str.split() with no separator already trims and drops empty tokens
    return len(text.split())


def count_transcript_words(segments: Iterable[TranscriptSegment]) -> int:
    return sum(count_words(segment.text) for segment in segments)


def summarize_session(session: MeetingSession, now_ms: int) -> SessionSummary:
    """Compute summary statistics for a session.

    Args:
        session: Live or finalized session
        now_ms: Current time, used as the end of a session that is still live

    Returns:
        SessionSummary
    """
    participants = list(session.participants.values())
    end_ms = session.end_timestamp if session.end_timestamp is not None else now_ms
    total_duration = max(0, end_ms - session.start_timestamp)
    total_spoken = sum(p.accumulated_speaking_ms for p in participants)

    distribution = {label: 0 for label in SENTIMENT_LABELS}
    for participant in participants:
        distribution[participant.sentiment.label] += 1

    return SessionSummary(
        total_participants=len(participants),
        total_duration_ms=total_duration,
        total_words=sum(count_transcript_words(p.transcript) for p in participants),
        average_participation=(total_spoken / total_duration) * 100 if total_duration > 0 else 0.0,
        sentiment_distribution=distribution,
    )
