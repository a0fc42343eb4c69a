"""Export encoder: finalized session -> report bytes."""

import csv
import io
import json
import logging
from typing import Any, Callable, Dict, List

from ..errors import SessionNotFinalizedError, UnsupportedExportFormatError
from ..models.export import ExportFormat, ExportOptions, ExportPayload
from ..models.session import MeetingSession, ParticipantRecord
from ..models.transcription import TranscriptSegment, WordSegment
from ..timeutils import iso_date_from_ms, iso_from_ms, wall_clock_ms
from .summary import count_transcript_words, summarize_session

logger = logging.getLogger(__name__)

UTF8_BOM = "\ufeff"
STILL_IN_MEETING = "Still in meeting"

MIME_TYPES = {
    ExportFormat.STRUCTURED: "application/json",
    ExportFormat.TABULAR: "text/csv",
}
EXTENSIONS = {
    ExportFormat.STRUCTURED: ".json",
    ExportFormat.TABULAR: ".csv",
}


def export_basename(session: MeetingSession) -> str:
    """Suggested file name without extension: meeting-<sessionId>-<ISO date>."""
    return f"meeting-{session.session_id}-{iso_date_from_ms(session.end_timestamp)}"


def decode_structured(data: bytes) -> Dict[str, Any]:
    """Read a structured export payload back into a dictionary."""
    return json.loads(data.decode("utf-8"))


class ExportEncoder:
    """Serializes a finalized MeetingSession to structured or tabular reports."""

    def __init__(self, clock: Callable[[], int] = wall_clock_ms):
        self.clock = clock

    @staticmethod
    def supports(export_format: ExportFormat) -> bool:
        return export_format in MIME_TYPES

    def encode(self, session: MeetingSession, options: ExportOptions) -> ExportPayload:
        """Encode a finalized session.

        Args:
            session: Finalized session snapshot
            options: Format and inclusion flags

        Returns:
            ExportPayload with bytes, MIME type and suggested filename

        Raises:
            UnsupportedExportFormatError: For the spreadsheet format
            SessionNotFinalizedError: If the session is still live
        """
        if not self.supports(options.format):
            raise UnsupportedExportFormatError(options.format.value)
        if session is None or not session.is_finalized:
            raise SessionNotFinalizedError()

        if options.format is ExportFormat.TABULAR:
            data = self._encode_tabular(session, options)
        else:
            data = self._encode_structured(session, options)

        payload = ExportPayload(
            data=data,
            mime_type=MIME_TYPES[options.format],
            basename=export_basename(session),
            extension=EXTENSIONS[options.format],
        )
        logger.info(f"Encoded {options.format.value} export for session {session.session_id}: {len(data)} bytes")
        return payload

    # Structured

    def prepare_export_data(self, session: MeetingSession, options: ExportOptions) -> Dict[str, Any]:
        summary = summarize_session(session, self.clock())
        return {
            "session": {
                "id": session.session_id,
                "url": session.source_url,
                "startTime": session.start_timestamp,
                "endTime": session.end_timestamp,
                "participantCount": len(session.participants),
                "segmentCount": len(session.full_transcript),
            },
            "summary": {
                "totalParticipants": summary.total_participants,
                "totalDuration": summary.total_duration_ms,
                "totalWords": summary.total_words,
                "averageParticipation": summary.average_participation,
                "sentimentDistribution": dict(summary.sentiment_distribution),
            },
            "participants": [
                self._participant_record(participant, options)
                for participant in session.participants.values()
            ],
            "exportTimestamp": self.clock(),
        }

    def _participant_record(self, participant: ParticipantRecord, options: ExportOptions) -> Dict[str, Any]:
        record: Dict[str, Any] = {
            "userId": participant.participant_id,
            "userName": participant.display_name,
            "joinTimestamp": participant.join_timestamp,
            "leaveTimestamp": participant.leave_timestamp,
            "totalTimeAttended": participant.total_time_attended_ms,
            "totalTimeSpoken": participant.accumulated_speaking_ms,
            "wordCount": count_transcript_words(participant.transcript),
        }
        if options.include_sentiment:
            record["sentiment"] = {
                "overall": participant.sentiment.label,
                "score": participant.sentiment.score,
                "emotions": dict(participant.sentiment.emotions),
            }
        if options.include_transcript:
            record["transcript"] = [
                self._segment_record(segment, options.include_word_timing)
                for segment in participant.transcript
            ]
        return record

    @staticmethod
    def _segment_record(segment: TranscriptSegment, include_words: bool) -> Dict[str, Any]:
        record: Dict[str, Any] = {
            "speaker": segment.speaker_label,
            "speakerIndex": segment.speaker_index,
            "text": segment.text,
            "startTime": segment.start_time_ms,
            "endTime": segment.end_time_ms,
            "confidence": segment.confidence,
            "isFinal": segment.is_final,
            "degradedTiming": segment.degraded_timing,
        }
        if include_words:
            record["words"] = [ExportEncoder._word_record(word) for word in segment.words]
        return record

    @staticmethod
    def _word_record(word: WordSegment) -> Dict[str, Any]:
        return {
            "word": word.word,
            "startTime": word.start_time_ms,
            "endTime": word.end_time_ms,
            "confidence": word.confidence,
            "speaker": word.speaker,
        }

    def _encode_structured(self, session: MeetingSession, options: ExportOptions) -> bytes:
        data = self.prepare_export_data(session, options)
        return json.dumps(data, indent=2, ensure_ascii=False).encode("utf-8")

    # Tabular

    @staticmethod
    def _format_cell(value: Any) -> str:
        if value is None:
            return ""
        if isinstance(value, str):
            return value
        if isinstance(value, (bool, int, float)):
            return str(value)
        # Objects and lists are JSON-encoded so they read sensibly in one cell
        return json.dumps(value, ensure_ascii=False)

    def tabular_rows(self, session: MeetingSession, options: ExportOptions) -> List[List[Any]]:
        headers = [
            "User ID",
            "User Name",
            "Join Time",
            "Leave Time",
            "Time Attended (min)",
            "Time Spoken (min)",
            "Words Spoken",
        ]
        if options.include_sentiment:
            headers += ["Sentiment", "Sentiment Score"]

        rows: List[List[Any]] = [headers]
        for participant in session.participants.values():
            leave_time = (
                iso_from_ms(participant.leave_timestamp)
                if participant.leave_timestamp is not None else STILL_IN_MEETING
            )
            row: List[Any] = [
                participant.participant_id,
                participant.display_name,
                iso_from_ms(participant.join_timestamp),
                leave_time,
                f"{participant.total_time_attended_ms / 60000:.2f}",
                f"{participant.accumulated_speaking_ms / 60000:.2f}",
                count_transcript_words(participant.transcript),
            ]
            if options.include_sentiment:
                row.append(participant.sentiment.label)
                row.append(f"{participant.sentiment.score:.3f}")
            rows.append(row)
        return rows

    def _encode_tabular(self, session: MeetingSession, options: ExportOptions) -> bytes:
        buffer = io.StringIO()
        writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
        for row in self.tabular_rows(session, options):
            writer.writerow([self._format_cell(cell) for cell in row])
        text = buffer.getvalue().rstrip("\n")
        return (UTF8_BOM + text).encode("utf-8")
