"""Session aggregator: per-participant analytics driven by reconciled segments."""

import copy
import logging
import threading
from typing import Callable, Dict, List, Optional

from ..errors import SessionStateError
from ..models.session import MeetingSession, ParticipantRecord, SentimentScore, SessionSummary
from ..models.transcription import ReconciledSegment
from ..timeutils import wall_clock_ms
from .sentiment import LexicalSentimentAnalyzer, SentimentAnalyzer
from .summary import summarize_session

logger = logging.getLogger(__name__)


def placeholder_participant_id(speaker_index: int) -> str:
    return f"unknown_{speaker_index}"


class SessionAggregator:
    """Owns the live MeetingSession and every ParticipantRecord in it.

    `apply` is the only way transcript state changes. Each timeline slot is
    owned by the participant it was first attributed to; a revised segment for
    that slot replaces the old one in both the session transcript and the
    owner's transcript, and the owner's speaking time is recomputed from its
    current segments so revisions never double count.
    """

    def __init__(self,
                 sentiment_analyzer: Optional[SentimentAnalyzer] = None,
                 clock: Callable[[], int] = wall_clock_ms):
        """Initialize session aggregator.

        Args:
            sentiment_analyzer: Strategy used to score each segment's text
            clock: Epoch-milliseconds clock for lifecycle timestamps
        """
        self.sentiment_analyzer = sentiment_analyzer or LexicalSentimentAnalyzer()
        self.clock = clock

        self.session: Optional[MeetingSession] = None
        self._speaker_mapping: Dict[int, str] = {}
        self._slot_owners: List[str] = []

        self.lock = threading.RLock()

    @property
    def is_active(self) -> bool:
        return self.session is not None and not self.session.is_finalized

    @property
    def is_finalized(self) -> bool:
        return self.session is not None and self.session.is_finalized

    def _require_active(self) -> MeetingSession:
        if self.session is None:
            raise SessionStateError("No active session. Start analysis first.")
        if self.session.is_finalized:
            raise SessionStateError(f"Session {self.session.session_id} is finalized and read-only")
        return self.session

    def start_session(self, session_id: str, source_url: str) -> MeetingSession:
        """Create the live session.

        Raises:
            SessionStateError: If a session is already live
        """
        with self.lock:
            if self.is_active:
                raise SessionStateError(
                    f"Session {self.session.session_id} already active. Leave the meeting first."
                )
            self.session = MeetingSession(
                session_id=session_id,
                source_url=source_url,
                start_timestamp=self.clock(),
            )
            self._speaker_mapping.clear()
            self._slot_owners.clear()
            logger.info(f"Started session {session_id} for {source_url}")
            return copy.deepcopy(self.session)

    def add_participant(self, participant_id: str, display_name: str,
                        speaker_index: Optional[int] = None) -> ParticipantRecord:
        """Register a participant, optionally binding a speaker index to it.

        Adding an existing participant only updates the speaker binding.
        """
        with self.lock:
            session = self._require_active()
            participant = session.participants.get(participant_id)
            if participant is None:
                participant = ParticipantRecord(
                    participant_id=participant_id,
                    display_name=display_name,
                    join_timestamp=self.clock(),
                )
                session.participants[participant_id] = participant
                logger.info(f"Participant joined: {participant_id} ({display_name})")

            if speaker_index is not None:
                self.map_speaker(speaker_index, participant_id)
            return copy.deepcopy(participant)

    def map_speaker(self, speaker_index: int, participant_id: str) -> None:
        """Bind a speaker index to a participant for segments not yet attributed.

        History already attributed to the placeholder identity stays there.
        """
        with self.lock:
            previous = self._speaker_mapping.get(speaker_index)
            self._speaker_mapping[speaker_index] = participant_id
            if previous != participant_id:
                logger.info(f"Speaker {speaker_index} mapped to {participant_id} (was {previous})")

    def _resolve_participant(self, speaker_index: int, speaker_label: str) -> ParticipantRecord:
        participant_id = self._speaker_mapping.get(speaker_index, placeholder_participant_id(speaker_index))
        participant = self.session.participants.get(participant_id)
        if participant is None:
            participant = ParticipantRecord(
                participant_id=participant_id,
                display_name=speaker_label,
                join_timestamp=self.clock(),
            )
            self.session.participants[participant_id] = participant
            logger.info(f"New speaker observed: {participant_id}")
        return participant

    def apply(self, reconciled: ReconciledSegment) -> str:
        """Apply a reconciled segment to session and participant state.

        Args:
            reconciled: Output of the segment reconciler

        Returns:
            Id of the participant that owns the segment's slot
        """
        with self.lock:
            session = self._require_active()
            segment = reconciled.segment
            slot = reconciled.slot
            transcript = session.full_transcript

            if slot == len(transcript):
                owner = self._resolve_participant(segment.speaker_index, segment.speaker_label)
                transcript.append(segment)
                owner.transcript.append(segment)
                self._slot_owners.append(owner.participant_id)
            elif slot < len(transcript):
                owner = session.participants[self._slot_owners[slot]]
                old = transcript[slot]
                transcript[slot] = segment
                position = next(i for i, s in enumerate(owner.transcript) if s is old)
                owner.transcript[position] = segment
            else:
                raise ValueError(f"Reconciled slot {slot} skips past the end of the transcript ({len(transcript)})")

            owner.accumulated_speaking_ms = sum(s.duration_ms for s in owner.transcript)
            # Sentiment follows the owner's most recent utterance
            owner.sentiment = self.sentiment_analyzer.analyze(owner.transcript[-1].text)
            return owner.participant_id

    def update_participant_sentiment(self, participant_id: str, sentiment: SentimentScore) -> None:
        with self.lock:
            participant = self._require_active().participants.get(participant_id)
            if participant:
                participant.sentiment = sentiment

    def mark_participant_left(self, participant_id: str) -> None:
        """Record an explicit departure. The leave timestamp is set once."""
        with self.lock:
            participant = self._require_active().participants.get(participant_id)
            if participant and not participant.has_left:
                participant.leave_timestamp = self.clock()
                participant.total_time_attended_ms = max(0, participant.leave_timestamp - participant.join_timestamp)
                logger.info(f"Participant left: {participant_id}")

    def end_session(self) -> Optional[MeetingSession]:
        """Finalize the session and close every participant still present.

        Returns:
            Snapshot of the finalized session, or None if there was nothing to
            finalize (no session, or already finalized)
        """
        with self.lock:
            if self.session is None or self.session.is_finalized:
                logger.debug("end_session called with no live session, ignoring")
                return None

            session = self.session
            session.end_timestamp = max(self.clock(), session.start_timestamp)
            for participant in session.participants.values():
                participant.accumulated_speaking_ms = sum(s.duration_ms for s in participant.transcript)
                if not participant.has_left:
                    participant.leave_timestamp = session.end_timestamp
                    participant.total_time_attended_ms = max(
                        0, participant.leave_timestamp - participant.join_timestamp
                    )

            logger.info(
                f"Session {session.session_id} finalized: {len(session.participants)} participants, "
                f"{len(session.full_transcript)} segments"
            )
            return copy.deepcopy(session)

    def get_participant(self, participant_id: str) -> Optional[ParticipantRecord]:
        with self.lock:
            if self.session is None:
                return None
            participant = self.session.participants.get(participant_id)
            return copy.deepcopy(participant) if participant else None

    def get_all_participants(self) -> List[ParticipantRecord]:
        with self.lock:
            if self.session is None:
                return []
            return copy.deepcopy(list(self.session.participants.values()))

    def get_session_summary(self) -> SessionSummary:
        with self.lock:
            if self.session is None:
                raise SessionStateError("No session to summarize")
            return summarize_session(self.session, self.clock())

    def snapshot(self) -> Optional[MeetingSession]:
        """Deep copy of the current session for read-only consumers."""
        with self.lock:
            return copy.deepcopy(self.session)

    def reset(self) -> None:
        with self.lock:
            self.session = None
            self._speaker_mapping.clear()
            self._slot_owners.clear()
