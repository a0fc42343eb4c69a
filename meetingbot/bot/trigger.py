"""Bot trigger: decides whether a segment addresses the bot and what to say back."""

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

from pubsub import pub

from ..models.transcription import ReconciledSegment, TranscriptSegment
from ..timeutils import wall_clock_ms
from ..transcription.publisher import TRANSCRIPT_TOPIC

logger = logging.getLogger(__name__)

BOT_RESPONSE_TOPIC = "bot.response"
DEFAULT_TRIGGER_PHRASES = ("bot", "assistant", "ai", "hey bot", "bot please")
DEFAULT_REPLY = "I'm listening to the meeting and taking notes. How can I help you?"


def _phrase_pattern(phrase: str) -> "re.Pattern":
    words = [re.escape(word) for word in phrase.lower().split()]
    return re.compile(r"\b" + r"\s+".join(words) + r"\b")


def _elapsed_minutes(session_start_ms: int, now_ms: int) -> int:
    return int(max(0, now_ms - session_start_ms) / 60000 + 0.5)


@dataclass
class ResponseContext:
    """What a responder may look at when composing a reply."""
    transcript: Sequence[TranscriptSegment]
    session_start_ms: int
    now_ms: int

    @property
    def elapsed_minutes(self) -> int:
        return _elapsed_minutes(self.session_start_ms, self.now_ms)


class TemplateResponder:
    """Canned replies keyed on keywords in the triggering segment."""

    def respond(self, segment: TranscriptSegment, context: ResponseContext) -> str:
        text = segment.text.lower()

        if "summary" in text or "summarize" in text:
            participant_count = len({s.speaker_index for s in context.transcript})
            return (
                f"So far we have {participant_count} participants in this "
                f"{context.elapsed_minutes} minute meeting. The main topics discussed "
                f"include the recent transcript segments."
            )

        if "who" in text or "participants" in text:
            speakers = len({s.speaker_label for s in context.transcript})
            return f"I can identify {speakers} different speakers in this meeting so far."

        if "time" in text or "duration" in text:
            return f"This meeting has been running for approximately {context.elapsed_minutes} minutes."

        return DEFAULT_REPLY


class BotTrigger:
    """Stateless classifier over transcript segments."""

    def __init__(self,
                 trigger_phrases: Sequence[str] = DEFAULT_TRIGGER_PHRASES,
                 responder: Optional[TemplateResponder] = None):
        self.trigger_phrases = tuple(p.lower() for p in trigger_phrases)
        self._patterns = [_phrase_pattern(p) for p in self.trigger_phrases if p.strip()]
        self.responder = responder or TemplateResponder()

    def matches(self, text: str) -> bool:
        """True if any trigger phrase occurs in the text as a whole word or phrase."""
        lowered = text.lower()
        return any(pattern.search(lowered) for pattern in self._patterns)

    def evaluate(self,
                 segment: TranscriptSegment,
                 transcript: Sequence[TranscriptSegment],
                 session_start_ms: int,
                 now_ms: int) -> Optional[str]:
        """Return the bot's reply if the segment addresses it, else None.

        Args:
            segment: Segment to classify
            transcript: Session transcript so far, used as response context
            session_start_ms: Session start, for elapsed-time replies
            now_ms: Current epoch milliseconds
        """
        if not self.matches(segment.text):
            return None
        context = ResponseContext(transcript=transcript, session_start_ms=session_start_ms, now_ms=now_ms)
        return self.responder.respond(segment, context)


class ResponseSink(ABC):
    """Where bot replies are delivered (speech synthesis, chat, ...)."""

    @abstractmethod
    def speak(self, text: str) -> None:
        pass


class LoggingResponseSink(ResponseSink):
    """Writes replies to the log instead of speaking them."""

    def speak(self, text: str) -> None:
        logger.info(f"Bot says: {text}")


class BotResponder:
    """Listens on the transcript topic and answers segments that address the bot.

    Replies are recorded in `responses`, handed to the response sink and
    published on the bot response topic. A failing sink is logged and does not
    stop the transcript pipeline.
    """

    def __init__(self,
                 trigger: BotTrigger,
                 transcript_provider: Callable[[], List[TranscriptSegment]],
                 session_start_provider: Callable[[], Optional[int]],
                 sink: Optional[ResponseSink] = None,
                 respond_to_interim: bool = False,
                 topic: str = TRANSCRIPT_TOPIC,
                 response_topic: str = BOT_RESPONSE_TOPIC,
                 clock: Callable[[], int] = wall_clock_ms):
        self.trigger = trigger
        self.transcript_provider = transcript_provider
        self.session_start_provider = session_start_provider
        self.sink = sink or LoggingResponseSink()
        self.respond_to_interim = respond_to_interim
        self.topic = topic
        self.response_topic = response_topic
        self.clock = clock

        self.responses: List[str] = []
        pub.subscribe(self.on_segment, self.topic)
        logger.info(f"BotResponder subscribed to {self.topic}")

    def on_segment(self, reconciled: ReconciledSegment) -> None:
        segment = reconciled.segment
        if not segment.is_final and not self.respond_to_interim:
            return

        now_ms = self.clock()
        session_start = self.session_start_provider()
        response = self.trigger.evaluate(
            segment,
            self.transcript_provider(),
            session_start if session_start is not None else now_ms,
            now_ms,
        )
        if response is None:
            return

        logger.info(f"Bot addressed by {segment.speaker_label}: '{segment.text[:50]}'")
        self.responses.append(response)
        try:
            self.sink.speak(response)
        except Exception as e:
            logger.error(f"Response sink failed: {e}")
        pub.sendMessage(self.response_topic, response=response, segment=segment)

    def shutdown(self) -> None:
        if pub.isSubscribed(self.on_segment, self.topic):
            pub.unsubscribe(self.on_segment, self.topic)
        logger.info("BotResponder unsubscribed")
