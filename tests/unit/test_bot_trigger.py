"""Unit tests for the bot trigger, template responder and pub/sub responder."""

from unittest.mock import MagicMock

import pytest
from pubsub import pub

from meetingbot.bot.trigger import (
    BOT_RESPONSE_TOPIC,
    DEFAULT_REPLY,
    BotResponder,
    BotTrigger,
    ResponseSink,
)
from meetingbot.models.transcription import ReconciledSegment, TranscriptSegment
from meetingbot.transcription.publisher import TranscriptPublisher

START_MS = 1_704_103_200_000


def segment(text, speaker=0, is_final=True):
    return TranscriptSegment(
        speaker_label=f"Speaker {speaker}",
        speaker_index=speaker,
        text=text,
        start_time_ms=0,
        end_time_ms=500,
        confidence=0.9,
        is_final=is_final,
    )


@pytest.mark.unit
class TestBotTrigger:
    """Test cases for BotTrigger matching and responses."""

    @pytest.mark.parametrize("text", [
        "Hey bot, what's up?",
        "Can the assistant help",
        "ask the AI please",
        "BOT PLEASE summarize",
    ])
    def test_matches_trigger_phrases(self, text):
        assert BotTrigger().matches(text) is True

    @pytest.mark.parametrize("text", [
        "She said the robots were fine",
        "we need more bandwidth",
        "",
    ])
    def test_ignores_words_containing_triggers(self, text):
        assert BotTrigger().matches(text) is False

    def test_non_addressed_segment_gets_no_reply(self):
        assert BotTrigger().evaluate(segment("just chatting"), [], START_MS, START_MS) is None

    def test_summary_reply(self):
        transcript = [segment("hi", 0), segment("hello", 1), segment("hey bot give me a summary", 0)]

        reply = BotTrigger().evaluate(transcript[-1], transcript, START_MS, START_MS + 12 * 60000)

        assert reply == (
            "So far we have 2 participants in this 12 minute meeting. "
            "The main topics discussed include the recent transcript segments."
        )

    def test_participants_reply(self):
        transcript = [segment("hi", 0), segment("hello", 1), segment("yo", 2)]

        reply = BotTrigger().evaluate(segment("bot, who is here?"), transcript, START_MS, START_MS)

        assert reply == "I can identify 3 different speakers in this meeting so far."

    def test_duration_reply(self):
        reply = BotTrigger().evaluate(segment("assistant, how much time has passed"), [], START_MS,
                                      START_MS + 30 * 60000 + 20000)

        assert reply == "This meeting has been running for approximately 30 minutes."

    def test_default_reply(self):
        assert BotTrigger().evaluate(segment("hello bot"), [], START_MS, START_MS) == DEFAULT_REPLY

    def test_custom_phrases(self):
        trigger = BotTrigger(trigger_phrases=["computer"])

        assert trigger.matches("Computer, status") is True
        assert trigger.matches("hey bot") is False


@pytest.mark.unit
class TestBotResponder:
    """Test cases for BotResponder over pub/sub."""

    def make_responder(self, sink, respond_to_interim=False):
        transcript = []
        responder = BotResponder(
            BotTrigger(),
            transcript_provider=lambda: transcript,
            session_start_provider=lambda: START_MS,
            sink=sink,
            respond_to_interim=respond_to_interim,
            clock=lambda: START_MS + 60000,
        )
        return responder, transcript

    def test_final_segment_answered_and_published(self):
        sink = MagicMock(spec=ResponseSink)
        responder, transcript = self.make_responder(sink)
        published = []

        def on_response(response, segment):
            published.append((response, segment.text))

        pub.subscribe(on_response, BOT_RESPONSE_TOPIC)
        addressed = segment("hey bot what time is it")
        transcript.append(addressed)

        TranscriptPublisher().publish(ReconciledSegment(slot=0, segment=addressed))

        expected = "This meeting has been running for approximately 1 minutes."
        assert responder.responses == [expected]
        sink.speak.assert_called_once_with(expected)
        assert published == [(expected, "hey bot what time is it")]

    def test_interim_segment_ignored_by_default(self):
        sink = MagicMock(spec=ResponseSink)
        responder, _ = self.make_responder(sink)

        TranscriptPublisher().publish(ReconciledSegment(slot=0, segment=segment("hey bot", is_final=False)))

        assert responder.responses == []
        sink.speak.assert_not_called()

    def test_interim_segment_answered_when_enabled(self):
        sink = MagicMock(spec=ResponseSink)
        responder, _ = self.make_responder(sink, respond_to_interim=True)

        TranscriptPublisher().publish(ReconciledSegment(slot=0, segment=segment("hey bot", is_final=False)))

        assert responder.responses == [DEFAULT_REPLY]

    def test_sink_failure_does_not_propagate(self):
        sink = MagicMock(spec=ResponseSink)
        sink.speak.side_effect = RuntimeError("speaker unplugged")
        responder, _ = self.make_responder(sink)

        TranscriptPublisher().publish(ReconciledSegment(slot=0, segment=segment("hello assistant")))

        assert responder.responses == [DEFAULT_REPLY]

    def test_shutdown_unsubscribes(self):
        sink = MagicMock(spec=ResponseSink)
        responder, _ = self.make_responder(sink)
        responder.shutdown()

        TranscriptPublisher().publish(ReconciledSegment(slot=0, segment=segment("hey bot")))

        assert responder.responses == []
