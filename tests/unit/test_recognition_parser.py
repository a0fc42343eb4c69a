"""Unit tests for recognition message parsing."""

import json

import pytest

from meetingbot.errors import MalformedMessageError
from meetingbot.recognition.parser import parse_recognition_message


@pytest.mark.unit
class TestParseRecognitionMessage:
    """Test cases for parse_recognition_message."""

    def test_result_message(self, recognition_message):
        raw = recognition_message("Hello, team.", speaker=1, start=1.5, end=2.5, is_final=True)

        event = parse_recognition_message(raw)

        assert event.text == "Hello, team."
        assert event.speaker_index == 1
        assert event.is_final is True
        assert event.speech_final is False
        assert [w.word for w in event.words] == ["Hello,", "team."]
        assert event.words[0].start_time_ms == 1500
        assert event.words[-1].end_time_ms == 2500

    def test_bytes_and_dict_accepted(self, recognition_message):
        raw = recognition_message("good morning")

        from_bytes = parse_recognition_message(raw.encode("utf-8"))
        from_dict = parse_recognition_message(json.loads(raw))

        assert from_bytes == from_dict
        assert from_bytes.text == "good morning"

    def test_metadata_message_ignored(self):
        raw = json.dumps({"type": "Metadata", "request_id": "abc", "duration": 1.2})
        assert parse_recognition_message(raw) is None

    def test_empty_transcript_ignored(self, recognition_message):
        assert parse_recognition_message(recognition_message("")) is None
        assert parse_recognition_message(recognition_message("   ")) is None

    def test_empty_alternatives_ignored(self):
        raw = json.dumps({"channel": {"alternatives": []}, "is_final": True})
        assert parse_recognition_message(raw) is None

    def test_invalid_json_raises(self):
        with pytest.raises(MalformedMessageError) as exc_info:
            parse_recognition_message("{not json")
        assert exc_info.value.kind == "malformed_message"
        assert exc_info.value.raw == "{not json"

    def test_non_object_raises(self):
        with pytest.raises(MalformedMessageError):
            parse_recognition_message("[1, 2, 3]")

    def test_bad_structure_raises(self):
        raw = json.dumps({"channel": {"alternatives": [{"transcript": "hi", "words": [{"word": "hi"}]}]}})
        with pytest.raises(MalformedMessageError):
            parse_recognition_message(raw)

    def test_speaker_defaults_to_zero_without_diarization(self):
        raw = json.dumps({
            "channel": {"alternatives": [{
                "transcript": "no speakers here",
                "confidence": 0.8,
                "words": [{"word": "no", "start": 0.0, "end": 0.2, "confidence": 0.8}],
            }]},
            "is_final": False,
        })

        event = parse_recognition_message(raw)

        assert event.speaker_index == 0
        assert event.words[0].speaker is None

    def test_confidence_clamped_and_end_not_before_start(self):
        raw = json.dumps({
            "channel": {"alternatives": [{
                "transcript": "odd",
                "confidence": 1.7,
                "words": [{"word": "odd", "start": 2.0, "end": 1.0, "confidence": -0.5, "speaker": 0}],
            }]},
            "is_final": True,
        })

        event = parse_recognition_message(raw)

        assert event.confidence == 1.0
        assert event.words[0].confidence == 0.0
        assert event.words[0].end_time_ms == event.words[0].start_time_ms == 2000
