"""Parsing of streaming recognition backend messages.

Messages follow the Deepgram live transcription shape::

    {"channel": {"alternatives": [{"transcript": "...", "confidence": 0.98,
                                   "words": [{"word": "hi", "start": 0.1, "end": 0.4,
                                              "confidence": 0.99, "speaker": 0}]}]},
     "is_final": true, "speech_final": false}

Word times arrive in seconds and are converted to integer milliseconds.
"""

import json
import logging
from typing import Any, Dict, List, Optional, Union

from ..errors import MalformedMessageError
from ..models.transcription import RecognitionEvent, WordSegment

logger = logging.getLogger(__name__)


def _seconds_to_ms(value: Any) -> int:
    return int(round(float(value) * 1000))


def _clamp_confidence(value: Any) -> float:
    return min(1.0, max(0.0, float(value or 0.0)))


def _parse_words(raw_words: Any) -> List[WordSegment]:
    if raw_words is None:
        return []
    if not isinstance(raw_words, list):
        raise TypeError("'words' must be a list")

    words = []
    for raw in raw_words:
        start_ms = _seconds_to_ms(raw["start"])
        end_ms = max(start_ms, _seconds_to_ms(raw["end"]))
        speaker = raw.get("speaker")
        words.append(WordSegment(
            word=str(raw.get("punctuated_word") or raw["word"]),
            start_time_ms=start_ms,
            end_time_ms=end_ms,
            confidence=_clamp_confidence(raw.get("confidence")),
            speaker=int(speaker) if speaker is not None else None,
        ))
    return words


def parse_recognition_message(raw: Union[str, bytes, Dict[str, Any]]) -> Optional[RecognitionEvent]:
    """Parse one backend message into a RecognitionEvent.

    Args:
        raw: JSON text (or an already decoded mapping) received from the backend

    Returns:
        RecognitionEvent, or None when the message is not actionable (metadata
        messages, or results with an empty transcript)

    Raises:
        MalformedMessageError: If the payload is not JSON or does not match the
            expected result structure
    """
    text = raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else raw

    if isinstance(text, dict):
        data = text
    else:
        try:
            data = json.loads(text)
        except (TypeError, ValueError) as e:
            raise MalformedMessageError(f"Invalid JSON from recognition backend: {e}", raw=str(text)[:200])

    if not isinstance(data, dict):
        raise MalformedMessageError("Recognition message is not a JSON object", raw=str(text)[:200])

    if "channel" not in data:
        # Metadata, UtteranceEnd, SpeechStarted and friends
        logger.debug(f"Ignoring non-result message: type={data.get('type')}")
        return None

    try:
        alternatives = data["channel"]["alternatives"]
        if not alternatives:
            return None
        alternative = alternatives[0]
        transcript = (alternative.get("transcript") or "").strip()
        if not transcript:
            return None

        words = _parse_words(alternative.get("words"))
        confidence = _clamp_confidence(alternative.get("confidence"))
    except (KeyError, IndexError, TypeError, ValueError, AttributeError) as e:
        raise MalformedMessageError(f"Unexpected recognition result structure: {e}", raw=str(text)[:200])

    # Diarization attributes the whole result to its first word's speaker
    speaker_index = words[0].speaker if words and words[0].speaker is not None else 0

    return RecognitionEvent(
        speaker_index=speaker_index,
        text=transcript,
        words=words,
        confidence=confidence,
        is_final=bool(data.get("is_final", False)),
        speech_final=bool(data.get("speech_final", False)),
    )
