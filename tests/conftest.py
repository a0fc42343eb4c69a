"""Pytest configuration and fixtures for meeting bot tests."""

import json
import logging
import tempfile
import wave
from pathlib import Path

import numpy as np
import pytest
from pubsub import pub

from meetingbot.models.transcription import RecognitionEvent, WordSegment


# Configure logging for tests
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

SESSION_EPOCH_MS = 1_704_103_200_000  # 2024-01-01T10:00:00.000Z


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests without I/O")
    config.addinivalue_line("markers", "integration: tests that wire several components together")


class FakeClock:
    """Deterministic epoch-milliseconds clock."""

    def __init__(self, start_ms: int = SESSION_EPOCH_MS):
        self.now_ms = start_ms

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, ms: int) -> int:
        self.now_ms += ms
        return self.now_ms


@pytest.fixture(autouse=True)
def clean_pubsub():
    """Drop listeners registered by a test so they cannot leak into the next one."""
    yield
    pub.unsubAll()


@pytest.fixture
def temp_data_dir():
    """Create temporary directory for test data."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield temp_dir


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_event():
    """Build a RecognitionEvent whose words span start_ms..end_ms evenly."""
    def _make(speaker=0, text="hello there", start_ms=0, end_ms=1000,
              is_final=False, confidence=0.9, speech_final=False):
        tokens = text.split()
        words = []
        if tokens and end_ms is not None:
            step = (end_ms - start_ms) / len(tokens)
            for i, token in enumerate(tokens):
                words.append(WordSegment(
                    word=token,
                    start_time_ms=int(start_ms + i * step),
                    end_time_ms=int(start_ms + (i + 1) * step),
                    confidence=confidence,
                    speaker=speaker,
                ))
        return RecognitionEvent(
            speaker_index=speaker,
            text=text,
            words=words,
            confidence=confidence,
            is_final=is_final,
            speech_final=speech_final,
        )

    return _make


@pytest.fixture
def recognition_message():
    """Build a backend result message as JSON text (times in seconds)."""
    def _message(text="hello there", speaker=0, start=0.0, end=1.0,
                 is_final=True, confidence=0.95, speech_final=False):
        tokens = text.split()
        words = []
        if tokens:
            step = (end - start) / len(tokens)
            for i, token in enumerate(tokens):
                words.append({
                    "word": token.lower().strip(".,?!"),
                    "punctuated_word": token,
                    "start": start + i * step,
                    "end": start + (i + 1) * step,
                    "confidence": confidence,
                    "speaker": speaker,
                })
        return json.dumps({
            "type": "Results",
            "channel": {"alternatives": [{
                "transcript": text,
                "confidence": confidence,
                "words": words,
            }]},
            "is_final": is_final,
            "speech_final": speech_final,
        })

    return _message


@pytest.fixture
def sample_audio_chunk():
    """One second of a 440 Hz sine wave as 16-bit mono PCM."""
    sample_rate = 16000
    t = np.linspace(0, 1.0, sample_rate, False)
    wave_data = np.sin(2 * np.pi * 440 * t) * 0.5
    return (wave_data * 32767).astype(np.int16).tobytes()


@pytest.fixture
def sample_audio_file(temp_data_dir, sample_audio_chunk):
    """A three second WAV file."""
    file_path = Path(temp_data_dir) / "meeting_audio.wav"
    with wave.open(str(file_path), 'wb') as wf:
        wf.setnchannels(1)
        wf.setsampwidth(2)
        wf.setframerate(16000)
        for _ in range(3):
            wf.writeframes(sample_audio_chunk)
    return str(file_path)
