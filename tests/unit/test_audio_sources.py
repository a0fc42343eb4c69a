"""Unit tests for audio sources and source selection."""

import sys
import threading
from unittest.mock import MagicMock, patch

import pytest

from meetingbot.audio.capture import MicrophoneSource
from meetingbot.audio.file_source import WavFileSource
from meetingbot.audio.source import AudioSource, select_audio_source
from meetingbot.errors import NoAudioSourceError


class StubSource(AudioSource):
    def __init__(self, name, available):
        super().__init__(name, 16000, 1, 1.0)
        self.available = available

    @property
    def has_audio(self):
        return self.available

    def _capture_loop(self):
        self._emit(b"\x00\x00" * 16, final=True)


@pytest.fixture
def mock_pyaudio(sample_audio_chunk):
    """Fake pyaudio module so tests run without audio hardware."""
    module = MagicMock()
    module.paInt16 = 8
    instance = module.PyAudio.return_value
    instance.get_device_count.return_value = 2
    instance.get_device_info_by_index.side_effect = [
        {"maxInputChannels": 0},
        {"maxInputChannels": 1},
    ]
    stream = instance.open.return_value
    stream.read.return_value = sample_audio_chunk
    with patch.dict(sys.modules, {"pyaudio": module}):
        yield {"module": module, "instance": instance, "stream": stream}


@pytest.mark.unit
class TestSelectAudioSource:

    def test_primary_preferred(self):
        primary, fallback = StubSource("display", True), StubSource("microphone", True)
        assert select_audio_source(primary, fallback) is primary

    def test_fallback_when_primary_silent(self):
        primary, fallback = StubSource("display", False), StubSource("microphone", True)
        assert select_audio_source(primary, fallback) is fallback

    def test_no_source_raises(self):
        with pytest.raises(NoAudioSourceError):
            select_audio_source(StubSource("display", False), StubSource("microphone", False))

    def test_missing_sources_raise(self):
        with pytest.raises(NoAudioSourceError):
            select_audio_source(None, None)


@pytest.mark.unit
class TestWavFileSource:

    def test_has_audio(self, sample_audio_file, temp_data_dir):
        assert WavFileSource(sample_audio_file).has_audio is True
        assert WavFileSource(f"{temp_data_dir}/missing.wav").has_audio is False

    def test_reads_header(self, sample_audio_file):
        source = WavFileSource(sample_audio_file)

        assert source.sample_rate == 16000
        assert source.channels == 1
        assert source.frames_per_chunk == 16000

    def test_streams_ordered_chunks(self, sample_audio_file):
        chunks = []
        done = threading.Event()

        def on_chunk(chunk):
            chunks.append(chunk)
            if chunk.final:
                done.set()

        source = WavFileSource(sample_audio_file, realtime=False)
        source.start(on_chunk)
        assert done.wait(timeout=5)
        source.stop()

        assert [c.sequence_number for c in chunks] == [1, 2, 3, 4]
        assert all(len(c.data) == 32000 for c in chunks[:3])
        assert chunks[-1].data == b""
        assert chunks[0].mime_type == "audio/l16"
        assert source.get_stats().total_chunks == 4
        assert source.peak_level > 0.4

    def test_realtime_pacing(self, sample_audio_file):
        sleep = MagicMock()
        done = threading.Event()

        source = WavFileSource(sample_audio_file, chunk_seconds=1.0, sleep=sleep)
        source.start(lambda chunk: done.set() if chunk.final else None)
        assert done.wait(timeout=5)
        source.stop()

        assert sleep.call_count == 3
        sleep.assert_called_with(1.0)


@pytest.mark.unit
class TestMicrophoneSource:

    def test_has_audio_with_input_device(self, mock_pyaudio):
        assert MicrophoneSource().has_audio is True
        mock_pyaudio["instance"].terminate.assert_called_once()

    def test_no_input_device(self, mock_pyaudio):
        mock_pyaudio["instance"].get_device_info_by_index.side_effect = None
        mock_pyaudio["instance"].get_device_info_by_index.return_value = {"maxInputChannels": 0}

        assert MicrophoneSource().has_audio is False

    def test_capture_emits_chunks_until_stopped(self, mock_pyaudio):
        chunks = []
        got_two = threading.Event()

        def on_chunk(chunk):
            chunks.append(chunk)
            if len(chunks) >= 2:
                got_two.set()

        source = MicrophoneSource(sample_rate=16000, chunk_seconds=1.0)
        source.start(on_chunk)
        assert got_two.wait(timeout=5)
        source.stop()

        assert chunks[-1].final is True
        mock_pyaudio["stream"].read.assert_called_with(16000, exception_on_overflow=False)
        mock_pyaudio["stream"].close.assert_called_once()
        mock_pyaudio["instance"].terminate.assert_called_once()
        assert source.is_capturing is False
