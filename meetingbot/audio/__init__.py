"""Audio sources feeding the recognition backend."""

from .source import AudioSource, select_audio_source
from .capture import MicrophoneSource
from .file_source import WavFileSource

__all__ = ["AudioSource", "select_audio_source", "MicrophoneSource", "WavFileSource"]
