"""WAV file audio source, streamed in real time like a live feed."""

import logging
import os
import time
import wave
from typing import Callable

import numpy as np

from .source import AudioSource

logger = logging.getLogger(__name__)


class WavFileSource(AudioSource):
    """Streams a 16-bit PCM WAV file as consecutive chunks."""

    def __init__(self,
                 file_path: str,
                 chunk_seconds: float = 1.0,
                 realtime: bool = True,
                 sleep: Callable[[float], None] = time.sleep):
        """Initialize WAV file source.

        Args:
            file_path: Path to a 16-bit PCM WAV file
            chunk_seconds: Audio duration carried by each emitted chunk
            realtime: Pace chunks at the rate the audio would play
            sleep: Used for real-time pacing
        """
        self.file_path = str(file_path)
        self.realtime = realtime
        self._sleep = sleep

        sample_rate, channels = 16000, 1
        if os.path.exists(self.file_path):
            try:
                with wave.open(self.file_path, "rb") as wf:
                    sample_rate, channels = wf.getframerate(), wf.getnchannels()
            except (wave.Error, EOFError) as e:
                logger.warning(f"Could not read WAV header from {self.file_path}: {e}")
        super().__init__(f"file:{os.path.basename(self.file_path)}", sample_rate, channels, chunk_seconds)

    @property
    def has_audio(self) -> bool:
        if not os.path.exists(self.file_path):
            return False
        try:
            with wave.open(self.file_path, "rb") as wf:
                return wf.getsampwidth() == 2 and wf.getnframes() > 0
        except (wave.Error, EOFError) as e:
            logger.warning(f"Unreadable WAV file {self.file_path}: {e}")
            return False

    def _capture_loop(self) -> None:
        with wave.open(self.file_path, "rb") as wf:
            logger.info(f"Streaming {self.file_path}: {wf.getnframes()} frames at {wf.getframerate()}Hz")
            while not self.stop_event.is_set():
                data = wf.readframes(self.frames_per_chunk)
                if not data:
                    break
                samples = np.frombuffer(data, dtype=np.int16)
                if samples.size:
                    self.peak_level = float(np.abs(samples.astype(np.int32)).max()) / 32768.0
                self._emit(data)
                if self.realtime:
                    self._sleep(self.chunk_seconds)
        self._emit(b"", final=True)
        logger.info(f"Finished streaming {self.file_path} ({self.total_chunks} chunks)")
