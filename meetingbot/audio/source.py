"""Audio source interface and primary/fallback selection."""

import logging
import time
from abc import ABC, abstractmethod
from threading import Event, Thread
from typing import Callable, Optional

from ..errors import NoAudioSourceError
from ..models.audio import AudioChunk, AudioStats

logger = logging.getLogger(__name__)

ChunkCallback = Callable[[AudioChunk], None]

PCM_MIME_TYPE = "audio/l16"
PCM_ENCODING = "linear16"


class AudioSource(ABC):
    """A producer of ordered, roughly one-second chunks of 16-bit PCM audio.

    Subclasses implement `has_audio` and `_capture_loop`; the base class owns
    the background thread and the chunk bookkeeping.
    """

    mime_type = PCM_MIME_TYPE
    encoding = PCM_ENCODING

    def __init__(self, name: str, sample_rate: int, channels: int, chunk_seconds: float):
        self.name = name
        self.sample_rate = sample_rate
        self.channels = channels
        self.chunk_seconds = chunk_seconds

        self.capture_thread: Optional[Thread] = None
        self.stop_event = Event()
        self.is_capturing = False

        self.start_time: Optional[float] = None
        self.total_chunks = 0
        self.peak_level = 0.0
        self._callback: Optional[ChunkCallback] = None

    @property
    def frames_per_chunk(self) -> int:
        return max(1, int(self.sample_rate * self.chunk_seconds))

    @property
    @abstractmethod
    def has_audio(self) -> bool:
        """True if the source can currently deliver audio."""

    @abstractmethod
    def _capture_loop(self) -> None:
        """Produce chunks through `_emit` until `stop_event` is set or input ends."""

    def start(self, callback: ChunkCallback) -> None:
        """Start capturing in a background thread, delivering chunks to callback."""
        if self.is_capturing:
            logger.warning(f"Audio source {self.name} already capturing")
            return

        logger.info(f"Starting audio source: {self.name}")
        self._callback = callback
        self.stop_event.clear()
        self.start_time = time.time()
        self.total_chunks = 0

        self.is_capturing = True
        self.capture_thread = Thread(target=self._run, daemon=True)
        self.capture_thread.name = f"AudioSource-{self.name}"
        self.capture_thread.start()

    def _run(self) -> None:
        try:
            self._capture_loop()
        except Exception as e:
            logger.error(f"Audio source {self.name} failed: {e}")
        finally:
            self.is_capturing = False

    def stop(self) -> None:
        """Stop capturing and wait for the capture thread to exit."""
        if self.capture_thread is None:
            return

        logger.info(f"Stopping audio source: {self.name}")
        self.stop_event.set()
        if self.capture_thread.is_alive():
            self.capture_thread.join(timeout=2.0)
            if self.capture_thread.is_alive():
                logger.warning(f"Audio source {self.name} thread did not stop cleanly")
        self.capture_thread = None
        self.is_capturing = False
        logger.info(f"Audio source {self.name} stopped. Total chunks: {self.total_chunks}")

    def _emit(self, data: bytes, final: bool = False) -> None:
        self.total_chunks += 1
        chunk = AudioChunk(
            data=data,
            timestamp=time.time(),
            sequence_number=self.total_chunks,
            mime_type=self.mime_type,
            final=final,
        )
        self._callback(chunk)

    def get_stats(self) -> AudioStats:
        duration = time.time() - self.start_time if self.start_time else 0.0
        return AudioStats(
            is_capturing=self.is_capturing,
            duration_seconds=duration,
            sample_rate=self.sample_rate,
            total_chunks=self.total_chunks,
            peak_level=self.peak_level,
        )


def select_audio_source(primary: Optional[AudioSource],
                        fallback: Optional[AudioSource] = None) -> AudioSource:
    """Pick the primary source if it has audio, else the fallback.

    Raises:
        NoAudioSourceError: If neither source has audio
    """
    if primary is not None and primary.has_audio:
        logger.info(f"Using audio source: {primary.name}")
        return primary

    if primary is not None:
        logger.warning(f"No audio from {primary.name}, trying fallback source")

    if fallback is not None and fallback.has_audio:
        logger.info(f"Using fallback audio source: {fallback.name}")
        return fallback

    raise NoAudioSourceError(
        "No audio available. Provide a meeting audio source or grant microphone access."
    )
