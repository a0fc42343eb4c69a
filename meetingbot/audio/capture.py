"""Microphone audio source backed by PyAudio."""

import logging
from typing import Optional

import numpy as np

from .source import AudioSource

logger = logging.getLogger(__name__)


class MicrophoneSource(AudioSource):
    """Continuous microphone capture, one chunk per `chunk_seconds` of audio."""

    def __init__(self,
                 sample_rate: int = 16000,
                 channels: int = 1,
                 chunk_seconds: float = 1.0,
                 device_index: Optional[int] = None):
        """Initialize microphone source.

        Args:
            sample_rate: Capture sample rate in Hz
            channels: Number of input channels (1 for mono)
            chunk_seconds: Audio duration carried by each emitted chunk
            device_index: PyAudio input device, or None for the default device
        """
        super().__init__("microphone", sample_rate, channels, chunk_seconds)
        self.device_index = device_index
        self.pyaudio_instance = None

    @property
    def has_audio(self) -> bool:
        import pyaudio

        instance = pyaudio.PyAudio()
        try:
            if self.device_index is not None:
                info = instance.get_device_info_by_index(self.device_index)
                return info.get("maxInputChannels", 0) > 0
            return any(
                instance.get_device_info_by_index(i).get("maxInputChannels", 0) > 0
                for i in range(instance.get_device_count())
            )
        except (OSError, IOError) as e:
            logger.warning(f"Microphone probe failed: {e}")
            return False
        finally:
            instance.terminate()

    def _open_stream(self):
        import pyaudio

        self.pyaudio_instance = pyaudio.PyAudio()
        stream = self.pyaudio_instance.open(
            format=pyaudio.paInt16,
            channels=self.channels,
            rate=self.sample_rate,
            input=True,
            input_device_index=self.device_index,
            frames_per_buffer=1024,
        )
        logger.info(f"Microphone stream opened: {self.sample_rate}Hz, {self.frames_per_chunk} frames/chunk")
        return stream

    def _update_peak(self, data: bytes) -> None:
        samples = np.frombuffer(data, dtype=np.int16)
        if samples.size:
            self.peak_level = float(np.abs(samples.astype(np.int32)).max()) / 32768.0

    def _capture_loop(self) -> None:
        stream = None
        try:
            stream = self._open_stream()
            while not self.stop_event.is_set():
                data = stream.read(self.frames_per_chunk, exception_on_overflow=False)
                self._update_peak(data)
                self._emit(data)
            # Final chunk so consumers know the source is done
            self._emit(b"", final=True)
        finally:
            if stream:
                stream.stop_stream()
                stream.close()
            if self.pyaudio_instance:
                self.pyaudio_instance.terminate()
                self.pyaudio_instance = None
