"""Audio-related data models."""

from dataclasses import dataclass


@dataclass
class AudioChunk:
    """An opaque chunk of encoded audio with arrival metadata."""
    data: bytes
    timestamp: float  # Unix timestamp when chunk was captured
    sequence_number: int
    mime_type: str = "audio/l16"
    final: bool = False  # True if this is the last chunk of the source


@dataclass
class AudioStats:
    """Audio source statistics."""
    is_capturing: bool
    duration_seconds: float
    sample_rate: int
    total_chunks: int
    peak_level: float = 0.0
