"""Streaming speech recognition backend client."""

from .client import ConnectionState, RecognitionClient, RecognitionConfig
from .parser import parse_recognition_message

__all__ = [
    "ConnectionState",
    "RecognitionClient",
    "RecognitionConfig",
    "parse_recognition_message",
]
