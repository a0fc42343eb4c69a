"""Live meeting transcription and session analytics bot."""

__version__ = "0.1.0"
