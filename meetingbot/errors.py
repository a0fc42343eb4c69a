"""Typed failures raised across the meeting bot pipeline."""

from typing import Optional


class MeetingBotError(Exception):
    """Base exception for meeting bot errors."""

    kind = "error"

    def __init__(self, message: str, error_code: Optional[str] = None):
        self.message = message
        self.error_code = error_code or self.kind.upper()
        super().__init__(message)

    def __str__(self) -> str:
        return f"{self.kind}: {self.message}"


class TransientNetworkError(MeetingBotError):
    """Recognition connection dropped while retries remain. Never leaves the client."""

    kind = "transient_network"


class TerminalConnectionError(MeetingBotError):
    """Recognition connection is gone for good (retry budget exhausted or closed by the server)."""

    kind = "terminal_connection"

    def __init__(self, message: str, attempts: int = 0, close_code: Optional[int] = None):
        super().__init__(message)
        self.attempts = attempts
        self.close_code = close_code


class MalformedMessageError(MeetingBotError):
    """Recognition payload could not be parsed."""

    kind = "malformed_message"

    def __init__(self, message: str, raw: Optional[str] = None):
        super().__init__(message)
        self.raw = raw


class NoAudioSourceError(MeetingBotError):
    """Neither the primary nor the fallback audio source has audio."""

    kind = "no_audio_source"


class UnsupportedExportFormatError(MeetingBotError):
    """Export format is recognized but not implemented."""

    kind = "unsupported_export_format"

    def __init__(self, export_format: str):
        super().__init__(
            f"{export_format} export not implemented. Use json or csv format."
        )
        self.export_format = export_format


class InvalidMeetingUrlError(MeetingBotError):
    """Meeting URL is malformed or its domain is not on the allow-list."""

    kind = "invalid_meeting_url"

    def __init__(self, url: str, reason: str = "domain not allowed"):
        super().__init__(f"Invalid meeting URL '{url}': {reason}")
        self.url = url


class SessionStateError(MeetingBotError):
    """Operation is not valid for the current session lifecycle state."""

    kind = "session_state"


class SessionNotFinalizedError(SessionStateError):
    """Export requested before the session was finalized."""

    kind = "session_not_finalized"

    def __init__(self, message: str = "Session has not been finalized. Leave the meeting first."):
        super().__init__(message)
