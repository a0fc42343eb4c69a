"""Meeting orchestration services."""

from .meeting_host import JoinResult, MeetingHost
from .meeting_service import MeetingService

__all__ = ["JoinResult", "MeetingHost", "MeetingService"]
