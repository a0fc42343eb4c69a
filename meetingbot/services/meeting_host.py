"""Meeting window host: URL allow-list and the opener for the meeting page."""

import logging
import webbrowser
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional
from urllib.parse import urlparse

from ..errors import InvalidMeetingUrlError

logger = logging.getLogger(__name__)

ALLOWED_SCHEMES = ("http", "https")


@dataclass
class JoinResult:
    """Outcome of opening a meeting window."""
    success: bool
    handle: Optional[Any] = None


def host_allowed(host: str, allowed_domains: Iterable[str]) -> bool:
    """True if host equals an allowed domain or is a subdomain of one."""
    host = host.lower().rstrip(".")
    for domain in allowed_domains:
        domain = domain.lower().strip(".")
        if host == domain or host.endswith("." + domain):
            return True
    return False


class MeetingHost:
    """Opens and closes the meeting page for the supported providers."""

    def __init__(self,
                 allowed_domains: Iterable[str],
                 opener: Callable[[str], Any] = webbrowser.open_new,
                 closer: Optional[Callable[[Any], None]] = None):
        """Initialize meeting host.

        Args:
            allowed_domains: Provider domains a meeting URL may point at
            opener: Opens the meeting URL; its return value is kept as the handle
            closer: Closes a handle returned by opener, if the opener supports it
        """
        self.allowed_domains = [d.lower() for d in allowed_domains]
        self.opener = opener
        self.closer = closer
        self.handle: Optional[Any] = None
        self.meeting_url: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return self.meeting_url is not None

    def validate_meeting_url(self, url: str) -> str:
        """Check a meeting URL against the scheme and domain allow-list.

        Returns:
            The stripped URL

        Raises:
            InvalidMeetingUrlError: If the URL is malformed or not allowed
        """
        url = (url or "").strip()
        if not url:
            raise InvalidMeetingUrlError(url, "empty URL")

        try:
            parsed = urlparse(url)
            host = parsed.hostname
        except ValueError as e:
            raise InvalidMeetingUrlError(url, f"malformed URL ({e})")

        if parsed.scheme.lower() not in ALLOWED_SCHEMES:
            raise InvalidMeetingUrlError(url, "scheme must be http or https")
        if not host:
            raise InvalidMeetingUrlError(url, "missing host")
        if not host_allowed(host, self.allowed_domains):
            raise InvalidMeetingUrlError(url)
        return url

    def join_meeting(self, url: str) -> JoinResult:
        """Validate the URL and open the meeting.

        Raises:
            InvalidMeetingUrlError: Before anything is opened, if the URL is not allowed
        """
        url = self.validate_meeting_url(url)
        try:
            handle = self.opener(url)
        except (OSError, webbrowser.Error) as e:
            logger.error(f"Error joining meeting: {e}")
            return JoinResult(success=False)

        self.handle = handle
        self.meeting_url = url
        logger.info(f"Meeting opened: {url}")
        return JoinResult(success=True, handle=handle)

    def close_meeting(self) -> bool:
        """Close the meeting window if one is open. Closing twice is harmless."""
        if not self.is_open:
            return True
        try:
            if self.closer is not None:
                self.closer(self.handle)
        except OSError as e:
            logger.error(f"Error closing meeting: {e}")
            return False

        logger.info(f"Meeting closed: {self.meeting_url}")
        self.handle = None
        self.meeting_url = None
        return True
