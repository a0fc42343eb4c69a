"""Unit tests for MeetingHost URL validation and window handling."""

from unittest.mock import MagicMock

import pytest

from meetingbot.config import DEFAULT_CONFIG
from meetingbot.errors import InvalidMeetingUrlError
from meetingbot.services.meeting_host import MeetingHost, host_allowed

ALLOWED = DEFAULT_CONFIG["meeting"]["allowed_domains"]


@pytest.fixture
def opener():
    return MagicMock(return_value="window-1")


@pytest.mark.unit
class TestMeetingHost:
    """Test cases for MeetingHost."""

    @pytest.mark.parametrize("url", [
        "https://meet.google.com/abc-defg-hij",
        "https://us02web.zoom.us/j/123456789",
        "https://teams.microsoft.com/l/meetup-join/19%3ameeting",
        "http://company.webex.com/meet/someone",
        "https://global.gotomeeting.com/join/123",
    ])
    def test_allowed_urls_open(self, url, opener):
        host = MeetingHost(ALLOWED, opener=opener)

        result = host.join_meeting(url)

        assert result.success is True
        assert result.handle == "window-1"
        opener.assert_called_once_with(url)
        assert host.is_open is True

    @pytest.mark.parametrize("url", [
        "https://evil.example.com/meet.google.com",
        "https://notzoom.us/j/1",
        "https://zoom.us.attacker.net/j/1",
        "ftp://meet.google.com/abc",
        "meet.google.com/abc",
        "",
    ])
    def test_rejected_urls_never_open_a_window(self, url, opener):
        host = MeetingHost(ALLOWED, opener=opener)

        with pytest.raises(InvalidMeetingUrlError):
            host.join_meeting(url)

        opener.assert_not_called()
        assert host.is_open is False

    def test_opener_failure_reported(self):
        host = MeetingHost(ALLOWED, opener=MagicMock(side_effect=OSError("no browser")))

        result = host.join_meeting("https://zoom.us/j/1")

        assert result.success is False
        assert host.is_open is False

    def test_close_meeting(self, opener):
        closer = MagicMock()
        host = MeetingHost(ALLOWED, opener=opener, closer=closer)
        host.join_meeting("https://zoom.us/j/1")

        assert host.close_meeting() is True
        closer.assert_called_once_with("window-1")
        assert host.is_open is False
        # Closing again is harmless
        assert host.close_meeting() is True
        assert closer.call_count == 1

    def test_host_allowed_matches_subdomains_only(self):
        assert host_allowed("zoom.us", ["zoom.us"]) is True
        assert host_allowed("ZOOM.US", ["zoom.us"]) is True
        assert host_allowed("eu01web.zoom.us", ["zoom.us"]) is True
        assert host_allowed("myzoom.us", ["zoom.us"]) is False
