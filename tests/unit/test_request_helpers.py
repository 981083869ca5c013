"""
Unit tests for request-level helpers: client IP resolution, user-agent
parsing and contact subject normalization.
"""

import pytest
from starlette.requests import Request

from api.middleware.rate_limit import get_rate_limit
from core.security.client_ip import get_real_ip
from infrastructure.database.models import ContactSubject
from services.activity import parse_device_info
from services.contact import normalize_subject

CHROME_WINDOWS = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)
EDGE_WINDOWS = CHROME_WINDOWS + " Edg/124.0.2478.51"
SAFARI_IPHONE = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_4 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.4 Mobile/15E148 Safari/604.1"
)
FIREFOX_LINUX = "Mozilla/5.0 (X11; Linux x86_64; rv:125.0) Gecko/20100101 Firefox/125.0"


def _request(headers: dict[str, str], peer: str = "203.0.113.9") -> Request:
    return Request(
        {
            "type": "http",
            "method": "GET",
            "path": "/",
            "headers": [(k.lower().encode(), v.encode()) for k, v in headers.items()],
            "client": (peer, 12345),
        }
    )


class TestGetRealIp:
    def test_forwarded_for_first_entry(self):
        request = _request({"X-Forwarded-For": "8.8.8.8, 10.0.0.1"})
        assert get_real_ip(request) == "8.8.8.8"

    def test_private_forwarded_address_ignored(self):
        request = _request({"X-Forwarded-For": "10.1.2.3"})
        assert get_real_ip(request) == "203.0.113.9"

    def test_garbage_forwarded_value_ignored(self):
        request = _request({"X-Forwarded-For": "<script>"})
        assert get_real_ip(request) == "203.0.113.9"

    def test_real_ip_header(self):
        request = _request({"X-Real-IP": "1.1.1.1"})
        assert get_real_ip(request) == "1.1.1.1"

    def test_peer_address_fallback(self):
        assert get_real_ip(_request({})) == "203.0.113.9"


def test_rate_limit_lookup():
    assert get_rate_limit("register") == "3/minute"
    assert get_rate_limit("resend_verification") == "5/hour"
    assert get_rate_limit("no-such-endpoint") == "100/minute"


class TestParseDeviceInfo:
    def test_chrome_on_windows(self):
        assert parse_device_info(CHROME_WINDOWS) == {
            "is_mobile": False,
            "browser": "Chrome",
            "os": "Windows",
        }

    def test_edge_is_not_reported_as_chrome(self):
        assert parse_device_info(EDGE_WINDOWS)["browser"] == "Edge"

    def test_safari_on_iphone(self):
        info = parse_device_info(SAFARI_IPHONE)
        assert info["is_mobile"] is True
        assert info["browser"] == "Safari"
        assert info["os"] == "iOS"

    def test_firefox_on_linux(self):
        info = parse_device_info(FIREFOX_LINUX)
        assert info["browser"] == "Firefox"
        assert info["os"] == "Linux"

    def test_missing_user_agent(self):
        assert parse_device_info(None) == {"is_mobile": False, "browser": "Unknown", "os": "Unknown"}


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("demo", ContactSubject.DEMO),
        (" Pricing ", ContactSubject.PRICING),
        ("SUPPORT", ContactSubject.SUPPORT),
        ("careers", ContactSubject.OTHER),
        ("", ContactSubject.OTHER),
        (None, ContactSubject.OTHER),
    ],
)
def test_normalize_subject(raw, expected):
    assert normalize_subject(raw) == expected
