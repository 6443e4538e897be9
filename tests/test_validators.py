"""Tests for input validators, device detection and counter formatting."""

import pytest

from nebula.core.exceptions import InvalidWindowError
from nebula.core.formatting import ordinal, visitor_message
from nebula.core.validators import sanitize_label, sanitize_session_id, validate_window_days
from nebula.services.device_detection import parse_user_agent


class TestSessionIdValidation:

    def test_valid_ids(self):
        assert sanitize_session_id("3f2b8c1e-9d4a-4e8b-a1c2-7f6e5d4c3b2a") == "3f2b8c1e-9d4a-4e8b-a1c2-7f6e5d4c3b2a"
        assert sanitize_session_id("  tab_12345678 ") == "tab_12345678"

    def test_invalid_ids(self):
        invalid_ids = ["", "short", "x" * 65, "tab 12345678", "tab;DROP TABLE", None]
        for session_id in invalid_ids:
            assert sanitize_session_id(session_id) is None, f"Should be invalid: {session_id!r}"


class TestLabels:

    def test_blank_labels_become_none(self):
        assert sanitize_label("   ") is None
        assert sanitize_label(None) is None

    def test_labels_are_collapsed_and_truncated(self):
        assert sanitize_label("  Mobile \n Safari ") == "Mobile Safari"
        assert len(sanitize_label("x" * 100)) == 40


class TestWindowValidation:

    def test_allowed_windows(self):
        for days in (7, 30, 90):
            assert validate_window_days(days, [7, 30, 90]) == days

    def test_rejected_window(self):
        with pytest.raises(InvalidWindowError) as exc_info:
            validate_window_days(14, [7, 30, 90])
        assert exc_info.value.allowed == [7, 30, 90]


class TestOrdinal:

    @pytest.mark.parametrize(
        "count, expected",
        [(1, "1st"), (2, "2nd"), (3, "3rd"), (4, "4th"), (11, "11th"),
         (12, "12th"), (13, "13th"), (21, "21st"), (112, "112th"), (1023, "1,023rd")],
    )
    def test_suffixes(self, count, expected):
        assert ordinal(count) == expected

    def test_message(self):
        assert visitor_message(42) == "You are the 42nd star to drift through this digital nebula"


class TestDeviceDetection:

    @pytest.mark.parametrize(
        "user_agent, expected",
        [
            ("Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) "
             "Chrome/126.0.0.0 Safari/537.36", ("Desktop", "Chrome")),
            ("Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) "
             "Chrome/126.0.0.0 Safari/537.36 Edg/126.0.0.0", ("Desktop", "Edge")),
            ("Mozilla/5.0 (iPhone; CPU iPhone OS 17_5 like Mac OS X) AppleWebKit/605.1.15 "
             "(KHTML, like Gecko) Version/17.5 Mobile/15E148 Safari/604.1", ("Mobile", "Safari")),
            ("Mozilla/5.0 (iPad; CPU OS 17_5 like Mac OS X) AppleWebKit/605.1.15 "
             "(KHTML, like Gecko) Version/17.5 Mobile/15E148 Safari/604.1", ("Tablet", "Safari")),
            ("Mozilla/5.0 (X11; Linux x86_64; rv:127.0) Gecko/20100101 Firefox/127.0", ("Desktop", "Firefox")),
            ("Mozilla/5.0 (Linux; Android 13; SM-X200) AppleWebKit/537.36 (KHTML, like Gecko) "
             "Chrome/126.0.0.0 Safari/537.36", ("Tablet", "Chrome")),
            ("curl/8.5.0", ("Desktop", "Other")),
            (None, (None, None)),
        ],
    )
    def test_parse_user_agent(self, user_agent, expected):
        assert parse_user_agent(user_agent) == expected
