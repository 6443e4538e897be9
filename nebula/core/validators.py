"""
Input Validators and Sanitizers

This module provides validation and sanitization functions for user inputs.

Security Considerations:
- Session ids are opaque client tokens; only a safe character set is accepted
- Length limits keep the in-memory session store bounded per entry
- Client-reported device/browser labels are free text and get trimmed
"""

import re
from typing import Iterable, Optional

from nebula.core.exceptions import InvalidWindowError

_SESSION_ID_PATTERN = re.compile(r'^[0-9a-zA-Z_-]+$')


def sanitize_session_id(session_id: str) -> Optional[str]:
    """
    Sanitize and validate a browsing session id.

    Session ids are generated by the browser tab (UUIDs or similar random
    tokens) and used only as keys into the in-memory dedup store.

    Args:
        session_id: The session id to sanitize

    Returns:
        Sanitized session id if valid, None otherwise
    """
    if not session_id or not isinstance(session_id, str):
        return None

    session_id = session_id.strip()

    if len(session_id) < 8 or len(session_id) > 64:
        return None

    if not _SESSION_ID_PATTERN.match(session_id):
        return None

    return session_id


def sanitize_label(value: Optional[str], max_length: int = 40) -> Optional[str]:
    """
    Normalize a client-reported label such as a device type or browser name.

    Returns None for empty input so that read-time defaults apply.
    """
    if not value or not isinstance(value, str):
        return None
    value = " ".join(value.split())
    if not value:
        return None
    return value[:max_length]


def validate_window_days(days: int, allowed: Iterable[int]) -> int:
    """
    Check that an analytics window size is one the dashboard offers.

    Raises:
        InvalidWindowError: If days is not in allowed
    """
    allowed = list(allowed)
    if days not in allowed:
        raise InvalidWindowError(days, allowed)
    return days
