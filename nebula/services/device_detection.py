"""
Device Detection

Coarse User-Agent classification (on purpose: device class and browser
family only, no versions or fingerprints).
"""

from typing import Optional, Tuple

DESKTOP = "Desktop"
MOBILE = "Mobile"
TABLET = "Tablet"


def detect_device_type(user_agent: Optional[str]) -> Optional[str]:
    """Desktop, Mobile, or Tablet; None when there is no User-Agent at all."""
    if not user_agent:
        return None
    ua = user_agent.lower()

    if "ipad" in ua or "tablet" in ua or ("android" in ua and "mobile" not in ua):
        return TABLET
    if "mobi" in ua or "iphone" in ua or "ipod" in ua or "windows phone" in ua:
        return MOBILE
    return DESKTOP


def detect_browser(user_agent: Optional[str]) -> Optional[str]:
    """Browser family; None when there is no User-Agent at all."""
    if not user_agent:
        return None
    ua = user_agent.lower()

    # order matters: Edge and Opera also announce Chrome, Chrome announces Safari
    if "edg" in ua:
        return "Edge"
    if "opr/" in ua or "opera" in ua:
        return "Opera"
    if "firefox" in ua or "fxios" in ua:
        return "Firefox"
    if "chrome" in ua or "crios" in ua or "chromium" in ua:
        return "Chrome"
    if "safari" in ua:
        return "Safari"
    return "Other"


def parse_user_agent(user_agent: Optional[str]) -> Tuple[Optional[str], Optional[str]]:
    """Return (device_type, browser) for a User-Agent header."""
    return detect_device_type(user_agent), detect_browser(user_agent)
