"""
Display helpers for the visitor counter widget.
"""


def ordinal(n: int) -> str:
    """1 -> '1st', 12 -> '12th', 1023 -> '1,023rd'."""
    if 10 <= n % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(n % 10, "th")
    return f"{n:,}{suffix}"


def visitor_message(count: int) -> str:
    return f"You are the {ordinal(count)} star to drift through this digital nebula"
