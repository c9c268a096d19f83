from __future__ import annotations

SECONDS_PER_MINUTE = 60
SECONDS_PER_HOUR = 60 * SECONDS_PER_MINUTE
SECONDS_PER_DAY = 24 * SECONDS_PER_HOUR

# Ages below this read as "just now"
JUST_NOW_SECONDS = 5


def format_age(seconds: float | None) -> str:
    """Render an age in seconds as a short, human-readable string.

    Args:
        seconds: Elapsed seconds, or None when there is nothing to measure.

    Returns:
        Text such as "just now", "42s ago", "5m ago", "3h ago" or "2d ago";
        "never" when `seconds` is None.
    """
    if seconds is None:
        return "never"
    whole = max(0, int(seconds))
    if whole < JUST_NOW_SECONDS:
        return "just now"
    if whole < SECONDS_PER_MINUTE:
        return f"{whole}s ago"
    if whole < SECONDS_PER_HOUR:
        return f"{whole // SECONDS_PER_MINUTE}m ago"
    if whole < SECONDS_PER_DAY:
        return f"{whole // SECONDS_PER_HOUR}h ago"
    return f"{whole // SECONDS_PER_DAY}d ago"
