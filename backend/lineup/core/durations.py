"""Human-readable duration labels."""
from __future__ import annotations

import re

_ISO_PART_RE = {
    "hours": re.compile(r"(\d+)H"),
    "minutes": re.compile(r"(\d+)M"),
    "seconds": re.compile(r"(\d+)S"),
}


def format_minutes(minutes: object) -> str:
    """Label a time-to-complete value: ``30m``, ``2h``, ``1h 30m`` or ``1 day``."""
    try:
        m = int(minutes)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return ""
    if m <= 0:
        return ""
    if m == 1440:
        return "1 day"
    if m % 60 == 0:
        return f"{m // 60}h"
    if m >= 60:
        return f"{m // 60}h {m % 60}m"
    return f"{m}m"


def format_duration_seconds(total_seconds: object) -> str:
    """Label a video length: ``4:05`` or ``1:02:03``."""
    try:
        s = int(float(total_seconds))  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return ""
    if s <= 0:
        return ""
    hours, rem = divmod(s, 3600)
    minutes, seconds = divmod(rem, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{seconds:02d}"
    return f"{minutes}:{seconds:02d}"


def parse_iso8601_duration(value: object) -> int | None:
    """Parse a YouTube API duration such as ``PT1H2M10S`` into seconds."""
    if not isinstance(value, str) or not value.startswith("PT"):
        return None
    seconds = 0
    for unit, pattern in _ISO_PART_RE.items():
        match = pattern.search(value)
        if not match:
            continue
        amount = int(match.group(1))
        if unit == "hours":
            seconds += amount * 3600
        elif unit == "minutes":
            seconds += amount * 60
        else:
            seconds += amount
    return seconds or None
