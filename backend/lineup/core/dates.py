"""Calendar day keys and the canonical persisted scheduling timestamp.

A *day key* is a local-calendar date rendered as ``YYYY-MM-DD``. Tasks persist
the UTC midnight of their day key (``YYYY-MM-DDT00:00:00.000Z``), so the day key
is always the date portion of the stored value.
"""
from __future__ import annotations

import re
from datetime import date, datetime, timedelta
from typing import List

_DAY_KEY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_SCHEDULED_ISO_RE = re.compile(r"^\d{4}-\d{2}-\d{2}T00:00:00\.000Z$")


def day_key_from_local_date(value: date | datetime) -> str:
    """Return the day key for a local date or naive/local datetime."""
    if isinstance(value, datetime):
        value = value.date()
    return f"{value.year:04d}-{value.month:02d}-{value.day:02d}"


def local_date_from_day_key(day_key: str) -> date:
    year, month, day = (int(part) for part in day_key.split("-"))
    return date(year, month, day)


def add_days_to_day_key(day_key: str, delta_days: int) -> str:
    # date arithmetic is calendar-only, so DST transitions cannot shift the result.
    return day_key_from_local_date(local_date_from_day_key(day_key) + timedelta(days=delta_days))


def today_day_key() -> str:
    return day_key_from_local_date(date.today())


def scheduled_iso_from_day_key(day_key: str) -> str:
    return f"{day_key}T00:00:00.000Z"


def day_key_from_scheduled_iso(iso: str) -> str:
    return str(iso)[:10]


def is_valid_day_key(value: object) -> bool:
    if not isinstance(value, str) or not _DAY_KEY_RE.match(value):
        return False
    try:
        local_date_from_day_key(value)
    except ValueError:
        return False
    return True


def is_valid_scheduled_iso(value: object) -> bool:
    if not isinstance(value, str) or not _SCHEDULED_ISO_RE.match(value):
        return False
    return is_valid_day_key(value[:10])


def build_day_key_range(start_day_key: str, end_day_key_exclusive: str) -> List[str]:
    """Return every day key in ``[start, end)``."""
    out: List[str] = []
    current = start_day_key
    while current < end_day_key_exclusive:
        out.append(current)
        current = add_days_to_day_key(current, 1)
    return out


def make_range_around(day_key: str, past_days: int, future_days: int) -> List[str]:
    return [add_days_to_day_key(day_key, offset) for offset in range(-past_days, future_days + 1)]


def format_day_label(day_key: str) -> str:
    """``2024-03-10`` -> ``10 Mar``."""
    return local_date_from_day_key(day_key).strftime("%d %b")


def format_weekday_label(day_key: str) -> str:
    """``2024-03-10`` -> ``Sun``."""
    return local_date_from_day_key(day_key).strftime("%a")
