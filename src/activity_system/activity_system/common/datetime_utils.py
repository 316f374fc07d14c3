from __future__ import annotations

import re
from datetime import date, datetime, time
from typing import Optional, Union

from ..core.exceptions import ValidationError

_HHMM = re.compile(r"^([01]?[0-9]|2[0-3]):([0-5][0-9])$")

DateLike = Union[date, datetime, str]


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid date (YYYY-MM-DD): {value!r}")


def normalize_day(value: Optional[DateLike]) -> Optional[date]:
    """Reduce a stored date/timestamp to its calendar day.

    Stored timestamps may carry a time-of-day that has nothing to do with the
    activity day, so comparisons must always go through this helper.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        return parse_iso_date(text[:10])


def parse_hhmm(value: str) -> int:
    """Return minutes since midnight for a 24h ``HH:MM`` string."""
    m = _HHMM.match((value or "").strip())
    if not m:
        raise ValidationError(f"Invalid time (HH:MM): {value!r}")
    return int(m.group(1)) * 60 + int(m.group(2))


def hhmm_to_time(value: str) -> time:
    minutes = parse_hhmm(value)
    return time(hour=minutes // 60, minute=minutes % 60)


def intervals_overlap(a_start: int, a_end: int, b_start: int, b_end: int) -> bool:
    # Half-open windows: touching ends do not overlap.
    return not (a_end <= b_start or a_start >= b_end)


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()
