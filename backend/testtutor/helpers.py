"""
Small shared helpers: JSON column parsing, UTC datetime handling and the
half-up rounding used for every score shown on a dashboard.
"""

import calendar
import json
import math
from datetime import datetime, timezone
from typing import Optional, Union


def parse_json(value, default=None):
    """Parse JSON from a string column, or return a dict/list as-is."""
    if default is None:
        default = {}
    if isinstance(value, (dict, list)):
        return value
    if isinstance(value, str):
        try:
            return json.loads(value)
        except (json.JSONDecodeError, TypeError):
            return default
    return default


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Return `dt` as a timezone-aware UTC datetime.

    SQLite hands back naive datetimes even for values written as aware;
    those are stored as UTC, so they are tagged rather than converted.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_naive_utc(dt: datetime) -> datetime:
    """Convert to a naive UTC datetime for storage (SQLite compatibility)."""
    return ensure_utc(dt).replace(tzinfo=None)


def isoformat(dt: Optional[datetime]) -> Optional[str]:
    """Serialize a stored datetime as an ISO 8601 UTC string."""
    if dt is None:
        return None
    return ensure_utc(dt).isoformat()


def round_half_up(value: Optional[float], digits: int = 0) -> Union[int, float]:
    """
    Round halves away from negative infinity, like JavaScript's Math.round.

    Python's round() uses banker's rounding (round(2.5) == 2), which would
    shift dashboard numbers on exact halves. With digits=0 the result is
    an int; otherwise a float with at most `digits` decimals.
    """
    if value is None:
        return 0 if digits == 0 else 0.0
    if digits == 0:
        return int(math.floor(value + 0.5))
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def subtract_months(dt: datetime, months: int) -> datetime:
    """
    Move `dt` back by whole calendar months, clamping the day to the
    length of the target month (31 March - 1 month -> 28/29 February).
    """
    month_index = dt.year * 12 + (dt.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return dt.replace(year=year, month=month, day=day)


def get_now() -> datetime:
    """FastAPI dependency supplying the request's reference time."""
    return utc_now()
