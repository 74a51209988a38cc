from __future__ import annotations

import calendar
from datetime import date, datetime, timedelta, timezone
from typing import Optional

LEGACY_FORMATS = (
    "%m/%d/%Y, %I:%M:%S %p",
    "%m/%d/%Y, %H:%M:%S",
    "%m/%d/%Y",
)


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 datetime string and normalize to UTC-naive datetime.

    - None / "" -> None
    - "YYYY-MM-DDTHH:MM" (naive) is interpreted as UTC
    - "...Z" or "...+/-HH:MM" is converted to UTC and tzinfo is stripped
    """
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None

    if s.endswith("Z"):
        s = s[:-1] + "+00:00"

    dt = datetime.fromisoformat(s)

    if dt.tzinfo is None:
        return dt

    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def parse_timestamp(value) -> Optional[datetime]:
    """
    Lenient parser for persisted record dates.

    Accepts datetimes, ISO-8601 strings and the "M/D/YYYY, h:mm:ss AM" form
    produced by older browser exports. Returns None when nothing matches.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            return value.astimezone(timezone.utc).replace(tzinfo=None)
        return value
    if not isinstance(value, str):
        return None

    try:
        return parse_iso_datetime(value)
    except ValueError:
        pass

    for fmt in LEGACY_FORMATS:
        try:
            return datetime.strptime(value.strip(), fmt)
        except ValueError:
            continue
    return None


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Serializes datetime to ISO-8601 with trailing 'Z'.
    If dt is naive, it is treated as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc).replace(microsecond=0)
    return dt_utc.isoformat().replace("+00:00", "Z")


def parse_month_key(month_key: str) -> tuple[int, int]:
    """'YYYY-MM' -> (year, month). Raises ValueError on anything else."""
    try:
        year_s, month_s = month_key.strip().split("-")
        year, month = int(year_s), int(month_s)
    except (AttributeError, ValueError):
        raise ValueError(f"invalid month key: {month_key!r}")
    if not 1 <= month <= 12:
        raise ValueError(f"invalid month key: {month_key!r}")
    return year, month


def month_key(dt: datetime | date) -> str:
    return f"{dt.year:04d}-{dt.month:02d}"


def month_bounds(month_key_value: str) -> tuple[datetime, datetime]:
    """Half-open [start, end) range covering the whole calendar month."""
    year, month = parse_month_key(month_key_value)
    start = datetime(year, month, 1)
    days = calendar.monthrange(year, month)[1]
    return start, start + timedelta(days=days)


def previous_month_key(month_key_value: str) -> str:
    year, month = parse_month_key(month_key_value)
    if month == 1:
        return f"{year - 1:04d}-12"
    return f"{year:04d}-{month - 1:02d}"


def days_in_month(month_key_value: str) -> int:
    year, month = parse_month_key(month_key_value)
    return calendar.monthrange(year, month)[1]
