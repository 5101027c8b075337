from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo


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

    # Accept trailing Z
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"

    dt = datetime.fromisoformat(s)

    # Normalize to UTC-naive
    if dt.tzinfo is None:
        # interpret naive as UTC
        return dt.replace(tzinfo=None)

    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def parse_iso_date(value: Optional[str | date]) -> Optional[date]:
    """Accept 'YYYY-MM-DD' (or a full ISO datetime, date part kept)."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    s = value.strip()
    if not s:
        return None
    return date.fromisoformat(s[:10])


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


def local_today(tz_name: str = "UTC") -> date:
    return datetime.now(ZoneInfo(tz_name)).date()


def local_day_bounds(
    start: Optional[date],
    end: Optional[date],
    tz_name: str = "UTC",
) -> tuple[datetime, datetime]:
    """
    Convert an inclusive local day range to UTC-naive [start, end] bounds.

    start defaults to 2000-01-01, end defaults to today. The end bound is the
    last microsecond of the end day in local time.
    """
    tz = ZoneInfo(tz_name)
    start_day = start or date(2000, 1, 1)
    end_day = end or local_today(tz_name)

    start_local = datetime.combine(start_day, time.min, tzinfo=tz)
    end_local = datetime.combine(end_day, time.max, tzinfo=tz)

    return (
        start_local.astimezone(timezone.utc).replace(tzinfo=None),
        end_local.astimezone(timezone.utc).replace(tzinfo=None),
    )


def to_local(dt: datetime, tz_name: str = "UTC") -> datetime:
    """UTC-naive -> aware local datetime."""
    return dt.replace(tzinfo=timezone.utc).astimezone(ZoneInfo(tz_name))


def days_back(days: int, tz_name: str = "UTC") -> list[date]:
    """The last `days` local dates, oldest first, ending today."""
    today = local_today(tz_name)
    return [today - timedelta(days=i) for i in range(days - 1, -1, -1)]
