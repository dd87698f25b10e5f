"""
Timestamp helpers shared by the calculator and the endpoints.

Timestamps are stored UTC-aware. SQLite hands them back naive, so every
read goes through ``ensure_utc`` before any arithmetic.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone


def ensure_utc(dt: datetime | None) -> datetime | None:
    """Normalise a potentially-naive timestamp to UTC-aware."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def parse_offset(tz_offset: str) -> timezone:
    """Turn ``"+05:30"`` / ``"-04:00"`` / ``"+03"`` into a fixed-offset tzinfo."""
    sign = -1 if tz_offset.startswith("-") else 1
    offset_parts = tz_offset.lstrip("+-").split(":")
    offset_hours = int(offset_parts[0])
    offset_mins = int(offset_parts[1]) if len(offset_parts) > 1 else 0
    return timezone(timedelta(hours=sign * offset_hours, minutes=sign * offset_mins))


def parse_hhmm(value: str) -> time:
    hours, minutes = value.split(":")
    return time(int(hours), int(minutes))


def minutes_between(start: datetime, end: datetime) -> int:
    """Whole minutes from *start* to *end*, floored (negative when end < start)."""
    return int((end - start).total_seconds() // 60)


def local_today(tz_offset: str, now: datetime | None = None) -> str:
    """Today's ``YYYY-MM-DD`` key on the configured local wall clock."""
    now = ensure_utc(now) or datetime.now(timezone.utc)
    return now.astimezone(parse_offset(tz_offset)).date().isoformat()


def end_of_local_day(date_str: str, tz_offset: str) -> datetime:
    """23:59:59 local time on *date_str*, returned as UTC."""
    day = date.fromisoformat(date_str)
    local_end = datetime.combine(day, time(23, 59, 59), tzinfo=parse_offset(tz_offset))
    return local_end.astimezone(timezone.utc)
