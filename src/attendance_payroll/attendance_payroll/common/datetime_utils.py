from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Optional

from ..core.enums import RoundingMode
from ..core.exceptions import ValidationError


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def parse_iso_datetime(value: str) -> datetime:
    """Parse an ISO-8601 timestamp; a trailing 'Z' is accepted and the offset dropped."""
    v = (value or "").strip()
    if v.endswith("Z"):
        v = v[:-1]
    try:
        parsed = datetime.fromisoformat(v)
    except ValueError:
        raise ValidationError(f"Invalid timestamp: {value!r}")
    return parsed.replace(tzinfo=None)


def parse_hhmm(value: str) -> time:
    """Parse HH:MM (seconds optional) into a time."""
    parts = (value or "").strip().split(":")
    if len(parts) < 2:
        raise ValidationError(f"Invalid time (HH:MM): {value!r}")
    try:
        hours = int(parts[0])
        minutes = int(parts[1])
        seconds = int(parts[2]) if len(parts) >= 3 and parts[2] else 0
        return time(hour=hours, minute=minutes, second=seconds)
    except ValueError:
        raise ValidationError(f"Invalid time (HH:MM): {value!r}")


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()


def start_of_day(value: datetime) -> datetime:
    return datetime.combine(value.date(), time())


def month_range(period: date) -> tuple[datetime, datetime]:
    """[first instant of the month, first instant of the next month)."""
    start = datetime(period.year, period.month, 1)
    if period.month == 12:
        end = datetime(period.year + 1, 1, 1)
    else:
        end = datetime(period.year, period.month + 1, 1)
    return start, end


def minutes_between(start: datetime, end: datetime) -> int:
    """Whole minutes from start to end, rounded half up."""
    seconds = (end - start).total_seconds()
    return int((seconds + 30) // 60)


def round_to_interval(value: datetime, mode: Optional[RoundingMode], interval_minutes: Optional[int]) -> datetime:
    """Round a timestamp to a minute interval counted from midnight.

    Seconds are dropped before rounding, so an already-rounded timestamp
    is returned unchanged.
    """
    if not mode or not interval_minutes:
        return value
    interval = int(interval_minutes)
    if interval <= 0:
        raise ValidationError("intervalMinutes must be positive")

    base = start_of_day(value)
    mins = int((value - base).total_seconds() // 60)
    rem = mins % interval

    if mode == RoundingMode.NEAREST:
        rounded = mins - rem + (interval if rem * 2 >= interval else 0)
    elif mode == RoundingMode.CEIL:
        rounded = mins if rem == 0 else mins - rem + interval
    else:
        rounded = mins - rem
    return base + timedelta(minutes=rounded)


def parse_time_or_datetime(value: str) -> time | datetime:
    """Accept either a full ISO timestamp or a bare HH:MM wall-clock time."""
    v = (value or "").strip()
    if "T" in v or "-" in v:
        return parse_iso_datetime(v)
    return parse_hhmm(v)
