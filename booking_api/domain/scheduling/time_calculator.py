"""Time parsing and zone conversions for availability and booking"""

import re
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
LOCAL_DATETIME_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}(:\d{2}(\.\d{1,6})?)?$")


def parse_calendar_date(value: Optional[str]) -> date:
    """
    Parse a strict YYYY-MM-DD calendar date.

    Raises:
        ValueError: If the value is missing or not a real calendar date
    """
    if not value or not DATE_PATTERN.match(value):
        raise ValueError("Expected a date in YYYY-MM-DD format")
    return date.fromisoformat(value)


def load_zone(name: Optional[str]) -> ZoneInfo:
    """
    Resolve an IANA zone name.

    Raises:
        ValueError: If the zone is missing or unknown
    """
    if not name:
        raise ValueError("Timezone is required")
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValueError(f"Unknown timezone: {name}") from None


def parse_local_datetime(value: Optional[str], zone: ZoneInfo) -> datetime:
    """
    Interpret an offset-free ISO date-time as wall-clock time in zone.

    Raises:
        ValueError: If the value is missing, carries an offset, is malformed,
            or names a wall-clock time skipped by a DST change
    """
    if not value or not LOCAL_DATETIME_PATTERN.match(value):
        raise ValueError("Expected a local date-time like 2025-03-18T15:30")
    naive = datetime.fromisoformat(value)
    local = naive.replace(tzinfo=zone)
    if to_utc(local).astimezone(zone).replace(tzinfo=None) != naive:
        raise ValueError(f"{value} does not exist in {zone.key} (daylight saving change)")
    return local


def to_utc(value: datetime) -> datetime:
    return value.astimezone(timezone.utc)


def parse_utc_instant(value) -> Optional[datetime]:
    """Parse a stored ISO instant ("Z" or offset) into an aware UTC datetime"""
    if not value:
        return None
    raw = str(value).strip()
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_utc(value: datetime) -> str:
    """ISO 8601 with millisecond precision and a Z suffix"""
    return to_utc(value).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def minutes_of_day(value: time) -> int:
    return value.hour * 60 + value.minute


def format_minutes(total: int) -> str:
    return f"{total // 60:02d}:{total % 60:02d}"


def local_day_bounds_utc(day: date, zone: ZoneInfo) -> tuple[datetime, datetime]:
    """UTC instants of local midnight at the start and end of day in zone"""
    start = datetime.combine(day, time.min, tzinfo=zone)
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=zone)
    return to_utc(start), to_utc(end)


def slot_interval_utc(
    day: date, slot: str, duration_minutes: int, zone: ZoneInfo
) -> tuple[datetime, datetime]:
    """[start, start + duration) in UTC for an HH:MM slot on day in zone"""
    start_utc = to_utc(datetime.combine(day, time.fromisoformat(slot), tzinfo=zone))
    return start_utc, start_utc + timedelta(minutes=duration_minutes)
