from datetime import date, datetime, time, timedelta, timezone
from functools import lru_cache
from zoneinfo import ZoneInfo

from parkops.core.config import settings
from parkops.core.errors import ValidationError


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """SQLite hands back naive datetimes; everything we store is UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


@lru_cache(maxsize=8)
def park_tz(name: str | None = None) -> ZoneInfo:
    return ZoneInfo(name or settings.TIMEZONE)


def today_local(now: datetime | None = None) -> date:
    now = ensure_utc(now) or utcnow()
    return now.astimezone(park_tz()).date()


def parse_date(value: str, field: str = "date") -> date:
    try:
        return date.fromisoformat((value or "").strip())
    except ValueError:
        raise ValidationError(f"Invalid {field} '{value}', expected YYYY-MM-DD")


def parse_time(value: str, field: str = "unitTime") -> time:
    v = (value or "").strip()
    parts = v.split(":")
    if len(parts) != 2 or not all(p.isdigit() and len(p) == 2 for p in parts):
        raise ValidationError(f"Invalid {field} '{value}', expected HH:MM")
    hh, mm = int(parts[0]), int(parts[1])
    if hh > 23 or mm > 59:
        raise ValidationError(f"Invalid {field} '{value}', expected HH:MM")
    return time(hh, mm)


def departure_at(date_str: str, unit_time: str) -> datetime:
    """Departure instant (UTC) for a park-local date and HH:MM."""
    local = datetime.combine(parse_date(date_str), parse_time(unit_time), tzinfo=park_tz())
    return local.astimezone(timezone.utc)


def trip_window(date_str: str, unit_time: str, duration_minutes: int) -> tuple[datetime, datetime]:
    start = departure_at(date_str, unit_time)
    return start, start + timedelta(minutes=duration_minutes)


def windows_overlap(a: tuple[datetime, datetime], b: tuple[datetime, datetime]) -> bool:
    return a[0] < b[1] and b[0] < a[1]


def iso(dt: datetime | None) -> str | None:
    dt = ensure_utc(dt)
    return dt.isoformat() if dt else None
