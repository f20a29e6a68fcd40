"""Expand a recurrence pattern into concrete trip dates.

Patterns (days are 0=Mon .. 6=Sun, like ``date.weekday()``):

- ``weekly``: same weekday as the first date, for ``weeks`` weeks (default)
- ``daily``: every day
- ``weekdays``: Monday to Friday
- ``custom``: the given ``days_of_week``

The span runs from the first date for ``weeks`` weeks, cut short by
``end_date`` and never past the horizon. ``exceptions`` are skipped and
``occurrences`` caps the number of dates returned.
"""
from datetime import date, timedelta

from parkops.core.config import settings
from parkops.core.errors import ValidationError
from parkops.core.timeutils import parse_date

PATTERNS = ("weekly", "daily", "weekdays", "custom")


def expand_dates(first: date, pattern: dict | None = None) -> list[str]:
    p = pattern or {}
    kind = (p.get("type") or "weekly").lower()
    if kind not in PATTERNS:
        raise ValidationError(f"Unknown recurrence type '{kind}'")

    weeks = p.get("weeks")
    if weeks is None:
        weeks = settings.DEFAULT_RECURRENCE_WEEKS
    if weeks < 1:
        raise ValidationError("Recurrence weeks must be at least 1")

    if kind == "weekly":
        days = {first.weekday()}
    elif kind == "daily":
        days = set(range(7))
    elif kind == "weekdays":
        days = {0, 1, 2, 3, 4}
    else:
        days = set(p.get("days_of_week") or [])
        if not days or any(d < 0 or d > 6 for d in days):
            raise ValidationError("Custom recurrence needs days of week between 0 (Mon) and 6 (Sun)")

    last = first + timedelta(days=weeks * 7 - 1)
    horizon = first + timedelta(days=settings.RECURRENCE_HORIZON_DAYS)
    if p.get("end_date"):
        end = parse_date(p["end_date"], "endDate")
        if end < first:
            raise ValidationError("Recurrence end date is before the first trip")
        last = min(last, end) if p.get("weeks") else end
    last = min(last, horizon)

    skip = {parse_date(x, "exceptions").isoformat() for x in (p.get("exceptions") or [])}
    limit = p.get("occurrences")

    out: list[str] = []
    d = first
    while d <= last:
        ds = d.isoformat()
        if d.weekday() in days and ds not in skip:
            out.append(ds)
            if limit and len(out) >= limit:
                break
        d += timedelta(days=1)
    if not out:
        raise ValidationError("Recurrence pattern produces no trips")
    return out
