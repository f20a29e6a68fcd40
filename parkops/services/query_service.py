from collections import defaultdict
from datetime import datetime, timedelta
from sqlalchemy import func
from sqlalchemy.orm import Session
from parkops.core.errors import ValidationError
from parkops.core.timeutils import ensure_utc, park_tz, parse_date, today_local, utcnow
from parkops.models.booking import Booking
from parkops.models.driver import Driver
from parkops.models.route import Route
from parkops.models.trip import Trip
from parkops.services.booking_service import STATUSES, expire_stale_holds

REVENUE_STATUSES = ("CONFIRMED", "COMPLETED")


def _materialize(db: Session, park_id: str, now: datetime | None):
    if expire_stale_holds(db, park_id=park_id, now=now):
        db.commit()


def _park_bookings(db: Session, park_id: str):
    return db.query(Booking, Trip).join(Trip, Trip.id == Booking.trip_id).filter(Trip.park_id == park_id)


def booking_stats(db: Session, park_id: str, now: datetime | None = None) -> dict:
    _materialize(db, park_id, now)
    today = today_local(now).isoformat()
    counts = {s: 0 for s in STATUSES}
    revenue = 0
    for b, t in _park_bookings(db, park_id).all():
        counts[b.status] += 1
        if b.status in REVENUE_STATUSES and t.date_str == today:
            revenue += int(b.amount_paid or 0)
    return {
        "total": sum(counts.values()),
        "reserved": counts["RESERVED"],
        "confirmed": counts["CONFIRMED"],
        "expired": counts["EXPIRED"],
        "cancelled": counts["CANCELLED"],
        "completed": counts["COMPLETED"],
        "todayRevenue": revenue,
    }


def last_modified(db: Session, park_id: str) -> datetime | None:
    """Newest change to the park's trips or bookings, for polling clients."""
    trip_ts = db.query(func.max(Trip.updated_at)).filter(Trip.park_id == park_id).scalar()
    booking_ts = (
        db.query(func.max(Booking.updated_at))
        .join(Trip, Trip.id == Booking.trip_id)
        .filter(Trip.park_id == park_id)
        .scalar()
    )
    stamps = [ensure_utc(ts) for ts in (trip_ts, booking_ts) if ts is not None]
    return max(stamps) if stamps else None


def list_bookings(db: Session, park_id: str, status: str = "", date: str = "",
                  modified_after: datetime | None = None, limit: int = 500,
                  now: datetime | None = None) -> list[Booking]:
    _materialize(db, park_id, now)
    q = db.query(Booking).join(Trip, Trip.id == Booking.trip_id).filter(Trip.park_id == park_id)
    if status:
        if status.upper() not in STATUSES:
            raise ValidationError(f"Invalid status '{status}'")
        q = q.filter(Booking.status == status.upper())
    if date:
        q = q.filter(Trip.date_str == parse_date(date).isoformat())
    rows = q.order_by(Booking.created_at.desc()).limit(min(max(limit, 1), 2000)).all()
    if modified_after is not None:
        cutoff = ensure_utc(modified_after)
        rows = [b for b in rows if ensure_utc(b.updated_at) > cutoff]
    return rows


def list_trips(db: Session, park_id: str, status: str = "", date: str = "") -> list[Trip]:
    q = db.query(Trip).filter(Trip.park_id == park_id)
    if status:
        q = q.filter(Trip.status == status.lower())
    if date:
        q = q.filter(Trip.date_str == parse_date(date).isoformat())
    return q.order_by(Trip.date_str.asc(), Trip.unit_time.asc()).all()


def dashboard_overview(db: Session, park_id: str, days: int = 7, now: datetime | None = None) -> dict:
    now = ensure_utc(now) or utcnow()
    days = max(1, min(days, 90))
    _materialize(db, park_id, now)
    tz = park_tz()
    end = today_local(now)
    start = end - timedelta(days=days - 1)
    today = end.isoformat()

    bookings_by_day = defaultdict(int)
    revenue_by_day = defaultdict(int)
    route_bookings = defaultdict(int)
    route_revenue = defaultdict(int)
    bookings_today = 0
    revenue_today = 0
    for b, t in _park_bookings(db, park_id).all():
        created = ensure_utc(b.created_at).astimezone(tz).date()
        paid = b.status in REVENUE_STATUSES
        if start <= created <= end:
            bookings_by_day[created.isoformat()] += 1
            if paid:
                revenue_by_day[created.isoformat()] += int(b.amount_paid or 0)
        if created == end:
            bookings_today += 1
        if paid:
            route_bookings[t.route_id] += 1
            route_revenue[t.route_id] += int(b.amount_paid or 0)
            if t.date_str == today:
                revenue_today += int(b.amount_paid or 0)

    series_days = [(start + timedelta(days=i)).isoformat() for i in range(days)]
    routes = {r.id: r for r in db.query(Route).filter(Route.park_id == park_id).all()}
    top = sorted(route_bookings, key=lambda rid: (-route_revenue[rid], -route_bookings[rid]))[:5]
    drivers = db.query(Driver).filter(Driver.park_id == park_id).all()

    return {
        "date": today,
        "tripsToday": db.query(Trip).filter(Trip.park_id == park_id, Trip.date_str == today,
                                            Trip.status != "cancelled").count(),
        "bookingsToday": bookings_today,
        "revenueToday": revenue_today,
        "activeRoutes": sum(1 for r in routes.values() if r.is_active),
        "totalDrivers": len(drivers),
        "activeDrivers": sum(1 for d in drivers if d.is_active),
        "bookingsByDay": [{"date": d, "value": bookings_by_day[d]} for d in series_days],
        "revenueByDay": [{"date": d, "value": revenue_by_day[d]} for d in series_days],
        "topRoutes": [{
            "routeId": rid,
            "destination": routes[rid].destination if rid in routes else None,
            "bookings": route_bookings[rid],
            "revenue": route_revenue[rid],
        } for rid in top],
    }
