import json
import logging
import uuid
from datetime import datetime, timedelta
from sqlalchemy.orm import Session
from parkops.core.config import settings
from parkops.core.errors import ConflictError, NotFoundError, StateError, ValidationError, VEHICLE_CONFLICT
from parkops.core.timeutils import (
    departure_at, ensure_utc, iso, parse_date, parse_time, today_local, trip_window, utcnow,
)
from parkops.models.adjustment import Adjustment
from parkops.models.booking import Booking
from parkops.models.driver import Driver
from parkops.models.parcel import Parcel
from parkops.models.park import Park
from parkops.models.route import Route
from parkops.models.trip import Trip
from parkops.models.vehicle import Vehicle
from parkops.services.assignment_service import (
    CLOSED_TRIP_STATUSES, apply_driver, check_driver, driver_conflict_error,
    find_driver_conflict, find_vehicle_conflict, lock_trip, window_of,
)
from parkops.services.audit_service import log_audit
from parkops.services.booking_service import (
    active_bookings, expire_stale_holds, recompute_confirmed_count, set_status,
)
from parkops.services.recurrence import expand_dates

log = logging.getLogger(__name__)

TRIP_STATUSES = ("draft", "published", "live", "completed", "cancelled")
TRIP_TRANSITIONS = {
    "draft": ("published", "cancelled"),
    "published": ("live", "cancelled"),
    "live": ("completed", "cancelled"),
    "completed": (),
    "cancelled": (),
}
APPLY_TO = ("occurrence", "future", "series")
PUBLIC_STATUSES = ("published", "live")


def _check_date(date_str: str, now) -> str:
    d = parse_date(date_str)
    if d < today_local(now):
        raise ValidationError("Date cannot be in the past")
    return d.isoformat()


def _check_duration(minutes: int) -> int:
    if minutes <= 0 or minutes > 24 * 60:
        raise ValidationError("Trip duration must be between 1 and 1440 minutes")
    return minutes


def _check_positive(value, label: str):
    if value is None or value <= 0:
        raise ValidationError(f"{label} must be greater than 0")


def _park_vehicle(db: Session, park_id: str, vehicle_id: str) -> Vehicle:
    v = db.get(Vehicle, vehicle_id)
    if not v or v.park_id != park_id:
        raise NotFoundError("Vehicle not found")
    return v


def _pick_vehicle(db: Session, park_id: str, seat_count: int, windows, vehicle_id: str | None = None,
                  exclude_ids=()) -> Vehicle:
    """Requested vehicle, or the smallest vehicle that fits and is free for every window."""
    if vehicle_id:
        v = _park_vehicle(db, park_id, vehicle_id)
        if v.seat_count < seat_count:
            raise ValidationError(f"Vehicle has only {v.seat_count} seats")
        for w in windows:
            clash = find_vehicle_conflict(db, v.id, w, exclude_ids)
            if clash:
                raise ConflictError(
                    f"Vehicle is already committed to a trip on {clash.date_str} at {clash.unit_time}",
                    conflict_type=VEHICLE_CONFLICT, conflict_trip_id=clash.id,
                )
        return v
    candidates = (
        db.query(Vehicle)
        .filter(Vehicle.park_id == park_id, Vehicle.seat_count >= seat_count)
        .order_by(Vehicle.seat_count.asc(), Vehicle.name.asc())
        .all()
    )
    for v in candidates:
        if not any(find_vehicle_conflict(db, v.id, w, exclude_ids) for w in windows):
            return v
    raise ValidationError("No suitable vehicle found for seat count")


def create_trip(db: Session, park_id: str, data: dict, now: datetime | None = None,
                actor: str | None = None) -> list[Trip]:
    """Create one trip, or one per occurrence when ``is_recurrent`` is set.

    Every occurrence is validated and conflict-checked before anything is
    committed; a driver conflict on any occurrence rejects the whole series.
    """
    now = ensure_utc(now) or utcnow()
    route = db.get(Route, data.get("route_id") or "")
    if not route or route.park_id != park_id:
        raise NotFoundError("Route not found")
    if not route.is_active:
        raise ValidationError("Route is inactive")

    first = _check_date(data.get("date") or "", now)
    unit_time = parse_time(data.get("unit_time") or "").strftime("%H:%M")
    seat_count = data.get("seat_count")
    if seat_count is None:
        seat_count = route.vehicle_capacity
    _check_positive(seat_count, "Seat count")
    price = data.get("price")
    if price is None:
        price = route.base_price
    _check_positive(price, "Price")
    duration = _check_duration(data.get("duration_minutes") or settings.TRIP_DURATION_MINUTES)

    recurrence = None
    if data.get("is_recurrent"):
        recurrence = dict(data.get("recurrence") or {})
        recurrence.setdefault("type", "weekly")
        dates = expand_dates(parse_date(first), recurrence)
    else:
        dates = [first]

    windows = [trip_window(d, unit_time, duration) for d in dates]
    vehicle = _pick_vehicle(db, park_id, seat_count, windows, data.get("vehicle_id"))

    driver = None
    if data.get("driver_id"):
        driver = db.get(Driver, data["driver_id"])
        if not driver:
            raise NotFoundError("Driver not found")

    group_id = str(uuid.uuid4()) if len(dates) > 1 or recurrence else None
    trips = []
    for d in dates:
        trips.append(Trip(
            id=str(uuid.uuid4()),
            park_id=park_id,
            route_id=route.id,
            date_str=d,
            unit_time=unit_time,
            duration_minutes=duration,
            vehicle_id=vehicle.id,
            seat_count=seat_count,
            price=int(price),
            status="draft",
            confirmed_bookings_count=0,
            max_parcels_per_vehicle=data.get("max_parcels_per_vehicle") or vehicle.max_parcels_per_vehicle,
            max_parcel_weight_kg=vehicle.max_parcel_weight_kg,
            recurrence_group_id=group_id,
            recurrence_json=json.dumps(recurrence) if recurrence else None,
            created_at=now,
            updated_at=now,
        ))
    db.add_all(trips)

    if driver:
        db.flush()
        try:
            for t, w in zip(trips, windows):
                check_driver(db, t, driver.id)
                apply_driver(db, t, driver, w)
        except ValueError:
            db.rollback()
            raise

    log_audit(db, park_id, actor, "trip.create", "trip", trips[0].id, {
        "tripIds": [t.id for t in trips],
        "recurrenceGroupId": group_id,
        "routeId": route.id,
        "vehicleId": vehicle.id,
        "driverId": driver.id if driver else None,
    })
    db.commit()
    log.info("created %d trip(s) on route %s for park %s", len(trips), route.id, park_id)
    return trips


def get_trip(db: Session, trip_id: str) -> Trip:
    trip = db.get(Trip, trip_id)
    if not trip:
        raise NotFoundError("Trip not found")
    return trip


def get_trips(db: Session, park_id: str, date: str | None = None, status: str | None = None) -> list[Trip]:
    q = db.query(Trip).filter(Trip.park_id == park_id)
    if date:
        q = q.filter(Trip.date_str == parse_date(date).isoformat())
    if status:
        q = q.filter(Trip.status == status)
    return q.order_by(Trip.date_str.asc(), Trip.unit_time.asc()).all()


def _targets(db: Session, trip: Trip, apply_to: str) -> list[Trip]:
    if apply_to == "occurrence" or not trip.recurrence_group_id:
        return [trip]
    siblings = (
        db.query(Trip)
        .filter(Trip.recurrence_group_id == trip.recurrence_group_id,
                Trip.status.notin_(CLOSED_TRIP_STATUSES))
        .order_by(Trip.date_str.asc(), Trip.unit_time.asc())
        .all()
    )
    if apply_to == "future":
        siblings = [t for t in siblings if (t.date_str, t.unit_time) >= (trip.date_str, trip.unit_time)]
    return siblings


def update_trip(db: Session, trip_id: str, updates: dict, apply_to: str = "occurrence",
                now: datetime | None = None, actor: str | None = None) -> list[Trip]:
    """Edit one occurrence, this and later occurrences, or the whole series.

    Completed and cancelled occurrences are left alone. All targets are
    validated before any of them is changed.
    """
    now = ensure_utc(now) or utcnow()
    if apply_to not in APPLY_TO:
        raise ValidationError(f"applyTo must be one of {', '.join(APPLY_TO)}")
    trip = lock_trip(db, trip_id)
    if trip.status in CLOSED_TRIP_STATUSES:
        raise StateError(f"Cannot edit a {trip.status} trip")
    targets = _targets(db, trip, apply_to)
    u = {k: v for k, v in (updates or {}).items() if v is not None}

    if "date" in u:
        if len(targets) > 1:
            raise ValidationError("Date can only be changed for a single occurrence")
        u["date"] = _check_date(u["date"], now)
    if "unit_time" in u:
        u["unit_time"] = parse_time(u["unit_time"]).strftime("%H:%M")
    if "seat_count" in u:
        _check_positive(u["seat_count"], "Seat count")
    if "price" in u:
        _check_positive(u["price"], "Price")
    if "duration_minutes" in u:
        _check_duration(u["duration_minutes"])
    if "max_parcels_per_vehicle" in u and u["max_parcels_per_vehicle"] < 0:
        raise ValidationError("Parcel capacity cannot be negative")

    expire_stale_holds(db, trip_id=None if len(targets) > 1 else trip.id, park_id=trip.park_id, now=now)
    db.flush()
    target_ids = {t.id for t in targets}
    driver = check_driver(db, trip, u["driver_id"]) if u.get("driver_id") else None

    for t in targets:
        seats = u.get("seat_count", t.seat_count)
        booked = len(active_bookings(db, t.id))
        if seats < booked:
            raise ValidationError(f"Cannot set seats below already-booked count ({booked})")
        window = trip_window(u.get("date", t.date_str), u.get("unit_time", t.unit_time),
                             u.get("duration_minutes", t.duration_minutes))
        moved = window != window_of(t)
        vehicle_id = u.get("vehicle_id", t.vehicle_id)
        if vehicle_id != t.vehicle_id or moved or seats > t.seat_count:
            _pick_vehicle(db, t.park_id, seats, [window], vehicle_id, exclude_ids=target_ids)
        driver_id = driver.id if driver else t.driver_id
        if driver_id and (moved or driver_id != t.driver_id):
            clash = find_driver_conflict(db, driver_id, window, target_ids)
            if clash:
                raise driver_conflict_error(clash)

    fields = ("date", "unit_time", "duration_minutes", "seat_count", "price", "vehicle_id",
              "max_parcels_per_vehicle", "max_parcel_weight_kg")
    for t in targets:
        for key in fields:
            if key in u:
                setattr(t, "date_str" if key == "date" else key, u[key])
        if driver:
            t.driver_id = driver.id
        t.updated_at = now
    log_audit(db, trip.park_id, actor, "trip.update", "trip", trip.id,
              {"applyTo": apply_to, "tripIds": sorted(target_ids), "changes": u})
    db.commit()
    return targets


def publish_trip(db: Session, trip_id: str, actor: str | None = None) -> Trip:
    trip = lock_trip(db, trip_id)
    if trip.status != "draft":
        raise StateError(f"Only draft trips can be published (trip is {trip.status})")
    trip.status = "published"
    trip.updated_at = utcnow()
    log_audit(db, trip.park_id, actor, "trip.publish", "trip", trip.id, {})
    db.commit()
    return trip


def update_trip_status(db: Session, trip_id: str, next_status: str, now: datetime | None = None,
                       actor: str | None = None) -> Trip:
    """Lifecycle: draft -> published -> live -> completed, cancel from any open state.

    Cancelling cancels the trip's open bookings and frees its parcels;
    completing completes confirmed bookings and delivers parcels.
    """
    now = ensure_utc(now) or utcnow()
    target = (next_status or "").lower()
    if target not in TRIP_STATUSES:
        raise ValidationError(f"Invalid trip status '{next_status}'")
    trip = lock_trip(db, trip_id)
    if target not in TRIP_TRANSITIONS[trip.status]:
        raise StateError(f"Cannot change trip status from {trip.status} to {target}")

    expire_stale_holds(db, trip_id=trip.id, now=now)
    db.flush()
    parcels = db.query(Parcel).filter(Parcel.assigned_trip_id == trip.id).all()
    if target == "cancelled":
        for b in active_bookings(db, trip.id):
            set_status(b, "CANCELLED", now)
            b.cancellation_reason = b.cancellation_reason or "Trip cancelled"
        for p in parcels:
            p.assigned_trip_id, p.status, p.updated_at = None, "unassigned", now
    elif target == "live":
        for p in parcels:
            p.status, p.updated_at = "in-transit", now
    elif target == "completed":
        for b in active_bookings(db, trip.id):
            set_status(b, "COMPLETED" if b.status == "CONFIRMED" else "CANCELLED", now)
        for p in parcels:
            p.status, p.updated_at = "delivered", now

    previous = trip.status
    trip.status = target
    trip.updated_at = now
    recompute_confirmed_count(db, trip)
    log_audit(db, trip.park_id, actor, "trip.status", "trip", trip.id, {"from": previous, "to": target})
    db.commit()
    return trip


def delete_trip(db: Session, trip_id: str, actor: str | None = None) -> None:
    trip = lock_trip(db, trip_id)
    if trip.status != "draft":
        raise StateError("Only draft trips can be deleted")
    if recompute_confirmed_count(db, trip) > 0:
        raise StateError("Cannot delete trip with confirmed bookings")
    now = utcnow()
    for p in db.query(Parcel).filter(Parcel.assigned_trip_id == trip.id).all():
        p.assigned_trip_id, p.status, p.updated_at = None, "unassigned", now
    db.query(Booking).filter(Booking.trip_id == trip.id).delete(synchronize_session=False)
    db.query(Adjustment).filter(Adjustment.trip_id == trip.id).delete(synchronize_session=False)
    log_audit(db, trip.park_id, actor, "trip.delete", "trip", trip.id,
              {"date": trip.date_str, "unitTime": trip.unit_time, "routeId": trip.route_id})
    db.delete(trip)
    db.commit()


def driver_details_visible(trip: Trip, now: datetime | None = None) -> bool:
    now = ensure_utc(now) or utcnow()
    lead = timedelta(hours=settings.DRIVER_DETAILS_LEAD_HOURS)
    return now >= departure_at(trip.date_str, trip.unit_time) - lead


def get_trips_with_park_metadata(db: Session, park_id: str, date: str | None = None,
                                 statuses: tuple[str, ...] | None = None, now: datetime | None = None) -> list[dict]:
    """Trips joined with park, route, vehicle and driver data for listings.

    The driver's phone is only included from ``DRIVER_DETAILS_LEAD_HOURS``
    before departure.
    """
    now = ensure_utc(now) or utcnow()
    if expire_stale_holds(db, park_id=park_id, now=now):
        db.commit()
    park = db.get(Park, park_id)
    trips = get_trips(db, park_id, date=date)
    if statuses:
        trips = [t for t in trips if t.status in statuses]

    out = []
    for t in trips:
        route = db.get(Route, t.route_id)
        vehicle = db.get(Vehicle, t.vehicle_id)
        driver = db.get(Driver, t.driver_id) if t.driver_id else None
        held = len(active_bookings(db, t.id))
        visible = driver_details_visible(t, now)
        out.append({
            "id": t.id,
            "parkId": t.park_id,
            "parkName": park.name if park else None,
            "parkAddress": park.address if park else None,
            "routeId": t.route_id,
            "destination": route.destination if route else None,
            "date": t.date_str,
            "unitTime": t.unit_time,
            "departureAt": iso(departure_at(t.date_str, t.unit_time)),
            "status": t.status,
            "price": t.price,
            "seatCount": t.seat_count,
            "availableSeats": max(t.seat_count - held, 0),
            "confirmedBookingsCount": t.confirmed_bookings_count,
            "vehicleName": vehicle.name if vehicle else None,
            "vehiclePlateNumber": vehicle.plate_number if vehicle else None,
            "driverName": driver.name if driver else None,
            "driverPhone": driver.phone if driver and visible else None,
            "driverDetailsVisible": bool(driver) and visible,
        })
    return out
