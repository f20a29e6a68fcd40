import logging
from datetime import datetime, timedelta
from sqlalchemy import select
from sqlalchemy.orm import Session
from parkops.core.errors import (
    ConflictError, NotFoundError, StateError, ValidationError,
    DRIVER_CONFLICT, PARCEL_CAPACITY_EXCEEDED,
)
from parkops.core.timeutils import trip_window, utcnow, windows_overlap
from parkops.models.driver import Driver
from parkops.models.parcel import Parcel
from parkops.models.trip import Trip
from parkops.services.audit_service import log_audit

log = logging.getLogger(__name__)

CLOSED_TRIP_STATUSES = ("completed", "cancelled")


def lock_trip(db: Session, trip_id: str) -> Trip:
    # Row lock on databases that support it; the store lock covers SQLite.
    trip = db.execute(select(Trip).where(Trip.id == trip_id).with_for_update()).scalar_one_or_none()
    if not trip:
        raise NotFoundError("Trip not found")
    return trip


def window_of(trip: Trip) -> tuple[datetime, datetime]:
    return trip_window(trip.date_str, trip.unit_time, trip.duration_minutes)


def _overlapping(db: Session, column, value: str, window, exclude_ids) -> Trip | None:
    lo = (window[0].date() - timedelta(days=2)).isoformat()
    hi = (window[1].date() + timedelta(days=2)).isoformat()
    candidates = (
        db.query(Trip)
        .filter(column == value, Trip.status != "cancelled",
                Trip.date_str >= lo, Trip.date_str <= hi)
        .order_by(Trip.date_str.asc(), Trip.unit_time.asc())
        .all()
    )
    for other in candidates:
        if other.id in exclude_ids:
            continue
        if windows_overlap(window, window_of(other)):
            return other
    return None


def find_driver_conflict(db: Session, driver_id: str, window, exclude_ids=()) -> Trip | None:
    """First non-cancelled trip of this driver whose time window overlaps ``window``."""
    return _overlapping(db, Trip.driver_id, driver_id, window, set(exclude_ids))


def find_vehicle_conflict(db: Session, vehicle_id: str, window, exclude_ids=()) -> Trip | None:
    return _overlapping(db, Trip.vehicle_id, vehicle_id, window, set(exclude_ids))


def driver_conflict_error(conflict: Trip) -> ConflictError:
    return ConflictError(
        f"Driver is already assigned to trip on {conflict.date_str} at {conflict.unit_time}",
        conflict_type=DRIVER_CONFLICT,
        conflict_trip_id=conflict.id,
    )


def check_driver(db: Session, trip: Trip, driver_id: str) -> Driver:
    driver = db.get(Driver, driver_id)
    if not driver:
        raise NotFoundError("Driver not found")
    if driver.park_id != trip.park_id:
        raise ValidationError("Driver does not belong to this park")
    if not driver.is_active:
        raise ValidationError("Driver is inactive")
    return driver


def apply_driver(db: Session, trip: Trip, driver: Driver, window=None, exclude_ids=()) -> None:
    """Conflict-check and set the driver without committing."""
    conflict = find_driver_conflict(db, driver.id, window or window_of(trip), {trip.id, *exclude_ids})
    if conflict:
        log.info("driver %s conflicts with trip %s for trip %s", driver.id, conflict.id, trip.id)
        raise driver_conflict_error(conflict)
    trip.driver_id = driver.id
    trip.updated_at = utcnow()


def assign_driver_with_conflict_check(db: Session, trip_id: str, driver_id: str, actor: str | None = None) -> Trip:
    trip = lock_trip(db, trip_id)
    if trip.status in CLOSED_TRIP_STATUSES:
        raise StateError(f"Cannot assign a driver to a {trip.status} trip")
    driver = check_driver(db, trip, driver_id)
    if trip.driver_id == driver.id:
        return trip
    previous = trip.driver_id
    apply_driver(db, trip, driver)
    log_audit(db, trip.park_id, actor, "driver.assign", "trip", trip.id, {"driverId": driver.id, "previousDriverId": previous})
    db.commit()
    return trip


def unassign_driver(db: Session, trip_id: str, actor: str | None = None) -> Trip:
    trip = lock_trip(db, trip_id)
    if trip.status in CLOSED_TRIP_STATUSES:
        raise StateError(f"Cannot change the driver of a {trip.status} trip")
    if trip.driver_id:
        log_audit(db, trip.park_id, actor, "driver.unassign", "trip", trip.id, {"driverId": trip.driver_id})
        trip.driver_id = None
        trip.updated_at = utcnow()
        db.commit()
    return trip


def assign_parcels(db: Session, trip_id: str, parcel_ids: list[str], override: bool = False,
                   actor: str | None = None) -> dict:
    trip = lock_trip(db, trip_id)
    if trip.status in CLOSED_TRIP_STATUSES:
        raise StateError(f"Cannot assign parcels to a {trip.status} trip")
    ids = list(dict.fromkeys(parcel_ids or []))
    if not ids:
        raise ValidationError("No parcels selected")

    parcels = {p.id: p for p in db.query(Parcel).filter(Parcel.id.in_(ids)).all()}
    fresh, already = [], []
    for pid in ids:
        p = parcels.get(pid)
        if not p:
            raise NotFoundError(f"Parcel {pid} not found")
        if p.park_id != trip.park_id:
            raise ValidationError(f"Parcel {pid} belongs to another park")
        if p.assigned_trip_id == trip.id:
            already.append(p)
        elif p.assigned_trip_id:
            raise StateError(f"Parcel {pid} is already assigned to another trip", tripId=p.assigned_trip_id)
        elif p.status == "delivered":
            raise StateError(f"Parcel {pid} has already been delivered")
        else:
            fresh.append(p)

    on_trip = db.query(Parcel).filter(Parcel.assigned_trip_id == trip.id).all()
    if not fresh:
        return {
            "tripId": trip.id,
            "assigned": [],
            "alreadyAssigned": [p.id for p in already],
            "totalParcels": len(on_trip),
            "overrideUsed": False,
        }

    total = len(on_trip) + len(fresh)
    reason = None
    if total > trip.max_parcels_per_vehicle:
        reason = f"Would exceed vehicle capacity ({trip.max_parcels_per_vehicle}). Use override to proceed."
    elif trip.max_parcel_weight_kg:
        weight = sum(p.weight_kg or 0 for p in on_trip) + sum(p.weight_kg or 0 for p in fresh)
        if weight > trip.max_parcel_weight_kg:
            reason = f"Would exceed vehicle weight limit ({trip.max_parcel_weight_kg:g}kg). Use override to proceed."
    if reason and not override:
        raise ConflictError("Parcel capacity exceeded", conflict_type=PARCEL_CAPACITY_EXCEEDED, reason=reason)

    now = utcnow()
    for p in fresh:
        p.assigned_trip_id = trip.id
        p.status = "assigned"
        p.updated_at = now
    trip.updated_at = now
    log_audit(db, trip.park_id, actor, "parcels.assign", "trip", trip.id, {
        "parcelIds": [p.id for p in fresh],
        "override": bool(override),
        "overCapacity": reason is not None,
        "reason": reason,
    })
    db.commit()
    return {
        "tripId": trip.id,
        "assigned": [p.id for p in fresh],
        "alreadyAssigned": [p.id for p in already],
        "totalParcels": total,
        "overrideUsed": bool(override and reason),
    }
