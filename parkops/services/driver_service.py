import re
import uuid
from datetime import datetime
from sqlalchemy.orm import Session
from parkops.core.errors import ConflictError, NotFoundError, StateError, ValidationError, DUPLICATE_LICENSE
from parkops.core.phone import digits_only
from parkops.core.timeutils import parse_date, today_local, utcnow
from parkops.models.driver import Driver
from parkops.models.trip import Trip
from parkops.services.audit_service import log_audit

PLATE_RE = re.compile(r"^[A-Za-z]{3}-\d{3}[A-Za-z]{2}$")  # e.g. LAG-234KJ
ACTIVE_TRIP_STATUSES = ("draft", "published", "live")


def _validate(data: dict, partial: bool = False):
    name = data.get("name")
    if name is not None or not partial:
        if not name or len(name.strip()) < 2:
            raise ValidationError("Driver name must be at least 2 characters")
    phone = data.get("phone")
    if phone is not None or not partial:
        if len(digits_only(phone)) < 7:
            raise ValidationError("Phone number must have at least 7 digits")
    lic = data.get("license_number")
    if lic is not None or not partial:
        if not lic or not lic.strip():
            raise ValidationError("License number is required")
    if data.get("license_expiry"):
        parse_date(data["license_expiry"], "licenseExpiry")
    rating = data.get("rating")
    if rating is not None and not (0 <= rating <= 5):
        raise ValidationError("Rating must be between 0 and 5")
    plate = data.get("vehicle_plate_number")
    if plate and not PLATE_RE.match(plate):
        raise ValidationError("Invalid plate number format (e.g. LAG-234KJ)")


def _license_taken(db: Session, park_id: str, license_number: str, exclude_id: str | None = None) -> bool:
    q = db.query(Driver).filter(Driver.park_id == park_id, Driver.license_number == license_number.strip().upper())
    if exclude_id:
        q = q.filter(Driver.id != exclude_id)
    return q.first() is not None


def create_driver(db: Session, park_id: str, data: dict, actor: str | None = None) -> Driver:
    _validate(data)
    if _license_taken(db, park_id, data["license_number"]):
        raise ConflictError("Driver with this license number already exists in this park", conflict_type=DUPLICATE_LICENSE)
    d = Driver(
        id=str(uuid.uuid4()),
        park_id=park_id,
        name=data["name"].strip(),
        phone=data["phone"].strip(),
        license_number=data["license_number"].strip().upper(),
        license_expiry=data.get("license_expiry"),
        qualified_route=(data.get("qualified_route") or "").strip(),
        vehicle_plate_number=(data.get("vehicle_plate_number") or "").upper() or None,
        address=data.get("address"),
        rating=data.get("rating"),
        is_active=bool(data.get("is_active", True)),
    )
    db.add(d)
    log_audit(db, park_id, actor, "driver.create", "driver", d.id, {"name": d.name, "license": d.license_number})
    db.commit()
    return d


def get_driver(db: Session, driver_id: str) -> Driver:
    d = db.get(Driver, driver_id)
    if not d:
        raise NotFoundError("Driver not found")
    return d


def update_driver(db: Session, driver_id: str, patch: dict, actor: str | None = None) -> Driver:
    d = get_driver(db, driver_id)
    _validate(patch, partial=True)
    if patch.get("license_number") and _license_taken(db, d.park_id, patch["license_number"], exclude_id=d.id):
        raise ConflictError("Driver with this license number already exists in this park", conflict_type=DUPLICATE_LICENSE)
    for key in ("name", "phone", "license_number", "license_expiry", "qualified_route",
                "vehicle_plate_number", "address", "rating", "is_active"):
        if key in patch and patch[key] is not None:
            value = patch[key]
            if key in ("license_number", "vehicle_plate_number"):
                value = value.strip().upper()
            elif isinstance(value, str):
                value = value.strip()
            setattr(d, key, value)
    d.updated_at = utcnow()
    log_audit(db, d.park_id, actor, "driver.update", "driver", d.id, patch)
    db.commit()
    return d


def delete_driver(db: Session, driver_id: str, actor: str | None = None) -> None:
    d = get_driver(db, driver_id)
    busy = (
        db.query(Trip)
        .filter(Trip.driver_id == d.id, Trip.status.in_(ACTIVE_TRIP_STATUSES))
        .order_by(Trip.date_str.asc(), Trip.unit_time.asc())
        .first()
    )
    if busy:
        raise StateError("Cannot delete a driver assigned to an active trip", tripId=busy.id)
    log_audit(db, d.park_id, actor, "driver.delete", "driver", d.id, {"name": d.name})
    db.delete(d)
    db.commit()


def license_state(d: Driver, today) -> str:
    if not d.license_expiry:
        return "unknown"
    try:
        expiry = datetime.strptime(d.license_expiry, "%Y-%m-%d").date()
    except ValueError:
        return "unknown"
    return "valid" if expiry >= today else "expired"


def list_drivers(db: Session, park_id: str, filters: dict | None = None, page: int = 1, limit: int = 20,
                 now: datetime | None = None) -> dict:
    """Filtered, paginated driver listing.

    filters: destination, status (active|inactive), minRating,
    license (valid|expired|unknown), availability (available|unavailable) on date.
    """
    f = filters or {}
    page = max(page, 1)
    limit = min(max(limit, 1), 100)
    q = db.query(Driver).filter(Driver.park_id == park_id)
    if f.get("destination"):
        q = q.filter(Driver.qualified_route.ilike(f["destination"].strip()))
    if f.get("status") == "active":
        q = q.filter(Driver.is_active == True)  # noqa: E712
    elif f.get("status") == "inactive":
        q = q.filter(Driver.is_active == False)  # noqa: E712
    if f.get("minRating") is not None:
        q = q.filter(Driver.rating != None, Driver.rating >= float(f["minRating"]))  # noqa: E711
    drivers = q.order_by(Driver.name.asc()).all()

    today = today_local(now)
    if f.get("license") in ("valid", "expired", "unknown"):
        drivers = [d for d in drivers if license_state(d, today) == f["license"]]

    if f.get("availability") in ("available", "unavailable"):
        on = f.get("date") or today.isoformat()
        parse_date(on)
        busy = {
            row[0] for row in db.query(Trip.driver_id)
            .filter(Trip.park_id == park_id, Trip.date_str == on, Trip.driver_id != None,  # noqa: E711
                    Trip.status != "cancelled")
            .all()
        }
        want_busy = f["availability"] == "unavailable"
        drivers = [d for d in drivers if (d.id in busy) == want_busy]

    total = len(drivers)
    start = (page - 1) * limit
    return {
        "data": drivers[start:start + limit],
        "total": total,
        "page": page,
        "limit": limit,
        "hasNext": start + limit < total,
        "hasPrev": page > 1,
    }
