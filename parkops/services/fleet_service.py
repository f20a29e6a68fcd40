import uuid
from sqlalchemy.orm import Session
from parkops.core.errors import NotFoundError, ValidationError
from parkops.models.park import Park
from parkops.models.vehicle import Vehicle
from parkops.services.audit_service import log_audit


def get_park(db: Session, park_id: str) -> Park:
    park = db.get(Park, park_id)
    if not park:
        raise NotFoundError("Park not found")
    return park


def list_vehicles(db: Session, park_id: str) -> list[Vehicle]:
    return (
        db.query(Vehicle)
        .filter(Vehicle.park_id == park_id)
        .order_by(Vehicle.seat_count.asc(), Vehicle.name.asc())
        .all()
    )


def add_vehicle(db: Session, park_id: str, name: str, seat_count: int, plate_number: str | None = None,
                max_parcels_per_vehicle: int = 10, max_parcel_weight_kg: float | None = None,
                actor: str | None = None) -> Vehicle:
    if not (name or "").strip():
        raise ValidationError("Vehicle name is required")
    if seat_count <= 0:
        raise ValidationError("Seat count must be greater than 0")
    if max_parcels_per_vehicle < 0:
        raise ValidationError("Parcel capacity cannot be negative")
    v = Vehicle(
        id=str(uuid.uuid4()),
        park_id=park_id,
        name=name.strip(),
        plate_number=(plate_number or "").strip().upper() or None,
        seat_count=seat_count,
        max_parcels_per_vehicle=max_parcels_per_vehicle,
        max_parcel_weight_kg=max_parcel_weight_kg,
    )
    db.add(v)
    log_audit(db, park_id, actor, "vehicle.create", "vehicle", v.id, {"name": v.name, "seatCount": seat_count})
    db.commit()
    return v
