import uuid
from sqlalchemy.orm import Session
from parkops.core.errors import NotFoundError, ValidationError
from parkops.core.phone import digits_only
from parkops.models.parcel import Parcel
from parkops.models.route import Route
from parkops.services.audit_service import log_audit

PARCEL_STATUSES = ("unassigned", "assigned", "in-transit", "delivered")


def create_parcel(db: Session, park_id: str, data: dict, actor: str | None = None) -> Parcel:
    for key, label in (("sender_name", "Sender name"), ("receiver_name", "Receiver name")):
        if not (data.get(key) or "").strip():
            raise ValidationError(f"{label} is required")
    for key, label in (("sender_phone", "Sender phone"), ("receiver_phone", "Receiver phone")):
        if len(digits_only(data.get(key))) < 7:
            raise ValidationError(f"{label} must have at least 7 digits")
    fee = data.get("fee") or 0
    weight = data.get("weight_kg") or 0
    if fee < 0:
        raise ValidationError("Fee cannot be negative")
    if weight < 0:
        raise ValidationError("Weight cannot be negative")
    route_id = data.get("destination_route_id")
    if route_id:
        route = db.get(Route, route_id)
        if not route or route.park_id != park_id:
            raise NotFoundError("Route not found")
    p = Parcel(
        id=str(uuid.uuid4()),
        park_id=park_id,
        description=(data.get("description") or "").strip(),
        weight_kg=float(weight),
        destination_route_id=route_id,
        sender_name=data["sender_name"].strip(),
        sender_phone=data["sender_phone"].strip(),
        receiver_name=data["receiver_name"].strip(),
        receiver_phone=data["receiver_phone"].strip(),
        fee=int(fee),
        status="unassigned",
    )
    db.add(p)
    log_audit(db, park_id, actor, "parcel.create", "parcel", p.id, {"fee": p.fee, "routeId": route_id})
    db.commit()
    return p


def list_parcels(db: Session, park_id: str, status: str = "", trip_id: str = "") -> list[Parcel]:
    q = db.query(Parcel).filter(Parcel.park_id == park_id)
    if status:
        if status not in PARCEL_STATUSES:
            raise ValidationError(f"Invalid parcel status '{status}'")
        q = q.filter(Parcel.status == status)
    if trip_id:
        q = q.filter(Parcel.assigned_trip_id == trip_id)
    return q.order_by(Parcel.created_at.desc()).all()
