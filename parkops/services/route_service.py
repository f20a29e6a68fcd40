import uuid
from sqlalchemy.orm import Session
from parkops.core.errors import NotFoundError, ValidationError
from parkops.core.timeutils import utcnow
from parkops.models.route import Route
from parkops.services.audit_service import log_audit


def _validate(destination, base_price, vehicle_capacity):
    if destination is not None and not destination.strip():
        raise ValidationError("Destination is required")
    if base_price is not None and base_price <= 0:
        raise ValidationError("Base price must be greater than 0")
    if vehicle_capacity is not None and vehicle_capacity <= 0:
        raise ValidationError("Vehicle capacity must be greater than 0")


def create_route(db: Session, park_id: str, data: dict, actor: str | None = None) -> Route:
    destination = data.get("destination") or ""
    _validate(destination, data.get("base_price"), data.get("vehicle_capacity"))
    if data.get("base_price") is None:
        raise ValidationError("Base price is required")
    route = Route(
        id=str(uuid.uuid4()),
        park_id=park_id,
        destination=destination.strip(),
        destination_park=data.get("destination_park"),
        base_price=int(data["base_price"]),
        vehicle_capacity=int(data.get("vehicle_capacity") or 18),
        is_active=bool(data.get("is_active", True)),
    )
    db.add(route)
    log_audit(db, park_id, actor, "route.create", "route", route.id, {"destination": route.destination})
    db.commit()
    return route


def get_route(db: Session, route_id: str) -> Route:
    route = db.get(Route, route_id)
    if not route:
        raise NotFoundError("Route not found")
    return route


def list_routes(db: Session, park_id: str, active_only: bool = False) -> list[Route]:
    q = db.query(Route).filter(Route.park_id == park_id)
    if active_only:
        q = q.filter(Route.is_active == True)  # noqa: E712
    return q.order_by(Route.destination.asc()).all()


def update_route(db: Session, route_id: str, patch: dict, actor: str | None = None) -> Route:
    route = get_route(db, route_id)
    _validate(patch.get("destination"), patch.get("base_price"), patch.get("vehicle_capacity"))
    for key in ("destination", "destination_park", "base_price", "vehicle_capacity", "is_active"):
        if patch.get(key) is not None:
            setattr(route, key, patch[key].strip() if key == "destination" else patch[key])
    route.updated_at = utcnow()
    log_audit(db, route.park_id, actor, "route.update", "route", route.id, patch)
    db.commit()
    return route
