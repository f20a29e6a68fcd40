from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from parkops.api.deps import current_park, get_actor, park_scope, require_park
from parkops.db.session import get_db
from parkops.schemas.registry import RouteIn, RoutePatch, route_out
from parkops.services.fleet_service import get_park
from parkops.services.route_service import create_route, get_route, list_routes, update_route

router = APIRouter(tags=["routes"])


@router.get("/routes")
def routes(activeOnly: bool = False, park_id: str = Depends(current_park), db: Session = Depends(get_db)):
    return {"success": True, "data": [route_out(r) for r in list_routes(db, park_id, active_only=activeOnly)]}


@router.post("/routes", status_code=201)
def new_route(body: RouteIn, park_id: str | None = Depends(park_scope), actor: str = Depends(get_actor),
              db: Session = Depends(get_db)):
    pid = require_park(body.park_id, park_id)
    get_park(db, pid)
    r = create_route(db, pid, body.model_dump(exclude={"park_id"}), actor=actor)
    return {"success": True, "data": route_out(r)}


@router.get("/routes/{route_id}")
def route_detail(route_id: str, db: Session = Depends(get_db)):
    return {"success": True, "data": route_out(get_route(db, route_id))}


@router.patch("/routes/{route_id}")
def patch_route(route_id: str, body: RoutePatch, actor: str = Depends(get_actor), db: Session = Depends(get_db)):
    r = update_route(db, route_id, body.model_dump(exclude_unset=True), actor=actor)
    return {"success": True, "data": route_out(r)}
