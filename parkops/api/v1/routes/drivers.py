from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from parkops.api.deps import current_park, get_actor, park_scope, require_park
from parkops.db.session import get_db
from parkops.schemas.registry import DriverIn, DriverPatch, driver_out
from parkops.services.driver_service import create_driver, delete_driver, get_driver, list_drivers, update_driver
from parkops.services.fleet_service import get_park

router = APIRouter(tags=["drivers"])


@router.get("/drivers")
def drivers(
    destination: str = "",
    status: str = "",
    minRating: float | None = None,
    license: str = "",
    availability: str = "",
    date: str = "",
    page: int = 1,
    limit: int = 20,
    park_id: str = Depends(current_park),
    db: Session = Depends(get_db),
):
    filters = {"destination": destination, "status": status, "minRating": minRating,
               "license": license, "availability": availability, "date": date or None}
    result = list_drivers(db, park_id, filters, page=page, limit=limit)
    result["data"] = [driver_out(d) for d in result["data"]]
    return {"success": True, **result}


@router.post("/drivers", status_code=201)
def onboard_driver(body: DriverIn, park_id: str | None = Depends(park_scope), actor: str = Depends(get_actor),
                   db: Session = Depends(get_db)):
    pid = require_park(body.park_id, park_id)
    get_park(db, pid)
    d = create_driver(db, pid, body.model_dump(exclude={"park_id"}), actor=actor)
    return {"success": True, "data": driver_out(d), "message": "Driver onboarded"}


@router.get("/drivers/{driver_id}")
def driver_detail(driver_id: str, db: Session = Depends(get_db)):
    return {"success": True, "data": driver_out(get_driver(db, driver_id))}


@router.patch("/drivers/{driver_id}")
def patch_driver(driver_id: str, body: DriverPatch, actor: str = Depends(get_actor), db: Session = Depends(get_db)):
    d = update_driver(db, driver_id, body.model_dump(exclude_unset=True), actor=actor)
    return {"success": True, "data": driver_out(d)}


@router.delete("/drivers/{driver_id}")
def remove_driver(driver_id: str, actor: str = Depends(get_actor), db: Session = Depends(get_db)):
    delete_driver(db, driver_id, actor=actor)
    return {"success": True, "message": "Driver deleted"}
