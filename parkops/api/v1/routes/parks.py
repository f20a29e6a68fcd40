from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from parkops.api.deps import get_actor
from parkops.db.session import get_db
from parkops.schemas.registry import ParcelIn, VehicleIn, driver_out, parcel_out, vehicle_out
from parkops.services.driver_service import list_drivers
from parkops.services.fleet_service import add_vehicle, get_park, list_vehicles
from parkops.services.parcel_service import create_parcel, list_parcels
from parkops.services.trip_service import PUBLIC_STATUSES, get_trips_with_park_metadata

router = APIRouter(tags=["parks"])


@router.get("/parks/{park_id}/trips")
def park_trips(park_id: str, date: str = "", db: Session = Depends(get_db)):
    """Published and live trips for passenger-facing listings."""
    get_park(db, park_id)
    rows = get_trips_with_park_metadata(db, park_id, date=date or None, statuses=PUBLIC_STATUSES)
    return {"success": True, "data": rows}


@router.get("/parks/{park_id}/drivers")
def park_drivers(
    park_id: str,
    destination: str = "",
    status: str = "",
    minRating: float | None = None,
    license: str = "",
    availability: str = "",
    date: str = "",
    page: int = 1,
    limit: int = 20,
    db: Session = Depends(get_db),
):
    get_park(db, park_id)
    filters = {"destination": destination, "status": status, "minRating": minRating,
               "license": license, "availability": availability, "date": date or None}
    result = list_drivers(db, park_id, filters, page=page, limit=limit)
    result["data"] = [driver_out(d) for d in result["data"]]
    return {"success": True, **result}


@router.get("/parks/{park_id}/vehicles")
def park_vehicles(park_id: str, db: Session = Depends(get_db)):
    get_park(db, park_id)
    return {"success": True, "data": [vehicle_out(v) for v in list_vehicles(db, park_id)]}


@router.get("/parks/{park_id}/parcels")
def park_parcels(park_id: str, status: str = "", tripId: str = "", db: Session = Depends(get_db)):
    get_park(db, park_id)
    return {"success": True, "data": [parcel_out(p) for p in list_parcels(db, park_id, status=status, trip_id=tripId)]}


@router.post("/parks/{park_id}/parcels", status_code=201)
def new_parcel(park_id: str, body: ParcelIn, actor: str = Depends(get_actor), db: Session = Depends(get_db)):
    get_park(db, park_id)
    p = create_parcel(db, park_id, body.model_dump(), actor=actor)
    return {"success": True, "data": parcel_out(p)}


@router.post("/parks/{park_id}/vehicles", status_code=201)
def new_vehicle(park_id: str, body: VehicleIn, actor: str = Depends(get_actor), db: Session = Depends(get_db)):
    get_park(db, park_id)
    v = add_vehicle(db, park_id, actor=actor, **body.model_dump())
    return {"success": True, "data": vehicle_out(v)}
