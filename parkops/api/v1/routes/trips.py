from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session
from parkops.api.deps import current_park, get_actor, park_scope, require_park
from parkops.core.config import settings
from parkops.db.session import get_db
from parkops.models.driver import Driver
from parkops.models.park import Park
from parkops.models.route import Route
from parkops.models.vehicle import Vehicle
from parkops.schemas.booking import booking_out
from parkops.schemas.trip import (
    AdjustmentIn, AssignDriverIn, AssignParcelsIn, CheckInIn, CheckPaymentIn, PayoutIn,
    TripCreate, TripStatusIn, TripUpdate, trip_out,
)
from parkops.services.assignment_service import assign_driver_with_conflict_check, assign_parcels, unassign_driver
from parkops.services.booking_service import check_in_booking, confirm_booking_payment, list_trip_bookings
from parkops.services.finance_service import add_adjustment, set_payout_status, trip_finance
from parkops.services.fleet_service import get_park
from parkops.services.manifest_service import render_manifest_pdf_bytes
from parkops.services.trip_service import (
    create_trip, delete_trip, get_trip, get_trips, get_trips_with_park_metadata,
    publish_trip, update_trip, update_trip_status,
)

router = APIRouter(tags=["trips"])


@router.post("/trips", status_code=201)
def create_trips(body: TripCreate, park_id: str | None = Depends(park_scope),
                 actor: str = Depends(get_actor), db: Session = Depends(get_db)):
    pid = require_park(body.park_id, park_id)
    get_park(db, pid)
    data = body.model_dump(exclude_unset=True, exclude={"park_id"})
    trips = create_trip(db, pid, data, actor=actor)
    msg = f"Created {len(trips)} trips" if len(trips) > 1 else "Trip created"
    return {"success": True, "data": [trip_out(t) for t in trips], "message": msg}


@router.get("/trips")
def list_trips(
    date: str = "",
    status: str = "",
    withMetadata: bool = False,
    park_id: str = Depends(current_park),
    db: Session = Depends(get_db),
):
    if withMetadata:
        rows = get_trips_with_park_metadata(db, park_id, date=date or None,
                                            statuses=(status,) if status else None)
        return {"success": True, "data": rows}
    trips = get_trips(db, park_id, date=date or None, status=status or None)
    return {"success": True, "data": [trip_out(t) for t in trips]}


@router.get("/trips/{trip_id}")
def get_trip_detail(trip_id: str, db: Session = Depends(get_db)):
    return {"success": True, "data": trip_out(get_trip(db, trip_id))}


@router.put("/trips/{trip_id}")
def update_trip_endpoint(trip_id: str, body: TripUpdate, applyTo: str | None = Query(default=None),
                         actor: str = Depends(get_actor), db: Session = Depends(get_db)):
    updates = body.model_dump(exclude_unset=True, exclude={"apply_to"})
    trips = update_trip(db, trip_id, updates, apply_to=applyTo or body.apply_to, actor=actor)
    return {"success": True, "data": [trip_out(t) for t in trips], "message": f"Updated {len(trips)} trip(s)"}


@router.delete("/trips/{trip_id}")
def delete_trip_endpoint(trip_id: str, actor: str = Depends(get_actor), db: Session = Depends(get_db)):
    delete_trip(db, trip_id, actor=actor)
    return {"success": True, "message": "Trip deleted"}


@router.post("/trips/{trip_id}/publish")
def publish(trip_id: str, actor: str = Depends(get_actor), db: Session = Depends(get_db)):
    return {"success": True, "data": trip_out(publish_trip(db, trip_id, actor=actor)), "message": "Trip published"}


@router.post("/trips/{trip_id}/status")
def change_status(trip_id: str, body: TripStatusIn, actor: str = Depends(get_actor), db: Session = Depends(get_db)):
    trip = update_trip_status(db, trip_id, body.status, actor=actor)
    return {"success": True, "data": trip_out(trip)}


@router.post("/trips/{trip_id}/assign-driver")
def assign_driver(trip_id: str, body: AssignDriverIn, actor: str = Depends(get_actor), db: Session = Depends(get_db)):
    trip = assign_driver_with_conflict_check(db, trip_id, body.driver_id, actor=actor)
    return {"success": True, "data": trip_out(trip), "message": "Driver assigned"}


@router.delete("/trips/{trip_id}/driver")
def remove_driver(trip_id: str, actor: str = Depends(get_actor), db: Session = Depends(get_db)):
    return {"success": True, "data": trip_out(unassign_driver(db, trip_id, actor=actor))}


@router.post("/trips/{trip_id}/assign-parcels")
def assign_trip_parcels(trip_id: str, body: AssignParcelsIn, actor: str = Depends(get_actor),
                        db: Session = Depends(get_db)):
    result = assign_parcels(db, trip_id, body.parcel_ids, override=body.override, actor=actor)
    return {"success": True, "data": result}


@router.post("/trips/{trip_id}/check-payment")
def check_payment(trip_id: str, body: CheckPaymentIn, actor: str = Depends(get_actor), db: Session = Depends(get_db)):
    b = confirm_booking_payment(db, body.booking_id, body.payment_reference, trip_id=trip_id, actor=actor)
    return {"success": True, "data": booking_out(b), "message": "Payment confirmed"}


@router.post("/trips/{trip_id}/checkin")
def checkin(trip_id: str, body: CheckInIn, actor: str = Depends(get_actor), db: Session = Depends(get_db)):
    b = check_in_booking(db, trip_id, body.booking_id, on_date=body.date, actor=actor)
    return {"success": True, "data": booking_out(b), "message": f"{b.passenger_name} checked in"}


@router.get("/trips/{trip_id}/bookings")
def trip_bookings(trip_id: str, db: Session = Depends(get_db)):
    return {"success": True, "data": [booking_out(b) for b in list_trip_bookings(db, trip_id)]}


@router.get("/trips/{trip_id}/finance")
def finance(trip_id: str, db: Session = Depends(get_db)):
    return {"success": True, "data": trip_finance(db, trip_id)}


@router.post("/trips/{trip_id}/adjustments", status_code=201)
def adjust(trip_id: str, body: AdjustmentIn, actor: str = Depends(get_actor), db: Session = Depends(get_db)):
    add_adjustment(db, trip_id, body.amount, body.reason, actor=actor)
    return {"success": True, "data": trip_finance(db, trip_id)}


@router.post("/trips/{trip_id}/payout")
def payout(trip_id: str, body: PayoutIn, actor: str = Depends(get_actor), db: Session = Depends(get_db)):
    set_payout_status(db, trip_id, body.status, actor=actor)
    return {"success": True, "data": trip_finance(db, trip_id)}


@router.get("/trips/{trip_id}/manifest.pdf")
def manifest(trip_id: str, db: Session = Depends(get_db)):
    trip = get_trip(db, trip_id)
    park = db.get(Park, trip.park_id)
    route = db.get(Route, trip.route_id)
    vehicle = db.get(Vehicle, trip.vehicle_id)
    driver = db.get(Driver, trip.driver_id) if trip.driver_id else None
    rows = [{
        "seat": b.seat_number,
        "name": b.passenger_name,
        "phone": b.passenger_phone,
        "nokName": b.nok_name,
        "nokPhone": b.nok_phone,
        "status": b.status,
        "checkedIn": b.checked_in,
    } for b in list_trip_bookings(db, trip_id) if b.status in ("RESERVED", "CONFIRMED", "COMPLETED")]
    pdf = render_manifest_pdf_bytes(
        park_name=park.name if park else settings.APP_NAME,
        destination=route.destination if route else "",
        date_str=trip.date_str,
        unit_time=trip.unit_time,
        vehicle=f"{vehicle.name} {vehicle.plate_number or ''}".strip() if vehicle else "",
        driver_name=driver.name if driver else "",
        rows=rows,
    )
    return Response(content=pdf, media_type="application/pdf",
                    headers={"Content-Disposition": f'inline; filename="manifest-{trip.date_str}-{trip.id[:8]}.pdf"'})
