from datetime import datetime
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from parkops.api.deps import current_park, get_actor
from parkops.core.config import settings
from parkops.core.errors import NotFoundError
from parkops.core.timeutils import iso
from parkops.db.session import get_db
from parkops.schemas.booking import BookingCreate, BookingStatusIn, booking_out
from parkops.services.booking_service import (
    create_booking_with_hold, get_booking, search_bookings, update_booking_status,
)
from parkops.services.query_service import booking_stats, last_modified, list_bookings

router = APIRouter(tags=["bookings"])


@router.post("/bookings", status_code=201)
def create_booking(body: BookingCreate, actor: str = Depends(get_actor), db: Session = Depends(get_db)):
    passenger = body.model_dump(exclude={"trip_id"})
    booking, token = create_booking_with_hold(db, body.trip_id, passenger, actor=actor)
    return {
        "success": True,
        "data": {"booking": booking_out(booking), "holdToken": token, "holdExpiresAt": iso(booking.hold_expires_at)},
        "message": f"Booking created with {settings.HOLD_MINUTES}-minute hold",
    }


@router.get("/bookings/live")
def live_bookings(
    status: str = "",
    date: str = "",
    modifiedAfter: datetime | None = None,
    park_id: str = Depends(current_park),
    db: Session = Depends(get_db),
):
    rows = list_bookings(db, park_id, status=status, date=date, modified_after=modifiedAfter)
    return {
        "success": True,
        "data": {
            "bookings": [booking_out(b) for b in rows],
            "stats": booking_stats(db, park_id),
            "lastModified": iso(last_modified(db, park_id)),
        },
    }


@router.get("/bookings/search")
def search(q: str = "", date: str = "", park_id: str = Depends(current_park), db: Session = Depends(get_db)):
    rows = search_bookings(db, park_id, date or None, q)
    return {"success": True, "data": [booking_out(b) for b in rows]}


@router.get("/bookings/{booking_id}")
def booking_detail(booking_id: str, db: Session = Depends(get_db)):
    return {"success": True, "data": booking_out(get_booking(db, booking_id))}


@router.patch("/bookings/{booking_id}")
def change_booking_status(booking_id: str, body: BookingStatusIn, actor: str = Depends(get_actor),
                          db: Session = Depends(get_db)):
    b = update_booking_status(db, booking_id, body.status, body.extras(), actor=actor)
    if b is None:
        raise NotFoundError("Booking not found")
    return {"success": True, "data": booking_out(b)}
