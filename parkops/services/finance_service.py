import uuid
from sqlalchemy.orm import Session
from parkops.core.config import settings
from parkops.core.errors import NotFoundError, StateError, ValidationError
from parkops.core.timeutils import iso, utcnow
from parkops.models.adjustment import Adjustment
from parkops.models.booking import Booking
from parkops.models.parcel import Parcel
from parkops.models.trip import Trip
from parkops.services.audit_service import log_audit

PAID_BOOKING_STATUSES = ("CONFIRMED", "COMPLETED")
PAYOUT_TRANSITIONS = {
    "NotScheduled": ("Scheduled",),
    "Scheduled": ("Paid", "NotScheduled"),
    "Paid": (),
}


def _trip(db: Session, trip_id: str) -> Trip:
    trip = db.get(Trip, trip_id)
    if not trip:
        raise NotFoundError("Trip not found")
    return trip


def trip_finance(db: Session, trip_id: str) -> dict:
    """Revenue split for one trip.

    The driver takes DRIVER_PASSENGER_SHARE of passenger revenue and
    DRIVER_PARCEL_SHARE of parcel fees; adjustments move money from the
    park's share to the driver's.
    """
    trip = _trip(db, trip_id)
    fares = [a for (a,) in db.query(Booking.amount_paid).filter(
        Booking.trip_id == trip.id, Booking.status.in_(PAID_BOOKING_STATUSES)).all()]
    fees = [f for (f,) in db.query(Parcel.fee).filter(Parcel.assigned_trip_id == trip.id).all()]
    adjustments = (
        db.query(Adjustment).filter(Adjustment.trip_id == trip.id).order_by(Adjustment.created_at.asc()).all()
    )

    passenger_revenue = sum(int(a or 0) for a in fares)
    parcel_revenue = sum(int(f or 0) for f in fees)
    driver_passenger = round(passenger_revenue * settings.DRIVER_PASSENGER_SHARE)
    driver_parcel = round(parcel_revenue * settings.DRIVER_PARCEL_SHARE)
    adjustment_total = sum(a.amount for a in adjustments)

    return {
        "tripId": trip.id,
        "passengerCount": len(fares),
        "passengerRevenue": passenger_revenue,
        "parcelCount": len(fees),
        "parcelRevenue": parcel_revenue,
        "grossRevenue": passenger_revenue + parcel_revenue,
        "driverPassengerShare": driver_passenger,
        "driverParcelShare": driver_parcel,
        "parkPassengerShare": passenger_revenue - driver_passenger,
        "parkParcelShare": parcel_revenue - driver_parcel,
        "adjustmentTotal": adjustment_total,
        "driverTotal": driver_passenger + driver_parcel + adjustment_total,
        "parkTotal": (passenger_revenue - driver_passenger) + (parcel_revenue - driver_parcel) - adjustment_total,
        "payoutStatus": trip.payout_status,
        "adjustments": [{
            "id": a.id, "amount": a.amount, "reason": a.reason,
            "createdBy": a.created_by, "createdAt": iso(a.created_at),
        } for a in adjustments],
    }


def add_adjustment(db: Session, trip_id: str, amount: int, reason: str, actor: str | None = None) -> Adjustment:
    trip = _trip(db, trip_id)
    if not amount:
        raise ValidationError("Adjustment amount cannot be zero")
    if not (reason or "").strip():
        raise ValidationError("Adjustment reason is required")
    if trip.payout_status == "Paid":
        raise StateError("Cannot adjust a trip that has been paid out")
    adj = Adjustment(id=str(uuid.uuid4()), trip_id=trip.id, amount=int(amount), reason=reason.strip(),
                     created_by=actor or "system", created_at=utcnow())
    db.add(adj)
    trip.updated_at = utcnow()
    log_audit(db, trip.park_id, actor, "finance.adjust", "trip", trip.id, {"amount": adj.amount, "reason": adj.reason})
    db.commit()
    return adj


def set_payout_status(db: Session, trip_id: str, status: str, actor: str | None = None) -> Trip:
    trip = _trip(db, trip_id)
    if status not in PAYOUT_TRANSITIONS:
        raise ValidationError(f"Invalid payout status '{status}'")
    if status not in PAYOUT_TRANSITIONS[trip.payout_status]:
        raise StateError(f"Cannot change payout status from {trip.payout_status} to {status}")
    if status == "Paid" and trip.status != "completed":
        raise StateError("Only completed trips can be paid out")
    log_audit(db, trip.park_id, actor, "finance.payout", "trip", trip.id, {"from": trip.payout_status, "to": status})
    trip.payout_status = status
    trip.updated_at = utcnow()
    db.commit()
    return trip
