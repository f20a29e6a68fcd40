import json
import logging
import random
import string
import uuid
from datetime import datetime, timedelta
from sqlalchemy.orm import Session
from parkops.core.config import settings
from parkops.core.errors import (
    ConflictError, NotFoundError, StateError, ValidationError,
    SLOT_TAKEN, HOLD_EXPIRED, INVALID_TRANSITION,
    INVALID_BOOKING, DUPLICATE_CHECKIN, CANCELLED_BOOKING, PAYMENT_PENDING, WRONG_DATE,
)
from parkops.core.phone import digits_only, normalize_phone
from parkops.core.timeutils import ensure_utc, utcnow
from parkops.models.booking import Booking
from parkops.models.trip import Trip
from parkops.services.assignment_service import CLOSED_TRIP_STATUSES, lock_trip
from parkops.services.audit_service import log_audit

log = logging.getLogger(__name__)

STATUSES = ("RESERVED", "CONFIRMED", "EXPIRED", "CANCELLED", "COMPLETED")
ACTIVE = ("RESERVED", "CONFIRMED")

TRANSITIONS = {
    "RESERVED": ("CONFIRMED", "CANCELLED", "EXPIRED"),
    "CONFIRMED": ("CANCELLED", "COMPLETED"),
    "EXPIRED": (),
    "CANCELLED": (),
    "COMPLETED": (),
}

REQUIRED_PASSENGER_FIELDS = {
    "passenger_name": "Passenger name",
    "passenger_phone": "Passenger phone",
    "nok_name": "Next of kin name",
    "nok_phone": "Next of kin phone",
    "nok_address": "Next of kin address",
}


def make_booking_ref() -> str:
    return "MOV-" + "".join(random.choices(string.ascii_uppercase + string.digits, k=6))


def hold_deadline(now: datetime) -> datetime:
    return now + timedelta(minutes=settings.HOLD_MINUTES)


def effective_status(b: Booking, now: datetime | None = None) -> str:
    """Status as of ``now``: a RESERVED booking past its hold deadline is EXPIRED."""
    if b.status == "RESERVED" and b.hold_expires_at is not None:
        if (ensure_utc(now) or utcnow()) >= ensure_utc(b.hold_expires_at):
            return "EXPIRED"
    return b.status


def set_status(b: Booking, status: str, now: datetime):
    was_paid = b.status == "CONFIRMED"
    b.status = status
    if status == "RESERVED":
        b.payment_status, b.booking_status = "pending", "pending"
    elif status == "CONFIRMED":
        b.payment_status, b.booking_status = "confirmed", "confirmed"
        b.confirmed_at = now
    elif status == "EXPIRED":
        b.payment_status, b.booking_status = "pending", "cancelled"
    elif status == "CANCELLED":
        b.payment_status = "refunded" if was_paid else "pending"
        b.booking_status = "refunded" if was_paid else "cancelled"
        b.cancelled_at = now
    elif status == "COMPLETED":
        b.payment_status, b.booking_status = "confirmed", "confirmed"
        b.completed_at = now
    b.updated_at = now


def recompute_confirmed_count(db: Session, trip: Trip) -> int:
    db.flush()
    trip.confirmed_bookings_count = (
        db.query(Booking).filter(Booking.trip_id == trip.id, Booking.status == "CONFIRMED").count()
    )
    return trip.confirmed_bookings_count


def expire_stale_holds(db: Session, trip_id: str | None = None, park_id: str | None = None,
                       now: datetime | None = None) -> list[Booking]:
    """Persist EXPIRED on every RESERVED booking whose hold has lapsed. Does not commit."""
    now = ensure_utc(now) or utcnow()
    q = db.query(Booking).filter(Booking.status == "RESERVED", Booking.hold_expires_at != None)  # noqa: E711
    if trip_id:
        q = q.filter(Booking.trip_id == trip_id)
    if park_id:
        q = q.join(Trip, Trip.id == Booking.trip_id).filter(Trip.park_id == park_id)
    expired = [b for b in q.all() if effective_status(b, now) == "EXPIRED"]
    for b in expired:
        set_status(b, "EXPIRED", now)
        trip = db.get(Trip, b.trip_id)
        log_audit(db, trip.park_id if trip else None, "system", "booking.expire", "booking", b.id,
                  {"bookingRef": b.booking_ref, "holdExpiresAt": ensure_utc(b.hold_expires_at)})
    if expired:
        log.info("expired %d stale hold(s)", len(expired))
    return expired


def active_bookings(db: Session, trip_id: str) -> list[Booking]:
    # status re-checked in memory: rows expired but not yet flushed still match the SQL filter
    rows = db.query(Booking).filter(Booking.trip_id == trip_id, Booking.status.in_(ACTIVE)).all()
    return [b for b in rows if b.status in ACTIVE]


def _allocate_ref(db: Session) -> str:
    # booking_ref must be unique
    for _ in range(10):
        ref = make_booking_ref()
        if not db.query(Booking).filter(Booking.booking_ref == ref).first():
            return ref
    raise StateError("could not allocate booking reference")


def create_booking_with_hold(db: Session, trip_id: str, passenger: dict, now: datetime | None = None,
                             actor: str | None = None) -> tuple[Booking, str]:
    """Reserve a seat on a trip for ``HOLD_MINUTES``.

    ``passenger`` carries passenger_name, passenger_phone, nok_name, nok_phone,
    nok_address and optionally amount, seat_number and passenger_email.
    Returns the booking and its hold token.
    """
    now = ensure_utc(now) or utcnow()
    for key, label in REQUIRED_PASSENGER_FIELDS.items():
        if not (passenger.get(key) or "").strip():
            raise ValidationError(f"{label} is required")

    trip = lock_trip(db, trip_id)
    if trip.status in CLOSED_TRIP_STATUSES:
        raise StateError(f"Trip is {trip.status} and cannot take bookings")
    amount = passenger.get("amount")
    if amount is None:
        amount = trip.price
    if amount <= 0:
        raise ValidationError("Amount must be greater than 0")

    expire_stale_holds(db, trip_id=trip.id, now=now)
    db.flush()
    taken = active_bookings(db, trip.id)
    if len(taken) >= trip.seat_count:
        raise ConflictError("No seats available on this trip", conflict_type=SLOT_TAKEN)
    occupied = {b.seat_number for b in taken}

    seat = passenger.get("seat_number")
    if seat is not None:
        if seat < 1 or seat > trip.seat_count:
            raise ValidationError(f"Seat number must be between 1 and {trip.seat_count}")
        if seat in occupied:
            raise ConflictError(f"Seat {seat} is already taken", conflict_type=SLOT_TAKEN)
    else:
        seat = next((n for n in range(1, trip.seat_count + 1) if n not in occupied), None)
        if seat is None:
            raise ConflictError("No seats available on this trip", conflict_type=SLOT_TAKEN)

    token = uuid.uuid4().hex
    booking = Booking(
        id=str(uuid.uuid4()),
        booking_ref=_allocate_ref(db),
        trip_id=trip.id,
        passenger_name=passenger["passenger_name"].strip(),
        passenger_phone=passenger["passenger_phone"].strip(),
        passenger_email=passenger.get("passenger_email"),
        nok_name=passenger["nok_name"].strip(),
        nok_phone=passenger["nok_phone"].strip(),
        nok_address=passenger["nok_address"].strip(),
        seat_number=seat,
        amount_paid=int(amount),
        status="RESERVED",
        payment_status="pending",
        booking_status="pending",
        hold_token=token,
        hold_expires_at=hold_deadline(now),
        created_at=now,
        updated_at=now,
    )
    db.add(booking)
    trip.updated_at = now
    log_audit(db, trip.park_id, actor, "booking.hold", "booking", booking.id,
              {"bookingRef": booking.booking_ref, "tripId": trip.id, "seat": seat})
    db.commit()
    return booking, token


def get_booking(db: Session, booking_id: str) -> Booking:
    b = db.get(Booking, booking_id)
    if not b:
        raise NotFoundError("Booking not found")
    return b


def confirm_booking_payment(db: Session, booking_id: str, payment_reference: str | None = None,
                            trip_id: str | None = None, now: datetime | None = None,
                            actor: str | None = None) -> Booking:
    now = ensure_utc(now) or utcnow()
    b = get_booking(db, booking_id)
    if trip_id and b.trip_id != trip_id:
        raise NotFoundError("Booking not found for this trip")
    trip = lock_trip(db, b.trip_id)

    if b.status == "RESERVED" and effective_status(b, now) == "EXPIRED":
        set_status(b, "EXPIRED", now)
        log_audit(db, trip.park_id, actor, "booking.expire", "booking", b.id, {"bookingRef": b.booking_ref})
        db.commit()
        raise StateError("Hold expired", error_type=HOLD_EXPIRED)
    if b.status != "RESERVED":
        raise StateError(f"Cannot change status from {b.status} to CONFIRMED", error_type=INVALID_TRANSITION)

    set_status(b, "CONFIRMED", now)
    if payment_reference:
        b.payment_reference = payment_reference
    recompute_confirmed_count(db, trip)
    trip.updated_at = now
    log_audit(db, trip.park_id, actor, "booking.confirm", "booking", b.id,
              {"bookingRef": b.booking_ref, "paymentReference": payment_reference})
    db.commit()
    return b


def update_booking_status(db: Session, booking_id: str, next_status: str, extra: dict | None = None,
                          now: datetime | None = None, actor: str | None = None) -> Booking | None:
    """Move a booking along the status machine. Returns None for an unknown booking."""
    now = ensure_utc(now) or utcnow()
    target = (next_status or "").upper()
    if target not in STATUSES:
        raise ValidationError(f"Invalid status '{next_status}'")
    b = db.get(Booking, booking_id)
    if not b:
        return None
    trip = lock_trip(db, b.trip_id)

    if b.status == "RESERVED" and effective_status(b, now) == "EXPIRED":
        set_status(b, "EXPIRED", now)
        log_audit(db, trip.park_id, actor, "booking.expire", "booking", b.id, {"bookingRef": b.booking_ref})
        db.commit()
        if target == "EXPIRED":
            return b
        if target == "CONFIRMED":
            raise StateError("Hold expired", error_type=HOLD_EXPIRED)

    current = b.status
    if target not in TRANSITIONS[current]:
        raise StateError(f"Cannot change status from {current} to {target}", error_type=INVALID_TRANSITION)

    extra = dict(extra or {})
    if extra:
        details = json.loads(b.details_json or "{}")
        details.update(extra)
        b.details_json = json.dumps(details, ensure_ascii=False, default=str)
    if extra.get("paymentReference"):
        b.payment_reference = str(extra["paymentReference"])
    reason = extra.get("cancellationReason") or extra.get("reason")
    if target == "CANCELLED" and reason:
        b.cancellation_reason = str(reason)

    set_status(b, target, now)
    recompute_confirmed_count(db, trip)
    trip.updated_at = now
    log_audit(db, trip.park_id, actor, "booking.status", "booking", b.id,
              {"bookingRef": b.booking_ref, "from": current, "to": target, **extra})
    db.commit()
    return b


def check_in_booking(db: Session, trip_id: str, booking_id: str, on_date: str | None = None,
                     now: datetime | None = None, actor: str | None = None) -> Booking:
    now = ensure_utc(now) or utcnow()
    trip = db.get(Trip, trip_id)
    b = db.get(Booking, booking_id)
    if not trip or not b or b.trip_id != trip.id:
        raise StateError("Booking not found for this trip", error_type=INVALID_BOOKING)

    status = effective_status(b, now)
    if status == "CANCELLED":
        raise StateError("Booking has been cancelled", error_type=CANCELLED_BOOKING)
    if status == "EXPIRED":
        raise StateError("Booking hold has expired", error_type=CANCELLED_BOOKING)
    if status == "RESERVED":
        raise StateError("Payment has not been confirmed", error_type=PAYMENT_PENDING)
    if b.checked_in:
        raise StateError("Passenger already checked in", error_type=DUPLICATE_CHECKIN)
    if status != "CONFIRMED":
        raise StateError(f"Cannot check in a {status.lower()} booking", error_type=INVALID_BOOKING)
    if on_date and on_date != trip.date_str:
        raise StateError(f"Booking is for {trip.date_str}, not {on_date}", error_type=WRONG_DATE)

    b.checked_in = True
    b.checked_in_at = now
    b.updated_at = now
    log_audit(db, trip.park_id, actor, "booking.checkin", "booking", b.id, {"bookingRef": b.booking_ref, "tripId": trip.id})
    db.commit()
    return b


def list_trip_bookings(db: Session, trip_id: str, now: datetime | None = None) -> list[Booking]:
    if not db.get(Trip, trip_id):
        raise NotFoundError("Trip not found")
    if expire_stale_holds(db, trip_id=trip_id, now=now):
        db.commit()
    return (
        db.query(Booking)
        .filter(Booking.trip_id == trip_id)
        .order_by(Booking.seat_number.asc(), Booking.created_at.asc())
        .all()
    )


def _name_words(name: str) -> list[str]:
    return (name or "").lower().split()


def booking_matches(b: Booking, query: str) -> bool:
    """Exact match on id, ticket ref, phone or name. Never substring."""
    q = (query or "").strip()
    if not q:
        return False
    lowered = q.lower()
    if lowered == b.id.lower() or lowered == (b.booking_ref or "").lower():
        return True
    if not any(ch.isalpha() for ch in q) and len(digits_only(q)) >= 7:
        if normalize_phone(q) == normalize_phone(b.passenger_phone):
            return True
    words = lowered.split()
    name = _name_words(b.passenger_name)
    if len(words) == 1:
        return words[0] in name
    return words == name


def search_bookings(db: Session, park_id: str, date: str | None, query: str,
                    now: datetime | None = None) -> list[Booking]:
    if not (query or "").strip():
        return []
    if expire_stale_holds(db, park_id=park_id, now=now):
        db.commit()
    q = db.query(Booking).join(Trip, Trip.id == Booking.trip_id).filter(Trip.park_id == park_id)
    if date:
        q = q.filter(Trip.date_str == date)
    return [b for b in q.order_by(Booking.created_at.desc()).all() if booking_matches(b, query)]
