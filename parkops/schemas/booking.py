import json
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field
from parkops.core.timeutils import iso
from parkops.models.booking import Booking
from parkops.schemas.base import CamelIn


class BookingCreate(CamelIn):
    trip_id: str
    passenger_name: str = ""
    passenger_phone: str = ""
    passenger_email: Optional[str] = None
    nok_name: str = ""
    nok_phone: str = ""
    nok_address: str = ""
    amount: Optional[int] = None
    seat_number: Optional[int] = None


class BookingStatusIn(CamelIn):
    status: str
    payment_reference: Optional[str] = None
    cancellation_reason: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict)

    def extras(self) -> dict:
        out = dict(self.details)
        if self.payment_reference:
            out["paymentReference"] = self.payment_reference
        if self.cancellation_reason:
            out["cancellationReason"] = self.cancellation_reason
        return out


class BookingOut(BaseModel):
    id: str
    bookingRef: str
    tripId: str
    passengerName: str
    passengerPhone: str
    passengerEmail: Optional[str] = None
    nokName: str
    nokPhone: str
    nokAddress: str
    seatNumber: Optional[int] = None
    amountPaid: int
    status: str
    paymentStatus: str
    bookingStatus: str
    holdExpiresAt: Optional[str] = None
    checkedIn: bool = False
    paymentReference: Optional[str] = None
    cancellationReason: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict)
    createdAt: Optional[str] = None
    updatedAt: Optional[str] = None


def booking_out(b: Booking) -> BookingOut:
    return BookingOut(
        id=b.id,
        bookingRef=b.booking_ref,
        tripId=b.trip_id,
        passengerName=b.passenger_name,
        passengerPhone=b.passenger_phone,
        passengerEmail=b.passenger_email,
        nokName=b.nok_name,
        nokPhone=b.nok_phone,
        nokAddress=b.nok_address,
        seatNumber=b.seat_number,
        amountPaid=b.amount_paid,
        status=b.status,
        paymentStatus=b.payment_status,
        bookingStatus=b.booking_status,
        holdExpiresAt=iso(b.hold_expires_at),
        checkedIn=bool(b.checked_in),
        paymentReference=b.payment_reference,
        cancellationReason=b.cancellation_reason,
        details=json.loads(b.details_json or "{}"),
        createdAt=iso(b.created_at),
        updatedAt=iso(b.updated_at),
    )
