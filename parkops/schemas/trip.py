from typing import List, Literal, Optional
from pydantic import BaseModel, Field
from parkops.core.timeutils import iso
from parkops.models.trip import Trip
from parkops.schemas.base import CamelIn


class RecurrenceIn(CamelIn):
    type: Literal["weekly", "daily", "weekdays", "custom"] = "weekly"
    weeks: Optional[int] = None
    days_of_week: List[int] = Field(default_factory=list, description="0=Mon .. 6=Sun")
    end_date: Optional[str] = None
    exceptions: List[str] = Field(default_factory=list)
    occurrences: Optional[int] = None


class TripCreate(CamelIn):
    park_id: Optional[str] = None
    route_id: str
    date: str
    unit_time: str
    seat_count: Optional[int] = None
    price: Optional[int] = None
    vehicle_id: Optional[str] = None
    driver_id: Optional[str] = None
    duration_minutes: Optional[int] = None
    max_parcels_per_vehicle: Optional[int] = None
    is_recurrent: bool = False
    recurrence: Optional[RecurrenceIn] = None


class TripUpdate(CamelIn):
    apply_to: Literal["occurrence", "future", "series"] = "occurrence"
    date: Optional[str] = None
    unit_time: Optional[str] = None
    duration_minutes: Optional[int] = None
    seat_count: Optional[int] = None
    price: Optional[int] = None
    vehicle_id: Optional[str] = None
    driver_id: Optional[str] = None
    max_parcels_per_vehicle: Optional[int] = None
    max_parcel_weight_kg: Optional[float] = None


class TripStatusIn(CamelIn):
    status: str


class AssignDriverIn(CamelIn):
    driver_id: str


class AssignParcelsIn(CamelIn):
    parcel_ids: List[str]
    override: bool = False


class CheckPaymentIn(CamelIn):
    booking_id: str
    payment_reference: Optional[str] = None


class CheckInIn(CamelIn):
    booking_id: str
    date: Optional[str] = None


class AdjustmentIn(CamelIn):
    amount: int
    reason: str = ""


class PayoutIn(CamelIn):
    status: Literal["NotScheduled", "Scheduled", "Paid"]


class TripOut(BaseModel):
    id: str
    parkId: str
    routeId: str
    date: str
    unitTime: str
    durationMinutes: int
    vehicleId: str
    driverId: Optional[str] = None
    seatCount: int
    price: int
    status: str
    confirmedBookingsCount: int = 0
    maxParcelsPerVehicle: int
    maxParcelWeightKg: Optional[float] = None
    payoutStatus: str = "NotScheduled"
    recurrenceGroupId: Optional[str] = None
    createdAt: Optional[str] = None
    updatedAt: Optional[str] = None


def trip_out(t: Trip) -> TripOut:
    return TripOut(
        id=t.id,
        parkId=t.park_id,
        routeId=t.route_id,
        date=t.date_str,
        unitTime=t.unit_time,
        durationMinutes=t.duration_minutes,
        vehicleId=t.vehicle_id,
        driverId=t.driver_id,
        seatCount=t.seat_count,
        price=t.price,
        status=t.status,
        confirmedBookingsCount=t.confirmed_bookings_count or 0,
        maxParcelsPerVehicle=t.max_parcels_per_vehicle,
        maxParcelWeightKg=t.max_parcel_weight_kg,
        payoutStatus=t.payout_status,
        recurrenceGroupId=t.recurrence_group_id,
        createdAt=iso(t.created_at),
        updatedAt=iso(t.updated_at),
    )
