import pytest

from parkops.core.errors import StateError, ValidationError
from parkops.services.assignment_service import assign_parcels
from parkops.services.booking_service import confirm_booking_payment
from parkops.services.finance_service import add_adjustment, set_payout_status, trip_finance
from parkops.services.manifest_service import render_manifest_pdf_bytes
from parkops.services.trip_service import update_trip_status


def test_trip_finance_split(db, world, make_trip, hold, now):
    trip = make_trip(db, vehicle_id=world.hiace2)[0]
    for name in ("Ada Obi", "Ike Eze"):
        b, _ = hold(db, trip.id, name=name, now=now)
        confirm_booking_payment(db, b.id, now=now)
    hold(db, trip.id, name="Still Pending", now=now)
    assign_parcels(db, trip.id, world.parcels[:2])  # 1500 + 2000

    f = trip_finance(db, trip.id)
    assert f["passengerCount"] == 2
    assert f["passengerRevenue"] == 16000
    assert f["parcelRevenue"] == 3500
    assert f["driverPassengerShare"] == 12800
    assert f["parkPassengerShare"] == 3200
    assert f["driverParcelShare"] == 1750
    assert f["driverTotal"] == 14550
    assert f["parkTotal"] == 4950

    add_adjustment(db, trip.id, 500, "Fuel top-up", actor="ops-1")
    f = trip_finance(db, trip.id)
    assert f["driverTotal"] == 15050
    assert f["parkTotal"] == 4450
    assert f["adjustments"][0]["reason"] == "Fuel top-up"


def test_adjustment_validation(db, make_trip):
    trip = make_trip(db)[0]
    with pytest.raises(ValidationError):
        add_adjustment(db, trip.id, 0, "nothing")
    with pytest.raises(ValidationError):
        add_adjustment(db, trip.id, 100, " ")


def test_payout_flow(db, make_trip, now):
    trip = make_trip(db)[0]
    set_payout_status(db, trip.id, "Scheduled")
    with pytest.raises(StateError, match="completed"):
        set_payout_status(db, trip.id, "Paid")
    for status in ("published", "live", "completed"):
        update_trip_status(db, trip.id, status, now=now)
    set_payout_status(db, trip.id, "Paid")
    assert trip_finance(db, trip.id)["payoutStatus"] == "Paid"
    with pytest.raises(StateError):
        add_adjustment(db, trip.id, 100, "Late bonus")
    with pytest.raises(StateError):
        set_payout_status(db, trip.id, "Scheduled")


def test_manifest_pdf():
    pdf = render_manifest_pdf_bytes(
        park_name="Lekki Phase 1 Motor Park", destination="Abuja", date_str="2030-01-02", unit_time="08:00",
        vehicle="Toyota Hiace LEK-101AA", driver_name="Adebayo Ogunleye",
        rows=[{"seat": i, "name": f"Passenger {i}", "phone": "08012345678", "nokName": "Kin",
               "nokPhone": "08087654321", "status": "CONFIRMED", "checkedIn": i % 2 == 0} for i in range(1, 60)],
    )
    assert pdf.startswith(b"%PDF")
    assert len(pdf) > 1000
