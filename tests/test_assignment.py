import json
from datetime import date, timedelta

import pytest

from parkops.core.errors import (
    ConflictError, NotFoundError, StateError, ValidationError, DRIVER_CONFLICT, PARCEL_CAPACITY_EXCEEDED,
)
from parkops.models.audit_log import AuditLog
from parkops.models.parcel import Parcel
from parkops.services.assignment_service import assign_driver_with_conflict_check, assign_parcels, unassign_driver
from parkops.services.trip_service import update_trip_status


def test_overlapping_trip_is_a_driver_conflict(db, world, make_trip):
    first = make_trip(db, unit_time="08:00")[0]
    second = make_trip(db, unit_time="10:00")[0]
    assign_driver_with_conflict_check(db, first.id, world.adebayo)

    with pytest.raises(ConflictError) as exc:
        assign_driver_with_conflict_check(db, second.id, world.adebayo)
    assert exc.value.conflict_type == DRIVER_CONFLICT
    assert exc.value.conflict_trip_id == first.id
    assert second.driver_id is None


def test_back_to_back_and_other_days_are_fine(db, world, make_trip):
    first = make_trip(db, unit_time="08:00")[0]
    after = make_trip(db, unit_time="11:00")[0]
    next_day = (date.fromisoformat(first.date_str) + timedelta(days=1)).isoformat()
    other_day = make_trip(db, date=next_day, unit_time="08:00")[0]
    other_route = make_trip(db, unit_time="09:00", route_id=world.ibadan, seat_count=3)[0]
    assign_driver_with_conflict_check(db, first.id, world.adebayo)
    assert assign_driver_with_conflict_check(db, after.id, world.adebayo).driver_id == world.adebayo
    assert assign_driver_with_conflict_check(db, other_day.id, world.adebayo).driver_id == world.adebayo
    with pytest.raises(ConflictError):
        assign_driver_with_conflict_check(db, other_route.id, world.adebayo)


def test_cancelled_trips_do_not_block(db, world, make_trip):
    first = make_trip(db, unit_time="08:00")[0]
    second = make_trip(db, unit_time="09:00")[0]
    assign_driver_with_conflict_check(db, first.id, world.adebayo)
    update_trip_status(db, first.id, "cancelled")
    assert assign_driver_with_conflict_check(db, second.id, world.adebayo).driver_id == world.adebayo


def test_reassigning_same_driver_is_a_no_op(db, world, make_trip):
    trip = make_trip(db)[0]
    assign_driver_with_conflict_check(db, trip.id, world.adebayo)
    assert assign_driver_with_conflict_check(db, trip.id, world.adebayo).driver_id == world.adebayo


def test_driver_must_be_active_and_in_park(db, world, make_trip):
    trip = make_trip(db)[0]
    with pytest.raises(ValidationError, match="inactive"):
        assign_driver_with_conflict_check(db, trip.id, world.sleeping)
    with pytest.raises(ValidationError, match="this park"):
        assign_driver_with_conflict_check(db, trip.id, world.outsider)
    with pytest.raises(NotFoundError):
        assign_driver_with_conflict_check(db, trip.id, "ghost")
    with pytest.raises(NotFoundError):
        assign_driver_with_conflict_check(db, "ghost", world.adebayo)


def test_unassign_driver(db, world, make_trip):
    trip = make_trip(db)[0]
    assign_driver_with_conflict_check(db, trip.id, world.adebayo)
    assert unassign_driver(db, trip.id).driver_id is None


def test_parcels_within_capacity(db, world, make_trip):
    trip = make_trip(db, vehicle_id=world.hiace2)[0]  # 3 parcels
    result = assign_parcels(db, trip.id, world.parcels[:2])
    assert result["assigned"] == world.parcels[:2]
    assert result["totalParcels"] == 2
    assert db.get(Parcel, world.parcels[0]).status == "assigned"


def test_reassigning_parcels_is_idempotent(db, world, make_trip):
    trip = make_trip(db, vehicle_id=world.hiace2)[0]
    assign_parcels(db, trip.id, world.parcels[:3])
    again = assign_parcels(db, trip.id, world.parcels[:3])
    assert again["assigned"] == []
    assert again["alreadyAssigned"] == world.parcels[:3]
    assert again["totalParcels"] == 3


def test_reassigning_is_a_no_op_on_an_overloaded_trip(db, world, make_trip):
    trip = make_trip(db, vehicle_id=world.hiace2)[0]
    assign_parcels(db, trip.id, world.parcels, override=True)
    again = assign_parcels(db, trip.id, world.parcels[:1])
    assert again["assigned"] == []
    assert again["alreadyAssigned"] == world.parcels[:1]
    assert again["totalParcels"] == 4
    assert again["overrideUsed"] is False


def test_parcel_capacity_needs_override(db, world, make_trip):
    trip = make_trip(db, vehicle_id=world.hiace2)[0]
    with pytest.raises(ConflictError) as exc:
        assign_parcels(db, trip.id, world.parcels)
    assert exc.value.conflict_type == PARCEL_CAPACITY_EXCEEDED
    assert exc.value.reason == "Would exceed vehicle capacity (3). Use override to proceed."
    assert db.query(Parcel).filter(Parcel.assigned_trip_id == trip.id).count() == 0

    result = assign_parcels(db, trip.id, world.parcels, override=True, actor="ops-1")
    assert result["overrideUsed"] is True
    assert result["totalParcels"] == 4
    entry = db.query(AuditLog).filter(AuditLog.action == "parcels.assign").one()
    assert entry.actor == "ops-1"
    assert json.loads(entry.details_json)["override"] is True


def test_parcel_weight_limit(db, world, make_trip):
    trip = make_trip(db, vehicle_id=world.hiace1)[0]  # 3 parcels, 50kg
    assign_parcels(db, trip.id, world.parcels[1:3])  # 30kg
    with pytest.raises(ConflictError) as exc:
        assign_parcels(db, trip.id, [world.parcels[3]])  # +30kg
    assert "weight" in exc.value.reason


def test_parcel_errors(db, world, make_trip):
    trip = make_trip(db)[0]
    other = make_trip(db, unit_time="15:00")[0]
    with pytest.raises(NotFoundError):
        assign_parcels(db, trip.id, ["ghost"])
    with pytest.raises(ValidationError):
        assign_parcels(db, trip.id, [world.foreign_parcel])
    with pytest.raises(ValidationError):
        assign_parcels(db, trip.id, [])
    assign_parcels(db, other.id, [world.parcels[0]])
    with pytest.raises(StateError):
        assign_parcels(db, trip.id, [world.parcels[0]])
