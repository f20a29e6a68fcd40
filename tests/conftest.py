import uuid
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from parkops.core.timeutils import today_local
from parkops.db.session import Store, get_db
from parkops.main import app
from parkops.models.driver import Driver
from parkops.models.parcel import Parcel
from parkops.models.park import Park
from parkops.models.route import Route
from parkops.models.vehicle import Vehicle
from parkops.services.booking_service import create_booking_with_hold
from parkops.services.trip_service import create_trip

PARK = "lekki-phase-1-motor-park"
OTHER_PARK = "ikeja-motor-park"


def day(offset: int) -> str:
    return (today_local() + timedelta(days=offset)).isoformat()


@pytest.fixture
def store():
    s = Store("sqlite+pysqlite:///:memory:")
    yield s
    s.dispose()


@pytest.fixture
def world(store):
    """Two parks with routes, vehicles, drivers and parcels. Returns their ids."""
    w = SimpleNamespace(park=PARK, other_park=OTHER_PARK)
    with store.session() as db:
        db.add(Park(id=PARK, name="Lekki Phase 1 Motor Park", address="Admiralty Way, Lekki"))
        db.add(Park(id=OTHER_PARK, name="Ikeja Motor Park", address="Obafemi Awolowo Way, Ikeja"))

        def add(obj):
            db.add(obj)
            return obj.id

        w.abuja = add(Route(id=str(uuid.uuid4()), park_id=PARK, destination="Abuja", base_price=8000, vehicle_capacity=14))
        w.ibadan = add(Route(id=str(uuid.uuid4()), park_id=PARK, destination="Ibadan", base_price=2000, vehicle_capacity=14))
        w.ikeja_route = add(Route(id=str(uuid.uuid4()), park_id=OTHER_PARK, destination="Ondo", base_price=4000, vehicle_capacity=14))

        w.sienna = add(Vehicle(id=str(uuid.uuid4()), park_id=PARK, name="Sienna", plate_number="LEK-301CC",
                               seat_count=3, max_parcels_per_vehicle=2))
        w.hiace1 = add(Vehicle(id=str(uuid.uuid4()), park_id=PARK, name="Toyota Hiace", plate_number="LEK-101AA",
                               seat_count=14, max_parcels_per_vehicle=3, max_parcel_weight_kg=50))
        w.hiace2 = add(Vehicle(id=str(uuid.uuid4()), park_id=PARK, name="Toyota Hiace", plate_number="LEK-102AA",
                               seat_count=14, max_parcels_per_vehicle=3))
        w.mazda = add(Vehicle(id=str(uuid.uuid4()), park_id=PARK, name="Mazda E2000", plate_number="LEK-201BB",
                              seat_count=18, max_parcels_per_vehicle=5))

        w.adebayo = add(Driver(id=str(uuid.uuid4()), park_id=PARK, name="Adebayo Ogunleye", phone="08031234567",
                               license_number="LAG12345AA", license_expiry="2099-06-30", qualified_route="Abuja", rating=4.7))
        w.chinedu = add(Driver(id=str(uuid.uuid4()), park_id=PARK, name="Chinedu Okafor", phone="08059876543",
                               license_number="LAG23456BB", license_expiry="2001-01-31", qualified_route="Ibadan", rating=3.9))
        w.sleeping = add(Driver(id=str(uuid.uuid4()), park_id=PARK, name="Tunde Bakare", phone="08091112223",
                                license_number="LAG45678DD", qualified_route="Abuja", is_active=False))
        w.outsider = add(Driver(id=str(uuid.uuid4()), park_id=OTHER_PARK, name="Musa Ibrahim", phone="08077654321",
                                license_number="IKJ34567CC", qualified_route="Ondo", rating=4.1))

        w.parcels = [
            add(Parcel(id=str(uuid.uuid4()), park_id=PARK, description=f"Box {i}", weight_kg=w_kg,
                       sender_name="Ngozi Eze", sender_phone="08021234567",
                       receiver_name="Ifeanyi Obi", receiver_phone="08127654321", fee=fee))
            for i, (w_kg, fee) in enumerate([(5, 1500), (10, 2000), (20, 2500), (30, 3000)])
        ]
        w.foreign_parcel = add(Parcel(id=str(uuid.uuid4()), park_id=OTHER_PARK, description="Envelope",
                                      sender_name="A B", sender_phone="08020000000",
                                      receiver_name="C D", receiver_phone="08030000000", fee=500))
        db.commit()
    return w


@pytest.fixture
def db(store, world):
    with store.session() as session:
        yield session


@pytest.fixture
def make_trip(world):
    def _make(db, **overrides):
        park_id = overrides.pop("park_id", world.park)
        data = {"route_id": world.abuja, "date": day(3), "unit_time": "08:00", "seat_count": 14}
        data.update(overrides)
        return create_trip(db, park_id, data)
    return _make


@pytest.fixture
def hold():
    def _hold(db, trip_id, name="John Doe", phone="08012345678", now=None, **extra):
        passenger = {
            "passenger_name": name,
            "passenger_phone": phone,
            "nok_name": "Mary Doe",
            "nok_phone": "08087654321",
            "nok_address": "12 Admiralty Way, Lekki",
        }
        passenger.update(extra)
        return create_booking_with_hold(db, trip_id, passenger, now=now)
    return _hold


@pytest.fixture
def now():
    return datetime.now(timezone.utc).replace(microsecond=0)


@pytest.fixture
def client(store, world):
    def _db():
        with store.session() as session:
            yield session

    app.dependency_overrides[get_db] = _db
    yield TestClient(app)
    app.dependency_overrides.clear()
