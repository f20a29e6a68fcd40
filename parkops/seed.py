import uuid

from sqlalchemy.orm import Session

from parkops.db.session import get_store
from parkops.models.park import Park
from parkops.models.route import Route
from parkops.models.vehicle import Vehicle
from parkops.models.driver import Driver
from parkops.models.parcel import Parcel

PARKS = [
    ("lekki-phase-1-motor-park", "Lekki Phase 1 Motor Park", "Admiralty Way, Lekki Phase 1, Lagos", "+2348012345678"),
    ("ikeja-motor-park", "Ikeja Motor Park", "Obafemi Awolowo Way, Ikeja, Lagos", "+2348023456789"),
    ("ajah-motor-park", "Ajah Motor Park", "Addo Road, Ajah, Lagos", "+2348034567890"),
]

# (destination, base price in naira, vehicle capacity)
ROUTES = [
    ("Abuja", 8000, 14),
    ("Ibadan", 2000, 14),
    ("Ilesa", 3500, 14),
    ("Ondo", 4000, 14),
]

# (name, plate, seats, max parcels)
VEHICLES = [
    ("Toyota Hiace", "LAG-101AA", 14, 10),
    ("Toyota Hiace", "LAG-102AA", 14, 10),
    ("Mazda E2000", "LAG-201BB", 18, 15),
    ("Sienna", "LAG-301CC", 7, 4),
]

DRIVERS = [
    ("Adebayo Ogunleye", "08031234567", "LAG12345AA", "2027-06-30", "Abuja", 4.7),
    ("Chinedu Okafor", "08059876543", "LAG23456BB", "2026-12-31", "Ibadan", 4.3),
    ("Musa Ibrahim", "08077654321", "LAG34567CC", "2025-01-31", "Ondo", 3.9),
    ("Tunde Bakare", "08091112223", "LAG45678DD", None, "Ilesa", None),
]


def ensure_park(db: Session, park_id: str, name: str, address: str, phone: str) -> bool:
    if db.get(Park, park_id):
        return False
    db.add(Park(id=park_id, name=name, address=address, phone=phone, email=f"ops@{park_id}.movaa.ng"))
    return True


def run(db: Session | None = None):
    if db is None:
        with get_store().session() as own:
            return run(own)

    parks_created = 0
    for park_id, name, address, phone in PARKS:
        if ensure_park(db, park_id, name, address, phone):
            parks_created += 1
    db.flush()

    for park_id, *_ in PARKS:
        if db.query(Route).filter(Route.park_id == park_id).first():
            continue
        routes = []
        for destination, price, capacity in ROUTES:
            r = Route(id=str(uuid.uuid4()), park_id=park_id, destination=destination,
                      base_price=price, vehicle_capacity=capacity, is_active=True)
            db.add(r)
            routes.append(r)
        prefix = park_id.split("-")[0][:3].upper()
        for name, plate, seats, parcels in VEHICLES:
            db.add(Vehicle(id=str(uuid.uuid4()), park_id=park_id, name=name,
                           plate_number=plate.replace("LAG", prefix), seat_count=seats,
                           max_parcels_per_vehicle=parcels))
        for name, phone, lic, expiry, route, rating in DRIVERS:
            db.add(Driver(id=str(uuid.uuid4()), park_id=park_id, name=name, phone=phone,
                          license_number=f"{prefix}-{lic}", license_expiry=expiry,
                          qualified_route=route, rating=rating, is_active=True))
        db.add(Parcel(id=str(uuid.uuid4()), park_id=park_id, description="Documents envelope",
                      weight_kg=0.5, destination_route_id=routes[0].id,
                      sender_name="Ngozi Eze", sender_phone="08021234567",
                      receiver_name="Ifeanyi Obi", receiver_phone="08127654321", fee=1500))
        db.add(Parcel(id=str(uuid.uuid4()), park_id=park_id, description="Carton of foodstuff",
                      weight_kg=12, destination_route_id=routes[1].id,
                      sender_name="Funke Adeyemi", sender_phone="08031112233",
                      receiver_name="Bola Adeyemi", receiver_phone="08034445566", fee=3000))
        print(f"[seed] {park_id}: {len(routes)} routes, {len(VEHICLES)} vehicles, {len(DRIVERS)} drivers")
    db.commit()
    if parks_created:
        print(f"[seed] created {parks_created} parks")


if __name__ == "__main__":
    run()
