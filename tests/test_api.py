from datetime import timedelta

import pytest

from parkops.core.timeutils import today_local

PARK = "lekki-phase-1-motor-park"
HEADERS = {"X-Park-Id": PARK, "X-Actor-Id": "ops-desk-1"}


def day(offset: int) -> str:
    return (today_local() + timedelta(days=offset)).isoformat()


@pytest.fixture
def api(client, world):
    def new_trip(**body):
        payload = {"routeId": world.abuja, "date": day(5), "unitTime": "08:00", "seatCount": 14}
        payload.update(body)
        r = client.post("/api/v1/trips", json=payload, headers=HEADERS)
        assert r.status_code == 201, r.text
        return r.json()["data"]

    def book(trip_id, name="Kemi Adewale", phone="08051234567", **extra):
        payload = {"tripId": trip_id, "passengerName": name, "passengerPhone": phone,
                   "nokName": "Dayo Adewale", "nokPhone": "08059998877", "nokAddress": "4 Allen Avenue, Ikeja"}
        payload.update(extra)
        return client.post("/api/v1/bookings", json=payload, headers=HEADERS)

    client.new_trip = new_trip
    client.book = book
    return client


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_create_trip(api, world):
    [trip] = api.new_trip()
    assert trip["status"] == "draft"
    assert trip["price"] == 8000
    assert trip["durationMinutes"] == 180

    listed = api.get("/api/v1/trips", params={"parkId": PARK, "date": day(5)}).json()["data"]
    assert [t["id"] for t in listed] == [trip["id"]]


def test_park_is_required(client, world):
    r = client.post("/api/v1/trips", json={"routeId": world.abuja, "date": day(5), "unitTime": "08:00"})
    assert r.status_code == 400
    assert r.json()["detail"] == "parkId is required"


def test_unknown_trip_is_404_envelope(client, world):
    r = client.get("/api/v1/trips/missing")
    assert r.status_code == 404
    assert r.json() == {"success": False, "error": "Trip not found", "errorType": "NOT_FOUND"}


def test_validation_error_envelope(api, world):
    r = api.post("/api/v1/trips", json={"routeId": world.abuja, "date": day(-1), "unitTime": "08:00"},
                 headers=HEADERS)
    assert r.status_code == 400
    assert r.json()["error"] == "Date cannot be in the past"
    assert r.json()["errorType"] == "VALIDATION"


def test_driver_conflict_is_409(api, world):
    [first] = api.new_trip(driverId=world.adebayo)
    r = api.post("/api/v1/trips", headers=HEADERS, json={
        "routeId": world.ibadan, "date": day(5), "unitTime": "09:00", "seatCount": 14, "driverId": world.adebayo,
    })
    assert r.status_code == 409
    body = r.json()
    assert body["success"] is False
    assert body["conflictType"] == "DRIVER_CONFLICT"
    assert body["conflictTripId"] == first["id"]


def test_assign_driver_endpoint(api, world):
    [trip] = api.new_trip()
    r = api.post(f"/api/v1/trips/{trip['id']}/assign-driver", json={"driverId": world.adebayo}, headers=HEADERS)
    assert r.status_code == 200
    assert r.json()["data"]["driverId"] == world.adebayo
    r = api.delete(f"/api/v1/trips/{trip['id']}/driver", headers=HEADERS)
    assert r.json()["data"]["driverId"] is None


def test_booking_flow(api, world):
    [trip] = api.new_trip(seatCount=1)

    r = api.book(trip["id"])
    assert r.status_code == 201
    body = r.json()
    assert body["message"] == "Booking created with 5-minute hold"
    booking = body["data"]["booking"]
    assert booking["status"] == "RESERVED"
    assert booking["seatNumber"] == 1
    assert body["data"]["holdToken"]

    full = api.book(trip["id"], name="Late Comer")
    assert full.status_code == 409
    assert full.json()["conflictType"] == "SLOT_TAKEN"

    r = api.post(f"/api/v1/trips/{trip['id']}/check-payment",
                 json={"bookingId": booking["id"], "paymentReference": "PAY-123"}, headers=HEADERS)
    assert r.status_code == 200
    assert r.json()["data"]["status"] == "CONFIRMED"
    assert r.json()["data"]["paymentReference"] == "PAY-123"

    again = api.post(f"/api/v1/trips/{trip['id']}/check-payment", json={"bookingId": booking["id"]}, headers=HEADERS)
    assert again.status_code == 400

    live = api.get("/api/v1/bookings/live", headers=HEADERS).json()["data"]
    assert live["stats"]["confirmed"] == 1
    assert [b["id"] for b in live["bookings"]] == [booking["id"]]
    assert live["lastModified"]

    found = api.get("/api/v1/bookings/search", params={"q": "0805 123 4567"}, headers=HEADERS).json()["data"]
    assert [b["id"] for b in found] == [booking["id"]]
    assert api.get("/api/v1/bookings/search", params={"q": "0805123"}, headers=HEADERS).json()["data"] == []

    r = api.patch(f"/api/v1/bookings/{booking['id']}",
                  json={"status": "CANCELLED", "cancellationReason": "Passenger request"}, headers=HEADERS)
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["status"] == "CANCELLED"
    assert data["paymentStatus"] == "refunded"
    assert data["cancellationReason"] == "Passenger request"

    # the seat is free again
    assert api.book(trip["id"], name="Late Comer").status_code == 201


def test_illegal_booking_transition(api):
    [trip] = api.new_trip()
    booking = api.book(trip["id"]).json()["data"]["booking"]
    r = api.patch(f"/api/v1/bookings/{booking['id']}", json={"status": "COMPLETED"}, headers=HEADERS)
    assert r.status_code == 400
    assert r.json()["errorType"] == "INVALID_TRANSITION"


def test_patch_unknown_booking(client, world):
    r = client.patch("/api/v1/bookings/nope", json={"status": "CANCELLED"})
    assert r.status_code == 404
    assert r.json()["error"] == "Booking not found"


def test_parcel_capacity(api, world):
    [trip] = api.new_trip(seatCount=2)  # Sienna, two parcels
    url = f"/api/v1/trips/{trip['id']}/assign-parcels"
    r = api.post(url, json={"parcelIds": world.parcels[:3]}, headers=HEADERS)
    assert r.status_code == 409
    assert r.json()["conflictType"] == "PARCEL_CAPACITY_EXCEEDED"
    assert "Use override" in r.json()["reason"]

    r = api.post(url, json={"parcelIds": world.parcels[:3], "override": True}, headers=HEADERS)
    assert r.status_code == 200
    assert r.json()["data"]["overrideUsed"] is True

    on_trip = api.get(f"/api/v1/parks/{PARK}/parcels", params={"tripId": trip["id"]}).json()["data"]
    assert len(on_trip) == 3
    logs = api.get("/api/v1/ops/audit-logs", params={"entityId": trip["id"]}, headers=HEADERS).json()["data"]
    assert any(entry["action"] == "parcels.assign" for entry in logs)


def test_delete_guard(api):
    [trip] = api.new_trip()
    booking = api.book(trip["id"]).json()["data"]["booking"]
    api.post(f"/api/v1/trips/{trip['id']}/check-payment", json={"bookingId": booking["id"]}, headers=HEADERS)
    r = api.delete(f"/api/v1/trips/{trip['id']}", headers=HEADERS)
    assert r.status_code == 400
    assert r.json()["error"] == "Cannot delete trip with confirmed bookings"

    [empty] = api.new_trip(unitTime="14:00")
    assert api.delete(f"/api/v1/trips/{empty['id']}", headers=HEADERS).status_code == 200
    assert api.get(f"/api/v1/trips/{empty['id']}").status_code == 404


def test_public_listing_only_shows_published(api):
    [draft] = api.new_trip()
    [public] = api.new_trip(unitTime="15:00")
    assert api.post(f"/api/v1/trips/{public['id']}/publish", headers=HEADERS).status_code == 200

    rows = api.get(f"/api/v1/parks/{PARK}/trips", params={"date": day(5)}).json()["data"]
    assert [r["id"] for r in rows] == [public["id"]]
    assert rows[0]["parkName"] == "Lekki Phase 1 Motor Park"
    assert rows[0]["availableSeats"] == 14
    assert rows[0]["driverPhone"] is None


def test_recurring_series_update(api):
    trips = api.new_trip(isRecurrent=True, recurrence={"type": "weekly", "weeks": 3})
    assert len(trips) == 3
    assert len({t["recurrenceGroupId"] for t in trips}) == 1

    r = api.put(f"/api/v1/trips/{trips[1]['id']}", params={"applyTo": "future"}, json={"price": 9000},
                headers=HEADERS)
    assert r.status_code == 200
    assert sorted(t["id"] for t in r.json()["data"]) == sorted(t["id"] for t in trips[1:])
    assert api.get(f"/api/v1/trips/{trips[0]['id']}").json()["data"]["price"] == 8000


def test_finance_and_manifest(api, world):
    [trip] = api.new_trip()
    booking = api.book(trip["id"]).json()["data"]["booking"]
    api.post(f"/api/v1/trips/{trip['id']}/check-payment", json={"bookingId": booking["id"]}, headers=HEADERS)

    r = api.post(f"/api/v1/trips/{trip['id']}/adjustments", json={"amount": 1000, "reason": "Toll"}, headers=HEADERS)
    assert r.status_code == 201
    assert r.json()["data"]["driverTotal"] == 6400 + 1000

    pdf = api.get(f"/api/v1/trips/{trip['id']}/manifest.pdf")
    assert pdf.status_code == 200
    assert pdf.headers["content-type"] == "application/pdf"
    assert pdf.content.startswith(b"%PDF")


def test_drivers_and_vehicles(api, world):
    r = api.post("/api/v1/drivers", headers=HEADERS, json={
        "name": "Yusuf Garba", "phone": "08061234567", "licenseNumber": "LAG11111ZZ", "qualifiedRoute": "Ibadan",
    })
    assert r.status_code == 201
    dup = api.post("/api/v1/drivers", headers=HEADERS, json={
        "name": "Yusuf Garba", "phone": "08061234567", "licenseNumber": "lag11111zz", "qualifiedRoute": "Ibadan",
    })
    assert dup.status_code == 409
    assert dup.json()["conflictType"] == "DUPLICATE_LICENSE"

    page = api.get(f"/api/v1/parks/{PARK}/drivers", params={"destination": "Ibadan"}).json()
    assert page["total"] == 2

    r = api.post(f"/api/v1/parks/{PARK}/vehicles", json={"name": "Coaster", "seatCount": 30, "plateNumber": "lek-900zz"})
    assert r.status_code == 201
    assert r.json()["data"]["plateNumber"] == "LEK-900ZZ"
    vehicles = api.get(f"/api/v1/parks/{PARK}/vehicles").json()["data"]
    assert vehicles[-1]["seatCount"] == 30


def test_ops_stats(api):
    [trip] = api.new_trip()
    api.book(trip["id"])
    stats = api.get("/api/v1/ops/stats", headers=HEADERS).json()
    assert stats["total"] == 1
    assert stats["reserved"] == 1
    dash = api.get("/api/v1/ops/dashboard", headers=HEADERS)
    assert dash.status_code == 200


def test_route_endpoints(client, world):
    r = client.post("/api/v1/routes", headers=HEADERS,
                    json={"destination": "Benin City", "basePrice": 6500, "vehicleCapacity": 18})
    assert r.status_code == 201
    route = r.json()["data"]
    assert route["basePrice"] == 6500

    r = client.patch(f"/api/v1/routes/{route['id']}", json={"basePrice": 0}, headers=HEADERS)
    assert r.status_code == 400
    r = client.patch(f"/api/v1/routes/{route['id']}", json={"isActive": False}, headers=HEADERS)
    assert r.json()["data"]["isActive"] is False

    names = [x["destination"] for x in client.get("/api/v1/routes", headers=HEADERS).json()["data"]]
    assert "Benin City" in names


def test_checkin_endpoint(api):
    [trip] = api.new_trip(date=day(0), unitTime="23:59")
    booking = api.book(trip["id"]).json()["data"]["booking"]
    url = f"/api/v1/trips/{trip['id']}/checkin"

    r = api.post(url, json={"bookingId": booking["id"]}, headers=HEADERS)
    assert r.status_code == 400
    assert r.json()["errorType"] == "PAYMENT_PENDING"

    api.post(f"/api/v1/trips/{trip['id']}/check-payment", json={"bookingId": booking["id"]}, headers=HEADERS)
    r = api.post(url, json={"bookingId": booking["id"], "date": day(0)}, headers=HEADERS)
    assert r.status_code == 200
    assert r.json()["data"]["checkedIn"] is True

    r = api.post(url, json={"bookingId": booking["id"]}, headers=HEADERS)
    assert r.json()["errorType"] == "DUPLICATE_CHECKIN"

    seats = api.get(f"/api/v1/trips/{trip['id']}/bookings").json()["data"]
    assert [b["seatNumber"] for b in seats] == [1]
    assert api.get(f"/api/v1/bookings/{booking['id']}").json()["data"]["checkedIn"] is True
