from datetime import datetime

import pytest

YEAR = datetime.now().year + 2

VEHICLE = {
    "brand": "Honda",
    "model": "City",
    "licensePlate": "PKT-3003",
    "year": 2023,
    "color": "silver",
    "fuelType": "petrol",
    "mileage": 5000,
    "rateDaily": 1200,
}

CLIENT = {
    "fullName": "Marta Kowalska",
    "phone": "+48 600 000 000",
    "passport": "EA1234567",
    "licenseNumber": "PL-55667",
    "licenseExpiry": "2031-06-30",
    "birthDate": "1988-02-14",
    "address": "Kata Beach, Phuket",
}


def booking(vehicle_id, start, end, **overrides):
    data = {
        "vehicleId": vehicle_id,
        "customerFirstName": "Marta",
        "customerLastName": "Kowalska",
        "customerEmail": "marta@example.com",
        "customerPhone": "+48 600 000 000",
        "startDate": start,
        "endDate": end,
        "pickupLocation": "Airport",
        "returnLocation": "Hotel",
        "totalPrice": 3600,
    }
    data.update(overrides)
    return data


@pytest.fixture
def car(api):
    resp = api.post("/api/vehicles", json=VEHICLE)
    assert resp.status_code == 201
    return resp.json()


@pytest.fixture
def client_id(api):
    resp = api.post("/api/clients", json=CLIENT)
    assert resp.status_code == 201
    return resp.json()["id"]


def test_health(api):
    resp = api.get("/api/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "vehicles": 0}


def test_website_booking_confirmed_into_rental(api, car, client_id):
    resp = api.post("/api/public/bookings", json=booking(car["id"], f"{YEAR}-03-01", f"{YEAR}-03-04"))
    assert resp.status_code == 201
    reference = resp.json()["referenceCode"]
    assert resp.json()["status"] == "pending"

    [request] = api.get("/api/booking-requests", params={"status": "pending"}).json()
    assert request["referenceCode"] == reference

    resp = api.post(
        f"/api/booking-requests/{request['id']}/confirm",
        json={"createRental": True, "clientId": client_id, "adminNotes": "deliver to hotel"},
    )
    assert resp.status_code == 200
    confirmed = resp.json()
    assert confirmed["status"] == "confirmed"
    assert confirmed["rentalId"] is not None

    assert api.get(f"/api/vehicles/{car['id']}").json()["status"] == "rented"
    [active] = api.get("/api/rentals/active").json()
    assert active["id"] == confirmed["rentalId"]
    assert active["status"] == "active"
    assert active["totalAmount"] == 3600
    assert active["vehicle"]["licensePlate"] == "PKT-3003"

    status = api.get(f"/api/public/bookings/{reference}/status").json()
    assert status["status"] == "confirmed"
    assert status["vehicle"] == {"brand": "Honda", "model": "City", "year": 2023}


def test_admin_rental_round_trip(api, car, client_id):
    resp = api.post(
        "/api/rentals",
        json={
            "vehicleId": car["id"],
            "clientId": client_id,
            "startDate": "2024-05-01T09:00:00Z",
            "plannedEndDate": "2024-05-03T12:00:00Z",
            "mileageStart": 5000,
            "rateType": "daily",
            "rateAmount": 1200,
        },
    )
    assert resp.status_code == 201
    rental = resp.json()
    assert rental["totalAmount"] == 3600

    again = api.post(
        "/api/rentals",
        json={**rental, "startDate": "2024-06-01T00:00:00Z", "plannedEndDate": "2024-06-02T00:00:00Z"},
    )
    assert again.status_code == 400
    assert again.json() == {"error": "Vehicle is not available"}

    resp = api.post(f"/api/rentals/{rental['id']}/complete", json={"mileageEnd": 5320})
    assert resp.status_code == 200
    assert resp.json()["status"] == "completed"
    vehicle = api.get(f"/api/vehicles/{car['id']}").json()
    assert (vehicle["status"], vehicle["mileage"]) == ("available", 5320)

    assert api.post(f"/api/rentals/{rental['id']}/complete", json={"mileageEnd": 5400}).status_code == 400
    assert api.get("/api/rentals/active").json() == []


def test_cancel_without_body(api, car, client_id):
    rental = api.post(
        "/api/rentals",
        json={
            "vehicleId": car["id"],
            "clientId": client_id,
            "startDate": "2024-05-01T09:00:00Z",
            "plannedEndDate": "2024-05-02T09:00:00Z",
            "mileageStart": 5000,
            "rateAmount": 1200,
        },
    ).json()
    resp = api.post(f"/api/rentals/{rental['id']}/cancel")
    assert resp.status_code == 200
    assert resp.json()["status"] == "cancelled"


def test_overlapping_website_booking_conflicts(api, car):
    first = api.post("/api/public/bookings", json=booking(car["id"], f"{YEAR}-03-01", f"{YEAR}-03-04"))
    assert first.status_code == 201
    second = api.post("/api/public/bookings", json=booking(car["id"], f"{YEAR}-03-03", f"{YEAR}-03-06"))
    assert second.status_code == 409
    assert second.json() == {"error": "Vehicle is not available for selected dates"}


def test_error_bodies(api, car):
    missing = api.get("/api/vehicles/999")
    assert missing.status_code == 404
    assert missing.json() == {"error": "Vehicle not found"}

    invalid = api.post("/api/vehicles", json={"brand": "Kia"})
    assert invalid.status_code == 400
    assert "licensePlate" in invalid.json()["error"]

    duplicate = api.post("/api/vehicles", json=VEHICLE)
    assert duplicate.status_code == 409

    no_fields = api.post("/api/rentals", json={"vehicleId": car["id"]})
    assert no_fields.status_code == 400
    assert no_fields.json()["error"].startswith("Missing fields")

    past = api.post("/api/public/bookings", json=booking(car["id"], "2001-01-01", "2001-01-05"))
    assert past.status_code == 400

    assert api.get("/api/booking-requests/55").status_code == 404
    assert api.post("/api/booking-requests/55/reject").status_code == 404
    assert api.get("/api/booking-requests", params={"status": "lost"}).status_code == 400
    assert api.get("/api/public/bookings/UNI-2000-AAAAAA/status").status_code == 404


def test_booking_status_endpoint_and_stats(api, car):
    api.post("/api/public/bookings", json=booking(car["id"], f"{YEAR}-04-01", f"{YEAR}-04-03"))
    [request] = api.get("/api/booking-requests").json()

    resp = api.put(f"/api/booking-requests/{request['id']}/status", json={"status": "rejected"})
    assert resp.status_code == 200
    assert resp.json()["status"] == "rejected"

    stats = api.get("/api/booking-requests/stats/summary").json()
    assert stats == {"pending": 0, "confirmed": 0, "rejected": 1, "completed": 0, "total": 1}

    bad = api.put(f"/api/booking-requests/{request['id']}/status", json={"status": "confirmed"})
    assert bad.status_code == 400


def test_public_catalog(api, car):
    cars = api.get("/api/public/cars").json()
    assert [c["id"] for c in cars] == [f"v-{car['id']}"]
    assert cars[0]["rates"]["daily"] == 1200
    assert cars[0]["image"] == "/images/car-placeholder.jpg"

    assert api.get(f"/api/public/cars/v-{car['id']}").json()["licensePlate"] == "PKT-3003"
    assert api.get("/api/public/cars/v-404").status_code == 404

    api.post("/api/public/bookings", json=booking(car["id"], f"{YEAR}-03-01", f"{YEAR}-03-04"))
    busy = api.get("/api/public/cars/available", params={"from": f"{YEAR}-03-02", "to": f"{YEAR}-03-03"})
    assert busy.json() == []
    free = api.get("/api/public/cars/available", params={"from": f"{YEAR}-03-04", "to": f"{YEAR}-03-08"})
    assert len(free.json()) == 1

    assert api.get("/api/public/cars/available").status_code == 400
    reversed_range = api.get("/api/public/cars/available", params={"from": f"{YEAR}-03-08", "to": f"{YEAR}-03-04"})
    assert reversed_range.status_code == 400


def test_archive_and_service_endpoints(api, car):
    assert api.post(f"/api/vehicles/{car['id']}/service").json()["status"] == "maintenance"
    assert api.post(f"/api/vehicles/{car['id']}/release").json()["status"] == "available"

    resp = api.delete(f"/api/vehicles/{car['id']}")
    assert resp.status_code == 200
    assert resp.json() == {"success": True}
    assert api.get("/api/vehicles").json() == []
    assert api.get("/api/public/cars").json() == []


def test_maintenance_endpoints(api, car):
    resp = api.post(
        "/api/maintenance",
        json={
            "vehicleId": car["id"],
            "type": "repair",
            "date": "2024-02-10",
            "mileage": 7000,
            "cost": 4500,
            "location": "Chalong",
            "description": "Brake pads",
        },
    )
    assert resp.status_code == 201
    assert api.get(f"/api/vehicles/{car['id']}").json()["mileage"] == 7000
    assert len(api.get(f"/api/maintenance/vehicle/{car['id']}").json()) == 1
    assert api.get("/api/maintenance").json()[0]["vehicle"]["brand"] == "Honda"


def test_client_delete_endpoint(api, car, client_id):
    rental = api.post(
        "/api/rentals",
        json={
            "vehicleId": car["id"],
            "clientId": client_id,
            "startDate": "2024-05-01T09:00:00Z",
            "plannedEndDate": "2024-05-02T09:00:00Z",
            "mileageStart": 5000,
            "rateAmount": 1200,
        },
    ).json()
    refused = api.delete(f"/api/clients/{client_id}")
    assert refused.status_code == 400
    assert refused.json() == {"error": "Cannot delete client with active rentals"}

    api.post(f"/api/rentals/{rental['id']}/complete", json={"mileageEnd": 5100})
    assert api.delete(f"/api/clients/{client_id}").status_code == 409

    fresh = api.post("/api/clients", json={**CLIENT, "fullName": "Walk-in"}).json()
    resp = api.delete(f"/api/clients/{fresh['id']}")
    assert resp.status_code == 200
    assert resp.json() == {"success": True}
    assert api.get(f"/api/clients/{fresh['id']}").status_code == 404


def test_expense_endpoints(api, car):
    resp = api.post(
        "/api/expenses",
        json={"vehicleId": car["id"], "category": "insurance", "amount": 9000, "date": "2024-01-15",
              "description": "Yearly policy"},
    )
    assert resp.status_code == 201
    created = resp.json()
    assert created["vehicle"]["licensePlate"] == "PKT-3003"

    assert api.post("/api/expenses", json={"category": "fuel", "amount": 10}).status_code == 400

    january = api.get("/api/expenses", params={"from": "2024-01-01", "to": "2024-01-31"}).json()
    assert [e["id"] for e in january] == [created["id"]]
    assert api.get("/api/expenses", params={"from": "2024-02-01", "to": "2024-02-28"}).json() == []
    assert api.get("/api/expenses", params={"from": "2024-02-01"}).status_code == 400

    assert api.delete(f"/api/expenses/{created['id']}").json() == {"success": True}
    assert api.delete(f"/api/expenses/{created['id']}").status_code == 404


def test_admin_rental_for_confirmed_request(api, car, client_id):
    api.post("/api/public/bookings", json=booking(car["id"], f"{YEAR}-05-01", f"{YEAR}-05-04"))
    [request] = api.get("/api/booking-requests").json()
    api.post(f"/api/booking-requests/{request['id']}/confirm")

    body = {
        "vehicleId": car["id"],
        "clientId": client_id,
        "startDate": request["startDate"],
        "plannedEndDate": request["endDate"],
        "mileageStart": 5000,
        "rateAmount": 1200,
    }
    assert api.post("/api/rentals", json=body).status_code == 409

    resp = api.post("/api/rentals", json={**body, "bookingRequestId": request["id"]})
    assert resp.status_code == 201
    assert api.get(f"/api/booking-requests/{request['id']}").json()["rentalId"] == resp.json()["id"]
