from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from fleetdesk.config import Settings
from fleetdesk.db import Database
from fleetdesk.main import create_app
from fleetdesk.models import BookingCreate, ClientInput, VehicleInput
from fleetdesk.services import BookingWorkflow, FleetStore, RentalLifecycle

# fixed clock for service tests so that 2024 dates count as future bookings
CLOCK = datetime(2024, 1, 1, tzinfo=timezone.utc)


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def vehicle_input(**overrides) -> VehicleInput:
    data = {
        "brand": "Toyota",
        "model": "Yaris",
        "licensePlate": "PKT-1001",
        "year": 2022,
        "color": "white",
        "mileage": 12000,
        "rateDaily": 1000,
        "rate3days": 2800,
        "rate7days": 6300,
        "rateMonthly": 24000,
    }
    data.update(overrides)
    return VehicleInput(**data)


def client_input(**overrides) -> ClientInput:
    data = {
        "fullName": "Anna Petrova",
        "phone": "+66 81 000 0000",
        "passport": "P1234567",
        "licenseNumber": "DL-998877",
        "licenseExpiry": "2030-01-01",
        "birthDate": "1990-05-05",
        "address": "12 Beach Road, Phuket",
    }
    data.update(overrides)
    return ClientInput(**data)


def booking_input(vehicle_id: int, start: str, end: str, **overrides) -> BookingCreate:
    data = {
        "vehicleId": vehicle_id,
        "customerFirstName": "John",
        "customerLastName": "Smith",
        "customerEmail": "john@example.com",
        "customerPhone": "+44 7700 900000",
        "startDate": start,
        "endDate": end,
        "pickupLocation": "Airport",
        "returnLocation": "Airport",
        "totalPrice": 4000,
    }
    data.update(overrides)
    return BookingCreate(**data)


def count_active_rentals(conn, vehicle_id: int) -> int:
    row = conn.execute(
        "SELECT COUNT(*) AS count FROM rentals WHERE vehicle_id = ? AND status = 'active'",
        (vehicle_id,),
    ).fetchone()
    return row["count"]


def assert_rental_invariant(conn) -> None:
    for row in conn.execute("SELECT id, status FROM vehicles").fetchall():
        active = count_active_rentals(conn, row["id"])
        if row["status"] == "rented":
            assert active == 1, f"vehicle {row['id']} rented with {active} active rentals"
        else:
            assert active == 0, f"vehicle {row['id']} is {row['status']} with {active} active rentals"


@pytest.fixture
def database(tmp_path):
    db = Database(str(tmp_path / "fleet.db"))
    db.init_schema()
    return db


@pytest.fixture
def conn(database):
    with database.session() as connection:
        yield connection


@pytest.fixture
def fleet(conn):
    return FleetStore(conn)


@pytest.fixture
def rentals(conn):
    return RentalLifecycle(conn)


@pytest.fixture
def bookings(conn):
    return BookingWorkflow(conn)


@pytest.fixture
def vehicle(fleet):
    return fleet.create_vehicle(vehicle_input())


@pytest.fixture
def customer(fleet):
    return fleet.create_client(client_input())


@pytest.fixture
def api(tmp_path):
    app = create_app(Settings(database_path=str(tmp_path / "api.db")))
    with TestClient(app) as client:
        yield client
