import logging
import sqlite3
import datetime as dt
from typing import List, Optional

from ..db import now_iso, row_to_camel, to_iso, transaction
from ..errors import ConflictError, InvalidStateError, NotFoundError, ValidationError
from ..models import (
    Client,
    ClientInput,
    Expense,
    ExpenseCreate,
    MaintenanceCreate,
    MaintenanceRecord,
    RentalStatus,
    Vehicle,
    VehicleInput,
    VehicleStatus,
    VehicleSummary,
)
from .states import VEHICLE_MACHINE, VehicleEvent

logger = logging.getLogger(__name__)

# rent/return belong to the rental lifecycle, never to a manual edit
RENTAL_DRIVEN_EVENTS = (VehicleEvent.RENT, VehicleEvent.RETURN)
INITIAL_VEHICLE_STATUSES = (VehicleStatus.AVAILABLE, VehicleStatus.MAINTENANCE)

VEHICLE_COLUMNS = [
    "brand",
    "model",
    "license_plate",
    "vin",
    "year",
    "color",
    "fuel_type",
    "mileage",
    "status",
    "rate_daily",
    "rate_3days",
    "rate_7days",
    "rate_monthly",
    "insurance_expiry",
    "inspection_expiry",
    "photo_url",
    "notes",
]

CLIENT_COLUMNS = [
    "full_name",
    "phone",
    "phone_alt",
    "email",
    "passport",
    "license_number",
    "license_expiry",
    "birth_date",
    "address",
    "status",
    "notes",
]


def vehicle_values(payload: VehicleInput) -> list:
    return [
        payload.brand,
        payload.model,
        payload.licensePlate,
        payload.vin or None,
        payload.year,
        payload.color,
        payload.fuelType.value,
        payload.mileage,
        payload.status.value,
        payload.rateDaily,
        payload.rate3days,
        payload.rate7days,
        payload.rateMonthly,
        to_iso(payload.insuranceExpiry),
        to_iso(payload.inspectionExpiry),
        payload.photoUrl or None,
        payload.notes or None,
    ]


def client_values(payload: ClientInput) -> list:
    return [
        payload.fullName,
        payload.phone,
        payload.phoneAlt or None,
        payload.email or None,
        payload.passport,
        payload.licenseNumber,
        to_iso(payload.licenseExpiry),
        to_iso(payload.birthDate),
        payload.address,
        payload.status.value,
        payload.notes or None,
    ]


def fetch_vehicle(conn: sqlite3.Connection, vehicle_id: int) -> Vehicle:
    row = conn.execute("SELECT * FROM vehicles WHERE id = ?", (vehicle_id,)).fetchone()
    if not row:
        raise NotFoundError("Vehicle not found")
    return Vehicle(**row_to_camel(row))


def fetch_client(conn: sqlite3.Connection, client_id: int) -> Client:
    row = conn.execute("SELECT * FROM clients WHERE id = ?", (client_id,)).fetchone()
    if not row:
        raise NotFoundError("Client not found")
    return Client(**row_to_camel(row))


def transition_vehicle(
    conn: sqlite3.Connection,
    vehicle_id: int,
    current: VehicleStatus,
    event: VehicleEvent,
) -> VehicleStatus:
    """Compare-and-set the vehicle status; fails if another writer moved it first."""
    target = VEHICLE_MACHINE.advance(current, event)
    cursor = conn.execute(
        "UPDATE vehicles SET status = ?, updated_at = ? WHERE id = ? AND status = ?",
        (target.value, now_iso(), vehicle_id, VehicleStatus(current).value),
    )
    if cursor.rowcount == 0:
        raise InvalidStateError("Vehicle is not available")
    return target


def has_active_rental(conn: sqlite3.Connection, vehicle_id: int) -> bool:
    row = conn.execute(
        "SELECT 1 FROM rentals WHERE vehicle_id = ? AND status = ? LIMIT 1",
        (vehicle_id, RentalStatus.ACTIVE.value),
    ).fetchone()
    return row is not None


def client_has_active_rental(conn: sqlite3.Connection, client_id: int) -> bool:
    row = conn.execute(
        "SELECT 1 FROM rentals WHERE client_id = ? AND status = ? LIMIT 1",
        (client_id, RentalStatus.ACTIVE.value),
    ).fetchone()
    return row is not None


def vehicle_summary(row: sqlite3.Row) -> Optional[VehicleSummary]:
    if row["vehicle_id"] is None or "vehicle_brand" not in row.keys():
        return None
    return VehicleSummary(
        id=row["vehicle_id"],
        brand=row["vehicle_brand"],
        model=row["vehicle_model"],
        licensePlate=row["vehicle_license_plate"],
    )


def maintenance_from_row(row: sqlite3.Row) -> MaintenanceRecord:
    record = MaintenanceRecord(**row_to_camel(row))
    record.vehicle = vehicle_summary(row)
    return record


def expense_from_row(row: sqlite3.Row) -> Expense:
    expense = Expense(**row_to_camel(row))
    expense.vehicle = vehicle_summary(row)
    return expense


class FleetStore:
    """Vehicles, clients and maintenance records."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    # vehicles

    def list_vehicles(self) -> List[Vehicle]:
        rows = self.conn.execute(
            "SELECT * FROM vehicles WHERE status != ? ORDER BY brand, model",
            (VehicleStatus.ARCHIVED.value,),
        ).fetchall()
        return [Vehicle(**row_to_camel(row)) for row in rows]

    def get_vehicle(self, vehicle_id: int) -> Vehicle:
        return fetch_vehicle(self.conn, vehicle_id)

    def create_vehicle(self, payload: VehicleInput) -> Vehicle:
        if payload.status not in INITIAL_VEHICLE_STATUSES:
            raise ValidationError(f"A new vehicle cannot start as {payload.status.value}")
        now = now_iso()
        placeholders = ", ".join("?" for _ in VEHICLE_COLUMNS)
        try:
            with transaction(self.conn):
                cursor = self.conn.execute(
                    f"""
                    INSERT INTO vehicles ({', '.join(VEHICLE_COLUMNS)}, created_at, updated_at)
                    VALUES ({placeholders}, ?, ?)
                    """,
                    vehicle_values(payload) + [now, now],
                )
        except sqlite3.IntegrityError:
            raise ConflictError("License plate already exists") from None
        return self.get_vehicle(cursor.lastrowid)

    def update_vehicle(self, vehicle_id: int, payload: VehicleInput) -> Vehicle:
        try:
            with transaction(self.conn):
                existing = fetch_vehicle(self.conn, vehicle_id)
                if payload.status != existing.status:
                    event = VEHICLE_MACHINE.event_for(existing.status, payload.status)
                    if event in RENTAL_DRIVEN_EVENTS:
                        raise InvalidStateError("Rented status is managed through rentals")
                assignments = ", ".join(f"{column} = ?" for column in VEHICLE_COLUMNS)
                self.conn.execute(
                    f"UPDATE vehicles SET {assignments}, updated_at = ? WHERE id = ?",
                    vehicle_values(payload) + [now_iso(), vehicle_id],
                )
        except sqlite3.IntegrityError:
            raise ConflictError("License plate already exists") from None
        return self.get_vehicle(vehicle_id)

    def archive_vehicle(self, vehicle_id: int) -> Vehicle:
        with transaction(self.conn):
            vehicle = fetch_vehicle(self.conn, vehicle_id)
            if has_active_rental(self.conn, vehicle_id):
                raise InvalidStateError("Cannot delete vehicle with active rentals")
            transition_vehicle(self.conn, vehicle_id, vehicle.status, VehicleEvent.ARCHIVE)
        logger.info("Vehicle %s archived", vehicle_id)
        return self.get_vehicle(vehicle_id)

    def set_service(self, vehicle_id: int, event: VehicleEvent) -> Vehicle:
        if event not in (VehicleEvent.SERVICE, VehicleEvent.RELEASE):
            raise ValueError(f"{event} is not a maintenance event")
        with transaction(self.conn):
            vehicle = fetch_vehicle(self.conn, vehicle_id)
            transition_vehicle(self.conn, vehicle_id, vehicle.status, event)
        return self.get_vehicle(vehicle_id)

    # clients

    def list_clients(self) -> List[Client]:
        rows = self.conn.execute("SELECT * FROM clients ORDER BY full_name").fetchall()
        return [Client(**row_to_camel(row)) for row in rows]

    def get_client(self, client_id: int) -> Client:
        return fetch_client(self.conn, client_id)

    def create_client(self, payload: ClientInput) -> Client:
        placeholders = ", ".join("?" for _ in CLIENT_COLUMNS)
        with transaction(self.conn):
            cursor = self.conn.execute(
                f"INSERT INTO clients ({', '.join(CLIENT_COLUMNS)}, created_at) VALUES ({placeholders}, ?)",
                client_values(payload) + [now_iso()],
            )
        return self.get_client(cursor.lastrowid)

    def update_client(self, client_id: int, payload: ClientInput) -> Client:
        with transaction(self.conn):
            fetch_client(self.conn, client_id)
            assignments = ", ".join(f"{column} = ?" for column in CLIENT_COLUMNS)
            self.conn.execute(
                f"UPDATE clients SET {assignments} WHERE id = ?",
                client_values(payload) + [client_id],
            )
        return self.get_client(client_id)

    def delete_client(self, client_id: int) -> None:
        try:
            with transaction(self.conn):
                fetch_client(self.conn, client_id)
                if client_has_active_rental(self.conn, client_id):
                    raise InvalidStateError("Cannot delete client with active rentals")
                self.conn.execute("DELETE FROM clients WHERE id = ?", (client_id,))
        except sqlite3.IntegrityError:
            raise ConflictError("Cannot delete client with rental history") from None
        logger.info("Client %s deleted", client_id)

    # maintenance

    def list_maintenance(self, vehicle_id: Optional[int] = None) -> List[MaintenanceRecord]:
        if vehicle_id is not None:
            rows = self.conn.execute(
                "SELECT * FROM maintenance WHERE vehicle_id = ? ORDER BY date DESC, id DESC",
                (vehicle_id,),
            ).fetchall()
        else:
            rows = self.conn.execute(
                """
                SELECT m.*, v.brand AS vehicle_brand, v.model AS vehicle_model,
                       v.license_plate AS vehicle_license_plate
                FROM maintenance m
                LEFT JOIN vehicles v ON m.vehicle_id = v.id
                ORDER BY m.date DESC, m.id DESC
                """
            ).fetchall()
        return [maintenance_from_row(row) for row in rows]

    def record_maintenance(self, payload: MaintenanceCreate) -> MaintenanceRecord:
        with transaction(self.conn):
            fetch_vehicle(self.conn, payload.vehicleId)
            cursor = self.conn.execute(
                """
                INSERT INTO maintenance (
                    vehicle_id, type, date, mileage, cost, location, description,
                    next_maintenance_mileage, next_maintenance_date, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    payload.vehicleId,
                    payload.type.value,
                    to_iso(payload.date),
                    payload.mileage,
                    payload.cost,
                    payload.location,
                    payload.description,
                    payload.nextMaintenanceMileage,
                    to_iso(payload.nextMaintenanceDate),
                    now_iso(),
                ),
            )
            # odometer only moves forward here
            self.conn.execute(
                "UPDATE vehicles SET mileage = MAX(mileage, ?), updated_at = ? WHERE id = ?",
                (payload.mileage, now_iso(), payload.vehicleId),
            )
            row = self.conn.execute("SELECT * FROM maintenance WHERE id = ?", (cursor.lastrowid,)).fetchone()
        return maintenance_from_row(row)

    # expenses

    def list_expenses(self, start: Optional[dt.date] = None, end: Optional[dt.date] = None) -> List[Expense]:
        query = """
            SELECT e.*, v.brand AS vehicle_brand, v.model AS vehicle_model,
                   v.license_plate AS vehicle_license_plate
            FROM expenses e
            LEFT JOIN vehicles v ON e.vehicle_id = v.id
        """
        params: list = []
        if (start is None) != (end is None):
            raise ValidationError('Both "from" and "to" dates are required')
        if start is not None:
            query += " WHERE e.date BETWEEN ? AND ?"
            params = [start.isoformat(), end.isoformat()]
        rows = self.conn.execute(query + " ORDER BY e.date DESC, e.id DESC", params).fetchall()
        return [expense_from_row(row) for row in rows]

    def record_expense(self, payload: ExpenseCreate) -> Expense:
        with transaction(self.conn):
            if payload.vehicleId is not None:
                fetch_vehicle(self.conn, payload.vehicleId)
            cursor = self.conn.execute(
                """
                INSERT INTO expenses (vehicle_id, category, amount, date, description, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    payload.vehicleId,
                    payload.category.value,
                    payload.amount,
                    to_iso(payload.date),
                    payload.description,
                    now_iso(),
                ),
            )
        row = self.conn.execute("SELECT * FROM expenses WHERE id = ?", (cursor.lastrowid,)).fetchone()
        return expense_from_row(row)

    def delete_expense(self, expense_id: int) -> None:
        cursor = self.conn.execute("DELETE FROM expenses WHERE id = ?", (expense_id,))
        if cursor.rowcount == 0:
            raise NotFoundError("Expense not found")
