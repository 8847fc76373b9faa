import logging
import sqlite3
from datetime import datetime, timezone
from typing import List, Optional

from ..db import now_iso, row_to_camel, to_iso, to_utc, transaction
from ..errors import ConflictError, InvalidStateError, NotFoundError, ValidationError
from ..models import (
    ClientStatus,
    ClientSummary,
    PaymentStatus,
    RateType,
    Rental,
    RentalCancel,
    RentalComplete,
    RentalCreate,
    RentalStatus,
    RentalUpdate,
    VehicleSummary,
)
from .availability import HOLDING_BOOKING_STATUSES, ensure_available
from .billing import compute_total
from .fleet import fetch_client, fetch_vehicle, transition_vehicle
from .states import BOOKING_MACHINE, RENTAL_MACHINE, VEHICLE_MACHINE, BookingEvent, RentalEvent, VehicleEvent

logger = logging.getLogger(__name__)

RENTAL_SELECT = """
    SELECT r.*,
        v.brand AS vehicle_brand, v.model AS vehicle_model, v.license_plate AS vehicle_license_plate,
        c.full_name AS client_full_name, c.phone AS client_phone
    FROM rentals r
    LEFT JOIN vehicles v ON r.vehicle_id = v.id
    LEFT JOIN clients c ON r.client_id = c.id
"""

REQUIRED_RENTAL_FIELDS = ["vehicleId", "clientId", "startDate", "plannedEndDate", "mileageStart", "rateAmount"]


def require_fields(payload: dict, fields: List[str]) -> None:
    missing = [f for f in fields if payload.get(f) is None or payload.get(f) == ""]
    if missing:
        raise ValidationError(f"Missing fields: {', '.join(missing)}")


def rental_from_row(row: sqlite3.Row) -> Rental:
    rental = Rental(**row_to_camel(row))
    if "vehicle_brand" in row.keys():
        rental.vehicle = VehicleSummary(
            id=row["vehicle_id"],
            brand=row["vehicle_brand"],
            model=row["vehicle_model"],
            licensePlate=row["vehicle_license_plate"],
        )
        rental.client = ClientSummary(
            id=row["client_id"],
            fullName=row["client_full_name"],
            phone=row["client_phone"],
        )
    return rental


def insert_rental(
    conn: sqlite3.Connection,
    *,
    vehicle_id: int,
    client_id: int,
    start: datetime,
    planned_end: datetime,
    mileage_start: int,
    rate_type: RateType,
    rate_amount: float,
    total_amount: float,
    fuel_level_start: int = 100,
    deposit: float = 0,
    payment_method: str = "cash",
    extras: Optional[str] = None,
    condition_start: Optional[str] = None,
    notes: Optional[str] = None,
) -> int:
    cursor = conn.execute(
        """
        INSERT INTO rentals (
            vehicle_id, client_id, start_date, planned_end_date, mileage_start, fuel_level_start,
            rate_type, rate_amount, deposit, payment_method, total_amount,
            extras, condition_start, notes, status, payment_status, created_at
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            vehicle_id,
            client_id,
            to_iso(start),
            to_iso(planned_end),
            mileage_start,
            fuel_level_start,
            RateType(rate_type).value,
            rate_amount,
            deposit,
            payment_method,
            total_amount,
            extras,
            condition_start,
            notes,
            RentalStatus.ACTIVE.value,
            PaymentStatus.UNPAID.value,
            now_iso(),
        ),
    )
    return cursor.lastrowid


def rent_vehicle(conn: sqlite3.Connection, vehicle_id: int, start: datetime, end: datetime,
                 exclude_booking_id: Optional[int] = None) -> None:
    """Check the calendar and flip the vehicle to rented inside the caller's transaction."""
    vehicle = fetch_vehicle(conn, vehicle_id)
    if not VEHICLE_MACHINE.can(vehicle.status, VehicleEvent.RENT):
        raise InvalidStateError("Vehicle is not available")
    ensure_available(conn, vehicle_id, vehicle.status, start, end, exclude_booking_id)
    transition_vehicle(conn, vehicle_id, vehicle.status, VehicleEvent.RENT)


class RentalLifecycle:
    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    def list(self, active_only: bool = False) -> List[Rental]:
        if active_only:
            rows = self.conn.execute(
                RENTAL_SELECT + " WHERE r.status = ? ORDER BY r.planned_end_date ASC",
                (RentalStatus.ACTIVE.value,),
            ).fetchall()
        else:
            rows = self.conn.execute(RENTAL_SELECT + " ORDER BY r.created_at DESC, r.id DESC").fetchall()
        return [rental_from_row(row) for row in rows]

    def get(self, rental_id: int) -> Rental:
        row = self.conn.execute(RENTAL_SELECT + " WHERE r.id = ?", (rental_id,)).fetchone()
        if not row:
            raise NotFoundError("Rental not found")
        return rental_from_row(row)

    def create(self, payload: RentalCreate) -> Rental:
        require_fields(payload.model_dump(), REQUIRED_RENTAL_FIELDS)
        if payload.rateAmount <= 0:
            raise ValidationError("rateAmount must be positive")
        start = to_utc(payload.startDate)
        planned_end = to_utc(payload.plannedEndDate)
        if planned_end <= start:
            raise ValidationError("plannedEndDate must be after startDate")

        total = compute_total(payload.rateType, payload.rateAmount, start, planned_end)
        with transaction(self.conn):
            fetch_vehicle(self.conn, payload.vehicleId)
            client = fetch_client(self.conn, payload.clientId)
            if client.status == ClientStatus.BLACKLISTED:
                raise InvalidStateError("Client is blacklisted")
            request = None
            if payload.bookingRequestId is not None:
                request = self._open_request(payload.bookingRequestId, payload.vehicleId)
            rent_vehicle(self.conn, payload.vehicleId, start, planned_end, exclude_booking_id=payload.bookingRequestId)
            rental_id = insert_rental(
                self.conn,
                vehicle_id=payload.vehicleId,
                client_id=payload.clientId,
                start=start,
                planned_end=planned_end,
                mileage_start=payload.mileageStart,
                rate_type=payload.rateType,
                rate_amount=payload.rateAmount,
                total_amount=total,
                fuel_level_start=payload.fuelLevelStart,
                deposit=payload.deposit,
                payment_method=payload.paymentMethod.value,
                extras=payload.extras,
                condition_start=payload.conditionStart,
                notes=payload.notes,
            )
            if request is not None:
                self._link_request(request, rental_id)
        logger.info("Rental %s created for vehicle %s (total %.2f)", rental_id, payload.vehicleId, total)
        return self.get(rental_id)

    def update(self, rental_id: int, payload: RentalUpdate) -> Rental:
        with transaction(self.conn):
            existing = self.get(rental_id)
            planned_end = to_utc(payload.plannedEndDate or existing.plannedEndDate)
            if planned_end <= to_utc(existing.startDate):
                raise ValidationError("plannedEndDate must be after startDate")
            rate_type = payload.rateType or existing.rateType
            rate_amount = payload.rateAmount or existing.rateAmount
            total = compute_total(rate_type, rate_amount, existing.startDate, planned_end)
            self.conn.execute(
                """
                UPDATE rentals SET
                    planned_end_date = ?, rate_type = ?, rate_amount = ?, deposit = ?,
                    payment_method = ?, payment_status = ?, total_amount = ?,
                    extras = ?, condition_start = ?, notes = ?
                WHERE id = ?
                """,
                (
                    to_iso(planned_end),
                    RateType(rate_type).value,
                    rate_amount,
                    existing.deposit if payload.deposit is None else payload.deposit,
                    (payload.paymentMethod or existing.paymentMethod).value,
                    (payload.paymentStatus or existing.paymentStatus).value,
                    total,
                    existing.extras if payload.extras is None else payload.extras,
                    existing.conditionStart if payload.conditionStart is None else payload.conditionStart,
                    existing.notes if payload.notes is None else payload.notes,
                    rental_id,
                ),
            )
        return self.get(rental_id)

    def complete(self, rental_id: int, payload: RentalComplete) -> Rental:
        with transaction(self.conn):
            rental = self.get(rental_id)
            if not RENTAL_MACHINE.can(rental.status, RentalEvent.COMPLETE):
                raise InvalidStateError("Rental is not active")
            status = RENTAL_MACHINE.advance(rental.status, RentalEvent.COMPLETE)
            ended_at = payload.actualEndDate or datetime.now(timezone.utc)
            self.conn.execute(
                """
                UPDATE rentals SET
                    actual_end_date = ?, mileage_end = ?, fuel_level_end = ?, condition_end = ?,
                    deposit_returned = ?, status = ?, payment_status = ?
                WHERE id = ?
                """,
                (
                    to_iso(ended_at),
                    payload.mileageEnd,
                    payload.fuelLevelEnd,
                    payload.conditionEnd,
                    1 if payload.depositReturned else 0,
                    status.value,
                    PaymentStatus.PAID.value,
                    rental_id,
                ),
            )
            vehicle = fetch_vehicle(self.conn, rental.vehicleId)
            if payload.mileageEnd < vehicle.mileage:
                logger.warning(
                    "Rental %s returns vehicle %s with mileage %s below current %s",
                    rental_id,
                    vehicle.id,
                    payload.mileageEnd,
                    vehicle.mileage,
                )
            transition_vehicle(self.conn, vehicle.id, vehicle.status, VehicleEvent.RETURN)
            self.conn.execute(
                "UPDATE vehicles SET mileage = ?, updated_at = ? WHERE id = ?",
                (payload.mileageEnd, now_iso(), vehicle.id),
            )
            self._complete_linked_bookings(rental_id)
        logger.info("Rental %s completed, vehicle %s available", rental_id, rental.vehicleId)
        return self.get(rental_id)

    def cancel(self, rental_id: int, payload: RentalCancel) -> Rental:
        with transaction(self.conn):
            rental = self.get(rental_id)
            if not RENTAL_MACHINE.can(rental.status, RentalEvent.CANCEL):
                raise InvalidStateError("Rental is not active")
            status = RENTAL_MACHINE.advance(rental.status, RentalEvent.CANCEL)
            self.conn.execute(
                "UPDATE rentals SET status = ?, notes = ? WHERE id = ?",
                (status.value, payload.notes if payload.notes is not None else rental.notes, rental_id),
            )
            vehicle = fetch_vehicle(self.conn, rental.vehicleId)
            transition_vehicle(self.conn, vehicle.id, vehicle.status, VehicleEvent.RETURN)
            # the request keeps its confirmed dates and can be rented again
            self.conn.execute(
                "UPDATE booking_requests SET rental_id = NULL, updated_at = ? WHERE rental_id = ?",
                (now_iso(), rental_id),
            )
        logger.info("Rental %s cancelled", rental_id)
        return self.get(rental_id)

    def _complete_linked_bookings(self, rental_id: int) -> None:
        rows = self.conn.execute(
            "SELECT id, status FROM booking_requests WHERE rental_id = ?",
            (rental_id,),
        ).fetchall()
        for row in rows:
            if not BOOKING_MACHINE.can(row["status"], BookingEvent.COMPLETE):
                continue
            target = BOOKING_MACHINE.advance(row["status"], BookingEvent.COMPLETE)
            self.conn.execute(
                "UPDATE booking_requests SET status = ?, updated_at = ? WHERE id = ?",
                (target.value, now_iso(), row["id"]),
            )

    def _open_request(self, request_id: int, vehicle_id: int) -> sqlite3.Row:
        row = self.conn.execute(
            "SELECT id, vehicle_id, status, rental_id FROM booking_requests WHERE id = ?",
            (request_id,),
        ).fetchone()
        if not row:
            raise NotFoundError("Booking request not found")
        if row["vehicle_id"] != vehicle_id:
            raise ValidationError("Booking request is for another vehicle")
        if row["status"] not in [s.value for s in HOLDING_BOOKING_STATUSES]:
            raise InvalidStateError("Booking request is not open")
        if row["rental_id"] is not None:
            raise ConflictError("Booking request already has a rental")
        return row

    def _link_request(self, request: sqlite3.Row, rental_id: int) -> None:
        status = request["status"]
        if BOOKING_MACHINE.can(status, BookingEvent.CONFIRM):
            status = BOOKING_MACHINE.advance(status, BookingEvent.CONFIRM).value
        self.conn.execute(
            "UPDATE booking_requests SET status = ?, rental_id = ?, updated_at = ? WHERE id = ?",
            (status, rental_id, now_iso(), request["id"]),
        )
