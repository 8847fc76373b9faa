import logging
import secrets
import sqlite3
import string
from datetime import datetime, timezone
from typing import Callable, List, Optional

from ..db import dumps_json, loads_json, now_iso, parse_instant, row_to_camel, to_iso, transaction
from ..errors import ConflictError, FleetError, InvalidTransition, NotFoundError, ValidationError
from ..models import (
    BookingConfirm,
    BookingCreate,
    BookingReceipt,
    BookingReject,
    BookingRequest,
    BookingStats,
    BookingStatus,
    BookingStatusUpdate,
    BookingStatusView,
    RateType,
    VehicleStatus,
    VehicleSummary,
)
from .availability import ensure_available
from .fleet import fetch_client, fetch_vehicle
from .rentals import insert_rental, rent_vehicle, require_fields
from .states import BOOKING_MACHINE, VEHICLE_MACHINE, BookingEvent, VehicleEvent

logger = logging.getLogger(__name__)

REFERENCE_ALPHABET = string.ascii_uppercase + string.digits
REFERENCE_LENGTH = 6
REFERENCE_ATTEMPTS = 5

REQUIRED_BOOKING_FIELDS = [
    "vehicleId",
    "customerFirstName",
    "customerLastName",
    "customerEmail",
    "customerPhone",
    "startDate",
    "endDate",
    "pickupLocation",
    "returnLocation",
]

BOOKING_SELECT = """
    SELECT br.*,
        v.brand AS vehicle_brand, v.model AS vehicle_model, v.license_plate AS vehicle_license_plate,
        v.year AS vehicle_year, v.color AS vehicle_color
    FROM booking_requests br
    LEFT JOIN vehicles v ON br.vehicle_id = v.id
"""


def generate_reference_code(prefix: str = "UNI", year: Optional[int] = None) -> str:
    """Human readable code such as ``UNI-2026-ABC123``."""
    year = year or datetime.now(timezone.utc).year
    code = "".join(secrets.choice(REFERENCE_ALPHABET) for _ in range(REFERENCE_LENGTH))
    return f"{prefix}-{year}-{code}"


def parse_date_field(value: str) -> datetime:
    try:
        return parse_instant(value)
    except (TypeError, ValueError):
        raise ValidationError("Invalid date format") from None


def booking_from_row(row: sqlite3.Row) -> BookingRequest:
    data = row_to_camel(row)
    data["additionalServices"] = loads_json(data.get("additionalServices"))
    booking = BookingRequest(**data)
    if "vehicle_brand" in row.keys():
        booking.vehicle = VehicleSummary(
            id=row["vehicle_id"],
            brand=row["vehicle_brand"],
            model=row["vehicle_model"],
            licensePlate=row["vehicle_license_plate"],
            year=row["vehicle_year"],
            color=row["vehicle_color"],
        )
    return booking


class BookingWorkflow:
    def __init__(
        self,
        conn: sqlite3.Connection,
        reference_prefix: str = "UNI",
        code_factory: Optional[Callable[[], str]] = None,
    ) -> None:
        self.conn = conn
        self.code_factory = code_factory or (lambda: generate_reference_code(reference_prefix))

    def list(self, status: Optional[str] = None) -> List[BookingRequest]:
        if status:
            try:
                status = BookingStatus(status).value
            except ValueError:
                raise ValidationError("Invalid status") from None
            rows = self.conn.execute(
                BOOKING_SELECT + " WHERE br.status = ? ORDER BY br.created_at DESC, br.id DESC",
                (status,),
            ).fetchall()
        else:
            rows = self.conn.execute(BOOKING_SELECT + " ORDER BY br.created_at DESC, br.id DESC").fetchall()
        return [booking_from_row(row) for row in rows]

    def get(self, request_id: int) -> BookingRequest:
        row = self.conn.execute(BOOKING_SELECT + " WHERE br.id = ?", (request_id,)).fetchone()
        if not row:
            raise NotFoundError("Booking request not found")
        return booking_from_row(row)

    def stats(self) -> BookingStats:
        rows = self.conn.execute(
            "SELECT status, COUNT(*) AS count FROM booking_requests GROUP BY status"
        ).fetchall()
        counts = {row["status"]: row["count"] for row in rows}
        return BookingStats(
            pending=counts.get(BookingStatus.PENDING.value, 0),
            confirmed=counts.get(BookingStatus.CONFIRMED.value, 0),
            rejected=counts.get(BookingStatus.REJECTED.value, 0),
            completed=counts.get(BookingStatus.COMPLETED.value, 0),
            total=sum(counts.values()),
        )

    def status_by_reference(self, reference_code: str) -> BookingStatusView:
        row = self.conn.execute(
            """
            SELECT br.reference_code, br.status, br.start_date, br.end_date, br.pickup_location,
                   br.return_location, br.total_price, br.created_at, v.brand, v.model, v.year
            FROM booking_requests br
            JOIN vehicles v ON br.vehicle_id = v.id
            WHERE br.reference_code = ?
            """,
            (reference_code,),
        ).fetchone()
        if not row:
            raise NotFoundError("Booking not found")
        return BookingStatusView(
            referenceCode=row["reference_code"],
            status=row["status"],
            vehicle={"brand": row["brand"], "model": row["model"], "year": row["year"]},
            startDate=row["start_date"],
            endDate=row["end_date"],
            pickupLocation=row["pickup_location"],
            returnLocation=row["return_location"],
            totalPrice=row["total_price"],
            createdAt=row["created_at"],
        )

    def create_from_website(self, payload: BookingCreate, now: Optional[datetime] = None) -> BookingReceipt:
        require_fields(payload.model_dump(), REQUIRED_BOOKING_FIELDS)
        start = parse_date_field(payload.startDate)
        end = parse_date_field(payload.endDate)
        if start >= end:
            raise ValidationError("Start date must be before end date")
        if start < (now or datetime.now(timezone.utc)):
            raise ValidationError("Start date cannot be in the past")

        with transaction(self.conn):
            vehicle = self.conn.execute(
                "SELECT id, status FROM vehicles WHERE id = ? AND status != ?",
                (payload.vehicleId, VehicleStatus.ARCHIVED.value),
            ).fetchone()
            if not vehicle:
                raise NotFoundError("Vehicle not found")
            ensure_available(self.conn, vehicle["id"], vehicle["status"], start, end)
            reference_code = self._insert_pending(payload, start, end)

        logger.info("Booking request %s received for vehicle %s", reference_code, payload.vehicleId)
        return BookingReceipt(referenceCode=reference_code, status=BookingStatus.PENDING)

    def _insert_pending(self, payload: BookingCreate, start: datetime, end: datetime) -> str:
        now = now_iso()
        for attempt in range(1, REFERENCE_ATTEMPTS + 1):
            reference_code = self.code_factory()
            clash = self.conn.execute(
                "SELECT 1 FROM booking_requests WHERE reference_code = ?", (reference_code,)
            ).fetchone()
            if clash:
                logger.warning("Reference code %s already taken (attempt %d)", reference_code, attempt)
                continue
            self.conn.execute(
                """
                INSERT INTO booking_requests (
                    reference_code, vehicle_id, customer_first_name, customer_last_name,
                    customer_email, customer_phone, customer_birth_date, customer_license_number,
                    customer_license_issue_date, start_date, end_date, pickup_location,
                    return_location, additional_services, total_price, status, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    reference_code,
                    payload.vehicleId,
                    payload.customerFirstName,
                    payload.customerLastName,
                    payload.customerEmail,
                    payload.customerPhone,
                    payload.customerBirthDate or None,
                    payload.customerLicenseNumber or None,
                    payload.customerLicenseIssueDate or None,
                    to_iso(start),
                    to_iso(end),
                    payload.pickupLocation,
                    payload.returnLocation,
                    dumps_json([service.model_dump() for service in payload.additionalServices]),
                    payload.totalPrice or 0,
                    BookingStatus.PENDING.value,
                    now,
                    now,
                ),
            )
            return reference_code
        raise FleetError("Could not allocate a unique reference code")

    def confirm(self, request_id: int, payload: BookingConfirm) -> BookingRequest:
        with transaction(self.conn):
            request = self._pending(request_id, BookingEvent.CONFIRM)
            status = BOOKING_MACHINE.advance(request.status, BookingEvent.CONFIRM)
            rental_id = None
            if payload.createRental and payload.clientId:
                rental_id = self._spawn_rental(request, payload.clientId)
            self.conn.execute(
                """
                UPDATE booking_requests
                SET status = ?, admin_notes = ?, rental_id = ?, updated_at = ?
                WHERE id = ?
                """,
                (status.value, payload.adminNotes or None, rental_id, now_iso(), request_id),
            )
        logger.info("Booking request %s confirmed (rental %s)", request.referenceCode, rental_id)
        return self.get(request_id)

    def reject(self, request_id: int, payload: BookingReject) -> BookingRequest:
        with transaction(self.conn):
            request = self._pending(request_id, BookingEvent.REJECT)
            status = BOOKING_MACHINE.advance(request.status, BookingEvent.REJECT)
            self.conn.execute(
                "UPDATE booking_requests SET status = ?, admin_notes = ?, updated_at = ? WHERE id = ?",
                (status.value, payload.adminNotes or None, now_iso(), request_id),
            )
        logger.info("Booking request %s rejected", request.referenceCode)
        return self.get(request_id)

    def set_status(self, request_id: int, payload: BookingStatusUpdate) -> BookingRequest:
        try:
            target = BookingStatus(payload.status)
        except ValueError:
            raise ValidationError("Invalid status") from None
        with transaction(self.conn):
            request = self.get(request_id)
            event = BOOKING_MACHINE.event_for(request.status, target)
            status = BOOKING_MACHINE.advance(request.status, event)
            self.conn.execute(
                "UPDATE booking_requests SET status = ?, admin_notes = ?, updated_at = ? WHERE id = ?",
                (status.value, payload.adminNotes or request.adminNotes, now_iso(), request_id),
            )
        return self.get(request_id)

    def _pending(self, request_id: int, event: BookingEvent) -> BookingRequest:
        row = self.conn.execute("SELECT * FROM booking_requests WHERE id = ?", (request_id,)).fetchone()
        if not row:
            raise NotFoundError("Pending booking request not found")
        request = booking_from_row(row)
        try:
            BOOKING_MACHINE.advance(request.status, event)
        except InvalidTransition:
            raise NotFoundError("Pending booking request not found") from None
        return request

    def _spawn_rental(self, request: BookingRequest, client_id: int) -> int:
        vehicle = fetch_vehicle(self.conn, request.vehicleId)
        fetch_client(self.conn, client_id)
        if not VEHICLE_MACHINE.can(vehicle.status, VehicleEvent.RENT):
            raise ConflictError("Vehicle is not available")
        rent_vehicle(self.conn, vehicle.id, request.startDate, request.endDate, exclude_booking_id=request.id)
        return insert_rental(
            self.conn,
            vehicle_id=vehicle.id,
            client_id=client_id,
            start=request.startDate,
            planned_end=request.endDate,
            mileage_start=vehicle.mileage,
            rate_type=RateType.DAILY,
            rate_amount=vehicle.rateDaily,
            total_amount=request.totalPrice,
            fuel_level_start=100,
            deposit=0,
            payment_method="cash",
            notes=f"From booking: {request.referenceCode}",
        )
