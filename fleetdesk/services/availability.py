"""Calendar availability for vehicles.

Both the admin rental path and the public booking path decide whether a date
range is free through ``ensure_available``.
"""
import sqlite3
from datetime import datetime
from typing import Iterable, List, NamedTuple, Optional, Union

from ..db import parse_instant, to_utc
from ..errors import ConflictError
from ..models import BookingStatus, RentalStatus, VehicleStatus

BOOKABLE_STATUSES = (VehicleStatus.AVAILABLE, VehicleStatus.RENTED)
HOLDING_BOOKING_STATUSES = (BookingStatus.PENDING, BookingStatus.CONFIRMED)


class Interval(NamedTuple):
    start: datetime
    end: datetime


def overlaps(a: Interval, b: Interval) -> bool:
    # half-open: touching endpoints do not overlap
    return a.start < b.end and a.end > b.start


def is_available(
    vehicle_status: Union[str, VehicleStatus],
    existing_bookings: Iterable[Interval],
    candidate_start: datetime,
    candidate_end: datetime,
) -> bool:
    if VehicleStatus(vehicle_status) not in BOOKABLE_STATUSES:
        return False
    candidate = Interval(to_utc(candidate_start), to_utc(candidate_end))
    for booking in existing_bookings:
        if overlaps(candidate, Interval(to_utc(booking.start), to_utc(booking.end))):
            return False
    return True


def calendar_holds(
    conn: sqlite3.Connection,
    vehicle_id: int,
    exclude_booking_id: Optional[int] = None,
) -> List[Interval]:
    """Active rentals plus pending/confirmed booking requests for one vehicle."""
    rows = conn.execute(
        "SELECT start_date, planned_end_date AS end_date FROM rentals WHERE vehicle_id = ? AND status = ?",
        (vehicle_id, RentalStatus.ACTIVE.value),
    ).fetchall()
    rows += conn.execute(
        """
        SELECT start_date, end_date FROM booking_requests
        WHERE vehicle_id = ? AND status IN (?, ?) AND id IS NOT ?
        """,
        (vehicle_id, *[s.value for s in HOLDING_BOOKING_STATUSES], exclude_booking_id),
    ).fetchall()
    return [Interval(parse_instant(row["start_date"]), parse_instant(row["end_date"])) for row in rows]


def ensure_available(
    conn: sqlite3.Connection,
    vehicle_id: int,
    vehicle_status: Union[str, VehicleStatus],
    start: datetime,
    end: datetime,
    exclude_booking_id: Optional[int] = None,
) -> None:
    holds = calendar_holds(conn, vehicle_id, exclude_booking_id)
    if not is_available(vehicle_status, holds, start, end):
        raise ConflictError("Vehicle is not available for selected dates")
