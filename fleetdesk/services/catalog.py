"""Read-only car catalog for the public website."""
import sqlite3
from collections import defaultdict
from datetime import datetime
from typing import Dict, List

from ..db import parse_instant, row_to_camel
from ..errors import NotFoundError, ValidationError
from ..models import RentalStatus, Vehicle, VehicleStatus, WebsiteCar
from .availability import BOOKABLE_STATUSES, HOLDING_BOOKING_STATUSES, Interval, is_available

PLACEHOLDER_IMAGE = "/images/car-placeholder.jpg"


def to_website_car(vehicle: Vehicle) -> WebsiteCar:
    images = [vehicle.photoUrl] if vehicle.photoUrl else []
    return WebsiteCar(
        id=f"v-{vehicle.id}",
        brand=vehicle.brand,
        model=vehicle.model,
        year=vehicle.year,
        pricePerDay=vehicle.rateDaily or 0,
        image=vehicle.photoUrl or PLACEHOLDER_IMAGE,
        images=images,
        fuel=vehicle.fuelType.value,
        available=vehicle.status == VehicleStatus.AVAILABLE,
        color=vehicle.color,
        licensePlate=vehicle.licensePlate,
        rates={
            "daily": vehicle.rateDaily or 0,
            "threeDays": vehicle.rate3days or 0,
            "sevenDays": vehicle.rate7days or 0,
            "monthly": vehicle.rateMonthly or 0,
        },
    )


def parse_range(start: str, end: str):
    if not start or not end:
        raise ValidationError('Both "from" and "to" dates are required')
    try:
        start_at, end_at = parse_instant(start), parse_instant(end)
    except ValueError:
        raise ValidationError("Invalid date format") from None
    if start_at >= end_at:
        raise ValidationError('"from" date must be before "to" date')
    return start_at, end_at


class Catalog:
    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    def cars(self) -> List[WebsiteCar]:
        rows = self.conn.execute(
            "SELECT * FROM vehicles WHERE status != ? ORDER BY brand, model",
            (VehicleStatus.ARCHIVED.value,),
        ).fetchall()
        return [to_website_car(Vehicle(**row_to_camel(row))) for row in rows]

    def car(self, car_id: str) -> WebsiteCar:
        raw = car_id[2:] if car_id.startswith("v-") else car_id
        if not raw.isdigit():
            raise NotFoundError("Car not found")
        row = self.conn.execute(
            "SELECT * FROM vehicles WHERE id = ? AND status != ?",
            (int(raw), VehicleStatus.ARCHIVED.value),
        ).fetchone()
        if not row:
            raise NotFoundError("Car not found")
        return to_website_car(Vehicle(**row_to_camel(row)))

    def available(self, start: datetime, end: datetime) -> List[WebsiteCar]:
        rows = self.conn.execute(
            f"SELECT * FROM vehicles WHERE status IN ({', '.join('?' for _ in BOOKABLE_STATUSES)}) ORDER BY brand, model",
            [s.value for s in BOOKABLE_STATUSES],
        ).fetchall()
        holds = self._holds_by_vehicle()
        cars = []
        for row in rows:
            vehicle = Vehicle(**row_to_camel(row))
            if is_available(vehicle.status, holds.get(vehicle.id, []), start, end):
                cars.append(to_website_car(vehicle))
        return cars

    def _holds_by_vehicle(self) -> Dict[int, List[Interval]]:
        holds: Dict[int, List[Interval]] = defaultdict(list)
        rentals = self.conn.execute(
            "SELECT vehicle_id, start_date, planned_end_date FROM rentals WHERE status = ?",
            (RentalStatus.ACTIVE.value,),
        ).fetchall()
        for row in rentals:
            holds[row["vehicle_id"]].append(
                Interval(parse_instant(row["start_date"]), parse_instant(row["planned_end_date"]))
            )
        bookings = self.conn.execute(
            "SELECT vehicle_id, start_date, end_date FROM booking_requests WHERE status IN (?, ?)",
            [s.value for s in HOLDING_BOOKING_STATUSES],
        ).fetchall()
        for row in bookings:
            holds[row["vehicle_id"]].append(Interval(parse_instant(row["start_date"]), parse_instant(row["end_date"])))
        return holds
