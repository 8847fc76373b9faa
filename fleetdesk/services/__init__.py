from .availability import Interval, calendar_holds, ensure_available, is_available
from .billing import compute_total
from .bookings import BookingWorkflow, generate_reference_code
from .catalog import Catalog, parse_range
from .fleet import FleetStore
from .rentals import RentalLifecycle
from .states import BOOKING_MACHINE, RENTAL_MACHINE, VEHICLE_MACHINE, BookingEvent, RentalEvent, VehicleEvent

__all__ = [
    "BOOKING_MACHINE",
    "BookingEvent",
    "BookingWorkflow",
    "Catalog",
    "FleetStore",
    "Interval",
    "RENTAL_MACHINE",
    "RentalEvent",
    "RentalLifecycle",
    "VEHICLE_MACHINE",
    "VehicleEvent",
    "calendar_holds",
    "compute_total",
    "ensure_available",
    "generate_reference_code",
    "is_available",
    "parse_range",
]
