from .booking import (
    AdditionalService,
    BookingConfirm,
    BookingCreate,
    BookingReceipt,
    BookingReject,
    BookingRequest,
    BookingStats,
    BookingStatus,
    BookingStatusUpdate,
    BookingStatusView,
)
from .catalog import WebsiteCar
from .client import Client, ClientInput, ClientStatus, ClientSummary
from .expense import Expense, ExpenseCategory, ExpenseCreate
from .maintenance import MaintenanceCreate, MaintenanceRecord, MaintenanceType
from .rental import (
    PaymentMethod,
    PaymentStatus,
    RateType,
    Rental,
    RentalCancel,
    RentalComplete,
    RentalCreate,
    RentalStatus,
    RentalUpdate,
)
from .vehicle import FuelType, Vehicle, VehicleInput, VehicleStatus, VehicleSummary

__all__ = [
    "AdditionalService",
    "BookingConfirm",
    "BookingCreate",
    "BookingReceipt",
    "BookingReject",
    "BookingRequest",
    "BookingStats",
    "BookingStatus",
    "BookingStatusUpdate",
    "BookingStatusView",
    "Client",
    "ClientInput",
    "ClientStatus",
    "ClientSummary",
    "Expense",
    "ExpenseCategory",
    "ExpenseCreate",
    "FuelType",
    "MaintenanceCreate",
    "MaintenanceRecord",
    "MaintenanceType",
    "PaymentMethod",
    "PaymentStatus",
    "RateType",
    "Rental",
    "RentalCancel",
    "RentalComplete",
    "RentalCreate",
    "RentalStatus",
    "RentalUpdate",
    "Vehicle",
    "VehicleInput",
    "VehicleStatus",
    "VehicleSummary",
    "WebsiteCar",
]
