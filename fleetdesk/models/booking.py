from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel

from .vehicle import VehicleSummary


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"
    COMPLETED = "completed"


class AdditionalService(BaseModel):
    id: str
    name: str
    price: float = 0
    perDay: bool = False


class BookingRequest(BaseModel):
    id: int
    referenceCode: str
    vehicleId: int
    customerFirstName: str
    customerLastName: str
    customerEmail: str
    customerPhone: str
    customerBirthDate: Optional[str] = None
    customerLicenseNumber: Optional[str] = None
    customerLicenseIssueDate: Optional[str] = None
    startDate: datetime
    endDate: datetime
    pickupLocation: str
    returnLocation: str
    additionalServices: List[AdditionalService] = []
    totalPrice: float = 0
    status: BookingStatus = BookingStatus.PENDING
    adminNotes: Optional[str] = None
    rentalId: Optional[int] = None
    createdAt: datetime
    updatedAt: datetime
    vehicle: Optional[VehicleSummary] = None


class BookingCreate(BaseModel):
    """Website booking form; presence is checked by the workflow, not here."""

    vehicleId: Optional[int] = None
    customerFirstName: Optional[str] = None
    customerLastName: Optional[str] = None
    customerEmail: Optional[str] = None
    customerPhone: Optional[str] = None
    customerBirthDate: Optional[str] = None
    customerLicenseNumber: Optional[str] = None
    customerLicenseIssueDate: Optional[str] = None
    startDate: Optional[str] = None
    endDate: Optional[str] = None
    pickupLocation: Optional[str] = None
    returnLocation: Optional[str] = None
    additionalServices: List[AdditionalService] = []
    totalPrice: float = 0


class BookingReceipt(BaseModel):
    referenceCode: str
    status: BookingStatus
    message: str = "Booking request created successfully"


class BookingConfirm(BaseModel):
    createRental: bool = False
    clientId: Optional[int] = None
    adminNotes: Optional[str] = None


class BookingReject(BaseModel):
    adminNotes: Optional[str] = None


class BookingStatusUpdate(BaseModel):
    status: Optional[str] = None
    adminNotes: Optional[str] = None


class BookingStats(BaseModel):
    pending: int = 0
    confirmed: int = 0
    rejected: int = 0
    completed: int = 0
    total: int = 0


class BookingVehicle(BaseModel):
    brand: str
    model: str
    year: int


class BookingStatusView(BaseModel):
    referenceCode: str
    status: BookingStatus
    vehicle: BookingVehicle
    startDate: datetime
    endDate: datetime
    pickupLocation: str
    returnLocation: str
    totalPrice: float
    createdAt: datetime
