from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from .client import ClientSummary
from .vehicle import VehicleSummary


class RentalStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class RateType(str, Enum):
    HOURLY = "hourly"
    DAILY = "daily"
    MONTHLY = "monthly"


class PaymentMethod(str, Enum):
    CASH = "cash"
    CARD = "card"
    TRANSFER = "transfer"


class PaymentStatus(str, Enum):
    UNPAID = "unpaid"
    PARTIAL = "partial"
    PAID = "paid"


class Rental(BaseModel):
    id: int
    vehicleId: int
    clientId: int
    startDate: datetime
    plannedEndDate: datetime
    actualEndDate: Optional[datetime] = None
    mileageStart: int
    mileageEnd: Optional[int] = None
    fuelLevelStart: int = 100
    fuelLevelEnd: Optional[int] = None
    rateType: RateType = RateType.DAILY
    rateAmount: float
    deposit: float = 0
    depositReturned: bool = False
    paymentMethod: PaymentMethod = PaymentMethod.CASH
    paymentStatus: PaymentStatus = PaymentStatus.UNPAID
    totalAmount: float = 0
    extras: Optional[str] = None
    conditionStart: Optional[str] = None
    conditionEnd: Optional[str] = None
    notes: Optional[str] = None
    status: RentalStatus = RentalStatus.ACTIVE
    createdAt: datetime
    vehicle: Optional[VehicleSummary] = None
    client: Optional[ClientSummary] = None


class RentalCreate(BaseModel):
    vehicleId: Optional[int] = None
    clientId: Optional[int] = None
    startDate: Optional[datetime] = None
    plannedEndDate: Optional[datetime] = None
    mileageStart: Optional[int] = Field(None, ge=0)
    fuelLevelStart: int = Field(100, ge=0, le=100)
    rateType: RateType = RateType.DAILY
    rateAmount: Optional[float] = None
    deposit: float = Field(0, ge=0)
    paymentMethod: PaymentMethod = PaymentMethod.CASH
    extras: Optional[str] = None
    conditionStart: Optional[str] = None
    notes: Optional[str] = None
    bookingRequestId: Optional[int] = None


class RentalUpdate(BaseModel):
    plannedEndDate: Optional[datetime] = None
    rateType: Optional[RateType] = None
    rateAmount: Optional[float] = Field(None, gt=0)
    deposit: Optional[float] = Field(None, ge=0)
    paymentMethod: Optional[PaymentMethod] = None
    paymentStatus: Optional[PaymentStatus] = None
    extras: Optional[str] = None
    conditionStart: Optional[str] = None
    notes: Optional[str] = None


class RentalComplete(BaseModel):
    mileageEnd: int = Field(..., ge=0)
    actualEndDate: Optional[datetime] = None
    fuelLevelEnd: Optional[int] = Field(None, ge=0, le=100)
    conditionEnd: Optional[str] = None
    depositReturned: bool = False


class RentalCancel(BaseModel):
    notes: Optional[str] = None
