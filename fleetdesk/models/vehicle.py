from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class VehicleStatus(str, Enum):
    AVAILABLE = "available"
    RENTED = "rented"
    MAINTENANCE = "maintenance"
    ARCHIVED = "archived"


class FuelType(str, Enum):
    PETROL = "petrol"
    DIESEL = "diesel"
    ELECTRIC = "electric"
    HYBRID = "hybrid"


class Vehicle(BaseModel):
    id: int
    brand: str
    model: str
    licensePlate: str
    vin: Optional[str] = None
    year: int
    color: str
    fuelType: FuelType = FuelType.PETROL
    mileage: int = 0
    status: VehicleStatus = VehicleStatus.AVAILABLE
    rateDaily: float = 0
    rate3days: float = 0
    rate7days: float = 0
    rateMonthly: float = 0
    insuranceExpiry: Optional[date] = None
    inspectionExpiry: Optional[date] = None
    photoUrl: Optional[str] = None
    notes: Optional[str] = None
    createdAt: datetime
    updatedAt: datetime


class VehicleSummary(BaseModel):
    id: int
    brand: Optional[str] = None
    model: Optional[str] = None
    licensePlate: Optional[str] = None
    year: Optional[int] = None
    color: Optional[str] = None


class VehicleInput(BaseModel):
    brand: str = Field(..., min_length=1)
    model: str = Field(..., min_length=1)
    licensePlate: str = Field(..., min_length=1)
    vin: Optional[str] = None
    year: int = Field(..., ge=1900, le=2100)
    color: str = Field(..., min_length=1)
    fuelType: FuelType = FuelType.PETROL
    mileage: int = Field(0, ge=0)
    status: VehicleStatus = VehicleStatus.AVAILABLE
    rateDaily: float = Field(0, ge=0)
    rate3days: float = Field(0, ge=0)
    rate7days: float = Field(0, ge=0)
    rateMonthly: float = Field(0, ge=0)
    insuranceExpiry: Optional[date] = None
    inspectionExpiry: Optional[date] = None
    photoUrl: Optional[str] = None
    notes: Optional[str] = None
