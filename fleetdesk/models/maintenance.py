from __future__ import annotations

import datetime as dt
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from .vehicle import VehicleSummary


class MaintenanceType(str, Enum):
    SCHEDULED = "scheduled"
    REPAIR = "repair"
    TIRE = "tire"
    WASH = "wash"
    OTHER = "other"


class MaintenanceRecord(BaseModel):
    id: int
    vehicleId: int
    type: MaintenanceType
    date: dt.date
    mileage: int
    cost: float
    location: str
    description: str
    nextMaintenanceMileage: Optional[int] = None
    nextMaintenanceDate: Optional[dt.date] = None
    createdAt: dt.datetime
    vehicle: Optional[VehicleSummary] = None


class MaintenanceCreate(BaseModel):
    vehicleId: int
    type: MaintenanceType
    date: dt.date
    mileage: int = Field(..., ge=0)
    cost: float = Field(..., ge=0)
    location: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    nextMaintenanceMileage: Optional[int] = None
    nextMaintenanceDate: Optional[dt.date] = None
