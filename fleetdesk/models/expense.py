from __future__ import annotations

import datetime as dt
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from .vehicle import VehicleSummary


class ExpenseCategory(str, Enum):
    MAINTENANCE = "maintenance"
    INSURANCE = "insurance"
    FUEL = "fuel"
    FINE = "fine"
    OTHER = "other"


class Expense(BaseModel):
    id: int
    vehicleId: Optional[int] = None
    category: ExpenseCategory
    amount: float
    date: dt.date
    description: str
    createdAt: dt.datetime
    vehicle: Optional[VehicleSummary] = None


class ExpenseCreate(BaseModel):
    vehicleId: Optional[int] = None
    category: ExpenseCategory
    amount: float = Field(..., ge=0)
    date: dt.date
    description: str = Field(..., min_length=1)
