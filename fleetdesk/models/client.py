from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class ClientStatus(str, Enum):
    ACTIVE = "active"
    BLACKLISTED = "blacklisted"


class Client(BaseModel):
    id: int
    fullName: str
    phone: str
    phoneAlt: Optional[str] = None
    email: Optional[str] = None
    passport: str
    licenseNumber: str
    licenseExpiry: date
    birthDate: date
    address: str
    status: ClientStatus = ClientStatus.ACTIVE
    notes: Optional[str] = None
    createdAt: datetime


class ClientSummary(BaseModel):
    id: int
    fullName: Optional[str] = None
    phone: Optional[str] = None


class ClientInput(BaseModel):
    fullName: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)
    phoneAlt: Optional[str] = None
    email: Optional[str] = None
    passport: str = Field(..., min_length=1)
    licenseNumber: str = Field(..., min_length=1)
    licenseExpiry: date
    birthDate: date
    address: str = Field(..., min_length=1)
    status: ClientStatus = ClientStatus.ACTIVE
    notes: Optional[str] = None
