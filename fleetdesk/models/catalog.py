from __future__ import annotations

from typing import List

from pydantic import BaseModel


class CarSpecifications(BaseModel):
    engine: str = ""
    power: str = ""
    acceleration: str = ""
    topSpeed: str = ""


class CarRates(BaseModel):
    daily: float = 0
    threeDays: float = 0
    sevenDays: float = 0
    monthly: float = 0


class WebsiteCar(BaseModel):
    id: str
    brand: str
    model: str
    year: int
    category: str = "economy"
    pricePerDay: float = 0
    image: str
    images: List[str] = []
    features: List[str] = []
    transmission: str = "automatic"
    fuel: str
    seats: int = 5
    luggage: int = 2
    available: bool
    rating: float = 4.5
    reviews: int = 0
    description: str = ""
    color: str
    licensePlate: str
    longTermOnly: bool = False
    byRequest: bool = False
    specifications: CarSpecifications = CarSpecifications()
    rates: CarRates = CarRates()
