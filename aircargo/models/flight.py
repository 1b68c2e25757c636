"""
Flight-related Pydantic models for the aircargo service.
"""

from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class FlightModel(BaseModel):
    """
    Immutable scheduled flight.

    Created by catalog seeding and referenced by id from route options and
    bookings; never mutated afterwards.
    """
    model_config = ConfigDict(from_attributes=True, frozen=True)

    flight_id: str = Field(..., min_length=1, pattern=r"^[^-]+$", description="Opaque unique flight id")
    flight_number: str = Field(..., max_length=10, description="Flight number")
    airline: str = Field(..., max_length=50, description="Operating airline name")
    origin: str = Field(..., pattern=r"^[A-Z]{3}$", description="Departure IATA code")
    destination: str = Field(..., pattern=r"^[A-Z]{3}$", description="Arrival IATA code")
    departure: datetime = Field(..., description="Scheduled departure time")
    arrival: datetime = Field(..., description="Scheduled arrival time")

    @field_validator("origin", "destination", mode="before")
    @classmethod
    def normalize_code(cls, v):
        return v.strip().upper() if isinstance(v, str) else v

    @model_validator(mode="after")
    def check_schedule(self) -> "FlightModel":
        if self.arrival <= self.departure:
            raise ValueError("Flight arrival must be after departure")
        return self

    @property
    def duration_minutes(self) -> int:
        """Block time in whole minutes."""
        return int((self.arrival - self.departure).total_seconds() // 60)
