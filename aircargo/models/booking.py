"""
Booking aggregate, its event timeline, and the requests that drive it.

Bookings are frozen: a status change produces a new model version with one
more event instead of mutating the existing one.
"""

from datetime import date, datetime
from typing import Any, Dict, Optional, Tuple
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .enums import BookingStatus, EventType


class FlightInfo(BaseModel):
    """Carrier details supplied with departure/arrival updates."""
    model_config = ConfigDict(frozen=True)

    flight_number: Optional[str] = None
    airline: Optional[str] = None


class BookingEventModel(BaseModel):
    """One immutable entry of a booking's timeline."""
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: str = Field(..., min_length=1)
    type: EventType
    status: BookingStatus
    location: str
    timestamp: datetime
    description: str
    flight_info: Optional[FlightInfo] = None
    meta: Dict[str, Any] = Field(default_factory=dict)


class BookingModel(BaseModel):
    """
    Booking aggregate root.

    ``status`` always equals the status of the last event, and events are
    ordered by non-decreasing timestamp.
    """
    model_config = ConfigDict(from_attributes=True, frozen=True)

    ref_id: str = Field(..., pattern=r"^RG[A-Z0-9]{8}$")
    origin: str = Field(..., pattern=r"^[A-Z]{3}$")
    destination: str = Field(..., pattern=r"^[A-Z]{3}$")
    departure_date: date
    pieces: int = Field(..., ge=1)
    weight_kg: float = Field(..., gt=0)
    status: BookingStatus = BookingStatus.BOOKED
    flight_ids: Tuple[str, ...] = Field(..., min_length=1, max_length=2)
    events: Tuple[BookingEventModel, ...] = Field(..., min_length=1)
    created_at: datetime
    updated_at: datetime

    @model_validator(mode="after")
    def check_timeline(self) -> "BookingModel":
        if self.status != self.events[-1].status:
            raise ValueError("Booking status must match its latest event")
        for earlier, later in zip(self.events, self.events[1:]):
            if later.timestamp < earlier.timestamp:
                raise ValueError("Booking events must be ordered by timestamp")
        return self

    @property
    def latest_event(self) -> BookingEventModel:
        return self.events[-1]


class CreateBookingRequest(BaseModel):
    """Input for booking creation; ``route_id`` comes from route discovery."""

    origin: str = Field(..., pattern=r"^[A-Z]{3}$")
    destination: str = Field(..., pattern=r"^[A-Z]{3}$")
    pieces: int = Field(..., ge=1)
    weight_kg: float = Field(..., gt=0)
    route_id: str = Field(..., min_length=1)
    departure_date: date

    @field_validator("origin", "destination", mode="before")
    @classmethod
    def normalize_code(cls, v):
        return v.strip().upper() if isinstance(v, str) else v


class StatusUpdateRequest(BaseModel):
    """Optional details accompanying depart/arrive/deliver/cancel."""

    location: Optional[str] = None
    flight_info: Optional[FlightInfo] = None
    meta: Dict[str, Any] = Field(default_factory=dict)
    reason: Optional[str] = None


class BookingResult(BaseModel):
    """Outcome of a creation call; replays come from the idempotency ledger."""

    booking: BookingModel
    replayed: bool = False

    @property
    def status_code(self) -> int:
        return 200 if self.replayed else 201

    def to_response(self) -> Dict[str, Any]:
        """Response payload as stored for idempotent replay."""
        return {"success": True, "data": self.booking.model_dump(mode="json")}

    @classmethod
    def from_response(cls, response: Dict[str, Any]) -> "BookingResult":
        return cls(booking=BookingModel.model_validate(response["data"]), replayed=True)


def describe_booking_created(pieces: int, weight_kg: float, origin: str, destination: str) -> str:
    return f"Booking created for {pieces} pieces ({weight_kg}kg) from {origin} to {destination}"


def describe_status_change(
    status: BookingStatus,
    location: Optional[str] = None,
    flight_info: Optional[FlightInfo] = None,
    reason: Optional[str] = None,
) -> str:
    """
    Human-readable description for a status change.

    Departure and arrival mention the carrier when flight details are given;
    cancellation mentions the reason when one is given.
    """
    location = location or "unknown location"

    if status is BookingStatus.DEPARTED:
        if flight_info:
            return (f"Package departed from {location} on flight "
                    f"{flight_info.flight_number} ({flight_info.airline})")
        return f"Package departed from {location}"
    if status is BookingStatus.ARRIVED:
        if flight_info:
            return (f"Package arrived at {location} from flight "
                    f"{flight_info.flight_number} ({flight_info.airline})")
        return f"Package arrived at {location}"
    if status is BookingStatus.DELIVERED:
        return f"Package successfully delivered at {location}"
    if status is BookingStatus.CANCELLED:
        if reason:
            return f"Booking cancelled: {reason}"
        return f"Booking cancelled at {location}"
    return f"Status updated to {status.value} at {location}"
