"""
Pydantic v2 models for the aircargo service.
"""

from .enums import (
    BookingStatus,
    RouteType,
    EventType,
    ALLOWED_TRANSITIONS,
    can_transition,
)

from .flight import FlightModel

from .route import (
    RouteOption,
    build_route_id,
    parse_route_id,
)

from .booking import (
    FlightInfo,
    BookingEventModel,
    BookingModel,
    CreateBookingRequest,
    StatusUpdateRequest,
    BookingResult,
    describe_booking_created,
    describe_status_change,
)

__all__ = [
    # Enums
    "BookingStatus",
    "RouteType",
    "EventType",
    "ALLOWED_TRANSITIONS",
    "can_transition",

    # Flights and routes
    "FlightModel",
    "RouteOption",
    "build_route_id",
    "parse_route_id",

    # Bookings
    "FlightInfo",
    "BookingEventModel",
    "BookingModel",
    "CreateBookingRequest",
    "StatusUpdateRequest",
    "BookingResult",
    "describe_booking_created",
    "describe_status_change",
]
