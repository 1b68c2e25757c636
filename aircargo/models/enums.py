"""
Enums for the aircargo service.

This module contains the closed enumeration types used for booking status
and route classification.
"""

from enum import Enum


class BookingStatus(str, Enum):
    """Shipment lifecycle status."""
    BOOKED = "BOOKED"
    DEPARTED = "DEPARTED"
    ARRIVED = "ARRIVED"
    DELIVERED = "DELIVERED"      # terminal
    CANCELLED = "CANCELLED"      # terminal


class RouteType(str, Enum):
    """Shape of a route option."""
    DIRECT = "direct"
    ONE_TRANSIT = "one_transit"


class EventType(str, Enum):
    BOOKING_CREATED = "BOOKING_CREATED"
    STATUS_DEPARTED = "STATUS_DEPARTED"
    STATUS_ARRIVED = "STATUS_ARRIVED"
    STATUS_DELIVERED = "STATUS_DELIVERED"
    STATUS_CANCELLED = "STATUS_CANCELLED"

    @classmethod
    def for_status(cls, status: BookingStatus) -> "EventType":
        """Event type recorded when a booking moves into ``status``."""
        return cls(f"STATUS_{status.value}")


# Allowed status changes; cancellation closes once a shipment has arrived
ALLOWED_TRANSITIONS = {
    BookingStatus.BOOKED: frozenset({BookingStatus.DEPARTED, BookingStatus.CANCELLED}),
    BookingStatus.DEPARTED: frozenset({BookingStatus.ARRIVED, BookingStatus.CANCELLED}),
    BookingStatus.ARRIVED: frozenset({BookingStatus.DELIVERED}),
    BookingStatus.DELIVERED: frozenset(),
    BookingStatus.CANCELLED: frozenset(),
}


def can_transition(current: BookingStatus, requested: BookingStatus) -> bool:
    return requested in ALLOWED_TRANSITIONS[current]
