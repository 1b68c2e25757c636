"""
Business logic services for the aircargo service.

This module contains the flight catalog, route discovery, the booking
engine and the lock, idempotency and persistence collaborators it composes.
"""

from .flight_catalog import FlightCatalog
from .route_finder import RouteFinder, parse_travel_date
from .lock_manager import LockCoordinator, LockInfo
from .idempotency import IdempotencyLedger
from .booking_repository import BookingRepository, DuplicateBookingError, StaleBookingError
from .booking_engine import BookingEngine
from .seeding import SeedPlan, generate_flights, seed_catalog

__all__ = [
    'FlightCatalog',
    'RouteFinder',
    'parse_travel_date',
    'LockCoordinator',
    'LockInfo',
    'IdempotencyLedger',
    'BookingRepository',
    'DuplicateBookingError',
    'StaleBookingError',
    'BookingEngine',
    'SeedPlan',
    'generate_flights',
    'seed_catalog',
]
