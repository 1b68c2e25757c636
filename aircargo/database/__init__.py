"""
Database layer for the aircargo service.

This module contains SQLAlchemy table definitions and engine/session
configuration.
"""

from .config import DatabaseConfig
from .models import Base, Flight, Booking, BookingEvent, create_all_tables

__all__ = [
    'DatabaseConfig',
    'Base',
    'Flight',
    'Booking',
    'BookingEvent',
    'create_all_tables',
]
