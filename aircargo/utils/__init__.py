"""Configuration, timing and identifier helpers."""

from .config import AppConfig, load_config, get_config
from .performance import measure
from .identifiers import generate_booking_ref, generate_flight_id, generate_event_id, utcnow

__all__ = [
    "AppConfig",
    "load_config",
    "get_config",
    "measure",
    "generate_booking_ref",
    "generate_flight_id",
    "generate_event_id",
    "utcnow",
]
