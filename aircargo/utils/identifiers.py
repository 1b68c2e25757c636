"""Identifier and clock helpers."""

import secrets
import string
import uuid
from datetime import datetime, timezone

BOOKING_REF_PREFIX = "RG"
BOOKING_REF_ALPHABET = string.ascii_uppercase + string.digits
BOOKING_REF_LENGTH = 8


def generate_booking_ref() -> str:
    """Booking reference: ``RG`` followed by 8 uppercase alphanumerics."""
    suffix = "".join(secrets.choice(BOOKING_REF_ALPHABET) for _ in range(BOOKING_REF_LENGTH))
    return f"{BOOKING_REF_PREFIX}{suffix}"


def generate_flight_id() -> str:
    # hex only: flight ids are joined with '-' inside route ids
    return secrets.token_hex(5)


def generate_event_id() -> str:
    return uuid.uuid4().hex


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, matching what the database stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
