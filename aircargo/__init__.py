"""
aircargo: air-cargo route discovery and booking lifecycle tracking.

Two coupled subsystems make up the core:
1. Route discovery over a flight catalog (direct and one-transit options)
2. Booking lifecycle with distributed locking, idempotent creation,
   cache-aside reads and an append-only event timeline

Valkey backs the cache, locks and idempotency ledger; SQLAlchemy backs
the flight catalog and booking storage.
"""

__version__ = "0.1.0"
