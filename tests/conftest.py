"""
Shared fixtures: in-memory key-value store doubles, an in-memory SQLite
database and a fully wired booking engine.
"""

import asyncio
from datetime import date, datetime
from typing import Dict, Optional

import pytest

from aircargo.cache import CacheManager, KeyValueStore
from aircargo.database import DatabaseConfig
from aircargo.models import FlightModel
from aircargo.services import (
    BookingEngine,
    BookingRepository,
    FlightCatalog,
    IdempotencyLedger,
    LockCoordinator,
    RouteFinder,
)
from aircargo.utils.identifiers import generate_flight_id

TRAVEL_DAY = date(2024, 1, 15)


class MockKeyValueStore(KeyValueStore):
    """In-memory store; every call yields to the event loop like real I/O."""

    def __init__(self):
        self.data: Dict[str, str] = {}
        self.ttls: Dict[str, int] = {}

    async def get(self, key: str) -> Optional[str]:
        await asyncio.sleep(0)
        return self.data.get(key)

    async def set_with_ttl(self, key: str, value: str, ttl_seconds: int) -> None:
        await asyncio.sleep(0)
        self.data[key] = value
        self.ttls[key] = ttl_seconds

    async def delete(self, key: str) -> bool:
        await asyncio.sleep(0)
        self.ttls.pop(key, None)
        return self.data.pop(key, None) is not None

    async def set_if_absent_with_ttl(self, key: str, value: str, ttl_seconds: int) -> bool:
        await asyncio.sleep(0)
        if key in self.data:
            return False
        self.data[key] = value
        self.ttls[key] = ttl_seconds
        return True

    async def delete_if_equals(self, key: str, value: str) -> bool:
        await asyncio.sleep(0)
        if self.data.get(key) != value:
            return False
        del self.data[key]
        self.ttls.pop(key, None)
        return True


class UnavailableKeyValueStore(KeyValueStore):
    """Store whose every call fails as if the server were down."""

    async def get(self, key):
        raise ConnectionError("store unavailable")

    async def set_with_ttl(self, key, value, ttl_seconds):
        raise ConnectionError("store unavailable")

    async def delete(self, key):
        raise ConnectionError("store unavailable")

    async def set_if_absent_with_ttl(self, key, value, ttl_seconds):
        raise ConnectionError("store unavailable")

    async def delete_if_equals(self, key, value):
        raise ConnectionError("store unavailable")


def at(hour: int, minute: int = 0, day: date = TRAVEL_DAY) -> datetime:
    return datetime(day.year, day.month, day.day, hour, minute)


def make_flight(
    origin: str,
    destination: str,
    departure: datetime,
    arrival: datetime,
    airline: str = "IndiGo",
    flight_number: str = "IN1234",
    flight_id: Optional[str] = None,
) -> FlightModel:
    return FlightModel(
        flight_id=flight_id or generate_flight_id(),
        flight_number=flight_number,
        airline=airline,
        origin=origin,
        destination=destination,
        departure=departure,
        arrival=arrival,
    )


@pytest.fixture
def store():
    return MockKeyValueStore()


@pytest.fixture
def db():
    db_config = DatabaseConfig(database_url="sqlite://")
    db_config.create_tables()
    yield db_config
    db_config.close()


@pytest.fixture
def cache(store):
    return CacheManager(store)


@pytest.fixture
def catalog(db, cache):
    return FlightCatalog(db, cache=cache)


@pytest.fixture
def route_finder(catalog):
    return RouteFinder(catalog)


@pytest.fixture
def repository(db):
    return BookingRepository(db)


@pytest.fixture
def engine(catalog, repository, store, cache):
    return BookingEngine(
        catalog=catalog,
        repository=repository,
        locks=LockCoordinator(store),
        ledger=IdempotencyLedger(cache),
        cache=cache,
    )


@pytest.fixture
def direct_flight(catalog):
    """DEL->BOM on the travel day, 10:00-12:30."""
    flight = make_flight("DEL", "BOM", at(10), at(12, 30), flight_number="IN2001")
    catalog.add_flights([flight])
    return flight
