"""
Flight catalog backed by the relational store, with a cache-aside direct
flight search.

Lookups are plain synchronous SQLAlchemy queries; async callers push them
off the event loop with ``asyncio.to_thread``.
"""

import asyncio
import logging
from datetime import date, datetime, time, timedelta
from typing import Iterable, List, Optional, Set, Tuple

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import and_
from sqlalchemy.exc import SQLAlchemyError

from ..cache.manager import CacheManager
from ..cache.utils import TTLPreset, key_manager
from ..database.config import DatabaseConfig
from ..database.models import Flight
from ..errors import InternalError, NotFoundError, ValidationError
from ..models.flight import FlightModel
from ..utils.identifiers import generate_flight_id

logger = logging.getLogger(__name__)


def day_window(day: date) -> Tuple[datetime, datetime]:
    """Half-open ``[00:00, next day 00:00)`` window covering one calendar day."""
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


class FlightCatalog:
    """
    Read access to scheduled flights plus the seeding write path.

    Features:
    - Id, route/day and time-window lookups returning FlightModel values
    - Distinct destinations served from an origin on a day
    - Direct flight search cached under ``routes:{origin}:{destination}:{date}``
    """

    def __init__(
        self,
        db_config: DatabaseConfig,
        cache: Optional[CacheManager] = None,
        route_cache_ttl: int = TTLPreset.ROUTE_SEARCH,
    ):
        """
        Initialize flight catalog.

        Args:
            db_config: Database configuration providing sessions
            cache: Optional cache for direct flight searches
            route_cache_ttl: TTL for cached direct flight searches
        """
        self.db = db_config
        self.cache = cache
        self.route_cache_ttl = int(route_cache_ttl)

    def find_by_id(self, flight_id: str) -> Optional[FlightModel]:
        try:
            with self.db.get_session_context() as session:
                row = session.get(Flight, flight_id)
                return FlightModel.model_validate(row) if row else None
        except SQLAlchemyError as e:
            raise InternalError(f"Failed to load flight {flight_id}") from e

    def find_by_ids(self, flight_ids: Iterable[str]) -> List[FlightModel]:
        """
        Resolve flight ids, preserving the requested order.

        Unknown ids are omitted, so callers compare lengths to detect them.
        """
        flight_ids = list(flight_ids)
        if not flight_ids:
            return []

        try:
            with self.db.get_session_context() as session:
                rows = session.query(Flight).filter(Flight.flight_id.in_(flight_ids)).all()
                by_id = {row.flight_id: FlightModel.model_validate(row) for row in rows}
        except SQLAlchemyError as e:
            raise InternalError("Failed to load flights") from e

        return [by_id[flight_id] for flight_id in flight_ids if flight_id in by_id]

    def find_departing_between(
        self, origin: str, destination: str, start: datetime, end: datetime, inclusive_end: bool = True
    ) -> List[FlightModel]:
        """Flights origin->destination departing in ``[start, end]``, ordered by departure."""
        upper_bound = Flight.departure <= end if inclusive_end else Flight.departure < end
        try:
            with self.db.get_session_context() as session:
                rows = (
                    session.query(Flight)
                    .filter(and_(
                        Flight.origin == origin.upper(),
                        Flight.destination == destination.upper(),
                        Flight.departure >= start,
                        upper_bound,
                    ))
                    .order_by(Flight.departure, Flight.flight_id)
                    .all()
                )
                return [FlightModel.model_validate(row) for row in rows]
        except SQLAlchemyError as e:
            raise InternalError(f"Failed to search flights {origin}-{destination}") from e

    def find_by_route_and_day(self, origin: str, destination: str, day: date) -> List[FlightModel]:
        start, end = day_window(day)
        return self.find_departing_between(origin, destination, start, end, inclusive_end=False)

    def distinct_destinations(self, origin: str, day: date) -> Set[str]:
        """Airports served by flights leaving ``origin`` on ``day``."""
        start, end = day_window(day)
        try:
            with self.db.get_session_context() as session:
                rows = (
                    session.query(Flight.destination)
                    .filter(and_(
                        Flight.origin == origin.upper(),
                        Flight.departure >= start,
                        Flight.departure < end,
                    ))
                    .distinct()
                    .all()
                )
                return {row[0] for row in rows}
        except SQLAlchemyError as e:
            raise InternalError(f"Failed to list destinations from {origin}") from e

    def get_flight(self, flight_id: str) -> FlightModel:
        """
        Raises:
            NotFoundError: Unknown flight id
        """
        flight = self.find_by_id(flight_id)
        if flight is None:
            raise NotFoundError("Flight", flight_id)
        return flight

    async def search_flights(self, origin: str, destination: str, day: date) -> List[FlightModel]:
        """
        Direct flights for a route and day, using cache-aside.

        Args:
            origin: Departure IATA code
            destination: Arrival IATA code
            day: Calendar day of departure

        Returns:
            Flights ordered by departure
        """
        origin, destination = origin.upper(), destination.upper()
        cache_key = key_manager.route_search_key(origin, destination, day.isoformat())

        if self.cache is not None:
            cached = await self.cache.get(cache_key)
            if cached is not None:
                logger.debug(f"Cache hit for route search: {cache_key}")
                return [FlightModel.model_validate(item) for item in cached]

        flights = await asyncio.to_thread(self.find_by_route_and_day, origin, destination, day)
        logger.info(f"Found {len(flights)} flights for route {origin}-{destination} on {day.isoformat()}")

        if self.cache is not None and flights:
            await self.cache.set(
                cache_key,
                [flight.model_dump(mode="json") for flight in flights],
                ttl=self.route_cache_ttl,
            )

        return flights

    def create_flight(
        self,
        flight_number: str,
        airline: str,
        origin: str,
        destination: str,
        departure: datetime,
        arrival: datetime,
        flight_id: Optional[str] = None,
    ) -> FlightModel:
        """
        Validate and insert a single flight.

        Raises:
            ValidationError: Invalid codes or schedule
        """
        try:
            flight = FlightModel(
                flight_id=flight_id or generate_flight_id(),
                flight_number=flight_number,
                airline=airline,
                origin=origin,
                destination=destination,
                departure=departure,
                arrival=arrival,
            )
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid flight: {e.errors()[0]['msg']}") from e

        self.add_flights([flight])
        return flight

    def add_flights(self, flights: Iterable[FlightModel]) -> int:
        """Bulk insert already validated flights; returns the number inserted."""
        rows = [Flight(**flight.model_dump()) for flight in flights]
        try:
            with self.db.get_session_context() as session:
                session.add_all(rows)
        except SQLAlchemyError as e:
            raise InternalError("Failed to add flights") from e

        logger.info(f"Added {len(rows)} flights to catalog")
        return len(rows)

    def count(self) -> int:
        try:
            with self.db.get_session_context() as session:
                return session.query(Flight).count()
        except SQLAlchemyError as e:
            raise InternalError("Failed to count flights") from e
