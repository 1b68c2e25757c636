"""
Route discovery: direct and single-transit flight combinations.

Routes are derived on every search and never stored. Direct legs come from
the catalog's cached direct search; transit pairs are built from the
destinations served by the origin on the requested day.
"""

import asyncio
import logging
import math
import re
from datetime import date, datetime, timedelta
from typing import List, Optional, Union

from ..errors import InvalidDateError, ValidationError
from ..models.enums import RouteType
from ..models.flight import FlightModel
from ..models.route import RouteOption, build_route_id
from ..utils.config import AppConfig
from ..utils.performance import measure
from .flight_catalog import FlightCatalog, day_window

logger = logging.getLogger(__name__)

BASE_LEG_COST = 100
COST_PER_MINUTE = 2
PREMIUM_MULTIPLIER = 1.2
SECOND_LEG_WINDOW = timedelta(hours=24)

IATA_CODE = re.compile(r"^[A-Z]{3}$")


def parse_travel_date(value: Union[date, datetime, str]) -> date:
    """
    Accept a date, a datetime, an ISO ``YYYY-MM-DD`` string or a full ISO
    datetime string (its date part is used).

    Raises:
        InvalidDateError: Value does not denote a calendar day
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return date.fromisoformat(text)
        except ValueError:
            pass
        try:
            return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
        except ValueError:
            pass
    raise InvalidDateError(f"Invalid date format: {value}")


def normalize_airport(code: str, field_name: str) -> str:
    normalized = code.strip().upper() if isinstance(code, str) else ""
    if not IATA_CODE.match(normalized):
        raise ValidationError(f"{field_name} must be a 3-letter IATA code: {code!r}")
    return normalized


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class RouteFinder:
    """
    Enumerates and ranks route options for an origin, destination and day.

    Cost model per leg: ``(100 + 2 * minutes) * multiplier`` rounded half up,
    where carriers matching the premium marker pay 1.2x. Transit routes add a
    fixed surcharge and must leave at least the minimum connection time.
    """

    def __init__(self, catalog: FlightCatalog, config: Optional[AppConfig] = None):
        config = config or AppConfig()
        self.catalog = catalog
        self.premium_marker = config.premium_carrier_marker
        self.min_connection = timedelta(minutes=config.min_connection_minutes)
        self.max_transit_routes = config.max_transit_routes
        self.transit_surcharge = config.transit_surcharge

    def leg_cost(self, flight: FlightModel) -> int:
        multiplier = PREMIUM_MULTIPLIER if self.premium_marker in flight.airline else 1.0
        return round_half_up((BASE_LEG_COST + COST_PER_MINUTE * flight.duration_minutes) * multiplier)

    async def find_routes(
        self, origin: str, destination: str, travel_date: Union[date, datetime, str]
    ) -> List[RouteOption]:
        """
        Find direct and one-transit routes, cheapest first.

        Args:
            origin: Departure IATA code (any case)
            destination: Arrival IATA code (any case)
            travel_date: Day of first departure

        Returns:
            All direct options plus at most ``max_transit_routes`` transit
            options, stable-sorted ascending by total cost

        Raises:
            InvalidDateError: travel_date does not parse
            ValidationError: origin or destination is not an IATA code
        """
        day = parse_travel_date(travel_date)
        origin = normalize_airport(origin, "origin")
        destination = normalize_airport(destination, "destination")

        return await measure(
            f"find_routes {origin}-{destination} {day.isoformat()}",
            lambda: self._find_routes(origin, destination, day),
        )

    async def _find_routes(self, origin: str, destination: str, day: date) -> List[RouteOption]:
        direct = [self._direct_option(flight)
                  for flight in await self.catalog.search_flights(origin, destination, day)]

        transit = await self._find_transit_routes(origin, destination, day)
        transit.sort(key=lambda route: route.total_cost)
        transit = transit[:self.max_transit_routes]

        routes = sorted(direct + transit, key=lambda route: route.total_cost)
        logger.info(f"Found {len(routes)} total routes ({len(direct)} direct, {len(transit)} transit)")
        return routes

    async def _find_transit_routes(self, origin: str, destination: str, day: date) -> List[RouteOption]:
        intermediates = await asyncio.to_thread(self.catalog.distinct_destinations, origin, day)
        intermediates.discard(destination)
        intermediates.discard(origin)
        logger.debug(f"Found {len(intermediates)} intermediate airports for {origin}")

        start, end = day_window(day)
        routes: List[RouteOption] = []

        for intermediate in sorted(intermediates):
            first_legs = await asyncio.to_thread(
                self.catalog.find_departing_between, origin, intermediate, start, end, False
            )
            for first in first_legs:
                second_legs = await asyncio.to_thread(
                    self.catalog.find_departing_between,
                    intermediate, destination, first.arrival, first.arrival + SECOND_LEG_WINDOW,
                )
                for second in second_legs:
                    if second.departure - first.arrival < self.min_connection:
                        continue
                    routes.append(self._transit_option(first, second))

        return routes

    def _direct_option(self, flight: FlightModel) -> RouteOption:
        return RouteOption(
            id=build_route_id([flight.flight_id]),
            type=RouteType.DIRECT,
            flights=(flight,),
            total_duration=flight.duration_minutes,
            total_cost=self.leg_cost(flight),
        )

    def _transit_option(self, first: FlightModel, second: FlightModel) -> RouteOption:
        total_minutes = int((second.arrival - first.departure).total_seconds() // 60)
        return RouteOption(
            id=build_route_id([first.flight_id, second.flight_id]),
            type=RouteType.ONE_TRANSIT,
            flights=(first, second),
            total_duration=total_minutes,
            total_cost=self.leg_cost(first) + self.leg_cost(second) + self.transit_surcharge,
        )
