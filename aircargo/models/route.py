"""
Route option model produced by route discovery.
"""

from typing import List, Tuple
from pydantic import BaseModel, ConfigDict, Field

from ..errors import InvalidRouteFormatError
from .enums import RouteType
from .flight import FlightModel

DIRECT_PREFIX = "direct-"
TRANSIT_PREFIX = "transit-"


class RouteOption(BaseModel):
    """
    A candidate combination of one or two flight legs with derived cost and
    duration. Derived on every search, never persisted.
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="direct-{id} or transit-{id1}-{id2}")
    type: RouteType
    flights: Tuple[FlightModel, ...] = Field(..., min_length=1, max_length=2)
    total_duration: int = Field(..., ge=0, description="Minutes from first departure to last arrival")
    total_cost: int = Field(..., ge=0, description="Illustrative cost in currency units")

    @property
    def flight_ids(self) -> Tuple[str, ...]:
        return tuple(flight.flight_id for flight in self.flights)


def build_route_id(flight_ids) -> str:
    """Encode an ordered list of flight ids as a route id."""
    flight_ids = list(flight_ids)
    if len(flight_ids) == 1:
        return f"{DIRECT_PREFIX}{flight_ids[0]}"
    return TRANSIT_PREFIX + "-".join(flight_ids)


def parse_route_id(route_id: str) -> List[str]:
    """
    Recover the ordered flight ids from a route id.

    Raises:
        InvalidRouteFormatError: Unknown prefix or wrong number of ids
    """
    if route_id.startswith(DIRECT_PREFIX):
        flight_ids = [route_id[len(DIRECT_PREFIX):]]
    elif route_id.startswith(TRANSIT_PREFIX):
        flight_ids = route_id[len(TRANSIT_PREFIX):].split("-")
        if len(flight_ids) != 2:
            raise InvalidRouteFormatError(f"Transit route must name exactly two flights: {route_id}")
    else:
        raise InvalidRouteFormatError(f"Invalid route ID format: {route_id}")

    if not all(flight_ids):
        raise InvalidRouteFormatError(f"Invalid route ID format: {route_id}")
    return flight_ids
