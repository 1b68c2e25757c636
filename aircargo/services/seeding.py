"""
Random flight schedule generator for populating the catalog.

Flights connect the domestic airports below, depart between 04:00 and 23:59
and spend one to eight hours in the air. Passing a seed makes a schedule
reproducible.
"""

import logging
import random
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import List, Optional

from ..models.flight import FlightModel
from ..utils.identifiers import generate_flight_id
from .flight_catalog import FlightCatalog

logger = logging.getLogger(__name__)

AIRLINES = [
    "Air India",
    "IndiGo",
    "SpiceJet",
    "Vistara",
    "GoAir",
    "AirAsia India",
    "Alliance Air",
    "TruJet",
]

AIRPORTS = [
    "DEL", "BOM", "BLR", "MAA", "CCU", "HYD", "AMD", "COK", "GOI", "JAI",
    "LKO", "IXR", "IXC", "GAU", "IXB", "TRV", "IXM", "VNS", "IXJ", "IXU",
    "PNQ", "NAG", "RPR", "BHO", "IDR", "JLR", "IXE", "IXW", "IXS", "IXD",
]


@dataclass
class SeedPlan:
    """Shape of a generated schedule."""
    start_date: date
    days: int = 7
    flights_per_day: int = 50
    earliest_departure: time = time(4, 0)
    min_duration_hours: int = 1
    max_duration_hours: int = 8


def flight_number_for(airline: str, rng: random.Random) -> str:
    """Two letters from the airline name plus four digits, e.g. ``IN4821``."""
    return f"{airline[:2].upper()}{rng.randint(1000, 9999)}"


def generate_flights(plan: SeedPlan, seed: Optional[int] = None) -> List[FlightModel]:
    rng = random.Random(seed)
    window_start = plan.earliest_departure.hour * 60 + plan.earliest_departure.minute
    window_minutes = 24 * 60 - window_start

    flights = []
    for offset in range(plan.days):
        day = plan.start_date + timedelta(days=offset)
        midnight = datetime.combine(day, time.min)

        for _ in range(plan.flights_per_day):
            origin, destination = rng.sample(AIRPORTS, 2)
            airline = rng.choice(AIRLINES)
            departure = midnight + timedelta(minutes=window_start + rng.randrange(window_minutes))
            duration = timedelta(minutes=rng.randint(plan.min_duration_hours * 60, plan.max_duration_hours * 60))

            flights.append(FlightModel(
                flight_id=generate_flight_id(),
                flight_number=flight_number_for(airline, rng),
                airline=airline,
                origin=origin,
                destination=destination,
                departure=departure,
                arrival=departure + duration,
            ))

    return flights


def seed_catalog(catalog: FlightCatalog, plan: SeedPlan, seed: Optional[int] = None) -> int:
    """Generate a schedule and insert it; returns the number of flights added."""
    flights = generate_flights(plan, seed)
    added = catalog.add_flights(flights)
    logger.info(f"Seeded {added} flights over {plan.days} days starting {plan.start_date.isoformat()}")
    return added
