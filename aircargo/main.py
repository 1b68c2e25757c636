"""
Command line entry point for the aircargo service.

Owns process bootstrap: configuration, logging, the database engine and the
Valkey connection are created here and handed to the services.

Usage:
    aircargo init-db
    aircargo seed --date 2024-01-15 --days 3
    aircargo routes DEL BOM 2024-01-15
    aircargo book DEL BOM direct-a1b2c3d4e5 2024-01-15 --pieces 2 --weight 40
    aircargo update RG7K2M9QXA depart --location DEL
    aircargo track RG7K2M9QXA
"""

import asyncio
import json
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import AsyncIterator, List, Optional

import typer
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .cache import CacheManager, ValkeyClient, ValkeyConfig, ValkeyConnectionError
from .database import DatabaseConfig
from .errors import AppError
from .models import BookingModel, CreateBookingRequest, FlightInfo, RouteOption, StatusUpdateRequest
from .services import (
    BookingEngine,
    BookingRepository,
    FlightCatalog,
    IdempotencyLedger,
    LockCoordinator,
    RouteFinder,
    SeedPlan,
    seed_catalog,
)
from .utils.config import AppConfig, get_config

app = typer.Typer(
    help="Air cargo route discovery and booking lifecycle",
    add_completion=False
)
console = Console()

logger = logging.getLogger(__name__)


class StatusAction(str, Enum):
    depart = "depart"
    arrive = "arrive"
    deliver = "deliver"
    cancel = "cancel"


@dataclass
class Services:
    """Wired service graph for one CLI invocation."""
    config: AppConfig
    db: DatabaseConfig
    store: ValkeyClient
    catalog: FlightCatalog
    routes: RouteFinder
    engine: BookingEngine


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def build_services(config: AppConfig, db: DatabaseConfig, store: ValkeyClient) -> Services:
    """Wire services over an initialized database and a store, connected or not."""
    cache = CacheManager(store, default_ttl=config.booking_cache_ttl)
    catalog = FlightCatalog(db, cache=cache, route_cache_ttl=config.route_cache_ttl)
    engine = BookingEngine(
        catalog=catalog,
        repository=BookingRepository(db),
        locks=LockCoordinator(store, ttl_seconds=config.lock_ttl),
        ledger=IdempotencyLedger(cache, ttl_seconds=config.idempotency_ttl),
        cache=cache,
        booking_cache_ttl=config.booking_cache_ttl,
        min_connection_minutes=config.min_connection_minutes,
    )
    return Services(
        config=config,
        db=db,
        store=store,
        catalog=catalog,
        routes=RouteFinder(catalog, config),
        engine=engine,
    )


@asynccontextmanager
async def service_context() -> AsyncIterator[Services]:
    """
    Wire services for one command.

    Valkey being down is not fatal: caching and idempotency degrade to
    no-ops and only status updates, which need the lock, fail.
    """
    config = get_config()
    db = DatabaseConfig.from_app_config(config)
    db.create_tables()
    store = ValkeyClient(ValkeyConfig.from_app_config(config))
    try:
        await store.connect()
    except ValkeyConnectionError as e:
        logger.warning(f"Continuing without Valkey: {e}")
    try:
        yield build_services(config, db, store)
    finally:
        await store.disconnect()
        db.close()


def run_command(coro) -> None:
    """Run a command coroutine, rendering domain errors as problem documents."""
    configure_logging(get_config().log_level)
    try:
        asyncio.run(coro)
    except AppError as e:
        console.print_json(json.dumps(e.to_problem()))
        raise typer.Exit(code=1)


def render_routes(routes: List[RouteOption], title: str) -> Table:
    table = Table(title=title, box=box.ROUNDED, show_lines=True)
    table.add_column("Route ID", style="cyan bold")
    table.add_column("Type")
    table.add_column("Flights")
    table.add_column("Duration", justify="right")
    table.add_column("Cost", style="green", justify="right")

    for route in routes:
        legs = "\n".join(
            f"{f.flight_number} {f.airline} {f.origin}->{f.destination} "
            f"{f.departure:%H:%M}-{f.arrival:%H:%M}"
            for f in route.flights
        )
        hours, minutes = divmod(route.total_duration, 60)
        table.add_row(route.id, route.type.value, legs, f"{hours}h {minutes:02d}m", str(route.total_cost))
    return table


def render_booking(booking: BookingModel) -> None:
    console.print(Panel.fit(
        f"[bold cyan]{booking.ref_id}[/bold cyan]  {booking.origin} -> {booking.destination}\n"
        f"Status: [bold]{booking.status.value}[/bold]\n"
        f"Departure date: {booking.departure_date.isoformat()}\n"
        f"Cargo: {booking.pieces} pieces, {booking.weight_kg}kg\n"
        f"Flights: {', '.join(booking.flight_ids)}",
        border_style="cyan",
    ))

    table = Table(title="Timeline", box=box.ROUNDED)
    table.add_column("Time (UTC)", style="dim")
    table.add_column("Event", style="cyan")
    table.add_column("Location")
    table.add_column("Description")
    for event in booking.events:
        table.add_row(
            event.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
            event.type.value,
            event.location,
            event.description,
        )
    console.print(table)


@app.command("init-db")
def init_db():
    """Create database tables."""
    configure_logging(get_config().log_level)
    db = DatabaseConfig.from_app_config(get_config())
    db.create_tables()
    db.close()
    console.print("[green]✓[/green] Database tables ready")


@app.command()
def seed(
    start: Optional[str] = typer.Option(None, "--date", "-d", help="First day (YYYY-MM-DD), defaults to today"),
    days: int = typer.Option(7, "--days", help="Number of days to generate"),
    per_day: int = typer.Option(50, "--per-day", help="Flights per day"),
    random_seed: Optional[int] = typer.Option(None, "--seed", help="Seed for a reproducible schedule"),
):
    """Populate the flight catalog with a random schedule."""
    configure_logging(get_config().log_level)
    try:
        start_date = date.fromisoformat(start) if start else date.today()
    except ValueError:
        console.print(f"[red]❌ Invalid date: {start}[/red]")
        raise typer.Exit(code=1)

    db = DatabaseConfig.from_app_config(get_config())
    db.create_tables()
    try:
        catalog = FlightCatalog(db)
        added = seed_catalog(catalog, SeedPlan(start_date=start_date, days=days, flights_per_day=per_day),
                             seed=random_seed)
        console.print(f"[green]✓[/green] Added {added} flights ({catalog.count()} in catalog)")
    except AppError as e:
        console.print_json(json.dumps(e.to_problem()))
        raise typer.Exit(code=1)
    finally:
        db.close()


@app.command()
def routes(
    origin: str = typer.Argument(..., help="Origin IATA code"),
    destination: str = typer.Argument(..., help="Destination IATA code"),
    travel_date: str = typer.Argument(..., help="Travel date (YYYY-MM-DD)"),
):
    """List direct and one-transit routes, cheapest first."""
    async def _routes():
        async with service_context() as services:
            found = await services.routes.find_routes(origin, destination, travel_date)
        if not found:
            console.print("[yellow]No routes found[/yellow]")
            return
        console.print(render_routes(found, f"Routes {origin.upper()} -> {destination.upper()} on {travel_date}"))

    run_command(_routes())


@app.command()
def book(
    origin: str = typer.Argument(..., help="Origin IATA code"),
    destination: str = typer.Argument(..., help="Destination IATA code"),
    route_id: str = typer.Argument(..., help="Route id from the routes command"),
    departure_date: str = typer.Argument(..., help="Departure date (YYYY-MM-DD)"),
    pieces: int = typer.Option(..., "--pieces", "-p", help="Number of pieces"),
    weight: float = typer.Option(..., "--weight", "-w", help="Total weight in kg"),
    idempotency_key: Optional[str] = typer.Option(None, "--idempotency-key", "-k", help="Key making retries safe"),
):
    """Book cargo on a route."""
    async def _book():
        try:
            request = CreateBookingRequest(
                origin=origin,
                destination=destination,
                pieces=pieces,
                weight_kg=weight,
                route_id=route_id,
                departure_date=departure_date,
            )
        except ValueError as e:
            console.print(f"[red]❌ Invalid booking request: {e}[/red]")
            raise typer.Exit(code=1)

        async with service_context() as services:
            result = await services.engine.create_booking(request, idempotency_key=idempotency_key)

        label = "Replayed existing booking" if result.replayed else "Booking created"
        console.print(f"[green]✓[/green] {label} (status {result.status_code})")
        render_booking(result.booking)

    run_command(_book())


@app.command()
def track(ref_id: str = typer.Argument(..., help="Booking reference")):
    """Show a booking and its event timeline."""
    async def _track():
        async with service_context() as services:
            booking = await services.engine.get_booking(ref_id.upper())
        render_booking(booking)

    run_command(_track())


@app.command()
def update(
    ref_id: str = typer.Argument(..., help="Booking reference"),
    action: StatusAction = typer.Argument(..., help="Status change to apply"),
    location: Optional[str] = typer.Option(None, "--location", "-l", help="Where the change happened"),
    flight_number: Optional[str] = typer.Option(None, "--flight-number", help="Carrying flight number"),
    airline: Optional[str] = typer.Option(None, "--airline", help="Carrying airline"),
    reason: Optional[str] = typer.Option(None, "--reason", help="Cancellation reason"),
):
    """Depart, arrive, deliver or cancel a booking."""
    flight_info = FlightInfo(flight_number=flight_number, airline=airline) if flight_number or airline else None
    payload = StatusUpdateRequest(location=location, flight_info=flight_info, reason=reason)

    async def _update():
        async with service_context() as services:
            transition = getattr(services.engine, action.value)
            booking = await transition(ref_id.upper(), payload)
        console.print(f"[green]✓[/green] {booking.ref_id} is now {booking.status.value}")
        render_booking(booking)

    run_command(_update())


@app.command()
def bookings(limit: int = typer.Option(50, "--limit", "-n", help="Number of bookings to show")):
    """List the most recent bookings."""
    async def _bookings():
        async with service_context() as services:
            recent = await services.engine.list_bookings(limit)

        table = Table(title="Recent Bookings", box=box.ROUNDED)
        table.add_column("Ref", style="cyan bold")
        table.add_column("Route")
        table.add_column("Date")
        table.add_column("Cargo", justify="right")
        table.add_column("Status", style="bold")
        for booking in recent:
            table.add_row(
                booking.ref_id,
                f"{booking.origin} -> {booking.destination}",
                booking.departure_date.isoformat(),
                f"{booking.pieces} pcs / {booking.weight_kg}kg",
                booking.status.value,
            )
        console.print(table)

    run_command(_bookings())


@app.command()
def health():
    """Check database and Valkey connectivity."""
    async def _health():
        async with service_context() as services:
            healthy = await services.store.health_check(force=True)
            info = await services.store.get_connection_info()
            db_info = services.db.get_connection_info()

        table = Table(title="Health", box=box.ROUNDED, show_header=False)
        table.add_column("Component", style="cyan bold")
        table.add_column("Details")
        table.add_row("Valkey", ("[green]healthy[/green]" if healthy else "[red]unhealthy[/red]") + f"  {info['config']}")
        table.add_row("Database", f"{db_info['database_type']}  {db_info['database_url']}")
        console.print(table)
        if not healthy:
            raise typer.Exit(code=1)

    run_command(_health())


def main() -> None:
    app()


if __name__ == "__main__":
    main()
