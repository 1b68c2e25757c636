"""
Tests for the booking lifecycle: creation, cache-aside reads, the status
state machine, idempotent replay and per-booking mutual exclusion.
"""

import asyncio
import re
from unittest.mock import patch

import pytest

from aircargo.cache import CacheManager
from aircargo.errors import (
    ConflictError,
    InternalError,
    InvalidRouteFormatError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from aircargo.models import (
    BookingStatus,
    CreateBookingRequest,
    EventType,
    FlightInfo,
    StatusUpdateRequest,
)
from aircargo.services import BookingEngine, IdempotencyLedger, LockCoordinator

from conftest import TRAVEL_DAY, UnavailableKeyValueStore, at, make_flight

ALL_STATUSES = list(BookingStatus)

ALLOWED = {
    (BookingStatus.BOOKED, BookingStatus.DEPARTED),
    (BookingStatus.BOOKED, BookingStatus.CANCELLED),
    (BookingStatus.DEPARTED, BookingStatus.ARRIVED),
    (BookingStatus.DEPARTED, BookingStatus.CANCELLED),
    (BookingStatus.ARRIVED, BookingStatus.DELIVERED),
}

# Shortest accepted path from BOOKED to each status
PATH_TO = {
    BookingStatus.BOOKED: [],
    BookingStatus.DEPARTED: [BookingStatus.DEPARTED],
    BookingStatus.ARRIVED: [BookingStatus.DEPARTED, BookingStatus.ARRIVED],
    BookingStatus.DELIVERED: [BookingStatus.DEPARTED, BookingStatus.ARRIVED, BookingStatus.DELIVERED],
    BookingStatus.CANCELLED: [BookingStatus.CANCELLED],
}


def direct_request(flight, **overrides):
    data = dict(
        origin="DEL",
        destination="BOM",
        pieces=3,
        weight_kg=125.5,
        route_id=f"direct-{flight.flight_id}",
        departure_date=TRAVEL_DAY,
    )
    data.update(overrides)
    return CreateBookingRequest(**data)


async def book(engine, flight, **overrides):
    result = await engine.create_booking(direct_request(flight, **overrides))
    return result.booking


class TestCreateBooking:

    @pytest.mark.asyncio
    async def test_direct_booking(self, engine, direct_flight):
        result = await engine.create_booking(direct_request(direct_flight))
        booking = result.booking

        assert result.status_code == 201
        assert not result.replayed
        assert re.match(r"^RG[A-Z0-9]{8}$", booking.ref_id)
        assert booking.status == BookingStatus.BOOKED
        assert len(booking.events) == 1
        assert booking.flight_ids == (direct_flight.flight_id,)

        event = booking.events[0]
        assert event.type == EventType.BOOKING_CREATED
        assert event.location == "DEL"
        assert event.description == "Booking created for 3 pieces (125.5kg) from DEL to BOM"
        assert event.meta == {"pieces": 3, "weight_kg": 125.5, "route_type": "direct"}

    @pytest.mark.asyncio
    async def test_booking_is_persisted_and_cached(self, engine, repository, store, direct_flight):
        booking = await book(engine, direct_flight)

        assert repository.find_by_ref(booking.ref_id) == booking
        assert f"booking:{booking.ref_id}" in store.data

    @pytest.mark.asyncio
    async def test_transit_booking(self, engine, catalog):
        first = make_flight("DEL", "HYD", at(8), at(10))
        second = make_flight("HYD", "BOM", at(11, 30), at(13))
        catalog.add_flights([first, second])

        result = await engine.create_booking(
            direct_request(first, route_id=f"transit-{first.flight_id}-{second.flight_id}")
        )

        assert result.booking.flight_ids == (first.flight_id, second.flight_id)
        assert result.booking.events[0].meta["route_type"] == "one_transit"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("route_id", ["express-abc", "transit-abc", "transit-a-b-c", "direct-"])
    async def test_invalid_route_format(self, engine, route_id, direct_flight):
        with pytest.raises(InvalidRouteFormatError):
            await engine.create_booking(direct_request(direct_flight, route_id=route_id))

    @pytest.mark.asyncio
    async def test_unknown_flight(self, engine, direct_flight):
        with pytest.raises(ValidationError, match="unknown flights"):
            await engine.create_booking(direct_request(direct_flight, route_id="direct-ffffffffff"))

    @pytest.mark.asyncio
    @pytest.mark.parametrize("overrides", [{"origin": "BLR"}, {"destination": "GOI"}])
    async def test_route_must_match_request(self, engine, direct_flight, overrides):
        with pytest.raises(ValidationError):
            await engine.create_booking(direct_request(direct_flight, **overrides))

    @pytest.mark.asyncio
    async def test_request_codes_are_normalized(self, engine, direct_flight):
        booking = await book(engine, direct_flight, origin="del", destination="bom")
        assert (booking.origin, booking.destination) == ("DEL", "BOM")

    @pytest.mark.asyncio
    async def test_transit_with_short_connection_rejected(self, engine, catalog):
        first = make_flight("DEL", "HYD", at(8), at(10))
        second = make_flight("HYD", "BOM", at(10, 25), at(12))
        catalog.add_flights([first, second])

        with pytest.raises(ValidationError, match="Connection time"):
            await engine.create_booking(
                direct_request(first, route_id=f"transit-{first.flight_id}-{second.flight_id}")
            )

    @pytest.mark.asyncio
    async def test_reference_collision_is_retried(self, engine, direct_flight):
        existing = await book(engine, direct_flight)

        refs = iter([existing.ref_id, "RGNEWREF01"])
        with patch("aircargo.services.booking_engine.generate_booking_ref", side_effect=lambda: next(refs)):
            booking = await book(engine, direct_flight)

        assert booking.ref_id == "RGNEWREF01"

    @pytest.mark.asyncio
    async def test_reference_collisions_exhausted(self, engine, direct_flight):
        existing = await book(engine, direct_flight)

        with patch("aircargo.services.booking_engine.generate_booking_ref", return_value=existing.ref_id):
            with pytest.raises(InternalError):
                await book(engine, direct_flight)


class TestIdempotentCreation:

    @pytest.mark.asyncio
    async def test_replay_returns_same_booking(self, engine, direct_flight):
        request = direct_request(direct_flight)

        first = await engine.create_booking(request, idempotency_key="order-42")
        second = await engine.create_booking(request, idempotency_key="order-42")

        assert first.status_code == 201
        assert second.replayed
        assert second.status_code == 200
        assert second.booking.ref_id == first.booking.ref_id
        assert second.to_response() == first.to_response()

    @pytest.mark.asyncio
    async def test_different_keys_create_different_bookings(self, engine, direct_flight):
        request = direct_request(direct_flight)

        first = await engine.create_booking(request, idempotency_key="order-1")
        second = await engine.create_booking(request, idempotency_key="order-2")

        assert first.booking.ref_id != second.booking.ref_id

    @pytest.mark.asyncio
    async def test_ledger_entry_written(self, engine, store, direct_flight):
        await engine.create_booking(direct_request(direct_flight), idempotency_key="order-42")

        assert "idempotency:order-42" in store.data
        assert store.ttls["idempotency:order-42"] == 86400

    @pytest.mark.asyncio
    async def test_unreachable_ledger_does_not_block_creation(self, catalog, repository, store, direct_flight):
        broken = CacheManager(UnavailableKeyValueStore())
        engine = BookingEngine(
            catalog=catalog,
            repository=repository,
            locks=LockCoordinator(store),
            ledger=IdempotencyLedger(broken),
            cache=broken,
        )

        first = await engine.create_booking(direct_request(direct_flight), idempotency_key="order-42")
        second = await engine.create_booking(direct_request(direct_flight), idempotency_key="order-42")

        assert not second.replayed
        assert first.booking.ref_id != second.booking.ref_id

    @pytest.mark.asyncio
    async def test_malformed_key_rejected(self, engine, direct_flight):
        with pytest.raises(ValidationError):
            await engine.create_booking(direct_request(direct_flight), idempotency_key="has space")


class TestGetBooking:

    @pytest.mark.asyncio
    async def test_cache_hit(self, engine, repository, direct_flight):
        booking = await book(engine, direct_flight)

        with patch.object(repository, "find_by_ref") as find:
            assert await engine.get_booking(booking.ref_id) == booking
            find.assert_not_called()

    @pytest.mark.asyncio
    async def test_cache_miss_populates_cache(self, engine, store, direct_flight):
        booking = await book(engine, direct_flight)
        key = f"booking:{booking.ref_id}"
        del store.data[key]

        assert await engine.get_booking(booking.ref_id) == booking
        assert key in store.data
        assert store.ttls[key] == 3600

    @pytest.mark.asyncio
    async def test_not_found(self, engine):
        with pytest.raises(NotFoundError):
            await engine.get_booking("RGMISSING0")

    @pytest.mark.asyncio
    async def test_cache_outage_falls_back_to_repository(self, catalog, repository, store, direct_flight):
        broken = CacheManager(UnavailableKeyValueStore())
        engine = BookingEngine(catalog, repository, LockCoordinator(store), IdempotencyLedger(broken), broken)

        booking = await book(engine, direct_flight)
        departed = await engine.depart(booking.ref_id)

        assert (await engine.get_booking(booking.ref_id)).status == BookingStatus.DEPARTED
        assert departed.status == BookingStatus.DEPARTED

    @pytest.mark.asyncio
    async def test_list_bookings_newest_first(self, engine, direct_flight):
        refs = [(await book(engine, direct_flight)).ref_id for _ in range(3)]

        listed = await engine.list_bookings(limit=2)

        assert [b.ref_id for b in listed] == refs[::-1][:2]


class TestStatusTransitions:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("current", ALL_STATUSES)
    @pytest.mark.parametrize("requested", [s for s in ALL_STATUSES if s != BookingStatus.BOOKED])
    async def test_transition_table(self, engine, direct_flight, current, requested):
        booking = await book(engine, direct_flight)
        for status in PATH_TO[current]:
            booking = await engine.update_status(booking.ref_id, status)

        if (current, requested) in ALLOWED:
            updated = await engine.update_status(booking.ref_id, requested)
            assert updated.status == requested
            assert len(updated.events) == len(booking.events) + 1
        else:
            with pytest.raises(InvalidTransitionError):
                await engine.update_status(booking.ref_id, requested)
            unchanged = await engine.get_booking(booking.ref_id)
            assert unchanged.status == current
            assert len(unchanged.events) == len(booking.events)

    @pytest.mark.asyncio
    async def test_deliver_without_departure(self, engine, direct_flight):
        booking = await book(engine, direct_flight)

        with pytest.raises(InvalidTransitionError, match="from BOOKED to DELIVERED"):
            await engine.deliver(booking.ref_id)

    @pytest.mark.asyncio
    async def test_cancel_after_arrival(self, engine, direct_flight):
        booking = await book(engine, direct_flight)
        await engine.depart(booking.ref_id)
        await engine.arrive(booking.ref_id)

        with pytest.raises(InvalidTransitionError):
            await engine.cancel(booking.ref_id, StatusUpdateRequest(reason="customer request"))

    @pytest.mark.asyncio
    async def test_full_lifecycle_timeline(self, engine, direct_flight):
        booking = await book(engine, direct_flight)
        flight_info = FlightInfo(flight_number="IN2001", airline="IndiGo")

        await engine.depart(booking.ref_id, StatusUpdateRequest(location="DEL", flight_info=flight_info))
        await engine.arrive(booking.ref_id, StatusUpdateRequest(location="BOM", flight_info=flight_info))
        delivered = await engine.deliver(booking.ref_id, StatusUpdateRequest(meta={"signed_by": "R. Iyer"}))

        assert delivered.status == BookingStatus.DELIVERED
        assert [e.type for e in delivered.events] == [
            EventType.BOOKING_CREATED,
            EventType.STATUS_DEPARTED,
            EventType.STATUS_ARRIVED,
            EventType.STATUS_DELIVERED,
        ]
        timestamps = [e.timestamp for e in delivered.events]
        assert timestamps == sorted(timestamps)
        assert delivered.events[1].description == "Package departed from DEL on flight IN2001 (IndiGo)"
        assert delivered.events[2].description == "Package arrived at BOM from flight IN2001 (IndiGo)"
        assert delivered.events[2].flight_info == flight_info
        # location defaults to the destination, description does not
        assert delivered.events[3].location == "BOM"
        assert delivered.events[3].description == "Package successfully delivered at unknown location"
        assert delivered.events[3].meta == {"signed_by": "R. Iyer"}

    @pytest.mark.asyncio
    async def test_cancel_with_reason(self, engine, direct_flight):
        booking = await book(engine, direct_flight)

        cancelled = await engine.cancel(booking.ref_id, StatusUpdateRequest(reason="customs hold"))

        assert cancelled.status == BookingStatus.CANCELLED
        assert cancelled.latest_event.description == "Booking cancelled: customs hold"

    @pytest.mark.asyncio
    async def test_update_invalidates_cache(self, engine, store, direct_flight):
        booking = await book(engine, direct_flight)

        await engine.depart(booking.ref_id)

        assert f"booking:{booking.ref_id}" not in store.data
        assert (await engine.get_booking(booking.ref_id)).status == BookingStatus.DEPARTED

    @pytest.mark.asyncio
    async def test_unknown_booking(self, engine, store):
        with pytest.raises(NotFoundError):
            await engine.depart("RGMISSING0")
        assert "lock:booking:RGMISSING0" not in store.data

    @pytest.mark.asyncio
    async def test_lock_released_after_rejection(self, engine, store, direct_flight):
        booking = await book(engine, direct_flight)

        with pytest.raises(InvalidTransitionError):
            await engine.deliver(booking.ref_id)

        assert f"lock:booking:{booking.ref_id}" not in store.data
        assert (await engine.depart(booking.ref_id)).status == BookingStatus.DEPARTED

    @pytest.mark.asyncio
    async def test_persistence_failure_releases_lock(self, engine, repository, store, direct_flight):
        booking = await book(engine, direct_flight)

        with patch.object(repository, "append_event", side_effect=InternalError("disk full")):
            with pytest.raises(InternalError):
                await engine.depart(booking.ref_id)

        assert f"lock:booking:{booking.ref_id}" not in store.data
        assert (await engine.get_booking(booking.ref_id)).status == BookingStatus.BOOKED

    @pytest.mark.asyncio
    async def test_held_lock_is_conflict(self, engine, store, direct_flight):
        booking = await book(engine, direct_flight)
        store.data[f"lock:booking:{booking.ref_id}"] = "someone-else"

        with pytest.raises(ConflictError):
            await engine.depart(booking.ref_id)

        assert store.data[f"lock:booking:{booking.ref_id}"] == "someone-else"
        assert (await engine.get_booking(booking.ref_id)).status == BookingStatus.BOOKED


class TestMutualExclusion:

    @pytest.mark.asyncio
    async def test_concurrent_updates_one_wins(self, engine, direct_flight):
        booking = await book(engine, direct_flight)

        results = await asyncio.gather(
            engine.depart(booking.ref_id),
            engine.depart(booking.ref_id),
            return_exceptions=True,
        )

        successes = [r for r in results if not isinstance(r, Exception)]
        conflicts = [r for r in results if isinstance(r, ConflictError)]
        assert len(successes) == 1
        assert len(conflicts) == 1

        stored = await engine.get_booking(booking.ref_id)
        assert stored.status == BookingStatus.DEPARTED
        assert len(stored.events) == 2

