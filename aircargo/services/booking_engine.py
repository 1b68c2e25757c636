"""
Booking lifecycle service.

Creates bookings from route ids, serves reads through a cache-aside layer and
applies status changes under a per-booking distributed lock:

    BOOKED -> DEPARTED -> ARRIVED -> DELIVERED
    BOOKED | DEPARTED -> CANCELLED
"""

import asyncio
import logging
from typing import List, Optional

from ..cache.manager import CacheManager
from ..cache.utils import TTLPreset, key_manager
from ..errors import InternalError, InvalidTransitionError, NotFoundError, ValidationError
from ..models.booking import (
    BookingEventModel,
    BookingModel,
    BookingResult,
    CreateBookingRequest,
    StatusUpdateRequest,
    describe_booking_created,
    describe_status_change,
)
from ..models.enums import BookingStatus, EventType, RouteType, can_transition
from ..models.route import parse_route_id
from ..utils.identifiers import generate_booking_ref, generate_event_id, utcnow
from ..utils.performance import measure
from .booking_repository import BookingRepository, DuplicateBookingError
from .flight_catalog import FlightCatalog
from .idempotency import IdempotencyLedger
from .lock_manager import LockCoordinator

logger = logging.getLogger(__name__)

MAX_REF_ATTEMPTS = 3
DEFAULT_MIN_CONNECTION_MINUTES = 60


class BookingEngine:
    """
    Booking creation, reads and status transitions.

    The engine keeps no in-process locks: concurrent updates of one booking
    are serialised only by the LockCoordinator, and the repository's guarded
    append rejects anything that slips past an expired lock.
    """

    def __init__(
        self,
        catalog: FlightCatalog,
        repository: BookingRepository,
        locks: LockCoordinator,
        ledger: IdempotencyLedger,
        cache: CacheManager,
        booking_cache_ttl: int = TTLPreset.BOOKING,
        min_connection_minutes: int = DEFAULT_MIN_CONNECTION_MINUTES,
    ):
        """
        Initialize booking engine.

        Args:
            catalog: Flight lookups used to re-validate route ids
            repository: Booking system of record
            locks: Per-booking lock coordinator
            ledger: Idempotency ledger for creation
            cache: Cache for booking reads
            booking_cache_ttl: TTL of cached bookings
            min_connection_minutes: Minimum transfer time re-checked at creation
        """
        self.catalog = catalog
        self.repository = repository
        self.locks = locks
        self.ledger = ledger
        self.cache = cache
        self.booking_cache_ttl = int(booking_cache_ttl)
        self.min_connection_minutes = min_connection_minutes

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    async def create_booking(
        self, request: CreateBookingRequest, idempotency_key: Optional[str] = None
    ) -> BookingResult:
        """
        Create a booking on a previously discovered route.

        Args:
            request: Validated creation request
            idempotency_key: Optional caller key making retries safe

        Returns:
            BookingResult; ``replayed`` is set when served from the ledger

        Raises:
            InvalidRouteFormatError: route_id is not a direct/transit id
            ValidationError: Route does not match the request or names unknown flights
        """
        if idempotency_key is not None:
            replay = await self.ledger.lookup(idempotency_key)
            if replay is not None:
                return replay

        result = await measure(
            f"create_booking {request.route_id}",
            lambda: self._create_booking(request),
        )

        if idempotency_key is not None:
            await self.ledger.remember(idempotency_key, result)
        return result

    async def _create_booking(self, request: CreateBookingRequest) -> BookingResult:
        flight_ids = parse_route_id(request.route_id)
        flights = await asyncio.to_thread(self.catalog.find_by_ids, flight_ids)

        if len(flights) != len(flight_ids):
            raise ValidationError(f"Route references unknown flights: {request.route_id}")
        if flights[0].origin != request.origin or flights[-1].destination != request.destination:
            raise ValidationError(
                f"Route {request.route_id} does not connect {request.origin} to {request.destination}"
            )
        if len(flights) == 2:
            first, second = flights
            if first.destination != second.origin:
                raise ValidationError(f"Route legs do not connect: {request.route_id}")
            if (second.departure - first.arrival).total_seconds() < self.min_connection_minutes * 60:
                raise ValidationError(f"Connection time too short: {request.route_id}")

        route_type = RouteType.DIRECT if len(flights) == 1 else RouteType.ONE_TRANSIT

        for attempt in range(1, MAX_REF_ATTEMPTS + 1):
            booking = self._new_booking(request, flight_ids, route_type)
            try:
                await asyncio.to_thread(self.repository.insert, booking)
                break
            except DuplicateBookingError:
                logger.warning(f"Booking reference collision on {booking.ref_id} (attempt {attempt})")
        else:
            raise InternalError("Could not allocate a unique booking reference")

        logger.info(f"Booking created: {booking.ref_id} ({request.origin}->{request.destination})")
        await self.cache.set(key_manager.booking_key(booking.ref_id), booking.model_dump(mode="json"),
                             ttl=self.booking_cache_ttl)
        return BookingResult(booking=booking)

    @staticmethod
    def _new_booking(request: CreateBookingRequest, flight_ids, route_type: RouteType) -> BookingModel:
        now = utcnow()
        created = BookingEventModel(
            id=generate_event_id(),
            type=EventType.BOOKING_CREATED,
            status=BookingStatus.BOOKED,
            location=request.origin,
            timestamp=now,
            description=describe_booking_created(
                request.pieces, request.weight_kg, request.origin, request.destination
            ),
            meta={
                "pieces": request.pieces,
                "weight_kg": request.weight_kg,
                "route_type": route_type.value,
            },
        )
        return BookingModel(
            ref_id=generate_booking_ref(),
            origin=request.origin,
            destination=request.destination,
            departure_date=request.departure_date,
            pieces=request.pieces,
            weight_kg=request.weight_kg,
            status=BookingStatus.BOOKED,
            flight_ids=tuple(flight_ids),
            events=(created,),
            created_at=now,
            updated_at=now,
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_booking(self, ref_id: str) -> BookingModel:
        """
        Cache-aside read of a booking.

        Raises:
            NotFoundError: Unknown reference
        """
        cache_key = key_manager.booking_key(ref_id)
        cached = await self.cache.get(cache_key)
        if cached is not None:
            try:
                return BookingModel.model_validate(cached)
            except ValueError as e:
                logger.warning(f"Discarding malformed cached booking {cache_key}: {e}")

        booking = await asyncio.to_thread(self.repository.find_by_ref, ref_id)
        if booking is None:
            raise NotFoundError("Booking", ref_id)

        await self.cache.set(cache_key, booking.model_dump(mode="json"), ttl=self.booking_cache_ttl)
        return booking

    async def list_bookings(self, limit: int = 50) -> List[BookingModel]:
        """Most recent bookings first, read straight from the repository."""
        return await asyncio.to_thread(self.repository.list_recent, limit)

    # ------------------------------------------------------------------
    # Status transitions
    # ------------------------------------------------------------------

    async def depart(self, ref_id: str, update: Optional[StatusUpdateRequest] = None) -> BookingModel:
        return await self.update_status(ref_id, BookingStatus.DEPARTED, update)

    async def arrive(self, ref_id: str, update: Optional[StatusUpdateRequest] = None) -> BookingModel:
        return await self.update_status(ref_id, BookingStatus.ARRIVED, update)

    async def deliver(self, ref_id: str, update: Optional[StatusUpdateRequest] = None) -> BookingModel:
        return await self.update_status(ref_id, BookingStatus.DELIVERED, update)

    async def cancel(self, ref_id: str, update: Optional[StatusUpdateRequest] = None) -> BookingModel:
        return await self.update_status(ref_id, BookingStatus.CANCELLED, update)

    async def update_status(
        self,
        ref_id: str,
        new_status: BookingStatus,
        update: Optional[StatusUpdateRequest] = None,
    ) -> BookingModel:
        """
        Move a booking to ``new_status`` under its distributed lock.

        Raises:
            ConflictError: Another update holds the lock
            NotFoundError: Unknown reference
            InvalidTransitionError: Status change not allowed
            InternalError: Lock store or persistence failure
        """
        update = update or StatusUpdateRequest()

        async with self.locks.lock_context(ref_id):
            booking = await asyncio.to_thread(self.repository.find_by_ref, ref_id)
            if booking is None:
                raise NotFoundError("Booking", ref_id)

            if not can_transition(booking.status, new_status):
                raise InvalidTransitionError(booking.status, new_status)

            event = self._status_event(booking, new_status, update)
            updated = await asyncio.to_thread(self.repository.append_event, ref_id, booking.status, event)
            await self.cache.delete(key_manager.booking_key(ref_id))

        logger.info(f"Booking {ref_id} moved {booking.status.value} -> {new_status.value}")
        return updated

    @staticmethod
    def _status_event(
        booking: BookingModel, new_status: BookingStatus, update: StatusUpdateRequest
    ) -> BookingEventModel:
        # never earlier than the previous event, even if the clock stepped back
        timestamp = max(utcnow(), booking.latest_event.timestamp)
        return BookingEventModel(
            id=generate_event_id(),
            type=EventType.for_status(new_status),
            status=new_status,
            location=update.location or booking.destination,
            timestamp=timestamp,
            description=describe_status_change(
                new_status,
                location=update.location,
                flight_info=update.flight_info,
                reason=update.reason,
            ),
            flight_info=update.flight_info,
            meta=dict(update.meta),
        )
