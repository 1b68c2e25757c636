"""
Relational persistence for bookings and their event timelines.

The repository is the system of record. Status changes are written together
with the event that causes them, in one transaction guarded on the status the
caller last saw.
"""

import logging
from typing import List, Optional

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..database.config import DatabaseConfig
from ..database.models import Booking, BookingEvent
from ..errors import ConflictError, InternalError
from ..models.booking import BookingEventModel, BookingModel, FlightInfo
from ..models.enums import BookingStatus

logger = logging.getLogger(__name__)


class DuplicateBookingError(ConflictError):
    """A booking with the same reference already exists."""


class StaleBookingError(ConflictError):
    """Booking status changed between read and append."""


def _event_to_model(row: BookingEvent) -> BookingEventModel:
    return BookingEventModel(
        id=row.event_id,
        type=row.type,
        status=row.status,
        location=row.location,
        timestamp=row.timestamp,
        description=row.description,
        flight_info=FlightInfo(**row.flight_info) if row.flight_info else None,
        meta=row.meta or {},
    )


def _booking_to_model(row: Booking) -> BookingModel:
    return BookingModel(
        ref_id=row.ref_id,
        origin=row.origin,
        destination=row.destination,
        departure_date=row.departure_date,
        pieces=row.pieces,
        weight_kg=row.weight_kg,
        status=row.status,
        flight_ids=tuple(row.flight_ids),
        events=tuple(_event_to_model(event) for event in row.events),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _event_row(ref_id: str, sequence: int, event: BookingEventModel) -> BookingEvent:
    return BookingEvent(
        booking_ref=ref_id,
        sequence=sequence,
        event_id=event.id,
        type=event.type.value,
        status=event.status.value,
        location=event.location,
        timestamp=event.timestamp,
        description=event.description,
        flight_info=event.flight_info.model_dump() if event.flight_info else None,
        meta=dict(event.meta),
    )


class BookingRepository:
    """
    Booking storage over SQLAlchemy sessions.

    All methods are synchronous; the booking engine runs them in worker
    threads.
    """

    def __init__(self, db_config: DatabaseConfig):
        self.db = db_config

    def find_by_ref(self, ref_id: str) -> Optional[BookingModel]:
        try:
            with self.db.get_session_context() as session:
                row = session.get(Booking, ref_id)
                return _booking_to_model(row) if row else None
        except SQLAlchemyError as e:
            raise InternalError(f"Failed to load booking {ref_id}") from e

    def insert(self, booking: BookingModel) -> BookingModel:
        """
        Persist a new booking with its initial timeline.

        Raises:
            DuplicateBookingError: ref_id already taken
            InternalError: Any other persistence failure
        """
        try:
            with self.db.get_session_context() as session:
                if session.get(Booking, booking.ref_id) is not None:
                    raise DuplicateBookingError(f"Booking reference already exists: {booking.ref_id}")

                row = Booking(
                    ref_id=booking.ref_id,
                    origin=booking.origin,
                    destination=booking.destination,
                    departure_date=booking.departure_date,
                    pieces=booking.pieces,
                    weight_kg=booking.weight_kg,
                    status=booking.status.value,
                    flight_ids=list(booking.flight_ids),
                    created_at=booking.created_at,
                    updated_at=booking.updated_at,
                )
                row.events = [_event_row(booking.ref_id, sequence, event)
                              for sequence, event in enumerate(booking.events)]
                session.add(row)
        except IntegrityError as e:
            raise DuplicateBookingError(f"Booking reference already exists: {booking.ref_id}") from e
        except SQLAlchemyError as e:
            raise InternalError(f"Failed to save booking {booking.ref_id}") from e

        logger.info(f"Booking persisted: {booking.ref_id}")
        return booking

    def append_event(
        self, ref_id: str, expected_status: BookingStatus, event: BookingEventModel
    ) -> BookingModel:
        """
        Atomically append ``event`` and move the booking to ``event.status``.

        Args:
            ref_id: Booking reference
            expected_status: Status the caller validated the transition from
            event: Event to append

        Returns:
            The booking as stored after the append

        Raises:
            StaleBookingError: Status is no longer ``expected_status``
            InternalError: Persistence failure
        """
        try:
            with self.db.get_session_context() as session:
                result = session.execute(
                    update(Booking)
                    .where(Booking.ref_id == ref_id, Booking.status == expected_status.value)
                    .values(status=event.status.value, updated_at=event.timestamp)
                )
                if result.rowcount != 1:
                    raise StaleBookingError(
                        f"Booking {ref_id} is no longer {expected_status.value}"
                    )

                sequence = (
                    session.query(func.count(BookingEvent.event_pk))
                    .filter(BookingEvent.booking_ref == ref_id)
                    .scalar()
                )
                session.add(_event_row(ref_id, sequence, event))
                session.flush()

                return _booking_to_model(session.get(Booking, ref_id))
        except SQLAlchemyError as e:
            logger.error(f"Failed to append event to booking {ref_id}: {e}")
            raise InternalError(f"Failed to update booking {ref_id}") from e

    def list_recent(self, limit: int = 50) -> List[BookingModel]:
        """Most recently created bookings first."""
        try:
            with self.db.get_session_context() as session:
                rows = (
                    session.query(Booking)
                    .order_by(Booking.created_at.desc(), Booking.ref_id)
                    .limit(limit)
                    .all()
                )
                return [_booking_to_model(row) for row in rows]
        except SQLAlchemyError as e:
            raise InternalError("Failed to list bookings") from e
