"""
SQLAlchemy database models for the aircargo service.

This module defines the tables behind the flight catalog and booking storage:
- Flight: immutable flight schedule records keyed by an opaque flight id
- Booking: the booking aggregate's current state
- BookingEvent: the append-only timeline, ordered per booking by sequence
"""

from sqlalchemy import (
    JSON,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship

from ..utils.identifiers import utcnow

# Create the declarative base for all models
Base = declarative_base()


class Flight(Base):
    """
    Scheduled flight.

    Rows are written by catalog seeding and never updated afterwards.
    """
    __tablename__ = 'flight'

    flight_id = Column(String(32), primary_key=True)
    flight_number = Column(String(10), nullable=False)
    airline = Column(String(50), nullable=False)
    origin = Column(String(3), nullable=False, index=True)       # IATA code, upper case
    destination = Column(String(3), nullable=False, index=True)  # IATA code, upper case
    departure = Column(DateTime, nullable=False, index=True)
    arrival = Column(DateTime, nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    def __repr__(self):
        return (f"<Flight(id='{self.flight_id}', number='{self.flight_number}', "
                f"{self.origin}->{self.destination}, departure={self.departure})>")


class Booking(Base):
    """
    Booking aggregate state.

    ``status`` is only ever changed together with the insertion of the
    matching BookingEvent, inside one transaction.
    """
    __tablename__ = 'booking'

    ref_id = Column(String(10), primary_key=True)
    origin = Column(String(3), nullable=False)
    destination = Column(String(3), nullable=False)
    departure_date = Column(Date, nullable=False)
    pieces = Column(Integer, nullable=False)
    weight_kg = Column(Float, nullable=False)
    status = Column(String(16), nullable=False, index=True)
    flight_ids = Column(JSON, nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, index=True)

    events = relationship(
        "BookingEvent",
        back_populates="booking",
        order_by="BookingEvent.sequence",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self):
        return f"<Booking(ref_id='{self.ref_id}', status='{self.status}', {self.origin}->{self.destination})>"


class BookingEvent(Base):
    """One entry of a booking's append-only timeline."""
    __tablename__ = 'booking_event'

    event_pk = Column(Integer, primary_key=True, autoincrement=True)
    booking_ref = Column(String(10), ForeignKey('booking.ref_id'), nullable=False)
    sequence = Column(Integer, nullable=False)
    event_id = Column(String(32), nullable=False)
    type = Column(String(32), nullable=False)
    status = Column(String(16), nullable=False)
    location = Column(String(100), nullable=False)
    timestamp = Column(DateTime, nullable=False)
    description = Column(Text, nullable=False)
    flight_info = Column(JSON, nullable=True)
    meta = Column(JSON, nullable=False, default=dict)

    booking = relationship("Booking", back_populates="events")

    __table_args__ = (
        UniqueConstraint('booking_ref', 'sequence', name='uq_booking_event_sequence'),
        UniqueConstraint('booking_ref', 'event_id', name='uq_booking_event_id'),
    )

    def __repr__(self):
        return f"<BookingEvent(booking='{self.booking_ref}', seq={self.sequence}, type='{self.type}')>"


# Composite index for route/day lookups
Index('idx_flight_route_departure', Flight.origin, Flight.destination, Flight.departure)


def create_all_tables(engine):
    """
    Create all database tables using the provided SQLAlchemy engine.

    Args:
        engine: SQLAlchemy engine instance
    """
    Base.metadata.create_all(bind=engine)


__all__ = [
    'Base',
    'Flight',
    'Booking',
    'BookingEvent',
    'create_all_tables',
]
