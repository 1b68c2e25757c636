"""
Tests for the pydantic value models, route id encoding and description text.
"""

from datetime import date, datetime, timedelta

import pytest
from pydantic import ValidationError as PydanticValidationError

from aircargo.errors import InvalidRouteFormatError
from aircargo.models import (
    ALLOWED_TRANSITIONS,
    BookingEventModel,
    BookingModel,
    BookingStatus,
    CreateBookingRequest,
    EventType,
    FlightInfo,
    FlightModel,
    build_route_id,
    can_transition,
    describe_status_change,
    parse_route_id,
)

T0 = datetime(2024, 1, 15, 9, 0)


def created_event(timestamp=T0):
    return BookingEventModel(
        id="evt-created",
        type=EventType.BOOKING_CREATED,
        status=BookingStatus.BOOKED,
        location="DEL",
        timestamp=timestamp,
        description="Booking created",
    )


def booking(**overrides):
    data = dict(
        ref_id="RGABC12345",
        origin="DEL",
        destination="BOM",
        departure_date=date(2024, 1, 15),
        pieces=1,
        weight_kg=10.0,
        status=BookingStatus.BOOKED,
        flight_ids=("a1b2c3d4e5",),
        events=(created_event(),),
        created_at=T0,
        updated_at=T0,
    )
    data.update(overrides)
    return BookingModel(**data)


class TestFlightModel:

    def test_codes_normalized_and_duration(self):
        flight = FlightModel(
            flight_id="a1b2c3d4e5", flight_number="AI101", airline="Air India",
            origin="del", destination=" bom ", departure=T0, arrival=T0 + timedelta(minutes=150, seconds=59),
        )
        assert (flight.origin, flight.destination) == ("DEL", "BOM")
        assert flight.duration_minutes == 150

    def test_arrival_must_follow_departure(self):
        with pytest.raises(PydanticValidationError):
            FlightModel(flight_id="x1", flight_number="AI101", airline="Air India",
                        origin="DEL", destination="BOM", departure=T0, arrival=T0)

    def test_flight_id_may_not_contain_dash(self):
        with pytest.raises(PydanticValidationError):
            FlightModel(flight_id="a-b", flight_number="AI101", airline="Air India",
                        origin="DEL", destination="BOM", departure=T0, arrival=T0 + timedelta(hours=1))


class TestRouteIds:

    def test_build_and_parse(self):
        assert build_route_id(["abc"]) == "direct-abc"
        assert build_route_id(["abc", "def"]) == "transit-abc-def"
        assert parse_route_id("direct-abc") == ["abc"]
        assert parse_route_id("transit-abc-def") == ["abc", "def"]

    @pytest.mark.parametrize("route_id", ["abc", "DIRECT-abc", "transit-", "transit-abc-", "transit-a-b-c"])
    def test_rejects_malformed(self, route_id):
        with pytest.raises(InvalidRouteFormatError):
            parse_route_id(route_id)


class TestStateMachine:

    def test_terminal_states(self):
        assert ALLOWED_TRANSITIONS[BookingStatus.DELIVERED] == frozenset()
        assert ALLOWED_TRANSITIONS[BookingStatus.CANCELLED] == frozenset()

    def test_cancellation_window(self):
        assert can_transition(BookingStatus.BOOKED, BookingStatus.CANCELLED)
        assert can_transition(BookingStatus.DEPARTED, BookingStatus.CANCELLED)
        assert not can_transition(BookingStatus.ARRIVED, BookingStatus.CANCELLED)

    def test_event_type_for_status(self):
        assert EventType.for_status(BookingStatus.DEPARTED) == EventType.STATUS_DEPARTED
        assert EventType.for_status(BookingStatus.CANCELLED) == EventType.STATUS_CANCELLED


class TestBookingModel:

    def test_latest_event(self):
        departed = BookingEventModel(
            id="evt-2", type=EventType.STATUS_DEPARTED, status=BookingStatus.DEPARTED,
            location="DEL", timestamp=T0 + timedelta(hours=1), description="Package departed from DEL",
        )

        updated = booking(status=BookingStatus.DEPARTED, events=(created_event(), departed))

        assert updated.latest_event == departed
        assert booking().latest_event.type == EventType.BOOKING_CREATED

    def test_frozen(self):
        with pytest.raises(PydanticValidationError):
            booking().status = BookingStatus.DEPARTED

    def test_status_must_match_last_event(self):
        with pytest.raises(PydanticValidationError):
            booking(status=BookingStatus.DEPARTED)

    def test_events_must_be_time_ordered(self):
        later = created_event(T0)
        earlier = BookingEventModel(
            id="evt-2", type=EventType.STATUS_DEPARTED, status=BookingStatus.DEPARTED,
            location="DEL", timestamp=T0 - timedelta(minutes=1), description="x",
        )
        with pytest.raises(PydanticValidationError):
            booking(status=BookingStatus.DEPARTED, events=(later, earlier))

    @pytest.mark.parametrize("overrides", [
        {"ref_id": "AB12345678"},
        {"ref_id": "RGabc12345"},
        {"pieces": 0},
        {"weight_kg": 0},
        {"flight_ids": ()},
        {"flight_ids": ("a", "b", "c")},
        {"events": ()},
    ])
    def test_field_constraints(self, overrides):
        with pytest.raises(PydanticValidationError):
            booking(**overrides)

    def test_create_request_normalizes_codes(self):
        request = CreateBookingRequest(origin="del", destination="bom", pieces=1, weight_kg=1.5,
                                       route_id="direct-abc", departure_date="2024-01-15")
        assert (request.origin, request.destination) == ("DEL", "BOM")
        assert request.departure_date == date(2024, 1, 15)


class TestDescriptions:

    @pytest.mark.parametrize("status,kwargs,expected", [
        (BookingStatus.DEPARTED, {"location": "DEL"}, "Package departed from DEL"),
        (BookingStatus.DEPARTED,
         {"location": "DEL", "flight_info": FlightInfo(flight_number="AI101", airline="Air India")},
         "Package departed from DEL on flight AI101 (Air India)"),
        (BookingStatus.ARRIVED, {"location": "BOM"}, "Package arrived at BOM"),
        (BookingStatus.ARRIVED,
         {"location": "BOM", "flight_info": FlightInfo(flight_number="AI101", airline="Air India")},
         "Package arrived at BOM from flight AI101 (Air India)"),
        (BookingStatus.DELIVERED, {"location": "BOM"}, "Package successfully delivered at BOM"),
        (BookingStatus.DELIVERED, {}, "Package successfully delivered at unknown location"),
        (BookingStatus.CANCELLED, {"reason": "customs hold"}, "Booking cancelled: customs hold"),
        (BookingStatus.CANCELLED, {"location": "HYD"}, "Booking cancelled at HYD"),
    ])
    def test_describe_status_change(self, status, kwargs, expected):
        assert describe_status_change(status, **kwargs) == expected
