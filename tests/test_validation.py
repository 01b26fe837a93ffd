"""Tests for trip timing validation, duration derivation and bus availability."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from trip_booking import models
from trip_booking.exceptions import ValidationError
from trip_booking.trips.validation import (
    AvailabilityValidator,
    compute_duration,
    validate_trip_timings,
)

NOW = datetime(2025, 1, 1, 0, 0, 0)


class TestComputeDuration:
    def test_whole_hours(self):
        assert compute_duration(datetime(2025, 1, 1, 0, 0), datetime(2025, 1, 1, 8, 0)) == "8h 0min"

    def test_hours_and_minutes(self):
        assert compute_duration(datetime(2025, 1, 1, 6, 15), datetime(2025, 1, 1, 9, 50)) == "3h 35min"

    def test_partial_minutes_are_floored(self):
        start = datetime(2025, 1, 1, 0, 0, 0)
        assert compute_duration(start, start + timedelta(minutes=59, seconds=59, milliseconds=999)) == "0h 59min"

    def test_over_a_day_keeps_counting_hours(self):
        start = datetime(2025, 1, 1)
        assert compute_duration(start, start + timedelta(hours=30, minutes=5)) == "30h 5min"

    def test_aware_times_are_compared_in_utc(self):
        departure = datetime(2025, 1, 1, 2, 0, tzinfo=timezone(timedelta(hours=2)))
        arrival = datetime(2025, 1, 1, 8, 0, tzinfo=timezone.utc)
        assert compute_duration(departure, arrival) == "8h 0min"


class TestValidateTripTimings:
    def test_valid_pair_passes(self):
        validate_trip_timings(NOW + timedelta(hours=10), NOW + timedelta(hours=2), now=NOW)

    def test_missing_time_fails(self):
        with pytest.raises(ValidationError, match="required"):
            validate_trip_timings(None, NOW + timedelta(hours=1), now=NOW)

    def test_arrival_equal_to_departure_fails(self):
        departure = NOW + timedelta(hours=1)
        with pytest.raises(ValidationError, match="arrival_time must be after departure_time"):
            validate_trip_timings(departure, departure, now=NOW)

    def test_arrival_before_departure_fails(self):
        with pytest.raises(ValidationError, match="arrival_time must be after departure_time"):
            validate_trip_timings(NOW + timedelta(hours=1), NOW + timedelta(hours=3), now=NOW)

    def test_departure_in_the_past_fails(self):
        with pytest.raises(ValidationError, match="departure_time cannot be in the past"):
            validate_trip_timings(NOW + timedelta(hours=3), NOW - timedelta(minutes=1), now=NOW)

    def test_exactly_48_hours_is_allowed(self):
        departure = NOW + timedelta(hours=1)
        validate_trip_timings(departure + timedelta(hours=48), departure, now=NOW)

    def test_longer_than_48_hours_fails(self):
        departure = NOW + timedelta(hours=1)
        with pytest.raises(ValidationError, match="48 hours"):
            validate_trip_timings(departure + timedelta(hours=48, minutes=1), departure, now=NOW)

    def test_errors_are_reported_together(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_trip_timings(NOW - timedelta(hours=2), NOW - timedelta(hours=1), now=NOW)
        message = exc_info.value.message
        assert "departure_time cannot be in the past" in message
        assert "arrival_time cannot be in the past" in message
        assert "arrival_time must be after departure_time" in message


class TestBusAvailability:
    @pytest.fixture
    def booked_trip(self, db, cities, bus):
        trip = models.Trip(
            departure_city_id=cities[0].id,
            arrival_city_id=cities[1].id,
            departure_time=datetime(2030, 1, 1, 8, 0),
            arrival_time=datetime(2030, 1, 1, 12, 0),
            duration="4h 0min",
            price=10,
            ratings=0,
            status="active",
            bus_id=bus.id,
        )
        db.add(trip)
        db.commit()
        return trip

    def test_overlap_is_unavailable(self, db, bus, booked_trip):
        validator = AvailabilityValidator(db)
        assert validator.validate_bus_availability(
            bus.id, datetime(2030, 1, 1, 11, 0), datetime(2030, 1, 1, 14, 0)
        ) is False

    def test_enclosing_window_is_unavailable(self, db, bus, booked_trip):
        validator = AvailabilityValidator(db)
        assert validator.validate_bus_availability(
            bus.id, datetime(2030, 1, 1, 7, 0), datetime(2030, 1, 1, 13, 0)
        ) is False

    def test_back_to_back_trips_do_not_overlap(self, db, bus, booked_trip):
        validator = AvailabilityValidator(db)
        assert validator.validate_bus_availability(
            bus.id, datetime(2030, 1, 1, 12, 0), datetime(2030, 1, 1, 15, 0)
        ) is True

    def test_other_bus_is_available(self, db, booked_trip):
        other = models.Bus(bus_model="Iveco", seats=19)
        db.add(other)
        db.commit()
        validator = AvailabilityValidator(db)
        assert validator.validate_bus_availability(
            other.id, datetime(2030, 1, 1, 9, 0), datetime(2030, 1, 1, 10, 0)
        ) is True

    def test_edited_trip_is_excluded(self, db, bus, booked_trip):
        validator = AvailabilityValidator(db)
        assert validator.validate_bus_availability(
            bus.id, datetime(2030, 1, 1, 9, 0), datetime(2030, 1, 1, 13, 0),
            exclude_trip_id=booked_trip.id
        ) is True

    def test_canceled_trips_free_the_bus(self, db, bus, booked_trip):
        booked_trip.status = "canceled"
        db.commit()
        validator = AvailabilityValidator(db)
        assert validator.validate_bus_availability(
            bus.id, datetime(2030, 1, 1, 9, 0), datetime(2030, 1, 1, 10, 0)
        ) is True
