"""
Tests for the availability filter.
"""

import logging
from datetime import date, time

import pendulum
import pytest

from barberslots.domain.availability import AvailabilityCalculator, find_conflicting_booking
from barberslots.domain.clock import REGIONAL_TIMEZONE
from barberslots.domain.exceptions import InvalidInputError
from barberslots.domain.models import (
    ConflictMode,
    ExistingBooking,
    OperatingWindow,
    SlotQuery,
    TimeRange,
)

DAY = date(2024, 11, 25)
MORNING = OperatingWindow(opens=time(8, 0), closes=time(12, 0))
FULL_GRID = [
    time(8, 0), time(8, 30), time(9, 0), time(9, 30),
    time(10, 0), time(10, 30), time(11, 0), time(11, 30),
]


def _booking(start, duration=30, professional_id="prof-1", booking_date=DAY, status="confirmed", booking_id=None):
    return ExistingBooking(
        id=booking_id,
        professional_id=professional_id,
        date=booking_date,
        start_time=start,
        duration_minutes=duration,
        status=status,
    )


def _query(bookings=(), duration=30, now=None, booking_date=DAY, window=MORNING, exclude_booking_id=None):
    return SlotQuery(
        professional_id="prof-1",
        date=booking_date,
        operating_window=window,
        requested_duration_minutes=duration,
        occupying_bookings=list(bookings),
        now=now or pendulum.datetime(2024, 11, 20, 10, 0, tz=REGIONAL_TIMEZONE),
        exclude_booking_id=exclude_booking_id,
    )


class TestOccupancy:
    """Tests for duration-aware occupancy exclusion."""

    def test_no_bookings_returns_full_grid(self):
        result = AvailabilityCalculator().find_available_slots(_query())

        assert result.slots == FULL_GRID
        assert result.conflict_mode is ConflictMode.DURATION_AWARE
        assert not result.is_degraded

    def test_long_booking_blocks_every_overlapping_slot(self):
        """Test that a 60 minute booking at 09:00 blocks 09:00 and 09:30 but not 10:00."""
        calculator = AvailabilityCalculator()

        result = calculator.find_available_slots(_query([_booking(time(9, 0), duration=60)]))

        assert time(9, 0) not in result.slots
        assert time(9, 30) not in result.slots
        assert time(10, 0) in result.slots
        assert result.occupied_excluded == [time(9, 0), time(9, 30)]

    def test_requested_duration_reaches_into_booking(self):
        """Test that a 60 minute request at 08:30 collides with a booking at 09:00."""
        result = AvailabilityCalculator().find_available_slots(
            _query([_booking(time(9, 0), duration=30)], duration=60)
        )

        assert time(8, 0) in result.slots
        assert time(8, 30) not in result.slots
        assert time(9, 0) not in result.slots
        assert time(9, 30) in result.slots

    def test_back_to_back_is_not_a_conflict(self):
        """Test that a slot ending exactly when a booking starts stays available."""
        result = AvailabilityCalculator().find_available_slots(
            _query([_booking(time(10, 0), duration=30)], duration=60)
        )

        assert time(9, 0) in result.slots       # 09:00-10:00 ends as the booking starts
        assert time(9, 30) not in result.slots  # 09:30-10:30 overlaps
        assert time(10, 30) in result.slots     # starts as the booking ends

    def test_bookings_not_aligned_to_grid(self):
        """Test that a booking at 09:10 for 25 minutes blocks the 09:00 and 09:30 slots."""
        result = AvailabilityCalculator().find_available_slots(
            _query([_booking(time(9, 10), duration=25)])
        )

        assert time(9, 0) not in result.slots
        assert time(9, 30) not in result.slots
        assert time(8, 30) in result.slots

    @pytest.mark.parametrize("status", ["cancelled", "completed"])
    def test_non_occupying_bookings_never_block(self, status):
        result = AvailabilityCalculator().find_available_slots(
            _query([_booking(time(9, 0), duration=120, status=status)])
        )

        assert result.slots == FULL_GRID

    def test_other_professionals_and_dates_are_ignored(self):
        bookings = [
            _booking(time(9, 0), professional_id="prof-2"),
            _booking(time(10, 0), booking_date=date(2024, 11, 26)),
        ]

        result = AvailabilityCalculator().find_available_slots(_query(bookings))

        assert result.slots == FULL_GRID

    def test_edited_booking_does_not_conflict_with_itself(self):
        bookings = [_booking(time(9, 0), duration=60, booking_id="bk-1")]

        result = AvailabilityCalculator().find_available_slots(
            _query(bookings, exclude_booking_id="bk-1")
        )

        assert result.slots == FULL_GRID

    def test_granularity_comes_from_calculator(self):
        result = AvailabilityCalculator(granularity_minutes=60).find_available_slots(_query())

        assert result.slots == [time(8, 0), time(9, 0), time(10, 0), time(11, 0)]

    def test_idempotent(self):
        """Test that identical inputs yield identical outputs."""
        calculator = AvailabilityCalculator()
        query = _query([_booking(time(9, 0), duration=60), _booking(time(11, 0))])

        first = calculator.find_available_slots(query)
        second = calculator.find_available_slots(query)

        assert first == second


class TestPastTime:
    """Tests for today's past-time cutoff."""

    def test_today_excludes_started_slots(self):
        """Test that at 14:37 the 14:30 slot is gone and 15:00 remains."""
        window = OperatingWindow(opens=time(14, 0), closes=time(16, 0))
        now = pendulum.datetime(2024, 11, 25, 14, 37, tz=REGIONAL_TIMEZONE)

        result = AvailabilityCalculator().find_available_slots(_query(window=window, now=now))

        assert result.slots == [time(15, 0), time(15, 30)]
        assert result.past_excluded == [time(14, 0), time(14, 30)]

    def test_slot_at_current_minute_is_excluded(self):
        window = OperatingWindow(opens=time(9, 0), closes=time(9, 2))
        calculator = AvailabilityCalculator(granularity_minutes=1)

        now = pendulum.datetime(2024, 11, 25, 9, 0, 45, tz=REGIONAL_TIMEZONE)
        result = calculator.find_available_slots(_query(window=window, now=now))

        assert time(9, 0) not in result.slots
        assert time(9, 1) in result.slots

    def test_future_dates_are_never_filtered(self):
        """Test that a late "now" does not touch tomorrow's slots."""
        now = pendulum.datetime(2024, 11, 24, 23, 59, tz=REGIONAL_TIMEZONE)

        result = AvailabilityCalculator().find_available_slots(_query(now=now))

        assert result.slots == FULL_GRID
        assert result.past_excluded == []

    def test_now_is_read_in_regional_timezone(self):
        """Test that 01:00 UTC on the 26th is still the 25th at 22:00 in UTC-3."""
        now = pendulum.datetime(2024, 11, 26, 1, 0, tz="UTC")

        result = AvailabilityCalculator().find_available_slots(_query(now=now))

        assert result.slots == []
        assert result.past_excluded == FULL_GRID

    def test_past_and_occupied_combine(self):
        now = pendulum.datetime(2024, 11, 25, 8, 15, tz=REGIONAL_TIMEZONE)

        result = AvailabilityCalculator().find_available_slots(
            _query([_booking(time(10, 0), duration=60)], now=now)
        )

        assert result.slots == [time(8, 30), time(9, 0), time(9, 30), time(11, 0), time(11, 30)]


class TestDegradedAndMisconfigured:
    """Tests for exact-start mode and misconfiguration handling."""

    def test_missing_duration_uses_exact_start_mode(self, caplog):
        bookings = [_booking(time(9, 0), duration=60)]

        with caplog.at_level(logging.WARNING):
            result = AvailabilityCalculator().find_available_slots(_query(bookings, duration=None))

        assert result.conflict_mode is ConflictMode.EXACT_START
        assert result.is_degraded
        assert time(9, 0) not in result.slots
        # The weaker check misses the second half of the long booking
        assert time(9, 30) in result.slots
        assert "exact start-time" in caplog.text

    def test_zero_duration_yields_nothing(self):
        result = AvailabilityCalculator().find_available_slots(_query(duration=0))

        assert result.slots == []

    def test_closed_window_yields_nothing(self):
        window = OperatingWindow(opens=time(12, 0), closes=time(12, 0))

        result = AvailabilityCalculator().find_available_slots(_query(window=window))

        assert result.slots == []

    def test_negative_duration_is_a_caller_bug(self):
        with pytest.raises(InvalidInputError):
            _query(duration=-30)


class TestFindConflictingBooking:
    """Tests for the shared overlap routine."""

    def test_returns_first_overlapping_booking(self):
        target = _booking(time(9, 0), duration=60, booking_id="bk-2")
        bookings = [_booking(time(8, 0), booking_id="bk-1"), target]

        conflict = find_conflicting_booking(TimeRange.starting_at(time(9, 30), 30), bookings, "prof-1", DAY)

        assert conflict is target

    def test_returns_none_for_touching_intervals(self):
        bookings = [_booking(time(9, 0), duration=60)]

        assert find_conflicting_booking(TimeRange.starting_at(time(10, 0), 30), bookings, "prof-1", DAY) is None
        assert find_conflicting_booking(TimeRange.starting_at(time(8, 0), 60), bookings, "prof-1", DAY) is None
