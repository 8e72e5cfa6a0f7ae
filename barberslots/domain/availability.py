"""
Core business logic for calculating bookable slots.

Pure domain logic without any external dependencies (no API calls, no
database, no I/O). Every caller surface (admin form, quick-appointment modal,
chat assistant) goes through this one filter.
"""

import logging
from datetime import date, time
from typing import Iterable, List, Optional

import pendulum
from pendulum import DateTime

from .clock import REGIONAL_TIMEZONE
from .models import (
    AvailabilityResult,
    ConflictMode,
    ExistingBooking,
    SlotQuery,
    TimeRange,
    to_minutes,
)
from .slot_generator import DEFAULT_GRANULARITY_MINUTES, generate_slots

logger = logging.getLogger(__name__)


def relevant_bookings(
    bookings: Iterable[ExistingBooking],
    professional_id: str,
    booking_date: date,
    exclude_booking_id: Optional[str] = None
) -> List[ExistingBooking]:
    """Occupying bookings of one professional on one date."""
    return [
        booking for booking in bookings
        if booking.professional_id == professional_id
        and booking.date == booking_date
        and booking.is_occupying
        and (exclude_booking_id is None or booking.id != exclude_booking_id)
    ]


def find_conflicting_booking(
    candidate: TimeRange,
    bookings: Iterable[ExistingBooking],
    professional_id: str,
    booking_date: date,
    exclude_booking_id: Optional[str] = None
) -> ExistingBooking | None:
    """
    Return the first occupying booking whose interval overlaps ``candidate``.

    Intervals are half-open, so a booking ending exactly when the candidate
    starts (or vice versa) is not a conflict.
    """
    for booking in relevant_bookings(bookings, professional_id, booking_date, exclude_booking_id):
        if candidate.overlaps(booking.time_range()):
            return booking
    return None


class AvailabilityCalculator:
    """
    Turns a shop's raw slot grid into bookable slots for one professional.

    Algorithm:
    1. Generate the raw grid for the operating window
    2. For today only, drop slots starting at or before the current minute
    3. Drop slots whose requested interval overlaps an occupying booking
    4. Return the surviving start times in grid order
    """

    def __init__(
        self,
        granularity_minutes: int = DEFAULT_GRANULARITY_MINUTES,
        timezone=REGIONAL_TIMEZONE
    ):
        self.granularity_minutes = granularity_minutes
        self.timezone = timezone

    def find_available_slots(self, query: SlotQuery) -> AvailabilityResult:
        """
        Compute the bookable slots for a query.

        Args:
            query: Professional, date, window, duration, bookings and "now"

        Returns:
            AvailabilityResult with the surviving slots. ``conflict_mode`` is
            ``EXACT_START`` when no requested duration was given.
        """
        duration = query.requested_duration_minutes
        conflict_mode = ConflictMode.DURATION_AWARE if duration is not None else ConflictMode.EXACT_START

        if duration == 0:
            logger.warning(
                "Requested duration is zero for professional %s on %s; no slots offered",
                query.professional_id,
                query.date,
            )
            return AvailabilityResult(slots=[], conflict_mode=conflict_mode)

        grid = generate_slots(query.operating_window, self.granularity_minutes)

        # Step 2: today's past slots
        candidates, past_excluded = self._exclude_past(grid, query.date, query.now)

        # Step 3: occupied slots
        bookings = relevant_bookings(
            query.occupying_bookings,
            query.professional_id,
            query.date,
            query.exclude_booking_id
        )

        if duration is None:
            logger.warning(
                "No service duration for professional %s on %s; "
                "falling back to exact start-time conflict detection",
                query.professional_id,
                query.date,
            )
            available, occupied_excluded = self._exclude_exact_starts(candidates, bookings)
        else:
            available, occupied_excluded = self._exclude_overlapping(candidates, bookings, duration)

        logger.debug(
            "Availability for %s on %s: %d grid, %d past, %d occupied, %d free",
            query.professional_id,
            query.date,
            len(grid),
            len(past_excluded),
            len(occupied_excluded),
            len(available),
        )

        return AvailabilityResult(
            slots=available,
            conflict_mode=conflict_mode,
            past_excluded=past_excluded,
            occupied_excluded=occupied_excluded,
        )

    def local_now(self, now: DateTime) -> DateTime:
        """Express ``now`` in the shop's regional timezone."""
        return pendulum.instance(now, tz=self.timezone).in_timezone(self.timezone)

    def is_today(self, query_date: date, now: DateTime) -> bool:
        return self.local_now(now).date() == query_date

    def _exclude_past(
        self,
        slots: List[time],
        query_date: date,
        now: DateTime
    ) -> tuple[List[time], List[time]]:
        """
        Drop slots that have already started today.

        A slot starting in the same minute as "now" counts as already started.
        Other dates are never filtered, however far away "now" is.
        """
        if not self.is_today(query_date, now):
            return list(slots), []

        local_now = self.local_now(now)
        cutoff = local_now.hour * 60 + local_now.minute

        kept: List[time] = []
        dropped: List[time] = []
        for slot in slots:
            if to_minutes(slot) <= cutoff:
                dropped.append(slot)
            else:
                kept.append(slot)
        return kept, dropped

    def _exclude_overlapping(
        self,
        slots: List[time],
        bookings: List[ExistingBooking],
        duration_minutes: int
    ) -> tuple[List[time], List[time]]:
        """Drop slots whose ``[start, start + duration)`` overlaps any booking."""
        if not bookings:
            return list(slots), []

        booked_ranges = [booking.time_range() for booking in bookings]

        kept: List[time] = []
        dropped: List[time] = []
        for slot in slots:
            candidate = TimeRange.starting_at(slot, duration_minutes)
            if any(candidate.overlaps(booked) for booked in booked_ranges):
                dropped.append(slot)
            else:
                kept.append(slot)
        return kept, dropped

    def _exclude_exact_starts(
        self,
        slots: List[time],
        bookings: List[ExistingBooking]
    ) -> tuple[List[time], List[time]]:
        """Degraded mode: only a booking starting at the same minute blocks a slot."""
        booked_starts = {to_minutes(booking.start_time) for booking in bookings}

        kept: List[time] = []
        dropped: List[time] = []
        for slot in slots:
            if to_minutes(slot) in booked_starts:
                dropped.append(slot)
            else:
                kept.append(slot)
        return kept, dropped
