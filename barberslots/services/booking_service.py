"""
Application service shared by every booking surface.

The admin booking form, the quick-appointment modal and the chat assistant
all go through ``BookingService`` so that they use the same duration-aware
availability filter, the same suggestions and the same commit-time guard.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, time
from typing import Dict, Iterable, List, Optional

from pendulum import DateTime

from ..domain.availability import AvailabilityCalculator, find_conflicting_booking
from ..domain.clock import Clock
from ..domain.exceptions import InvalidInputError
from ..domain.models import (
    DEFAULT_BOOKING_DURATION_MINUTES,
    AvailabilityResult,
    BookingProposal,
    BookingStatus,
    ExistingBooking,
    OperatingWindow,
    ServiceSpec,
    SlotQuery,
    TimeRange,
)
from ..domain.slot_generator import generate_slots
from ..domain.suggester import DEFAULT_SUGGESTION_COUNT, suggest_nearest_slots
from ..domain.validation import ValidationResult, validate_booking_request
from .conflict_guard import ConflictGuard, GuardOutcome
from .protocols import BookingStore, ServiceCatalog

logger = logging.getLogger(__name__)


@dataclass
class ConflictResult:
    """Outcome of checking one proposed appointment against the calendar."""
    has_conflict: bool
    conflicting_booking: Optional[ExistingBooking] = None
    suggested_slots: List[time] = field(default_factory=list)


@dataclass
class DayOverview:
    """Occupied bookings and free start times of one professional on one date."""
    professional_id: str
    date: date
    occupied: List[ExistingBooking] = field(default_factory=list)
    available: List[time] = field(default_factory=list)

    def occupied_ranges(self) -> List[TimeRange]:
        return [booking.time_range() for booking in self.occupied]


@dataclass
class BookingAttempt:
    """What happened to a booking request: invalid, committed or rejected."""
    validation: ValidationResult
    outcome: Optional[GuardOutcome] = None
    alternatives: List[time] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return self.validation.is_valid

    @property
    def committed(self) -> bool:
        return self.outcome is not None and self.outcome.committed

    @property
    def rejected(self) -> bool:
        return self.outcome is not None and self.outcome.rejected


class BookingService:
    """
    Orchestrates store reads, availability calculation and guarded writes.

    All collaborators are injected, including the clock, so the service holds
    no state of its own and is safe to share between requests.
    """

    def __init__(
        self,
        *,
        store: BookingStore,
        catalog: ServiceCatalog,
        operating_window: OperatingWindow,
        clock: Clock,
        calculator: AvailabilityCalculator | None = None,
        guard: ConflictGuard | None = None,
        suggestion_count: int = DEFAULT_SUGGESTION_COUNT,
    ) -> None:
        self._store = store
        self._catalog = catalog
        self._clock = clock
        self._calculator = calculator or AvailabilityCalculator()
        self._guard = guard or ConflictGuard(store)
        self.operating_window = operating_window
        self.suggestion_count = suggestion_count

    def now(self) -> DateTime:
        """Current instant in the shop's regional timezone."""
        return self._calculator.local_now(self._clock.now())

    def slot_grid(self) -> List[time]:
        return generate_slots(self.operating_window, self._calculator.granularity_minutes)

    def get_service(self, service_id: str) -> ServiceSpec:
        service = self._catalog.get_service(service_id)
        if service is None:
            raise InvalidInputError(f"Unknown service: '{service_id}'")
        return service

    def available_slots(
        self,
        professional_id: str,
        booking_date: date,
        *,
        service_id: Optional[str] = None,
        duration_minutes: Optional[int] = None,
        exclude_booking_id: Optional[str] = None,
    ) -> AvailabilityResult:
        """
        Bookable start times for a professional on a date.

        The duration comes from ``duration_minutes`` or, failing that, the
        service's catalog entry. With neither, the filter runs in its degraded
        exact-start mode and says so in the result.
        """
        duration = self._resolve_duration(service_id, duration_minutes)
        bookings = self._store.list_occupying_bookings(professional_id, booking_date)

        query = SlotQuery(
            professional_id=professional_id,
            date=booking_date,
            operating_window=self.operating_window,
            requested_duration_minutes=duration,
            occupying_bookings=bookings,
            now=self._clock.now(),
            exclude_booking_id=exclude_booking_id,
        )
        return self._calculator.find_available_slots(query)

    def day_overviews(
        self,
        professional_ids: Iterable[str],
        dates: Iterable[date],
        *,
        duration_minutes: int = DEFAULT_BOOKING_DURATION_MINUTES,
    ) -> Dict[str, Dict[date, DayOverview]]:
        """
        Occupied and free times per professional and date, e.g. today and tomorrow.

        Each (professional, date) pair is read from the store once; free times
        are computed for ``duration_minutes`` with the same filter as
        ``available_slots``.
        """
        dates = list(dates)
        now = self._clock.now()
        overviews: Dict[str, Dict[date, DayOverview]] = {}

        for professional_id in professional_ids:
            per_date = overviews.setdefault(professional_id, {})
            for booking_date in dates:
                bookings = self._store.list_occupying_bookings(professional_id, booking_date)
                result = self._calculator.find_available_slots(
                    SlotQuery(
                        professional_id=professional_id,
                        date=booking_date,
                        operating_window=self.operating_window,
                        requested_duration_minutes=duration_minutes,
                        occupying_bookings=bookings,
                        now=now,
                    )
                )
                per_date[booking_date] = DayOverview(
                    professional_id=professional_id,
                    date=booking_date,
                    occupied=sorted(bookings, key=lambda booking: booking.start_time),
                    available=result.slots,
                )
        return overviews

    def suggest_alternatives(
        self,
        professional_id: str,
        booking_date: date,
        desired_start: time,
        *,
        service_id: Optional[str] = None,
        duration_minutes: Optional[int] = None,
        count: Optional[int] = None,
        exclude_booking_id: Optional[str] = None,
    ) -> List[time]:
        """Nearest free slots to ``desired_start``, closest first."""
        availability = self.available_slots(
            professional_id,
            booking_date,
            service_id=service_id,
            duration_minutes=duration_minutes,
            exclude_booking_id=exclude_booking_id,
        )
        grid = self.slot_grid()
        occupied = [slot for slot in grid if not availability.is_available(slot)]
        occupied.append(desired_start)

        return suggest_nearest_slots(
            desired_start,
            occupied,
            grid,
            self.suggestion_count if count is None else count,
        )

    def check_conflicts(
        self,
        professional_id: str,
        booking_date: date,
        start_time: time,
        duration_minutes: int,
        *,
        exclude_booking_id: Optional[str] = None,
    ) -> ConflictResult:
        """
        Check one appointment against the calendar without writing anything.

        On a conflict the result names the blocking appointment and carries
        duration-aware suggestions.
        """
        candidate = TimeRange.starting_at(start_time, duration_minutes)
        bookings = self._store.list_occupying_bookings(professional_id, booking_date)

        conflict = find_conflicting_booking(
            candidate,
            bookings,
            professional_id,
            booking_date,
            exclude_booking_id,
        )
        if conflict is None:
            return ConflictResult(has_conflict=False)

        suggestions = self.suggest_alternatives(
            professional_id,
            booking_date,
            start_time,
            duration_minutes=duration_minutes,
            exclude_booking_id=exclude_booking_id,
        )
        return ConflictResult(
            has_conflict=True,
            conflicting_booking=conflict,
            suggested_slots=suggestions,
        )

    def build_proposal(
        self,
        *,
        professional_id: str,
        booking_date: date,
        start_time: time,
        service_id: str,
        client_id: Optional[str] = None,
        status: BookingStatus = BookingStatus.PENDING,
        notes: str = "",
    ) -> BookingProposal:
        """Capture the service's current duration and price into a proposal."""
        service = self.get_service(service_id)
        return BookingProposal(
            professional_id=professional_id,
            date=booking_date,
            start_time=start_time,
            duration_minutes=service.duration_minutes,
            service_id=service.id,
            client_id=client_id,
            price=service.price,
            notes=notes,
            status=status,
        )

    def validate(self, proposal: BookingProposal, *, require_client: bool = False) -> ValidationResult:
        return validate_booking_request(
            now=self.now(),
            professional_id=proposal.professional_id,
            service_id=proposal.service_id,
            booking_date=proposal.date,
            start_time=proposal.start_time,
            duration_minutes=proposal.duration_minutes,
            client_id=proposal.client_id,
            require_client=require_client,
            price=proposal.price,
            operating_window=self.operating_window,
        )

    def book(self, proposal: BookingProposal, *, require_client: bool = False) -> BookingAttempt:
        """
        Validate, re-check and persist a booking.

        A rejection (stale read or store constraint) comes back with fresh
        alternatives computed after the rejection.
        """
        validation = self.validate(proposal, require_client=require_client)
        if not validation.is_valid:
            logger.info(
                "Booking request for %s on %s at %s failed validation: %s",
                proposal.professional_id,
                proposal.date,
                proposal.start_time,
                "; ".join(validation.messages()),
            )
            return BookingAttempt(validation=validation)

        outcome = self._guard.commit(proposal)
        if outcome.committed:
            return BookingAttempt(validation=validation, outcome=outcome)

        alternatives = self.suggest_alternatives(
            proposal.professional_id,
            proposal.date,
            proposal.start_time,
            duration_minutes=proposal.duration_minutes,
        )
        return BookingAttempt(validation=validation, outcome=outcome, alternatives=alternatives)

    def _resolve_duration(self, service_id: Optional[str], duration_minutes: Optional[int]) -> Optional[int]:
        if duration_minutes is not None:
            return duration_minutes
        if service_id is None:
            return None
        return self.get_service(service_id).duration_minutes

