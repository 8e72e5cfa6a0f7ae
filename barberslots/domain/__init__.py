"""
Domain layer - Pure business logic without external dependencies.
"""

from .availability import AvailabilityCalculator, find_conflicting_booking
from .clock import Clock, FixedClock, SystemClock
from .models import (
    AvailabilityResult,
    BookingProposal,
    BookingStatus,
    ConflictMode,
    ExistingBooking,
    OperatingWindow,
    Professional,
    ServiceSpec,
    SlotQuery,
    TimeRange,
)
from .slot_generator import generate_slots
from .suggester import suggest_nearest_slots

__all__ = [
    "AvailabilityCalculator",
    "AvailabilityResult",
    "BookingProposal",
    "BookingStatus",
    "Clock",
    "ConflictMode",
    "ExistingBooking",
    "FixedClock",
    "OperatingWindow",
    "Professional",
    "ServiceSpec",
    "SlotQuery",
    "SystemClock",
    "TimeRange",
    "find_conflicting_booking",
    "generate_slots",
    "suggest_nearest_slots",
]
