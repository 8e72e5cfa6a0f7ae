"""
Service layer helpers that orchestrate adapters and domain logic.
"""

from .assistant import AssistantBookingHandler, AssistantReply, BookingIntent
from .booking_service import BookingAttempt, BookingService, ConflictResult, DayOverview
from .conflict_guard import ConflictGuard, GuardOutcome, GuardState, RejectionReason
from .protocols import BookingStore, ProfessionalDirectory, ServiceCatalog

__all__ = [
    "AssistantBookingHandler",
    "AssistantReply",
    "BookingAttempt",
    "BookingIntent",
    "BookingService",
    "BookingStore",
    "ConflictGuard",
    "ConflictResult",
    "DayOverview",
    "GuardOutcome",
    "GuardState",
    "ProfessionalDirectory",
    "RejectionReason",
    "ServiceCatalog",
]
