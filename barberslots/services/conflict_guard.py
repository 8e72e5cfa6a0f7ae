"""
Commit-time re-validation of a booking proposal.

Between a client reading the free slots and submitting a booking, another
actor may take the same slot. The guard re-reads the occupying bookings at
write time and re-applies the overlap check to the proposed interval only.

States per attempt::

    PROPOSED -> REVALIDATED -> COMMITTED
                            -> REJECTED

There is no retry loop; a rejected caller re-runs the availability filter
and offers fresh alternatives.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from ..domain.availability import find_conflicting_booking
from ..domain.exceptions import BookingConflictError
from ..domain.models import BookingProposal, ExistingBooking
from .protocols import BookingStore

logger = logging.getLogger(__name__)


class GuardState(str, Enum):
    PROPOSED = "proposed"
    REVALIDATED = "revalidated"
    COMMITTED = "committed"
    REJECTED = "rejected"


class RejectionReason(str, Enum):
    STALE_READ = "stale_read"
    STORE_CONSTRAINT = "store_constraint"


@dataclass
class GuardOutcome:
    """Terminal result of one booking attempt."""
    proposal: BookingProposal
    state: GuardState
    history: List[GuardState] = field(default_factory=list)
    booking: Optional[ExistingBooking] = None
    conflicting_booking: Optional[ExistingBooking] = None
    reason: Optional[RejectionReason] = None

    @property
    def committed(self) -> bool:
        return self.state is GuardState.COMMITTED

    @property
    def rejected(self) -> bool:
        return self.state is GuardState.REJECTED


class ConflictGuard:
    """
    Re-validates a proposal against the store right before writing it.

    A pass is best effort, not a guarantee: the store's atomic constraint may
    still fire under a true race, and that is reported exactly like a stale
    read (``REJECTED``), with reason ``STORE_CONSTRAINT``.
    """

    def __init__(self, store: BookingStore) -> None:
        self._store = store

    def commit(self, proposal: BookingProposal) -> GuardOutcome:
        """
        Re-validate and, if still free, persist the proposal.

        Raises:
            BookingStoreError: For store failures other than a conflict
        """
        history = [GuardState.PROPOSED]

        current = self._store.list_occupying_bookings(proposal.professional_id, proposal.date)
        conflict = find_conflicting_booking(
            proposal.time_range(),
            current,
            proposal.professional_id,
            proposal.date,
        )
        history.append(GuardState.REVALIDATED)

        if conflict is not None:
            logger.info(
                "Rejected booking for %s on %s at %s: overlaps booking %s (%s)",
                proposal.professional_id,
                proposal.date,
                proposal.start_time,
                conflict.id,
                conflict.time_range(),
            )
            return self._rejected(proposal, history, RejectionReason.STALE_READ, conflict)

        try:
            booking = self._store.insert_booking(proposal)
        except BookingConflictError as exc:
            logger.warning(
                "Store constraint rejected booking for %s on %s at %s after re-validation passed: %s",
                proposal.professional_id,
                proposal.date,
                proposal.start_time,
                exc,
            )
            conflicting = self._find_conflict_after_race(proposal)
            return self._rejected(proposal, history, RejectionReason.STORE_CONSTRAINT, conflicting)

        history.append(GuardState.COMMITTED)
        logger.info(
            "Committed booking %s for %s on %s at %s",
            booking.id,
            proposal.professional_id,
            proposal.date,
            proposal.start_time,
        )
        return GuardOutcome(
            proposal=proposal,
            state=GuardState.COMMITTED,
            history=history,
            booking=booking,
        )

    def _find_conflict_after_race(self, proposal: BookingProposal) -> ExistingBooking | None:
        current = self._store.list_occupying_bookings(proposal.professional_id, proposal.date)
        return find_conflicting_booking(
            proposal.time_range(),
            current,
            proposal.professional_id,
            proposal.date,
        )

    @staticmethod
    def _rejected(
        proposal: BookingProposal,
        history: List[GuardState],
        reason: RejectionReason,
        conflicting: ExistingBooking | None,
    ) -> GuardOutcome:
        history.append(GuardState.REJECTED)
        return GuardOutcome(
            proposal=proposal,
            state=GuardState.REJECTED,
            history=history,
            conflicting_booking=conflicting,
            reason=reason,
        )
