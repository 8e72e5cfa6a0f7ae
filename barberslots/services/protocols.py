"""
Collaborator protocols the scheduling services depend on.

Depending on protocols keeps the services independent of the actual
persistence backend: the Supabase adapter in production, the in-memory
store in tests and mock mode.
"""

from __future__ import annotations

from datetime import date
from typing import List, Protocol

from ..domain.models import BookingProposal, ExistingBooking, Professional, ServiceSpec


class BookingStore(Protocol):
    """
    Persistence of bookings.

    ``insert_booking`` must enforce the no-overlap invariant atomically
    (exclusion constraint or serializable check-and-insert) and raise
    ``BookingConflictError`` when it fires. The conflict guard only narrows the
    race window; it cannot close it on its own.
    """

    def list_occupying_bookings(self, professional_id: str, booking_date: date) -> List[ExistingBooking]:
        """Return pending and confirmed bookings of a professional on a date."""

    def insert_booking(self, proposal: BookingProposal) -> ExistingBooking:
        """Persist a new booking and return it as stored."""


class ServiceCatalog(Protocol):
    """Lookup of bookable services and their durations."""

    def get_service(self, service_id: str) -> ServiceSpec | None:
        """Return the service with the given id, if any."""

    def list_services(self) -> List[ServiceSpec]:
        """Return all active services."""


class ProfessionalDirectory(Protocol):
    """Lookup of the shop's professionals."""

    def list_professionals(self) -> List[Professional]:
        """Return the shop's professionals in display order."""
