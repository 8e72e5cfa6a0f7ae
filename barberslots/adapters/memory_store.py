"""
In-memory booking store, service catalog and professional directory.

Used for tests and the CLI's mock mode. The insert is an atomic
check-and-insert under a lock, so it behaves like a database with an
exclusion constraint on ``(professional, date, [start, end))``.
"""

import json
import logging
import threading
import uuid
from datetime import date
from pathlib import Path
from typing import Any, Dict, Iterable, List

import pendulum

from ..domain.availability import find_conflicting_booking
from ..domain.clock import SystemClock
from ..domain.exceptions import BookingConflictError
from ..domain.models import (
    DEFAULT_BOOKING_DURATION_MINUTES,
    BookingProposal,
    ExistingBooking,
    Professional,
    ServiceSpec,
    parse_calendar_date,
    parse_local_time,
)

logger = logging.getLogger(__name__)

MOCK_DATA_FILE = Path(__file__).parent / "mock_shop_data.json"


class InMemoryShopData:
    """
    Shop data held in process memory.

    Implements ``BookingStore``, ``ServiceCatalog`` and ``ProfessionalDirectory``.
    """

    def __init__(
        self,
        services: Iterable[ServiceSpec] = (),
        professionals: Iterable[Professional] = (),
        bookings: Iterable[ExistingBooking] = (),
    ):
        self._services: Dict[str, ServiceSpec] = {service.id: service for service in services}
        self._professionals: List[Professional] = list(professionals)
        self._bookings: List[ExistingBooking] = list(bookings)
        self._lock = threading.Lock()

    @classmethod
    def from_json(cls, data_file: Path | None = None, today: date | None = None) -> "InMemoryShopData":
        """
        Load shop data from a JSON file (the bundled mock data by default).

        Bookings may give an absolute ``booking_date`` or a ``day_offset``
        relative to ``today`` so demo data never goes stale.

        Raises:
            FileNotFoundError: If the data file doesn't exist
        """
        data_file = data_file or MOCK_DATA_FILE
        if not data_file.exists():
            raise FileNotFoundError(f"Mock data file not found: {data_file}")

        with open(data_file, "r", encoding="utf-8") as f:
            raw = json.load(f)

        today = today or SystemClock().now().date()

        services = [
            ServiceSpec(
                id=str(item["id"]),
                name=item.get("name", ""),
                duration_minutes=int(item["duration_minutes"]),
                price=float(item.get("price", 0)),
            )
            for item in raw.get("services", [])
        ]
        professionals = [
            Professional(
                id=str(item["id"]),
                name=item["name"],
                is_active=item.get("is_active", True),
            )
            for item in raw.get("professionals", [])
        ]

        service_by_id = {service.id: service for service in services}
        bookings: List[ExistingBooking] = []
        for item in raw.get("bookings", []):
            try:
                bookings.append(cls._booking_from_record(item, service_by_id, today))
            except (KeyError, ValueError) as exc:
                logger.warning("Skipping invalid booking record %s: %s", item.get("id"), exc)

        return cls(services=services, professionals=professionals, bookings=bookings)

    @staticmethod
    def _booking_from_record(
        item: Dict[str, Any],
        service_by_id: Dict[str, ServiceSpec],
        today: date,
    ) -> ExistingBooking:
        if "day_offset" in item:
            booking_date = pendulum.date(today.year, today.month, today.day).add(days=int(item["day_offset"]))
        else:
            booking_date = parse_calendar_date(item["booking_date"])

        service = service_by_id.get(str(item.get("service_id")))
        duration = item.get("duration_minutes") or (
            service.duration_minutes if service else DEFAULT_BOOKING_DURATION_MINUTES
        )

        return ExistingBooking(
            id=str(item["id"]),
            professional_id=str(item["professional_id"]),
            date=booking_date,
            start_time=parse_local_time(item["booking_time"]),
            duration_minutes=int(duration),
            status=item.get("status", "confirmed"),
            client_name=item.get("client_name"),
            service_name=service.name if service else None,
        )

    def list_occupying_bookings(self, professional_id: str, booking_date: date) -> List[ExistingBooking]:
        with self._lock:
            return [
                booking for booking in self._bookings
                if booking.professional_id == professional_id
                and booking.date == booking_date
                and booking.is_occupying
            ]

    def insert_booking(self, proposal: BookingProposal) -> ExistingBooking:
        """
        Atomically check for overlaps and insert.

        Raises:
            BookingConflictError: If an occupying booking overlaps the proposal
        """
        service = self._services.get(proposal.service_id) if proposal.service_id else None

        with self._lock:
            conflict = find_conflicting_booking(
                proposal.time_range(),
                self._bookings,
                proposal.professional_id,
                proposal.date,
            )
            if conflict is not None:
                raise BookingConflictError(
                    f"Booking {conflict.id} already occupies {conflict.time_range()} "
                    f"for professional {proposal.professional_id} on {proposal.date}",
                    conflicting_booking_id=conflict.id,
                )

            booking = ExistingBooking(
                id=str(uuid.uuid4()),
                professional_id=proposal.professional_id,
                date=proposal.date,
                start_time=proposal.start_time,
                duration_minutes=proposal.duration_minutes,
                status=proposal.status,
                service_name=service.name if service else None,
            )
            self._bookings.append(booking)
            return booking

    def all_bookings(self) -> List[ExistingBooking]:
        with self._lock:
            return list(self._bookings)

    def get_service(self, service_id: str) -> ServiceSpec | None:
        return self._services.get(service_id)

    def list_services(self) -> List[ServiceSpec]:
        return list(self._services.values())

    def list_professionals(self) -> List[Professional]:
        return list(self._professionals)

