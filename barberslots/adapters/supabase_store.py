"""
Supabase (PostgREST) client for bookings, services and professionals.
"""

import logging
from datetime import date
from typing import Any, Dict, List, Optional

import requests

from ..domain.exceptions import BookingConflictError, BookingStoreError
from ..domain.models import (
    DEFAULT_BOOKING_DURATION_MINUTES,
    OCCUPYING_STATUSES,
    BookingProposal,
    ExistingBooking,
    Professional,
    ServiceSpec,
    format_time,
    parse_calendar_date,
    parse_local_time,
)

logger = logging.getLogger(__name__)

# Postgres exclusion_violation / unique_violation
CONFLICT_ERROR_CODES = {"23P01", "23505"}


class SupabaseBookingStore:
    """
    Booking store backed by a Supabase project's REST API.

    The ``bookings`` table is expected to carry an exclusion constraint over
    ``(professional_id, booking_date, [start, start + duration))`` restricted
    to pending/confirmed rows. That constraint is what actually prevents
    double-booking; a violation surfaces as ``BookingConflictError``.
    """

    def __init__(
        self,
        url: str,
        api_key: str,
        barbershop_id: str,
        timeout_seconds: int = 30,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize the Supabase client.

        Args:
            url: Project URL, e.g. https://xyz.supabase.co
            api_key: Service or anon key sent as ``apikey`` and bearer token
            barbershop_id: Tenant whose data is read and written
            timeout_seconds: Per-request timeout
            session: Optional requests session (injected in tests)
        """
        self.rest_url = f"{url.rstrip('/')}/rest/v1"
        self.barbershop_id = barbershop_id
        self.timeout_seconds = timeout_seconds
        self.session = session or requests.Session()
        self.headers = {
            "apikey": api_key,
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }

    def list_occupying_bookings(self, professional_id: str, booking_date: date) -> List[ExistingBooking]:
        """
        Fetch pending and confirmed bookings of a professional on a date.

        Raises:
            BookingStoreError: If the API call fails
        """
        statuses = ",".join(sorted(status.value for status in OCCUPYING_STATUSES))
        params = {
            "select": "id,professional_id,booking_date,booking_time,status,duration_minutes,"
                      "service:services(name,duration_minutes),client:profiles(name)",
            "barbershop_id": f"eq.{self.barbershop_id}",
            "professional_id": f"eq.{professional_id}",
            "booking_date": f"eq.{booking_date.isoformat()}",
            "status": f"in.({statuses})",
        }
        rows = self._get("bookings", params)

        bookings: List[ExistingBooking] = []
        for row in rows:
            try:
                bookings.append(self._parse_booking(row))
            except (KeyError, ValueError) as exc:
                raise BookingStoreError(f"Could not parse booking {row.get('id')}: {exc}") from exc
        return bookings

    def insert_booking(self, proposal: BookingProposal) -> ExistingBooking:
        """
        Insert a booking; the database constraint decides whether it fits.

        Raises:
            BookingConflictError: If the no-overlap constraint rejects the row
            BookingStoreError: For any other failure
        """
        payload = {
            "barbershop_id": self.barbershop_id,
            "professional_id": proposal.professional_id,
            "service_id": proposal.service_id,
            "client_id": proposal.client_id,
            "booking_date": proposal.date.isoformat(),
            "booking_time": f"{format_time(proposal.start_time)}:00",
            "duration_minutes": proposal.duration_minutes,
            "total_price": proposal.price,
            "notes": proposal.notes or None,
            "status": proposal.status.value,
        }
        headers = {**self.headers, "Prefer": "return=representation"}

        try:
            response = self.session.post(
                f"{self.rest_url}/bookings",
                headers=headers,
                json=payload,
                timeout=self.timeout_seconds,
            )
        except requests.exceptions.RequestException as e:
            raise BookingStoreError(f"Failed to insert booking into Supabase: {e}") from e

        if self._is_conflict(response):
            raise BookingConflictError(
                f"Slot {format_time(proposal.start_time)} on {proposal.date} is already taken "
                f"for professional {proposal.professional_id}"
            )

        try:
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            raise BookingStoreError(f"Failed to insert booking into Supabase: {e}") from e

        try:
            rows = response.json()
        except ValueError:
            rows = None
        row = (rows[0] if rows else None) if isinstance(rows, list) else rows

        if not row:
            # Written, but hidden from us (e.g. a row-level security select policy)
            logger.warning(
                "Supabase accepted booking for %s on %s at %s but returned no row; using the proposal",
                proposal.professional_id,
                proposal.date,
                proposal.start_time,
            )
            return ExistingBooking(
                professional_id=proposal.professional_id,
                date=proposal.date,
                start_time=proposal.start_time,
                duration_minutes=proposal.duration_minutes,
                status=proposal.status,
            )

        if row.get("duration_minutes") is None:
            row["duration_minutes"] = proposal.duration_minutes
        return self._parse_booking(row)

    def get_service(self, service_id: str) -> ServiceSpec | None:
        rows = self._get(
            "services",
            {
                "select": "id,name,price,duration_minutes",
                "barbershop_id": f"eq.{self.barbershop_id}",
                "id": f"eq.{service_id}",
            },
        )
        return self._parse_service(rows[0]) if rows else None

    def list_services(self) -> List[ServiceSpec]:
        rows = self._get(
            "services",
            {
                "select": "id,name,price,duration_minutes",
                "barbershop_id": f"eq.{self.barbershop_id}",
                "is_active": "eq.true",
                "order": "name",
            },
        )
        return [self._parse_service(row) for row in rows]

    def list_professionals(self) -> List[Professional]:
        rows = self._get(
            "professionals",
            {
                "select": "id,name,is_active",
                "barbershop_id": f"eq.{self.barbershop_id}",
                "order": "name",
            },
        )
        return [
            Professional(id=str(row["id"]), name=row["name"], is_active=row.get("is_active", True))
            for row in rows
        ]

    def _get(self, table: str, params: Dict[str, str]) -> List[Dict[str, Any]]:
        try:
            response = self.session.get(
                f"{self.rest_url}/{table}",
                headers=self.headers,
                params=params,
                timeout=self.timeout_seconds,
            )
            response.raise_for_status()
            return response.json()
        except requests.exceptions.RequestException as e:
            raise BookingStoreError(f"Failed to fetch {table} from Supabase: {e}") from e

    @staticmethod
    def _is_conflict(response: requests.Response) -> bool:
        if response.status_code == 409:
            return True
        if response.status_code < 400:
            return False
        try:
            body = response.json()
        except ValueError:
            return False
        return isinstance(body, dict) and body.get("code") in CONFLICT_ERROR_CODES

    @staticmethod
    def _parse_service(row: Dict[str, Any]) -> ServiceSpec:
        return ServiceSpec(
            id=str(row["id"]),
            name=row.get("name") or "",
            duration_minutes=int(row["duration_minutes"]),
            price=float(row.get("price") or 0),
        )

    @staticmethod
    def _parse_booking(row: Dict[str, Any]) -> ExistingBooking:
        """
        Convert a bookings row into the domain model.

        The duration captured on the booking wins; older rows without one fall
        back to the joined service's duration and then to 30 minutes.
        """
        service = row.get("service") or {}
        client = row.get("client") or {}
        duration = (
            row.get("duration_minutes")
            or service.get("duration_minutes")
            or DEFAULT_BOOKING_DURATION_MINUTES
        )

        return ExistingBooking(
            id=str(row["id"]),
            professional_id=str(row["professional_id"]),
            date=parse_calendar_date(row["booking_date"]),
            start_time=parse_local_time(row["booking_time"]),
            duration_minutes=int(duration),
            status=row.get("status", "pending"),
            client_name=client.get("name"),
            service_name=service.get("name"),
        )
