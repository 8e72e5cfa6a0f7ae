"""
Turns the chat assistant's structured booking intent into a guarded booking.

The language model only proposes ``{service_name, professional_name, date,
time}``; nothing it says is trusted until it has been validated here and
passed through the same availability filter and conflict guard as the admin
screens.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..domain.exceptions import InvalidInputError
from ..domain.models import (
    ExistingBooking,
    Professional,
    ServiceSpec,
    format_time,
    parse_calendar_date,
    parse_local_time,
)
from .booking_service import BookingService
from .protocols import ProfessionalDirectory, ServiceCatalog

logger = logging.getLogger(__name__)

_INTENT_PATTERN = re.compile(r"\{[\s\S]*\"action\":\s*\"create_booking\"[\s\S]*\}")


class BookingIntent(BaseModel):
    """Booking request as emitted by the assistant."""
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    action: Literal["create_booking"]
    service_name: str = Field(min_length=1, max_length=100)
    professional_name: Optional[str] = Field(default=None, max_length=100)
    date: str = Field(pattern=r"^\d{4}-\d{2}-\d{2}$")
    time: str = Field(pattern=r"^\d{2}:\d{2}$")


@dataclass
class AssistantReply:
    message: str
    booking_created: bool = False
    booking: Optional[ExistingBooking] = None
    suggestions: List[str] = field(default_factory=list)


def extract_booking_payload(message: str) -> Dict[str, Any] | None:
    """
    Find the ``create_booking`` JSON object embedded in an assistant message.

    Returns None when the message carries no booking request or the JSON is
    not parseable.
    """
    match = _INTENT_PATTERN.search(message)
    if not match:
        return None
    try:
        payload = json.loads(match.group(0))
    except json.JSONDecodeError as exc:
        logger.warning("Assistant emitted unparseable booking JSON: %s", exc)
        return None
    return payload if isinstance(payload, dict) else None


def strip_booking_payload(message: str) -> str:
    """The assistant message with the booking JSON removed."""
    return _INTENT_PATTERN.sub("", message).strip()


class AssistantBookingHandler:
    """Validates an assistant booking intent and books it through ``BookingService``."""

    def __init__(
        self,
        booking_service: BookingService,
        catalog: ServiceCatalog,
        directory: ProfessionalDirectory,
    ) -> None:
        self._booking_service = booking_service
        self._catalog = catalog
        self._directory = directory

    def handle(self, payload: Dict[str, Any], client_id: Optional[str]) -> AssistantReply:
        """
        Book the requested slot for an authenticated client.

        Expected failures (unauthenticated, malformed intent, unknown service,
        taken slot) come back as replies, never as exceptions.
        """
        if not client_id:
            logger.info("Booking attempt without authentication rejected")
            return AssistantReply(
                message="Para confirmar o agendamento, você precisa estar logado. Por favor, faça login primeiro."
            )

        try:
            intent = BookingIntent.model_validate(payload)
        except ValidationError as exc:
            logger.warning("Invalid booking data from assistant: %s", exc.errors())
            return AssistantReply(message="Houve um erro ao processar o agendamento. Por favor, tente novamente.")

        try:
            booking_date = parse_calendar_date(intent.date)
            start_time = parse_local_time(intent.time)
        except InvalidInputError as exc:
            logger.warning("Assistant proposed an impossible date or time: %s", exc)
            return AssistantReply(message="Data ou horário inválido. Por favor, informe outro horário.")

        service = self.resolve_service(intent.service_name)
        if service is None:
            return AssistantReply(message=f"Não encontrei o serviço '{intent.service_name}'.")

        professional = self.resolve_professional(intent.professional_name)
        if professional is None:
            return AssistantReply(message="Nenhum profissional disponível no momento.")

        proposal = self._booking_service.build_proposal(
            professional_id=professional.id,
            booking_date=booking_date,
            start_time=start_time,
            service_id=service.id,
            client_id=client_id,
        )
        attempt = self._booking_service.book(proposal, require_client=True)

        if not attempt.is_valid:
            return AssistantReply(message="Não foi possível agendar: " + "; ".join(attempt.validation.messages()) + ".")

        when = f"{booking_date.isoformat()} às {format_time(start_time)}"

        if attempt.rejected:
            suggestions = [format_time(slot) for slot in attempt.alternatives]
            if suggestions:
                tail = (
                    f"\n\nHorários disponíveis mais próximos: {', '.join(suggestions)}"
                    "\n\nGostaria de agendar em algum desses horários?"
                )
            else:
                tail = "\n\nPor favor, escolha outro horário ou data."
            return AssistantReply(
                message=(
                    f"Desculpe, o horário {format_time(start_time)} do dia {booking_date.isoformat()} "
                    f"já está ocupado para {professional.name}.{tail}"
                ),
                suggestions=suggestions,
            )

        return AssistantReply(
            message=f"Agendamento de {service.name or service.id} confirmado para {when} com {professional.name}.",
            booking_created=True,
            booking=attempt.outcome.booking,
        )

    def schedule_context(self, days: int = 2) -> str:
        """
        Occupied times of every active professional for the next ``days`` days.

        Handed to the assistant with each conversation so it does not propose
        taken times; an actual booking is still re-checked by ``handle``.
        """
        today = self._booking_service.now().date()
        dates = [today.add(days=offset) for offset in range(days)]
        professionals = [p for p in self._directory.list_professionals() if p.is_active]

        overviews = self._booking_service.day_overviews([p.id for p in professionals], dates)

        lines: List[str] = []
        for professional in professionals:
            busy_days = [
                overview for overview in overviews[professional.id].values() if overview.occupied
            ]
            if not busy_days:
                continue
            lines.append(f"{professional.name}:")
            for overview in busy_days:
                taken = ", ".join(str(time_range) for time_range in overview.occupied_ranges())
                lines.append(
                    f"  - {overview.date.isoformat()}: Horários OCUPADOS: {taken} "
                    f"({len(overview.available)} horários livres)"
                )

        if not lines:
            return "Todos os horários estão disponíveis no período consultado."
        return "\n".join(lines)

    def resolve_service(self, name: str) -> ServiceSpec | None:
        """First catalog service whose name contains ``name``, case-insensitively."""
        needle = name.lower()
        for service in self._catalog.list_services():
            if needle in service.name.lower():
                return service
        return None

    def resolve_professional(self, name: Optional[str]) -> Professional | None:
        """
        Professional whose name contains ``name``; the first active one otherwise.
        """
        active = [professional for professional in self._directory.list_professionals() if professional.is_active]
        if not active:
            return None
        if name:
            needle = name.lower()
            for professional in active:
                if needle in professional.name.lower():
                    return professional
            logger.info("No professional matching '%s'; using %s", name, active[0].name)
        return active[0]
