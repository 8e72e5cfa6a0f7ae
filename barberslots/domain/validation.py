"""
Field validation for booking requests coming from forms or the assistant.

Validation problems are reported as a list of field errors, separate from
conflict rejections, so a form can highlight the offending field.
"""

from dataclasses import dataclass, field
from datetime import date, time
from typing import List, Optional

from pendulum import DateTime

from .exceptions import InvalidInputError
from .models import OperatingWindow, parse_calendar_date, parse_local_time, to_minutes


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str


@dataclass
class ValidationResult:
    errors: List[FieldError] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def add(self, field_name: str, message: str) -> None:
        self.errors.append(FieldError(field=field_name, message=message))

    def messages(self) -> List[str]:
        return [error.message for error in self.errors]


def validate_booking_request(
    *,
    now: DateTime,
    professional_id: Optional[str],
    service_id: Optional[str],
    booking_date: date | str | None,
    start_time: time | str | None,
    duration_minutes: Optional[int] = None,
    client_id: Optional[str] = None,
    require_client: bool = False,
    price: Optional[float] = None,
    operating_window: Optional[OperatingWindow] = None
) -> ValidationResult:
    """
    Check a booking request before any availability or conflict work.

    ``now`` must already be in the shop's regional timezone.
    """
    result = ValidationResult()

    if require_client and not (client_id and client_id.strip()):
        result.add("client_id", "Cliente é obrigatório")

    if not (professional_id and professional_id.strip()):
        result.add("professional_id", "Profissional é obrigatório")

    if not (service_id and service_id.strip()):
        result.add("service_id", "Serviço é obrigatório")

    parsed_date: Optional[date] = None
    if booking_date is None or booking_date == "":
        result.add("date", "Data é obrigatória")
    else:
        try:
            parsed_date = parse_calendar_date(booking_date)
        except InvalidInputError:
            result.add("date", "Formato de data inválido")
        else:
            if parsed_date < now.date():
                result.add("date", "Data não pode ser no passado")

    parsed_time: Optional[time] = None
    if start_time is None or start_time == "":
        result.add("start_time", "Horário é obrigatório")
    else:
        try:
            parsed_time = parse_local_time(start_time)
        except InvalidInputError:
            result.add("start_time", "Formato de horário inválido")

    if parsed_time is not None:
        if parsed_date == now.date() and to_minutes(parsed_time) <= now.hour * 60 + now.minute:
            result.add("start_time", "Horário já passou")
        if operating_window is not None and not operating_window.contains(parsed_time):
            result.add("start_time", f"Horário fora do expediente ({operating_window})")

    if duration_minutes is not None and duration_minutes <= 0:
        result.add("duration_minutes", "Duração deve ser maior que zero")

    if price is not None and price < 0:
        result.add("price", "Preço não pode ser negativo")

    return result
