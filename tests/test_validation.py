"""
Tests for booking request field validation.
"""

from datetime import date, time

import pendulum

from barberslots.domain.clock import REGIONAL_TIMEZONE
from barberslots.domain.models import OperatingWindow
from barberslots.domain.validation import validate_booking_request

NOW = pendulum.datetime(2030, 3, 14, 10, 15, tz=REGIONAL_TIMEZONE)


def _validate(**overrides):
    values = dict(
        now=NOW,
        professional_id="prof-1",
        service_id="svc-corte",
        booking_date="2030-03-15",
        start_time="09:00",
        duration_minutes=30,
        operating_window=OperatingWindow(opens=time(8, 0), closes=time(19, 0)),
    )
    values.update(overrides)
    return validate_booking_request(**values)


def _fields(result):
    return [error.field for error in result.errors]


class TestValidateBookingRequest:
    """Tests for validate_booking_request."""

    def test_valid_request(self):
        result = _validate()

        assert result.is_valid
        assert result.errors == []

    def test_accepts_parsed_values(self):
        assert _validate(booking_date=date(2030, 3, 15), start_time=time(9, 0)).is_valid

    def test_missing_fields_are_all_reported(self):
        result = _validate(professional_id="", service_id=None, booking_date=None, start_time="")

        assert _fields(result) == ["professional_id", "service_id", "date", "start_time"]
        assert result.messages() == [
            "Profissional é obrigatório",
            "Serviço é obrigatório",
            "Data é obrigatória",
            "Horário é obrigatório",
        ]

    def test_client_required_only_when_asked(self):
        assert _validate(client_id=None).is_valid

        result = _validate(client_id="  ", require_client=True)

        assert result.messages() == ["Cliente é obrigatório"]

    def test_malformed_date_and_time(self):
        result = _validate(booking_date="15/03/2030", start_time="9h")

        assert result.messages() == ["Formato de data inválido", "Formato de horário inválido"]

    def test_past_date(self):
        result = _validate(booking_date="2030-03-13")

        assert result.messages() == ["Data não pode ser no passado"]

    def test_today_past_time(self):
        """At 10:15 the 10:15 slot has already started and 10:30 has not."""
        assert _validate(booking_date="2030-03-14", start_time="10:15").messages() == ["Horário já passou"]
        assert _validate(booking_date="2030-03-14", start_time="10:30").is_valid

    def test_outside_operating_hours(self):
        result = _validate(start_time="19:00")

        assert _fields(result) == ["start_time"]
        assert result.messages()[0].startswith("Horário fora do expediente")

    def test_non_positive_duration(self):
        assert _validate(duration_minutes=0).messages() == ["Duração deve ser maior que zero"]

    def test_negative_price(self):
        assert _validate(price=-1.0).messages() == ["Preço não pode ser negativo"]
