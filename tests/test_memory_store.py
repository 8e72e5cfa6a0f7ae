"""
Tests for the in-memory shop data used by tests and the CLI mock mode.
"""

import json
import logging
from datetime import date, time

import pendulum
import pytest

from barberslots.adapters.memory_store import InMemoryShopData
from barberslots.domain.exceptions import BookingConflictError
from barberslots.domain.models import BookingProposal, BookingStatus, ExistingBooking

TODAY = date(2030, 3, 14)


def _proposal(start, duration=30, professional_id="prof-joao"):
    return BookingProposal(
        professional_id=professional_id,
        date=TODAY,
        start_time=start,
        duration_minutes=duration,
        service_id="svc-corte",
    )


def test_bundled_mock_data_loads():
    data = InMemoryShopData.from_json(today=TODAY)

    assert {service.id for service in data.list_services()} >= {"svc-corte", "svc-combo"}
    assert any(not professional.is_active for professional in data.list_professionals())
    assert data.all_bookings()
    assert all(booking.date >= TODAY for booking in data.all_bookings())


def test_day_offset_and_duration_fallbacks(tmp_path):
    data_file = tmp_path / "shop.json"
    data_file.write_text(
        json.dumps(
            {
                "services": [{"id": "svc-combo", "name": "Corte + Barba", "duration_minutes": 60}],
                "professionals": [{"id": "prof-joao", "name": "João Silva"}],
                "bookings": [
                    {"id": "a", "professional_id": "prof-joao", "day_offset": 1,
                     "booking_time": "09:00", "service_id": "svc-combo"},
                    {"id": "b", "professional_id": "prof-joao", "booking_date": "2030-03-20",
                     "booking_time": "10:00:00"},
                    {"id": "c", "professional_id": "prof-joao", "day_offset": 0,
                     "booking_time": "11:00", "duration_minutes": 45, "status": "cancelled"},
                ],
            }
        ),
        encoding="utf-8",
    )

    bookings = {booking.id: booking for booking in InMemoryShopData.from_json(data_file, today=TODAY).all_bookings()}

    assert bookings["a"].date == date(2030, 3, 15)
    assert bookings["a"].duration_minutes == 60
    assert bookings["a"].service_name == "Corte + Barba"
    assert bookings["b"].date == date(2030, 3, 20)
    assert bookings["b"].duration_minutes == 30
    assert bookings["c"].duration_minutes == 45
    assert bookings["c"].status is BookingStatus.CANCELLED


def test_invalid_records_are_skipped(tmp_path, caplog):
    data_file = tmp_path / "shop.json"
    data_file.write_text(
        json.dumps(
            {
                "bookings": [
                    {"id": "bad-time", "professional_id": "p", "day_offset": 0, "booking_time": "25:00"},
                    {"id": "no-prof", "day_offset": 0, "booking_time": "09:00"},
                    {"id": "ok", "professional_id": "p", "day_offset": 0, "booking_time": "09:00"},
                ]
            }
        ),
        encoding="utf-8",
    )

    with caplog.at_level(logging.WARNING):
        data = InMemoryShopData.from_json(data_file, today=TODAY)

    assert [booking.id for booking in data.all_bookings()] == ["ok"]
    assert "bad-time" in caplog.text
    assert "no-prof" in caplog.text


def test_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError, match="Mock data file not found"):
        InMemoryShopData.from_json(tmp_path / "missing.json")


def test_list_occupying_bookings_filters_status():
    cancelled = ExistingBooking(
        id="bk-x", professional_id="prof-joao", date=TODAY, start_time=time(10, 0),
        duration_minutes=30, status=BookingStatus.CANCELLED,
    )
    data = InMemoryShopData(bookings=[cancelled])
    kept = data.insert_booking(_proposal(time(10, 0)))

    assert data.list_occupying_bookings("prof-joao", TODAY) == [kept]
    assert data.list_occupying_bookings("prof-rafa", TODAY) == []


def test_insert_rejects_overlap():
    data = InMemoryShopData()
    first = data.insert_booking(_proposal(time(9, 0), duration=60))

    with pytest.raises(BookingConflictError) as exc_info:
        data.insert_booking(_proposal(time(9, 30)))

    assert exc_info.value.conflicting_booking_id == first.id
    assert len(data.all_bookings()) == 1


def test_insert_allows_back_to_back_and_other_professionals():
    data = InMemoryShopData()
    data.insert_booking(_proposal(time(9, 0), duration=60))

    data.insert_booking(_proposal(time(10, 0)))
    data.insert_booking(_proposal(time(9, 0), professional_id="prof-rafa"))

    assert len(data.all_bookings()) == 3


def test_default_today_uses_regional_clock(tmp_path, monkeypatch):
    """01:00 UTC on the 14th is still the 13th in the shop's UTC-3 zone."""
    instant = pendulum.datetime(2030, 3, 14, 1, 0, tz="UTC")
    monkeypatch.setattr(pendulum, "now", lambda tz=None: instant.in_timezone(tz) if tz else instant)
    data_file = tmp_path / "shop.json"
    data_file.write_text(
        json.dumps({"bookings": [{"id": "a", "professional_id": "p", "day_offset": 0, "booking_time": "09:00"}]}),
        encoding="utf-8",
    )

    [booking] = InMemoryShopData.from_json(data_file).all_bookings()

    assert booking.date == date(2030, 3, 13)
