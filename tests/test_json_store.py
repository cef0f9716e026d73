"""
Tests for the JSON agenda store.
"""

import asyncio
import json
import logging
from datetime import time
from decimal import Decimal
from pathlib import Path

import pendulum
import pytest

from salonagenda.adapters.json_store import JsonAgendaStore
from salonagenda.domain import revenue
from salonagenda.domain.exceptions import DataSourceError
from salonagenda.domain.models import AppointmentStatus

TZ = "America/Sao_Paulo"


def _write(tmp_path: Path, document) -> Path:
    path = tmp_path / "agenda.json"
    path.write_text(json.dumps(document), encoding="utf-8")
    return path


def _document() -> dict:
    return {
        "services": [
            {"id": "svc-cut", "name": "Corte", "price": 40, "duration_minutes": 45},
            {"id": "svc-bad", "name": "Broken", "price": 10, "duration_minutes": 0},
        ],
        "clients": [
            {"id": "cli-ana", "name": "Ana Souza", "phone": "+55 11 98888-0001"},
        ],
        "appointments": [
            {"id": "apt-1", "client_id": "cli-ana", "service_id": "svc-cut", "start": "2025-11-25T10:00:00", "status": "confirmed"},
            {"id": "apt-2", "client_id": "cli-ana", "service_id": "svc-cut", "start": "2025-11-25T12:00:00", "end": "2025-11-25T11:00:00"},
            {"id": "apt-3", "client_id": "cli-ana", "service_id": "svc-cut"},
            {"id": "apt-4", "client_id": "cli-ana", "service_id": "svc-cut", "start": "2025-11-26T09:00:00", "price": "35.50", "status": "unknown"},
        ],
        "blocked_periods": [
            {"id": "blk-1", "date": "2025-11-27", "reason": "Training"},
            {"id": "blk-2", "date": "2025-11-28", "all_day": False, "start_time": "12:00", "end_time": "13:30"},
        ],
        "expenses": [
            {"id": "exp-1", "name": "Rent", "amount": "1500.00", "date": "2025-11-05", "is_recurring": True},
        ],
    }


class TestJsonAgendaStore:
    """Tests for JsonAgendaStore."""

    def test_load_snapshot(self, tmp_path: Path):
        store = JsonAgendaStore(_write(tmp_path, _document()), timezone=TZ)

        snapshot = store.load()

        assert [service.id for service in snapshot.services] == ["svc-cut"]
        assert [client.name for client in snapshot.clients] == ["Ana Souza"]
        assert [appointment.id for appointment in snapshot.appointments] == ["apt-1"]
        assert len(snapshot.blocked_periods) == 2
        assert snapshot.expenses[0].amount == Decimal("1500.00")
        assert snapshot.expenses[0].is_recurring

    def test_appointment_fields(self, tmp_path: Path):
        store = JsonAgendaStore(_write(tmp_path, _document()), timezone=TZ)

        appointment = store.load().appointments[0]

        assert appointment.start == pendulum.datetime(2025, 11, 25, 10, 0, tz=TZ)
        assert appointment.end is None
        assert appointment.status is AppointmentStatus.CONFIRMED
        assert appointment.price == Decimal("40")
        assert appointment.client.name == "Ana Souza"
        assert appointment.service.duration_minutes == 45
        assert appointment.effective_end() == pendulum.datetime(2025, 11, 25, 10, 45, tz=TZ)

    def test_blocked_periods(self, tmp_path: Path):
        store = JsonAgendaStore(_write(tmp_path, _document()), timezone=TZ)

        full, partial = store.load().blocked_periods

        assert full.is_full_day()
        assert full.date == pendulum.date(2025, 11, 27)
        assert not partial.is_full_day()
        assert partial.start_time == time(12, 0)
        assert partial.end_time == time(13, 30)

    def test_invalid_records_are_skipped_with_warning(self, tmp_path: Path, caplog):
        store = JsonAgendaStore(_write(tmp_path, _document()), timezone=TZ)

        with caplog.at_level(logging.WARNING):
            store.load()

        skipped = [record.getMessage() for record in caplog.records]
        assert any("svc-bad" in message for message in skipped)
        assert any("apt-2" in message for message in skipped)
        assert any("apt-3" in message for message in skipped)
        assert any("apt-4" in message for message in skipped)

    def test_non_object_records_are_skipped_with_warning(self, tmp_path: Path, caplog):
        document = {
            "appointments": [
                "garbage",
                None,
                {"id": "apt-1", "client_id": "cli-ana", "service_id": "svc-cut", "start": "2025-11-25T10:00:00"},
            ],
        }
        store = JsonAgendaStore(_write(tmp_path, document), timezone=TZ)

        with caplog.at_level(logging.WARNING):
            snapshot = store.load()

        assert [appointment.id for appointment in snapshot.appointments] == ["apt-1"]
        skipped = [record.getMessage() for record in caplog.records]
        assert sum("not an object" in message for message in skipped) == 2

    def test_utc_timestamps_are_converted_to_business_timezone(self, tmp_path: Path):
        document = {
            "appointments": [
                {"id": "apt-1", "client_id": "cli-ana", "service_id": "svc-cut", "start": "2025-06-10T13:00:00Z",
                 "end": "2025-06-10T14:00:00Z", "price": 50, "status": "confirmed"},
                {"id": "apt-2", "client_id": "cli-ana", "service_id": "svc-cut", "start": "2025-07-01T01:30:00Z",
                 "price": 80, "status": "confirmed"},
            ],
        }
        store = JsonAgendaStore(_write(tmp_path, document), timezone=TZ)

        first, late = store.load().appointments

        assert first.start == pendulum.datetime(2025, 6, 10, 10, 0, tz=TZ)
        assert first.start.format("HH:mm") == "10:00"
        assert first.end.format("HH:mm") == "11:00"
        assert late.day == pendulum.date(2025, 6, 30)
        assert revenue.monthly_revenue([first, late], 2025, 6) == Decimal("130")
        assert revenue.monthly_revenue([first, late], 2025, 7) == Decimal("0")

    def test_missing_sections_are_empty(self, tmp_path: Path):
        store = JsonAgendaStore(_write(tmp_path, {}), timezone=TZ)

        snapshot = store.load()

        assert snapshot.appointments == ()
        assert snapshot.expenses == ()

    def test_fetch_snapshot(self, tmp_path: Path):
        store = JsonAgendaStore(_write(tmp_path, _document()), timezone=TZ)

        snapshot = asyncio.run(store.fetch_snapshot())

        assert len(snapshot.appointments) == 1

    def test_missing_file(self, tmp_path: Path):
        store = JsonAgendaStore(tmp_path / "missing.json")

        with pytest.raises(DataSourceError):
            store.load()

    def test_invalid_json(self, tmp_path: Path):
        path = tmp_path / "agenda.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(DataSourceError):
            JsonAgendaStore(path).load()

    def test_root_must_be_object(self, tmp_path: Path):
        with pytest.raises(DataSourceError):
            JsonAgendaStore(_write(tmp_path, [])).load()
