"""
JSON snapshot store for agenda data.
"""

from __future__ import annotations

import json
import logging
from datetime import time
from decimal import InvalidOperation
from pathlib import Path
from typing import Any, Callable, Dict, List, TypeVar

import pendulum

from ..domain.exceptions import DataSourceError
from ..domain.models import (
    DEFAULT_TIMEZONE,
    AgendaSnapshot,
    Appointment,
    BlockedPeriod,
    Client,
    Expense,
    Service,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

RECORD_ERRORS = (KeyError, ValueError, TypeError, InvalidOperation)


class JsonAgendaStore:
    """
    Loads clients, services, appointments, blocked periods and expenses
    from a single JSON document.

    Timestamps without an offset are read as wall-clock time in ``timezone``;
    timestamps with an offset are converted into it.
    Malformed records are skipped with a warning so one bad record does not
    hide the rest of the agenda.
    """

    def __init__(self, data_file: Path, timezone: str = DEFAULT_TIMEZONE):
        """
        Initialize the store.

        Args:
            data_file: Path to the JSON document
            timezone: IANA timezone identifier of the business
        """
        self.data_file = Path(data_file)
        self.timezone = timezone

    async def fetch_snapshot(self) -> AgendaSnapshot:
        """Return the current agenda data."""
        return self.load()

    def load(self) -> AgendaSnapshot:
        """
        Read and parse the JSON document.

        Raises:
            DataSourceError: If the file is missing or is not valid JSON
        """
        raw = self._read_document()

        services = self._parse_records(raw.get("services", []), self._parse_service, "service")
        clients = self._parse_records(raw.get("clients", []), self._parse_client, "client")

        service_index = {service.id: service for service in services}
        client_index = {client.id: client for client in clients}

        appointments = self._parse_records(
            raw.get("appointments", []),
            lambda record: self._parse_appointment(record, service_index, client_index),
            "appointment",
        )
        blocked_periods = self._parse_records(
            raw.get("blocked_periods", []), self._parse_blocked_period, "blocked period"
        )
        expenses = self._parse_records(raw.get("expenses", []), self._parse_expense, "expense")

        logger.debug(
            "Loaded %d appointments, %d services, %d clients, %d blocks, %d expenses from %s",
            len(appointments),
            len(services),
            len(clients),
            len(blocked_periods),
            len(expenses),
            self.data_file,
        )

        return AgendaSnapshot(
            appointments=tuple(appointments),
            services=tuple(services),
            clients=tuple(clients),
            blocked_periods=tuple(blocked_periods),
            expenses=tuple(expenses),
        )

    def _read_document(self) -> Dict[str, Any]:
        if not self.data_file.exists():
            raise DataSourceError(f"Data file not found: {self.data_file}")

        try:
            with open(self.data_file, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except json.JSONDecodeError as exc:
            raise DataSourceError(f"Invalid JSON in {self.data_file}: {exc}") from exc

        if not isinstance(raw, dict):
            raise DataSourceError("Data file must contain an object at the root level.")

        return raw

    @staticmethod
    def _parse_records(records: List[Dict[str, Any]], parse: Callable[[Dict[str, Any]], T], kind: str) -> List[T]:
        parsed: List[T] = []
        for record in records:
            if not isinstance(record, dict):
                logger.warning("Skipping %s record that is not an object: %r", kind, record)
                continue
            try:
                parsed.append(parse(record))
            except RECORD_ERRORS as exc:
                logger.warning("Skipping invalid %s record %r: %s", kind, record.get("id"), exc)
        return parsed

    def _parse_datetime(self, value: str) -> pendulum.DateTime:
        """Parse a timestamp and express it in the business timezone."""
        parsed = pendulum.parse(value, tz=self.timezone)
        if not isinstance(parsed, pendulum.DateTime):
            raise ValueError(f"Expected a date and time, got {value!r}")
        # strings with an offset (e.g. UTC "Z") keep it until converted
        return parsed.in_timezone(self.timezone)

    def _parse_date(self, value: str) -> pendulum.Date:
        return self._parse_datetime(value).date()

    @staticmethod
    def _parse_time(value: str | None) -> time | None:
        if not value:
            return None
        return time.fromisoformat(value)

    @staticmethod
    def _parse_service(record: Dict[str, Any]) -> Service:
        return Service(
            id=str(record["id"]),
            name=record["name"],
            price=record.get("price", 0),
            duration_minutes=int(record["duration_minutes"]),
        )

    @staticmethod
    def _parse_client(record: Dict[str, Any]) -> Client:
        return Client(
            id=str(record["id"]),
            name=record["name"],
            phone=record.get("phone", ""),
            email=record.get("email"),
        )

    def _parse_appointment(
        self,
        record: Dict[str, Any],
        services: Dict[str, Service],
        clients: Dict[str, Client],
    ) -> Appointment:
        service_id = str(record["service_id"])
        client_id = str(record["client_id"])
        end = record.get("end")
        service = services.get(service_id)

        return Appointment(
            id=str(record["id"]),
            client_id=client_id,
            service_id=service_id,
            start=self._parse_datetime(record["start"]),
            end=self._parse_datetime(end) if end else None,
            price=record.get("price", service.price if service else 0),
            status=record.get("status", "pending"),
            client=clients.get(client_id),
            service=service,
            notes=record.get("notes", ""),
            cancellation_reason=record.get("cancellation_reason"),
        )

    def _parse_blocked_period(self, record: Dict[str, Any]) -> BlockedPeriod:
        return BlockedPeriod(
            id=str(record["id"]),
            date=self._parse_date(record["date"]),
            all_day=bool(record.get("all_day", True)),
            start_time=self._parse_time(record.get("start_time")),
            end_time=self._parse_time(record.get("end_time")),
            reason=record.get("reason", ""),
        )

    def _parse_expense(self, record: Dict[str, Any]) -> Expense:
        return Expense(
            id=str(record["id"]),
            name=record["name"],
            amount=record["amount"],
            date=self._parse_date(record["date"]),
            is_recurring=bool(record.get("is_recurring", False)),
            category=record.get("category"),
        )
