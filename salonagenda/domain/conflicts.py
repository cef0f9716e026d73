"""
Booking conflict detection.

Decides whether a candidate appointment interval may be booked against the
existing appointments and blocked periods. Pure read, no side effects.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterable, List, Mapping

from pendulum import DateTime

from .exceptions import InvalidIntervalError
from .models import (
    DEFAULT_DURATION_MINUTES,
    Appointment,
    BlockedPeriod,
    BusinessHours,
    Client,
    Service,
    TimeRange,
    as_date,
    index_services,
)
from .overlap import overlaps


@dataclass(frozen=True)
class ConflictResult:
    """
    Verdict for a candidate booking.

    Truthy when the candidate conflicts.
    """
    conflict: bool
    detail: str | None = None
    appointment: Appointment | None = None
    blocked_period: BlockedPeriod | None = None

    def __bool__(self) -> bool:
        return self.conflict


NO_CONFLICT = ConflictResult(conflict=False)


class ConflictDetector:
    """
    Checks candidate intervals against appointments and blocked periods.

    Algorithm:
    1. An all-day block on the candidate's day is a conflict (short-circuit)
    2. A partial block overlapping the candidate is a conflict
    3. Canceled appointments and the appointment being edited are ignored
    4. The first remaining appointment, in the given order, whose effective
       interval overlaps the candidate is reported
    """

    def __init__(
        self,
        business_hours: BusinessHours,
        services: Iterable[Service] | Mapping[str, Service] | None = None,
        clients: Iterable[Client] | Mapping[str, Client] | None = None,
        default_duration_minutes: int = DEFAULT_DURATION_MINUTES,
    ):
        self.business_hours = business_hours
        self.services = index_services(services)
        self.clients = _index_clients(clients)
        self.default_duration_minutes = default_duration_minutes

    def has_conflict(
        self,
        candidate: TimeRange,
        appointments: Iterable[Appointment],
        blocked_periods: Iterable[BlockedPeriod] = (),
        exclude_id: str | None = None,
    ) -> ConflictResult:
        """
        Decide whether ``candidate`` may be booked.

        Args:
            candidate: Interval of the appointment being booked
            appointments: Existing appointments, in storage order
            blocked_periods: Blocked days and partial blocks
            exclude_id: Id of the appointment being edited in place

        Returns:
            ConflictResult describing the first conflict found, if any
        """
        if candidate.end <= candidate.start:
            raise InvalidIntervalError("Candidate interval must end after it starts")

        days = _days_touched(candidate)
        blocks = [block for block in blocked_periods if block.date in days]

        for block in blocks:
            if block.is_full_day():
                return ConflictResult(
                    conflict=True,
                    detail=f"Date blocked: {_describe_block(block)}",
                    blocked_period=block,
                )

        for block in blocks:
            blocked = block.interval(self.business_hours)
            if overlaps(candidate.start, candidate.end, blocked.start, blocked.end):
                return ConflictResult(
                    conflict=True,
                    detail=f"Time blocked: {_describe_block(block)}",
                    blocked_period=block,
                )

        for appointment in appointments:
            if not appointment.is_active:
                continue
            if exclude_id is not None and appointment.id == exclude_id:
                continue

            end = appointment.effective_end(self.services, self.default_duration_minutes)
            if overlaps(candidate.start, candidate.end, appointment.start, end):
                return ConflictResult(
                    conflict=True,
                    detail=self._describe_appointment(appointment, end),
                    appointment=appointment,
                )

        return NO_CONFLICT

    def check(
        self,
        start: DateTime,
        end: DateTime,
        appointments: Iterable[Appointment],
        blocked_periods: Iterable[BlockedPeriod] = (),
        exclude_id: str | None = None,
    ) -> ConflictResult:
        """Same as ``has_conflict`` for a bare start/end pair."""
        return self.has_conflict(
            TimeRange(start=start, end=end),
            appointments,
            blocked_periods,
            exclude_id=exclude_id,
        )

    def check_service(
        self,
        start: DateTime,
        service: Service,
        appointments: Iterable[Appointment],
        blocked_periods: Iterable[BlockedPeriod] = (),
        exclude_id: str | None = None,
    ) -> ConflictResult:
        """Check a booking of ``service`` starting at ``start``."""
        return self.check(
            start,
            start.add(minutes=service.duration_minutes),
            appointments,
            blocked_periods,
            exclude_id=exclude_id,
        )

    def _describe_appointment(self, appointment: Appointment, end: DateTime) -> str:
        client = appointment.client or self.clients.get(appointment.client_id)
        service = appointment.resolve_service(self.services)
        client_name = client.name if client else appointment.client_id
        service_name = service.name if service else appointment.service_id

        return (
            f"Conflicts with {client_name} - {service_name} on "
            f"{appointment.start.format('DD/MM/YYYY')} "
            f"{appointment.start.format('HH:mm')}-{end.format('HH:mm')}"
        )


def _days_touched(candidate: TimeRange) -> List[date]:
    """Every calendar day from the candidate's start to its last instant."""
    current = as_date(candidate.start)
    last_day = as_date(candidate.end.subtract(microseconds=1))
    days = []
    while current <= last_day:
        days.append(current)
        current = current.add(days=1)
    return days


def _describe_block(block: BlockedPeriod) -> str:
    when = block.date.format("DD/MM/YYYY")
    if not block.is_full_day():
        when = f"{when} {block.start_time:%H:%M}-{block.end_time:%H:%M}"
    if block.reason:
        return f"{when} ({block.reason})"
    return when


def _index_clients(clients) -> dict[str, Client]:
    if clients is None:
        return {}
    if isinstance(clients, Mapping):
        return dict(clients)
    return {client.id: client for client in clients}
