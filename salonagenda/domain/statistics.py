"""
Service timing and cancellation statistics for the reports view.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Iterable, List, Mapping

from .models import (
    DEFAULT_DURATION_MINUTES,
    Appointment,
    AppointmentStatus,
    Service,
    index_services,
)

NO_REASON = "No reason given"


@dataclass(frozen=True)
class ServiceTimeStats:
    service_id: str
    name: str
    average_minutes: int
    scheduled_minutes: int
    appointment_count: int

    @property
    def difference(self) -> int:
        """Minutes the average runs over (positive) or under the catalogue duration."""
        return self.average_minutes - self.scheduled_minutes


@dataclass(frozen=True)
class ReasonCount:
    reason: str
    count: int
    percentage: Decimal


def service_time_stats(
    appointments: Iterable[Appointment],
    services: Iterable[Service] | Mapping[str, Service] | None,
    default_duration_minutes: int = DEFAULT_DURATION_MINUTES,
) -> List[ServiceTimeStats]:
    """
    Average booked time against the catalogue duration for each service.

    Only confirmed appointments of catalogue services count. Services without
    any are left out. The result is ordered by the size of the deviation,
    largest first, then by name.
    """
    catalogue = index_services(services)
    minutes: Dict[str, int] = {}
    counts: Dict[str, int] = {}

    for appointment in appointments:
        if appointment.status is not AppointmentStatus.CONFIRMED:
            continue
        if appointment.service_id not in catalogue:
            continue
        service_id = appointment.service_id
        minutes[service_id] = minutes.get(service_id, 0) + appointment.duration_minutes(
            catalogue, default_duration_minutes
        )
        counts[service_id] = counts.get(service_id, 0) + 1

    stats = [
        ServiceTimeStats(
            service_id=service_id,
            name=catalogue[service_id].name,
            average_minutes=_rounded(Decimal(minutes[service_id]) / counts[service_id]),
            scheduled_minutes=catalogue[service_id].duration_minutes,
            appointment_count=counts[service_id],
        )
        for service_id in counts
    ]
    stats.sort(key=lambda entry: (-abs(entry.difference), entry.name))
    return stats


def cancellation_reasons(
    appointments: Iterable[Appointment],
    start: datetime | None = None,
    end: datetime | None = None,
) -> List[ReasonCount]:
    """
    Count canceled appointments by the reason recorded on them.

    A missing or blank reason is reported as ``NO_REASON``. ``start`` and
    ``end`` bound the appointment start as ``[start, end)`` when given.
    Most frequent reasons come first.
    """
    counts: Dict[str, int] = {}

    for appointment in appointments:
        if appointment.status is not AppointmentStatus.CANCELED:
            continue
        if start is not None and appointment.start < start:
            continue
        if end is not None and appointment.start >= end:
            continue
        reason = (appointment.cancellation_reason or "").strip() or NO_REASON
        counts[reason] = counts.get(reason, 0) + 1

    total = sum(counts.values())
    reasons = [
        ReasonCount(
            reason=reason,
            count=count,
            percentage=(Decimal(count * 100) / total).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP),
        )
        for reason, count in counts.items()
    ]
    reasons.sort(key=lambda entry: (-entry.count, entry.reason))
    return reasons


def _rounded(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
