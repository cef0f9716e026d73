"""
Client ranking and inactivity lookups.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, List

from pendulum import DateTime

from .models import Appointment, AppointmentStatus, Client


@dataclass(frozen=True)
class ClientRank:
    rank: int
    client_id: str
    name: str
    total_spent: Decimal
    appointment_count: int


def client_ranking(
    appointments: Iterable[Appointment],
    clients: Iterable[Client],
    start: datetime,
    end: datetime,
    limit: int | None = 20,
) -> List[ClientRank]:
    """
    Rank clients by confirmed spend for appointments starting in ``[start, end)``.

    Clients without confirmed spend in the window are left out. Ties keep
    alphabetical order by name.
    """
    spent: Dict[str, Decimal] = {}
    visits: Dict[str, int] = {}

    for appointment in appointments:
        if appointment.status is not AppointmentStatus.CONFIRMED:
            continue
        if not start <= appointment.start < end:
            continue
        spent[appointment.client_id] = spent.get(appointment.client_id, Decimal("0")) + appointment.price
        visits[appointment.client_id] = visits.get(appointment.client_id, 0) + 1

    ranked = sorted(
        (client for client in clients if client.id in spent),
        key=lambda client: (-spent[client.id], client.name.lower()),
    )
    if limit is not None:
        ranked = ranked[:limit]

    return [
        ClientRank(
            rank=position,
            client_id=client.id,
            name=client.name,
            total_spent=spent[client.id],
            appointment_count=visits[client.id],
        )
        for position, client in enumerate(ranked, 1)
    ]


def last_visits(appointments: Iterable[Appointment], now: DateTime) -> Dict[str, DateTime]:
    """Latest non-canceled appointment start per client, up to ``now``."""
    latest: Dict[str, DateTime] = {}
    for appointment in appointments:
        if not appointment.is_active or appointment.start > now:
            continue
        previous = latest.get(appointment.client_id)
        if previous is None or appointment.start > previous:
            latest[appointment.client_id] = appointment.start
    return latest


def inactive_clients(
    clients: Iterable[Client],
    appointments: Iterable[Appointment],
    now: DateTime,
    inactive_days: int,
) -> List[Client]:
    """
    Clients whose last visit is older than ``inactive_days``.

    Clients who never visited are included. A client with an upcoming
    booking is not inactive.
    """
    appointments = list(appointments)
    cutoff = now.subtract(days=inactive_days)
    latest = last_visits(appointments, now)
    upcoming = {
        appointment.client_id for appointment in appointments
        if appointment.is_active and appointment.start > now
    }

    return [
        client for client in clients
        if client.id not in upcoming
        and (client.id not in latest or latest[client.id] < cutoff)
    ]
