"""
Domain models for the salon agenda.

Records arrive from an external persistence layer as plain values; the models
here normalise them (dates, money, status) so the calculation modules can rely
on a single representation.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, time
from decimal import Decimal
from enum import Enum
from typing import Mapping, Tuple

import pendulum
from pendulum import Date, DateTime

from .exceptions import InvalidIntervalError
from .overlap import overlaps

DEFAULT_DURATION_MINUTES = 60
DEFAULT_TIMEZONE = "America/Sao_Paulo"


def to_decimal(value) -> Decimal:
    """Coerce a currency amount to Decimal without float artefacts."""
    if isinstance(value, Decimal):
        return value
    if value is None:
        return Decimal("0")
    return Decimal(str(value))


def as_date(value: date) -> Date:
    """Normalise a date or datetime to a pendulum Date (calendar day)."""
    return pendulum.date(value.year, value.month, value.day)


@dataclass(frozen=True)
class TimeRange:
    """
    Represents an immutable time range with start and end datetime.

    Invariant: start must be before end.
    """
    start: DateTime
    end: DateTime

    def __post_init__(self):
        if self.start >= self.end:
            raise InvalidIntervalError(
                f"Start time {self.start} must be before end time {self.end}"
            )

    def duration_minutes(self) -> int:
        """Return the duration in minutes."""
        return int((self.end - self.start).total_seconds() // 60)

    def overlaps(self, other: "TimeRange") -> bool:
        """Check if this range overlaps with another."""
        return overlaps(self.start, self.end, other.start, other.end)

    def intersect(self, other: "TimeRange") -> "TimeRange | None":
        """
        Calculate the intersection of two time ranges.
        Returns None if there is no overlap.
        """
        start = max(self.start, other.start)
        end = min(self.end, other.end)

        if start >= end:
            return None

        return TimeRange(start=start, end=end)

    def __str__(self) -> str:
        return f"{self.start.format('DD/MM/YYYY HH:mm')} - {self.end.format('HH:mm')}"


@dataclass
class BusinessHours:
    """
    Configured daily booking window in local wall-clock time.
    """
    open_time: time
    close_time: time
    slot_minutes: int = 30
    timezone: str = DEFAULT_TIMEZONE

    def __post_init__(self):
        if self.close_time <= self.open_time:
            raise ValueError(
                f"Closing time {self.close_time} must be after opening time {self.open_time}"
            )
        if self.slot_minutes <= 0:
            raise ValueError("slot_minutes must be greater than zero")

    def at(self, day: date, wall_clock: time) -> DateTime:
        """Anchor a wall-clock time on a calendar day in the business timezone."""
        return pendulum.datetime(
            day.year,
            day.month,
            day.day,
            wall_clock.hour,
            wall_clock.minute,
            tz=self.timezone,
        )

    def window_for(self, day: date) -> TimeRange:
        """Get the business hours range for a specific day."""
        return TimeRange(
            start=self.at(day, self.open_time),
            end=self.at(day, self.close_time),
        )

    def total_minutes(self) -> int:
        """Bookable minutes in a business day."""
        open_minutes = self.open_time.hour * 60 + self.open_time.minute
        close_minutes = self.close_time.hour * 60 + self.close_time.minute
        return close_minutes - open_minutes


class AppointmentStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELED = "canceled"


@dataclass(frozen=True)
class Client:
    id: str
    name: str
    phone: str = ""
    email: str | None = None


@dataclass(frozen=True)
class Service:
    """A bookable service with a fixed duration."""
    id: str
    name: str
    price: Decimal
    duration_minutes: int

    def __post_init__(self):
        object.__setattr__(self, "price", to_decimal(self.price))
        if self.duration_minutes <= 0:
            raise ValueError(
                f"Service {self.name!r} must have a positive duration, got {self.duration_minutes}"
            )


@dataclass(frozen=True)
class Appointment:
    """
    A booking of one service for one client.

    ``end`` is snapshotted at booking time and may outlive later edits to the
    service duration. ``client`` and ``service`` are optional embedded
    snapshots used for display text and duration fallback.
    """
    id: str
    client_id: str
    service_id: str
    start: DateTime
    end: DateTime | None = None
    price: Decimal = Decimal("0")
    status: AppointmentStatus = AppointmentStatus.PENDING
    client: Client | None = None
    service: Service | None = None
    notes: str = ""
    cancellation_reason: str | None = None

    def __post_init__(self):
        object.__setattr__(self, "price", to_decimal(self.price))
        object.__setattr__(self, "status", AppointmentStatus(self.status))
        if self.end is not None and self.end <= self.start:
            raise InvalidIntervalError(
                f"Appointment {self.id} ends at {self.end}, not after its start {self.start}"
            )

    @property
    def is_active(self) -> bool:
        return self.status is not AppointmentStatus.CANCELED

    @property
    def day(self) -> Date:
        return as_date(self.start)

    def resolve_service(self, services: Mapping[str, Service] | None = None) -> Service | None:
        """Prefer the embedded snapshot, then the catalogue entry."""
        if self.service is not None:
            return self.service
        if services:
            return services.get(self.service_id)
        return None

    def effective_end(
        self,
        services: Mapping[str, Service] | None = None,
        default_minutes: int = DEFAULT_DURATION_MINUTES,
    ) -> DateTime:
        """
        End of the appointment for scheduling purposes.

        Falls back to the service duration and then to ``default_minutes``
        when no explicit end was recorded.
        """
        if self.end is not None:
            return self.end

        service = self.resolve_service(services)
        if service is not None:
            return self.start.add(minutes=service.duration_minutes)

        return self.start.add(minutes=default_minutes)

    def interval(
        self,
        services: Mapping[str, Service] | None = None,
        default_minutes: int = DEFAULT_DURATION_MINUTES,
    ) -> TimeRange:
        return TimeRange(start=self.start, end=self.effective_end(services, default_minutes))

    def duration_minutes(
        self,
        services: Mapping[str, Service] | None = None,
        default_minutes: int = DEFAULT_DURATION_MINUTES,
    ) -> int:
        return self.interval(services, default_minutes).duration_minutes()

    def with_status(self, status: AppointmentStatus | str, reason: str | None = None) -> "Appointment":
        """Return a copy transitioned to ``status``."""
        status = AppointmentStatus(status)
        if status is AppointmentStatus.CANCELED:
            return replace(self, status=status, cancellation_reason=reason)
        return replace(self, status=status, cancellation_reason=None)

    def rescheduled(self, start: DateTime, duration_minutes: int | None = None) -> "Appointment":
        """
        Return a copy moved to ``start``.

        The end is recomputed from ``duration_minutes`` or, when omitted, from
        the appointment's current length.
        """
        if duration_minutes is None:
            duration_minutes = self.duration_minutes()
        if duration_minutes <= 0:
            raise InvalidIntervalError("duration_minutes must be greater than zero")
        return replace(self, start=start, end=start.add(minutes=duration_minutes))


@dataclass(frozen=True)
class BlockedPeriod:
    """
    A day, or part of a day, explicitly marked unavailable.

    A partial block without a usable start/end is treated as all-day.
    """
    id: str
    date: Date
    all_day: bool = True
    start_time: time | None = None
    end_time: time | None = None
    reason: str = ""

    def __post_init__(self):
        object.__setattr__(self, "date", as_date(self.date))

    def is_full_day(self) -> bool:
        if self.all_day:
            return True
        if self.start_time is None or self.end_time is None:
            return True
        return self.end_time <= self.start_time

    def applies_to(self, day: date) -> bool:
        return self.date == as_date(day)

    def interval(self, business_hours: BusinessHours) -> TimeRange:
        """
        The blocked range on its day.

        Full-day blocks cover the whole business window.
        """
        if self.is_full_day():
            return business_hours.window_for(self.date)
        return TimeRange(
            start=business_hours.at(self.date, self.start_time),
            end=business_hours.at(self.date, self.end_time),
        )


@dataclass(frozen=True)
class Expense:
    id: str
    name: str
    amount: Decimal
    date: Date
    is_recurring: bool = False
    category: str | None = None

    def __post_init__(self):
        object.__setattr__(self, "amount", to_decimal(self.amount))
        object.__setattr__(self, "date", as_date(self.date))


@dataclass(frozen=True)
class AgendaSnapshot:
    """Immutable view of every collection the calculations read."""
    appointments: Tuple[Appointment, ...] = ()
    services: Tuple[Service, ...] = ()
    clients: Tuple[Client, ...] = ()
    blocked_periods: Tuple[BlockedPeriod, ...] = ()
    expenses: Tuple[Expense, ...] = ()

    def service_index(self) -> dict[str, Service]:
        return index_services(self.services)

    def find_service(self, identifier: str) -> Service | None:
        """Find a service by id or, case-insensitively, by name."""
        for service in self.services:
            if service.id == identifier or service.name.lower() == identifier.lower():
                return service
        return None


def index_services(services) -> dict[str, Service]:
    """Build an id -> Service lookup from any iterable or mapping of services."""
    if services is None:
        return {}
    if isinstance(services, Mapping):
        return dict(services)
    return {service.id: service for service in services}


def blocks_for_day(blocked_periods, day: date) -> list[BlockedPeriod]:
    return [block for block in blocked_periods if block.applies_to(day)]


def is_day_fully_blocked(blocked_periods, day: date) -> bool:
    return any(block.is_full_day() for block in blocks_for_day(blocked_periods, day))
