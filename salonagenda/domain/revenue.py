"""
Revenue and profit aggregation over appointment and expense collections.

Realised revenue counts confirmed appointments only unless the caller passes
``include_pending=True``. Canceled appointments never count. Empty inputs
yield zero or empty results.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping

import pendulum
from pendulum import Date, DateTime

from .models import (
    DEFAULT_TIMEZONE,
    Appointment,
    AppointmentStatus,
    Expense,
    Service,
    as_date,
    index_services,
)

ZERO = Decimal("0")
SUNDAY = 6


@dataclass(frozen=True)
class ServiceRevenue:
    service_id: str
    name: str
    count: int
    total_revenue: Decimal


@dataclass(frozen=True)
class MonthlyFigures:
    month: Date
    revenue: Decimal
    expenses: Decimal

    @property
    def profit(self) -> Decimal:
        return self.revenue - self.expenses


@dataclass(frozen=True)
class StatusCounts:
    total: int
    confirmed: int
    pending: int
    canceled: int
    confirmed_revenue: Decimal
    expected_revenue: Decimal


@dataclass(frozen=True)
class FinancialSummary:
    revenue: Decimal
    expenses: Decimal
    profit: Decimal
    projected_revenue: Decimal
    revenue_change: Decimal


def _counts(appointment: Appointment, include_pending: bool) -> bool:
    if appointment.status is AppointmentStatus.CONFIRMED:
        return True
    return include_pending and appointment.status is AppointmentStatus.PENDING


def _total(appointments: Iterable[Appointment]) -> Decimal:
    return sum((appointment.price for appointment in appointments), ZERO)


def week_start(day: date, week_starts_on: int = SUNDAY) -> Date:
    """First day of the week containing ``day`` (0=Monday, 6=Sunday)."""
    day = as_date(day)
    return day.subtract(days=(day.weekday() - week_starts_on) % 7)


def month_window(year: int, month: int, timezone: str = DEFAULT_TIMEZONE) -> tuple[DateTime, DateTime]:
    """Half-open ``[first instant, first instant of next month)`` window."""
    start = pendulum.datetime(year, month, 1, tz=timezone)
    return start, start.add(months=1)


def revenue_in_range(
    appointments: Iterable[Appointment],
    start: datetime,
    end: datetime,
    include_pending: bool = False,
) -> Decimal:
    """Sum of prices for appointments starting in ``[start, end)``."""
    return _total(
        appointment for appointment in appointments
        if _counts(appointment, include_pending) and start <= appointment.start < end
    )


def revenue_between_days(
    appointments: Iterable[Appointment],
    first_day: date,
    last_day: date,
    include_pending: bool = False,
) -> Decimal:
    """Sum of prices for appointments on calendar days ``first_day..last_day``."""
    first_day = as_date(first_day)
    last_day = as_date(last_day)
    return _total(
        appointment for appointment in appointments
        if _counts(appointment, include_pending) and first_day <= appointment.day <= last_day
    )


def daily_revenue(appointments: Iterable[Appointment], day: date, include_pending: bool = False) -> Decimal:
    return revenue_between_days(appointments, day, day, include_pending)


def weekly_revenue(
    appointments: Iterable[Appointment],
    day: date,
    week_starts_on: int = SUNDAY,
    include_pending: bool = False,
) -> Decimal:
    first_day = week_start(day, week_starts_on)
    return revenue_between_days(appointments, first_day, first_day.add(days=6), include_pending)


def monthly_revenue(
    appointments: Iterable[Appointment],
    year: int,
    month: int,
    include_pending: bool = False,
) -> Decimal:
    first_day = pendulum.date(year, month, 1)
    return revenue_between_days(appointments, first_day, first_day.end_of("month"), include_pending)


def expected_revenue(
    appointments: Iterable[Appointment],
    now: DateTime,
    month_end: DateTime | None = None,
    include_pending: bool = False,
    from_month_start: bool = False,
) -> Decimal:
    """
    Projected revenue from bookings that have not happened yet.

    Counts appointments starting between ``now`` (or the start of the month
    when ``from_month_start`` is set) and ``month_end`` inclusive. Whether
    pending bookings count is the caller's explicit choice.
    """
    lower = now.start_of("month") if from_month_start else now
    upper = month_end if month_end is not None else now.end_of("month")
    return _total(
        appointment for appointment in appointments
        if _counts(appointment, include_pending) and lower <= appointment.start <= upper
    )


def _expense_in_window(expense: Expense, start: datetime, end: datetime) -> bool:
    first_day = as_date(start)
    last_day = as_date(end)
    if end.time() == datetime.min.time():
        # a window ending at midnight does not include that day
        return first_day <= expense.date < last_day
    return first_day <= expense.date <= last_day


def expenses_in_range(expenses: Iterable[Expense], start: datetime, end: datetime) -> Decimal:
    """Sum of expense amounts dated inside ``[start, end)`` (day granularity)."""
    return sum(
        (expense.amount for expense in expenses if _expense_in_window(expense, start, end)),
        ZERO,
    )


def expenses_between_days(expenses: Iterable[Expense], first_day: date, last_day: date) -> Decimal:
    first_day = as_date(first_day)
    last_day = as_date(last_day)
    return sum((expense.amount for expense in expenses if first_day <= expense.date <= last_day), ZERO)


def net_profit(revenue: Decimal, expenses: Iterable[Expense], start: datetime, end: datetime) -> Decimal:
    """Revenue minus the expenses of the same window."""
    return revenue - expenses_in_range(expenses, start, end)


def service_breakdown(
    appointments: Iterable[Appointment],
    services: Iterable[Service] | Mapping[str, Service] | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    include_pending: bool = False,
) -> List[ServiceRevenue]:
    """
    Appointment count and revenue per service, highest revenue first.

    Args:
        appointments: Appointments to aggregate
        services: Service catalogue used to resolve names
        start: Optional inclusive lower bound on appointment start
        end: Optional exclusive upper bound on appointment start
        include_pending: Also count pending appointments
    """
    catalogue = index_services(services)
    counts: Dict[str, int] = {}
    totals: Dict[str, Decimal] = {}
    names: Dict[str, str] = {}

    for appointment in appointments:
        if not _counts(appointment, include_pending):
            continue
        if start is not None and appointment.start < start:
            continue
        if end is not None and appointment.start >= end:
            continue

        service_id = appointment.service_id
        counts[service_id] = counts.get(service_id, 0) + 1
        totals[service_id] = totals.get(service_id, ZERO) + appointment.price

        if service_id not in names:
            service = appointment.resolve_service(catalogue)
            names[service_id] = service.name if service else service_id

    breakdown = [
        ServiceRevenue(
            service_id=service_id,
            name=names[service_id],
            count=counts[service_id],
            total_revenue=totals[service_id],
        )
        for service_id in counts
    ]
    breakdown.sort(key=lambda entry: (-entry.total_revenue, entry.name))
    return breakdown


def monthly_series(
    appointments: Iterable[Appointment],
    expenses: Iterable[Expense],
    until: date,
    months: int = 6,
    include_pending: bool = False,
) -> List[MonthlyFigures]:
    """Revenue and expenses for the ``months`` months ending with ``until``'s month, oldest first."""
    appointments = list(appointments)
    expenses = list(expenses)
    last_month = as_date(until).start_of("month")

    series: List[MonthlyFigures] = []
    for offset in range(months - 1, -1, -1):
        first_day = last_month.subtract(months=offset)
        last_day = first_day.end_of("month")
        series.append(
            MonthlyFigures(
                month=first_day,
                revenue=revenue_between_days(appointments, first_day, last_day, include_pending),
                expenses=expenses_between_days(expenses, first_day, last_day),
            )
        )
    return series


def revenue_change_percent(current: Decimal, previous: Decimal) -> Decimal:
    """
    Month-over-month change in percent.

    Growth from nothing is reported as 100; no revenue in either month is 0.
    """
    if previous > 0:
        return (Decimal(current) - Decimal(previous)) / Decimal(previous) * 100
    if current > 0:
        return Decimal(100)
    return ZERO


def status_counts(appointments: Iterable[Appointment], start: datetime, end: datetime) -> StatusCounts:
    """Per-status totals for appointments starting in ``[start, end)``."""
    window = [appointment for appointment in appointments if start <= appointment.start < end]
    by_status = {status: 0 for status in AppointmentStatus}
    for appointment in window:
        by_status[appointment.status] += 1

    return StatusCounts(
        total=len(window),
        confirmed=by_status[AppointmentStatus.CONFIRMED],
        pending=by_status[AppointmentStatus.PENDING],
        canceled=by_status[AppointmentStatus.CANCELED],
        confirmed_revenue=_total(a for a in window if _counts(a, include_pending=False)),
        expected_revenue=_total(a for a in window if _counts(a, include_pending=True)),
    )


def financial_summary(
    appointments: Iterable[Appointment],
    expenses: Iterable[Expense],
    year: int,
    month: int,
    now: DateTime,
    include_pending: bool = False,
) -> FinancialSummary:
    """Revenue, expenses, profit and projection for one calendar month."""
    appointments = list(appointments)
    expenses = list(expenses)

    first_day = pendulum.date(year, month, 1)
    last_day = first_day.end_of("month")
    previous_first = first_day.subtract(months=1)

    revenue = revenue_between_days(appointments, first_day, last_day, include_pending)
    previous_revenue = revenue_between_days(
        appointments, previous_first, previous_first.end_of("month"), include_pending
    )
    month_expenses = expenses_between_days(expenses, first_day, last_day)
    month_end = pendulum.datetime(year, month, 1, tz=now.timezone_name or DEFAULT_TIMEZONE).end_of("month")

    return FinancialSummary(
        revenue=revenue,
        expenses=month_expenses,
        profit=revenue - month_expenses,
        projected_revenue=expected_revenue(appointments, now, month_end, include_pending),
        revenue_change=revenue_change_percent(revenue, previous_revenue),
    )
