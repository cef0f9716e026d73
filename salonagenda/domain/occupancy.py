"""
Per-day occupancy metrics for the calendar views.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Iterable, List, Mapping

import pendulum
from pendulum import Date

from .models import (
    DEFAULT_DURATION_MINUTES,
    Appointment,
    BlockedPeriod,
    BusinessHours,
    Service,
    TimeRange,
    as_date,
    index_services,
)


@dataclass(frozen=True)
class DayOccupancy:
    date: Date
    percentage: int
    fully_blocked: bool
    appointment_count: int
    block_count: int
    occupied_minutes: int = 0


class OccupancyAnalyzer:
    """
    Computes how much of each business day is taken.

    Each day is computed on its own; there is no state carried across days.
    """

    def __init__(
        self,
        business_hours: BusinessHours,
        services: Iterable[Service] | Mapping[str, Service] | None = None,
        default_duration_minutes: int = DEFAULT_DURATION_MINUTES,
    ):
        self.business_hours = business_hours
        self.services = index_services(services)
        self.default_duration_minutes = default_duration_minutes

    def day_occupancy(
        self,
        day: date,
        appointments: Iterable[Appointment],
        blocked_periods: Iterable[BlockedPeriod] = (),
    ) -> DayOccupancy:
        """
        Occupancy of a single day.

        An all-day block makes the day 100% occupied. Otherwise appointment
        and partial-block minutes are clipped to the business window, summed
        and expressed as a rounded percentage clamped to 0..100 (overlapping
        bookings can push the raw sum past the window length).

        Appointments count on the day they start and on any later day whose
        window they run into.
        """
        day = as_date(day)
        window = self.business_hours.window_for(day)
        day_appointments = [
            appointment for appointment in appointments
            if appointment.is_active and self._touches(appointment, day, window)
        ]
        day_blocks = [block for block in blocked_periods if block.applies_to(day)]
        total_minutes = self.business_hours.total_minutes()

        if any(block.is_full_day() for block in day_blocks):
            return DayOccupancy(
                date=day,
                percentage=100,
                fully_blocked=True,
                appointment_count=len(day_appointments),
                block_count=len(day_blocks),
                occupied_minutes=total_minutes,
            )

        busy: List[TimeRange] = [
            appointment.interval(self.services, self.default_duration_minutes)
            for appointment in day_appointments
        ]
        busy.extend(block.interval(self.business_hours) for block in day_blocks)

        occupied_seconds = 0
        for busy_range in busy:
            clipped = window.intersect(busy_range)
            if clipped is not None:
                occupied_seconds += int((clipped.end - clipped.start).total_seconds())

        return DayOccupancy(
            date=day,
            percentage=_percentage(occupied_seconds, total_minutes * 60),
            fully_blocked=False,
            appointment_count=len(day_appointments),
            block_count=len(day_blocks),
            occupied_minutes=occupied_seconds // 60,
        )

    def range_occupancy(
        self,
        start_day: date,
        end_day: date,
        appointments: Iterable[Appointment],
        blocked_periods: Iterable[BlockedPeriod] = (),
    ) -> Dict[Date, DayOccupancy]:
        """Occupancy for every day from ``start_day`` to ``end_day`` inclusive."""
        start_day = as_date(start_day)
        end_day = as_date(end_day)

        appointments_by_day: Dict[Date, List[Appointment]] = defaultdict(list)
        for appointment in appointments:
            if not appointment.is_active:
                continue
            last_day = as_date(appointment.effective_end(self.services, self.default_duration_minutes))
            current = max(appointment.day, start_day)
            while current <= min(last_day, end_day):
                appointments_by_day[current].append(appointment)
                current = current.add(days=1)

        blocks_by_day: Dict[Date, List[BlockedPeriod]] = defaultdict(list)
        for block in blocked_periods:
            if start_day <= block.date <= end_day:
                blocks_by_day[block.date].append(block)

        result: Dict[Date, DayOccupancy] = {}
        current = start_day
        while current <= end_day:
            result[current] = self.day_occupancy(
                current,
                appointments_by_day.get(current, []),
                blocks_by_day.get(current, []),
            )
            current = current.add(days=1)

        return result

    def month_occupancy(
        self,
        year: int,
        month: int,
        appointments: Iterable[Appointment],
        blocked_periods: Iterable[BlockedPeriod] = (),
    ) -> Dict[Date, DayOccupancy]:
        """Occupancy for every day of a calendar month."""
        first_day = pendulum.date(year, month, 1)
        return self.range_occupancy(
            first_day,
            first_day.end_of("month"),
            appointments,
            blocked_periods,
        )

    def _touches(self, appointment: Appointment, day: Date, window: TimeRange) -> bool:
        if appointment.day == day:
            return True
        busy = appointment.interval(self.services, self.default_duration_minutes)
        return window.intersect(busy) is not None


def day_occupancy(
    day: date,
    appointments: Iterable[Appointment],
    blocked_periods: Iterable[BlockedPeriod],
    business_hours: BusinessHours,
    services: Iterable[Service] | Mapping[str, Service] | None = None,
) -> DayOccupancy:
    """Functional entry point over ``OccupancyAnalyzer.day_occupancy``."""
    analyzer = OccupancyAnalyzer(business_hours=business_hours, services=services)
    return analyzer.day_occupancy(day, appointments, blocked_periods)


def _percentage(occupied_seconds: int, total_seconds: int) -> int:
    if total_seconds <= 0:
        return 0
    raw = Decimal(occupied_seconds * 100) / Decimal(total_seconds)
    rounded = int(raw.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    return max(0, min(100, rounded))
