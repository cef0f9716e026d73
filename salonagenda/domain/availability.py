"""
Free slot and free gap calculation.

Composes the day's time grid with conflict detection: every slot offered here
passes ``ConflictDetector.has_conflict`` for the same data, so the booking
form never proposes a time it would then reject.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, time
from itertools import islice
from typing import Iterable, Iterator, List, Mapping

from pendulum import Date, DateTime

from .conflicts import ConflictDetector
from .models import (
    DEFAULT_DURATION_MINUTES,
    Appointment,
    BlockedPeriod,
    BusinessHours,
    Service,
    TimeRange,
    as_date,
    blocks_for_day,
    index_services,
    is_day_fully_blocked,
)
from .overlap import overlaps
from .time_grid import iter_slots


@dataclass(frozen=True)
class Slot:
    """A bookable start time together with the interval it was checked for."""
    start: DateTime
    end: DateTime

    @property
    def date(self) -> Date:
        return as_date(self.start)

    @property
    def time(self) -> time:
        return self.start.time()

    def format_display(self) -> str:
        """Format: Tue, 25/11/2025 | 10:00 - 11:00"""
        return (
            f"{self.start.format('ddd, DD/MM/YYYY')} | "
            f"{self.start.format('HH:mm')} - {self.end.format('HH:mm')}"
        )


class AvailabilityCalculator:
    """
    Calculates free booking slots and free gaps for upcoming days.

    Algorithm for slots:
    1. Skip days with an all-day block
    2. Generate the day's time grid
    3. Check ``[slot, slot + duration)`` through the conflict detector
    4. Yield the non-conflicting slots lazily, day by day
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
        self.detector = ConflictDetector(
            business_hours=business_hours,
            services=self.services,
            default_duration_minutes=default_duration_minutes,
        )

    def available_slots(
        self,
        from_date: date,
        days_ahead: int,
        appointments: Iterable[Appointment],
        blocked_periods: Iterable[BlockedPeriod] = (),
        duration_minutes: int | None = None,
        now: DateTime | None = None,
        within_business_hours: bool = False,
    ) -> Iterator[Slot]:
        """
        Yield free slots for each day in ``[from_date, from_date + days_ahead)``.

        Args:
            from_date: First day to search
            days_ahead: Number of days to search
            appointments: Existing appointments
            blocked_periods: Blocked days and partial blocks
            duration_minutes: Length of the appointment to place
                (defaults to the calculator's default duration)
            now: When given, slots starting before this instant are skipped
            within_business_hours: Also reject slots that would end after closing
        """
        duration = duration_minutes if duration_minutes is not None else self.default_duration_minutes
        if duration <= 0:
            raise ValueError(f"duration_minutes must be greater than zero, got {duration}")

        active = [appointment for appointment in appointments if appointment.is_active]
        blocks = list(blocked_periods)
        first_day = as_date(from_date)

        for offset in range(days_ahead):
            day = first_day.add(days=offset)

            if is_day_fully_blocked(blocks, day):
                continue

            window = self.business_hours.window_for(day)
            horizon_end = window.end.add(minutes=duration)
            day_appointments = [
                appointment for appointment in active
                if overlaps(
                    window.start,
                    horizon_end,
                    appointment.start,
                    appointment.effective_end(self.services, self.default_duration_minutes),
                )
            ]
            day_blocks = blocks_for_day(blocks, day) + blocks_for_day(blocks, day.add(days=1))

            for start in iter_slots(day, self.business_hours):
                if now is not None and start < now:
                    continue

                candidate = TimeRange(start=start, end=start.add(minutes=duration))
                if within_business_hours and candidate.end > window.end:
                    continue

                if not self.detector.has_conflict(candidate, day_appointments, day_blocks):
                    yield Slot(start=candidate.start, end=candidate.end)

    def first_available(
        self,
        from_date: date,
        days_ahead: int,
        appointments: Iterable[Appointment],
        blocked_periods: Iterable[BlockedPeriod] = (),
        limit: int = 3,
        **kwargs,
    ) -> List[Slot]:
        """Return at most ``limit`` slots without computing the rest."""
        slots = self.available_slots(from_date, days_ahead, appointments, blocked_periods, **kwargs)
        return list(islice(slots, limit))

    def free_gaps(
        self,
        day: date,
        appointments: Iterable[Appointment],
        blocked_periods: Iterable[BlockedPeriod] = (),
        now: DateTime | None = None,
    ) -> List[TimeRange]:
        """
        Contiguous free windows of a business day.

        Example:
        Business hours: 08:00 - 19:00
        Busy: [10:00-11:00, 14:00-15:30]
        Result: [08:00-10:00, 11:00-14:00, 15:30-19:00]
        """
        blocks = list(blocked_periods)
        if is_day_fully_blocked(blocks, day):
            return []

        window = self.business_hours.window_for(day)

        if now is not None and now > window.start:
            start = self._round_up_to_slot(now, window.start)
            if start >= window.end:
                return []
            window = TimeRange(start=start, end=window.end)

        candidates = [block.interval(self.business_hours) for block in blocks_for_day(blocks, day)]
        candidates.extend(
            appointment.interval(self.services, self.default_duration_minutes)
            for appointment in appointments
            if appointment.is_active
        )
        busy_ranges = [busy for busy in candidates if window.intersect(busy) is not None]

        return self._subtract_busy_from_block(window, busy_ranges)

    def suggest_gaps(
        self,
        from_date: date,
        days_ahead: int,
        appointments: Iterable[Appointment],
        blocked_periods: Iterable[BlockedPeriod] = (),
        target_minutes: int = 90,
        limit: int | None = 3,
        now: DateTime | None = None,
    ) -> List[TimeRange]:
        """
        Free windows long enough for a ``target_minutes`` appointment.

        Windows closest in length to the target come first (least wasted
        time), ties broken by earliest start.
        """
        appointments = list(appointments)
        blocks = list(blocked_periods)
        first_day = as_date(from_date)

        candidates: List[TimeRange] = []
        for offset in range(days_ahead):
            day = first_day.add(days=offset)
            gaps = self.free_gaps(day, appointments, blocks, now=now)
            candidates.extend(gap for gap in gaps if gap.duration_minutes() >= target_minutes)

        candidates.sort(key=lambda gap: (abs(gap.duration_minutes() - target_minutes), gap.start))

        if limit is None:
            return candidates
        return candidates[:limit]

    def _round_up_to_slot(self, moment: DateTime, origin: DateTime) -> DateTime:
        step_seconds = self.business_hours.slot_minutes * 60
        elapsed = (moment - origin).total_seconds()
        steps = -(-elapsed // step_seconds)
        return origin.add(seconds=int(steps * step_seconds))

    def _subtract_busy_from_block(
        self,
        window: TimeRange,
        busy_ranges: List[TimeRange],
    ) -> List[TimeRange]:
        """
        Subtract busy times from a business window, yielding free time ranges.
        """
        free_ranges: List[TimeRange] = []
        current_start = window.start

        for busy in sorted(busy_ranges, key=lambda r: r.start):
            clipped_busy_start = max(busy.start, window.start)
            clipped_busy_end = min(busy.end, window.end)

            if current_start < clipped_busy_start:
                free_ranges.append(TimeRange(start=current_start, end=clipped_busy_start))

            current_start = max(current_start, clipped_busy_end)

        if current_start < window.end:
            free_ranges.append(TimeRange(start=current_start, end=window.end))

        return free_ranges


def available_slots(
    from_date: date,
    days_ahead: int,
    business_hours: BusinessHours,
    appointments: Iterable[Appointment],
    blocked_periods: Iterable[BlockedPeriod] = (),
    default_duration_minutes: int = DEFAULT_DURATION_MINUTES,
    services: Iterable[Service] | Mapping[str, Service] | None = None,
) -> Iterator[Slot]:
    """Functional entry point over ``AvailabilityCalculator.available_slots``."""
    calculator = AvailabilityCalculator(
        business_hours=business_hours,
        services=services,
        default_duration_minutes=default_duration_minutes,
    )
    return calculator.available_slots(from_date, days_ahead, appointments, blocked_periods)
