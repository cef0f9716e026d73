"""
Application services for the booking dashboard.

The service fetches an agenda snapshot through a data-source protocol and
delegates every calculation to the domain layer. It keeps no cache; callers
that want one wrap the service.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, time
from decimal import Decimal
from itertools import islice
from typing import Dict, List, Protocol, Sequence

import pendulum
from pendulum import Date, DateTime

from ..config import AppConfig
from ..domain.availability import AvailabilityCalculator, Slot
from ..domain.clients import ClientRank, client_ranking, inactive_clients
from ..domain.conflicts import ConflictDetector, ConflictResult
from ..domain.models import (
    AgendaSnapshot,
    Appointment,
    BlockedPeriod,
    Client,
    TimeRange,
    as_date,
    blocks_for_day,
)
from ..domain.occupancy import DayOccupancy, OccupancyAnalyzer
from ..domain.statistics import ReasonCount, ServiceTimeStats, cancellation_reasons, service_time_stats
from ..domain import revenue

logger = logging.getLogger(__name__)


class DataSourceProtocol(Protocol):
    """Protocol describing the data source behaviour needed by the service."""

    async def fetch_snapshot(self) -> AgendaSnapshot:
        """Return the current appointments, services, clients, blocks and expenses."""


@dataclass(frozen=True)
class DayOverview:
    occupancy: DayOccupancy
    appointments: Sequence[Appointment]
    blocked_periods: Sequence[BlockedPeriod]
    confirmed_revenue: Decimal
    expected_revenue: Decimal


class DashboardService:
    """
    Orchestrates snapshot retrieval and the scheduling/analytics core.

    Dependency inversion toward a protocol makes it easy to plug in the JSON
    store or an in-memory stub in tests.
    """

    def __init__(self, data_source: DataSourceProtocol, config: AppConfig) -> None:
        self._data_source = data_source
        self._config = config
        self._business_hours = config.get_business_hours()

    @property
    def config(self) -> AppConfig:
        return self._config

    async def load(self) -> AgendaSnapshot:
        """Fetch a fresh snapshot from the data source."""
        snapshot = await self._data_source.fetch_snapshot()
        logger.debug(
            "Snapshot with %d appointments and %d blocked periods",
            len(snapshot.appointments),
            len(snapshot.blocked_periods),
        )
        return snapshot

    def now(self) -> DateTime:
        return pendulum.now(self._config.timezone)

    def available_slots(
        self,
        snapshot: AgendaSnapshot,
        *,
        from_date: date,
        days_ahead: int | None = None,
        duration_minutes: int | None = None,
        now: DateTime | None = None,
        limit: int | None = None,
        within_business_hours: bool = False,
    ) -> List[Slot]:
        """Free slots for the coming days, optionally capped at ``limit``."""
        calculator = self._availability(snapshot)
        slots = calculator.available_slots(
            from_date,
            days_ahead or self._config.days_ahead,
            snapshot.appointments,
            snapshot.blocked_periods,
            duration_minutes=duration_minutes,
            now=now,
            within_business_hours=within_business_hours,
        )

        return list(islice(slots, limit))

    def suggested_gaps(
        self,
        snapshot: AgendaSnapshot,
        *,
        now: DateTime,
        days_ahead: int | None = None,
    ) -> List[TimeRange]:
        """Best-fitting free windows from ``now`` onward."""
        suggestion = self._config.suggestion
        return self._availability(snapshot).suggest_gaps(
            as_date(now),
            days_ahead or self._config.days_ahead,
            snapshot.appointments,
            snapshot.blocked_periods,
            target_minutes=suggestion.target_minutes,
            limit=suggestion.limit,
            now=now,
        )

    def check_booking(
        self,
        snapshot: AgendaSnapshot,
        *,
        start: DateTime,
        duration_minutes: int | None = None,
        service_id: str | None = None,
        exclude_id: str | None = None,
    ) -> ConflictResult:
        """
        Check whether a booking starting at ``start`` is possible.

        The length comes from ``duration_minutes``, else from the service,
        else from the configured default duration.

        Raises:
            ValueError: If ``service_id`` does not name a known service
        """
        if duration_minutes is None and service_id is not None:
            service = snapshot.find_service(service_id)
            if service is None:
                raise ValueError(f"Unknown service: {service_id!r}")
            duration_minutes = service.duration_minutes

        if duration_minutes is None:
            duration_minutes = self._config.default_duration_minutes

        detector = ConflictDetector(
            business_hours=self._business_hours,
            services=snapshot.services,
            clients=snapshot.clients,
            default_duration_minutes=self._config.default_duration_minutes,
        )
        result = detector.check(
            start,
            start.add(minutes=duration_minutes),
            snapshot.appointments,
            snapshot.blocked_periods,
            exclude_id=exclude_id,
        )
        if result:
            logger.info("Booking at %s rejected: %s", start, result.detail)
        return result

    def day_overview(self, snapshot: AgendaSnapshot, *, day: date) -> DayOverview:
        """Occupancy, agenda and revenue of a single day."""
        day = as_date(day)
        appointments = sorted(
            (appointment for appointment in snapshot.appointments if appointment.day == day),
            key=lambda appointment: appointment.start,
        )

        return DayOverview(
            occupancy=self._occupancy(snapshot).day_occupancy(
                day, snapshot.appointments, snapshot.blocked_periods
            ),
            appointments=appointments,
            blocked_periods=blocks_for_day(snapshot.blocked_periods, day),
            confirmed_revenue=revenue.daily_revenue(appointments, day),
            expected_revenue=revenue.daily_revenue(appointments, day, include_pending=True),
        )

    def month_overview(self, snapshot: AgendaSnapshot, *, year: int, month: int) -> Dict[Date, DayOccupancy]:
        return self._occupancy(snapshot).month_occupancy(
            year, month, snapshot.appointments, snapshot.blocked_periods
        )

    def week_stats(self, snapshot: AgendaSnapshot, *, day: date) -> revenue.StatusCounts:
        first_day = revenue.week_start(day, self._config.week_starts_on)
        start = self._business_hours.at(first_day, time(0, 0))
        return revenue.status_counts(snapshot.appointments, start, start.add(days=7))

    def financial_summary(
        self,
        snapshot: AgendaSnapshot,
        *,
        year: int,
        month: int,
        now: DateTime,
        include_pending: bool = False,
    ) -> revenue.FinancialSummary:
        return revenue.financial_summary(
            snapshot.appointments,
            snapshot.expenses,
            year,
            month,
            now,
            include_pending=include_pending,
        )

    def monthly_series(self, snapshot: AgendaSnapshot, *, until: date, months: int = 6) -> List[revenue.MonthlyFigures]:
        return revenue.monthly_series(snapshot.appointments, snapshot.expenses, until, months)

    def service_breakdown(self, snapshot: AgendaSnapshot, *, year: int, month: int) -> List[revenue.ServiceRevenue]:
        start, end = revenue.month_window(year, month, self._config.timezone)
        return revenue.service_breakdown(snapshot.appointments, snapshot.services, start, end)

    def service_time_stats(self, snapshot: AgendaSnapshot) -> List[ServiceTimeStats]:
        return service_time_stats(
            snapshot.appointments,
            snapshot.services,
            self._config.default_duration_minutes,
        )

    def cancellation_reasons(self, snapshot: AgendaSnapshot, *, year: int, month: int) -> List[ReasonCount]:
        start, end = revenue.month_window(year, month, self._config.timezone)
        return cancellation_reasons(snapshot.appointments, start, end)

    def client_ranking(
        self,
        snapshot: AgendaSnapshot,
        *,
        start: DateTime,
        end: DateTime,
        limit: int | None = 20,
    ) -> List[ClientRank]:
        return client_ranking(snapshot.appointments, snapshot.clients, start, end, limit)

    def inactive_clients(self, snapshot: AgendaSnapshot, *, now: DateTime) -> List[Client]:
        return inactive_clients(
            snapshot.clients,
            snapshot.appointments,
            now,
            self._config.inactive_client_days,
        )

    def _availability(self, snapshot: AgendaSnapshot) -> AvailabilityCalculator:
        return AvailabilityCalculator(
            business_hours=self._business_hours,
            services=snapshot.services,
            default_duration_minutes=self._config.default_duration_minutes,
        )

    def _occupancy(self, snapshot: AgendaSnapshot) -> OccupancyAnalyzer:
        return OccupancyAnalyzer(
            business_hours=self._business_hours,
            services=snapshot.services,
            default_duration_minutes=self._config.default_duration_minutes,
        )
