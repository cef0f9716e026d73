"""
Tests for revenue and profit aggregation.
"""

from decimal import Decimal

import pendulum

from salonagenda.domain import revenue
from salonagenda.domain.models import Appointment, Expense, Service

TZ = "America/Sao_Paulo"

CUT = Service(id="svc-cut", name="Corte", price=40, duration_minutes=45)
COLOR = Service(id="svc-color", name="Coloração", price=90, duration_minutes=120)
NAILS = Service(id="svc-nails", name="Manicure", price=60, duration_minutes=60)


def _at(text: str) -> pendulum.DateTime:
    return pendulum.parse(text, tz=TZ)


def _appointment(appointment_id: str, start: str, service: Service, status: str = "confirmed", price=None) -> Appointment:
    return Appointment(
        id=appointment_id,
        client_id="cli-ana",
        service_id=service.id,
        start=_at(start),
        price=service.price if price is None else price,
        status=status,
    )


def _november() -> list:
    return [
        _appointment("a1", "2025-11-10 10:00", CUT),
        _appointment("a2", "2025-11-18 10:00", NAILS),
        _appointment("a3", "2025-11-25 14:00", COLOR),
        _appointment("a4", "2025-11-25 16:00", COLOR, status="canceled", price=120),
        _appointment("a5", "2025-11-28 09:00", CUT, status="pending", price=50),
    ]


class TestRevenueTotals:
    """Tests for daily, weekly and monthly revenue."""

    def test_monthly_counts_confirmed_only(self):
        """40 + 60 + 90 confirmed; the canceled 120 never counts."""
        appointments = _november()

        assert revenue.monthly_revenue(appointments, 2025, 11) == Decimal("190")
        assert revenue.monthly_revenue(appointments, 2025, 11, include_pending=True) == Decimal("240")
        assert revenue.monthly_revenue(appointments, 2025, 10) == Decimal("0")

    def test_daily_revenue(self):
        appointments = _november()

        assert revenue.daily_revenue(appointments, pendulum.date(2025, 11, 25)) == Decimal("90")

    def test_week_start(self):
        tuesday = pendulum.date(2025, 11, 25)

        assert revenue.week_start(tuesday) == pendulum.date(2025, 11, 23)
        assert revenue.week_start(tuesday, week_starts_on=0) == pendulum.date(2025, 11, 24)
        assert revenue.week_start(pendulum.date(2025, 11, 23)) == pendulum.date(2025, 11, 23)

    def test_weekly_revenue(self):
        appointments = _november()

        assert revenue.weekly_revenue(appointments, pendulum.date(2025, 11, 26)) == Decimal("90")
        assert revenue.weekly_revenue(appointments, pendulum.date(2025, 11, 26), include_pending=True) == Decimal("140")

    def test_revenue_in_range_is_half_open(self):
        appointments = _november()

        total = revenue.revenue_in_range(appointments, _at("2025-11-10 10:00"), _at("2025-11-25 14:00"))

        assert total == Decimal("100")

    def test_empty_inputs(self):
        assert revenue.monthly_revenue([], 2025, 11) == Decimal("0")
        assert revenue.expenses_in_range([], _at("2025-11-01"), _at("2025-12-01")) == Decimal("0")
        assert revenue.service_breakdown([]) == []


class TestExpectedRevenue:
    """Tests for expected_revenue()."""

    def test_future_confirmed_only_by_default(self):
        appointments = _november()
        now = _at("2025-11-20 12:00")

        assert revenue.expected_revenue(appointments, now) == Decimal("90")

    def test_include_pending(self):
        appointments = _november()
        now = _at("2025-11-20 12:00")

        assert revenue.expected_revenue(appointments, now, include_pending=True) == Decimal("140")

    def test_from_month_start(self):
        appointments = _november()
        now = _at("2025-11-20 12:00")

        assert revenue.expected_revenue(appointments, now, from_month_start=True) == Decimal("190")

    def test_explicit_month_end(self):
        appointments = _november()
        now = _at("2025-11-20 12:00")

        assert revenue.expected_revenue(appointments, now, month_end=_at("2025-11-25 14:00")) == Decimal("90")
        assert revenue.expected_revenue(appointments, now, month_end=_at("2025-11-25 13:59")) == Decimal("0")


class TestExpensesAndProfit:
    """Tests for expense totals and net profit."""

    def test_net_profit(self):
        expenses = [
            Expense(id="e1", name="Rent", amount=100, date=pendulum.date(2025, 11, 5)),
            Expense(id="e2", name="Products", amount="20.50", date=pendulum.date(2025, 11, 30)),
            Expense(id="e3", name="Old", amount=999, date=pendulum.date(2025, 10, 31)),
        ]
        start, end = revenue.month_window(2025, 11, TZ)

        assert revenue.expenses_in_range(expenses, start, end) == Decimal("120.50")
        assert revenue.net_profit(Decimal("190"), expenses, start, end) == Decimal("69.50")

    def test_window_ending_at_midnight_excludes_that_day(self):
        expenses = [Expense(id="e1", name="Rent", amount=100, date=pendulum.date(2025, 12, 1))]
        start, end = revenue.month_window(2025, 11, TZ)

        assert revenue.expenses_in_range(expenses, start, end) == Decimal("0")

    def test_expenses_between_days(self):
        expenses = [
            Expense(id="e1", name="Rent", amount=100, date=pendulum.date(2025, 11, 1)),
            Expense(id="e2", name="Water", amount=30, date=pendulum.date(2025, 11, 30)),
        ]

        total = revenue.expenses_between_days(expenses, pendulum.date(2025, 11, 1), pendulum.date(2025, 11, 30))

        assert total == Decimal("130")


class TestBreakdownAndSeries:
    """Tests for per-service breakdown and the monthly series."""

    def test_service_breakdown_sorted_by_revenue(self):
        appointments = _november() + [_appointment("a6", "2025-11-26 10:00", CUT, price=20)]

        breakdown = revenue.service_breakdown(appointments, [CUT, COLOR, NAILS])

        assert [(entry.name, entry.count, entry.total_revenue) for entry in breakdown] == [
            ("Coloração", 1, Decimal("90")),
            ("Corte", 2, Decimal("60")),
            ("Manicure", 1, Decimal("60")),
        ]

    def test_service_breakdown_window(self):
        appointments = _november()

        breakdown = revenue.service_breakdown(
            appointments, [CUT, COLOR, NAILS], start=_at("2025-11-15"), end=_at("2025-11-25")
        )

        assert [entry.service_id for entry in breakdown] == ["svc-nails"]

    def test_monthly_series_oldest_first(self):
        appointments = _november() + [_appointment("a7", "2025-09-02 10:00", NAILS)]
        expenses = [Expense(id="e1", name="Rent", amount=100, date=pendulum.date(2025, 11, 5))]

        series = revenue.monthly_series(appointments, expenses, pendulum.date(2025, 11, 25))

        assert len(series) == 6
        assert series[0].month == pendulum.date(2025, 6, 1)
        assert series[-1].month == pendulum.date(2025, 11, 1)
        assert series[-1].revenue == Decimal("190")
        assert series[-1].profit == Decimal("90")
        assert series[3].revenue == Decimal("60")

    def test_revenue_change_percent(self):
        assert revenue.revenue_change_percent(Decimal("100"), Decimal("80")) == Decimal("25")
        assert revenue.revenue_change_percent(Decimal("40"), Decimal("80")) == Decimal("-50")
        assert revenue.revenue_change_percent(Decimal("50"), Decimal("0")) == Decimal("100")
        assert revenue.revenue_change_percent(Decimal("0"), Decimal("0")) == Decimal("0")


class TestSummaries:
    """Tests for status counts and the monthly financial summary."""

    def test_status_counts(self):
        start, end = revenue.month_window(2025, 11, TZ)

        counts = revenue.status_counts(_november(), start, end)

        assert counts.total == 5
        assert counts.confirmed == 3
        assert counts.pending == 1
        assert counts.canceled == 1
        assert counts.confirmed_revenue == Decimal("190")
        assert counts.expected_revenue == Decimal("240")

    def test_financial_summary(self):
        appointments = _november() + [_appointment("a8", "2025-10-15 10:00", NAILS, price=95)]
        expenses = [Expense(id="e1", name="Rent", amount=100, date=pendulum.date(2025, 11, 5))]

        summary = revenue.financial_summary(appointments, expenses, 2025, 11, _at("2025-11-20 12:00"))

        assert summary.revenue == Decimal("190")
        assert summary.expenses == Decimal("100")
        assert summary.profit == Decimal("90")
        assert summary.projected_revenue == Decimal("90")
        assert summary.revenue_change == Decimal("100")
