"""
Main CLI application using Typer.
"""

import asyncio
import logging
from pathlib import Path
from typing import Optional, Annotated

import pendulum
import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from ..adapters.json_store import JsonAgendaStore
from ..config import AppConfig, load_config
from ..domain.exceptions import AgendaError
from ..domain.models import AgendaSnapshot
from ..services.dashboard import DashboardService

app = typer.Typer(
    name="salon-agenda",
    help="Scheduling, occupancy and revenue views for a single-provider salon agenda",
    add_completion=False
)

console = Console()

logger = logging.getLogger(__name__)

ConfigOption = Annotated[Optional[Path], typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml")]
DataOption = Annotated[Optional[Path], typer.Option("--data", help="Path to the agenda JSON file. Overrides data_file from the config.")]


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Show debug logging.")] = False,
):
    """
    Salon agenda command line.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def _load(config_file: Optional[Path], data_file: Optional[Path]) -> tuple[AppConfig, DashboardService, AgendaSnapshot]:
    """Load configuration and the agenda snapshot, or exit with an error."""
    try:
        config = load_config(config_file)
        path = data_file or config.data_file
        if path is None:
            console.print("[bold red]Error:[/bold red] No data file given. Use --data or set data_file in the config.")
            raise typer.Exit(1)

        service = DashboardService(
            data_source=JsonAgendaStore(path, timezone=config.timezone),
            config=config,
        )
        snapshot = asyncio.run(service.load())
    except (FileNotFoundError, ValidationError, ValueError, AgendaError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    return config, service, snapshot


def _parse_day(value: Optional[str], tz: str) -> pendulum.DateTime:
    if not value:
        return pendulum.now(tz).start_of("day")
    try:
        return pendulum.from_format(value, "YYYY-MM-DD", tz=tz)
    except ValueError as e:
        console.print(f"[red]Could not parse date {value!r} (expected YYYY-MM-DD): {e}[/red]")
        raise typer.Exit(1)


def _parse_month(value: Optional[str], tz: str) -> pendulum.DateTime:
    if not value:
        return pendulum.now(tz).start_of("month")
    try:
        return pendulum.from_format(value, "YYYY-MM", tz=tz)
    except ValueError as e:
        console.print(f"[red]Could not parse month {value!r} (expected YYYY-MM): {e}[/red]")
        raise typer.Exit(1)


def _money(amount, currency: str) -> str:
    return f"{currency} {amount:,.2f}"


@app.command()
def slots(
    config_file: ConfigOption = None,
    data_file: DataOption = None,
    start: Annotated[Optional[str], typer.Option("--start", help="First day (YYYY-MM-DD). Defaults to today.")] = None,
    days: Annotated[Optional[int], typer.Option("--days", "-d", help="Number of days to search")] = None,
    duration: Annotated[Optional[int], typer.Option("--duration", help="Appointment duration in minutes")] = None,
    limit: Annotated[Optional[int], typer.Option("--limit", "-n", help="Show at most this many slots")] = None,
    within_hours: Annotated[bool, typer.Option("--within-hours", help="Only slots that end before closing.")] = False,
):
    """
    List free booking slots.

    Examples:

        salon-agenda slots --data agenda.json
        salon-agenda slots --start 2025-11-25 --days 3 --duration 90 -n 3
    """
    config, service, snapshot = _load(config_file, data_file)
    tz = config.timezone
    first_day = _parse_day(start, tz)
    now = pendulum.now(tz)

    found = service.available_slots(
        snapshot,
        from_date=first_day,
        days_ahead=days,
        duration_minutes=duration,
        now=now if first_day.date() <= now.date() else None,
        limit=limit,
        within_business_hours=within_hours,
    )

    console.print()
    if not found:
        console.print(
            "[yellow]⚠ No free slots found.[/yellow]\n"
            "Try a longer period or a shorter duration."
        )
        return

    console.print(f"[bold green]✓ {len(found)} free slot(s):[/bold green]\n")
    for slot in found:
        console.print(f"  {slot.format_display()}")
    console.print()


@app.command()
def suggest(
    config_file: ConfigOption = None,
    data_file: DataOption = None,
):
    """
    Suggest the free windows that best fit a typical appointment.
    """
    config, service, snapshot = _load(config_file, data_file)
    gaps = service.suggested_gaps(snapshot, now=pendulum.now(config.timezone))

    if not gaps:
        console.print("[yellow]No free window long enough in the coming days.[/yellow]")
        return

    table = Table(title="Suggested times", show_header=True, header_style="bold cyan")
    table.add_column("Day", style="bold yellow")
    table.add_column("From")
    table.add_column("Free for", justify="right")

    for gap in gaps:
        table.add_row(
            gap.start.format("ddd DD/MM"),
            gap.start.format("HH:mm"),
            f"{gap.duration_minutes()} min",
        )

    console.print()
    console.print(table)
    console.print()


@app.command()
def check(
    day: Annotated[str, typer.Argument(help="Date (YYYY-MM-DD)")],
    at: Annotated[str, typer.Argument(help="Start time (HH:mm)")],
    config_file: ConfigOption = None,
    data_file: DataOption = None,
    duration: Annotated[Optional[int], typer.Option("--duration", help="Duration in minutes")] = None,
    service_name: Annotated[Optional[str], typer.Option("--service", "-s", help="Service id or name; its duration is used")] = None,
    exclude: Annotated[Optional[str], typer.Option("--exclude", help="Id of the appointment being rescheduled")] = None,
):
    """
    Check whether an appointment can be booked at a given time.
    """
    config, service, snapshot = _load(config_file, data_file)

    try:
        start = pendulum.from_format(f"{day} {at}", "YYYY-MM-DD HH:mm", tz=config.timezone)
    except ValueError as e:
        console.print(f"[red]Could not parse date/time: {e}[/red]")
        raise typer.Exit(1)

    try:
        result = service.check_booking(
            snapshot,
            start=start,
            duration_minutes=duration,
            service_id=service_name,
            exclude_id=exclude,
        )
    except ValueError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    if result:
        console.print(Panel.fit(f"[bold red]✗ Not available[/bold red]\n\n{result.detail}", title="Conflict"))
        raise typer.Exit(2)

    console.print(Panel.fit("[bold green]✓ Available[/bold green]", title="No conflict"))


@app.command()
def occupancy(
    config_file: ConfigOption = None,
    data_file: DataOption = None,
    month: Annotated[Optional[str], typer.Option("--month", "-m", help="Month (YYYY-MM). Defaults to the current month.")] = None,
):
    """
    Show the occupancy of every day in a month.
    """
    config, service, snapshot = _load(config_file, data_file)
    month_start = _parse_month(month, config.timezone)
    days = service.month_overview(snapshot, year=month_start.year, month=month_start.month)

    table = Table(
        title=f"Occupancy {month_start.format('MM/YYYY')}",
        show_header=True,
        header_style="bold cyan"
    )
    table.add_column("Day", style="bold yellow")
    table.add_column("Appointments", justify="right")
    table.add_column("Blocks", justify="right")
    table.add_column("Occupancy", justify="right")

    for day, stats in days.items():
        label = "blocked" if stats.fully_blocked else f"{stats.percentage}%"
        table.add_row(
            day.format("ddd DD"),
            str(stats.appointment_count),
            str(stats.block_count),
            label,
        )

    console.print()
    console.print(table)
    console.print()


@app.command()
def finance(
    config_file: ConfigOption = None,
    data_file: DataOption = None,
    month: Annotated[Optional[str], typer.Option("--month", "-m", help="Month (YYYY-MM). Defaults to the current month.")] = None,
    include_pending: Annotated[bool, typer.Option("--include-pending", help="Count pending appointments as revenue.")] = False,
):
    """
    Show revenue, expenses, profit and per-service figures for a month.
    """
    config, service, snapshot = _load(config_file, data_file)
    month_start = _parse_month(month, config.timezone)
    currency = config.currency

    summary = service.financial_summary(
        snapshot,
        year=month_start.year,
        month=month_start.month,
        now=pendulum.now(config.timezone),
        include_pending=include_pending,
    )

    console.print(Panel.fit(
        f"[bold]Revenue:[/bold] {_money(summary.revenue, currency)} ({summary.revenue_change:+.1f}% vs previous month)\n"
        f"[bold]Expenses:[/bold] {_money(summary.expenses, currency)}\n"
        f"[bold]Profit:[/bold] {_money(summary.profit, currency)}\n"
        f"[bold]Projected:[/bold] {_money(summary.projected_revenue, currency)}",
        title=f"Finance {month_start.format('MM/YYYY')}"
    ))

    series = Table(title="Last 6 months", show_header=True, header_style="bold cyan")
    series.add_column("Month", style="bold yellow")
    series.add_column("Revenue", justify="right")
    series.add_column("Expenses", justify="right")
    series.add_column("Profit", justify="right")
    for figures in service.monthly_series(snapshot, until=month_start):
        series.add_row(
            figures.month.format("MM/YYYY"),
            _money(figures.revenue, currency),
            _money(figures.expenses, currency),
            _money(figures.profit, currency),
        )

    breakdown = Table(title="Revenue by service", show_header=True, header_style="bold cyan")
    breakdown.add_column("Service", style="bold yellow")
    breakdown.add_column("Count", justify="right")
    breakdown.add_column("Revenue", justify="right")
    for entry in service.service_breakdown(snapshot, year=month_start.year, month=month_start.month):
        breakdown.add_row(entry.name, str(entry.count), _money(entry.total_revenue, currency))

    console.print()
    console.print(series)
    console.print()
    console.print(breakdown)
    console.print()


@app.command()
def stats(
    config_file: ConfigOption = None,
    data_file: DataOption = None,
    month: Annotated[Optional[str], typer.Option("--month", "-m", help="Month for cancellations (YYYY-MM). Defaults to the current month.")] = None,
):
    """
    Show average service times and cancellation reasons.
    """
    config, service, snapshot = _load(config_file, data_file)
    month_start = _parse_month(month, config.timezone)

    timing = Table(title="Service times", show_header=True, header_style="bold cyan")
    timing.add_column("Service", style="bold yellow")
    timing.add_column("Average", justify="right")
    timing.add_column("Scheduled", justify="right")
    timing.add_column("Difference", justify="right")
    timing.add_column("Count", justify="right")
    for entry in service.service_time_stats(snapshot):
        timing.add_row(
            entry.name,
            f"{entry.average_minutes} min",
            f"{entry.scheduled_minutes} min",
            f"{entry.difference:+d} min",
            str(entry.appointment_count),
        )

    console.print()
    console.print(timing)
    console.print()

    reasons = service.cancellation_reasons(snapshot, year=month_start.year, month=month_start.month)
    if not reasons:
        console.print(f"[green]✓ No cancellations in {month_start.format('MM/YYYY')}.[/green]")
        return

    table = Table(title=f"Cancellations {month_start.format('MM/YYYY')}", show_header=True, header_style="bold cyan")
    table.add_column("Reason", style="bold yellow")
    table.add_column("Count", justify="right")
    table.add_column("Share", justify="right")
    for entry in reasons:
        table.add_row(entry.reason, str(entry.count), f"{entry.percentage}%")

    console.print(table)
    console.print()


@app.command()
def ranking(
    config_file: ConfigOption = None,
    data_file: DataOption = None,
    months: Annotated[int, typer.Option("--months", min=1, help="Look back this many months, including the current one")] = 1,
    limit: Annotated[int, typer.Option("--limit", "-n", help="Number of clients to show")] = 20,
):
    """
    Rank clients by confirmed spend.
    """
    config, service, snapshot = _load(config_file, data_file)
    now = pendulum.now(config.timezone)
    start = now.start_of("month").subtract(months=months - 1)

    ranked = service.client_ranking(snapshot, start=start, end=now, limit=limit)
    if not ranked:
        console.print("[yellow]No confirmed appointments in this period.[/yellow]")
        return

    table = Table(title="Top clients", show_header=True, header_style="bold cyan")
    table.add_column("#", justify="right")
    table.add_column("Client", style="bold yellow")
    table.add_column("Visits", justify="right")
    table.add_column("Spent", justify="right")
    for entry in ranked:
        table.add_row(str(entry.rank), entry.name, str(entry.appointment_count), _money(entry.total_spent, config.currency))

    console.print()
    console.print(table)
    console.print()


@app.command()
def inactive(
    config_file: ConfigOption = None,
    data_file: DataOption = None,
):
    """
    List clients without a visit within the configured inactivity window.
    """
    config, service, snapshot = _load(config_file, data_file)
    clients = service.inactive_clients(snapshot, now=pendulum.now(config.timezone))

    if not clients:
        console.print("[green]✓ No inactive clients.[/green]")
        return

    table = Table(
        title=f"Inactive for more than {config.inactive_client_days} days",
        show_header=True,
        header_style="bold cyan"
    )
    table.add_column("Client", style="bold yellow")
    table.add_column("Phone", style="dim")
    for client in clients:
        table.add_row(client.name, client.phone)

    console.print()
    console.print(table)
    console.print()


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]salon-agenda[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
