"""
Main CLI application using Typer.
"""

import asyncio
import logging
from pathlib import Path
from typing import Annotated, List, Optional

import pendulum
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from ..config import AppConfig, get_default_config_path
from ..domain.exceptions import SchedulingError, SearchBudgetExceeded
from ..domain.recurrence import RecurrencePattern
from ..services.scheduling import SchedulingService, ServiceRequest
from ..wiring import build_scheduling_service

app = typer.Typer(
    name="slotengine",
    help="Find appointment slots and lay out calendars for a salon booking store",
    add_completion=False
)

console = Console()

ConfigOption = Annotated[Optional[Path], typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml")]
SnapshotOption = Annotated[Optional[Path], typer.Option("--snapshot", help="Read bookings from a YAML/JSON snapshot instead of the booking store.")]
VerboseOption = Annotated[bool, typer.Option("--verbose", "-v", help="Show debug logging.")]


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _load(config_file: Optional[Path], snapshot: Optional[Path], verbose: bool) -> tuple[AppConfig, SchedulingService]:
    _configure_logging(verbose)
    config_path = config_file or get_default_config_path()
    if config_path.exists() or config_file is not None:
        config = AppConfig.load_from_yaml(config_path)
    else:
        # A snapshot file is enough to run with default opening hours.
        config = AppConfig()
    return config, build_scheduling_service(config, snapshot_file=snapshot)


def _parse_day(value: str, tz: str) -> pendulum.DateTime:
    try:
        return pendulum.from_format(value, "YYYY-MM-DD", tz=tz).start_of("day")
    except ValueError as e:
        console.print(f"[red]Could not parse date {value!r}: {e}[/red]")
        raise typer.Exit(1)


def _parse_assignments(values: List[str], service_ids: List[str]) -> List[Optional[str]]:
    """
    Parse ``INDEX=EMPLOYEE`` (1-based chain position) or ``SERVICE=EMPLOYEE``
    (every step of that service) into one employee per chain step.
    """
    assigned: List[Optional[str]] = [None] * len(service_ids)
    for value in values:
        key, sep, employee_id = value.partition("=")
        if not sep or not key or not employee_id:
            console.print(f"[red]Expected INDEX=EMPLOYEE or SERVICE=EMPLOYEE, got {value!r}[/red]")
            raise typer.Exit(1)

        if key.isdigit():
            position = int(key)
            if not 1 <= position <= len(service_ids):
                console.print(f"[red]No chain step {position}; the chain has {len(service_ids)}[/red]")
                raise typer.Exit(1)
            assigned[position - 1] = employee_id
            continue

        positions = [i for i, service_id in enumerate(service_ids) if service_id == key]
        if not positions:
            console.print(f"[red]Service {key!r} is not in the chain[/red]")
            raise typer.Exit(1)
        for i in positions:
            assigned[i] = employee_id
    return assigned


def _run(coro):
    """Run a service call and turn domain errors into a clean exit."""
    try:
        return asyncio.run(coro)
    except SearchBudgetExceeded as e:
        console.print(
            f"[yellow]⚠ Search budget exhausted ({e}). "
            f"{len(e.partial)} result(s) found before stopping; more may exist.[/yellow]"
        )
        return e.partial
    except (SchedulingError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def slots(
    service_id: Annotated[str, typer.Argument(help="Service id")],
    day: Annotated[str, typer.Option("--day", "-d", help="Day (YYYY-MM-DD)")],
    employee: Annotated[Optional[str], typer.Option("--employee", "-e", help="Requested employee id. Omit for no preference.")] = None,
    end_day: Annotated[Optional[str], typer.Option("--end-day", help="Search through this day (YYYY-MM-DD)")] = None,
    config_file: ConfigOption = None,
    snapshot: SnapshotOption = None,
    verbose: VerboseOption = False,
):
    """
    List valid start times for one service.

    Examples:

        slotengine slots haircut --day 2024-11-25
        slotengine slots haircut --day 2024-11-25 --employee ana
    """
    try:
        config, service = _load(config_file, snapshot, verbose)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    tz = config.timezone
    found = _run(
        service.service_slots(
            service_id=service_id,
            day=_parse_day(day, tz),
            employee_id=employee,
            end_day=_parse_day(end_day, tz) if end_day else None,
        )
    )

    if not found:
        console.print("[yellow]⚠ No available slots found.[/yellow]")
        return

    table = Table(title=f"Slots for {service_id}", show_header=True, header_style="bold cyan")
    table.add_column("Day", style="dim")
    table.add_column("Time", style="bold yellow")
    table.add_column("Employee(s)")
    for slot in found:
        table.add_row(
            slot.start.format("ddd DD.MM.YYYY"),
            f"{slot.start.format('HH:mm')} – {slot.end.format('HH:mm')}",
            slot.employee_id or ", ".join(slot.candidate_employee_ids),
        )

    console.print()
    console.print(table)
    console.print()


@app.command()
def chain(
    service_ids: Annotated[List[str], typer.Argument(help="Service ids in booking order")],
    day: Annotated[str, typer.Option("--day", "-d", help="Day (YYYY-MM-DD)")],
    employee: Annotated[Optional[List[str]], typer.Option("--employee", "-e", help="Fixed employee as INDEX=EMPLOYEE (1-based step) or SERVICE=EMPLOYEE. Others are auto-assigned.")] = None,
    config_file: ConfigOption = None,
    snapshot: SnapshotOption = None,
    verbose: VerboseOption = False,
):
    """
    List valid start times for services booked back-to-back on one day.

    Examples:

        slotengine chain haircut color --day 2024-11-25
        slotengine chain haircut color --day 2024-11-25 -e color=ana
        slotengine chain haircut haircut --day 2024-11-25 -e 1=ana -e 2=bea
    """
    try:
        config, service = _load(config_file, snapshot, verbose)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    fixed = _parse_assignments(employee or [], service_ids)
    requests = [
        ServiceRequest(service_id=s, employee_id=e) for s, e in zip(service_ids, fixed)
    ]
    blocks = _run(service.chain_slots(day=_parse_day(day, config.timezone), services=requests))

    if not blocks:
        console.print("[yellow]⚠ No blocks available for this combination.[/yellow]")
        return

    table = Table(title="Chained blocks", show_header=True, header_style="bold cyan")
    table.add_column("Start", style="bold yellow")
    table.add_column("Services")
    for block in blocks:
        steps = ", ".join(
            f"{i.service_id} {i.start.format('HH:mm')}-{i.end.format('HH:mm')} ({i.employee_id})"
            for i in block.intervals
        )
        table.add_row(block.block_start.format("HH:mm"), steps)

    console.print()
    console.print(table)
    console.print()


@app.command()
def layout(
    employee_id: Annotated[str, typer.Argument(help="Employee id")],
    day: Annotated[str, typer.Option("--day", "-d", help="Day (YYYY-MM-DD)")],
    config_file: ConfigOption = None,
    snapshot: SnapshotOption = None,
    verbose: VerboseOption = False,
):
    """
    Show the column layout of an employee's appointments.
    """
    try:
        config, service = _load(config_file, snapshot, verbose)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    assignments = _run(service.calendar_layout(employee_id=employee_id, day=_parse_day(day, config.timezone)))

    if not assignments:
        console.print("[yellow]No appointments on this day.[/yellow]")
        return

    table = Table(title=f"Layout for {employee_id}", show_header=True, header_style="bold cyan")
    table.add_column("Appointment", style="bold yellow")
    table.add_column("Cluster", justify="right")
    table.add_column("Column", justify="right")
    for a in assignments:
        table.add_row(a.appointment_id, str(a.cluster), f"{a.column + 1}/{a.total_columns}")

    console.print()
    console.print(table)
    console.print()


@app.command()
def series(
    service_ids: Annotated[List[str], typer.Argument(help="Service ids in booking order")],
    start: Annotated[str, typer.Option("--start", help="First occurrence (YYYY-MM-DD HH:mm)")],
    weekday: Annotated[Optional[List[int]], typer.Option("--weekday", "-w", help="Weekday 0=Monday..6=Sunday (repeatable)")] = None,
    every: Annotated[int, typer.Option("--every", help="Repeat every N weeks")] = 1,
    count: Annotated[int, typer.Option("--count", help="Number of occurrences")] = 4,
    until: Annotated[Optional[str], typer.Option("--until", help="Last date (YYYY-MM-DD); overrides --count")] = None,
    config_file: ConfigOption = None,
    snapshot: SnapshotOption = None,
    verbose: VerboseOption = False,
):
    """
    Preview which dates of a weekly recurring visit are available.
    """
    try:
        config, service = _load(config_file, snapshot, verbose)
        first_start = pendulum.from_format(start, "YYYY-MM-DD HH:mm", tz=config.timezone)
        pattern = RecurrencePattern(
            interval_weeks=every,
            weekdays=tuple(weekday or ()),
            end_type="date" if until else "count",
            count=count,
            until=_parse_day(until, config.timezone).date() if until else None,
        )
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    requests = [ServiceRequest(service_id=s) for s in service_ids]
    preview = _run(service.preview_series(first_start=first_start, services=requests, pattern=pattern))

    colors = {"available": "green", "no_work": "yellow", "conflict": "red"}
    for occurrence in preview.occurrences:
        color = colors[occurrence.status.value]
        console.print(
            f"  {occurrence.start.format('ddd DD.MM.YYYY HH:mm')}  "
            f"[{color}]{occurrence.status.value}[/{color}] {occurrence.detail}"
        )
    console.print(
        f"\n[bold]{preview.available_count}[/bold] of {len(preview.occurrences)} occurrence(s) available\n"
    )


@app.command()
def serve(
    host: Annotated[str, typer.Option("--host", help="Bind address")] = "127.0.0.1",
    port: Annotated[int, typer.Option("--port", help="Port")] = 8000,
    config_file: ConfigOption = None,
    snapshot: SnapshotOption = None,
    verbose: VerboseOption = False,
):
    """
    Run the HTTP API.
    """
    import uvicorn

    from ..api.app import create_app

    try:
        config, service = _load(config_file, snapshot, verbose)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    uvicorn.run(create_app(service, config.timezone), host=host, port=port)


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]slotengine[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
