"""Typer-based CLI for telever."""

import json
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from .config import TeleverConfig
from .errors import InvalidScheduleInput, LedgerIOError, TeleverError
from .ledger import LedgerStore, format_export
from .logs import configure_logging
from .matcher import VerificationMatcher, load_locations
from .models.verification import BulkStatus
from .notifier import ConsoleNotifier
from .parser import parse_transaction
from .schedule import add_schedule_entry, event_names, format_schedule_detail

app = typer.Typer(
    name="telever",
    help="telever - payment-confirmation parsing and verification ledger",
    add_completion=False,
)

console = Console()

DATA_DIR_HELP = "Data directory holding the ledger (default: TELEVER_DATA_DIR env or ./data)"
OPERATOR = "operator"


def _load_config(data_dir: Optional[str]) -> TeleverConfig:
    config = TeleverConfig.from_env(cli_data_dir=data_dir)
    configure_logging(config.log_level, config.log_dir)
    return config


def _open_store(data_dir: Optional[str]) -> LedgerStore:
    return LedgerStore.from_config(_load_config(data_dir))


def _build_matcher(data_dir: Optional[str]) -> VerificationMatcher:
    store = _open_store(data_dir)
    return VerificationMatcher(
        store,
        notifier=ConsoleNotifier(console),
        locations=load_locations(store.paths.locations_file),
    )


def _read_text(text: Optional[str], file: Optional[str]) -> str:
    """Return exactly one of --text or --file as a string."""
    if not text and not file:
        console.print("[red]Error: Must provide either --text or --file[/red]")
        raise typer.Exit(code=1)
    if text and file:
        console.print("[red]Error: Cannot provide both --text and --file[/red]")
        raise typer.Exit(code=1)
    if text:
        return text
    try:
        return Path(file).read_text(encoding="utf-8")
    except OSError as e:
        console.print(f"[red]Error reading {file}: {e}[/red]")
        raise typer.Exit(code=1)


@app.command()
def parse(
    text: str = typer.Option(None, "--text", "-t", help="Confirmation text"),
    file: str = typer.Option(None, "--file", "-f", help="File with confirmation text (e.g. OCR output)"),
):
    """Parse confirmation text into a transaction record (no ledger access)."""
    content = _read_text(text, file)
    record = parse_transaction(content)
    if record is None:
        console.print(f"[yellow]Not a transaction.[/yellow] Extracted text reads: {content}")
        return

    table = Table(title="Transaction")
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    for key, value in record.model_dump(mode="json").items():
        table.add_row(key, str(value))
    console.print(table)


@app.command()
def ingest(
    text: str = typer.Option(None, "--text", "-t", help="Confirmation text"),
    file: str = typer.Option(None, "--file", "-f", help="File with confirmation text (e.g. OCR output)"),
    recipient: str = typer.Option("user", "--recipient", "-r", help="Recipient of notifications"),
    group: bool = typer.Option(False, "--group", help="Treat the request as coming from a group chat"),
    data_dir: str = typer.Option(None, "--data-dir", "-d", help=DATA_DIR_HELP),
):
    """Parse confirmation text and, when it is a transaction, verify its code."""
    content = _read_text(text, file)
    matcher = _build_matcher(data_dir)
    try:
        matcher.ingest_confirmation_text(recipient, content, private_chat=not group)
    except TeleverError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1)


@app.command()
def verify(
    code: str = typer.Argument(..., help="Transaction code to verify"),
    recipient: str = typer.Option("user", "--recipient", "-r", help="Recipient of notifications"),
    group: bool = typer.Option(False, "--group", help="Treat the request as coming from a group chat"),
    data_dir: str = typer.Option(None, "--data-dir", "-d", help=DATA_DIR_HELP),
):
    """Request verification of a code (first call registers, later calls match)."""
    matcher = _build_matcher(data_dir)
    try:
        result = matcher.verify_and_notify(recipient, code, private_chat=not group)
    except TeleverError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1)
    if result is not None:
        console.print(f"[dim]Outcome: {result.outcome.value}[/dim]")


@app.command()
def paid(
    text: str = typer.Option(None, "--text", "-t", help="Operator-pasted confirmation text"),
    file: str = typer.Option(None, "--file", "-f", help="File with operator-pasted confirmation text"),
    code: str = typer.Option(None, "--code", "-c", help="Register this code directly"),
    data_dir: str = typer.Option(None, "--data-dir", "-d", help=DATA_DIR_HELP),
):
    """Register a paid transaction code (bulk text or a code given directly)."""
    matcher = _build_matcher(data_dir)

    if code:
        try:
            added = matcher.register_paid(code)
        except LedgerIOError as e:
            console.print(f"[red]Error: {e}[/red]")
            raise typer.Exit(code=1)
        if added:
            console.print(f"[green]+[/green] Paid code recorded: {code}")
        else:
            console.print(f"[dim]Paid code already recorded: {code}[/dim]")
        return

    result = matcher.register_bulk(OPERATOR, _read_text(text, file))
    if result.status == BulkStatus.NOT_FOUND:
        console.print("[yellow]No amount or transaction number found in the text[/yellow]")
        raise typer.Exit(code=1)
    if result.status == BulkStatus.UNAVAILABLE:
        raise typer.Exit(code=1)


@app.command()
def link(
    name: str = typer.Argument(..., help="Link name, e.g. link1 or link2"),
    url: str = typer.Argument(..., help="Link value"),
    data_dir: str = typer.Option(None, "--data-dir", "-d", help=DATA_DIR_HELP),
):
    """Set a named external link."""
    store = _open_store(data_dir)
    try:
        store.set_link(name, url)
    except LedgerIOError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1)
    console.print(f"{name.capitalize()} set to: {url}")


schedule_app = typer.Typer(help="Event schedule commands")
app.add_typer(schedule_app, name="schedule")


@schedule_app.command("add")
def schedule_add(
    event: str = typer.Argument(..., help="Event name (single word)"),
    day: str = typer.Argument(..., help="Day of week"),
    time: str = typer.Argument(..., help="Time of day, HHMM 24h"),
    data_dir: str = typer.Option(None, "--data-dir", "-d", help=DATA_DIR_HELP),
):
    """Add a recurring event; the current links are stored with it."""
    store = _open_store(data_dir)
    try:
        entry, added = add_schedule_entry(store, [event, day, time])
    except (InvalidScheduleInput, LedgerIOError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1)
    if added:
        console.print(f"[green]+[/green] Schedule updated with '{entry.details}'")
    else:
        console.print(f"[yellow]'{entry.details}' already exists in the schedule[/yellow]")


@schedule_app.command("remove")
def schedule_remove(
    term: str = typer.Argument(..., help="Case-insensitive text matched against entry details"),
    data_dir: str = typer.Option(None, "--data-dir", "-d", help=DATA_DIR_HELP),
):
    """Remove every schedule entry whose details contain TERM."""
    store = _open_store(data_dir)
    try:
        removed = store.remove_schedule_entries(term)
    except (InvalidScheduleInput, LedgerIOError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1)
    if removed:
        console.print(f"[green]-[/green] Removed {removed} entr{'y' if removed == 1 else 'ies'} matching '{term}'")
    else:
        console.print(f"[yellow]No entries found matching '{term}'[/yellow]")


@schedule_app.command("list")
def schedule_list(
    data_dir: str = typer.Option(None, "--data-dir", "-d", help=DATA_DIR_HELP),
):
    """Show the event schedule."""
    ledger = _open_store(data_dir).open()
    if not ledger.schedule:
        console.print("[dim]No schedule entries[/dim]")
        return
    console.print(f"[bold]Events:[/bold] {', '.join(event_names(ledger.schedule))}")
    for entry in ledger.schedule:
        console.print(format_schedule_detail(entry))


@app.command()
def book(
    event: str = typer.Argument(..., help="Event name"),
    day: str = typer.Argument(..., help="Day of week"),
    time: str = typer.Argument(..., help="Time of day, HHMM 24h"),
    recipient: str = typer.Option("user", "--recipient", "-r", help="Recipient of notifications"),
    data_dir: str = typer.Option(None, "--data-dir", "-d", help=DATA_DIR_HELP),
):
    """Book an event for the next few minutes with a random 4-digit code."""
    matcher = _build_matcher(data_dir)
    booking = matcher.book_and_notify(recipient, event, day, time)
    if booking is None:
        raise typer.Exit(code=1)


@app.command()
def bookings(
    data_dir: str = typer.Option(None, "--data-dir", "-d", help=DATA_DIR_HELP),
):
    """List open bookings (expired ones are evicted first)."""
    store = _open_store(data_dir)
    try:
        items = store.list_bookings()
    except LedgerIOError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1)

    if not items:
        console.print("[dim]No open bookings[/dim]")
        return

    table = Table(title=f"{len(items)} Open Booking(s)")
    table.add_column("Code", style="yellow")
    table.add_column("Event", style="cyan")
    table.add_column("Day")
    table.add_column("Time")
    table.add_column("Booked at", style="dim")
    for item in items:
        table.add_row(
            str(item.booking_code),
            item.event,
            item.day,
            item.time,
            item.booking_time.strftime("%Y-%m-%d %H:%M:%S"),
        )
    console.print(table)


ledger_app = typer.Typer(help="Ledger commands")
app.add_typer(ledger_app, name="ledger")


@ledger_app.command("show")
def ledger_show(
    data_dir: str = typer.Option(None, "--data-dir", "-d", help=DATA_DIR_HELP),
):
    """Show every ledger collection as a listing."""
    store = _open_store(data_dir)
    ledger = store.open()
    console.print(f"[bold]Ledger[/bold] [dim]{store.current_path()}[/dim]")
    console.print(format_export(ledger), markup=False)


@ledger_app.command("export")
def ledger_export(
    data_dir: str = typer.Option(None, "--data-dir", "-d", help=DATA_DIR_HELP),
):
    """Print the ledger document as JSON."""
    ledger = _open_store(data_dir).open()
    typer.echo(json.dumps(ledger.model_dump(mode="json"), indent=2, ensure_ascii=False))


@ledger_app.command("rotate")
def ledger_rotate(
    data_dir: str = typer.Option(None, "--data-dir", "-d", help=DATA_DIR_HELP),
):
    """Rename a stale-dated ledger file forward to today's date."""
    store = _open_store(data_dir)
    try:
        new_path = store.rotate()
    except LedgerIOError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1)
    if new_path:
        console.print(f"[green]Rotated ledger to[/green] {new_path}")
    else:
        console.print("[dim]Nothing to rotate[/dim]")


@app.command()
def reset(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt"),
    data_dir: str = typer.Option(None, "--data-dir", "-d", help=DATA_DIR_HELP),
):
    """Delete the ledger file entirely (asks for confirmation)."""
    store = _open_store(data_dir)
    if not yes and not typer.confirm("This deletes all ledger data. Continue?"):
        console.print("[dim]Reset cancelled[/dim]")
        return
    try:
        deleted = store.reset()
    except LedgerIOError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1)
    if deleted:
        console.print("[green]Ledger data reset[/green]")
    else:
        console.print("[dim]No data files found to reset[/dim]")


@app.command()
def version():
    """Show telever version."""
    from . import __version__
    console.print(f"telever v{__version__}")


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
