"""CLI entry point for northlight."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, TypeVar

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

import northlight
from northlight.core.client import NorthlightClient, default_client
from northlight.core.errors import NorthlightError
from northlight.core.models import Severity, filter_by_status, sort_by_status
from northlight.data.ledger import VoteLedger
from northlight.data.store import DataStore

T = TypeVar("T")

app = typer.Typer(
    name="northlight",
    help="Send feedback and bug reports, browse and vote on feature requests.",
    no_args_is_help=True,
)
console = Console()

_CONFIG_KEYS = ("api-key", "base-url", "user-email", "user-identifier")


@app.callback()
def main(
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Show request logs"
    ),
) -> None:
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=console, show_path=False)],
        )


def _make_client(store: DataStore) -> NorthlightClient:
    return default_client(store)


def _run(operation: Callable[[NorthlightClient], Awaitable[T]]) -> T:
    """Run one client operation, turning client errors into exit code 1."""
    store = DataStore()
    client = _make_client(store)
    if not client.config.is_configured:
        store.close()
        console.print(
            "[red]Error: no API key configured.[/]\n"
            "Set it with: northlight configure <api-key> "
            "or export NORTHLIGHT_API_KEY='your-key-here'",
        )
        raise typer.Exit(1)

    async def _go() -> T:
        try:
            return await operation(client)
        finally:
            await client.aclose()

    try:
        return asyncio.run(_go())
    except NorthlightError as e:
        console.print(f"[red]Error: {e}[/]")
        raise typer.Exit(1)
    finally:
        store.close()


@app.command()
def configure(
    api_key: str = typer.Argument(..., help="Project API key"),
    base_url: Optional[str] = typer.Option(
        None, "--base-url", help="Custom API base URL"
    ),
) -> None:
    """Save the API key (and optional base URL) for later commands."""
    if not api_key.strip():
        console.print("[red]API key cannot be empty[/]")
        raise typer.Exit(1)
    store = DataStore()
    store.set_config("api-key", api_key.strip())
    if base_url:
        store.set_config("base-url", base_url)
    else:
        store.delete_config("base-url")
    store.close()
    console.print(f"[green]Configured with API key {api_key[:8]}...[/]")


@app.command("submit-feedback")
def submit_feedback(
    title: str = typer.Argument(..., help="Short summary"),
    description: str = typer.Argument(..., help="Details"),
    category: Optional[str] = typer.Option(
        None, "--category", "-c", help="Feedback category"
    ),
) -> None:
    """Submit a feature request."""
    feedback_id = _run(
        lambda c: c.submit_feedback(title, description, category)
    )
    console.print(f"[green]Feedback submitted: {feedback_id}[/]")


@app.command("report-bug")
def report_bug(
    title: str = typer.Argument(..., help="Short summary"),
    description: str = typer.Argument(..., help="What went wrong"),
    severity: Severity = typer.Option(
        Severity.MEDIUM, "--severity", "-s", case_sensitive=False,
        help="Bug severity",
    ),
    steps: Optional[str] = typer.Option(
        None, "--steps", help="Steps to reproduce"
    ),
) -> None:
    """Submit a bug report with device diagnostics."""
    bug_id = _run(lambda c: c.report_bug(title, description, severity, steps))
    console.print(f"[green]Bug reported: {bug_id}[/]")


@app.command("list-feedback")
def list_feedback(
    status: Optional[str] = typer.Option(
        None, "--status", help="Only show items with this status"
    ),
) -> None:
    """List public feedback, grouped by status and ordered by votes."""
    items = _run(lambda c: c.get_public_feedback())
    items = filter_by_status(sort_by_status(items), status)
    if not items:
        console.print("[yellow]No feedback found.[/]")
        raise typer.Exit(0)

    store = DataStore()
    voted = VoteLedger(store).voted_ids()
    store.close()

    table = Table(title="Feedback")
    table.add_column("ID", style="cyan")
    table.add_column("Title", style="green")
    table.add_column("Status")
    table.add_column("Category")
    table.add_column("Votes", justify="right")
    for item in items:
        votes = str(item.vote_count) + (" ✓" if item.id in voted else "")
        table.add_row(
            item.id,
            item.title,
            item.display_status,
            item.category or "",
            votes,
        )
    console.print(table)


@app.command()
def roadmap() -> None:
    """Show the public roadmap."""
    items = _run(lambda c: c.get_roadmap())
    if not items:
        console.print("[yellow]Roadmap is empty.[/]")
        raise typer.Exit(0)

    table = Table(title="Roadmap")
    table.add_column("#", justify="right")
    table.add_column("Feature", style="green")
    table.add_column("Description")
    table.add_column("Estimated")
    for item in sorted(items, key=lambda i: i.position):
        table.add_row(
            str(item.position),
            item.feature.title,
            item.feature.description,
            item.estimated_date,
        )
    console.print(table)


@app.command()
def vote(
    feedback_id: str = typer.Argument(..., help="Feedback item id"),
) -> None:
    """Vote for a feedback item (once per device)."""
    count = _run(lambda c: c.vote_for(feedback_id))
    console.print(f"[green]Voted. {feedback_id} now has {count} votes.[/]")


@app.command("device-info")
def device_info(
    extended: bool = typer.Option(
        False, "--extended", help="Include memory, battery and network"
    ),
) -> None:
    """Show the device details attached to submissions."""
    from northlight.core.device import PlatformDeviceProvider, capture

    info = capture(
        include_extended=extended,
        provider=PlatformDeviceProvider(app_version=northlight.__version__),
    )
    table = Table(title="Device")
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="green")
    for key, value in info.to_dict().items():
        table.add_row(key, str(value))
    console.print(table)


@app.command()
def config(
    action: str = typer.Argument(
        "get", help="Action: get or set"
    ),
    key: Optional[str] = typer.Argument(
        None, help=f"Config key ({', '.join(_CONFIG_KEYS)})"
    ),
    value: Optional[str] = typer.Argument(
        None, help="Value to set"
    ),
) -> None:
    """View or modify configuration."""
    store = DataStore()

    if action == "get":
        if key:
            val = store.get_config(key)
            if val is not None:
                console.print(f"{key} = {_mask(key, val)}")
            else:
                console.print(f"[yellow]{key} is not set[/]")
        else:
            for k in _CONFIG_KEYS:
                val = store.get_config(k)
                console.print(f"{k} = {_mask(k, val) if val else '(not set)'}")
    elif action == "set":
        if not key or value is None:
            console.print("[red]Usage: northlight config set <key> <value>[/]")
            raise typer.Exit(1)
        if key not in _CONFIG_KEYS:
            console.print(
                f"[red]Unknown config key: {key}. "
                f"Valid keys: {', '.join(_CONFIG_KEYS)}[/]"
            )
            raise typer.Exit(1)
        store.set_config(key, value)
        console.print(f"[green]Set {key} = {_mask(key, value)}[/]")
    else:
        console.print("[red]Unknown action. Use 'get' or 'set'.[/]")
        raise typer.Exit(1)

    store.close()


def _mask(key: str, value: Any) -> str:
    if key == "api-key":
        return f"{str(value)[:8]}..."
    return str(value)


@app.command()
def version() -> None:
    """Print version."""
    console.print(f"northlight {northlight.__version__}")


if __name__ == "__main__":
    app()
