"""Command-line interface for the inbox prioritizer.

Provides commands for configuration validation, one-off fetch/analyze runs,
and the HTTP server.

Usage:
    python -m prioritizer validate-config
    python -m prioritizer fetch --token "$GMAIL_ACCESS_TOKEN" --max-results 20
    python -m prioritizer analyze --max-results 20
    python -m prioritizer serve
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import TYPE_CHECKING

import click
from rich.console import Console
from rich.table import Table

from prioritizer.config import validate_config_file
from prioritizer.core.logging import configure_logging

if TYPE_CHECKING:
    from prioritizer.engine.pipeline import PrioritizationPipeline
    from prioritizer.models import NormalizedEmail, PrioritizedEmail

console = Console()

PRIORITY_STYLES = {"high": "bold red", "medium": "yellow", "low": "green"}

token_option = click.option(
    "--token",
    "-t",
    envvar="GMAIL_ACCESS_TOKEN",
    required=True,
    help="Gmail OAuth access token (or set GMAIL_ACCESS_TOKEN)",
)
max_results_option = click.option(
    "--max-results",
    "-n",
    type=click.IntRange(min=1),
    default=None,
    help="Number of recent messages to fetch (default from config)",
)


def _build_pipeline() -> PrioritizationPipeline:
    """Load config and build the pipeline, exiting with guidance on failure."""
    from prioritizer.config import get_config
    from prioritizer.core.errors import PrioritizerError
    from prioritizer.engine.pipeline import PrioritizationPipeline

    try:
        config = get_config()
    except PrioritizerError as e:
        console.print(
            f"[red]Config error:[/red] {e}\n\n"
            "Run [cyan]python -m prioritizer validate-config[/cyan] for details."
        )
        sys.exit(1)

    return PrioritizationPipeline.from_config(config)


def _emails_table(emails: list[NormalizedEmail]) -> Table:
    table = Table(box=None, padding=(0, 2))
    table.add_column("Date", style="dim")
    table.add_column("From", style="cyan")
    table.add_column("Subject")
    table.add_column("Snippet", style="dim", max_width=60)

    for email in emails:
        table.add_row(email.date, email.sender, email.subject, email.snippet)
    return table


def _prioritized_table(emails: list[PrioritizedEmail]) -> Table:
    table = Table(box=None, padding=(0, 2))
    table.add_column("Priority")
    table.add_column("From", style="cyan")
    table.add_column("Subject")
    table.add_column("Reasoning", style="dim", max_width=60)

    for email in emails:
        style = PRIORITY_STYLES.get(email.priority, "")
        table.add_row(
            f"[{style}]{email.priority.upper()}[/{style}]",
            email.sender,
            email.subject,
            email.reasoning,
        )
    return table


def _run(coro) -> None:
    """Run a command coroutine, turning pipeline errors into exit codes."""
    from prioritizer.core.errors import PrioritizerError

    try:
        asyncio.run(coro)
    except KeyboardInterrupt:
        console.print("\n[yellow]Cancelled.[/yellow]")
        sys.exit(130)
    except PrioritizerError as e:
        console.print(f"\n[red]Error:[/red] {e}")
        sys.exit(1)


@click.group()
@click.option("--debug/--no-debug", default=False, help="Enable debug logging")
def cli(debug: bool) -> None:
    """Inbox Prioritizer - rank recent Gmail messages by urgency."""
    log_level = "DEBUG" if debug else "WARNING"
    # Use human-readable output for CLI, JSON for server
    configure_logging(log_level=log_level, json_output=False)


@cli.command("validate-config")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False, path_type=Path),
    default=None,
    help="Path to config file (default: config/config.yaml)",
)
def validate_config(config_path: Path | None) -> None:
    """Validate the configuration file.

    Checks that config.yaml passes Pydantic schema validation and reports
    whether the classification API key is available.
    """
    console.print(f"Validating config: [cyan]{config_path or 'config/config.yaml'}[/cyan]")

    is_valid, message = validate_config_file(config_path)

    if is_valid:
        console.print(f"\n[green]✓[/green] {message}")
        sys.exit(0)
    else:
        console.print(f"\n[red]✗[/red] {message}")
        sys.exit(1)


@cli.command("fetch")
@token_option
@max_results_option
def fetch(token: str, max_results: int | None) -> None:
    """Fetch and normalize the most recent messages."""
    _run(_run_fetch(token, max_results))


async def _run_fetch(token: str, max_results: int | None) -> None:
    pipeline = _build_pipeline()
    emails = await pipeline.fetch_emails(token, max_results)

    if not emails:
        console.print("[yellow]No messages found.[/yellow]")
        return

    console.print(_emails_table(emails))
    console.print(f"\nFetched [cyan]{len(emails)}[/cyan] emails")


@cli.command("analyze")
@token_option
@max_results_option
def analyze(token: str, max_results: int | None) -> None:
    """Fetch recent messages and rank them by priority."""
    _run(_run_analyze(token, max_results))


async def _run_analyze(token: str, max_results: int | None) -> None:
    from prioritizer.engine.ranking import count_by_priority

    pipeline = _build_pipeline()
    emails = await pipeline.fetch_emails(token, max_results)

    if not emails:
        console.print("[yellow]No messages to analyze.[/yellow]")
        return

    with console.status(f"Analyzing {len(emails)} emails..."):
        ranked = await pipeline.analyze_emails(token, emails)

    console.print(_prioritized_table(ranked))

    counts = count_by_priority(ranked)
    summary = "  ".join(
        f"[{PRIORITY_STYLES[tier]}]{tier}[/{PRIORITY_STYLES[tier]}]={count}"
        for tier, count in counts.items()
    )
    console.print(f"\nAnalyzed [cyan]{len(ranked)}[/cyan] emails: {summary}")


@cli.command("serve")
@click.option(
    "--host",
    default="127.0.0.1",
    help="Host to bind to (default: localhost only)",
)
@click.option(
    "--port",
    default=8000,
    type=int,
    help="Port to bind to",
)
def serve(host: str, port: int) -> None:
    """Start the HTTP server exposing gmail-fetch and gmail-analyze."""
    import uvicorn

    from prioritizer.config import get_config
    from prioritizer.core.errors import PrioritizerError
    from prioritizer.web.app import create_app

    try:
        config = get_config()
    except PrioritizerError as e:
        console.print(f"[red]Config error:[/red] {e}")
        sys.exit(1)

    configure_logging(log_level=config.logging.level, json_output=config.logging.json_output)

    app = create_app(config)
    console.print(f"Starting server on [cyan]http://{host}:{port}[/cyan]")
    uvicorn.run(app, host=host, port=port, log_level="info")


def main() -> None:
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
