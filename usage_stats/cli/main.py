"""
CLI interface for usage stats.

Provides command-line access to the daily statistics file.
"""

import logging
import sys
from typing import Optional

import typer
import yaml
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from usage_stats.config.loader import StatsConfig, load_stats_config
from usage_stats.core.engine import UsageStatsEngine
from usage_stats.core.masking import mask_credential
from usage_stats.storage.errors import StatsError
from usage_stats.storage.models import DailyStats

app = typer.Typer()
console = Console()

EXIT_CODE_PASS = 0
EXIT_CODE_FAIL = 1


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show log messages")
):
    """Daily usage stats CLI."""
    if verbose:
        logging.basicConfig(
            level=logging.INFO,
            format="%(message)s",
            handlers=[RichHandler(console=console, show_path=False)]
        )
    if ctx.invoked_subcommand is None:
        console.print("Usage Stats - Use --help to see available commands")


def _load_config(config_path: Optional[str], path: Optional[str]) -> StatsConfig:
    config = load_stats_config(config_path) if config_path else StatsConfig.default()
    if path:
        config = StatsConfig(data_path=path, max_days=config.max_days, timezone=config.timezone)
    return config


def _open_engine(config_path: Optional[str], path: Optional[str]) -> UsageStatsEngine:
    """Build and initialize an engine, exiting with a failure code on error."""
    try:
        engine = UsageStatsEngine.from_config(_load_config(config_path, path))
        engine.initialize()
    except (StatsError, ValueError, FileNotFoundError, yaml.YAMLError) as e:
        console.print(f"[red]Error opening usage stats:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)
    return engine


@app.command()
def init(
    config_path: Optional[str] = typer.Option(None, "--config", "-c", help="YAML configuration file"),
    path: Optional[str] = typer.Option(None, "--path", "-p", help="Stats file path (overrides config)")
):
    """Initialize the usage stats file."""
    engine = _open_engine(config_path, path)
    engine.close()
    console.print(f"[green]✓[/] Usage stats ready at {engine.store.path}")
    sys.exit(EXIT_CODE_PASS)


@app.command()
def record(
    credential: str = typer.Option("", "--credential", "-k", help="API credential used"),
    model: str = typer.Option("", "--model", "-m", help="Model identifier"),
    requests: int = typer.Option(1, "--requests", "-n", help="Number of requests"),
    prompt_tokens: int = typer.Option(0, "--prompt-tokens", help="Prompt tokens"),
    completion_tokens: int = typer.Option(0, "--completion-tokens", help="Completion tokens"),
    failed: bool = typer.Option(False, "--failed", help="Record the requests as failed"),
    config_path: Optional[str] = typer.Option(None, "--config", "-c", help="YAML configuration file"),
    path: Optional[str] = typer.Option(None, "--path", "-p", help="Stats file path (overrides config)")
):
    """Record a batch of requests in today's statistics."""
    engine = _open_engine(config_path, path)
    try:
        engine.record_usage(credential, model, requests, prompt_tokens, completion_tokens, not failed)
        engine.flush()
    except (StatsError, ValueError) as e:
        console.print(f"[red]Error recording usage:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)
    finally:
        engine.close()

    status = "failed" if failed else "successful"
    console.print(f"[green]✓[/] Recorded {requests} {status} request(s)")
    sys.exit(EXIT_CODE_PASS)


@app.command()
def daily(
    date: str = typer.Option("", "--date", "-d", help="Date as YYYY-MM-DD (default: today)"),
    config_path: Optional[str] = typer.Option(None, "--config", "-c", help="YAML configuration file"),
    path: Optional[str] = typer.Option(None, "--path", "-p", help="Stats file path (overrides config)")
):
    """Show statistics for a single day."""
    engine = _open_engine(config_path, path)
    stats = engine.get_daily(date)
    engine.close()

    if stats is None:
        console.print(f"\n[bold yellow]No usage recorded for {date or 'today'}[/]\n")
        sys.exit(EXIT_CODE_PASS)

    _display_daily(stats)
    sys.exit(EXIT_CODE_PASS)


@app.command()
def history(
    config_path: Optional[str] = typer.Option(None, "--config", "-c", help="YAML configuration file"),
    path: Optional[str] = typer.Option(None, "--path", "-p", help="Stats file path (overrides config)")
):
    """Show totals for every retained day."""
    engine = _open_engine(config_path, path)
    all_stats = engine.get_all_daily()
    engine.close()

    table = Table(title="Daily Usage")
    table.add_column("Date")
    table.add_column("Requests", justify="right")
    table.add_column("Success", justify="right")
    table.add_column("Failed", justify="right")
    table.add_column("Tokens", justify="right")

    for date in sorted(all_stats):
        stats = all_stats[date]
        table.add_row(
            date,
            _format_count(stats.requests.total),
            _format_count(stats.requests.success),
            _format_count(stats.requests.failed),
            _format_count(stats.tokens.total)
        )

    console.print(table)
    sys.exit(EXIT_CODE_PASS)


@app.command()
def credential(
    key: str = typer.Argument(..., help="API credential to look up"),
    date: str = typer.Option("", "--date", "-d", help="Date as YYYY-MM-DD (default: today)"),
    config_path: Optional[str] = typer.Option(None, "--config", "-c", help="YAML configuration file"),
    path: Optional[str] = typer.Option(None, "--path", "-p", help="Stats file path (overrides config)")
):
    """Show usage for one credential on a given day."""
    engine = _open_engine(config_path, path)
    usage = engine.get_credential_usage(key, date)
    engine.close()

    masked = mask_credential(key)
    if usage is None:
        console.print(f"\n[bold yellow]No usage recorded for {masked} on {date or 'today'}[/]\n")
        sys.exit(EXIT_CODE_PASS)

    console.print(f"\n[bold]Credential:[/bold] {masked}")
    console.print(f"Requests: {_format_count(usage.requests)}")
    console.print(f"Tokens: {_format_count(usage.tokens)}\n")
    sys.exit(EXIT_CODE_PASS)


def _format_count(value: int) -> str:
    """Format a counter with thousands separators."""
    return f"{value:,}"


def _display_daily(stats: DailyStats):
    """Display one day's totals, model breakdown and active hours."""
    console.print(f"\n[bold]Usage for {stats.date}[/bold]")
    console.print("-" * 40)
    console.print(
        f"Requests: {_format_count(stats.requests.total)} "
        f"({_format_count(stats.requests.success)} ok, {_format_count(stats.requests.failed)} failed)"
    )
    console.print(
        f"Tokens: {_format_count(stats.tokens.total)} "
        f"({_format_count(stats.tokens.prompt)} prompt, {_format_count(stats.tokens.completion)} completion)"
    )

    if stats.models:
        models = Table(title="Models")
        models.add_column("Model")
        models.add_column("Requests", justify="right")
        models.add_column("Tokens", justify="right")
        for name, usage in sorted(stats.models.items()):
            models.add_row(name, _format_count(usage.requests), _format_count(usage.tokens))
        console.print(models)

    active_hours = [bucket for bucket in stats.hourly if bucket.requests or bucket.tokens]
    if active_hours:
        hours = Table(title="Hours")
        hours.add_column("Hour")
        hours.add_column("Requests", justify="right")
        hours.add_column("Tokens", justify="right")
        for bucket in active_hours:
            hours.add_row(f"{bucket.hour:02d}:00", _format_count(bucket.requests), _format_count(bucket.tokens))
        console.print(hours)


if __name__ == "__main__":
    app()
