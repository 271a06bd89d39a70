"""
CLI interface for Claude Usage Stats.

Provides command-line access to usage reports built from local Claude logs.
"""

import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

import typer
import yaml
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from claude_usage_stats.config.loader import Settings, load_settings
from claude_usage_stats.core.errors import UsageStatisticsError
from claude_usage_stats.core.models import DateRange, SessionSortOrder, UsageStatistics
from claude_usage_stats.core.service import UsageService

app = typer.Typer()
console = Console()

EXIT_CODE_PASS = 0
EXIT_CODE_FAIL = 1


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True
    )


def _build_service(config: Optional[Path], data_dir: Optional[Path]) -> UsageService:
    """Create the usage service from an optional config file and overrides."""
    settings = load_settings(str(config)) if config else Settings.defaults()
    if data_dir is not None:
        settings = Settings(
            data_directory=data_dir,
            cache=settings.cache,
            parser=settings.parser
        )
    return UsageService.from_settings(settings)


def _report_error(error: UsageStatisticsError) -> None:
    console.print(f"[red]Error:[/] {error}")
    if error.recovery_suggestion:
        console.print(f"[dim]{error.recovery_suggestion}[/]")


def _format_currency(amount: float) -> str:
    """Format currency with proper symbols and formatting."""
    if 0 < abs(amount) < 0.01:
        return f"${amount:.6f}"
    return f"${amount:,.2f}"


def _format_tokens(count: int) -> str:
    if count >= 1_000_000:
        return f"{count / 1_000_000:.2f}M"
    if count >= 1_000:
        return f"{count / 1_000:.1f}K"
    return f"{count:,}"


@app.callback(invoke_without_command=True)
def main(ctx: typer.Context):
    """Claude Usage Stats CLI."""
    if ctx.invoked_subcommand is None:
        console.print("Claude Usage Stats - Use --help to see available commands")


@app.command()
def report(
    date_range: DateRange = typer.Option(
        DateRange.ALL,
        "--range",
        "-r",
        help="Date range to report on"
    ),
    project: Optional[str] = typer.Option(
        None,
        "--project",
        "-p",
        help="Only include projects whose path contains this text"
    ),
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to YAML configuration file"
    ),
    data_dir: Optional[Path] = typer.Option(
        None,
        "--data-dir",
        help="Claude data directory (defaults to ~/.claude)"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging")
):
    """Show cost and token usage by model, day and project."""
    _configure_logging(verbose)
    try:
        service = _build_service(config, data_dir)
        statistics = asyncio.run(service.get_usage_statistics(date_range, project))
    except UsageStatisticsError as e:
        _report_error(e)
        sys.exit(EXIT_CODE_FAIL)
    except (ValueError, FileNotFoundError, yaml.YAMLError) as e:
        console.print(f"[red]Configuration error:[/] {e}")
        sys.exit(EXIT_CODE_FAIL)

    _display_statistics(statistics)
    sys.exit(EXIT_CODE_PASS)


@app.command()
def sessions(
    date_range: DateRange = typer.Option(
        DateRange.ALL,
        "--range",
        "-r",
        help="Date range to report on"
    ),
    sort: SessionSortOrder = typer.Option(
        SessionSortOrder.COST_DESCENDING,
        "--sort",
        "-s",
        help="Ordering of the project list"
    ),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to YAML configuration file"),
    data_dir: Optional[Path] = typer.Option(None, "--data-dir", help="Claude data directory"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging")
):
    """List per-project usage in the requested order."""
    _configure_logging(verbose)
    try:
        service = _build_service(config, data_dir)
        projects = asyncio.run(service.get_session_statistics(date_range, sort))
    except UsageStatisticsError as e:
        _report_error(e)
        sys.exit(EXIT_CODE_FAIL)
    except (ValueError, FileNotFoundError, yaml.YAMLError) as e:
        console.print(f"[red]Configuration error:[/] {e}")
        sys.exit(EXIT_CODE_FAIL)

    if not projects:
        console.print("\n[bold yellow]No usage data found for this range[/]\n")
        sys.exit(EXIT_CODE_PASS)

    table = Table(title="Projects")
    table.add_column("Project")
    table.add_column("Cost", justify="right")
    table.add_column("Tokens", justify="right")
    table.add_column("Sessions", justify="right")
    table.add_column("Requests", justify="right")
    table.add_column("Last used")
    for usage in projects:
        table.add_row(
            usage.project_name,
            _format_currency(usage.total_cost),
            _format_tokens(usage.total_tokens),
            str(usage.session_count),
            str(usage.request_count),
            usage.last_used
        )
    console.print(table)
    sys.exit(EXIT_CODE_PASS)


@app.command()
def check(
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to YAML configuration file"),
    data_dir: Optional[Path] = typer.Option(None, "--data-dir", help="Claude data directory")
):
    """Check that the Claude usage logs can be read."""
    try:
        service = _build_service(config, data_dir)
        accessible = service.validate_data_access()
    except UsageStatisticsError as e:
        _report_error(e)
        sys.exit(EXIT_CODE_FAIL)
    except (ValueError, FileNotFoundError, yaml.YAMLError) as e:
        console.print(f"[red]Configuration error:[/] {e}")
        sys.exit(EXIT_CODE_FAIL)

    if accessible:
        console.print("[green]✓[/] Usage data is readable")
        sys.exit(EXIT_CODE_PASS)

    console.print("[red]✗[/] Usage data directory is missing or unreadable")
    sys.exit(EXIT_CODE_FAIL)


def _display_statistics(statistics: UsageStatistics) -> None:
    """Display a usage report as summary lines and tables."""
    console.print("\n[bold]Claude Usage Report[/bold]")
    console.print("-" * 40)

    if statistics.total_requests == 0 and statistics.total_sessions == 0:
        console.print("\n[dim]No usage data found.[/]")
        return

    console.print(f"Total cost: {_format_currency(statistics.total_cost)}")
    console.print(f"Total tokens: {_format_tokens(statistics.total_tokens)}")
    console.print(f"Sessions: {statistics.total_sessions:,}")
    console.print(f"Requests: {statistics.total_requests:,}")
    console.print(f"Average cost/request: {_format_currency(statistics.average_cost_per_request)}")

    models = Table(title="By model")
    models.add_column("Model")
    models.add_column("Cost", justify="right")
    models.add_column("Tokens", justify="right")
    models.add_column("Sessions", justify="right")
    models.add_column("Requests", justify="right")
    for usage in statistics.by_model:
        models.add_row(
            usage.model,
            _format_currency(usage.total_cost),
            _format_tokens(usage.total_tokens),
            str(usage.session_count),
            str(usage.request_count)
        )
    console.print(models)

    days = Table(title="By date")
    days.add_column("Date")
    days.add_column("Cost", justify="right")
    days.add_column("Tokens", justify="right")
    days.add_column("Models")
    for usage in statistics.by_date:
        days.add_row(
            usage.date,
            _format_currency(usage.total_cost),
            _format_tokens(usage.total_tokens),
            ", ".join(usage.models_used)
        )
    console.print(days)

    projects = Table(title="By project")
    projects.add_column("Project")
    projects.add_column("Cost", justify="right")
    projects.add_column("Tokens", justify="right")
    projects.add_column("Sessions", justify="right")
    for usage in statistics.by_project:
        projects.add_row(
            usage.project_name,
            _format_currency(usage.total_cost),
            _format_tokens(usage.total_tokens),
            str(usage.session_count)
        )
    console.print(projects)


if __name__ == "__main__":
    app()
