"""Resolve command implementation."""

from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from ..detection import DuplicateChecker
from ..resolution import ComparisonProvider, ResolutionEngine, ResolutionReport, create_comparison_provider
from .common import fail, load_settings, open_database
from .selectors import ARTICLE, DATE, SelectionError, build_selection

console = Console()


def print_resolution_report(report: ResolutionReport, provider: ComparisonProvider) -> None:
    """Print counters for a resolution batch."""
    table = Table(title="Resolution Summary")
    table.add_column("Metric", style="cyan")
    table.add_column("Count", style="green", justify="right")

    table.add_row("Articles", str(report.articles))
    table.add_row("Resolved", str(report.resolved))
    table.add_row("Already resolved", str(report.already_resolved))
    if report.deleted:
        table.add_row("Deleted (force)", str(report.deleted))
    for decision, count in report.decisions.items():
        table.add_row(f"  {decision}", str(count))
    for method, count in report.methods.items():
        table.add_row(f"  via {method}", str(count))
    if report.pending:
        table.add_row("[yellow]Pending (retry next run)[/yellow]", str(report.pending))
    if report.failed:
        table.add_row("[red]Failed[/red]", str(report.failed))
    console.print(table)

    usage = provider.get_usage_stats()
    if usage.get("api_calls"):
        console.print(
            f"[dim]LLM: {usage['api_calls']} call(s), {usage.get('total_tokens', 0)} tokens, "
            f"${usage.get('estimated_cost', 0.0):.4f} ({usage.get('model')})[/dim]"
        )


def resolve_command(
    on_date: Optional[str] = typer.Option(None, "--date", help="Publication date (YYYY-MM-DD)"),
    article_id: Optional[str] = typer.Option(None, "--article-id", help="Resolve one article"),
    threshold: Optional[float] = typer.Option(
        None, "--threshold", min=0.0, max=1.0, help="UPDATE threshold (default from config)"
    ),
    lookback_days: Optional[int] = typer.Option(
        None, "--lookback-days", min=1, help="Candidate window in days (default from config)"
    ),
    force: bool = typer.Option(False, "--force", help="Delete existing resolutions and recompute"),
) -> None:
    """Decide NEW / UPDATE / SKIP and store the decisions."""
    try:
        selection = build_selection(
            on_date=on_date,
            article_id=article_id,
            allowed=(DATE, ARTICLE),
        )
    except SelectionError as e:
        fail(str(e))

    config = load_settings()
    detection = config.get_detection_config(threshold, lookback_days)
    try:
        provider = create_comparison_provider(config.get_llm_config(), detection)
    except ValueError as e:
        fail(str(e))

    db = open_database(config)
    try:
        checker = DuplicateChecker(db, weights=config.weights, detection=detection)
        engine = ResolutionEngine(db, checker, provider)
        console.print(
            f"[bold]Resolving {selection.describe()}[/bold]{' (force)' if force else ''} "
            f"[dim](threshold {detection.threshold:.2f}, lookback {detection.lookback_days} days)[/dim]"
        )
        report = engine.resolve(selection, force=force)
    finally:
        db.close()

    print_resolution_report(report, provider)
    if report.aborted:
        raise typer.Exit(1)
