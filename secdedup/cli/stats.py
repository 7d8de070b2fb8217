"""Stats command implementation."""

from typing import Optional

import psycopg
import typer
from rich.console import Console
from rich.table import Table

from ..db import ArticleIndexRepository, ResolutionStore
from ..models import IndexStats, ResolutionStats
from .common import fail, load_settings, open_database
from .selectors import SelectionError, parse_date

console = Console()


def print_index_stats(stats: IndexStats) -> None:
    """Print overall index statistics."""
    table = Table(title="Index Statistics")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green", justify="right")

    table.add_row("Articles", str(stats.total_articles))
    table.add_row("Publications", str(stats.total_publications))
    table.add_row("CVE rows", str(stats.total_cves))
    table.add_row("Unique CVEs", str(stats.unique_cves))
    table.add_row("Entity rows", str(stats.total_entities))
    table.add_row("Unique entities", str(stats.unique_entities))
    if stats.oldest_date and stats.newest_date:
        table.add_row("Date range", f"{stats.oldest_date} → {stats.newest_date}")
    for entity_type, count in stats.entity_type_counts.items():
        table.add_row(f"  {entity_type}", str(count))

    console.print(table)


def print_resolution_stats(stats: ResolutionStats) -> None:
    """Print resolution decision statistics."""
    if stats.total == 0:
        console.print("[yellow]No resolutions recorded for this period.[/yellow]")
        return

    table = Table(title=f"Resolutions ({stats.total} total)")
    table.add_column("Decision", style="cyan")
    table.add_column("Count", style="green", justify="right")
    table.add_column("Share", style="yellow", justify="right")
    table.add_column("Avg similarity", style="magenta", justify="right")

    for decision, count in stats.by_decision.items():
        table.add_row(
            decision,
            str(count),
            f"{count / stats.total:.0%}",
            f"{stats.avg_similarity.get(decision, 0.0):.3f}",
        )
    console.print(table)

    methods = ", ".join(f"{method}: {count}" for method, count in stats.by_method.items())
    console.print(f"[dim]By method: {methods}[/dim]")


def stats_command(
    from_date: Optional[str] = typer.Option(None, "--from", help="Start date (YYYY-MM-DD)"),
    to_date: Optional[str] = typer.Option(None, "--to", help="End date (YYYY-MM-DD)"),
) -> None:
    """Show index and resolution statistics."""
    try:
        start = parse_date(from_date, "--from") if from_date else None
        end = parse_date(to_date, "--to") if to_date else None
    except SelectionError as e:
        fail(str(e))
    if start and end and start > end:
        fail(f"--from ({start}) must not be after --to ({end})")

    config = load_settings()
    db = open_database(config)
    try:
        with db.connection() as conn:
            index_stats = ArticleIndexRepository().get_stats(conn)
            resolution_stats = ResolutionStore().get_stats(conn, start, end)
    except psycopg.Error as e:
        fail(f"Failed to read statistics: {e}")
    finally:
        db.close()

    print_index_stats(index_stats)
    console.print()
    print_resolution_stats(resolution_stats)
