"""Index command implementation."""

from typing import Optional

import psycopg
import typer
from rich.console import Console
from rich.table import Table

from ..db import ArticleIndexRepository
from ..indexing import ArticleIndexer, IndexReport
from .common import fail, load_settings, open_database
from .selectors import ALL, DATE, RANGE, SelectionError, build_selection
from .stats import print_index_stats

console = Console()


def print_index_report(report: IndexReport) -> None:
    """Print counters for an indexing batch."""
    table = Table(title="Indexing Summary")
    table.add_column("Metric", style="cyan")
    table.add_column("Count", style="green", justify="right")

    table.add_row("Publications", str(report.publications))
    table.add_row("Indexed", str(report.indexed))
    table.add_row("Skipped (already indexed)", str(report.skipped))
    table.add_row("Invalid", str(report.invalid))
    table.add_row("CVEs", str(report.cves))
    table.add_row("Entities", str(report.entities))
    if report.failed:
        table.add_row("[red]Failed[/red]", str(report.failed))

    console.print(table)


def index_command(
    all_: bool = typer.Option(False, "--all", help="Index all publications"),
    on_date: Optional[str] = typer.Option(None, "--date", help="Publication date (YYYY-MM-DD)"),
    from_date: Optional[str] = typer.Option(None, "--from", help="Range start (YYYY-MM-DD, requires --to)"),
    to_date: Optional[str] = typer.Option(None, "--to", help="Range end (YYYY-MM-DD, requires --from)"),
    force: bool = typer.Option(False, "--force", help="Delete and re-insert already indexed articles"),
) -> None:
    """Extract CVEs and entities from publications into the index."""
    try:
        selection = build_selection(
            use_all=all_,
            on_date=on_date,
            from_date=from_date,
            to_date=to_date,
            allowed=(ALL, DATE, RANGE),
        )
    except SelectionError as e:
        fail(str(e))

    config = load_settings()
    db = open_database(config)
    try:
        console.print(f"[bold]Indexing {selection.describe()}[/bold]{' (force)' if force else ''}")
        report = ArticleIndexer(db).index(selection, force=force)
        print_index_report(report)

        if report.aborted:
            raise typer.Exit(1)

        with db.connection() as conn:
            print_index_stats(ArticleIndexRepository().get_stats(conn))
    except psycopg.Error as e:
        fail(f"Indexing failed: {e}")
    finally:
        db.close()
