"""Resolutions command: audit view of stored decisions."""

from typing import List, Optional

import psycopg
import typer
from rich.console import Console
from rich.table import Table

from ..db import ResolutionStore
from ..models import Decision, Resolution
from .common import fail, load_settings, open_database
from .selectors import SelectionError, parse_date

console = Console()

DECISION_STYLES = {
    Decision.NEW: "green",
    Decision.UPDATE: "blue",
    Decision.SKIP: "red",
}


def print_resolutions(resolutions: List[Resolution], title: str, verbose: bool = False) -> None:
    """Print resolutions as a table, with reasoning when verbose."""
    if not resolutions:
        console.print(f"[yellow]No resolutions found for {title}[/yellow]")
        return

    table = Table(title=f"Resolutions: {title}")
    table.add_column("Article", style="cyan")
    table.add_column("Date", style="dim")
    table.add_column("Decision")
    table.add_column("Conf.")
    table.add_column("Score", justify="right")
    table.add_column("Original", style="magenta")
    table.add_column("Canonical", style="dim")
    table.add_column("Method", style="dim")

    for resolution in resolutions:
        style = DECISION_STYLES[resolution.decision]
        table.add_row(
            resolution.article_id,
            str(resolution.pub_date),
            f"[{style}]{resolution.decision.value}[/{style}]",
            resolution.confidence.value,
            f"{resolution.similarity_score:.3f}",
            resolution.original_slug or resolution.original_article_id or "-",
            resolution.canonical_article_id or "-",
            resolution.resolution_method.value,
        )
    console.print(table)

    if verbose:
        for resolution in resolutions:
            console.print(f"\n[bold]{resolution.article_id}[/bold]: {resolution.reasoning or '-'}")
            if resolution.overlap_summary:
                console.print(f"   [dim]Overlap:[/dim] {resolution.overlap_summary}")
            for item in resolution.new_information:
                console.print(f"   • {item}")


def resolutions_command(
    on_date: Optional[str] = typer.Option(None, "--date", help="Publication date (YYYY-MM-DD)"),
    article_id: Optional[str] = typer.Option(None, "--article-id", help="Resolutions of one article"),
    updates_of: Optional[str] = typer.Option(None, "--updates-of", help="Update chain of an original article"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show reasoning and new information"),
) -> None:
    """Show stored resolution decisions."""
    given = [name for name, value in (
        ("--date", on_date),
        ("--article-id", article_id),
        ("--updates-of", updates_of),
    ) if value is not None]
    if len(given) != 1:
        fail("Specify exactly one of --date, --article-id or --updates-of")

    try:
        day = parse_date(on_date) if on_date else None
    except SelectionError as e:
        fail(str(e))

    config = load_settings()
    db = open_database(config)
    store = ResolutionStore()
    try:
        with db.connection() as conn:
            if day is not None:
                resolutions = store.get_by_date(conn, day)
                title = str(day)
            elif article_id is not None:
                resolutions = store.get_by_article(conn, article_id)
                title = f"article {article_id}"
            else:
                resolutions = store.get_updates_for(conn, updates_of)
                title = f"updates of {updates_of}"
    except psycopg.Error as e:
        fail(f"Failed to read resolutions: {e}")
    finally:
        db.close()

    print_resolutions(resolutions, title, verbose)
