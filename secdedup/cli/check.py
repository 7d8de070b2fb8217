"""Check command implementation (read-only duplicate report)."""

from typing import List, Optional

import psycopg
import typer
from rich.console import Console
from rich.table import Table

from ..detection import CheckResult, DuplicateChecker
from ..scoring import Classification, Dimension
from .common import fail, load_settings, open_database
from .selectors import SelectionError, build_selection

console = Console()

CLASSIFICATION_STYLES = {
    Classification.NEW: "green",
    Classification.BORDERLINE: "yellow",
    Classification.UPDATE: "red",
}


def print_check_result(result: CheckResult, max_candidates: int = 5) -> None:
    """Print one article's candidates with the per-dimension breakdown."""
    style = CLASSIFICATION_STYLES[result.overall]
    console.print(
        f"\n[bold]{result.target_slug}[/bold] [dim]({result.target_id}, {result.target_pub_date})[/dim] "
        f"→ [{style}]{result.overall.value}[/{style}]"
    )
    if result.short_circuit:
        console.print("   [dim]No candidates in lookback window[/dim]")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Candidate", style="cyan")
    table.add_column("Date", style="dim")
    table.add_column("Score", justify="right")
    table.add_column("Class")
    for dimension in Dimension:
        table.add_column(dimension.value, justify="right", style="dim")

    for scored in result.candidates[:max_candidates]:
        cls_style = CLASSIFICATION_STYLES[scored.classification]
        table.add_row(
            scored.candidate.slug,
            str(scored.candidate.pub_date),
            f"{scored.score:.3f}",
            f"[{cls_style}]{scored.classification.value}[/{cls_style}]",
            *[f"{scored.similarity.get(dimension):.2f}" for dimension in Dimension],
        )
    console.print(table)

    hidden = len(result.candidates) - max_candidates
    if hidden > 0:
        console.print(f"   [dim]... and {hidden} more candidate(s)[/dim]")


def print_check_summary(results: List[CheckResult]) -> None:
    """Print totals per overall classification."""
    counts = {c: 0 for c in Classification}
    for result in results:
        counts[result.overall] += 1

    console.print(f"\n[bold]Check Summary:[/bold] {len(results)} article(s)")
    for classification, count in counts.items():
        style = CLASSIFICATION_STYLES[classification]
        console.print(f"  [{style}]{classification.value}[/{style}]: {count}")


def check_command(
    all_: bool = typer.Option(False, "--all", help="Check all indexed articles"),
    article_id: Optional[str] = typer.Option(None, "--article-id", help="Check one article"),
    on_date: Optional[str] = typer.Option(None, "--date", help="Publication date (YYYY-MM-DD)"),
    from_date: Optional[str] = typer.Option(None, "--from", help="Range start (YYYY-MM-DD, requires --to)"),
    to_date: Optional[str] = typer.Option(None, "--to", help="Range end (YYYY-MM-DD, requires --from)"),
    threshold: Optional[float] = typer.Option(
        None, "--threshold", min=0.0, max=1.0, help="UPDATE threshold (default from config)"
    ),
    lookback_days: Optional[int] = typer.Option(
        None, "--lookback-days", min=1, help="Candidate window in days (default from config)"
    ),
    max_candidates: int = typer.Option(5, "--max-candidates", min=1, help="Candidates shown per article"),
) -> None:
    """Score articles against earlier candidates without writing decisions."""
    try:
        selection = build_selection(
            use_all=all_,
            on_date=on_date,
            from_date=from_date,
            to_date=to_date,
            article_id=article_id,
        )
    except SelectionError as e:
        fail(str(e))

    config = load_settings()
    detection = config.get_detection_config(threshold, lookback_days)
    db = open_database(config)
    try:
        checker = DuplicateChecker(db, weights=config.weights, detection=detection)
        console.print(
            f"[bold]Checking {selection.describe()}[/bold] "
            f"[dim](threshold {detection.threshold:.2f}, lookback {detection.lookback_days} days)[/dim]"
        )
        results = checker.check(selection)
    except psycopg.Error as e:
        fail(f"Duplicate check failed: {e}")
    finally:
        db.close()

    for result in results:
        print_check_result(result, max_candidates)
    if results:
        print_check_summary(results)
