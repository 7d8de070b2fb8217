"""Run command implementation."""

from typing import Optional

import pendulum
import typer
from rich.console import Console

from ..pipeline import PipelineOrchestrator
from ..resolution import create_comparison_provider
from .common import fail, load_settings, open_database
from .selectors import SelectionError, parse_date

console = Console()


def run_command(
    run_date: Optional[str] = typer.Option(
        None,
        "--date",
        help="Publication date to process (YYYY-MM-DD). Default: today",
    ),
    force: bool = typer.Option(False, "--force", help="Re-index and re-resolve the date"),
) -> None:
    """Index and resolve one publication date."""
    try:
        day = parse_date(run_date) if run_date else pendulum.today().date()
    except SelectionError as e:
        fail(str(e))

    config = load_settings()
    try:
        provider = create_comparison_provider(config.get_llm_config(), config.get_detection_config())
    except ValueError as e:
        fail(str(e))

    db = open_database(config)
    try:
        orchestrator = PipelineOrchestrator(config, db, provider)
        success = orchestrator.run(day, force=force)
    except KeyboardInterrupt:
        console.print("\n[yellow]Pipeline interrupted by user[/yellow]")
        raise typer.Exit(1)
    finally:
        db.close()

    if not success:
        raise typer.Exit(1)
