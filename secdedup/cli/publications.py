"""Publication management commands."""

from pathlib import Path
from typing import List

import psycopg
import typer
from rich.console import Console
from rich.table import Table

from ..db import PublicationRepository, load_publication_file
from .common import fail, load_settings, open_database

console = Console()
publications_app = typer.Typer(help="Manage upstream publications")


@publications_app.command("import")
def publications_import(
    files: List[Path] = typer.Argument(..., exists=True, dir_okay=False, help="Publication JSON files"),
) -> None:
    """Import publication JSON files produced by the generator."""
    publications = []
    for path in files:
        try:
            publications.extend(load_publication_file(path))
        except ValueError as e:
            fail(str(e))

    config = load_settings()
    db = open_database(config)
    repo = PublicationRepository()
    created = updated = 0
    try:
        for publication in publications:
            with db.transaction() as conn:
                if repo.save_publication(conn, publication):
                    created += 1
                else:
                    updated += 1
            console.print(
                f"  [green]✓[/green] {publication.pub_date_only} {publication.pub_id} "
                f"({len(publication.articles)} articles)"
            )
    except psycopg.Error as e:
        fail(f"Failed to store publication: {e}")
    finally:
        db.close()

    console.print(f"[green]✅ Imported {created} new, {updated} updated publication(s)[/green]")


@publications_app.command("list")
def publications_list(
    limit: int = typer.Option(30, "--limit", "-n", min=1, help="Number of publications to show"),
) -> None:
    """List stored publications, newest first."""
    config = load_settings()
    db = open_database(config)
    try:
        with db.connection() as conn:
            rows = PublicationRepository().list_summaries(conn, limit)
    except psycopg.Error as e:
        fail(f"Failed to list publications: {e}")
    finally:
        db.close()

    if not rows:
        console.print("[yellow]No publications stored.[/yellow]")
        return

    table = Table(title="Publications")
    table.add_column("Date", style="cyan")
    table.add_column("Type", style="magenta")
    table.add_column("Articles", style="green", justify="right")
    table.add_column("Headline")
    table.add_column("ID", style="dim")

    for row in rows:
        table.add_row(
            str(row["pub_date_only"]),
            row["pub_type"],
            str(row["total_articles"]),
            row["headline"],
            row["pub_id"],
        )
    console.print(table)
