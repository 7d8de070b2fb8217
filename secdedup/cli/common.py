"""Config and store helpers shared by the CLI commands."""

from typing import NoReturn

import psycopg
import typer
from rich.console import Console

from ..config import Config
from ..db import Database, validate_connection

console = Console()


def fail(message: str, code: int = 1) -> NoReturn:
    """Print an error and exit."""
    console.print(f"[red]❌ {message}[/red]")
    raise typer.Exit(code)


def load_settings() -> Config:
    """Load the configuration or exit with a hint."""
    config = Config()
    try:
        config.config
    except FileNotFoundError:
        fail(f"Config not found at {config.config_path}. Run 'secdedup init' first.")
    except ValueError as e:
        fail(str(e))
    return config


def open_database(config: Config) -> Database:
    """Open the store handle and check connectivity, or exit."""
    db = Database(config.get_db_config())
    try:
        db.open()
    except psycopg.Error as e:
        fail(f"Database connection failed: {e}")

    if not validate_connection(db):
        db.close()
        fail(
            "Database connection failed!\n"
            "Please check your database configuration and ensure Postgres is running."
        )
    return db
