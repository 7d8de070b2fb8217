"""Init command implementation."""

from pathlib import Path

import psycopg
import typer
from rich.console import Console
from rich.panel import Panel

from ..config import Config, ConfigModel, save_config
from ..db import Database, init_database, validate_connection

console = Console()


def init_command(
    config_dir: Path = typer.Option(
        Path.home() / ".config" / "secdedup",
        "--config-dir",
        "-c",
        help="Configuration directory",
    ),
    workspace: Path = typer.Option(
        Path.home() / "secdedup",
        "--workspace",
        "-w",
        help="Workspace root directory (run reports)",
    ),
    db_host: str = typer.Option("localhost", "--db-host", help="Postgres host"),
    db_port: int = typer.Option(5432, "--db-port", help="Postgres port"),
    db_name: str = typer.Option("secdedup", "--db-name", help="Database name"),
    db_user: str = typer.Option("secdedup_user", "--db-user", help="Database user"),
    llm_provider: str = typer.Option(
        "openai",
        "--llm-provider",
        help="Comparison provider for BORDERLINE cases (openai, mock)",
    ),
) -> None:
    """Initialize secdedup configuration and database schema."""
    console.print(Panel.fit("🔎 secdedup - Initialization", style="bold blue"))

    config_dir.mkdir(parents=True, exist_ok=True)
    config_path = config_dir / "config.yaml"

    config = ConfigModel(
        workspace_root=str(workspace),
        postgres={
            "host": db_host,
            "port": db_port,
            "database": db_name,
            "user": db_user,
            "password_env": "SECDEDUP_DB_PASSWORD",
        },
        llm={"provider": llm_provider},
    )

    save_config(config, config_path)
    console.print(f"✅ Created config: {config_path}")

    workspace.mkdir(parents=True, exist_ok=True)
    console.print(f"✅ Created workspace: {workspace}")

    console.print("\n[bold]Testing database connection...[/bold]")
    db_config = Config.from_model(config, config_path).get_db_config()
    with Database(db_config) as db:
        if not validate_connection(db):
            console.print(
                "[red]❌ Database connection failed![/red]\n"
                "Please ensure Postgres is running and credentials are correct.\n"
                "Set the password via environment variable: "
                "[bold]export SECDEDUP_DB_PASSWORD=your_password[/bold]"
            )
            raise typer.Exit(1)

        console.print("✅ Database connection successful")

        console.print("\n[bold]Initializing database schema...[/bold]")
        try:
            init_database(db)
            console.print("✅ Database schema initialized")
        except psycopg.Error as e:
            console.print(f"[red]❌ Failed to initialize database: {e}[/red]")
            raise typer.Exit(1)

    console.print(
        Panel(
            f"[green]✅ secdedup initialized successfully![/green]\n\n"
            f"Configuration: {config_path}\n"
            f"Workspace: {workspace}\n\n"
            f"Next steps:\n"
            f"1. Set database password: [bold]export SECDEDUP_DB_PASSWORD=your_password[/bold]\n"
            f"2. Set LLM API key: [bold]export OPENAI_API_KEY=your_key[/bold]\n"
            f"3. Import publications: [bold]secdedup publications import FILE.json[/bold]\n"
            f"4. Run: [bold]secdedup run --date YYYY-MM-DD[/bold]",
            style="green",
        )
    )
