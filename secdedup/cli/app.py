"""Main CLI application."""

import typer
from dotenv import load_dotenv

# Load .env file if it exists
load_dotenv()

from .check import check_command
from .index import index_command
from .init import init_command
from .publications import publications_app
from .resolutions import resolutions_command
from .resolve import resolve_command
from .run import run_command
from .stats import stats_command

app = typer.Typer(
    name="secdedup",
    help="Security news duplicate detection and update resolution",
    no_args_is_help=True,
)

# Register commands
app.command("init")(init_command)
app.command("index")(index_command)
app.command("check")(check_command)
app.command("resolve")(resolve_command)
app.command("run")(run_command)
app.command("stats")(stats_command)
app.command("resolutions")(resolutions_command)
app.add_typer(publications_app, name="publications", help="Manage upstream publications")


if __name__ == "__main__":
    app()
