"""coderag command-line entry point."""

from __future__ import annotations

from pathlib import Path

import typer
from pydantic import ValidationError as SettingsValidationError

from .. import __version__
from ..config.settings import CodeRAGSettings
from .commands.graph import graph_app
from .commands.metrics import metrics_app
from .output import console, print_error, setup_logging

app = typer.Typer(
    name="coderag",
    help="🧭 Multi-tenant code graph and software metrics",
    no_args_is_help=True,
)
app.add_typer(graph_app, name="graph")
app.add_typer(metrics_app, name="metrics")


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"coderag {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    db_path: Path | None = typer.Option(
        None, "--db-path", help="Graph database directory (env: CODERAG_DB_PATH)"
    ),
    thresholds: Path | None = typer.Option(
        None, "--thresholds", help="YAML file with metric thresholds", exists=True, dir_okay=False
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show version"
    ),
) -> None:
    overrides: dict = {}
    if db_path is not None:
        overrides["db_path"] = db_path
    if thresholds is not None:
        overrides["thresholds_path"] = thresholds
    if verbose:
        overrides["log_level"] = "DEBUG"

    try:
        settings = CodeRAGSettings(**overrides)
    except SettingsValidationError as e:
        print_error(f"Invalid configuration: {e}")
        raise typer.Exit(2) from e

    # The default INFO level is for library use; the CLI prints tables instead
    level = settings.log_level
    if level == "INFO":
        level = "WARNING"
    setup_logging(level)
    ctx.obj = settings


if __name__ == "__main__":
    app()
