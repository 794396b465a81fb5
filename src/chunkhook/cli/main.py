"""chunkhook CLI entry point."""

from __future__ import annotations

import importlib.metadata
from typing import Annotated

import typer

from chunkhook.cli.dirs import dir_app
from chunkhook.cli.export import export_cmd, stream_cmd
from chunkhook.cli.ingest import ingest_cmd
from chunkhook.cli.init import init_cmd
from chunkhook.cli.listing import list_cmd, pending_cmd
from chunkhook.cli.remove import discard_cmd, remove_cmd
from chunkhook.cli.verify import verify_cmd
from chunkhook.config import ConfigError, load_config
from chunkhook.logging_config import setup_logging


def _installed_version() -> str:
    try:
        return importlib.metadata.version("chunkhook")
    except importlib.metadata.PackageNotFoundError:
        return "dev"


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"chunkhook {_installed_version()}")
        raise typer.Exit()


app = typer.Typer(
    name="chunkhook",
    help=(
        "chunkhook — store large files as chunks behind a webhook endpoint.\n\n"
        "  chunkhook ingest PATH   Split, upload and index a file.\n"
        "  chunkhook export ID     Download, verify and reassemble it."
    ),
    add_completion=False,
)


@app.callback()
def main_callback(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
    log_level: Annotated[
        str | None,
        typer.Option(
            "--log-level",
            help="DEBUG, INFO, WARNING or ERROR. Overrides logging.level in config.",
        ),
    ] = None,
) -> None:
    """chunkhook — chunked file store on a webhook blob endpoint."""
    if log_level is None:
        try:
            log_level = load_config().logging.level
        except ConfigError:
            # The command itself reports the config problem.
            log_level = "WARNING"
    setup_logging(log_level)


app.command("init")(init_cmd)
app.command("ingest")(ingest_cmd)
app.command("list")(list_cmd)
app.command("export")(export_cmd)
app.command("stream")(stream_cmd)
app.command("verify")(verify_cmd)
app.command("pending")(pending_cmd)
app.command("discard")(discard_cmd)
app.command("remove")(remove_cmd)
app.add_typer(dir_app, name="dir")


@app.command("version")
def version_cmd() -> None:
    """Show the installed chunkhook version."""
    typer.echo(f"chunkhook {_installed_version()}")


if __name__ == "__main__":
    app()
