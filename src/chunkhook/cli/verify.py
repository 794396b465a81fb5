"""chunkhook verify — download every chunk of a file and check its checksum."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from chunkhook.cli._shared import build_transport, load_settings, open_existing_db, resolve_db
from chunkhook.cli.errors import err_export_failed, err_file_not_found
from chunkhook.db.repository import Repository
from chunkhook.errors import ChunkhookError, FileNotFound
from chunkhook.retrieve.pipeline import verify_file

console = Console()


def verify_cmd(
    file_id: Annotated[int, typer.Argument(help="File id from `chunkhook list`.")],
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the metadata database."),
    ] = None,
) -> None:
    """Verify checksums of chunks for a file."""
    cfg = load_settings(console)
    conn = open_existing_db(resolve_db(db, cfg), console)
    repo = Repository(conn)

    try:
        try:
            stored = repo.get_file(file_id)
        except FileNotFound:
            console.print(err_file_not_found(file_id))
            raise typer.Exit(1)
        try:
            with build_transport(cfg) as transport:
                report = verify_file(repo, transport, file_id)
        except ChunkhookError as exc:
            console.print(err_export_failed(file_id, exc, stored.expected_chunks))
            raise typer.Exit(1)
    finally:
        conn.close()

    if report.ok:
        console.print(
            f"[green]✓[/] All {report.total_chunks} chunks verified for file_id={file_id}"
        )
        return

    table = Table(title=f"Corrupt chunks — file_id={file_id}", show_header=True, header_style="bold")
    table.add_column("Chunk", justify="right")
    table.add_column("Problem")
    for index, reason in sorted(report.failures.items()):
        table.add_row(str(index), reason)
    console.print(table)
    console.print(
        f"\n  [red]{len(report.failures)}/{report.total_chunks} chunks failed verification[/]"
    )
    raise typer.Exit(1)
