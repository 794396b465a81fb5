"""chunkhook list / pending — show stored files and unfinished ingests."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from chunkhook.cli._shared import format_size, load_settings, open_existing_db, resolve_db
from chunkhook.cli.errors import err_directory
from chunkhook.db.repository import Repository
from chunkhook.errors import DirectoryError

console = Console()


def list_cmd(
    directory: Annotated[
        int | None,
        typer.Option("--dir", help="Only list files in this directory id."),
    ] = None,
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the metadata database."),
    ] = None,
) -> None:
    """List stored files."""
    cfg = load_settings(console)
    conn = open_existing_db(resolve_db(db, cfg), console)
    repo = Repository(conn)

    try:
        if directory is not None:
            try:
                repo.get_directory(directory)
            except DirectoryError as exc:
                console.print(err_directory(str(exc)))
                raise typer.Exit(1)
        files = repo.list_files(directory)
        if not files:
            console.print("[yellow]No files stored yet.[/]  Run:  chunkhook ingest PATH")
            raise typer.Exit(0)

        table = Table(title="Stored files", show_header=True, header_style="bold")
        table.add_column("ID", justify="right", style="bold")
        table.add_column("Size", justify="right")
        table.add_column("Chunk size", justify="right")
        table.add_column("Chunks", justify="right")
        table.add_column("Created")
        table.add_column("Directory")
        table.add_column("Name", no_wrap=True)
        for f in files:
            table.add_row(
                str(f.id),
                format_size(f.size),
                format_size(f.chunk_size),
                str(f.expected_chunks),
                (f.created_at or "")[:10],
                repo.directory_path(f.directory_id),
                f.name,
            )
    finally:
        conn.close()

    console.print(table)
    total = sum(f.size or 0 for f in files)
    console.print(f"\n  {len(files)} file(s), {format_size(total)}")


def pending_cmd(
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the metadata database."),
    ] = None,
) -> None:
    """List ingests that never completed (still running or interrupted)."""
    cfg = load_settings(console)
    conn = open_existing_db(resolve_db(db, cfg), console)
    try:
        pending = Repository(conn).list_pending()
    finally:
        conn.close()

    if not pending:
        console.print("[green]✓[/] No pending ingests.")
        return

    table = Table(title="Pending ingests", show_header=True, header_style="bold")
    table.add_column("ID", justify="right", style="bold")
    table.add_column("Status")
    table.add_column("Size", justify="right")
    table.add_column("Started")
    table.add_column("Name")
    for f in pending:
        table.add_row(str(f.id), f.status, format_size(f.size), f.created_at or "", f.name)
    console.print(table)
    console.print(
        "\n  An ingest still running in another process also shows up here.\n"
        "  Discard an interrupted one with:  chunkhook discard ID"
    )
