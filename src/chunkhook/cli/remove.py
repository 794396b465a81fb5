"""chunkhook remove / discard — drop file records from the index.

  chunkhook remove 12      — delete a stored file and its chunk records
  chunkhook discard 13     — abort an interrupted (pending) ingest

Remote blobs are never deleted; the endpoint offers no ownership over them.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from chunkhook.cli._shared import format_size, load_settings, open_existing_db, resolve_db
from chunkhook.cli.errors import err_file_not_found, err_not_pending, warn_orphaned_blobs
from chunkhook.db.repository import Repository
from chunkhook.errors import FileNotFound

console = Console()


def remove_cmd(
    file_id: Annotated[int, typer.Argument(help="File id from `chunkhook list`.")],
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the metadata database."),
    ] = None,
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip confirmation prompt."),
    ] = False,
) -> None:
    """Remove a stored file and its chunk records."""
    cfg = load_settings(console)
    conn = open_existing_db(resolve_db(db, cfg), console)
    repo = Repository(conn)

    try:
        try:
            stored = repo.get_file(file_id)
        except FileNotFound:
            console.print(err_file_not_found(file_id))
            raise typer.Exit(1)

        console.print(f"\nRemove file: [bold]{stored.name}[/]")
        console.print(
            f"  Size: {format_size(stored.size)}  |  Chunks: {stored.expected_chunks}"
        )
        if not yes:
            if not typer.confirm("Confirm removal?", default=False):
                console.print("[dim]Cancelled.[/]")
                raise typer.Exit(0)

        removed = repo.delete_file(file_id)
    finally:
        conn.close()

    console.print(f"\n[green]✓[/] Removed: file_id={file_id} ({removed} chunk records)")
    console.print(f"\n{warn_orphaned_blobs(removed)}")


def discard_cmd(
    file_id: Annotated[int, typer.Argument(help="Pending file id from `chunkhook pending`.")],
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the metadata database."),
    ] = None,
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip confirmation prompt."),
    ] = False,
) -> None:
    """Discard an interrupted ingest so it can be retried from scratch."""
    cfg = load_settings(console)
    conn = open_existing_db(resolve_db(db, cfg), console)
    repo = Repository(conn)

    try:
        pending = {f.id: f for f in repo.list_pending()}
        if file_id not in pending:
            console.print(err_not_pending(file_id))
            raise typer.Exit(1)

        console.print(f"\nDiscard pending ingest: [bold]{pending[file_id].name}[/]")
        if not yes:
            if not typer.confirm(
                "Make sure no ingest is still running for it. Discard?", default=False
            ):
                console.print("[dim]Cancelled.[/]")
                raise typer.Exit(0)

        repo.abort_ingest(file_id)
    finally:
        conn.close()

    console.print(f"\n[green]✓[/] Discarded pending file_id={file_id}")
    console.print(
        "[yellow]⚠[/] Chunks it uploaded before stopping remain on the remote as orphans."
    )
