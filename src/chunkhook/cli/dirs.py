"""chunkhook dir CLI commands.

Commands:
  chunkhook dir create <name> [--parent ID]      — create a directory
  chunkhook dir list [--parent ID]               — list child directories and files
  chunkhook dir move (--file ID | --dir ID) [--to ID]
                                                 — move a file or directory (root if --to omitted)
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from chunkhook.cli._shared import format_size, load_settings, open_existing_db, resolve_db
from chunkhook.cli.errors import err_directory, err_file_not_found
from chunkhook.db.repository import Repository
from chunkhook.errors import DirectoryError, FileNotFound

console = Console()

dir_app = typer.Typer(
    name="dir",
    help="Organise stored files into directories (create, list, move).",
    add_completion=False,
)

_DbOption = Annotated[
    Path | None,
    typer.Option("--db", help="Path to the metadata database."),
]


@dir_app.command("create")
def dir_create_cmd(
    name: Annotated[str, typer.Argument(help="Directory name.")],
    parent: Annotated[
        int | None,
        typer.Option("--parent", help="Parent directory id (root if omitted)."),
    ] = None,
    db: _DbOption = None,
) -> None:
    """Create a directory."""
    cfg = load_settings(console)
    conn = open_existing_db(resolve_db(db, cfg), console)
    repo = Repository(conn)
    try:
        try:
            directory_id = repo.create_directory(name, parent)
            path = repo.directory_path(directory_id)
        except DirectoryError as exc:
            console.print(err_directory(str(exc)))
            raise typer.Exit(1)
    finally:
        conn.close()
    console.print(f"[green]✓[/] Created {path} (id={directory_id})")


@dir_app.command("list")
def dir_list_cmd(
    parent: Annotated[
        int | None,
        typer.Option("--parent", help="Directory id to list (root if omitted)."),
    ] = None,
    db: _DbOption = None,
) -> None:
    """List the directories and files directly under a directory."""
    cfg = load_settings(console)
    conn = open_existing_db(resolve_db(db, cfg), console)
    repo = Repository(conn)
    try:
        try:
            path = repo.directory_path(parent)
        except DirectoryError as exc:
            console.print(err_directory(str(exc)))
            raise typer.Exit(1)
        children = repo.list_directories(parent)
        files = [f for f in repo.list_files(parent) if f.directory_id == parent]
    finally:
        conn.close()

    if not children and not files:
        console.print(f"[yellow]{path} is empty.[/]")
        raise typer.Exit(0)

    table = Table(title=path, show_header=True, header_style="bold")
    table.add_column("Type")
    table.add_column("ID", justify="right", style="bold")
    table.add_column("Name")
    table.add_column("Size", justify="right")
    for d in children:
        table.add_row("dir", str(d.id), f"{d.name}/", "")
    for f in files:
        table.add_row("file", str(f.id), f.name, format_size(f.size))
    console.print(table)


@dir_app.command("move")
def dir_move_cmd(
    file_id: Annotated[
        int | None,
        typer.Option("--file", help="File id to move."),
    ] = None,
    directory_id: Annotated[
        int | None,
        typer.Option("--dir", help="Directory id to move."),
    ] = None,
    to: Annotated[
        int | None,
        typer.Option("--to", help="Target directory id (root if omitted)."),
    ] = None,
    db: _DbOption = None,
) -> None:
    """Move a file or a directory into another directory."""
    if (file_id is None) == (directory_id is None):
        console.print("[red]Error:[/] Pass exactly one of --file or --dir.")
        raise typer.Exit(1)

    cfg = load_settings(console)
    conn = open_existing_db(resolve_db(db, cfg), console)
    repo = Repository(conn)
    try:
        try:
            if file_id is not None:
                repo.move_file(file_id, to)
                what = f"file_id={file_id}"
            else:
                repo.move_directory(directory_id, to)
                what = f"directory id={directory_id}"
            target = repo.directory_path(to)
        except FileNotFound:
            console.print(err_file_not_found(file_id))
            raise typer.Exit(1)
        except DirectoryError as exc:
            console.print(err_directory(str(exc)))
            raise typer.Exit(1)
    finally:
        conn.close()
    console.print(f"[green]✓[/] Moved {what} → {target}")
