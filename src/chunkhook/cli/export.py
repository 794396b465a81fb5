"""chunkhook export / stream — reassemble a stored file.

  chunkhook export 12                 → writes ./<stored name>
  chunkhook export 12 restored.bin
  chunkhook export 12 -               → stdout
  chunkhook stream 12 | mpv -         → stdout

When writing to stdout, every console message goes to stderr.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn

from chunkhook.cli._shared import (
    build_transport,
    format_size,
    load_settings,
    open_existing_db,
    resolve_db,
)
from chunkhook.cli.errors import err_export_failed, err_file_not_found
from chunkhook.db.repository import Repository
from chunkhook.errors import ChunkhookError, FileNotFound
from chunkhook.retrieve.pipeline import export_file
from chunkhook.retrieve.sinks import STDOUT_TARGET, open_sink

console = Console()
err_console = Console(stderr=True)


def export_cmd(
    file_id: Annotated[int, typer.Argument(help="File id from `chunkhook list`.")],
    out: Annotated[
        str | None,
        typer.Argument(help="Output path ('-' for stdout). Defaults to the stored name."),
    ] = None,
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the metadata database."),
    ] = None,
) -> None:
    """Export (reconstruct) a stored file by id."""
    _export(file_id, out, db)


def stream_cmd(
    file_id: Annotated[int, typer.Argument(help="File id from `chunkhook list`.")],
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the metadata database."),
    ] = None,
) -> None:
    """Stream a stored file to stdout."""
    _export(file_id, STDOUT_TARGET, db)


def _export(file_id: int, out: str | None, db: Path | None) -> None:
    to_stdout = out == STDOUT_TARGET
    out_console = err_console if to_stdout else console

    cfg = load_settings(out_console)
    conn = open_existing_db(resolve_db(db, cfg), out_console)
    repo = Repository(conn)

    try:
        try:
            stored = repo.get_file(file_id)
        except FileNotFound:
            out_console.print(err_file_not_found(file_id))
            raise typer.Exit(1)

        target = out or _default_target(stored.name, file_id)
        total = stored.expected_chunks
        try:
            # A broken index must fail before the target is created or truncated.
            repo.get_chunks(file_id)
            with build_transport(cfg) as transport, open_sink(target) as sink:
                if to_stdout:
                    written = export_file(repo, transport, file_id, sink)
                else:
                    written = _export_with_progress(repo, transport, file_id, sink, total)
        except ChunkhookError as exc:
            out_console.print(err_export_failed(file_id, exc, total))
            raise typer.Exit(1)
        except OSError as exc:
            out_console.print(f"[red]Error:[/] Cannot write '{target}': {exc}")
            raise typer.Exit(1)
    finally:
        conn.close()

    if not to_stdout:
        console.print(
            f"[green]✓[/] Exported file_id={file_id} → {target} ({format_size(written)})"
        )


def _default_target(name: str, file_id: int) -> str:
    """Output path for an export without a target: the stored base name in the CWD."""
    base = Path(name).name
    if base in ("", ".."):
        return f"file_{file_id}.bin"
    return base


def _export_with_progress(repo, transport, file_id, sink, total) -> int:
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        transient=True,
        console=console,
    ) as prog:
        task = prog.add_task("Downloading…", total=total)

        def _on_chunk(done: int, _written: int) -> None:
            prog.update(task, completed=done)

        return export_file(repo, transport, file_id, sink, on_progress=_on_chunk)
