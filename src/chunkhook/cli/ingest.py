"""chunkhook ingest — split a file, upload its chunks, record the index.

  chunkhook ingest video.mkv
  chunkhook ingest video.mkv --chunk-size 7000000 --workers 8 --dir 3
  tar c photos/ | chunkhook ingest - --name photos.tar

The file id is printed only after every chunk is uploaded and the index
commit succeeded; on failure nothing is recorded.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn

from chunkhook.cli._shared import (
    build_transport,
    format_size,
    load_settings,
    open_db,
    resolve_db,
)
from chunkhook.cli.errors import (
    err_bad_webhook,
    err_ingest_failed,
    err_no_webhook,
    err_source_not_found,
    err_stdin_needs_name,
)
from chunkhook.config import ConfigError, validate_url
from chunkhook.db.repository import Repository
from chunkhook.errors import ChunkhookError
from chunkhook.ingest.pipeline import ingest_path, ingest_stream

console = Console()

_STDIN = "-"


def ingest_cmd(
    path: Annotated[
        str,
        typer.Argument(help="File to ingest, or '-' to read stdin."),
    ],
    chunk_size: Annotated[
        int | None,
        typer.Option("--chunk-size", min=1, help="Chunk size in bytes (default from config)."),
    ] = None,
    workers: Annotated[
        int | None,
        typer.Option("--workers", "-w", min=1, help="Concurrent uploads (default from config)."),
    ] = None,
    directory: Annotated[
        int | None,
        typer.Option("--dir", help="Directory id to store the file under."),
    ] = None,
    name: Annotated[
        str | None,
        typer.Option("--name", help="Stored file name (required for stdin)."),
    ] = None,
    webhook: Annotated[
        str | None,
        typer.Option("--webhook", help="Webhook URL (overrides CHUNKHOOK_WEBHOOK_URL)."),
    ] = None,
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the metadata database (created if missing)."),
    ] = None,
) -> None:
    """Ingest a file into the store as fixed-size chunks."""
    cfg = load_settings(console)
    chunk_size = chunk_size or cfg.ingest.chunk_size
    workers = workers or cfg.ingest.workers

    webhook_url = webhook or cfg.transport.webhook_url
    if not webhook_url:
        console.print(err_no_webhook())
        raise typer.Exit(1)
    try:
        validate_url("webhook URL", webhook_url)
    except ConfigError as exc:
        console.print(err_bad_webhook(str(exc)))
        raise typer.Exit(1)

    from_stdin = path == _STDIN
    if from_stdin:
        if not name:
            console.print(err_stdin_needs_name())
            raise typer.Exit(1)
        size = None
    else:
        source = Path(path)
        if not source.is_file():
            console.print(err_source_not_found(path))
            raise typer.Exit(1)
        name = name or source.name
        size = source.stat().st_size

    total_chunks = -(-size // chunk_size) if size is not None else None
    console.print(
        f"\n[bold]→ {name}[/]  [dim]{format_size(size)} · "
        f"{total_chunks if total_chunks is not None else '?'} chunks of {format_size(chunk_size)} · "
        f"{workers} workers[/]"
    )

    conn = open_db(resolve_db(db, cfg))
    repo = Repository(conn)
    transport = build_transport(cfg, webhook_url=webhook_url)

    try:
        with transport, Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            transient=True,
            console=console,
        ) as prog:
            task = prog.add_task("Uploading…", total=total_chunks)

            def _on_chunk(done: int) -> None:
                prog.update(task, completed=done)

            options = dict(
                chunk_size=chunk_size,
                workers=workers,
                directory_id=directory,
                on_progress=_on_chunk,
            )
            if from_stdin:
                file_id = ingest_stream(repo, transport, sys.stdin.buffer, name=name, **options)
            else:
                file_id = ingest_path(repo, transport, path, name=name, **options)
        stored = repo.get_file(file_id)
    except ChunkhookError as exc:
        console.print(err_ingest_failed(name, exc, total_chunks))
        raise typer.Exit(1)
    finally:
        conn.close()

    console.print(
        f"  [green]✓[/] {stored.expected_chunks} chunks uploaded ({format_size(stored.size)})"
    )
    console.print(f"Ingested '{name}' with file_id={file_id}")
