"""Ingest pipeline: split → upload → commit, with all-or-nothing visibility.

begin_ingest registers a ``pending`` file; only after every chunk is uploaded
does commit_ingest write the chunk rows and flip the file to ``complete`` in
one transaction. Any failure aborts the pending row and re-raises the
originating error unchanged, so callers never observe a half-written file.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Callable
from pathlib import Path
from typing import BinaryIO

from chunkhook.db.repository import Repository
from chunkhook.errors import SourceReadError
from chunkhook.ingest.coordinator import DEFAULT_WORKERS, UploadCoordinator
from chunkhook.ingest.splitter import DEFAULT_CHUNK_SIZE, ChunkSplitter
from chunkhook.transport.base import BlobTransport

logger = logging.getLogger(__name__)


def ingest_path(
    repo: Repository,
    transport: BlobTransport,
    path: Path | str,
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    workers: int = DEFAULT_WORKERS,
    directory_id: int | None = None,
    name: str | None = None,
    on_progress: Callable[[int], None] | None = None,
) -> int:
    """Ingest the file at *path* and return the new file id.

    Args:
        repo: Open metadata index.
        transport: Blob transport used for the uploads.
        path: Local file to store.
        chunk_size: Chunk size bound in bytes.
        workers: Concurrent upload limit.
        directory_id: Directory to file the result under (root if None).
        name: Stored name; defaults to the file name of *path*.
        on_progress: Called with the count of uploaded chunks.

    Raises:
        SourceReadError: If the file cannot be read or changes size mid-ingest.
        TransportError: If an upload fails terminally.
    """
    path = Path(path)
    try:
        size = path.stat().st_size
        stream = path.open("rb")
    except OSError as exc:
        raise SourceReadError(f"Cannot read '{path}': {exc}") from exc
    with stream:
        return ingest_stream(
            repo,
            transport,
            stream,
            name=name or path.name,
            size=size,
            chunk_size=chunk_size,
            workers=workers,
            directory_id=directory_id,
            on_progress=on_progress,
        )


def ingest_stream(
    repo: Repository,
    transport: BlobTransport,
    stream: BinaryIO,
    *,
    name: str,
    size: int | None = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    workers: int = DEFAULT_WORKERS,
    directory_id: int | None = None,
    on_progress: Callable[[int], None] | None = None,
) -> int:
    """Ingest everything readable from *stream* and return the new file id.

    *size* is the expected byte count when known (regular files); for pipes
    pass None and the size is taken from the chunks at commit time.
    """
    splitter = ChunkSplitter(chunk_size)
    coordinator = UploadCoordinator(transport, workers, on_progress=on_progress, name=name)

    file_id = repo.begin_ingest(name, size, chunk_size, directory_id)
    logger.info("Ingest of '%s' started as file_id=%d", name, file_id)
    try:
        uploaded = coordinator.run(splitter.split(stream))
        total = sum(c.size for c in uploaded)
        if size is not None and total != size:
            raise SourceReadError(
                f"'{name}' changed while it was read: expected {size} bytes, read {total}"
            )
        repo.commit_ingest(file_id, uploaded)
    except BaseException as exc:
        logger.info("Ingest of file_id=%d failed (%s); discarding pending record", file_id, exc)
        _abort_quietly(repo, file_id)
        raise

    logger.info("Ingest of '%s' committed: file_id=%d, %d chunks", name, file_id, len(uploaded))
    return file_id


def _abort_quietly(repo: Repository, file_id: int) -> None:
    """Abort *file_id*; a failing abort is logged so the original error wins."""
    try:
        repo.abort_ingest(file_id)
    except sqlite3.Error:
        logger.exception(
            "Could not discard pending file_id=%d; run `chunkhook discard %d`", file_id, file_id
        )
