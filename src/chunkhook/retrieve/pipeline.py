"""Retrieval pipeline: ordered download, verification, and streaming to a sink.

Chunks are fetched one at a time in index order. Each chunk is verified
(length and SHA-256) before a single byte of it reaches the sink, and the sink
is flushed before the next download starts, so memory stays bounded by one
chunk and a failure never leaves unverified bytes behind.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from chunkhook.db.models import Chunk
from chunkhook.db.repository import Repository
from chunkhook.errors import BlobMissing, ChecksumMismatch, ChunkhookError
from chunkhook.ingest.checksum import digest
from chunkhook.retrieve.sinks import Sink
from chunkhook.transport.base import BlobTransport

logger = logging.getLogger(__name__)


@dataclass
class VerifyReport:
    """Outcome of a verify pass over one stored file."""

    file_id: int
    total_chunks: int
    failures: dict[int, str] = field(default_factory=dict)  # chunk index → reason

    @property
    def ok(self) -> bool:
        return not self.failures


def export_file(
    repo: Repository,
    transport: BlobTransport,
    file_id: int,
    sink: Sink,
    *,
    on_progress: Callable[[int, int], None] | None = None,
) -> int:
    """Reassemble *file_id* into *sink* and return the number of bytes written.

    Args:
        on_progress: Called with (chunks done, bytes written) after each chunk.

    Raises:
        FileNotFound: If the file is absent or not complete.
        IndexCorruption: If the stored chunk list is broken.
        ChecksumMismatch: If a downloaded chunk fails verification.
        TransportError: If a download fails terminally.
    """
    chunks = repo.get_chunks(file_id)
    logger.info("Exporting file_id=%d (%d chunks)", file_id, len(chunks))
    written = 0
    for chunk in chunks:
        data = _fetch_verified(transport, chunk)
        sink.write(data)
        sink.flush()
        written += len(data)
        if on_progress is not None:
            on_progress(chunk.index + 1, written)
    return written


def verify_file(
    repo: Repository,
    transport: BlobTransport,
    file_id: int,
    *,
    on_progress: Callable[[int], None] | None = None,
) -> VerifyReport:
    """Download every chunk of *file_id* and report each one that is corrupt or gone.

    Unlike export, verification continues past a bad chunk. Transport
    exhaustion still aborts the pass.
    """
    chunks = repo.get_chunks(file_id)
    report = VerifyReport(file_id=file_id, total_chunks=len(chunks))
    for chunk in chunks:
        try:
            _fetch_verified(transport, chunk)
        except (ChecksumMismatch, BlobMissing) as exc:
            report.failures[chunk.index] = str(exc)
        if on_progress is not None:
            on_progress(chunk.index + 1)
    return report


def _fetch_verified(transport: BlobTransport, chunk: Chunk) -> bytes:
    try:
        data = transport.download(chunk.locator)
    except ChunkhookError as exc:
        exc.chunk_index = chunk.index
        raise
    if len(data) != chunk.size:
        raise ChecksumMismatch(
            f"Chunk {chunk.index}: expected {chunk.size} bytes, downloaded {len(data)}",
            chunk_index=chunk.index,
        )
    actual = digest(data)
    if actual != chunk.checksum:
        raise ChecksumMismatch(
            f"Chunk {chunk.index}: checksum mismatch (stored={chunk.checksum}, calc={actual})",
            chunk_index=chunk.index,
        )
    logger.debug("Chunk %d verified (%d bytes)", chunk.index, len(data))
    return data
