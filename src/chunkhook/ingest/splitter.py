"""Fixed-size byte splitter for the ingest pipeline."""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path
from typing import BinaryIO

from chunkhook.errors import SourceReadError

DEFAULT_CHUNK_SIZE = 2_000_000  # decimal 2 MB


class ChunkSplitter:
    """Split a byte stream into chunks of exactly ``chunk_size`` bytes.

    Only the last chunk may be shorter (1..chunk_size bytes). Short reads from
    pipes and sockets are coalesced, so the bound holds for stdin as well as
    regular files. The produced sequence is lazy and forward-only: splitting
    the same source twice requires reopening it.

    Args:
        chunk_size: Upper bound (and exact size of all but the last chunk).
    """

    def __init__(self, chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        if chunk_size < 1:
            raise ValueError("chunk_size must be >= 1")
        self.chunk_size = chunk_size

    def split(self, stream: BinaryIO) -> Iterator[bytes]:
        """Yield successive chunks read from *stream* until EOF.

        An empty stream yields nothing.

        Raises:
            SourceReadError: If reading fails part-way. Chunks already yielded
                are not retracted; the caller must treat the ingest as failed.
        """
        index = 0
        while True:
            try:
                buf = self._read_exact(stream)
            except OSError as exc:
                raise SourceReadError(
                    f"Reading chunk {index} failed: {exc}", chunk_index=index
                ) from exc
            if not buf:
                return
            yield buf
            if len(buf) < self.chunk_size:
                return
            index += 1

    def split_path(self, path: Path | str) -> Iterator[bytes]:
        """Open *path* and yield its chunks; the file is closed when exhausted."""
        try:
            fh = Path(path).open("rb")
        except OSError as exc:
            raise SourceReadError(f"Cannot open '{path}': {exc}") from exc
        with fh:
            yield from self.split(fh)

    def count(self, size: int) -> int:
        """Number of chunks a source of *size* bytes splits into."""
        return -(-size // self.chunk_size)

    def _read_exact(self, stream: BinaryIO) -> bytes:
        parts: list[bytes] = []
        remaining = self.chunk_size
        while remaining:
            part = stream.read(remaining)
            if not part:
                break
            parts.append(part)
            remaining -= len(part)
        return b"".join(parts)
