"""Output sinks for reassembled files.

Both sinks expose the same write/flush/close interface, so the retrieval
pipeline never needs to know whether it is writing a local file or stdout.
"""

from __future__ import annotations

import sys
from abc import ABC, abstractmethod
from pathlib import Path
from typing import BinaryIO

STDOUT_TARGET = "-"


class Sink(ABC):
    """Sequential, non-seeking byte destination."""

    @abstractmethod
    def write(self, data: bytes) -> None:
        """Append *data* to the destination."""

    def flush(self) -> None:
        """Push buffered bytes to the destination. No-op by default."""

    def close(self) -> None:
        """Release the destination. No-op by default."""

    def __enter__(self) -> Sink:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


class FileSink(Sink):
    """Write to a local file, creating parents and truncating any old content."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._fh: BinaryIO | None = self.path.open("wb")

    def write(self, data: bytes) -> None:
        if self._fh is None:
            raise ValueError(f"Sink for '{self.path}' is closed")
        self._fh.write(data)

    def flush(self) -> None:
        if self._fh is not None:
            self._fh.flush()

    def close(self) -> None:
        if self._fh is not None:
            self._fh.close()
            self._fh = None


class StreamSink(Sink):
    """Write to an already-open binary stream such as ``sys.stdout.buffer``.

    The stream is flushed but never closed; it belongs to the caller.
    """

    def __init__(self, stream: BinaryIO) -> None:
        self._stream = stream

    def write(self, data: bytes) -> None:
        self._stream.write(data)

    def flush(self) -> None:
        self._stream.flush()

    def close(self) -> None:
        self.flush()


def open_sink(target: Path | str) -> Sink:
    """Return a StreamSink on stdout for ``"-"``, else a FileSink on *target*."""
    if str(target) == STDOUT_TARGET:
        return StreamSink(sys.stdout.buffer)
    return FileSink(target)
