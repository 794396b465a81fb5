"""Domain models for the chunkhook metadata index."""

from __future__ import annotations

from dataclasses import dataclass

PENDING = "pending"
COMPLETE = "complete"


@dataclass
class File:
    id: int
    name: str
    size: int | None  # None only while a stream ingest of unknown length is pending
    chunk_size: int
    status: str = PENDING
    directory_id: int | None = None
    created_at: str | None = None

    @property
    def expected_chunks(self) -> int:
        """Chunk count a complete file of this size must have."""
        return -(-(self.size or 0) // self.chunk_size)


@dataclass
class Chunk:
    file_id: int
    index: int
    size: int
    checksum: str
    locator: str


@dataclass
class Directory:
    id: int
    name: str
    parent_id: int | None = None
    created_at: str | None = None
