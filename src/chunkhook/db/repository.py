"""Repository for all metadata index operations.

Single interface for: ingest registration (begin / commit / abort), file
listing, ordered chunk reads, and the directory adapter. The commit of an
ingest is one SQLite transaction: either the status flip and every chunk row
are visible, or none of them are.
"""

from __future__ import annotations

import sqlite3
from collections.abc import Sequence
from typing import Protocol

from chunkhook.db.models import COMPLETE, PENDING, Chunk, Directory, File
from chunkhook.errors import DirectoryError, FileNotFound, IndexCorruption

_FILE_COLUMNS = "id, filename, filesize, chunk_size, status, directory_id, created_at"


class ChunkRecord(Protocol):
    """Anything carrying the fields of one uploaded chunk."""

    index: int
    size: int
    checksum: str
    locator: str


class Repository:
    """Data access layer for File, Chunk and Directory records.

    Wraps an open sqlite3.Connection. The connection is owned by the caller
    and must be closed after use; it must only be used from one thread.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        """Initialise with an open database connection.

        Args:
            conn: An open sqlite3.Connection with the schema initialised
                (see chunkhook.db.schema.initialize).
        """
        self._conn = conn

    # ------------------------------------------------------------------
    # Ingest lifecycle
    # ------------------------------------------------------------------

    def begin_ingest(
        self,
        name: str,
        size: int | None,
        chunk_size: int,
        directory_id: int | None = None,
    ) -> int:
        """Create a File row in status ``pending`` and return its id.

        Args:
            name: Original file name.
            size: Total byte size, or None if unknown until the stream ends.
            chunk_size: Chunk size bound used for this ingest.
            directory_id: Containing directory; None for the root.

        Raises:
            ValueError: If chunk_size < 1 or size < 0.
            DirectoryError: If *directory_id* does not exist.
        """
        if chunk_size < 1:
            raise ValueError("chunk_size must be >= 1")
        if size is not None and size < 0:
            raise ValueError("size must be >= 0")
        if directory_id is not None:
            self.get_directory(directory_id)
        cur = self._conn.execute(
            """
            INSERT INTO files (filename, filesize, chunk_size, status, directory_id)
            VALUES (?, ?, ?, ?, ?)
            """,
            (name, size, chunk_size, PENDING, directory_id),
        )
        self._conn.commit()
        return cur.lastrowid

    def commit_ingest(self, file_id: int, chunks: Sequence[ChunkRecord]) -> None:
        """Write every chunk row and flip the file to ``complete`` atomically.

        The chunk set is validated before anything is written: indices must be
        exactly 0..n-1, every chunk but the last must be full, and n must equal
        ceil(size / chunk_size). ``BEGIN IMMEDIATE`` plus the status guard
        means two commits for the same file cannot both succeed.

        Raises:
            FileNotFound: If no pending file with *file_id* exists.
            IndexCorruption: If the chunk set violates the invariants above.
        """
        self._conn.execute("BEGIN IMMEDIATE")
        try:
            row = self._conn.execute(
                "SELECT filesize, chunk_size, status FROM files WHERE id = ?", (file_id,)
            ).fetchone()
            if row is None or row["status"] != PENDING:
                raise FileNotFound(f"No pending ingest with file_id={file_id}")

            ordered = sorted(chunks, key=lambda c: c.index)
            size = _validate_chunk_set(file_id, row["filesize"], row["chunk_size"], ordered)

            cur = self._conn.execute(
                "UPDATE files SET status = ?, filesize = ? WHERE id = ? AND status = ?",
                (COMPLETE, size, file_id, PENDING),
            )
            if cur.rowcount != 1:
                raise FileNotFound(f"No pending ingest with file_id={file_id}")
            for chunk in ordered:
                self._insert_chunk(file_id, chunk)
            self._conn.commit()
        except BaseException:
            self._conn.rollback()
            raise

    def abort_ingest(self, file_id: int) -> bool:
        """Delete a pending (or failed) file and any chunk rows it has.

        Complete files are left alone; use delete_file() for those.

        Returns:
            True if a row was removed, False if there was nothing to abort.
        """
        self._conn.execute(
            """
            DELETE FROM file_chunks WHERE file_id IN
                (SELECT id FROM files WHERE id = ? AND status != ?)
            """,
            (file_id, COMPLETE),
        )
        cur = self._conn.execute(
            "DELETE FROM files WHERE id = ? AND status != ?", (file_id, COMPLETE)
        )
        self._conn.commit()
        return cur.rowcount > 0

    def _insert_chunk(self, file_id: int, chunk: ChunkRecord) -> None:
        self._conn.execute(
            "INSERT INTO file_chunks (file_id, idx, size, sha256, url) VALUES (?, ?, ?, ?, ?)",
            (file_id, chunk.index, chunk.size, chunk.checksum, chunk.locator),
        )

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    def get_file(self, file_id: int) -> File:
        """Return a complete file by id.

        Raises:
            FileNotFound: If the file is absent or not yet complete.
        """
        row = self._conn.execute(
            f"SELECT {_FILE_COLUMNS} FROM files WHERE id = ? AND status = ?",
            (file_id, COMPLETE),
        ).fetchone()
        if row is None:
            raise FileNotFound(f"No stored file with file_id={file_id}")
        return _row_to_file(row)

    def list_files(self, directory_id: int | None = None) -> list[File]:
        """Return complete files ordered by id, optionally within one directory."""
        sql = f"SELECT {_FILE_COLUMNS} FROM files WHERE status = ?"
        params: list[object] = [COMPLETE]
        if directory_id is not None:
            sql += " AND directory_id = ?"
            params.append(directory_id)
        rows = self._conn.execute(sql + " ORDER BY id", params).fetchall()
        return [_row_to_file(r) for r in rows]

    def list_pending(self) -> list[File]:
        """Return files whose ingest never reached the commit (running or crashed)."""
        rows = self._conn.execute(
            f"SELECT {_FILE_COLUMNS} FROM files WHERE status != ? ORDER BY id", (COMPLETE,)
        ).fetchall()
        return [_row_to_file(r) for r in rows]

    def delete_file(self, file_id: int) -> int:
        """Delete a complete file and (by cascade) its chunk rows.

        Remote blobs are not touched; they become orphans.

        Returns:
            Number of chunk records removed.
        """
        self.get_file(file_id)
        removed = self.count_chunks(file_id)
        self._conn.execute("DELETE FROM files WHERE id = ?", (file_id,))
        self._conn.commit()
        return removed

    # ------------------------------------------------------------------
    # Chunks
    # ------------------------------------------------------------------

    def get_chunks(self, file_id: int) -> list[Chunk]:
        """Return the chunks of a complete file strictly ordered by index.

        Raises:
            FileNotFound: If the file is absent or not complete.
            IndexCorruption: If the stored indices are not exactly 0..n-1 or n
                does not match the file size. Never repaired here.
        """
        file = self.get_file(file_id)
        rows = self._conn.execute(
            "SELECT file_id, idx, size, sha256, url FROM file_chunks WHERE file_id = ? ORDER BY idx",
            (file_id,),
        ).fetchall()
        chunks = [_row_to_chunk(r) for r in rows]
        for position, chunk in enumerate(chunks):
            if chunk.index != position:
                raise IndexCorruption(
                    f"File {file_id}: chunk {position} is missing (found index {chunk.index})",
                    chunk_index=position,
                )
        if len(chunks) != file.expected_chunks:
            raise IndexCorruption(
                f"File {file_id}: {len(chunks)} chunk records, expected {file.expected_chunks}"
            )
        return chunks

    def count_chunks(self, file_id: int) -> int:
        """Return the number of chunk rows stored for *file_id*."""
        return self._conn.execute(
            "SELECT COUNT(*) FROM file_chunks WHERE file_id = ?", (file_id,)
        ).fetchone()[0]

    # ------------------------------------------------------------------
    # Directories
    # ------------------------------------------------------------------

    def create_directory(self, name: str, parent_id: int | None = None) -> int:
        """Create a directory under *parent_id* (root if None) and return its id."""
        name = _clean_dir_name(name)
        if parent_id is not None:
            self.get_directory(parent_id)
        self._check_sibling_name(name, parent_id)
        cur = self._conn.execute(
            "INSERT INTO directories (name, parent_id) VALUES (?, ?)", (name, parent_id)
        )
        self._conn.commit()
        return cur.lastrowid

    def get_directory(self, directory_id: int) -> Directory:
        """Return a directory by id; DirectoryError if it does not exist."""
        row = self._conn.execute(
            "SELECT id, name, parent_id, created_at FROM directories WHERE id = ?",
            (directory_id,),
        ).fetchone()
        if row is None:
            raise DirectoryError(f"No directory with id={directory_id}")
        return _row_to_directory(row)

    def list_directories(self, parent_id: int | None = None) -> list[Directory]:
        """Return the direct children of *parent_id* (root if None), by name."""
        rows = self._conn.execute(
            "SELECT id, name, parent_id, created_at FROM directories WHERE parent_id IS ? ORDER BY name",
            (parent_id,),
        ).fetchall()
        return [_row_to_directory(r) for r in rows]

    def directory_path(self, directory_id: int | None) -> str:
        """Return the slash-separated path of a directory ("/" for the root)."""
        parts: list[str] = []
        seen: set[int] = set()
        current = directory_id
        while current is not None:
            if current in seen:
                raise DirectoryError(f"Directory cycle detected at id={current}")
            seen.add(current)
            directory = self.get_directory(current)
            parts.append(directory.name)
            current = directory.parent_id
        return "/" + "/".join(reversed(parts))

    def move_file(self, file_id: int, directory_id: int | None) -> None:
        """Move a complete file into *directory_id* (root if None)."""
        self.get_file(file_id)
        if directory_id is not None:
            self.get_directory(directory_id)
        self._conn.execute(
            "UPDATE files SET directory_id = ? WHERE id = ?", (directory_id, file_id)
        )
        self._conn.commit()

    def move_directory(self, directory_id: int, parent_id: int | None) -> None:
        """Re-parent a directory; refuses moves that would create a cycle."""
        directory = self.get_directory(directory_id)
        ancestor = parent_id
        while ancestor is not None:
            if ancestor == directory_id:
                raise DirectoryError(
                    f"Cannot move directory {directory_id} into itself or a descendant"
                )
            ancestor = self.get_directory(ancestor).parent_id
        self._check_sibling_name(directory.name, parent_id, exclude_id=directory_id)
        self._conn.execute(
            "UPDATE directories SET parent_id = ? WHERE id = ?", (parent_id, directory_id)
        )
        self._conn.commit()

    def _check_sibling_name(
        self, name: str, parent_id: int | None, exclude_id: int | None = None
    ) -> None:
        row = self._conn.execute(
            "SELECT id FROM directories WHERE name = ? AND parent_id IS ? AND id IS NOT ?",
            (name, parent_id, exclude_id),
        ).fetchone()
        if row is not None:
            raise DirectoryError(f"A directory named '{name}' already exists here")


# ------------------------------------------------------------------
# Validation
# ------------------------------------------------------------------


def _validate_chunk_set(
    file_id: int,
    filesize: int | None,
    chunk_size: int,
    ordered: Sequence[ChunkRecord],
) -> int:
    """Check a sorted chunk set against the file invariants; return the total size."""
    for position, chunk in enumerate(ordered):
        if chunk.index != position:
            raise IndexCorruption(
                f"File {file_id}: chunk indices are not contiguous from 0 "
                f"(position {position} holds index {chunk.index})",
                chunk_index=position,
            )
        last = position == len(ordered) - 1
        if not 1 <= chunk.size <= chunk_size or (not last and chunk.size != chunk_size):
            raise IndexCorruption(
                f"File {file_id}: chunk {position} has invalid length {chunk.size}",
                chunk_index=position,
            )
    total = sum(c.size for c in ordered)
    if filesize is not None and total != filesize:
        raise IndexCorruption(
            f"File {file_id}: chunk lengths sum to {total} bytes, expected {filesize}"
        )
    return total


def _clean_dir_name(name: str) -> str:
    cleaned = name.strip()
    if not cleaned or "/" in cleaned:
        raise DirectoryError(f"Invalid directory name: '{name}'")
    return cleaned


# ------------------------------------------------------------------
# Row → model helpers
# ------------------------------------------------------------------


def _row_to_file(row: sqlite3.Row) -> File:
    return File(
        id=row["id"],
        name=row["filename"],
        size=row["filesize"],
        chunk_size=row["chunk_size"],
        status=row["status"],
        directory_id=row["directory_id"],
        created_at=row["created_at"],
    )


def _row_to_chunk(row: sqlite3.Row) -> Chunk:
    return Chunk(
        file_id=row["file_id"],
        index=row["idx"],
        size=row["size"],
        checksum=row["sha256"],
        locator=row["url"],
    )


def _row_to_directory(row: sqlite3.Row) -> Directory:
    return Directory(
        id=row["id"],
        name=row["name"],
        parent_id=row["parent_id"],
        created_at=row["created_at"],
    )
