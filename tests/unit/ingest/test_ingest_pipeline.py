"""Tests for the ingest pipeline (split → upload → commit) and its retrieval round trip."""

from __future__ import annotations

import io
import os
import sqlite3

import pytest

from chunkhook.db.repository import Repository
from chunkhook.errors import SourceReadError, UploadRejected
from chunkhook.ingest.pipeline import ingest_path, ingest_stream
from chunkhook.retrieve.pipeline import export_file
from chunkhook.retrieve.sinks import FileSink


def _write(tmp_path, name, data):
    path = tmp_path / name
    path.write_bytes(data)
    return path


def _export_bytes(repo, store, file_id, tmp_path):
    out = tmp_path / "restored.bin"
    with FileSink(out) as sink:
        export_file(repo, store, file_id, sink)
    return out.read_bytes()


@pytest.mark.parametrize("size", [0, 1, 9, 10, 11, 95])
def test_round_trip(repo, store, tmp_path, size):
    data = os.urandom(size)
    path = _write(tmp_path, "src.bin", data)

    file_id = ingest_path(repo, store, path, chunk_size=10, workers=3)

    stored = repo.get_file(file_id)
    assert stored.name == "src.bin"
    assert stored.size == size
    assert repo.count_chunks(file_id) == -(-size // 10)
    assert _export_bytes(repo, store, file_id, tmp_path) == data


def test_large_chunk_size_count(repo, store, tmp_path):
    path = _write(tmp_path, "big.bin", b"\x5a" * 15_000_000)
    file_id = ingest_path(repo, store, path, chunk_size=7_000_000, workers=2)
    sizes = [c.size for c in repo.get_chunks(file_id)]
    assert sizes == [7_000_000, 7_000_000, 1_000_000]


@pytest.mark.parametrize("workers", [1, 4, 16])
def test_worker_count_does_not_change_order(repo, store, tmp_path, workers):
    store.slow = True
    data = os.urandom(200)
    path = _write(tmp_path, "src.bin", data)
    file_id = ingest_path(repo, store, path, chunk_size=10, workers=workers)
    assert _export_bytes(repo, store, file_id, tmp_path) == data


def test_stream_ingest_unknown_size(repo, store):
    data = os.urandom(33)
    file_id = ingest_stream(repo, store, io.BytesIO(data), name="pipe.tar", chunk_size=8)
    stored = repo.get_file(file_id)
    assert stored.size == 33
    assert stored.name == "pipe.tar"


def test_custom_name_and_directory(repo, store, tmp_path):
    docs = repo.create_directory("docs")
    path = _write(tmp_path, "src.bin", b"hello")
    file_id = ingest_path(repo, store, path, chunk_size=2, directory_id=docs, name="greeting")
    stored = repo.get_file(file_id)
    assert stored.name == "greeting"
    assert stored.directory_id == docs


def test_upload_failure_leaves_no_record(repo, store, tmp_path):
    store.fail_chunks = {2}
    path = _write(tmp_path, "src.bin", os.urandom(50))

    with pytest.raises(UploadRejected) as exc_info:
        ingest_path(repo, store, path, chunk_size=10, workers=2)

    assert exc_info.value.chunk_index == 2
    assert repo.list_files() == []
    assert repo.list_pending() == []


class _FailingRepository(Repository):
    def _insert_chunk(self, file_id, chunk):
        if chunk.index == 2:
            raise sqlite3.OperationalError("database is locked")
        super()._insert_chunk(file_id, chunk)


def test_commit_failure_leaves_no_record(tmp_db, store, tmp_path):
    repo = _FailingRepository(tmp_db)
    path = _write(tmp_path, "src.bin", os.urandom(50))

    with pytest.raises(sqlite3.OperationalError):
        ingest_path(repo, store, path, chunk_size=10)

    assert repo.list_files() == []
    assert repo.list_pending() == []
    assert tmp_db.execute("SELECT COUNT(*) FROM file_chunks").fetchone()[0] == 0


def test_missing_source(repo, store, tmp_path):
    with pytest.raises(SourceReadError):
        ingest_path(repo, store, tmp_path / "missing.bin", chunk_size=10)
    assert repo.list_pending() == []


def test_source_shrinking_mid_ingest(repo, store):
    with pytest.raises(SourceReadError, match="changed while it was read"):
        ingest_stream(repo, store, io.BytesIO(b"abc"), name="x", size=10, chunk_size=2)
    assert repo.list_pending() == []


def test_progress_callback(repo, store, tmp_path):
    seen = []
    path = _write(tmp_path, "src.bin", os.urandom(40))
    ingest_path(repo, store, path, chunk_size=10, workers=1, on_progress=seen.append)
    assert seen == [1, 2, 3, 4]
