"""Shared pytest fixtures."""

from __future__ import annotations

import threading
import time

import pytest

from chunkhook.db.connection import Database
from chunkhook.db.repository import Repository
from chunkhook.db.schema import initialize
from chunkhook.errors import BlobMissing, UploadRejected
from chunkhook.transport.base import BlobTransport

_ENV_VARS = (
    "CHUNKHOOK_WEBHOOK_URL",
    "CHUNKHOOK_PROXY_BASE",
    "CHUNKHOOK_DB",
    "CHUNKHOOK_LOG_LEVEL",
    "WEBHOOK",
    "PROXY_BASE",
)


class FakeBlobStore(BlobTransport):
    """In-memory blob endpoint.

    Attributes:
        fail_chunks: Chunk indices whose upload is rejected.
        slow: If set, lower chunk indices take longer to upload, so uploads
            finish out of order.
    """

    def __init__(self) -> None:
        self.blobs: dict[str, bytes] = {}
        self.uploaded: list[str] = []
        self.downloaded: list[str] = []
        self.fail_chunks: set[int] = set()
        self.slow = False
        self._lock = threading.Lock()
        self._next = 0

    def upload(self, data, *, filename="chunk.bin", cancel=None):
        index = _chunk_index(filename)
        if self.slow and index is not None:
            time.sleep(max(0, 20 - index) * 0.002)
        if index in self.fail_chunks:
            raise UploadRejected(f"upload of {filename} rejected: HTTP 400")
        with self._lock:
            locator = f"mem://{self._next}"
            self._next += 1
            self.blobs[locator] = bytes(data)
            self.uploaded.append(filename)
        return locator

    def download(self, locator, *, cancel=None):
        self.downloaded.append(locator)
        if locator not in self.blobs:
            raise BlobMissing("Remote blob is gone (HTTP 404)")
        return self.blobs[locator]

    def corrupt(self, locator: str) -> None:
        """Flip the first byte of a stored blob."""
        data = self.blobs[locator]
        self.blobs[locator] = bytes([data[0] ^ 0xFF]) + data[1:]


def _chunk_index(filename: str) -> int | None:
    parts = filename.rsplit(".", 2)
    if len(parts) == 3 and parts[1].isdigit():
        return int(parts[1])
    return None


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep tests away from the real environment, home config and CWD."""
    for var in _ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setattr(
        "chunkhook.config._GLOBAL_CONFIG_PATH", tmp_path / "home" / ".chunkhook" / "config.yaml"
    )
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def tmp_db(tmp_path):
    """File-based DB in tmp_path with schema initialized, closed after test."""
    db = Database(tmp_path / "store.db")
    conn = db.connect()
    initialize(conn)
    yield conn
    conn.close()


@pytest.fixture
def repo(tmp_db):
    return Repository(tmp_db)


@pytest.fixture
def store():
    return FakeBlobStore()
