"""Tests for chunkhook ingest CLI command."""

from __future__ import annotations

import os
from pathlib import Path
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from chunkhook.cli.main import app
from chunkhook.db.connection import Database
from chunkhook.db.repository import Repository
from chunkhook.db.schema import initialize

runner = CliRunner()

WEBHOOK = "https://discord.com/api/webhooks/1/tok?wait=true"


# ------------------------------------------------------------------
# Fixtures
# ------------------------------------------------------------------


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    """Path to a not-yet-created store.db in tmp_path."""
    return tmp_path / "app-data" / "store.db"


@pytest.fixture
def fake_transport(store):
    with patch("chunkhook.cli.ingest.build_transport", return_value=store) as mock_build:
        yield mock_build


def _open_repo(db_path: Path) -> tuple:
    conn = Database(db_path).connect()
    return Repository(conn), conn


def _source(tmp_path: Path, size: int = 25) -> tuple[Path, bytes]:
    data = os.urandom(size)
    path = tmp_path / "video.mkv"
    path.write_bytes(data)
    return path, data


# ------------------------------------------------------------------
# Input validation
# ------------------------------------------------------------------


def test_ingest_without_webhook_exits_1(tmp_path, db_path, fake_transport):
    path, _ = _source(tmp_path)
    result = runner.invoke(app, ["ingest", str(path), "--db", str(db_path)])
    assert result.exit_code == 1
    assert "CHUNKHOOK_WEBHOOK_URL" in result.output
    fake_transport.assert_not_called()


def test_ingest_rejects_non_http_webhook(tmp_path, db_path, fake_transport):
    path, _ = _source(tmp_path)
    result = runner.invoke(
        app, ["ingest", str(path), "--webhook", "ftp://example.com/hook", "--db", str(db_path)]
    )
    assert result.exit_code == 1
    assert "Invalid webhook URL" in result.output
    fake_transport.assert_not_called()
    assert not db_path.exists()


def test_ingest_missing_source_exits_1(tmp_path, db_path, fake_transport):
    result = runner.invoke(
        app, ["ingest", str(tmp_path / "nope.bin"), "--webhook", WEBHOOK, "--db", str(db_path)]
    )
    assert result.exit_code == 1
    assert "not a readable file" in result.output


def test_ingest_stdin_requires_name(db_path, fake_transport):
    result = runner.invoke(
        app, ["ingest", "-", "--webhook", WEBHOOK, "--db", str(db_path)], input=b"abc"
    )
    assert result.exit_code == 1
    assert "--name" in result.output


def test_ingest_rejects_zero_chunk_size(tmp_path, db_path, fake_transport):
    path, _ = _source(tmp_path)
    result = runner.invoke(
        app,
        ["ingest", str(path), "--chunk-size", "0", "--webhook", WEBHOOK, "--db", str(db_path)],
    )
    assert result.exit_code != 0


# ------------------------------------------------------------------
# Happy path
# ------------------------------------------------------------------


def test_ingest_prints_file_id(tmp_path, db_path, store, fake_transport):
    path, data = _source(tmp_path)
    result = runner.invoke(
        app,
        ["ingest", str(path), "--chunk-size", "10", "--webhook", WEBHOOK, "--db", str(db_path)],
    )
    assert result.exit_code == 0, result.output
    assert "Ingested 'video.mkv' with file_id=1" in result.output

    repo, conn = _open_repo(db_path)
    try:
        chunks = repo.get_chunks(1)
        assert [c.size for c in chunks] == [10, 10, 5]
        assert b"".join(store.blobs[c.locator] for c in chunks) == data
    finally:
        conn.close()


def test_ingest_uses_env_webhook(tmp_path, db_path, fake_transport, monkeypatch):
    monkeypatch.setenv("CHUNKHOOK_WEBHOOK_URL", WEBHOOK)
    path, _ = _source(tmp_path)
    result = runner.invoke(app, ["ingest", str(path), "--db", str(db_path)])
    assert result.exit_code == 0, result.output
    assert fake_transport.call_args.kwargs["webhook_url"] == WEBHOOK


def test_ingest_legacy_webhook_env(tmp_path, db_path, fake_transport, monkeypatch):
    monkeypatch.setenv("WEBHOOK", WEBHOOK)
    path, _ = _source(tmp_path)
    result = runner.invoke(app, ["ingest", str(path), "--db", str(db_path)])
    assert result.exit_code == 0, result.output


def test_ingest_default_db_location(tmp_path, fake_transport):
    path, _ = _source(tmp_path)
    result = runner.invoke(app, ["ingest", str(path), "--webhook", WEBHOOK])
    assert result.exit_code == 0, result.output
    assert (tmp_path / "app-data" / "store.db").exists()


def test_ingest_from_stdin(db_path, store, fake_transport):
    data = os.urandom(33)
    result = runner.invoke(
        app,
        [
            "ingest", "-", "--name", "photos.tar", "--chunk-size", "8",
            "--webhook", WEBHOOK, "--db", str(db_path),
        ],
        input=data,
    )
    assert result.exit_code == 0, result.output
    assert "Ingested 'photos.tar'" in result.output

    repo, conn = _open_repo(db_path)
    try:
        stored = repo.get_file(1)
        assert stored.size == 33
        assert stored.expected_chunks == 5
    finally:
        conn.close()


def test_ingest_into_directory(tmp_path, db_path, fake_transport):
    repo, conn = _open_repo(db_path)
    initialize(conn)
    docs = repo.create_directory("docs")
    conn.close()

    path, _ = _source(tmp_path)
    result = runner.invoke(
        app,
        ["ingest", str(path), "--dir", str(docs), "--webhook", WEBHOOK, "--db", str(db_path)],
    )
    assert result.exit_code == 0, result.output

    repo, conn = _open_repo(db_path)
    try:
        assert repo.get_file(1).directory_id == docs
    finally:
        conn.close()


# ------------------------------------------------------------------
# Failures
# ------------------------------------------------------------------


def test_ingest_upload_failure_records_nothing(tmp_path, db_path, store, fake_transport):
    store.fail_chunks = {1}
    path, _ = _source(tmp_path)
    result = runner.invoke(
        app,
        ["ingest", str(path), "--chunk-size", "10", "--webhook", WEBHOOK, "--db", str(db_path)],
    )
    assert result.exit_code == 1
    assert "chunk 2/3" in result.output
    assert "file_id=" not in result.output

    repo, conn = _open_repo(db_path)
    try:
        assert repo.list_files() == []
        assert repo.list_pending() == []
    finally:
        conn.close()


def test_ingest_unknown_directory(tmp_path, db_path, fake_transport):
    path, _ = _source(tmp_path)
    result = runner.invoke(
        app,
        ["ingest", str(path), "--dir", "42", "--webhook", WEBHOOK, "--db", str(db_path)],
    )
    assert result.exit_code == 1
    assert "id=42" in result.output
