"""Tests for chunkhook init and the top-level app."""

from __future__ import annotations

import stat
from pathlib import Path

from typer.testing import CliRunner

from chunkhook.cli.main import app
from chunkhook.db.connection import Database
from chunkhook.db.schema import CURRENT_VERSION, current_version

runner = CliRunner()


def test_init_creates_db(tmp_path: Path) -> None:
    db_path = tmp_path / "data" / "store.db"
    result = runner.invoke(
        app, ["init", "--db", str(db_path), "--global-config", str(tmp_path / "g" / "config.yaml")]
    )
    assert result.exit_code == 0, result.output
    assert db_path.exists()
    assert "Database initialized" in result.output

    conn = Database(db_path).connect()
    try:
        assert current_version(conn) == CURRENT_VERSION
    finally:
        conn.close()


def test_init_default_location(tmp_path: Path) -> None:
    result = runner.invoke(app, ["init", "--global-config", str(tmp_path / "g.yaml")])
    assert result.exit_code == 0, result.output
    assert (tmp_path / "app-data" / "store.db").exists()


def test_init_twice_is_idempotent(tmp_path: Path) -> None:
    args = ["init", "--db", str(tmp_path / "store.db"), "--global-config", str(tmp_path / "g.yaml")]
    runner.invoke(app, args)
    result = runner.invoke(app, args)
    assert result.exit_code == 0
    assert "already present" in result.output


def test_init_writes_private_global_config(tmp_path: Path) -> None:
    global_cfg = tmp_path / "home" / "config.yaml"
    runner.invoke(app, ["init", "--db", str(tmp_path / "s.db"), "--global-config", str(global_cfg)])
    assert global_cfg.exists()
    assert stat.S_IMODE(global_cfg.stat().st_mode) == 0o600


def test_init_reports_bad_config(tmp_path: Path) -> None:
    (tmp_path / "chunkhook.yaml").write_text("ingest:\n  workers: 0\n", encoding="utf-8")
    result = runner.invoke(app, ["init", "--global-config", str(tmp_path / "g.yaml")])
    assert result.exit_code == 1
    assert "workers" in result.output


def test_version_flag() -> None:
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert result.output.startswith("chunkhook ")


def test_version_command() -> None:
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert "chunkhook" in result.output


def test_help_lists_commands() -> None:
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    for command in ("ingest", "export", "stream", "verify", "list", "dir"):
        assert command in result.output
