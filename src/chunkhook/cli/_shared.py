"""Helpers shared by the CLI commands: config, database, transport."""

from __future__ import annotations

import sqlite3
from pathlib import Path

import typer
from rich.console import Console

from chunkhook.cli.errors import err_config, err_no_db
from chunkhook.config import ChunkhookConfig, ConfigError, load_config
from chunkhook.db.connection import Database
from chunkhook.db.schema import initialize
from chunkhook.transport.retry import RetryPolicy
from chunkhook.transport.webhook import WebhookTransport


def load_settings(console: Console) -> ChunkhookConfig:
    """Load the merged config or exit with a readable error."""
    try:
        return load_config()
    except ConfigError as exc:
        console.print(err_config(str(exc)))
        raise typer.Exit(1)


def resolve_db(db: Path | None, cfg: ChunkhookConfig) -> Path:
    return db if db is not None else Path(cfg.store.db_path)


def open_db(db_path: Path) -> sqlite3.Connection:
    """Open (or create) the metadata database and run migrations."""
    conn = Database(db_path).connect()
    initialize(conn)
    return conn


def open_existing_db(db_path: Path, console: Console) -> sqlite3.Connection:
    """Open the database, exiting with an actionable error if it does not exist."""
    if not db_path.exists():
        console.print(err_no_db(str(db_path)))
        raise typer.Exit(1)
    return open_db(db_path)


def build_transport(cfg: ChunkhookConfig, webhook_url: str | None = None) -> WebhookTransport:
    """Create the webhook transport described by *cfg*."""
    r = cfg.retry
    return WebhookTransport(
        webhook_url or cfg.transport.webhook_url,
        proxy_base=cfg.transport.proxy_base,
        retry=RetryPolicy(
            max_attempts=r.max_attempts,
            base_delay=r.base_delay,
            multiplier=r.multiplier,
            max_delay=r.max_delay,
            jitter=r.jitter,
        ),
        timeout=cfg.transport.timeout,
        field_name=cfg.transport.field_name,
    )


def format_size(size: int | None) -> str:
    if size is None:
        return "?"
    if size < 1000:
        return f"{size} B"
    value = size / 1000
    for unit in ("KB", "MB", "GB"):
        if value < 1000:
            return f"{value:.1f} {unit}"
        value /= 1000
    return f"{value:.1f} TB"
