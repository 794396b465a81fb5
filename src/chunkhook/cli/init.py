"""chunkhook init — create the metadata database and global config.

Creates:
  <db>                      — SQLite store with the current schema (default app-data/store.db)
  ~/.chunkhook/config.yaml  — global defaults (created once, mode 0o600)
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from chunkhook.cli._shared import load_settings, open_db, resolve_db
from chunkhook.config import ensure_global_config
from chunkhook.db.schema import current_version

console = Console()


def init_cmd(
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the metadata database (created if missing)."),
    ] = None,
    global_config: Annotated[
        Path | None,
        typer.Option("--global-config", hidden=True, help="Override global config path (for testing)."),
    ] = None,
) -> None:
    """Create tables if they don't exist."""
    cfg = load_settings(console)
    db_path = resolve_db(db, cfg)

    existed = db_path.exists()
    conn = open_db(db_path)
    try:
        version = current_version(conn)
    finally:
        conn.close()

    if existed:
        console.print(f"[dim]↷ Database already present at {db_path} (schema v{version})[/]")
    else:
        console.print(f"[green]✓[/] Database initialized at {db_path} (schema v{version})")

    config_path = ensure_global_config(global_config)
    console.print(f"[green]✓[/] Global config: {config_path}")
