"""chunkhook metadata index (SQLite)."""

from chunkhook.db.connection import Database
from chunkhook.db.migrations import MIGRATIONS, run_migrations
from chunkhook.db.repository import Repository
from chunkhook.db.schema import initialize

__all__ = [
    "Database",
    "Repository",
    "initialize",
    "run_migrations",
    "MIGRATIONS",
]
