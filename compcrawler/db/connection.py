"""SQLite connection factory.

Usage::

    from compcrawler.db.connection import get_connection

    with get_connection() as conn:
        cursor = conn.execute("SELECT 1")
"""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Optional

from compcrawler.config import settings


def get_connection(db_path: Optional[Path] = None) -> sqlite3.Connection:
    """Open and configure a SQLite connection.

    Foreign keys are enabled and the journal is switched to WAL so the API
    can read while a crawl is writing.

    Args:
        db_path: Override the DB path.  Defaults to ``settings.db_path``.
            Pass ``":memory:"`` for a throwaway database.

    Returns:
        A :class:`sqlite3.Connection` whose rows are :class:`sqlite3.Row`.
    """
    path = db_path or settings.db_path

    if str(path) != ":memory:":
        settings.ensure_workspace()

    conn = sqlite3.connect(str(path), check_same_thread=False)
    conn.row_factory = sqlite3.Row

    conn.execute("PRAGMA foreign_keys = ON")
    conn.execute("PRAGMA journal_mode = WAL")

    return conn
