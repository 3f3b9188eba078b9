"""Per-unit tier storage for the daily tier-list crawl."""

from __future__ import annotations

import sqlite3
from time import time
from typing import Optional

from compcrawler.db.models import UnitTierRow


def _row_to_unit_tier(row: sqlite3.Row) -> UnitTierRow:
    return UnitTierRow(
        unit_id=row["unit_id"],
        name=row["name"],
        tier=row["tier"],
        updated_at=row["updated_at"],
    )


def upsert_unit_tier(conn: sqlite3.Connection, unit_id: str, name: str, tier: str) -> UnitTierRow:
    """Insert or overwrite the tier of *unit_id*."""
    with conn:
        conn.execute(
            """
            INSERT INTO unit_tiers (unit_id, name, tier, updated_at)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(unit_id) DO UPDATE SET
                name = excluded.name,
                tier = excluded.tier,
                updated_at = excluded.updated_at
            """,
            (unit_id, name, tier, int(time())),
        )
    return get_unit_tier(conn, unit_id)  # type: ignore[return-value]


def get_unit_tier(conn: sqlite3.Connection, unit_id: str) -> Optional[UnitTierRow]:
    row = conn.execute(
        "SELECT * FROM unit_tiers WHERE unit_id = ?", (unit_id,)
    ).fetchone()
    return _row_to_unit_tier(row) if row else None


def list_unit_tiers(conn: sqlite3.Connection) -> list[UnitTierRow]:
    rows = conn.execute("SELECT * FROM unit_tiers ORDER BY tier, name").fetchall()
    return [_row_to_unit_tier(r) for r in rows]
