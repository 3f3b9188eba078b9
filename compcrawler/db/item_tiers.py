"""Per-item tier storage for the item tier-list crawl."""

from __future__ import annotations

import sqlite3
from time import time
from typing import Optional

from compcrawler.db.models import ItemTierRow


def _row_to_item_tier(row: sqlite3.Row) -> ItemTierRow:
    return ItemTierRow(
        item_id=row["item_id"],
        name=row["name"],
        tier=row["tier"],
        updated_at=row["updated_at"],
    )


def upsert_item_tier(conn: sqlite3.Connection, item_id: str, name: str, tier: str) -> ItemTierRow:
    with conn:
        conn.execute(
            """
            INSERT INTO item_tiers (item_id, name, tier, updated_at)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(item_id) DO UPDATE SET
                name = excluded.name,
                tier = excluded.tier,
                updated_at = excluded.updated_at
            """,
            (item_id, name, tier, int(time())),
        )
    return get_item_tier(conn, item_id)  # type: ignore[return-value]


def get_item_tier(conn: sqlite3.Connection, item_id: str) -> Optional[ItemTierRow]:
    row = conn.execute(
        "SELECT * FROM item_tiers WHERE item_id = ?", (item_id,)
    ).fetchone()
    return _row_to_item_tier(row) if row else None


def list_item_tiers(conn: sqlite3.Connection) -> list[ItemTierRow]:
    rows = conn.execute("SELECT * FROM item_tiers ORDER BY tier, name").fetchall()
    return [_row_to_item_tier(r) for r in rows]
