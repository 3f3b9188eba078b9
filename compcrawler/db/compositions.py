"""CRUD operations for the ``compositions`` table."""

from __future__ import annotations

import json
import sqlite3
import uuid
from time import time
from typing import Any, Iterable, Mapping, Optional

from compcrawler.db.models import StoredComposition

_COLUMNS = (
    "name",
    "slug",
    "tier",
    "plan",
    "difficulty",
    "meta_description",
    "source_url",
    "board_rows",
    "board_cols",
    "is_late_game",
    "core_champion",
    "units",
    "augments",
    "active",
)
_JSON_COLUMNS = {"units", "augments"}
_UPDATABLE = {"tier", "active", "plan", "difficulty", "meta_description"}


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _row_to_composition(row: sqlite3.Row) -> StoredComposition:
    return StoredComposition(
        id=row["id"],
        name=row["name"],
        slug=row["slug"],
        tier=row["tier"],
        plan=row["plan"],
        difficulty=row["difficulty"],
        meta_description=row["meta_description"],
        source_url=row["source_url"],
        board_rows=row["board_rows"],
        board_cols=row["board_cols"],
        is_late_game=bool(row["is_late_game"]),
        core_champion=row["core_champion"],
        units=json.loads(row["units"] or "[]"),
        augments=json.loads(row["augments"] or "[]"),
        active=bool(row["active"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _column_value(column: str, value: Any) -> Any:
    if column in _JSON_COLUMNS:
        return json.dumps(value or [])
    if column in {"is_late_game", "active"}:
        return int(bool(value))
    return value


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def create_composition(
    conn: sqlite3.Connection,
    data: Mapping[str, Any],
    composition_id: Optional[str] = None,
) -> StoredComposition:
    """Insert a composition record and return the stored row.

    Args:
        conn: Open DB connection.
        data: Record fields keyed by column name; ``name`` is required and
            unknown keys are ignored.
        composition_id: Explicit UUID override (auto-generated when omitted).

    Raises:
        ValueError: If ``data`` has no ``name``.
    """
    if not data.get("name"):
        raise ValueError("Composition record needs a name")

    cid = composition_id or str(uuid.uuid4())
    now = int(time())
    values = {
        col: _column_value(col, data[col]) for col in _COLUMNS if col in data
    }
    values.setdefault("slug", data["name"])
    columns = ["id", *values, "created_at", "updated_at"]
    placeholders = ", ".join("?" for _ in columns)

    with conn:
        conn.execute(
            f"INSERT INTO compositions ({', '.join(columns)}) VALUES ({placeholders})",  # noqa: S608
            [cid, *values.values(), now, now],
        )

    return get_composition(conn, cid)  # type: ignore[return-value]


def get_composition(conn: sqlite3.Connection, composition_id: str) -> Optional[StoredComposition]:
    """Fetch a single composition by id.  Returns ``None`` if not found."""
    row = conn.execute(
        "SELECT * FROM compositions WHERE id = ?", (composition_id,)
    ).fetchone()
    return _row_to_composition(row) if row else None


def find_by_name(conn: sqlite3.Connection, name: str) -> Optional[StoredComposition]:
    """Exact, case-sensitive name lookup (oldest row wins on duplicates)."""
    row = conn.execute(
        "SELECT * FROM compositions WHERE name = ? ORDER BY created_at, rowid LIMIT 1",
        (name,),
    ).fetchone()
    return _row_to_composition(row) if row else None


def list_compositions(
    conn: sqlite3.Connection,
    tier: Optional[str] = None,
    active_only: bool = False,
) -> list[StoredComposition]:
    """Return compositions, optionally filtered by tier and active flag."""
    clauses: list[str] = []
    params: list[Any] = []
    if tier:
        clauses.append("tier = ?")
        params.append(tier.upper())
    if active_only:
        clauses.append("active = 1")
    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
    rows = conn.execute(
        f"SELECT * FROM compositions {where} ORDER BY tier, name",  # noqa: S608
        params,
    ).fetchall()
    return [_row_to_composition(r) for r in rows]


def update_composition(conn: sqlite3.Connection, composition_id: str, **kwargs: Any) -> StoredComposition:
    """Update selected fields of a composition.

    Allowed keyword arguments: ``tier``, ``active``, ``plan``,
    ``difficulty``, ``meta_description``.  ``updated_at`` is always refreshed.

    Raises:
        ValueError: If the composition does not exist or a field is not allowed.
    """
    if get_composition(conn, composition_id) is None:
        raise ValueError(f"Composition not found: {composition_id!r}")

    updates: dict[str, Any] = {}
    for key, value in kwargs.items():
        if key not in _UPDATABLE:
            raise ValueError(f"Cannot update field {key!r}")
        updates[key] = _column_value(key, value)

    if not updates:
        raise ValueError("No valid fields provided to update_composition()")

    updates["updated_at"] = int(time())
    set_clause = ", ".join(f"{col} = ?" for col in updates)

    with conn:
        conn.execute(
            f"UPDATE compositions SET {set_clause} WHERE id = ?",  # noqa: S608
            [*updates.values(), composition_id],
        )

    return get_composition(conn, composition_id)  # type: ignore[return-value]


def delete_composition(conn: sqlite3.Connection, composition_id: str) -> None:
    """Delete a composition.  No-op if it does not exist."""
    with conn:
        conn.execute("DELETE FROM compositions WHERE id = ?", (composition_id,))


def delete_by_name_not_in(conn: sqlite3.Connection, names: Iterable[str]) -> int:
    """Delete every composition whose name is not in *names*.

    Returns:
        The number of rows deleted.
    """
    keep = sorted(set(names))
    with conn:
        if not keep:
            cursor = conn.execute("DELETE FROM compositions")
        else:
            placeholders = ", ".join("?" for _ in keep)
            cursor = conn.execute(
                f"DELETE FROM compositions WHERE name NOT IN ({placeholders})",  # noqa: S608
                keep,
            )
    return cursor.rowcount
