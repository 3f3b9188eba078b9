"""Dataclass models representing DB rows.

Plain Python objects, not ORM models.  ``units`` and ``augments`` are stored
as JSON text and decoded here.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass
class StoredComposition:
    id: str
    name: str
    slug: str
    tier: str
    plan: str
    difficulty: str
    meta_description: str
    source_url: str
    board_rows: int
    board_cols: int
    is_late_game: bool
    core_champion: Optional[str]
    units: list[dict[str, Any]] = field(default_factory=list)
    augments: list[dict[str, Any]] = field(default_factory=list)
    active: bool = True
    created_at: int = 0
    updated_at: int = 0


@dataclass
class UnitTierRow:
    unit_id: str
    name: str
    tier: str
    updated_at: int


@dataclass
class ItemTierRow:
    item_id: str
    name: str
    tier: str
    updated_at: int
