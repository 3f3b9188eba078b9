"""Skeleton → record normalisation.

Resolves every raw unit and item slug against the catalog, copies cost,
traits and combat stats from the matched unit entry, and hands the result to
the auto-arranger.  The returned :class:`CompositionRecord` is what gets
persisted.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Optional

from compcrawler.arrange import ArrangeUnit, arrange
from compcrawler.catalog.loader import get_catalog
from compcrawler.catalog.models import Catalog
from compcrawler.catalog.resolver import (
    ResolvedIdentifier,
    placeholder,
    resolve,
    resolve_item,
)
from compcrawler.config import settings
from compcrawler.scraper.extractor import generate_slug
from compcrawler.scraper.layout import BoardSize
from compcrawler.scraper.models import CompositionSkeleton, UnitSlot

logger = logging.getLogger(__name__)

DEFAULT_STAR = 2


@dataclass
class CompositionRecord:
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

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _resolve_unit(slot: UnitSlot, catalog: Catalog, fuzzy: bool, threshold: float) -> ResolvedIdentifier:
    for candidate in (slot.slug, slot.name):
        hit = resolve(candidate, catalog.units, fuzzy=fuzzy, threshold=threshold)
        if hit is not None:
            return hit
    result = placeholder(slot.slug)
    logger.warning("[RESOLVE] No unit match for %r; using %s", slot.slug, result.identifier)
    return result


def build_record(
    skeleton: CompositionSkeleton,
    catalog: Optional[Catalog] = None,
    board: Optional[BoardSize] = None,
) -> CompositionRecord:
    """Resolve, enrich and arrange *skeleton* into a persistable record."""
    if catalog is None:
        catalog = get_catalog()
    if board is None:
        board = BoardSize(settings.board_rows, settings.board_cols)
    fuzzy, threshold = settings.fuzzy_enabled, settings.fuzzy_threshold

    units: list[ArrangeUnit] = []
    for slot in skeleton.units:
        resolved = _resolve_unit(slot, catalog, fuzzy, threshold)
        entry = catalog.unit_by_identifier(resolved.identifier)
        name = entry.name if entry is not None else slot.name
        traits = list(entry.traits) if entry is not None else []
        units.append(
            ArrangeUnit(
                key=resolved.identifier,
                name=name,
                position=slot.position,
                items=[
                    resolve_item(s, catalog, fuzzy=fuzzy, threshold=threshold).identifier
                    for s in slot.items
                ],
                cost=entry.cost if entry is not None else 0,
                star=DEFAULT_STAR,
                hp=entry.hp if entry is not None else None,
                armor=entry.armor if entry is not None else None,
                attack_range=entry.attack_range if entry is not None else None,
                traits=traits,
                extra={
                    "champion_id": generate_slug(name),
                    "image": slot.image,
                    "traits": traits,
                },
            )
        )

    core_key: Optional[str] = None
    core = skeleton.core_champion
    if core is not None:
        core_key = units[skeleton.units.index(core)].key

    return CompositionRecord(
        name=skeleton.name,
        slug=generate_slug(skeleton.name),
        tier=skeleton.tier,
        plan=skeleton.plan,
        difficulty=skeleton.difficulty,
        meta_description=skeleton.meta_description,
        source_url=skeleton.source_url,
        board_rows=board.rows,
        board_cols=board.cols,
        is_late_game=skeleton.is_late_game,
        core_champion=core_key,
        units=[u.to_dict() for u in arrange(units, board)],
        augments=[a.to_dict() for a in skeleton.augments],
    )
