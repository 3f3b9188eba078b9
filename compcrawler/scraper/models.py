"""Data models for the scraper pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from compcrawler.scraper.layout import BoardPosition


@dataclass
class RawPage:
    """Settled markup for a single URL, as rendered by the browser."""

    url: str
    html: str
    status_code: int = 200


@dataclass
class UnitSlot:
    """One unit as found on the page, before identifier resolution."""

    slug: str
    name: str
    position: BoardPosition
    items: List[str] = field(default_factory=list)
    image: str = ""

    @property
    def carry(self) -> bool:
        return len(self.items) > 0


@dataclass
class AugmentPick:
    name: str
    tier: int

    def to_dict(self) -> dict:
        return {"name": self.name, "tier": self.tier}


@dataclass
class CompositionSkeleton:
    """Everything the structural extractor could read off one detail page."""

    name: str
    tier: str
    plan: str
    difficulty: str
    meta_description: str
    source_url: str = ""
    units: List[UnitSlot] = field(default_factory=list)
    augments: List[AugmentPick] = field(default_factory=list)
    board_strategy: Optional[str] = None

    @property
    def is_late_game(self) -> bool:
        return "8" in self.plan or "9" in self.plan

    @property
    def core_champion(self) -> Optional[UnitSlot]:
        """The carry holding the most items; first unit when nobody has items."""
        core: Optional[UnitSlot] = None
        for unit in self.units:
            if unit.carry and (core is None or len(unit.items) > len(core.items)):
                core = unit
        if core is None and self.units:
            return self.units[0]
        return core
