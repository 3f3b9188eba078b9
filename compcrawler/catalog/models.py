"""Immutable reference-catalog types.

A :class:`Catalog` is built once by :mod:`compcrawler.catalog.loader` and is
never mutated afterwards, so it can be shared between concurrent crawl tasks
without locking.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class CatalogEntry:
    """One canonical item, augment, or unit."""

    identifier: str
    name: str
    alt_name: str = ""
    icon: str = ""
    cost: int = 0
    traits: tuple[str, ...] = ()
    hp: Optional[float] = None
    armor: Optional[float] = None
    attack_range: Optional[float] = None


@dataclass(frozen=True)
class Catalog:
    items: tuple[CatalogEntry, ...] = field(default_factory=tuple)
    augments: tuple[CatalogEntry, ...] = field(default_factory=tuple)
    units: tuple[CatalogEntry, ...] = field(default_factory=tuple)

    def unit_by_identifier(self, identifier: str) -> Optional[CatalogEntry]:
        for entry in self.units:
            if entry.identifier == identifier:
                return entry
        return None

    def __len__(self) -> int:
        return len(self.items) + len(self.augments) + len(self.units)
