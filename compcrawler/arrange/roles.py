"""Unit role classification.

Roles are assigned by :data:`ROLE_RULES`, an ordered table of
``(tag, predicate)`` rows evaluated top to bottom.  Each predicate sees the
tags granted by the rows above it, which is how ``tank`` excludes carries.
``melee`` is granted only when no row matched.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Sequence

from compcrawler.scraper.layout import BoardPosition

TANK_HP = 800
TANK_ARMOR = 40
MELEE_RANGE = 1

TANK_TRAITS = frozenset(
    {
        "bastion",
        "bruiser",
        "defender",
        "guardian",
        "juggernaut",
        "sentinel",
        "tank",
        "vanguard",
        "warden",
    }
)


class RoleTag(str, enum.Enum):
    CARRY = "carry"
    TANK = "tank"
    RANGED = "ranged"
    MELEE = "melee"


@dataclass
class ArrangeUnit:
    """A resolved unit together with the transient stats used for arranging."""

    key: str
    name: str
    position: BoardPosition
    items: list[str] = field(default_factory=list)
    cost: int = 0
    star: int = 1
    hp: Optional[float] = None
    armor: Optional[float] = None
    attack_range: Optional[float] = None
    traits: Sequence[str] = ()
    # Persisted fields carried through untouched (image, champion_id, ...).
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def carry(self) -> bool:
        return len(self.items) > 0


Predicate = Callable[[ArrangeUnit, frozenset], bool]


def _is_carry(unit: ArrangeUnit, tags: frozenset) -> bool:
    return unit.carry


def _is_tank(unit: ArrangeUnit, tags: frozenset) -> bool:
    if RoleTag.CARRY in tags:
        return False
    if any(t.strip().lower() in TANK_TRAITS for t in unit.traits):
        return True
    return (unit.hp or 0) > TANK_HP and (unit.armor or 0) > TANK_ARMOR


def _is_ranged(unit: ArrangeUnit, tags: frozenset) -> bool:
    return (unit.attack_range or 0) > MELEE_RANGE


ROLE_RULES: Sequence[tuple[RoleTag, Predicate]] = (
    (RoleTag.CARRY, _is_carry),
    (RoleTag.TANK, _is_tank),
    (RoleTag.RANGED, _is_ranged),
)


def classify(unit: ArrangeUnit) -> frozenset[RoleTag]:
    tags: frozenset[RoleTag] = frozenset()
    for tag, predicate in ROLE_RULES:
        if predicate(unit, tags):
            tags = tags | {tag}
    return tags or frozenset({RoleTag.MELEE})
