"""Deterministic board auto-arrangement.

Units are placed group by group, each unit taking the first free cell of
its preferred list, then the nearest free cell (Manhattan distance, ties
broken row-major) to the group's anchor:

1. melee carries, front row, starting at the middle column of the carry side;
2. tanks by descending hp then armor, front row from the side's corner inward;
3. ranged units (carries first), back row from the side's corner, then the
   opposite side, then the rest of the back row, then the row in front;
4. everything else, middle rows, closest to the side's middle column first.

The carry side comes from the *original* column of the highest-ranked melee
carry (ranged carry when there is none), so a noisy original position can
flip it.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional, Sequence

from compcrawler.arrange.roles import ArrangeUnit, RoleTag, classify
from compcrawler.scraper.layout import BoardPosition, BoardSize

logger = logging.getLogger(__name__)


class Side(str, enum.Enum):
    LEFT = "left"
    RIGHT = "right"


@dataclass
class ArrangedUnit:
    """Final unit shape: canonical key, assigned position, items; no stats."""

    key: str
    name: str
    position: BoardPosition
    items: list[str] = field(default_factory=list)
    cost: int = 0
    star: int = 1
    carry: bool = False
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        data = {
            "key": self.key,
            "name": self.name,
            "position": self.position.to_dict(),
            "items": list(self.items),
            "cost": self.cost,
            "star": self.star,
            "carry": self.carry,
        }
        data.update(self.extra)
        return data


# ---------------------------------------------------------------------------
# Board geometry
# ---------------------------------------------------------------------------

def select_side(col: int, board: BoardSize) -> Side:
    """Columns right of the centre column are the right side; the rest left."""
    return Side.RIGHT if col > board.cols // 2 else Side.LEFT


def side_columns(side: Side, board: BoardSize) -> list[int]:
    """Columns of *side*, corner first."""
    half = board.cols // 2
    if side is Side.LEFT:
        return list(range(0, half))
    return list(range(board.cols - 1, board.cols - half - 1, -1))


def side_middle(side: Side, board: BoardSize) -> int:
    cols = side_columns(side, board)
    if not cols:
        return 0
    return sorted(cols)[len(cols) // 2]


def _opposite(side: Side) -> Side:
    return Side.RIGHT if side is Side.LEFT else Side.LEFT


def _towards_center(col: int, board: BoardSize) -> float:
    return abs(col - (board.cols - 1) / 2)


def _fan_out(middle: int, board: BoardSize) -> list[int]:
    """All columns ordered by distance from *middle*, centre-ward neighbour first."""
    return sorted(
        range(board.cols),
        key=lambda c: (abs(c - middle), _towards_center(c, board), c),
    )


class _Board:
    def __init__(self, size: BoardSize) -> None:
        self.size = size
        self.taken: set[BoardPosition] = set()

    def is_free(self, pos: BoardPosition) -> bool:
        return pos.in_bounds(self.size) and pos not in self.taken

    def first_free(self, preferred: Iterable[BoardPosition]) -> Optional[BoardPosition]:
        for pos in preferred:
            if self.is_free(pos):
                return pos
        return None

    def nearest_free(self, anchor: BoardPosition) -> Optional[BoardPosition]:
        cells = [
            BoardPosition(r, c)
            for r in range(self.size.rows)
            for c in range(self.size.cols)
        ]
        cells.sort(key=lambda p: (abs(p.row - anchor.row) + abs(p.col - anchor.col), p.row, p.col))
        return self.first_free(cells)

    def take(self, pos: BoardPosition) -> BoardPosition:
        self.taken.add(pos)
        return pos


# ---------------------------------------------------------------------------
# Grouping
# ---------------------------------------------------------------------------

def _priority(unit: ArrangeUnit) -> tuple[int, int, int]:
    return (-len(unit.items), -unit.cost, -unit.star)


@dataclass
class _Classified:
    index: int
    unit: ArrangeUnit
    tags: frozenset


def _carry_side(melee_carries: Sequence[_Classified], ranged_carries: Sequence[_Classified],
                board: BoardSize) -> Side:
    for group in (melee_carries, ranged_carries):
        if group:
            return select_side(group[0].unit.position.col, board)
    return Side.LEFT


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def arrange(units: Sequence[ArrangeUnit], board: Optional[BoardSize] = None) -> List[ArrangedUnit]:
    """Assign every unit a distinct, in-bounds position.

    Returns the arranged units in input order.  Units beyond the board's
    capacity are dropped with a warning.
    """
    board = board or BoardSize()
    classified = [_Classified(i, u, classify(u)) for i, u in enumerate(units)]

    melee_carries = sorted(
        (c for c in classified if RoleTag.CARRY in c.tags and RoleTag.RANGED not in c.tags),
        key=lambda c: _priority(c.unit),
    )
    tanks = sorted(
        (c for c in classified if RoleTag.TANK in c.tags),
        key=lambda c: (-(c.unit.hp or 0), -(c.unit.armor or 0)),
    )
    ranged = sorted(
        (c for c in classified if RoleTag.RANGED in c.tags and RoleTag.TANK not in c.tags),
        key=lambda c: (RoleTag.CARRY not in c.tags, _priority(c.unit)),
    )
    ranged_carries = [c for c in ranged if RoleTag.CARRY in c.tags]
    melee = [c for c in classified if c.tags == frozenset({RoleTag.MELEE})]

    side = _carry_side(melee_carries, ranged_carries, board)
    other = _opposite(side)
    middle = side_middle(side, board)
    front, back = 0, board.rows - 1

    front_for_carries = [BoardPosition(front, c) for c in _fan_out(middle, board)]

    inward = list(range(board.cols))
    if side is Side.RIGHT:
        inward.reverse()
    front_for_tanks = [BoardPosition(front, c) for c in inward]

    corner_first = side_columns(side, board) + side_columns(other, board)
    corner_first += [c for c in range(board.cols) if c not in corner_first]

    back_for_ranged = [BoardPosition(back, c) for c in corner_first]
    if back - 1 > front:
        back_for_ranged += [BoardPosition(back - 1, c) for c in corner_first]

    middle_rows = list(range(front + 1, back)) or [front]
    middle_for_melee = [
        BoardPosition(r, c) for r in middle_rows for c in _fan_out(middle, board)
    ]

    plan = (
        ("melee carries", melee_carries, front_for_carries),
        ("tanks", tanks, front_for_tanks),
        ("ranged", ranged, back_for_ranged),
        ("melee", melee, middle_for_melee),
    )

    grid = _Board(board)
    assigned: dict[int, BoardPosition] = {}
    for label, group, preferred in plan:
        anchor = preferred[0] if preferred else BoardPosition(0, 0)
        exhausted = False
        for entry in group:
            pos = grid.first_free(preferred)
            if pos is None:
                if not exhausted:
                    logger.warning("[ARRANGE] Preferred slots for %s exhausted", label)
                    exhausted = True
                pos = grid.nearest_free(anchor)
            if pos is None:
                logger.warning("[ARRANGE] Board full; dropping %s", entry.unit.key)
                continue
            assigned[entry.index] = grid.take(pos)

    return [
        ArrangedUnit(
            key=c.unit.key,
            name=c.unit.name,
            position=assigned[c.index],
            items=list(c.unit.items),
            cost=c.unit.cost,
            star=c.unit.star,
            carry=c.unit.carry,
            extra=dict(c.unit.extra),
        )
        for c in classified
        if c.index in assigned
    ]
