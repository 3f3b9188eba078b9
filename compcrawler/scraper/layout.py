"""Board coordinate inference from whatever positional metadata a cell carries.

Three modes, tried in order by :func:`infer_position`:

* **A** explicit ``(row, col)`` coordinates (e.g. row/cell enumeration of a
  grid template);
* **B** percentage offsets from an inline ``left: X%; top: Y%`` style;
* **C** enumeration order, ``divmod(index, cols)``.

:func:`group_rows` refines pixel-positioned cells: units whose vertical
offsets lie within a small tolerance share a row, ordered left to right.

Nothing in this module raises; every path ends in a clamped position.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Optional, Sequence

# Percentage points added before flooring so 14% on a 14.28%-wide column
# still lands in column 1.
PERCENT_EPSILON = 2.0

# Vertical pixel distance under which two cells belong to the same row.
ROW_TOLERANCE_PX = 20.0

_OFFSET_RE = re.compile(
    r"(?<![\w-])(?P<prop>left|top)\s*:\s*(?P<value>-?\d+(?:\.\d+)?)\s*(?P<unit>%|px)?",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class BoardSize:
    rows: int = 4
    cols: int = 7

    @property
    def cells(self) -> int:
        return self.rows * self.cols


@dataclass(frozen=True, order=True)
class BoardPosition:
    row: int
    col: int

    def in_bounds(self, board: BoardSize) -> bool:
        return 0 <= self.row < board.rows and 0 <= self.col < board.cols

    def to_dict(self) -> dict[str, int]:
        return {"row": self.row, "col": self.col}


@dataclass
class StyleOffsets:
    """``left``/``top`` values read from an inline style attribute."""

    left: Optional[float] = None
    top: Optional[float] = None
    unit: str = "%"

    @property
    def is_percent(self) -> bool:
        return self.unit == "%" and self.left is not None and self.top is not None

    @property
    def is_pixel(self) -> bool:
        return self.unit == "px" and self.left is not None and self.top is not None


@dataclass
class CellMeta:
    """Positional metadata attached to one board cell (all optional)."""

    row: Optional[int] = None
    col: Optional[int] = None
    left_pct: Optional[float] = None
    top_pct: Optional[float] = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _clamp(value: int, upper: int) -> int:
    return max(0, min(value, upper - 1))


def clamp_position(row: int, col: int, board: BoardSize) -> BoardPosition:
    """Return ``(row, col)`` forced into the board's bounds."""
    return BoardPosition(_clamp(row, board.rows), _clamp(col, board.cols))


def parse_style_offsets(style: Optional[str]) -> Optional[StyleOffsets]:
    """Read ``left``/``top`` declarations from an inline CSS *style*.

    Returns ``None`` unless both offsets are present.  Mixed units are
    reported as pixels only when both are pixels; anything else with a
    ``%`` is treated as percentages.
    """
    if not style:
        return None
    found: dict[str, tuple[float, str]] = {}
    for m in _OFFSET_RE.finditer(style):
        prop = m.group("prop").lower()
        if prop not in found:
            found[prop] = (float(m.group("value")), (m.group("unit") or "px").lower())
    if "left" not in found or "top" not in found:
        return None
    units = {found["left"][1], found["top"][1]}
    unit = "px" if units == {"px"} else "%"
    return StyleOffsets(left=found["left"][0], top=found["top"][0], unit=unit)


# ---------------------------------------------------------------------------
# Modes
# ---------------------------------------------------------------------------

def position_from_percent(
    left_pct: float, top_pct: float, board: BoardSize
) -> BoardPosition:
    """Mode B: map percentage offsets onto the board's cell grid."""
    cell_w = 100.0 / board.cols
    cell_h = 100.0 / board.rows
    col = math.floor((left_pct + PERCENT_EPSILON) / cell_w)
    row = math.floor((top_pct + PERCENT_EPSILON) / cell_h)
    return clamp_position(row, col, board)


def position_from_index(index: int, board: BoardSize) -> BoardPosition:
    """Mode C: row-major placement by enumeration order."""
    row, col = divmod(max(index, 0), board.cols)
    return clamp_position(row, col, board)


def infer_position(
    meta: Optional[CellMeta], index: int, board: BoardSize
) -> BoardPosition:
    """Return a bounded position for a cell, whatever *meta* it carries."""
    if meta is not None:
        if meta.row is not None and meta.col is not None:
            return clamp_position(meta.row, meta.col, board)
        if meta.left_pct is not None and meta.top_pct is not None:
            return position_from_percent(meta.left_pct, meta.top_pct, board)
    return position_from_index(index, board)


def group_rows(
    offsets: Sequence[tuple[float, float]],
    board: BoardSize,
    tolerance: float = ROW_TOLERANCE_PX,
) -> list[BoardPosition]:
    """Assign positions to pixel-positioned cells by visual reading order.

    Args:
        offsets: ``(left_px, top_px)`` per cell, in markup order.
        board: Target board size; rows and columns are clamped to it.
        tolerance: Maximum vertical distance (px) from a row's first member
            for another cell to join that row.

    Returns:
        One :class:`BoardPosition` per input offset, in the same order.
    """
    order = sorted(range(len(offsets)), key=lambda i: (offsets[i][1], offsets[i][0], i))

    rows: list[list[int]] = []
    anchor_top: Optional[float] = None
    for i in order:
        top = offsets[i][1]
        if anchor_top is None or abs(top - anchor_top) > tolerance:
            rows.append([])
            anchor_top = top
        rows[-1].append(i)

    positions: list[Optional[BoardPosition]] = [None] * len(offsets)
    for row_index, members in enumerate(rows):
        members.sort(key=lambda i: (offsets[i][0], i))
        for col_index, i in enumerate(members):
            positions[i] = clamp_position(row_index, col_index, board)
    return [p for p in positions if p is not None]
