"""Structural extraction: turns detail-page markup into a :class:`CompositionSkeleton`.

Guide pages come in several template shapes, so every field with more than
one possible location is read through an ordered chain of small extraction
strategies, each returning ``None`` (or an empty list) when its markup shape
is absent.  The first strategy that produces something wins.

Missing optional fields never raise; they fall back to the defaults below.
The only exception that can escape is
:class:`~compcrawler.catalog.loader.CatalogLoadError`, raised when the
augment catalog has to be loaded and cannot be.
"""

from __future__ import annotations

import logging
import re
from typing import Callable, Iterable, List, Optional, Sequence
from urllib.parse import urldefrag, urljoin

from bs4 import BeautifulSoup, NavigableString, Tag

from compcrawler.catalog.loader import get_catalog
from compcrawler.catalog.models import Catalog
from compcrawler.catalog.resolver import resolve_or_placeholder
from compcrawler.config import settings
from compcrawler.scraper.layout import (
    BoardSize,
    CellMeta,
    group_rows,
    infer_position,
    parse_style_offsets,
    position_from_percent,
)
from compcrawler.scraper.models import AugmentPick, CompositionSkeleton, UnitSlot

logger = logging.getLogger(__name__)

DEFAULT_NAME = "Unknown Comp"
DEFAULT_TIER = "C"
DEFAULT_PLAN = "Standard"
DEFAULT_DIFFICULTY = "Medium"

TIERS = ("S", "A", "B", "C", "D")
PLANS = ("Fast 8", "Fast 9", "Slow Roll", "Hyper Roll", "Standard")
DIFFICULTIES = ("Easy", "Medium", "Hard")

# Row used for units recovered from plain links, where no layout exists.
FALLBACK_ROW = 3

UNIT_ICON_MARKER = "/champions/icons/"
_NON_ITEM_IMAGE_MARKERS = (UNIT_ICON_MARKER, "synergies", "hex-tiers")
_PLACEHOLDER_ALTS = {"t1", "t2", "t3"}

_TIER_LABEL_RE = re.compile(r"^Tier\s+(\d+)$")
_UNIT_LINK_RE = re.compile(r"/(?:units|champions)/([^/?#]+)/?(?:[?#].*)?$")
_ITEM_LINK_RE = re.compile(r"/items/([^/?#]+)")
_VERSION_SUFFIX_RE = re.compile(r"[-_]v?\d+$")
_NON_ALNUM_RE = re.compile(r"[^a-zA-Z0-9]")

_SPECIAL_NAMES = {
    "luciansenna": "Lucian",
    "jarvaniv": "Jarvan IV",
}

BoardStrategy = Callable[[BeautifulSoup, BoardSize], Optional[List[UnitSlot]]]


# ---------------------------------------------------------------------------
# Slug helpers
# ---------------------------------------------------------------------------

def slug_from_url(url: str) -> str:
    """Return the bare filename of *url*: no path, query, or extension."""
    if not url:
        return ""
    return url.split("/")[-1].split("?")[0].split(".")[0]


def item_slug_from_url(url: str) -> str:
    """Return an alphanumeric item slug from an icon URL.

    ``.../game-items/set16/infinity-edge.png?v=70`` → ``infinityedge``.
    """
    filename = _VERSION_SUFFIX_RE.sub("", slug_from_url(url))
    return _NON_ALNUM_RE.sub("", filename)


def display_name(slug: str) -> str:
    """Synthesize a display name from a unit slug."""
    special = _SPECIAL_NAMES.get(slug.lower())
    if special:
        return special
    return slug[:1].upper() + slug[1:]


def generate_slug(name: str) -> str:
    """``"Dr. Mundo"`` → ``"dr-mundo"``."""
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")


# ---------------------------------------------------------------------------
# Tag helpers
# ---------------------------------------------------------------------------

def _icon_src(tag: Tag) -> str:
    if tag.name == "image":
        return tag.get("href") or tag.get("xlink:href") or ""
    return tag.get("src") or ""


def _unit_icons(root: Tag, names: Sequence[str] = ("image", "img")) -> List[Tag]:
    return [t for t in root.find_all(list(names)) if UNIT_ICON_MARKER in _icon_src(t)]


def _text_nodes(soup: BeautifulSoup) -> Iterable[tuple[str, NavigableString]]:
    for node in soup.find_all(string=True):
        text = node.strip()
        if text:
            yield text, node


def _cell_items(cell: Tag) -> List[str]:
    """Raw item slugs for every non-unit image inside *cell*."""
    items: List[str] = []
    for img in cell.find_all("img"):
        src = img.get("src") or ""
        if any(marker in src for marker in _NON_ITEM_IMAGE_MARKERS):
            continue
        slug = item_slug_from_url(src) or (img.get("alt") or "").strip()
        if slug:
            items.append(slug)
    return items


def _unit_from_icon(icon: Tag, cell: Tag, position) -> Optional[UnitSlot]:
    src = _icon_src(icon)
    slug = slug_from_url(src)
    if not slug:
        return None
    return UnitSlot(
        slug=slug,
        name=display_name(slug),
        position=position,
        items=_cell_items(cell),
        image=src,
    )


# ---------------------------------------------------------------------------
# Board strategies
# ---------------------------------------------------------------------------

def _grid_board(soup: BeautifulSoup, board: BoardSize) -> Optional[List[UnitSlot]]:
    """Board → row → cell template; the container with most unit icons wins."""
    candidates: dict[int, list] = {}
    for icon in _unit_icons(soup, ("image",)):
        wrapper = icon.find_parent("div")
        cell = wrapper.parent if wrapper is not None else None
        row = cell.parent if cell is not None else None
        container = row.parent if row is not None else None
        if not isinstance(container, Tag) or isinstance(container, BeautifulSoup):
            continue
        entry = candidates.setdefault(id(container), [container, 0])
        entry[1] += 1

    best: Optional[Tag] = None
    best_count = 0
    for container, count in candidates.values():
        if count > best_count:
            best, best_count = container, count
    if best is None:
        return None

    units: List[UnitSlot] = []
    for row_index, row_el in enumerate(best.find_all("div", recursive=False)):
        for col_index, cell_el in enumerate(row_el.find_all("div", recursive=False)):
            icons = _unit_icons(cell_el, ("image",))
            if not icons:
                continue
            position = infer_position(CellMeta(row=row_index, col=col_index), len(units), board)
            unit = _unit_from_icon(icons[0], cell_el, position)
            if unit is not None:
                units.append(unit)
    return units


def _positioned_board(soup: BeautifulSoup, board: BoardSize) -> Optional[List[UnitSlot]]:
    """Absolutely positioned hexes carrying ``left``/``top`` inline styles."""
    cells: list = []
    seen: set[int] = set()
    for icon in _unit_icons(soup):
        for ancestor in icon.parents:
            if isinstance(ancestor, BeautifulSoup):
                break
            offsets = parse_style_offsets(ancestor.get("style"))
            if offsets is None:
                continue
            if id(ancestor) not in seen:
                seen.add(id(ancestor))
                cells.append((ancestor, icon, offsets))
            break
    if not cells:
        return None

    pixel_cells = [c for c in cells if c[2].is_pixel]
    pixel_positions = group_rows([(c[2].left, c[2].top) for c in pixel_cells], board)
    by_cell = {id(c[0]): pos for c, pos in zip(pixel_cells, pixel_positions)}

    units: List[UnitSlot] = []
    for index, (cell, icon, offsets) in enumerate(cells):
        if id(cell) in by_cell:
            position = by_cell[id(cell)]
        elif offsets.is_percent:
            position = position_from_percent(offsets.left, offsets.top, board)
        else:
            position = infer_position(None, index, board)
        unit = _unit_from_icon(icon, cell, position)
        if unit is not None:
            units.append(unit)
    return units


def _following_item_links(link: Tag) -> List[str]:
    """Item slugs linked after *link*, up to the next unit link.

    The walk stays inside the unit link's parent, so a per-unit wrapper and a
    flat shared container both attribute items to the right unit.
    """
    container = link.parent
    items: List[str] = []
    for a in link.find_all_next("a", href=True):
        if container is not None and not any(p is container for p in a.parents):
            break
        if _UNIT_LINK_RE.search(a["href"]):
            break
        match = _ITEM_LINK_RE.search(a["href"])
        if match:
            items.append(match.group(1))
    return items


def _unit_link_board(soup: BeautifulSoup, board: BoardSize) -> Optional[List[UnitSlot]]:
    """Degraded reconstruction from unit-reference links in enumeration order."""
    units: List[UnitSlot] = []
    seen: set[str] = set()
    for link in soup.find_all("a", href=True):
        match = _UNIT_LINK_RE.search(link["href"])
        if not match:
            continue
        slug = match.group(1)
        if slug.lower() in seen:
            continue
        seen.add(slug.lower())

        items = _following_item_links(link)
        img = link.find("img")
        position = infer_position(CellMeta(row=FALLBACK_ROW, col=len(units)), len(units), board)
        units.append(
            UnitSlot(
                slug=slug,
                name=display_name(slug),
                position=position,
                items=items,
                image=(img.get("src") or "") if img is not None else "",
            )
        )
    return units


BOARD_STRATEGIES: Sequence[tuple[str, BoardStrategy]] = (
    ("grid", _grid_board),
    ("positioned", _positioned_board),
    ("unit-links", _unit_link_board),
)


def extract_units(
    soup: BeautifulSoup, board: BoardSize
) -> tuple[Optional[str], List[UnitSlot]]:
    """Run :data:`BOARD_STRATEGIES` in order; return ``(strategy, units)``."""
    for name, strategy in BOARD_STRATEGIES:
        units = strategy(soup, board)
        if units:
            return name, units
    return None, []


# ---------------------------------------------------------------------------
# Metadata strategies
# ---------------------------------------------------------------------------

def _first(*candidates: Callable[[], Optional[str]]) -> Optional[str]:
    for candidate in candidates:
        value = candidate()
        if value:
            return value
    return None


def _extract_name(soup: BeautifulSoup) -> str:
    def from_h1() -> Optional[str]:
        h1 = soup.find("h1")
        return h1.get_text(" ", strip=True) if h1 else None

    def from_og_title() -> Optional[str]:
        meta = soup.find("meta", attrs={"property": "og:title"})
        return (meta.get("content") or "").strip() if meta else None

    return _first(from_h1, from_og_title) or DEFAULT_NAME


def _extract_tier(soup: BeautifulSoup) -> str:
    def from_badge() -> Optional[str]:
        for img in soup.find_all("img"):
            if "hex-tiers" in (img.get("src") or ""):
                alt = (img.get("alt") or "").strip().upper()
                return alt if alt in TIERS else None
        return None

    def from_tier_class() -> Optional[str]:
        for el in soup.find_all(class_=re.compile("tier", re.IGNORECASE)):
            text = el.get_text(strip=True).upper()
            if text in TIERS:
                return text
        return None

    return _first(from_badge, from_tier_class) or DEFAULT_TIER


def _extract_labelled(soup: BeautifulSoup, choices: Sequence[str], default: str) -> str:
    for text, _ in _text_nodes(soup):
        if text in choices:
            return text
    return default


def _extract_meta_description(soup: BeautifulSoup, name: str) -> str:
    meta = soup.find("meta", attrs={"name": "description"})
    content = (meta.get("content") or "").strip() if meta else ""
    return content or f"Guide for {name}"


def _extract_augments(
    soup: BeautifulSoup, catalog: Catalog, fuzzy: bool, threshold: float
) -> List[AugmentPick]:
    picks: dict[str, AugmentPick] = {}
    for text, node in _text_nodes(soup):
        match = _TIER_LABEL_RE.match(text)
        if not match:
            continue
        label = node.parent
        group = label.parent.parent if label is not None and label.parent is not None else None
        if group is None:
            continue
        tier = int(match.group(1))
        for img in group.find_all("img"):
            raw = (img.get("alt") or "").strip()
            if not raw or raw.lower() in _PLACEHOLDER_ALTS:
                raw = item_slug_from_url(img.get("src") or "")
            if not raw or raw.lower() in _PLACEHOLDER_ALTS:
                continue
            resolved = resolve_or_placeholder(
                raw, catalog.augments, "augment", fuzzy=fuzzy, threshold=threshold
            )
            picks[resolved.identifier] = AugmentPick(name=resolved.identifier, tier=tier)
    return list(picks.values())


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def parse_detail_html(
    html: str,
    source_url: str = "",
    catalog: Optional[Catalog] = None,
    board: Optional[BoardSize] = None,
) -> CompositionSkeleton:
    """Parse a rendered guide page into a :class:`CompositionSkeleton`.

    Args:
        html: Settled page markup.
        source_url: URL the markup came from (logging and provenance only).
        catalog: Reference catalog for augment resolution.  Defaults to the
            process-wide :func:`~compcrawler.catalog.loader.get_catalog`.
        board: Board dimensions.  Defaults to ``settings.board_rows`` ×
            ``settings.board_cols``.
    """
    if catalog is None:
        catalog = get_catalog()
    if board is None:
        board = BoardSize(settings.board_rows, settings.board_cols)

    soup = BeautifulSoup(html, "html.parser")

    name = _extract_name(soup)
    strategy, units = extract_units(soup, board)
    if strategy is None:
        logger.warning("[EXTRACT] No units found on %s", source_url or "<markup>")
    elif strategy != BOARD_STRATEGIES[0][0]:
        logger.warning("[EXTRACT] Fallback board strategy %r used for %s", strategy, source_url)

    return CompositionSkeleton(
        name=name,
        tier=_extract_tier(soup),
        plan=_extract_labelled(soup, PLANS, DEFAULT_PLAN),
        difficulty=_extract_labelled(soup, DIFFICULTIES, DEFAULT_DIFFICULTY),
        meta_description=_extract_meta_description(soup, name),
        source_url=source_url,
        units=units,
        augments=_extract_augments(
            soup, catalog, settings.fuzzy_enabled, settings.fuzzy_threshold
        ),
        board_strategy=strategy,
    )


def extract_comp_links(html: str, base_url: str, pattern: Optional[str] = None) -> List[str]:
    """Return absolute, deduplicated detail-page links in document order.

    Fragment-only differences collapse to the same link.
    """
    pattern = pattern or settings.detail_link_pattern
    soup = BeautifulSoup(html, "html.parser")
    seen: set[str] = set()
    links: List[str] = []
    for a in soup.find_all("a", href=True):
        href = a["href"].strip()
        if pattern not in href:
            continue
        absolute, _ = urldefrag(urljoin(base_url, href))
        if absolute not in seen:
            seen.add(absolute)
            links.append(absolute)
    return links
