"""Item tier lists rendered as a stats table.

Each table row yields a name, an optional API name taken from its item link,
and a tier letter.  The tier is read from a tier badge first, then from the
first few cells, then from anywhere in the row text.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import List, Optional

from bs4 import BeautifulSoup, Tag

from compcrawler.scraper.next_data import TIERS

logger = logging.getLogger(__name__)

ROW_SELECTOR = '.StatsTable tr, table tr, [class*="ItemRow"], [class*="Table"] tr'
TABLE_READY_SELECTOR = '.StatsTable, table, [class*="Table"], [class*="ItemRow"]'
_NAME_SELECTOR = '.item-name, [class*="ItemName"], a[href*="/items/"]'
_BADGE_SELECTOR = '[class*="Tier"], [class*="tier"], .CompRowTierBadge'

_ITEM_HREF_RE = re.compile(r"/items/([^/?]+)")
_ROW_TIER_RE = re.compile(r"\b([SABCD])\b", re.IGNORECASE)
_CELLS_SCANNED = 5


@dataclass(frozen=True)
class ItemTier:
    name: str
    tier: str
    api_name: Optional[str] = None


def _single_tier(text: str) -> Optional[str]:
    text = text.strip().upper()
    return text if text in TIERS else None


def _row_name(row: Tag) -> Optional[str]:
    for tag in (row.select_one(_NAME_SELECTOR), row.find("td")):
        if tag is not None:
            text = tag.get_text(strip=True)
            if text:
                return text
    return None


def _row_tier(row: Tag) -> Optional[str]:
    badge = row.select_one(_BADGE_SELECTOR)
    if badge is not None:
        tier = _single_tier(badge.get_text())
        if tier:
            return tier
    for cell in row.find_all(["td", "th"])[:_CELLS_SCANNED]:
        tier = _single_tier(cell.get_text())
        if tier:
            return tier
    match = _ROW_TIER_RE.search(row.get_text(" "))
    return match.group(1).upper() if match else None


def _row_api_name(row: Tag) -> Optional[str]:
    link = row.select_one('a[href*="/items/"]')
    if link is None:
        return None
    match = _ITEM_HREF_RE.search(link.get("href") or "")
    return match.group(1) if match else None


def extract_item_tiers(html: str) -> List[ItemTier]:
    """Return one :class:`ItemTier` per distinct item name, first row wins.

    Rows without a name or a tier (header rows included) are skipped.
    """
    soup = BeautifulSoup(html, "html.parser")
    found: List[ItemTier] = []
    seen: set[str] = set()
    rows = soup.select(ROW_SELECTOR)
    for row in rows:
        if row.find("td") is None and not row.get("class"):
            continue
        name = _row_name(row)
        tier = _row_tier(row)
        if not name or not tier:
            continue
        key = name.lower().strip()
        if key in seen:
            continue
        seen.add(key)
        found.append(ItemTier(name=name, tier=tier, api_name=_row_api_name(row)))

    if rows and not found:
        logger.warning("[TIERS] %d table rows but no item tiers", len(rows))
    return found
