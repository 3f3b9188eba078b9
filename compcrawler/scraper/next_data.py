"""Unit tier lists embedded in a Next.js ``__NEXT_DATA__`` payload."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, List

from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)

TIERS = frozenset({"S", "A", "B", "C", "D"})

_QUOTES_RE = re.compile(r"['’]")
_NON_ALNUM_RE = re.compile(r"[^a-z0-9]")


@dataclass(frozen=True)
class UnitTier:
    name: str
    tier: str


def normalize_unit_name(name: str) -> str:
    """``"Kai'Sa"`` → ``"kaisa"``; the join key between tier lists and catalog units."""
    return _NON_ALNUM_RE.sub("", _QUOTES_RE.sub("", name.strip().lower()))


def _node_name(node: dict[str, Any]) -> Any:
    if node.get("name"):
        return node["name"]
    for key in ("unit", "champion"):
        nested = node.get(key)
        if isinstance(nested, dict) and nested.get("name"):
            return nested["name"]
    return None


def _visit(node: Any, found: List[UnitTier]) -> None:
    if isinstance(node, list):
        for child in node:
            _visit(child, found)
    elif isinstance(node, dict):
        tier = node.get("tier")
        name = _node_name(node)
        if isinstance(tier, str) and isinstance(name, str) and tier.upper() in TIERS:
            found.append(UnitTier(name=name, tier=tier.upper()))
        for child in node.values():
            _visit(child, found)


def extract_unit_tiers(html: str) -> List[UnitTier]:
    """Collect every ``{name, tier}`` pair from the page's ``__NEXT_DATA__`` script.

    Later occurrences of the same (normalised) unit overwrite earlier ones.
    A missing or malformed payload yields an empty list.
    """
    soup = BeautifulSoup(html, "html.parser")
    script = soup.find("script", id="__NEXT_DATA__")
    if script is None or not script.string:
        logger.warning("[TIERS] No __NEXT_DATA__ payload found")
        return []
    try:
        data = json.loads(script.string)
    except ValueError as exc:
        logger.warning("[TIERS] Malformed __NEXT_DATA__ payload: %s", exc)
        return []

    found: List[UnitTier] = []
    _visit(data, found)

    deduped: dict[str, UnitTier] = {}
    for entry in found:
        key = normalize_unit_name(entry.name)
        if key:
            deduped[key] = entry
    return list(deduped.values())
