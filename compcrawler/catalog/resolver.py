"""Map noisy name/icon slugs scraped from markup to canonical identifiers.

Resolution order (first hit wins):

1. exact match on the normalised display name or alternate name;
2. the normalised identifier contains the input;
3. the normalised icon path contains the input;
4. trailing digit run stripped (``voidstaff70`` → ``voidstaff``), steps 1–3
   retried;
5. optionally, Levenshtein similarity against names, accepted at or above a
   threshold.  Ties keep the earliest catalog entry.

:func:`resolve` is pure: the same slug against the same entries always yields
the same result.  :func:`resolve_or_placeholder` never returns ``None``.
"""

from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional, Sequence

from rapidfuzz.distance import Levenshtein

from compcrawler.catalog.models import Catalog, CatalogEntry

logger = logging.getLogger(__name__)

PLACEHOLDER_PREFIX = "Unresolved_"
DEFAULT_FUZZY_THRESHOLD = 0.6

# Items renamed on the source site but still keyed by their old identifier.
ITEM_ALIASES: dict[str, str] = {
    "guardbreaker": "TFT_Item_PowerGauntlet",
    "fimbulwinter": "TFT_Item_FrozenHeart",
    "steadfasthammer": "TFT_Item_NightHarvester",
}

_QUOTES_RE = re.compile(r"[\"'`‘’]")
_TRAILING_MARKERS_RE = re.compile(
    r"(?:[._\-](?:tft_?)?set\d+)?(?:\.(?:tex|png|jpe?g|webp|gif|svg|dds))*$"
)
_NON_ALNUM_RE = re.compile(r"[^a-z0-9]")
_TRAILING_DIGITS_RE = re.compile(r"\d+$")


class MatchMethod(str, enum.Enum):
    EXACT = "exact"
    SUBSTRING = "substring"
    FUZZY = "fuzzy"
    PLACEHOLDER = "placeholder"


@dataclass(frozen=True)
class ResolvedIdentifier:
    identifier: str
    method: MatchMethod

    @property
    def resolved(self) -> bool:
        return self.method is not MatchMethod.PLACEHOLDER


# ---------------------------------------------------------------------------
# Normalisation
# ---------------------------------------------------------------------------

@lru_cache(maxsize=16384)
def normalize_name(text: str) -> str:
    """Lowercase, drop quotes and trailing set/texture markers, keep ``[a-z0-9]``."""
    if not text:
        return ""
    lowered = _QUOTES_RE.sub("", text.strip().lower())
    lowered = _TRAILING_MARKERS_RE.sub("", lowered)
    return _NON_ALNUM_RE.sub("", lowered)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _match(cleaned: str, entries: Sequence[CatalogEntry]) -> Optional[ResolvedIdentifier]:
    for entry in entries:
        if cleaned == normalize_name(entry.name) or (
            entry.alt_name and cleaned == normalize_name(entry.alt_name)
        ):
            return ResolvedIdentifier(entry.identifier, MatchMethod.EXACT)

    for entry in entries:
        if cleaned in normalize_name(entry.identifier):
            return ResolvedIdentifier(entry.identifier, MatchMethod.SUBSTRING)

    for entry in entries:
        if entry.icon and cleaned in normalize_name(entry.icon):
            return ResolvedIdentifier(entry.identifier, MatchMethod.SUBSTRING)

    return None


def _fuzzy_match(
    cleaned: str, entries: Sequence[CatalogEntry], threshold: float
) -> Optional[ResolvedIdentifier]:
    best: Optional[CatalogEntry] = None
    best_score = 0.0
    for entry in entries:
        for candidate in (entry.name, entry.alt_name):
            target = normalize_name(candidate)
            if not target:
                continue
            score = Levenshtein.normalized_similarity(cleaned, target)
            if score > best_score:
                best, best_score = entry, score
    if best is not None and best_score >= threshold:
        return ResolvedIdentifier(best.identifier, MatchMethod.FUZZY)
    return None


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def resolve(
    slug: str,
    entries: Sequence[CatalogEntry],
    *,
    fuzzy: bool = False,
    threshold: float = DEFAULT_FUZZY_THRESHOLD,
) -> Optional[ResolvedIdentifier]:
    """Resolve *slug* against *entries*; ``None`` when nothing matches."""
    cleaned = normalize_name(slug)
    if not cleaned:
        return None

    hit = _match(cleaned, entries)
    if hit is None:
        stripped = _TRAILING_DIGITS_RE.sub("", cleaned)
        if stripped and stripped != cleaned:
            hit = _match(stripped, entries)

    if hit is None and fuzzy:
        hit = _fuzzy_match(cleaned, entries, threshold)
    return hit


def placeholder(slug: str) -> ResolvedIdentifier:
    return ResolvedIdentifier(f"{PLACEHOLDER_PREFIX}{slug}", MatchMethod.PLACEHOLDER)


def resolve_or_placeholder(
    slug: str,
    entries: Sequence[CatalogEntry],
    kind: str = "entry",
    *,
    fuzzy: bool = False,
    threshold: float = DEFAULT_FUZZY_THRESHOLD,
) -> ResolvedIdentifier:
    """Like :func:`resolve`, but substitute a placeholder on a miss."""
    hit = resolve(slug, entries, fuzzy=fuzzy, threshold=threshold)
    if hit is not None:
        return hit
    result = placeholder(slug)
    logger.warning("[RESOLVE] No %s match for %r; using %s", kind, slug, result.identifier)
    return result


def resolve_item(
    slug: str,
    catalog: Catalog,
    *,
    fuzzy: bool = False,
    threshold: float = DEFAULT_FUZZY_THRESHOLD,
) -> ResolvedIdentifier:
    """Resolve an item slug, honouring :data:`ITEM_ALIASES` first."""
    alias = ITEM_ALIASES.get(normalize_name(slug))
    if alias:
        return ResolvedIdentifier(alias, MatchMethod.EXACT)
    return resolve_or_placeholder(
        slug, catalog.items, "item", fuzzy=fuzzy, threshold=threshold
    )
