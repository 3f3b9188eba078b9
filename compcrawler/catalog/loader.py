"""Load the bundled reference dataset into an immutable :class:`Catalog`.

The dataset follows the CommunityDragon TFT export layout::

    {
      "items":   [{"apiName": ..., "name": ..., "icon": ...}, ...],
      "setData": [{"number": 13, "champions": [{"apiName": ..., "stats": {...}}]}]
    }

Top-level ``augments`` and ``units`` / ``champions`` arrays are accepted as
well.  When no ``augments`` array exists, items whose ``apiName`` contains
``Augment`` are routed to the augment collection.
"""

from __future__ import annotations

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Iterable, Optional

from compcrawler.catalog.models import Catalog, CatalogEntry
from compcrawler.config import settings

logger = logging.getLogger(__name__)


class CatalogLoadError(RuntimeError):
    """The reference dataset is missing or cannot be parsed."""


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _as_list(raw: Any) -> list[dict[str, Any]]:
    if isinstance(raw, dict):
        raw = list(raw.values())
    if not isinstance(raw, list):
        return []
    return [r for r in raw if isinstance(r, dict)]


def _float_or_none(value: Any) -> Optional[float]:
    try:
        return float(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def _entry(raw: dict[str, Any]) -> Optional[CatalogEntry]:
    identifier = raw.get("apiName") or raw.get("api_name") or raw.get("id")
    name = raw.get("name") or raw.get("en_name") or raw.get("enName") or ""
    if not identifier or not isinstance(identifier, str):
        return None
    stats = raw.get("stats") if isinstance(raw.get("stats"), dict) else {}
    traits = raw.get("traits") or []
    return CatalogEntry(
        identifier=identifier,
        name=str(name),
        alt_name=str(raw.get("en_name") or raw.get("enName") or ""),
        icon=str(raw.get("icon") or ""),
        cost=int(raw.get("cost") or 0),
        traits=tuple(str(t) for t in traits if t),
        hp=_float_or_none(stats.get("hp", raw.get("hp"))),
        armor=_float_or_none(stats.get("armor", raw.get("armor"))),
        attack_range=_float_or_none(stats.get("range", raw.get("range"))),
    )


def _entries(raws: Iterable[dict[str, Any]]) -> tuple[CatalogEntry, ...]:
    return tuple(e for e in (_entry(r) for r in raws) if e is not None)


def _latest_set_champions(data: dict[str, Any]) -> list[dict[str, Any]]:
    sets = _as_list(data.get("setData"))
    if not sets:
        return []
    latest = max(enumerate(sets), key=lambda pair: (pair[1].get("number") or 0, pair[0]))[1]
    return _as_list(latest.get("champions"))


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def parse_catalog(data: dict[str, Any]) -> Catalog:
    """Build a :class:`Catalog` from an already-decoded JSON document."""
    raw_items = _as_list(data.get("items") or data.get("data"))

    if "augments" in data:
        raw_augments = _as_list(data["augments"])
    else:
        raw_augments = [r for r in raw_items if "Augment" in str(r.get("apiName", ""))]
        raw_items = [r for r in raw_items if "Augment" not in str(r.get("apiName", ""))]

    raw_units = _as_list(data.get("units") or data.get("champions"))
    if not raw_units:
        raw_units = _latest_set_champions(data)

    return Catalog(
        items=_entries(raw_items),
        augments=_entries(raw_augments),
        units=_entries(raw_units),
    )


def load_catalog(path: Path) -> Catalog:
    """Read and parse the dataset at *path*.

    Raises:
        CatalogLoadError: If the file is missing or is not a JSON object.
    """
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise CatalogLoadError(f"Catalog file not found: {path}") from exc
    except (OSError, json.JSONDecodeError) as exc:
        raise CatalogLoadError(f"Catalog file unreadable: {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise CatalogLoadError(f"Catalog root must be a JSON object: {path}")

    catalog = parse_catalog(data)
    logger.info(
        "[CATALOG] Loaded %d items, %d augments, %d units from %s",
        len(catalog.items), len(catalog.augments), len(catalog.units), path,
    )
    return catalog


@lru_cache(maxsize=1)
def get_catalog() -> Catalog:
    """Return the process-wide catalog, loading it on first use."""
    return load_catalog(settings.catalog_path)
