"""Download a fresh copy of the reference dataset.

The running process never reloads its catalog; a refreshed file is picked up
on the next start.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Optional

import httpx

from compcrawler.catalog.loader import CatalogLoadError, parse_catalog
from compcrawler.catalog.models import Catalog
from compcrawler.config import settings

logger = logging.getLogger(__name__)


def download_catalog(url: Optional[str] = None, dest: Optional[Path] = None) -> Catalog:
    """Fetch the dataset at *url* and atomically replace *dest* with it.

    Args:
        url: Source URL.  Defaults to ``settings.catalog_url``.
        dest: Target path.  Defaults to ``settings.catalog_path``.

    Returns:
        The parsed :class:`Catalog` of the downloaded document.

    Raises:
        httpx.HTTPStatusError: If the server returns a 4xx/5xx status code.
        CatalogLoadError: If the body is not a JSON object.
    """
    url = url or settings.catalog_url
    dest = Path(dest or settings.catalog_path)

    with httpx.Client(timeout=settings.request_timeout, follow_redirects=True) as client:
        response = client.get(url)
        response.raise_for_status()

    try:
        data = response.json()
    except ValueError as exc:
        raise CatalogLoadError(f"Catalog at {url} is not valid JSON") from exc
    if not isinstance(data, dict):
        raise CatalogLoadError(f"Catalog at {url} must be a JSON object")

    catalog = parse_catalog(data)

    dest.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = dest.with_suffix(dest.suffix + ".tmp")
    tmp_path.write_text(json.dumps(data, ensure_ascii=False), encoding="utf-8")
    os.replace(tmp_path, dest)

    logger.info(
        "[CATALOG] Saved %d items, %d augments, %d units to %s",
        len(catalog.items), len(catalog.augments), len(catalog.units), dest,
    )
    return catalog
