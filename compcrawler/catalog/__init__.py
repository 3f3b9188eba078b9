"""Reference catalog package: loading and identifier resolution."""

from compcrawler.catalog.loader import CatalogLoadError, get_catalog, load_catalog
from compcrawler.catalog.models import Catalog, CatalogEntry
from compcrawler.catalog.resolver import (
    MatchMethod,
    ResolvedIdentifier,
    normalize_name,
    resolve,
    resolve_or_placeholder,
)

__all__ = [
    "Catalog",
    "CatalogEntry",
    "CatalogLoadError",
    "MatchMethod",
    "ResolvedIdentifier",
    "get_catalog",
    "load_catalog",
    "normalize_name",
    "resolve",
    "resolve_or_placeholder",
]
