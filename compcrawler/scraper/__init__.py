"""Scraper package: page acquisition, structural extraction, layout inference."""

from compcrawler.scraper.browser import (
    FatalLaunchError,
    NavigationError,
    acquire_page,
    launch_browser,
)
from compcrawler.scraper.extractor import extract_comp_links, parse_detail_html
from compcrawler.scraper.layout import BoardPosition, BoardSize
from compcrawler.scraper.models import AugmentPick, CompositionSkeleton, RawPage, UnitSlot
from compcrawler.scraper.item_tiers import extract_item_tiers
from compcrawler.scraper.next_data import extract_unit_tiers

__all__ = [
    "AugmentPick",
    "BoardPosition",
    "BoardSize",
    "CompositionSkeleton",
    "FatalLaunchError",
    "NavigationError",
    "RawPage",
    "UnitSlot",
    "acquire_page",
    "extract_comp_links",
    "extract_item_tiers",
    "extract_unit_tiers",
    "launch_browser",
    "parse_detail_html",
]
