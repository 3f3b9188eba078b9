"""Crawl orchestration: discovery, batched detail crawl, dedup and reconciliation.

A full run (:meth:`CrawlOrchestrator.crawl_all`) works in two phases:

1. **Discovery**: the listing page is scrolled until stable and every
   detail-page link on it is collected, deduplicated, in document order.
2. **Detail**: links are crawled ``batch_size`` at a time.  Pages inside a
   batch are fetched concurrently on one shared browser; batches run strictly
   one after another.  Results are consumed in discovery order.

A failure on one page (navigation timeout, parse error) is logged and counted,
never raised.  Only :class:`~compcrawler.scraper.browser.FatalLaunchError`
aborts a run.

Two overlapping runs are not serialised; both may pass the name check and
insert the same composition.
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
from dataclasses import dataclass, field
from typing import Any, AsyncContextManager, Awaitable, Callable, List, Optional

from compcrawler.catalog.loader import get_catalog
from compcrawler.catalog.models import Catalog, CatalogEntry
from compcrawler.config import settings
from compcrawler.crawl.normalize import CompositionRecord, build_record
from compcrawler.db import compositions as compositions_db
from compcrawler.db import item_tiers as item_tiers_db
from compcrawler.db import unit_tiers as unit_tiers_db
from compcrawler.db.models import StoredComposition
from compcrawler.scraper.browser import NavigationError, acquire_page, launch_browser
from compcrawler.scraper.extractor import extract_comp_links, parse_detail_html
from compcrawler.scraper.item_tiers import TABLE_READY_SELECTOR, extract_item_tiers
from compcrawler.scraper.layout import BoardSize
from compcrawler.scraper.models import RawPage
from compcrawler.scraper.next_data import extract_unit_tiers, normalize_unit_name

logger = logging.getLogger(__name__)

DETAIL_READY_SELECTOR = "h1"

Launcher = Callable[[], AsyncContextManager[Any]]
Acquire = Callable[..., Awaitable[RawPage]]


@dataclass
class CrawlBatchResult:
    """Outcome of one full run.  Not persisted."""

    discovered: int = 0
    created: int = 0
    updated: int = 0
    skipped: int = 0
    failed: int = 0
    deleted: int = 0
    records: List[StoredComposition] = field(default_factory=list)
    failures: List[str] = field(default_factory=list)

    def summary(self) -> dict[str, int]:
        return {
            "discovered": self.discovered,
            "created": self.created,
            "updated": self.updated,
            "skipped": self.skipped,
            "failed": self.failed,
            "deleted": self.deleted,
        }


class CrawlOrchestrator:
    """Runs crawls against one DB connection and one (immutable) catalog.

    Args:
        conn: Open DB connection used for dedup, create and reconciliation.
        catalog: Reference catalog.  Defaults to the process-wide one.
        board: Board dimensions.  Defaults to the configured size.
        launcher: Zero-argument async context manager factory yielding a
            browser.  Defaults to :func:`launch_browser`.
        acquire: Page acquisition coroutine with the signature of
            :func:`acquire_page`.
        batch_size: Detail pages fetched concurrently per batch.
        batch_delay: Seconds to wait between batches.
    """

    def __init__(
        self,
        conn: sqlite3.Connection,
        catalog: Optional[Catalog] = None,
        *,
        board: Optional[BoardSize] = None,
        launcher: Launcher = launch_browser,
        acquire: Acquire = acquire_page,
        batch_size: Optional[int] = None,
        batch_delay: Optional[float] = None,
    ) -> None:
        self.conn = conn
        self.catalog = catalog if catalog is not None else get_catalog()
        self.board = board or BoardSize(settings.board_rows, settings.board_cols)
        self._launcher = launcher
        self._acquire = acquire
        self.batch_size = max(1, batch_size or settings.batch_size)
        self.batch_delay = settings.batch_delay if batch_delay is None else batch_delay
        self.last_result: Optional[CrawlBatchResult] = None

    # ------------------------------------------------------------------
    # Single pages
    # ------------------------------------------------------------------

    async def discover_links(self, browser: Any, listing_url: Optional[str] = None) -> List[str]:
        """Return every detail link on the listing page, or ``[]`` if it cannot load."""
        url = listing_url or settings.listing_url
        pattern = settings.detail_link_pattern
        try:
            page = await self._acquire(
                url,
                f'a[href*="{pattern}"]',
                browser=browser,
                scroll_until_bottom=True,
            )
        except NavigationError as exc:
            logger.error("[CRAWL] Discovery failed: %s", exc)
            return []
        links = extract_comp_links(page.html, page.url, pattern)
        logger.info("[CRAWL] Found %d composition links on %s", len(links), url)
        return links

    async def list_links(self, listing_url: Optional[str] = None) -> List[str]:
        """:meth:`discover_links` on a browser of its own."""
        async with self._launcher() as browser:
            return await self.discover_links(browser, listing_url)

    async def crawl_detail(self, url: str, browser: Any = None) -> CompositionRecord:
        """Acquire, extract and normalise one detail page.

        Raises:
            NavigationError: If the page cannot be loaded.
        """
        page = await self._acquire(url, DETAIL_READY_SELECTOR, browser=browser)
        skeleton = parse_detail_html(page.html, url, self.catalog, self.board)
        return build_record(skeleton, self.catalog, self.board)

    async def _crawl_isolated(self, url: str, browser: Any) -> Optional[CompositionRecord]:
        try:
            return await self.crawl_detail(url, browser)
        except Exception as exc:
            logger.error("[CRAWL] Failed %s: %s", url, exc)
            return None

    async def _crawl_batches(self, links: List[str], browser: Any):
        """Yield ``(url, record-or-None)`` pairs in discovery order, batch by batch."""
        total = (len(links) + self.batch_size - 1) // self.batch_size
        for number, start in enumerate(range(0, len(links), self.batch_size), start=1):
            batch = links[start:start + self.batch_size]
            logger.info("[CRAWL] Processing batch %d/%d (%d pages)", number, total, len(batch))
            records = await asyncio.gather(*(self._crawl_isolated(u, browser) for u in batch))
            for url, record in zip(batch, records):
                yield url, record
            if number < total and self.batch_delay > 0:
                await asyncio.sleep(self.batch_delay)

    # ------------------------------------------------------------------
    # Runs
    # ------------------------------------------------------------------

    async def crawl_team_comps(
        self, listing_url: Optional[str] = None, limit: Optional[int] = None
    ) -> List[CompositionRecord]:
        """Discover and crawl compositions without touching the store."""
        records: List[CompositionRecord] = []
        async with self._launcher() as browser:
            links = await self.discover_links(browser, listing_url)
            if limit is not None:
                links = links[:limit]
            async for _, record in self._crawl_batches(links, browser):
                if record is not None:
                    records.append(record)
        return records

    def _persist(self, record: CompositionRecord, result: CrawlBatchResult) -> None:
        existing = compositions_db.find_by_name(self.conn, record.name)
        if existing is None:
            stored = compositions_db.create_composition(self.conn, record.to_dict())
            result.records.append(stored)
            result.created += 1
            logger.info("[CRAWL] Created: %s", record.name)
        elif existing.tier != record.tier:
            compositions_db.update_composition(self.conn, existing.id, tier=record.tier)
            result.updated += 1
            logger.info("[CRAWL] Updated tier: %s (%s -> %s)", record.name, existing.tier, record.tier)
        else:
            result.skipped += 1
            logger.debug("[CRAWL] Skip duplicate: %s", record.name)

    async def crawl_all(self, listing_url: Optional[str] = None) -> CrawlBatchResult:
        """Full sync: discover, crawl in batches, persist new records, drop stale ones.

        Raises:
            FatalLaunchError: If the browser cannot be started.
        """
        result = CrawlBatchResult()
        crawled_names: List[str] = []

        logger.info("[CRAWL] Starting full crawl")
        async with self._launcher() as browser:
            links = await self.discover_links(browser, listing_url)
            result.discovered = len(links)

            async for url, record in self._crawl_batches(links, browser):
                if record is None:
                    result.failed += 1
                    result.failures.append(url)
                    continue
                crawled_names.append(record.name)
                try:
                    self._persist(record, result)
                except sqlite3.Error as exc:
                    logger.error("[CRAWL] DB error for %s: %s", record.name, exc)
                    result.failed += 1
                    result.failures.append(url)

        if crawled_names:
            result.deleted = compositions_db.delete_by_name_not_in(self.conn, crawled_names)
            logger.info("[CRAWL] Deleted %d stale compositions", result.deleted)
        else:
            logger.warning("[CRAWL] Nothing crawled; skipping stale-record cleanup")

        logger.info("[CRAWL] Finished: %s", result.summary())
        self.last_result = result
        return result

    async def crawl_unit_tiers(self, url: Optional[str] = None) -> int:
        """Refresh stored unit tiers from the tier-list page.

        Returns:
            The number of units whose tier changed.

        Raises:
            FatalLaunchError: If the browser cannot be started.
        """
        url = url or settings.unit_tiers_url
        logger.info("[TIERS] Unit tier crawl started")
        async with self._launcher() as browser:
            try:
                page = await self._acquire(url, browser=browser)
            except NavigationError as exc:
                logger.error("[TIERS] %s", exc)
                return 0

        tiers = extract_unit_tiers(page.html)
        units = {}
        for entry in self.catalog.units:
            for name in (entry.name, entry.alt_name):
                key = normalize_unit_name(name)
                if key:
                    units.setdefault(key, entry)

        updated = 0
        for tier in tiers:
            entry = units.get(normalize_unit_name(tier.name))
            if entry is None:
                continue
            current = unit_tiers_db.get_unit_tier(self.conn, entry.identifier)
            if current is None or current.tier != tier.tier:
                unit_tiers_db.upsert_unit_tier(self.conn, entry.identifier, entry.name, tier.tier)
                updated += 1

        logger.info("[TIERS] Unit tier crawl finished. Updated: %d", updated)
        return updated

    async def crawl_item_tiers(self, url: Optional[str] = None) -> int:
        """Refresh stored item tiers from the item stats table.

        Rows are matched to catalog items by API name first, then by
        case-insensitive name.  Returns the number of items whose tier changed.

        Raises:
            FatalLaunchError: If the browser cannot be started.
        """
        url = url or settings.item_tiers_url
        logger.info("[TIERS] Item tier crawl started")
        async with self._launcher() as browser:
            try:
                page = await self._acquire(
                    url, TABLE_READY_SELECTOR, browser=browser, scroll_until_bottom=True
                )
            except NavigationError as exc:
                logger.error("[TIERS] %s", exc)
                return 0

        by_identifier = {entry.identifier.lower(): entry for entry in self.catalog.items}
        by_name: dict[str, CatalogEntry] = {}
        for entry in self.catalog.items:
            by_name.setdefault(entry.name.lower().strip(), entry)

        updated = 0
        not_found = 0
        for row in extract_item_tiers(page.html):
            entry = None
            if row.api_name:
                entry = by_identifier.get(row.api_name.lower())
            if entry is None:
                entry = by_name.get(row.name.lower().strip())
            if entry is None:
                not_found += 1
                continue
            current = item_tiers_db.get_item_tier(self.conn, entry.identifier)
            if current is None or current.tier != row.tier:
                item_tiers_db.upsert_item_tier(self.conn, entry.identifier, entry.name, row.tier)
                updated += 1

        logger.info("[TIERS] Item tier crawl finished. Updated: %d, not found: %d", updated, not_found)
        return updated
