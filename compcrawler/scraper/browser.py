"""Headless-browser page acquisition.

Every guide page we read is a JavaScript SPA, so acquisition always goes
through a Playwright-driven Chromium instead of a plain HTTP GET.

Resource ownership
------------------
``launch_browser()`` owns the Chromium process and ``open_page()`` owns one
tab.  Both are async context managers, so the browser or tab is released on
success, timeout, and exception alike.  When a caller passes its own
``browser`` into :func:`acquire_page`, only the tab is closed here.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

from playwright.async_api import Browser, Error as PWError, Page, Route
from playwright.async_api import TimeoutError as PWTimeoutError
from playwright.async_api import async_playwright

from compcrawler.config import settings
from compcrawler.scraper.models import RawPage

logger = logging.getLogger(__name__)

_BLOCKED_RESOURCE_TYPES = {"font", "media", "stylesheet", "other"}
# Images are only needed when their URL is part of the board/augment markup.
_ALLOWED_IMAGE_MARKERS = ("champions/icons", "items", "game-items", "augments")

_SCROLL_STEP_JS = """
(distance) => {
    window.scrollBy(0, distance);
    return {
        scrollHeight: document.body.scrollHeight,
        scrollY: window.scrollY,
        innerHeight: window.innerHeight,
    };
}
"""


class NavigationError(RuntimeError):
    """A single page could not be loaded within its timeout."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"Navigation failed for {url}: {reason}")
        self.url = url
        self.reason = reason


class FatalLaunchError(RuntimeError):
    """The headless browser could not be started at all."""


# ---------------------------------------------------------------------------
# Browser / tab lifetime
# ---------------------------------------------------------------------------

@asynccontextmanager
async def launch_browser(headless: Optional[bool] = None) -> AsyncIterator[Browser]:
    """Start headless Chromium and close it on exit.

    Raises:
        FatalLaunchError: If Playwright or Chromium cannot start.
    """
    try:
        pw = await async_playwright().start()
    except Exception as exc:
        raise FatalLaunchError(f"Playwright failed to start: {exc}") from exc

    try:
        try:
            browser = await pw.chromium.launch(
                headless=settings.headless if headless is None else headless,
                args=[
                    "--no-sandbox",
                    "--disable-setuid-sandbox",
                    "--disable-blink-features=AutomationControlled",
                ],
            )
        except PWError as exc:
            raise FatalLaunchError(f"Chromium failed to launch: {exc}") from exc

        try:
            yield browser
        finally:
            await browser.close()
    finally:
        await pw.stop()


async def _route_handler(route: Route) -> None:
    request = route.request
    resource_type = request.resource_type
    if resource_type in _BLOCKED_RESOURCE_TYPES:
        await route.abort()
    elif resource_type == "image" and not any(m in request.url for m in _ALLOWED_IMAGE_MARKERS):
        await route.abort()
    else:
        await route.continue_()


@asynccontextmanager
async def open_page(browser: Browser, block_resources: bool = True) -> AsyncIterator[Page]:
    """Open one tab on *browser* and close it on exit."""
    page = await browser.new_page(
        user_agent=settings.user_agent,
        viewport={"width": 1920, "height": 1080},
    )
    try:
        if block_resources:
            await page.route("**/*", _route_handler)
        yield page
    finally:
        await page.close()


# ---------------------------------------------------------------------------
# Scrolling
# ---------------------------------------------------------------------------

async def scroll_until_stable(
    page: Any,
    distance: Optional[int] = None,
    interval: Optional[float] = None,
    stable_iterations: Optional[int] = None,
    max_iterations: Optional[int] = None,
) -> int:
    """Scroll until the page stops growing, then return the final height.

    Each step scrolls *distance* pixels and waits *interval* seconds.  Once
    the viewport reaches the bottom, every step that does not increase the
    total scrollable height counts towards *stable_iterations*; growth
    (lazy-loaded content) resets the counter.  *max_iterations* bounds the
    loop for pages that never settle.
    """
    distance = distance or settings.scroll_distance
    interval = settings.scroll_interval if interval is None else interval
    stable_iterations = stable_iterations or settings.scroll_stable_iterations
    max_iterations = max_iterations or settings.scroll_max_iterations

    last_height = -1
    stable = 0
    for _ in range(max_iterations):
        metrics = await page.evaluate(_SCROLL_STEP_JS, distance)
        await asyncio.sleep(interval)
        height = int(metrics.get("scrollHeight") or 0)
        at_bottom = (metrics.get("scrollY") or 0) + (metrics.get("innerHeight") or 0) >= height

        if height > last_height:
            stable = 0
        elif at_bottom:
            stable += 1
            if stable >= stable_iterations:
                break
        last_height = max(last_height, height)
    else:
        logger.warning("[SCROLL] Gave up after %d iterations on %s", max_iterations, getattr(page, "url", ""))

    return last_height


# ---------------------------------------------------------------------------
# Acquisition
# ---------------------------------------------------------------------------

async def _read_page(
    page: Page,
    url: str,
    ready_selector: Optional[str],
    require_ready: bool,
    scroll_until_bottom: bool,
) -> RawPage:
    try:
        response = await page.goto(
            url,
            wait_until="domcontentloaded",
            timeout=int(settings.navigation_timeout * 1000),
        )
    except (PWTimeoutError, PWError) as exc:
        raise NavigationError(url, str(exc)) from exc

    if ready_selector:
        try:
            await page.wait_for_selector(
                ready_selector, timeout=int(settings.ready_timeout * 1000)
            )
        except PWTimeoutError as exc:
            if require_ready:
                raise NavigationError(url, f"{ready_selector!r} never appeared") from exc
            logger.debug("[FETCH] %r not found on %s; continuing", ready_selector, url)

    if scroll_until_bottom:
        await scroll_until_stable(page)
    else:
        # A single nudge triggers the board's lazy images.
        await page.evaluate(_SCROLL_STEP_JS, 500)
    await asyncio.sleep(settings.settle_delay)

    html = await page.content()
    status = response.status if response is not None else 200
    return RawPage(url=url, html=html, status_code=status)


async def acquire_page(
    url: str,
    ready_selector: Optional[str] = None,
    *,
    browser: Optional[Browser] = None,
    require_ready: bool = False,
    scroll_until_bottom: bool = False,
) -> RawPage:
    """Load *url* in a fresh tab and return its settled markup.

    Args:
        url: Page to load.
        ready_selector: CSS selector to wait for after navigation.
        browser: Shared browser.  When omitted a private one is launched and
            closed again before returning.
        require_ready: Treat a missing *ready_selector* as a failure instead
            of carrying on with whatever rendered.
        scroll_until_bottom: Run :func:`scroll_until_stable` (listing pages)
            instead of a single nudge (detail pages).

    Raises:
        NavigationError: On navigation failure or when the whole acquisition
            exceeds ``settings.acquire_timeout``.
        FatalLaunchError: When a private browser cannot be started.
    """
    if browser is None:
        async with launch_browser() as own_browser:
            return await acquire_page(
                url,
                ready_selector,
                browser=own_browser,
                require_ready=require_ready,
                scroll_until_bottom=scroll_until_bottom,
            )

    async with open_page(browser) as page:
        try:
            return await asyncio.wait_for(
                _read_page(page, url, ready_selector, require_ready, scroll_until_bottom),
                timeout=settings.acquire_timeout,
            )
        except asyncio.TimeoutError as exc:
            raise NavigationError(
                url, f"timed out after {settings.acquire_timeout:.0f}s"
            ) from exc
        except PWError as exc:
            raise NavigationError(url, str(exc)) from exc
