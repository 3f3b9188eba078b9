"""Tests for scraper/browser.py.

Playwright is never launched: fake page and browser objects stand in for the
handful of async methods the acquisition path calls.
"""

from __future__ import annotations

import asyncio
import logging

import pytest
from playwright.async_api import Error as PWError
from playwright.async_api import TimeoutError as PWTimeoutError

from compcrawler.scraper.browser import NavigationError, acquire_page, scroll_until_stable


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------

class _ScrollPage:
    """Reports a scripted sequence of heights, always scrolled to the bottom."""

    url = "https://example.test/listing"

    def __init__(self, heights, at_bottom: bool = True) -> None:
        self.heights = list(heights)
        self.at_bottom = at_bottom
        self.calls = 0

    async def evaluate(self, script, distance):
        height = self.heights[min(self.calls, len(self.heights) - 1)]
        self.calls += 1
        inner = 1000
        scroll_y = height - inner if self.at_bottom else 0
        return {"scrollHeight": height, "scrollY": scroll_y, "innerHeight": inner}


class _Response:
    def __init__(self, status: int) -> None:
        self.status = status


class _Page:
    def __init__(self, html="<h1>ok</h1>", goto_error=None, goto_delay=0.0,
                 selector_error=None, status=200) -> None:
        self.html = html
        self.goto_error = goto_error
        self.goto_delay = goto_delay
        self.selector_error = selector_error
        self.status = status
        self.closed = False
        self.routed = False
        self.waited_for = None

    async def route(self, pattern, handler) -> None:
        self.routed = True

    async def goto(self, url, **kwargs):
        if self.goto_delay:
            await asyncio.sleep(self.goto_delay)
        if self.goto_error is not None:
            raise self.goto_error
        return _Response(self.status)

    async def wait_for_selector(self, selector, **kwargs) -> None:
        self.waited_for = selector
        if self.selector_error is not None:
            raise self.selector_error

    async def evaluate(self, script, distance):
        return {"scrollHeight": 1000, "scrollY": 0, "innerHeight": 1000}

    async def content(self) -> str:
        return self.html

    async def close(self) -> None:
        self.closed = True


class _Browser:
    def __init__(self, page: _Page) -> None:
        self.page = page

    async def new_page(self, **kwargs) -> _Page:
        return self.page


@pytest.fixture(autouse=True)
def _fast_settle(monkeypatch):
    monkeypatch.setattr("compcrawler.scraper.browser.settings.settle_delay", 0)


# ---------------------------------------------------------------------------
# scroll_until_stable
# ---------------------------------------------------------------------------

class TestScrollUntilStable:
    def _scroll(self, page, stable=3, max_iterations=50) -> int:
        return asyncio.run(
            scroll_until_stable(page, distance=200, interval=0,
                                stable_iterations=stable, max_iterations=max_iterations)
        )

    def test_stops_after_stable_iterations(self) -> None:
        page = _ScrollPage([1500, 1800, 1800, 1800, 1800, 1800, 1800])
        assert self._scroll(page) == 1800
        assert page.calls == 5

    def test_growth_resets_counter(self) -> None:
        page = _ScrollPage([1500, 1500, 1900, 1900, 1900, 1900])
        assert self._scroll(page) == 1900
        assert page.calls == 6

    def test_gives_up_at_max_iterations(self, caplog) -> None:
        page = _ScrollPage([1000 + 100 * i for i in range(10)])
        with caplog.at_level(logging.WARNING):
            self._scroll(page, max_iterations=4)
        assert page.calls == 4
        assert "Gave up" in caplog.text

    def test_not_at_bottom_never_counts_as_stable(self) -> None:
        page = _ScrollPage([5000], at_bottom=False)
        self._scroll(page, max_iterations=6)
        assert page.calls == 6


# ---------------------------------------------------------------------------
# acquire_page
# ---------------------------------------------------------------------------

class TestAcquirePage:
    def test_returns_settled_markup_and_closes_tab(self) -> None:
        page = _Page(html="<h1>Rebel Jinx</h1>", status=203)
        raw = asyncio.run(acquire_page("https://example.test/a", "h1", browser=_Browser(page)))
        assert raw.url == "https://example.test/a"
        assert raw.html == "<h1>Rebel Jinx</h1>"
        assert raw.status_code == 203
        assert page.waited_for == "h1"
        assert page.routed
        assert page.closed

    def test_navigation_error(self) -> None:
        page = _Page(goto_error=PWError("net::ERR_NAME_NOT_RESOLVED"))
        with pytest.raises(NavigationError) as exc_info:
            asyncio.run(acquire_page("https://bad.test/", browser=_Browser(page)))
        assert exc_info.value.url == "https://bad.test/"
        assert "ERR_NAME_NOT_RESOLVED" in exc_info.value.reason
        assert page.closed

    def test_overall_timeout(self, monkeypatch) -> None:
        monkeypatch.setattr("compcrawler.scraper.browser.settings.acquire_timeout", 0.05)
        page = _Page(goto_delay=1.0)
        with pytest.raises(NavigationError, match="timed out"):
            asyncio.run(acquire_page("https://slow.test/", browser=_Browser(page)))
        assert page.closed

    def test_missing_ready_selector_tolerated(self) -> None:
        page = _Page(selector_error=PWTimeoutError("selector timeout"))
        raw = asyncio.run(acquire_page("https://example.test/b", ".board", browser=_Browser(page)))
        assert raw.html == "<h1>ok</h1>"

    def test_missing_ready_selector_required(self) -> None:
        page = _Page(selector_error=PWTimeoutError("selector timeout"))
        with pytest.raises(NavigationError, match="never appeared"):
            asyncio.run(
                acquire_page("https://example.test/c", ".board",
                             browser=_Browser(page), require_ready=True)
            )
