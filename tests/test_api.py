"""Tests for the /crawler and /compositions API endpoints.

The orchestrator is patched out, so no browser is started.  Every test runs
against an isolated in-memory SQLite database.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from compcrawler.api.app import create_app
from compcrawler.crawl.normalize import CompositionRecord
from compcrawler.crawl.orchestrator import CrawlBatchResult
from compcrawler.db.compositions import create_composition
from compcrawler.db.connection import get_connection
from compcrawler.db.migrations import init_db
from compcrawler.scraper.browser import FatalLaunchError, NavigationError

_ORCHESTRATOR = "compcrawler.api.routers.crawler.CrawlOrchestrator"


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def conn():
    connection = get_connection(db_path=":memory:")  # type: ignore[arg-type]
    init_db(connection)
    yield connection
    connection.close()


@pytest.fixture()
def client(conn, tmp_path, monkeypatch):
    """TestClient whose lifespan DB is swapped for the in-memory one."""
    monkeypatch.setattr("compcrawler.config.settings.workspace_dir", tmp_path)
    app = create_app()
    with TestClient(app, raise_server_exceptions=True) as c:
        c.app.state.db = conn
        yield c


@pytest.fixture()
def orchestrator():
    fake = MagicMock()
    with patch(_ORCHESTRATOR, return_value=fake):
        yield fake


def _record(name: str = "Rebel Jinx") -> CompositionRecord:
    return CompositionRecord(
        name=name,
        slug="rebel-jinx",
        tier="S",
        plan="Fast 9",
        difficulty="Hard",
        meta_description="Jinx late game.",
        source_url="https://example.test/comps-guide/rebel-jinx",
        board_rows=4,
        board_cols=7,
        is_late_game=True,
        core_champion="TFT16_Jinx",
        units=[{"key": "TFT16_Jinx", "position": {"row": 3, "col": 0}}],
    )


# ---------------------------------------------------------------------------
# POST /crawler/comp-detail
# ---------------------------------------------------------------------------

class TestCompDetail:
    def test_returns_record(self, client, orchestrator):
        orchestrator.crawl_detail = AsyncMock(return_value=_record())
        resp = client.post("/crawler/comp-detail", json={"url": "https://example.test/comps-guide/x"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["name"] == "Rebel Jinx"
        assert body["units"][0]["position"] == {"row": 3, "col": 0}
        orchestrator.crawl_detail.assert_awaited_once_with("https://example.test/comps-guide/x")

    def test_navigation_error_is_502(self, client, orchestrator):
        orchestrator.crawl_detail = AsyncMock(side_effect=NavigationError("https://x.test/", "timed out"))
        resp = client.post("/crawler/comp-detail", json={"url": "https://x.test/"})
        assert resp.status_code == 502
        assert "timed out" in resp.json()["detail"]

    def test_launch_failure_is_503(self, client, orchestrator):
        orchestrator.crawl_detail = AsyncMock(side_effect=FatalLaunchError("no chromium"))
        resp = client.post("/crawler/comp-detail", json={"url": "https://x.test/"})
        assert resp.status_code == 503

    def test_invalid_url_is_422(self, client):
        resp = client.post("/crawler/comp-detail", json={"url": "not a url"})
        assert resp.status_code == 422


# ---------------------------------------------------------------------------
# POST /crawler/team-comps
# ---------------------------------------------------------------------------

class TestTeamComps:
    def test_returns_links_only(self, client, orchestrator):
        links = ["https://x.test/a", "https://x.test/b", "https://x.test/c"]
        orchestrator.list_links = AsyncMock(return_value=links)
        orchestrator.crawl_team_comps = AsyncMock()
        resp = client.post("/crawler/team-comps", json={"limit": 2})
        assert resp.status_code == 200
        assert resp.json() == {"count": 2, "data": links[:2]}
        orchestrator.list_links.assert_awaited_once_with(None)
        orchestrator.crawl_team_comps.assert_not_awaited()

    def test_launch_failure_is_503(self, client, orchestrator):
        orchestrator.list_links = AsyncMock(side_effect=FatalLaunchError("no chromium"))
        assert client.post("/crawler/team-comps", json={}).status_code == 503

    def test_limit_must_be_positive(self, client):
        resp = client.post("/crawler/team-comps", json={"limit": 0})
        assert resp.status_code == 422


# ---------------------------------------------------------------------------
# POST /crawler/crawl-all and /crawler/units-tier
# ---------------------------------------------------------------------------

class TestCrawlAll:
    def test_summary(self, client, orchestrator, conn):
        stored = create_composition(conn, _record().to_dict())
        result = CrawlBatchResult(
            discovered=3, created=1, skipped=1, failed=1, deleted=2,
            records=[stored], failures=["https://example.test/comps-guide/broken"],
        )
        orchestrator.crawl_all = AsyncMock(return_value=result)

        resp = client.post("/crawler/crawl-all")

        assert resp.status_code == 200
        body = resp.json()
        assert body["discovered"] == 3
        assert body["created"] == 1
        assert body["deleted"] == 2
        assert body["failures"] == ["https://example.test/comps-guide/broken"]
        assert body["records"][0]["id"] == stored.id
        orchestrator.crawl_all.assert_awaited_once_with(None)

    def test_launch_failure_is_503(self, client, orchestrator):
        orchestrator.crawl_all = AsyncMock(side_effect=FatalLaunchError("no chromium"))
        assert client.post("/crawler/crawl-all").status_code == 503


class TestUnitsTier:
    def test_returns_count(self, client, orchestrator):
        orchestrator.crawl_unit_tiers = AsyncMock(return_value=4)
        resp = client.post("/crawler/units-tier")
        assert resp.status_code == 200
        assert resp.json() == {"updated": 4}


class TestItemsTier:
    def test_returns_count(self, client, orchestrator):
        orchestrator.crawl_item_tiers = AsyncMock(return_value=7)
        resp = client.post("/crawler/items-tier")
        assert resp.status_code == 200
        assert resp.json() == {"updated": 7}

    def test_launch_failure_is_503(self, client, orchestrator):
        orchestrator.crawl_item_tiers = AsyncMock(side_effect=FatalLaunchError("no chromium"))
        assert client.post("/crawler/items-tier").status_code == 503


# ---------------------------------------------------------------------------
# GET /compositions
# ---------------------------------------------------------------------------

class TestCompositions:
    def test_empty_list(self, client):
        resp = client.get("/compositions")
        assert resp.status_code == 200
        assert resp.json() == []

    def test_list_and_filter(self, client, conn):
        create_composition(conn, {"name": "S comp", "tier": "S"})
        create_composition(conn, {"name": "B comp", "tier": "B"})
        assert len(client.get("/compositions").json()) == 2
        names = [c["name"] for c in client.get("/compositions", params={"tier": "S"}).json()]
        assert names == ["S comp"]

    def test_get_one(self, client, conn):
        stored = create_composition(conn, _record().to_dict())
        resp = client.get(f"/compositions/{stored.id}")
        assert resp.status_code == 200
        assert resp.json()["core_champion"] == "TFT16_Jinx"

    def test_get_missing_is_404(self, client):
        assert client.get("/compositions/nope").status_code == 404
