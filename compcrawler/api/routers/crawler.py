"""On-demand crawl triggers.

Routes
------
POST /crawler/comp-detail   Body: {"url": "https://..."}       → one record, not stored
POST /crawler/team-comps    Body: {"url"?: ..., "limit"?: n}    → {"count": n, "data": [links]}
POST /crawler/crawl-all     Full sync into the store            → run summary
POST /crawler/units-tier    Refresh stored unit tiers           → {"updated": n}
POST /crawler/items-tier    Refresh stored item tiers           → {"updated": n}

These call the same orchestrator entry points as the daily schedule.
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field, HttpUrl

from compcrawler.crawl.orchestrator import CrawlOrchestrator
from compcrawler.scraper.browser import FatalLaunchError, NavigationError

from compcrawler.api.routers.compositions import composition_dict

router = APIRouter()


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------

class CompDetailRequest(BaseModel):
    url: HttpUrl


class TeamCompsRequest(BaseModel):
    url: Optional[HttpUrl] = None
    limit: Optional[int] = Field(default=None, ge=1)


class CrawlAllRequest(BaseModel):
    url: Optional[HttpUrl] = None


class CrawlAllResponse(BaseModel):
    discovered: int
    created: int
    updated: int
    skipped: int
    failed: int
    deleted: int
    failures: list[str]
    records: list[dict[str, Any]]


class TeamCompsResponse(BaseModel):
    count: int
    data: list[str]


class TierUpdateResponse(BaseModel):
    updated: int


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _orchestrator(request: Request) -> CrawlOrchestrator:
    return CrawlOrchestrator(request.app.state.db, request.app.state.catalog)


def _launch_failed(exc: FatalLaunchError) -> HTTPException:
    return HTTPException(status_code=503, detail=f"Browser unavailable: {exc}")


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post("/comp-detail", response_model=dict[str, Any])
async def comp_detail_endpoint(body: CompDetailRequest, request: Request) -> dict[str, Any]:
    """Crawl a single guide page and return its normalised record."""
    try:
        record = await _orchestrator(request).crawl_detail(str(body.url))
    except FatalLaunchError as exc:
        raise _launch_failed(exc) from exc
    except NavigationError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return record.to_dict()


@router.post("/team-comps", response_model=TeamCompsResponse)
async def team_comps_endpoint(body: TeamCompsRequest, request: Request) -> dict[str, Any]:
    """List the guide links found on the listing page; nothing is crawled or stored."""
    try:
        links = await _orchestrator(request).list_links(str(body.url) if body.url else None)
    except FatalLaunchError as exc:
        raise _launch_failed(exc) from exc
    if body.limit is not None:
        links = links[: body.limit]
    return {"count": len(links), "data": links}


@router.post("/crawl-all", response_model=CrawlAllResponse)
async def crawl_all_endpoint(request: Request, body: Optional[CrawlAllRequest] = None) -> dict[str, Any]:
    """Run a full sync and return the run summary plus the created records."""
    listing_url = str(body.url) if body and body.url else None
    try:
        result = await _orchestrator(request).crawl_all(listing_url)
    except FatalLaunchError as exc:
        raise _launch_failed(exc) from exc
    return {
        **result.summary(),
        "failures": result.failures,
        "records": [composition_dict(c) for c in result.records],
    }


@router.post("/units-tier", response_model=TierUpdateResponse)
async def units_tier_endpoint(request: Request) -> dict[str, int]:
    """Refresh stored unit tiers from the tier-list page."""
    try:
        updated = await _orchestrator(request).crawl_unit_tiers()
    except FatalLaunchError as exc:
        raise _launch_failed(exc) from exc
    return {"updated": updated}


@router.post("/items-tier", response_model=TierUpdateResponse)
async def items_tier_endpoint(request: Request) -> dict[str, int]:
    """Refresh stored item tiers from the item stats table."""
    try:
        updated = await _orchestrator(request).crawl_item_tiers()
    except FatalLaunchError as exc:
        raise _launch_failed(exc) from exc
    return {"updated": updated}
