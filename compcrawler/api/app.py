"""FastAPI application factory.

Lifespan
--------
On startup the app configures logging, opens a single SQLite connection
(shared across requests via ``request.app.state.db``), initialises the
schema and loads the reference catalog once into ``app.state.catalog``.
When ``SCHEDULE_ENABLED`` is set, the daily composition and unit-tier crawls
are started as background tasks and cancelled again on shutdown.

Routers
-------
    /crawler       on-demand crawl triggers
    /compositions  read access to stored compositions
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from compcrawler import __version__
from compcrawler.catalog import get_catalog
from compcrawler.config import configure_logging, settings
from compcrawler.crawl.orchestrator import CrawlOrchestrator
from compcrawler.crawl.scheduler import PeriodicTask
from compcrawler.db import get_connection, init_db

from compcrawler.api.routers import compositions as compositions_router
from compcrawler.api.routers import crawler as crawler_router


def _daily_tasks(app: FastAPI) -> list[PeriodicTask]:
    def orchestrator() -> CrawlOrchestrator:
        return CrawlOrchestrator(app.state.db, app.state.catalog)

    return [
        PeriodicTask(
            "composition crawl",
            lambda: orchestrator().crawl_all(),
            settings.schedule_hour,
            settings.schedule_minute,
        ),
        PeriodicTask(
            "unit tier crawl",
            lambda: orchestrator().crawl_unit_tiers(),
            settings.schedule_hour,
            settings.schedule_minute,
        ),
        PeriodicTask(
            "item tier crawl",
            lambda: orchestrator().crawl_item_tiers(),
            settings.schedule_hour,
            settings.schedule_minute,
        ),
    ]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the DB and load the catalog on startup; tear down on shutdown."""
    configure_logging()
    conn = get_connection()
    init_db(conn)
    app.state.db = conn
    app.state.catalog = get_catalog()

    tasks = _daily_tasks(app) if settings.schedule_enabled else []
    for task in tasks:
        task.start()
    try:
        yield
    finally:
        for task in tasks:
            await task.stop()
        conn.close()


def create_app() -> FastAPI:
    """Return a fully-configured FastAPI application instance."""
    app = FastAPI(
        title="Composition Crawler API",
        description=(
            "Triggers for crawling team-composition guides and read access "
            "to the normalised compositions they produce."
        ),
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(crawler_router.router, prefix="/crawler", tags=["crawler"])
    app.include_router(
        compositions_router.router, prefix="/compositions", tags=["compositions"]
    )

    return app


# Module-level instance used by uvicorn:
#   uvicorn compcrawler.api.app:app --reload
app = create_app()
