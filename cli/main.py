"""Composition crawler CLI: entry-point for all crawl operations.

Usage:
    python cli/main.py --help

Command groups:
    db            → database setup
    crawl         → on-demand crawls (full sync, links, pages, unit and item tiers)
    catalog       → reference catalog lookup and refresh
    compositions  → stored compositions
    schedule      → run the daily crawls in the foreground
    serve         → run the HTTP API
"""

from __future__ import annotations

import sys
from pathlib import Path

# Ensure the project root is on sys.path so that `from compcrawler.xxx import ...`
# works when the CLI is invoked as `python cli/main.py` from any directory.
_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

import asyncio
import json
from typing import Optional

import typer
import uvicorn

from compcrawler.catalog import get_catalog, resolve
from compcrawler.catalog.loader import CatalogLoadError
from compcrawler.catalog.refresh import download_catalog
from compcrawler.catalog.resolver import resolve_item
from compcrawler.config import configure_logging, settings
from compcrawler.crawl.orchestrator import CrawlOrchestrator
from compcrawler.crawl.scheduler import PeriodicTask
from compcrawler.db import get_connection, init_db
from compcrawler.db.compositions import list_compositions
from compcrawler.scraper.browser import FatalLaunchError, NavigationError

app = typer.Typer(
    name="compcrawler",
    help="Team-composition crawler CLI.",
    no_args_is_help=True,
)


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Override LOG_LEVEL."),
) -> None:
    configure_logging(log_level)


def _open_db():
    conn = get_connection()
    init_db(conn)
    return conn


def _run(coro, label: str):
    """Run *coro*, turning a browser launch failure into exit code 1."""
    try:
        return asyncio.run(coro)
    except FatalLaunchError as exc:
        typer.echo(f"[{label}] Browser could not start: {exc}", err=True)
        raise typer.Exit(1)


# ---------------------------------------------------------------------------
# DB commands
# ---------------------------------------------------------------------------
db_app = typer.Typer(help="Database operations.", no_args_is_help=True)
app.add_typer(db_app, name="db")


@db_app.command("init")
def db_init() -> None:
    """Initialise the SQLite database (create tables if they do not exist)."""
    conn = _open_db()
    conn.close()
    typer.echo(f"[db init] Database ready at {settings.db_path}")


# ---------------------------------------------------------------------------
# Crawl commands
# ---------------------------------------------------------------------------
crawl_app = typer.Typer(help="On-demand crawls.", no_args_is_help=True)
app.add_typer(crawl_app, name="crawl")


@crawl_app.command("all")
def crawl_all(
    url: Optional[str] = typer.Option(None, help="Listing page (defaults to LISTING_URL)."),
) -> None:
    """Full sync: crawl every composition, store new ones, drop stale ones."""
    conn = _open_db()
    try:
        result = _run(CrawlOrchestrator(conn).crawl_all(url), "crawl all")
    finally:
        conn.close()
    summary = result.summary()
    typer.echo(
        "[crawl all] "
        + "  ".join(f"{key}={value}" for key, value in summary.items())
    )
    for failed_url in result.failures:
        typer.echo(f"  failed: {failed_url}")


@crawl_app.command("links")
def crawl_links(
    url: Optional[str] = typer.Option(None, help="Listing page (defaults to LISTING_URL)."),
) -> None:
    """Print every composition link found on the listing page."""
    conn = _open_db()
    try:
        links = _run(CrawlOrchestrator(conn).list_links(url), "crawl links")
    finally:
        conn.close()
    if not links:
        typer.echo("[crawl links] No links found.")
        return
    for link in links:
        typer.echo(link)


@crawl_app.command("detail")
def crawl_detail(
    url: str = typer.Option(..., help="Composition guide URL."),
) -> None:
    """Crawl one guide page and print its normalised record as JSON."""
    conn = _open_db()
    try:
        record = _run(CrawlOrchestrator(conn).crawl_detail(url), "crawl detail")
    except NavigationError as exc:
        typer.echo(f"[crawl detail] {exc}", err=True)
        raise typer.Exit(1)
    finally:
        conn.close()
    typer.echo(json.dumps(record.to_dict(), indent=2, ensure_ascii=False))


@crawl_app.command("unit-tiers")
def crawl_unit_tiers(
    url: Optional[str] = typer.Option(None, help="Tier-list page (defaults to UNIT_TIERS_URL)."),
) -> None:
    """Refresh stored unit tiers."""
    conn = _open_db()
    try:
        updated = _run(CrawlOrchestrator(conn).crawl_unit_tiers(url), "crawl unit-tiers")
    finally:
        conn.close()
    typer.echo(f"[crawl unit-tiers] Updated {updated} unit tier(s)")


@crawl_app.command("item-tiers")
def crawl_item_tiers(
    url: Optional[str] = typer.Option(None, help="Item stats page (defaults to ITEM_TIERS_URL)."),
) -> None:
    """Refresh stored item tiers."""
    conn = _open_db()
    try:
        updated = _run(CrawlOrchestrator(conn).crawl_item_tiers(url), "crawl item-tiers")
    finally:
        conn.close()
    typer.echo(f"[crawl item-tiers] Updated {updated} item tier(s)")


@crawl_app.command("comps")
def crawl_comps(
    url: Optional[str] = typer.Option(None, help="Listing page (defaults to LISTING_URL)."),
    limit: Optional[int] = typer.Option(None, min=1, help="Crawl at most this many guides."),
) -> None:
    """Crawl guide pages and print their records as JSON without storing them."""
    conn = _open_db()
    try:
        records = _run(CrawlOrchestrator(conn).crawl_team_comps(url, limit=limit), "crawl comps")
    finally:
        conn.close()
    typer.echo(json.dumps([r.to_dict() for r in records], indent=2, ensure_ascii=False))


# ---------------------------------------------------------------------------
# Catalog commands
# ---------------------------------------------------------------------------
catalog_app = typer.Typer(help="Reference catalog operations.", no_args_is_help=True)
app.add_typer(catalog_app, name="catalog")


@catalog_app.command("resolve")
def catalog_resolve(
    slug: str = typer.Argument(..., help="Raw name or icon slug."),
    kind: str = typer.Option("item", help="Catalog section: item | augment | unit."),
    fuzzy: bool = typer.Option(True, "--fuzzy/--no-fuzzy", help="Allow the fuzzy fallback."),
) -> None:
    """Show which canonical identifier a slug resolves to."""
    try:
        catalog = get_catalog()
    except CatalogLoadError as exc:
        typer.echo(f"[catalog resolve] {exc}", err=True)
        raise typer.Exit(1)

    threshold = settings.fuzzy_threshold
    if kind == "item":
        hit = resolve_item(slug, catalog, fuzzy=fuzzy, threshold=threshold)
    elif kind in ("augment", "unit"):
        entries = catalog.augments if kind == "augment" else catalog.units
        hit = resolve(slug, entries, fuzzy=fuzzy, threshold=threshold)
    else:
        typer.echo(f"[catalog resolve] Unknown kind {kind!r}. Use: item | augment | unit")
        raise typer.Exit(1)

    if hit is None or not hit.resolved:
        typer.echo(f"[catalog resolve] No match for {slug!r}")
        raise typer.Exit(1)
    typer.echo(f"{hit.identifier}  ({hit.method.value})")


@catalog_app.command("refresh")
def catalog_refresh(
    url: Optional[str] = typer.Option(None, help="Dataset URL (defaults to CATALOG_URL)."),
) -> None:
    """Download a fresh reference dataset over the bundled one."""
    typer.echo(f"[catalog refresh] Fetching {url or settings.catalog_url!r} …")
    catalog = download_catalog(url)
    typer.echo(
        f"[catalog refresh] Saved {len(catalog.items)} items, "
        f"{len(catalog.augments)} augments, {len(catalog.units)} units "
        f"to {settings.catalog_path}"
    )


# ---------------------------------------------------------------------------
# Stored compositions
# ---------------------------------------------------------------------------
compositions_app = typer.Typer(help="Stored compositions.", no_args_is_help=True)
app.add_typer(compositions_app, name="compositions")


@compositions_app.command("list")
def compositions_list(
    tier: Optional[str] = typer.Option(None, help="Only this tier (S/A/B/C/D)."),
) -> None:
    """List stored compositions."""
    conn = _open_db()
    comps = list_compositions(conn, tier=tier)
    conn.close()
    if not comps:
        typer.echo("[compositions list] No compositions found.")
        return
    for c in comps:
        typer.echo(f"  [{c.tier}] {c.name!r}  units={len(c.units)}  id={c.id}")


# ---------------------------------------------------------------------------
# Daily schedule
# ---------------------------------------------------------------------------
@app.command("schedule")
def schedule(
    hour: int = typer.Option(settings.schedule_hour, help="Local hour to run at."),
    minute: int = typer.Option(settings.schedule_minute, help="Local minute to run at."),
) -> None:
    """Run every daily crawl until interrupted."""
    conn = _open_db()

    async def _forever() -> None:
        tasks = [
            PeriodicTask("composition crawl", lambda: CrawlOrchestrator(conn).crawl_all(), hour, minute),
            PeriodicTask("unit tier crawl", lambda: CrawlOrchestrator(conn).crawl_unit_tiers(), hour, minute),
            PeriodicTask("item tier crawl", lambda: CrawlOrchestrator(conn).crawl_item_tiers(), hour, minute),
        ]
        await asyncio.gather(*(t.run_forever() for t in tasks))

    typer.echo(f"[schedule] Daily crawls at {hour:02d}:{minute:02d}; Ctrl+C to stop")
    try:
        asyncio.run(_forever())
    except KeyboardInterrupt:
        typer.echo("[schedule] Stopped")
    finally:
        conn.close()


@app.command("serve")
def serve(
    host: str = typer.Option("127.0.0.1", help="Interface to bind."),
    port: int = typer.Option(8000, help="Port to listen on."),
    reload: bool = typer.Option(False, help="Reload on code changes."),
) -> None:
    """Run the HTTP API (crawl triggers and stored compositions)."""
    typer.echo(f"[serve] http://{host}:{port}")
    uvicorn.run("compcrawler.api.app:app", host=host, port=port, reload=reload)


# ---------------------------------------------------------------------------
# Entry-point
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    app()
