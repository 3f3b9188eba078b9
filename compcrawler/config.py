"""Centralised settings for the composition crawler.

All runtime configuration is resolved here in one place.  Values can be
overridden via environment variables or a `.env` file in the project root
(loaded automatically when this module is imported).
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# Load .env from the project root (two levels up from this file)
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_env_path, override=False)

_PACKAGE_DIR = Path(__file__).resolve().parent


def _env_bool(name: str, default: str) -> bool:
    return os.environ.get(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    # ------------------------------------------------------------------
    # Workspace / storage
    # ------------------------------------------------------------------
    workspace_dir: Path = field(
        default_factory=lambda: Path(
            os.environ.get("COMPCRAWLER_WORKSPACE", Path.home() / ".compcrawler")
        )
    )

    @property
    def db_path(self) -> Path:
        """Absolute path to the SQLite database file."""
        return self.workspace_dir / "compositions.db"

    @property
    def schema_path(self) -> Path:
        """Absolute path to the schema SQL file bundled with the package."""
        return _PACKAGE_DIR / "db" / "schema.sql"

    # ------------------------------------------------------------------
    # Reference catalog
    # ------------------------------------------------------------------
    catalog_path: Path = field(
        default_factory=lambda: Path(
            os.environ.get("CATALOG_PATH", _PACKAGE_DIR / "data" / "catalog.json")
        )
    )
    catalog_url: str = field(
        default_factory=lambda: os.environ.get(
            "CATALOG_URL",
            "https://raw.communitydragon.org/latest/cdragon/tft/en_us.json",
        )
    )
    fuzzy_enabled: bool = field(
        default_factory=lambda: _env_bool("FUZZY_ENABLED", "true")
    )
    fuzzy_threshold: float = field(
        default_factory=lambda: float(os.environ.get("FUZZY_THRESHOLD", "0.6"))
    )

    # ------------------------------------------------------------------
    # Sources
    # ------------------------------------------------------------------
    listing_url: str = field(
        default_factory=lambda: os.environ.get(
            "LISTING_URL", "https://mobalytics.gg/tft/team-comps"
        )
    )
    detail_link_pattern: str = field(
        default_factory=lambda: os.environ.get("DETAIL_LINK_PATTERN", "/tft/comps-guide/")
    )
    unit_tiers_url: str = field(
        default_factory=lambda: os.environ.get(
            "UNIT_TIERS_URL", "https://www.metatft.com/units"
        )
    )
    item_tiers_url: str = field(
        default_factory=lambda: os.environ.get(
            "ITEM_TIERS_URL", "https://www.metatft.com/items"
        )
    )

    # ------------------------------------------------------------------
    # Board
    # ------------------------------------------------------------------
    board_rows: int = field(
        default_factory=lambda: int(os.environ.get("BOARD_ROWS", "4"))
    )
    board_cols: int = field(
        default_factory=lambda: int(os.environ.get("BOARD_COLS", "7"))
    )

    # ------------------------------------------------------------------
    # Headless browser
    # ------------------------------------------------------------------
    headless: bool = field(default_factory=lambda: _env_bool("HEADLESS", "true"))
    user_agent: str = field(
        default_factory=lambda: os.environ.get(
            "USER_AGENT",
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
            "AppleWebKit/537.36 (KHTML, like Gecko) "
            "Chrome/120.0.0.0 Safari/537.36",
        )
    )
    navigation_timeout: float = field(
        default_factory=lambda: float(os.environ.get("NAVIGATION_TIMEOUT", "60.0"))
    )
    ready_timeout: float = field(
        default_factory=lambda: float(os.environ.get("READY_TIMEOUT", "15.0"))
    )
    acquire_timeout: float = field(
        default_factory=lambda: float(os.environ.get("ACQUIRE_TIMEOUT", "90.0"))
    )

    # ------------------------------------------------------------------
    # Scroll-until-stable
    # ------------------------------------------------------------------
    scroll_distance: int = field(
        default_factory=lambda: int(os.environ.get("SCROLL_DISTANCE", "200"))
    )
    scroll_interval: float = field(
        default_factory=lambda: float(os.environ.get("SCROLL_INTERVAL", "0.15"))
    )
    scroll_stable_iterations: int = field(
        default_factory=lambda: int(os.environ.get("SCROLL_STABLE_ITERATIONS", "5"))
    )
    scroll_max_iterations: int = field(
        default_factory=lambda: int(os.environ.get("SCROLL_MAX_ITERATIONS", "400"))
    )
    settle_delay: float = field(
        default_factory=lambda: float(os.environ.get("SETTLE_DELAY", "2.0"))
    )

    # ------------------------------------------------------------------
    # Crawl orchestration
    # ------------------------------------------------------------------
    batch_size: int = field(
        default_factory=lambda: int(os.environ.get("BATCH_SIZE", "3"))
    )
    batch_delay: float = field(
        default_factory=lambda: float(os.environ.get("BATCH_DELAY", "1.0"))
    )

    # ------------------------------------------------------------------
    # Daily schedule
    # ------------------------------------------------------------------
    schedule_enabled: bool = field(
        default_factory=lambda: _env_bool("SCHEDULE_ENABLED", "false")
    )
    schedule_hour: int = field(
        default_factory=lambda: int(os.environ.get("SCHEDULE_HOUR", "9"))
    )
    schedule_minute: int = field(
        default_factory=lambda: int(os.environ.get("SCHEDULE_MINUTE", "0"))
    )

    # ------------------------------------------------------------------
    # HTTP (catalog download)
    # ------------------------------------------------------------------
    request_timeout: float = field(
        default_factory=lambda: float(os.environ.get("REQUEST_TIMEOUT", "30.0"))
    )

    log_level: str = field(
        default_factory=lambda: os.environ.get("LOG_LEVEL", "INFO")
    )

    def ensure_workspace(self) -> None:
        """Create the workspace directory if it does not exist."""
        self.workspace_dir.mkdir(parents=True, exist_ok=True)


def configure_logging(level: str | None = None) -> None:
    """Install a root log handler (no-op when one is already configured)."""
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
    )


# Module-level singleton - import this everywhere:
#   from compcrawler.config import settings
settings = Settings()
