"""Database layer package.

Public re-exports so callers can write::

    from compcrawler.db import get_connection, init_db
    from compcrawler.db import compositions
"""

from compcrawler.db.connection import get_connection
from compcrawler.db.migrations import init_db
from compcrawler.db import compositions, item_tiers, unit_tiers

__all__ = ["get_connection", "init_db", "compositions", "item_tiers", "unit_tiers"]
