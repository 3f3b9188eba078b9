"""FastAPI HTTP layer package.

Public re-export so callers can write::

    from compcrawler.api import app

    uvicorn compcrawler.api:app --reload
"""

from compcrawler.api.app import app

__all__ = ["app"]
