"""Read-only composition endpoints.

Routes
------
GET /compositions             List stored compositions (?tier=S&active_only=true)
GET /compositions/{id}        One composition
"""

from __future__ import annotations

from dataclasses import asdict
from typing import Any, Optional

from fastapi import APIRouter, HTTPException, Request

from compcrawler.db.compositions import get_composition, list_compositions
from compcrawler.db.models import StoredComposition

router = APIRouter()


def composition_dict(composition: StoredComposition) -> dict[str, Any]:
    return asdict(composition)


@router.get("", response_model=list[dict[str, Any]])
def list_compositions_endpoint(
    request: Request,
    tier: Optional[str] = None,
    active_only: bool = False,
) -> list[dict[str, Any]]:
    conn = request.app.state.db
    return [composition_dict(c) for c in list_compositions(conn, tier=tier, active_only=active_only)]


@router.get("/{composition_id}", response_model=dict[str, Any])
def get_composition_endpoint(composition_id: str, request: Request) -> dict[str, Any]:
    conn = request.app.state.db
    composition = get_composition(conn, composition_id)
    if composition is None:
        raise HTTPException(status_code=404, detail=f"Composition '{composition_id}' not found.")
    return composition_dict(composition)
