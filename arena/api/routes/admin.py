"""
arena.api.routes.admin — Admin dashboard endpoints (JWT‑protected)
===================================================================

Users list, applicants, analytics, audit log and game create/edit.
Roster mutations (deletes, assignments, role toggles) live in
:mod:`arena.api.routes.roster`.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy import Engine

from arena.api.deps import get_config, get_engine, get_games_cache
from arena.api.rate_limit import rate_limited_admin
from arena.config import ArenaConfig
from arena.engine.cache import TTLCache
from arena.services import admin_service, analytics_service, applicant_service, user_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/admin", tags=["admin"])


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class GameCreate(BaseModel):
    name: str = ""
    max_players_per_team: int = 0
    description: str | None = None
    image_url: str | None = None


class GameUpdate(BaseModel):
    name: str | None = None
    max_players_per_team: int | None = None
    description: str | None = None
    image_url: str | None = None


def _game_dict(g) -> dict:
    return {
        "id": g.id,
        "name": g.name,
        "description": g.description,
        "image_url": g.image_url,
        "max_players_per_team": g.max_players_per_team,
    }


# ---------------------------------------------------------------------------
# Users & applicants
# ---------------------------------------------------------------------------
@router.get("/users")
def list_users(
    engine: Engine = Depends(get_engine),
    admin: dict = Depends(rate_limited_admin),
):
    return {"users": user_service.list_users(engine)}


@router.get("/applicants")
def list_applicants(
    engine: Engine = Depends(get_engine),
    admin: dict = Depends(rate_limited_admin),
):
    return {"applicants": applicant_service.list_applicants(engine)}


# ---------------------------------------------------------------------------
# Analytics & audit
# ---------------------------------------------------------------------------
@router.get("/analytics")
def get_analytics(
    days: int | None = Query(None, ge=1, le=365),
    engine: Engine = Depends(get_engine),
    cfg: ArenaConfig = Depends(get_config),
    admin: dict = Depends(rate_limited_admin),
):
    """Daily views/visitors, top pages and summary for the last *days* days."""
    return analytics_service.get_analytics(
        engine,
        days or cfg.analytics_default_days,
        top_n=cfg.analytics_top_pages,
    )


@router.get("/audit")
def get_audit_log(
    page: int = Query(1, ge=1),
    page_size: int = Query(25, ge=1, le=100),
    engine: Engine = Depends(get_engine),
    admin: dict = Depends(rate_limited_admin),
):
    return admin_service.list_audit_log(engine, page=page, page_size=page_size)


# ---------------------------------------------------------------------------
# Games
# ---------------------------------------------------------------------------
@router.post("/games", status_code=201)
def create_game(
    body: GameCreate,
    engine: Engine = Depends(get_engine),
    cache: TTLCache = Depends(get_games_cache),
    admin: dict = Depends(rate_limited_admin),
):
    try:
        game = admin_service.create_game(
            engine,
            name=body.name.strip(),
            max_players_per_team=body.max_players_per_team,
            description=body.description,
            image_url=body.image_url,
            actor_id=admin["sub"],
        )
    except admin_service.DuplicateName as exc:
        raise HTTPException(409, str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(400, str(exc)) from exc
    cache.invalidate()
    return {"success": True, "data": _game_dict(game)}


@router.put("/games/{game_id}")
def update_game(
    game_id: str,
    body: GameUpdate,
    engine: Engine = Depends(get_engine),
    cache: TTLCache = Depends(get_games_cache),
    admin: dict = Depends(rate_limited_admin),
):
    fields = {k: getattr(body, k) for k in body.model_fields_set}
    if "name" in fields and not (fields["name"] or "").strip():
        raise HTTPException(400, "Game name cannot be empty.")
    if "name" in fields:
        fields["name"] = fields["name"].strip()
    if "max_players_per_team" in fields and fields["max_players_per_team"] is None:
        raise HTTPException(400, "max_players_per_team cannot be empty.")
    try:
        game = admin_service.update_game(
            engine, game_id=game_id, actor_id=admin["sub"], **fields
        )
    except admin_service.DuplicateName as exc:
        raise HTTPException(409, str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(400, str(exc)) from exc
    if game is None:
        raise HTTPException(404, "Game not found")
    cache.invalidate()
    return {"success": True, "data": _game_dict(game)}
