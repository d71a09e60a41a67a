"""
arena.api.routes.public — Unauthenticated endpoints
====================================================

Games navigation, team pages, the full roster, the join form and the
page-view beacon.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import Engine

from arena.api.deps import get_engine, get_games_cache
from arena.constants import GAMES_NAV_CACHE_CONTROL
from arena.engine.cache import TTLCache
from arena.services import admin_service, analytics_service, applicant_service

logger = logging.getLogger(__name__)
router = APIRouter(tags=["public"])


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class JoinForm(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    first_name: str = Field("", alias="firstName")
    last_name: str = Field("", alias="lastName")
    discord: str = ""
    phone: str = ""
    email: str = ""
    over18: str = ""
    message: str | None = None


class PageViewBeacon(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    path: str = ""
    visitor_id: str = Field("", alias="visitorId")
    referrer: str | None = None
    user_agent: str | None = Field(None, alias="userAgent")


# ---------------------------------------------------------------------------
# Games & rosters
# ---------------------------------------------------------------------------
@router.get("/games")
def list_games(
    response: Response,
    engine: Engine = Depends(get_engine),
    cache: TTLCache = Depends(get_games_cache),
):
    """Game list for the navigation menu (cached)."""
    games = cache.get(lambda: admin_service.list_games_for_nav(engine))
    response.headers["Cache-Control"] = GAMES_NAV_CACHE_CONTROL
    return {"games": games}


@router.get("/games/{slug}")
def get_game(slug: str, engine: Engine = Depends(get_engine)):
    """Team page: one game with its teams and players."""
    game = admin_service.get_game_by_slug(engine, slug)
    if game is None:
        raise HTTPException(404, "Game not found")
    return game


@router.get("/roster")
def get_roster(engine: Engine = Depends(get_engine)):
    """Every game → teams → players."""
    return {"games": admin_service.get_roster(engine)}


# ---------------------------------------------------------------------------
# Join form
# ---------------------------------------------------------------------------
@router.post("/join", status_code=201)
def join(body: JoinForm, engine: Engine = Depends(get_engine)):
    try:
        applicant_service.submit_application(
            engine,
            first_name=body.first_name,
            last_name=body.last_name,
            discord=body.discord,
            phone=body.phone,
            email=body.email,
            over18=body.over18,
            message=body.message,
        )
    except ValueError as exc:
        raise HTTPException(400, str(exc)) from exc
    return {"message": "Application submitted successfully!"}


# ---------------------------------------------------------------------------
# Analytics beacon
# ---------------------------------------------------------------------------
@router.post("/analytics/pageview")
def record_pageview(body: PageViewBeacon, engine: Engine = Depends(get_engine)):
    try:
        recorded = analytics_service.record_page_view(
            engine,
            path=body.path,
            visitor_id=body.visitor_id,
            referrer=body.referrer,
            user_agent=body.user_agent,
        )
    except ValueError as exc:
        raise HTTPException(400, str(exc)) from exc
    if not recorded:
        return {"success": True, "skipped": True}
    return {"success": True}
