"""
arena.api.routes.roster — Roster mutation endpoints (JWT‑protected)
====================================================================

Thin HTTP layer over :class:`~arena.services.roster_service.RosterManager`.
Every :class:`~arena.services.roster_service.RosterError` becomes an
``HTTPException`` whose detail is ``{"error": kind, "message": ...}``.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy import Engine

from arena.api.deps import get_engine, get_games_cache, get_roster_manager, roster_http_error
from arena.api.rate_limit import rate_limited_admin
from arena.engine.cache import TTLCache
from arena.services import admin_service
from arena.services.roster_service import UNSET, RosterError, RosterManager

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/admin", tags=["roster"])


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class TeamCreate(BaseModel):
    name: str = ""
    game_id: str = ""


class AssignmentPatch(BaseModel):
    user_id: str = ""
    team_id: str | None = None
    assigned_role: str | None = None


# ---------------------------------------------------------------------------
# Games & teams
# ---------------------------------------------------------------------------
@router.delete("/games/{game_id}")
def delete_game(
    game_id: str,
    manager: RosterManager = Depends(get_roster_manager),
    cache: TTLCache = Depends(get_games_cache),
    admin: dict = Depends(rate_limited_admin),
):
    """Delete a game with its teams, unassigning their players first."""
    try:
        result = manager.delete_game(game_id, actor_id=admin["sub"])
    except RosterError as exc:
        raise roster_http_error(exc) from exc
    finally:
        cache.invalidate()
    return {
        "success": True,
        "message": result.message,
        "teams_removed": result.teams_removed,
        "users_unassigned": result.users_unassigned,
    }


@router.post("/teams", status_code=201)
def create_team(
    body: TeamCreate,
    engine: Engine = Depends(get_engine),
    admin: dict = Depends(rate_limited_admin),
):
    try:
        team = admin_service.create_team(
            engine, name=body.name.strip(), game_id=body.game_id, actor_id=admin["sub"]
        )
    except admin_service.DuplicateName as exc:
        raise HTTPException(409, str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(400, str(exc)) from exc
    return {"success": True, "data": {"id": team.id, "name": team.name, "game_id": team.game_id}}


@router.delete("/teams/{team_id}")
def delete_team(
    team_id: str,
    manager: RosterManager = Depends(get_roster_manager),
    admin: dict = Depends(rate_limited_admin),
):
    try:
        result = manager.delete_team(team_id, actor_id=admin["sub"])
    except RosterError as exc:
        raise roster_http_error(exc) from exc
    return {
        "success": True,
        "message": result.message,
        "users_unassigned": result.users_unassigned,
    }


# ---------------------------------------------------------------------------
# Assignments
# ---------------------------------------------------------------------------
@router.patch("/assignments")
def update_assignment(
    body: AssignmentPatch,
    manager: RosterManager = Depends(get_roster_manager),
    admin: dict = Depends(rate_limited_admin),
):
    """Set or clear a user's team and/or assigned role.

    A field missing from the body is left alone; ``null`` or ``""`` clears it.
    """
    sent = body.model_fields_set
    try:
        result = manager.assign_user(
            body.user_id,
            team_id=body.team_id if "team_id" in sent else UNSET,
            assigned_role=body.assigned_role if "assigned_role" in sent else UNSET,
            actor_id=admin["sub"],
        )
    except RosterError as exc:
        raise roster_http_error(exc) from exc
    return {"success": True, "message": result.message, "data": result.user}


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------
@router.patch("/users/{user_id}/role")
def toggle_role(
    user_id: str,
    manager: RosterManager = Depends(get_roster_manager),
    admin: dict = Depends(rate_limited_admin),
):
    try:
        user = manager.toggle_user_role(user_id, admin["sub"])
    except RosterError as exc:
        raise roster_http_error(exc) from exc
    return {"success": True, "user": user}


@router.delete("/users/{user_id}")
def delete_user(
    user_id: str,
    manager: RosterManager = Depends(get_roster_manager),
    admin: dict = Depends(rate_limited_admin),
):
    try:
        manager.delete_user(user_id, admin["sub"])
    except RosterError as exc:
        raise roster_http_error(exc) from exc
    return {"success": True}
