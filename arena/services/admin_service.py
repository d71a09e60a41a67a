"""
arena.services.admin_service — Games & Teams Admin Service Layer
=================================================================

Creates and edits games and teams for the admin dashboard, and builds the
read models (roster tree, navigation list, team pages) shown publicly.

Every write follows the pattern:
  1. Begin transaction
  2. Read "before" snapshot
  3. Apply change
  4. Write admin_log with before/after snapshots
  5. Commit

Deletions are not here: removing a game or team needs ordered cleanup of
its dependents and lives in :mod:`arena.services.roster_service`.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from sqlalchemy import Engine, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from arena.constants import slugify
from arena.database.models import AdminActionType, AdminLog, Game, Team, User

logger = logging.getLogger(__name__)

GAME_FIELDS = ("name", "description", "image_url", "max_players_per_team")


class DuplicateName(ValueError):
    """A game or team name collides with an existing one."""


# ---------------------------------------------------------------------------
# Generic audit helpers
# ---------------------------------------------------------------------------

def _row_to_dict(obj: Any) -> dict | None:
    """Convert a SQLAlchemy model instance to a JSON-serializable dict."""
    if obj is None:
        return None
    result = {}
    for col in obj.__table__.columns:
        val = getattr(obj, col.key, None)
        if isinstance(val, datetime):
            val = val.isoformat()
        result[col.name] = val
    return result


def _log_admin_action(
    session: Session,
    *,
    actor_id: str,
    action_type: AdminActionType,
    target_table: str,
    target_id: str | None,
    before: dict | None,
    after: dict | None,
) -> None:
    """Insert a row into admin_log within the current transaction."""
    session.add(AdminLog(
        actor_id=actor_id,
        action_type=action_type.value,
        target_table=target_table,
        target_id=target_id,
        before_snapshot=before,
        after_snapshot=after,
    ))


def _audited_create(engine: Engine, row: Any, *, table_name: str, actor_id: str) -> Any:
    """Generic audited CREATE: add -> flush -> log -> commit -> return."""
    with Session(engine, expire_on_commit=False) as session:
        session.add(row)
        session.flush()
        _log_admin_action(
            session,
            actor_id=actor_id,
            action_type=AdminActionType.CREATE,
            target_table=table_name,
            target_id=str(row.id),
            before=None,
            after=_row_to_dict(row),
        )
        session.commit()
        session.refresh(row)
        session.expunge(row)
        return row


def _audited_update(
    engine: Engine,
    model_cls: type,
    pk: str,
    *,
    table_name: str,
    actor_id: str,
    allowed_keys: tuple[str, ...],
    **kwargs: Any,
) -> Any | None:
    """Generic audited UPDATE: get -> before -> apply kwargs -> log -> commit.

    Returns the updated (expunged) object, or ``None`` if not found.
    """
    with Session(engine, expire_on_commit=False) as session:
        obj = session.get(model_cls, pk)
        if obj is None:
            return None
        before = _row_to_dict(obj)
        for key, value in kwargs.items():
            if key in allowed_keys:
                setattr(obj, key, value)
        session.flush()
        _log_admin_action(
            session,
            actor_id=actor_id,
            action_type=AdminActionType.UPDATE,
            target_table=table_name,
            target_id=str(obj.id),
            before=before,
            after=_row_to_dict(obj),
        )
        session.commit()
        session.refresh(obj)
        session.expunge(obj)
        return obj


# ---------------------------------------------------------------------------
# Games
# ---------------------------------------------------------------------------

def create_game(
    engine: Engine,
    *,
    name: str,
    max_players_per_team: int,
    description: str | None = None,
    image_url: str | None = None,
    actor_id: str,
) -> Game:
    """Create a new game.  Names are unique across the club."""
    if not name or not max_players_per_team:
        raise ValueError("Missing required fields for game creation.")
    if max_players_per_team < 1:
        raise ValueError("max_players_per_team must be a positive integer.")
    try:
        game = _audited_create(
            engine,
            Game(
                name=name,
                max_players_per_team=max_players_per_team,
                description=description or None,
                image_url=image_url or None,
            ),
            table_name="games",
            actor_id=actor_id,
        )
    except IntegrityError as exc:
        raise DuplicateName("Failed to create game. A game with this name already exists.") from exc
    logger.info("Game %r created (%s)", game.name, game.id)
    return game


def update_game(engine: Engine, *, game_id: str, actor_id: str, **kwargs: Any) -> Game | None:
    """Rename / re-describe / resize / re-image a game.

    Returns ``None`` if the game does not exist.
    """
    if "max_players_per_team" in kwargs and kwargs["max_players_per_team"] < 1:
        raise ValueError("max_players_per_team must be a positive integer.")
    try:
        return _audited_update(
            engine, Game, game_id,
            table_name="games",
            actor_id=actor_id,
            allowed_keys=GAME_FIELDS,
            **kwargs,
        )
    except IntegrityError as exc:
        raise DuplicateName("A game with this name already exists.") from exc


def get_game_image(engine: Engine, game_id: str) -> str | None:
    with Session(engine) as session:
        return session.scalar(select(Game.image_url).where(Game.id == game_id))


def set_game_image(engine: Engine, *, game_id: str, image_url: str, actor_id: str) -> Game | None:
    """Point a game at a newly uploaded image."""
    return update_game(engine, game_id=game_id, actor_id=actor_id, image_url=image_url)


# ---------------------------------------------------------------------------
# Teams
# ---------------------------------------------------------------------------

def create_team(engine: Engine, *, name: str, game_id: str, actor_id: str) -> Team:
    """Create a team under an existing game.  Names are unique per game."""
    if not name or not game_id:
        raise ValueError("Missing required fields for team creation.")
    with Session(engine) as session:
        if session.get(Game, game_id) is None:
            raise ValueError("The specified game does not exist.")
    try:
        team = _audited_create(
            engine,
            Team(name=name, game_id=game_id),
            table_name="teams",
            actor_id=actor_id,
        )
    except IntegrityError as exc:
        raise DuplicateName(
            "A team with this name already exists for the selected game."
        ) from exc
    logger.info("Team %r created under game %s", team.name, game_id)
    return team


# ---------------------------------------------------------------------------
# Read models
# ---------------------------------------------------------------------------

def _member_dict(u: User) -> dict:
    return {
        "id": u.id,
        "username": u.username,
        "role": str(u.role),
        "profile_image": u.profile_image,
        "bio": u.bio,
        "assigned_role": u.assigned_role,
        "preferred_role": u.preferred_role,
    }


def _game_tree(game: Game) -> dict:
    teams = []
    for team in game.teams:
        count = len(team.members)
        teams.append({
            "id": team.id,
            "name": team.name,
            "member_count": count,
            "is_full": count >= game.max_players_per_team,
            "users": [_member_dict(u) for u in team.members],
        })
    return {
        "id": game.id,
        "name": game.name,
        "slug": slugify(game.name),
        "description": game.description,
        "image_url": game.image_url,
        "max_players_per_team": game.max_players_per_team,
        "teams": teams,
    }


def _games_with_rosters():
    return (
        select(Game)
        .options(selectinload(Game.teams).selectinload(Team.members))
        .order_by(Game.name)
    )


def get_roster(engine: Engine) -> list[dict]:
    """Every game → its teams → their players, games ordered by name."""
    with Session(engine) as session:
        games = session.scalars(_games_with_rosters()).all()
        return [_game_tree(g) for g in games]


def get_game_by_slug(engine: Engine, slug: str) -> dict | None:
    """The roster tree of the game whose name slugifies to *slug*."""
    with Session(engine) as session:
        for game in session.scalars(_games_with_rosters()).all():
            if slugify(game.name) == slug:
                return _game_tree(game)
    return None


def list_games_for_nav(engine: Engine) -> list[dict]:
    """Lightweight game list for navigation menus."""
    with Session(engine) as session:
        rows = session.execute(
            select(Game.id, Game.name, Game.description, Game.image_url).order_by(Game.name)
        ).all()
    return [
        {
            "id": r.id,
            "name": r.name,
            "slug": slugify(r.name),
            "description": r.description,
            "image_url": r.image_url,
        }
        for r in rows
    ]


def list_audit_log(engine: Engine, *, page: int = 1, page_size: int = 25) -> dict:
    """Paginated admin audit log, newest first."""
    with Session(engine) as session:
        total = session.scalar(select(func.count()).select_from(AdminLog)) or 0
        rows = session.scalars(
            select(AdminLog)
            .order_by(AdminLog.timestamp.desc(), AdminLog.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        ).all()

    return {
        "total": total,
        "page": page,
        "page_size": page_size,
        "entries": [
            {
                "id": r.id,
                "actor_id": r.actor_id,
                "action_type": r.action_type,
                "target_table": r.target_table,
                "target_id": r.target_id,
                "before_snapshot": r.before_snapshot,
                "after_snapshot": r.after_snapshot,
                "timestamp": r.timestamp.isoformat() if r.timestamp else None,
            }
            for r in rows
        ],
    }
