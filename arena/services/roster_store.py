"""
arena.services.roster_store — Persistence seam for roster mutations
====================================================================

:class:`RosterStore` is the narrow set of reads/writes the roster manager
needs.  Each call is independent: there is no transaction spanning two
calls, so a multi-step cascade can stop halfway.

:class:`SqlRosterStore` is the production implementation on a SQLAlchemy
engine.  Every method opens its own short session and commits before
returning.  Database failures surface as :class:`StoreError`; a write
rejected by a foreign key surfaces as :class:`ReferenceMissing`.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import Any, Protocol

from sqlalchemy import Engine, delete, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from arena.database.engine import get_session
from arena.database.models import AdminLog, Game, Team, User, UserRole

logger = logging.getLogger(__name__)

# Columns returned after a user write
USER_ASSIGNMENT_FIELDS = ("id", "username", "team_id", "assigned_role")


class StoreError(Exception):
    """A store call failed (connection, permissions, constraint, ...)."""


class ReferenceMissing(StoreError):
    """A write pointed a foreign key at a row that does not exist."""


class RosterStore(Protocol):
    """Reads and writes used by :class:`~arena.services.roster_service.RosterManager`."""

    def find_teams(self, game_id: str) -> list[str]: ...

    def unassign_users(self, team_ids: Sequence[str], *, clear_role: bool) -> int: ...

    def delete_teams_for_game(self, game_id: str) -> int: ...

    def delete_game(self, game_id: str) -> int: ...

    def delete_team(self, team_id: str) -> int: ...

    def update_user(self, user_id: str, patch: dict[str, Any]) -> dict[str, Any] | None: ...

    def get_user_role(self, user_id: str) -> str | None: ...

    def set_user_role(self, user_id: str, role: str) -> dict[str, Any] | None: ...

    def delete_user(self, user_id: str) -> int: ...

    def team_occupancy(
        self, team_id: str, *, exclude_user_id: str | None = None
    ) -> tuple[int, int] | None: ...

    def log_admin_action(
        self,
        *,
        actor_id: str,
        action_type: str,
        target_table: str,
        target_id: str | None,
        before: dict | None,
        after: dict | None,
    ) -> None: ...


def _user_row(user: User, fields: Sequence[str]) -> dict[str, Any]:
    row = {}
    for name in fields:
        value = getattr(user, name)
        row[name] = str(value) if isinstance(value, UserRole) else value
    return row


class SqlRosterStore:
    """:class:`RosterStore` backed by SQLAlchemy."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    @contextmanager
    def _errors(self, operation: str) -> Iterator[None]:
        try:
            yield
        except IntegrityError as exc:
            raise StoreError(f"{operation}: constraint violated ({exc.orig})") from exc
        except SQLAlchemyError as exc:
            raise StoreError(f"{operation}: {exc}") from exc

    # -------------------------------------------------------------------
    # Games & teams
    # -------------------------------------------------------------------
    def find_teams(self, game_id: str) -> list[str]:
        with self._errors("find_teams"), get_session(self.engine) as session:
            return list(session.scalars(select(Team.id).where(Team.game_id == game_id)))

    def unassign_users(self, team_ids: Sequence[str], *, clear_role: bool) -> int:
        values: dict[str, Any] = {"team_id": None}
        if clear_role:
            values["assigned_role"] = None
        with self._errors("unassign_users"), get_session(self.engine) as session:
            result = session.execute(
                update(User).where(User.team_id.in_(list(team_ids))).values(**values)
            )
            return result.rowcount or 0

    def delete_teams_for_game(self, game_id: str) -> int:
        with self._errors("delete_teams_for_game"), get_session(self.engine) as session:
            result = session.execute(delete(Team).where(Team.game_id == game_id))
            return result.rowcount or 0

    def delete_game(self, game_id: str) -> int:
        with self._errors("delete_game"), get_session(self.engine) as session:
            result = session.execute(delete(Game).where(Game.id == game_id))
            return result.rowcount or 0

    def delete_team(self, team_id: str) -> int:
        with self._errors("delete_team"), get_session(self.engine) as session:
            result = session.execute(delete(Team).where(Team.id == team_id))
            return result.rowcount or 0

    def team_occupancy(
        self, team_id: str, *, exclude_user_id: str | None = None
    ) -> tuple[int, int] | None:
        """(members, capacity) for *team_id*, or None if the team is gone.

        *exclude_user_id* is left out of the member count so a player already
        on the team never counts against their own seat.
        """
        with self._errors("team_occupancy"), get_session(self.engine) as session:
            capacity = session.scalar(
                select(Game.max_players_per_team)
                .join(Team, Team.game_id == Game.id)
                .where(Team.id == team_id)
            )
            if capacity is None:
                return None
            members_q = select(func.count()).select_from(User).where(User.team_id == team_id)
            if exclude_user_id is not None:
                members_q = members_q.where(User.id != exclude_user_id)
            members = session.scalar(members_q) or 0
            return members, capacity

    # -------------------------------------------------------------------
    # Users
    # -------------------------------------------------------------------
    def update_user(self, user_id: str, patch: dict[str, Any]) -> dict[str, Any] | None:
        try:
            with get_session(self.engine) as session:
                user = session.get(User, user_id)
                if user is None:
                    return None
                for key, value in patch.items():
                    setattr(user, key, value)
                session.flush()
                return _user_row(user, USER_ASSIGNMENT_FIELDS)
        except IntegrityError as exc:
            # The only FK a roster patch can touch is users.team_id
            raise ReferenceMissing(f"update_user: {exc.orig}") from exc
        except SQLAlchemyError as exc:
            raise StoreError(f"update_user: {exc}") from exc

    def get_user_role(self, user_id: str) -> str | None:
        with self._errors("get_user_role"), get_session(self.engine) as session:
            role = session.scalar(select(User.role).where(User.id == user_id))
            return str(role) if role is not None else None

    def set_user_role(self, user_id: str, role: str) -> dict[str, Any] | None:
        with self._errors("set_user_role"), get_session(self.engine) as session:
            user = session.get(User, user_id)
            if user is None:
                return None
            user.role = UserRole(role)
            session.flush()
            return _user_row(user, ("id", "username", "role", "team_id", "assigned_role"))

    def delete_user(self, user_id: str) -> int:
        with self._errors("delete_user"), get_session(self.engine) as session:
            result = session.execute(delete(User).where(User.id == user_id))
            return result.rowcount or 0

    # -------------------------------------------------------------------
    # Audit
    # -------------------------------------------------------------------
    def log_admin_action(
        self,
        *,
        actor_id: str,
        action_type: str,
        target_table: str,
        target_id: str | None,
        before: dict | None,
        after: dict | None,
    ) -> None:
        with self._errors("log_admin_action"), get_session(self.engine) as session:
            session.add(AdminLog(
                actor_id=actor_id,
                action_type=action_type,
                target_table=target_table,
                target_id=target_id,
                before_snapshot=before,
                after_snapshot=after,
            ))
