"""
arena.services.roster_service — Roster Consistency Manager
===========================================================

Keeps Game → Team → User assignments referentially valid.  The database
does not cascade these relationships, so every destructive operation
cleans up its dependents first, in a fixed order:

    DeleteGame:  read team ids → unassign their users → delete teams → delete game
    DeleteTeam:  unassign users (best-effort) → delete team

The steps are separate store calls, not one transaction.  A failure after
the first committed write is reported as :class:`PartialCascadeFailure`;
nothing is rolled back, but every step is idempotent so the operation can
simply be retried.

Every store exception is converted to a :class:`RosterError` subclass at
the operation boundary.  The only failures swallowed are the best-effort
unassignment inside :meth:`RosterManager.delete_team` (logged at WARNING)
and the audit-log write (logged at WARNING).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Final

from arena.database.models import AdminActionType, UserRole
from arena.services.roster_store import ReferenceMissing, RosterStore, StoreError

logger = logging.getLogger(__name__)


class _Unset:
    """Marker for "field not supplied" in patch-style calls."""

    _instance: _Unset | None = None

    def __new__(cls) -> _Unset:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Final = _Unset()


# ---------------------------------------------------------------------------
# Error taxonomy
# ---------------------------------------------------------------------------
class RosterError(Exception):
    """Base class for every failure a roster operation reports."""

    kind = "roster_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFound(RosterError):
    kind = "not_found"


class ForbiddenSelfAction(RosterError):
    kind = "forbidden_self_action"


class ForeignKeyViolation(RosterError):
    kind = "foreign_key_violation"


class InvalidRequest(RosterError):
    kind = "invalid_request"


class CapacityExceeded(RosterError):
    kind = "capacity_exceeded"


class StoreUnavailable(RosterError):
    kind = "store_unavailable"


class PartialCascadeFailure(RosterError):
    """A cascade stopped after some steps had already been committed."""

    kind = "partial_cascade_failure"
    retryable = True

    def __init__(self, message: str, *, completed_steps: list[str]) -> None:
        super().__init__(message)
        self.completed_steps = completed_steps


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class GameDeletion:
    game_id: str
    teams_removed: int
    users_unassigned: int
    game_deleted: bool

    @property
    def message(self) -> str:
        return (
            f"Game deleted successfully. Removed {self.teams_removed} team(s) "
            f"and unassigned {self.users_unassigned} player(s)."
        )


@dataclass(frozen=True, slots=True)
class TeamDeletion:
    team_id: str
    users_unassigned: int
    team_deleted: bool
    unassign_failed: bool = False

    @property
    def message(self) -> str:
        return f"Team {self.team_id} deleted successfully."


@dataclass(frozen=True, slots=True)
class Assignment:
    user: dict[str, Any]
    message: str


@dataclass(frozen=True, slots=True)
class UserDeletion:
    user_id: str
    deleted: bool


@dataclass
class _Cascade:
    """Tracks which writes of a multi-step operation have committed."""

    operation: str
    target_id: str
    completed: list[str] = field(default_factory=list)

    def fail(self, step: str, exc: StoreError) -> RosterError:
        if not self.completed:
            logger.error(
                "%s %s failed at %s before any write: %s",
                self.operation, self.target_id, step, exc,
            )
            return StoreUnavailable(f"Failed to {self.operation.replace('_', ' ')}.")
        logger.error(
            "%s %s failed at %s after %s had committed: %s",
            self.operation, self.target_id, step, ", ".join(self.completed), exc,
        )
        return PartialCascadeFailure(
            f"Failed to {self.operation.replace('_', ' ')}; "
            f"completed steps were kept: {', '.join(self.completed)}. Retry to finish.",
            completed_steps=list(self.completed),
        )


# ---------------------------------------------------------------------------
# Manager
# ---------------------------------------------------------------------------
class RosterManager:
    """Applies Game/Team/User mutations together with their required cleanup.

    Parameters
    ----------
    store:
        Any :class:`~arena.services.roster_store.RosterStore`.
    enforce_capacity:
        When true, :meth:`assign_user` refuses to put a user on a team that
        already has ``max_players_per_team`` members.  When false (the
        default) capacity is advisory and only shown to admins.
    """

    def __init__(self, store: RosterStore, *, enforce_capacity: bool = False) -> None:
        self.store = store
        self.enforce_capacity = enforce_capacity

    # -------------------------------------------------------------------
    # DeleteGame
    # -------------------------------------------------------------------
    def delete_game(self, game_id: str, *, actor_id: str | None = None) -> GameDeletion:
        """Delete *game_id*, its teams, and every assignment to those teams.

        A missing game is not an error: the result reports zero counts and
        ``game_deleted=False``.
        """
        cascade = _Cascade("delete_game", game_id)

        try:
            team_ids = self.store.find_teams(game_id)
        except StoreError as exc:
            raise cascade.fail("find_teams", exc) from exc

        users_unassigned = 0
        teams_removed = 0
        if team_ids:
            try:
                users_unassigned = self.store.unassign_users(team_ids, clear_role=True)
            except StoreError as exc:
                raise cascade.fail("unassign_users", exc) from exc
            cascade.completed.append("unassign_users")

            try:
                teams_removed = self.store.delete_teams_for_game(game_id)
            except StoreError as exc:
                raise cascade.fail("delete_teams", exc) from exc
            cascade.completed.append("delete_teams")

        try:
            deleted = self.store.delete_game(game_id) > 0
        except StoreError as exc:
            raise cascade.fail("delete_game", exc) from exc

        result = GameDeletion(
            game_id=game_id,
            teams_removed=teams_removed,
            users_unassigned=users_unassigned,
            game_deleted=deleted,
        )
        logger.info(
            "Game %s deleted (existed=%s): %d team(s) removed, %d user(s) unassigned",
            game_id, deleted, teams_removed, users_unassigned,
        )
        self._audit(
            actor_id, AdminActionType.DELETE, "games", game_id,
            before={"id": game_id, "team_ids": team_ids},
            after={"teams_removed": teams_removed, "users_unassigned": users_unassigned},
        )
        return result

    # -------------------------------------------------------------------
    # DeleteTeam
    # -------------------------------------------------------------------
    def delete_team(self, team_id: str, *, actor_id: str | None = None) -> TeamDeletion:
        """Unassign everyone on *team_id*, then delete it.

        The unassignment is best-effort: a failure is logged and the delete
        is attempted anyway.  If users are still attached, the foreign key
        rejects the delete and :class:`StoreUnavailable` is raised, so a
        successful result always means no user points at the team.
        """
        unassign_failed = False
        users_unassigned = 0
        try:
            users_unassigned = self.store.unassign_users([team_id], clear_role=False)
        except StoreError as exc:
            unassign_failed = True
            logger.warning("Unassigning users from team %s failed: %s", team_id, exc)

        try:
            deleted = self.store.delete_team(team_id) > 0
        except StoreError as exc:
            logger.error("Team %s deletion failed: %s", team_id, exc)
            if users_unassigned:
                raise PartialCascadeFailure(
                    "Failed to delete team; its players were already unassigned. Retry to finish.",
                    completed_steps=["unassign_users"],
                ) from exc
            raise StoreUnavailable("Failed to delete team.") from exc

        logger.info(
            "Team %s deleted (existed=%s): %d user(s) unassigned",
            team_id, deleted, users_unassigned,
        )
        self._audit(
            actor_id, AdminActionType.DELETE, "teams", team_id,
            before={"id": team_id},
            after={"users_unassigned": users_unassigned},
        )
        return TeamDeletion(
            team_id=team_id,
            users_unassigned=users_unassigned,
            team_deleted=deleted,
            unassign_failed=unassign_failed,
        )

    # -------------------------------------------------------------------
    # AssignUser
    # -------------------------------------------------------------------
    def assign_user(
        self,
        user_id: str,
        *,
        team_id: str | None | _Unset = UNSET,
        assigned_role: str | None | _Unset = UNSET,
        actor_id: str | None = None,
    ) -> Assignment:
        """Patch a user's ``team_id`` and/or ``assigned_role``.

        Only supplied fields are written; ``None`` (or an empty string)
        clears a field, :data:`UNSET` leaves it alone.
        """
        if not user_id:
            raise InvalidRequest("Missing user_id for update.")

        patch: dict[str, Any] = {}
        if team_id is not UNSET:
            patch["team_id"] = team_id or None
        if assigned_role is not UNSET:
            patch["assigned_role"] = assigned_role or None
        if not patch:
            raise InvalidRequest("No fields to update.")

        if self.enforce_capacity and patch.get("team_id"):
            self._check_capacity(user_id, patch["team_id"])

        try:
            row = self.store.update_user(user_id, patch)
        except ReferenceMissing as exc:
            logger.warning("Assignment of user %s rejected: %s", user_id, exc)
            raise ForeignKeyViolation("The specified team does not exist.") from exc
        except StoreError as exc:
            logger.error("User %s update failed: %s", user_id, exc)
            raise StoreUnavailable("Failed to update user.") from exc
        if row is None:
            raise NotFound("User not found.")

        message = self._assignment_message(user_id, patch)
        logger.info("Assignment updated: %s", message)
        self._audit(
            actor_id, AdminActionType.ASSIGN, "users", user_id,
            before=None, after=dict(row),
        )
        return Assignment(user=row, message=message)

    def _check_capacity(self, user_id: str, team_id: str) -> None:
        try:
            occupancy = self.store.team_occupancy(team_id, exclude_user_id=user_id)
        except StoreError as exc:
            raise StoreUnavailable("Failed to update user.") from exc
        if occupancy is None:
            raise ForeignKeyViolation("The specified team does not exist.")
        members, capacity = occupancy
        if members >= capacity:
            raise CapacityExceeded(
                f"Team {team_id} is full ({members}/{capacity} players)."
            )

    @staticmethod
    def _assignment_message(user_id: str, patch: dict[str, Any]) -> str:
        parts = []
        if "team_id" in patch:
            if patch["team_id"]:
                parts.append(f"User {user_id} assigned to team {patch['team_id']}.")
            else:
                parts.append(f"User {user_id} unassigned from team.")
        if "assigned_role" in patch:
            parts.append(f"Assigned role updated to: {patch['assigned_role'] or 'none'}.")
        return " ".join(parts)

    # -------------------------------------------------------------------
    # ToggleUserRole / DeleteUser
    # -------------------------------------------------------------------
    def toggle_user_role(self, user_id: str, acting_user_id: str) -> dict[str, Any]:
        """Flip *user_id* between USER and ADMIN.  Admins cannot flip themselves."""
        if str(user_id) == str(acting_user_id):
            raise ForbiddenSelfAction("Cannot change your own role")

        try:
            current = self.store.get_user_role(user_id)
        except StoreError as exc:
            raise StoreUnavailable("Failed to update user role") from exc
        if current is None:
            raise NotFound("User not found")

        new_role = UserRole(current).flipped()
        try:
            row = self.store.set_user_role(user_id, new_role.value)
        except StoreError as exc:
            logger.error("Role update for user %s failed: %s", user_id, exc)
            raise StoreUnavailable("Failed to update user role") from exc
        if row is None:
            raise NotFound("User not found")

        logger.info("User %s role changed %s → %s", user_id, current, new_role)
        self._audit(
            acting_user_id, AdminActionType.ROLE_TOGGLE, "users", user_id,
            before={"role": current}, after={"role": new_role.value},
        )
        return row

    def delete_user(self, user_id: str, acting_user_id: str) -> UserDeletion:
        """Delete *user_id* outright.  Admins cannot delete themselves."""
        if str(user_id) == str(acting_user_id):
            raise ForbiddenSelfAction("Cannot delete your own account")

        try:
            deleted = self.store.delete_user(user_id) > 0
        except StoreError as exc:
            logger.error("User %s deletion failed: %s", user_id, exc)
            raise StoreUnavailable("Failed to delete user") from exc

        logger.info("User %s deleted (existed=%s)", user_id, deleted)
        self._audit(
            acting_user_id, AdminActionType.DELETE, "users", user_id,
            before={"id": user_id}, after=None,
        )
        return UserDeletion(user_id=user_id, deleted=deleted)

    # -------------------------------------------------------------------
    # Audit
    # -------------------------------------------------------------------
    def _audit(
        self,
        actor_id: str | None,
        action: AdminActionType,
        table: str,
        target_id: str,
        *,
        before: dict | None,
        after: dict | None,
    ) -> None:
        if actor_id is None:
            return
        try:
            self.store.log_admin_action(
                actor_id=str(actor_id),
                action_type=action.value,
                target_table=table,
                target_id=target_id,
                before=before,
                after=after,
            )
        except StoreError as exc:
            logger.warning("Audit log write for %s %s failed: %s", table, target_id, exc)
