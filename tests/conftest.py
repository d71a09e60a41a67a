"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

import os
import tempfile

# ---------------------------------------------------------------------------
# Ensure a valid JWT_SECRET is always set for test runs.
# This must happen before any import of arena.api.deps which validates
# the secret at module-load time.  Uploads go to a throwaway directory.
# ---------------------------------------------------------------------------
_TEST_JWT_SECRET = "test-secret-for-pytest-only-" + "x" * 40  # > 32 chars
os.environ.setdefault("JWT_SECRET", _TEST_JWT_SECRET)
os.environ.setdefault("ARENA_UPLOAD_DIR", tempfile.mkdtemp(prefix="arena-uploads-"))

from collections.abc import Sequence  # noqa: E402
from typing import Any  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy import Engine, create_engine, event  # noqa: E402

# ---------------------------------------------------------------------------
# Make JSONB columns work in SQLite for testing.
# SQLite doesn't support JSONB natively, but SQLAlchemy's JSON type works.
# We register a custom type compiler so SQLite renders JSONB as TEXT.
# ---------------------------------------------------------------------------
from sqlalchemy.dialects.postgresql import JSONB as PG_JSONB  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

from arena.config import ArenaConfig  # noqa: E402
from arena.database.models import Base, Game, Team, User, UserRole  # noqa: E402
from arena.services.roster_store import ReferenceMissing, StoreError  # noqa: E402

_jsonb_sqlite_registered = False


def _register_jsonb_sqlite_compat():
    """Register SQLite compilation for PG JSONB type (idempotent).

    Also maps BigInteger → INTEGER so autoincrement works on SQLite.
    """
    global _jsonb_sqlite_registered
    if _jsonb_sqlite_registered:
        return
    from sqlalchemy import BigInteger
    from sqlalchemy.ext.compiler import compiles

    @compiles(PG_JSONB, "sqlite")
    def _compile_jsonb_as_text(type_, compiler, **kw):
        return "TEXT"

    @compiles(BigInteger, "sqlite")
    def _compile_bigint_as_integer(type_, compiler, **kw):
        return "INTEGER"

    _jsonb_sqlite_registered = True


_register_jsonb_sqlite_compat()


@pytest.fixture
def db_engine() -> Engine:
    """Create an in-memory SQLite engine with all Arena tables.

    Foreign keys are enforced (SQLite leaves them off by default) so the
    non-cascading game → team → user references behave as in PostgreSQL.
    Uses StaticPool so all threads share the same in-memory database
    (required by ``asyncio.to_thread`` used in the rate limiter).
    """
    from sqlalchemy.pool import StaticPool

    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_conn, _record):
        cur = dbapi_conn.cursor()
        cur.execute("PRAGMA foreign_keys=ON")
        cur.close()

    Base.metadata.create_all(engine)
    return engine


@pytest.fixture
def db_session(db_engine: Engine):
    """Provide a transactional session that rolls back after each test."""
    with Session(db_engine) as session:
        yield session
        session.rollback()


@pytest.fixture(autouse=True)
def _fast_bcrypt(monkeypatch):
    """bcrypt's minimum cost keeps password tests quick."""
    monkeypatch.setattr("arena.services.user_service.BCRYPT_ROUNDS", 4)


# ---------------------------------------------------------------------------
# Row factories
# ---------------------------------------------------------------------------
def make_game(engine: Engine, name: str = "Valorant", max_players: int = 5, **kw) -> str:
    with Session(engine) as s:
        game = Game(name=name, max_players_per_team=max_players, **kw)
        s.add(game)
        s.commit()
        return game.id


def make_team(engine: Engine, game_id: str, name: str = "Varsity") -> str:
    with Session(engine) as s:
        team = Team(name=name, game_id=game_id)
        s.add(team)
        s.commit()
        return team.id


def make_user(
    engine: Engine,
    username: str = "player1",
    *,
    role: UserRole = UserRole.USER,
    team_id: str | None = None,
    assigned_role: str | None = None,
    email: str | None = None,
    password_hash: str = "not-a-real-hash",
) -> str:
    with Session(engine) as s:
        user = User(
            username=username,
            password_hash=password_hash,
            role=role,
            team_id=team_id,
            assigned_role=assigned_role,
            email=email,
        )
        s.add(user)
        s.commit()
        return user.id


def make_token(
    sub: str,
    username: str = "FixtureUser",
    role: UserRole | str = UserRole.USER,
) -> str:
    """Sign a login JWT the way the API does."""
    from arena.api.deps import issue_token

    return issue_token({"id": sub, "username": username, "role": str(role)}, hours=1)


def make_admin_token(sub: str = "admin-99999", username: str = "FixtureAdmin") -> str:
    return make_token(sub, username, UserRole.ADMIN)


def auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_token():
    """Generate a valid admin JWT for use in API integration tests."""
    return make_admin_token()


# ---------------------------------------------------------------------------
# App wiring
# ---------------------------------------------------------------------------
@pytest.fixture
def test_config() -> ArenaConfig:
    return ArenaConfig(
        site_name="Test Club",
        site_url="http://testserver",
        api_port=8000,
        session_hours=1,
        admin_mutations_per_minute=1000,
    )


@pytest.fixture
def client(db_engine, test_config):
    """FastAPI TestClient whose dependencies point at the SQLite test engine."""
    from fastapi.testclient import TestClient

    from arena.api.deps import get_config, get_engine, get_games_cache
    from arena.api.main import app
    from arena.engine.cache import TTLCache

    games_cache = TTLCache(ttl_seconds=300)
    app.dependency_overrides[get_engine] = lambda: db_engine
    app.dependency_overrides[get_config] = lambda: test_config
    app.dependency_overrides[get_games_cache] = lambda: games_cache

    yield TestClient(app, raise_server_exceptions=False)

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# In-memory RosterStore
# ---------------------------------------------------------------------------
class InMemoryRosterStore:
    """Dict-backed RosterStore that enforces the same foreign keys as the DB.

    ``calls`` records every method invoked, in order.  Put a method name in
    ``fail_on`` to make that call raise :class:`StoreError`.
    """

    def __init__(self) -> None:
        self.games: dict[str, dict[str, Any]] = {}
        self.teams: dict[str, str] = {}  # team_id -> game_id
        self.users: dict[str, dict[str, Any]] = {}
        self.audit: list[dict[str, Any]] = []
        self.calls: list[str] = []
        self.fail_on: set[str] = set()

    # -- fixtures ----------------------------------------------------------
    def add_game(self, game_id: str, max_players: int = 5) -> str:
        self.games[game_id] = {"max": max_players}
        return game_id

    def add_team(self, team_id: str, game_id: str) -> str:
        self.teams[team_id] = game_id
        return team_id

    def add_user(
        self,
        user_id: str,
        *,
        team_id: str | None = None,
        assigned_role: str | None = None,
        role: str = "USER",
    ) -> str:
        self.users[user_id] = {
            "id": user_id,
            "username": f"user-{user_id}",
            "role": role,
            "team_id": team_id,
            "assigned_role": assigned_role,
        }
        return user_id

    def members(self, team_id: str) -> list[str]:
        return [uid for uid, u in self.users.items() if u["team_id"] == team_id]

    def _enter(self, name: str) -> None:
        self.calls.append(name)
        if name in self.fail_on:
            raise StoreError(f"{name}: injected failure")

    # -- RosterStore -------------------------------------------------------
    def find_teams(self, game_id: str) -> list[str]:
        self._enter("find_teams")
        return [tid for tid, gid in self.teams.items() if gid == game_id]

    def unassign_users(self, team_ids: Sequence[str], *, clear_role: bool) -> int:
        self._enter("unassign_users")
        n = 0
        for u in self.users.values():
            if u["team_id"] in team_ids:
                u["team_id"] = None
                if clear_role:
                    u["assigned_role"] = None
                n += 1
        return n

    def delete_teams_for_game(self, game_id: str) -> int:
        self._enter("delete_teams_for_game")
        doomed = [tid for tid, gid in self.teams.items() if gid == game_id]
        for tid in doomed:
            if self.members(tid):
                raise StoreError("delete_teams_for_game: users still reference team")
        for tid in doomed:
            del self.teams[tid]
        return len(doomed)

    def delete_game(self, game_id: str) -> int:
        self._enter("delete_game")
        if any(gid == game_id for gid in self.teams.values()):
            raise StoreError("delete_game: teams still reference game")
        return 1 if self.games.pop(game_id, None) is not None else 0

    def delete_team(self, team_id: str) -> int:
        self._enter("delete_team")
        if self.members(team_id):
            raise StoreError("delete_team: users still reference team")
        return 1 if self.teams.pop(team_id, None) is not None else 0

    def update_user(self, user_id: str, patch: dict[str, Any]) -> dict[str, Any] | None:
        self._enter("update_user")
        user = self.users.get(user_id)
        if user is None:
            return None
        team_id = patch.get("team_id")
        if team_id is not None and team_id not in self.teams:
            raise ReferenceMissing("update_user: team does not exist")
        user.update(patch)
        return {k: user[k] for k in ("id", "username", "team_id", "assigned_role")}

    def get_user_role(self, user_id: str) -> str | None:
        self._enter("get_user_role")
        user = self.users.get(user_id)
        return user["role"] if user else None

    def set_user_role(self, user_id: str, role: str) -> dict[str, Any] | None:
        self._enter("set_user_role")
        user = self.users.get(user_id)
        if user is None:
            return None
        user["role"] = role
        return dict(user)

    def delete_user(self, user_id: str) -> int:
        self._enter("delete_user")
        return 1 if self.users.pop(user_id, None) is not None else 0

    def team_occupancy(
        self, team_id: str, *, exclude_user_id: str | None = None
    ) -> tuple[int, int] | None:
        self._enter("team_occupancy")
        game_id = self.teams.get(team_id)
        if game_id is None:
            return None
        members = [u for u in self.members(team_id) if u != exclude_user_id]
        return len(members), self.games[game_id]["max"]

    def log_admin_action(self, **entry: Any) -> None:
        self._enter("log_admin_action")
        self.audit.append(entry)


@pytest.fixture
def memory_store() -> InMemoryRosterStore:
    return InMemoryRosterStore()
