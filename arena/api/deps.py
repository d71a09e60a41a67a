"""
arena.api.deps — FastAPI dependency injection
==============================================
"""

from __future__ import annotations

import os
from datetime import UTC, datetime, timedelta
from functools import lru_cache
from typing import Annotated

import jwt
from fastapi import Depends, Header, HTTPException, status
from jwt.exceptions import InvalidTokenError
from sqlalchemy import Engine

from arena.config import ArenaConfig, load_config
from arena.database.engine import create_db_engine
from arena.database.models import UserRole
from arena.engine.cache import TTLCache
from arena.services.roster_service import RosterError, RosterManager
from arena.services.roster_store import SqlRosterStore

_WEAK_SECRETS = frozenset({
    "arena-dev-secret-change-me",
    "change-me",
    "secret",
    "dev",
    "",
})

_MIN_SECRET_LENGTH = 32

JWT_ALGORITHM = "HS256"


def _load_jwt_secret() -> str:
    """Load and validate JWT_SECRET from the environment.

    Raises RuntimeError at import time if the secret is missing, blank,
    too short (< 32 chars), or a known weak default.
    """
    secret = os.getenv("JWT_SECRET", "")
    if not secret:
        raise RuntimeError(
            "JWT_SECRET environment variable is not set. "
            "Generate one with: python -c \"import secrets; print(secrets.token_urlsafe(64))\""
        )
    if secret in _WEAK_SECRETS:
        raise RuntimeError(
            f"JWT_SECRET is set to a known weak default ('{secret}'). "
            "Please set a strong, unique secret."
        )
    if len(secret) < _MIN_SECRET_LENGTH:
        raise RuntimeError(
            f"JWT_SECRET is too short ({len(secret)} chars). "
            f"Minimum length is {_MIN_SECRET_LENGTH} characters."
        )
    return secret


JWT_SECRET: str = _load_jwt_secret()


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    return create_db_engine()


@lru_cache(maxsize=1)
def get_config() -> ArenaConfig:
    return load_config(os.getenv("ARENA_CONFIG", "config.yaml"))


@lru_cache(maxsize=1)
def get_games_cache() -> TTLCache[list[dict]]:
    return TTLCache(ttl_seconds=get_config().games_cache_ttl_seconds)


def get_roster_manager(
    engine: Engine = Depends(get_engine),
    cfg: ArenaConfig = Depends(get_config),
) -> RosterManager:
    return RosterManager(SqlRosterStore(engine), enforce_capacity=cfg.enforce_team_capacity)


# ---------------------------------------------------------------------------
# Tokens
# ---------------------------------------------------------------------------
def issue_token(user: dict, *, hours: int) -> str:
    """Sign a login token for *user* (``id``, ``username``, ``role``)."""
    payload = {
        "sub": str(user["id"]),
        "username": user["username"],
        "role": user["role"],
        "is_admin": user["role"] == UserRole.ADMIN,
        "exp": datetime.now(UTC) + timedelta(hours=hours),
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


def get_current_user(
    authorization: Annotated[str | None, Header()] = None,
) -> dict:
    """Validate the bearer JWT and return its payload. Raises 401 if invalid."""
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Missing token")
    token = authorization.split(" ", 1)[1]
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except InvalidTokenError:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Invalid token")
    if not payload.get("sub"):
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Invalid token")
    return payload


def get_current_admin(user: dict = Depends(get_current_user)) -> dict:
    """Like :func:`get_current_user`, but 403 unless the role is ADMIN."""
    if user.get("role") != UserRole.ADMIN:
        raise HTTPException(status.HTTP_403_FORBIDDEN, "Not admin")
    return user


# ---------------------------------------------------------------------------
# Error translation
# ---------------------------------------------------------------------------
_ROSTER_STATUS = {
    "not_found": status.HTTP_404_NOT_FOUND,
    "forbidden_self_action": status.HTTP_400_BAD_REQUEST,
    "foreign_key_violation": status.HTTP_400_BAD_REQUEST,
    "invalid_request": status.HTTP_400_BAD_REQUEST,
    "capacity_exceeded": status.HTTP_409_CONFLICT,
    "store_unavailable": status.HTTP_500_INTERNAL_SERVER_ERROR,
    "partial_cascade_failure": status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def roster_http_error(exc: RosterError) -> HTTPException:
    detail = {"error": exc.kind, "message": exc.message}
    if getattr(exc, "retryable", False):
        detail["retryable"] = True
    return HTTPException(
        _ROSTER_STATUS.get(exc.kind, status.HTTP_500_INTERNAL_SERVER_ERROR),
        detail=detail,
    )
