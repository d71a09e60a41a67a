"""
arena.services.user_service — Accounts, Profiles & Password Reset
==================================================================

Everything about a user account that is *not* a roster mutation:
registration, credential checks, the self-service profile and the
password-reset token flow.  Team assignment, role toggling and account
deletion go through :mod:`arena.services.roster_service`.

Passwords are hashed with bcrypt (cost factor
:data:`~arena.constants.BCRYPT_ROUNDS`).
"""

from __future__ import annotations

import logging
import os
import secrets
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any

import bcrypt
from sqlalchemy import Engine, delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from arena.constants import (
    BCRYPT_MAX_PASSWORD_BYTES,
    BCRYPT_ROUNDS,
    BIO_MAX_LENGTH,
    PASSWORD_RESET_TTL_MINUTES,
)
from arena.database.engine import get_session
from arena.database.models import PasswordReset, User

logger = logging.getLogger(__name__)

PROFILE_FIELDS = ("email", "profile_image", "bio", "preferred_role")


class UsernameTaken(ValueError):
    """Registration with a username that already exists."""


# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------
def _password_bytes(password: str) -> bytes:
    raw = password.encode("utf-8")
    if len(raw) > BCRYPT_MAX_PASSWORD_BYTES:
        raise ValueError(
            f"Password too long (max {BCRYPT_MAX_PASSWORD_BYTES} bytes)."
        )
    return raw


def hash_password(password: str) -> str:
    return bcrypt.hashpw(
        _password_bytes(password), bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    ).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Constant-time comparison of *password* against a stored hash."""
    try:
        return bcrypt.checkpw(_password_bytes(password), password_hash.encode("utf-8"))
    except ValueError:
        return False


# ---------------------------------------------------------------------------
# Registration & login
# ---------------------------------------------------------------------------
def register_user(engine: Engine, *, username: str, password: str) -> dict:
    """Create a ``USER`` account.

    Raises
    ------
    ValueError
        Username or password missing.
    UsernameTaken
        The username is already registered.
    """
    username = (username or "").strip()
    if not username or not password:
        raise ValueError("Username and password are required.")

    password_hash = hash_password(password)
    try:
        with get_session(engine) as session:
            user = User(username=username, password_hash=password_hash)
            session.add(user)
            session.flush()
            result = {"id": user.id, "username": user.username, "role": str(user.role)}
    except IntegrityError as exc:
        raise UsernameTaken("Username already exists.") from exc

    logger.info("Registered user %r (%s)", username, result["id"])
    return result


def authenticate(engine: Engine, *, username: str, password: str) -> dict | None:
    """Return ``{id, username, role}`` if the credentials match, else ``None``."""
    with Session(engine) as session:
        user = session.scalar(select(User).where(User.username == username))
        if user is None or not verify_password(password, user.password_hash):
            return None
        return {"id": user.id, "username": user.username, "role": str(user.role)}


def get_user(engine: Engine, user_id: str) -> dict | None:
    with Session(engine) as session:
        user = session.get(User, user_id)
        if user is None:
            return None
        return {"id": user.id, "username": user.username, "role": str(user.role)}


def list_users(engine: Engine) -> list[dict]:
    """All accounts for the admin dashboard, newest first."""
    with Session(engine) as session:
        users = session.scalars(
            select(User).order_by(User.created_at.desc(), User.username)
        ).all()
        return [
            {
                "id": u.id,
                "username": u.username,
                "role": str(u.role),
                "created_at": u.created_at.isoformat() if u.created_at else None,
            }
            for u in users
        ]


# ---------------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------------
def _profile_dict(user: User) -> dict:
    return {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "profile_image": user.profile_image,
        "bio": user.bio,
        "preferred_role": user.preferred_role,
        "assigned_role": user.assigned_role,
        "team_id": user.team_id,
    }


def get_profile(engine: Engine, user_id: str) -> dict | None:
    with Session(engine) as session:
        user = session.get(User, user_id)
        return _profile_dict(user) if user is not None else None


def update_profile(engine: Engine, user_id: str, **fields: Any) -> dict | None:
    """Apply the supplied profile fields; omitted fields stay untouched.

    Only ``email``, ``profile_image``, ``bio`` and ``preferred_role`` are
    writable here.  Returns ``None`` if the user does not exist.

    Raises
    ------
    ValueError
        Bio longer than :data:`~arena.constants.BIO_MAX_LENGTH`, or the
        email belongs to another account.
    """
    bio = fields.get("bio")
    if bio is not None and len(bio) > BIO_MAX_LENGTH:
        raise ValueError(f"Bio must be {BIO_MAX_LENGTH} characters or fewer.")
    if "email" in fields:
        # users.email is unique; a cleared address is stored as NULL
        fields["email"] = (fields["email"] or "").strip() or None

    try:
        with get_session(engine) as session:
            user = session.get(User, user_id)
            if user is None:
                return None
            for key, value in fields.items():
                if key in PROFILE_FIELDS:
                    setattr(user, key, value)
            session.flush()
            return _profile_dict(user)
    except IntegrityError as exc:
        raise ValueError("That email is already in use.") from exc


# ---------------------------------------------------------------------------
# Password reset
# ---------------------------------------------------------------------------
# (email, reset_link) -> None
ResetNotifier = Callable[[str, str], None]


def log_reset_notifier(email: str, link: str) -> None:
    """Default notifier: record that a link was issued, never the link itself."""
    logger.info("Password reset link issued for %s", email)


def _reset_link(token: str) -> str:
    base = os.getenv("FRONTEND_URL", "").strip().rstrip("/")
    return f"{base}/reset-password?token={token}"


def _normalize_dt(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def issue_password_reset(
    engine: Engine,
    email: str,
    *,
    notifier: ResetNotifier = log_reset_notifier,
) -> str | None:
    """Create a one-hour reset token for *email* and hand the link to *notifier*.

    Returns the token, or ``None`` when no account has that email.  Callers
    must give the same public response either way.
    """
    email = (email or "").strip()
    if not email:
        return None

    with get_session(engine) as session:
        exists = session.scalar(select(User.id).where(User.email == email))
        if exists is None:
            return None
        token = secrets.token_urlsafe(32)
        session.add(PasswordReset(
            email=email,
            token=token,
            expires_at=datetime.now(UTC) + timedelta(minutes=PASSWORD_RESET_TTL_MINUTES),
        ))

    notifier(email, _reset_link(token))
    return token


def reset_password(engine: Engine, *, token: str, new_password: str) -> bool:
    """Consume *token* and set a new password.

    Returns ``False`` for an unknown or expired token.  Expired tokens are
    deleted on sight; a used token is deleted with the password change.
    """
    if not token or not new_password:
        raise ValueError("Token and new password are required.")
    new_hash = hash_password(new_password)

    with get_session(engine) as session:
        row = session.scalar(select(PasswordReset).where(PasswordReset.token == token))
        if row is None:
            return False
        if _normalize_dt(row.expires_at) <= datetime.now(UTC):
            session.delete(row)
            return False

        user = session.scalar(select(User).where(User.email == row.email))
        session.execute(delete(PasswordReset).where(PasswordReset.email == row.email))
        if user is None:
            return False
        user.password_hash = new_hash

    logger.info("Password reset completed for user %s", user.id)
    return True
