"""
arena.database.seed — Bootstrap Admin Seeder
=============================================

A fresh deployment has no way to reach the admin dashboard: registration
always creates ``USER`` accounts.  When ``ARENA_ADMIN_USERNAME`` and
``ARENA_ADMIN_PASSWORD`` are set, the first startup creates that account
with the ``ADMIN`` role.

Idempotent — an existing account with that username is left untouched.
"""

from __future__ import annotations

import logging
import os

from sqlalchemy import Engine, select
from sqlalchemy.orm import Session

from arena.database.models import User, UserRole

logger = logging.getLogger(__name__)


def seed_admin(engine: Engine, username: str, password: str) -> bool:
    """Create *username* as an ADMIN unless it already exists.

    Returns ``True`` if a row was inserted.
    """
    from arena.services.user_service import hash_password

    with Session(engine) as session:
        existing = session.scalar(select(User.id).where(User.username == username))
        if existing is not None:
            return False
        session.add(User(
            username=username,
            password_hash=hash_password(password),
            role=UserRole.ADMIN,
        ))
        session.commit()

    logger.info("Seeded bootstrap admin account %r", username)
    return True


def seed_admin_from_env(engine: Engine) -> bool:
    """Seed the bootstrap admin from the environment, if configured."""
    username = os.getenv("ARENA_ADMIN_USERNAME", "").strip()
    password = os.getenv("ARENA_ADMIN_PASSWORD", "")
    if not username or not password:
        return False
    return seed_admin(engine, username, password)
