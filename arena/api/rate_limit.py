"""
arena.api.rate_limit — Per-Admin Mutation Rate Limiting
========================================================

Throttles admin write endpoints to ``admin_mutations_per_minute`` (config,
default 30) per admin account.

Uses a sliding-window counter keyed by admin user ID (JWT ``sub`` claim).
Returns HTTP 429 with a ``Retry-After`` header when the limit is exceeded.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime, timedelta
from typing import Any

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy import Engine, delete, func, select
from sqlalchemy.orm import Session

from arena.api.deps import get_config, get_current_admin, get_engine
from arena.config import ArenaConfig
from arena.database.models import AdminRateLimitEvent

logger = logging.getLogger(__name__)

DEFAULT_RATE_LIMIT = 30
DEFAULT_WINDOW_SECONDS = 60

# HTTP methods considered "mutations"
_MUTATION_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})


class AdminRateLimiter:
    """Sliding-window rate limiter keyed by admin user ID.

    State lives in the ``admin_rate_limit_events`` table so it survives
    restarts and is shared by every API worker.
    """

    def __init__(
        self,
        max_requests: int = DEFAULT_RATE_LIMIT,
        window_seconds: int = DEFAULT_WINDOW_SECONDS,
        *,
        engine: Engine,
    ) -> None:
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.engine = engine

    def _normalize_dt(self, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    def _prune(self, session: Session, admin_id: str, cutoff: datetime) -> None:
        session.execute(
            delete(AdminRateLimitEvent).where(
                AdminRateLimitEvent.admin_id == admin_id,
                AdminRateLimitEvent.timestamp < cutoff,
            )
        )

    def check(self, admin_id: str) -> tuple[bool, dict[str, Any]]:
        """Check if the admin is within rate limits.

        Returns (allowed, info) where info contains:
          - remaining: requests remaining in the window
          - reset: seconds until the oldest request expires
          - limit: the max requests per window
        """
        now = datetime.now(UTC)
        cutoff = now - timedelta(seconds=self.window_seconds)

        with Session(self.engine) as session:
            self._prune(session, admin_id, cutoff)
            timestamps = session.scalars(
                select(AdminRateLimitEvent.timestamp)
                .where(AdminRateLimitEvent.admin_id == admin_id)
                .order_by(AdminRateLimitEvent.timestamp.asc())
            ).all()
            session.commit()

        count = len(timestamps)
        if count >= self.max_requests:
            oldest = self._normalize_dt(timestamps[0])
            reset = (oldest + timedelta(seconds=self.window_seconds) - now).total_seconds()
            return False, {
                "remaining": 0,
                "reset": max(1, int(reset) + 1),
                "limit": self.max_requests,
            }

        return True, {
            "remaining": self.max_requests - count,
            "reset": self.window_seconds,
            "limit": self.max_requests,
        }

    def record(self, admin_id: str) -> dict[str, Any]:
        """Record an allowed request and return updated rate-limit info."""
        now = datetime.now(UTC)
        cutoff = now - timedelta(seconds=self.window_seconds)

        with Session(self.engine) as session:
            self._prune(session, admin_id, cutoff)
            session.add(AdminRateLimitEvent(admin_id=admin_id, timestamp=now))
            session.flush()
            count = session.scalar(
                select(func.count())
                .select_from(AdminRateLimitEvent)
                .where(AdminRateLimitEvent.admin_id == admin_id)
            ) or 0
            session.commit()

        return {
            "remaining": max(0, self.max_requests - count),
            "reset": self.window_seconds,
            "limit": self.max_requests,
        }

    def reset(self, admin_id: str | None = None) -> None:
        """Clear rate limit state. If admin_id is None, clear all."""
        with Session(self.engine) as session:
            if admin_id is None:
                session.execute(delete(AdminRateLimitEvent))
            else:
                session.execute(
                    delete(AdminRateLimitEvent).where(
                        AdminRateLimitEvent.admin_id == admin_id
                    )
                )
            session.commit()


# ---------------------------------------------------------------------------
# FastAPI dependency — chains after get_current_admin
# ---------------------------------------------------------------------------
async def rate_limited_admin(
    request: Request,
    admin: dict = Depends(get_current_admin),
    engine: Engine = Depends(get_engine),
    cfg: ArenaConfig = Depends(get_config),
) -> dict:
    """Validate the admin JWT *and* enforce per-admin mutation rate limits.

    GET/HEAD/OPTIONS requests pass through without rate-limit checks.
    Mutation methods (POST/PUT/PATCH/DELETE) are counted against the
    sliding-window limit.  Raises HTTP 429 when the limit is exceeded.
    """
    if request.method not in _MUTATION_METHODS:
        return admin

    limiter = AdminRateLimiter(
        max_requests=cfg.admin_mutations_per_minute,
        window_seconds=DEFAULT_WINDOW_SECONDS,
        engine=engine,
    )
    admin_id = admin["sub"]

    allowed, info = await asyncio.to_thread(limiter.check, admin_id)

    if not allowed:
        logger.warning(
            "Rate limit exceeded for admin %s: %d requests in %ds window",
            admin_id, limiter.max_requests, limiter.window_seconds,
        )
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail={
                "error": "rate_limit_exceeded",
                "message": (
                    f"Rate limit exceeded: {limiter.max_requests}"
                    " mutations per minute."
                ),
                "retry_after": info["reset"],
            },
            headers={"Retry-After": str(info["reset"])},
        )

    await asyncio.to_thread(limiter.record, admin_id)

    return admin
