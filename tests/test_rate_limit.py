"""
tests/test_rate_limit.py — Admin API Rate Limiting Tests
=========================================================
Admin mutation endpoints are rate-limited per admin user, returning 429
with a consistent error payload and a Retry-After header.
"""

from __future__ import annotations

import dataclasses

import pytest
from sqlalchemy import delete
from sqlalchemy.orm import Session

from arena.api.rate_limit import AdminRateLimiter
from arena.database.models import AdminRateLimitEvent
from conftest import auth, make_admin_token


# ---------------------------------------------------------------------------
# Unit tests for the AdminRateLimiter core (DB-backed)
# ---------------------------------------------------------------------------
class TestAdminRateLimiter:
    """Test the sliding-window rate limiter in isolation (DB-backed)."""

    @pytest.fixture(autouse=True)
    def _limiter(self, db_engine):
        self.engine = db_engine
        self.limiter = AdminRateLimiter(max_requests=5, window_seconds=60, engine=db_engine)

    def test_allows_requests_within_limit(self):
        for _ in range(5):
            allowed, _ = self.limiter.check("user1")
            assert allowed
            self.limiter.record("user1")

    def test_blocks_after_limit_exceeded(self):
        limiter = AdminRateLimiter(max_requests=3, window_seconds=60, engine=self.engine)
        for _ in range(3):
            limiter.record("user1")

        allowed, info = limiter.check("user1")
        assert not allowed
        assert info["remaining"] == 0
        assert 1 <= info["reset"] <= 61

    def test_separate_users_have_separate_limits(self):
        limiter = AdminRateLimiter(max_requests=2, window_seconds=60, engine=self.engine)
        limiter.record("user1")
        limiter.record("user1")

        allowed1, _ = limiter.check("user1")
        allowed2, _ = limiter.check("user2")
        assert not allowed1
        assert allowed2

    def test_remaining_count_decreases(self):
        _, info = self.limiter.check("user1")
        assert info["remaining"] == 5
        assert self.limiter.record("user1")["remaining"] == 4
        _, info = self.limiter.check("user1")
        assert info["remaining"] == 4

    def test_reset_clears_specific_user(self):
        limiter = AdminRateLimiter(max_requests=2, window_seconds=60, engine=self.engine)
        limiter.record("user1")
        limiter.record("user1")
        limiter.record("user2")

        limiter.reset("user1")

        allowed1, _ = limiter.check("user1")
        _, info2 = limiter.check("user2")
        assert allowed1
        assert info2["remaining"] == 1

    def test_reset_all(self):
        limiter = AdminRateLimiter(max_requests=1, window_seconds=60, engine=self.engine)
        limiter.record("user1")
        limiter.record("user2")
        limiter.reset()
        assert limiter.check("user1")[0]
        assert limiter.check("user2")[0]


# ---------------------------------------------------------------------------
# Integration tests with FastAPI TestClient
# ---------------------------------------------------------------------------
class TestRateLimitDependency:
    """The limit comes from config.yaml's admin_mutations_per_minute."""

    @pytest.fixture
    def test_config(self, test_config):
        return dataclasses.replace(test_config, admin_mutations_per_minute=3)

    @pytest.fixture(autouse=True)
    def _clean(self, db_engine):
        with Session(db_engine) as s:
            s.execute(delete(AdminRateLimitEvent))
            s.commit()

    def test_get_requests_not_rate_limited(self, client):
        headers = auth(make_admin_token(sub="admin-123"))
        for _ in range(10):
            assert client.get("/api/admin/users", headers=headers).status_code == 200

    def test_mutations_blocked_after_limit(self, client):
        headers = auth(make_admin_token(sub="admin-123"))
        for _ in range(3):
            resp = client.delete("/api/admin/teams/nonexistent", headers=headers)
            assert resp.status_code == 200

        resp = client.delete("/api/admin/teams/nonexistent", headers=headers)
        assert resp.status_code == 429
        assert int(resp.headers["Retry-After"]) >= 1
        detail = resp.json()["detail"]
        assert detail["error"] == "rate_limit_exceeded"
        assert "3 mutations per minute" in detail["message"]

    def test_limits_are_per_admin(self, client):
        first = auth(make_admin_token(sub="admin-123"))
        second = auth(make_admin_token(sub="admin-456"))
        for _ in range(3):
            client.delete("/api/admin/teams/nonexistent", headers=first)

        assert client.delete("/api/admin/teams/nonexistent", headers=first).status_code == 429
        assert client.delete("/api/admin/teams/nonexistent", headers=second).status_code == 200

    def test_unauthenticated_mutation_is_401_not_counted(self, client, db_engine):
        assert client.delete("/api/admin/teams/x").status_code == 401
        with Session(db_engine) as s:
            assert s.query(AdminRateLimitEvent).count() == 0
