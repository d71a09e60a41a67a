"""
tests/test_cache.py — TTLCache Unit Tests
==========================================
"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from arena.engine.cache import TTLCache


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return TTLCache(ttl_seconds=300, clock=clock)


class TestTTLCache:
    def test_first_get_loads(self, cache):
        loader = MagicMock(return_value=["valorant"])
        assert cache.get(loader) == ["valorant"]
        loader.assert_called_once()
        assert cache.is_fresh

    def test_fresh_value_is_reused(self, cache, clock):
        loader = MagicMock(return_value=["valorant"])
        cache.get(loader)
        clock.now += 299
        cache.get(loader)
        loader.assert_called_once()

    def test_stale_value_is_reloaded(self, cache, clock):
        loader = MagicMock(side_effect=[["a"], ["a", "b"]])
        cache.get(loader)
        clock.now += 300
        assert not cache.is_fresh
        assert cache.get(loader) == ["a", "b"]
        assert loader.call_count == 2

    def test_invalidate_forces_reload(self, cache):
        loader = MagicMock(side_effect=[["a"], ["b"]])
        cache.get(loader)
        cache.invalidate()
        assert not cache.is_fresh
        assert cache.get(loader) == ["b"]

    def test_loader_error_leaves_cache_empty(self, cache):
        with pytest.raises(RuntimeError):
            cache.get(MagicMock(side_effect=RuntimeError("db down")))
        assert not cache.is_fresh
        assert cache.get(lambda: ["ok"]) == ["ok"]
