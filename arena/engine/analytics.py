"""
arena.engine.analytics — Page-view aggregation
===============================================

Pure functions: raw page-view rows in, dashboard numbers out.  No DB
access here; :mod:`arena.services.analytics_service` loads the rows.

Output shape::

    {
        "daily_data": [{"date": "2026-10-01", "views": 12, "visitors": 5}, ...],
        "top_pages": [{"path": "/", "views": 40}, ...],
        "summary": {
            "total_views": 120,
            "unique_visitors": 31,
            "avg_views_per_day": 4,
            "days": 30,
        },
    }
"""

from __future__ import annotations

import math
from collections import Counter, defaultdict
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime

DEFAULT_TOP_PAGES = 10


@dataclass(frozen=True, slots=True)
class PageViewRow:
    path: str
    visitor_id: str
    created_at: datetime


def _utc_date(ts: datetime) -> str:
    """Calendar day of *ts* in UTC.  Naive timestamps are taken as UTC."""
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=UTC)
    return ts.astimezone(UTC).date().isoformat()


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def daily_breakdown(rows: Iterable[PageViewRow]) -> list[dict]:
    """Views and distinct visitors per UTC day, oldest day first."""
    views: Counter[str] = Counter()
    visitors: defaultdict[str, set[str]] = defaultdict(set)
    for row in rows:
        day = _utc_date(row.created_at)
        views[day] += 1
        visitors[day].add(row.visitor_id)
    return [
        {"date": day, "views": views[day], "visitors": len(visitors[day])}
        for day in sorted(views)
    ]


def top_pages(rows: Iterable[PageViewRow], limit: int = DEFAULT_TOP_PAGES) -> list[dict]:
    """The *limit* most viewed paths, most viewed first (ties by path)."""
    counts = Counter(row.path for row in rows)
    ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    return [{"path": path, "views": n} for path, n in ranked[:limit]]


def summarize_page_views(
    rows: Iterable[PageViewRow],
    *,
    days: int,
    top_n: int = DEFAULT_TOP_PAGES,
) -> dict:
    """Aggregate *rows* (already restricted to the last *days* days)."""
    rows = list(rows)
    total = len(rows)
    return {
        "daily_data": daily_breakdown(rows),
        "top_pages": top_pages(rows, top_n),
        "summary": {
            "total_views": total,
            "unique_visitors": len({row.visitor_id for row in rows}),
            "avg_views_per_day": _round_half_up(total / days) if days > 0 else 0,
            "days": days,
        },
    }
