"""
arena.services.analytics_service — Page-view recording & dashboard query
=========================================================================

Thin DB layer around :mod:`arena.engine.analytics`.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta

from sqlalchemy import Engine, select
from sqlalchemy.orm import Session

from arena.constants import UNTRACKED_PATH_PREFIXES
from arena.database.engine import get_session
from arena.database.models import PageView
from arena.engine.analytics import DEFAULT_TOP_PAGES, PageViewRow, summarize_page_views

logger = logging.getLogger(__name__)


def is_tracked_path(path: str) -> bool:
    return not any(path.startswith(prefix) for prefix in UNTRACKED_PATH_PREFIXES)


def record_page_view(
    engine: Engine,
    *,
    path: str,
    visitor_id: str,
    referrer: str | None = None,
    user_agent: str | None = None,
) -> bool:
    """Insert one page view.  Returns ``False`` if the path is not tracked.

    Raises
    ------
    ValueError
        If ``path`` or ``visitor_id`` is empty.
    """
    if not path or not visitor_id:
        raise ValueError("Missing required fields: path and visitorId are required.")
    if not is_tracked_path(path):
        return False

    with get_session(engine) as session:
        session.add(PageView(
            path=path,
            visitor_id=visitor_id,
            referrer=referrer or None,
            user_agent=user_agent or None,
        ))
    return True


def get_analytics(
    engine: Engine,
    days: int,
    *,
    top_n: int = DEFAULT_TOP_PAGES,
    now: datetime | None = None,
) -> dict:
    """Summarise the page views of the last *days* days."""
    now = now or datetime.now(UTC)
    since = now - timedelta(days=max(days, 0))

    with Session(engine) as session:
        rows = session.execute(
            select(PageView.path, PageView.visitor_id, PageView.created_at)
            .where(PageView.created_at >= since)
        ).all()

    logger.debug("Loaded %d page views since %s", len(rows), since.isoformat())
    return summarize_page_views(
        (PageViewRow(r.path, r.visitor_id, r.created_at) for r in rows),
        days=days,
        top_n=top_n,
    )
