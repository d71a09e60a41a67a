"""
arena.config — YAML Configuration Loader
=========================================

**Why this file exists:**
This module reads ``config.yaml`` for the club's **infrastructure and
policy** settings (site identity, session lifetime, cache TTLs, admin
throttling, roster policy).  Secrets (``DATABASE_URL``, ``JWT_SECRET``)
never live here; they come from the environment / ``.env``.

Usage::

    from arena.config import load_config

    cfg = load_config()          # reads ./config.yaml by default
    print(cfg.site_name)         # "CCC Esports"
    print(cfg.session_hours)     # 12
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import yaml


# ---------------------------------------------------------------------------
# Typed settings object
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class ArenaConfig:
    """Immutable configuration loaded from ``config.yaml``."""

    # Identity
    site_name: str
    site_url: str

    # API
    api_port: int
    session_hours: int  # Lifetime of an issued login token

    # Caching / analytics
    games_cache_ttl_seconds: int = 300
    analytics_default_days: int = 30
    analytics_top_pages: int = 10

    # Admin / roster policy
    admin_mutations_per_minute: int = 30
    enforce_team_capacity: bool = False  # Reject assignments to full teams


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(path: str | Path = "config.yaml") -> ArenaConfig:
    """Read *path* and return an :class:`ArenaConfig` instance.

    Parameters
    ----------
    path:
        Filesystem path to the YAML configuration file.
        Defaults to ``config.yaml`` in the current working directory.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    KeyError
        If a required key is missing from the YAML file.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml.example → config.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh) or {}

    roster = raw.get("roster") or {}
    return ArenaConfig(
        site_name=raw["site_name"],
        site_url=str(raw["site_url"]).rstrip("/"),
        api_port=int(raw["api_port"]),
        session_hours=int(raw["session_hours"]),
        games_cache_ttl_seconds=int(raw.get("games_cache_ttl_seconds", 300)),
        analytics_default_days=int(raw.get("analytics_default_days", 30)),
        analytics_top_pages=int(raw.get("analytics_top_pages", 10)),
        admin_mutations_per_minute=int(raw.get("admin_mutations_per_minute", 30)),
        enforce_team_capacity=bool(roster.get("enforce_team_capacity", False)),
    )
