"""
arena.constants — Shared Constants & Helpers
=============================================

Single source of truth for limits and the slug formula.
Import from here instead of duplicating in services and routes.
"""

from __future__ import annotations

import re

# ---------------------------------------------------------------------------
# Profiles & accounts
# ---------------------------------------------------------------------------
BIO_MAX_LENGTH = 150
BCRYPT_ROUNDS = 10
BCRYPT_MAX_PASSWORD_BYTES = 72  # bcrypt ignores / rejects anything longer
PASSWORD_RESET_TTL_MINUTES = 60

# ---------------------------------------------------------------------------
# Analytics
# ---------------------------------------------------------------------------
# Page views under these prefixes are never recorded.
UNTRACKED_PATH_PREFIXES: tuple[str, ...] = ("/admin", "/api")

# ---------------------------------------------------------------------------
# Games navigation
# ---------------------------------------------------------------------------
GAMES_NAV_CACHE_CONTROL = "public, s-maxage=300, stale-while-revalidate=600"

_SLUG_STRIP = re.compile(r"[^a-z0-9]+")


def slugify(name: str) -> str:
    """URL-friendly slug for a game name.

    Runs of anything that isn't ``[a-z0-9]`` collapse to a single dash and
    leading/trailing dashes are dropped::

        slugify("League of Legends")   # "league-of-legends"
        slugify("Rocket League!")      # "rocket-league"
    """
    return _SLUG_STRIP.sub("-", name.lower()).strip("-")
