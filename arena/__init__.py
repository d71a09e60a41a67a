"""
Arena — Backend for a Collegiate Esports Club Website
======================================================
Publishes the club's games and team rosters, takes join-form applications,
lets members manage a profile, and gives admins a dashboard to run games,
teams, player assignments and accounts without leaving dangling references.

Package layout::

    arena/
    ├── config.py          # YAML → typed Python config
    ├── constants.py       # Limits, slug formula
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine + session + async helper
    │   ├── models.py      # ORM models (games, teams, users, ...)
    │   └── seed.py        # Bootstrap admin account
    ├── engine/
    │   ├── analytics.py   # Page-view aggregation (pure)
    │   └── cache.py       # TTL cache for the games nav list
    ├── services/
    │   ├── roster_store.py     # Persistence seam for roster mutations
    │   ├── roster_service.py   # Game/Team/User cascade rules
    │   ├── admin_service.py    # Audit-logged game & team writes, roster views
    │   ├── user_service.py     # Accounts, profiles, password reset
    │   ├── applicant_service.py
    │   ├── analytics_service.py
    │   └── upload_service.py   # Image uploads on local disk
    └── api/
        ├── main.py        # FastAPI app
        ├── auth.py        # Username/password → JWT
        ├── rate_limit.py  # Per-admin mutation throttle
        └── routes/        # Public, profile, admin and roster endpoints
"""

__version__ = "0.1.0"
