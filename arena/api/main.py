"""
arena.api.main — FastAPI application entry point
=================================================

Run with::

    uvicorn arena.api.main:app --reload --port 8000
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.staticfiles import StaticFiles

load_dotenv()

from arena.api.auth import router as auth_router  # noqa: E402
from arena.api.deps import get_engine  # noqa: E402
from arena.api.routes.admin import router as admin_router  # noqa: E402
from arena.api.routes.media import router as media_router  # noqa: E402
from arena.api.routes.profile import router as profile_router  # noqa: E402
from arena.api.routes.public import router as public_router  # noqa: E402
from arena.api.routes.roster import router as roster_router  # noqa: E402
from arena.database.engine import init_db  # noqa: E402
from arena.services.upload_service import UPLOAD_DIR, ensure_upload_dir  # noqa: E402

logger = logging.getLogger(__name__)


def _cors_origins() -> list[str]:
    """Resolve allowed CORS origins from env with safe defaults.

    Priority:
      1) CORS_ALLOW_ORIGINS (comma-separated)
      2) FRONTEND_URL (single origin)
    """
    raw = os.getenv("CORS_ALLOW_ORIGINS", "").strip()
    if raw:
        return [origin.strip().rstrip("/") for origin in raw.split(",") if origin.strip()]

    frontend_url = os.getenv("FRONTEND_URL", "").strip()
    if frontend_url:
        return [frontend_url.rstrip("/")]

    return []


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle — verify tables and seed the admin."""
    engine = get_engine()
    init_db(engine)
    logger.info("Arena API started — engine ready (%s)", engine.url.database)
    yield
    logger.info("Arena API shutting down")


app = FastAPI(
    title="Arena Club API",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Mount routers
app.include_router(auth_router, prefix="/api")
app.include_router(public_router, prefix="/api")
app.include_router(profile_router, prefix="/api")
app.include_router(admin_router, prefix="/api")
app.include_router(roster_router, prefix="/api")
app.include_router(media_router, prefix="/api")


@app.get("/api/health")
def health():
    return {"status": "ok"}


# Serve uploaded files as static assets
ensure_upload_dir()
app.mount(
    "/api/uploads",
    StaticFiles(directory=str(UPLOAD_DIR)),
    name="uploads",
)
