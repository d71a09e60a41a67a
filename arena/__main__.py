"""
arena.__main__ — Entry point for ``python -m arena``
=====================================================

Wiring:
1. Load .env (secrets).
2. Load config.yaml (soft settings).
3. Serve :data:`arena.api.main.app` with uvicorn on ``api_port``.

Tables and the bootstrap admin are set up by the app's lifespan hook.

Run with::

    uv run python -m arena
"""

from __future__ import annotations

import logging
import os

import uvicorn
from dotenv import load_dotenv

from arena.config import load_config

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("arena")


def main() -> None:
    """Bootstrap and run the Arena API."""

    # 1. Environment variables (secrets).
    load_dotenv()

    # 2. Soft configuration.
    cfg = load_config(os.getenv("ARENA_CONFIG", "config.yaml"))
    logger.info("Config loaded — Site: %s", cfg.site_name)

    # 3. Serve (blocks until Ctrl+C or SIGTERM).
    logger.info("Starting Arena API on port %d…", cfg.api_port)
    uvicorn.run("arena.api.main:app", host="0.0.0.0", port=cfg.api_port, log_config=None)


if __name__ == "__main__":
    main()
