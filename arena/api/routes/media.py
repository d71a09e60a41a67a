"""
arena.api.routes.media — Game artwork upload
=============================================
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Form, HTTPException, UploadFile
from sqlalchemy import Engine

from arena.api.deps import get_engine, get_games_cache
from arena.api.rate_limit import rate_limited_admin
from arena.database.engine import run_db
from arena.engine.cache import TTLCache
from arena.services import admin_service
from arena.services.upload_service import GAME_IMAGES, delete_upload, save_upload

router = APIRouter(prefix="/admin", tags=["admin"])
logger = logging.getLogger(__name__)


@router.post("/games/image")
async def upload_game_image(
    file: UploadFile,
    game_id: str | None = Form(None),
    engine: Engine = Depends(get_engine),
    cache: TTLCache = Depends(get_games_cache),
    admin: dict = Depends(rate_limited_admin),
):
    """Upload game artwork; with ``game_id``, also set it as that game's image.

    The game's previous artwork is removed from disk once replaced.
    """
    content = await file.read()
    try:
        url = await save_upload(
            GAME_IMAGES, file.filename or "game", content, file.content_type
        )
    except ValueError as exc:
        raise HTTPException(400, str(exc)) from exc

    if game_id:
        try:
            previous = await run_db(admin_service.get_game_image, engine, game_id)
            game = await run_db(
                admin_service.set_game_image,
                engine,
                game_id=game_id,
                image_url=url,
                actor_id=admin["sub"],
            )
        except Exception as exc:
            logger.exception("Failed to attach image %s to game %s", url, game_id)
            raise HTTPException(500, "Image uploaded but failed to update game") from exc
        if game is None:
            delete_upload(url, bucket=GAME_IMAGES)
            raise HTTPException(404, "Game not found")
        if previous and previous != url:
            delete_upload(previous, bucket=GAME_IMAGES)
        cache.invalidate()

    return {"success": True, "url": url}
