"""
arena.api.routes.profile — Self-service profile endpoints
==========================================================
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, UploadFile
from pydantic import BaseModel
from sqlalchemy import Engine

from arena.api.deps import get_current_user, get_engine
from arena.database.engine import run_db
from arena.services import user_service
from arena.services.upload_service import PROFILE_IMAGES, delete_upload, save_upload

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/profile", tags=["profile"])


class ProfileUpdate(BaseModel):
    email: str | None = None
    bio: str | None = None
    preferred_role: str | None = None
    profile_image: str | None = None


@router.get("")
def get_profile(
    user: dict = Depends(get_current_user),
    engine: Engine = Depends(get_engine),
):
    profile = user_service.get_profile(engine, user["sub"])
    if profile is None:
        raise HTTPException(404, "User not found")
    return profile


@router.patch("")
def update_profile(
    body: ProfileUpdate,
    user: dict = Depends(get_current_user),
    engine: Engine = Depends(get_engine),
):
    """Update only the fields present in the request body."""
    fields = {k: getattr(body, k) for k in body.model_fields_set}
    try:
        profile = user_service.update_profile(engine, user["sub"], **fields)
    except ValueError as exc:
        raise HTTPException(400, str(exc)) from exc
    if profile is None:
        raise HTTPException(404, "User not found")
    return profile


@router.post("/image")
async def upload_profile_image(
    file: UploadFile,
    user: dict = Depends(get_current_user),
    engine: Engine = Depends(get_engine),
):
    """Upload a profile picture and point the caller's profile at it."""
    content = await file.read()
    try:
        url = await save_upload(
            PROFILE_IMAGES, file.filename or "avatar", content, file.content_type
        )
    except ValueError as exc:
        raise HTTPException(400, str(exc)) from exc

    try:
        current = await run_db(user_service.get_profile, engine, user["sub"])
        await run_db(user_service.update_profile, engine, user["sub"], profile_image=url)
    except Exception:
        # The file is stored either way; the client can retry the PATCH.
        logger.exception("Failed to set profile_image for user %s", user["sub"])
    else:
        previous = (current or {}).get("profile_image")
        if previous and previous != url:
            delete_upload(previous, bucket=PROFILE_IMAGES)

    return {"url": url}
