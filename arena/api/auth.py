"""
arena.api.auth — Username/password login + JWT issuance
========================================================
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy import Engine

from arena.api.deps import get_config, get_current_user, get_engine, issue_token
from arena.config import ArenaConfig
from arena.services import user_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/auth", tags=["auth"])

FORGOT_PASSWORD_RESPONSE = {
    "message": "If an account exists with that email, a reset link has been sent.",
}


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class Credentials(BaseModel):
    username: str = ""
    password: str = ""


class ForgotPassword(BaseModel):
    email: str = ""


class ResetPassword(BaseModel):
    token: str = ""
    password: str = ""


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------
@router.post("/register", status_code=201)
def register(
    body: Credentials,
    engine: Engine = Depends(get_engine),
    cfg: ArenaConfig = Depends(get_config),
):
    """Create a ``USER`` account and log it in."""
    try:
        user = user_service.register_user(
            engine, username=body.username, password=body.password
        )
    except user_service.UsernameTaken as exc:
        raise HTTPException(409, str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(400, str(exc)) from exc
    return {"user": user, "token": issue_token(user, hours=cfg.session_hours)}


@router.post("/login")
def login(
    body: Credentials,
    engine: Engine = Depends(get_engine),
    cfg: ArenaConfig = Depends(get_config),
):
    """Exchange username/password for a JWT."""
    if not body.username or not body.password:
        raise HTTPException(400, "Username and password are required.")
    user = user_service.authenticate(engine, username=body.username, password=body.password)
    if user is None:
        logger.info("Failed login for %r", body.username)
        raise HTTPException(401, "Invalid username or password.")
    return {"user": user, "token": issue_token(user, hours=cfg.session_hours)}


@router.get("/me")
def me(
    current: dict = Depends(get_current_user),
    engine: Engine = Depends(get_engine),
):
    """Return the current account, re-read so role changes show up."""
    user = user_service.get_user(engine, current["sub"])
    if user is None:
        raise HTTPException(401, "Account no longer exists")
    return {**user, "is_admin": user["role"] == "ADMIN"}


@router.post("/forgot-password")
def forgot_password(body: ForgotPassword, engine: Engine = Depends(get_engine)):
    """Issue a reset link.  The response never reveals whether the email exists."""
    if not body.email.strip():
        raise HTTPException(400, "Email is required.")
    user_service.issue_password_reset(engine, body.email)
    return FORGOT_PASSWORD_RESPONSE


@router.post("/reset-password")
def reset_password(body: ResetPassword, engine: Engine = Depends(get_engine)):
    try:
        ok = user_service.reset_password(
            engine, token=body.token, new_password=body.password
        )
    except ValueError as exc:
        raise HTTPException(400, str(exc)) from exc
    if not ok:
        raise HTTPException(400, "Invalid or expired reset token.")
    return {"message": "Password has been reset."}
