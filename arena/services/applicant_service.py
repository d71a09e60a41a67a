"""
arena.services.applicant_service — Join-form submissions
=========================================================

Applicants are prospective members who filled in the public join form.
They are not user accounts and are never edited after submission.
"""

from __future__ import annotations

import logging

from sqlalchemy import Engine, select
from sqlalchemy.orm import Session

from arena.database.engine import get_session
from arena.database.models import Applicant

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("first_name", "last_name", "discord", "phone", "email", "over18")


def submit_application(
    engine: Engine,
    *,
    first_name: str,
    last_name: str,
    discord: str,
    phone: str,
    email: str,
    over18: str,
    message: str | None = None,
) -> str:
    """Store a join-form submission and return its id.

    ``over18`` is the raw form value; only the literal ``"yes"`` counts.

    Raises
    ------
    ValueError
        If any required field is empty.
    """
    values = {
        "first_name": first_name,
        "last_name": last_name,
        "discord": discord,
        "phone": phone,
        "email": email,
        "over18": over18,
    }
    missing = [k for k in REQUIRED_FIELDS if not (values[k] or "").strip()]
    if missing:
        raise ValueError(f"Missing required fields: {', '.join(missing)}")

    with get_session(engine) as session:
        applicant = Applicant(
            first_name=first_name.strip(),
            last_name=last_name.strip(),
            email=email.strip(),
            discord_handle=discord.strip(),
            phone_number=phone.strip(),
            message=message or None,
            is_over_18=(over18 == "yes"),
        )
        session.add(applicant)
        session.flush()
        applicant_id = applicant.id

    logger.info("Application received (%s)", applicant_id)
    return applicant_id


def list_applicants(engine: Engine) -> list[dict]:
    with Session(engine) as session:
        rows = session.scalars(
            select(Applicant).order_by(Applicant.created_at.desc(), Applicant.id)
        ).all()
        return [
            {
                "id": a.id,
                "first_name": a.first_name,
                "last_name": a.last_name,
                "email": a.email,
                "discord_handle": a.discord_handle,
                "phone_number": a.phone_number,
                "message": a.message,
                "is_over_18": a.is_over_18,
                "created_at": a.created_at.isoformat() if a.created_at else None,
            }
            for a in rows
        ]
