"""
arena.services.upload_service — Image upload handling
======================================================

Stores game artwork and profile pictures.  Files live in a configurable
``uploads/`` directory (Docker volume), one sub-directory per bucket, and
are served via a static-file endpoint under ``/api/uploads``.
"""

from __future__ import annotations

import asyncio
import os
import uuid
from pathlib import Path

UPLOAD_DIR = Path(os.getenv("ARENA_UPLOAD_DIR", "uploads"))
UPLOAD_URL_PREFIX = "/api/uploads"
MAX_FILE_SIZE = 5 * 1024 * 1024  # 5 MB

GAME_IMAGES = "game-images"
PROFILE_IMAGES = "profile-images"
BUCKETS = (GAME_IMAGES, PROFILE_IMAGES)

GAME_IMAGE_MIME_TYPES = {
    "image/jpeg",
    "image/png",
    "image/webp",
    "image/gif",
}

_EXTENSION_FOR_MIME = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
    "image/gif": ".gif",
}


def ensure_upload_dir(base: Path | None = None) -> None:
    """Create the upload directory and its buckets if they don't exist."""
    root = base or UPLOAD_DIR
    for bucket in BUCKETS:
        (root / bucket).mkdir(parents=True, exist_ok=True)


def _check_type(bucket: str, content_type: str | None) -> None:
    if not content_type:
        raise ValueError("Missing file content type.")
    if bucket == GAME_IMAGES:
        if content_type not in GAME_IMAGE_MIME_TYPES:
            raise ValueError("Invalid file type. Only JPEG, PNG, WebP, and GIF are allowed.")
    elif not content_type.startswith("image/"):
        raise ValueError("File must be an image.")


def _extension(filename: str, content_type: str) -> str:
    ext = Path(filename).suffix.lower()
    if ext and ext[1:].isalnum():
        return ext
    return _EXTENSION_FOR_MIME.get(content_type, "")


async def save_upload(
    bucket: str,
    filename: str,
    content: bytes,
    content_type: str | None = None,
    *,
    base: Path | None = None,
) -> str:
    """Validate and persist an uploaded image.

    Parameters
    ----------
    bucket:
        ``game-images`` or ``profile-images``.
    filename:
        Original filename from the upload.
    content:
        Raw file bytes.
    content_type:
        MIME type from the upload header.

    Returns
    -------
    str
        URL path to the saved file (e.g. ``/api/uploads/game-images/abc.png``).

    Raises
    ------
    ValueError
        If validation fails (unknown bucket, wrong type, too large, empty).
    """
    if bucket not in BUCKETS:
        raise ValueError(f"Unknown upload bucket: {bucket!r}")
    if not content:
        raise ValueError("No file provided.")
    if len(content) > MAX_FILE_SIZE:
        raise ValueError("File too large. Maximum size is 5MB.")
    _check_type(bucket, content_type)

    root = base or UPLOAD_DIR
    unique_name = f"{uuid.uuid4().hex}{_extension(filename, content_type)}"
    dest = root / bucket / unique_name
    dest.parent.mkdir(parents=True, exist_ok=True)

    # Offload blocking file I/O to a thread to avoid stalling the event loop
    await asyncio.to_thread(dest.write_bytes, content)

    return f"{UPLOAD_URL_PREFIX}/{bucket}/{unique_name}"


def delete_upload(
    url_path: str, *, bucket: str | None = None, base: Path | None = None
) -> bool:
    """Remove an uploaded file by its URL path.

    With *bucket*, only files in that bucket are touched.  Returns True if
    the file existed and was deleted.
    """
    prefix = f"{UPLOAD_URL_PREFIX}/"
    if not url_path.startswith(prefix):
        return False
    url_bucket, _, filename = url_path[len(prefix):].partition("/")
    if url_bucket not in BUCKETS or not filename or "/" in filename:
        return False
    if bucket is not None and url_bucket != bucket:
        return False
    filepath = (base or UPLOAD_DIR) / url_bucket / filename
    if filepath.exists() and filepath.is_file():
        filepath.unlink()
        return True
    return False
