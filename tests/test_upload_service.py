"""
tests/test_upload_service.py — Image Upload Validation Tests
=============================================================
"""

from __future__ import annotations

import asyncio

import pytest

from arena.services.upload_service import (
    GAME_IMAGES,
    MAX_FILE_SIZE,
    PROFILE_IMAGES,
    delete_upload,
    save_upload,
)

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


def _save(tmp_path, bucket, filename, content, content_type):
    return asyncio.run(save_upload(bucket, filename, content, content_type, base=tmp_path))


class TestSaveUpload:
    def test_game_image_saved_under_bucket(self, tmp_path):
        url = _save(tmp_path, GAME_IMAGES, "logo.png", PNG, "image/png")
        assert url.startswith("/api/uploads/game-images/")
        assert url.endswith(".png")
        stored = tmp_path / "game-images" / url.rsplit("/", 1)[-1]
        assert stored.read_bytes() == PNG

    @pytest.mark.parametrize("mime", ["image/svg+xml", "image/bmp", "application/pdf"])
    def test_game_images_restrict_types(self, tmp_path, mime):
        with pytest.raises(ValueError, match="Invalid file type"):
            _save(tmp_path, GAME_IMAGES, "x.bin", PNG, mime)

    def test_profile_images_accept_any_image(self, tmp_path):
        url = _save(tmp_path, PROFILE_IMAGES, "me.bmp", PNG, "image/bmp")
        assert url.startswith("/api/uploads/profile-images/")

    def test_profile_images_reject_non_images(self, tmp_path):
        with pytest.raises(ValueError, match="must be an image"):
            _save(tmp_path, PROFILE_IMAGES, "cv.pdf", PNG, "application/pdf")

    def test_size_limit(self, tmp_path):
        _save(tmp_path, GAME_IMAGES, "ok.png", b"x" * MAX_FILE_SIZE, "image/png")
        with pytest.raises(ValueError, match="5MB"):
            _save(tmp_path, GAME_IMAGES, "big.png", b"x" * (MAX_FILE_SIZE + 1), "image/png")

    def test_empty_file(self, tmp_path):
        with pytest.raises(ValueError, match="No file"):
            _save(tmp_path, GAME_IMAGES, "x.png", b"", "image/png")

    def test_unknown_bucket(self, tmp_path):
        with pytest.raises(ValueError, match="bucket"):
            _save(tmp_path, "secrets", "x.png", PNG, "image/png")

    def test_extension_from_mime_when_filename_has_none(self, tmp_path):
        url = _save(tmp_path, GAME_IMAGES, "blob", PNG, "image/webp")
        assert url.endswith(".webp")


class TestDeleteUpload:
    def test_delete_existing(self, tmp_path):
        url = _save(tmp_path, GAME_IMAGES, "logo.png", PNG, "image/png")
        assert delete_upload(url, base=tmp_path) is True
        assert delete_upload(url, base=tmp_path) is False

    @pytest.mark.parametrize("url", [
        "https://cdn.example.com/x.png",
        "/api/uploads/other/x.png",
        "/api/uploads/game-images/../../etc/passwd",
    ])
    def test_refuses_foreign_paths(self, tmp_path, url):
        assert delete_upload(url, base=tmp_path) is False

    def test_bucket_restriction(self, tmp_path):
        url = _save(tmp_path, GAME_IMAGES, "logo.png", PNG, "image/png")
        assert delete_upload(url, bucket=PROFILE_IMAGES, base=tmp_path) is False
        assert delete_upload(url, bucket=GAME_IMAGES, base=tmp_path) is True
