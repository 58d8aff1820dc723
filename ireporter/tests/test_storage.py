"""
Local Media Storage Tests
=========================
"""

import asyncio
import io
import re
from pathlib import Path

import pytest
from fastapi import UploadFile
from starlette.datastructures import Headers

# Add parent to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from ireporter.errors import ValidationError
from ireporter.media import MediaFile
from ireporter.storage import LocalMediaStorage


def _upload(name: str, content_type: str, data: bytes = b"data") -> UploadFile:
    return UploadFile(
        file=io.BytesIO(data),
        filename=name,
        headers=Headers({"content-type": content_type}),
    )


@pytest.fixture
def storage(tmp_path):
    return LocalMediaStorage(base_path=str(tmp_path / "uploads"), max_bytes=16)


class TestLocalMediaStorage:

    def test_filename_shape(self, storage):
        name = storage.generate_filename("Photo.JPG")
        assert re.fullmatch(r"media-\d+-\d+\.jpg", name)

    def test_save_image(self, storage):
        saved = asyncio.run(storage.save(_upload("a.png", "image/png", b"png")))
        assert saved.mimetype == "image/png"
        assert storage.path_for(saved.filename).read_bytes() == b"png"

    def test_rejects_non_media(self, storage):
        with pytest.raises(ValidationError) as exc:
            asyncio.run(storage.save(_upload("notes.txt", "text/plain")))
        assert exc.value.message == "Only image and video files are allowed!"

    def test_rejects_oversize(self, storage):
        with pytest.raises(ValidationError):
            asyncio.run(storage.save(_upload("big.mp4", "video/mp4", b"x" * 17)))

    def test_failed_batch_removes_saved_files(self, storage):
        uploads = [_upload("a.jpg", "image/jpeg"), _upload("b.txt", "text/plain")]
        with pytest.raises(ValidationError):
            asyncio.run(storage.save_all(uploads))
        assert list(storage.base_path.iterdir()) == []

    def test_save_all_empty(self, storage):
        assert asyncio.run(storage.save_all(None)) == []

    def test_discard_missing_file_is_quiet(self, storage):
        storage.discard([MediaFile("gone.jpg", "image/jpeg")])

    def test_path_for_strips_directories(self, storage):
        assert storage.path_for("../../etc/passwd") == storage.base_path / "passwd"
