"""
Local Media Storage
===================

Saves multipart uploads under UPLOAD_DIR and returns MediaFile descriptors.
Only image/* and video/* uploads are accepted; files are served back
under /uploads/<filename>.
"""

import logging
import secrets
import time
from pathlib import Path
from typing import Iterable, List, Optional

from fastapi import UploadFile

from .config import get_settings
from .errors import ValidationError
from .media import MediaFile, is_media_type

logger = logging.getLogger(__name__)

UPLOAD_FIELD = "media"


class LocalMediaStorage:
    """Disk storage for report media"""

    def __init__(self, base_path: Optional[str] = None, max_bytes: Optional[int] = None):
        settings = get_settings()
        self.base_path = Path(base_path or settings.upload_dir)
        self.max_bytes = max_bytes or settings.max_upload_bytes
        self.base_path.mkdir(parents=True, exist_ok=True)

    def generate_filename(self, original_name: Optional[str], field: str = UPLOAD_FIELD) -> str:
        """<field>-<epoch ms>-<random><ext>"""
        suffix = Path(original_name or "").suffix.lower()
        return f"{field}-{int(time.time() * 1000)}-{secrets.randbelow(10 ** 9)}{suffix}"

    def path_for(self, filename: str) -> Path:
        return self.base_path / Path(filename).name

    async def save(self, upload: UploadFile, field: str = UPLOAD_FIELD) -> MediaFile:
        mimetype = (upload.content_type or "").lower()
        if not is_media_type(mimetype):
            raise ValidationError("Only image and video files are allowed!")

        data = await upload.read()
        if len(data) > self.max_bytes:
            raise ValidationError(
                f"File too large: {upload.filename} (max {self.max_bytes // (1024 * 1024)}MB)"
            )

        filename = self.generate_filename(upload.filename, field)
        self.path_for(filename).write_bytes(data)
        logger.info(f"Stored upload {upload.filename!r} as {filename} ({len(data)} bytes)")
        return MediaFile(filename=filename, mimetype=mimetype)

    async def save_all(self, uploads: Optional[Iterable[UploadFile]]) -> List[MediaFile]:
        """Save a batch; a rejected file removes the ones already written"""
        saved: List[MediaFile] = []
        try:
            for upload in uploads or []:
                if upload is None or not upload.filename:
                    continue
                saved.append(await self.save(upload))
        except Exception:
            self.discard(saved)
            raise
        return saved

    def discard(self, files: Iterable[MediaFile]) -> None:
        """Remove files that never made it into a report"""
        for f in files:
            try:
                self.path_for(f.filename).unlink(missing_ok=True)
            except OSError as e:
                logger.warning(f"Failed to remove orphaned upload {f.filename}: {e}")


def get_media_storage() -> LocalMediaStorage:
    return LocalMediaStorage()
