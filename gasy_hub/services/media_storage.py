"""
Media storage - saves uploaded alert photos/videos to UPLOAD_DIR.

Stored files are referenced as "/uploads/<filename>" and served by the
static mount in gasy_hub.main.
"""

import os
import random
import time
from typing import List, Optional
import logging

from fastapi import UploadFile

from gasy_hub.core.errors import StorageError, ValidationError
from gasy_hub.core.settings import settings

logger = logging.getLogger(__name__)

ALLOWED_MIME_PREFIXES = ("image/", "video/")
PUBLIC_PREFIX = "/uploads"
CHUNK_SIZE = 1024 * 1024


class MediaStorage:
    """Writes uploads to disk with size and type checks."""

    def __init__(
        self,
        upload_dir: Optional[str] = None,
        max_upload_mb: Optional[int] = None,
        max_files: Optional[int] = None,
    ):
        self.upload_dir = upload_dir or settings.UPLOAD_DIR
        self.max_bytes = (max_upload_mb or settings.MAX_UPLOAD_MB) * 1024 * 1024
        self.max_files = max_files or settings.MAX_MEDIA_FILES

    def _unique_filename(self, original_name: str) -> str:
        extension = os.path.splitext(original_name)[1].lower()
        return f"{int(time.time() * 1000)}-{random.randint(0, 10**9)}{extension}"

    def save_upload(self, uploaded_file: UploadFile) -> str:
        """
        Save one file and return its public path.

        Raises:
            ValidationError: unsupported type, missing name or too large
            StorageError: the file could not be written
        """
        if not uploaded_file.filename:
            raise ValidationError("Uploaded file has no filename")

        content_type = uploaded_file.content_type or ""
        if not content_type.startswith(ALLOWED_MIME_PREFIXES):
            raise ValidationError("Unsupported file type. Only images and videos are allowed.")

        os.makedirs(self.upload_dir, exist_ok=True)
        filename = self._unique_filename(uploaded_file.filename)
        file_path = os.path.join(self.upload_dir, filename)

        written = 0
        try:
            with open(file_path, "wb") as buffer:
                while True:
                    chunk = uploaded_file.file.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    written += len(chunk)
                    if written > self.max_bytes:
                        break
                    buffer.write(chunk)
        except OSError as e:
            logger.error(f"Failed to save file {uploaded_file.filename}: {e}", exc_info=True)
            self._discard(file_path)
            raise StorageError("Failed to store uploaded file") from e

        if written > self.max_bytes:
            self._discard(file_path)
            raise ValidationError(f"File {uploaded_file.filename} exceeds {self.max_bytes // (1024 * 1024)} MB")

        logger.debug(f"File saved: {file_path} ({written} bytes)")
        return f"{PUBLIC_PREFIX}/{filename}"

    def save_uploads(self, files: List[UploadFile]) -> List[str]:
        """Save all files or none of them."""
        files = [f for f in files or [] if f is not None and f.filename]
        if len(files) > self.max_files:
            raise ValidationError(f"At most {self.max_files} media files are allowed")

        saved: List[str] = []
        try:
            for uploaded_file in files:
                saved.append(self.save_upload(uploaded_file))
        except Exception:
            self.delete(saved)
            raise
        return saved

    def delete(self, public_paths: List[str]) -> None:
        """Remove stored files; references that are not local uploads are ignored."""
        for public_path in public_paths or []:
            if not public_path.startswith(PUBLIC_PREFIX + "/"):
                continue
            self._discard(os.path.join(self.upload_dir, os.path.basename(public_path)))

    def _discard(self, file_path: str) -> None:
        try:
            if os.path.exists(file_path):
                os.remove(file_path)
        except OSError as e:
            logger.warning(f"Could not remove {file_path}: {e}")


def get_media_storage() -> MediaStorage:
    return MediaStorage()
