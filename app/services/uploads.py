"""Image upload validation and storage."""

import os
import re
import time
from pathlib import Path

from fastapi import UploadFile

from app.config import Settings, get_settings

ALLOWED_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".webp"}
PUBLIC_PREFIX = "/uploads/"

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


class UploadService:
    """Stores uploaded images under UPLOAD_DIR and serves them from /uploads."""

    def __init__(self, settings: Settings) -> None:
        self.upload_dir = Path(settings.UPLOAD_DIR)
        self.max_size_mb = settings.MAX_UPLOAD_SIZE_MB

    def validate_upload_metadata(self, filename: str, content_type: str | None) -> str | None:
        """Validate upload file metadata (extension + MIME). Returns error message or None if valid."""
        ext = Path(filename).suffix.lower()
        if ext not in ALLOWED_EXTENSIONS:
            return f"Unsupported file type '{ext}'. Allowed: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
        if content_type and not content_type.startswith("image/"):
            return f"Invalid content type '{content_type}'. Must be an image."
        return None

    def stored_name(self, filename: str) -> str:
        """Timestamp-prefixed, filesystem-safe name for an upload."""
        base = _UNSAFE_CHARS.sub("-", Path(filename).name).strip("-.") or "image"
        return f"{int(time.time() * 1000)}-{base}"

    async def store_file(self, upload: UploadFile) -> str:
        """Stream uploaded file to disk with size limit. Returns its public URL path.

        Raises ValueError if the file is invalid or exceeds max upload size.
        """
        error = self.validate_upload_metadata(upload.filename or "", upload.content_type)
        if error:
            raise ValueError(error)

        max_bytes = self.max_size_mb * 1024 * 1024
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        stored_filename = self.stored_name(upload.filename or "image")
        file_path = self.upload_dir / stored_filename
        file_size = 0
        chunk_size = 1024 * 64

        try:
            with open(file_path, "wb") as f:
                while True:
                    chunk = await upload.read(chunk_size)
                    if not chunk:
                        break
                    file_size += len(chunk)
                    if file_size > max_bytes:
                        raise ValueError(f"File too large. Maximum: {self.max_size_mb}MB")
                    f.write(chunk)
        except ValueError:
            if file_path.exists():
                os.remove(file_path)
            raise

        return PUBLIC_PREFIX + stored_filename

    def delete_file(self, public_path: str | None) -> None:
        """Remove a previously stored upload. External URLs are ignored."""
        if not public_path or not public_path.startswith(PUBLIC_PREFIX):
            return
        file_path = self.upload_dir / Path(public_path[len(PUBLIC_PREFIX) :]).name
        if file_path.exists():
            os.remove(file_path)


_upload_service: UploadService | None = None


def get_upload_service() -> UploadService:
    """Get singleton upload service instance."""
    global _upload_service
    if _upload_service is None:
        _upload_service = UploadService(get_settings())
    return _upload_service
