"""
Hearth Butler Backend — Report File Storage
=============================================

What:  Validates and stores uploaded medical report files (images and PDFs).
How:   Extension → size → MIME (magic bytes) checks, then an aiofiles write
       to storage/YYYY/MM/DD/<uuid>.<ext>. Only the relative path is stored
       in the database.

Security:
    - UUID filenames: no user input reaches the file system path
    - MIME sniffing catches renamed files (a .pdf that is really an .exe)
    - Size limit enforced on both Content-Length and the actual byte count
"""

import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Tuple

import aiofiles
import aiofiles.os

from hearth.config import settings
from hearth.exceptions import FileStorageError, ValidationError

logger = logging.getLogger(__name__)

ALLOWED_MIME_TYPES = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "application/pdf": ".pdf",
}

ALLOWED_EXTENSIONS = {".png", ".jpg", ".jpeg", ".pdf"}

_EXTENSION_MIME = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".pdf": "application/pdf",
}


class FileService:
    """Upload validation, storage and cleanup for report files."""

    def __init__(self, storage_root: Optional[str] = None):
        self.storage_root = Path(storage_root or settings.storage_root).resolve()
        self.storage_root.mkdir(parents=True, exist_ok=True)
        logger.info("FileService initialized with storage_root=%s", self.storage_root)

    def validate_extension(self, filename: str) -> str:
        ext = Path(filename).suffix.lower()
        if ext not in ALLOWED_EXTENSIONS:
            raise ValidationError(
                message=(
                    f"File type '{ext or 'unknown'}' is not supported. "
                    f"Allowed types: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
                ),
                field="file",
                context={"extension": ext},
            )
        return ext

    def validate_size(self, content_length: Optional[int], actual_size: int) -> None:
        max_mb = settings.max_file_size / (1024 * 1024)
        if actual_size == 0:
            raise ValidationError(message="The uploaded file is empty.", field="file")
        if (content_length and content_length > settings.max_file_size) or (
            actual_size > settings.max_file_size
        ):
            raise ValidationError(
                message=f"File size exceeds maximum of {max_mb:.0f}MB. Please upload a smaller file.",
                field="file",
                context={"max_size_mb": max_mb, "actual_size": actual_size},
            )

    def detect_mime_type(self, content: bytes, filename: str) -> str:
        """Sniffs the MIME type from magic bytes and rejects anything not allowed."""
        try:
            import magic
            mime_type = magic.from_buffer(content, mime=True)
        except ImportError:
            # libmagic missing (e.g. minimal CI images)
            logger.warning(
                "python-magic not available, falling back to extension-based type detection."
            )
            mime_type = _EXTENSION_MIME.get(Path(filename).suffix.lower(), "application/octet-stream")
        except Exception as e:
            logger.error("MIME type detection failed: %s", str(e))
            raise FileStorageError(
                message="Could not verify file type. Please try again.",
                context={"error": str(e)},
            )

        if mime_type not in ALLOWED_MIME_TYPES:
            raise ValidationError(
                message=(
                    f"File content type '{mime_type}' is not supported. "
                    "Upload a PNG, JPEG or PDF report."
                ),
                field="file",
                context={"detected_mime": mime_type},
            )
        return mime_type

    def _storage_path(self, extension: str) -> Tuple[Path, str]:
        date_dir = datetime.now(timezone.utc).strftime("%Y/%m/%d")
        relative_path = f"{date_dir}/{uuid.uuid4()}{extension}"
        return self.storage_root / relative_path, relative_path

    def absolute_path(self, relative_path: str) -> Path:
        return self.storage_root / relative_path

    async def store_file(self, content: bytes, extension: str) -> Tuple[str, str]:
        absolute_path, relative_path = self._storage_path(extension)
        try:
            absolute_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(absolute_path, "wb") as f:
                await f.write(content)
            logger.info("File stored: %s (%d bytes)", relative_path, len(content))
            return str(absolute_path), relative_path
        except OSError as e:
            logger.error("Failed to store file at %s: %s", absolute_path, str(e))
            raise FileStorageError(
                message="Failed to save the uploaded report. Please try again.",
                context={"os_error": str(e)},
            )

    async def cleanup_file(self, file_path: str) -> None:
        """Best-effort delete; a missing file is not an error."""
        path = Path(file_path)
        if not path.is_absolute():
            path = self.absolute_path(file_path)
        try:
            if await aiofiles.os.path.exists(path):
                await aiofiles.os.remove(path)
                logger.info("Cleaned up file: %s", path.name)
        except OSError as e:
            logger.warning("Failed to clean up file %s: %s", path.name, str(e))

    async def validate_and_store(
        self,
        filename: str,
        content: bytes,
        content_length: Optional[int] = None,
    ) -> Tuple[str, str, str]:
        """Returns (absolute_path, relative_path, mime_type)."""
        ext = self.validate_extension(filename)
        self.validate_size(content_length, len(content))
        mime_type = self.detect_mime_type(content, filename)
        if ext == ".jpeg":
            ext = ".jpg"
        absolute_path, relative_path = await self.store_file(content, ext)
        return absolute_path, relative_path, mime_type


file_service = FileService()
