"""
Hearth Butler Backend — File Service Unit Tests
=================================================

What:  Tests for report upload validation (extension, size, MIME type) and storage.
Why:   File validation is a security boundary: renamed executables and
       oversized uploads must never reach the OCR pipeline.

What we test:
    ✅ Allowed extensions (.png, .jpg, .jpeg, .pdf), case-insensitive
    ✅ Rejected extensions (.gif, .exe, none)
    ✅ Size limits and empty files
    ✅ MIME sniffing result is enforced
    ✅ Files land in YYYY/MM/DD directories under UUID names
"""

import sys
from unittest.mock import MagicMock, patch

import pytest

from hearth.exceptions import ValidationError
from hearth.services.file_service import FileService


@pytest.fixture
def service(temp_storage):
    return FileService(storage_root=temp_storage)


def sniffed(mime_type: str):
    """Patches the magic module so sniffing returns `mime_type`."""
    fake_magic = MagicMock()
    fake_magic.from_buffer.return_value = mime_type
    return patch.dict(sys.modules, {"magic": fake_magic})


class TestFileValidation:

    # ── Extension Validation ──────────────────────────────────────────────

    @pytest.mark.parametrize("filename,expected", [
        ("report.jpg", ".jpg"),
        ("report.jpeg", ".jpeg"),
        ("report.png", ".png"),
        ("report.pdf", ".pdf"),
        ("REPORT.PDF", ".pdf"),
    ])
    def test_allowed_extensions(self, service, filename, expected):
        assert service.validate_extension(filename) == expected

    @pytest.mark.parametrize("filename", ["animation.gif", "malware.exe", "noextension"])
    def test_rejected_extensions(self, service, filename):
        with pytest.raises(ValidationError, match="not supported"):
            service.validate_extension(filename)

    # ── Size Validation ───────────────────────────────────────────────────

    def test_size_within_limit(self, service):
        service.validate_size(1000, 1000)

    def test_size_over_limit(self, service):
        too_big = 10_485_760 + 1
        with pytest.raises(ValidationError, match="exceeds maximum"):
            service.validate_size(None, too_big)

    def test_declared_content_length_over_limit(self, service):
        with pytest.raises(ValidationError, match="exceeds maximum"):
            service.validate_size(50_000_000, 10)

    def test_empty_file(self, service):
        with pytest.raises(ValidationError, match="empty"):
            service.validate_size(0, 0)

    # ── MIME Validation ───────────────────────────────────────────────────

    def test_mime_allowed(self, service, sample_image_bytes):
        with sniffed("image/jpeg"):
            assert service.detect_mime_type(sample_image_bytes, "scan.jpg") == "image/jpeg"

    def test_renamed_executable_rejected(self, service):
        with sniffed("application/x-dosexec"):
            with pytest.raises(ValidationError, match="not supported"):
                service.detect_mime_type(b"MZ\x90\x00", "report.pdf")


class TestFileStorage:

    @pytest.mark.asyncio
    async def test_validate_and_store_writes_dated_file(self, service, sample_image_bytes):
        with sniffed("image/jpeg"):
            _, rel_path, mime_type = await service.validate_and_store(
                filename="scan.jpeg",
                content=sample_image_bytes,
                content_length=len(sample_image_bytes),
            )

        assert mime_type == "image/jpeg"
        assert rel_path.count("/") == 3
        assert rel_path.endswith(".jpg")
        assert service.absolute_path(rel_path).read_bytes() == sample_image_bytes

    @pytest.mark.asyncio
    async def test_cleanup_file_removes_relative_path(self, service):
        _, rel_path = await service.store_file(b"%PDF-1.4", ".pdf")
        assert service.absolute_path(rel_path).exists()

        await service.cleanup_file(rel_path)
        assert not service.absolute_path(rel_path).exists()

    @pytest.mark.asyncio
    async def test_cleanup_file_nonexistent(self, service, tmp_path):
        await service.cleanup_file(str(tmp_path / "nonexistent.jpg"))
