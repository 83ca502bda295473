"""
Upload handling for incoming PDF files.

Reads a single multipart file into memory under a size ceiling. Only the
declared content type and filename are checked; the bytes themselves are
passed through to the AI service untouched.
"""

import logging

from fastapi import UploadFile

# Handle both package imports and standalone imports
try:
    from ..config import get_settings
    from ..models import UploadedDocument
except ImportError:
    from config import get_settings
    from models import UploadedDocument

logger = logging.getLogger(__name__)

PDF_CONTENT_TYPE = "application/pdf"
CHUNK_SIZE = 1024 * 1024


class UploadError(Exception):
    """Raised when an uploaded file is missing or unacceptable."""

    status_code = 400


class FileTooLargeError(UploadError):
    """Raised when an uploaded file exceeds the size ceiling."""

    status_code = 413


class UploadService:
    """
    Service for accepting PDF uploads.

    Buffers the file in memory, stopping as soon as the ceiling is crossed.
    """

    def __init__(self, max_bytes: int):
        """
        Initialize the upload service.

        Args:
            max_bytes: Largest accepted file size in bytes.
        """
        self.max_bytes = max_bytes

    @property
    def max_megabytes(self) -> float:
        return self.max_bytes / (1024 * 1024)

    def is_pdf(self, filename: str | None, content_type: str | None) -> bool:
        """Check the declared media type or, failing that, the extension."""
        if content_type and content_type.split(";")[0].strip().lower() == PDF_CONTENT_TYPE:
            return True
        return bool(filename) and filename.lower().endswith(".pdf")

    async def read_upload(self, file: UploadFile | None) -> UploadedDocument:
        """
        Validate and buffer an uploaded PDF.

        Args:
            file: The multipart file part, or None if the field was absent.

        Returns:
            UploadedDocument holding the file bytes.

        Raises:
            UploadError: If no file was sent, it is not a PDF, or it is empty.
            FileTooLargeError: If the file exceeds the size ceiling.
        """
        if file is None:
            raise UploadError("No PDF file was received.")

        try:
            if not self.is_pdf(file.filename, file.content_type):
                raise UploadError("Only PDF files are accepted.")

            # Starlette records the size once the part is parsed
            if file.size is not None and file.size > self.max_bytes:
                raise self._too_large()

            content = await self._read_limited(file)
            if not content:
                raise UploadError("Empty file provided.")

            logger.info("Accepted upload: %s (%d bytes)", file.filename, len(content))
            return UploadedDocument(
                filename=file.filename or "",
                content_type=file.content_type,
                content=content,
            )
        finally:
            await file.close()

    async def _read_limited(self, file: UploadFile) -> bytes:
        buffer = bytearray()
        while True:
            chunk = await file.read(CHUNK_SIZE)
            if not chunk:
                break
            buffer.extend(chunk)
            if len(buffer) > self.max_bytes:
                raise self._too_large()
        return bytes(buffer)

    def _too_large(self) -> FileTooLargeError:
        logger.warning("Rejected upload over %d bytes", self.max_bytes)
        return FileTooLargeError(
            f"The file is too large. The limit is {self.max_megabytes:g} MB."
        )


# =============================================================================
# Singleton Factory
# =============================================================================

_upload_service: UploadService | None = None


def get_upload_service() -> UploadService:
    """Get or create the upload service singleton."""
    global _upload_service
    if _upload_service is None:
        _upload_service = UploadService(max_bytes=get_settings().max_upload_bytes)
    return _upload_service
