"""
AI service package for table extraction from PDF documents.

This package provides:
- extraction: Prompt, response schema and the deadline-bounded OpenAI call
- exceptions: Error classes surfaced to the API layer

The TableExtractionService class owns the credential check and the lazily
created OpenAI client.
"""

import logging
from typing import Any

# Handle both package imports and standalone imports
try:
    from ...config import get_settings
    from ...models import ExtractionResult, UploadedDocument
except ImportError:
    from config import get_settings
    from models import ExtractionResult, UploadedDocument

from .exceptions import AIServiceError, ConfigurationError, ExtractionTimeoutError
from .extraction import (
    EXTRACTION_PROMPT,
    RESPONSE_SCHEMA,
    build_extraction_messages,
    extract_tables as _extract_tables,
    parse_extraction_response,
)

logger = logging.getLogger(__name__)

__all__ = [
    "TableExtractionService",
    "AIServiceError",
    "ConfigurationError",
    "ExtractionTimeoutError",
    "EXTRACTION_PROMPT",
    "RESPONSE_SCHEMA",
    "build_extraction_messages",
    "parse_extraction_response",
    "get_ai_service",
]


class TableExtractionService:
    """
    Service for AI-powered table extraction.

    Sends the whole PDF to an OpenAI model in one request and returns the
    tables in three variants. Requests are single-shot: the SDK's retries
    are disabled and a deadline cancels slow calls.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "gpt-4.1",
        timeout: float | None = None,
        client: Any = None,
    ):
        """
        Initialize the AI service.

        Args:
            api_key: OpenAI API key. Checked on every extraction, not here.
            model: OpenAI model to use (must accept PDF file input).
            timeout: Deadline in seconds for each call, None for unbounded.
            client: Optional pre-built client, mainly for tests.
        """
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self._client = client

        if not self.api_key:
            logger.warning(
                "OPENAI_API_KEY is not set. Conversion requests will fail until it is configured."
            )

    def ensure_configured(self) -> None:
        """Raise ConfigurationError if no API key is available."""
        if not self.api_key or not self.api_key.strip():
            logger.error("OPENAI_API_KEY is missing")
            raise ConfigurationError(
                "Incomplete configuration: the AI provider API key is missing."
            )

    @property
    def client(self):
        """Lazy-load the OpenAI client."""
        if self._client is None:
            self.ensure_configured()
            from openai import AsyncOpenAI

            self._client = AsyncOpenAI(api_key=self.api_key, max_retries=0)
        return self._client

    async def extract_tables(self, document: UploadedDocument) -> ExtractionResult:
        """
        Extract all tables from a PDF.

        Delegates to the extraction module after the credential check.

        Args:
            document: The uploaded PDF.

        Returns:
            ExtractionResult with the three table variants.

        Raises:
            ConfigurationError: If the API key is not configured.
            ExtractionTimeoutError: If the deadline expires.
            AIServiceError: If the call fails or the reply cannot be parsed.
        """
        self.ensure_configured()
        return await _extract_tables(
            document,
            client=self.client,
            model=self.model,
            timeout=self.timeout,
        )


# =============================================================================
# Singleton Factory
# =============================================================================

_ai_service: TableExtractionService | None = None


def get_ai_service() -> TableExtractionService:
    """Get or create the AI service singleton."""
    global _ai_service
    if _ai_service is None:
        settings = get_settings()
        _ai_service = TableExtractionService(
            api_key=settings.openai_api_key,
            model=settings.openai_model,
            timeout=settings.ai_timeout,
        )
    return _ai_service
