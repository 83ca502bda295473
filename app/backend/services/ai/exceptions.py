"""
Shared exceptions for AI service modules.
"""


class AIServiceError(Exception):
    """Raised when the AI call fails or returns unusable content."""

    status_code = 500


class ConfigurationError(AIServiceError):
    """Raised when the AI provider credential is not configured."""


class ExtractionTimeoutError(AIServiceError):
    """Raised when the AI call does not finish before the deadline."""

    status_code = 504
