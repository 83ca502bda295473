"""
Table extraction from PDF documents.

Sends the PDF to an OpenAI vision model as a file part and constrains the
reply to three table variants with a strict JSON schema.
"""

import asyncio
import base64
import json
import logging
from typing import Any

import openai
from pydantic import ValidationError

# Handle both package imports and standalone imports
try:
    from ...models import ExtractionResult, ExtractionVariant, UploadedDocument
except ImportError:
    from models import ExtractionResult, ExtractionVariant, UploadedDocument

from .exceptions import AIServiceError, ExtractionTimeoutError

logger = logging.getLogger(__name__)


# =============================================================================
# Extraction Prompts
# =============================================================================

EXTRACTION_SYSTEM_PROMPT = """You are a meticulous data transcription assistant.
You read PDF documents and copy every table you find into JSON, cell by cell.
Never invent values. Transcribe numbers, dates and currencies exactly as printed."""

EXTRACTION_PROMPT = """Extract all tables from the provided PDF.
Return the data as a JSON object with three keys:
1. "best_effort": The most accurate representation of the tables, merging headers and rows correctly.
2. "raw_data": A more literal extraction, keeping all cells even if they seem like noise.
3. "structured_view": A highly structured version optimized for data analysis (e.g. consistent columns).

Each key must contain an array of tables. Each table is an array of rows, and each row is an array of strings.
Example format:
{
  "best_effort": [ [["Col1", "Col2"], ["Val1", "Val2"]] ],
  "raw_data": [...],
  "structured_view": [...]
}
If no tables are found, return empty arrays."""


def _tables_schema() -> dict[str, Any]:
    return {
        "type": "array",
        "items": {
            "type": "array",
            "items": {"type": "array", "items": {"type": "string"}},
        },
    }


RESPONSE_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {variant.value: _tables_schema() for variant in ExtractionVariant},
    "required": [variant.value for variant in ExtractionVariant],
    "additionalProperties": False,
}

RESPONSE_FORMAT: dict[str, Any] = {
    "type": "json_schema",
    "json_schema": {
        "name": "table_extraction",
        "strict": True,
        "schema": RESPONSE_SCHEMA,
    },
}


# =============================================================================
# Helper Functions
# =============================================================================


def _pdf_to_data_url(content: bytes) -> str:
    """Encode PDF bytes as a base64 data URL for the API."""
    return "data:application/pdf;base64," + base64.b64encode(content).decode("utf-8")


def build_extraction_messages(document: UploadedDocument) -> list[dict[str, Any]]:
    """
    Build the chat messages carrying the instruction and the PDF.

    Args:
        document: The uploaded PDF.

    Returns:
        Messages for chat.completions.create.
    """
    return [
        {"role": "system", "content": EXTRACTION_SYSTEM_PROMPT},
        {
            "role": "user",
            "content": [
                {"type": "text", "text": EXTRACTION_PROMPT},
                {
                    "type": "file",
                    "file": {
                        "filename": document.filename or "document.pdf",
                        "file_data": _pdf_to_data_url(document.content),
                    },
                },
            ],
        },
    ]


def parse_extraction_response(content: str | None) -> ExtractionResult:
    """
    Parse the model's JSON reply into an ExtractionResult.

    A missing body is treated as an empty object, so all variants are empty.

    Raises:
        AIServiceError: If the reply is not JSON or has the wrong shape.
    """
    if not content or not content.strip():
        logger.warning("Empty response from OpenAI, treating as no tables")
        return ExtractionResult()

    try:
        response_data = json.loads(content)
    except json.JSONDecodeError as e:
        logger.error("Failed to parse extraction response: %s", content[:500])
        raise AIServiceError(f"Invalid JSON in extraction response: {e}") from e

    if not isinstance(response_data, dict):
        raise AIServiceError(
            f"Expected a JSON object from the AI, got {type(response_data).__name__}"
        )

    try:
        return ExtractionResult.model_validate(response_data)
    except ValidationError as e:
        logger.error("Extraction response has unexpected shape: %s", e)
        raise AIServiceError("The AI returned tables in an unexpected format") from e


# =============================================================================
# Main Extraction Function
# =============================================================================


async def extract_tables(
    document: UploadedDocument,
    client: Any,  # AsyncOpenAI client
    model: str = "gpt-4.1",
    timeout: float | None = None,
) -> ExtractionResult:
    """
    Extract all tables from a PDF in three variants with a single AI call.

    The call is cancelled once the deadline passes and is never retried.

    Args:
        document: The uploaded PDF.
        client: AsyncOpenAI client (or a compatible stand-in).
        model: OpenAI model that accepts PDF file input.
        timeout: Deadline in seconds, or None for no deadline.

    Returns:
        ExtractionResult with the three table variants.

    Raises:
        ExtractionTimeoutError: If the deadline expires.
        AIServiceError: If the call fails or the reply cannot be parsed.
    """
    messages = build_extraction_messages(document)

    logger.info(
        "Calling %s for %s (%d bytes, deadline=%s)",
        model,
        document.filename,
        document.size,
        f"{timeout:g}s" if timeout else "none",
    )

    try:
        response = await asyncio.wait_for(
            client.chat.completions.create(
                model=model,
                messages=messages,
                response_format=RESPONSE_FORMAT,
            ),
            timeout=timeout,
        )
    except (asyncio.TimeoutError, openai.APITimeoutError) as e:
        logger.warning("AI call exceeded deadline of %ss", timeout)
        raise ExtractionTimeoutError(
            "The AI took too long to respond. Try a smaller PDF."
        ) from e
    except openai.APIError as e:
        logger.error("OpenAI request failed: %s", e)
        raise AIServiceError(f"AI service error: {e}") from e

    if not response.choices:
        raise AIServiceError("Empty response from OpenAI")

    message = response.choices[0].message
    if getattr(message, "refusal", None):
        raise AIServiceError(f"The AI declined to process the document: {message.refusal}")

    result = parse_extraction_response(message.content)
    logger.info(
        "AI extraction succeeded: %s",
        ", ".join(f"{v.value}={len(result.tables_for(v))}" for v in ExtractionVariant),
    )
    return result
