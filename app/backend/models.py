"""
Pydantic models for the PDF table conversion pipeline.

Defines the uploaded document, the three-variant extraction result returned
by the AI, the sheets assembled from it, and the API response bodies.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator

# A table is a list of rows, a row is a list of string cells.
Row = list[str]
Table = list[Row]


class ExtractionVariant(str, Enum):
    """
    Extraction strategies requested from the AI in a single call.

    Declaration order is the sheet order in the generated workbook.
    """

    BEST_EFFORT = "best_effort"
    STRUCTURED_VIEW = "structured_view"
    RAW_DATA = "raw_data"

    @property
    def sheet_name(self) -> str:
        """Human-readable sheet title for this variant."""
        return SHEET_NAMES[self]


SHEET_NAMES: dict[ExtractionVariant, str] = {
    ExtractionVariant.BEST_EFFORT: "Best Effort",
    ExtractionVariant.STRUCTURED_VIEW: "Structured View",
    ExtractionVariant.RAW_DATA: "Raw Data",
}


class UploadedDocument(BaseModel):
    """
    A PDF received from the client, held in memory for one request.

    Attributes:
        filename: Client-supplied filename (may be empty).
        content_type: Declared media type of the upload part.
        content: Raw file bytes.
    """

    filename: str = Field(default="")
    content_type: str | None = Field(default=None)
    content: bytes = Field(..., repr=False)

    @property
    def size(self) -> int:
        return len(self.content)


class ExtractionResult(BaseModel):
    """
    Tables returned by the AI, one collection per extraction variant.

    Missing or null collections become empty lists. Null cells become empty
    strings and scalar cells are stringified, so a slightly loose reply still
    produces a workbook.
    """

    best_effort: list[Table] = Field(
        default_factory=list,
        description="Most accurate representation of the tables",
    )
    raw_data: list[Table] = Field(
        default_factory=list,
        description="Literal extraction, keeping every cell",
    )
    structured_view: list[Table] = Field(
        default_factory=list,
        description="Consistent columns, optimized for analysis",
    )

    @field_validator("best_effort", "raw_data", "structured_view", mode="before")
    @classmethod
    def normalize_tables(cls, v: Any) -> Any:
        """Treat null as empty and coerce scalar cells to strings."""
        if v is None:
            return []
        if not isinstance(v, list):
            return v  # let list validation reject it
        return [_normalize_table(table) for table in v]

    def tables_for(self, variant: ExtractionVariant) -> list[Table]:
        """Return the tables extracted for a variant."""
        return getattr(self, variant.value)

    @property
    def table_count(self) -> int:
        return sum(len(self.tables_for(variant)) for variant in ExtractionVariant)


def _normalize_table(table: Any) -> Any:
    if table is None:
        return []
    if not isinstance(table, list):
        return table
    return [_normalize_row(row) for row in table]


def _normalize_row(row: Any) -> Any:
    if row is None:
        return []
    if not isinstance(row, list):
        return row
    return [_normalize_cell(cell) for cell in row]


def _normalize_cell(cell: Any) -> Any:
    if cell is None:
        return ""
    if isinstance(cell, bool):
        return "true" if cell else "false"
    if isinstance(cell, (int, float)):
        return str(cell)
    return cell


class Sheet(BaseModel):
    """A named worksheet of row-major string cells."""

    name: str = Field(..., min_length=1, max_length=31)
    rows: list[Row] = Field(default_factory=list)


# =============================================================================
# API Response Models
# =============================================================================


class ErrorResponse(BaseModel):
    """Error body returned for every failed request."""

    error: str = Field(..., description="Human-readable error message")


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(default="healthy")
    version: str = Field(default="1.0.0")
