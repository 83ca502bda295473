"""
Spreadsheet assembly using openpyxl.

Turns the three extraction variants into named sheets and writes them to an
in-memory .xlsx file.
"""

import io
import logging

from openpyxl import Workbook
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

# Handle both package imports and standalone imports
try:
    from ..models import ExtractionResult, ExtractionVariant, Row, Sheet, Table
except ImportError:
    from models import ExtractionResult, ExtractionVariant, Row, Sheet, Table

logger = logging.getLogger(__name__)

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
MAX_COLUMN_WIDTH = 60


class EmptyWorkbookError(Exception):
    """Raised when there are no tables to write."""

    status_code = 500


def clean_cell(value: str) -> str:
    """Strip control characters that cannot be stored in a worksheet."""
    return ILLEGAL_CHARACTERS_RE.sub("", value)


def combine_tables(tables: list[Table]) -> list[Row]:
    """
    Concatenate tables into one row list.

    Exactly one empty row separates consecutive tables; none precedes the
    first table.
    """
    combined: list[Row] = []
    for index, table in enumerate(tables):
        if index > 0:
            combined.append([])
        combined.extend(list(row) for row in table)
    return combined


def assemble_sheets(result: ExtractionResult) -> list[Sheet]:
    """
    Build one sheet per variant that has at least one table.

    Sheets follow ExtractionVariant order: best effort, structured view, raw data.
    """
    sheets = []
    for variant in ExtractionVariant:
        tables = result.tables_for(variant)
        if not tables:
            continue
        sheets.append(Sheet(name=variant.sheet_name, rows=combine_tables(tables)))
    return sheets


class WorkbookService:
    """
    Service for writing extraction results as .xlsx workbooks.
    """

    def __init__(self, autosize_columns: bool = True):
        """
        Initialize the workbook service.

        Args:
            autosize_columns: Size each column to its longest cell.
        """
        self.autosize_columns = autosize_columns

    def render(self, sheets: list[Sheet]) -> bytes:
        """
        Serialize sheets to .xlsx bytes.

        Raises:
            EmptyWorkbookError: If there are no sheets, since an .xlsx
                file must contain at least one.
        """
        if not sheets:
            raise EmptyWorkbookError("No tables were found in the document.")

        wb = Workbook()
        # Drop the default sheet so only extracted ones remain
        wb.remove(wb.active)

        for sheet in sheets:
            ws = wb.create_sheet(title=sheet.name)
            self._write_rows(ws, sheet.rows)
            if self.autosize_columns:
                self._autosize(ws)

        buffer = io.BytesIO()
        wb.save(buffer)
        logger.info(
            "Wrote workbook with %d sheet(s): %s",
            len(sheets),
            ", ".join(s.name for s in sheets),
        )
        return buffer.getvalue()

    def build_workbook(self, result: ExtractionResult) -> bytes:
        """Assemble sheets from an extraction result and serialize them."""
        return self.render(assemble_sheets(result))

    def _write_rows(self, ws: Worksheet, rows: list[Row]) -> None:
        # Every cell is a literal string, never a formula
        for row_index, row in enumerate(rows, start=1):
            for column_index, value in enumerate(row, start=1):
                cell = ws.cell(row=row_index, column=column_index, value=clean_cell(value))
                cell.data_type = "s"

    def _autosize(self, ws: Worksheet) -> None:
        for index, column in enumerate(ws.iter_cols(), start=1):
            longest = max((len(str(c.value)) for c in column if c.value), default=0)
            if longest:
                ws.column_dimensions[get_column_letter(index)].width = min(
                    longest + 2, MAX_COLUMN_WIDTH
                )


# Singleton instance for convenience
_workbook_service: WorkbookService | None = None


def get_workbook_service() -> WorkbookService:
    """Get or create the workbook service singleton."""
    global _workbook_service
    if _workbook_service is None:
        _workbook_service = WorkbookService()
    return _workbook_service
