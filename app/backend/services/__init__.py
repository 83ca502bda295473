"""
Services package for the PDF to Excel application.

Contains:
- upload_service: Size-limited PDF upload handling
- ai: OpenAI integration for table extraction
- workbook_service: Excel workbook assembly with openpyxl
"""

from .ai import TableExtractionService
from .upload_service import UploadService
from .workbook_service import WorkbookService

__all__ = ["UploadService", "TableExtractionService", "WorkbookService"]
