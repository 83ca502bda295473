"""
Router for PDF to spreadsheet conversion.

Handles:
- Receiving a PDF upload under a size ceiling
- Extracting its tables with the AI service
- Returning the tables as an .xlsx workbook
"""

import logging
import re
from pathlib import PurePath
from typing import Annotated

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.responses import Response

# Handle both package imports and standalone imports
try:
    from ..models import ErrorResponse
    from ..services.ai import TableExtractionService, get_ai_service
    from ..services.upload_service import UploadService, get_upload_service
    from ..services.workbook_service import (
        XLSX_MEDIA_TYPE,
        WorkbookService,
        get_workbook_service,
    )
except ImportError:
    from models import ErrorResponse
    from services.ai import TableExtractionService, get_ai_service
    from services.upload_service import UploadService, get_upload_service
    from services.workbook_service import (
        XLSX_MEDIA_TYPE,
        WorkbookService,
        get_workbook_service,
    )

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["convert"])

DEFAULT_DOWNLOAD_NAME = "converted_tables.xlsx"


def download_filename(pdf_filename: str | None) -> str:
    """Derive an ASCII-safe .xlsx filename from the uploaded PDF's name."""
    if not pdf_filename:
        return DEFAULT_DOWNLOAD_NAME
    stem = PurePath(pdf_filename.replace("\\", "/")).stem
    stem = re.sub(r"[^A-Za-z0-9._-]+", "_", stem).strip("._")
    return f"{stem}.xlsx" if stem else DEFAULT_DOWNLOAD_NAME


@router.post(
    "/convert",
    response_class=Response,
    responses={
        200: {"content": {XLSX_MEDIA_TYPE: {}}, "description": "Generated workbook"},
        400: {"model": ErrorResponse},
        413: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
        504: {"model": ErrorResponse},
    },
)
async def convert_pdf(
    upload_service: Annotated[UploadService, Depends(get_upload_service)],
    ai_service: Annotated[TableExtractionService, Depends(get_ai_service)],
    workbook_service: Annotated[WorkbookService, Depends(get_workbook_service)],
    pdf: Annotated[UploadFile | None, File(description="PDF file to convert")] = None,
) -> Response:
    """
    Convert the tables in a PDF into an Excel workbook.

    The workbook has one sheet per extraction variant that found tables.
    Failures are raised as service exceptions and rendered as
    {"error": message} by the handlers registered in main.
    """
    logger.info("Conversion request received")

    document = await upload_service.read_upload(pdf)
    result = await ai_service.extract_tables(document)
    content = workbook_service.build_workbook(result)

    filename = download_filename(document.filename)
    logger.info("Sending %s (%d bytes)", filename, len(content))
    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
