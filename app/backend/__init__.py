"""
PDF to Excel Backend Application.

A FastAPI service that extracts the tables of an uploaded PDF with an
OpenAI vision model and returns them as an Excel workbook.
"""

from .config import APP_VERSION as __version__
