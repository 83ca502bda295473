"""
Routers package for FastAPI endpoints.

- convert: PDF upload and Excel workbook generation
"""

from . import convert

__all__ = ["convert"]
