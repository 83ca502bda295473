"""
FastAPI application for the PDF to Excel conversion service.

Provides endpoints for:
- Converting the tables in an uploaded PDF into an .xlsx workbook
- Health checks
"""

import logging

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

# Handle both package imports (when running as module) and standalone imports (uvicorn main:app)
try:
    from .config import APP_VERSION, get_settings
    from .models import HealthResponse
    from .routers import convert
    from .services.ai import AIServiceError, get_ai_service
    from .services.upload_service import UploadError, get_upload_service
    from .services.workbook_service import EmptyWorkbookError, get_workbook_service
except ImportError:
    import sys
    from pathlib import Path
    # Add parent directory to path for standalone imports
    backend_dir = Path(__file__).parent
    if str(backend_dir) not in sys.path:
        sys.path.insert(0, str(backend_dir))
    from config import APP_VERSION, get_settings
    from models import HealthResponse
    from routers import convert
    from services.ai import AIServiceError, get_ai_service
    from services.upload_service import UploadError, get_upload_service
    from services.workbook_service import EmptyWorkbookError, get_workbook_service

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    logger.info("Starting PDF to Excel Service...")
    # Initialize services on startup
    get_upload_service()
    get_ai_service()
    get_workbook_service()
    logger.info(
        "Services initialized (max upload %g MB, AI deadline %s)",
        settings.max_upload_mb,
        f"{settings.ai_timeout:g}s" if settings.ai_timeout else "none",
    )
    yield
    logger.info("Shutting down PDF to Excel Service...")


# Create FastAPI application
app = FastAPI(
    title="PDF to Excel API",
    description="Extracts tables from PDF documents with AI and returns an Excel workbook",
    version=APP_VERSION,
    lifespan=lifespan,
)

# Configure CORS for the browser frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition"],
)


# =============================================================================
# Health Endpoints
# =============================================================================


@app.get("/", response_model=HealthResponse)
async def root() -> HealthResponse:
    """Root endpoint - health check."""
    return HealthResponse(status="healthy", version=APP_VERSION)


@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(status="healthy", version=APP_VERSION)


# =============================================================================
# Include Routers
# =============================================================================

app.include_router(convert.router)


# =============================================================================
# Exception Handlers
# =============================================================================


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@app.exception_handler(UploadError)
async def upload_error_handler(request: Request, exc: UploadError):
    """Handle missing, unacceptable and oversized uploads."""
    return _error_response(exc.status_code, str(exc))


@app.exception_handler(AIServiceError)
async def ai_service_error_handler(request: Request, exc: AIServiceError):
    """Handle configuration, timeout and upstream AI errors."""
    return _error_response(exc.status_code, str(exc))


@app.exception_handler(EmptyWorkbookError)
async def empty_workbook_error_handler(request: Request, exc: EmptyWorkbookError):
    """Handle extractions that produced no tables."""
    return _error_response(exc.status_code, str(exc))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Handle form fields of the wrong kind, e.g. a text value for the file."""
    logger.warning("Rejected malformed request: %s", exc.errors())
    return _error_response(
        status.HTTP_400_BAD_REQUEST, "Invalid upload: send the PDF in the 'pdf' file field."
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Render framework errors (bad multipart bodies, 404s) in the same shape."""
    return _error_response(exc.status_code, str(exc.detail))


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    """Handle anything unanticipated without leaking details."""
    logger.exception("Unexpected error handling %s", request.url.path)
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error"
    )
