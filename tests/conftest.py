"""Pytest configuration and fixtures."""

import asyncio
import io
import json
from types import SimpleNamespace
from typing import Any, Generator

import pytest
from fastapi.testclient import TestClient
from openpyxl import load_workbook

from app.backend.main import app
from app.backend.services.ai import TableExtractionService, get_ai_service
from app.backend.services.upload_service import UploadService, get_upload_service


class FakeCompletions:
    """Stand-in for client.chat.completions that records every call."""

    def __init__(self, content: str | None = None, delay: float = 0.0, error: Exception | None = None):
        self.content = content
        self.delay = delay
        self.error = error
        self.calls: list[dict[str, Any]] = []

    async def create(self, **kwargs: Any) -> SimpleNamespace:
        self.calls.append(kwargs)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        message = SimpleNamespace(content=self.content, refusal=None)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class FakeOpenAIClient:
    """Minimal AsyncOpenAI replacement exposing chat.completions.create."""

    def __init__(self, **kwargs: Any):
        self.completions = FakeCompletions(**kwargs)
        self.chat = SimpleNamespace(completions=self.completions)

    @property
    def calls(self) -> list[dict[str, Any]]:
        return self.completions.calls


def make_reply(
    best_effort: Any = None,
    raw_data: Any = None,
    structured_view: Any = None,
) -> str:
    """Build a JSON reply in the shape the model is asked for."""
    return json.dumps(
        {
            "best_effort": best_effort or [],
            "raw_data": raw_data or [],
            "structured_view": structured_view or [],
        }
    )


def read_workbook(content: bytes) -> dict[str, list[tuple]]:
    """Load .xlsx bytes into {sheet name: list of row tuples}."""
    wb = load_workbook(io.BytesIO(content))
    return {ws.title: list(ws.iter_rows(values_only=True)) for ws in wb.worksheets}


@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    """Create a test client for the FastAPI application."""
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def fake_openai() -> FakeOpenAIClient:
    """Fake OpenAI client replying with a single best-effort table."""
    return FakeOpenAIClient(content=make_reply(best_effort=[[["A", "B"], ["1", "2"]]]))


@pytest.fixture
def use_ai_service():
    """Install a TableExtractionService built around the given client."""

    def _install(
        fake: FakeOpenAIClient,
        api_key: str | None = "test-key",
        timeout: float | None = 5.0,
    ) -> TableExtractionService:
        service = TableExtractionService(api_key=api_key, client=fake, timeout=timeout)
        app.dependency_overrides[get_ai_service] = lambda: service
        return service

    yield _install
    app.dependency_overrides.pop(get_ai_service, None)


@pytest.fixture
def use_upload_limit():
    """Install an UploadService with a custom ceiling."""

    def _install(max_bytes: int) -> UploadService:
        service = UploadService(max_bytes=max_bytes)
        app.dependency_overrides[get_upload_service] = lambda: service
        return service

    yield _install
    app.dependency_overrides.pop(get_upload_service, None)


@pytest.fixture
def sample_pdf_bytes() -> bytes:
    """
    Create a minimal valid PDF for testing.

    The service never parses the PDF itself, but a realistic payload keeps
    the tests honest about what gets base64-encoded.
    """
    return b"""%PDF-1.4
1 0 obj
<< /Type /Catalog /Pages 2 0 R >>
endobj
2 0 obj
<< /Type /Pages /Kids [3 0 R] /Count 1 >>
endobj
3 0 obj
<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] >>
endobj
trailer
<< /Size 4 /Root 1 0 R >>
%%EOF"""
