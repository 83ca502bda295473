"""Tests for the AI table extraction service."""

import base64
import json

import httpx
import openai
import pytest

from app.backend.models import UploadedDocument
from app.backend.services.ai import (
    EXTRACTION_PROMPT,
    RESPONSE_SCHEMA,
    AIServiceError,
    ConfigurationError,
    ExtractionTimeoutError,
    TableExtractionService,
    build_extraction_messages,
    parse_extraction_response,
)
from conftest import FakeOpenAIClient, make_reply

OPENAI_REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


@pytest.fixture
def document(sample_pdf_bytes: bytes) -> UploadedDocument:
    return UploadedDocument(
        filename="invoice.pdf",
        content_type="application/pdf",
        content=sample_pdf_bytes,
    )


class TestResponseSchema:
    """Tests for the structured output contract."""

    def test_exactly_three_required_keys(self):
        """Test the schema requires the three variants and nothing else."""
        assert set(RESPONSE_SCHEMA["required"]) == {
            "best_effort",
            "raw_data",
            "structured_view",
        }
        assert set(RESPONSE_SCHEMA["properties"]) == set(RESPONSE_SCHEMA["required"])
        assert RESPONSE_SCHEMA["additionalProperties"] is False

    def test_variants_are_nested_string_arrays(self):
        """Test each variant is array of tables of rows of strings."""
        for prop in RESPONSE_SCHEMA["properties"].values():
            assert prop["type"] == "array"
            row = prop["items"]["items"]
            assert row["type"] == "array"
            assert row["items"] == {"type": "string"}

    def test_prompt_names_every_variant(self):
        """Test the instruction mentions all three variant keys."""
        for key in RESPONSE_SCHEMA["required"]:
            assert f'"{key}"' in EXTRACTION_PROMPT


class TestBuildExtractionMessages:
    """Tests for outbound message construction."""

    def test_pdf_is_base64_data_url(self, document: UploadedDocument):
        """Test the document is attached as a base64 PDF file part."""
        messages = build_extraction_messages(document)
        user_content = messages[-1]["content"]
        assert user_content[0] == {"type": "text", "text": EXTRACTION_PROMPT}

        file_part = user_content[1]["file"]
        assert file_part["filename"] == "invoice.pdf"
        prefix, encoded = file_part["file_data"].split(",", 1)
        assert prefix == "data:application/pdf;base64"
        assert base64.b64decode(encoded) == document.content

    def test_missing_filename_gets_default(self, sample_pdf_bytes: bytes):
        """Test an unnamed upload still sends a filename."""
        messages = build_extraction_messages(UploadedDocument(content=sample_pdf_bytes))
        assert messages[-1]["content"][1]["file"]["filename"] == "document.pdf"


class TestParseExtractionResponse:
    """Tests for parsing the model's JSON reply."""

    def test_parses_all_variants(self):
        """Test a well-formed reply is parsed variant by variant."""
        result = parse_extraction_response(
            make_reply(
                best_effort=[[["A", "B"], ["1", "2"]]],
                raw_data=[[["x"]], [["y"]]],
            )
        )
        assert result.best_effort == [[["A", "B"], ["1", "2"]]]
        assert len(result.raw_data) == 2
        assert result.structured_view == []

    @pytest.mark.parametrize("content", [None, "", "   "])
    def test_missing_body_is_empty_result(self, content):
        """Test a missing body is treated as an empty object."""
        result = parse_extraction_response(content)
        assert result.table_count == 0

    def test_absent_and_null_keys_allowed(self):
        """Test absent or null variants do not fail parsing."""
        result = parse_extraction_response(json.dumps({"best_effort": None}))
        assert result.best_effort == []
        assert result.raw_data == []

    def test_invalid_json_raises(self):
        """Test non-JSON content raises AIServiceError."""
        with pytest.raises(AIServiceError) as exc_info:
            parse_extraction_response("{not json")
        assert "Invalid JSON" in str(exc_info.value)

    def test_non_object_raises(self):
        """Test a JSON array at the top level is rejected."""
        with pytest.raises(AIServiceError):
            parse_extraction_response("[]")

    def test_wrong_shape_raises(self):
        """Test tables that are not nested lists are rejected."""
        with pytest.raises(AIServiceError):
            parse_extraction_response(json.dumps({"best_effort": "table"}))

    def test_scalar_cells_are_stringified(self):
        """Test null and numeric cells are coerced to strings."""
        result = parse_extraction_response(
            json.dumps({"best_effort": [[["Total", 42, None, 1.5]]]})
        )
        assert result.best_effort == [[["Total", "42", "", "1.5"]]]


class TestTableExtractionService:
    """Tests for TableExtractionService."""

    @pytest.mark.asyncio
    async def test_extract_tables(self, document: UploadedDocument, fake_openai: FakeOpenAIClient):
        """Test a successful extraction returns parsed tables."""
        service = TableExtractionService(api_key="test-key", client=fake_openai, model="gpt-test")
        result = await service.extract_tables(document)

        assert result.best_effort == [[["A", "B"], ["1", "2"]]]
        assert fake_openai.calls[0]["model"] == "gpt-test"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("api_key", [None, "", "   "])
    async def test_missing_key_makes_no_call(self, document: UploadedDocument, api_key):
        """Test the credential is checked before any network I/O."""
        fake = FakeOpenAIClient(content=make_reply())
        service = TableExtractionService(api_key=api_key, client=fake)

        with pytest.raises(ConfigurationError):
            await service.extract_tables(document)
        assert fake.calls == []

    def test_client_requires_key(self):
        """Test the lazy client is not built without a key."""
        service = TableExtractionService(api_key=None)
        with pytest.raises(ConfigurationError):
            service.client

    def test_client_disables_sdk_retries(self):
        """Test the real client is single-shot."""
        service = TableExtractionService(api_key="sk-test")
        assert isinstance(service.client, openai.AsyncOpenAI)
        assert service.client.max_retries == 0

    @pytest.mark.asyncio
    async def test_deadline_cancels_call(self, document: UploadedDocument):
        """Test a slow call raises ExtractionTimeoutError."""
        fake = FakeOpenAIClient(content=make_reply(), delay=1.0)
        service = TableExtractionService(api_key="test-key", client=fake, timeout=0.05)

        with pytest.raises(ExtractionTimeoutError):
            await service.extract_tables(document)
        assert len(fake.calls) == 1

    @pytest.mark.asyncio
    async def test_sdk_timeout_maps_to_timeout(self, document: UploadedDocument):
        """Test the SDK's own timeout error is classified as a timeout."""
        fake = FakeOpenAIClient(error=openai.APITimeoutError(request=OPENAI_REQUEST))
        service = TableExtractionService(api_key="test-key", client=fake)

        with pytest.raises(ExtractionTimeoutError):
            await service.extract_tables(document)

    @pytest.mark.asyncio
    async def test_api_error_maps_to_service_error(self, document: UploadedDocument):
        """Test other SDK errors become AIServiceError without retry."""
        fake = FakeOpenAIClient(error=openai.APIConnectionError(request=OPENAI_REQUEST))
        service = TableExtractionService(api_key="test-key", client=fake)

        with pytest.raises(AIServiceError) as exc_info:
            await service.extract_tables(document)
        assert not isinstance(exc_info.value, ExtractionTimeoutError)
        assert len(fake.calls) == 1

    @pytest.mark.asyncio
    async def test_no_deadline_when_unbounded(self, document: UploadedDocument):
        """Test timeout=None lets a slow call finish."""
        fake = FakeOpenAIClient(content=make_reply(raw_data=[[["r"]]]), delay=0.05)
        service = TableExtractionService(api_key="test-key", client=fake, timeout=None)

        result = await service.extract_tables(document)
        assert result.raw_data == [[["r"]]]
