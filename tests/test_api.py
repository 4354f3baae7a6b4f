"""
Tests — HTTP Layer
------------------
Covers: input guards, error contract, upload handling, summary response
        shape, and the AI health probe. The generative service is always
        mocked; the summarizer itself runs for real.
Run with: pytest tests/ -v
"""

from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from docsum.core.errors import (
    AllModelsExhausted,
    ErrorCode,
    ModelCandidateFailure,
    SummaryError,
)
from docsum.main import app
from docsum.models.schemas import FormatTag
from docsum.services import validator
from docsum.services.gemini_client import GenerationOutcome
from docsum.services.validator import validate_text, validate_upload

client = TestClient(app)

NOTICE = "Metro station X will close for maintenance. Staff must relocate by Friday."


@pytest.fixture
def service_down():
    with patch(
        "docsum.services.summarizer.generate_with_fallback",
        new_callable=AsyncMock,
        side_effect=AllModelsExhausted(ModelCandidateFailure("m", status_code=503)),
    ) as mocked:
        yield mocked


@pytest.fixture
def service_up():
    with patch(
        "docsum.services.summarizer.generate_with_fallback",
        new_callable=AsyncMock,
        return_value=GenerationOutcome(
            text='{"executiveSummary": "Station closing.", "keyPoints": ["Relocate"]}',
            model="gemini-2.5-flash",
        ),
    ) as mocked:
        yield mocked


# ── Input Guard Tests ─────────────────────────────────────────────────────────

class TestInputGuards:
    def test_content_type_parameters_ignored(self):
        assert validate_upload("text/plain; charset=utf-8", 10) == FormatTag.PLAIN_TEXT

    def test_oversized_upload_rejected(self):
        with pytest.raises(SummaryError) as exc_info:
            validate_upload("application/pdf", validator.settings.max_file_size + 1)
        assert exc_info.value.code == ErrorCode.FILE_TOO_LARGE
        assert exc_info.value.status_code == 413

    def test_missing_text_rejected(self):
        with pytest.raises(SummaryError) as exc_info:
            validate_text(None)
        assert exc_info.value.code == ErrorCode.NO_INPUT

    def test_blank_text_rejected(self):
        with pytest.raises(SummaryError) as exc_info:
            validate_text("  \n\t ")
        assert exc_info.value.code == ErrorCode.EMPTY_DOCUMENT


# ── Error Contract Tests ──────────────────────────────────────────────────────

class TestErrorContract:
    def test_not_found_flag(self):
        assert ModelCandidateFailure("m", status_code=404).not_found
        assert not ModelCandidateFailure("m", status_code=429).not_found

    def test_exhausted_wraps_last_error(self):
        last = ModelCandidateFailure("m2", internal="status=500 body=oops")
        exc = AllModelsExhausted(last)
        assert exc.cause is last
        assert exc.internal == "status=500 body=oops"

    def test_response_never_contains_internal(self):
        exc = SummaryError(ErrorCode.EXTRACTION_FAILED, "Unreadable.", internal="Traceback ...")
        assert exc.to_response() == {"error": "extraction_failed", "detail": "Unreadable."}

    def test_service_errors_have_no_dedicated_status(self):
        assert ModelCandidateFailure("m", status_code=404).status_code == 500
        assert AllModelsExhausted().status_code == 500


# ── Endpoint Tests ────────────────────────────────────────────────────────────

class TestSummarizeEndpoints:
    def test_health_check(self):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_analyze_text_success(self, service_up):
        response = client.post("/api/ai/analyze-text", json={"text": NOTICE})
        assert response.status_code == 200
        data = response.json()
        assert data["summary"]["executiveSummary"] == "Station closing."
        assert data["summary"]["_meta"]["model"] == "gemini-2.5-flash"
        assert data["metadata"]["originalLength"] == len(NOTICE)
        assert data["metadata"]["model"] == "gemini-2.5-flash"
        assert "id" in data

    def test_analyze_text_with_service_down_still_succeeds(self, service_down):
        response = client.post("/api/ai/analyze-text", json={"text": NOTICE, "options": {"tone": "brief"}})
        assert response.status_code == 200
        summary = response.json()["summary"]
        assert summary["_meta"]["fallback"] is True
        assert summary["confidence"] == "50"
        assert len(summary["keyPoints"]) == 2

    def test_analyze_text_blank_returns_400(self, service_up):
        response = client.post("/api/ai/analyze-text", json={"text": "   "})
        assert response.status_code == 400
        assert response.json()["error"] == "empty_document"
        service_up.assert_not_awaited()

    def test_analyze_text_missing_field_returns_422(self):
        response = client.post("/api/ai/analyze-text", json={})
        assert response.status_code == 422
        assert response.json()["error"] == "validation_error"

    def test_summarize_text_form_field(self, service_down):
        response = client.post("/api/ai/summarize", data={"text": NOTICE})
        assert response.status_code == 200
        assert response.json()["summary"]["executiveSummary"] == NOTICE

    def test_summarize_uploaded_text_file(self, service_up):
        response = client.post(
            "/api/ai/summarize",
            files={"document": ("notice.txt", NOTICE.encode(), "text/plain")},
        )
        assert response.status_code == 200
        prompt = service_up.await_args.args[0]
        assert prompt.endswith(NOTICE)

    def test_summarize_without_input_returns_400(self):
        response = client.post("/api/ai/summarize", data={"unrelated": "x"})
        assert response.status_code == 400
        assert response.json()["error"] == "no_input"

    def test_unsupported_upload_returns_400(self, service_up):
        response = client.post(
            "/api/ai/summarize",
            files={"document": ("photo.png", b"\x89PNG\r\n", "image/png")},
        )
        assert response.status_code == 400
        assert response.json()["error"] == "unsupported_format"
        service_up.assert_not_awaited()

    def test_oversized_upload_returns_413(self, service_up):
        with patch.object(validator.settings, "max_file_size", 10), patch(
            "docsum.api.routes.extract_document", new_callable=AsyncMock
        ) as mock_extract:
            response = client.post(
                "/api/ai/summarize",
                files={"document": ("notice.txt", NOTICE.encode(), "text/plain")},
            )
        assert response.status_code == 413
        assert response.json()["error"] == "file_too_large"
        mock_extract.assert_not_awaited()
        service_up.assert_not_awaited()

    def test_upload_uses_shared_extraction(self, service_up):
        with patch(
            "docsum.api.routes.extract_document", new_callable=AsyncMock, return_value=NOTICE
        ) as mock_extract:
            response = client.post(
                "/api/ai/summarize",
                files={"document": ("notice.txt", NOTICE.encode(), "text/plain")},
            )
        assert response.status_code == 200
        mock_extract.assert_awaited_once_with(NOTICE.encode(), FormatTag.PLAIN_TEXT)
        assert response.json()["metadata"]["originalLength"] == len(NOTICE)

    def test_empty_extraction_returns_400(self, service_up):
        response = client.post(
            "/api/ai/summarize",
            files={"document": ("empty.txt", b"   ", "text/plain")},
        )
        assert response.status_code == 400
        assert response.json()["error"] == "empty_document"

    def test_corrupt_document_returns_generic_500(self, service_up):
        response = client.post(
            "/api/ai/summarize",
            files={"document": ("broken.pdf", b"not a pdf at all", "application/pdf")},
        )
        assert response.status_code == 500
        body = response.json()
        assert body["error"] == "extraction_failed"
        assert body["detail"] == "The document could not be read."
        assert "request_id" in body
        assert "Traceback" not in response.text


# ── AI Health Probe Tests ─────────────────────────────────────────────────────

class TestAiHealth:
    @patch("docsum.api.routes.generate_with_fallback", new_callable=AsyncMock)
    def test_healthy(self, mock_generate):
        mock_generate.return_value = GenerationOutcome(text="OK", model="gemini-2.5-flash")
        response = client.get("/api/ai/health")
        assert response.status_code == 200
        assert response.json()["geminiConnected"] is True
        assert response.json()["model"] == "gemini-2.5-flash"

    @patch("docsum.api.routes.generate_with_fallback", new_callable=AsyncMock)
    def test_unhealthy_hides_internal_detail(self, mock_generate):
        mock_generate.side_effect = AllModelsExhausted(
            ModelCandidateFailure("m", internal="status=403 body=API key invalid AIzaSECRET")
        )
        response = client.get("/api/ai/health")
        assert response.status_code == 503
        assert response.json()["status"] == "unhealthy"
        assert "AIzaSECRET" not in response.text
