"""
API Routes
----------
Thin controllers — no summarization logic lives here.
They orchestrate: validate → extract → summarize → shape the response.

Input and extraction problems become clean JSON errors with a caller-safe
message. The summarizer itself never raises, so a Gemini outage shows up
as a degraded summary (see `_meta`), not as an error status.
"""

import time
import uuid
from datetime import datetime, timezone

from fastapi import APIRouter, File, Form, Request, UploadFile
from fastapi.responses import JSONResponse

from docsum.core.config import get_settings
from docsum.core.errors import AllModelsExhausted, SummaryError
from docsum.core.logging import get_logger, log_event
from docsum.models.schemas import (
    AnalyzeTextRequest,
    DocumentSummary,
    SummaryMetadata,
    SummaryResponse,
)
from docsum.services.gemini_client import generate_with_fallback
from docsum.services.summarizer import extract_document, generate_summary
from docsum.services.validator import validate_text, validate_upload

router = APIRouter(prefix="/api/ai")
logger = get_logger(__name__)
settings = get_settings()

HEALTH_PROMPT = 'Say "OK" if you can receive this message.'


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _elapsed_ms(t_start: float) -> int:
    return int((time.monotonic() - t_start) * 1000)


def _error_response(exc: SummaryError, request_id: str, t_start: float) -> JSONResponse:
    log_event(
        logger, "request_failed",
        request_id=request_id,
        error_code=exc.code.value,
        latency_ms=_elapsed_ms(t_start),
        internal_detail=exc.internal,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={**exc.to_response(), "request_id": request_id},
    )


def _unhandled_response(exc: Exception, request_id: str, t_start: float) -> JSONResponse:
    log_event(
        logger, "request_unhandled_error",
        request_id=request_id,
        error=str(exc),
        latency_ms=_elapsed_ms(t_start),
    )
    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_error",
            "detail": "An unexpected error occurred.",
            "request_id": request_id,
        },
    )


def _summary_response(
    summary: DocumentSummary,
    text: str,
    request_id: str,
    t_start: float,
) -> JSONResponse:
    latency_ms = _elapsed_ms(t_start)
    log_event(
        logger, "request_success",
        request_id=request_id,
        latency_ms=latency_ms,
        model_id=summary.meta.model,
        fallback=summary.meta.fallback,
        parse_attempted=summary.meta.parse_attempted,
        key_points_count=len(summary.key_points),
        action_items_count=len(summary.action_items),
    )
    response = SummaryResponse(
        id=request_id,
        summary=summary,
        metadata=SummaryMetadata(
            original_length=len(text),
            generated_at=_now(),
            model=summary.meta.model,
            processing_time_ms=latency_ms,
        ),
    )
    return JSONResponse(status_code=200, content=response.to_payload())


@router.post(
    "/summarize",
    responses={
        400: {"description": "Missing input, unsupported format or empty document"},
        413: {"description": "Upload too large"},
        500: {"description": "Document could not be read"},
    },
    summary="Summarize an uploaded document or a text form field.",
)
async def summarize_document(
    request: Request,
    document: UploadFile | None = File(default=None),
    text: str | None = Form(default=None),
) -> JSONResponse:
    request_id = str(uuid.uuid4())
    t_start = time.monotonic()

    log_event(
        logger, "request_received",
        request_id=request_id,
        has_file=document is not None,
        content_type=document.content_type if document else None,
        ip=request.client.host if request.client else "unknown",
    )

    # ── 1. Validate + extract ──────────────────────────────────────────────
    try:
        if document is not None:
            # Declared size first, then a bounded read so an oversized body
            # is never buffered whole.
            validate_upload(document.content_type, document.size or 0)
            content = await document.read(settings.max_file_size + 1)
            fmt = validate_upload(document.content_type, len(content))
            text = await extract_document(content, fmt)
        # Same extraction as summarize_file, but blank text is a 400 here
        # rather than an empty local summary.
        text = validate_text(text)
    except SummaryError as exc:
        return _error_response(exc, request_id, t_start)
    except Exception as exc:
        return _unhandled_response(exc, request_id, t_start)
    finally:
        if document is not None:
            await document.close()

    # ── 2. Summarize (never raises) ────────────────────────────────────────
    summary = await generate_summary(text, request_id=request_id)
    return _summary_response(summary, text, request_id, t_start)


@router.post(
    "/analyze-text",
    responses={400: {"description": "Blank text"}},
    summary="Summarize raw text supplied as JSON.",
)
async def analyze_text(body: AnalyzeTextRequest, request: Request) -> JSONResponse:
    request_id = str(uuid.uuid4())
    t_start = time.monotonic()

    log_event(
        logger, "request_received",
        request_id=request_id,
        text_chars=len(body.text),
        ip=request.client.host if request.client else "unknown",
    )

    try:
        text = validate_text(body.text)
    except SummaryError as exc:
        return _error_response(exc, request_id, t_start)

    summary = await generate_summary(text, body.options, request_id=request_id)
    return _summary_response(summary, text, request_id, t_start)


@router.get("/health", summary="Probe the generative service with a one-line prompt.")
async def ai_health() -> JSONResponse:
    request_id = str(uuid.uuid4())
    try:
        outcome = await generate_with_fallback(HEALTH_PROMPT, request_id=request_id)
    except AllModelsExhausted as exc:
        log_event(
            logger, "ai_health_failed",
            request_id=request_id,
            internal_detail=exc.internal,
        )
        return JSONResponse(
            status_code=503,
            content={
                "status": "unhealthy",
                "geminiConnected": False,
                "error": exc.code.value,
                "timestamp": _now(),
            },
        )

    return JSONResponse(
        status_code=200,
        content={
            "status": "healthy",
            "geminiConnected": True,
            "model": outcome.model,
            "timestamp": _now(),
        },
    )
