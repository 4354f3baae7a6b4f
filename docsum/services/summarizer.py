"""
Summary Assembly
----------------
The only entry points callers use: generate_summary / summarize_text /
summarize_file. They always return a complete DocumentSummary; the
generative service being down or talking nonsense is never an error here.

Degradation ladder (confidence signals how much of the pipeline ran):

  model ok, JSON ok         parsed summary                  model's own value
  model ok, JSON unusable   raw output prefix               "85"
  every model failed        first sentences of the text     "50"
  sentence split failed     raw text prefix                 "40"

Only extraction errors escape (from summarize_file), because with no text
there is nothing to summarize.
"""

import asyncio
import logging
import re
from typing import Any

from docsum.core.errors import AllModelsExhausted
from docsum.core.logging import get_logger, log_event
from docsum.models.schemas import DocumentSummary, FormatTag, SummarizeOptions, SummaryMeta
from docsum.services.extractor import extract_text
from docsum.services.gemini_client import generate_with_fallback
from docsum.services.prompt import build_prompt
from docsum.services.response_parser import parse_json

logger = get_logger(__name__)

PREVIEW_CHARS = 300
PARSE_FAILURE_CONFIDENCE = "85"
LOCAL_FALLBACK_CONFIDENCE = "50"
LAST_RESORT_CONFIDENCE = "40"

_WHITESPACE = re.compile(r"\s+")
_SENTENCE = re.compile(r"[^.!?]+[.!?]+")


def _preview(text: str) -> str:
    return f"{text[:PREVIEW_CHARS]}..."


def _degraded(**fields: Any) -> DocumentSummary:
    """Neutral defaults shared by every fallback tier."""
    return DocumentSummary(categories=["General"], **fields)


def _split_sentences(text: str) -> list[str]:
    normalized = _WHITESPACE.sub(" ", text).strip()
    sentences = [s.strip() for s in _SENTENCE.findall(normalized)]
    if not sentences and normalized:
        return [normalized]
    return sentences


def _from_model_output(raw_text: str, model_id: str) -> DocumentSummary | None:
    parsed = parse_json(raw_text)
    if not isinstance(parsed, dict):
        return None
    parsed.pop("_meta", None)
    # ValidationError is a ValueError; coercion can also hit arithmetic limits
    try:
        summary = DocumentSummary.model_validate(parsed)
    except (ValueError, ArithmeticError):
        return None
    summary.meta = SummaryMeta(model=model_id)
    return summary


def _unparsed_fallback(raw_text: str, model_id: str) -> DocumentSummary:
    return _degraded(
        executive_summary=_preview(raw_text or ""),
        confidence=PARSE_FAILURE_CONFIDENCE,
        meta=SummaryMeta(model=model_id, parse_attempted=True),
    )


def local_fallback_summary(text: str, *, request_id: str | None = None) -> DocumentSummary:
    """Summary built without the generative service. Never raises."""
    try:
        sentences = _split_sentences(text)
        executive_summary = " ".join(sentences[:3])
        return _degraded(
            executive_summary=executive_summary,
            key_points=sentences[:5],
            confidence=LOCAL_FALLBACK_CONFIDENCE,
            meta=SummaryMeta(fallback=True),
        )
    except Exception as exc:
        log_event(
            logger, "local_fallback_failed",
            request_id=request_id,
            level=logging.ERROR,
            error=f"{type(exc).__name__}: {exc}",
        )
        return _degraded(
            executive_summary=_preview(str(text)),
            confidence=LAST_RESORT_CONFIDENCE,
            meta=SummaryMeta(fallback=True, fallback_error=str(exc)),
        )


async def generate_summary(
    text: str,
    options: SummarizeOptions | None = None,
    *,
    request_id: str | None = None,
) -> DocumentSummary:
    if not isinstance(text, str) or not text.strip():
        log_event(logger, "summary_tier", request_id=request_id, tier="local", reason="blank_text")
        return local_fallback_summary(text, request_id=request_id)

    try:
        outcome = await generate_with_fallback(build_prompt(text), request_id=request_id)
    except AllModelsExhausted as exc:
        log_event(
            logger, "summary_tier",
            request_id=request_id,
            level=logging.WARNING,
            tier="local",
            reason=exc.code.value,
            internal_detail=exc.internal,
        )
        return local_fallback_summary(text, request_id=request_id)

    summary = _from_model_output(outcome.text, outcome.model)
    if summary is not None:
        log_event(logger, "summary_tier", request_id=request_id, tier="model", model_id=outcome.model)
        return summary

    log_event(
        logger, "summary_tier",
        request_id=request_id,
        level=logging.WARNING,
        tier="unparsed",
        model_id=outcome.model,
        output_chars=len(outcome.text),
    )
    return _unparsed_fallback(outcome.text, outcome.model)


async def summarize_text(
    text: str,
    options: SummarizeOptions | None = None,
    *,
    request_id: str | None = None,
) -> DocumentSummary:
    return await generate_summary(text, options, request_id=request_id)


async def extract_document(content: bytes, format_tag: FormatTag | str) -> str:
    """Run the blocking extractor off the event loop."""
    return await asyncio.to_thread(extract_text, content, format_tag)


async def summarize_file(
    content: bytes,
    format_tag: FormatTag | str,
    options: SummarizeOptions | None = None,
    *,
    request_id: str | None = None,
) -> DocumentSummary:
    """Extract then summarize. UnsupportedFormat / ExtractionFailure propagate."""
    text = await extract_document(content, format_tag)
    return await generate_summary(text, options, request_id=request_id)
