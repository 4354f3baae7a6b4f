"""
Gemini Model Invoker
--------------------
Handles:
  - Ordered fallback across model ids (first success wins, no best-of)
  - Two transports, chosen once per call from the credential's shape:
      * API key ("AIza...")  → direct REST POST via httpx, key as query param
      * anything else        → google-genai SDK client (key or ambient creds)
  - Per-attempt timeout
  - Tolerant text extraction from whichever response envelope came back

Every per-model failure is a ModelCandidateFailure and the loop moves on.
Only exhausting the whole list raises, as AllModelsExhausted.
"""

import asyncio
import json
import logging
import time
from typing import Any, NamedTuple, Protocol, Sequence

import httpx
from google import genai
from google.genai import errors as genai_errors
from pydantic import BaseModel

from docsum.core.config import get_settings
from docsum.core.errors import AllModelsExhausted, ModelCandidateFailure
from docsum.core.logging import get_logger, log_event

logger = get_logger(__name__)
settings = get_settings()

API_KEY_PREFIX = "AIza"

# Process-wide, computed once, never reordered.
MODEL_CANDIDATES: tuple[str, ...] = settings.model_candidates


class GenerationOutcome(NamedTuple):
    text: str
    model: str


# ── Response envelope ─────────────────────────────────────────────────────────

# (name, path) pairs tried in order; first non-empty string wins.
_TEXT_PATHS: tuple[tuple[str, tuple[str | int, ...]], ...] = (
    ("candidate_parts", ("candidates", 0, "content", "parts", 0, "text")),
    ("candidate_content", ("candidates", 0, "content", 0, "text")),
    ("candidate_output", ("candidates", 0, "output")),
    ("candidate_text", ("candidates", 0, "text")),
    ("output_content", ("output", 0, "content", 0, "text")),
    ("text", ("text",)),
)


def _dig(value: Any, path: Sequence[str | int]) -> Any:
    for step in path:
        if isinstance(step, int):
            if not isinstance(value, list) or len(value) <= step:
                return None
        elif not isinstance(value, dict) or step not in value:
            return None
        value = value[step]
    return value


def _stringify(value: Any) -> str:
    return json.dumps(value, default=str, ensure_ascii=False)


def extract_response_text(body: Any) -> str:
    """Never raises: falls back to a JSON rendering of what came back."""
    if isinstance(body, BaseModel):
        body = body.model_dump(mode="json", exclude_none=True)

    for _name, path in _TEXT_PATHS:
        text = _dig(body, path)
        if isinstance(text, str) and text:
            return text

    for path in (("candidates", 0), ("output", 0)):
        first = _dig(body, path)
        if first is not None:
            return _stringify(first)
    return _stringify(body)


# ── Transports ────────────────────────────────────────────────────────────────

class Transport(Protocol):
    mode: str

    async def generate(self, model_id: str, prompt: str) -> Any:
        """Return the raw response body; raise ModelCandidateFailure on error."""

    async def aclose(self) -> None:
        """Release whatever the transport opened itself."""


def _build_gemini_payload(prompt: str) -> dict:
    return {
        "contents": [
            {
                "role": "user",
                "parts": [{"text": prompt}],
            }
        ],
        "generationConfig": {
            "temperature": 0.2,
        },
    }


class RestTransport:
    mode = "api_key"

    def __init__(self, api_key: str, client: httpx.AsyncClient, base_url: str | None = None):
        self._api_key = api_key
        self._client = client
        self._base_url = (base_url or settings.gemini_api_base).rstrip("/")

    async def aclose(self) -> None:
        # the httpx client belongs to the caller
        return None

    async def generate(self, model_id: str, prompt: str) -> Any:
        url = f"{self._base_url}/models/{model_id}:generateContent"
        try:
            response = await self._client.post(
                url,
                params={"key": self._api_key},
                json=_build_gemini_payload(prompt),
            )
        except httpx.HTTPError as exc:
            raise ModelCandidateFailure(
                model_id,
                "AI service unreachable.",
                internal=f"{type(exc).__name__}: {exc}",
                cause=exc,
            ) from exc

        if response.status_code != 200:
            raise ModelCandidateFailure(
                model_id,
                "AI service rejected the request.",
                status_code=response.status_code,
                internal=f"status={response.status_code} body={response.text[:200]}",
            )

        try:
            return response.json()
        except ValueError as exc:
            raise ModelCandidateFailure(
                model_id,
                "AI service returned a non-JSON envelope.",
                internal=f"body={response.text[:200]}",
                cause=exc,
            ) from exc


class SdkTransport:
    mode = "sdk"

    def __init__(self, api_key: str | None = None):
        self._api_key = api_key or None
        self._client: genai.Client | None = None

    def _get_client(self) -> genai.Client:
        # One client per call, built lazily so missing credentials count
        # as a candidate failure.
        if self._client is None:
            # No key → the SDK resolves ambient credentials from the environment.
            self._client = genai.Client(api_key=self._api_key) if self._api_key else genai.Client()
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            client, self._client = self._client, None
            await client.aio.aclose()

    async def generate(self, model_id: str, prompt: str) -> Any:
        try:
            response = await self._get_client().aio.models.generate_content(
                model=model_id, contents=prompt
            )
        except genai_errors.APIError as exc:
            raise ModelCandidateFailure(
                model_id,
                "AI service rejected the request.",
                status_code=exc.code,
                internal=f"status={exc.code} message={exc.message}",
                cause=exc,
            ) from exc
        return response


def select_transport(api_key: str, client: httpx.AsyncClient) -> Transport:
    if api_key.startswith(API_KEY_PREFIX):
        return RestTransport(api_key, client)
    return SdkTransport(api_key)


# ── Candidate loop ────────────────────────────────────────────────────────────

async def _attempt(
    transport: Transport,
    model_id: str,
    prompt: str,
    timeout: float,
) -> str:
    try:
        body = await asyncio.wait_for(transport.generate(model_id, prompt), timeout)
    except ModelCandidateFailure:
        raise
    except asyncio.TimeoutError as exc:
        raise ModelCandidateFailure(
            model_id,
            "The AI service took too long to respond.",
            internal=f"timeout={timeout}s",
            cause=exc,
        ) from exc
    except Exception as exc:
        raise ModelCandidateFailure(
            model_id,
            internal=f"{type(exc).__name__}: {exc}",
            cause=exc,
        ) from exc
    return extract_response_text(body)


async def _try_candidates(
    transport: Transport,
    candidates: Sequence[str],
    prompt: str,
    request_id: str | None,
    timeout: float,
) -> GenerationOutcome:
    last_error: ModelCandidateFailure | None = None

    for position, model_id in enumerate(candidates, start=1):
        attempt_start = time.monotonic()
        log_event(
            logger, "gemini_attempt",
            request_id=request_id,
            model_id=model_id,
            attempt=position,
            max_attempts=len(candidates),
            transport=transport.mode,
        )
        try:
            text = await _attempt(transport, model_id, prompt, timeout)
        except ModelCandidateFailure as exc:
            last_error = exc
            # "not found" is expected while walking the chain; keep it quiet
            log_event(
                logger, "gemini_attempt_failed",
                request_id=request_id,
                level=logging.DEBUG if exc.not_found else logging.WARNING,
                model_id=model_id,
                http_status=exc.http_status,
                internal_detail=exc.internal,
                attempt_latency_ms=int((time.monotonic() - attempt_start) * 1000),
            )
            continue

        log_event(
            logger, "gemini_success",
            request_id=request_id,
            model_id=model_id,
            attempt=position,
            attempt_latency_ms=int((time.monotonic() - attempt_start) * 1000),
            output_chars=len(text),
        )
        return GenerationOutcome(text=text, model=model_id)

    log_event(
        logger, "gemini_exhausted",
        request_id=request_id,
        level=logging.WARNING,
        attempts=len(candidates),
        final_error=last_error.internal if last_error else "no candidates",
    )
    raise AllModelsExhausted(last_error)


async def generate_with_fallback(
    prompt: str,
    *,
    candidates: Sequence[str] | None = None,
    api_key: str | None = None,
    transport: Transport | None = None,
    request_id: str | None = None,
) -> GenerationOutcome:
    """
    Try each model id in order and return the first (text, model) that works.

    `candidates`, `api_key` and `transport` default to the process-wide
    configuration. A transport chosen here is closed before returning; an
    injected one is left to its owner.
    """
    candidates = MODEL_CANDIDATES if candidates is None else tuple(candidates)
    api_key = settings.gemini_api_key if api_key is None else api_key
    timeout = settings.gemini_timeout_seconds

    if transport is not None:
        return await _try_candidates(transport, candidates, prompt, request_id, timeout)

    async with httpx.AsyncClient(timeout=timeout) as client:
        transport = select_transport(api_key, client)
        try:
            return await _try_candidates(transport, candidates, prompt, request_id, timeout)
        finally:
            await transport.aclose()
