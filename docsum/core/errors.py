"""
Error Contract
--------------
Every failure the summarizer knows about is a typed SummaryError carrying an
explicit ErrorCode (its kind), a caller-safe `detail`, a server-side-only
`internal` string and an optional `cause` payload.

Only two kinds ever reach callers of the pipeline:
  - UnsupportedFormat / ExtractionFailure   (nothing to summarize)
ModelCandidateFailure and AllModelsExhausted stay inside the summarizer,
which degrades to a local summary instead.

Never leak `internal` (raw bodies, stack traces) to the caller.
"""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    # Input errors → 4xx
    NO_INPUT = "no_input"
    UNSUPPORTED_FORMAT = "unsupported_format"
    FILE_TOO_LARGE = "file_too_large"
    EMPTY_DOCUMENT = "empty_document"

    # Extraction → 500
    EXTRACTION_FAILED = "extraction_failed"

    # Generative service; absorbed by the summarizer, never an HTTP status
    MODEL_CANDIDATE_FAILED = "model_candidate_failed"
    ALL_MODELS_EXHAUSTED = "all_models_exhausted"

    # Catch-all
    INTERNAL_ERROR = "internal_error"


ERROR_STATUS_MAP: dict[ErrorCode, int] = {
    ErrorCode.NO_INPUT:                400,
    ErrorCode.UNSUPPORTED_FORMAT:      400,
    ErrorCode.FILE_TOO_LARGE:          413,
    ErrorCode.EMPTY_DOCUMENT:          400,
    ErrorCode.EXTRACTION_FAILED:       500,
    ErrorCode.INTERNAL_ERROR:          500,
}


class SummaryError(Exception):
    """Base exception for all domain errors in this service."""

    def __init__(
        self,
        code: ErrorCode,
        detail: str = "",
        *,
        internal: str = "",
        cause: Any = None,
    ):
        self.code = code
        self.detail = detail or code.value.replace("_", " ").capitalize()
        self.internal = internal  # logged server-side only, never returned to caller
        self.cause = cause
        super().__init__(self.detail)

    @property
    def status_code(self) -> int:
        return ERROR_STATUS_MAP.get(self.code, 500)

    def to_response(self) -> dict:
        return {
            "error": self.code.value,
            "detail": self.detail,
        }


class UnsupportedFormat(SummaryError):
    def __init__(self, format_tag: Any):
        super().__init__(
            ErrorCode.UNSUPPORTED_FORMAT,
            "Unsupported file type.",
            internal=f"format_tag={format_tag!r}",
        )
        self.format_tag = format_tag


class ExtractionFailure(SummaryError):
    def __init__(self, detail: str = "", *, internal: str = "", cause: Any = None):
        super().__init__(
            ErrorCode.EXTRACTION_FAILED,
            detail or "The document could not be read.",
            internal=internal,
            cause=cause,
        )


class ModelCandidateFailure(SummaryError):
    """One model id failed. Always swallowed by the candidate loop."""

    def __init__(
        self,
        model_id: str,
        detail: str = "",
        *,
        status_code: int | None = None,
        internal: str = "",
        cause: Any = None,
    ):
        super().__init__(
            ErrorCode.MODEL_CANDIDATE_FAILED,
            detail or f"Model {model_id} failed.",
            internal=internal,
            cause=cause,
        )
        self.model_id = model_id
        self.http_status = status_code

    @property
    def not_found(self) -> bool:
        return self.http_status == 404


class AllModelsExhausted(SummaryError):
    def __init__(self, last_error: ModelCandidateFailure | None = None):
        super().__init__(
            ErrorCode.ALL_MODELS_EXHAUSTED,
            "All configured AI models failed.",
            internal=last_error.internal if last_error else "no model candidates configured",
            cause=last_error,
        )
        self.last_error = last_error
