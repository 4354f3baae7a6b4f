"""
Input Validation Service
------------------------
Guards the HTTP layer applies BEFORE the summarizer is invoked.
Cheap fail-fast checks. No I/O. Pure computation.

Guards applied:
  1. Something to summarize was supplied (file or text)
  2. Declared content type is one of the supported formats
  3. Upload size is within MAX_FILE_SIZE
  4. The text to summarize is not blank
"""

from docsum.core.config import get_settings
from docsum.core.errors import ErrorCode, SummaryError
from docsum.models.schemas import FormatTag
from docsum.services.extractor import resolve_format

settings = get_settings()


def validate_upload(content_type: str | None, size: int) -> FormatTag:
    """
    Returns the resolved FormatTag or raises SummaryError.
    Call this before reading the upload into the extractor.
    """
    # Browsers append parameters, e.g. "text/plain; charset=utf-8"
    mime = (content_type or "").split(";", 1)[0].strip().lower()
    fmt = resolve_format(mime)

    if size > settings.max_file_size:
        raise SummaryError(
            ErrorCode.FILE_TOO_LARGE,
            f"File exceeds maximum size of {settings.max_file_size:,} bytes. "
            f"Received: {size:,}.",
        )
    return fmt


def validate_text(text: str | None) -> str:
    if text is None:
        raise SummaryError(
            ErrorCode.NO_INPUT,
            "No document file or text provided.",
        )
    if not text.strip():
        raise SummaryError(
            ErrorCode.EMPTY_DOCUMENT,
            "No readable text found in the document.",
        )
    return text
