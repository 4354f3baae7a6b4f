"""
Text Extraction
---------------
Maps (raw bytes, format tag) → plain text, one strategy per format.

  - pdf                     pypdf, pages joined, boundaries not preserved
  - word / legacy-word      python-docx, paragraph text only
  - spreadsheet / legacy    pandas, every sheet as tab-separated lines,
                            sheets separated by a blank line
  - plain-text              strict UTF-8

An empty result (an image-only PDF, say) is valid and returned as "".
Unknown tags raise UnsupportedFormat; a corrupt or unreadable document
raises ExtractionFailure. Nothing here retries.
"""

import io
from typing import Callable

import pandas as pd
from docx import Document as DocxDocument
from pypdf import PdfReader

from docsum.core.errors import ExtractionFailure, UnsupportedFormat
from docsum.core.logging import get_logger, log_event
from docsum.models.schemas import FormatTag

logger = get_logger(__name__)

SHEET_SEPARATOR = "\n\n"


def _extract_pdf(content: bytes) -> str:
    reader = PdfReader(io.BytesIO(content))
    return "\n".join(page.extract_text() or "" for page in reader.pages)


def _extract_word(content: bytes) -> str:
    document = DocxDocument(io.BytesIO(content))
    return "\n".join(paragraph.text for paragraph in document.paragraphs)


def _extract_spreadsheet(content: bytes) -> str:
    # sheet_name=None → {sheet: DataFrame} in workbook order
    sheets = pd.read_excel(io.BytesIO(content), sheet_name=None, header=None, dtype=str)
    rendered = [
        frame.to_csv(
            sep="\t", index=False, header=False, na_rep="", lineterminator="\n"
        ).rstrip("\n")
        for frame in sheets.values()
    ]
    return SHEET_SEPARATOR.join(rendered)


def _extract_plain_text(content: bytes) -> str:
    return content.decode("utf-8")


_EXTRACTORS: dict[FormatTag, Callable[[bytes], str]] = {
    FormatTag.PDF: _extract_pdf,
    FormatTag.LEGACY_WORD: _extract_word,
    FormatTag.WORD: _extract_word,
    FormatTag.LEGACY_SPREADSHEET: _extract_spreadsheet,
    FormatTag.SPREADSHEET: _extract_spreadsheet,
    FormatTag.PLAIN_TEXT: _extract_plain_text,
}


def resolve_format(format_tag: FormatTag | str) -> FormatTag:
    """Raises UnsupportedFormat for anything outside the closed set."""
    try:
        return FormatTag(format_tag)
    except ValueError:
        raise UnsupportedFormat(format_tag) from None


def extract_text(content: bytes, format_tag: FormatTag | str) -> str:
    fmt = resolve_format(format_tag)
    try:
        text = _EXTRACTORS[fmt](content)
    except Exception as exc:
        log_event(
            logger, "extraction_failed",
            format=fmt.value,
            size_bytes=len(content),
            error=f"{type(exc).__name__}: {exc}",
        )
        raise ExtractionFailure(
            internal=f"format={fmt.value} error={type(exc).__name__}: {exc}",
            cause=exc,
        ) from exc

    log_event(
        logger, "extraction_complete",
        format=fmt.value,
        size_bytes=len(content),
        text_chars=len(text),
    )
    return text
