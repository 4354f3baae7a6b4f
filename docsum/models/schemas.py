"""
Pydantic Models — Formats / Summary Schema / API Shapes
-------------------------------------------------------
These models serve triple duty:
  1. The closed set of document formats the extractor accepts (FormatTag)
  2. Lenient coercion of model output into a complete summary (DocumentSummary)
  3. API request/response shaping (AnalyzeTextRequest / SummaryResponse)

A DocumentSummary always has every key. Fields the model omits or garbles
fall back to empty lists or neutral defaults, so callers never null-check.
Serialize with `model_dump(by_alias=True)` to get the camelCase wire shape.
"""

import json
import math
import re
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


# ── Formats ───────────────────────────────────────────────────────────────────

class FormatTag(str, Enum):
    PDF = "application/pdf"
    LEGACY_WORD = "application/msword"
    WORD = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
    LEGACY_SPREADSHEET = "application/vnd.ms-excel"
    SPREADSHEET = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    PLAIN_TEXT = "text/plain"


# ── Coercion helpers ──────────────────────────────────────────────────────────

NOT_SPECIFIED = "Not specified"
PRIORITIES = ("high", "medium", "low")
URGENCY_LEVELS = ("low", "medium", "high", "critical")

_NUMBER = re.compile(r"\d+(?:\.\d+)?")


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (int, float, bool)):
        return str(value)
    return json.dumps(value, ensure_ascii=False)


def _as_list(value: Any) -> list:
    if value is None or value == "":
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def _pick(value: Any, allowed: tuple[str, ...], default: str) -> str:
    text = _as_text(value).lower()
    return text if text in allowed else default


_SUMMARY_CONFIG = ConfigDict(
    alias_generator=to_camel,
    populate_by_name=True,
    extra="ignore",  # strip hallucinated extra fields
)


# ── Summary sub-models ────────────────────────────────────────────────────────

class ActionItem(BaseModel):
    model_config = _SUMMARY_CONFIG

    task: str = ""
    priority: str = "medium"
    deadline: str = NOT_SPECIFIED
    department: str = NOT_SPECIFIED
    estimated_hours: str = NOT_SPECIFIED

    @field_validator("task", mode="before")
    @classmethod
    def coerce_task(cls, v: Any) -> str:
        return _as_text(v)

    @field_validator("priority", mode="before")
    @classmethod
    def coerce_priority(cls, v: Any) -> str:
        return _pick(v, PRIORITIES, "medium")

    @field_validator("deadline", "department", "estimated_hours", mode="before")
    @classmethod
    def coerce_optional_text(cls, v: Any) -> str:
        return _as_text(v) or NOT_SPECIFIED


class SummaryMeta(BaseModel):
    """Pipeline bookkeeping. Serialized under `_meta`, never a schema key."""

    model_config = _SUMMARY_CONFIG

    model: str | None = None
    fallback: bool = False
    parse_attempted: bool = False
    fallback_error: str | None = None


# ── Summary root ──────────────────────────────────────────────────────────────

class DocumentSummary(BaseModel):
    model_config = _SUMMARY_CONFIG

    executive_summary: str = ""
    key_points: list[str] = Field(default_factory=list)
    action_items: list[ActionItem] = Field(default_factory=list)
    compliance_items: list[str] = Field(default_factory=list)
    risk_factors: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    categories: list[str] = Field(default_factory=list)
    confidence: str = "0"
    language: str = "English"
    document_type: str = "General Document"
    urgency_level: str = "medium"
    meta: SummaryMeta = Field(default_factory=SummaryMeta, alias="_meta")

    @field_validator("executive_summary", mode="before")
    @classmethod
    def coerce_summary(cls, v: Any) -> str:
        return _as_text(v)

    @field_validator(
        "key_points", "compliance_items", "risk_factors",
        "recommendations", "categories",
        mode="before",
    )
    @classmethod
    def coerce_string_list(cls, v: Any) -> list[str]:
        return [text for text in map(_as_text, _as_list(v)) if text]

    @field_validator("action_items", mode="before")
    @classmethod
    def coerce_action_items(cls, v: Any) -> list:
        items = []
        for item in _as_list(v):
            if isinstance(item, dict):
                items.append(item)
            elif _as_text(item):
                items.append({"task": item})
        return items

    @field_validator("confidence", mode="before")
    @classmethod
    def coerce_confidence(cls, v: Any) -> str:
        """Accept 85, "85", "85%" or "0.85"-style values; clamp to 0–100."""
        if isinstance(v, bool):
            return "0"
        if isinstance(v, int):
            # clamp before float(): huge ints overflow it
            number = float(min(max(v, 0), 100))
        elif isinstance(v, float):
            number = v
        else:
            match = _NUMBER.search(_as_text(v))
            if not match:
                return "0"
            number = float(match.group(0))
        if math.isnan(number):
            return "0"
        if 0 < number <= 1 and not float(number).is_integer():
            number *= 100
        return str(round(min(max(number, 0.0), 100.0)))

    @field_validator("language", mode="before")
    @classmethod
    def coerce_language(cls, v: Any) -> str:
        return _as_text(v) or "English"

    @field_validator("document_type", mode="before")
    @classmethod
    def coerce_document_type(cls, v: Any) -> str:
        return _as_text(v) or "General Document"

    @field_validator("urgency_level", mode="before")
    @classmethod
    def coerce_urgency(cls, v: Any) -> str:
        return _pick(v, URGENCY_LEVELS, "medium")

    def to_payload(self) -> dict[str, Any]:
        """The camelCase JSON shape handed to the document catalogue."""
        return self.model_dump(by_alias=True)


class SummarizeOptions(BaseModel):
    """Reserved. Accepted by the entry points and currently ignored."""

    model_config = ConfigDict(extra="ignore")


# ── API Requests / Responses ──────────────────────────────────────────────────

class AnalyzeTextRequest(BaseModel):
    text: str = Field(..., description="Raw document text to summarize.")
    options: SummarizeOptions = Field(default_factory=SummarizeOptions)


class SummaryMetadata(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    original_length: int
    generated_at: str
    model: str | None = None
    processing_time_ms: int


class SummaryResponse(BaseModel):
    id: str
    summary: DocumentSummary
    metadata: SummaryMetadata

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


class ErrorResponse(BaseModel):
    error: str
    detail: str
    request_id: str | None = None
