"""
Best-effort JSON recovery from free-form model output.

Models wrap JSON in commentary or markdown fences despite instructions, so
the most structured signal is tried first:

  1. a ```json fenced block
  2. the greedy first-"{" to last-"}" substring, then the same with
     trailing commas removed
  3. the whole text

parse_json never raises. None means nothing usable was found.
"""

import json
import re
from typing import Any

_FENCED_JSON = re.compile(r"```json\s*([\s\S]*?)\s*```", re.IGNORECASE)
_BRACED = re.compile(r"\{[\s\S]*\}")
_TRAILING_COMMA = re.compile(r",\s*([}\]])")


def _loads(candidate: str) -> Any | None:
    # JSONDecodeError and the int-digit-limit error are both ValueErrors
    try:
        return json.loads(candidate)
    except (ValueError, RecursionError):
        return None


def parse_json(raw: Any) -> Any | None:
    if not raw or not isinstance(raw, str):
        return None

    fence_match = _FENCED_JSON.search(raw)
    if fence_match:
        parsed = _loads(fence_match.group(1).strip())
        if parsed is not None:
            return parsed

    brace_match = _BRACED.search(raw)
    if brace_match:
        candidate = brace_match.group(0)
        parsed = _loads(candidate)
        if parsed is None:
            parsed = _loads(_TRAILING_COMMA.sub(r"\1", candidate))
        if parsed is not None:
            return parsed

    return _loads(raw)
