"""
Extract one JSON object from free-form model output.

Models wrap JSON in prose or code fences and occasionally emit trailing
commas, typographic quotes or single-quoted strings.  Extraction takes
everything from the first ``{`` to the last ``}`` and, if that does not
parse, applies exactly one repair pass before giving up.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any

from ..exceptions import GenerationError

logger = logging.getLogger(__name__)

_OBJECT_RE = re.compile(r"\{[\s\S]*\}")
_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")
_SINGLE_QUOTED_RE = re.compile(r"([{\[,:]\s*)'((?:[^'\\]|\\.)*)'")
_SMART_QUOTES = str.maketrans({
    "“": '"',
    "”": '"',
    "‘": "'",
    "’": "'",
})


@dataclass
class ParseResult:
    """Tagged result: either ``data`` is set, or ``error`` explains why not."""

    data: dict[str, Any] | None = None
    error: str | None = None
    raw: str = ""
    repaired: bool = False
    notes: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.data is not None


def repair_json(text: str) -> str:
    """Single bounded repair: quotes normalised, trailing commas removed."""
    repaired = text.translate(_SMART_QUOTES)
    repaired = _TRAILING_COMMA_RE.sub(r"\1", repaired)
    repaired = _SINGLE_QUOTED_RE.sub(
        lambda m: m.group(1) + json.dumps(m.group(2).replace("\\'", "'")),
        repaired,
    )
    return repaired


def extract_json_object(text: str | None) -> ParseResult:
    """Find and parse the first-to-last brace span of ``text``."""
    raw = text or ""
    match = _OBJECT_RE.search(raw)
    if not match:
        return ParseResult(error="No JSON object found in response", raw=raw)

    candidate = match.group()
    try:
        data = json.loads(candidate)
    except json.JSONDecodeError as first_error:
        try:
            data = json.loads(repair_json(candidate))
        except json.JSONDecodeError as e:
            return ParseResult(
                error=f"Invalid JSON after repair: {e.msg} (line {e.lineno}, col {e.colno})",
                raw=raw,
                notes=[f"initial parse: {first_error.msg}"],
            )
        logger.warning(f"Recovered JSON after repair pass ({first_error.msg})")
        if not isinstance(data, dict):
            return ParseResult(error="Response JSON is not an object", raw=raw, repaired=True)
        return ParseResult(data=data, raw=raw, repaired=True)

    if not isinstance(data, dict):
        return ParseResult(error="Response JSON is not an object", raw=raw)
    return ParseResult(data=data, raw=raw)


def require_array(data: dict[str, Any] | None, key: str, label: str | None = None) -> list:
    """Return ``data[key]`` if it is a list; otherwise raise GenerationError."""
    value = (data or {}).get(key)
    if not isinstance(value, list):
        raise GenerationError(f"Failed to parse {label or key} from AI response")
    return value
