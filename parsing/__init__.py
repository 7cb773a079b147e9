# parsing/__init__.py
"""Common parsing utilities for model responses."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any

import structlog

logger = structlog.get_logger(__name__)

_OBJECT_PATTERN = re.compile(r"\{.*\}", re.DOTALL)


class ParseError(Exception):
    """Custom exception for parsing errors."""


@dataclass(frozen=True)
class ParseResult:
    """Either parsed ``data`` or an ``error`` description, never both."""

    data: dict[str, Any] | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.data is not None

    def unwrap(self) -> dict[str, Any]:
        if not self.ok:
            raise ParseError(self.error or "no parsed data")
        assert self.data is not None
        return self.data


def parse_json_object(text: str | None) -> ParseResult:
    """Parse a JSON object from model output.

    Accepts a bare object or an object surrounded by stray prose, which some
    models emit despite instructions. Anything other than a JSON object is
    reported as an error.
    """
    if not text or not text.strip():
        return ParseResult(error="empty response")

    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as e:
        match = _OBJECT_PATTERN.search(text)
        if not match:
            return ParseResult(error=f"invalid JSON: {e.msg}")
        try:
            parsed = json.loads(match.group(0))
        except json.JSONDecodeError as inner:
            return ParseResult(error=f"invalid JSON: {inner.msg}")
        logger.debug("Recovered JSON object embedded in surrounding text.")

    if not isinstance(parsed, dict):
        return ParseResult(
            error=f"expected a JSON object, got {type(parsed).__name__}"
        )
    return ParseResult(data=parsed)


__all__ = ["ParseError", "ParseResult", "parse_json_object"]
