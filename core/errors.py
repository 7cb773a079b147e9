# core/errors.py
"""Failure taxonomy for external generation calls."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum

import httpx


class ErrorKind(str, Enum):
    """Classified failure kinds."""

    NETWORK = "NETWORK"
    RATE_LIMIT = "RATE_LIMIT"
    AUTH = "AUTH"
    QUOTA = "QUOTA"
    SERVER = "SERVER"
    CONTENT_FILTER = "CONTENT_FILTER"
    UNKNOWN = "UNKNOWN"
    # Synthetic kinds raised inside the pipeline
    BREAKER_OPEN = "BREAKER_OPEN"
    PARSE_FAILURE = "PARSE_FAILURE"
    STRUCTURAL_VALIDATION_FAILURE = "STRUCTURAL_VALIDATION_FAILURE"


NON_RETRYABLE_KINDS = frozenset(
    {
        ErrorKind.AUTH,
        ErrorKind.QUOTA,
        ErrorKind.CONTENT_FILTER,
        ErrorKind.BREAKER_OPEN,
    }
)

# Checked in order; the first kind with a matching keyword wins.
_KEYWORDS: tuple[tuple[ErrorKind, tuple[str, ...]], ...] = (
    (
        ErrorKind.CONTENT_FILTER,
        ("content filter", "content_filter", "content policy", "safety system"),
    ),
    (
        ErrorKind.AUTH,
        (
            "401",
            "403",
            "unauthorized",
            "forbidden",
            "invalid api key",
            "invalid_api_key",
            "incorrect api key",
            "authentication",
        ),
    ),
    (
        ErrorKind.QUOTA,
        ("quota", "insufficient_quota", "billing", "exceeded your current"),
    ),
    (
        ErrorKind.RATE_LIMIT,
        ("429", "rate limit", "rate_limit", "ratelimit", "too many requests"),
    ),
    (
        ErrorKind.SERVER,
        (
            "500",
            "502",
            "503",
            "504",
            "server error",
            "internal error",
            "bad gateway",
            "service unavailable",
            "overloaded",
        ),
    ),
    (
        ErrorKind.NETWORK,
        (
            "timeout",
            "timed out",
            "network",
            "connection",
            "econnreset",
            "econnrefused",
            "enotfound",
            "socket",
            "dns",
        ),
    ),
)


@dataclass(frozen=True)
class ErrorClassification:
    kind: ErrorKind
    retryable: bool


class GenerationError(Exception):
    """A classified failure raised inside the generation pipeline."""

    def __init__(
        self,
        message: str,
        kind: ErrorKind = ErrorKind.UNKNOWN,
        retryable: bool | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.retryable = (
            retryable if retryable is not None else kind not in NON_RETRYABLE_KINDS
        )


def classify_error(exc: BaseException) -> ErrorClassification:
    """Map a raised failure to an error kind and retryable flag."""
    if isinstance(exc, GenerationError):
        return ErrorClassification(exc.kind, exc.retryable)
    if isinstance(exc, (asyncio.TimeoutError, httpx.TimeoutException)):
        return ErrorClassification(ErrorKind.NETWORK, True)
    if isinstance(exc, httpx.TransportError):
        return ErrorClassification(ErrorKind.NETWORK, True)

    message = str(exc).lower()
    for kind, keywords in _KEYWORDS:
        if any(keyword in message for keyword in keywords):
            return ErrorClassification(kind, kind not in NON_RETRYABLE_KINDS)
    return ErrorClassification(ErrorKind.UNKNOWN, True)
