# core/backoff.py
"""Jittered exponential backoff between retries of the same call."""

from __future__ import annotations

import random

from config import settings


def compute_backoff_delay_ms(
    attempt: int,
    rng: random.Random | None = None,
    base_ms: float | None = None,
    max_ms: float | None = None,
    min_ms: float | None = None,
    jitter_ratio: float | None = None,
) -> float:
    """Return the delay in milliseconds to wait before retry ``attempt``.

    The delay doubles with each attempt up to ``max_ms``, is jittered
    uniformly by ``±jitter_ratio`` and never drops below ``min_ms``.
    """
    if attempt < 1:
        raise ValueError(f"attempt must be >= 1, got {attempt}")

    base = settings.BACKOFF_BASE_DELAY_MS if base_ms is None else base_ms
    ceiling = settings.BACKOFF_MAX_DELAY_MS if max_ms is None else max_ms
    floor = settings.BACKOFF_MIN_DELAY_MS if min_ms is None else min_ms
    jitter = settings.BACKOFF_JITTER_RATIO if jitter_ratio is None else jitter_ratio
    source = rng if rng is not None else random

    # Cap the exponent so huge attempt numbers do not overflow float math
    exponential = base * (2 ** min(attempt - 1, 62))
    delay = min(exponential, ceiling)
    delay *= 1 + source.uniform(-jitter, jitter)
    return max(delay, floor)
