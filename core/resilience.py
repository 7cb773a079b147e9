# core/resilience.py
"""Guarded external calls: breaker gate, timeout, classified retry, telemetry."""

from __future__ import annotations

import asyncio
import random
import time
from collections.abc import Awaitable, Callable

import structlog
from config import settings

from core.backoff import compute_backoff_delay_ms
from core.circuit_breaker import BreakerState, CircuitBreaker
from core.errors import ErrorKind, GenerationError, classify_error
from core.llm_interface import GenerationClient, count_tokens
from core.telemetry import OUTCOME_SUCCESS, CallRecord, TelemetrySink, emit
from models import ModelParameters

logger = structlog.get_logger(__name__)


class ResilientCaller:
    """Wrap a ``GenerationClient`` with the pipeline's failure handling.

    Each logical call makes up to ``retry_attempts`` external attempts.
    Retryable failures are separated by a jittered backoff; non-retryable
    ones and breaker rejections surface immediately as ``GenerationError``.
    """

    def __init__(
        self,
        client: GenerationClient,
        breaker: CircuitBreaker,
        telemetry: TelemetrySink,
        rng: random.Random | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
        retry_attempts: int | None = None,
        call_timeout_seconds: float | None = None,
    ) -> None:
        self.client = client
        self.breaker = breaker
        self.telemetry = telemetry
        self.rng = rng if rng is not None else random.Random()
        self._sleep = sleep
        self._clock = clock
        self.retry_attempts = (
            retry_attempts if retry_attempts is not None else settings.LLM_RETRY_ATTEMPTS
        )
        self.call_timeout_seconds = (
            call_timeout_seconds
            if call_timeout_seconds is not None
            else settings.LLM_CALL_TIMEOUT_SECONDS
        )

    async def call(
        self,
        prompt: str,
        model_parameters: ModelParameters,
        activity_type: str = "",
        deadline: float | None = None,
    ) -> str:
        """Return model text for ``prompt`` or raise ``GenerationError``."""
        last_error: GenerationError | None = None

        for attempt in range(1, self.retry_attempts + 1):
            timeout = self.call_timeout_seconds
            if deadline is not None:
                remaining = deadline - self._clock()
                if remaining <= 0:
                    break
                timeout = min(timeout, remaining)

            if not self.breaker.allow_request():
                logger.warning(
                    "Circuit breaker open; skipping external call.",
                    activity_type=activity_type,
                )
                raise GenerationError(
                    "Circuit breaker is open; external call not attempted",
                    kind=ErrorKind.BREAKER_OPEN,
                    retryable=False,
                )

            is_trial = self.breaker.state is BreakerState.HALF_OPEN
            started = self._clock()
            try:
                text = await asyncio.wait_for(
                    self.client.call(prompt, model_parameters), timeout=timeout
                )
            except asyncio.CancelledError:
                if is_trial:
                    self.breaker.release_trial()
                logger.info(
                    "Generation call cancelled.",
                    activity_type=activity_type,
                    attempt=attempt,
                    trial_call=is_trial,
                )
                raise
            except Exception as exc:
                duration_ms = (self._clock() - started) * 1000.0
                classification = classify_error(exc)
                self.breaker.record_failure()
                self._record(
                    model_parameters,
                    activity_type,
                    prompt,
                    "",
                    duration_ms,
                    classification.kind.value,
                )
                message = str(exc) or type(exc).__name__
                last_error = GenerationError(
                    message, kind=classification.kind, retryable=classification.retryable
                )
                logger.warning(
                    "Generation call failed.",
                    activity_type=activity_type,
                    attempt=attempt,
                    max_attempts=self.retry_attempts,
                    kind=classification.kind.value,
                    retryable=classification.retryable,
                    error=message,
                )
                if not classification.retryable:
                    raise last_error from exc
                if attempt < self.retry_attempts:
                    delay_seconds = compute_backoff_delay_ms(attempt, self.rng) / 1000.0
                    if deadline is not None and self._clock() + delay_seconds >= deadline:
                        logger.warning(
                            "Backoff would overrun the generation deadline; giving up.",
                            activity_type=activity_type,
                        )
                        break
                    logger.info(
                        "Retrying generation call after backoff.",
                        activity_type=activity_type,
                        delay_seconds=round(delay_seconds, 3),
                    )
                    await self._sleep(delay_seconds)
                continue

            duration_ms = (self._clock() - started) * 1000.0
            self.breaker.record_success()
            self._record(
                model_parameters,
                activity_type,
                prompt,
                text,
                duration_ms,
                OUTCOME_SUCCESS,
            )
            return text

        if last_error is None:
            last_error = GenerationError(
                "Generation deadline exceeded before the call could be attempted",
                kind=ErrorKind.NETWORK,
            )
        raise last_error

    def _record(
        self,
        model_parameters: ModelParameters,
        activity_type: str,
        prompt: str,
        output: str,
        duration_ms: float,
        outcome: str,
    ) -> None:
        emit(
            self.telemetry,
            CallRecord(
                model=model_parameters.model,
                activity_type=activity_type,
                input_size=count_tokens(prompt, model_parameters.model),
                output_size=count_tokens(output, model_parameters.model),
                duration_ms=duration_ms,
                outcome=outcome,
            ),
        )
