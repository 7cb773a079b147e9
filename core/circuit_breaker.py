# core/circuit_breaker.py
"""Circuit breaker guarding calls to the generation service."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

import structlog
from config import settings

logger = structlog.get_logger(__name__)


class BreakerState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass(frozen=True)
class CircuitBreakerState:
    """Point-in-time view of the breaker."""

    failure_count: int
    last_failure_at: float | None
    state: BreakerState


class CircuitBreaker:
    """Three-state breaker counting consecutive failures.

    ``allow_request`` must be called before every external call and the
    outcome reported through ``record_success`` or ``record_failure``.
    """

    def __init__(
        self,
        failure_threshold: int | None = None,
        cooldown_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.failure_threshold = (
            failure_threshold
            if failure_threshold is not None
            else settings.CIRCUIT_BREAKER_FAILURE_THRESHOLD
        )
        self.cooldown_seconds = (
            cooldown_seconds
            if cooldown_seconds is not None
            else settings.CIRCUIT_BREAKER_COOLDOWN_SECONDS
        )
        self._clock = clock
        self._lock = threading.Lock()
        self._state = BreakerState.CLOSED
        self._failure_count = 0
        self._last_failure_at: float | None = None
        self._opened_at: float | None = None
        self._trial_in_flight = False

    @property
    def state(self) -> BreakerState:
        with self._lock:
            return self._state

    def allow_request(self) -> bool:
        """Return True if a call may proceed."""
        with self._lock:
            if self._state is BreakerState.CLOSED:
                return True

            if self._state is BreakerState.OPEN:
                opened_at = self._opened_at if self._opened_at is not None else 0.0
                if self._clock() - opened_at < self.cooldown_seconds:
                    return False
                self._state = BreakerState.HALF_OPEN
                self._trial_in_flight = True
                logger.info("Circuit breaker half-open; allowing one trial call.")
                return True

            # Half-open: only the single trial call is let through
            if self._trial_in_flight:
                return False
            self._trial_in_flight = True
            return True

    def record_success(self) -> None:
        with self._lock:
            if self._state is not BreakerState.CLOSED:
                logger.info(
                    "Circuit breaker closed after successful call.",
                    previous_state=self._state.value,
                )
            self._state = BreakerState.CLOSED
            self._failure_count = 0
            self._trial_in_flight = False
            self._opened_at = None

    def record_failure(self) -> None:
        with self._lock:
            now = self._clock()
            self._failure_count += 1
            self._last_failure_at = now

            if self._state is BreakerState.HALF_OPEN:
                self._trip(now, "trial call failed")
            elif (
                self._state is BreakerState.CLOSED
                and self._failure_count >= self.failure_threshold
            ):
                self._trip(now, "failure threshold reached")

    def release_trial(self) -> None:
        """Give back a half-open trial slot whose call ended without an outcome.

        Used when the trial call is cancelled, so the next request may run
        the trial instead of being rejected for good.
        """
        with self._lock:
            if self._state is BreakerState.HALF_OPEN and self._trial_in_flight:
                self._trial_in_flight = False
                logger.info("Circuit breaker trial call abandoned; slot released.")

    def _trip(self, now: float, reason: str) -> None:
        self._state = BreakerState.OPEN
        self._opened_at = now
        self._trial_in_flight = False
        logger.warning(
            "Circuit breaker opened.",
            reason=reason,
            failure_count=self._failure_count,
            cooldown_seconds=self.cooldown_seconds,
        )

    def snapshot(self) -> CircuitBreakerState:
        with self._lock:
            return CircuitBreakerState(
                failure_count=self._failure_count,
                last_failure_at=self._last_failure_at,
                state=self._state,
            )

    def reset(self) -> None:
        with self._lock:
            self._state = BreakerState.CLOSED
            self._failure_count = 0
            self._last_failure_at = None
            self._opened_at = None
            self._trial_in_flight = False
