# core/telemetry.py
"""Fire-and-forget recording of completed external calls."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

import structlog

from core.usage import UsageTotals

logger = structlog.get_logger(__name__)

OUTCOME_SUCCESS = "success"


@dataclass(frozen=True)
class CallRecord:
    """One completed external call."""

    model: str
    activity_type: str
    input_size: int
    output_size: int
    duration_ms: float
    outcome: str

    @property
    def succeeded(self) -> bool:
        return self.outcome == OUTCOME_SUCCESS


class TelemetrySink(Protocol):
    def record(self, call: CallRecord) -> None: ...


class LoggingTelemetrySink:
    """Log every call and keep per-model usage totals."""

    def __init__(self) -> None:
        self.model_totals: dict[str, UsageTotals] = {}

    def record(self, call: CallRecord) -> None:
        totals = self.model_totals.setdefault(call.model, UsageTotals())
        totals.add(call.input_size, call.output_size, call.duration_ms, call.succeeded)
        logger.info(
            "Generation call completed.",
            model=call.model,
            activity_type=call.activity_type,
            input_size=call.input_size,
            output_size=call.output_size,
            duration_ms=round(call.duration_ms, 1),
            outcome=call.outcome,
            model_calls=totals.calls,
        )

    def get_model_totals(self, model: str) -> dict[str, int | float] | None:
        totals = self.model_totals.get(model)
        return totals.get_if_used() if totals else None


class NullTelemetrySink:
    def record(self, call: CallRecord) -> None:
        return None


def emit(sink: TelemetrySink, call: CallRecord) -> None:
    """Send ``call`` to ``sink`` without letting sink failures escape."""
    try:
        sink.record(call)
    except Exception as exc:
        logger.warning("Telemetry sink failed to record call.", error=str(exc))
