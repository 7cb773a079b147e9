# core/usage.py
from __future__ import annotations

from dataclasses import dataclass


@dataclass
class UsageTotals:
    """Accumulated external call usage for one model."""

    calls: int = 0
    failures: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    duration_ms: float = 0.0

    def add(
        self,
        input_tokens: int,
        output_tokens: int,
        duration_ms: float,
        succeeded: bool,
    ) -> None:
        """Accumulate the values of one completed call."""
        self.calls += 1
        if not succeeded:
            self.failures += 1
        self.input_tokens += input_tokens
        self.output_tokens += output_tokens
        self.duration_ms += duration_ms

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens

    def get_if_used(self) -> dict[str, int | float] | None:
        """Return usage dict only if any call was recorded."""
        if self.calls:
            return {
                "calls": self.calls,
                "failures": self.failures,
                "input_tokens": self.input_tokens,
                "output_tokens": self.output_tokens,
                "total_tokens": self.total_tokens,
                "duration_ms": round(self.duration_ms, 1),
            }
        return None
