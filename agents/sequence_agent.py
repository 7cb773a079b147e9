# agents/sequence_agent.py
"""Event sequencing content drawn from the whole source text."""

from __future__ import annotations

import re
from typing import Any, ClassVar

from agents.base_extraction_agent import ExtractionAgent
from models import (
    ActivityContentModel,
    ActivityType,
    EventSequence,
    GenerationRequest,
    Severity,
    ValidationResult,
)

MAX_SEGMENTS = 8

_PARAGRAPH_SPLIT = re.compile(r"\n\s*\n")
_SENTENCE_SPLIT = re.compile(r"(?<=[.!?])\s+")


def split_into_segments(text: str, max_segments: int = MAX_SEGMENTS) -> list[str]:
    """Split ``text`` into at most ``max_segments`` contiguous passages.

    Paragraphs are used when the text has more than one; otherwise sentences
    are grouped evenly.
    """
    units = [p.strip() for p in _PARAGRAPH_SPLIT.split(text) if p.strip()]
    joiner = "\n\n"
    if len(units) <= 1:
        units = [s.strip() for s in _SENTENCE_SPLIT.split(text.strip()) if s.strip()]
        joiner = " "
    if not units:
        return []
    if len(units) <= max_segments:
        return units

    segments: list[str] = []
    per_segment, extra = divmod(len(units), max_segments)
    start = 0
    for index in range(max_segments):
        size = per_segment + (1 if index < extra else 0)
        segments.append(joiner.join(units[start : start + size]))
        start += size
    return segments


class SequenceAgent(ExtractionAgent):
    """Ask for chronologically ordered events and shuffle them locally."""

    activity_type: ClassVar[ActivityType] = ActivityType.SEQUENCE
    template_name: ClassVar[str] = "sequence_agent/extract_events.j2"
    temperature_setting: ClassVar[str] = "TEMPERATURE_SEQUENCE"

    def prompt_context(self, request: GenerationRequest) -> dict[str, Any]:
        context = super().prompt_context(request)
        context["segments"] = split_into_segments(request.source_text)
        return context

    def prepare_payload(
        self, data: dict[str, Any], request: GenerationRequest
    ) -> dict[str, Any]:
        events = data.get("orderedEvents")
        if isinstance(events, list):
            data["shuffledEvents"] = self.rng.sample(events, len(events))
        return data

    def check_against_request(
        self, content: ActivityContentModel, request: GenerationRequest
    ) -> ValidationResult:
        """Reject events citing a segment the prompt never listed."""
        if not isinstance(content, EventSequence):
            return ValidationResult.ok()
        segment_count = len(split_into_segments(request.source_text))
        for event in content.ordered_events:
            if event.segment is not None and event.segment > segment_count:
                return ValidationResult.fail(
                    f"event {event.id} cites segment {event.segment} but the text "
                    f"has {segment_count} segment(s)",
                    Severity.MEDIUM,
                )
        return ValidationResult.ok()
