# agents/vocabulary_agent.py
"""Vocabulary matching content: story words, definitions and decoys."""

from __future__ import annotations

from typing import Any, ClassVar

from agents.base_extraction_agent import ExtractionAgent
from models import ActivityType, GenerationRequest


class VocabularyAgent(ExtractionAgent):
    activity_type: ClassVar[ActivityType] = ActivityType.VOCABULARY
    template_name: ClassVar[str] = "vocabulary_agent/extract_vocabulary.j2"
    temperature_setting: ClassVar[str] = "TEMPERATURE_VOCABULARY"

    def prepare_payload(
        self, data: dict[str, Any], request: GenerationRequest
    ) -> dict[str, Any]:
        # Some models return bare strings for decoys
        decoys = data.get("decoyDefinitions")
        if isinstance(decoys, list):
            data["decoyDefinitions"] = [
                {"definition": d, "isUsed": False} if isinstance(d, str) else d
                for d in decoys
            ]
        return data
