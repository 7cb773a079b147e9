# agents/character_agent.py
"""Character identification content with decoy characters."""

from __future__ import annotations

from typing import ClassVar

from agents.base_extraction_agent import ExtractionAgent
from models import ActivityType


class CharacterAgent(ExtractionAgent):
    activity_type: ClassVar[ActivityType] = ActivityType.WHO
    template_name: ClassVar[str] = "character_agent/extract_characters.j2"
    temperature_setting: ClassVar[str] = "TEMPERATURE_WHO"
