# agents/main_idea_agent.py
from __future__ import annotations

from typing import ClassVar

from agents.base_extraction_agent import ExtractionAgent
from models import ActivityType


class MainIdeaAgent(ExtractionAgent):
    activity_type: ClassVar[ActivityType] = ActivityType.MAIN_IDEA
    template_name: ClassVar[str] = "main_idea_agent/extract_main_idea.j2"
    temperature_setting: ClassVar[str] = "TEMPERATURE_MAIN_IDEA"
