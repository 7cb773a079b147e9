# agents/setting_agent.py
from __future__ import annotations

from typing import ClassVar

from agents.base_extraction_agent import ExtractionAgent
from models import ActivityType


class SettingAgent(ExtractionAgent):
    """Extract story settings plus plausible places the story never visits."""

    activity_type: ClassVar[ActivityType] = ActivityType.WHERE
    template_name: ClassVar[str] = "setting_agent/extract_settings.j2"
    temperature_setting: ClassVar[str] = "TEMPERATURE_WHERE"
