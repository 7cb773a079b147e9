# agents/prediction_agent.py
from __future__ import annotations

from typing import ClassVar

from agents.base_extraction_agent import ExtractionAgent
from models import ActivityType


class PredictionAgent(ExtractionAgent):
    """Ask what happens next, with a plausibility score for each prediction."""

    activity_type: ClassVar[ActivityType] = ActivityType.PREDICT
    template_name: ClassVar[str] = "prediction_agent/extract_predictions.j2"
    temperature_setting: ClassVar[str] = "TEMPERATURE_PREDICT"
