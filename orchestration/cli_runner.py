# orchestration/cli_runner.py
"""Command-line runner for activity content generation."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any

import structlog
from utils.logging import setup_logging

from models import StudentProfile
from orchestration.activity_orchestrator import (
    ActivityOrchestrator,
    PipelineContext,
    coerce_activity_type,
)

logger = structlog.get_logger(__name__)

ALL_ACTIVITIES = "all"


async def _run(
    context: PipelineContext,
    source_text: str,
    activity: str,
    age_years: int,
    use_cache: bool,
) -> dict[str, Any]:
    orchestrator = ActivityOrchestrator(context)
    profile = StudentProfile(age_years=age_years)
    try:
        if activity == ALL_ACTIVITIES:
            results = await orchestrator.generate_all(
                source_text, profile, use_cache=use_cache
            )
            return {t.value: content.to_payload() for t, content in results.items()}
        content = await orchestrator.generate_activity_content(
            source_text, profile, activity, use_cache=use_cache
        )
        return content.to_payload()
    finally:
        await context.aclose()


def run(story_file: str, activity: str, age_years: int, use_cache: bool = True) -> int:
    """Generate content for ``story_file`` and print it as JSON.

    Returns the process exit code.
    """
    setup_logging()
    if activity != ALL_ACTIVITIES:
        activity = coerce_activity_type(activity).value

    path = Path(story_file)
    try:
        source_text = path.read_text(encoding="utf-8")
    except OSError as e:
        logger.error("Could not read story file.", path=str(path), error=str(e))
        return 1
    if not source_text.strip():
        logger.error("Story file is empty.", path=str(path))
        return 1

    context = PipelineContext.create()
    try:
        payload = asyncio.run(_run(context, source_text, activity, age_years, use_cache))
    except KeyboardInterrupt:
        logger.info("Activity generation interrupted.")
        return 130
    print(json.dumps(payload, indent=2, ensure_ascii=False))
    return 0
