# orchestration/activity_orchestrator.py
"""
Public entry point for reading-activity content generation. Combines the
content cache, the extraction agents, content validation, bounded
regeneration and static fallback content so that every request ends in
structurally valid, age-appropriate activity content.

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at

    http://www.apache.org/licenses/LICENSE-2.0

Unless required by applicable law or agreed to in writing, software
distributed under the License is distributed on an "AS IS" BASIS,
WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
See the License for the specific language governing permissions and
limitations under the License.

Copyright 2025 Dennis Lewis
"""

from __future__ import annotations

import asyncio
import random
import time
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

import structlog
from config import ActivitySettings, settings

from agents.base_extraction_agent import ExtractionAgent
from agents.character_agent import CharacterAgent
from agents.main_idea_agent import MainIdeaAgent
from agents.prediction_agent import PredictionAgent
from agents.sequence_agent import SequenceAgent
from agents.setting_agent import SettingAgent
from agents.vocabulary_agent import VocabularyAgent
from core.circuit_breaker import CircuitBreaker
from core.errors import GenerationError
from core.llm_interface import GenerationClient, LLMService
from core.resilience import ResilientCaller
from core.telemetry import LoggingTelemetrySink, TelemetrySink
from models import (
    ActivityContentModel,
    ActivityType,
    GenerationRequest,
    StudentProfile,
)
from processing.content_cache import ContentCache, make_cache_key
from processing.content_validator import validate_content
from processing.fallback_templates import get_fallback_content

logger = structlog.get_logger(__name__)

AGENT_REGISTRY: dict[ActivityType, type[ExtractionAgent]] = {
    ActivityType.WHO: CharacterAgent,
    ActivityType.WHERE: SettingAgent,
    ActivityType.SEQUENCE: SequenceAgent,
    ActivityType.MAIN_IDEA: MainIdeaAgent,
    ActivityType.VOCABULARY: VocabularyAgent,
    ActivityType.PREDICT: PredictionAgent,
}
if set(AGENT_REGISTRY) != set(ActivityType):  # pragma: no cover - import guard
    raise RuntimeError("Every activity type needs an extraction agent.")


def coerce_activity_type(activity_type: ActivityType | str) -> ActivityType:
    try:
        return ActivityType(activity_type)
    except ValueError:
        valid = ", ".join(t.value for t in ActivityType)
        raise ValueError(
            f"Unknown activity type {activity_type!r}; expected one of: {valid}"
        ) from None


@dataclass
class PipelineContext:
    """Shared state and collaborators for one pipeline instance.

    The breaker and cache live here, so every request served by the same
    context sees the same breaker state and cached content.
    """

    settings: ActivitySettings
    client: GenerationClient
    cache: ContentCache
    breaker: CircuitBreaker
    telemetry: TelemetrySink
    rng: random.Random
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    clock: Callable[[], float] = time.monotonic
    caller: ResilientCaller = field(init=False)

    def __post_init__(self) -> None:
        self.caller = ResilientCaller(
            self.client,
            self.breaker,
            self.telemetry,
            rng=self.rng,
            sleep=self.sleep,
            clock=self.clock,
            retry_attempts=self.settings.LLM_RETRY_ATTEMPTS,
            call_timeout_seconds=self.settings.LLM_CALL_TIMEOUT_SECONDS,
        )

    @classmethod
    def create(
        cls,
        client: GenerationClient | None = None,
        *,
        app_settings: ActivitySettings | None = None,
        telemetry: TelemetrySink | None = None,
        rng: random.Random | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> PipelineContext:
        """Build a context from settings, filling in default collaborators."""
        app_settings = app_settings or settings
        return cls(
            settings=app_settings,
            client=client
            or LLMService(
                api_base=app_settings.OPENAI_API_BASE,
                api_key=app_settings.OPENAI_API_KEY,
                timeout=app_settings.HTTPX_TIMEOUT,
                max_concurrent_calls=app_settings.MAX_CONCURRENT_LLM_CALLS,
            ),
            cache=ContentCache(
                ttl_seconds=app_settings.CONTENT_CACHE_TTL_SECONDS,
                max_entries=app_settings.CONTENT_CACHE_MAX_ENTRIES,
                eviction_ratio=app_settings.CONTENT_CACHE_EVICTION_RATIO,
                clock=clock,
            ),
            breaker=CircuitBreaker(
                failure_threshold=app_settings.CIRCUIT_BREAKER_FAILURE_THRESHOLD,
                cooldown_seconds=app_settings.CIRCUIT_BREAKER_COOLDOWN_SECONDS,
                clock=clock,
            ),
            telemetry=telemetry or LoggingTelemetrySink(),
            rng=rng or random.Random(),
            sleep=sleep,
            clock=clock,
        )

    async def aclose(self) -> None:
        close = getattr(self.client, "aclose", None)
        if close is not None:
            await close()


class ActivityOrchestrator:
    """Serve activity content: cache, then generation attempts, then fallback."""

    def __init__(self, context: PipelineContext) -> None:
        self.context = context
        self._agents: dict[ActivityType, ExtractionAgent] = {
            activity_type: agent_cls(
                context.caller,
                model_name=context.settings.GENERATION_MODEL,
                rng=context.rng,
            )
            for activity_type, agent_cls in AGENT_REGISTRY.items()
        }

    def agent_for(self, activity_type: ActivityType) -> ExtractionAgent:
        return self._agents[activity_type]

    async def generate_activity_content(
        self,
        source_text: str,
        student_profile: StudentProfile | Mapping[str, Any],
        activity_type: ActivityType | str,
        use_cache: bool = True,
    ) -> ActivityContentModel:
        """Return activity content for ``source_text``.

        Never raises once the request is well formed. Content that could not
        be generated is replaced by fallback content flagged ``isFallback``.

        Raises:
            ValueError: ``activity_type`` is not a known activity type, or
                ``student_profile`` has a missing or invalid age.
        """
        activity_type = coerce_activity_type(activity_type)
        age_years = StudentProfile.from_any(student_profile).age_years
        cache_key = make_cache_key(activity_type, age_years, source_text)
        log = logger.bind(activity_type=activity_type.value, age_years=age_years)

        if use_cache:
            cached = self.context.cache.get(cache_key)
            if cached is not None:
                log.info("Serving activity content from cache.")
                return cached

        app_settings = self.context.settings
        deadline = None
        if app_settings.GENERATION_DEADLINE_SECONDS is not None:
            deadline = self.context.clock() + app_settings.GENERATION_DEADLINE_SECONDS

        agent = self.agent_for(activity_type)
        for attempt in range(1, app_settings.MAX_GENERATION_ATTEMPTS + 1):
            if deadline is not None and self.context.clock() >= deadline:
                log.warning("Generation deadline reached; no further attempts.")
                break

            request = GenerationRequest(
                source_text=source_text,
                age_years=age_years,
                activity_type=activity_type,
                attempt_number=attempt,
            )
            try:
                content = await agent.extract(request, deadline=deadline)
            except GenerationError as exc:
                log.warning(
                    "Generation attempt failed.",
                    attempt=attempt,
                    kind=exc.kind.value,
                    retryable=exc.retryable,
                    error=str(exc),
                )
                if not exc.retryable:
                    break
                continue
            except Exception as exc:
                log.error(
                    "Unexpected error during generation attempt.",
                    attempt=attempt,
                    error=str(exc),
                    exc_info=True,
                )
                continue

            result = validate_content(content, age_years)
            if result.is_valid:
                self.context.cache.set(cache_key, content)
                log.info("Generated activity content.", attempt=attempt)
                return content

            log.warning(
                "Generated content rejected by validation.",
                attempt=attempt,
                reason=result.reason,
                severity=result.severity.value if result.severity else None,
            )

        log.warning("Falling back to static activity content.")
        return get_fallback_content(activity_type)

    async def generate_all(
        self,
        source_text: str,
        student_profile: StudentProfile | Mapping[str, Any],
        use_cache: bool = True,
    ) -> dict[ActivityType, ActivityContentModel]:
        """Generate every activity type concurrently."""
        results = await asyncio.gather(
            *(
                self.generate_activity_content(
                    source_text, student_profile, activity_type, use_cache=use_cache
                )
                for activity_type in ActivityType
            )
        )
        return dict(zip(ActivityType, results))


_default_context: PipelineContext | None = None
_default_orchestrator: ActivityOrchestrator | None = None


def get_default_orchestrator() -> ActivityOrchestrator:
    """Return the process-wide orchestrator, creating it on first use."""
    global _default_context, _default_orchestrator
    if _default_orchestrator is None:
        _default_context = PipelineContext.create()
        _default_orchestrator = ActivityOrchestrator(_default_context)
    return _default_orchestrator


def set_default_context(context: PipelineContext | None) -> None:
    """Replace the process-wide context; ``None`` resets to lazy creation."""
    global _default_context, _default_orchestrator
    _default_context = context
    _default_orchestrator = ActivityOrchestrator(context) if context else None


async def generate_activity_content(
    source_text: str,
    student_profile: StudentProfile | Mapping[str, Any],
    activity_type: ActivityType | str,
    use_cache: bool = True,
) -> ActivityContentModel:
    return await get_default_orchestrator().generate_activity_content(
        source_text, student_profile, activity_type, use_cache=use_cache
    )


def invalidate(source_text: str | None = None) -> int:
    """Drop cached content for ``source_text``, or all cached content."""
    removed = get_default_orchestrator().context.cache.invalidate(source_text)
    logger.info("Invalidated cached activity content.", removed=removed)
    return removed


def get_cache_stats() -> dict[str, Any]:
    return get_default_orchestrator().context.cache.get_stats()
