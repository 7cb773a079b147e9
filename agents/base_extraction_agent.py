# agents/base_extraction_agent.py
"""Shared extraction flow for the activity content agents."""

from __future__ import annotations

import random
from typing import Any, ClassVar

import structlog
from config import settings
from pydantic import ValidationError

from core.errors import ErrorKind, GenerationError
from core.resilience import ResilientCaller
from models import (
    ActivityContentModel,
    ActivityType,
    GenerationRequest,
    ModelParameters,
    ValidationResult,
    parse_activity_content,
)
from parsing import parse_json_object
from processing.content_validator import validate_structure
from prompt_renderer import render_prompt

logger = structlog.get_logger(__name__)


class ExtractionAgent:
    """Turn source text into one kind of activity content.

    Subclasses name their activity type, prompt template and temperature
    setting. ``extract`` renders the prompt, calls the model through the
    resilient caller, parses the JSON reply and checks its structure.
    """

    activity_type: ClassVar[ActivityType]
    template_name: ClassVar[str]
    temperature_setting: ClassVar[str]

    def __init__(
        self,
        caller: ResilientCaller,
        model_name: str | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.caller = caller
        self.model_name = model_name or settings.GENERATION_MODEL
        self.rng = rng if rng is not None else random.Random()

    @property
    def base_temperature(self) -> float:
        return float(getattr(settings, self.temperature_setting))

    def model_parameters(self, attempt_number: int) -> ModelParameters:
        """Sampling parameters for ``attempt_number``; later attempts run cooler with more room."""
        step = attempt_number - 1
        temperature = max(
            settings.MIN_TEMPERATURE,
            self.base_temperature - step * settings.REGENERATION_TEMPERATURE_STEP,
        )
        max_tokens = min(
            settings.MAX_GENERATION_TOKENS,
            int(settings.DEFAULT_MAX_TOKENS * settings.REGENERATION_TOKEN_MULTIPLIER**step),
        )
        return ModelParameters(
            model=self.model_name,
            temperature=round(temperature, 2),
            max_tokens=max_tokens,
            top_p=settings.LLM_TOP_P,
        )

    def prompt_context(self, request: GenerationRequest) -> dict[str, Any]:
        return {
            "source_text": request.source_text,
            "age_years": request.age_years,
            "attempt_number": request.attempt_number,
        }

    def build_prompt(self, request: GenerationRequest) -> str:
        return render_prompt(self.template_name, self.prompt_context(request))

    def prepare_payload(
        self, data: dict[str, Any], request: GenerationRequest
    ) -> dict[str, Any]:
        """Hook for subclasses to complete the parsed payload before validation."""
        return data

    def check_against_request(
        self, content: ActivityContentModel, request: GenerationRequest
    ) -> ValidationResult:
        """Hook for checks that need the request as well as the content."""
        return ValidationResult.ok()

    async def extract(
        self, request: GenerationRequest, deadline: float | None = None
    ) -> ActivityContentModel:
        """Generate content for ``request``.

        Raises:
            GenerationError: The call failed, or the reply could not be parsed
                or failed the structural checks.
        """
        prompt = self.build_prompt(request)
        model_parameters = self.model_parameters(request.attempt_number)
        logger.debug(
            "Requesting activity content.",
            activity_type=self.activity_type.value,
            attempt=request.attempt_number,
            temperature=model_parameters.temperature,
            max_tokens=model_parameters.max_tokens,
        )
        text = await self.caller.call(
            prompt,
            model_parameters,
            activity_type=self.activity_type.value,
            deadline=deadline,
        )

        parsed = parse_json_object(text)
        if not parsed.ok:
            raise GenerationError(
                f"Could not parse {self.activity_type.value} response: {parsed.error}",
                kind=ErrorKind.PARSE_FAILURE,
            )

        payload = self.prepare_payload(parsed.unwrap(), request)
        payload["activityType"] = self.activity_type.value
        payload["isFallback"] = False
        try:
            content = parse_activity_content(payload)
        except ValidationError as exc:
            raise GenerationError(
                f"{self.activity_type.value} response does not match the expected "
                f"shape: {exc.error_count()} error(s)",
                kind=ErrorKind.PARSE_FAILURE,
            ) from exc

        result = validate_structure(content)
        if result.is_valid:
            result = self.check_against_request(content, request)
        if not result.is_valid:
            raise GenerationError(
                f"{self.activity_type.value} response failed structural checks: "
                f"{result.reason}",
                kind=ErrorKind.STRUCTURAL_VALIDATION_FAILURE,
            )
        return content
