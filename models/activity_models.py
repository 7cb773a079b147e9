# models/activity_models.py
"""Pydantic models for generated reading activity content."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError


class ActivityType(str, Enum):
    """Interactive exercise kinds produced by the pipeline."""

    WHO = "who"
    WHERE = "where"
    SEQUENCE = "sequence"
    MAIN_IDEA = "main-idea"
    VOCABULARY = "vocabulary"
    PREDICT = "predict"


class Severity(str, Enum):
    """How serious a validation failure is."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ActivityBaseModel(BaseModel):
    """Base model accepting both wire (camelCase) and attribute names."""

    model_config = ConfigDict(
        populate_by_name=True, extra="ignore", coerce_numbers_to_str=True
    )


class Character(ActivityBaseModel):
    name: str
    role: str = ""
    description: str


class Setting(ActivityBaseModel):
    name: str
    description: str


class Event(ActivityBaseModel):
    id: int
    text: str
    segment: int | None = None
    """1-based number of the source passage segment the event came from."""


class MainIdeaOption(ActivityBaseModel):
    id: str
    text: str
    is_correct: bool = Field(alias="isCorrect")
    feedback: str


class VocabularyWord(ActivityBaseModel):
    word: str
    definition: str
    context: str


class DecoyDefinition(ActivityBaseModel):
    definition: str
    is_used: bool = Field(False, alias="isUsed")


class Prediction(ActivityBaseModel):
    id: str
    text: str
    plausibility_score: float = Field(alias="plausibilityScore")
    feedback: str


class ActivityContentModel(ActivityBaseModel):
    """Common fields shared by every activity content variant."""

    activity_type: ActivityType = Field(alias="activityType")
    is_fallback: bool = Field(False, alias="isFallback")

    def to_payload(self) -> dict[str, Any]:
        """Return the wire representation consumed by the web layer."""
        return self.model_dump(by_alias=True, mode="json")

    def payload_body(self) -> dict[str, Any]:
        """Return the wire representation without pipeline bookkeeping."""
        return self.model_dump(
            by_alias=True, mode="json", exclude={"activity_type", "is_fallback"}
        )


class CharacterSet(ActivityContentModel):
    activity_type: Literal[ActivityType.WHO] = Field(
        ActivityType.WHO, alias="activityType"
    )
    real_characters: list[Character] = Field(alias="realCharacters")
    decoy_characters: list[Character] = Field(alias="decoyCharacters")


class SettingSet(ActivityContentModel):
    activity_type: Literal[ActivityType.WHERE] = Field(
        ActivityType.WHERE, alias="activityType"
    )
    real_settings: list[Setting] = Field(alias="realSettings")
    decoy_settings: list[Setting] = Field(alias="decoySettings")


class EventSequence(ActivityContentModel):
    activity_type: Literal[ActivityType.SEQUENCE] = Field(
        ActivityType.SEQUENCE, alias="activityType"
    )
    ordered_events: list[Event] = Field(alias="orderedEvents")
    shuffled_events: list[Event] = Field(default_factory=list, alias="shuffledEvents")


class MainIdeaQuestion(ActivityContentModel):
    activity_type: Literal[ActivityType.MAIN_IDEA] = Field(
        ActivityType.MAIN_IDEA, alias="activityType"
    )
    question: str
    options: list[MainIdeaOption]


class VocabularySet(ActivityContentModel):
    activity_type: Literal[ActivityType.VOCABULARY] = Field(
        ActivityType.VOCABULARY, alias="activityType"
    )
    vocabulary_words: list[VocabularyWord] = Field(alias="vocabularyWords")
    decoy_definitions: list[DecoyDefinition] = Field(alias="decoyDefinitions")


class PredictionSet(ActivityContentModel):
    activity_type: Literal[ActivityType.PREDICT] = Field(
        ActivityType.PREDICT, alias="activityType"
    )
    question: str
    predictions: list[Prediction]


ActivityContent = Annotated[
    Union[
        CharacterSet,
        SettingSet,
        EventSequence,
        MainIdeaQuestion,
        VocabularySet,
        PredictionSet,
    ],
    Field(discriminator="activity_type"),
]

ACTIVITY_CONTENT_ADAPTER: TypeAdapter[ActivityContentModel] = TypeAdapter(ActivityContent)


def parse_activity_content(payload: Mapping[str, Any]) -> ActivityContentModel:
    """Validate a wire payload into the variant named by its ``activityType``.

    Raises:
        pydantic.ValidationError: The payload is missing fields, has the wrong
            shape or names no known activity type.
    """
    return ACTIVITY_CONTENT_ADAPTER.validate_python(payload)


class StudentProfile(ActivityBaseModel):
    """The slice of the student record the pipeline needs."""

    age_years: int = Field(alias="ageYears", ge=0)

    @classmethod
    def from_any(cls, profile: StudentProfile | Mapping[str, Any]) -> StudentProfile:
        """Accept a profile model or a mapping using ``ageYears`` or ``age``.

        Raises:
            ValueError: The mapping has no age, or the age is not a
                non-negative whole number.
        """
        if isinstance(profile, StudentProfile):
            return profile
        if not isinstance(profile, Mapping):
            raise ValueError(
                f"student profile must be a mapping, got {type(profile).__name__}"
            )
        for key in ("ageYears", "age_years", "age"):
            if key in profile:
                break
        else:
            raise ValueError("student profile needs an 'ageYears' or 'age' field")
        try:
            return cls(age_years=profile[key])
        except ValidationError:
            raise ValueError(
                f"student profile field {key!r} must be a non-negative whole "
                f"number, got {profile[key]!r}"
            ) from None


@dataclass(frozen=True)
class GenerationRequest:
    """Parameters for one extraction attempt."""

    source_text: str
    age_years: int
    activity_type: ActivityType
    attempt_number: int = 1


@dataclass(frozen=True)
class ModelParameters:
    """Sampling parameters sent with each external call."""

    model: str
    temperature: float
    max_tokens: int
    top_p: float = 1.0


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating candidate content."""

    is_valid: bool
    reason: str | None = None
    severity: Severity | None = None

    @classmethod
    def ok(cls) -> ValidationResult:
        return cls(is_valid=True)

    @classmethod
    def fail(cls, reason: str, severity: Severity) -> ValidationResult:
        return cls(is_valid=False, reason=reason, severity=severity)
