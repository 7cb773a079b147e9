"""Central package for activity pipeline data models."""

from .activity_models import (
    ACTIVITY_CONTENT_ADAPTER,
    ActivityContent,
    ActivityContentModel,
    ActivityType,
    Character,
    CharacterSet,
    DecoyDefinition,
    Event,
    EventSequence,
    GenerationRequest,
    MainIdeaOption,
    MainIdeaQuestion,
    ModelParameters,
    Prediction,
    PredictionSet,
    Setting,
    SettingSet,
    Severity,
    StudentProfile,
    ValidationResult,
    VocabularySet,
    VocabularyWord,
    parse_activity_content,
)

__all__ = [
    "ACTIVITY_CONTENT_ADAPTER",
    "ActivityContent",
    "ActivityContentModel",
    "ActivityType",
    "Character",
    "CharacterSet",
    "DecoyDefinition",
    "Event",
    "EventSequence",
    "GenerationRequest",
    "MainIdeaOption",
    "MainIdeaQuestion",
    "ModelParameters",
    "Prediction",
    "PredictionSet",
    "Setting",
    "SettingSet",
    "Severity",
    "StudentProfile",
    "ValidationResult",
    "VocabularySet",
    "VocabularyWord",
    "parse_activity_content",
]
