# processing/content_validator.py
"""Age-appropriateness and structural validation of activity content."""

from __future__ import annotations

import functools
import re
from collections.abc import Callable, Iterable, Iterator
from typing import Any

import structlog
from config import settings

from models import (
    ActivityContentModel,
    ActivityType,
    CharacterSet,
    EventSequence,
    MainIdeaQuestion,
    PredictionSet,
    SettingSet,
    Severity,
    ValidationResult,
    VocabularySet,
)

logger = structlog.get_logger(__name__)

GLOBAL_BANNED_TERMS = (
    "violent",
    "violence",
    "inappropriate",
    "offensive",
    "gore",
    "gory",
    "murder",
    "suicide",
    "drug",
    "alcohol",
    "sexual",
)
# Ages 8 and under
YOUNG_READER_BANNED_TERMS = (
    "scary",
    "terrifying",
    "horror",
    "nightmare",
    "blood",
    "kill",
    "dead",
    "death",
    "die",
    "weapon",
    "gun",
    "knife",
    "hate",
    "stupid",
)
# Ages 9 to 12
MIDDLE_READER_BANNED_TERMS = (
    "gruesome",
    "bloody",
    "horror",
    "gun",
    "terrifying",
)

BOILERPLATE_DEFINITION_OPENINGS = (
    "a type of",
    "a kind of",
    "a sort of",
    "a word that means",
    "a word for",
    "the definition of",
)
TERMINAL_PUNCTUATION = (".", "!", "?")

CHARACTER_COUNT_RANGE = (2, 6)
DECOY_COUNT_RANGE = (1, 4)
EVENT_COUNT_RANGE = (4, 6)
MAIN_IDEA_OPTION_COUNT = 4
VOCABULARY_COUNT_RANGE = (3, 6)
VOCABULARY_DECOY_COUNT_RANGE = (1, 6)
PREDICTION_COUNT_RANGE = (4, 6)
PLAUSIBILITY_SCORE_RANGE = (1, 10)

_INFLECTION_SUFFIX = r"(?:s|es|d|ed|er|ers|ing|ly|y)?"
_TOKEN_PATTERN = re.compile(r"[a-z0-9']+")


@functools.lru_cache(maxsize=512)
def _term_pattern(term: str) -> re.Pattern[str]:
    """Whole-word pattern for ``term`` and its common inflections."""
    return re.compile(rf"\b{re.escape(term.lower())}{_INFLECTION_SUFFIX}\b")


def _iter_strings(value: Any) -> Iterator[str]:
    if isinstance(value, str):
        yield value
    elif isinstance(value, dict):
        for item in value.values():
            yield from _iter_strings(item)
    elif isinstance(value, (list, tuple)):
        for item in value:
            yield from _iter_strings(item)


def _find_term(text: str, terms: Iterable[str]) -> str | None:
    for term in terms:
        if _term_pattern(term).search(text):
            return term
    return None


def _age_band_terms(age_years: int) -> tuple[tuple[str, ...], Severity] | None:
    if age_years <= 8:
        return YOUNG_READER_BANNED_TERMS, Severity.HIGH
    if age_years <= 12:
        return MIDDLE_READER_BANNED_TERMS, Severity.MEDIUM
    return None


def _count_problem(label: str, count: int, bounds: tuple[int, int]) -> str | None:
    low, high = bounds
    if count < low or count > high:
        return f"expected {low}-{high} {label}, got {count}"
    return None


def _blank(value: str) -> bool:
    return not value or not value.strip()


def _check_named_items(
    real: list[Any], decoy: list[Any], label: str
) -> ValidationResult:
    problem = _count_problem(f"real {label}", len(real), CHARACTER_COUNT_RANGE)
    problem = problem or _count_problem(f"decoy {label}", len(decoy), DECOY_COUNT_RANGE)
    if problem:
        return ValidationResult.fail(problem, Severity.MEDIUM)

    seen: set[str] = set()
    for item in [*real, *decoy]:
        if _blank(item.name) or _blank(item.description):
            return ValidationResult.fail(
                f"{label} entries need a name and a description", Severity.MEDIUM
            )
        key = item.name.strip().lower()
        if key in seen:
            return ValidationResult.fail(
                f"duplicate {label} name: {item.name}", Severity.MEDIUM
            )
        seen.add(key)
    return ValidationResult.ok()


def _check_characters(content: CharacterSet) -> ValidationResult:
    return _check_named_items(
        content.real_characters, content.decoy_characters, "characters"
    )


def _check_settings(content: SettingSet) -> ValidationResult:
    return _check_named_items(content.real_settings, content.decoy_settings, "settings")


def _check_events(content: EventSequence) -> ValidationResult:
    events = content.ordered_events
    problem = _count_problem("events", len(events), EVENT_COUNT_RANGE)
    if problem:
        return ValidationResult.fail(problem, Severity.MEDIUM)

    if [event.id for event in events] != list(range(1, len(events) + 1)):
        return ValidationResult.fail(
            "event ids must be sequential starting from 1", Severity.MEDIUM
        )
    for event in events:
        if _blank(event.text):
            return ValidationResult.fail(f"event {event.id} has no text", Severity.MEDIUM)
        if event.segment is not None and event.segment < 1:
            return ValidationResult.fail(
                f"event {event.id} has an invalid segment number", Severity.MEDIUM
            )

    ordered_key = sorted((event.id, event.text) for event in events)
    shuffled_key = sorted((event.id, event.text) for event in content.shuffled_events)
    if ordered_key != shuffled_key:
        return ValidationResult.fail(
            "shuffled events must be a permutation of the ordered events",
            Severity.HIGH,
        )
    return ValidationResult.ok()


def _check_main_idea(content: MainIdeaQuestion) -> ValidationResult:
    if _blank(content.question):
        return ValidationResult.fail("main idea question is empty", Severity.MEDIUM)
    if len(content.options) != MAIN_IDEA_OPTION_COUNT:
        return ValidationResult.fail(
            f"main idea must have exactly {MAIN_IDEA_OPTION_COUNT} options, "
            f"got {len(content.options)}",
            Severity.MEDIUM,
        )
    correct = sum(1 for option in content.options if option.is_correct)
    if correct != 1:
        return ValidationResult.fail(
            f"main idea must have exactly one correct answer, got {correct}",
            Severity.HIGH,
        )
    ids = [option.id.strip().upper() for option in content.options]
    if len(set(ids)) != len(ids):
        return ValidationResult.fail("main idea option ids must be unique", Severity.MEDIUM)
    for option in content.options:
        if _blank(option.text) or _blank(option.feedback):
            return ValidationResult.fail(
                f"option {option.id} needs text and feedback", Severity.MEDIUM
            )
    return ValidationResult.ok()


def _check_vocabulary(content: VocabularySet) -> ValidationResult:
    words = content.vocabulary_words
    problem = _count_problem("vocabulary words", len(words), VOCABULARY_COUNT_RANGE)
    problem = problem or _count_problem(
        "decoy definitions",
        len(content.decoy_definitions),
        VOCABULARY_DECOY_COUNT_RANGE,
    )
    if problem:
        return ValidationResult.fail(problem, Severity.MEDIUM)

    seen: set[str] = set()
    for entry in words:
        word = entry.word.strip()
        definition = entry.definition.strip()
        if _blank(word) or _blank(definition) or _blank(entry.context):
            return ValidationResult.fail(
                "vocabulary entries need a word, definition and context",
                Severity.MEDIUM,
            )
        key = word.lower()
        if key in seen:
            return ValidationResult.fail(
                f"duplicate vocabulary word: {word}", Severity.MEDIUM
            )
        seen.add(key)
        if _term_pattern(key).search(definition.lower()):
            return ValidationResult.fail(
                f"circular definition: '{word}' is defined using itself",
                Severity.MEDIUM,
            )
        if not definition.endswith(TERMINAL_PUNCTUATION):
            return ValidationResult.fail(
                f"definition of '{word}' is not a complete sentence", Severity.LOW
            )
        if definition.lower().startswith(BOILERPLATE_DEFINITION_OPENINGS):
            return ValidationResult.fail(
                f"definition of '{word}' uses a generic opening", Severity.LOW
            )

    for decoy in content.decoy_definitions:
        if _blank(decoy.definition):
            return ValidationResult.fail("decoy definition is empty", Severity.MEDIUM)
    return ValidationResult.ok()


def _check_predictions(content: PredictionSet) -> ValidationResult:
    if _blank(content.question):
        return ValidationResult.fail("prediction question is empty", Severity.MEDIUM)
    problem = _count_problem(
        "predictions", len(content.predictions), PREDICTION_COUNT_RANGE
    )
    if problem:
        return ValidationResult.fail(problem, Severity.MEDIUM)

    low, high = PLAUSIBILITY_SCORE_RANGE
    ids: set[str] = set()
    for prediction in content.predictions:
        if not low <= prediction.plausibility_score <= high:
            return ValidationResult.fail(
                f"prediction {prediction.id} has plausibility score "
                f"{prediction.plausibility_score} outside {low}-{high}",
                Severity.MEDIUM,
            )
        if _blank(prediction.text) or _blank(prediction.feedback):
            return ValidationResult.fail(
                f"prediction {prediction.id} needs text and feedback", Severity.MEDIUM
            )
        key = prediction.id.strip().upper()
        if key in ids:
            return ValidationResult.fail(
                "prediction ids must be unique", Severity.MEDIUM
            )
        ids.add(key)
    return ValidationResult.ok()


_STRUCTURAL_CHECKS: dict[ActivityType, Callable[[Any], ValidationResult]] = {
    ActivityType.WHO: _check_characters,
    ActivityType.WHERE: _check_settings,
    ActivityType.SEQUENCE: _check_events,
    ActivityType.MAIN_IDEA: _check_main_idea,
    ActivityType.VOCABULARY: _check_vocabulary,
    ActivityType.PREDICT: _check_predictions,
}
if set(_STRUCTURAL_CHECKS) != set(ActivityType):  # pragma: no cover - import guard
    raise RuntimeError("Every activity type needs a structural check.")


def validate_structure(content: ActivityContentModel) -> ValidationResult:
    """Run the type-specific structural checks for ``content``."""
    return _STRUCTURAL_CHECKS[content.activity_type](content)


def validate_content(content: ActivityContentModel, age_years: int) -> ValidationResult:
    """Validate ``content`` for a reader aged ``age_years``.

    Checks run in order and stop at the first failure: banned terms, age-band
    terms, minimum length, repetition, then structure.
    """
    result = _check_content(content, age_years)
    if not result.is_valid:
        logger.debug(
            "Content failed validation.",
            activity_type=content.activity_type.value,
            age_years=age_years,
            reason=result.reason,
        )
    return result


def _check_content(content: ActivityContentModel, age_years: int) -> ValidationResult:
    body = content.payload_body()
    text = "\n".join(_iter_strings(body)).lower()

    term = _find_term(text, GLOBAL_BANNED_TERMS)
    if term:
        return ValidationResult.fail(
            f"Content contains inappropriate word: {term}", Severity.HIGH
        )

    band = _age_band_terms(age_years)
    if band:
        terms, severity = band
        term = _find_term(text, terms)
        if term:
            return ValidationResult.fail(
                f"Content contains word unsuitable for age {age_years}: {term}",
                severity,
            )

    text_length = len(text.strip())
    if text_length < settings.MIN_CONTENT_LENGTH:
        return ValidationResult.fail(
            f"Content too short ({text_length} characters of text)", Severity.MEDIUM
        )

    tokens = _TOKEN_PATTERN.findall(text)
    if tokens:
        unique_ratio = len(set(tokens)) / len(tokens)
        if unique_ratio < settings.MIN_UNIQUE_TOKEN_RATIO:
            return ValidationResult.fail(
                f"Content is repetitive (unique token ratio {unique_ratio:.2f})",
                Severity.MEDIUM,
            )

    return validate_structure(content)
