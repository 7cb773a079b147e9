# tests/test_activity_models.py
import copy

import pytest
from fakes import PAYLOADS
from pydantic import ValidationError

from models import (
    ActivityType,
    CharacterSet,
    EventSequence,
    StudentProfile,
    parse_activity_content,
)


@pytest.mark.parametrize("activity_type", list(ActivityType))
def test_payload_is_parsed_into_the_variant_it_names(activity_type):
    payload = copy.deepcopy(PAYLOADS[activity_type.value])
    payload["activityType"] = activity_type.value
    content = parse_activity_content(payload)
    assert content.activity_type is activity_type
    assert content.is_fallback is False
    assert content.to_payload()["activityType"] == activity_type.value


def test_discriminator_selects_the_named_variant():
    content = parse_activity_content({**PAYLOADS["sequence"], "activityType": "sequence"})
    assert isinstance(content, EventSequence)
    content = parse_activity_content({**PAYLOADS["who"], "activityType": "who"})
    assert isinstance(content, CharacterSet)


def test_unknown_activity_type_is_rejected():
    with pytest.raises(ValidationError):
        parse_activity_content({**PAYLOADS["who"], "activityType": "crossword"})


def test_payload_not_matching_its_type_is_rejected():
    with pytest.raises(ValidationError):
        parse_activity_content({**PAYLOADS["who"], "activityType": "predict"})


@pytest.mark.parametrize(
    "profile", [{"age": 9}, {"ageYears": 9}, {"age_years": 9}, StudentProfile(age_years=9)]
)
def test_profile_accepts_each_age_spelling(profile):
    assert StudentProfile.from_any(profile).age_years == 9


def test_profile_without_age_is_a_value_error():
    with pytest.raises(ValueError, match="'ageYears' or 'age'"):
        StudentProfile.from_any({"name": "Maya"})


@pytest.mark.parametrize("age", [-1, "nine", None])
def test_profile_with_invalid_age_is_a_value_error(age):
    with pytest.raises(ValueError, match="non-negative whole number") as info:
        StudentProfile.from_any({"age": age})
    assert not isinstance(info.value, ValidationError)


def test_profile_that_is_not_a_mapping_is_a_value_error():
    with pytest.raises(ValueError, match="must be a mapping"):
        StudentProfile.from_any(10)
