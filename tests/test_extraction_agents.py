# tests/test_extraction_agents.py
import copy
import random

import pytest
from fakes import PAYLOADS, FakeClient, FakeClock, ListSink, RecordingSleep

from agents.character_agent import CharacterAgent
from agents.main_idea_agent import MainIdeaAgent
from agents.sequence_agent import SequenceAgent, split_into_segments
from agents.vocabulary_agent import VocabularyAgent
from core.circuit_breaker import CircuitBreaker
from core.errors import ErrorKind, GenerationError
from core.resilience import ResilientCaller
from models import ActivityType, GenerationRequest

STORY = "The knight woke up. He put on his armor. He fought the dragon. He saved the kingdom."


def _caller(client):
    clock = FakeClock()
    return ResilientCaller(
        client,
        CircuitBreaker(clock=clock),
        ListSink(),
        rng=random.Random(0),
        sleep=RecordingSleep(),
        clock=clock,
    )


def _request(activity_type, attempt=1):
    return GenerationRequest(
        source_text=STORY,
        age_years=10,
        activity_type=activity_type,
        attempt_number=attempt,
    )


def test_model_parameters_for_regeneration_attempts():
    agent = CharacterAgent(_caller(FakeClient("{}")), model_name="m")
    first = agent.model_parameters(1)
    assert first.temperature == 0.8
    assert first.max_tokens == 1500
    second = agent.model_parameters(2)
    assert second.temperature == 0.6
    assert second.max_tokens == 2250
    third = agent.model_parameters(3)
    assert third.temperature == 0.4
    assert third.max_tokens == 3375
    fifth = agent.model_parameters(5)
    assert fifth.temperature == 0.2
    assert fifth.max_tokens == 4000


def test_prompt_mentions_story_age_and_reminder():
    agent = CharacterAgent(_caller(FakeClient("{}")))
    prompt = agent.build_prompt(_request(ActivityType.WHO))
    assert STORY in prompt
    assert "10-year-old" in prompt
    assert "REMINDER" not in prompt
    retry_prompt = agent.build_prompt(_request(ActivityType.WHO, attempt=2))
    assert "REMINDER" in retry_prompt


@pytest.mark.asyncio
async def test_character_agent_returns_typed_content():
    agent = CharacterAgent(_caller(FakeClient(PAYLOADS["who"])))
    content = await agent.extract(_request(ActivityType.WHO))
    assert content.activity_type is ActivityType.WHO
    assert content.is_fallback is False
    assert content.real_characters[0].name == "Sir Rowan"


@pytest.mark.asyncio
async def test_model_cannot_claim_fallback_or_other_type():
    payload = dict(PAYLOADS["who"], isFallback=True, activityType="where")
    agent = CharacterAgent(_caller(FakeClient(payload)))
    content = await agent.extract(_request(ActivityType.WHO))
    assert content.is_fallback is False
    assert content.activity_type is ActivityType.WHO


@pytest.mark.asyncio
async def test_unparseable_reply_is_parse_failure():
    agent = MainIdeaAgent(_caller(FakeClient("I cannot help with that.")))
    with pytest.raises(GenerationError) as info:
        await agent.extract(_request(ActivityType.MAIN_IDEA))
    assert info.value.kind is ErrorKind.PARSE_FAILURE
    assert info.value.retryable is True


@pytest.mark.asyncio
async def test_wrong_shape_is_parse_failure():
    agent = MainIdeaAgent(_caller(FakeClient({"question": "Why?"})))
    with pytest.raises(GenerationError) as info:
        await agent.extract(_request(ActivityType.MAIN_IDEA))
    assert info.value.kind is ErrorKind.PARSE_FAILURE


@pytest.mark.asyncio
async def test_structural_problem_is_reported():
    payload = copy.deepcopy(PAYLOADS["main-idea"])
    for option in payload["options"]:
        option["isCorrect"] = False
    agent = MainIdeaAgent(_caller(FakeClient(payload)))
    with pytest.raises(GenerationError) as info:
        await agent.extract(_request(ActivityType.MAIN_IDEA))
    assert info.value.kind is ErrorKind.STRUCTURAL_VALIDATION_FAILURE


@pytest.mark.asyncio
async def test_sequence_agent_shuffles_locally():
    agent = SequenceAgent(_caller(FakeClient(PAYLOADS["sequence"])), rng=random.Random(3))
    content = await agent.extract(_request(ActivityType.SEQUENCE))
    assert [e.id for e in content.ordered_events] == [1, 2, 3, 4]
    assert sorted(e.id for e in content.shuffled_events) == [1, 2, 3, 4]
    assert {e.text for e in content.shuffled_events} == {
        e.text for e in content.ordered_events
    }


@pytest.mark.asyncio
async def test_sequence_event_beyond_last_segment_is_structural_failure():
    payload = copy.deepcopy(PAYLOADS["sequence"])
    payload["orderedEvents"][3]["segment"] = 9
    client = FakeClient(payload)
    agent = SequenceAgent(_caller(client))
    with pytest.raises(GenerationError) as info:
        await agent.extract(_request(ActivityType.SEQUENCE))
    assert info.value.kind is ErrorKind.STRUCTURAL_VALIDATION_FAILURE
    assert "segment 9" in str(info.value)
    assert len(split_into_segments(STORY)) == 4


def test_sequence_prompt_numbers_segments():
    agent = SequenceAgent(_caller(FakeClient("{}")))
    prompt = agent.build_prompt(_request(ActivityType.SEQUENCE))
    assert "[Segment 1]" in prompt
    assert "[Segment 4]" in prompt
    assert "He saved the kingdom." in prompt


def test_split_into_segments():
    assert split_into_segments("One. Two! Three?") == ["One.", "Two!", "Three?"]
    assert split_into_segments("First para.\n\nSecond para.") == [
        "First para.",
        "Second para.",
    ]
    many = " ".join(f"Sentence {i}." for i in range(20))
    segments = split_into_segments(many, max_segments=8)
    assert len(segments) == 8
    assert segments[0].startswith("Sentence 0.")
    assert segments[-1].endswith("Sentence 19.")
    assert split_into_segments("   ") == []


@pytest.mark.asyncio
async def test_vocabulary_agent_accepts_string_decoys():
    payload = copy.deepcopy(PAYLOADS["vocabulary"])
    payload["decoyDefinitions"] = ["A small boat used on rivers.", "A sweet fruit."]
    agent = VocabularyAgent(_caller(FakeClient(payload)))
    content = await agent.extract(_request(ActivityType.VOCABULARY))
    assert [d.is_used for d in content.decoy_definitions] == [False, False]
