# tests/test_llm_interface.py
import json

import httpx
import pytest

from core.errors import ErrorKind, classify_error
from core.llm_interface import LLMService, LLMServiceError, count_tokens
from models import ModelParameters

PARAMS = ModelParameters(model="gpt-test", temperature=0.7, max_tokens=1500)


def _service(handler, api_base="http://localhost:8080/v1"):
    return LLMService(
        api_base=api_base,
        api_key="test-key",
        timeout=5,
        max_concurrent_calls=2,
        transport=httpx.MockTransport(handler),
    )


def _completion(content, finish_reason="stop"):
    return {
        "choices": [
            {"message": {"content": content}, "finish_reason": finish_reason}
        ]
    }


@pytest.mark.asyncio
async def test_call_sends_payload_and_cleans_response():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=_completion('```json\n{"a": 1}\n```'))

    service = _service(handler)
    text = await service.call("Hello", PARAMS)
    await service.aclose()

    assert text == '{"a": 1}'
    assert seen["url"] == "http://localhost:8080/v1/chat/completions"
    assert seen["auth"] == "Bearer test-key"
    assert seen["body"]["max_tokens"] == 1500
    assert seen["body"]["temperature"] == 0.7
    assert seen["body"]["messages"][0]["content"] == "Hello"


@pytest.mark.asyncio
async def test_openai_base_uses_completion_token_param():
    seen = {}

    def handler(request):
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=_completion("{}"))

    service = _service(handler, api_base="https://api.openai.com/v1")
    await service.call("Hello", PARAMS)
    await service.aclose()
    assert seen["body"]["max_completion_tokens"] == 1500
    assert "max_tokens" not in seen["body"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "status,kind",
    [
        (429, ErrorKind.RATE_LIMIT),
        (401, ErrorKind.AUTH),
        (503, ErrorKind.SERVER),
    ],
)
async def test_error_status_raises_classifiable_error(status, kind):
    service = _service(lambda request: httpx.Response(status, text="nope"))
    with pytest.raises(LLMServiceError) as info:
        await service.call("Hello", PARAMS)
    await service.aclose()
    assert classify_error(info.value).kind is kind


@pytest.mark.asyncio
async def test_content_filter_finish_reason():
    service = _service(
        lambda request: httpx.Response(200, json=_completion("", "content_filter"))
    )
    with pytest.raises(LLMServiceError) as info:
        await service.call("Hello", PARAMS)
    await service.aclose()
    assert classify_error(info.value).kind is ErrorKind.CONTENT_FILTER


@pytest.mark.asyncio
async def test_missing_choices_returns_empty_string():
    service = _service(lambda request: httpx.Response(200, json={"choices": []}))
    assert await service.call("Hello", PARAMS) == ""
    await service.aclose()


@pytest.mark.asyncio
async def test_empty_prompt_rejected():
    service = _service(lambda request: httpx.Response(200, json=_completion("{}")))
    with pytest.raises(ValueError):
        await service.call("  ", PARAMS)
    await service.aclose()


def test_clean_model_response_strips_noise():
    service = _service(lambda request: httpx.Response(200))
    raw = "<think>plan</think>Here is the JSON output: {\"a\": 1}"
    assert service.clean_model_response(raw) == '{"a": 1}'
    assert service.clean_model_response("Output: {}") == "{}"


def test_count_tokens_heuristic_without_tokenizer():
    assert count_tokens("", "gpt-test") == 0
    assert count_tokens("abcdefgh", "gpt-test") == 2
