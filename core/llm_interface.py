# core/llm_interface.py
"""
Handles all direct interactions with the generative language model service.
Includes the OpenAI-compatible chat completion client, response cleaning,
and token counting used for usage telemetry.

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

# Standard library imports
import asyncio
import functools
import re

# Type hints
from typing import Any, Protocol

# Third-party imports
import httpx
import structlog
import tiktoken

# Local imports
from config import settings
from models import ModelParameters

logger = structlog.get_logger(__name__)


class GenerationClient(Protocol):
    """Anything that can turn a prompt into model text."""

    async def call(self, prompt: str, model_parameters: ModelParameters) -> str: ...


class LLMServiceError(Exception):
    """Raised when the model endpoint returns an unusable response.

    The message carries the HTTP status and body excerpt so the error
    classifier can recognise the failure kind.
    """


# Token parameter handling
def _completion_token_param(api_base: str) -> str:
    """Return the token count parameter expected by the provider."""
    if "api.openai.com" in api_base or "api.anthropic.com" in api_base:
        return "max_completion_tokens"
    return "max_tokens"


@functools.lru_cache(maxsize=settings.TOKENIZER_CACHE_SIZE)
def _get_tokenizer(model_name: str) -> tiktoken.Encoding | None:
    """
    Gets a tiktoken encoder for the given model name, with caching.
    Tries model-specific encoding, then a default, then returns None.
    """
    try:
        try:
            encoder = tiktoken.encoding_for_model(model_name)
        except KeyError:
            logger.debug(
                "No direct tiktoken encoding for model. Using default.",
                model=model_name,
                encoding=settings.TIKTOKEN_DEFAULT_ENCODING,
            )
            encoder = tiktoken.get_encoding(settings.TIKTOKEN_DEFAULT_ENCODING)
        return encoder
    except Exception as e:
        logger.error(
            "Could not load tokenizer; token counts will use a character heuristic.",
            model=model_name,
            error=str(e),
        )
        return None


def count_tokens(text: str, model_name: str) -> int:
    """
    Counts the number of tokens in a string for a given model.
    Uses tiktoken when enabled, otherwise a character-based estimate.
    """
    if not text:
        return 0

    encoder = _get_tokenizer(model_name) if settings.TELEMETRY_USE_TOKENIZER else None
    if encoder:
        return len(encoder.encode(text, allowed_special="all"))
    return int(len(text) / settings.FALLBACK_CHARS_PER_TOKEN)


class LLMService:
    """Client for an OpenAI-compatible chat completion endpoint."""

    def __init__(
        self,
        api_base: str = settings.OPENAI_API_BASE,
        api_key: str = settings.OPENAI_API_KEY,
        timeout: float = settings.HTTPX_TIMEOUT,
        max_concurrent_calls: int = settings.MAX_CONCURRENT_LLM_CALLS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_base = api_base.rstrip("/")
        self._headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }
        # Use a single async client for all requests to reuse connections
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)
        # Limit concurrent requests against the provider
        self._semaphore = asyncio.Semaphore(max_concurrent_calls)
        self.request_count = 0
        logger.info(
            "LLMService initialized.",
            api_base=self.api_base,
            concurrency_limit=max_concurrent_calls,
        )

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    def _build_payload(
        self, prompt: str, model_parameters: ModelParameters
    ) -> dict[str, Any]:
        token_param_name = _completion_token_param(self.api_base)
        return {
            "model": model_parameters.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": model_parameters.temperature,
            "top_p": model_parameters.top_p,
            token_param_name: model_parameters.max_tokens,
            "response_format": {"type": "json_object"},
            "stream": False,
        }

    async def call(self, prompt: str, model_parameters: ModelParameters) -> str:
        """Send one chat completion request and return the cleaned text.

        Raises:
            LLMServiceError: The endpoint answered with an error status or a
                blocked completion.
            httpx.TransportError: The request never completed.
        """
        if not prompt or not prompt.strip():
            raise ValueError("prompt must be a non-empty string")

        payload = self._build_payload(prompt, model_parameters)
        async with self._semaphore:
            self.request_count += 1
            logger.debug(
                "Calling LLM.",
                model=model_parameters.model,
                temperature=model_parameters.temperature,
                max_tokens=model_parameters.max_tokens,
            )
            response = await self._client.post(
                f"{self.api_base}/chat/completions",
                json=payload,
                headers=self._headers,
            )

        if response.status_code >= 400:
            raise LLMServiceError(
                f"HTTP {response.status_code}: {response.text[:300]}"
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise LLMServiceError(
                f"Model endpoint returned a non-JSON body: {response.text[:200]}"
            ) from exc

        choices = data.get("choices") or []
        if not choices:
            logger.error(
                "LLM response missing choices despite 200 OK.",
                model=model_parameters.model,
            )
            return ""

        choice = choices[0]
        if choice.get("finish_reason") == "content_filter":
            raise LLMServiceError("Completion blocked by the provider content filter")

        message = choice.get("message") or {}
        return self.clean_model_response(message.get("content") or "")

    def clean_model_response(self, text: str) -> str:
        """Strip reasoning tags, code fences and chatty preambles from a response."""
        if not isinstance(text, str):
            logger.warning(
                "clean_model_response received non-string input. Returning empty string.",
                input_type=type(text).__name__,
            )
            return ""

        cleaned_text = text
        for tag_name in ("think", "thinking", "reasoning", "analysis"):
            cleaned_text = re.sub(
                rf"<\s*{tag_name}\s*>.*?<\s*/\s*{tag_name}\s*>",
                "",
                cleaned_text,
                flags=re.DOTALL | re.IGNORECASE,
            )

        cleaned_text = re.sub(
            r"```(?:[a-zA-Z0-9_-]+)?\s*(.*?)\s*```",
            r"\1",
            cleaned_text,
            flags=re.DOTALL,
        )

        common_phrases_patterns = [
            r"^\s*(Okay,\s*)?(Sure,\s*)?(Here's|Here is)\s+(the|your)\s+[\w\s]+?:\s*",
            r"^\s*(?:Output|Result|Response|Answer)\s*:\s*",
        ]
        for pattern_str in common_phrases_patterns:
            cleaned_text = re.sub(
                pattern_str, "", cleaned_text, count=1, flags=re.IGNORECASE
            )

        return cleaned_text.strip()
