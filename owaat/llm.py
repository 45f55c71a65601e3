"""LLM client — HTTP connection to an OpenRouter-compatible chat API.

The generator injects an LLM callable matching the protocol:

    async def __call__(self, model: str, prompt: str) -> str: ...

`model` is the participant's model identifier (e.g. "openai/gpt-4"); the
prompt is sent as a single user message. The return value is the raw
completion text, which may be empty. Every transport or protocol failure
is raised as LLMError so the generator can move on to the next participant.

Production code constructs an OpenRouterLLM from Settings and passes it to
WordGenerator. Tests use a scripted stub (see tests/helpers.py) instead.
"""

from __future__ import annotations

import logging
from typing import Protocol

import httpx

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Protocol — every LLM implementation must match this signature
# ---------------------------------------------------------------------------

class LLM(Protocol):
    async def __call__(self, model: str, prompt: str) -> str: ...


# ---------------------------------------------------------------------------
# OpenRouterLLM — connects to the real API
# ---------------------------------------------------------------------------

class OpenRouterLLM:
    """Async HTTP client for OpenAI-style chat completion endpoints.

    POST {base_url}/chat/completions
        {"model": ..., "messages": [{"role": "user", "content": ...}],
         "max_tokens": ..., "temperature": ...}
    Response: {"choices": [{"message": {"content": "..."}}]}

    Args:
        api_key:     Bearer token for the API.
        base_url:    API root, e.g. "https://openrouter.ai/api/v1".
        max_tokens:  Output cap per call. One word needs very few tokens.
        temperature: Sampling temperature.
        timeout:     HTTP timeout in seconds.
        referer:     Sent as HTTP-Referer for OpenRouter app attribution.
        title:       Sent as X-Title for OpenRouter app attribution.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://openrouter.ai/api/v1",
        max_tokens: int = 10,
        temperature: float = 0.7,
        timeout: float = 60.0,
        referer: str = "https://github.com/owaat/owaat",
        title: str = "One Word At A Time",
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._timeout = timeout
        self._referer = referer
        self._title = title

    def _headers(self) -> dict[str, str]:
        headers: dict[str, str] = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        if self._referer:
            headers["HTTP-Referer"] = self._referer
        if self._title:
            headers["X-Title"] = self._title
        return headers

    def _build_request(self, model: str, prompt: str) -> tuple[str, dict]:
        """Return (url, body) for one completion call."""
        url = f"{self._base_url}/chat/completions"
        body = {
            "model": model,
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": self._max_tokens,
            "temperature": self._temperature,
        }
        return url, body

    def _parse_response(self, data: object) -> str:
        """Extract the first choice's message content, or "" if absent."""
        if not isinstance(data, dict):
            raise LLMError("Unexpected response format from completion API")
        choices = data.get("choices")
        if not choices or not isinstance(choices, list):
            return ""
        message = choices[0].get("message") if isinstance(choices[0], dict) else None
        if not isinstance(message, dict):
            return ""
        content = message.get("content")
        if content is None:
            return ""
        if not isinstance(content, str):
            raise LLMError("Unexpected response format from completion API: content is not text")
        return content

    async def __call__(self, model: str, prompt: str) -> str:
        url, body = self._build_request(model, prompt)
        logger.debug("llm call model=%s url=%s prompt_len=%d", model, url, len(prompt))

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.post(url, json=body, headers=self._headers())
                resp.raise_for_status()
        except httpx.ConnectError as e:
            raise LLMError(f"Cannot connect to completion API at {self._base_url}") from e
        except httpx.HTTPStatusError as e:
            raise LLMError(
                f"Completion API returned HTTP {e.response.status_code} for {model}"
            ) from e
        except httpx.TimeoutException as e:
            raise LLMError(f"Completion API timed out after {self._timeout}s") from e
        except httpx.HTTPError as e:
            raise LLMError(f"Request to completion API failed: {e}") from e

        try:
            data = resp.json()
        except ValueError as e:
            raise LLMError("Completion API returned a body that is not JSON") from e

        text = self._parse_response(data)
        logger.debug("llm response model=%s len=%d", model, len(text))
        return text


# ---------------------------------------------------------------------------
# LLMError — raised by OpenRouterLLM for all connection and protocol failures
# ---------------------------------------------------------------------------

class LLMError(RuntimeError):
    """Raised when the completion API cannot be reached or returns an error."""
