"""Tests for owaat.llm — OpenRouterLLM."""

import pytest
import httpx
from unittest.mock import AsyncMock, MagicMock, patch

from owaat.generator import WordGenerator
from owaat.llm import LLMError, OpenRouterLLM
from owaat.models import RemoteModel


def _mock_response(body: object, status: int = 200) -> MagicMock:
    resp = MagicMock()
    resp.status_code = status
    resp.json.return_value = body
    resp.raise_for_status = MagicMock(
        side_effect=None if status < 400 else httpx.HTTPStatusError(
            "", request=MagicMock(), response=resp
        )
    )
    return resp


def _choice(content: object) -> dict:
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


@pytest.fixture
def llm() -> OpenRouterLLM:
    return OpenRouterLLM(api_key="secret", base_url="https://openrouter.ai/api/v1")


# ---------------------------------------------------------------------------
# Request shape
# ---------------------------------------------------------------------------

class TestRequest:
    async def test_posts_to_chat_completions(self, llm: OpenRouterLLM) -> None:
        mock_post = AsyncMock(return_value=_mock_response(_choice("ok")))
        with patch("httpx.AsyncClient.post", mock_post):
            await llm("openai/gpt-4", "prompt")
        url = mock_post.call_args[0][0]
        assert url == "https://openrouter.ai/api/v1/chat/completions"

    async def test_body_has_model_single_user_message_and_limits(self, llm: OpenRouterLLM) -> None:
        mock_post = AsyncMock(return_value=_mock_response(_choice("ok")))
        with patch("httpx.AsyncClient.post", mock_post):
            await llm("openai/gpt-4", "my prompt")
        sent_body = mock_post.call_args.kwargs["json"]
        assert sent_body == {
            "model": "openai/gpt-4",
            "messages": [{"role": "user", "content": "my prompt"}],
            "max_tokens": 10,
            "temperature": 0.7,
        }

    async def test_bearer_and_attribution_headers(self, llm: OpenRouterLLM) -> None:
        mock_post = AsyncMock(return_value=_mock_response(_choice("ok")))
        with patch("httpx.AsyncClient.post", mock_post):
            await llm("openai/gpt-4", "prompt")
        headers = mock_post.call_args.kwargs["headers"]
        assert headers["Authorization"] == "Bearer secret"
        assert headers["X-Title"] == "One Word At A Time"
        assert "HTTP-Referer" in headers

    async def test_trailing_slash_stripped_from_url(self) -> None:
        llm = OpenRouterLLM(api_key="k", base_url="http://localhost:8080/v1/")
        mock_post = AsyncMock(return_value=_mock_response(_choice("ok")))
        with patch("httpx.AsyncClient.post", mock_post):
            await llm("m", "prompt")
        assert mock_post.call_args[0][0] == "http://localhost:8080/v1/chat/completions"


# ---------------------------------------------------------------------------
# Response parsing
# ---------------------------------------------------------------------------

class TestResponse:
    async def test_happy_path(self, llm: OpenRouterLLM) -> None:
        mock_post = AsyncMock(return_value=_mock_response(_choice(" dragon ")))
        with patch("httpx.AsyncClient.post", mock_post):
            result = await llm("openai/gpt-4", "prompt")
        assert result == " dragon "

    async def test_missing_choices_is_empty_text(self, llm: OpenRouterLLM) -> None:
        mock_post = AsyncMock(return_value=_mock_response({"id": "x"}))
        with patch("httpx.AsyncClient.post", mock_post):
            assert await llm("m", "prompt") == ""

    async def test_empty_choices_is_empty_text(self, llm: OpenRouterLLM) -> None:
        mock_post = AsyncMock(return_value=_mock_response({"choices": []}))
        with patch("httpx.AsyncClient.post", mock_post):
            assert await llm("m", "prompt") == ""

    async def test_null_content_is_empty_text(self, llm: OpenRouterLLM) -> None:
        mock_post = AsyncMock(return_value=_mock_response(_choice(None)))
        with patch("httpx.AsyncClient.post", mock_post):
            assert await llm("m", "prompt") == ""

    async def test_non_object_body_raises_llm_error(self, llm: OpenRouterLLM) -> None:
        mock_post = AsyncMock(return_value=_mock_response(["not", "an", "object"]))
        with patch("httpx.AsyncClient.post", mock_post):
            with pytest.raises(LLMError, match="Unexpected response format"):
                await llm("m", "prompt")

    async def test_invalid_json_raises_llm_error(self, llm: OpenRouterLLM) -> None:
        resp = _mock_response({})
        resp.json.side_effect = ValueError("Expecting value")
        mock_post = AsyncMock(return_value=resp)
        with patch("httpx.AsyncClient.post", mock_post):
            with pytest.raises(LLMError, match="not JSON"):
                await llm("m", "prompt")

    @pytest.mark.parametrize("content", [[{"type": "text", "text": "hi"}], 42, {"text": "hi"}])
    async def test_non_text_content_raises_llm_error(self, llm: OpenRouterLLM, content) -> None:
        mock_post = AsyncMock(return_value=_mock_response(_choice(content)))
        with patch("httpx.AsyncClient.post", mock_post):
            with pytest.raises(LLMError, match="content is not text"):
                await llm("m", "prompt")


# ---------------------------------------------------------------------------
# Transport failures
# ---------------------------------------------------------------------------

class TestFailures:
    async def test_connect_error_raises_llm_error(self, llm: OpenRouterLLM) -> None:
        mock_post = AsyncMock(side_effect=httpx.ConnectError("refused"))
        with patch("httpx.AsyncClient.post", mock_post):
            with pytest.raises(LLMError, match="Cannot connect"):
                await llm("m", "prompt")

    async def test_timeout_raises_llm_error(self, llm: OpenRouterLLM) -> None:
        mock_post = AsyncMock(side_effect=httpx.TimeoutException("timeout"))
        with patch("httpx.AsyncClient.post", mock_post):
            with pytest.raises(LLMError, match="timed out"):
                await llm("m", "prompt")

    async def test_other_transport_error_raises_llm_error(self, llm: OpenRouterLLM) -> None:
        mock_post = AsyncMock(side_effect=httpx.RemoteProtocolError("peer closed"))
        with patch("httpx.AsyncClient.post", mock_post):
            with pytest.raises(LLMError, match="failed"):
                await llm("m", "prompt")

    async def test_http_error_raises_llm_error(self, llm: OpenRouterLLM) -> None:
        bad_resp = MagicMock()
        bad_resp.status_code = 429
        bad_resp.raise_for_status.side_effect = httpx.HTTPStatusError(
            "", request=MagicMock(), response=bad_resp
        )
        mock_post = AsyncMock(return_value=bad_resp)
        with patch("httpx.AsyncClient.post", mock_post):
            with pytest.raises(LLMError, match="HTTP 429"):
                await llm("openai/gpt-4", "prompt")


# ---------------------------------------------------------------------------
# Malformed replies reach the generator's retry
# ---------------------------------------------------------------------------

class TestMalformedReplyRetried:
    async def test_next_participant_answers_after_list_content(self, llm: OpenRouterLLM, settings) -> None:
        a = RemoteModel(name="A", model_id="vendor/a")
        b = RemoteModel(name="B", model_id="vendor/b")
        mock_post = AsyncMock(side_effect=[
            _mock_response(_choice([{"type": "text", "text": "hi"}])),
            _mock_response(_choice("upon")),
        ])
        gen = WordGenerator([a, b], llm, settings)
        with patch("httpx.AsyncClient.post", mock_post):
            assert await gen.generate_next_word() == "Upon"
        assert [c.kwargs["json"]["model"] for c in mock_post.call_args_list] == ["vendor/a", "vendor/b"]
        assert gen.current_text() == "Upon"
        assert gen.turn == 2
