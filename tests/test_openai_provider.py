from collections.abc import Generator
from unittest.mock import MagicMock, patch

import httpx
import openai
import pytest

from statement_importer.exceptions import (
    ProviderQuotaExceededException,
    ProviderRateLimitException,
    ProviderUnavailableException,
)
from statement_importer.providers.base import ChatMessage, ChatRole, CompletionRequest, FinishReason
from statement_importer.providers.openai_provider import OpenAIProvider

REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


@pytest.fixture
def mock_openai_client() -> Generator[MagicMock, None, None]:
    with patch("statement_importer.providers.openai_provider.OpenAI") as mock:
        yield mock


def completion(content: str, finish_reason: str = "stop") -> MagicMock:
    choice = MagicMock()
    choice.message.content = content
    choice.finish_reason = finish_reason
    result = MagicMock()
    result.choices = [choice]
    result.usage.prompt_tokens = 42
    result.usage.completion_tokens = 7
    result.model = "gpt-4o-mini-2024-07-18"
    return result


def rate_limit_error(body: dict | None = None, retry_after: str | None = None) -> openai.RateLimitError:
    headers = {"retry-after": retry_after} if retry_after else {}
    response = httpx.Response(429, request=REQUEST, headers=headers)
    return openai.RateLimitError("rate limited", response=response, body=body)


def test_complete(mock_openai_client: MagicMock) -> None:
    mock_instance = mock_openai_client.return_value
    mock_instance.chat.completions.create.return_value = completion("groceries")

    provider = OpenAIProvider(api_key="sk-fake")
    response = provider.complete(CompletionRequest(prompt="Categorize", system_prompt="Be brief", max_tokens=50))

    assert provider.name == "openai-gpt-4o-mini"
    assert response.content == "groceries"
    assert response.input_tokens == 42
    assert response.output_tokens == 7
    assert response.total_tokens == 49
    assert response.model == "gpt-4o-mini-2024-07-18"
    kwargs = mock_instance.chat.completions.create.call_args.kwargs
    assert kwargs["model"] == "gpt-4o-mini"
    assert kwargs["max_tokens"] == 50
    assert kwargs["messages"] == [
        {"role": "system", "content": "Be brief"},
        {"role": "user", "content": "Categorize"},
    ]


def test_chat_and_length_finish(mock_openai_client: MagicMock) -> None:
    mock_instance = mock_openai_client.return_value
    mock_instance.chat.completions.create.return_value = completion("partial", finish_reason="length")

    response = OpenAIProvider(api_key="sk-fake", model="gpt-4o").chat(
        [ChatMessage(role=ChatRole.USER, content="hi")]
    )
    assert response.finish_reason is FinishReason.LENGTH
    assert mock_instance.chat.completions.create.call_args.kwargs["model"] == "gpt-4o"


def test_missing_key(mock_openai_client: MagicMock, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    provider = OpenAIProvider()
    assert not provider.is_available()
    with pytest.raises(ProviderUnavailableException):
        provider.complete(CompletionRequest(prompt="x"))
    mock_openai_client.return_value.chat.completions.create.assert_not_called()


def test_rate_limit(mock_openai_client: MagicMock) -> None:
    mock_openai_client.return_value.chat.completions.create.side_effect = rate_limit_error(retry_after="2")
    with pytest.raises(ProviderRateLimitException) as exc_info:
        OpenAIProvider(api_key="sk-fake").complete(CompletionRequest(prompt="x"))
    assert exc_info.value.retry_after_ms == 2000


def test_insufficient_quota(mock_openai_client: MagicMock) -> None:
    mock_openai_client.return_value.chat.completions.create.side_effect = rate_limit_error(
        body={"code": "insufficient_quota", "message": "You exceeded your current quota"}
    )
    with pytest.raises(ProviderQuotaExceededException):
        OpenAIProvider(api_key="sk-fake").complete(CompletionRequest(prompt="x"))


def test_connection_error(mock_openai_client: MagicMock) -> None:
    mock_openai_client.return_value.chat.completions.create.side_effect = openai.APIConnectionError(request=REQUEST)
    with pytest.raises(ProviderUnavailableException):
        OpenAIProvider(api_key="sk-fake").complete(CompletionRequest(prompt="x"))


def test_close(mock_openai_client: MagicMock) -> None:
    OpenAIProvider(api_key="sk-fake").close()
    mock_openai_client.return_value.close.assert_called_once()
