import os
from typing import Any

import httpx

from statement_importer.core import settings
from statement_importer.exceptions import (
    ProviderQuotaExceededException,
    ProviderRateLimitException,
    ProviderUnavailableException,
)
from statement_importer.logger import get_logger

from .base import (
    ChatMessage,
    ChatRole,
    CompletionRequest,
    CompletionResponse,
    FinishReason,
    LLMProvider,
    ProviderModel,
)

logger = get_logger(__name__)

API_URL = "https://api.anthropic.com/v1/messages"
API_VERSION = "2023-06-01"
HAIKU_MODEL = "claude-3-5-haiku-20241022"
SONNET_MODEL = "claude-3-5-sonnet-20241022"


def _retry_after_ms(raw: str | None) -> int | None:
    if not raw:
        return None
    try:
        return int(float(raw) * 1000)
    except ValueError:
        return None


class AnthropicProvider(LLMProvider):
    """
    Client for the Anthropic Messages API over plain HTTP.

    Request body::

        {"model": "...", "max_tokens": 1024, "system": "...",
         "messages": [{"role": "user", "content": "..."}]}

    Response body::

        {"model": "...", "stop_reason": "end_turn" | "max_tokens",
         "content": [{"type": "text", "text": "..."}],
         "usage": {"input_tokens": 12, "output_tokens": 34}}
    """

    available_models = [
        ProviderModel(
            id=HAIKU_MODEL,
            name="Claude 3.5 Haiku",
            max_tokens=8192,
            cost_per_1k_input_tokens=0.001,
            cost_per_1k_output_tokens=0.005,
            supports_structured_output=True,
        ),
        ProviderModel(
            id=SONNET_MODEL,
            name="Claude 3.5 Sonnet",
            max_tokens=8192,
            cost_per_1k_input_tokens=0.003,
            cost_per_1k_output_tokens=0.015,
            supports_structured_output=True,
        ),
    ]

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        client: httpx.Client | None = None,
        timeout: float | None = None,
    ):
        self.api_key = api_key or os.getenv("ANTHROPIC_API_KEY") or ""
        self.model = model or os.getenv("ANTHROPIC_MODEL") or HAIKU_MODEL
        self.name = "anthropic-sonnet" if "sonnet" in self.model else "anthropic-haiku"
        self._client = client or httpx.Client(timeout=timeout or settings.LLM_TIMEOUT_SECONDS)

    def is_available(self) -> bool:
        return bool(self.api_key.strip())

    def close(self) -> None:
        self._client.close()

    def complete(self, request: CompletionRequest) -> CompletionResponse:
        body: dict[str, Any] = {
            "model": request.model or self.model,
            "max_tokens": request.max_tokens,
            "temperature": request.temperature,
            "messages": [{"role": "user", "content": request.prompt}],
        }
        if request.system_prompt:
            body["system"] = request.system_prompt
        return self._post(body)

    def chat(self, messages: list[ChatMessage]) -> CompletionResponse:
        system = next((m.content for m in messages if m.role is ChatRole.SYSTEM), None)
        body: dict[str, Any] = {
            "model": self.model,
            "max_tokens": 1024,
            "messages": [
                {"role": m.role.value, "content": m.content}
                for m in messages
                if m.role is not ChatRole.SYSTEM
            ],
        }
        if system:
            body["system"] = system
        return self._post(body)

    def _post(self, body: dict[str, Any]) -> CompletionResponse:
        if not self.is_available():
            raise ProviderUnavailableException(self.name, "ANTHROPIC_API_KEY is not configured")

        headers = {
            "x-api-key": self.api_key,
            "anthropic-version": API_VERSION,
            "content-type": "application/json",
        }
        logger.debug(f"[{self.name}] POST {API_URL} model={body['model']}")
        try:
            response = self._client.post(API_URL, json=body, headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"[{self.name}] Request failed: {e}")
            raise ProviderUnavailableException(self.name, str(e)) from e

        self._raise_for_status(response)

        try:
            data = response.json()
        except ValueError as e:
            raise ProviderUnavailableException(self.name, "Malformed response body") from e

        text = "".join(
            block.get("text") or ""
            for block in data.get("content", [])
            if block.get("type") == "text"
        )
        usage = data.get("usage") or {}
        return CompletionResponse(
            content=text,
            input_tokens=int(usage.get("input_tokens", 0)),
            output_tokens=int(usage.get("output_tokens", 0)),
            model=data.get("model") or body["model"],
            finish_reason=FinishReason.LENGTH if data.get("stop_reason") == "max_tokens" else FinishReason.STOP,
        )

    def _raise_for_status(self, response: httpx.Response) -> None:
        if response.is_success:
            return
        detail = response.text[:200]
        if response.status_code == 429:
            raise ProviderRateLimitException(self.name, _retry_after_ms(response.headers.get("retry-after")))
        if response.status_code in {402, 403} or "credit balance" in detail.lower():
            raise ProviderQuotaExceededException(self.name, detail)
        logger.error(f"[{self.name}] HTTP {response.status_code}: {detail}")
        raise ProviderUnavailableException(self.name, f"HTTP {response.status_code}")
