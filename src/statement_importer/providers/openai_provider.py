import os

import openai
from openai import OpenAI

from statement_importer.core import settings
from statement_importer.exceptions import (
    ProviderQuotaExceededException,
    ProviderRateLimitException,
    ProviderUnavailableException,
)
from statement_importer.logger import get_logger

from .base import (
    ChatMessage,
    CompletionRequest,
    CompletionResponse,
    FinishReason,
    LLMProvider,
    ProviderModel,
)

logger = get_logger(__name__)

DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_PREMIUM_MODEL = "gpt-4o"

_MODEL_PRICING = {
    "gpt-4o-mini": (0.00015, 0.0006),
    "gpt-4o": (0.005, 0.015),
    "gpt-4-turbo": (0.01, 0.03),
}


def _retry_after_ms(error: openai.RateLimitError) -> int | None:
    response = getattr(error, "response", None)
    if response is None:
        return None
    raw = response.headers.get("retry-after")
    try:
        return int(float(raw) * 1000) if raw else None
    except ValueError:
        return None


class OpenAIProvider(LLMProvider):
    """
    Chat Completions client for one OpenAI model.

    Two instances are normally configured: a cheap one (``gpt-4o-mini``) for
    tier 2 and a quality one (``gpt-4o``) for tier 3. The instance name embeds
    the model so the provider factory can tell them apart.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = DEFAULT_MODEL,
        base_url: str | None = None,
        timeout: float | None = None,
    ):
        self.api_key = api_key or os.getenv("OPENAI_API_KEY") or ""
        self.model = model
        self.name = f"openai-{model}"
        self.client = OpenAI(
            api_key=self.api_key or "missing",
            base_url=base_url or os.getenv("OPENAI_BASE_URL") or None,
            timeout=timeout or settings.LLM_TIMEOUT_SECONDS,
        )
        input_cost, output_cost = _MODEL_PRICING.get(model, (0.001, 0.005))
        self.available_models = [
            ProviderModel(
                id=model,
                name=model,
                max_tokens=16384,
                cost_per_1k_input_tokens=input_cost,
                cost_per_1k_output_tokens=output_cost,
                supports_structured_output=True,
            )
        ]

    def is_available(self) -> bool:
        return bool(self.api_key.strip())

    def close(self) -> None:
        self.client.close()

    def complete(self, request: CompletionRequest) -> CompletionResponse:
        messages = []
        if request.system_prompt:
            messages.append({"role": "system", "content": request.system_prompt})
        messages.append({"role": "user", "content": request.prompt})
        return self._create(messages, request.model or self.model, request.max_tokens, request.temperature)

    def chat(self, messages: list[ChatMessage]) -> CompletionResponse:
        payload = [{"role": message.role.value, "content": message.content} for message in messages]
        return self._create(payload, self.model, 1024, 0.1)

    def _create(
        self, messages: list[dict[str, str]], model: str, max_tokens: int, temperature: float
    ) -> CompletionResponse:
        if not self.is_available():
            raise ProviderUnavailableException(self.name, "OPENAI_API_KEY is not configured")

        logger.debug(f"[{self.name}] Sending {len(messages)} message(s) to {model}")
        try:
            completion = self.client.chat.completions.create(
                model=model,
                messages=messages,
                max_tokens=max_tokens,
                temperature=temperature,
            )
        except openai.RateLimitError as e:
            # OpenAI reports exhausted credit as a 429 with this code
            if getattr(e, "code", None) == "insufficient_quota":
                raise ProviderQuotaExceededException(self.name) from e
            raise ProviderRateLimitException(self.name, _retry_after_ms(e)) from e
        except openai.PermissionDeniedError as e:
            raise ProviderQuotaExceededException(self.name, str(e)) from e
        except (openai.APIConnectionError, openai.APIStatusError) as e:
            logger.error(f"[{self.name}] Request failed: {e}")
            raise ProviderUnavailableException(self.name, str(e)) from e

        choice = completion.choices[0]
        usage = completion.usage
        return CompletionResponse(
            content=choice.message.content or "",
            input_tokens=usage.prompt_tokens if usage else 0,
            output_tokens=usage.completion_tokens if usage else 0,
            model=completion.model or model,
            finish_reason=FinishReason.LENGTH if choice.finish_reason == "length" else FinishReason.STOP,
        )
