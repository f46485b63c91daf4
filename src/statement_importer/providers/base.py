import re
from abc import ABC, abstractmethod
from enum import StrEnum

from pydantic import BaseModel


class ProviderModel(BaseModel):
    """A model a provider can route requests to, with its token pricing."""
    id: str
    name: str
    max_tokens: int
    cost_per_1k_input_tokens: float
    cost_per_1k_output_tokens: float
    supports_structured_output: bool = False


class CompletionRequest(BaseModel):
    prompt: str
    model: str | None = None  # None selects the provider default
    max_tokens: int = 1024
    temperature: float = 0.1
    system_prompt: str | None = None


class ChatRole(StrEnum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class ChatMessage(BaseModel):
    role: ChatRole
    content: str


class FinishReason(StrEnum):
    STOP = "stop"
    LENGTH = "length"
    ERROR = "error"


class CompletionResponse(BaseModel):
    content: str
    input_tokens: int
    output_tokens: int
    model: str
    finish_reason: FinishReason = FinishReason.STOP

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


class ProviderPreference(StrEnum):
    FAST_CHEAP = "fast_cheap"
    BEST_QUALITY = "best_quality"
    STRUCTURED_OUTPUT = "structured_output"
    LOCAL_ONLY = "local_only"
    CHEAPEST = "cheapest"


def structured_prompt(prompt: str, schema: str) -> str:
    return (
        f"{prompt}\n\n"
        f"IMPORTANT: Respond ONLY with valid JSON matching this schema:\n{schema}\n\n"
        "Do not include any text before or after the JSON."
    )


class LLMProvider(ABC):
    name: str
    available_models: list[ProviderModel]

    @abstractmethod
    def is_available(self) -> bool:
        """Whether the provider is configured and can take requests right now."""
        pass

    @abstractmethod
    def complete(self, request: CompletionRequest) -> CompletionResponse:
        pass

    @abstractmethod
    def chat(self, messages: list[ChatMessage]) -> CompletionResponse:
        pass

    def structured_output(self, prompt: str, schema: str) -> CompletionResponse:
        return self.complete(
            CompletionRequest(
                prompt=structured_prompt(prompt, schema),
                max_tokens=1024,
                temperature=0.0,
            )
        )

    def close(self) -> None:
        """Release network clients held by the provider."""
        pass


def strip_code_fences(text: str) -> str:
    """Removes a surrounding Markdown code fence from a model reply."""
    cleaned = text.strip()
    if cleaned.startswith("```"):
        cleaned = re.sub(r"^```\w*\s*", "", cleaned)
        cleaned = re.sub(r"\s*```$", "", cleaned)
    return cleaned.strip()
