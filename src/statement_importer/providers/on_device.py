import threading

from statement_importer.exceptions import ProviderUnavailableException
from statement_importer.logger import get_logger

from .base import ChatMessage, ChatRole, CompletionRequest, CompletionResponse, LLMProvider
from .lifecycle import InferenceEngine, ModelRepository, ModelStatus

logger = get_logger(__name__)


class OnDeviceLLMProvider(LLMProvider):
    """Runs a locally installed model. Costs nothing and never leaves the machine."""

    name = "on-device"

    def __init__(self, repository: ModelRepository, engine: InferenceEngine):
        self.repository = repository
        self.engine = engine
        self.available_models = []
        self._load_lock = threading.Lock()

    def is_available(self) -> bool:
        model = self.repository.current_model()
        if model is None:
            logger.debug("[on-device] No model selected")
            return False
        if model.status is not ModelStatus.READY:
            logger.debug(f"[on-device] Model status is {model.status}")
            return False

        with self._load_lock:
            if not self.engine.is_model_loaded():
                logger.info(f"[on-device] Loading model from {model.file_path}")
                if not self.engine.load_model(model.file_path):
                    logger.warning("[on-device] Failed to load model")
                    return False
        return True

    def complete(self, request: CompletionRequest) -> CompletionResponse:
        if not self.is_available():
            raise ProviderUnavailableException(self.name, "No on-device model is loaded")

        try:
            result = self.engine.complete(
                request.prompt,
                max_tokens=request.max_tokens,
                temperature=request.temperature,
            )
        except Exception as e:
            logger.error(f"[on-device] Inference failed: {e}")
            raise ProviderUnavailableException(self.name, f"Inference failed: {e}") from e

        logger.debug(
            f"[on-device] Generated {result.output_tokens} tokens in {result.duration_ms} ms"
        )
        return CompletionResponse(
            content=result.text.strip(),
            input_tokens=result.input_tokens,
            output_tokens=result.output_tokens,
            model=self.name,
        )

    def chat(self, messages: list[ChatMessage]) -> CompletionResponse:
        # The engine applies its own chat template, so only the latest user turn is sent
        prompt = next(
            (m.content for m in reversed(messages) if m.role is ChatRole.USER),
            "",
        )
        return self.complete(CompletionRequest(prompt=prompt))

    def close(self) -> None:
        with self._load_lock:
            if self.engine.is_model_loaded():
                logger.info("[on-device] Unloading model")
                self.engine.unload_model()
