from collections.abc import Callable

from statement_importer.exceptions import ProviderException, ProviderUnavailableException
from statement_importer.logger import get_logger

from .base import LLMProvider, ProviderPreference

logger = get_logger(__name__)


def _named(provider: LLMProvider | None, marker: str, *, negate: bool = False) -> LLMProvider | None:
    if provider is None:
        return None
    matches = marker in provider.name.lower()
    return provider if matches != negate else None


class LLMProviderFactory:
    """
    Routes a request intent to a concrete provider.

    Each intent has a fixed preference order; the first candidate that is both
    configured and reports ``is_available()`` wins.
    """

    def __init__(
        self,
        openai: LLMProvider | None = None,
        anthropic: LLMProvider | None = None,
        on_device: LLMProvider | None = None,
        openai_premium: LLMProvider | None = None,
    ):
        self.openai = openai
        self.anthropic = anthropic
        self.on_device = on_device
        self.openai_premium = openai_premium

        self._orders: dict[ProviderPreference, Callable[[], list[LLMProvider | None]]] = {
            ProviderPreference.FAST_CHEAP: lambda: [
                _named(self.openai, "mini"),
                _named(self.anthropic, "haiku"),
                self.openai,
                self.anthropic,
                self.openai_premium,
            ],
            ProviderPreference.BEST_QUALITY: lambda: [
                _named(self.anthropic, "sonnet"),
                _named(self.openai_premium, "mini", negate=True),
                _named(self.openai, "mini", negate=True),
                self.anthropic,
                self.openai_premium,
                self.openai,
            ],
            ProviderPreference.STRUCTURED_OUTPUT: lambda: [
                self.anthropic,
                self.openai,
                self.openai_premium,
            ],
            ProviderPreference.LOCAL_ONLY: lambda: [self.on_device],
            ProviderPreference.CHEAPEST: lambda: [
                self.on_device,
                _named(self.openai, "mini"),
                _named(self.anthropic, "haiku"),
                self.openai,
                self.anthropic,
                self.openai_premium,
            ],
        }

    def _all(self) -> list[LLMProvider]:
        return [p for p in (self.anthropic, self.openai, self.openai_premium, self.on_device) if p is not None]

    @staticmethod
    def _usable(provider: LLMProvider) -> bool:
        try:
            return provider.is_available()
        except ProviderException as e:
            logger.warning(f"[PROVIDER] {provider.name} availability check failed: {e}")
            return False

    def _ordered_usable(self, preference: ProviderPreference) -> list[LLMProvider]:
        usable: list[LLMProvider] = []
        for candidate in self._orders[preference]():
            if candidate is None or any(candidate is seen for seen in usable):
                continue
            if self._usable(candidate):
                usable.append(candidate)
        return usable

    def get_provider(self, preference: ProviderPreference) -> LLMProvider:
        usable = self._ordered_usable(preference)
        if not usable:
            raise ProviderUnavailableException(
                preference.value, f"No usable provider for {preference.value}"
            )
        logger.debug(f"[PROVIDER] {preference.value} -> {usable[0].name}")
        return usable[0]

    def get_providers_with_fallback(self, preference: ProviderPreference) -> list[LLMProvider]:
        """Usable providers in preference order, followed by every other usable one."""
        chain = self._ordered_usable(preference)
        if preference is ProviderPreference.LOCAL_ONLY:
            # Never fall back to a remote provider for local-only work
            return chain
        for provider in self._all():
            if not any(provider is seen for seen in chain) and self._usable(provider):
                chain.append(provider)
        return chain

    def has_any_provider(self) -> bool:
        return any(self._usable(provider) for provider in self._all())

    def get_available_providers(self) -> list[LLMProvider]:
        return [provider for provider in self._all() if self._usable(provider)]

    def close(self) -> None:
        for provider in self._all():
            provider.close()
