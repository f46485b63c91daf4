from unittest.mock import MagicMock

import pytest

from statement_importer.exceptions import ProviderRateLimitException, ProviderUnavailableException
from statement_importer.providers.base import ProviderPreference
from statement_importer.providers.factory import LLMProviderFactory


def make_provider(name: str, available: bool = True) -> MagicMock:
    provider = MagicMock()
    provider.name = name
    provider.is_available.return_value = available
    return provider


def test_fast_cheap_prefers_mini_model() -> None:
    mini = make_provider("openai-gpt-4o-mini")
    haiku = make_provider("anthropic-haiku")
    factory = LLMProviderFactory(openai=mini, anthropic=haiku)
    assert factory.get_provider(ProviderPreference.FAST_CHEAP) is mini


def test_best_quality_prefers_sonnet_then_full_model() -> None:
    mini = make_provider("openai-gpt-4o-mini")
    premium = make_provider("openai-gpt-4o")
    sonnet = make_provider("anthropic-sonnet")

    assert LLMProviderFactory(openai=mini, openai_premium=premium, anthropic=sonnet).get_provider(
        ProviderPreference.BEST_QUALITY
    ) is sonnet
    assert LLMProviderFactory(openai=mini, openai_premium=premium).get_provider(
        ProviderPreference.BEST_QUALITY
    ) is premium


def test_unavailable_providers_are_skipped() -> None:
    mini = make_provider("openai-gpt-4o-mini", available=False)
    haiku = make_provider("anthropic-haiku")
    factory = LLMProviderFactory(openai=mini, anthropic=haiku)
    assert factory.get_provider(ProviderPreference.FAST_CHEAP) is haiku
    assert factory.get_available_providers() == [haiku]


def test_no_provider_raises() -> None:
    with pytest.raises(ProviderUnavailableException):
        LLMProviderFactory().get_provider(ProviderPreference.FAST_CHEAP)


def test_failing_availability_check_counts_as_unavailable() -> None:
    flaky = make_provider("anthropic-haiku")
    flaky.is_available.side_effect = ProviderRateLimitException("anthropic-haiku")
    assert not LLMProviderFactory(anthropic=flaky).has_any_provider()


def test_local_only_never_falls_back_to_remote() -> None:
    on_device = make_provider("on-device", available=False)
    remote = make_provider("openai-gpt-4o-mini")
    factory = LLMProviderFactory(openai=remote, on_device=on_device)

    assert factory.get_providers_with_fallback(ProviderPreference.LOCAL_ONLY) == []
    with pytest.raises(ProviderUnavailableException):
        factory.get_provider(ProviderPreference.LOCAL_ONLY)


def test_fallback_chain_appends_remaining_providers() -> None:
    mini = make_provider("openai-gpt-4o-mini")
    on_device = make_provider("on-device")
    factory = LLMProviderFactory(openai=mini, on_device=on_device)

    assert factory.get_providers_with_fallback(ProviderPreference.STRUCTURED_OUTPUT) == [mini, on_device]
    assert factory.get_provider(ProviderPreference.CHEAPEST) is on_device


def test_close_closes_every_provider() -> None:
    mini = make_provider("openai-gpt-4o-mini")
    haiku = make_provider("anthropic-haiku")
    LLMProviderFactory(openai=mini, anthropic=haiku).close()
    mini.close.assert_called_once()
    haiku.close.assert_called_once()
