from unittest.mock import MagicMock

import pytest

from statement_importer.classifiers.enrichment import EnrichmentClassifier, LLMMerchantEnricher
from statement_importer.exceptions import ProviderUnavailableException
from statement_importer.models import CategorizationSource
from statement_importer.providers.base import CompletionResponse


def response(content: str) -> CompletionResponse:
    return CompletionResponse(content=content, input_tokens=200, output_tokens=40, model="gpt-4o-mini")


@pytest.fixture
def provider() -> MagicMock:
    mock = MagicMock()
    mock.name = "openai-gpt-4o-mini"
    mock.is_available.return_value = True
    return mock


@pytest.fixture
def cost_tracker() -> MagicMock:
    mock = MagicMock()
    mock.can_execute.return_value = True
    return mock


def test_enrich_parses_reply_and_records_cost(provider: MagicMock, cost_tracker: MagicMock) -> None:
    provider.complete.return_value = response(
        'Sure: {"cleanMerchantName": "Starbucks", "merchantType": "COFFEE_SHOP", "mccCode": "5814", "confidence": 0.95}'
    )
    enrichment = LLMMerchantEnricher(provider, cost_tracker).enrich("SBUX #1234", "SBUX")

    assert enrichment is not None
    assert enrichment.clean_merchant_name == "Starbucks"
    assert enrichment.merchant_type == "COFFEE_SHOP"
    assert enrichment.mcc_code == "5814"
    cost_tracker.record.assert_called_once_with(200, 40, "gpt-4o-mini")


def test_low_confidence_is_rejected_but_charged(provider: MagicMock, cost_tracker: MagicMock) -> None:
    provider.complete.return_value = response('{"cleanMerchantName": "X", "confidence": 0.4}')
    assert LLMMerchantEnricher(provider, cost_tracker).enrich("X", "X") is None
    cost_tracker.record.assert_called_once()


def test_budget_denied_skips_call(provider: MagicMock, cost_tracker: MagicMock) -> None:
    cost_tracker.can_execute.return_value = False
    assert LLMMerchantEnricher(provider, cost_tracker).enrich("X", "X") is None
    provider.complete.assert_not_called()


def test_provider_error_returns_none(provider: MagicMock, cost_tracker: MagicMock) -> None:
    provider.complete.side_effect = ProviderUnavailableException("openai-gpt-4o-mini")
    assert LLMMerchantEnricher(provider, cost_tracker).enrich("X", "X") is None
    cost_tracker.record.assert_not_called()


def test_no_provider(cost_tracker: MagicMock) -> None:
    assert LLMMerchantEnricher(None, cost_tracker).enrich("X", "X") is None


@pytest.mark.parametrize("content", ["no json here", '{"confidence": 0.9}', "{broken"])
def test_parse_response_malformed(content: str) -> None:
    assert LLMMerchantEnricher.parse_response(content) is None


def test_classifier_uses_merchant_database_for_clean_name(provider: MagicMock, cost_tracker: MagicMock) -> None:
    provider.complete.return_value = response(
        '{"cleanMerchantName": "Magnum Cash & Carry", "brandName": "Magnum", "merchantType": "GROCERY", "confidence": 0.92}'
    )
    classifier = EnrichmentClassifier(LLMMerchantEnricher(provider, cost_tracker))

    result = classifier.classify(3, "MGN CC 0042 ALA")

    assert result is not None
    assert result.category_id == "groceries"
    assert result.confidence == 0.92
    assert result.source is CategorizationSource.LLM_TIER2


def test_classifier_falls_back_to_merchant_type(provider: MagicMock, cost_tracker: MagicMock) -> None:
    provider.complete.return_value = response(
        '{"cleanMerchantName": "Corner Chemist", "merchantType": "pharmacy", "confidence": 0.8}'
    )
    result = EnrichmentClassifier(LLMMerchantEnricher(provider, cost_tracker)).classify(3, "CRNR CHM 12")

    assert result is not None
    assert result.category_id == "healthcare"
    assert result.confidence == 0.8


def test_classifier_unknown_type(provider: MagicMock, cost_tracker: MagicMock) -> None:
    provider.complete.return_value = response(
        '{"cleanMerchantName": "Zqx", "merchantType": "OTHER", "confidence": 0.8}'
    )
    assert EnrichmentClassifier(LLMMerchantEnricher(provider, cost_tracker)).classify(3, "ZQX") is None
