from pydantic import ValidationError

from statement_importer.domain.merchants import MerchantNormalizer
from statement_importer.exceptions import ProviderException
from statement_importer.logger import get_logger
from statement_importer.models import CategorizationResult, CategorizationSource, MerchantEnrichment
from statement_importer.providers.base import CompletionRequest, LLMProvider
from statement_importer.services.cost import CostTracker

from .base import Classifier
from .merchant_db import MerchantDatabase
from .prompts import ENRICHMENT_PROMPT

logger = get_logger(__name__)

CONFIDENCE_THRESHOLD = 0.70
ESTIMATED_COST_PER_CALL = 0.0004  # ~200 input + 50 output tokens

MERCHANT_TYPE_CATEGORIES = {
    "COFFEE_SHOP": "restaurants",
    "RESTAURANT": "restaurants",
    "GROCERY": "groceries",
    "FOOD_DELIVERY": "food_delivery",
    "GAS_STATION": "transport",
    "TRANSPORT": "transport",
    "RETAIL": "shopping",
    "ENTERTAINMENT": "entertainment",
    "SUBSCRIPTION": "entertainment",
    "PHARMACY": "healthcare",
    "UTILITIES": "utilities",
    "BANK": "transfer",
}


class LLMMerchantEnricher:
    """Asks a model to turn a cryptic statement line into a recognisable merchant."""

    def __init__(self, provider: LLMProvider | None, cost_tracker: CostTracker):
        self.provider = provider
        self.cost_tracker = cost_tracker

    def enrich(self, description: str, normalized_name: str) -> MerchantEnrichment | None:
        if self.provider is None or not self.provider.is_available():
            return None
        if not self.cost_tracker.can_execute(ESTIMATED_COST_PER_CALL):
            logger.warning("[ENRICH] Cost budget exceeded, skipping enrichment")
            return None

        prompt = ENRICHMENT_PROMPT.format(
            description=description,
            normalized=normalized_name,
            merchant_types=", ".join([*MERCHANT_TYPE_CATEGORIES, "OTHER"]),
        )
        try:
            response = self.provider.complete(CompletionRequest(prompt=prompt, max_tokens=100, temperature=0.1))
        except ProviderException as e:
            logger.error(f"[ENRICH] {self.provider.name} failed: {e}")
            return None

        self.cost_tracker.record(response.input_tokens, response.output_tokens, response.model)

        enrichment = self.parse_response(response.content)
        if enrichment is None or enrichment.confidence < CONFIDENCE_THRESHOLD:
            logger.debug(f"[ENRICH] Low confidence for '{normalized_name}'")
            return None

        logger.info(
            f"[ENRICH] '{normalized_name}' -> '{enrichment.clean_merchant_name}' "
            f"({enrichment.merchant_type}, conf={enrichment.confidence:.2f})"
        )
        return enrichment

    @staticmethod
    def parse_response(content: str) -> MerchantEnrichment | None:
        start = content.find("{")
        end = content.rfind("}")
        if start == -1 or end <= start:
            logger.warning("[ENRICH] No JSON object in response")
            return None
        try:
            return MerchantEnrichment.model_validate_json(content[start:end + 1])
        except ValidationError as e:
            logger.warning(f"[ENRICH] Malformed response: {e.error_count()} error(s)")
            return None


class EnrichmentClassifier(Classifier):
    """
    Cascade tier wrapping ``LLMMerchantEnricher``.

    The clean merchant name is looked up in the merchant database first;
    failing that, the reported merchant type is mapped to a category.
    """

    def __init__(self, enricher: LLMMerchantEnricher, merchant_db: MerchantDatabase | None = None):
        self.enricher = enricher
        self.merchant_db = merchant_db or MerchantDatabase()

    def classify(self, transaction_id: int, description: str) -> CategorizationResult | None:
        normalized = MerchantNormalizer.normalize(description)
        if not normalized:
            return None

        enrichment = self.enricher.enrich(description, normalized)
        if enrichment is None:
            return None

        for name in (enrichment.clean_merchant_name, enrichment.brand_name):
            entry = self.merchant_db.find_pattern(name) if name else None
            if entry is not None:
                return CategorizationResult(
                    transaction_id=transaction_id,
                    category_id=entry.category_id,
                    confidence=min(entry.confidence, enrichment.confidence),
                    source=CategorizationSource.LLM_TIER2,
                )

        category_id = MERCHANT_TYPE_CATEGORIES.get((enrichment.merchant_type or "").upper())
        if category_id is None:
            return None
        return CategorizationResult(
            transaction_id=transaction_id,
            category_id=category_id,
            confidence=enrichment.confidence,
            source=CategorizationSource.LLM_TIER2,
        )
