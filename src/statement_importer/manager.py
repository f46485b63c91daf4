import os

from statement_importer.classifiers.ai import AICategorizer
from statement_importer.classifiers.base import Classifier
from statement_importer.classifiers.enrichment import EnrichmentClassifier, LLMMerchantEnricher
from statement_importer.classifiers.learned import (
    JsonLearnedMerchantStore,
    LearnedMerchantClassifier,
    LearnedMerchantStore,
)
from statement_importer.classifiers.merchant_db import MerchantDatabase
from statement_importer.classifiers.prompts import DEFAULT_CATEGORIES
from statement_importer.classifiers.rules import RuleBasedClassifier
from statement_importer.core import settings
from statement_importer.exceptions import ProviderUnavailableException
from statement_importer.logger import get_logger
from statement_importer.models import (
    CategorizationBatchResult,
    CategorizationItem,
    CategorizationResult,
    CategorizationSource,
)
from statement_importer.providers.anthropic_provider import HAIKU_MODEL, AnthropicProvider
from statement_importer.providers.base import LLMProvider, ProviderPreference
from statement_importer.providers.factory import LLMProviderFactory
from statement_importer.providers.openai_provider import DEFAULT_MODEL, DEFAULT_PREMIUM_MODEL, OpenAIProvider
from statement_importer.services.cost import AICostTracker, CostTracker
from statement_importer.services.learning import LearnFromCorrection, LearnResult
from statement_importer.services.privacy import RegexPIIAnonymizer

logger = get_logger(__name__)


def build_provider_factory() -> LLMProviderFactory:
    """Configures the remote providers whose API keys are present in the environment."""
    openai = openai_premium = anthropic = None

    api_key = os.getenv("OPENAI_API_KEY")
    if api_key:
        base_url = os.getenv("OPENAI_BASE_URL")
        model = os.getenv("OPENAI_MODEL", DEFAULT_MODEL)
        premium_model = os.getenv("OPENAI_PREMIUM_MODEL", DEFAULT_PREMIUM_MODEL)
        openai = OpenAIProvider(api_key=api_key, model=model, base_url=base_url)
        if premium_model != model:
            openai_premium = OpenAIProvider(api_key=api_key, model=premium_model, base_url=base_url)
        logger.info(f"OpenAI provider enabled: model={model}, premium={premium_model}, base_url={base_url or 'default'}")
    else:
        logger.warning("OPENAI_API_KEY not found. OpenAI provider disabled.")

    anthropic_key = os.getenv("ANTHROPIC_API_KEY")
    if anthropic_key:
        model = os.getenv("ANTHROPIC_MODEL", HAIKU_MODEL)
        anthropic = AnthropicProvider(api_key=anthropic_key, model=model)
        logger.info(f"Anthropic provider enabled: model={model}")

    return LLMProviderFactory(openai=openai, anthropic=anthropic, openai_premium=openai_premium)


def _provider_for(factory: LLMProviderFactory, preference: ProviderPreference) -> LLMProvider | None:
    try:
        return factory.get_provider(preference)
    except ProviderUnavailableException:
        return None


class CategorizerService:
    """
    Runs the categorization cascade, cheapest tier first.

    Tier 0 applies what the user taught us, tier 1 the merchant table and
    fixed rules; these never leave the machine. Merchant enrichment and the
    model tiers are appended only when a provider is configured, and every
    remote call goes through the shared cost tracker.
    """

    def __init__(
        self,
        data_dir: str = ".",
        memory_threshold: float = 90.0,
        user_history: dict[str, str] | None = None,
        store: LearnedMerchantStore | None = None,
        factory: LLMProviderFactory | None = None,
        cost_tracker: CostTracker | None = None,
        categories: list[str] | None = None,
        enable_enrichment: bool | None = None,
    ):
        self.categories = list(categories or DEFAULT_CATEGORIES)
        self.cost_tracker = cost_tracker or AICostTracker()
        self.factory = factory or build_provider_factory()
        anonymizer = RegexPIIAnonymizer()

        self.store = store or JsonLearnedMerchantStore(
            data_path=os.path.join(data_dir, "learned_merchants.json"),
            threshold=memory_threshold,
        )
        self.learning = LearnFromCorrection(self.store)

        # 1. Local tiers
        self.learned = LearnedMerchantClassifier(self.store)
        self.merchant_db = MerchantDatabase()
        self.rules = RuleBasedClassifier(user_history)
        self.local_tiers: list[Classifier] = [self.learned, self.merchant_db, self.rules]

        # 2. Merchant enrichment
        if enable_enrichment is None:
            enable_enrichment = settings.get_env_bool("ENABLE_MERCHANT_ENRICHMENT", True)
        cheap = _provider_for(self.factory, ProviderPreference.FAST_CHEAP)
        self.enrichment = None
        if enable_enrichment and cheap is not None:
            self.enrichment = EnrichmentClassifier(
                LLMMerchantEnricher(cheap, self.cost_tracker), self.merchant_db
            )
            self.local_tiers.append(self.enrichment)

        # 3. Model tiers
        self.ai_tiers: list[AICategorizer] = []
        if cheap is not None:
            self.ai_tiers.append(
                AICategorizer(cheap, self.cost_tracker, anonymizer, CategorizationSource.LLM_TIER2, self.categories)
            )
            premium = _provider_for(self.factory, ProviderPreference.BEST_QUALITY)
            if premium is not None and premium is not cheap:
                self.ai_tiers.append(
                    AICategorizer(premium, self.cost_tracker, anonymizer, CategorizationSource.LLM_TIER3, self.categories)
                )
            logger.info(f"[CASCADE] Model tiers: {', '.join(tier.name for tier in self.ai_tiers)}")
        else:
            logger.warning("[CASCADE] No language model provider available. Model tiers disabled.")

        self.classifiers: list[Classifier] = [*self.local_tiers, *self.ai_tiers]

    def categorize(self, transaction_id: int, description: str) -> CategorizationResult | None:
        for classifier in self.classifiers:
            result = self._try(classifier, transaction_id, description)
            if result:
                return result

        logger.debug(f"No classifier matched for: '{description[:50]}...'")
        return None

    def categorize_batch(
        self,
        items: list[CategorizationItem],
        categories: list[str] | None = None,
    ) -> CategorizationBatchResult:
        """Local tiers per item, then the rest in batches through each model tier."""
        results: dict[int, CategorizationResult] = {}
        remaining: list[CategorizationItem] = []

        for item in items:
            result = None
            for classifier in self.local_tiers:
                result = self._try(classifier, item.transaction_id, item.description)
                if result:
                    break
            if result:
                results[item.transaction_id] = result
            else:
                remaining.append(item)

        for tier in self.ai_tiers:
            if not remaining:
                break
            logger.debug(f"[CASCADE] Sending {len(remaining)} transaction(s) to {tier.name}")
            try:
                found = tier.categorize_batch(remaining, categories or self.categories)
            except Exception as e:
                logger.error(f"[CASCADE] {tier.name} failed: {e}")
                continue
            for result in found:
                results.setdefault(result.transaction_id, result)
            remaining = [item for item in remaining if item.transaction_id not in results]

        logger.info(f"[CASCADE] Categorized {len(results)}/{len(items)} transaction(s)")
        return CategorizationBatchResult(
            results=[results[item.transaction_id] for item in items if item.transaction_id in results],
            uncategorized_ids=[item.transaction_id for item in remaining],
        )

    def learn(self, description: str, category_id: str) -> LearnResult:
        """Records a user correction so tier 0 applies it next time."""
        return self.learning.learn(description, category_id)

    @staticmethod
    def _try(classifier: Classifier, transaction_id: int, description: str) -> CategorizationResult | None:
        classifier_name = classifier.__class__.__name__
        logger.debug(f"Trying {classifier_name} for: '{description[:50]}...'")
        try:
            result = classifier.classify(transaction_id, description)
        except Exception as e:
            logger.error(f"[CASCADE] {classifier_name} failed: {e}")
            return None

        if result:
            logger.debug(
                f"{classifier_name} returned: '{result.category_id}' "
                f"(confidence: {result.confidence:.2f}, source: {result.source})"
            )
        else:
            logger.debug(f"{classifier_name} returned: None")
        return result
