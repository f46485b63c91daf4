import re

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from statement_importer.exceptions import ProviderException
from statement_importer.logger import get_logger
from statement_importer.models import (
    MEDIUM_CONFIDENCE,
    CategorizationItem,
    CategorizationResult,
    CategorizationSource,
)
from statement_importer.providers.base import CompletionRequest, LLMProvider, strip_code_fences
from statement_importer.services.cost import CostTracker
from statement_importer.services.privacy import RegexPIIAnonymizer

from .base import Classifier
from .prompts import DEFAULT_CATEGORIES, build_batch_prompt

logger = get_logger(__name__)

MAX_BATCH_SIZE = 10
MIN_CONFIDENCE = MEDIUM_CONFIDENCE
# ~200 input and 50 output tokens per transaction
ESTIMATED_COST_PER_TRANSACTION = 200 * 0.001 / 1000 + 50 * 0.005 / 1000

_CYRILLIC = re.compile(r"[А-Яа-яЁё]")


class BatchCategoryItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    index: int | None = None
    transaction_id: int | None = Field(default=None, alias="transactionId")
    category_id: str = Field(alias="categoryId")
    confidence: float = 0.0


_ITEMS = TypeAdapter(list[BatchCategoryItem])


def parse_batch_response(content: str) -> list[BatchCategoryItem]:
    """Malformed replies yield an empty list."""
    try:
        return _ITEMS.validate_json(strip_code_fences(content))
    except ValidationError as e:
        logger.warning(f"[AI] Could not parse batch response: {e.error_count()} error(s)")
        return []


class AICategorizer(Classifier):
    """
    Categorizes transactions with a remote or local language model.

    Descriptions are anonymized and sent in batches of ``MAX_BATCH_SIZE``.
    Every request is checked against the cost tracker first and charged to it
    afterwards. Answers below ``MIN_CONFIDENCE`` or naming a category outside
    the vocabulary are discarded.
    """

    def __init__(
        self,
        provider: LLMProvider | None,
        cost_tracker: CostTracker,
        anonymizer: RegexPIIAnonymizer | None = None,
        source: CategorizationSource = CategorizationSource.LLM_TIER2,
        categories: list[str] | None = None,
    ):
        self.provider = provider
        self.cost_tracker = cost_tracker
        self.anonymizer = anonymizer or RegexPIIAnonymizer()
        self.source = source
        self.categories = list(categories or DEFAULT_CATEGORIES)

    @property
    def name(self) -> str:
        provider = self.provider.name if self.provider else "none"
        return f"{self.source.value}:{provider}"

    def is_available(self) -> bool:
        return (
            self.provider is not None
            and self.provider.is_available()
            and self.cost_tracker.can_execute(ESTIMATED_COST_PER_TRANSACTION)
        )

    def classify(self, transaction_id: int, description: str) -> CategorizationResult | None:
        results = self.categorize_batch(
            [CategorizationItem(transaction_id=transaction_id, description=description)],
            self.categories,
        )
        return results[0] if results else None

    def categorize_batch(
        self,
        items: list[CategorizationItem],
        categories: list[str] | None = None,
    ) -> list[CategorizationResult]:
        if self.provider is None or not items:
            return []

        vocabulary = list(categories) if categories else self.categories
        results: list[CategorizationResult] = []
        for start in range(0, len(items), MAX_BATCH_SIZE):
            batch = items[start:start + MAX_BATCH_SIZE]
            if not self.cost_tracker.can_execute(ESTIMATED_COST_PER_TRANSACTION * len(batch)):
                logger.warning(f"[AI] Cost budget exceeded, {len(items) - start} transaction(s) left uncategorized")
                break
            results.extend(self._categorize_chunk(batch, vocabulary))
        return results

    def _categorize_chunk(
        self,
        batch: list[CategorizationItem],
        vocabulary: list[str],
    ) -> list[CategorizationResult]:
        descriptions = [self.anonymizer.anonymize(item.description).anonymized_text for item in batch]
        language = "ru" if any(_CYRILLIC.search(text) for text in descriptions) else "en"
        prompt = build_batch_prompt(descriptions, vocabulary, language)

        try:
            response = self.provider.complete(CompletionRequest(prompt=prompt, max_tokens=1024, temperature=0.1))
        except ProviderException as e:
            logger.error(f"[AI] {self.provider.name} batch failed: {e}")
            return []

        self.cost_tracker.record(response.input_tokens, response.output_tokens, response.model)

        by_id = {item.transaction_id: item for item in batch}
        results: list[CategorizationResult] = []
        for answer in parse_batch_response(response.content):
            if answer.index is not None and 0 <= answer.index < len(batch):
                item = batch[answer.index]
            elif answer.transaction_id in by_id:
                item = by_id[answer.transaction_id]
            else:
                continue

            confidence = min(max(answer.confidence, 0.0), 1.0)
            if confidence < MIN_CONFIDENCE:
                logger.debug(f"[AI] Dropping {answer.category_id} for {item.transaction_id} ({confidence:.2f})")
                continue
            if vocabulary and answer.category_id not in vocabulary:
                logger.debug(f"[AI] Dropping unknown category '{answer.category_id}'")
                continue
            if any(r.transaction_id == item.transaction_id for r in results):
                continue

            results.append(
                CategorizationResult(
                    transaction_id=item.transaction_id,
                    category_id=answer.category_id,
                    confidence=confidence,
                    source=self.source,
                )
            )
        logger.info(f"[AI] {self.provider.name} categorized {len(results)}/{len(batch)}")
        return results
