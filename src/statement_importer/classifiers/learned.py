import datetime as dt
import json
import os
from collections.abc import Callable
from typing import Protocol

from pydantic import TypeAdapter, ValidationError
from rapidfuzz import fuzz, process

from statement_importer.domain.merchants import MerchantNormalizer
from statement_importer.logger import get_logger
from statement_importer.models import CategorizationResult, CategorizationSource, LearnedMerchant

from .base import Classifier

logger = get_logger(__name__)

USER_LEARNED_BASE_CONFIDENCE = 0.95
DEFAULT_HIGH_CONFIDENCE = 0.85

_MERCHANTS = TypeAdapter(list[LearnedMerchant])


class LearnedMerchantStore(Protocol):
    def find_match(self, description: str) -> LearnedMerchant | None: ...

    def get_by_pattern(self, pattern: str) -> LearnedMerchant | None: ...

    def save(self, merchant: LearnedMerchant) -> LearnedMerchant: ...

    def update(self, merchant: LearnedMerchant) -> None: ...

    def get_high_confidence(self, min_confidence: float = DEFAULT_HIGH_CONFIDENCE) -> list[LearnedMerchant]: ...


class JsonLearnedMerchantStore:
    """
    Learned merchant mappings kept in a JSON file.

    A description matches a mapping when the mapping's pattern occurs in the
    normalized description; the best match is the one with the highest
    confidence, then the most samples. When nothing contains a pattern, the
    closest pattern by token-sorted fuzzy ratio is accepted above ``threshold``.
    """

    def __init__(self, data_path: str = "learned_merchants.json", threshold: float = 90.0):
        self.data_path = data_path
        self.threshold = threshold
        self.merchants: list[LearnedMerchant] = []
        self.load()

    def load(self) -> None:
        if not os.path.exists(self.data_path):
            return
        try:
            with open(self.data_path, encoding="utf-8") as f:
                self.merchants = _MERCHANTS.validate_python(json.load(f))
        except (json.JSONDecodeError, ValidationError) as e:
            logger.warning(f"[LEARNED] Could not read {self.data_path}, starting empty: {e}")
            self.merchants = []

    def persist(self) -> None:
        with open(self.data_path, "w", encoding="utf-8") as f:
            f.write(_MERCHANTS.dump_json(self.merchants, indent=2).decode("utf-8"))

    def find_match(self, description: str) -> LearnedMerchant | None:
        normalized = MerchantNormalizer.normalize(description)
        if not normalized or not self.merchants:
            return None

        contained = [
            merchant for merchant in self.merchants
            if merchant.merchant_pattern and merchant.merchant_pattern.upper() in normalized.upper()
        ]
        if contained:
            return max(contained, key=lambda m: (m.confidence, m.sample_count))

        result = process.extractOne(
            normalized,
            [merchant.merchant_pattern for merchant in self.merchants],
            scorer=fuzz.token_sort_ratio,
        )
        if result:
            _, score, index = result
            if score >= self.threshold:
                logger.debug(f"[LEARNED] Fuzzy match for '{normalized}' (score {score:.0f})")
                return self.merchants[index]
        return None

    def get_by_pattern(self, pattern: str) -> LearnedMerchant | None:
        return next((m for m in self.merchants if m.merchant_pattern == pattern), None)

    def save(self, merchant: LearnedMerchant) -> LearnedMerchant:
        if merchant.id == 0:
            next_id = max((m.id for m in self.merchants), default=0) + 1
            merchant = merchant.model_copy(update={"id": next_id})
        self.merchants.append(merchant)
        self.persist()
        return merchant

    def update(self, merchant: LearnedMerchant) -> None:
        for index, existing in enumerate(self.merchants):
            if existing.id == merchant.id:
                self.merchants[index] = merchant
                self.persist()
                return
        raise KeyError(f"Learned merchant {merchant.id} not found")

    def get_high_confidence(self, min_confidence: float = DEFAULT_HIGH_CONFIDENCE) -> list[LearnedMerchant]:
        matches = [m for m in self.merchants if m.confidence >= min_confidence]
        return sorted(matches, key=lambda m: m.confidence, reverse=True)

    def clear(self) -> None:
        self.merchants = []
        self.persist()


class LearnedMerchantClassifier(Classifier):
    """Applies mappings learned from the user's own corrections."""

    def __init__(
        self,
        store: LearnedMerchantStore,
        clock: Callable[[], dt.datetime] = dt.datetime.now,
    ):
        self.store = store
        self._clock = clock

    def classify(self, transaction_id: int, description: str) -> CategorizationResult | None:
        if not description.strip():
            return None

        learned = self.store.find_match(description)
        if learned is None:
            return None

        logger.debug(
            f"[LEARNED] '{description[:40]}' -> {learned.category_id} "
            f"(pattern '{learned.merchant_pattern}', {learned.sample_count} sample(s))"
        )
        self._touch(learned)
        return CategorizationResult(
            transaction_id=transaction_id,
            category_id=learned.category_id,
            confidence=max(learned.confidence, USER_LEARNED_BASE_CONFIDENCE),
            source=CategorizationSource.USER_LEARNED,
        )

    def _touch(self, learned: LearnedMerchant) -> None:
        try:
            self.store.update(learned.model_copy(update={"last_used_at": self._clock()}))
        except Exception as e:
            logger.warning(f"[LEARNED] Could not update last use of '{learned.merchant_pattern}': {e}")
