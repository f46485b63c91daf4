import datetime as dt
from collections.abc import Callable

from pydantic import BaseModel

from statement_importer.classifiers.learned import LearnedMerchantStore
from statement_importer.domain.merchants import MerchantNormalizer
from statement_importer.logger import get_logger
from statement_importer.models import LearnedMerchant, LearnedMerchantSource

logger = get_logger(__name__)

INITIAL_CONFIDENCE = 0.90
MAX_CONFIDENCE = 0.98
CONFIDENCE_BOOST_PER_SAMPLE = 0.02


class LearnResult(BaseModel):
    merchant_pattern: str
    category_id: str
    confidence: float
    sample_count: int
    created: bool


def confidence_for(sample_count: int) -> float:
    boost = (sample_count - 1) * CONFIDENCE_BOOST_PER_SAMPLE
    return round(min(INITIAL_CONFIDENCE + boost, MAX_CONFIDENCE), 4)


class LearnFromCorrection:
    """
    Turns a user's category correction into a learned merchant mapping.

    One correction is enough to create a mapping. Each further correction for
    the same merchant pattern adds a sample, raises the confidence and moves
    the mapping to the newly chosen category.
    """

    def __init__(
        self,
        store: LearnedMerchantStore,
        clock: Callable[[], dt.datetime] = dt.datetime.now,
    ):
        self.store = store
        self._clock = clock

    def learn(self, merchant_name: str, category_id: str) -> LearnResult:
        if not merchant_name or not merchant_name.strip():
            raise ValueError("Merchant name required for learning")

        normalized = MerchantNormalizer.normalize(merchant_name)
        pattern = MerchantNormalizer.to_pattern(normalized)
        if not pattern:
            raise ValueError(f"Cannot normalize merchant name '{merchant_name}'")

        now = self._clock()
        existing = self.store.get_by_pattern(pattern)
        if existing is not None:
            sample_count = existing.sample_count + 1
            confidence = confidence_for(sample_count)
            self.store.update(
                existing.model_copy(
                    update={
                        "category_id": category_id,
                        "confidence": confidence,
                        "sample_count": sample_count,
                        "last_used_at": now,
                    }
                )
            )
            logger.info(f"[LEARN] Updated '{pattern}' -> {category_id} (confidence {confidence:.2f})")
            return LearnResult(
                merchant_pattern=pattern,
                category_id=category_id,
                confidence=confidence,
                sample_count=sample_count,
                created=False,
            )

        self.store.save(
            LearnedMerchant(
                merchant_pattern=pattern,
                category_id=category_id,
                confidence=INITIAL_CONFIDENCE,
                sample_count=1,
                last_used_at=now,
                created_at=now,
                source=LearnedMerchantSource.USER,
            )
        )
        logger.info(f"[LEARN] Learned '{pattern}' -> {category_id}")
        return LearnResult(
            merchant_pattern=pattern,
            category_id=category_id,
            confidence=INITIAL_CONFIDENCE,
            sample_count=1,
            created=True,
        )
