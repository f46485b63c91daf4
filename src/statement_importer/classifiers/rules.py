import re

from statement_importer.logger import get_logger
from statement_importer.models import CategorizationResult, CategorizationSource

from .base import Classifier

logger = get_logger(__name__)

USER_HISTORY_CONFIDENCE = 0.92
RULE_BASED_CONFIDENCE = 0.88

RULES: tuple[tuple[re.Pattern[str], str, float], ...] = tuple(
    (re.compile(pattern, re.IGNORECASE), category_id, confidence)
    for pattern, category_id, confidence in (
        (r"ATM|БАНКОМАТ", "transfer", RULE_BASED_CONFIDENCE),
        (r"CASH.*WITHDRAW|СНЯТИЕ.*НАЛИЧ", "transfer", RULE_BASED_CONFIDENCE),
        (r"ЗАРПЛАТА|SALARY|ЗАРАБОТН", "salary", 0.95),
        (r"ПЕНСИЯ|PENSION", "salary", 0.95),
        (r"СТИПЕНДИ|SCHOLARSHIP|STIPEND", "salary", 0.90),
        (r"ДИВИДЕНД|DIVIDEND", "salary", 0.90),
        (r"ПРОЦЕНТ|INTEREST", "other", 0.85),
        (r"ВОЗВРАТ|REFUND", "other", 0.85),
        (r"КЭШБЭК|CASHBACK", "other", 0.90),
    )
)


class RuleBasedClassifier(Classifier):
    def __init__(self, user_history: dict[str, str] | None = None):
        # substring -> category id, taken from the user's own past assignments
        self.user_history = user_history or {}

    def classify(self, transaction_id: int, description: str) -> CategorizationResult | None:
        text = description.strip()
        if not text:
            return None

        upper = text.upper()
        for fragment, category_id in self.user_history.items():
            if fragment.upper() in upper:
                return CategorizationResult(
                    transaction_id=transaction_id,
                    category_id=category_id,
                    confidence=USER_HISTORY_CONFIDENCE,
                    source=CategorizationSource.USER_HISTORY,
                )

        for pattern, category_id, confidence in RULES:
            if pattern.search(text):
                logger.debug(f"[RULES] '{text[:40]}' matched {pattern.pattern}")
                return CategorizationResult(
                    transaction_id=transaction_id,
                    category_id=category_id,
                    confidence=confidence,
                    source=CategorizationSource.RULE_BASED,
                )
        return None
