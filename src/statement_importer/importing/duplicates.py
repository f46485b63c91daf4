import re

from statement_importer.domain.results import DuplicateStatus, ExactDuplicate, ProbableDuplicate, Unique
from statement_importer.logger import get_logger
from statement_importer.models import ImportedTransaction, LedgerTransaction

logger = get_logger(__name__)

EXACT_MATCH_THRESHOLD = 0.95
PROBABLE_MATCH_THRESHOLD = 0.5
DATE_TOLERANCE_DAYS = 1

_SPECIAL_CHARS = re.compile(r"[^A-ZА-ЯЁ0-9\s]")
_WHITESPACE = re.compile(r"\s+")


def normalize_description(description: str) -> str:
    cleaned = _SPECIAL_CHARS.sub("", description.upper())
    return _WHITESPACE.sub(" ", cleaned).strip()


def levenshtein_distance(a: str, b: str) -> int:
    if not a:
        return len(b)
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i] + [0] * len(b)
        for j, char_b in enumerate(b, start=1):
            cost = 0 if char_a == char_b else 1
            current[j] = min(current[j - 1] + 1, previous[j] + 1, previous[j - 1] + cost)
        previous = current
    return previous[-1]


def levenshtein_similarity(a: str, b: str) -> float:
    """1.0 for identical strings, 0.0 when nothing lines up."""
    if not a and not b:
        return 1.0
    if not a or not b:
        return 0.0
    return 1.0 - levenshtein_distance(a, b) / max(len(a), len(b))


def _reason(similarity: float) -> str:
    if similarity >= 0.9:
        return "Same date and amount, similar description"
    if similarity >= 0.8:
        return "Same date and amount, partially matching description"
    return "Same date and amount"


class FuzzyDuplicateDetector:
    """
    Matches imported rows against the existing ledger.

    A candidate needs the exact same amount and a date within one day.
    Among candidates, the one with the most similar normalized description
    decides the verdict.
    """

    def check_duplicate(
        self,
        imported: ImportedTransaction,
        existing: list[LedgerTransaction],
    ) -> DuplicateStatus:
        normalized = normalize_description(imported.description)
        best: tuple[LedgerTransaction, float] | None = None

        for candidate in existing:
            if candidate.amount != imported.amount:
                continue
            if abs((candidate.date - imported.date).days) > DATE_TOLERANCE_DAYS:
                continue
            similarity = levenshtein_similarity(normalized, normalize_description(candidate.description))
            if best is None or similarity > best[1]:
                best = (candidate, similarity)

        if best is None:
            return Unique()

        match, similarity = best
        if similarity >= EXACT_MATCH_THRESHOLD:
            return ExactDuplicate(matching_transaction_id=match.id)
        if similarity >= PROBABLE_MATCH_THRESHOLD:
            return ProbableDuplicate(
                matching_transaction_id=match.id,
                similarity=similarity,
                reason=_reason(similarity),
            )
        return Unique()

    def check_duplicates(
        self,
        imported: list[ImportedTransaction],
        existing: list[LedgerTransaction],
    ) -> dict[int, DuplicateStatus]:
        statuses = {i: self.check_duplicate(transaction, existing) for i, transaction in enumerate(imported)}
        found = sum(1 for status in statuses.values() if status.is_duplicate)
        if found:
            logger.info(f"[DUPLICATES] {found} of {len(imported)} transaction(s) already in the ledger")
        return statuses
