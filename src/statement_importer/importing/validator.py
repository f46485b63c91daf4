import datetime as dt
from collections.abc import Callable

from statement_importer.domain.results import ImportValidationResult
from statement_importer.logger import get_logger
from statement_importer.models import ImportedTransaction

logger = get_logger(__name__)

# 1 million in major units
LARGE_AMOUNT_THRESHOLD = 100_000_000


class ImportValidator:
    """Flags suspicious rows. Findings are warnings; nothing here blocks an import."""

    def __init__(self, today: Callable[[], dt.date] = dt.date.today):
        self._today = today

    def validate(self, transactions: list[ImportedTransaction]) -> ImportValidationResult:
        today = self._today()
        warnings: list[str] = []
        errors: list[str] = []

        for i, transaction in enumerate(transactions):
            if transaction.date > today:
                warnings.append(f"Transaction {i + 1}: Future date detected ({transaction.date.isoformat()})")
            if abs(transaction.amount) > LARGE_AMOUNT_THRESHOLD:
                warnings.append(f"Transaction {i + 1}: Unusually large amount")
            if not transaction.description.strip():
                warnings.append(f"Transaction {i + 1}: Empty description")

        if warnings:
            logger.debug(f"[VALIDATE] {len(warnings)} warning(s) for {len(transactions)} transaction(s)")
        return ImportValidationResult(is_valid=not errors, errors=errors, warnings=warnings)

    def validate_single(self, transaction: ImportedTransaction) -> ImportValidationResult:
        return self.validate([transaction])
