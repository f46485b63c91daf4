import datetime as dt

from statement_importer.importing.validator import ImportValidator
from statement_importer.models import ImportedTransaction, ImportSource

TODAY = dt.date(2024, 6, 1)


def transaction(description: str = "Coffee", amount: int = -500, date: dt.date = TODAY) -> ImportedTransaction:
    return ImportedTransaction(
        date=date,
        amount=amount,
        description=description,
        confidence=0.9,
        source=ImportSource.RULE_BASED,
    )


def test_clean_transactions_have_no_warnings() -> None:
    result = ImportValidator(today=lambda: TODAY).validate([transaction(), transaction("Salary", 100_000)])
    assert result.is_valid
    assert result.warnings == []
    assert result.errors == []


def test_warnings_are_reported_by_position() -> None:
    validator = ImportValidator(today=lambda: TODAY)
    result = validator.validate(
        [
            transaction(),
            transaction(date=dt.date(2024, 6, 2)),
            transaction(amount=-100_000_001),
            transaction(description="   "),
        ]
    )
    assert result.is_valid
    assert result.warnings == [
        "Transaction 2: Future date detected (2024-06-02)",
        "Transaction 3: Unusually large amount",
        "Transaction 4: Empty description",
    ]


def test_threshold_amount_is_not_large() -> None:
    result = ImportValidator(today=lambda: TODAY).validate_single(transaction(amount=100_000_000))
    assert result.warnings == []
