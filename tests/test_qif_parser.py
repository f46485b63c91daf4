import datetime as dt

import pytest

from statement_importer.domain.documents import QifDocument
from statement_importer.domain.results import ImportFailed, ImportSuccess
from statement_importer.importing.parsers.qif import QifParser, parse_qif_date

BANK = QifDocument(account_type="Bank")

QIF = """!Type:Bank
D01/15/2024
T-50.00
PAmazon
MBooks
LShopping
^
D01/16/2024
T1,200.00
PEmployer
"""


def test_parse_bank_records() -> None:
    result = QifParser().parse(QIF, BANK)

    assert isinstance(result, ImportSuccess)
    assert result.total_confidence == 0.92
    first, second = result.transactions
    assert first.date == dt.date(2024, 1, 15)
    assert first.amount == -5000
    assert first.merchant == "Amazon"
    assert first.description == "Books"
    assert first.category == "Shopping"
    # Last record has no closing caret
    assert second.description == "Employer"
    assert second.amount == 120000


def test_day_first_override() -> None:
    text = "!Type:Bank\nD02/03/2024\nT-1.00\n^\n"
    assert QifParser().parse(text, BANK).transactions[0].date == dt.date(2024, 2, 3)
    assert QifParser(day_first=True).parse(text, BANK).transactions[0].date == dt.date(2024, 3, 2)


def test_missing_type_header() -> None:
    result = QifParser().parse("D01/15/2024\nT-1.00\n^\n", BANK)
    assert isinstance(result, ImportFailed)
    assert result.message == "Invalid QIF format: missing !Type header"


def test_records_without_amount_are_dropped() -> None:
    result = QifParser().parse("!Type:Bank\nD01/15/2024\nPNothing\n^\n", BANK)
    assert isinstance(result, ImportFailed)
    assert result.message == "No transactions found in QIF file"


@pytest.mark.parametrize(
    "text, day_first, expected",
    [
        ("1/15'24", False, dt.date(2024, 1, 15)),
        ("15.01.24", False, dt.date(2024, 1, 15)),
        ("2024/01/15", True, dt.date(2024, 1, 15)),
        ("05/06/2024", True, dt.date(2024, 6, 5)),
    ],
)
def test_parse_qif_date(text: str, day_first: bool, expected: dt.date) -> None:
    assert parse_qif_date(text, day_first=day_first) == expected
