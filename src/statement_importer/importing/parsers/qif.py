import datetime as dt
import re

from statement_importer.domain.dates import create_date, normalize_year
from statement_importer.domain.documents import DocumentType, QifDocument
from statement_importer.domain.numbers import NumberParser
from statement_importer.domain.results import ImportFailed, ImportResult, ImportSuccess
from statement_importer.exceptions import DateParseException, NumberParseException
from statement_importer.logger import get_logger
from statement_importer.models import ImportedTransaction, ImportSource

from .base import StatementParser

logger = get_logger(__name__)

QIF_CONFIDENCE = 0.92

# Quicken account types; files carrying them come from US-locale exports
MONTH_FIRST_ACCOUNT_TYPES = frozenset({"bank", "ccard", "cash", "invst", "oth a", "oth l"})

_DATE_SPLIT_RE = re.compile(r"[/\-.' ]+")


class QifParser(StatementParser):
    def __init__(self, day_first: bool | None = None):
        # None lets the account type decide ambiguous dates
        self.day_first = day_first

    def parse(self, text: str, document_type: DocumentType) -> ImportResult:
        if not text or not text.strip():
            return ImportFailed(message="Empty QIF content", document_type=document_type)
        if "!type:" not in text.lower():
            return ImportFailed(message="Invalid QIF format: missing !Type header", document_type=document_type)

        account_type = document_type.account_type if isinstance(document_type, QifDocument) else "Bank"
        day_first = self.day_first
        if day_first is None:
            day_first = account_type.strip().lower() not in MONTH_FIRST_ACCOUNT_TYPES

        transactions: list[ImportedTransaction] = []
        record: dict[str, str] = {}
        for raw_line in text.splitlines():
            line = raw_line.strip()
            if not line or line.startswith("!"):
                continue
            if line.startswith("^"):
                self._flush(record, transactions, day_first)
                record = {}
                continue
            record[line[0].upper()] = line[1:].strip()
        # Last record without a terminating caret
        self._flush(record, transactions, day_first)

        if not transactions:
            return ImportFailed(message="No transactions found in QIF file", document_type=document_type)

        return ImportSuccess(
            transactions=transactions,
            document_type=document_type,
            total_confidence=QIF_CONFIDENCE,
        )

    def _flush(self, record: dict[str, str], transactions: list[ImportedTransaction], day_first: bool) -> None:
        date_text = record.get("D")
        amount_text = record.get("T") or record.get("U")
        if not date_text or not amount_text:
            return
        try:
            transactions.append(self._build(record, date_text, amount_text, day_first))
        except (DateParseException, NumberParseException) as exc:
            logger.debug("[QIF] Skipping record: %s", exc)

    @staticmethod
    def _build(record: dict[str, str], date_text: str, amount_text: str, day_first: bool) -> ImportedTransaction:
        payee = record.get("P") or None
        return ImportedTransaction(
            date=parse_qif_date(date_text, day_first=day_first),
            amount=NumberParser.parse(amount_text),
            description=record.get("M") or payee or "",
            merchant=payee,
            category=record.get("L") or None,
            confidence=QIF_CONFIDENCE,
            source=ImportSource.RULE_BASED,
            raw_data=dict(record),
        )


def parse_qif_date(text: str, *, day_first: bool) -> dt.date:
    """
    Parse QIF dates such as ``01/15/2024``, ``15.01.24`` or ``1/15'24``.

    A part above 12 can only be the day; otherwise ``day_first`` settles it.
    """
    parts = [part for part in _DATE_SPLIT_RE.split(text.strip()) if part]
    if len(parts) != 3 or not all(part.isdigit() for part in parts):
        raise DateParseException(text)

    first, second, year = (int(part) for part in parts)
    if len(parts[0]) == 4:
        # ISO-like YYYY/MM/DD
        return create_date(text, first, second, year)
    if first > 12:
        day, month = first, second
    elif second > 12:
        day, month = second, first
    elif day_first:
        day, month = first, second
    else:
        day, month = second, first
    return create_date(text, normalize_year(year), month, day)
