import csv

from pydantic import BaseModel

from statement_importer.domain.dates import DateParser
from statement_importer.domain.documents import CsvDocument, DocumentType
from statement_importer.domain.numbers import NumberParser
from statement_importer.domain.results import ImportFailed, ImportResult, ImportSuccess, NeedsUserInput
from statement_importer.exceptions import DateParseException, NumberParseException
from statement_importer.logger import get_logger
from statement_importer.models import ImportedTransaction, ImportSource

from .base import StatementParser, clamp_confidence

logger = get_logger(__name__)

ROW_CONFIDENCE = 0.85
MAX_REPORTED_ROW_ERRORS = 5

# Checked in this order; a column is claimed by the first field whose keyword it contains
COLUMN_KEYWORDS: dict[str, tuple[str, ...]] = {
    "date": (
        "date", "дата", "transaction date", "дата операции", "дата транзакции",
        "posting date", "value date", "дата проводки", "operation date", "datum", "fecha",
    ),
    "amount": (
        "amount", "сумма", "sum", "value", "debit", "credit", "сумма операции",
        "сумма в валюте счета", "transaction amount", "betrag", "importe",
    ),
    "description": (
        "description", "описание", "details", "назначение", "memo", "narrative",
        "payment details", "описание операции", "детали", "verwendungszweck", "concepto",
    ),
    "balance": (
        "balance", "остаток", "running balance", "баланс", "остаток после операции",
        "account balance", "saldo",
    ),
    "merchant": (
        "merchant", "торговая точка", "payee", "получатель", "контрагент", "vendor", "store",
    ),
}


class ColumnMapping(BaseModel):
    date: int
    amount: int
    description: int | None = None
    balance: int | None = None
    merchant: int | None = None

    @property
    def bonus(self) -> float:
        found = sum(index is not None for index in (self.balance, self.merchant))
        return {0: 0.0, 1: 0.05, 2: 0.1}[found]


def detect_columns(headers: list[str]) -> dict[str, int]:
    lowered = [header.strip().lower() for header in headers]
    mapping: dict[str, int] = {}
    claimed: set[int] = set()
    for field, keywords in COLUMN_KEYWORDS.items():
        for index, header in enumerate(lowered):
            if index in claimed or not header:
                continue
            if any(keyword in header for keyword in keywords):
                mapping[field] = index
                claimed.add(index)
                break
    return mapping


def _cell(row: list[str], index: int | None) -> str | None:
    if index is None or index >= len(row):
        return None
    value = row[index].strip()
    return value or None


class CsvParser(StatementParser):
    def parse(self, text: str, document_type: DocumentType) -> ImportResult:
        rows = self._read_rows(text, document_type)
        if not rows:
            return ImportFailed(message="Empty CSV content", document_type=document_type)
        if len(rows) < 2:
            return ImportFailed(
                message="CSV must contain a header and at least one data row",
                document_type=document_type,
            )

        headers = rows[0]
        columns = detect_columns(headers)
        if "date" not in columns or "amount" not in columns:
            return NeedsUserInput(
                document_type=document_type,
                issues=[f"Could not detect date or amount columns. Headers: {', '.join(headers)}"],
            )

        mapping = ColumnMapping(**columns)
        return self._parse_rows(headers, rows[1:], mapping, document_type)

    def parse_with_mapping(
        self, text: str, document_type: DocumentType, mapping: ColumnMapping
    ) -> ImportResult:
        """Parse using columns the user picked after a NeedsUserInput result."""
        rows = self._read_rows(text, document_type)
        if len(rows) < 2:
            return ImportFailed(message="Empty CSV content", document_type=document_type)
        return self._parse_rows(rows[0], rows[1:], mapping, document_type)

    @staticmethod
    def _read_rows(text: str, document_type: DocumentType) -> list[list[str]]:
        delimiter = document_type.delimiter if isinstance(document_type, CsvDocument) else ","
        lines = [line for line in text.lstrip("\ufeff").splitlines() if line.strip()]
        return [row for row in csv.reader(lines, delimiter=delimiter) if any(cell.strip() for cell in row)]

    def _parse_rows(
        self,
        headers: list[str],
        rows: list[list[str]],
        mapping: ColumnMapping,
        document_type: DocumentType,
    ) -> ImportResult:
        transactions: list[ImportedTransaction] = []
        errors: list[str] = []

        for line_number, row in enumerate(rows, start=2):
            try:
                transactions.append(self._parse_row(headers, row, mapping))
            except (DateParseException, NumberParseException) as exc:
                errors.append(f"Row {line_number}: {exc}")

        if errors:
            logger.debug("[CSV] Skipped %d of %d rows", len(errors), len(rows))

        if not transactions:
            return ImportFailed(
                message="No valid transactions found. " + "; ".join(errors[:MAX_REPORTED_ROW_ERRORS]),
                document_type=document_type,
            )

        ratio = len(transactions) / len(rows)
        return ImportSuccess(
            transactions=transactions,
            document_type=document_type,
            total_confidence=clamp_confidence(ratio * 0.9 + mapping.bonus),
        )

    @staticmethod
    def _parse_row(headers: list[str], row: list[str], mapping: ColumnMapping) -> ImportedTransaction:
        date_text = _cell(row, mapping.date)
        amount_text = _cell(row, mapping.amount)
        if date_text is None:
            raise DateParseException("", "missing date")
        if amount_text is None:
            raise NumberParseException("", "missing amount")

        balance_text = _cell(row, mapping.balance)
        return ImportedTransaction(
            date=DateParser.parse(date_text),
            amount=NumberParser.parse(amount_text),
            description=_cell(row, mapping.description) or "",
            merchant=_cell(row, mapping.merchant),
            balance=NumberParser.parse_or_none(balance_text),
            confidence=ROW_CONFIDENCE,
            source=ImportSource.RULE_BASED,
            raw_data={header: value for header, value in zip(headers, row)},
        )
