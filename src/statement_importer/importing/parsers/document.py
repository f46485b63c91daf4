import re
from typing import Protocol

from pydantic import BaseModel, TypeAdapter, ValidationError

from statement_importer.domain.dates import DateFormat, DateParser
from statement_importer.domain.documents import DocumentType, ImageDocument, PdfDocument
from statement_importer.domain.numbers import NumberLocale, NumberParser
from statement_importer.domain.results import ImportFailed, ImportResult, ImportSuccess
from statement_importer.exceptions import (
    DateParseException,
    NumberParseException,
    ProviderException,
)
from statement_importer.importing.detector import FormatDetector
from statement_importer.logger import get_logger
from statement_importer.models import ImportedTransaction, ImportSource
from statement_importer.providers.base import LLMProvider, strip_code_fences
from statement_importer.services.privacy import RegexPIIAnonymizer

from .base import clamp_confidence

logger = get_logger(__name__)

DOCUMENT_CONFIDENCE = 0.80
LLM_EXTRACTION_CONFIDENCE = 0.75
MAX_PROMPT_CHARS = 12_000

_AMOUNT = r"[-+−]?\(?\d{1,3}(?:[ \u00a0\u202f,.]?\d{3})*[.,]\d{2}\)?"
_LOOSE_AMOUNT = r"[-+−]?\d[\d \u00a0\u202f,.']*?"
_CURRENCY = r"(?:\s*(?:[₸$€£₽]|KZT|USD|EUR|RUB))?"
_BALANCE_SUFFIX = r"(?:\s+[ОоOo]статок.*)?"
_NUMERIC_DATE = r"\d{1,2}[./-]\d{1,2}[./-]\d{2,4}"
_ISO_DATE = r"\d{4}-\d{1,2}-\d{1,2}"
_TEXT_DATE = r"\d{1,2}\s+[^\W\d_]+\.?\s+\d{4}"
_LOOSE_TAIL = rf"\s+(?P<amount>{_LOOSE_AMOUNT}){_CURRENCY}{_BALANCE_SUFFIX}\s*$"

# Tried in order; the first layout that matches a line decides how it is read
_LINE_PATTERNS = (
    # date, description, amount with cents, optional running balance
    re.compile(
        rf"^\s*(?P<date>{_NUMERIC_DATE}|{_ISO_DATE})"
        r"\s+(?P<body>.+?)"
        rf"\s+(?P<amount>{_AMOUNT}){_CURRENCY}"
        rf"(?:\s+(?P<balance>{_AMOUNT}){_CURRENCY})?\s*$"
    ),
    re.compile(rf"^\s*(?P<date>{_NUMERIC_DATE}|{_ISO_DATE})\s+(?P<body>.+?){_LOOSE_TAIL}"),
    # 15 января 2024 ...
    re.compile(rf"^\s*(?P<date>{_TEXT_DATE})\s+(?P<body>.+?){_LOOSE_TAIL}"),
    # amount first
    re.compile(rf"^\s*(?P<amount>{_LOOSE_AMOUNT}){_CURRENCY}\s+(?P<date>{_NUMERIC_DATE})\s+(?P<body>.+?)\s*$"),
)
PAGE_BREAK_MARKER = "--- Page Break ---"

EXTRACTION_SCHEMA = """[
  {"date": "YYYY-MM-DD", "amount": "-1234.56", "description": "string", "merchant": "string or null"}
]"""

EXTRACTION_PROMPT = """Extract every transaction from this bank statement text.
Expenses must have a negative amount, income a positive amount.
Use a dot as the decimal separator and no thousands separators.

Statement text:
{text}"""


class TextExtractor(Protocol):
    def extract_pdf_text(self, content: bytes) -> str: ...

    def extract_image_text(self, content: bytes) -> str: ...


class ExtractedRow(BaseModel):
    date: str
    amount: str | float
    description: str = ""
    merchant: str | None = None


_ROWS = TypeAdapter(list[ExtractedRow])


def _clean_amount(text: str) -> str:
    # 1'234.56 grouping is read like a space-grouped amount
    return text.replace("'", " ").strip()


class DocumentParser:
    """
    Imports PDF statements and photographed receipts.

    Text extraction is delegated to a ``TextExtractor``; statement lines are
    then matched against the known statement line layouts. When nothing
    matches and a provider is configured, the anonymized text is handed to a
    language model for structured extraction.
    """

    def __init__(
        self,
        extractor: TextExtractor | None = None,
        provider: LLMProvider | None = None,
        anonymizer: RegexPIIAnonymizer | None = None,
    ):
        self.extractor = extractor
        self.provider = provider
        self.anonymizer = anonymizer or RegexPIIAnonymizer()

    @property
    def is_available(self) -> bool:
        return self.extractor is not None

    def parse(self, content: bytes, document_type: DocumentType) -> ImportResult:
        if self.extractor is None:
            return ImportFailed(message="PDF parsing is not available", document_type=document_type)

        try:
            if isinstance(document_type, ImageDocument):
                text = self.extractor.extract_image_text(content)
            else:
                text = self.extractor.extract_pdf_text(content)
        except Exception as e:
            logger.error(f"[DOCUMENT] Text extraction failed: {e}")
            return ImportFailed(message=f"Could not read document: {e}", document_type=document_type)

        if isinstance(document_type, PdfDocument):
            document_type = PdfDocument(bank_signature=FormatDetector.detect_bank_signature(text))

        if not text.strip():
            return ImportFailed(message="No text found in document", document_type=document_type)

        transactions, line_count = self.parse_lines(text)
        if transactions:
            return ImportSuccess(
                transactions=transactions,
                document_type=document_type,
                total_confidence=clamp_confidence(DOCUMENT_CONFIDENCE * len(transactions) / line_count),
            )

        transactions = self._extract_with_provider(text)
        if transactions:
            return ImportSuccess(
                transactions=transactions,
                document_type=document_type,
                total_confidence=LLM_EXTRACTION_CONFIDENCE,
            )
        return ImportFailed(message="No transactions found in document", document_type=document_type)

    @staticmethod
    def parse_lines(text: str) -> tuple[list[ImportedTransaction], int]:
        """Returns parsed transactions and the number of lines that looked like transactions."""
        transactions: list[ImportedTransaction] = []
        candidates = 0
        for line in text.splitlines():
            if not line.strip() or line.strip() == PAGE_BREAK_MARKER:
                continue
            match = next((m for m in (p.match(line) for p in _LINE_PATTERNS) if m), None)
            if not match:
                continue
            candidates += 1
            fields = match.groupdict()
            try:
                transactions.append(
                    ImportedTransaction(
                        date=DateParser.parse(fields["date"]),
                        amount=NumberParser.parse(_clean_amount(fields["amount"])),
                        description=" ".join(fields["body"].split()).rstrip("|/ "),
                        balance=NumberParser.parse_or_none(fields.get("balance")),
                        confidence=DOCUMENT_CONFIDENCE,
                        source=ImportSource.DOCUMENT_AI,
                        raw_data={"line": line.strip()},
                    )
                )
            except (DateParseException, NumberParseException) as e:
                logger.debug(f"[DOCUMENT] Skipping line: {e}")
        return transactions, max(candidates, 1)

    def _extract_with_provider(self, text: str) -> list[ImportedTransaction]:
        if self.provider is None or not self.provider.is_available():
            return []

        anonymized = self.anonymizer.anonymize(text[:MAX_PROMPT_CHARS])
        try:
            response = self.provider.structured_output(
                EXTRACTION_PROMPT.format(text=anonymized.anonymized_text),
                EXTRACTION_SCHEMA,
            )
        except ProviderException as e:
            logger.warning(f"[DOCUMENT] Extraction provider failed: {e}")
            return []

        try:
            rows = _ROWS.validate_json(strip_code_fences(response.content))
        except ValidationError as e:
            logger.warning(f"[DOCUMENT] Malformed extraction response: {e.error_count()} error(s)")
            return []

        transactions: list[ImportedTransaction] = []
        for row in rows:
            try:
                transactions.append(
                    ImportedTransaction(
                        date=DateParser.parse(row.date, DateFormat.AUTO),
                        amount=NumberParser.parse(str(row.amount), NumberLocale.US),
                        description=self.anonymizer.deanonymize(row.description, anonymized.mapping),
                        merchant=row.merchant,
                        confidence=LLM_EXTRACTION_CONFIDENCE,
                        source=ImportSource.LLM_ENHANCED,
                        raw_data={"date": row.date, "amount": str(row.amount)},
                    )
                )
            except (DateParseException, NumberParseException) as e:
                logger.debug(f"[DOCUMENT] Skipping extracted row: {e}")
        logger.info(f"[DOCUMENT] {self.provider.name} extracted {len(transactions)} transaction(s)")
        return transactions
