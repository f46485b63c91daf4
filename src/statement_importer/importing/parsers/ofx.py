import re

from statement_importer.domain.dates import DateFormat, DateParser
from statement_importer.domain.documents import DocumentType
from statement_importer.domain.numbers import NumberLocale, NumberParser
from statement_importer.domain.results import ImportFailed, ImportResult, ImportSuccess
from statement_importer.exceptions import DateParseException, NumberParseException
from statement_importer.logger import get_logger
from statement_importer.models import ImportedTransaction, ImportSource

from .base import StatementParser

logger = get_logger(__name__)

OFX_CONFIDENCE = 0.95

_TRANSACTION_RE = re.compile(r"<STMTTRN>([\s\S]*?)</STMTTRN>", re.IGNORECASE)
_XML_TAG_RE = re.compile(r"<(\w+)>([^<]*)</\1>")
_SGML_TAG_RE = re.compile(r"<(\w+)>([^<\r\n]+)")
_DATE_DIGITS_RE = re.compile(r"^\d{8}")


def extract_tags(block: str) -> dict[str, str]:
    """Read leaf elements from either closed XML tags or unclosed SGML tags."""
    tags = {name.upper(): value.strip() for name, value in _XML_TAG_RE.findall(block)}
    if tags:
        return tags
    return {name.upper(): value.strip() for name, value in _SGML_TAG_RE.findall(block)}


class OfxParser(StatementParser):
    def parse(self, text: str, document_type: DocumentType) -> ImportResult:
        if not text or not text.strip():
            return ImportFailed(message="Empty OFX content", document_type=document_type)

        upper = text.upper()
        if "<OFX>" not in upper and "OFXHEADER" not in upper:
            return ImportFailed(message="Invalid OFX format: missing OFX header", document_type=document_type)

        transactions: list[ImportedTransaction] = []
        for block in _TRANSACTION_RE.findall(text):
            try:
                transactions.append(self._parse_block(block))
            except (DateParseException, NumberParseException, KeyError) as exc:
                logger.debug("[OFX] Skipping malformed transaction: %s", exc)

        if not transactions:
            return ImportFailed(message="No transactions found in OFX file", document_type=document_type)

        return ImportSuccess(
            transactions=transactions,
            document_type=document_type,
            total_confidence=OFX_CONFIDENCE,
        )

    @staticmethod
    def _parse_block(block: str) -> ImportedTransaction:
        tags = extract_tags(block)

        # DTPOSTED may carry time and zone: 20240115120000.000[-5:EST]
        date_match = _DATE_DIGITS_RE.match(tags["DTPOSTED"])
        if not date_match:
            raise DateParseException(tags["DTPOSTED"])

        name = tags.get("NAME") or None
        return ImportedTransaction(
            date=DateParser.parse(date_match.group(0), DateFormat.ISO_COMPACT),
            amount=NumberParser.parse(tags["TRNAMT"], NumberLocale.US),
            description=tags.get("MEMO") or name or "",
            merchant=name,
            confidence=OFX_CONFIDENCE,
            source=ImportSource.RULE_BASED,
            raw_data=tags,
        )
