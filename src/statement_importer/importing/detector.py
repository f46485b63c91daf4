import codecs
import re
from pathlib import PurePath

from statement_importer.domain.documents import (
    CsvDocument,
    DocumentType,
    ImageDocument,
    ImageFormat,
    OfxDocument,
    PdfDocument,
    QifDocument,
    UnknownDocument,
)
from statement_importer.logger import get_logger

logger = get_logger(__name__)

PDF_MAGIC = b"%PDF-"
PNG_MAGIC = b"\x89PNG\r\n\x1a\n"
JPEG_MAGIC = b"\xff\xd8\xff"

CSV_DELIMITERS = (",", ";", "\t", "|")
DEFAULT_OFX_VERSION = "2.2"
DEFAULT_QIF_ACCOUNT_TYPE = "Bank"

BANK_SIGNATURES: dict[str, tuple[str, ...]] = {
    "kaspi": ("kaspi", "каспи"),
    "halyk": ("halyk", "народный банк", "халык"),
    "jusan": ("jusan", "жусан"),
    "forte": ("forte", "fortebank", "форте"),
    "sberbank": ("сбербанк", "sberbank"),
    "tinkoff": ("тинькофф", "tinkoff", "тинькоф"),
    "alfa": ("альфа-банк", "alfa-bank", "альфабанк"),
    "vtb": ("втб", "vtb"),
    "raiffeisen": ("райффайзен", "raiffeisen"),
    "centerkredit": ("центркредит", "centerkredit", "bcc"),
}

_EXTENSION_TYPES: dict[str, DocumentType] = {
    "csv": CsvDocument(delimiter=","),
    "txt": CsvDocument(delimiter=","),
    "tsv": CsvDocument(delimiter="\t"),
    "pdf": PdfDocument(),
    "ofx": OfxDocument(version=DEFAULT_OFX_VERSION),
    "qfx": OfxDocument(version=DEFAULT_OFX_VERSION),
    "qif": QifDocument(account_type=DEFAULT_QIF_ACCOUNT_TYPE),
    "jpg": ImageDocument(format=ImageFormat.JPEG),
    "jpeg": ImageDocument(format=ImageFormat.JPEG),
    "png": ImageDocument(format=ImageFormat.PNG),
    "heic": ImageDocument(format=ImageFormat.HEIC),
    "heif": ImageDocument(format=ImageFormat.HEIC),
    "webp": ImageDocument(format=ImageFormat.WEBP),
}

_OFX_VERSION_RE = re.compile(r"VERSION[:\s=]+\"?(\d+(?:\.\d+)?)")
_QIF_TYPE_RE = re.compile(r"!Type:([\w ]+)", re.IGNORECASE)


def file_extension(filename: str) -> str:
    return PurePath(filename).suffix.lstrip(".").lower()


def count_unquoted(line: str, delimiter: str) -> int:
    count = 0
    in_quotes = False
    for char in line:
        if char == '"':
            in_quotes = not in_quotes
        elif char == delimiter and not in_quotes:
            count += 1
    return count


def _non_blank_lines(text: str, limit: int) -> list[str]:
    lines = []
    for line in text.splitlines():
        if line.strip():
            lines.append(line)
            if len(lines) >= limit:
                break
    return lines


class FormatDetector:
    def detect(self, filename: str, content: bytes | None = None) -> DocumentType:
        """Content wins over the extension whenever there is content to look at."""
        if content:
            detected = self.detect_from_content(content)
            if not isinstance(detected, UnknownDocument):
                logger.debug("[DETECT] %s detected from content as %s", filename, detected.kind)
                return detected
        return self.detect_from_extension(filename)

    def detect_from_extension(self, filename: str) -> DocumentType:
        return _EXTENSION_TYPES.get(file_extension(filename), UnknownDocument())

    def detect_from_content(self, content: bytes) -> DocumentType:
        if content.startswith(PDF_MAGIC):
            return PdfDocument()
        if content.startswith(PNG_MAGIC):
            return ImageDocument(format=ImageFormat.PNG)
        if content.startswith(JPEG_MAGIC):
            return ImageDocument(format=ImageFormat.JPEG)

        encoding = self.detect_encoding(content)
        try:
            text = content.decode(encoding)
        except UnicodeDecodeError:
            logger.debug("[DETECT] Content is not valid %s text", encoding)
            return UnknownDocument()
        text = text.lstrip("\ufeff")

        if self.is_ofx(text):
            return OfxDocument(version=self.detect_ofx_version(text))
        if self.is_qif(text):
            return QifDocument(account_type=self.detect_qif_account_type(text))
        if self.is_csv(text):
            return CsvDocument(delimiter=self.detect_csv_delimiter(text), encoding=encoding)
        return UnknownDocument()

    @staticmethod
    def detect_encoding(content: bytes) -> str:
        if content.startswith(codecs.BOM_UTF8):
            return "utf-8"
        if content.startswith(codecs.BOM_UTF16_LE):
            return "utf-16-le"
        if content.startswith(codecs.BOM_UTF16_BE):
            return "utf-16-be"
        return "utf-8"

    @staticmethod
    def is_ofx(text: str) -> bool:
        head = text[:4096].upper()
        if "OFXHEADER" in head or "<?OFX" in head:
            return True
        upper = text.upper()
        return "<OFX>" in upper and "</OFX>" in upper

    @staticmethod
    def is_qif(text: str) -> bool:
        for line in _non_blank_lines(text, 5):
            stripped = line.strip()
            if stripped.startswith("!Type:") or stripped.startswith("!Account"):
                return True
        return False

    @staticmethod
    def is_csv(text: str) -> bool:
        lines = _non_blank_lines(text, 5)
        if len(lines) < 2:
            return False
        for delimiter in CSV_DELIMITERS:
            counts = {count_unquoted(line, delimiter) for line in lines}
            if len(counts) == 1 and counts.pop() > 0:
                return True
        return False

    @staticmethod
    def detect_csv_delimiter(text: str) -> str:
        lines = _non_blank_lines(text, 10)
        if not lines:
            return ","

        best: tuple[bool, int, int] | None = None
        best_delimiter = ","
        for delimiter in CSV_DELIMITERS:
            counts = [count_unquoted(line, delimiter) for line in lines]
            if min(counts) <= 0:
                continue
            distinct = len(set(counts))
            # Consistent counts first, then the busiest delimiter, then the steadiest
            score = (distinct == 1, sum(counts), -distinct)
            if best is None or score > best:
                best = score
                best_delimiter = delimiter
        return best_delimiter

    @staticmethod
    def detect_ofx_version(text: str) -> str:
        match = _OFX_VERSION_RE.search(text)
        if not match:
            return DEFAULT_OFX_VERSION
        version = match.group(1)
        # Headers write 102 for 1.0.2 and 220 for 2.2
        if "." not in version and len(version) == 3:
            version = f"{version[0]}.{version[1]}.{version[2]}".removesuffix(".0")
        return version

    @staticmethod
    def detect_qif_account_type(text: str) -> str:
        match = _QIF_TYPE_RE.search(text)
        if not match:
            return DEFAULT_QIF_ACCOUNT_TYPE
        return match.group(1).strip()

    @staticmethod
    def detect_bank_signature(text: str) -> str | None:
        lowered = text.lower()
        for bank, variants in BANK_SIGNATURES.items():
            if any(variant in lowered for variant in variants):
                return bank
        return None
