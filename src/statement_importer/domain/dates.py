import datetime as dt
import re
from enum import StrEnum

from statement_importer.exceptions import DateParseException, InvalidDateException


class DateFormat(StrEnum):
    AUTO = "auto"
    ISO = "iso"                    # 2024-01-15
    ISO_COMPACT = "iso_compact"    # 20240115
    EU = "eu"                      # 15.01.2024, 15/01/24
    EU_COMPACT = "eu_compact"      # 15012024
    US = "us"                      # 01/15/2024
    RUSSIAN_TEXT = "russian_text"  # 15 января 2024
    ENGLISH_TEXT = "english_text"  # January 15, 2024 or 15 Jan 2024


_ISO_RE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$")
_NUMERIC_RE = re.compile(r"^(\d{1,2})[./\-](\d{1,2})[./\-](\d{2,4})$")
_COMPACT_RE = re.compile(r"^(\d{8})$")
_WORD = r"([^\W\d_]+)\.?"
_DAY_FIRST_TEXT_RE = re.compile(r"(\d{1,2})\s+" + _WORD + r"\s+(\d{4})")
_MONTH_FIRST_TEXT_RE = re.compile(_WORD + r"\s+(\d{1,2}),?\s+(\d{4})")

_RUSSIAN_MONTH_NAMES = (
    ("январь", "января", "янв"),
    ("февраль", "февраля", "фев"),
    ("март", "марта", "мар"),
    ("апрель", "апреля", "апр"),
    ("май", "мая", None),
    ("июнь", "июня", "июн"),
    ("июль", "июля", "июл"),
    ("август", "августа", "авг"),
    ("сентябрь", "сентября", "сен"),
    ("октябрь", "октября", "окт"),
    ("ноябрь", "ноября", "ноя"),
    ("декабрь", "декабря", "дек"),
)
RUSSIAN_MONTHS: dict[str, int] = {
    name: number
    for number, names in enumerate(_RUSSIAN_MONTH_NAMES, start=1)
    for name in names
    if name
}

_ENGLISH_MONTH_NAMES = (
    "january", "february", "march", "april", "may", "june",
    "july", "august", "september", "october", "november", "december",
)
ENGLISH_MONTHS: dict[str, int] = {}
for _number, _name in enumerate(_ENGLISH_MONTH_NAMES, start=1):
    ENGLISH_MONTHS[_name] = _number
    ENGLISH_MONTHS[_name[:3]] = _number
ENGLISH_MONTHS["sept"] = 9

_AUTO_FALLBACK_ORDER = (
    DateFormat.ISO,
    DateFormat.ISO_COMPACT,
    DateFormat.RUSSIAN_TEXT,
    DateFormat.ENGLISH_TEXT,
    DateFormat.EU,
)


def normalize_year(year: int) -> int:
    if year >= 100:
        return year
    if year >= 50:
        return 1900 + year
    return 2000 + year


def _words(text: str) -> list[str]:
    return re.findall(r"[^\W\d_]+", text.lower())


class DateParser:
    @staticmethod
    def parse(text: str, fmt: DateFormat = DateFormat.AUTO) -> dt.date:
        if text is None or not text.strip():
            raise DateParseException(text or "", "empty input")
        trimmed = text.strip()

        if fmt is DateFormat.AUTO:
            detected = DateParser.detect_format(trimmed)
            if detected is not DateFormat.AUTO:
                return DateParser._parse_with(trimmed, detected)
            return DateParser._try_all(trimmed)
        return DateParser._parse_with(trimmed, fmt)

    @staticmethod
    def parse_or_none(text: str | None, fmt: DateFormat = DateFormat.AUTO) -> dt.date | None:
        if text is None:
            return None
        try:
            return DateParser.parse(text, fmt)
        except DateParseException:
            return None

    @staticmethod
    def detect_format(text: str) -> DateFormat:
        trimmed = text.strip()
        if _ISO_RE.match(trimmed):
            return DateFormat.ISO
        if _COMPACT_RE.match(trimmed):
            if trimmed.startswith(("19", "20")):
                return DateFormat.ISO_COMPACT
            return DateFormat.EU_COMPACT

        words = _words(trimmed)
        if any(word in RUSSIAN_MONTHS for word in words):
            return DateFormat.RUSSIAN_TEXT
        if any(word in ENGLISH_MONTHS for word in words):
            return DateFormat.ENGLISH_TEXT
        if _NUMERIC_RE.match(trimmed):
            return DateFormat.EU
        return DateFormat.AUTO

    @staticmethod
    def _parse_with(text: str, fmt: DateFormat) -> dt.date:
        match fmt:
            case DateFormat.ISO:
                return DateParser._parse_iso(text)
            case DateFormat.ISO_COMPACT:
                return DateParser._parse_compact(text, year_first=True)
            case DateFormat.EU_COMPACT:
                return DateParser._parse_compact(text, year_first=False)
            case DateFormat.EU:
                return DateParser._parse_numeric(text, day_first=True)
            case DateFormat.US:
                return DateParser._parse_numeric(text, day_first=False)
            case DateFormat.RUSSIAN_TEXT:
                return DateParser._parse_text(text, RUSSIAN_MONTHS)
            case DateFormat.ENGLISH_TEXT:
                return DateParser._parse_text(text, ENGLISH_MONTHS)
            case DateFormat.AUTO:
                return DateParser._try_all(text)
        raise DateParseException(text, f"unsupported format {fmt}")

    @staticmethod
    def _try_all(text: str) -> dt.date:
        for fmt in _AUTO_FALLBACK_ORDER:
            try:
                return DateParser._parse_with(text, fmt)
            except InvalidDateException:
                raise
            except DateParseException:
                continue
        raise DateParseException(text)

    @staticmethod
    def _parse_iso(text: str) -> dt.date:
        match = _ISO_RE.match(text)
        if not match:
            raise DateParseException(text)
        year, month, day = (int(group) for group in match.groups())
        return create_date(text, year, month, day)

    @staticmethod
    def _parse_compact(text: str, *, year_first: bool) -> dt.date:
        if not _COMPACT_RE.match(text):
            raise DateParseException(text)
        if year_first:
            return create_date(text, int(text[:4]), int(text[4:6]), int(text[6:8]))
        return create_date(text, int(text[4:8]), int(text[2:4]), int(text[:2]))

    @staticmethod
    def _parse_numeric(text: str, *, day_first: bool) -> dt.date:
        match = _NUMERIC_RE.match(text)
        if not match:
            raise DateParseException(text)
        first, second, year = (int(group) for group in match.groups())
        day, month = (first, second) if day_first else (second, first)
        return create_date(text, normalize_year(year), month, day)

    @staticmethod
    def _parse_text(text: str, months: dict[str, int]) -> dt.date:
        normalized = re.sub(r"\s+", " ", text.lower()).strip()

        match = _MONTH_FIRST_TEXT_RE.search(normalized)
        if match and match.group(1) in months:
            return create_date(text, int(match.group(3)), months[match.group(1)], int(match.group(2)))

        match = _DAY_FIRST_TEXT_RE.search(normalized)
        if match and match.group(2) in months:
            return create_date(text, int(match.group(3)), months[match.group(2)], int(match.group(1)))

        raise DateParseException(text)


def create_date(text: str, year: int, month: int, day: int) -> dt.date:
    try:
        return dt.date(year, month, day)
    except ValueError as exc:
        raise InvalidDateException(text, day, month, year) from exc
