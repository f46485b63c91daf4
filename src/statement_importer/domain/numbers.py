"""
Locale-aware decoding of monetary amounts into signed minor units.

Statements from different banks write the same amount as ``1,234.56`` (US),
``1.234,56`` (EU), ``1 234,56`` (RU/KZ) or ``1,23,456.78`` (Indian lakh
grouping). ``NumberParser`` strips currency markers and the sign, works out
which separator is the decimal one and returns an integer number of cents.
"""
import re
from enum import StrEnum

from statement_importer.exceptions import NumberParseException


class NumberLocale(StrEnum):
    AUTO = "auto"
    US = "us"
    EU = "eu"
    RU_KZ = "ru_kz"
    INDIAN = "indian"


CURRENCY_SYMBOLS = "$€£¥₽₸₴₾₼₿฿₫₹₩₪₱₡₢₣₤₥₦₧₨"
CURRENCY_CODES = (
    "USD", "EUR", "GBP", "JPY", "RUB", "KZT", "UAH",
    "GEL", "AZN", "CNY", "INR", "KRW", "BTC", "ETH",
)
SPACE_CHARS = (" ", "\u00a0", "\u202f", "\u2009")

_SYMBOL_RE = re.compile(f"[{re.escape(CURRENCY_SYMBOLS)}]")
_CODE_RE = re.compile("|".join(CURRENCY_CODES), re.IGNORECASE)
_SPACE_RE = re.compile("[" + "".join(SPACE_CHARS) + "]")
_VALID_RE = re.compile(r"^\d+(?:\.\d+)?$")


class NumberParser:
    @staticmethod
    def parse(text: str, locale: NumberLocale = NumberLocale.AUTO) -> int:
        """Parse ``text`` into signed minor units (cents)."""
        if text is None or not text.strip():
            raise NumberParseException(text or "", "empty input")

        cleaned = _CODE_RE.sub("", _SYMBOL_RE.sub("", text)).strip()
        negative, unsigned = NumberParser.extract_sign(cleaned)
        if not any(char.isdigit() for char in unsigned):
            raise NumberParseException(text, "no digits")

        if locale is NumberLocale.AUTO:
            locale = NumberParser.detect_locale(unsigned)

        normalized = NumberParser._normalize(unsigned, locale)
        if not _VALID_RE.match(normalized):
            raise NumberParseException(text, f"malformed number for locale {locale.value}")

        cents = NumberParser._to_minor_units(normalized)
        return -cents if negative else cents

    @staticmethod
    def parse_or_none(text: str | None, locale: NumberLocale = NumberLocale.AUTO) -> int | None:
        if text is None:
            return None
        try:
            return NumberParser.parse(text, locale)
        except NumberParseException:
            return None

    @staticmethod
    def detect_locale(text: str) -> NumberLocale:
        stripped = text.strip()
        if _SPACE_RE.search(stripped):
            return NumberLocale.RU_KZ

        has_dot = "." in stripped
        has_comma = "," in stripped
        if not has_comma:
            return NumberLocale.US

        if not has_dot:
            fraction = stripped[stripped.rfind(",") + 1:]
            if stripped.count(",") == 1 and 1 <= len(fraction) <= 2 and fraction.isdigit():
                return NumberLocale.EU
            return NumberLocale.US

        if stripped.rfind(".") > stripped.rfind(","):
            if NumberParser._is_indian_grouping(stripped[:stripped.rfind(".")]):
                return NumberLocale.INDIAN
            return NumberLocale.US
        return NumberLocale.EU

    @staticmethod
    def extract_sign(text: str) -> tuple[bool, str]:
        stripped = text.strip()
        if stripped.startswith("(") and stripped.endswith(")"):
            return True, stripped[1:-1].strip()
        if stripped.startswith("-") or stripped.startswith("−"):
            return True, stripped[1:].strip()
        if stripped.startswith("+"):
            return False, stripped[1:].strip()
        return False, stripped

    @staticmethod
    def _is_indian_grouping(integer_part: str) -> bool:
        groups = integer_part.split(",")
        if len(groups) < 3:
            return False
        head, rest = groups[0], groups[1:-1]
        if not (1 <= len(head) <= 3 and head.isdigit()):
            return False
        # Lakh grouping: pairs of digits between the leading group and the last three
        return all(len(group) == 2 and group.isdigit() for group in rest) and len(groups[-1]) == 3

    @staticmethod
    def _normalize(text: str, locale: NumberLocale) -> str:
        if locale in (NumberLocale.US, NumberLocale.INDIAN):
            return text.replace(",", "")
        if locale is NumberLocale.EU:
            return text.replace(".", "").replace(",", ".")
        if locale is NumberLocale.RU_KZ:
            return _SPACE_RE.sub("", text).replace(",", ".")
        return text

    @staticmethod
    def _to_minor_units(normalized: str) -> int:
        whole, _, fraction = normalized.partition(".")
        fraction = (fraction + "00")[:2]
        return int(whole or "0") * 100 + int(fraction)
