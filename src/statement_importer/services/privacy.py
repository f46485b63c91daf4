import re
from enum import StrEnum

from pydantic import BaseModel, Field

from statement_importer.logger import get_logger

logger = get_logger(__name__)


class PIIType(StrEnum):
    PERSON_NAME = "PERSON_NAME"
    IBAN = "IBAN"
    ACCOUNT_NUMBER = "ACCOUNT_NUMBER"
    CARD_NUMBER = "CARD_NUMBER"
    PHONE = "PHONE"
    EMAIL = "EMAIL"
    IIN = "IIN"


class DetectedPII(BaseModel):
    type: PIIType
    value: str
    placeholder: str


class AnonymizationResult(BaseModel):
    anonymized_text: str
    mapping: dict[str, str] = Field(default_factory=dict)  # placeholder -> original
    detected_pii: list[DetectedPII] = Field(default_factory=list)

    @property
    def was_modified(self) -> bool:
        return bool(self.detected_pii)

    @property
    def pii_count(self) -> int:
        return len(self.detected_pii)


# Words that follow a capitalised first word in merchant names, not surnames
_BUSINESS_WORDS = frozenset({
    "bank", "market", "shop", "store", "mall", "cafe", "restaurant", "pay",
    "gold", "taxi", "food", "express", "center", "centre", "group", "services",
})

# Applied in order; each entry is (type, pattern, capture group holding the PII)
_PATTERNS: tuple[tuple[PIIType, re.Pattern[str], int], ...] = (
    (PIIType.EMAIL, re.compile(r"[\w.+-]+@[\w-]+(?:\.[\w-]+)+"), 0),
    (PIIType.IBAN, re.compile(r"\b[A-Z]{2}(?=[A-Z0-9]*\d{6})[A-Z0-9]{13,32}\b"), 0),
    (PIIType.CARD_NUMBER, re.compile(r"(?<!\d)\d{4}(?:[ -]?\d{4}){3}(?!\d)"), 0),
    (
        PIIType.ACCOUNT_NUMBER,
        re.compile(r"(?:сч[её]т|account|acc)\s*(?:№|#|no\.?|:)?\s*(\d{8,20})\b", re.IGNORECASE),
        1,
    ),
    (PIIType.IIN, re.compile(r"(?<!\d)\d{12}(?!\d)"), 0),
    (PIIType.PHONE, re.compile(r"(?<![\d\w])(?:\+7|8)[\s(-]*\d{3}[\s)-]*\d{3}[\s-]*\d{2}[\s-]*\d{2}(?!\d)"), 0),
    (PIIType.PERSON_NAME, re.compile(r"\b[А-ЯЁ][а-яё]+\s+[А-ЯЁ]\.\s?[А-ЯЁ]\."), 0),
    (
        PIIType.PERSON_NAME,
        re.compile(r"\b[А-ЯЁ][а-яё]+\s+[А-ЯЁ][а-яё]+\s+[А-ЯЁ][а-яё]+(?:вич|вна|чна|ична|улы|кызы)\b"),
        0,
    ),
    (PIIType.PERSON_NAME, re.compile(r"\b[A-Z]\.\s?[A-Z][a-z]+\b"), 0),
    (PIIType.PERSON_NAME, re.compile(r"\b[A-Z][a-z]+,\s[A-Z][a-z]+\b"), 0),
    (
        PIIType.PERSON_NAME,
        re.compile(r"\b(?:[Tt]o|[Ff]rom|[Rr]ecipient:?|[Ss]ender:?)\s+([A-Z][a-z]+\s[A-Z][a-z]+)\b"),
        1,
    ),
)


class RegexPIIAnonymizer:
    """
    Replaces personal data in transaction text with ``[TYPE_n]`` placeholders
    before the text is sent to a remote model. Dates, amounts and merchant
    names are left intact.
    """

    def anonymize(self, text: str) -> AnonymizationResult:
        if not text:
            return AnonymizationResult(anonymized_text=text or "")

        counters: dict[PIIType, int] = {}
        by_value: dict[str, str] = {}
        detected: list[DetectedPII] = []

        def placeholder_for(pii_type: PIIType, value: str) -> str:
            if value in by_value:
                return by_value[value]
            counters[pii_type] = counters.get(pii_type, 0) + 1
            placeholder = f"[{pii_type.value}_{counters[pii_type]}]"
            by_value[value] = placeholder
            detected.append(DetectedPII(type=pii_type, value=value, placeholder=placeholder))
            return placeholder

        result = text
        for pii_type, pattern, group in _PATTERNS:
            def replace(match: re.Match[str], pii_type: PIIType = pii_type, group: int = group) -> str:
                value = match.group(group)
                if pii_type is PIIType.PERSON_NAME and group and value.split()[-1].lower() in _BUSINESS_WORDS:
                    return match.group(0)
                whole = match.group(0)
                start = match.start(group) - match.start()
                end = match.end(group) - match.start()
                return whole[:start] + placeholder_for(pii_type, value) + whole[end:]

            result = pattern.sub(replace, result)

        if detected:
            logger.debug(f"[PII] Replaced {len(detected)} item(s)")
        return AnonymizationResult(
            anonymized_text=result,
            mapping={item.placeholder: item.value for item in detected},
            detected_pii=detected,
        )

    @staticmethod
    def deanonymize(text: str, mapping: dict[str, str]) -> str:
        for placeholder, original in mapping.items():
            text = text.replace(placeholder, original)
        return text
