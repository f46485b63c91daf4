import re

BUSINESS_SUFFIXES = (
    "ТОО", "АО", "ИП", "КХ", "ПК",
    "LLC", "LTD", "INC", "CORP", "CO", "PLC", "GMBH", "AG", "SA",
)

LOCATION_WORDS = (
    "ALMATY", "АЛМАТЫ", "ASTANA", "АСТАНА", "NUR-SULTAN", "НУР-СУЛТАН",
    "SHYMKENT", "ШЫМКЕНТ", "КАРАГАНДА", "KARAGANDA", "АКТОБЕ", "AKTOBE",
    "BRANCH", "ФИЛИАЛ", "ОТДЕЛЕНИЕ",
)

STOPWORDS = frozenset({
    "THE", "AND", "OF", "FOR", "IN", "AT", "TO", "BY",
    "И", "В", "НА", "ДЛЯ", "ИЗ", "ОТ", "ПО", "С",
})

MAX_KEYWORDS = 5

_NOISE_PATTERNS = tuple(re.compile(pattern, re.IGNORECASE) for pattern in (
    r"\*+\d+",                   # card mask
    r"\d{6,}",                   # terminal and reference ids
    r"POS\s*\d*",
    r"TERMINAL\s*\d*",
    r"ТЕРМИНАЛ\s*\d*",
    r"\d{2}[./]\d{2}[./]\d{2,4}",
    r"\d{2}:\d{2}(?::\d{2})?",
    r"\bKZT\b|\bKZ\b|₸",
    r"#\d+",
))
_SUFFIX_PATTERNS = tuple(re.compile(rf"\b{re.escape(word)}\b") for word in BUSINESS_SUFFIXES)
_LOCATION_PATTERNS = tuple(re.compile(rf"(?<![\w-]){re.escape(word)}(?![\w-])") for word in LOCATION_WORDS)
_NON_LETTERS = re.compile(r"[^A-ZА-ЯЁ\s]")
_WORD_SPLIT = re.compile(r"[^A-ZА-ЯЁ]+")


class MerchantNormalizer:
    """
    Reduces raw statement descriptions to a stable merchant key.

    ``"ТОО MAGNUM CASH&CARRY ALMATY *1234"`` and ``"MAGNUM CASH CARRY 15.01.24"``
    both normalize to ``"MAGNUM CASH CARRY"``, which is what the learned
    merchant store keys on.
    """

    @staticmethod
    def normalize(merchant_name: str) -> str:
        if not merchant_name or not merchant_name.strip():
            return ""

        original = merchant_name.upper().strip()
        result = original
        for pattern in _NOISE_PATTERNS:
            result = pattern.sub(" ", result)
        for pattern in _SUFFIX_PATTERNS:
            result = pattern.sub(" ", result)
        for pattern in _LOCATION_PATTERNS:
            result = pattern.sub(" ", result)

        result = _NON_LETTERS.sub(" ", result)
        result = " ".join(result.split())
        if result:
            return result

        # Everything was noise; keep something recognisable
        for word in _WORD_SPLIT.split(original):
            if len(word) >= 2:
                return word
        return original[:20].strip()

    @staticmethod
    def extract_keywords(merchant_name: str) -> list[str]:
        normalized = MerchantNormalizer.normalize(merchant_name)
        keywords = [
            word for word in normalized.split(" ")
            if len(word) >= 2 and word not in STOPWORDS
        ]
        return keywords[:MAX_KEYWORDS]

    @staticmethod
    def is_similar(first: str, second: str) -> bool:
        left = MerchantNormalizer.normalize(first)
        right = MerchantNormalizer.normalize(second)
        if not left or not right:
            return False
        if left == right or left in right or right in left:
            return True

        left_words = set(MerchantNormalizer.extract_keywords(first))
        right_words = set(MerchantNormalizer.extract_keywords(second))
        if not left_words or not right_words:
            return False
        jaccard = len(left_words & right_words) / len(left_words | right_words)
        return jaccard >= 0.5

    @staticmethod
    def to_pattern(normalized_name: str) -> str:
        """First two keywords, enough to identify a merchant without overfitting."""
        if not normalized_name or not normalized_name.strip():
            return ""
        keywords = MerchantNormalizer.extract_keywords(normalized_name)
        if not keywords:
            return normalized_name
        return " ".join(keywords[:2])
