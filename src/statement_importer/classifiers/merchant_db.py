import re
from typing import NamedTuple

from statement_importer.logger import get_logger
from statement_importer.models import CategorizationResult, CategorizationSource

from .base import Classifier

logger = get_logger(__name__)


class MerchantPattern(NamedTuple):
    pattern: re.Pattern[str]
    category_id: str
    confidence: float
    merchant_name: str | None = None


def _patterns(*entries: tuple) -> tuple[MerchantPattern, ...]:
    return tuple(
        MerchantPattern(re.compile(regex, re.IGNORECASE), *rest)
        for regex, *rest in entries
    )


GROCERY_PATTERNS = _patterns(
    # Supermarket chains
    (r"MAGNUM", "groceries", 0.95, "Magnum"),
    (r"SMALL\s*\d*", "groceries", 0.90, "Small"),
    (r"METRO\s*CASH", "groceries", 0.95, "Metro"),
    (r"ANVAR", "groceries", 0.90, "Anvar"),
    (r"RAMSTORE", "groceries", 0.92, "Ramstore"),
    (r"SKIDKA", "groceries", 0.88, "Skidka"),
    (r"GALMART", "groceries", 0.90, "Galmart"),
    (r"ФИКС\s*ПРАЙС", "groceries", 0.88, "Fix Price"),
    (r"FIX\s*PRICE", "groceries", 0.88, "Fix Price"),
    (r"ДИНА", "groceries", 0.85, "Dina"),
    # Online
    (r"ARBUZ", "groceries", 0.95, "Arbuz.kz"),
    (r"KLEVER", "groceries", 0.90, "Klever"),
    (r"SPAR", "groceries", 0.90, "Spar"),
    # Markets
    (r"ЗЕЛЕНЫЙ\s*БАЗАР", "groceries", 0.85, "Green Bazaar"),
    (r"GREEN\s*BAZAAR", "groceries", 0.85, "Green Bazaar"),
    (r"БАЗАР", "groceries", 0.70),
    (r"РЫНОК", "groceries", 0.70),
    (r"МЯСНОЙ", "groceries", 0.80),
    (r"ОВОЩНОЙ", "groceries", 0.80),
    (r"МОЛОЧНЫЙ", "groceries", 0.80),
    (r"BAKERY", "groceries", 0.75),
    (r"ХЛЕБ", "groceries", 0.75),
)

FOOD_DELIVERY_PATTERNS = _patterns(
    (r"GLOVO", "food_delivery", 0.98, "Glovo"),
    (r"WOLT", "food_delivery", 0.98, "Wolt"),
    (r"YANDEX.*(?:EDA|EATS)", "food_delivery", 0.98, "Yandex Eda"),
    (r"ЯНДЕКС.*ЕДА", "food_delivery", 0.98, "Yandex Eda"),
    (r"CHOCOFOOD", "food_delivery", 0.95, "Chocofood"),
    (r"DELIVERY\s*CLUB", "food_delivery", 0.95, "Delivery Club"),
    (r"UBER\s*EATS", "food_delivery", 0.98, "Uber Eats"),
    (r"DOORDASH", "food_delivery", 0.98, "DoorDash"),
    (r"DODO\s*PIZZA", "food_delivery", 0.90, "Dodo Pizza"),
    (r"ДОСТАВКА\s*ЕДЫ", "food_delivery", 0.85),
    (r"FOOD\s*DELIVERY", "food_delivery", 0.85),
)

TRANSPORT_PATTERNS = _patterns(
    # Taxi
    (r"YANDEX.*TAXI|YANDEX.*GO", "transport", 0.98, "Yandex Taxi"),
    (r"ЯНДЕКС.*ТАКСИ", "transport", 0.98, "Yandex Taxi"),
    (r"INDRIVER", "transport", 0.95, "InDriver"),
    (r"DIDI", "transport", 0.95, "DiDi"),
    (r"UBER(?!\s*EATS)", "transport", 0.98, "Uber"),
    (r"МАКСИМ.*ТАКСИ", "transport", 0.90, "Maxim Taxi"),
    (r"MAXIM.*TAXI", "transport", 0.90, "Maxim Taxi"),
    (r"ТАКСИ", "transport", 0.75),
    (r"TAXI", "transport", 0.75),
    # Public transit
    (r"ONAY", "transport", 0.95, "Onay Card"),
    (r"ОНАЙ", "transport", 0.95, "Onay Card"),
    (r"МЕТРО\s*АЛМАТЫ", "transport", 0.95, "Almaty Metro"),
    (r"ALMATY\s*METRO", "transport", 0.95, "Almaty Metro"),
    # Car
    (r"АВТОМОЙКА", "transport", 0.85),
    (r"CAR\s*WASH", "transport", 0.85),
    (r"АЗС", "transport", 0.90),
    (r"PETROL", "transport", 0.85),
    (r"ГАЗПРОМНЕФТЬ", "transport", 0.95, "Gazpromneft"),
    (r"KMG", "transport", 0.90, "KMG"),
    (r"КАЗМУНАЙГАЗ", "transport", 0.90, "KMG"),
    (r"HELIOS", "transport", 0.90, "Helios"),
    (r"SHELL", "transport", 0.95, "Shell"),
    (r"PARKING", "transport", 0.85),
    (r"ПАРКОВКА", "transport", 0.85),
)

UTILITIES_PATTERNS = _patterns(
    # Energy
    (r"АЛМАТЫЭНЕРГО", "utilities", 0.98, "AlmatyEnergo"),
    (r"ALMATY.*ENERG", "utilities", 0.98, "AlmatyEnergo"),
    (r"АСТАНАЭНЕРГО", "utilities", 0.98, "AstanaEnergo"),
    (r"КАРАГАНДА.*ЭНЕРГО", "utilities", 0.95),
    (r"KEGOC", "utilities", 0.95, "KEGOC"),
    # Gas and water
    (r"КАЗТРАНСГАЗ", "utilities", 0.95, "KazTransGas"),
    (r"АЛМАТЫГАЗ", "utilities", 0.95, "AlmatyGas"),
    (r"АЛМАТЫ.*СУ\b", "utilities", 0.95, "AlmatySu"),
    (r"ASTANA.*SU\b", "utilities", 0.95, "AstanaSu"),
    (r"ВОДОКАНАЛ", "utilities", 0.90),
    # Telecom
    (r"КАЗАХТЕЛЕКОМ", "utilities", 0.98, "Kazakhtelecom"),
    (r"KAZAKHTELECOM", "utilities", 0.98, "Kazakhtelecom"),
    (r"BEELINE", "utilities", 0.95, "Beeline"),
    (r"БИЛАЙН", "utilities", 0.95, "Beeline"),
    (r"KCELL", "utilities", 0.95, "Kcell"),
    (r"\bACTIV\b", "utilities", 0.95, "Activ"),
    (r"\bАКТИВ\b", "utilities", 0.95, "Activ"),
    (r"TELE2", "utilities", 0.95, "Tele2"),
    (r"ТЕЛЕ2", "utilities", 0.95, "Tele2"),
    (r"ALTEL", "utilities", 0.95, "Altel"),
    (r"АЛТЕЛ", "utilities", 0.95, "Altel"),
    (r"ALMA\s*TV", "utilities", 0.90, "Alma TV"),
    (r"ID\s*NET", "utilities", 0.90, "ID Net"),
    # Housing
    (r"\bКСК\b", "utilities", 0.80),
    (r"\bОСИ\b", "utilities", 0.80),
    (r"КОММ.*УСЛУГ", "utilities", 0.85),
)

ENTERTAINMENT_PATTERNS = _patterns(
    # Cinemas
    (r"KINOPARK", "entertainment", 0.95, "Kinopark"),
    (r"КИНОПАРК", "entertainment", 0.95, "Kinopark"),
    (r"CHAPLIN", "entertainment", 0.95, "Chaplin Cinemas"),
    (r"ЧАПЛИН", "entertainment", 0.95, "Chaplin Cinemas"),
    (r"CINEMAX", "entertainment", 0.95, "Cinemax"),
    (r"\bARMAN\b", "entertainment", 0.85, "Arman Cinema"),
    # Streaming
    (r"NETFLIX", "entertainment", 0.98, "Netflix"),
    (r"SPOTIFY", "entertainment", 0.98, "Spotify"),
    (r"APPLE\s*MUSIC", "entertainment", 0.98, "Apple Music"),
    (r"YOUTUBE\s*PREMIUM", "entertainment", 0.98, "YouTube Premium"),
    (r"\bIVI\b", "entertainment", 0.95, "IVI"),
    (r"КИНОПОИСК", "entertainment", 0.95, "Kinopoisk"),
    (r"KINOPOISK", "entertainment", 0.95, "Kinopoisk"),
    (r"OKKO", "entertainment", 0.95, "Okko"),
    (r"MEGOGO", "entertainment", 0.95, "Megogo"),
    (r"YANDEX.*PLUS", "entertainment", 0.95, "Yandex Plus"),
    (r"ЯНДЕКС.*ПЛЮС", "entertainment", 0.95, "Yandex Plus"),
    # Gaming
    (r"STEAM", "entertainment", 0.95, "Steam"),
    (r"PLAYSTATION", "entertainment", 0.95, "PlayStation"),
    (r"XBOX", "entertainment", 0.95, "Xbox"),
    (r"NINTENDO", "entertainment", 0.95, "Nintendo"),
    (r"EPIC\s*GAMES", "entertainment", 0.95, "Epic Games"),
    # Leisure
    (r"HAPPY.*LAND", "entertainment", 0.85, "Happylon"),
    (r"БОУЛИНГ", "entertainment", 0.85),
    (r"BOWLING", "entertainment", 0.85),
    (r"КАТОК", "entertainment", 0.85),
    (r"АКВАПАРК", "entertainment", 0.90),
)

SHOPPING_PATTERNS = _patterns(
    (r"KASPI\s*MAGAZIN", "shopping", 0.95, "Kaspi Magazin"),
    (r"КАСПИ\s*МАГАЗИН", "shopping", 0.95, "Kaspi Magazin"),
    (r"KASPI\s*SHOP", "shopping", 0.95, "Kaspi Shop"),
    # Electronics
    (r"SULPAK", "shopping", 0.95, "Sulpak"),
    (r"СУЛПАК", "shopping", 0.95, "Sulpak"),
    (r"TECHNODOM", "shopping", 0.95, "Technodom"),
    (r"ТЕХНОДОМ", "shopping", 0.95, "Technodom"),
    (r"MECHTA", "shopping", 0.95, "Mechta"),
    (r"МЕЧТА", "shopping", 0.95, "Mechta"),
    (r"EVRIKA", "shopping", 0.90, "Evrika"),
    (r"ЭВРИКА", "shopping", 0.90, "Evrika"),
    (r"АЛСЕР", "shopping", 0.90, "Alser"),
    (r"ALSER", "shopping", 0.90, "Alser"),
    # Marketplaces
    (r"WILDBERRIES", "shopping", 0.98, "Wildberries"),
    (r"OZON", "shopping", 0.98, "Ozon"),
    (r"ALIEXPRESS", "shopping", 0.95, "AliExpress"),
    (r"AMAZON", "shopping", 0.98, "Amazon"),
    (r"FLIP\.KZ", "shopping", 0.90, "Flip.kz"),
    # Fashion
    (r"ZARA", "shopping", 0.95, "Zara"),
    (r"H&M", "shopping", 0.95, "H&M"),
    (r"MANGO", "shopping", 0.90, "Mango"),
    (r"BERSHKA", "shopping", 0.90, "Bershka"),
    (r"PULL.*BEAR", "shopping", 0.90, "Pull&Bear"),
    (r"MASSIMO.*DUTTI", "shopping", 0.90, "Massimo Dutti"),
    (r"STRADIVARIUS", "shopping", 0.90, "Stradivarius"),
    (r"LC\s*WAIKIKI", "shopping", 0.90, "LC Waikiki"),
    (r"COLIN", "shopping", 0.85, "Colin's"),
    (r"DEFACTO", "shopping", 0.90, "DeFacto"),
    # Home
    (r"IKEA", "shopping", 0.95, "IKEA"),
    (r"JYSK", "shopping", 0.90, "JYSK"),
    (r"HOFF", "shopping", 0.90, "Hoff"),
    (r"ЛЕРУА\s*МЕРЛЕН", "shopping", 0.95, "Leroy Merlin"),
    (r"LEROY\s*MERLIN", "shopping", 0.95, "Leroy Merlin"),
    # Malls
    (r"MEGA.*CENTER", "shopping", 0.80, "Mega Center"),
    (r"DOSTYK\s*PLAZA", "shopping", 0.80, "Dostyk Plaza"),
    (r"ESENTAI", "shopping", 0.80, "Esentai Mall"),
    (r"KERUEN", "shopping", 0.80, "Keruen City"),
)

HEALTHCARE_PATTERNS = _patterns(
    # Pharmacies
    (r"EUROPHARMA", "healthcare", 0.95, "Europharma"),
    (r"ЕВРОФАРМА", "healthcare", 0.95, "Europharma"),
    (r"БИОСФЕРА", "healthcare", 0.95, "Biosfera"),
    (r"BIOSFERA", "healthcare", 0.95, "Biosfera"),
    (r"ДОБРАЯ\s*АПТЕКА", "healthcare", 0.90, "Dobraya Apteka"),
    (r"GIPPOKRAT", "healthcare", 0.90, "Gippokrat"),
    (r"АПТЕКА", "healthcare", 0.85),
    (r"PHARMACY", "healthcare", 0.85),
    (r"PHARMA", "healthcare", 0.80),
    # Clinics and labs
    (r"INVIVO", "healthcare", 0.95, "Invivo"),
    (r"INTERTEACH", "healthcare", 0.95, "Interteach"),
    (r"ОЛИМП", "healthcare", 0.90, "Olymp Clinic"),
    (r"CLINIC", "healthcare", 0.75),
    (r"КЛИНИКА", "healthcare", 0.80),
    (r"MEDICAL", "healthcare", 0.75),
    (r"МЕДИЦИН", "healthcare", 0.80),
    (r"СТОМАТОЛОГ", "healthcare", 0.85),
    (r"DENTAL", "healthcare", 0.85),
    (r"KDLOLYMP", "healthcare", 0.95, "KDL Olymp"),
    (r"SYNEVO", "healthcare", 0.95, "Synevo"),
    (r"ЛАБОРАТОР", "healthcare", 0.85),
)

TRANSFER_PATTERNS = _patterns(
    (r"KASPI.*PEREVOD", "transfer", 0.98, "Kaspi Transfer"),
    (r"КАСПИ.*ПЕРЕВОД", "transfer", 0.98, "Kaspi Transfer"),
    (r"KASPI.*TRANSFER", "transfer", 0.98, "Kaspi Transfer"),
    (r"ПЕРЕВОД.*KASPI", "transfer", 0.95, "Kaspi Transfer"),
    (r"ПЕРЕВОД.*КАРТ", "transfer", 0.90),
    (r"HALYK.*PEREVOD", "transfer", 0.95, "Halyk Transfer"),
    (r"ХАЛЫК.*ПЕРЕВОД", "transfer", 0.95, "Halyk Transfer"),
    (r"JUSAN.*PEREVOD", "transfer", 0.95, "Jusan Transfer"),
    (r"FORTE.*PEREVOD", "transfer", 0.95, "Forte Transfer"),
    (r"ПЕРЕВОД", "transfer", 0.80),
    (r"TRANSFER", "transfer", 0.75),
    (r"WESTERN\s*UNION", "transfer", 0.95, "Western Union"),
    (r"MONEY\s*GRAM", "transfer", 0.95, "MoneyGram"),
    (r"ЗОЛОТАЯ\s*КОРОНА", "transfer", 0.95, "Zolotaya Korona"),
    (r"GOLDEN\s*CROWN", "transfer", 0.95, "Golden Crown"),
)

ALL_PATTERNS = (
    GROCERY_PATTERNS
    + FOOD_DELIVERY_PATTERNS
    + TRANSPORT_PATTERNS
    + UTILITIES_PATTERNS
    + ENTERTAINMENT_PATTERNS
    + SHOPPING_PATTERNS
    + HEALTHCARE_PATTERNS
    + TRANSFER_PATTERNS
)


class MerchantDatabase(Classifier):
    """Known merchants, checked in table order. The first hit decides."""

    def __init__(self, patterns: tuple[MerchantPattern, ...] = ALL_PATTERNS):
        self.patterns = patterns

    def find_pattern(self, description: str) -> MerchantPattern | None:
        text = description.strip()
        if not text:
            return None
        for entry in self.patterns:
            if entry.pattern.search(text):
                return entry
        return None

    def classify(self, transaction_id: int, description: str) -> CategorizationResult | None:
        entry = self.find_pattern(description)
        if entry is None:
            return None
        logger.debug(f"[MERCHANT_DB] '{description[:40]}' matched {entry.merchant_name or entry.pattern.pattern}")
        return CategorizationResult(
            transaction_id=transaction_id,
            category_id=entry.category_id,
            confidence=entry.confidence,
            source=CategorizationSource.MERCHANT_DATABASE,
        )

    def pattern_count_by_category(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for entry in self.patterns:
            counts[entry.category_id] = counts.get(entry.category_id, 0) + 1
        return counts
