import pytest

from statement_importer.classifiers.merchant_db import MerchantDatabase
from statement_importer.classifiers.rules import RuleBasedClassifier
from statement_importer.models import CategorizationSource


@pytest.fixture
def merchant_db() -> MerchantDatabase:
    return MerchantDatabase()


@pytest.mark.parametrize(
    "description, category_id, confidence",
    [
        ("ТОО MAGNUM CASH&CARRY ALMATY", "groceries", 0.95),
        ("NETFLIX.COM", "entertainment", 0.98),
        ("GLOVO*ORDER 123", "food_delivery", 0.98),
        ("UBER EATS ORDER", "food_delivery", 0.98),
        ("UBER TRIP", "transport", 0.98),
    ],
)
def test_known_merchants(merchant_db: MerchantDatabase, description: str, category_id: str, confidence: float) -> None:
    result = merchant_db.classify(7, description)
    assert result is not None
    assert result.transaction_id == 7
    assert result.category_id == category_id
    assert result.confidence == confidence
    assert result.source is CategorizationSource.MERCHANT_DATABASE


def test_unknown_merchant(merchant_db: MerchantDatabase) -> None:
    assert merchant_db.classify(1, "QWERTY 42") is None
    assert merchant_db.classify(1, "   ") is None


def test_find_pattern_reports_merchant_name(merchant_db: MerchantDatabase) -> None:
    entry = merchant_db.find_pattern("spotify premium")
    assert entry is not None
    assert entry.merchant_name == "Spotify"


def test_pattern_count_by_category(merchant_db: MerchantDatabase) -> None:
    counts = merchant_db.pattern_count_by_category()
    assert sum(counts.values()) == len(merchant_db.patterns)
    assert counts["food_delivery"] > 0


@pytest.mark.parametrize(
    "description, category_id, confidence",
    [
        ("ATM WITHDRAWAL", "transfer", 0.88),
        ("СНЯТИЕ НАЛИЧНЫХ", "transfer", 0.88),
        ("SALARY JANUARY", "salary", 0.95),
        ("Начисление зарплата", "salary", 0.95),
        ("Interest credit", "other", 0.85),
        ("Cashback bonus", "other", 0.90),
    ],
)
def test_rules(description: str, category_id: str, confidence: float) -> None:
    result = RuleBasedClassifier().classify(1, description)
    assert result is not None
    assert result.category_id == category_id
    assert result.confidence == confidence
    assert result.source is CategorizationSource.RULE_BASED


def test_user_history_beats_rules() -> None:
    classifier = RuleBasedClassifier(user_history={"atm fee": "fees"})
    result = classifier.classify(1, "ATM FEE REFUND")
    assert result is not None
    assert result.category_id == "fees"
    assert result.confidence == 0.92
    assert result.source is CategorizationSource.USER_HISTORY


def test_rules_no_match() -> None:
    assert RuleBasedClassifier().classify(1, "Bookshop") is None
    assert RuleBasedClassifier().classify(1, "") is None
