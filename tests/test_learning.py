import datetime as dt

import pytest

from statement_importer.classifiers.learned import JsonLearnedMerchantStore
from statement_importer.services.learning import LearnFromCorrection, confidence_for

NOW = dt.datetime(2024, 6, 1, 9, 30)


@pytest.fixture
def store(tmp_path) -> JsonLearnedMerchantStore:
    return JsonLearnedMerchantStore(data_path=str(tmp_path / "learned.json"))


@pytest.fixture
def learner(store: JsonLearnedMerchantStore) -> LearnFromCorrection:
    return LearnFromCorrection(store, clock=lambda: NOW)


def test_confidence_grows_per_sample_up_to_cap() -> None:
    assert confidence_for(1) == 0.90
    assert confidence_for(2) == 0.92
    assert confidence_for(5) == 0.98
    assert confidence_for(50) == 0.98


def test_first_correction_creates_mapping(learner: LearnFromCorrection, store: JsonLearnedMerchantStore) -> None:
    result = learner.learn("ТОО MAGNUM CASH&CARRY ALMATY *1234", "groceries")

    assert result.created
    assert result.merchant_pattern == "MAGNUM CASH"
    assert result.confidence == 0.90
    saved = store.get_by_pattern("MAGNUM CASH")
    assert saved is not None
    assert saved.created_at == NOW
    assert saved.sample_count == 1


def test_repeat_correction_updates_mapping(learner: LearnFromCorrection, store: JsonLearnedMerchantStore) -> None:
    learner.learn("MAGNUM CASH CARRY", "groceries")
    result = learner.learn("MAGNUM CASH&CARRY 15.01.24", "shopping")

    assert not result.created
    assert result.sample_count == 2
    assert result.confidence == 0.92
    assert result.category_id == "shopping"
    assert len(store.merchants) == 1
    assert store.get_by_pattern("MAGNUM CASH").category_id == "shopping"


def test_learned_mapping_is_used_for_matching(learner: LearnFromCorrection, store: JsonLearnedMerchantStore) -> None:
    learner.learn("KOFEINIA #12", "restaurants")
    match = store.find_match("KOFEINIA ALMATY 15.01.2024")
    assert match is not None
    assert match.category_id == "restaurants"


@pytest.mark.parametrize("name", ["", "   "])
def test_blank_name_is_rejected(learner: LearnFromCorrection, name: str) -> None:
    with pytest.raises(ValueError, match="Merchant name required"):
        learner.learn(name, "groceries")
