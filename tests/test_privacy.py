import pytest

from statement_importer.services.privacy import PIIType, RegexPIIAnonymizer


@pytest.fixture
def anonymizer() -> RegexPIIAnonymizer:
    return RegexPIIAnonymizer()


@pytest.mark.parametrize(
    "text, pii_type, value",
    [
        ("Pay ivan.petrov@mail.kz now", PIIType.EMAIL, "ivan.petrov@mail.kz"),
        ("IBAN KZ86125KZT5004100100", PIIType.IBAN, "KZ86125KZT5004100100"),
        ("Card 4400 1234 5678 9012", PIIType.CARD_NUMBER, "4400 1234 5678 9012"),
        ("Счёт № 12345678901", PIIType.ACCOUNT_NUMBER, "12345678901"),
        ("ИИН 900101300123", PIIType.IIN, "900101300123"),
        ("Call +7 701 123 45 67", PIIType.PHONE, "+7 701 123 45 67"),
        ("Перевод Иванов И.И.", PIIType.PERSON_NAME, "Иванов И.И."),
        ("Transfer to John Smith", PIIType.PERSON_NAME, "John Smith"),
    ],
)
def test_detects_pii(anonymizer: RegexPIIAnonymizer, text: str, pii_type: PIIType, value: str) -> None:
    result = anonymizer.anonymize(text)

    assert result.pii_count == 1
    detected = result.detected_pii[0]
    assert detected.type is pii_type
    assert detected.value == value
    assert value not in result.anonymized_text
    assert detected.placeholder == f"[{pii_type.value}_1]"


def test_round_trip(anonymizer: RegexPIIAnonymizer) -> None:
    text = "Transfer to John Smith, card 4400 1234 5678 9012"
    result = anonymizer.anonymize(text)
    assert result.anonymized_text == "Transfer to [PERSON_NAME_1], card [CARD_NUMBER_1]"
    assert anonymizer.deanonymize(result.anonymized_text, result.mapping) == text


def test_repeated_value_shares_placeholder(anonymizer: RegexPIIAnonymizer) -> None:
    result = anonymizer.anonymize("a@b.kz and a@b.kz")
    assert result.anonymized_text == "[EMAIL_1] and [EMAIL_1]"
    assert result.pii_count == 1


def test_merchants_and_amounts_are_kept(anonymizer: RegexPIIAnonymizer) -> None:
    text = "MAGNUM CASH&CARRY 15.01.2024 -1500.00"
    result = anonymizer.anonymize(text)
    assert not result.was_modified
    assert result.anonymized_text == text


def test_business_names_are_not_people(anonymizer: RegexPIIAnonymizer) -> None:
    result = anonymizer.anonymize("Payment to Kaspi Bank")
    assert not result.was_modified


def test_empty_text(anonymizer: RegexPIIAnonymizer) -> None:
    assert anonymizer.anonymize("").anonymized_text == ""
