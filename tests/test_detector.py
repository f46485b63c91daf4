import codecs

import pytest

from statement_importer.domain.documents import (
    CsvDocument,
    ImageDocument,
    ImageFormat,
    OfxDocument,
    PdfDocument,
    QifDocument,
    UnknownDocument,
)
from statement_importer.importing.detector import FormatDetector, file_extension


@pytest.fixture
def detector() -> FormatDetector:
    return FormatDetector()


def test_content_wins_over_extension(detector: FormatDetector) -> None:
    assert detector.detect("statement.csv", b"%PDF-1.7 ...") == PdfDocument()


def test_magic_numbers(detector: FormatDetector) -> None:
    assert detector.detect_from_content(b"\x89PNG\r\n\x1a\n....") == ImageDocument(format=ImageFormat.PNG)
    assert detector.detect_from_content(b"\xff\xd8\xff\xe0....") == ImageDocument(format=ImageFormat.JPEG)


def test_ofx_header_and_version(detector: FormatDetector) -> None:
    sgml = b"OFXHEADER:100\nDATA:OFXSGML\nVERSION:102\n\n<OFX>\n</OFX>"
    assert detector.detect("bank.txt", sgml) == OfxDocument(version="1.0.2")

    xml = b'<?xml version="1.0"?>\n<?OFX OFXHEADER="200" VERSION="220"?>\n<OFX></OFX>'
    assert detector.detect("bank.xml", xml) == OfxDocument(version="2.2")


def test_qif_account_type(detector: FormatDetector) -> None:
    content = b"!Type:CCard\nD01/15/2024\nT-50.00\n^\n"
    assert detector.detect("export.dat", content) == QifDocument(account_type="CCard")


def test_csv_delimiter(detector: FormatDetector) -> None:
    content = "Дата;Сумма;Описание\n15.01.2024;-1 500,00;Magnum\n".encode()
    assert detector.detect("export.dat", content) == CsvDocument(delimiter=";")


def test_csv_with_utf8_bom(detector: FormatDetector) -> None:
    content = codecs.BOM_UTF8 + b"Date,Amount\n2024-01-15,10.00\n"
    assert detector.detect("x.bin", content) == CsvDocument(delimiter=",", encoding="utf-8")


def test_quoted_delimiters_are_ignored() -> None:
    assert FormatDetector.detect_csv_delimiter('a;b\n"1,5";2\n') == ";"


def test_single_line_is_not_csv() -> None:
    assert not FormatDetector.is_csv("Date,Amount")


def test_extension_fallback(detector: FormatDetector) -> None:
    assert detector.detect("statement.ofx", b"") == OfxDocument(version="2.2")
    assert detector.detect("statement.QIF") == QifDocument(account_type="Bank")
    assert detector.detect("receipt.heic") == ImageDocument(format=ImageFormat.HEIC)
    assert detector.detect("statement.xyz", b"\x00\x01garbage") == UnknownDocument()


def test_file_extension() -> None:
    assert file_extension("Statement.Final.CSV") == "csv"
    assert file_extension("README") == ""


def test_bank_signature() -> None:
    assert FormatDetector.detect_bank_signature("Выписка АО Kaspi Bank") == "kaspi"
    assert FormatDetector.detect_bank_signature("Народный Банк Казахстана") == "halyk"
    assert FormatDetector.detect_bank_signature("Some Other Bank") is None
