import codecs
from unittest.mock import MagicMock

import pytest

from statement_importer.domain.documents import CsvDocument, PdfDocument
from statement_importer.domain.results import ImportFailed, ImportSuccess
from statement_importer.importing.parsers.delimited import ColumnMapping
from statement_importer.importing.processor import ImportFileProcessor


@pytest.fixture
def processor() -> ImportFileProcessor:
    return ImportFileProcessor()


def test_process_csv_with_bom(processor: ImportFileProcessor) -> None:
    content = codecs.BOM_UTF8 + "Дата;Сумма;Описание\n15.01.2024;-1 500,00;Magnum\n".encode()
    result = processor.process("statement.csv", content)

    assert isinstance(result, ImportSuccess)
    assert result.document_type == CsvDocument(delimiter=";")
    assert result.transactions[0].amount == -150000


def test_process_qif(processor: ImportFileProcessor) -> None:
    result = processor.process("export.qif", b"!Type:Bank\nD01/15/2024\nT-5.00\nPShop\n^\n")
    assert isinstance(result, ImportSuccess)
    assert result.transactions[0].merchant == "Shop"


def test_process_ofx(processor: ImportFileProcessor) -> None:
    content = b"<OFX><STMTTRN><DTPOSTED>20240115</DTPOSTED><TRNAMT>-5.00</TRNAMT><NAME>Shop</NAME></STMTTRN></OFX>"
    result = processor.process("bank.ofx", content)
    assert isinstance(result, ImportSuccess)
    assert result.transactions[0].amount == -500


def test_mapping_is_passed_to_csv_parser(processor: ImportFileProcessor) -> None:
    content = b"A,B\n2024-01-15,10.00\n"
    result = processor.process("x.csv", content, mapping=ColumnMapping(date=0, amount=1))
    assert isinstance(result, ImportSuccess)


def test_pdf_without_document_parser(processor: ImportFileProcessor) -> None:
    result = processor.process("statement.pdf", b"%PDF-1.4 ...")
    assert isinstance(result, ImportFailed)
    assert result.message == "PDF parsing is not available"


def test_pdf_with_document_parser() -> None:
    document_parser = MagicMock()
    document_parser.is_available = True
    document_parser.parse.return_value = ImportFailed(message="No text found in document")

    processor = ImportFileProcessor(document_parser=document_parser)
    processor.process("statement.pdf", b"%PDF-1.4 ...")

    document_parser.parse.assert_called_once_with(b"%PDF-1.4 ...", PdfDocument())


def test_unknown_format(processor: ImportFileProcessor) -> None:
    result = processor.process("notes.xyz", b"just one line")
    assert isinstance(result, ImportFailed)
    assert result.message == "Unknown file format: xyz"
