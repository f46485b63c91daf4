from statement_importer.domain.documents import (
    CsvDocument,
    DocumentType,
    ImageDocument,
    OfxDocument,
    PdfDocument,
    QifDocument,
    UnknownDocument,
    describe_document,
)
from statement_importer.domain.results import ImportFailed, ImportResult
from statement_importer.logger import get_logger

from .detector import FormatDetector, file_extension
from .parsers.delimited import ColumnMapping, CsvParser
from .parsers.document import DocumentParser
from .parsers.ofx import OfxParser
from .parsers.qif import QifParser

logger = get_logger(__name__)


class ImportFileProcessor:
    """Detects the format of an uploaded file and hands it to the matching parser."""

    def __init__(
        self,
        detector: FormatDetector | None = None,
        csv_parser: CsvParser | None = None,
        ofx_parser: OfxParser | None = None,
        qif_parser: QifParser | None = None,
        document_parser: DocumentParser | None = None,
    ):
        self.detector = detector or FormatDetector()
        self.csv_parser = csv_parser or CsvParser()
        self.ofx_parser = ofx_parser or OfxParser()
        self.qif_parser = qif_parser or QifParser()
        self.document_parser = document_parser

    def detect(self, filename: str, content: bytes) -> DocumentType:
        return self.detector.detect(filename, content)

    def process(
        self,
        filename: str,
        content: bytes,
        document_type: DocumentType | None = None,
        mapping: ColumnMapping | None = None,
    ) -> ImportResult:
        if document_type is None:
            document_type = self.detector.detect(filename, content)
        logger.info(f"[IMPORT] {filename} ({len(content)} bytes) detected as {describe_document(document_type)}")

        match document_type:
            case CsvDocument():
                text = self._decode(content, document_type.encoding)
                if mapping is not None:
                    return self.csv_parser.parse_with_mapping(text, document_type, mapping)
                return self.csv_parser.parse(text, document_type)
            case OfxDocument():
                return self.ofx_parser.parse(self._decode(content), document_type)
            case QifDocument():
                return self.qif_parser.parse(self._decode(content), document_type)
            case PdfDocument() | ImageDocument():
                if self.document_parser is None or not self.document_parser.is_available:
                    logger.warning(f"[IMPORT] No text extractor configured for {filename}")
                    return ImportFailed(message="PDF parsing is not available", document_type=document_type)
                return self.document_parser.parse(content, document_type)
            case UnknownDocument():
                return ImportFailed(
                    message=f"Unknown file format: {file_extension(filename)}",
                    document_type=document_type,
                )
        raise TypeError(f"Unsupported document type: {document_type!r}")

    def _decode(self, content: bytes, encoding: str | None = None) -> str:
        encoding = encoding or self.detector.detect_encoding(content)
        return content.decode(encoding, errors="replace").lstrip("\ufeff")
