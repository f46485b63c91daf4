from abc import ABC, abstractmethod

from statement_importer.domain.documents import DocumentType
from statement_importer.domain.results import ImportResult


class StatementParser(ABC):
    @abstractmethod
    def parse(self, text: str, document_type: DocumentType) -> ImportResult:
        """Turn decoded statement text into an import result. Never raises for bad rows."""
        pass


def clamp_confidence(value: float) -> float:
    return max(0.0, min(1.0, value))
