from abc import ABC, abstractmethod

from statement_importer.models import CategorizationResult


class Classifier(ABC):
    @abstractmethod
    def classify(self, transaction_id: int, description: str) -> CategorizationResult | None:
        """Attempt to categorize the transaction."""
        pass
