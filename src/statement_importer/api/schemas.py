from pydantic import BaseModel, Field

from statement_importer.domain.documents import DocumentType
from statement_importer.domain.results import ImportPreviewResult, ReviewableTransaction
from statement_importer.models import CategorizationItem
from statement_importer.services.cost import UsageStats


class CategorizeRequest(BaseModel):
    description: str
    transaction_id: int = 0


class CategorizeBatchRequest(BaseModel):
    items: list[CategorizationItem]
    categories: list[str] | None = None


class LearnRequest(BaseModel):
    description: str
    category_id: str


class ProviderStatus(BaseModel):
    name: str
    available: bool


class ProvidersResponse(BaseModel):
    providers: list[ProviderStatus]
    tiers: list[str] = Field(default_factory=list)
    usage: UsageStats | None = None


class ImportPreviewResponse(BaseModel):
    transactions: list[ReviewableTransaction]
    document_type: DocumentType
    duplicate_count: int
    warnings: list[str]
    issues: list[str]
    total_income: int
    total_expenses: int

    @classmethod
    def from_preview(cls, preview: ImportPreviewResult) -> "ImportPreviewResponse":
        return cls(
            transactions=preview.transactions,
            document_type=preview.document_type,
            duplicate_count=preview.duplicate_count,
            warnings=preview.warnings,
            issues=preview.issues,
            total_income=preview.total_income,
            total_expenses=preview.total_expenses,
        )
