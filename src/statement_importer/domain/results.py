from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

from statement_importer.domain.documents import DocumentType
from statement_importer.models import CategorizationResult, ImportedTransaction


class Unique(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["unique"] = "unique"

    @property
    def is_duplicate(self) -> bool:
        return False


class ProbableDuplicate(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["probable"] = "probable"
    matching_transaction_id: int
    similarity: float = Field(ge=0.0, lt=1.0)
    reason: str

    @property
    def is_duplicate(self) -> bool:
        return True


class ExactDuplicate(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["exact"] = "exact"
    matching_transaction_id: int

    @property
    def similarity(self) -> float:
        return 1.0

    @property
    def is_duplicate(self) -> bool:
        return True


DuplicateStatus = Annotated[
    Unique | ProbableDuplicate | ExactDuplicate,
    Field(discriminator="kind"),
]


class ImportSuccess(BaseModel):
    kind: Literal["success"] = "success"
    transactions: list[ImportedTransaction]
    document_type: DocumentType
    total_confidence: float = Field(ge=0.0, le=1.0)


class ImportFailed(BaseModel):
    kind: Literal["error"] = "error"
    message: str
    document_type: DocumentType | None = None
    partial_transactions: list[ImportedTransaction] = Field(default_factory=list)


class NeedsUserInput(BaseModel):
    """Parsing stopped on an ambiguity that the user has to resolve."""
    kind: Literal["needs_user_input"] = "needs_user_input"
    transactions: list[ImportedTransaction] = Field(default_factory=list)
    document_type: DocumentType
    issues: list[str]


ImportResult = Annotated[
    ImportSuccess | ImportFailed | NeedsUserInput,
    Field(discriminator="kind"),
]


class ReviewableTransaction(BaseModel):
    model_config = ConfigDict(frozen=True)

    index: int
    transaction: ImportedTransaction
    duplicate_status: DuplicateStatus = Field(default_factory=Unique)
    is_selected: bool = True
    category_override: str | None = None
    categorization: CategorizationResult | None = None

    @property
    def effective_category(self) -> str | None:
        return self.category_override or self.transaction.category

    def with_selection(self, selected: bool) -> "ReviewableTransaction":
        return self.model_copy(update={"is_selected": selected})

    def with_category_override(self, category_id: str | None) -> "ReviewableTransaction":
        return self.model_copy(update={"category_override": category_id})


class ImportValidationResult(BaseModel):
    is_valid: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class ImportPreviewResult(BaseModel):
    transactions: list[ReviewableTransaction]
    document_type: DocumentType
    duplicate_count: int
    warnings: list[str] = Field(default_factory=list)
    issues: list[str] = Field(default_factory=list)

    @property
    def selected(self) -> list[ReviewableTransaction]:
        return [row for row in self.transactions if row.is_selected]

    @property
    def total_income(self) -> int:
        return sum(row.transaction.amount for row in self.selected if row.transaction.amount > 0)

    @property
    def total_expenses(self) -> int:
        return sum(row.transaction.amount for row in self.selected if row.transaction.amount < 0)
