from pydantic import BaseModel, Field

from statement_importer.domain.documents import DocumentType, describe_document
from statement_importer.domain.results import (
    ImportFailed,
    ImportPreviewResult,
    NeedsUserInput,
    ReviewableTransaction,
    Unique,
)
from statement_importer.importing.duplicates import FuzzyDuplicateDetector
from statement_importer.importing.parsers.delimited import ColumnMapping
from statement_importer.importing.processor import ImportFileProcessor
from statement_importer.importing.validator import ImportValidator
from statement_importer.logger import get_logger
from statement_importer.manager import CategorizerService
from statement_importer.models import CategorizationItem, ImportedTransaction, LedgerTransaction

logger = get_logger(__name__)


class ImportRequest(BaseModel):
    filename: str
    content: bytes
    existing: list[LedgerTransaction] = Field(default_factory=list)
    document_type: DocumentType | None = None
    mapping: ColumnMapping | None = None
    categorize: bool = True


class ImportPipeline:
    """
    Turns an uploaded statement into rows the user can review before saving.

    Parsing, validation and duplicate detection always run; categorization
    runs when a categorizer is configured and the request asks for it.
    Rows that look like duplicates start out deselected.
    """

    def __init__(
        self,
        processor: ImportFileProcessor | None = None,
        validator: ImportValidator | None = None,
        duplicates: FuzzyDuplicateDetector | None = None,
        service: CategorizerService | None = None,
    ):
        self.processor = processor or ImportFileProcessor()
        self.validator = validator or ImportValidator()
        self.duplicates = duplicates or FuzzyDuplicateDetector()
        self.service = service

    def preview(self, request: ImportRequest) -> ImportPreviewResult | ImportFailed:
        result = self.processor.process(
            request.filename,
            request.content,
            document_type=request.document_type,
            mapping=request.mapping,
        )

        if isinstance(result, ImportFailed):
            logger.warning(f"[IMPORT] {request.filename}: {result.message}")
            return result

        transactions = result.transactions
        issues = result.issues if isinstance(result, NeedsUserInput) else []

        validation = self.validator.validate(transactions)
        statuses = self.duplicates.check_duplicates(transactions, request.existing)
        rows = [
            ReviewableTransaction(
                index=i,
                transaction=transaction,
                duplicate_status=statuses.get(i, Unique()),
                is_selected=not statuses.get(i, Unique()).is_duplicate,
            )
            for i, transaction in enumerate(transactions)
        ]

        if request.categorize and self.service is not None and rows:
            rows = self._categorize(rows)

        preview = ImportPreviewResult(
            transactions=rows,
            document_type=result.document_type,
            duplicate_count=sum(1 for row in rows if row.duplicate_status.is_duplicate),
            warnings=validation.warnings,
            issues=issues,
        )
        logger.info(
            f"[IMPORT] {request.filename}: {len(rows)} row(s) from {describe_document(preview.document_type)}, "
            f"{preview.duplicate_count} duplicate(s), {len(validation.warnings)} warning(s)"
        )
        return preview

    def _categorize(self, rows: list[ReviewableTransaction]) -> list[ReviewableTransaction]:
        items = [
            CategorizationItem(transaction_id=row.index, description=self._describe(row.transaction))
            for row in rows
        ]
        batch = self.service.categorize_batch(items)
        categorized = []
        for row in rows:
            result = batch.result_for(row.index)
            if result is None:
                categorized.append(row)
                continue
            transaction = row.transaction
            if not transaction.category:
                transaction = transaction.model_copy(update={"category": result.category_id})
            categorized.append(row.model_copy(update={"transaction": transaction, "categorization": result}))
        return categorized

    @staticmethod
    def _describe(transaction: ImportedTransaction) -> str:
        if transaction.merchant and transaction.merchant not in transaction.description:
            return f"{transaction.merchant} {transaction.description}".strip()
        return transaction.description
