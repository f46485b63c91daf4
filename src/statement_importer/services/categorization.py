import asyncio

from statement_importer.domain.results import ImportFailed, ImportPreviewResult
from statement_importer.logger import get_logger
from statement_importer.manager import CategorizerService
from statement_importer.models import CategorizationBatchResult, CategorizationItem, CategorizationResult
from statement_importer.services.importing import ImportPipeline, ImportRequest
from statement_importer.services.learning import LearnResult

logger = get_logger(__name__)


class CategorizationPipeline:
    """Runs the blocking cascade and import pipeline off the event loop."""

    def __init__(self, service: CategorizerService, importer: ImportPipeline | None = None) -> None:
        self.service = service
        self.importer = importer or ImportPipeline(service=service)

    async def predict(self, transaction_id: int, description: str) -> CategorizationResult | None:
        logger.debug("[PREDICT] Starting categorization for transaction ID: %s", transaction_id)
        return await asyncio.to_thread(self.service.categorize, transaction_id, description)

    async def predict_batch(
        self,
        items: list[CategorizationItem],
        *,
        categories: list[str] | None = None,
    ) -> CategorizationBatchResult:
        return await asyncio.to_thread(self.service.categorize_batch, items, categories)

    async def learn(self, description: str, category_id: str) -> LearnResult:
        return await asyncio.to_thread(self.service.learn, description, category_id)

    async def preview_import(self, request: ImportRequest) -> ImportPreviewResult | ImportFailed:
        return await asyncio.to_thread(self.importer.preview, request)
