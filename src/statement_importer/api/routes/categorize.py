from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException

from statement_importer.api.dependencies import get_pipeline
from statement_importer.api.schemas import CategorizeBatchRequest, CategorizeRequest, LearnRequest
from statement_importer.logger import get_logger
from statement_importer.models import CategorizationBatchResult, CategorizationResult
from statement_importer.services.categorization import CategorizationPipeline
from statement_importer.services.learning import LearnResult

logger = get_logger(__name__)

router = APIRouter()


@router.post("/api/categorize", response_model=CategorizationResult | None)
async def categorize_transaction(
    req: CategorizeRequest,
    pipeline: Annotated[CategorizationPipeline, Depends(get_pipeline)],
) -> CategorizationResult | None:
    return await pipeline.predict(req.transaction_id, req.description)


@router.post("/api/categorize-batch", response_model=CategorizationBatchResult)
async def categorize_batch(
    req: CategorizeBatchRequest,
    pipeline: Annotated[CategorizationPipeline, Depends(get_pipeline)],
) -> CategorizationBatchResult:
    return await pipeline.predict_batch(req.items, categories=req.categories)


@router.post("/api/learn", response_model=LearnResult)
async def learn(
    req: LearnRequest,
    pipeline: Annotated[CategorizationPipeline, Depends(get_pipeline)],
) -> LearnResult:
    try:
        result = await pipeline.learn(req.description, req.category_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    logger.info(f"[LEARN] '{req.description[:50]}' -> {req.category_id}")
    return result
