from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from pydantic import TypeAdapter, ValidationError

from statement_importer.api.dependencies import get_pipeline
from statement_importer.api.schemas import ImportPreviewResponse
from statement_importer.domain.results import ImportFailed
from statement_importer.importing.parsers.delimited import ColumnMapping
from statement_importer.logger import get_logger
from statement_importer.models import LedgerTransaction
from statement_importer.services.categorization import CategorizationPipeline
from statement_importer.services.importing import ImportRequest

logger = get_logger(__name__)

router = APIRouter()

_LEDGER = TypeAdapter(list[LedgerTransaction])


@router.post("/api/import", response_model=ImportPreviewResponse)
async def import_statement(
    pipeline: Annotated[CategorizationPipeline, Depends(get_pipeline)],
    file: Annotated[UploadFile, File()],
    existing: Annotated[str | None, Form()] = None,
    mapping: Annotated[str | None, Form()] = None,
    categorize: Annotated[bool, Form()] = True,
) -> ImportPreviewResponse:
    """
    Preview an uploaded statement.

    ``existing`` is a JSON array of ledger transactions to check duplicates
    against; ``mapping`` is a JSON column mapping for CSV files whose headers
    were not recognised.
    """
    try:
        ledger = _LEDGER.validate_json(existing) if existing else []
        column_mapping = ColumnMapping.model_validate_json(mapping) if mapping else None
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=f"Invalid form field: {e.error_count()} error(s)") from e

    content = await file.read()
    filename = file.filename or "upload"
    preview = await pipeline.preview_import(
        ImportRequest(
            filename=filename,
            content=content,
            existing=ledger,
            mapping=column_mapping,
            categorize=categorize,
        )
    )
    if isinstance(preview, ImportFailed):
        raise HTTPException(status_code=422, detail=preview.message)
    return ImportPreviewResponse.from_preview(preview)
