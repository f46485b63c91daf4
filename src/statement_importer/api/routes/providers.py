from typing import Annotated

from fastapi import APIRouter, Depends

from statement_importer.api.dependencies import get_service
from statement_importer.api.schemas import ProvidersResponse, ProviderStatus
from statement_importer.manager import CategorizerService
from statement_importer.services.cost import AICostTracker

router = APIRouter()


@router.get("/api/providers", response_model=ProvidersResponse)
async def list_providers(
    service: Annotated[CategorizerService, Depends(get_service)],
) -> ProvidersResponse:
    available = {provider.name for provider in service.factory.get_available_providers()}
    configured = [
        provider for provider in (
            service.factory.openai,
            service.factory.openai_premium,
            service.factory.anthropic,
            service.factory.on_device,
        )
        if provider is not None
    ]
    usage = None
    if isinstance(service.cost_tracker, AICostTracker):
        usage = service.cost_tracker.get_usage_stats()
    return ProvidersResponse(
        providers=[ProviderStatus(name=p.name, available=p.name in available) for p in configured],
        tiers=[tier.name for tier in service.ai_tiers],
        usage=usage,
    )
