from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from statement_importer.api.routes import categorize, imports, providers
from statement_importer.core import settings
from statement_importer.logger import get_logger, setup_logging
from statement_importer.manager import CategorizerService
from statement_importer.services.categorization import CategorizationPipeline

logger = get_logger(__name__)


def create_app() -> FastAPI:
    setup_logging()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        logger.info("Initializing services...")
        settings.log_environment()

        service = CategorizerService(data_dir=settings.DATA_DIR)
        app.state.service = service
        app.state.pipeline = CategorizationPipeline(service=service)

        logger.info("Services initialized.")
        yield
        service.factory.close()
        logger.info("Service shutting down.")

    app = FastAPI(title="Statement Importer", lifespan=lifespan)

    app.include_router(imports.router)
    app.include_router(categorize.router)
    app.include_router(providers.router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    return app
