import os
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ledger_categorizer.api.routes import categorize, settings as settings_routes
from ledger_categorizer.core import settings
from ledger_categorizer.core.errors import RepositoryUnavailable
from ledger_categorizer.engine import CategorizationEngine
from ledger_categorizer.logger import get_logger, setup_logging
from ledger_categorizer.services.categorization import CategorizationCoordinator
from ledger_categorizer.services.repositories import JsonCategoryRepository, JsonSettingsRepository

logger = get_logger(__name__)


async def _repository_unavailable(request: Request, exc: Exception) -> JSONResponse:
    logger.error("[API] %s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": str(exc)})


def create_app() -> FastAPI:
    setup_logging()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        logger.info("Initializing services...")
        settings.log_environment()

        engine = CategorizationEngine(levenshtein_min_score=settings.LEVENSHTEIN_MIN_SCORE)
        app.state.coordinator = CategorizationCoordinator(engine, max_workers=settings.CATEGORIZE_WORKERS)
        app.state.categories = JsonCategoryRepository(
            os.path.join(settings.DATA_DIR, settings.CATEGORIES_FILENAME)
        )
        app.state.settings = JsonSettingsRepository(
            os.path.join(settings.DATA_DIR, settings.SETTINGS_FILENAME)
        )

        logger.info("Services initialized.")
        yield
        logger.info("Service shutting down.")

    app = FastAPI(title="Ledger Categorizer", lifespan=lifespan)
    app.add_exception_handler(RepositoryUnavailable, _repository_unavailable)

    app.include_router(categorize.router)
    app.include_router(settings_routes.router)

    return app


app = create_app()
