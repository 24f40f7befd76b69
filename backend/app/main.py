"""FastAPI application."""

import logging
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI

from backend.app.api.dependencies import (
    get_embeddings,
    get_extraction_engine,
    get_repository_provider,
    get_task_runner,
)
from backend.app.api.errors import register_exception_handlers
from backend.app.api.routes.chat import router as chat_router
from backend.app.api.routes.documents import router as documents_router
from backend.app.api.routes.health import router as health_router
from backend.app.api.routes.knowledge import router as knowledge_router
from backend.app.api.routes.metrics import router as metrics_router
from backend.app.api.routes.org_knowledge import router as org_knowledge_router
from backend.app.config import get_settings
from backend.app.db.engine import create_sqlite_schema, dispose_async_engine, get_async_engine
from backend.app.documents.cleanup import DocumentCleanupTask
from backend.app.documents.service import DocumentService
from backend.app.extraction.registry import get_extractor_registry
from backend.app.utils.logging import configure_logging

logger = logging.getLogger(__name__)


def _resolve(app: FastAPI, dependency: Callable[[], Any]) -> Any:
    """Call a no-argument dependency, honouring app.dependency_overrides."""
    return app.dependency_overrides.get(dependency, dependency)()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = app.dependency_overrides.get(get_settings, get_settings)()
    configure_logging(settings.log_level)

    get_extractor_registry()
    if settings.database_url and get_repository_provider not in app.dependency_overrides:
        await create_sqlite_schema(get_async_engine())

    tasks = _resolve(app, get_task_runner)
    documents = DocumentService(
        _resolve(app, get_repository_provider),
        _resolve(app, get_extraction_engine),
        _resolve(app, get_embeddings),
        tasks,
        settings,
    )
    cleanup = DocumentCleanupTask(documents, interval_minutes=settings.cleanup_interval_minutes)
    cleanup.start()
    logger.info("Knowledge Chat API started")

    try:
        yield
    finally:
        await cleanup.stop()
        await tasks.shutdown()
        await dispose_async_engine()
        logger.info("Knowledge Chat API stopped")


app = FastAPI(title="Knowledge Chat API", version="0.1.0", lifespan=lifespan)
register_exception_handlers(app)

app.include_router(health_router, tags=["health"])
app.include_router(metrics_router, tags=["metrics"])
app.include_router(knowledge_router)
app.include_router(documents_router)
app.include_router(org_knowledge_router)
app.include_router(chat_router)


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {"message": "Knowledge Chat API", "version": "0.1.0"}
