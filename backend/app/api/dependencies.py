"""FastAPI dependency wiring for services and their collaborators.

Process-wide collaborators are cached; services are cheap and built per
request from them. Tests swap collaborators via app.dependency_overrides.
"""

from functools import lru_cache
from typing import Annotated

import redis
from fastapi import Depends

from backend.app.chat.service import ChatService
from backend.app.config import Settings, get_settings
from backend.app.context.assembler import ContextAssembler
from backend.app.db.engine import get_async_engine
from backend.app.db.inmemory import InMemoryRateLimiter
from backend.app.db.providers import InMemoryRepositoryProvider, SqlRepositoryProvider
from backend.app.db.repositories import RateLimiter, RepositoryProvider
from backend.app.documents.service import DocumentService
from backend.app.embeddings.service import EmbeddingProvider, get_embedding_provider
from backend.app.extraction.engine import ExtractionEngine
from backend.app.extraction.registry import get_extractor_registry
from backend.app.knowledge.service import KnowledgeService
from backend.app.llm.client import LLMClient, get_llm_client
from backend.app.org_knowledge.scraper import WebScraper
from backend.app.org_knowledge.service import OrgKnowledgeService
from backend.app.ratelimit import RedisRateLimiter
from backend.app.tasks import BackgroundTaskRunner


@lru_cache
def get_task_runner() -> BackgroundTaskRunner:
    return BackgroundTaskRunner(default_timeout_s=get_settings().background_task_timeout_s)


@lru_cache
def get_repository_provider() -> RepositoryProvider:
    """SQL repositories when DATABASE_URL is set, in-memory otherwise (dev)."""
    settings = get_settings()
    if settings.database_url:
        return SqlRepositoryProvider(get_async_engine(), settings.embedding_dim)
    return InMemoryRepositoryProvider(settings.embedding_dim)


@lru_cache
def get_extraction_engine() -> ExtractionEngine:
    return ExtractionEngine(get_extractor_registry(), get_settings().max_upload_bytes)


@lru_cache
def get_embeddings() -> EmbeddingProvider:
    return get_embedding_provider(get_settings())


@lru_cache
def get_llm() -> LLMClient:
    return get_llm_client(get_settings())


def get_web_scraper(settings: Annotated[Settings, Depends(get_settings)]) -> WebScraper:
    return WebScraper(
        base_url=settings.scrape_base_url,
        paths=settings.scrape_paths,
        timeout_s=settings.scrape_timeout_s,
    )


@lru_cache
def get_upload_rate_limiter() -> RateLimiter:
    settings = get_settings()
    if settings.redis_url:
        client = redis.from_url(settings.redis_url, decode_responses=True)  # type: ignore[no-untyped-call]
        return RedisRateLimiter(
            client, settings.upload_rate_limit, settings.upload_rate_window_seconds
        )
    return InMemoryRateLimiter(settings.upload_rate_limit, settings.upload_rate_window_seconds)


def get_knowledge_service(
    repos: Annotated[RepositoryProvider, Depends(get_repository_provider)],
    extraction: Annotated[ExtractionEngine, Depends(get_extraction_engine)],
    embeddings: Annotated[EmbeddingProvider, Depends(get_embeddings)],
    tasks: Annotated[BackgroundTaskRunner, Depends(get_task_runner)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> KnowledgeService:
    return KnowledgeService(repos, extraction, embeddings, tasks, settings)


def get_document_service(
    repos: Annotated[RepositoryProvider, Depends(get_repository_provider)],
    extraction: Annotated[ExtractionEngine, Depends(get_extraction_engine)],
    embeddings: Annotated[EmbeddingProvider, Depends(get_embeddings)],
    tasks: Annotated[BackgroundTaskRunner, Depends(get_task_runner)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> DocumentService:
    return DocumentService(repos, extraction, embeddings, tasks, settings)


def get_org_knowledge_service(
    repos: Annotated[RepositoryProvider, Depends(get_repository_provider)],
    scraper: Annotated[WebScraper, Depends(get_web_scraper)],
    embeddings: Annotated[EmbeddingProvider, Depends(get_embeddings)],
    tasks: Annotated[BackgroundTaskRunner, Depends(get_task_runner)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> OrgKnowledgeService:
    return OrgKnowledgeService(repos, scraper, embeddings, tasks, settings)


def get_chat_service(
    knowledge: Annotated[KnowledgeService, Depends(get_knowledge_service)],
    documents: Annotated[DocumentService, Depends(get_document_service)],
    org_knowledge: Annotated[OrgKnowledgeService, Depends(get_org_knowledge_service)],
    llm: Annotated[LLMClient, Depends(get_llm)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> ChatService:
    assembler = ContextAssembler(knowledge, documents, org_knowledge, settings)
    return ChatService(assembler, llm, settings.llm_model)
