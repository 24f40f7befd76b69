"""Shared pytest fixtures for all test suites."""

import os
import uuid
from collections.abc import AsyncGenerator, Callable, Generator
from io import BytesIO

import pytest
import pytest_asyncio
from docx import Document as DocxDocument
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.pool import NullPool, StaticPool

from backend.app.api import dependencies
from backend.app.config import Settings, get_settings
from backend.app.db.context import RequestContext
from backend.app.db.inmemory import InMemoryRateLimiter
from backend.app.db.models import Base
from backend.app.db.providers import InMemoryRepositoryProvider
from backend.app.documents.service import DocumentService
from backend.app.embeddings.service import FallbackEmbeddingProvider
from backend.app.extraction.engine import ExtractionEngine
from backend.app.extraction.registry import build_registry
from backend.app.knowledge.service import KnowledgeService
from backend.app.llm.client import DeterministicStubClient
from backend.app.main import app
from backend.app.org_knowledge.scraper import WebScraper
from backend.app.org_knowledge.service import OrgKnowledgeService
from backend.app.tasks import BackgroundTaskRunner

EMBEDDING_DIM = 768


@pytest.fixture
def settings() -> Settings:
    """Deterministic settings: no external services, no external extractor."""
    return Settings(
        database_url=None,
        redis_url=None,
        openai_api_key=None,
        openai_base_url=None,
        embedding_dim=EMBEDDING_DIM,
        external_extractor_command="knowledge-chat-missing-extractor",
        legacy_doc_command="knowledge-chat-missing-antiword",
        semantic_weight=0.0,
        word_cap_mode="per_word",
        upload_rate_limit=100,
    )


@pytest.fixture
def ctx() -> RequestContext:
    return RequestContext(org_id=uuid.uuid4(), user_id=uuid.uuid4())


@pytest.fixture
def other_ctx(ctx: RequestContext) -> RequestContext:
    """Another user in the same org."""
    return RequestContext(org_id=ctx.org_id, user_id=uuid.uuid4())


@pytest.fixture
def headers(ctx: RequestContext) -> dict[str, str]:
    return {"Authorization": f"Bearer {ctx.org_id}:{ctx.user_id}"}


@pytest.fixture
def other_headers(other_ctx: RequestContext) -> dict[str, str]:
    return {"Authorization": f"Bearer {other_ctx.org_id}:{other_ctx.user_id}"}


@pytest.fixture
def repos() -> InMemoryRepositoryProvider:
    return InMemoryRepositoryProvider(EMBEDDING_DIM)


@pytest.fixture
def extraction_engine(settings: Settings) -> ExtractionEngine:
    return ExtractionEngine(build_registry(settings), settings.max_upload_bytes)


@pytest.fixture
def embeddings() -> FallbackEmbeddingProvider:
    return FallbackEmbeddingProvider(EMBEDDING_DIM)


@pytest_asyncio.fixture
async def tasks() -> AsyncGenerator[BackgroundTaskRunner, None]:
    runner = BackgroundTaskRunner(default_timeout_s=5.0)
    yield runner
    await runner.shutdown()


@pytest.fixture
def knowledge_service(
    repos: InMemoryRepositoryProvider,
    extraction_engine: ExtractionEngine,
    embeddings: FallbackEmbeddingProvider,
    tasks: BackgroundTaskRunner,
    settings: Settings,
) -> KnowledgeService:
    return KnowledgeService(repos, extraction_engine, embeddings, tasks, settings)


@pytest.fixture
def document_service(
    repos: InMemoryRepositoryProvider,
    extraction_engine: ExtractionEngine,
    embeddings: FallbackEmbeddingProvider,
    tasks: BackgroundTaskRunner,
    settings: Settings,
) -> DocumentService:
    return DocumentService(repos, extraction_engine, embeddings, tasks, settings)


@pytest.fixture
def scraper() -> WebScraper:
    """Scraper with no pages configured; tests replace it when they need pages."""
    return WebScraper(base_url="https://org.example", paths=[], delay_s=0)


@pytest.fixture
def org_knowledge_service(
    repos: InMemoryRepositoryProvider,
    scraper: WebScraper,
    embeddings: FallbackEmbeddingProvider,
    tasks: BackgroundTaskRunner,
    settings: Settings,
) -> OrgKnowledgeService:
    return OrgKnowledgeService(repos, scraper, embeddings, tasks, settings)


@pytest.fixture
def rate_limiter(settings: Settings) -> InMemoryRateLimiter:
    return InMemoryRateLimiter(settings.upload_rate_limit, settings.upload_rate_window_seconds)


@pytest.fixture
def client(
    settings: Settings,
    repos: InMemoryRepositoryProvider,
    extraction_engine: ExtractionEngine,
    embeddings: FallbackEmbeddingProvider,
    rate_limiter: InMemoryRateLimiter,
    scraper: WebScraper,
) -> Generator[TestClient, None, None]:
    """App client wired to in-memory collaborators.

    The client is entered as a context manager so background tasks share
    one event loop for the whole test.
    """
    task_runner = BackgroundTaskRunner(default_timeout_s=5.0)
    stub = DeterministicStubClient(settings.max_prompt_chars)

    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[dependencies.get_repository_provider] = lambda: repos
    app.dependency_overrides[dependencies.get_extraction_engine] = lambda: extraction_engine
    app.dependency_overrides[dependencies.get_embeddings] = lambda: embeddings
    app.dependency_overrides[dependencies.get_task_runner] = lambda: task_runner
    app.dependency_overrides[dependencies.get_llm] = lambda: stub
    app.dependency_overrides[dependencies.get_upload_rate_limiter] = lambda: rate_limiter
    app.dependency_overrides[dependencies.get_web_scraper] = lambda: scraper

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def sqlite_engine() -> AsyncGenerator[AsyncEngine, None]:
    """In-memory SQLite engine with the schema created.

    StaticPool keeps a single connection so every session sees the same
    database.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def postgres_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create async engine for PostgreSQL integration tests.

    Requires POSTGRES_TEST_URL to be set to a real PostgreSQL connection string.
    Tests using this fixture should be marked with @pytest.mark.postgres.
    """
    database_url = os.getenv("POSTGRES_TEST_URL")
    if not database_url:
        pytest.skip("POSTGRES_TEST_URL not set - skipping postgres test")

    if database_url.startswith("postgresql://"):
        database_url = database_url.replace("postgresql://", "postgresql+asyncpg://", 1)

    engine = create_async_engine(
        database_url,
        poolclass=NullPool,
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture
async def postgres_session(postgres_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSession(postgres_engine) as session:
        yield session
        await session.rollback()


def build_pdf(text: str) -> bytes:
    """Single-page PDF showing text in Helvetica."""
    stream = f"BT /F1 12 Tf 72 720 Td ({text}) Tj ET".encode("latin-1")
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
        b"/Resources << /Font << /F1 5 0 R >> >> /Contents 4 0 R >>",
        b"<< /Length " + str(len(stream)).encode() + b" >>\nstream\n" + stream + b"\nendstream",
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    ]

    out = bytearray(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += f"{number} 0 obj\n".encode() + body + b"\nendobj\n"

    xref_at = len(out)
    out += f"xref\n0 {len(objects) + 1}\n".encode()
    out += b"0000000000 65535 f \n"
    for offset in offsets:
        out += f"{offset:010d} 00000 n \n".encode()
    out += f"trailer\n<< /Size {len(objects) + 1} /Root 1 0 R >>\n".encode()
    out += f"startxref\n{xref_at}\n%%EOF\n".encode()
    return bytes(out)


def build_docx(paragraphs: list[str], table: list[list[str]] | None = None) -> bytes:
    document = DocxDocument()
    for paragraph in paragraphs:
        document.add_paragraph(paragraph)
    if table:
        grid = document.add_table(rows=len(table), cols=len(table[0]))
        for r, row in enumerate(table):
            for c, value in enumerate(row):
                grid.cell(r, c).text = value
    buffer = BytesIO()
    document.save(buffer)
    return buffer.getvalue()


@pytest.fixture
def make_pdf() -> Callable[[str], bytes]:
    return build_pdf


@pytest.fixture
def make_docx() -> Callable[..., bytes]:
    return build_docx
