"""Repository providers: one scope per unit of work."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from backend.app.db.inmemory import (
    InMemoryDocumentRepository,
    InMemoryKnowledgeRepository,
    InMemoryOrgKnowledgeRepository,
)
from backend.app.db.repositories import (
    DocumentRepository,
    KnowledgeRepository,
    OrgKnowledgeRepository,
)
from backend.app.db.sql_repositories import (
    SqlDocumentRepository,
    SqlKnowledgeRepository,
    SqlOrgKnowledgeRepository,
)


class SqlRepositoryProvider:
    """Opens a fresh AsyncSession for every repository scope."""

    def __init__(self, engine: AsyncEngine, embedding_dim: int = 768) -> None:
        self._engine = engine
        self._embedding_dim = embedding_dim

    @asynccontextmanager
    async def knowledge(self) -> AsyncIterator[KnowledgeRepository]:
        async with AsyncSession(self._engine, expire_on_commit=False) as session:
            yield SqlKnowledgeRepository(session, self._embedding_dim)

    @asynccontextmanager
    async def documents(self) -> AsyncIterator[DocumentRepository]:
        async with AsyncSession(self._engine, expire_on_commit=False) as session:
            yield SqlDocumentRepository(session, self._embedding_dim)

    @asynccontextmanager
    async def org_knowledge(self) -> AsyncIterator[OrgKnowledgeRepository]:
        async with AsyncSession(self._engine, expire_on_commit=False) as session:
            yield SqlOrgKnowledgeRepository(session, self._embedding_dim)


class InMemoryRepositoryProvider:
    """Shares one set of in-memory repositories across all scopes."""

    def __init__(self, embedding_dim: int = 768) -> None:
        self.knowledge_repo = InMemoryKnowledgeRepository(embedding_dim)
        self.document_repo = InMemoryDocumentRepository(embedding_dim)
        self.org_knowledge_repo = InMemoryOrgKnowledgeRepository(embedding_dim)

    @asynccontextmanager
    async def knowledge(self) -> AsyncIterator[KnowledgeRepository]:
        yield self.knowledge_repo

    @asynccontextmanager
    async def documents(self) -> AsyncIterator[DocumentRepository]:
        yield self.document_repo

    @asynccontextmanager
    async def org_knowledge(self) -> AsyncIterator[OrgKnowledgeRepository]:
        yield self.org_knowledge_repo
