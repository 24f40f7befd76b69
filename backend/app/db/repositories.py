"""Repository protocol interfaces for data access."""

from collections.abc import Iterable
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol
from uuid import UUID

from backend.app.errors import EmbeddingDimensionError, EmptyContentError
from backend.app.extraction.mime import ACCEPTED_MIME_TYPES, mime_category
from backend.app.models.documents import Document
from backend.app.models.knowledge import KnowledgeItem, KnowledgeStats
from backend.app.models.org_knowledge import OrgKnowledgeEntry


class KnowledgeRepository(Protocol):
    """Repository for knowledge item operations.

    Every read and delete is scoped by owner.
    """

    async def create(self, item: KnowledgeItem) -> KnowledgeItem:
        """Persist a new item.

        Raises:
            EmptyContentError: Content is empty or whitespace
            EmbeddingDimensionError: Embedding present with the wrong length
        """
        ...

    async def list_by_owner(self, owner_id: UUID) -> list[KnowledgeItem]:
        """All items of one owner, newest first."""
        ...

    async def get(self, item_id: UUID, owner_id: UUID) -> KnowledgeItem | None:
        """Item by ID, or None when missing or owned by someone else."""
        ...

    async def update_embedding(self, item_id: UUID, vector: list[float]) -> None:
        """Attach an embedding.

        Raises:
            EmbeddingDimensionError: Vector has the wrong length
        """
        ...

    async def delete(self, item_id: UUID, owner_id: UUID) -> None:
        """Delete an item.

        Raises:
            NotFoundError: Item missing or owned by someone else
        """
        ...

    async def stats(self, owner_id: UUID) -> KnowledgeStats:
        """Aggregate counts for one owner."""
        ...


class DocumentRepository(Protocol):
    """Repository for transient chat documents."""

    async def create(self, doc: Document) -> Document:
        ...

    async def get(self, doc_id: UUID, owner_id: UUID) -> Document | None:
        ...

    async def list_by_owner(self, owner_id: UUID) -> list[Document]:
        """Owner's documents, newest first."""
        ...

    async def mark_ready(self, doc_id: UUID, extracted_text: str) -> None:
        ...

    async def mark_failed(self, doc_id: UUID, error: str) -> None:
        ...

    async def update_embedding(self, doc_id: UUID, vector: list[float]) -> None:
        ...

    async def delete(self, doc_id: UUID, owner_id: UUID) -> None:
        """Raises NotFoundError for missing or foreign documents."""
        ...

    async def delete_expired(self, now: datetime) -> int:
        """Delete every document (any owner) with expires_at <= now."""
        ...


class OrgKnowledgeRepository(Protocol):
    """Repository for scraped organization knowledge."""

    async def upsert(self, entry: OrgKnowledgeEntry) -> OrgKnowledgeEntry:
        """Insert or replace by (org_id, url); an existing row keeps its entry_id."""
        ...

    async def list_by_org(self, org_id: UUID) -> list[OrgKnowledgeEntry]:
        """Entries most recently scraped first."""
        ...

    async def update_embedding(self, entry_id: UUID, vector: list[float]) -> None:
        ...


class RepositoryProvider(Protocol):
    """Opens repositories for one unit of work.

    Background tasks outlive the request, so each caller opens its own scope
    instead of sharing a request session.
    """

    def knowledge(self) -> AbstractAsyncContextManager[KnowledgeRepository]:
        ...

    def documents(self) -> AbstractAsyncContextManager[DocumentRepository]:
        ...

    def org_knowledge(self) -> AbstractAsyncContextManager[OrgKnowledgeRepository]:
        ...


def ensure_content(content: str) -> None:
    if not content or not content.strip():
        raise EmptyContentError("Knowledge content must not be empty")


def ensure_embedding_dim(vector: list[float] | None, dimensions: int) -> None:
    if vector is not None and len(vector) != dimensions:
        raise EmbeddingDimensionError(dimensions, len(vector))


def build_stats(rows: Iterable[tuple[str, str | None]]) -> KnowledgeStats:
    """Stats from (content, mime_type) pairs.

    Items without a MIME type count toward the totals but not toward any type.
    """
    total = 0
    total_bytes = 0
    by_type: dict[str, int] = {}
    for content, mime_type in rows:
        total += 1
        total_bytes += len(content.encode("utf-8"))
        if mime_type:
            key = mime_category(mime_type)
            by_type[key] = by_type.get(key, 0) + 1

    return KnowledgeStats(
        total_entries=total,
        total_content_bytes=total_bytes,
        counts_by_type=by_type,
        supported_types=list(ACCEPTED_MIME_TYPES),
    )


@dataclass
class RetryAfter:
    """Rate limit retry-after information."""

    seconds: int


class RateLimiter(Protocol):
    """Rate limiter interface."""

    def check_quota(self, key: str, now: datetime) -> RetryAfter | None:
        """Check if quota is available.

        Args:
            key: Rate limit key
            now: Current timestamp

        Returns:
            RetryAfter if over quota, None if allowed
        """
        ...
