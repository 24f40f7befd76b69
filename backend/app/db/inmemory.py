"""In-memory implementations of repository interfaces."""

import uuid
from datetime import datetime, timedelta

from backend.app.db.repositories import (
    RetryAfter,
    build_stats,
    ensure_content,
    ensure_embedding_dim,
)
from backend.app.errors import NotFoundError
from backend.app.models.documents import Document, DocumentStatus
from backend.app.models.knowledge import KnowledgeItem, KnowledgeStats
from backend.app.models.org_knowledge import OrgKnowledgeEntry


class InMemoryKnowledgeRepository:
    """In-memory implementation of KnowledgeRepository."""

    def __init__(self, embedding_dim: int = 768) -> None:
        self._embedding_dim = embedding_dim
        self._items: dict[uuid.UUID, KnowledgeItem] = {}

    async def create(self, item: KnowledgeItem) -> KnowledgeItem:
        ensure_content(item.content)
        ensure_embedding_dim(item.embedding, self._embedding_dim)
        self._items[item.item_id] = item.model_copy()
        return item

    async def list_by_owner(self, owner_id: uuid.UUID) -> list[KnowledgeItem]:
        items = [i for i in self._items.values() if i.owner_id == owner_id]
        items.sort(key=lambda i: i.created_at, reverse=True)
        return [i.model_copy() for i in items]

    async def get(self, item_id: uuid.UUID, owner_id: uuid.UUID) -> KnowledgeItem | None:
        item = self._items.get(item_id)

        # Enforce ownership
        if item is None or item.owner_id != owner_id:
            return None

        return item.model_copy()

    async def update_embedding(self, item_id: uuid.UUID, vector: list[float]) -> None:
        ensure_embedding_dim(vector, self._embedding_dim)
        item = self._items.get(item_id)
        if item is None:
            return
        self._items[item_id] = item.model_copy(update={"embedding": list(vector)})

    async def delete(self, item_id: uuid.UUID, owner_id: uuid.UUID) -> None:
        item = self._items.get(item_id)
        if item is None or item.owner_id != owner_id:
            raise NotFoundError(f"Knowledge item {item_id} not found")
        del self._items[item_id]

    async def stats(self, owner_id: uuid.UUID) -> KnowledgeStats:
        return build_stats(
            (i.content, i.mime_type) for i in self._items.values() if i.owner_id == owner_id
        )


class InMemoryDocumentRepository:
    """In-memory implementation of DocumentRepository."""

    def __init__(self, embedding_dim: int = 768) -> None:
        self._embedding_dim = embedding_dim
        self._docs: dict[uuid.UUID, Document] = {}

    async def create(self, doc: Document) -> Document:
        self._docs[doc.doc_id] = doc.model_copy()
        return doc

    async def get(self, doc_id: uuid.UUID, owner_id: uuid.UUID) -> Document | None:
        doc = self._docs.get(doc_id)
        if doc is None or doc.owner_id != owner_id:
            return None
        return doc.model_copy()

    async def list_by_owner(self, owner_id: uuid.UUID) -> list[Document]:
        docs = [d for d in self._docs.values() if d.owner_id == owner_id]
        docs.sort(key=lambda d: d.created_at, reverse=True)
        return [d.model_copy() for d in docs]

    async def mark_ready(self, doc_id: uuid.UUID, extracted_text: str) -> None:
        self._update(
            doc_id, status=DocumentStatus.ready, extracted_text=extracted_text, error=None
        )

    async def mark_failed(self, doc_id: uuid.UUID, error: str) -> None:
        self._update(doc_id, status=DocumentStatus.failed, error=error)

    async def update_embedding(self, doc_id: uuid.UUID, vector: list[float]) -> None:
        ensure_embedding_dim(vector, self._embedding_dim)
        self._update(doc_id, embedding=list(vector))

    async def delete(self, doc_id: uuid.UUID, owner_id: uuid.UUID) -> None:
        doc = self._docs.get(doc_id)
        if doc is None or doc.owner_id != owner_id:
            raise NotFoundError(f"Document {doc_id} not found")
        del self._docs[doc_id]

    async def delete_expired(self, now: datetime) -> int:
        expired = [doc_id for doc_id, d in self._docs.items() if d.is_expired(now)]
        for doc_id in expired:
            del self._docs[doc_id]
        return len(expired)

    def _update(self, doc_id: uuid.UUID, **changes: object) -> None:
        # Document may have been deleted while processing
        doc = self._docs.get(doc_id)
        if doc is not None:
            self._docs[doc_id] = doc.model_copy(update=changes)


class InMemoryOrgKnowledgeRepository:
    """In-memory implementation of OrgKnowledgeRepository."""

    def __init__(self, embedding_dim: int = 768) -> None:
        self._embedding_dim = embedding_dim
        self._entries: dict[tuple[uuid.UUID, str], OrgKnowledgeEntry] = {}

    async def upsert(self, entry: OrgKnowledgeEntry) -> OrgKnowledgeEntry:
        ensure_embedding_dim(entry.embedding, self._embedding_dim)
        key = (entry.org_id, entry.url)
        existing = self._entries.get(key)
        if existing is not None:
            entry = entry.model_copy(update={"entry_id": existing.entry_id})
        self._entries[key] = entry.model_copy()
        return entry

    async def list_by_org(self, org_id: uuid.UUID) -> list[OrgKnowledgeEntry]:
        entries = [e for e in self._entries.values() if e.org_id == org_id]
        entries.sort(key=lambda e: e.last_scraped, reverse=True)
        return [e.model_copy() for e in entries]

    async def update_embedding(self, entry_id: uuid.UUID, vector: list[float]) -> None:
        ensure_embedding_dim(vector, self._embedding_dim)
        for key, entry in self._entries.items():
            if entry.entry_id == entry_id:
                self._entries[key] = entry.model_copy(update={"embedding": list(vector)})
                return


class InMemoryRateLimiter:
    """In-memory implementation of RateLimiter using fixed window."""

    def __init__(self, max_requests: int, window_seconds: int = 60) -> None:
        """Initialize rate limiter.

        Args:
            max_requests: Maximum requests per window
            window_seconds: Window size in seconds (default 60)
        """
        self._max_requests = max_requests
        self._window_seconds = window_seconds
        self._windows: dict[str, tuple[datetime, int]] = {}

    def check_quota(self, key: str, now: datetime) -> RetryAfter | None:
        """Check if quota is available."""
        window = timedelta(seconds=self._window_seconds)

        if key not in self._windows or now >= self._windows[key][0] + window:
            # First request or window expired
            self._windows[key] = (now, 1)
            return None

        window_start, count = self._windows[key]
        if count >= self._max_requests:
            seconds_remaining = int((window_start + window - now).total_seconds())
            return RetryAfter(seconds=max(1, seconds_remaining))

        self._windows[key] = (window_start, count + 1)
        return None
