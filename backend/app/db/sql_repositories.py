"""SQL implementations of repository interfaces."""

import uuid
from datetime import UTC, datetime

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.db import models
from backend.app.db.queries import select_documents, select_knowledge_items, select_org_knowledge
from backend.app.db.repositories import build_stats, ensure_content, ensure_embedding_dim
from backend.app.errors import NotFoundError
from backend.app.models.documents import Document, DocumentStatus
from backend.app.models.knowledge import KnowledgeItem, KnowledgeSource, KnowledgeStats
from backend.app.models.org_knowledge import OrgKnowledgeEntry


def _aware(value: datetime) -> datetime:
    """SQLite drops tzinfo; stored values are always UTC."""
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


def _to_knowledge_item(row: models.KnowledgeItem) -> KnowledgeItem:
    return KnowledgeItem(
        item_id=row.item_id,
        owner_id=row.owner_id,
        org_id=row.org_id,
        title=row.title,
        content=row.content,
        source=KnowledgeSource(row.source),
        filename=row.filename,
        mime_type=row.mime_type,
        embedding=row.embedding,
        created_at=_aware(row.created_at),
        updated_at=_aware(row.updated_at),
    )


def _to_document(row: models.Document) -> Document:
    return Document(
        doc_id=row.doc_id,
        owner_id=row.owner_id,
        org_id=row.org_id,
        original_name=row.original_name,
        mime_type=row.mime_type,
        size_bytes=row.size_bytes,
        status=DocumentStatus(row.status),
        extracted_text=row.extracted_text,
        error=row.error,
        embedding=row.embedding,
        created_at=_aware(row.created_at),
        expires_at=_aware(row.expires_at),
    )


def _to_org_entry(row: models.OrgKnowledge) -> OrgKnowledgeEntry:
    return OrgKnowledgeEntry(
        entry_id=row.entry_id,
        org_id=row.org_id,
        url=row.url,
        title=row.title,
        content=row.content,
        embedding=row.embedding,
        last_scraped=_aware(row.last_scraped),
    )


class SqlKnowledgeRepository:
    """SQL implementation of KnowledgeRepository."""

    def __init__(self, session: AsyncSession, embedding_dim: int = 768) -> None:
        self._session = session
        self._embedding_dim = embedding_dim

    async def create(self, item: KnowledgeItem) -> KnowledgeItem:
        ensure_content(item.content)
        ensure_embedding_dim(item.embedding, self._embedding_dim)

        row = models.KnowledgeItem(
            item_id=item.item_id,
            owner_id=item.owner_id,
            org_id=item.org_id,
            title=item.title,
            content=item.content,
            source=item.source.value,
            filename=item.filename,
            mime_type=item.mime_type,
            embedding=item.embedding,
            created_at=item.created_at,
            updated_at=item.updated_at,
        )
        self._session.add(row)
        await self._session.commit()
        return item

    async def list_by_owner(self, owner_id: uuid.UUID) -> list[KnowledgeItem]:
        result = await self._session.scalars(
            select_knowledge_items(owner_id).order_by(models.KnowledgeItem.created_at.desc())
        )
        return [_to_knowledge_item(row) for row in result]

    async def get(self, item_id: uuid.UUID, owner_id: uuid.UUID) -> KnowledgeItem | None:
        row = await self._session.scalar(
            select_knowledge_items(owner_id).where(models.KnowledgeItem.item_id == item_id)
        )
        return _to_knowledge_item(row) if row is not None else None

    async def update_embedding(self, item_id: uuid.UUID, vector: list[float]) -> None:
        ensure_embedding_dim(vector, self._embedding_dim)
        await self._session.execute(
            update(models.KnowledgeItem)
            .where(models.KnowledgeItem.item_id == item_id)
            .values(embedding=list(vector))
        )
        await self._session.commit()

    async def delete(self, item_id: uuid.UUID, owner_id: uuid.UUID) -> None:
        result = await self._session.execute(
            delete(models.KnowledgeItem).where(
                models.KnowledgeItem.item_id == item_id,
                models.KnowledgeItem.owner_id == owner_id,
            )
        )
        await self._session.commit()
        if result.rowcount == 0:
            raise NotFoundError(f"Knowledge item {item_id} not found")

    async def stats(self, owner_id: uuid.UUID) -> KnowledgeStats:
        result = await self._session.execute(
            select(models.KnowledgeItem.content, models.KnowledgeItem.mime_type).where(
                models.KnowledgeItem.owner_id == owner_id
            )
        )
        return build_stats((content, mime_type) for content, mime_type in result)


class SqlDocumentRepository:
    """SQL implementation of DocumentRepository."""

    def __init__(self, session: AsyncSession, embedding_dim: int = 768) -> None:
        self._session = session
        self._embedding_dim = embedding_dim

    async def create(self, doc: Document) -> Document:
        row = models.Document(
            doc_id=doc.doc_id,
            owner_id=doc.owner_id,
            org_id=doc.org_id,
            original_name=doc.original_name,
            mime_type=doc.mime_type,
            size_bytes=doc.size_bytes,
            status=doc.status.value,
            extracted_text=doc.extracted_text,
            error=doc.error,
            embedding=doc.embedding,
            created_at=doc.created_at,
            expires_at=doc.expires_at,
        )
        self._session.add(row)
        await self._session.commit()
        return doc

    async def get(self, doc_id: uuid.UUID, owner_id: uuid.UUID) -> Document | None:
        row = await self._session.scalar(
            select_documents(owner_id).where(models.Document.doc_id == doc_id)
        )
        return _to_document(row) if row is not None else None

    async def list_by_owner(self, owner_id: uuid.UUID) -> list[Document]:
        result = await self._session.scalars(
            select_documents(owner_id).order_by(models.Document.created_at.desc())
        )
        return [_to_document(row) for row in result]

    async def mark_ready(self, doc_id: uuid.UUID, extracted_text: str) -> None:
        await self._update(
            doc_id,
            status=DocumentStatus.ready.value,
            extracted_text=extracted_text,
            error=None,
        )

    async def mark_failed(self, doc_id: uuid.UUID, error: str) -> None:
        await self._update(doc_id, status=DocumentStatus.failed.value, error=error)

    async def update_embedding(self, doc_id: uuid.UUID, vector: list[float]) -> None:
        ensure_embedding_dim(vector, self._embedding_dim)
        await self._update(doc_id, embedding=list(vector))

    async def delete(self, doc_id: uuid.UUID, owner_id: uuid.UUID) -> None:
        result = await self._session.execute(
            delete(models.Document).where(
                models.Document.doc_id == doc_id,
                models.Document.owner_id == owner_id,
            )
        )
        await self._session.commit()
        if result.rowcount == 0:
            raise NotFoundError(f"Document {doc_id} not found")

    async def delete_expired(self, now: datetime) -> int:
        result = await self._session.execute(
            delete(models.Document).where(models.Document.expires_at <= now)
        )
        await self._session.commit()
        return result.rowcount

    async def _update(self, doc_id: uuid.UUID, **values: object) -> None:
        await self._session.execute(
            update(models.Document).where(models.Document.doc_id == doc_id).values(**values)
        )
        await self._session.commit()


class SqlOrgKnowledgeRepository:
    """SQL implementation of OrgKnowledgeRepository."""

    def __init__(self, session: AsyncSession, embedding_dim: int = 768) -> None:
        self._session = session
        self._embedding_dim = embedding_dim

    async def upsert(self, entry: OrgKnowledgeEntry) -> OrgKnowledgeEntry:
        ensure_embedding_dim(entry.embedding, self._embedding_dim)

        row = await self._session.scalar(
            select_org_knowledge(entry.org_id).where(models.OrgKnowledge.url == entry.url)
        )
        if row is None:
            row = models.OrgKnowledge(entry_id=entry.entry_id, org_id=entry.org_id, url=entry.url)
            self._session.add(row)
        else:
            entry = entry.model_copy(update={"entry_id": row.entry_id})

        row.title = entry.title
        row.content = entry.content
        row.embedding = entry.embedding
        row.last_scraped = entry.last_scraped
        await self._session.commit()
        return entry

    async def list_by_org(self, org_id: uuid.UUID) -> list[OrgKnowledgeEntry]:
        result = await self._session.scalars(
            select_org_knowledge(org_id).order_by(models.OrgKnowledge.last_scraped.desc())
        )
        return [_to_org_entry(row) for row in result]

    async def update_embedding(self, entry_id: uuid.UUID, vector: list[float]) -> None:
        ensure_embedding_dim(vector, self._embedding_dim)
        await self._session.execute(
            update(models.OrgKnowledge)
            .where(models.OrgKnowledge.entry_id == entry_id)
            .values(embedding=list(vector))
        )
        await self._session.commit()
