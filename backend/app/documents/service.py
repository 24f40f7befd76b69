"""Transient chat documents: upload, background processing, lookup, expiry."""

import asyncio
import logging
import uuid
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from backend.app.config import Settings
from backend.app.db.context import RequestContext
from backend.app.db.repositories import RepositoryProvider
from backend.app.embeddings.service import EmbeddingProvider
from backend.app.embeddings.similarity import cosine_similarity
from backend.app.errors import NotFoundError
from backend.app.extraction.engine import ExtractionEngine
from backend.app.models.documents import Document, DocumentMatch, DocumentStatus
from backend.app.tasks import BackgroundTaskRunner

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(UTC)


class DocumentService:
    """Chat attachments that are processed off the request path and expire.

    Upload returns a pending document immediately; extraction and embedding
    run as a background task that moves it to ready or failed.
    """

    def __init__(
        self,
        repos: RepositoryProvider,
        extraction: ExtractionEngine,
        embeddings: EmbeddingProvider,
        tasks: BackgroundTaskRunner,
        settings: Settings,
        now_fn: Callable[[], datetime] = utc_now,
    ) -> None:
        self.repos = repos
        self.extraction = extraction
        self.embeddings = embeddings
        self.tasks = tasks
        self.settings = settings
        self._now = now_fn

    async def upload_document(
        self, data: bytes, mime_type: str | None, filename: str, ctx: RequestContext
    ) -> Document:
        """Validate and store a pending document, then schedule processing.

        Raises:
            ValidationError: Same checks as knowledge uploads
        """
        effective_mime = self.extraction.validate(data, mime_type, filename)
        now = self._now()
        doc = Document(
            doc_id=uuid.uuid4(),
            owner_id=ctx.user_id,
            org_id=ctx.org_id,
            original_name=filename,
            mime_type=effective_mime,
            size_bytes=len(data),
            status=DocumentStatus.pending,
            created_at=now,
            expires_at=now + timedelta(hours=self.settings.document_ttl_hours),
        )
        async with self.repos.documents() as repo:
            await repo.create(doc)

        self.tasks.spawn(
            self._process(doc.doc_id, data, effective_mime, filename),
            name=f"process-document-{doc.doc_id}",
            timeout_s=self.settings.document_processing_timeout_s
            + self.settings.background_task_timeout_s,
        )
        logger.info(f"Accepted document {doc.doc_id} ({filename}, {len(data)} bytes)")
        return doc

    async def _process(self, doc_id: uuid.UUID, data: bytes, mime_type: str, filename: str) -> None:
        try:
            result = await asyncio.wait_for(
                self.extraction.extract(data, mime_type, filename),
                timeout=self.settings.document_processing_timeout_s,
            )
        except TimeoutError:
            async with self.repos.documents() as repo:
                await repo.mark_failed(doc_id, "Document processing timed out")
            logger.warning(f"Processing timed out for document {doc_id}")
            return

        if not result.success:
            async with self.repos.documents() as repo:
                await repo.mark_failed(doc_id, result.error or "No text could be extracted")
            logger.warning(f"Extraction failed for document {doc_id}: {result.error}")
            return

        async with self.repos.documents() as repo:
            await repo.mark_ready(doc_id, result.text)
        logger.info(f"Document {doc_id} ready via {result.method_used}")

        vector = await self.embeddings.embed(result.text)
        async with self.repos.documents() as repo:
            await repo.update_embedding(doc_id, vector)

    async def list_documents(self, ctx: RequestContext) -> list[Document]:
        async with self.repos.documents() as repo:
            return await repo.list_by_owner(ctx.user_id)

    async def find_document(self, doc_id: uuid.UUID, ctx: RequestContext) -> Document | None:
        async with self.repos.documents() as repo:
            return await repo.get(doc_id, ctx.user_id)

    async def get_document(self, doc_id: uuid.UUID, ctx: RequestContext) -> Document:
        doc = await self.find_document(doc_id, ctx)
        if doc is None:
            raise NotFoundError(f"Document {doc_id} not found")
        return doc

    async def delete_document(self, doc_id: uuid.UUID, ctx: RequestContext) -> None:
        async with self.repos.documents() as repo:
            await repo.delete(doc_id, ctx.user_id)

    async def find_similar_documents(
        self, query: str, ctx: RequestContext, top_k: int = 5
    ) -> list[DocumentMatch]:
        """Owner's documents ordered by cosine similarity to the query.

        Documents without an embedding, or with one of a different length,
        are skipped.
        """
        if not query.strip() or top_k <= 0:
            return []

        docs = await self.list_documents(ctx)
        candidates = [d for d in docs if d.embedding is not None]
        if not candidates:
            return []

        query_embedding = await self.embeddings.embed(query)
        matches = [
            DocumentMatch(document=d, similarity=cosine_similarity(query_embedding, d.embedding))
            for d in candidates
            if len(d.embedding) == len(query_embedding)
        ]
        matches.sort(key=lambda m: m.similarity, reverse=True)
        return matches[:top_k]

    async def purge_expired(self, now: datetime | None = None) -> int:
        """Delete every expired document across all owners."""
        async with self.repos.documents() as repo:
            removed = await repo.delete_expired(now or self._now())
        if removed:
            logger.info(f"Purged {removed} expired documents")
        return removed
