"""Knowledge base operations: upload, manual entry, search, stats, delete."""

import logging
import uuid
from datetime import UTC, datetime

from backend.app.config import Settings
from backend.app.db.context import RequestContext
from backend.app.db.repositories import RepositoryProvider, ensure_content
from backend.app.embeddings.service import EmbeddingProvider
from backend.app.errors import ExtractionFailure
from backend.app.extraction.base import ExtractionResult
from backend.app.extraction.engine import ExtractionEngine
from backend.app.extraction.mime import resolve_mime_type
from backend.app.knowledge.ranking import RankingConfig, rank_items
from backend.app.knowledge.titles import generate_title
from backend.app.models.knowledge import (
    KnowledgeItem,
    KnowledgeSource,
    KnowledgeStats,
    ScoredKnowledgeItem,
)
from backend.app.tasks import BackgroundTaskRunner
from backend.app.utils.metrics import PrometheusPipelineMetrics, get_metrics

logger = logging.getLogger(__name__)


class KnowledgeService:
    """Owner-scoped knowledge base built on the extraction engine.

    Embeddings are computed after the item is stored, in the background;
    an item is searchable lexically as soon as create returns.
    """

    def __init__(
        self,
        repos: RepositoryProvider,
        extraction: ExtractionEngine,
        embeddings: EmbeddingProvider,
        tasks: BackgroundTaskRunner,
        settings: Settings,
        metrics: PrometheusPipelineMetrics | None = None,
    ) -> None:
        self.repos = repos
        self.extraction = extraction
        self.embeddings = embeddings
        self.tasks = tasks
        self.settings = settings
        self.ranking = RankingConfig(
            word_cap_mode=settings.word_cap_mode,
            semantic_weight=settings.semantic_weight,
        )
        self._metrics = metrics or get_metrics()

    async def upload_knowledge_file(
        self,
        data: bytes,
        mime_type: str | None,
        filename: str,
        ctx: RequestContext,
        title: str | None = None,
    ) -> KnowledgeItem:
        """Extract text from an uploaded file and store it.

        Raises:
            ValidationError: Empty, oversized, unsafe name or unsupported type
            ExtractionFailure: Every extraction strategy failed
        """
        result = await self.extraction.extract(data, mime_type, filename)
        if not result.success:
            raise ExtractionFailure(filename, list(result.attempts))

        logger.info(
            f"Extracted {len(result.text)} chars from {filename} using {result.method_used}"
        )
        item = await self._store(
            ctx,
            title=title or generate_title(filename, result.text),
            content=result.text,
            source=KnowledgeSource.file_upload,
            filename=filename,
            mime_type=resolve_mime_type(mime_type, filename),
        )
        return item

    async def create_knowledge_item(
        self,
        ctx: RequestContext,
        title: str,
        content: str,
        source: KnowledgeSource = KnowledgeSource.manual,
    ) -> KnowledgeItem:
        ensure_content(content)
        return await self._store(ctx, title=title.strip() or "Untitled", content=content, source=source)

    async def list_knowledge(self, ctx: RequestContext) -> list[KnowledgeItem]:
        async with self.repos.knowledge() as repo:
            return await repo.list_by_owner(ctx.user_id)

    async def delete_knowledge_item(self, item_id: uuid.UUID, ctx: RequestContext) -> None:
        """Raises NotFoundError for missing or foreign items."""
        async with self.repos.knowledge() as repo:
            await repo.delete(item_id, ctx.user_id)
        logger.info(f"Deleted knowledge item {item_id}")

    async def search_knowledge(
        self, query: str, ctx: RequestContext, limit: int = 10
    ) -> list[ScoredKnowledgeItem]:
        if not query.strip():
            return []

        async with self.repos.knowledge() as repo:
            items = await repo.list_by_owner(ctx.user_id)

        query_embedding = None
        if items and self.ranking.semantic_weight > 0:
            query_embedding = await self.embeddings.embed(query)

        results = rank_items(
            items, query, limit=limit, config=self.ranking, query_embedding=query_embedding
        )
        self._metrics.record_search(len(results))
        return results

    async def get_knowledge_stats(self, ctx: RequestContext) -> KnowledgeStats:
        async with self.repos.knowledge() as repo:
            return await repo.stats(ctx.user_id)

    async def test_extraction(
        self, data: bytes, mime_type: str | None, filename: str
    ) -> ExtractionResult:
        """Run extraction without storing anything."""
        return await self.extraction.extract(data, mime_type, filename)

    async def _store(
        self,
        ctx: RequestContext,
        *,
        title: str,
        content: str,
        source: KnowledgeSource,
        filename: str | None = None,
        mime_type: str | None = None,
    ) -> KnowledgeItem:
        now = datetime.now(UTC)
        item = KnowledgeItem(
            item_id=uuid.uuid4(),
            owner_id=ctx.user_id,
            org_id=ctx.org_id,
            title=title,
            content=content,
            source=source,
            filename=filename,
            mime_type=mime_type,
            created_at=now,
            updated_at=now,
        )
        async with self.repos.knowledge() as repo:
            await repo.create(item)

        self.tasks.spawn(
            self._embed_item(item.item_id, item.content),
            name=f"embed-knowledge-{item.item_id}",
            timeout_s=self.settings.background_task_timeout_s,
        )
        return item

    async def _embed_item(self, item_id: uuid.UUID, text: str) -> None:
        vector = await self.embeddings.embed(text)
        async with self.repos.knowledge() as repo:
            await repo.update_embedding(item_id, vector)
        logger.info(f"Stored embedding for knowledge item {item_id}")
