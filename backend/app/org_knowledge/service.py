"""Organization knowledge: scraped pages shared by everyone in an org."""

import logging
import uuid
from datetime import UTC, datetime

from backend.app.config import Settings
from backend.app.db.repositories import RepositoryProvider
from backend.app.embeddings.service import EmbeddingProvider
from backend.app.models.org_knowledge import OrgKnowledgeEntry
from backend.app.org_knowledge.scraper import WebScraper
from backend.app.tasks import BackgroundTaskRunner

logger = logging.getLogger(__name__)


class OrgKnowledgeService:
    def __init__(
        self,
        repos: RepositoryProvider,
        scraper: WebScraper,
        embeddings: EmbeddingProvider,
        tasks: BackgroundTaskRunner,
        settings: Settings,
    ) -> None:
        self.repos = repos
        self.scraper = scraper
        self.embeddings = embeddings
        self.tasks = tasks
        self.settings = settings

    async def scrape(self, org_id: uuid.UUID) -> list[OrgKnowledgeEntry]:
        """Scrape configured pages and upsert one entry per URL."""
        pages = await self.scraper.scrape()
        now = datetime.now(UTC)

        stored: list[OrgKnowledgeEntry] = []
        async with self.repos.org_knowledge() as repo:
            for page in pages:
                entry = await repo.upsert(
                    OrgKnowledgeEntry(
                        entry_id=uuid.uuid4(),
                        org_id=org_id,
                        url=page.url,
                        title=page.title,
                        content=page.content,
                        last_scraped=now,
                    )
                )
                stored.append(entry)

        for entry in stored:
            self.tasks.spawn(
                self._embed_entry(entry.entry_id, entry.content),
                name=f"embed-org-knowledge-{entry.entry_id}",
                timeout_s=self.settings.background_task_timeout_s,
            )

        logger.info(f"Scraped {len(stored)} pages for org {org_id}")
        return stored

    async def list_entries(self, org_id: uuid.UUID) -> list[OrgKnowledgeEntry]:
        async with self.repos.org_knowledge() as repo:
            return await repo.list_by_org(org_id)

    async def top_entries(self, org_id: uuid.UUID, limit: int) -> list[OrgKnowledgeEntry]:
        """Most recently scraped entries first."""
        entries = await self.list_entries(org_id)
        return entries[:limit]

    async def _embed_entry(self, entry_id: uuid.UUID, text: str) -> None:
        vector = await self.embeddings.embed(text)
        async with self.repos.org_knowledge() as repo:
            await repo.update_embedding(entry_id, vector)
