"""Knowledge item domain models."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field


class KnowledgeSource(str, Enum):
    """Where a knowledge item's content came from."""

    file_upload = "file_upload"
    manual = "manual"
    scraped = "scraped"


class KnowledgeItem(BaseModel):
    """A stored, searchable unit of extracted text scoped to one owner."""

    item_id: UUID
    owner_id: UUID
    org_id: UUID
    title: str
    content: str
    source: KnowledgeSource
    filename: str | None = None
    mime_type: str | None = None
    embedding: list[float] | None = None
    created_at: datetime
    updated_at: datetime

    @property
    def has_embedding(self) -> bool:
        return self.embedding is not None


class ScoredKnowledgeItem(BaseModel):
    """Knowledge item with relevance score."""

    item: KnowledgeItem
    score: float


class KnowledgeStats(BaseModel):
    """Aggregate statistics over one owner's knowledge items."""

    total_entries: int
    total_content_bytes: int
    counts_by_type: dict[str, int] = Field(default_factory=dict)
    supported_types: list[str] = Field(default_factory=list)
