"""Organization-wide scraped knowledge models."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel


class OrgKnowledgeEntry(BaseModel):
    """One scraped page of organization knowledge."""

    entry_id: UUID
    org_id: UUID
    url: str
    title: str
    content: str
    embedding: list[float] | None = None
    last_scraped: datetime
