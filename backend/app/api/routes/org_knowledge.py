"""Organization knowledge endpoints."""

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from backend.app.api.auth import get_current_context
from backend.app.api.dependencies import get_org_knowledge_service
from backend.app.db.context import RequestContext
from backend.app.models.org_knowledge import OrgKnowledgeEntry
from backend.app.org_knowledge.service import OrgKnowledgeService

router = APIRouter(prefix="/org-knowledge", tags=["org-knowledge"])


class OrgKnowledgeResponse(BaseModel):
    entry_id: str
    url: str
    title: str
    content: str
    has_embedding: bool
    last_scraped: datetime

    @classmethod
    def from_entry(cls, entry: OrgKnowledgeEntry) -> "OrgKnowledgeResponse":
        return cls(
            entry_id=str(entry.entry_id),
            url=entry.url,
            title=entry.title,
            content=entry.content,
            has_embedding=entry.embedding is not None,
            last_scraped=entry.last_scraped,
        )


class OrgKnowledgeListResponse(BaseModel):
    entries: list[OrgKnowledgeResponse]


class ScrapeResponse(BaseModel):
    scraped: int
    entries: list[OrgKnowledgeResponse]


@router.get("", response_model=OrgKnowledgeListResponse)
async def list_org_knowledge(
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    service: Annotated[OrgKnowledgeService, Depends(get_org_knowledge_service)],
) -> OrgKnowledgeListResponse:
    entries = await service.list_entries(ctx.org_id)
    return OrgKnowledgeListResponse(entries=[OrgKnowledgeResponse.from_entry(e) for e in entries])


@router.post("/scrape", response_model=ScrapeResponse)
async def scrape_org_knowledge(
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    service: Annotated[OrgKnowledgeService, Depends(get_org_knowledge_service)],
) -> ScrapeResponse:
    """Scrape the organization website and refresh its knowledge entries."""
    entries = await service.scrape(ctx.org_id)
    return ScrapeResponse(
        scraped=len(entries), entries=[OrgKnowledgeResponse.from_entry(e) for e in entries]
    )
