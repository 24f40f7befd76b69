"""Knowledge base endpoints - upload, manual entry, search, stats, delete."""

import uuid
from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, Query, Response, UploadFile, status
from pydantic import BaseModel, Field

from backend.app.api.auth import get_current_context
from backend.app.api.dependencies import get_knowledge_service
from backend.app.db.context import RequestContext
from backend.app.errors import FileTooLargeError
from backend.app.extraction.base import ExtractionResult
from backend.app.knowledge.service import KnowledgeService
from backend.app.middleware.ratelimit import enforce_upload_rate_limit
from backend.app.models.knowledge import KnowledgeItem, KnowledgeSource, KnowledgeStats

router = APIRouter(prefix="/knowledge", tags=["knowledge"])

EXTRACT_PREVIEW_CHARS = 500


class KnowledgeItemResponse(BaseModel):
    """Knowledge item without its embedding vector."""

    item_id: str
    title: str
    content: str
    source: KnowledgeSource
    filename: str | None
    mime_type: str | None
    has_embedding: bool
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_item(cls, item: KnowledgeItem) -> "KnowledgeItemResponse":
        return cls(
            item_id=str(item.item_id),
            title=item.title,
            content=item.content,
            source=item.source,
            filename=item.filename,
            mime_type=item.mime_type,
            has_embedding=item.has_embedding,
            created_at=item.created_at,
            updated_at=item.updated_at,
        )


class KnowledgeListResponse(BaseModel):
    items: list[KnowledgeItemResponse]


class CreateKnowledgeRequest(BaseModel):
    """Request body for POST /knowledge."""

    title: str = Field(..., min_length=1, max_length=200)
    content: str = Field(..., min_length=1)


class SearchMatch(BaseModel):
    item: KnowledgeItemResponse
    score: float


class SearchResponse(BaseModel):
    query: str
    results: list[SearchMatch]


class ExtractionAttemptResponse(BaseModel):
    method: str
    error: str | None


class ExtractionResponse(BaseModel):
    """Dry-run extraction outcome."""

    success: bool
    method_used: str
    chars: int
    preview: str
    error: str | None
    attempts: list[ExtractionAttemptResponse]

    @classmethod
    def from_result(cls, result: ExtractionResult) -> "ExtractionResponse":
        return cls(
            success=result.success,
            method_used=result.method_used,
            chars=len(result.text),
            preview=result.text[:EXTRACT_PREVIEW_CHARS],
            error=result.error,
            attempts=[
                ExtractionAttemptResponse(method=a.method, error=a.error) for a in result.attempts
            ],
        )


async def read_upload(file: UploadFile, max_bytes: int) -> bytes:
    """Read an upload, rejecting it early when the declared size is too large."""
    if file.size is not None and file.size > max_bytes:
        raise FileTooLargeError(file.size, max_bytes)
    return await file.read()


@router.get("", response_model=KnowledgeListResponse)
async def list_knowledge(
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    service: Annotated[KnowledgeService, Depends(get_knowledge_service)],
) -> KnowledgeListResponse:
    items = await service.list_knowledge(ctx)
    return KnowledgeListResponse(items=[KnowledgeItemResponse.from_item(i) for i in items])


@router.get("/stats", response_model=KnowledgeStats)
async def knowledge_stats(
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    service: Annotated[KnowledgeService, Depends(get_knowledge_service)],
) -> KnowledgeStats:
    return await service.get_knowledge_stats(ctx)


@router.get("/search", response_model=SearchResponse)
async def search_knowledge(
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    service: Annotated[KnowledgeService, Depends(get_knowledge_service)],
    query: Annotated[str, Query(max_length=1000)],
    limit: Annotated[int, Query(ge=1, le=50)] = 10,
) -> SearchResponse:
    """Ranked search over the caller's knowledge items."""
    results = await service.search_knowledge(query, ctx, limit=limit)
    return SearchResponse(
        query=query,
        results=[
            SearchMatch(item=KnowledgeItemResponse.from_item(r.item), score=r.score)
            for r in results
        ],
    )


@router.post(
    "/upload",
    response_model=KnowledgeItemResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(enforce_upload_rate_limit)],
)
async def upload_knowledge(
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    service: Annotated[KnowledgeService, Depends(get_knowledge_service)],
    file: Annotated[UploadFile, File()],
    title: Annotated[str | None, Form(max_length=200)] = None,
) -> KnowledgeItemResponse:
    """Upload a file, extract its text and store it as a knowledge item.

    Returns:
        201 with the stored item

    Raises:
        400 empty file, 413 too large, 415 unsupported type,
        422 no text could be extracted, 429 upload quota spent
    """
    data = await read_upload(file, service.settings.max_upload_bytes)
    item = await service.upload_knowledge_file(
        data, file.content_type, file.filename or "", ctx, title=title or None
    )
    return KnowledgeItemResponse.from_item(item)


@router.post("/extract", response_model=ExtractionResponse)
async def test_extraction(
    service: Annotated[KnowledgeService, Depends(get_knowledge_service)],
    file: Annotated[UploadFile, File()],
) -> ExtractionResponse:
    """Run extraction on a file without storing anything."""
    data = await read_upload(file, service.settings.max_upload_bytes)
    result = await service.test_extraction(data, file.content_type, file.filename or "")
    return ExtractionResponse.from_result(result)


@router.post("", response_model=KnowledgeItemResponse, status_code=status.HTTP_201_CREATED)
async def create_knowledge(
    request: CreateKnowledgeRequest,
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    service: Annotated[KnowledgeService, Depends(get_knowledge_service)],
) -> KnowledgeItemResponse:
    item = await service.create_knowledge_item(ctx, request.title, request.content)
    return KnowledgeItemResponse.from_item(item)


@router.delete("/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_knowledge(
    item_id: uuid.UUID,
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    service: Annotated[KnowledgeService, Depends(get_knowledge_service)],
) -> Response:
    """Delete an item; 404 for unknown ids and for other users' items alike."""
    await service.delete_knowledge_item(item_id, ctx)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
