"""Chat document endpoints - upload, list, fetch, delete, similarity search."""

import uuid
from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, File, Query, Response, UploadFile, status
from pydantic import BaseModel

from backend.app.api.auth import get_current_context
from backend.app.api.dependencies import get_document_service
from backend.app.api.routes.knowledge import read_upload
from backend.app.db.context import RequestContext
from backend.app.documents.service import DocumentService
from backend.app.middleware.ratelimit import enforce_upload_rate_limit
from backend.app.models.documents import Document, DocumentStatus

router = APIRouter(prefix="/documents", tags=["documents"])


class DocumentResponse(BaseModel):
    """Document metadata; text is included once extraction is done."""

    doc_id: str
    original_name: str
    mime_type: str
    size_bytes: int
    status: DocumentStatus
    extracted_text: str | None
    error: str | None
    created_at: datetime
    expires_at: datetime
    # Marker the client embeds in a chat message to reference this document
    reference: str

    @classmethod
    def from_document(cls, doc: Document) -> "DocumentResponse":
        return cls(
            doc_id=str(doc.doc_id),
            original_name=doc.original_name,
            mime_type=doc.mime_type,
            size_bytes=doc.size_bytes,
            status=doc.status,
            extracted_text=doc.extracted_text,
            error=doc.error,
            created_at=doc.created_at,
            expires_at=doc.expires_at,
            reference=f"[Document: {doc.original_name} - ID: {doc.doc_id}]",
        )


class DocumentListResponse(BaseModel):
    documents: list[DocumentResponse]


class SimilarDocument(BaseModel):
    document: DocumentResponse
    similarity: float


class SimilarDocumentsResponse(BaseModel):
    query: str
    matches: list[SimilarDocument]


@router.post(
    "",
    response_model=DocumentResponse,
    status_code=status.HTTP_202_ACCEPTED,
    dependencies=[Depends(enforce_upload_rate_limit)],
)
async def upload_document(
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    service: Annotated[DocumentService, Depends(get_document_service)],
    file: Annotated[UploadFile, File()],
) -> DocumentResponse:
    """Accept a chat attachment; text extraction continues in the background."""
    data = await read_upload(file, service.settings.max_upload_bytes)
    doc = await service.upload_document(data, file.content_type, file.filename or "", ctx)
    return DocumentResponse.from_document(doc)


@router.get("", response_model=DocumentListResponse)
async def list_documents(
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    service: Annotated[DocumentService, Depends(get_document_service)],
) -> DocumentListResponse:
    docs = await service.list_documents(ctx)
    return DocumentListResponse(documents=[DocumentResponse.from_document(d) for d in docs])


@router.get("/similar", response_model=SimilarDocumentsResponse)
async def similar_documents(
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    service: Annotated[DocumentService, Depends(get_document_service)],
    query: Annotated[str, Query(max_length=1000)],
    top_k: Annotated[int, Query(ge=1, le=20)] = 5,
) -> SimilarDocumentsResponse:
    matches = await service.find_similar_documents(query, ctx, top_k=top_k)
    return SimilarDocumentsResponse(
        query=query,
        matches=[
            SimilarDocument(document=DocumentResponse.from_document(m.document), similarity=m.similarity)
            for m in matches
        ],
    )


@router.get("/{doc_id}", response_model=DocumentResponse)
async def get_document(
    doc_id: uuid.UUID,
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    service: Annotated[DocumentService, Depends(get_document_service)],
) -> DocumentResponse:
    doc = await service.get_document(doc_id, ctx)
    return DocumentResponse.from_document(doc)


@router.delete("/{doc_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_document(
    doc_id: uuid.UUID,
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    service: Annotated[DocumentService, Depends(get_document_service)],
) -> Response:
    await service.delete_document(doc_id, ctx)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
