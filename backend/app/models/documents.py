"""Transient chat document domain models."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel


class DocumentStatus(str, Enum):
    """Extraction progress of an uploaded chat document."""

    pending = "pending"
    ready = "ready"
    failed = "failed"


class Document(BaseModel):
    """Chat attachment that expires automatically."""

    doc_id: UUID
    owner_id: UUID
    org_id: UUID
    original_name: str
    mime_type: str
    size_bytes: int
    status: DocumentStatus = DocumentStatus.pending
    extracted_text: str | None = None
    error: str | None = None
    embedding: list[float] | None = None
    created_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now


class DocumentMatch(BaseModel):
    """Document with cosine similarity to a query."""

    document: Document
    similarity: float
