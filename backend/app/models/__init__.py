"""Models package - re-exports for convenience."""

from backend.app.models.chat import ChatAnswer, ChatMessage, GenerationParams
from backend.app.models.documents import Document, DocumentMatch, DocumentStatus
from backend.app.models.knowledge import (
    KnowledgeItem,
    KnowledgeSource,
    KnowledgeStats,
    ScoredKnowledgeItem,
)
from backend.app.models.org_knowledge import OrgKnowledgeEntry

__all__ = [
    # Knowledge
    "KnowledgeItem",
    "KnowledgeSource",
    "KnowledgeStats",
    "ScoredKnowledgeItem",
    # Documents
    "Document",
    "DocumentMatch",
    "DocumentStatus",
    # Org knowledge
    "OrgKnowledgeEntry",
    # Chat
    "ChatAnswer",
    "ChatMessage",
    "GenerationParams",
]
