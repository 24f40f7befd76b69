"""Ownership-scoped select helpers."""

from uuid import UUID

from sqlalchemy import Select, select

from backend.app.db.models import Document, KnowledgeItem, OrgKnowledge


def select_knowledge_items(owner_id: UUID) -> Select[tuple[KnowledgeItem]]:
    """Select knowledge_item rows with owner scoping enforced."""
    return select(KnowledgeItem).where(KnowledgeItem.owner_id == owner_id)


def select_documents(owner_id: UUID) -> Select[tuple[Document]]:
    """Select document rows with owner scoping enforced."""
    return select(Document).where(Document.owner_id == owner_id)


def select_org_knowledge(org_id: UUID) -> Select[tuple[OrgKnowledge]]:
    """Select org_knowledge rows with org scoping enforced."""
    return select(OrgKnowledge).where(OrgKnowledge.org_id == org_id)
