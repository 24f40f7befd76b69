"""Prompt context assembly.

Sections, in order:
1. assistant preamble
2. ranked personal knowledge (truncated previews)
3. the document referenced by a [Document: name - ID: uuid] marker, in full
4. organization knowledge (truncated previews)
5. recent conversation
6. the user question with markers removed
7. closing instruction
"""

import logging
import re
import uuid
from dataclasses import dataclass, field

from backend.app.config import Settings
from backend.app.db.context import RequestContext
from backend.app.documents.service import DocumentService
from backend.app.knowledge.service import KnowledgeService
from backend.app.models.chat import ChatMessage
from backend.app.models.documents import Document, DocumentStatus
from backend.app.org_knowledge.service import OrgKnowledgeService

logger = logging.getLogger(__name__)

DOCUMENT_MARKER = re.compile(r"\[Document:\s*(?P<name>.*?)\s*-\s*ID:\s*(?P<doc_id>[^\]\s]+)\s*\]")

CLOSING_INSTRUCTION = (
    "Please provide a comprehensive response based on the available information. "
    "If you analyze documents, provide specific insights from their content. "
    "If you reference any documents or knowledge base articles, mention them clearly "
    "in your response."
)


@dataclass
class AssembledContext:
    prompt: str
    question: str
    knowledge_item_ids: list[uuid.UUID] = field(default_factory=list)
    document_id: uuid.UUID | None = None


def find_document_reference(message: str) -> uuid.UUID | None:
    """First marker's document id; malformed ids are ignored."""
    for match in DOCUMENT_MARKER.finditer(message):
        try:
            return uuid.UUID(match.group("doc_id"))
        except ValueError:
            logger.debug(f"Ignoring malformed document marker id {match.group('doc_id')!r}")
    return None


def strip_document_markers(message: str) -> str:
    return DOCUMENT_MARKER.sub("", message).strip()


def truncate(text: str, max_chars: int) -> str:
    if len(text) <= max_chars:
        return text
    return text[:max_chars] + "..."


def _document_section(doc: Document) -> list[str]:
    if doc.status == DocumentStatus.ready and doc.extracted_text:
        return [
            "SPECIFIC DOCUMENT TO ANALYZE:",
            f"Document: {doc.original_name}",
            f"Content: {doc.extracted_text}",
            "---",
        ]
    if doc.status == DocumentStatus.failed:
        return [
            f"Document: {doc.original_name}",
            "Text could not be extracted from this document. Tell the user it could not "
            "be read and suggest uploading it in another format.",
            "---",
        ]
    return [
        f"Document: {doc.original_name}",
        "This document is still being processed and its content is not available yet. "
        "Tell the user it will be ready shortly.",
        "---",
    ]


class ContextAssembler:
    def __init__(
        self,
        knowledge: KnowledgeService,
        documents: DocumentService,
        org_knowledge: OrgKnowledgeService,
        settings: Settings,
    ) -> None:
        self.knowledge = knowledge
        self.documents = documents
        self.org_knowledge = org_knowledge
        self.settings = settings

    async def build_context(
        self,
        query: str,
        ctx: RequestContext,
        chat_history: list[ChatMessage] | None = None,
    ) -> str:
        assembled = await self.assemble(query, ctx, chat_history)
        return assembled.prompt

    async def assemble(
        self,
        query: str,
        ctx: RequestContext,
        chat_history: list[ChatMessage] | None = None,
    ) -> AssembledContext:
        settings = self.settings
        question = strip_document_markers(query)
        lines = [
            f"You are {settings.assistant_name}, a helpful AI assistant for your "
            "organization. You are professional, knowledgeable, and provide accurate "
            "information.",
            "",
        ]

        results = await self.knowledge.search_knowledge(
            question, ctx, limit=settings.context_knowledge_limit
        )
        if results:
            lines.append("Relevant knowledge from your knowledge base:")
            for scored in results:
                preview = truncate(scored.item.content, settings.context_preview_chars)
                lines.append(f"- {scored.item.title}: {preview}")
            lines.append("")

        doc_id = find_document_reference(query)
        doc = await self.documents.find_document(doc_id, ctx) if doc_id else None
        if doc is not None:
            lines.extend(_document_section(doc))
            lines.append("")

        entries = await self.org_knowledge.top_entries(ctx.org_id, settings.context_org_limit)
        if entries:
            lines.append("Organization knowledge:")
            for entry in entries:
                lines.append(
                    f"- {entry.title}: {truncate(entry.content, settings.context_preview_chars)}"
                )
            lines.append("")

        history = (chat_history or [])[-settings.context_history_turns :]
        if history and settings.context_history_turns > 0:
            lines.append("Recent conversation:")
            for message in history:
                speaker = "User" if message.role == "user" else "Assistant"
                lines.append(f"{speaker}: {message.content}")
            lines.append("")

        lines.append(f"User question: {question}")
        lines.append("")
        lines.append(CLOSING_INSTRUCTION)

        return AssembledContext(
            prompt="\n".join(lines),
            question=question,
            knowledge_item_ids=[s.item.item_id for s in results],
            document_id=doc.doc_id if doc is not None else None,
        )
