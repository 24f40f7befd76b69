"""Tests for knowledge base operations."""

import uuid
from collections.abc import Callable

import pytest

from backend.app.db.context import RequestContext
from backend.app.db.providers import InMemoryRepositoryProvider
from backend.app.errors import EmptyContentError, ExtractionFailure, NotFoundError
from backend.app.extraction import mime
from backend.app.knowledge.service import KnowledgeService
from backend.app.models.knowledge import KnowledgeSource
from backend.app.tasks import BackgroundTaskRunner


@pytest.mark.asyncio
async def test_upload_extracts_titles_and_embeds(
    knowledge_service: KnowledgeService,
    repos: InMemoryRepositoryProvider,
    tasks: BackgroundTaskRunner,
    ctx: RequestContext,
    make_pdf: Callable[[str], bytes],
) -> None:
    item = await knowledge_service.upload_knowledge_file(
        make_pdf("Procurement guidelines for 2026"), "application/pdf", "proc.pdf", ctx
    )

    assert item.title == "Procurement guidelines for 2026"
    assert item.source == KnowledgeSource.file_upload
    assert item.mime_type == mime.PDF
    assert item.filename == "proc.pdf"
    assert item.owner_id == ctx.user_id

    await tasks.drain()
    stored = await repos.knowledge_repo.get(item.item_id, ctx.user_id)
    assert stored is not None
    assert stored.has_embedding
    assert len(stored.embedding or []) == 768


@pytest.mark.asyncio
async def test_upload_uses_explicit_title(
    knowledge_service: KnowledgeService, ctx: RequestContext
) -> None:
    item = await knowledge_service.upload_knowledge_file(
        b"Some plain notes about onboarding", "text/plain", "notes.txt", ctx, title="Onboarding"
    )

    assert item.title == "Onboarding"


@pytest.mark.asyncio
async def test_upload_raises_when_nothing_extracted(
    knowledge_service: KnowledgeService, ctx: RequestContext
) -> None:
    with pytest.raises(ExtractionFailure) as exc_info:
        await knowledge_service.upload_knowledge_file(
            bytes(range(128, 256)) * 4, "application/pdf", "scan.pdf", ctx
        )

    assert [a.method for a in exc_info.value.attempts][0] == "pdf"
    assert "scan.pdf" in str(exc_info.value)


@pytest.mark.asyncio
async def test_manual_item_requires_content(
    knowledge_service: KnowledgeService, ctx: RequestContext
) -> None:
    with pytest.raises(EmptyContentError):
        await knowledge_service.create_knowledge_item(ctx, "Blank", "   ")


@pytest.mark.asyncio
async def test_search_is_scoped_to_owner(
    knowledge_service: KnowledgeService, ctx: RequestContext, other_ctx: RequestContext
) -> None:
    mine = await knowledge_service.create_knowledge_item(
        ctx, "Vacation policy", "Vacation requests need two weeks notice."
    )
    await knowledge_service.create_knowledge_item(
        other_ctx, "Vacation policy", "Vacation requests need two weeks notice."
    )

    results = await knowledge_service.search_knowledge("vacation requests", ctx)

    assert [r.item.item_id for r in results] == [mine.item_id]
    assert await knowledge_service.search_knowledge("  ", ctx) == []


@pytest.mark.asyncio
async def test_delete_is_scoped_to_owner(
    knowledge_service: KnowledgeService, ctx: RequestContext, other_ctx: RequestContext
) -> None:
    item = await knowledge_service.create_knowledge_item(ctx, "Note", "Remember the audit.")

    with pytest.raises(NotFoundError):
        await knowledge_service.delete_knowledge_item(item.item_id, other_ctx)

    await knowledge_service.delete_knowledge_item(item.item_id, ctx)
    assert await knowledge_service.list_knowledge(ctx) == []

    with pytest.raises(NotFoundError):
        await knowledge_service.delete_knowledge_item(uuid.uuid4(), ctx)


@pytest.mark.asyncio
async def test_stats_count_bytes_and_types(
    knowledge_service: KnowledgeService, ctx: RequestContext
) -> None:
    await knowledge_service.upload_knowledge_file(
        "Café opening hours are 8 to 5".encode(), "text/plain", "cafe.txt", ctx
    )
    await knowledge_service.upload_knowledge_file(
        b"# Handbook\nWelcome to the team", "text/markdown", "handbook.md", ctx
    )
    await knowledge_service.create_knowledge_item(ctx, "Manual", "abc")

    stats = await knowledge_service.get_knowledge_stats(ctx)

    assert stats.total_entries == 3
    assert stats.total_content_bytes == len("Café opening hours are 8 to 5".encode()) + len(
        b"# Handbook\nWelcome to the team"
    ) + 3
    assert stats.counts_by_type == {"plain": 1, "markdown": 1}
    assert mime.PDF in stats.supported_types


@pytest.mark.asyncio
async def test_test_extraction_does_not_store(
    knowledge_service: KnowledgeService, ctx: RequestContext
) -> None:
    result = await knowledge_service.test_extraction(b"dry run text", "text/plain", "dry.txt")

    assert result.success
    assert result.text == "dry run text"
    assert await knowledge_service.list_knowledge(ctx) == []


@pytest.mark.asyncio
async def test_quarterly_budget_review_is_found_by_word_and_phrase(
    knowledge_service: KnowledgeService, ctx: RequestContext
) -> None:
    item = await knowledge_service.upload_knowledge_file(
        b"Quarterly Budget Review\nThe budget for Q3 was approved by the board.",
        mime.PLAIN,
        "q3.txt",
        ctx,
    )
    assert item.title == "Quarterly Budget Review"

    by_word = await knowledge_service.search_knowledge("budget", ctx)
    by_phrase = await knowledge_service.search_knowledge("quarterly budget review", ctx)

    assert [r.item.item_id for r in by_word] == [item.item_id]
    assert by_word[0].score > 0.1
    assert by_word[0].score == pytest.approx(1.4)
    assert by_phrase[0].score == pytest.approx(1.6)
    assert by_word[0].score < by_phrase[0].score


@pytest.mark.asyncio
async def test_search_ignores_higher_scoring_items_of_other_users(
    knowledge_service: KnowledgeService, ctx: RequestContext, other_ctx: RequestContext
) -> None:
    mine = await knowledge_service.create_knowledge_item(
        ctx, "Notes", "Grant deadline is in March."
    )
    await knowledge_service.create_knowledge_item(
        other_ctx, "Grant deadline", "Grant deadline grant deadline grant deadline reminders."
    )

    results = await knowledge_service.search_knowledge("grant deadline", ctx)

    assert [r.item.item_id for r in results] == [mine.item_id]


@pytest.mark.asyncio
async def test_upload_of_binary_prefixed_text_stores_clean_content(
    knowledge_service: KnowledgeService, ctx: RequestContext
) -> None:
    header = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1" + b"\x00" * 16 + b"\x3e\x00\x03\x00\xfe\xff"
    data = header + b"\x00\x00 Quarterly budget review for the finance team and board"

    item = await knowledge_service.upload_knowledge_file(data, mime.PLAIN, "report.txt", ctx)

    assert "\x00" not in item.content
    assert "Quarterly budget review" in item.content
    assert item.title == "Report"
