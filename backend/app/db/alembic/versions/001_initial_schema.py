"""Initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-18

Creates:
- knowledge_item
- document
- org_knowledge
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create all tables."""
    op.create_table(
        "knowledge_item",
        sa.Column("item_id", sa.Uuid(), primary_key=True),
        sa.Column("owner_id", sa.Uuid(), nullable=False),
        sa.Column("org_id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("source", sa.Text(), nullable=False),
        sa.Column("filename", sa.Text(), nullable=True),
        sa.Column("mime_type", sa.Text(), nullable=True),
        sa.Column("embedding", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("idx_knowledge_owner_updated", "knowledge_item", ["owner_id", "updated_at"])

    op.create_table(
        "document",
        sa.Column("doc_id", sa.Uuid(), primary_key=True),
        sa.Column("owner_id", sa.Uuid(), nullable=False),
        sa.Column("org_id", sa.Uuid(), nullable=False),
        sa.Column("original_name", sa.Text(), nullable=False),
        sa.Column("mime_type", sa.Text(), nullable=False),
        sa.Column("size_bytes", sa.Integer(), nullable=False),
        sa.Column("status", sa.Text(), nullable=False),
        sa.Column("extracted_text", sa.Text(), nullable=True),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("embedding", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("idx_document_owner_created", "document", ["owner_id", "created_at"])
    op.create_index("idx_document_expires", "document", ["expires_at"])

    op.create_table(
        "org_knowledge",
        sa.Column("entry_id", sa.Uuid(), primary_key=True),
        sa.Column("org_id", sa.Uuid(), nullable=False),
        sa.Column("url", sa.Text(), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("embedding", sa.JSON(), nullable=True),
        sa.Column("last_scraped", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("org_id", "url", name="uq_org_knowledge_url"),
    )


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table("org_knowledge")
    op.drop_index("idx_document_expires", table_name="document")
    op.drop_index("idx_document_owner_created", table_name="document")
    op.drop_table("document")
    op.drop_index("idx_knowledge_owner_updated", table_name="knowledge_item")
    op.drop_table("knowledge_item")
