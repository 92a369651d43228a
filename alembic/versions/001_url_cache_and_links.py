"""Create url_cache and links tables.

Revision ID: 001_url_cache_and_links
Revises:
Create Date: 2026-10-19
"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

revision: str = "001_url_cache_and_links"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Durable canonical-URL cache plus the link record with enrichment lifecycle columns."""
    op.create_table(
        "url_cache",
        sa.Column("id", sa.BigInteger(), sa.Identity(), nullable=False),
        sa.Column("original_url", sa.Text(), nullable=False),
        sa.Column("canonical_url", sa.Text(), nullable=False),
        sa.Column(
            "redirect_chain",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column("resolved_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("NOW()"), nullable=False),
        sa.Column("expires_at", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("original_url", name="uq_url_cache_original_url"),
    )
    op.create_index("ix_url_cache_expires_at", "url_cache", ["expires_at"], unique=False)
    op.create_index("ix_url_cache_canonical_url", "url_cache", ["canonical_url"], unique=False)

    op.create_table(
        "links",
        sa.Column("id", postgresql.UUID(as_uuid=True), server_default=sa.text("gen_random_uuid()"), nullable=False),
        sa.Column("original_url", sa.Text(), nullable=False),
        sa.Column("canonical_url", sa.Text(), nullable=False),
        sa.Column("domain", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("title", sa.Text(), nullable=True),
        sa.Column("fallback_title", sa.Text(), nullable=True),
        sa.Column("fallback_title_source", sa.String(length=32), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("author", sa.String(length=200), nullable=True),
        sa.Column("image_url", sa.Text(), nullable=True),
        sa.Column("published_at", sa.Text(), nullable=True),
        sa.Column("enrichment_status", sa.String(length=16), nullable=False, server_default="pending"),
        sa.Column("enrichment_source", sa.String(length=32), nullable=True),
        sa.Column("enrichment_retry_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("enrichment_error", sa.Text(), nullable=True),
        sa.Column("enrichment_last_attempt", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("is_blocked", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("blocked_reason", sa.String(length=32), nullable=True),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("NOW()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("canonical_url", name="uq_links_canonical_url"),
    )
    op.create_index(
        "ix_links_enrichment_pending",
        "links",
        ["enrichment_status", "enrichment_retry_count"],
        unique=False,
    )
    op.create_index("ix_links_domain", "links", ["domain"], unique=False)


def downgrade() -> None:
    """Drop links and url_cache."""
    op.drop_index("ix_links_domain", table_name="links")
    op.drop_index("ix_links_enrichment_pending", table_name="links")
    op.drop_table("links")
    op.drop_index("ix_url_cache_canonical_url", table_name="url_cache")
    op.drop_index("ix_url_cache_expires_at", table_name="url_cache")
    op.drop_table("url_cache")
