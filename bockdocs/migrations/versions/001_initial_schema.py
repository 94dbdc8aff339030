"""Initial schema — users, documents, share_links.

Revision: 001_initial_schema
Created:  2026-10-18

Append-only:
  This file must NEVER be edited after it has been applied to any database.
  If a schema change is required, create a NEW migration file.

Creation order:
  users → documents → share_links (FK dependency order), then indexes.

ON DELETE policies:
  documents.owner_id       → CASCADE  (account deletion removes its documents)
  share_links.document_id  → CASCADE  (document deletion removes its links)

share_links.permission is a VARCHAR with a CHECK constraint rather than a
PostgreSQL enum type, so the same DDL runs on SQLite in tests.
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

# ── Alembic revision identifiers ──────────────────────────────────────────
revision: str = "001_initial_schema"
down_revision: str | None = None      # first migration — no parent
branch_labels: tuple | None = None
depends_on: tuple | None = None


def upgrade() -> None:

    # ── users ──────────────────────────────────────────────────────────────
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=True),
        sa.Column("google_id", sa.String(255), nullable=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("reset_token", sa.String(128), nullable=True),
        sa.Column("reset_token_expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
        sa.UniqueConstraint("email", name="uq_users_email"),
        sa.UniqueConstraint("google_id", name="uq_users_google_id"),
        sa.CheckConstraint(
            "email LIKE '%@%'",
            name="ck_users_email_format",
        ),
        sa.CheckConstraint(
            "password_hash IS NOT NULL OR google_id IS NOT NULL",
            name="ck_users_has_auth_method",
        ),
    )

    # ── documents ──────────────────────────────────────────────────────────
    op.create_table(
        "documents",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("owner_id", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("content", sa.Text(), nullable=False, server_default=""),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "last_modified",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_documents"),
        sa.ForeignKeyConstraint(
            ["owner_id"],
            ["users.id"],
            name="fk_documents_owner_id",
            ondelete="CASCADE",
        ),
    )

    # ── share_links ────────────────────────────────────────────────────────
    op.create_table(
        "share_links",
        sa.Column("token", sa.String(64), nullable=False),
        sa.Column("document_id", sa.Integer(), nullable=False),
        sa.Column("permission", sa.String(8), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.PrimaryKeyConstraint("token", name="pk_share_links"),
        sa.ForeignKeyConstraint(
            ["document_id"],
            ["documents.id"],
            name="fk_share_links_document_id",
            ondelete="CASCADE",
        ),
        sa.CheckConstraint(
            "permission IN ('view', 'edit')",
            name="share_permission",
        ),
    )

    # ── Indexes ────────────────────────────────────────────────────────────
    op.create_index("ix_users_reset_token", "users", ["reset_token"])
    op.create_index("ix_documents_owner_id", "documents", ["owner_id"])
    op.create_index(
        "idx_documents_owner_modified",
        "documents",
        ["owner_id", "last_modified"],
    )
    op.create_index("ix_share_links_document_id", "share_links", ["document_id"])


def downgrade() -> None:
    """Drop everything in reverse dependency order. Local development only."""
    op.drop_index("ix_share_links_document_id",   table_name="share_links")
    op.drop_index("idx_documents_owner_modified", table_name="documents")
    op.drop_index("ix_documents_owner_id",        table_name="documents")
    op.drop_index("ix_users_reset_token",         table_name="users")

    op.drop_table("share_links")
    op.drop_table("documents")
    op.drop_table("users")
