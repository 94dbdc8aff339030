"""
models/document.py — Document table definition.

No business logic. No imports from services or routes.

FK policy: owner_id ON DELETE CASCADE — documents are destroyed with their
owner. Ownership never transfers; nothing updates owner_id after insert.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bockdocs.app.extensions import db

DEFAULT_TITLE = "Untitled Document"


class Document(db.Model):
    __tablename__ = "documents"

    __table_args__ = (
        # Backs the owner's document list, newest edit first.
        Index("idx_documents_owner_modified", "owner_id", "last_modified"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    owner_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    title: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        default=DEFAULT_TITLE,
    )

    # Opaque text blob. No structure is interpreted server-side.
    content: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    # Set explicitly by the store adapter on every successful write.
    last_modified: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    # ── Relationships ──────────────────────────────────────────────────────

    owner: Mapped["User"] = relationship(  # noqa: F821
        "User",
        back_populates="documents",
    )

    share_links: Mapped[list["ShareLink"]] = relationship(  # noqa: F821
        "ShareLink",
        back_populates="document",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:  # pragma: no cover
        return f"<Document id={self.id} owner_id={self.owner_id} title={self.title!r}>"
