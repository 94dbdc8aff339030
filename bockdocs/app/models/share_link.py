"""
models/share_link.py — ShareLink table definition.

No business logic. No imports from services or routes.

A share link is a capability: whoever holds the token gets `permission` on
one document until `expires_at` (NULL = never). Rows are never updated after
insert, and there is deliberately no user_id column.

FK policy: document_id ON DELETE CASCADE.
"""

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import DateTime, Enum, ForeignKey, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bockdocs.app.extensions import db


class SharePermission(str, enum.Enum):
    """Ordered weakest to strongest; see share_service._PERMISSION_RANK."""
    VIEW = "view"
    EDIT = "edit"


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    """Ensure SQLAlchemy stores enum values (e.g., 'edit'), not names ('EDIT')."""
    return [member.value for member in enum_cls]


class ShareLink(db.Model):
    __tablename__ = "share_links"

    # uuid4 string: 122 random bits.
    token: Mapped[str] = mapped_column(
        String(64),
        primary_key=True,
    )

    document_id: Mapped[int] = mapped_column(
        ForeignKey("documents.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Non-native enum renders as VARCHAR + CHECK(permission IN ('view', 'edit')).
    permission: Mapped[SharePermission] = mapped_column(
        Enum(
            SharePermission,
            name="share_permission",
            native_enum=False,
            create_constraint=True,
            values_callable=_enum_values,
            length=8,
        ),
        nullable=False,
    )

    expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    # ── Relationships ──────────────────────────────────────────────────────

    document: Mapped["Document"] = relationship(  # noqa: F821
        "Document",
        back_populates="share_links",
    )

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<ShareLink document_id={self.document_id} "
            f"permission={self.permission.value} "
            f"expires_at={self.expires_at}>"
        )
