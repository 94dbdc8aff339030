"""
models/user.py — User table definition.

No business logic. No imports from services or routes.

An account authenticates by password (password_hash), by Google
(google_id), or both. Neither column is NOT NULL on its own; the pair is
enforced by ck_users_has_auth_method.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bockdocs.app.extensions import db


class User(db.Model):
    __tablename__ = "users"

    __table_args__ = (
        CheckConstraint(
            "email LIKE '%@%'",
            name="ck_users_email_format",
        ),
        CheckConstraint(
            "password_hash IS NOT NULL OR google_id IS NOT NULL",
            name="ck_users_has_auth_method",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    # Always stored lowercase; lookups lowercase their input first.
    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
    )

    # NULL for Google-only accounts.
    password_hash: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )

    # Google "sub" claim.
    google_id: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        unique=True,
    )

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    # Single active reset token; a new request overwrites it.
    reset_token: Mapped[str | None] = mapped_column(
        String(128),
        nullable=True,
        index=True,
    )
    reset_token_expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        onupdate=func.now(),
    )

    # ── Relationships ──────────────────────────────────────────────────────
    # ORM-level cascade mirrors ON DELETE CASCADE so account deletion works on
    # backends that do not enforce foreign keys (SQLite without PRAGMA).

    documents: Mapped[list["Document"]] = relationship(  # noqa: F821
        "Document",
        back_populates="owner",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:  # pragma: no cover
        return f"<User id={self.id} email={self.email!r}>"
