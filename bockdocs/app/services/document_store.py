"""
services/document_store.py — Document CRUD against the database.

Thin persistence boundary. No authorization happens here; callers decide who
may touch which document before calling in.

Contract:
  - find_document_by_id() never returns None. A missing id raises
    DOCUMENT_NOT_FOUND (404).
  - delete_document() on a missing id raises DOCUMENT_NOT_FOUND rather than
    reporting success.
  - Every write advances last_modified.

Layer rules:
  - No Flask imports.
  - Commits are the route's responsibility — only flush here.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session

from bockdocs.app.errors import AppError, ErrorCode
from bockdocs.app.models.document import DEFAULT_TITLE, Document


def normalize_title(title: str | None) -> str:
    """Blank or missing titles become DEFAULT_TITLE."""
    if title is None or not title.strip():
        return DEFAULT_TITLE
    return title


def insert_document(
        owner_id: int,
        title: str | None,
        content: str | None,
        session: Session,
) -> Document:
    now = datetime.now(timezone.utc)
    document = Document(
        owner_id=owner_id,
        title=normalize_title(title),
        content=content or "",
        created_at=now,
        last_modified=now,
    )
    session.add(document)
    session.flush()  # populate document.id
    return document


def find_document_by_id(document_id: int, session: Session) -> Document:
    """Returns the Document or raises DOCUMENT_NOT_FOUND (404)."""
    document = session.get(Document, document_id)
    if document is None:
        raise AppError(
            ErrorCode.DOCUMENT_NOT_FOUND,
            f"Document {document_id} does not exist.",
            404,
        )
    return document


def find_documents_by_owner(owner_id: int, session: Session) -> list[Document]:
    """All documents owned by owner_id, most recently modified first."""
    stmt = (
        select(Document)
        .where(Document.owner_id == owner_id)
        .order_by(Document.last_modified.desc(), Document.id.desc())
    )
    return list(session.execute(stmt).scalars().all())


def update_document(document_id: int, fields: dict, session: Session) -> Document:
    """
    Partial update. Only keys present in `fields` are written; anything
    omitted keeps its stored value. Only title and content are writable;
    owner_id never changes after insert.
    """
    document = find_document_by_id(document_id, session)

    if "title" in fields:
        document.title = normalize_title(fields["title"])
    if "content" in fields:
        document.content = fields["content"] if fields["content"] is not None else ""

    document.last_modified = datetime.now(timezone.utc)
    session.flush()
    return document


def delete_document(document_id: int, session: Session) -> None:
    """Deletes the document and, via ORM cascade, its share links."""
    document = find_document_by_id(document_id, session)
    session.delete(document)
    session.flush()
