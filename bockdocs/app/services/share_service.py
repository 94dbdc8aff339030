"""
services/share_service.py — Share token registry.

Mints, looks up and validates share links. A share link grants one
permission (view or edit) on one document, optionally until an expiry time,
to anyone holding the token. No account is involved.

Validation order for resolve_share_token() is fixed, and the first failure
wins:
  1. SHARE_TOKEN_NOT_FOUND   (404) — no such token
  2. SHARE_TOKEN_EXPIRED     (403) — expires_at has passed
  3. SHARE_DOCUMENT_MISMATCH (403) — token belongs to another document
  4. INSUFFICIENT_PERMISSION (403) — view token used where edit is required

Expiry is evaluated against the clock on every call; validity is never
cached. Ownership of the document is NOT checked here; document_service
does that before minting.

Layer rules:
  - No Flask imports.
  - Commits are the route's responsibility — only flush here.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta, timezone

from sqlalchemy.orm import Session

from bockdocs.app.errors import AppError, ErrorCode
from bockdocs.app.models.document import Document
from bockdocs.app.models.share_link import SharePermission, ShareLink
from bockdocs.app.services.document_store import find_document_by_id

logger = logging.getLogger(__name__)

_PERMISSION_RANK = {
    SharePermission.VIEW: 0,
    SharePermission.EDIT: 1,
}


# ── Private helpers ────────────────────────────────────────────────────────

def _as_utc(value: datetime) -> datetime:
    """SQLite returns naive datetimes; every stored time is UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _get_link_or_404(token: str, session: Session) -> ShareLink:
    link = session.get(ShareLink, token)
    if link is None:
        raise AppError(
            ErrorCode.SHARE_TOKEN_NOT_FOUND,
            "This share link does not exist.",
            404,
        )
    return link


def _require_not_expired(link: ShareLink, now: datetime) -> None:
    if is_expired(link, now):
        raise AppError(
            ErrorCode.SHARE_TOKEN_EXPIRED,
            "This share link has expired.",
            403,
        )


# ── Public service functions ───────────────────────────────────────────────

def is_expired(link: ShareLink, now: datetime | None = None) -> bool:
    if link.expires_at is None:
        return False
    now = now or datetime.now(timezone.utc)
    return _as_utc(link.expires_at) <= now


def permission_satisfies(granted: SharePermission, required: SharePermission) -> bool:
    """edit satisfies view; view does not satisfy edit."""
    return _PERMISSION_RANK[SharePermission(granted)] >= _PERMISSION_RANK[SharePermission(required)]


def build_share_url(share_base_url: str, token: str) -> str:
    """Frontend URL for humans to open, not an API path."""
    return f"{share_base_url.rstrip('/')}/{token}"


def mint_share_link(
        document_id: int,
        permission: SharePermission | str,
        ttl_seconds: int | None,
        session: Session,
) -> ShareLink:
    """
    Creates a new share link with a fresh random token.

    ttl_seconds of None or <= 0 means the link never expires.
    The caller must already have verified document ownership.
    """
    now = datetime.now(timezone.utc)
    expires_at = None
    if ttl_seconds is not None and ttl_seconds > 0:
        expires_at = now + timedelta(seconds=ttl_seconds)

    link = ShareLink(
        token=str(uuid.uuid4()),
        document_id=document_id,
        permission=SharePermission(permission),
        expires_at=expires_at,
        created_at=now,
    )
    session.add(link)
    session.flush()

    logger.info(
        "Minted %s share link for document %s (expires %s)",
        link.permission.value,
        document_id,
        expires_at.isoformat() if expires_at else "never",
    )
    return link


def lookup_share_token(token: str, session: Session) -> tuple[Document, ShareLink]:
    """
    Existence and expiry only. Any permission level passes.

    Raises:
      AppError(SHARE_TOKEN_NOT_FOUND, 404)
      AppError(SHARE_TOKEN_EXPIRED, 403)
      AppError(DOCUMENT_NOT_FOUND, 404) — never expected; cascade removes links with their document
    """
    link = _get_link_or_404(token, session)
    _require_not_expired(link, datetime.now(timezone.utc))
    document = find_document_by_id(link.document_id, session)
    return document, link


def resolve_share_token(
        token: str,
        expected_document_id: int,
        required_permission: SharePermission,
        session: Session,
) -> tuple[Document, ShareLink]:
    """
    Full validation for using a token against a specific document.
    See module docstring for the check order.
    """
    link = _get_link_or_404(token, session)
    _require_not_expired(link, datetime.now(timezone.utc))

    if link.document_id != expected_document_id:
        raise AppError(
            ErrorCode.SHARE_DOCUMENT_MISMATCH,
            f"This share link does not grant access to document {expected_document_id}.",
            403,
        )

    if not permission_satisfies(link.permission, required_permission):
        raise AppError(
            ErrorCode.INSUFFICIENT_PERMISSION,
            f"This share link grants {SharePermission(link.permission).value} access; "
            f"{SharePermission(required_permission).value} access is required.",
            403,
        )

    document = find_document_by_id(link.document_id, session)
    return document, link


def serialize_share_link(link: ShareLink, share_base_url: str) -> dict:
    return {
        "token": link.token,
        "document_id": link.document_id,
        "permission": SharePermission(link.permission).value,
        "expires_at": link.expires_at.isoformat() if link.expires_at else None,
        "share_url": build_share_url(share_base_url, link.token),
    }
