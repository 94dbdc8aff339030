"""
services/document_service.py — Document access control and sharing.

Every entry point resolves the caller's access path once, authorizes it,
then acts through document_store:

  AccessGrant = OwnerGrant(principal)       — session holder who must own the document
              | SharedEditGrant(token)      — anonymous holder of an edit share link

Authorization rules:
  - Create:            principal required (UNAUTHORIZED 401)
  - Read / Delete:     principal required; must own the document (FORBIDDEN 403)
  - List:              principal required; may only list their own documents
  - Save:              share token if supplied (edit permission, same document),
                       otherwise principal + ownership. A supplied share token
                       takes precedence and the principal is not consulted.
  - Share (link/email): owner only

Document ids arrive as raw path strings and are parsed here; a malformed id
fails INVALID_INPUT (400) before any database access.

Concurrency: no version column. Two concurrent saves on one document both
succeed and the later commit wins. This is accepted, not an oversight.

Layer rules:
  - No Flask imports. Config values (share base URL, email TTL) and
    collaborators (mailer) are passed in by the route.
  - Commits are the route's responsibility — only flush here.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Union

from sqlalchemy.orm import Session

from bockdocs.app.errors import AppError, ErrorCode, WarningCode
from bockdocs.app.models.document import Document
from bockdocs.app.models.share_link import SharePermission
from bockdocs.app.models.user import User
from bockdocs.app.services import document_store, share_service
from bockdocs.app.services.email_service import DeliveryResult, DeliveryStatus, EmailDispatcher
from bockdocs.app.services.token_service import Principal

logger = logging.getLogger(__name__)

_DOCUMENT_ID_PATTERN = re.compile(r"^\d+$")

# local-part "@" domain-with-dot
_EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


# ── Access grants ──────────────────────────────────────────────────────────

@dataclass(frozen=True)
class OwnerGrant:
    principal: Principal


@dataclass(frozen=True)
class SharedEditGrant:
    token: str


AccessGrant = Union[OwnerGrant, SharedEditGrant]


@dataclass(frozen=True)
class PendingShareEmail:
    """A share link already flushed, waiting for its notification email."""
    link: dict
    recipient_email: str
    document_title: str
    sharer_name: str


# ── Private helpers ────────────────────────────────────────────────────────

def _require_principal(principal: Principal | None) -> Principal:
    if principal is None:
        raise AppError(
            ErrorCode.UNAUTHORIZED,
            "Authentication required. Sign in or provide a valid share token.",
            401,
        )
    return principal


def _require_owner(document: Document, principal: Principal) -> None:
    if document.owner_id != principal.id:
        raise AppError(
            ErrorCode.FORBIDDEN,
            f"You do not have access to document {document.id}.",
            403,
        )


def _build_document_dict(document: Document) -> dict:
    """Serialises a Document to a plain dict. No business logic."""
    return {
        "id": document.id,
        "owner_id": document.owner_id,
        "title": document.title,
        "content": document.content,
        "created_at": document.created_at.isoformat() if document.created_at else None,
        "last_modified": document.last_modified.isoformat() if document.last_modified else None,
    }


# ── Access path resolution ─────────────────────────────────────────────────

def parse_document_id(raw_id) -> int:
    """
    Parses a path segment into a positive document id.

    Raises AppError(INVALID_INPUT, 400) for anything that is not a plain
    positive integer ("abc", "1.5", "-3", "0").
    """
    text = str(raw_id).strip() if raw_id is not None else ""
    if not _DOCUMENT_ID_PATTERN.match(text) or int(text) <= 0:
        raise AppError(
            ErrorCode.INVALID_INPUT,
            f"'{raw_id}' is not a valid document id.",
            400,
            field="id",
        )
    return int(text)


def choose_access_path(
        principal: Principal | None,
        share_token: str | None,
) -> AccessGrant:
    """A supplied share token wins; otherwise a principal is required."""
    if share_token:
        return SharedEditGrant(token=share_token)
    return OwnerGrant(principal=_require_principal(principal))


def authorize(grant: AccessGrant, document_id: int, session: Session) -> Document:
    """
    The single authorization check for document writes and owner reads.

    SharedEditGrant → share_service.resolve_share_token with edit required;
                      any registry failure propagates unchanged.
    OwnerGrant      → the document must exist and be owned by the principal.
    """
    if isinstance(grant, SharedEditGrant):
        document, _ = share_service.resolve_share_token(
            grant.token,
            expected_document_id=document_id,
            required_permission=SharePermission.EDIT,
            session=session,
        )
        return document

    document = document_store.find_document_by_id(document_id, session)
    _require_owner(document, grant.principal)
    return document


# ── Public service functions ───────────────────────────────────────────────

def create_document(
        principal: Principal | None,
        title: str | None,
        content: str | None,
        session: Session,
) -> dict:
    """Creates a document owned by the caller. There is no share-token path."""
    principal = _require_principal(principal)
    document = document_store.insert_document(
        owner_id=principal.id,
        title=title,
        content=content,
        session=session,
    )
    return _build_document_dict(document)


def get_document(raw_id, principal: Principal | None, session: Session) -> dict:
    """
    Raises:
      AppError(INVALID_INPUT, 400)       — malformed id
      AppError(UNAUTHORIZED, 401)        — no principal
      AppError(DOCUMENT_NOT_FOUND, 404)
      AppError(FORBIDDEN, 403)           — caller is not the owner
    """
    document_id = parse_document_id(raw_id)
    document = authorize(OwnerGrant(_require_principal(principal)), document_id, session)
    return _build_document_dict(document)


def list_documents(
        principal: Principal | None,
        requested_owner_id,
        session: Session,
) -> list[dict]:
    """
    Lists the caller's documents, most recently modified first.

    requested_owner_id is optional; when given it must be the caller's own id
    (FORBIDDEN otherwise).
    """
    principal = _require_principal(principal)

    owner_id = principal.id
    if requested_owner_id is not None:
        try:
            owner_id = int(requested_owner_id)
        except (TypeError, ValueError):
            raise AppError(
                ErrorCode.INVALID_INPUT,
                f"'{requested_owner_id}' is not a valid user id.",
                400,
                field="owner_id",
            )
        if owner_id != principal.id:
            raise AppError(
                ErrorCode.FORBIDDEN,
                "You may only list your own documents.",
                403,
            )

    documents = document_store.find_documents_by_owner(owner_id, session)
    return [_build_document_dict(d) for d in documents]


def save_document(
        raw_id,
        fields: dict,
        principal: Principal | None,
        share_token: str | None,
        session: Session,
) -> dict:
    """
    Partial update of title and/or content.

    Keys absent from `fields` are left unchanged. The access path is chosen
    by choose_access_path(); see module docstring.
    """
    document_id = parse_document_id(raw_id)
    grant = choose_access_path(principal, share_token)
    authorize(grant, document_id, session)

    changes = {key: fields[key] for key in ("title", "content") if key in fields}
    document = document_store.update_document(document_id, changes, session)
    return _build_document_dict(document)


def delete_document(raw_id, principal: Principal | None, session: Session) -> None:
    """Owner only. Share links go with the document."""
    document_id = parse_document_id(raw_id)
    authorize(OwnerGrant(_require_principal(principal)), document_id, session)
    document_store.delete_document(document_id, session)


def create_share_link(
        raw_id,
        principal: Principal | None,
        permission: str,
        ttl_seconds: int | None,
        share_base_url: str,
        session: Session,
) -> dict:
    """
    Owner only. Returns the token and a frontend share URL.
    ttl_seconds of None or <= 0 creates a link that never expires.
    """
    document_id = parse_document_id(raw_id)
    authorize(OwnerGrant(_require_principal(principal)), document_id, session)

    link = share_service.mint_share_link(
        document_id=document_id,
        permission=permission,
        ttl_seconds=ttl_seconds,
        session=session,
    )
    return share_service.serialize_share_link(link, share_base_url)


def get_shared_document(token: str, session: Session) -> dict:
    """
    Anonymous access through a share link of any permission.

    Returns the document plus the link's permission so the client knows
    whether to offer editing.
    """
    document, link = share_service.lookup_share_token(token, session)
    return {
        "document": _build_document_dict(document),
        "permission": SharePermission(link.permission).value,
        "expires_at": link.expires_at.isoformat() if link.expires_at else None,
    }


def share_via_email(
        raw_id,
        principal: Principal | None,
        recipient_email: str,
        permission: str,
        share_base_url: str,
        email_ttl_seconds: int,
        session: Session,
) -> PendingShareEmail:
    """
    Owner only. Mints a link with a fixed lifetime (email_ttl_seconds, 24h by
    default; any client-supplied ttl is ignored) and returns it together
    with what dispatch_share_email() needs.

    The route commits between the two calls so the grant is durable before
    any email leaves.

    Raises:
      AppError(INVALID_INPUT, 400) — recipient_email is not local@domain.tld
    """
    document_id = parse_document_id(raw_id)
    principal = _require_principal(principal)
    document = authorize(OwnerGrant(principal), document_id, session)

    recipient = (recipient_email or "").strip()
    if not _EMAIL_PATTERN.match(recipient):
        raise AppError(
            ErrorCode.INVALID_INPUT,
            f"'{recipient_email}' is not a valid email address.",
            400,
            field="recipient_email",
        )

    link = share_service.mint_share_link(
        document_id=document_id,
        permission=permission,
        ttl_seconds=email_ttl_seconds,
        session=session,
    )

    sharer = session.get(User, principal.id)
    sharer_name = (sharer.name if sharer is not None and sharer.name else None) or principal.email

    return PendingShareEmail(
        link=share_service.serialize_share_link(link, share_base_url),
        recipient_email=recipient,
        document_title=document.title,
        sharer_name=sharer_name,
    )


def dispatch_share_email(
        pending: PendingShareEmail,
        mailer: EmailDispatcher,
) -> tuple[dict, list[dict]]:
    """
    Sends the notification for an already-committed share link.

    Never raises. The share link stands whatever happens to the email.

    Returns:
        (data, warnings). data carries the link plus email_delivery
        {status, reason?}. warnings holds one EMAIL_NOT_SENT entry when the
        recipient was not notified and the link must be relayed by hand.
    """
    try:
        delivery: DeliveryResult = mailer.send_share_notification(
            to_email=pending.recipient_email,
            share_url=pending.link["share_url"],
            document_title=pending.document_title,
            sharer_name=pending.sharer_name,
            permission=pending.link["permission"],
        )
    except Exception:
        logger.exception("Share email to %s raised unexpectedly", pending.recipient_email)
        delivery = DeliveryResult(DeliveryStatus.FAILED, reason="Email delivery failed.")

    warnings: list[dict] = []
    if not delivery.delivered:
        warnings.append({
            "code": WarningCode.EMAIL_NOT_SENT,
            "message": (
                "The share link was created but the notification email was not sent. "
                "Send the link to the recipient yourself."
            ),
        })

    data = {
        **pending.link,
        "recipient_email": pending.recipient_email,
        "email_delivery": delivery.to_dict(),
    }
    return data, warnings
