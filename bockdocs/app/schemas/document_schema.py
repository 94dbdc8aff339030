"""
schemas/document_schema.py — Marshmallow schemas for document and sharing endpoints.

Validation responsibility:
  - This file: field types, title length, permission values, ttl type.
  - services/document_service.py: ownership, share-token validity, and the
    recipient email format (ownership is checked first, so a non-owner
    learns nothing about the address they sent).

IMPORTANT: Inherits from marshmallow.Schema directly — never ma.Schema.
"""

from __future__ import annotations

from marshmallow import EXCLUDE, Schema, fields, validate

from bockdocs.app.models.share_link import SharePermission

_PERMISSIONS = [p.value for p in SharePermission]

_permission_field = dict(
    required=True,
    validate=validate.OneOf(
        _PERMISSIONS,
        error="permission must be 'view' or 'edit'.",
    ),
)


class CreateDocumentSchema(Schema):
    """
    POST /documents

    A missing or blank title becomes "Untitled Document" in document_store.
    """

    title = fields.Str(load_default=None, allow_none=True, validate=validate.Length(max=255))
    content = fields.Str(load_default="", allow_none=True)


class SaveDocumentSchema(Schema):
    """
    PUT /documents/:id

    title and content are both optional; only the keys sent are written.
    share_token may also arrive as a query parameter; the route merges them.
    Other keys (id, owner_id, timestamps echoed back by a client) are dropped.
    """

    class Meta:
        unknown = EXCLUDE

    title = fields.Str(allow_none=True, validate=validate.Length(max=255))
    content = fields.Str(allow_none=True)
    share_token = fields.Str(load_default=None, allow_none=True)


class CreateShareLinkSchema(Schema):
    """
    POST /documents/:id/share

    ttl_seconds omitted, null, or <= 0 → link never expires.
    """

    permission = fields.Str(**_permission_field)
    ttl_seconds = fields.Int(load_default=None, allow_none=True, strict=True)


class ShareEmailSchema(Schema):
    """
    POST /documents/:id/share/email

    recipient_email is a plain string here; its syntax is checked by
    document_service after the ownership check. A ttl_seconds key is dropped:
    emailed links always live SHARE_EMAIL_TTL_SECONDS.
    """

    class Meta:
        unknown = EXCLUDE

    recipient_email = fields.Str(required=True)
    permission = fields.Str(**_permission_field)
