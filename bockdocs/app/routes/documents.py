"""
routes/documents.py — Document and share-link route handlers.

Layer rules:
  - Parse, validate, call ONE service, commit, return envelope.
  - No business logic. No DB queries.

Document ids are routed as strings (<string:document_id>) so a malformed id
reaches document_service and fails INVALID_INPUT (400) instead of a routing
404.

Special: share/email returns (data, warnings[]).
  The link is committed BEFORE the email is attempted. If the email is not
  delivered, an EMAIL_NOT_SENT warning is included and the status is still 201.

Endpoints (url_prefix=/api/v1/documents):
  POST   /documents                    → 201  create
  GET    /documents                    → 200  list own documents
  GET    /documents/:id                → 200  owner read
  PUT    /documents/:id                → 200  save (owner or edit share token)
  DELETE /documents/:id                → 200  owner delete
  POST   /documents/:id/share          → 201  mint share link
  POST   /documents/:id/share/email    → 201  mint 24h link and email it
"""

from __future__ import annotations

from flask import Blueprint, current_app, g, jsonify, request

from bockdocs.app.extensions import db
from bockdocs.app.middleware.auth_middleware import optional_auth, require_auth
from bockdocs.app.schemas.document_schema import (
    CreateDocumentSchema,
    CreateShareLinkSchema,
    SaveDocumentSchema,
    ShareEmailSchema,
)
from bockdocs.app.services import document_service

documents_bp = Blueprint("documents", __name__)


@documents_bp.route("", methods=["POST"])
@require_auth
def create_document():
    data = CreateDocumentSchema().load(request.get_json(force=True, silent=True) or {})
    result = document_service.create_document(
        principal=g.principal,
        title=data.get("title"),
        content=data.get("content"),
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 201


@documents_bp.route("", methods=["GET"])
@require_auth
def list_documents():
    """GET /documents[?owner_id=] — Caller's documents, newest first."""
    result = document_service.list_documents(
        principal=g.principal,
        requested_owner_id=request.args.get("owner_id"),
        session=db.session,
    )
    return jsonify({"data": result, "warnings": []}), 200


@documents_bp.route("/<string:document_id>", methods=["GET"])
@require_auth
def get_document(document_id: str):
    result = document_service.get_document(
        raw_id=document_id,
        principal=g.principal,
        session=db.session,
    )
    return jsonify({"data": result, "warnings": []}), 200


@documents_bp.route("/<string:document_id>", methods=["PUT"])
@optional_auth
def save_document(document_id: str):
    """
    PUT /documents/:id — Partial save of title and/or content.

    share_token may be sent in the body or as ?share_token=. When present it
    decides access on its own; an Authorization header is then ignored.
    """
    data = SaveDocumentSchema().load(request.get_json(force=True, silent=True) or {})
    share_token = data.pop("share_token", None) or request.args.get("share_token")

    result = document_service.save_document(
        raw_id=document_id,
        fields=data,
        principal=g.principal,
        share_token=share_token,
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 200


@documents_bp.route("/<string:document_id>", methods=["DELETE"])
@require_auth
def delete_document(document_id: str):
    document_service.delete_document(
        raw_id=document_id,
        principal=g.principal,
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": {"message": "Document deleted."}, "warnings": []}), 200


@documents_bp.route("/<string:document_id>/share", methods=["POST"])
@require_auth
def create_share_link(document_id: str):
    """POST /documents/:id/share — Mint a view or edit link."""
    data = CreateShareLinkSchema().load(request.get_json(force=True, silent=True) or {})
    result = document_service.create_share_link(
        raw_id=document_id,
        principal=g.principal,
        permission=data["permission"],
        ttl_seconds=data.get("ttl_seconds"),
        share_base_url=current_app.config["SHARE_BASE_URL"],
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 201


@documents_bp.route("/<string:document_id>/share/email", methods=["POST"])
@require_auth
def share_via_email(document_id: str):
    """
    POST /documents/:id/share/email — Mint a 24-hour link and email it.

    Any ttl in the body is ignored; the lifetime is SHARE_EMAIL_TTL_SECONDS.
    """
    data = ShareEmailSchema().load(request.get_json(force=True, silent=True) or {})
    pending = document_service.share_via_email(
        raw_id=document_id,
        principal=g.principal,
        recipient_email=data["recipient_email"],
        permission=data["permission"],
        share_base_url=current_app.config["SHARE_BASE_URL"],
        email_ttl_seconds=current_app.config["SHARE_EMAIL_TTL_SECONDS"],
        session=db.session,
    )
    db.session.commit()

    result, warnings = document_service.dispatch_share_email(
        pending,
        mailer=current_app.extensions["email_dispatcher"],
    )
    return jsonify({"data": result, "warnings": warnings}), 201
