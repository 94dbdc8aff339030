"""
routes/shared.py — Anonymous share-link access.

Endpoints (url_prefix=/api/v1/shared):
  GET    /shared/:token  → 200  document + link permission (view or edit)

No Authorization header is read. The token alone grants access.
Saving through an edit link goes to PUT /documents/:id with share_token.
"""

from __future__ import annotations

from flask import Blueprint, jsonify

from bockdocs.app.extensions import db
from bockdocs.app.services import document_service

shared_bp = Blueprint("shared", __name__)


@shared_bp.route("/<string:token>", methods=["GET"])
def get_shared_document(token: str):
    result = document_service.get_shared_document(
        token=token,
        session=db.session,
    )
    return jsonify({"data": result, "warnings": []}), 200
