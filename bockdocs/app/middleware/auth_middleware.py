"""
middleware/auth_middleware.py — Session-token decorators.

@require_auth:
  1. Reads the Authorization header (expected: "Bearer <token>")
  2. Verifies the JWT signature and expiry
  3. Attaches the Principal to flask.g.principal and its id to flask.g.user_id
  4. Raises the appropriate 401 error if any step fails

@optional_auth:
  Same extraction, but never fails. flask.g.principal is the Principal or
  None. Used by routes that also accept a share token (document save), where
  the service decides whether an absent principal is fatal.

Strict responsibility boundary:
  - This middleware authenticates (401) only.
  - It does NOT perform ownership or share-permission checks. Those belong
    in the service layer (403).

Error codes (require_auth only):
  TOKEN_MISSING  (401) — no Authorization header
  TOKEN_INVALID  (401) — malformed header, invalid signature, or bad payload
  TOKEN_EXPIRED  (401) — valid token but exp claim is in the past
"""

from __future__ import annotations

import functools
from typing import Callable

from flask import g, request

from bockdocs.app.errors import AppError, ErrorCode
from bockdocs.app.services.token_service import (
    decode_session_token,
    parse_bearer_header,
    resolve_principal,
)


def require_auth(f: Callable) -> Callable:
    """
    Route decorator that enforces session authentication.

    Usage:
        @documents_bp.route("/", methods=["GET"])
        @require_auth
        def list_documents():
            principal = g.principal  # always a Principal when this runs
            ...
    """
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        _authenticate_request()
        return f(*args, **kwargs)

    return decorated


def optional_auth(f: Callable) -> Callable:
    """Route decorator that attaches g.principal (possibly None) and never fails."""
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        principal = resolve_principal(request.headers.get("Authorization"))
        g.principal = principal
        g.user_id = principal.id if principal is not None else None
        return f(*args, **kwargs)

    return decorated


def _authenticate_request() -> None:
    """
    Performs the full authentication sequence and sets flask.g.principal.

    Separated from the decorator wrapper for testability.
    Raises AppError on any authentication failure.
    """
    auth_header = request.headers.get("Authorization", "")

    if not auth_header:
        raise AppError(
            ErrorCode.TOKEN_MISSING,
            "Authentication required. Provide a Bearer token in the Authorization header.",
            401,
        )

    raw_token = parse_bearer_header(auth_header)
    if raw_token is None:
        raise AppError(
            ErrorCode.TOKEN_INVALID,
            "Authorization header must be in the format: Bearer <token>.",
            401,
        )

    principal = decode_session_token(raw_token)

    # Services receive the Principal as a plain argument; they never read flask.g.
    g.principal = principal
    g.user_id = principal.id
