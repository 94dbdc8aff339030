"""
services/token_service.py — Session tokens and the Principal type.

Session token design:
  - JWT, HS256, claims: sub (user id as str), email, iat, exp, jti.
  - TTL from JWT_ACCESS_TOKEN_EXPIRES (default 7 days).
  - Stateless: nothing is stored server-side, logout is client-side.

Two ways to read a token:
  decode_session_token()  — strict; raises TOKEN_INVALID / TOKEN_EXPIRED.
                            Used by @require_auth.
  resolve_principal()     — lenient; any problem yields None.
                            Used by @optional_auth, where a share token may
                            stand in for the session.

current_app.config is read for the secret and TTL only, the same way
auth_service reads BCRYPT_LOG_ROUNDS.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import datetime, timezone

import jwt
from flask import current_app

from bockdocs.app.errors import AppError, ErrorCode


@dataclass(frozen=True)
class Principal:
    """An authenticated caller, as carried by a verified session token."""
    id: int
    email: str


def issue_session_token(user_id: int, email: str) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "email": email,
        "iat": now,
        "exp": now + current_app.config["JWT_ACCESS_TOKEN_EXPIRES"],
        # Guarantees each issued token is unique even if generated in the same second.
        "jti": secrets.token_hex(8),
    }
    return jwt.encode(
        payload,
        current_app.config["JWT_SECRET_KEY"],
        algorithm=current_app.config.get("JWT_ALGORITHM", "HS256"),
    )


def decode_session_token(raw_token: str) -> Principal:
    """
    Verifies signature and expiry and returns the Principal.

    Raises:
      AppError(TOKEN_EXPIRED, 401) — valid token past its exp claim
      AppError(TOKEN_INVALID, 401) — bad signature, malformed, or bad claims
    """
    try:
        payload = jwt.decode(
            raw_token,
            current_app.config["JWT_SECRET_KEY"],
            algorithms=[current_app.config.get("JWT_ALGORITHM", "HS256")],
        )
    except jwt.ExpiredSignatureError:
        raise AppError(
            ErrorCode.TOKEN_EXPIRED,
            "The session token has expired. Sign in again.",
            401,
        )
    except jwt.InvalidTokenError:
        raise AppError(
            ErrorCode.TOKEN_INVALID,
            "The session token is invalid or has been tampered with.",
            401,
        )

    sub = payload.get("sub")
    if sub is None:
        raise AppError(
            ErrorCode.TOKEN_INVALID,
            "The session token is missing the required 'sub' claim.",
            401,
        )

    try:
        user_id = int(sub)
    except (TypeError, ValueError):
        raise AppError(
            ErrorCode.TOKEN_INVALID,
            "The 'sub' claim in the session token is not a valid user ID.",
            401,
        )

    return Principal(id=user_id, email=str(payload.get("email") or ""))


def parse_bearer_header(auth_header: str | None) -> str | None:
    """Returns the token from 'Bearer <token>', or None if the header has another shape."""
    if not auth_header:
        return None
    parts = auth_header.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    return parts[1]


def resolve_principal(auth_header: str | None) -> Principal | None:
    """
    Authorization header → Principal, or None.

    Never raises for a missing, malformed, invalid or expired token. Callers
    that need authentication reject a None principal themselves.
    """
    raw_token = parse_bearer_header(auth_header)
    if raw_token is None:
        return None
    try:
        return decode_session_token(raw_token)
    except AppError:
        return None
