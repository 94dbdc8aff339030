"""
services/auth_service.py — Account management.

Responsibilities:
  - Password sign-up and sign-in (bcrypt)
  - Google sign-in and account linking
  - Password reset (request + complete)
  - Profile update, password change, account deletion
  - Session token issuance via token_service

Layer rules:
  - No imports from routes or schemas
  - No use of flask.request, flask.g, or HTTP status codes beyond AppError
  - current_app.config is used ONLY to read BCRYPT_LOG_ROUNDS and, through
    token_service, the JWT secret and expiry.

Enumeration resistance:
  - sign_in() uses one INVALID_CREDENTIALS message for an unknown email and a
    wrong password.
  - request_password_reset() answers the same way whether or not the email
    is registered, and creates no token for unknown or password-less accounts.

Password storage:
  - Hashed with bcrypt (cost factor from config BCRYPT_LOG_ROUNDS, default 12)
  - Raw password is never stored, never logged
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import bcrypt
from flask import current_app
from sqlalchemy import select
from sqlalchemy.orm import Session

from bockdocs.app.errors import AppError, ErrorCode
from bockdocs.app.models.user import User
from bockdocs.app.services.email_service import DeliveryResult, DeliveryStatus, EmailDispatcher
from bockdocs.app.services.identity_service import IdentityVerifier
from bockdocs.app.services.token_service import issue_session_token

logger = logging.getLogger(__name__)

PASSWORD_RESET_MESSAGE = (
    "If an account with that email exists, a password reset link has been sent."
)


@dataclass(frozen=True)
class PendingPasswordReset:
    """A reset token already flushed, waiting for its email."""
    email: str
    token: str


# ── Private helpers ────────────────────────────────────────────────────────

def _normalize_email(email: str) -> str:
    return email.strip().lower()


def _hash_password(password: str) -> str:
    rounds = current_app.config.get("BCRYPT_LOG_ROUNDS", 12)
    return bcrypt.hashpw(
        password.encode("utf-8"),
        bcrypt.gensalt(rounds=rounds),
    ).decode("utf-8")


def _check_password(password: str, password_hash: str | None) -> bool:
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Over 72 bytes: no stored password can match, same as a wrong one.
        return False


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _find_user_by_email(email: str, session: Session) -> User | None:
    return session.execute(
        select(User).where(User.email == _normalize_email(email))
    ).scalar_one_or_none()


def _get_user_or_404(user_id: int, session: Session) -> User:
    user = session.get(User, user_id)
    if user is None:
        raise AppError(
            ErrorCode.USER_NOT_FOUND,
            f"User {user_id} not found.",
            404,
        )
    return user


def _build_user_dict(user: User) -> dict:
    """Serialises a User to a plain dict. No business logic."""
    return {
        "id": user.id,
        "email": user.email,
        "name": user.name,
        "has_password": user.password_hash is not None,
        "google_linked": user.google_id is not None,
        "created_at": user.created_at.isoformat() if user.created_at else None,
        "updated_at": user.updated_at.isoformat() if user.updated_at else None,
    }


def _build_session(user: User) -> dict:
    return {
        "user": _build_user_dict(user),
        "token": issue_session_token(user.id, user.email),
    }


# ── Sign-up / sign-in ──────────────────────────────────────────────────────

def sign_up(
        email: str,
        password: str,
        name: str | None,
        session: Session,
) -> dict:
    """
    Creates a password account and returns it with a session token.

    Raises:
      AppError(DUPLICATE_EMAIL, 409) — email already registered (any case)

    Returns: {"user": {...}, "token": "..."}
    """
    normalized = _normalize_email(email)
    if _find_user_by_email(normalized, session) is not None:
        raise AppError(
            ErrorCode.DUPLICATE_EMAIL,
            "An account with this email already exists.",
            409,
            field="email",
        )

    user = User(
        email=normalized,
        password_hash=_hash_password(password),
        name=(name or "").strip() or normalized.split("@")[0],
    )
    session.add(user)
    session.flush()  # populate user.id before issuing the token

    return _build_session(user)


def sign_in(email: str, password: str, session: Session) -> dict:
    """
    Raises:
      AppError(INVALID_CREDENTIALS, 401)  — unknown email or wrong password
                                            (same message for both)
      AppError(WRONG_SIGN_IN_METHOD, 401) — account has no password (Google only)

    Returns: {"user": {...}, "token": "..."}
    """
    user = _find_user_by_email(email, session)

    if user is not None and user.password_hash is None:
        raise AppError(
            ErrorCode.WRONG_SIGN_IN_METHOD,
            "This account uses a different sign-in method.",
            401,
        )

    # bcrypt.checkpw is constant-time for a given hash.
    if user is None or not _check_password(password, user.password_hash):
        raise AppError(
            ErrorCode.INVALID_CREDENTIALS,
            "Invalid email or password.",
            401,
        )

    return _build_session(user)


def federated_sign_in(
        id_token: str | None,
        access_token: str | None,
        verifier: IdentityVerifier,
        session: Session,
) -> dict:
    """
    Google sign-in with either an ID token or an OAuth access token.

    An existing account matching the email OR the Google subject id is
    linked: google_id is set, email and name refreshed, and any password is
    kept so both methods keep working. Otherwise a password-less account is
    created.

    Raises:
      AppError(EXTERNAL_TOKEN_INVALID, 401) — Google rejected the token
      AppError(INVALID_INPUT, 400)          — neither token supplied, or no
                                              email on the Google profile
      AppError(DUPLICATE_EMAIL, 409)        — the email and the Google id belong
                                              to two different accounts

    Returns: {"user": {...}, "token": "..."}
    """
    if id_token:
        identity = verifier.verify_id_token(id_token)
    elif access_token:
        identity = verifier.verify_access_token(access_token)
    else:
        raise AppError(
            ErrorCode.INVALID_INPUT,
            "Provide either id_token or access_token.",
            400,
        )

    if not identity.email:
        raise AppError(
            ErrorCode.INVALID_INPUT,
            "The Google account did not provide an email address.",
            400,
        )
    email = _normalize_email(identity.email)

    by_email = _find_user_by_email(email, session)
    by_subject = session.execute(
        select(User).where(User.google_id == identity.subject_id)
    ).scalar_one_or_none()

    if by_email is not None and by_subject is not None and by_email.id != by_subject.id:
        raise AppError(
            ErrorCode.DUPLICATE_EMAIL,
            "This Google account is already linked to a different BockDocs account.",
            409,
            field="email",
        )
    user = by_email or by_subject

    if user is not None:
        user.google_id = identity.subject_id
        user.email = email
        user.name = identity.display_name or user.name
    else:
        user = User(
            email=email,
            google_id=identity.subject_id,
            name=identity.display_name or email.split("@")[0],
        )
        session.add(user)
    session.flush()

    return _build_session(user)


# ── Password reset ─────────────────────────────────────────────────────────

def request_password_reset(
        email: str,
        ttl_seconds: int,
        session: Session,
) -> PendingPasswordReset | None:
    """
    Issues a reset token for a registered password account.

    Returns None (and creates nothing) for unknown or Google-only accounts;
    the route answers with the same PASSWORD_RESET_MESSAGE either way.
    A new token replaces any previous one, so only the latest is valid.
    """
    user = _find_user_by_email(email, session)
    if user is None or user.password_hash is None:
        return None

    token = secrets.token_hex(32)
    user.reset_token = token
    user.reset_token_expires_at = datetime.now(timezone.utc) + timedelta(seconds=ttl_seconds)
    session.flush()

    logger.info("Password reset token issued for user %s", user.id)
    return PendingPasswordReset(email=user.email, token=token)


def dispatch_password_reset(
        pending: PendingPasswordReset,
        mailer: EmailDispatcher,
) -> DeliveryResult:
    """Best-effort email for an already-committed reset token. Never raises."""
    try:
        delivery = mailer.send_password_reset(pending.email, pending.token)
    except Exception:
        logger.exception("Password reset email to %s raised unexpectedly", pending.email)
        return DeliveryResult(DeliveryStatus.FAILED, reason="Email delivery failed.")

    if not delivery.delivered:
        logger.warning(
            "Password reset email to %s not delivered: %s",
            pending.email,
            delivery.status.value,
        )
    return delivery


def complete_password_reset(token: str, new_password: str, session: Session) -> None:
    """
    Replaces the password and clears the reset fields in one flush, so the
    token cannot be used twice.

    Raises:
      AppError(RESET_TOKEN_INVALID, 400) — unknown or expired token
    """
    user = session.execute(
        select(User).where(User.reset_token == token)
    ).scalar_one_or_none()

    now = datetime.now(timezone.utc)
    if (
            user is None
            or user.reset_token_expires_at is None
            or _as_utc(user.reset_token_expires_at) <= now
    ):
        raise AppError(
            ErrorCode.RESET_TOKEN_INVALID,
            "Invalid or expired reset token.",
            400,
            field="token",
        )

    user.password_hash = _hash_password(new_password)
    user.reset_token = None
    user.reset_token_expires_at = None
    session.flush()


# ── Profile ────────────────────────────────────────────────────────────────

def get_current_user(user_id: int, session: Session) -> dict:
    """
    Returns the profile of the currently authenticated user.

    Raises:
      AppError(USER_NOT_FOUND, 404) — account deleted after the token was issued
    """
    return _build_user_dict(_get_user_or_404(user_id, session))


def update_profile(
        user_id: int,
        name: str | None,
        email: str | None,
        session: Session,
) -> dict:
    """
    Raises:
      AppError(USER_NOT_FOUND, 404)
      AppError(DUPLICATE_EMAIL, 409) — new email belongs to another account
    """
    user = _get_user_or_404(user_id, session)

    if email is not None:
        normalized = _normalize_email(email)
        existing = _find_user_by_email(normalized, session)
        if existing is not None and existing.id != user.id:
            raise AppError(
                ErrorCode.DUPLICATE_EMAIL,
                "Email already in use.",
                409,
                field="email",
            )
        user.email = normalized

    if name is not None and name.strip():
        user.name = name.strip()

    session.flush()
    return _build_user_dict(user)


def change_password(
        user_id: int,
        current_password: str,
        new_password: str,
        session: Session,
) -> None:
    """
    Raises:
      AppError(USER_NOT_FOUND, 404)
      AppError(WRONG_SIGN_IN_METHOD, 401) — account has no password to change
      AppError(INVALID_CREDENTIALS, 401)  — current password is wrong
    """
    user = _get_user_or_404(user_id, session)

    if user.password_hash is None:
        raise AppError(
            ErrorCode.WRONG_SIGN_IN_METHOD,
            "This account signs in with Google and has no password.",
            401,
        )
    if not _check_password(current_password, user.password_hash):
        raise AppError(
            ErrorCode.INVALID_CREDENTIALS,
            "Current password is incorrect.",
            401,
            field="current_password",
        )

    user.password_hash = _hash_password(new_password)
    session.flush()


def delete_account(user_id: int, password: str | None, session: Session) -> None:
    """
    Deletes the account with its documents and their share links.

    Accounts with a password must confirm it. Google-only accounts have
    nothing to confirm; the session token is the proof.

    Raises:
      AppError(USER_NOT_FOUND, 404)
      AppError(INVALID_CREDENTIALS, 401) — password missing or wrong
    """
    user = _get_user_or_404(user_id, session)

    if user.password_hash is not None and not _check_password(password or "", user.password_hash):
        raise AppError(
            ErrorCode.INVALID_CREDENTIALS,
            "Password is incorrect.",
            401,
            field="password",
        )

    session.delete(user)
    session.flush()
    logger.info("Deleted account %s", user_id)
