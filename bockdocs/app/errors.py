"""
errors.py — AppError and the codes clients can branch on.

Services and middleware raise AppError; the handler in app/__init__.py
turns it into the error envelope. Clients key off `code`, so codes stay
stable while `message` wording is free to change.
"""

from __future__ import annotations


class AppError(Exception):

    def __init__(
            self,
            code: str,
            message: str,
            http_status: int,
            field: str | None = None,
    ) -> None:
        super().__init__(message)
        self.code        = code
        self.message     = message
        self.http_status = http_status
        self.field       = field  # offending request field, if any

    def to_dict(self) -> dict:
        payload = {
            "code":    self.code,
            "message": self.message,
        }
        if self.field is not None:
            payload["field"] = self.field
        return {"error": payload}

    def __repr__(self) -> str:
        return (
            f"AppError(code={self.code!r}, "
            f"http_status={self.http_status}, "
            f"message={self.message!r})"
        )


# ── Error codes, grouped by the HTTP status they travel with ─────────────────

class ErrorCode:

    # ── Schema / Input Errors (400) ────────────────────────────────────────
    MISSING_FIELD              = "MISSING_FIELD"
    INVALID_FIELD              = "INVALID_FIELD"
    INVALID_INPUT              = "INVALID_INPUT"          # malformed id, bad email syntax
    RESET_TOKEN_INVALID        = "RESET_TOKEN_INVALID"    # unknown or expired reset token

    # ── Conflict Errors (409) ──────────────────────────────────────────────
    DUPLICATE_EMAIL            = "DUPLICATE_EMAIL"

    # ── Not Found Errors (404) ─────────────────────────────────────────────
    USER_NOT_FOUND             = "USER_NOT_FOUND"
    DOCUMENT_NOT_FOUND         = "DOCUMENT_NOT_FOUND"
    SHARE_TOKEN_NOT_FOUND      = "SHARE_TOKEN_NOT_FOUND"
    NOT_FOUND                  = "NOT_FOUND"              # unknown route

    # ── Share Token Errors (403) ───────────────────────────────────────────
    # Expired is a permission failure, not "not found": the token was valid once.
    SHARE_TOKEN_EXPIRED        = "SHARE_TOKEN_EXPIRED"
    SHARE_DOCUMENT_MISMATCH    = "SHARE_DOCUMENT_MISMATCH"
    INSUFFICIENT_PERMISSION    = "INSUFFICIENT_PERMISSION"

    # ── Auth Errors ────────────────────────────────────────────────────────
    # 401: caller unknown. 403: caller known but not allowed.
    UNAUTHORIZED               = "UNAUTHORIZED"           # 401 — no session, no usable share token
    INVALID_CREDENTIALS        = "INVALID_CREDENTIALS"    # 401
    WRONG_SIGN_IN_METHOD       = "WRONG_SIGN_IN_METHOD"   # 401 — password sign-in on federated account
    EXTERNAL_TOKEN_INVALID     = "EXTERNAL_TOKEN_INVALID" # 401 — Google token rejected
    TOKEN_MISSING              = "TOKEN_MISSING"          # 401
    TOKEN_INVALID              = "TOKEN_INVALID"          # 401
    TOKEN_EXPIRED              = "TOKEN_EXPIRED"          # 401
    FORBIDDEN                  = "FORBIDDEN"              # 403 — not the owner

    # ── Routing Errors ─────────────────────────────────────────────────────
    METHOD_NOT_ALLOWED         = "METHOD_NOT_ALLOWED"     # 405

    # ── System Errors (500) ────────────────────────────────────────────────
    INTERNAL_ERROR             = "INTERNAL_ERROR"


# ── Warning codes: carried in `warnings` on an otherwise successful response

class WarningCode:

    # A share link was created but the notification email was not delivered.
    # The caller should relay the link manually.
    EMAIL_NOT_SENT = "EMAIL_NOT_SENT"
