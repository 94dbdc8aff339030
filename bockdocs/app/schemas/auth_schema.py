"""
schemas/auth_schema.py — Marshmallow schemas for account endpoints.

Validation responsibility:
  - This file: presence, types, lengths, email format, password length.
  - services/auth_service.py: DUPLICATE_EMAIL, credential checks, reset
    token validity (all need a DB lookup — not a schema concern).

IMPORTANT: All schemas inherit from marshmallow.Schema directly.
           Do NOT use ma.Schema — it requires an active Flask app context
           and breaks unit tests.
"""

from __future__ import annotations

from marshmallow import Schema, ValidationError, fields, validate, validates_schema

PASSWORD_MIN_LENGTH = 6

# bcrypt only hashes the first 72 bytes and newer releases refuse anything longer.
PASSWORD_MAX_BYTES = 72


def _within_bcrypt_limit(value: str) -> None:
    if len(value.encode("utf-8")) > PASSWORD_MAX_BYTES:
        raise ValidationError(
            f"Password must be at most {PASSWORD_MAX_BYTES} bytes long."
        )


_password_rule = [
    validate.Length(
        min=PASSWORD_MIN_LENGTH,
        error=f"Password must be at least {PASSWORD_MIN_LENGTH} characters long.",
    ),
    _within_bcrypt_limit,
]


class SignUpSchema(Schema):
    """
    POST /auth/signup

    Field rules:
      email    : valid email format, max 255 chars
      password : min 6 chars, max 72 UTF-8 bytes
      name     : optional display name; defaults to the email's local part
    """

    email = fields.Email(required=True, validate=validate.Length(max=255))
    password = fields.Str(required=True, load_only=True, validate=_password_rule)
    name = fields.Str(load_default=None, validate=validate.Length(max=255))


class SignInSchema(Schema):
    """
    POST /auth/signin

    Only presence is checked. A malformed email simply fails the credential
    check in auth_service.py (INVALID_CREDENTIALS, 401).
    """

    email = fields.Str(required=True)
    password = fields.Str(required=True, load_only=True)


class GoogleSignInSchema(Schema):
    """POST /auth/google — exactly one of id_token / access_token is used."""

    id_token = fields.Str(load_default=None)
    access_token = fields.Str(load_default=None)

    @validates_schema
    def require_a_token(self, data: dict, **kwargs) -> None:
        if not data.get("id_token") and not data.get("access_token"):
            raise ValidationError(
                "Provide either id_token or access_token.",
                field_name="id_token",
            )


class ForgotPasswordSchema(Schema):
    email = fields.Str(required=True)


class ResetPasswordSchema(Schema):
    token = fields.Str(required=True)
    new_password = fields.Str(required=True, load_only=True, validate=_password_rule)


class UpdateProfileSchema(Schema):
    """PATCH /auth/me — both fields optional; absent fields are unchanged."""

    name = fields.Str(validate=validate.Length(min=1, max=255))
    email = fields.Email(validate=validate.Length(max=255))


class ChangePasswordSchema(Schema):
    current_password = fields.Str(required=True, load_only=True)
    new_password = fields.Str(required=True, load_only=True, validate=_password_rule)


class DeleteAccountSchema(Schema):
    """
    DELETE /auth/me

    password is optional here because Google-only accounts have none.
    auth_service.delete_account() requires it for password accounts.
    """

    password = fields.Str(load_default=None, load_only=True)
