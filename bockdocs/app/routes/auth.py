"""
routes/auth.py — Account route handlers.

Layer rules:
  - Parse request body
  - Validate with the appropriate schema (raises ValidationError on bad input)
  - Call exactly ONE service function
  - Commit the DB session
  - Return the standard response envelope: {"data": {...}, "warnings": []}

Exception: forgot-password commits the reset token BEFORE the email goes
out, so two service calls bracket the commit.

AppError propagates to the global error handler in app/__init__.py — routes
never catch it.

Endpoints (url_prefix=/api/v1/auth):
  POST   /auth/signup           → 201
  POST   /auth/signin           → 200
  POST   /auth/google           → 200
  GET    /auth/me               → 200
  PATCH  /auth/me               → 200
  DELETE /auth/me               → 200
  POST   /auth/change-password  → 200
  POST   /auth/logout           → 200
  POST   /auth/forgot-password  → 200
  POST   /auth/reset-password   → 200
"""

from __future__ import annotations

from flask import Blueprint, current_app, g, jsonify, request

from bockdocs.app.extensions import db
from bockdocs.app.middleware.auth_middleware import require_auth
from bockdocs.app.schemas.auth_schema import (
    ChangePasswordSchema,
    DeleteAccountSchema,
    ForgotPasswordSchema,
    GoogleSignInSchema,
    ResetPasswordSchema,
    SignInSchema,
    SignUpSchema,
    UpdateProfileSchema,
)
from bockdocs.app.services import auth_service

auth_bp = Blueprint("auth", __name__)


@auth_bp.route("/signup", methods=["POST"])
def signup():
    """POST /auth/signup — Create a password account; return user + token."""
    data = SignUpSchema().load(request.get_json(force=True, silent=True) or {})
    result = auth_service.sign_up(
        email=data["email"],
        password=data["password"],
        name=data.get("name"),
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 201


@auth_bp.route("/signin", methods=["POST"])
def signin():
    """POST /auth/signin — Authenticate with email + password."""
    data = SignInSchema().load(request.get_json(force=True, silent=True) or {})
    result = auth_service.sign_in(
        email=data["email"],
        password=data["password"],
        session=db.session,
    )
    return jsonify({"data": result, "warnings": []}), 200


@auth_bp.route("/google", methods=["POST"])
def google_signin():
    """POST /auth/google — Sign in (or sign up) with a Google token."""
    data = GoogleSignInSchema().load(request.get_json(force=True, silent=True) or {})
    result = auth_service.federated_sign_in(
        id_token=data.get("id_token"),
        access_token=data.get("access_token"),
        verifier=current_app.extensions["identity_verifier"],
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 200


@auth_bp.route("/me", methods=["GET"])
@require_auth
def me():
    """GET /auth/me — Return current user profile."""
    result = auth_service.get_current_user(
        user_id=g.user_id,
        session=db.session,
    )
    return jsonify({"data": result, "warnings": []}), 200


@auth_bp.route("/me", methods=["PATCH"])
@require_auth
def update_me():
    """PATCH /auth/me — Change name and/or email."""
    data = UpdateProfileSchema().load(request.get_json(force=True, silent=True) or {})
    result = auth_service.update_profile(
        user_id=g.user_id,
        name=data.get("name"),
        email=data.get("email"),
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 200


@auth_bp.route("/me", methods=["DELETE"])
@require_auth
def delete_me():
    """DELETE /auth/me — Delete the account and everything it owns."""
    data = DeleteAccountSchema().load(request.get_json(force=True, silent=True) or {})
    auth_service.delete_account(
        user_id=g.user_id,
        password=data.get("password"),
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": {"message": "Account deleted."}, "warnings": []}), 200


@auth_bp.route("/change-password", methods=["POST"])
@require_auth
def change_password():
    data = ChangePasswordSchema().load(request.get_json(force=True, silent=True) or {})
    auth_service.change_password(
        user_id=g.user_id,
        current_password=data["current_password"],
        new_password=data["new_password"],
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": {"message": "Password changed."}, "warnings": []}), 200


@auth_bp.route("/logout", methods=["POST"])
@require_auth
def logout():
    """
    POST /auth/logout — Acknowledge sign-out.

    Session tokens are stateless; the client discards its copy.
    """
    return jsonify({"data": {"message": "Logged out successfully."}, "warnings": []}), 200


@auth_bp.route("/forgot-password", methods=["POST"])
def forgot_password():
    """
    POST /auth/forgot-password — Start a password reset.

    The response is identical for registered and unknown emails. When
    EXPOSE_RESET_TOKEN is on (development/testing) a real token is echoed
    back as reset_token.
    """
    data = ForgotPasswordSchema().load(request.get_json(force=True, silent=True) or {})
    pending = auth_service.request_password_reset(
        email=data["email"],
        ttl_seconds=current_app.config["PASSWORD_RESET_TTL_SECONDS"],
        session=db.session,
    )
    db.session.commit()

    result = {"message": auth_service.PASSWORD_RESET_MESSAGE}
    if pending is not None:
        auth_service.dispatch_password_reset(
            pending,
            mailer=current_app.extensions["email_dispatcher"],
        )
        if current_app.config.get("EXPOSE_RESET_TOKEN"):
            result["reset_token"] = pending.token

    return jsonify({"data": result, "warnings": []}), 200


@auth_bp.route("/reset-password", methods=["POST"])
def reset_password():
    """POST /auth/reset-password — Finish a reset with the emailed token."""
    data = ResetPasswordSchema().load(request.get_json(force=True, silent=True) or {})
    auth_service.complete_password_reset(
        token=data["token"],
        new_password=data["new_password"],
        session=db.session,
    )
    db.session.commit()
    return jsonify({
        "data": {"message": "Password has been reset. You can now sign in."},
        "warnings": [],
    }), 200
