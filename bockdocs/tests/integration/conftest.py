"""
tests/integration/conftest.py — Fixtures and helpers for all integration tests.

Design:
  - Tests run against TEST_DATABASE_URL, or in-memory SQLite by default.
  - The app is created once per session using create_app("testing").
  - All tables are created once via db.create_all() at session start.
  - Between tests, all rows are deleted in FK-safe order so tests are isolated.
  - The email dispatcher and Google identity verifier are swapped for fakes
    on app.extensions; routes look them up there on every request.

Helper functions (not fixtures) are provided for common operations:
  - signup(client, ...)            → dict with user + token
  - signin(client, ...)            → dict with user + token
  - auth_headers(token)            → {"Authorization": "Bearer <token>"}
  - make_document(client, ...)     → document dict
  - make_share_link(client, ...)   → share link dict
  - expire_share_link(app, token)  → moves a link's expires_at into the past
  - expire_reset_token(app, email) → same for a pending password reset

These are plain functions (not pytest fixtures) so they can be called with
arbitrary arguments in any test without fixture parameterization overhead.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select, text

from bockdocs.app import create_app
from bockdocs.app.errors import AppError, ErrorCode
from bockdocs.app.extensions import db as _db
from bockdocs.app.models.share_link import ShareLink
from bockdocs.app.models.user import User
from bockdocs.app.services.email_service import DeliveryResult, DeliveryStatus
from bockdocs.app.services.identity_service import ExternalIdentity


# ═══════════════════════════════════════════════════════════════════════════
# Fake collaborators
# ═══════════════════════════════════════════════════════════════════════════

class FakeMailer:
    """Records every message instead of sending it."""

    def __init__(self) -> None:
        self.reset()

    def reset(self) -> None:
        self.status = DeliveryStatus.SENT
        self.reason: str | None = None
        self.password_resets: list[dict] = []
        self.share_notifications: list[dict] = []

    def _result(self) -> DeliveryResult:
        return DeliveryResult(self.status, reason=self.reason)

    def send_password_reset(self, to_email: str, reset_token: str) -> DeliveryResult:
        self.password_resets.append({"to_email": to_email, "reset_token": reset_token})
        return self._result()

    def send_share_notification(self, **kwargs) -> DeliveryResult:
        self.share_notifications.append(kwargs)
        return self._result()


class FakeIdentityVerifier:
    """Accepts only tokens registered with .accept(); everything else is rejected."""

    def __init__(self) -> None:
        self.reset()

    def reset(self) -> None:
        self._identities: dict[str, ExternalIdentity] = {}

    def accept(self, raw_token: str, subject_id: str, email: str | None, name: str | None = None) -> None:
        self._identities[raw_token] = ExternalIdentity(subject_id, email, name)

    def _verify(self, raw_token: str) -> ExternalIdentity:
        if raw_token not in self._identities:
            raise AppError(ErrorCode.EXTERNAL_TOKEN_INVALID, "Invalid token.", 401)
        return self._identities[raw_token]

    def verify_id_token(self, raw_token: str) -> ExternalIdentity:
        return self._verify(raw_token)

    def verify_access_token(self, raw_token: str) -> ExternalIdentity:
        return self._verify(raw_token)


# ═══════════════════════════════════════════════════════════════════════════
# Session-scoped app fixture
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture(scope="session")
def app():
    """
    Creates the Flask application in 'testing' mode once for the entire test session.

    Steps:
      1. Create app with TestingConfig.
      2. Replace the email dispatcher and identity verifier with fakes.
      3. Run db.create_all() to create all tables.
      4. Yield the app for the test session.
      5. Drop all tables at teardown.
    """
    flask_app = create_app("testing")
    flask_app.extensions["email_dispatcher"] = FakeMailer()
    flask_app.extensions["identity_verifier"] = FakeIdentityVerifier()

    with flask_app.app_context():
        _db.create_all()

    yield flask_app

    with flask_app.app_context():
        _db.drop_all()


# ═══════════════════════════════════════════════════════════════════════════
# Function-scoped test isolation
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture(autouse=True)
def clean_tables(app):
    """
    Deletes all rows between tests, children before parents.

    share_links → documents → users. The FKs cascade on Postgres, but SQLite
    does not enforce them, so the order is explicit.
    """
    yield  # run the test

    with app.app_context():
        _db.session.rollback()  # discard any uncommitted state from a failed test

        with _db.engine.connect() as conn:
            conn.execute(text("DELETE FROM share_links"))
            conn.execute(text("DELETE FROM documents"))
            conn.execute(text("DELETE FROM users"))
            conn.commit()


@pytest.fixture
def client(app):
    """Flask test client. Each test gets a fresh client (function-scoped)."""
    return app.test_client()


@pytest.fixture
def mailer(app) -> FakeMailer:
    fake = app.extensions["email_dispatcher"]
    fake.reset()
    return fake


@pytest.fixture
def identity(app) -> FakeIdentityVerifier:
    fake = app.extensions["identity_verifier"]
    fake.reset()
    return fake


# ═══════════════════════════════════════════════════════════════════════════
# Shared helper functions (not fixtures)
# ═══════════════════════════════════════════════════════════════════════════

def signup(
    client,
    email: str = "alice@test.com",
    password: str = "secret1",
    name: str | None = None,
) -> dict:
    """
    Creates an account and returns the response data dict.
    Returns: {"user": {...}, "token": "..."}
    """
    payload = {"email": email, "password": password}
    if name is not None:
        payload["name"] = name
    resp = client.post("/api/v1/auth/signup", json=payload)
    assert resp.status_code == 201, f"signup failed: {resp.get_json()}"
    return resp.get_json()["data"]


def signin(client, email: str, password: str = "secret1") -> dict:
    resp = client.post(
        "/api/v1/auth/signin",
        json={"email": email, "password": password},
    )
    assert resp.status_code == 200, f"signin failed: {resp.get_json()}"
    return resp.get_json()["data"]


def auth_headers(token: str) -> dict:
    """Returns the Authorization header dict for use in test requests."""
    return {"Authorization": f"Bearer {token}"}


def make_document(
    client,
    token: str,
    title: str | None = "Test Document",
    content: str = "",
) -> dict:
    """Creates a document owned by the token holder and returns its data dict."""
    payload: dict = {"content": content}
    if title is not None:
        payload["title"] = title
    resp = client.post(
        "/api/v1/documents",
        json=payload,
        headers=auth_headers(token),
    )
    assert resp.status_code == 201, f"make_document failed: {resp.get_json()}"
    return resp.get_json()["data"]


def make_share_link(
    client,
    token: str,
    document_id: int,
    permission: str = "edit",
    ttl_seconds: int | None = None,
) -> dict:
    """Mints a share link as the owner. Returns {token, share_url, ...}."""
    payload: dict = {"permission": permission}
    if ttl_seconds is not None:
        payload["ttl_seconds"] = ttl_seconds
    resp = client.post(
        f"/api/v1/documents/{document_id}/share",
        json=payload,
        headers=auth_headers(token),
    )
    assert resp.status_code == 201, f"make_share_link failed: {resp.get_json()}"
    return resp.get_json()["data"]


def expire_share_link(app, share_token: str) -> None:
    """Backdates a link's expiry so the next check sees it as expired."""
    with app.app_context():
        link = _db.session.get(ShareLink, share_token)
        link.expires_at = datetime.now(timezone.utc) - timedelta(seconds=5)
        _db.session.commit()


def expire_reset_token(app, email: str) -> None:
    with app.app_context():
        user = _db.session.execute(
            select(User).where(User.email == email)
        ).scalar_one()
        user.reset_token_expires_at = datetime.now(timezone.utc) - timedelta(seconds=5)
        _db.session.commit()
