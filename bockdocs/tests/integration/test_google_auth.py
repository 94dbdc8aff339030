"""
tests/integration/test_google_auth.py — POST /auth/google.

The identity verifier on app.extensions is a fake: tokens registered with
identity.accept() verify, everything else is rejected the way Google would.

Error cases:
  EXTERNAL_TOKEN_INVALID  401 — token not accepted by Google
  INVALID_FIELD           400 — neither id_token nor access_token
  INVALID_INPUT           400 — Google profile carries no email
  WRONG_SIGN_IN_METHOD    401 — password sign-in on a Google-only account
  DUPLICATE_EMAIL         409 — Google email and Google id point at two accounts
"""

from __future__ import annotations

from .conftest import auth_headers, make_document, signin, signup


def _google(client, **payload):
    return client.post("/api/v1/auth/google", json=payload)


class TestGoogleSignIn:

    def test_id_token_creates_passwordless_account(self, client, identity):
        identity.accept("id-1", subject_id="sub-1", email="Gina@Test.com", name="Gina")

        resp = _google(client, id_token="id-1")
        assert resp.status_code == 200
        data = resp.get_json()["data"]
        assert data["token"]
        user = data["user"]
        assert user["email"] == "gina@test.com"
        assert user["name"] == "Gina"
        assert user["has_password"] is False
        assert user["google_linked"] is True

    def test_access_token_works_too(self, client, identity):
        identity.accept("access-1", subject_id="sub-2", email="hal@test.com")

        resp = _google(client, access_token="access-1")
        assert resp.status_code == 200
        assert resp.get_json()["data"]["user"]["name"] == "hal"

    def test_second_sign_in_reuses_the_account(self, client, identity):
        identity.accept("id-1", subject_id="sub-1", email="gina@test.com", name="Gina")
        first = _google(client, id_token="id-1").get_json()["data"]
        make_document(client, first["token"], title="Mine")

        second = _google(client, id_token="id-1").get_json()["data"]
        assert second["user"]["id"] == first["user"]["id"]

        docs = client.get("/api/v1/documents", headers=auth_headers(second["token"]))
        assert [d["title"] for d in docs.get_json()["data"]] == ["Mine"]

    def test_links_existing_password_account_and_keeps_password(self, client, identity):
        existing = signup(client, email="alice@test.com", name="Alice")
        identity.accept("id-a", subject_id="sub-a", email="alice@test.com", name="Alice G")

        resp = _google(client, id_token="id-a")
        assert resp.status_code == 200
        user = resp.get_json()["data"]["user"]
        assert user["id"] == existing["user"]["id"]
        assert user["has_password"] is True
        assert user["google_linked"] is True
        assert user["name"] == "Alice G"

        signin(client, "alice@test.com")

    def test_rejected_token_returns_401(self, client, identity):
        resp = _google(client, id_token="forged")
        assert resp.status_code == 401
        assert resp.get_json()["error"]["code"] == "EXTERNAL_TOKEN_INVALID"

    def test_missing_token_returns_400(self, client, identity):
        resp = _google(client)
        assert resp.status_code == 400
        assert resp.get_json()["error"]["field"] == "id_token"

    def test_profile_without_email_returns_400(self, client, identity):
        identity.accept("id-x", subject_id="sub-x", email=None)

        resp = _google(client, id_token="id-x")
        assert resp.status_code == 400
        assert resp.get_json()["error"]["code"] == "INVALID_INPUT"

    def test_google_only_account_cannot_use_password_sign_in(self, client, identity):
        identity.accept("id-1", subject_id="sub-1", email="gina@test.com")
        _google(client, id_token="id-1")

        resp = client.post("/api/v1/auth/signin", json={
            "email": "gina@test.com", "password": "whatever",
        })
        assert resp.status_code == 401
        assert resp.get_json()["error"]["code"] == "WRONG_SIGN_IN_METHOD"

    def test_email_and_google_id_on_different_accounts_is_conflict(self, client, identity):
        alice = signup(client, email="alice@test.com")
        identity.accept("id-old", subject_id="sub-1", email="old@test.com")
        other = _google(client, id_token="id-old").get_json()["data"]

        # Google now reports Alice's address for the subject already linked elsewhere.
        identity.accept("id-new", subject_id="sub-1", email="alice@test.com")
        resp = _google(client, id_token="id-new")

        assert resp.status_code == 409
        error = resp.get_json()["error"]
        assert error["code"] == "DUPLICATE_EMAIL"
        assert error["field"] == "email"

        me = client.get("/api/v1/auth/me", headers=auth_headers(alice["token"])).get_json()["data"]
        assert me["google_linked"] is False
        them = client.get("/api/v1/auth/me", headers=auth_headers(other["token"])).get_json()["data"]
        assert them["email"] == "old@test.com"
