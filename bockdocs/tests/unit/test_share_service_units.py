"""
Unit tests for share_service: expiry, permission ordering, and the fixed
validation order of resolve_share_token().

DB-free. session.get() is routed by model class so a single MagicMock can
serve both the ShareLink and the Document lookup.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from bockdocs.app.errors import AppError, ErrorCode
from bockdocs.app.models.document import Document
from bockdocs.app.models.share_link import ShareLink, SharePermission
from bockdocs.app.services import share_service


def _session_with(link=None, document=None) -> MagicMock:
    session = MagicMock()

    def _get(model, key):
        if model is ShareLink:
            return link
        if model is Document:
            return document
        return None

    session.get.side_effect = _get
    return session


def _link(document_id=1, permission=SharePermission.EDIT, expires_at=None, token="tok-1"):
    return SimpleNamespace(
        token=token,
        document_id=document_id,
        permission=permission,
        expires_at=expires_at,
    )


def _document(document_id=1, owner_id=10):
    return SimpleNamespace(id=document_id, owner_id=owner_id, title="Notes", content="")


# ── is_expired / permission_satisfies / build_share_url ────────────────────

def test_link_without_expiry_never_expires():
    assert share_service.is_expired(_link(expires_at=None)) is False


def test_link_expiring_in_future_is_not_expired():
    future = datetime.now(timezone.utc) + timedelta(hours=1)
    assert share_service.is_expired(_link(expires_at=future)) is False


def test_link_at_exact_expiry_instant_is_expired():
    now = datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc)
    assert share_service.is_expired(_link(expires_at=now), now=now) is True


def test_naive_expiry_is_treated_as_utc():
    now = datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc)
    naive_past = datetime(2026, 5, 1, 11, 59)
    assert share_service.is_expired(_link(expires_at=naive_past), now=now) is True


@pytest.mark.parametrize(
    "granted, required, expected",
    [
        (SharePermission.EDIT, SharePermission.EDIT, True),
        (SharePermission.EDIT, SharePermission.VIEW, True),
        (SharePermission.VIEW, SharePermission.VIEW, True),
        (SharePermission.VIEW, SharePermission.EDIT, False),
        ("edit", "view", True),
        ("view", "edit", False),
    ],
)
def test_permission_satisfies(granted, required, expected):
    assert share_service.permission_satisfies(granted, required) is expected


def test_build_share_url_joins_with_single_slash():
    assert (
        share_service.build_share_url("http://docs.test/#/shared/", "abc")
        == "http://docs.test/#/shared/abc"
    )


# ── mint_share_link ────────────────────────────────────────────────────────

def test_mint_with_positive_ttl_sets_expiry():
    session = MagicMock()
    before = datetime.now(timezone.utc)

    link = share_service.mint_share_link(
        document_id=5,
        permission="view",
        ttl_seconds=60,
        session=session,
    )

    assert link.document_id == 5
    assert link.permission is SharePermission.VIEW
    assert before + timedelta(seconds=59) <= link.expires_at <= before + timedelta(seconds=61)
    session.add.assert_called_once_with(link)
    session.flush.assert_called_once()


@pytest.mark.parametrize("ttl", [None, 0, -30])
def test_mint_without_positive_ttl_never_expires(ttl):
    link = share_service.mint_share_link(
        document_id=5,
        permission=SharePermission.EDIT,
        ttl_seconds=ttl,
        session=MagicMock(),
    )
    assert link.expires_at is None


def test_minted_tokens_are_unique():
    session = MagicMock()
    tokens = {
        share_service.mint_share_link(1, "edit", None, session).token
        for _ in range(20)
    }
    assert len(tokens) == 20


# ── lookup_share_token ─────────────────────────────────────────────────────

def test_lookup_returns_document_and_link_for_view_token():
    link = _link(permission=SharePermission.VIEW)
    document = _document()
    session = _session_with(link=link, document=document)

    found_document, found_link = share_service.lookup_share_token("tok-1", session)

    assert found_document is document
    assert found_link is link


def test_lookup_unknown_token_raises_not_found():
    session = _session_with(link=None)

    with pytest.raises(AppError) as exc_info:
        share_service.lookup_share_token("missing", session)

    err = exc_info.value
    assert err.code == ErrorCode.SHARE_TOKEN_NOT_FOUND
    assert err.http_status == 404


def test_lookup_expired_token_raises_expired():
    past = datetime.now(timezone.utc) - timedelta(seconds=1)
    session = _session_with(link=_link(expires_at=past), document=_document())

    with pytest.raises(AppError) as exc_info:
        share_service.lookup_share_token("tok-1", session)

    err = exc_info.value
    assert err.code == ErrorCode.SHARE_TOKEN_EXPIRED
    assert err.http_status == 403


# ── resolve_share_token: check order ───────────────────────────────────────

def test_resolve_valid_edit_token_returns_document():
    document = _document(document_id=3)
    session = _session_with(link=_link(document_id=3), document=document)

    found, _ = share_service.resolve_share_token(
        "tok-1",
        expected_document_id=3,
        required_permission=SharePermission.EDIT,
        session=session,
    )

    assert found is document


def test_resolve_other_document_raises_mismatch():
    session = _session_with(link=_link(document_id=3), document=_document(3))

    with pytest.raises(AppError) as exc_info:
        share_service.resolve_share_token("tok-1", 4, SharePermission.EDIT, session)

    err = exc_info.value
    assert err.code == ErrorCode.SHARE_DOCUMENT_MISMATCH
    assert err.http_status == 403


def test_resolve_view_token_for_edit_raises_insufficient_permission():
    session = _session_with(
        link=_link(document_id=3, permission=SharePermission.VIEW),
        document=_document(3),
    )

    with pytest.raises(AppError) as exc_info:
        share_service.resolve_share_token("tok-1", 3, SharePermission.EDIT, session)

    err = exc_info.value
    assert err.code == ErrorCode.INSUFFICIENT_PERMISSION
    assert err.http_status == 403


def test_resolve_expiry_is_reported_before_mismatch():
    past = datetime.now(timezone.utc) - timedelta(minutes=5)
    session = _session_with(
        link=_link(document_id=3, permission=SharePermission.VIEW, expires_at=past),
        document=_document(3),
    )

    with pytest.raises(AppError) as exc_info:
        share_service.resolve_share_token("tok-1", 99, SharePermission.EDIT, session)

    assert exc_info.value.code == ErrorCode.SHARE_TOKEN_EXPIRED


def test_resolve_mismatch_is_reported_before_permission():
    session = _session_with(
        link=_link(document_id=3, permission=SharePermission.VIEW),
        document=_document(3),
    )

    with pytest.raises(AppError) as exc_info:
        share_service.resolve_share_token("tok-1", 99, SharePermission.EDIT, session)

    assert exc_info.value.code == ErrorCode.SHARE_DOCUMENT_MISMATCH


def test_serialize_share_link_includes_url():
    expires = datetime(2026, 6, 1, tzinfo=timezone.utc)
    link = _link(document_id=8, permission=SharePermission.VIEW, expires_at=expires, token="abc")

    result = share_service.serialize_share_link(link, "http://docs.test/#/shared")

    assert result == {
        "token": "abc",
        "document_id": 8,
        "permission": "view",
        "expires_at": expires.isoformat(),
        "share_url": "http://docs.test/#/shared/abc",
    }
