"""
Unit tests for IdentityVerifier. Google's verifier and the userinfo HTTP
call are patched.
"""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from bockdocs.app.errors import AppError, ErrorCode
from bockdocs.app.services.identity_service import (
    USERINFO_URL,
    ExternalIdentity,
    IdentityVerifier,
)


def _verifier() -> IdentityVerifier:
    app = SimpleNamespace(
        config={"GOOGLE_CLIENT_ID": "client-1", "IDENTITY_TIMEOUT_SECONDS": 4},
        extensions={},
    )
    return IdentityVerifier(app)


@patch("bockdocs.app.services.identity_service.google_id_token.verify_oauth2_token")
def test_verify_id_token_maps_claims(mock_verify):
    mock_verify.return_value = {"sub": "1234", "email": "g@test.com", "name": "Gee"}

    identity = _verifier().verify_id_token("raw")

    assert identity == ExternalIdentity("1234", "g@test.com", "Gee")
    assert mock_verify.call_args.kwargs["audience"] == "client-1"


@patch("bockdocs.app.services.identity_service.google_id_token.verify_oauth2_token")
def test_rejected_id_token_is_external_token_invalid(mock_verify):
    mock_verify.side_effect = ValueError("Token expired")

    with pytest.raises(AppError) as exc_info:
        _verifier().verify_id_token("raw")

    err = exc_info.value
    assert err.code == ErrorCode.EXTERNAL_TOKEN_INVALID
    assert err.http_status == 401


def test_verify_access_token_reads_userinfo():
    verifier = _verifier()
    response = MagicMock(status_code=200)
    response.json.return_value = {"id": "99", "email": "h@test.com", "name": "Aitch"}

    with patch.object(verifier._http, "get", return_value=response) as mock_get:
        identity = verifier.verify_access_token("access")

    assert identity == ExternalIdentity("99", "h@test.com", "Aitch")
    args, kwargs = mock_get.call_args
    assert args[0] == USERINFO_URL
    assert kwargs["headers"]["Authorization"] == "Bearer access"
    assert kwargs["timeout"] == 4


@pytest.mark.parametrize(
    "status, body",
    [(401, {"error": "invalid_token"}), (200, {"email": "no-id@test.com"})],
)
def test_unusable_access_token_is_external_token_invalid(status, body):
    verifier = _verifier()
    response = MagicMock(status_code=status)
    response.json.return_value = body

    with patch.object(verifier._http, "get", return_value=response):
        with pytest.raises(AppError) as exc_info:
            verifier.verify_access_token("access")

    assert exc_info.value.code == ErrorCode.EXTERNAL_TOKEN_INVALID
