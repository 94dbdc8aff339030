"""
services/identity_service.py — Google identity verification.

Two token shapes are accepted from the client:
  - ID token (JWT signed by Google): verified offline against Google's
    published certificates, audience = GOOGLE_CLIENT_ID.
  - OAuth access token: exchanged for the user's profile at the userinfo
    endpoint.

Either way the result is an ExternalIdentity. A token Google rejects raises
AppError(EXTERNAL_TOKEN_INVALID, 401). Network failures reaching Google are
not the caller's fault and propagate to the global 500 handler.

All HTTP calls are bounded by IDENTITY_TIMEOUT_SECONDS.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import requests
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token as google_id_token

from bockdocs.app.errors import AppError, ErrorCode

logger = logging.getLogger(__name__)

USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"


@dataclass(frozen=True)
class ExternalIdentity:
    subject_id: str
    email: str | None
    display_name: str | None


class _BoundedRequest(google_requests.Request):
    """google-auth transport that applies our timeout to every request."""

    def __init__(self, timeout: int, session: requests.Session | None = None) -> None:
        super().__init__(session=session)
        self._timeout = timeout

    def __call__(self, url, method="GET", body=None, headers=None, timeout=None, **kwargs):
        return super().__call__(
            url,
            method=method,
            body=body,
            headers=headers,
            timeout=timeout or self._timeout,
            **kwargs,
        )


class IdentityVerifier:

    def __init__(self, app=None) -> None:
        self.client_id: str = ""
        self.timeout: int = 10
        self._http = requests.Session()
        if app is not None:
            self.init_app(app)

    def init_app(self, app) -> None:
        self.client_id = app.config.get("GOOGLE_CLIENT_ID") or ""
        self.timeout = int(app.config.get("IDENTITY_TIMEOUT_SECONDS") or 10)
        app.extensions["identity_verifier"] = self

    def verify_id_token(self, raw_token: str) -> ExternalIdentity:
        request = _BoundedRequest(self.timeout, session=self._http)
        try:
            payload = google_id_token.verify_oauth2_token(
                raw_token,
                request,
                audience=self.client_id or None,
            )
        except ValueError as exc:
            # Bad signature, wrong audience/issuer, expired, or malformed.
            logger.info("Google ID token rejected: %s", exc)
            raise AppError(
                ErrorCode.EXTERNAL_TOKEN_INVALID,
                "Invalid or expired ID token.",
                401,
            )

        return ExternalIdentity(
            subject_id=str(payload["sub"]),
            email=payload.get("email"),
            display_name=payload.get("name"),
        )

    def verify_access_token(self, raw_token: str) -> ExternalIdentity:
        response = self._http.get(
            USERINFO_URL,
            headers={
                "Authorization": f"Bearer {raw_token}",
                "Accept": "application/json",
            },
            timeout=self.timeout,
        )
        if response.status_code != 200:
            logger.info("Google userinfo rejected access token: HTTP %s", response.status_code)
            raise AppError(
                ErrorCode.EXTERNAL_TOKEN_INVALID,
                "Invalid or expired access token.",
                401,
            )

        data = response.json()
        if data.get("id") is None:
            raise AppError(
                ErrorCode.EXTERNAL_TOKEN_INVALID,
                "Google did not return an account id for this token.",
                401,
            )
        return ExternalIdentity(
            subject_id=str(data["id"]),
            email=data.get("email"),
            display_name=data.get("name"),
        )
