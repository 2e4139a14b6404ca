"""
Google OAuth2 client: authorization URL, code exchange (with PKCE) and userinfo.
"""

from typing import Any
from urllib.parse import urlencode

from loginbridge.constants import (
    GOOGLE_AUTH_URL,
    GOOGLE_SCOPES,
    GOOGLE_TOKEN_URL,
    GOOGLE_USERINFO_URL,
    UPSTREAM_TIMEOUT_SECONDS,
)
from loginbridge.errors import AppError, PolicyRejected, UpstreamUnavailable
from loginbridge.google.schemas import GoogleTokens, GoogleUserInfo
from loginbridge.http import UpstreamHttpClient, parse_json, validate_payload


def _error_from_google(status: int, body: Any, operation: str) -> AppError:
    """Google 4xx means it refused the code/token; anything else is an outage."""
    error, description = "", ""
    if isinstance(body, dict):
        error = str(body.get("error") or "")
        description = str(body.get("error_description") or "")
    if 400 <= status < 500:
        return PolicyRejected(
            f"{operation}: identity provider refused the request ({error or status}) {description}".strip(),
            upstream_status=status,
            body=body,
        )
    return UpstreamUnavailable(
        f"{operation}: identity provider responded with HTTP {status}",
        upstream_status=status,
        body=body,
    )


class GoogleOAuthClient(UpstreamHttpClient):
    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        timeout: float = UPSTREAM_TIMEOUT_SECONDS,
    ):
        super().__init__(timeout=timeout)
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri

    def authorization_url(self, state: str, code_challenge: str) -> str:
        """Build the Google consent-screen URL for an S256 PKCE authorization request."""
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": GOOGLE_SCOPES,
            "state": state,
            "code_challenge": code_challenge,
            "code_challenge_method": "S256",
            "access_type": "offline",
            "prompt": "consent",
        }
        return f"{GOOGLE_AUTH_URL}?{urlencode(params)}"

    async def exchange_code(self, code: str, code_verifier: str) -> GoogleTokens:
        status, text = await self._send(
            "POST",
            GOOGLE_TOKEN_URL,
            form={
                "grant_type": "authorization_code",
                "code": code,
                "code_verifier": code_verifier,
                "redirect_uri": self.redirect_uri,
                "client_id": self.client_id,
                "client_secret": self.client_secret,
            },
        )
        body = parse_json(text)
        if status != 200:
            raise _error_from_google(status, body, "exchange_code")
        return validate_payload(GoogleTokens, body, "exchange_code")

    async def get_userinfo(self, access_token: str) -> GoogleUserInfo:
        status, text = await self._send(
            "GET",
            GOOGLE_USERINFO_URL,
            headers={"Authorization": f"Bearer {access_token}"},
        )
        body = parse_json(text)
        if status != 200:
            raise _error_from_google(status, body, "get_userinfo")
        return validate_payload(GoogleUserInfo, body, "get_userinfo")
