"""Unit tests for the token relay and the test client helper."""

import pytest

from loginbridge.challenge.response import TokenErrorResponse, TokenResponse
from loginbridge.challenge.token import process_token_refresh, register_test_client
from loginbridge.errors import MalformedUpstreamResponse, UpstreamUnavailable

TOKEN_PATH = "/oauth2/token"


class TestProcessTokenRefresh:
    @pytest.mark.asyncio
    async def test_new_token_pair(self, env, hydra):
        hydra.respond(
            "POST",
            TOKEN_PATH,
            body={
                "access_token": "new-at",
                "refresh_token": "new-rt",
                "token_type": "bearer",
                "expires_in": 3600,
                "scope": "openid offline",
            },
        )

        result = await process_token_refresh(env, "old-rt", "c1", "secret", "openid")

        assert isinstance(result, TokenResponse)
        assert result.access_token == "new-at"
        assert result.refresh_token == "new-rt"
        (call,) = hydra.calls
        assert call["form"] == {
            "grant_type": "refresh_token",
            "refresh_token": "old-rt",
            "client_id": "c1",
            "client_secret": "secret",
            "scope": "openid",
        }

    @pytest.mark.asyncio
    async def test_invalid_grant(self, env, hydra):
        hydra.respond(
            "POST",
            TOKEN_PATH,
            status=400,
            body={"error": "invalid_grant", "error_description": "token revoked"},
        )

        result = await process_token_refresh(env, "revoked-rt", "c1")

        assert isinstance(result, TokenErrorResponse)
        assert result.error == "invalid_grant"
        assert result.error_description == "token revoked"

    @pytest.mark.asyncio
    async def test_missing_parameters(self, env, hydra):
        result = await process_token_refresh(env, None, "c1")

        assert isinstance(result, TokenErrorResponse)
        assert result.error == "invalid_request"
        assert hydra.calls == []

    @pytest.mark.asyncio
    async def test_server_error(self, env, hydra):
        hydra.respond("POST", TOKEN_PATH, status=500)

        with pytest.raises(UpstreamUnavailable):
            await process_token_refresh(env, "rt", "c1")

    @pytest.mark.asyncio
    async def test_success_without_access_token(self, env, hydra):
        hydra.respond("POST", TOKEN_PATH, body={"token_type": "bearer"})

        with pytest.raises(MalformedUpstreamResponse):
            await process_token_refresh(env, "rt", "c1")


class TestRegisterTestClient:
    @pytest.mark.asyncio
    async def test_creates_client(self, env, hydra):
        hydra.respond(
            "POST",
            "/admin/clients",
            status=201,
            body={
                "client_id": "generated",
                "client_secret": "s3cret",
                "redirect_uris": ["http://bridge.test/callback"],
                "grant_types": ["authorization_code", "refresh_token"],
                "response_types": None,
            },
        )

        client = await register_test_client(env, ["http://bridge.test/callback"])

        assert client.client_id == "generated"
        assert client.response_types == []
        (call,) = hydra.calls
        assert call["json"]["redirect_uris"] == ["http://bridge.test/callback"]
        assert "authorization_code" in call["json"]["grant_types"]
