"""Unit tests for the Google-backed login flow."""

import dataclasses
from urllib.parse import parse_qs, urlsplit

import pytest

from loginbridge.challenge.schemas import ChallengeKind
from loginbridge.challenge.upstream import begin_upstream_login, complete_upstream_login
from loginbridge.errors import ChallengeNotFound, PolicyRejected, UpstreamUnavailable
from loginbridge.hydra.client import REQUEST_PATHS
from loginbridge.session.schemas import code_challenge_s256

LOGIN_PATH = REQUEST_PATHS[ChallengeKind.LOGIN]


async def begin(env, hydra, login_request):
    hydra.respond("GET", LOGIN_PATH, body=login_request)
    url = await begin_upstream_login(env, "chal-123")
    return url, {key: values[0] for key, values in parse_qs(urlsplit(url).query).items()}


def google_success(google, email="someone@example.com", verified=True):
    google.respond(
        "POST",
        "/token",
        body={"access_token": "g-at", "expires_in": 3599, "token_type": "Bearer", "id_token": "g-id"},
    )
    google.respond(
        "GET",
        "/v1/userinfo",
        body={"sub": "1234", "email": email, "email_verified": verified},
    )


class TestBeginUpstreamLogin:
    @pytest.mark.asyncio
    async def test_authorization_url(self, env, hydra, redis_client, login_request):
        url, query = await begin(env, hydra, login_request)

        assert url.startswith("https://accounts.google.com/o/oauth2/v2/auth?")
        assert query["client_id"] == "google-client"
        assert query["redirect_uri"] == "http://bridge.test/callback"
        assert query["code_challenge_method"] == "S256"
        assert query["response_type"] == "code"
        assert f"pkce_session:{query['state']}" in redis_client.data

    @pytest.mark.asyncio
    async def test_unknown_challenge_stores_nothing(self, env, hydra, redis_client):
        hydra.respond("GET", LOGIN_PATH, status=404)

        with pytest.raises(ChallengeNotFound):
            await begin_upstream_login(env, "chal-404")
        assert redis_client.data == {}

    @pytest.mark.asyncio
    async def test_requires_identity_provider(self, env, hydra):
        env = dataclasses.replace(env, google=None)

        with pytest.raises(UpstreamUnavailable):
            await begin_upstream_login(env, "chal-123")
        assert hydra.calls == []

    @pytest.mark.asyncio
    async def test_skip_bypasses_identity_provider(
        self, env, hydra, google, redis_client, login_request
    ):
        hydra.respond("GET", LOGIN_PATH, body={**login_request, "skip": True, "subject": "alice"})
        hydra.respond("PUT", f"{LOGIN_PATH}/accept", body={"redirect_to": "https://op/cb?code=xyz"})

        redirect_to = await begin_upstream_login(env, "chal-123")

        assert redirect_to == "https://op/cb?code=xyz"
        (accept,) = hydra.calls_to("PUT", f"{LOGIN_PATH}/accept")
        assert accept["json"]["subject"] == "alice"
        assert redis_client.data == {}
        assert google.calls == []


class TestCompleteUpstreamLogin:
    @pytest.mark.asyncio
    async def test_accepts_verified_identity(self, env, hydra, google, login_request):
        _, query = await begin(env, hydra, login_request)
        google_success(google)
        hydra.respond("PUT", f"{LOGIN_PATH}/accept", body={"redirect_to": "https://op/cb?code=xyz"})

        redirect_to = await complete_upstream_login(env, "google-code", query["state"])

        assert redirect_to == "https://op/cb?code=xyz"
        (accept,) = hydra.calls_to("PUT", f"{LOGIN_PATH}/accept")
        assert accept["params"] == {"login_challenge": "chal-123"}
        assert accept["json"]["subject"] == "someone@example.com"
        (exchange,) = google.calls_to("POST", "/token")
        assert exchange["form"]["code"] == "google-code"
        assert code_challenge_s256(exchange["form"]["code_verifier"]) == query["code_challenge"]
        (userinfo,) = google.calls_to("GET", "/v1/userinfo")
        assert userinfo["headers"] == {"Authorization": "Bearer g-at"}

    @pytest.mark.asyncio
    async def test_state_is_single_use(self, env, hydra, google, login_request):
        _, query = await begin(env, hydra, login_request)
        google_success(google)
        hydra.respond("PUT", f"{LOGIN_PATH}/accept", body={"redirect_to": "https://op/cb"})

        await complete_upstream_login(env, "google-code", query["state"])
        with pytest.raises(ChallengeNotFound):
            await complete_upstream_login(env, "google-code", query["state"])
        assert len(google.calls_to("POST", "/token")) == 1

    @pytest.mark.asyncio
    async def test_unknown_state(self, env, hydra, google):
        with pytest.raises(ChallengeNotFound):
            await complete_upstream_login(env, "google-code", "never-issued")
        assert hydra.calls == []
        assert google.calls == []

    @pytest.mark.asyncio
    async def test_unverified_email_rejects_login(self, env, hydra, google, login_request):
        _, query = await begin(env, hydra, login_request)
        google_success(google, verified=False)
        hydra.respond("PUT", f"{LOGIN_PATH}/reject", body={"redirect_to": "https://client/cb?error=access_denied"})

        with pytest.raises(PolicyRejected) as exc_info:
            await complete_upstream_login(env, "google-code", query["state"])

        assert exc_info.value.redirect_to == "https://client/cb?error=access_denied"
        assert hydra.calls_to("PUT", f"{LOGIN_PATH}/accept") == []

    @pytest.mark.asyncio
    async def test_refused_code_rejects_login(self, env, hydra, google, login_request):
        _, query = await begin(env, hydra, login_request)
        google.respond("POST", "/token", status=400, body={"error": "invalid_grant"})
        hydra.respond("PUT", f"{LOGIN_PATH}/reject", body={"redirect_to": "https://client/cb?error=access_denied"})

        with pytest.raises(PolicyRejected) as exc_info:
            await complete_upstream_login(env, "bad-code", query["state"])

        assert exc_info.value.redirect_to == "https://client/cb?error=access_denied"
        (reject,) = hydra.calls_to("PUT", f"{LOGIN_PATH}/reject")
        assert reject["params"] == {"login_challenge": "chal-123"}
        assert google.calls_to("GET", "/v1/userinfo") == []

    @pytest.mark.asyncio
    async def test_user_denied_at_identity_provider(self, env, hydra, google, login_request):
        _, query = await begin(env, hydra, login_request)
        hydra.respond("PUT", f"{LOGIN_PATH}/reject", body={"redirect_to": "https://client/cb?error=access_denied"})

        with pytest.raises(PolicyRejected):
            await complete_upstream_login(env, None, query["state"], error="access_denied")
        assert google.calls == []

    @pytest.mark.asyncio
    async def test_identity_provider_outage(self, env, hydra, google, login_request):
        _, query = await begin(env, hydra, login_request)
        google.respond("POST", "/token", status=503)

        with pytest.raises(UpstreamUnavailable):
            await complete_upstream_login(env, "google-code", query["state"])
        assert hydra.calls_to("PUT", f"{LOGIN_PATH}/reject") == []
