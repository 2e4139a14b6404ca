"""Unit tests for upstream error mapping and the shared HTTP plumbing."""

import asyncio
from unittest.mock import Mock, patch

import aiohttp
import pytest

from loginbridge.errors import (
    AppError,
    ChallengeAlreadyResolved,
    ChallengeNotFound,
    MalformedUpstreamResponse,
    PolicyRejected,
    UpstreamUnavailable,
    error_from_status,
)
from loginbridge.http import UpstreamHttpClient, parse_json, validate_payload
from loginbridge.hydra.schemas import RedirectTo


class TestErrorFromStatus:
    @pytest.mark.parametrize(
        "status,expected",
        [
            (404, ChallengeNotFound),
            (409, ChallengeAlreadyResolved),
            (410, ChallengeAlreadyResolved),
            (400, PolicyRejected),
            (401, PolicyRejected),
            (403, PolicyRejected),
            (429, UpstreamUnavailable),
            (500, UpstreamUnavailable),
            (503, UpstreamUnavailable),
        ],
    )
    def test_mapping(self, status, expected):
        error = error_from_status(status, None, "get_login_request")
        assert type(error) is expected
        assert error.upstream_status == status

    def test_description_includes_upstream_message(self):
        error = error_from_status(
            404, {"error": "Not Found", "error_description": "Unable to locate the resource"}, "op"
        )
        assert "Unable to locate the resource" in error.description

    def test_refusal_carries_upstream_error_code(self):
        error = error_from_status(
            400,
            {"error": "invalid_request", "error_description": "The user_code is invalid"},
            "accept_device_request",
        )
        assert isinstance(error, PolicyRejected)
        assert error.error == "invalid_request"
        assert error.description == "The user_code is invalid"
        assert error.status_code == 403

    def test_refusal_without_body(self):
        error = error_from_status(401, None, "token_request")
        assert error.error == "invalid_request"
        assert "HTTP 401" in error.description

    def test_all_errors_share_base(self):
        for cls in (
            ChallengeNotFound,
            ChallengeAlreadyResolved,
            UpstreamUnavailable,
            MalformedUpstreamResponse,
            PolicyRejected,
        ):
            assert issubclass(cls, AppError)

    def test_policy_rejected_error_override(self):
        error = PolicyRejected("nope", error="invalid_scope", redirect_to="https://cb")
        assert error.error == "invalid_scope"
        assert error.redirect_to == "https://cb"
        assert PolicyRejected("nope").error == "access_denied"


class TestPayloadHelpers:
    def test_parse_json(self):
        assert parse_json('{"a": 1}') == {"a": 1}
        assert parse_json("") is None
        assert parse_json("not json") is None

    def test_validate_payload_rejects_non_object(self):
        with pytest.raises(MalformedUpstreamResponse):
            validate_payload(RedirectTo, ["https://cb"], "op")

    def test_validate_payload_rejects_empty_redirect(self):
        with pytest.raises(MalformedUpstreamResponse):
            validate_payload(RedirectTo, {"redirect_to": ""}, "op")


class TestUpstreamHttpClient:
    @pytest.mark.asyncio
    async def test_connection_error_is_upstream_unavailable(self):
        client = UpstreamHttpClient(timeout=1)
        with patch(
            "loginbridge.http.aiohttp.ClientSession",
            Mock(side_effect=aiohttp.ClientConnectionError("connection refused")),
        ):
            with pytest.raises(UpstreamUnavailable) as exc_info:
                await client._send("GET", "http://hydra:4445/health/ready")
        assert "connection refused" in exc_info.value.description

    @pytest.mark.asyncio
    async def test_timeout_is_upstream_unavailable(self):
        client = UpstreamHttpClient(timeout=1)
        with patch(
            "loginbridge.http.aiohttp.ClientSession",
            Mock(side_effect=asyncio.TimeoutError()),
        ):
            with pytest.raises(UpstreamUnavailable) as exc_info:
                await client._send("GET", "http://hydra:4445/health/ready")
        assert "timed out" in exc_info.value.description
