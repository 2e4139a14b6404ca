"""
Unit test fixtures: upstream clients with canned HTTP answers and an in-memory store.
"""

import json
from urllib.parse import urlsplit

import pytest
from loguru import logger

from loginbridge.challenge.policy import FlowPolicy
from loginbridge.environment import Environment
from loginbridge.google.client import GoogleOAuthClient
from loginbridge.hydra.client import HydraAdminClient
from loginbridge.session.store import SessionStore


class CannedResponses:
    """
    Replaces the HTTP exchange with queued (status, body) answers keyed by method and
    path. The last queued answer for a route repeats; every call is recorded.
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.routes = {}
        self.calls = []

    def respond(self, method, path, status=200, body=None):
        self.routes.setdefault((method, path), []).append((status, body))
        return self

    def calls_to(self, method, path):
        return [call for call in self.calls if call["method"] == method and call["path"] == path]

    async def _send(self, method, url, *, params=None, json_body=None, form=None, headers=None):
        path = urlsplit(url).path
        self.calls.append(
            {
                "method": method,
                "path": path,
                "params": params,
                "json": json_body,
                "form": form,
                "headers": headers,
            }
        )
        queue = self.routes.get((method, path))
        if not queue:
            raise AssertionError(f"Unexpected upstream call: {method} {path}")
        status, body = queue[0] if len(queue) == 1 else queue.pop(0)
        if isinstance(body, Exception):
            raise body
        if body is None or isinstance(body, str):
            return status, body or ""
        return status, json.dumps(body)


class StubHydra(CannedResponses, HydraAdminClient):
    pass


class StubGoogle(CannedResponses, GoogleOAuthClient):
    pass


class FakeRedis:
    def __init__(self):
        self.data = {}

    async def set(self, key, value, ex=None):
        self.data[key] = value.encode() if isinstance(value, str) else value
        return True

    async def getdel(self, key):
        return self.data.pop(key, None)

    async def delete(self, key):
        return 1 if self.data.pop(key, None) is not None else 0

    async def ping(self):
        return True


@pytest.fixture
def hydra():
    return StubHydra(admin_url="http://hydra:4445", public_url="http://hydra:4444")


@pytest.fixture
def google():
    return StubGoogle(
        client_id="google-client",
        client_secret="google-secret",
        redirect_uri="http://bridge.test/callback",
    )


@pytest.fixture
def redis_client():
    return FakeRedis()


@pytest.fixture
def policy():
    return FlowPolicy()


@pytest.fixture
def env(hydra, google, redis_client, policy):
    return Environment(
        hydra=hydra,
        store=SessionStore(redis_client),
        logger=logger,
        policy=policy,
        google=google,
        default_subject="claude@claude.ai",
    )


@pytest.fixture
def login_request():
    return {
        "challenge": "chal-123",
        "client": {"client_id": "c1"},
        "requested_scope": ["openid", "offline"],
        "request_url": "http://hydra:4444/oauth2/auth?client_id=c1",
    }
