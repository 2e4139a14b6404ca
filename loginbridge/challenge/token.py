"""
Token relays against the authorization server's public endpoints, plus the
development helper that registers a test client.
"""

from typing import List, Optional, Union

from loginbridge.challenge.response import TokenErrorResponse, TokenResponse
from loginbridge.environment import Environment
from loginbridge.http import validate_payload
from loginbridge.hydra.schemas import HydraClient


async def process_token_refresh(
    env: Environment,
    refresh_token: Optional[str],
    client_id: Optional[str],
    client_secret: Optional[str] = None,
    scope: Optional[str] = None,
) -> Union[TokenResponse, TokenErrorResponse]:
    """
    Exchange a refresh token for a new token pair.

    A refused refresh (expired, revoked or reused token) is an ordinary OAuth2 error
    result, not an exception; only outages and malformed answers raise.
    """
    if not refresh_token or not client_id:
        return TokenErrorResponse(
            error="invalid_request",
            error_description="Missing required parameters",
        )

    form = {
        "grant_type": "refresh_token",
        "refresh_token": refresh_token,
        "client_id": client_id,
    }
    if client_secret:
        form["client_secret"] = client_secret
    if scope:
        form["scope"] = scope

    status, body = await env.hydra.token_request(form)
    if status == 200:
        env.logger.info(f"Refreshed tokens for client {client_id}")
        return validate_payload(TokenResponse, body, "refresh_token")

    error = validate_payload(TokenErrorResponse, body, "refresh_token")
    env.logger.info(f"Token refresh for client {client_id} refused: {error.error}")
    return error


async def register_test_client(env: Environment, redirect_uris: List[str]) -> HydraClient:
    """Create a throwaway authorization-code client for manual end-to-end testing."""
    client = await env.hydra.create_client(
        {
            "client_name": "loginbridge test client",
            "grant_types": ["authorization_code", "refresh_token"],
            "response_types": ["code", "id_token"],
            "scope": "openid offline offline_access profile email",
            "redirect_uris": redirect_uris,
            "token_endpoint_auth_method": "client_secret_post",
        }
    )
    env.logger.info(f"Registered test client {client.client_id}")
    return client
