"""
Async client for the Hydra admin API (login/consent/logout/device requests, clients)
and the public token/device endpoints.

All failures leave this module as AppError subclasses.
"""

from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel

from loginbridge.challenge.schemas import ChallengeKind
from loginbridge.constants import UPSTREAM_TIMEOUT_SECONDS
from loginbridge.errors import error_from_status
from loginbridge.http import UpstreamHttpClient, parse_json, validate_payload
from loginbridge.hydra.schemas import (
    ConsentRequest,
    DeviceAuthorization,
    HydraClient,
    LoginRequest,
    LogoutRequest,
    RedirectTo,
)

REQUEST_PATHS = {
    ChallengeKind.LOGIN: "/admin/oauth2/auth/requests/login",
    ChallengeKind.CONSENT: "/admin/oauth2/auth/requests/consent",
    ChallengeKind.LOGOUT: "/admin/oauth2/auth/requests/logout",
    ChallengeKind.DEVICE: "/admin/oauth2/auth/requests/device",
}

REQUEST_MODELS = {
    ChallengeKind.LOGIN: LoginRequest,
    ChallengeKind.CONSENT: ConsentRequest,
    ChallengeKind.LOGOUT: LogoutRequest,
}


def extract_redirect(body: Any, operation: str) -> str:
    return validate_payload(RedirectTo, body, operation).redirect_to


class HydraAdminClient(UpstreamHttpClient):
    """Hydra API wrapper."""

    def __init__(
        self,
        admin_url: str,
        public_url: str,
        timeout: float = UPSTREAM_TIMEOUT_SECONDS,
    ):
        super().__init__(timeout=timeout)
        self.admin_url = admin_url.rstrip("/")
        self.public_url = public_url.rstrip("/")

    async def _admin_call(
        self,
        operation: str,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, str]] = None,
        json_body: Optional[Dict[str, Any]] = None,
    ) -> Any:
        status, text = await self._send(
            method, f"{self.admin_url}{path}", params=params, json_body=json_body
        )
        body = parse_json(text)
        if not 200 <= status < 300:
            raise error_from_status(status, body, operation)
        return body

    async def get_request(self, kind: ChallengeKind, challenge: str) -> BaseModel:
        """Fetch login/consent/logout request metadata by challenge."""
        model = REQUEST_MODELS.get(kind)
        if model is None:
            raise ValueError(f"Hydra has no fetch endpoint for {kind.value} challenges")
        operation = f"get_{kind.value}_request"
        body = await self._admin_call(
            operation,
            "GET",
            REQUEST_PATHS[kind],
            params={f"{kind.value}_challenge": challenge},
        )
        return validate_payload(model, body, operation)

    async def accept_request(
        self, kind: ChallengeKind, challenge: str, body: Dict[str, Any]
    ) -> str:
        """Accept a challenge, returning the redirect_to URL."""
        operation = f"accept_{kind.value}_request"
        payload = await self._admin_call(
            operation,
            "PUT",
            f"{REQUEST_PATHS[kind]}/accept",
            params={f"{kind.value}_challenge": challenge},
            json_body=body,
        )
        return extract_redirect(payload, operation)

    async def reject_request(
        self, kind: ChallengeKind, challenge: str, body: Dict[str, Any]
    ) -> Optional[str]:
        """
        Reject a challenge. Hydra answers logout rejections with 204 and no
        redirect, so None is returned for those.
        """
        operation = f"reject_{kind.value}_request"
        is_logout = kind is ChallengeKind.LOGOUT
        payload = await self._admin_call(
            operation,
            "PUT",
            f"{REQUEST_PATHS[kind]}/reject",
            params={f"{kind.value}_challenge": challenge},
            json_body=None if is_logout else body,
        )
        if is_logout:
            return None
        return extract_redirect(payload, operation)

    async def create_client(self, client: Dict[str, Any]) -> HydraClient:
        body = await self._admin_call("create_client", "POST", "/admin/clients", json_body=client)
        return validate_payload(HydraClient, body, "create_client")

    async def token_request(self, form: Dict[str, str]) -> Tuple[int, Any]:
        """
        POST to the public token endpoint.

        4xx answers carry OAuth2 error bodies the caller interprets (invalid_grant,
        authorization_pending, ...), so only 5xx/transport failures raise here.
        """
        status, text = await self._send("POST", f"{self.public_url}/oauth2/token", form=form)
        body = parse_json(text)
        if status >= 500:
            raise error_from_status(status, body, "token_request")
        return status, body

    async def device_authorization(
        self, client_id: str, scope: Optional[str] = None
    ) -> DeviceAuthorization:
        form = {"client_id": client_id}
        if scope:
            form["scope"] = scope
        status, text = await self._send(
            "POST", f"{self.public_url}/oauth2/device/auth", form=form
        )
        body = parse_json(text)
        if not 200 <= status < 300:
            raise error_from_status(status, body, "device_authorization")
        return validate_payload(DeviceAuthorization, body, "device_authorization")
