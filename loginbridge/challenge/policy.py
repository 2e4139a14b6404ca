"""
Per-flow decision policies.

Each ``decide_*`` function is pure: it maps fetched challenge metadata (plus caller
input) to exactly one Decision and performs no I/O.
"""

from dataclasses import dataclass, field
from typing import FrozenSet, List, Mapping, Optional, Sequence, Tuple

from loginbridge.challenge.schemas import (
    AcceptConsent,
    AcceptLogin,
    AcceptLogout,
    Decision,
    Reject,
)
from loginbridge.constants import (
    CONSENT_REMEMBER_FOR_SECONDS,
    DEFAULT_CONSENT_SCOPES,
    LOGIN_ACR,
    LOGIN_REMEMBER,
    LOGIN_REMEMBER_FOR_SECONDS,
    PKCE_SESSION_TTL_SECONDS,
)
from loginbridge.errors import MalformedUpstreamResponse
from loginbridge.google.schemas import GoogleUserInfo
from loginbridge.hydra.schemas import ConsentRequest, LoginRequest, LogoutRequest


@dataclass(frozen=True)
class FlowPolicy:
    login_remember_for: int = LOGIN_REMEMBER_FOR_SECONDS
    consent_remember_for: int = CONSENT_REMEMBER_FOR_SECONDS
    consent_allowed_scopes: Tuple[str, ...] = tuple(DEFAULT_CONSENT_SCOPES)
    consent_client_scopes: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)
    consent_denied_clients: FrozenSet[str] = frozenset()
    logout_declined_url: str = "https://www.ory.sh/"
    pkce_ttl: int = PKCE_SESSION_TTL_SECONDS

    @classmethod
    def from_settings(cls, settings) -> "FlowPolicy":
        return cls(
            login_remember_for=settings.remember_for,
            consent_remember_for=settings.remember_for,
            consent_allowed_scopes=tuple(settings.consent_allowed_scopes),
            consent_client_scopes={
                client_id: tuple(scopes)
                for client_id, scopes in settings.consent_client_scopes.items()
            },
            consent_denied_clients=frozenset(settings.consent_denied_clients),
            logout_declined_url=settings.logout_declined_url,
            pkce_ttl=settings.pkce_ttl,
        )

    def allowed_scopes_for(self, client_id: Optional[str]) -> Tuple[str, ...]:
        if client_id and client_id in self.consent_client_scopes:
            return self.consent_client_scopes[client_id]
        return self.consent_allowed_scopes


def grantable_scopes(requested: Sequence[str], allowed: Sequence[str]) -> List[str]:
    """Requested scopes that are also allowed, in request order, without duplicates."""
    allowed_set = set(allowed)
    granted = []
    for scope in requested:
        if scope in allowed_set and scope not in granted:
            granted.append(scope)
    return granted


def decide_login(request: LoginRequest, subject: Optional[str], policy: FlowPolicy) -> Decision:
    """
    Auto-accept: trust the caller-supplied subject, remember the session and claim
    no particular authentication context.

    When Hydra reports that it already authenticated the user (``skip``), the
    subject it remembered wins over whatever the caller supplied.
    """
    if request.skip and request.subject:
        subject = request.subject
    if not subject:
        return Reject(
            error="login_required",
            error_description="No subject available to bind to the login request",
            status_code=401,
        )
    return AcceptLogin(
        subject=subject,
        remember=LOGIN_REMEMBER,
        remember_for=policy.login_remember_for,
        acr=LOGIN_ACR,
    )


def decide_verified_login(
    request: LoginRequest, userinfo: GoogleUserInfo, policy: FlowPolicy
) -> Decision:
    """Accept only identities whose e-mail the identity provider has verified."""
    if not userinfo.email or not userinfo.email_verified:
        return Reject(
            error="access_denied",
            error_description="The identity provider did not verify an e-mail address",
        )
    return decide_login(request, userinfo.email, policy)


def decide_consent(request: ConsentRequest, policy: FlowPolicy) -> Decision:
    client_id = request.client.client_id
    if not request.subject:
        raise MalformedUpstreamResponse(f"consent request {request.challenge} has no subject")
    if client_id in policy.consent_denied_clients:
        return Reject(
            error="access_denied",
            error_description=f"Client {client_id} is not allowed to obtain consent",
        )
    granted = grantable_scopes(request.requested_scope, policy.allowed_scopes_for(client_id))
    if request.requested_scope and not granted:
        return Reject(
            error="invalid_scope",
            error_description="None of the requested scopes may be granted to this client",
            status_code=400,
        )
    return AcceptConsent(
        subject=request.subject,
        grant_scope=granted,
        grant_access_token_audience=list(request.requested_access_token_audience),
        remember_for=policy.consent_remember_for,
    )


def decide_logout(request: LogoutRequest) -> Decision:
    # A logout request without a subject points at a session that is already gone.
    if not request.subject:
        return Reject(
            error="invalid_request",
            error_description="The session for this logout request is no longer valid",
            status_code=400,
        )
    return AcceptLogout(subject=request.subject)
