"""
Challenge resolution: fetch, inspect, decide, submit, extract.

Every flow goes through ``resolve_challenge``; flows differ only in the pure decide
function they pass in.
"""

from typing import Callable, Optional

from pydantic import BaseModel

from loginbridge.challenge.policy import decide_consent, decide_login, decide_logout
from loginbridge.challenge.schemas import ChallengeKind, Decision, LogoutInfo, Reject
from loginbridge.environment import Environment
from loginbridge.errors import ChallengeNotFound, PolicyRejected

Decide = Callable[[BaseModel], Decision]


def _require_challenge(kind: ChallengeKind, challenge: Optional[str]) -> str:
    if not challenge:
        raise ChallengeNotFound(f"Missing {kind.value}_challenge parameter")
    return challenge


async def resolve_challenge(
    env: Environment, kind: ChallengeKind, challenge: str, decide: Decide
) -> str:
    """
    Resolve one challenge and return the redirect URL the authorization server
    hands back, unmodified.

    A Reject decision is still submitted upstream, then surfaces as PolicyRejected
    carrying the redirect Hydra returned for it.
    """
    challenge = _require_challenge(kind, challenge)
    request = await env.hydra.get_request(kind, challenge)
    client = getattr(request, "client", None)
    env.logger.debug(
        f"Fetched {kind.value} challenge {challenge}: "
        f"client_id={client.client_id if client else None} "
        f"subject={getattr(request, 'subject', None)} "
        f"requested_scope={getattr(request, 'requested_scope', None)}"
    )

    decision = decide(request)

    if isinstance(decision, Reject):
        env.logger.info(
            f"Rejecting {kind.value} challenge {challenge}: {decision.error} {decision.error_description}"
        )
        redirect_to = await env.hydra.reject_request(kind, challenge, decision.to_body())
        raise PolicyRejected(
            decision.error_description,
            error=decision.error,
            redirect_to=redirect_to,
        )

    redirect_to = await env.hydra.accept_request(kind, challenge, decision.to_body())
    env.logger.info(f"Accepted {kind.value} challenge {challenge} for subject {decision.subject}")
    return redirect_to


async def process_login(env: Environment, challenge: str, subject: Optional[str] = None) -> str:
    """Accept a login challenge for ``subject`` (or the configured default subject)."""
    subject = subject or env.default_subject
    return await resolve_challenge(
        env,
        ChallengeKind.LOGIN,
        challenge,
        lambda request: decide_login(request, subject, env.policy),
    )


async def process_consent(env: Environment, challenge: str) -> str:
    """Grant the allowed subset of the requested scopes and audience."""
    return await resolve_challenge(
        env,
        ChallengeKind.CONSENT,
        challenge,
        lambda request: decide_consent(request, env.policy),
    )


async def get_logout_info(env: Environment, challenge: str) -> LogoutInfo:
    """Fetch what the logout confirmation page shows, without resolving anything."""
    challenge = _require_challenge(ChallengeKind.LOGOUT, challenge)
    request = await env.hydra.get_request(ChallengeKind.LOGOUT, challenge)
    return LogoutInfo(
        challenge=challenge,
        subject=request.subject,
        client_id=request.client.client_id if request.client else None,
    )


async def process_logout(env: Environment, challenge: str) -> str:
    return await resolve_challenge(env, ChallengeKind.LOGOUT, challenge, decide_logout)


async def reject_logout(env: Environment, challenge: str) -> str:
    """
    The user declined to log out. Hydra gives no redirect for this, so the configured
    declined URL is returned instead.
    """
    challenge = _require_challenge(ChallengeKind.LOGOUT, challenge)
    await env.hydra.reject_request(ChallengeKind.LOGOUT, challenge, {})
    env.logger.info(f"Logout challenge {challenge} declined by user")
    return env.policy.logout_declined_url
