"""
Upstream login: send the user to Google with PKCE, then bind the verified identity
to the pending login challenge.
"""

from typing import Optional

from loginbridge.challenge.policy import decide_login, decide_verified_login
from loginbridge.challenge.schemas import ChallengeKind, Reject
from loginbridge.challenge.service import resolve_challenge
from loginbridge.environment import Environment
from loginbridge.errors import ChallengeNotFound, PolicyRejected, UpstreamUnavailable
from loginbridge.session.schemas import PKCEState


def _require_google(env: Environment):
    if env.google is None:
        raise UpstreamUnavailable("No identity provider is configured")
    return env.google


async def begin_upstream_login(env: Environment, challenge: str) -> str:
    """
    Persist a fresh PKCE state for the login challenge and return the identity
    provider's authorization URL. A login Hydra can skip is accepted right away
    and its redirect returned instead.
    """
    google = _require_google(env)
    if not challenge:
        raise ChallengeNotFound("Missing login_challenge parameter")
    request = await env.hydra.get_request(ChallengeKind.LOGIN, challenge)
    if request.skip and request.subject:
        decision = decide_login(request, request.subject, env.policy)
        redirect_to = await env.hydra.accept_request(
            ChallengeKind.LOGIN, challenge, decision.to_body()
        )
        env.logger.info(
            f"Login challenge {challenge} skipped for remembered subject {request.subject}"
        )
        return redirect_to
    pkce = PKCEState.create(challenge, client_id=request.client.client_id)
    await env.store.save_pkce_state(pkce, env.policy.pkce_ttl)
    env.logger.info(f"Redirecting login challenge {challenge} to the identity provider")
    return google.authorization_url(pkce.state, pkce.code_challenge)


async def _reject_login(env: Environment, challenge: str, reject: Reject) -> PolicyRejected:
    redirect_to = await env.hydra.reject_request(ChallengeKind.LOGIN, challenge, reject.to_body())
    return PolicyRejected(reject.error_description, error=reject.error, redirect_to=redirect_to)


async def complete_upstream_login(
    env: Environment,
    code: Optional[str],
    state: Optional[str],
    error: Optional[str] = None,
) -> str:
    """
    Handle the identity provider callback: consume the PKCE state, exchange the code,
    read the user's profile and accept the original login challenge for them.
    """
    google = _require_google(env)
    pkce = await env.store.pop_pkce_state(state) if state else None
    if pkce is None:
        raise ChallengeNotFound("Unknown or expired login state")

    challenge = pkce.login_challenge
    if error or not code:
        env.logger.info(f"Identity provider returned no code for {challenge}: {error}")
        raise await _reject_login(
            env,
            challenge,
            Reject(
                error="access_denied",
                error_description=f"The identity provider did not authorize the login ({error or 'no code'})",
            ),
        )

    try:
        tokens = await google.exchange_code(code, pkce.code_verifier)
        userinfo = await google.get_userinfo(tokens.access_token)
    except PolicyRejected as exc:
        env.logger.warning(f"Identity provider refused login for {challenge}: {exc.description}")
        raise await _reject_login(
            env, challenge, Reject(error=exc.error, error_description=exc.description)
        ) from exc

    return await resolve_challenge(
        env,
        ChallengeKind.LOGIN,
        challenge,
        lambda request: decide_verified_login(request, userinfo, env.policy),
    )
