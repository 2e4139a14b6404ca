"""
Device authorization grant (RFC 8628): user-code verification, device authorization
and token polling.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from loginbridge.challenge.response import TokenErrorResponse, TokenResponse
from loginbridge.challenge.schemas import (
    ChallengeKind,
    DevicePollResult,
    DeviceSession,
    DeviceStatus,
)
from loginbridge.constants import (
    DEVICE_CODE_GRANT_TYPE,
    DEVICE_DEFAULT_INTERVAL_SECONDS,
    DEVICE_SLOW_DOWN_INCREMENT_SECONDS,
)
from loginbridge.environment import Environment
from loginbridge.errors import ChallengeNotFound, PolicyRejected
from loginbridge.http import validate_payload

DEVICE_STATUS_BY_ERROR = {
    "authorization_pending": DeviceStatus.PENDING,
    "slow_down": DeviceStatus.SLOW_DOWN,
    "access_denied": DeviceStatus.DENIED,
    "expired_token": DeviceStatus.EXPIRED,
}


async def process_device_verification(
    env: Environment, device_challenge: str, user_code: Optional[str]
) -> str:
    """
    Submit the user code typed on the verification page.

    Hydra exposes no fetch endpoint for device challenges, so the code goes straight
    to the accept call; an unknown or mistyped code comes back as an upstream error.
    """
    if not device_challenge:
        raise ChallengeNotFound("Missing device_challenge parameter")
    user_code = (user_code or "").strip()
    if not user_code:
        raise PolicyRejected("A user code is required", error="invalid_request")
    redirect_to = await env.hydra.accept_request(
        ChallengeKind.DEVICE, device_challenge, {"user_code": user_code}
    )
    env.logger.info(f"Accepted device challenge {device_challenge}")
    return redirect_to


async def start_device_authorization(
    env: Environment, client_id: str, scope: Optional[str] = None
) -> DeviceSession:
    if not client_id:
        raise PolicyRejected("client_id is required", error="invalid_request")
    authorization = await env.hydra.device_authorization(client_id, scope)
    session = DeviceSession(
        device_code=authorization.device_code,
        user_code=authorization.user_code,
        verification_uri=authorization.verification_uri,
        verification_uri_complete=authorization.verification_uri_complete,
        interval=authorization.interval or DEVICE_DEFAULT_INTERVAL_SECONDS,
        expires_at=datetime.now(timezone.utc) + timedelta(seconds=authorization.expires_in),
    )
    env.logger.info(f"Started device authorization for client {client_id}")
    return session


async def poll_device_token(
    env: Environment,
    session: DeviceSession,
    client_id: str,
    now: Optional[datetime] = None,
) -> DevicePollResult:
    """
    Poll once for the device's tokens.

    Pending and slow_down are ordinary non-terminal results, not errors; slow_down
    widens the interval the caller must wait before the next poll.
    """
    if session.is_expired(now):
        return DevicePollResult(
            status=DeviceStatus.EXPIRED,
            interval=session.interval,
            error_description="The device code has expired",
        )

    status, body = await env.hydra.token_request(
        {
            "grant_type": DEVICE_CODE_GRANT_TYPE,
            "device_code": session.device_code,
            "client_id": client_id,
        }
    )
    if status == 200:
        tokens = validate_payload(TokenResponse, body, "poll_device_token")
        env.logger.info(f"Device authorization for client {client_id} completed")
        return DevicePollResult(status=DeviceStatus.AUTHORIZED, interval=session.interval, tokens=tokens)

    error = validate_payload(TokenErrorResponse, body, "poll_device_token")
    device_status = DEVICE_STATUS_BY_ERROR.get(error.error)
    if device_status is None:
        raise PolicyRejected(
            error.error_description or error.error,
            error=error.error,
            upstream_status=status,
            body=body,
        )

    interval = session.interval
    if device_status is DeviceStatus.SLOW_DOWN:
        interval += DEVICE_SLOW_DOWN_INCREMENT_SECONDS
    env.logger.debug(f"Device poll for client {client_id}: {device_status.value}, interval={interval}")
    return DevicePollResult(
        status=device_status,
        interval=interval,
        error_description=error.error_description,
    )
