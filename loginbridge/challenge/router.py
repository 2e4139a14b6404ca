"""
Browser-facing routes for login, consent, logout and device flows, plus the token
relays and the development helpers.
"""

import asyncio
import base64
import binascii
from typing import Awaitable, Optional, TypeVar

from fastapi import APIRouter, Form, HTTPException, Query, Request, status
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse

from loginbridge.challenge.csrf import csrf_token_for, set_csrf_cookie, verify_csrf
from loginbridge.challenge.device import (
    poll_device_token,
    process_device_verification,
    start_device_authorization,
)
from loginbridge.challenge.response import TokenErrorResponse
from loginbridge.challenge.schemas import DeviceSession, DeviceStatus
from loginbridge.challenge.service import (
    get_logout_info,
    process_consent,
    process_login,
    process_logout,
    reject_logout,
)
from loginbridge.challenge.templater import (
    device_success_page,
    device_verify_page,
    logout_page,
)
from loginbridge.challenge.token import process_token_refresh, register_test_client
from loginbridge.challenge.upstream import begin_upstream_login, complete_upstream_login
from loginbridge.constants import DEVICE_DEFAULT_INTERVAL_SECONDS, FLOW_TIMEOUT_SECONDS
from loginbridge.environment import Environment
from loginbridge.errors import PolicyRejected, UpstreamUnavailable

T = TypeVar("T")

# Paths whose errors are rendered as OAuth2 JSON rather than HTML pages.
JSON_PATHS = ("/token", "/device/authorize", "/device/token", "/test-client", "/health")

router = APIRouter()


def _env(request: Request) -> Environment:
    return request.app.state.env


async def _run(request: Request, flow: Awaitable[T]) -> T:
    """Bound a whole flow by the configured deadline."""
    timeout = getattr(request.app.state, "flow_timeout", FLOW_TIMEOUT_SECONDS)
    try:
        return await asyncio.wait_for(flow, timeout=timeout)
    except asyncio.TimeoutError as exc:
        raise UpstreamUnavailable(f"{request.url.path}: flow timed out after {timeout}s") from exc


def _redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url=url, status_code=status.HTTP_302_FOUND)


def _cookie_secure(request: Request) -> bool:
    return getattr(request.app.state, "cookie_secure", False)


@router.get("/login")
async def login(request: Request, login_challenge: Optional[str] = Query(None)):
    """
    Entry point Hydra redirects to. Either auto-accepts or hands the user to the
    identity provider, depending on the login mode.
    """
    env = _env(request)
    if env.upstream_login:
        return _redirect(await _run(request, begin_upstream_login(env, login_challenge)))
    return _redirect(await _run(request, process_login(env, login_challenge)))


@router.get("/consent")
async def consent(request: Request, consent_challenge: Optional[str] = Query(None)):
    return _redirect(await _run(request, process_consent(_env(request), consent_challenge)))


@router.get("/logout", response_class=HTMLResponse)
async def logout(request: Request, logout_challenge: Optional[str] = Query(None)):
    """Show the logout confirmation page."""
    info = await _run(request, get_logout_info(_env(request), logout_challenge))
    token = csrf_token_for(request)
    response = HTMLResponse(
        content=logout_page(
            challenge=info.challenge,
            csrf_token=token,
            subject=info.subject,
            client_id=info.client_id,
        )
    )
    return set_csrf_cookie(response, token, _cookie_secure(request))


@router.post("/logout")
async def logout_submit(
    request: Request,
    challenge: Optional[str] = Form(None),
    submit: Optional[str] = Form(None),
    csrf_token: Optional[str] = Form(None),
):
    verify_csrf(request, csrf_token)
    env = _env(request)
    if submit == "No":
        return _redirect(await _run(request, reject_logout(env, challenge)))
    return _redirect(await _run(request, process_logout(env, challenge)))


@router.get("/device/verify", response_class=HTMLResponse)
async def device_verify(
    request: Request,
    device_challenge: Optional[str] = Query(None),
    user_code: Optional[str] = Query(None),
):
    if not device_challenge:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing device_challenge parameter",
        )
    token = csrf_token_for(request)
    response = HTMLResponse(
        content=device_verify_page(device_challenge, token, user_code=user_code or "")
    )
    return set_csrf_cookie(response, token, _cookie_secure(request))


@router.post("/device/verify")
async def device_verify_submit(
    request: Request,
    challenge: Optional[str] = Form(None),
    user_code: Optional[str] = Form(None),
    csrf_token: Optional[str] = Form(None),
):
    verify_csrf(request, csrf_token)
    try:
        redirect_to = await _run(
            request, process_device_verification(_env(request), challenge, user_code)
        )
    except PolicyRejected as exc:
        return HTMLResponse(
            content=device_verify_page(
                challenge or "", csrf_token, user_code=user_code or "", error=exc.description
            ),
            status_code=status.HTTP_400_BAD_REQUEST,
        )
    return _redirect(redirect_to)


@router.get("/device/success", response_class=HTMLResponse)
async def device_success():
    return HTMLResponse(content=device_success_page())


@router.post("/device/authorize")
async def device_authorize(
    request: Request,
    client_id: str = Form(...),
    scope: Optional[str] = Form(None),
):
    """Start a device authorization on behalf of an input-constrained client."""
    session = await _run(request, start_device_authorization(_env(request), client_id, scope))
    return session.model_dump(mode="json")


@router.post("/device/token")
async def device_token(
    request: Request,
    device_code: str = Form(...),
    client_id: str = Form(...),
    interval: int = Form(DEVICE_DEFAULT_INTERVAL_SECONDS),
):
    """Poll once; pending and slow_down come back as RFC 8628 errors with the interval."""
    session = DeviceSession(device_code=device_code, interval=interval)
    result = await _run(request, poll_device_token(_env(request), session, client_id))
    if result.status is DeviceStatus.AUTHORIZED:
        return result.tokens
    return JSONResponse(
        content={
            "error": result.error,
            "error_description": result.error_description,
            "interval": result.interval,
        },
        status_code=status.HTTP_400_BAD_REQUEST,
    )


@router.post("/token")
async def token_endpoint(
    request: Request,
    grant_type: str = Form(...),
    refresh_token: Optional[str] = Form(None),
    client_id: Optional[str] = Form(None),
    client_secret: Optional[str] = Form(None),
    scope: Optional[str] = Form(None),
):
    """OAuth2 token relay (refresh_token grant only)."""
    # Support client credentials in Authorization header
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Basic "):
        try:
            decoded = base64.b64decode(auth_header[6:]).decode()
            header_client_id, header_client_secret = decoded.split(":", 1)
            client_id = client_id or header_client_id
            client_secret = client_secret or header_client_secret
        except (binascii.Error, UnicodeDecodeError, ValueError):
            return JSONResponse(
                content={"error": "invalid_client", "error_description": "Malformed Basic credentials"},
                status_code=status.HTTP_401_UNAUTHORIZED,
                headers={"WWW-Authenticate": "Basic"},
            )

    if grant_type != "refresh_token":
        return JSONResponse(
            content={"error": "unsupported_grant_type"},
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    result = await _run(
        request,
        process_token_refresh(_env(request), refresh_token, client_id, client_secret, scope),
    )
    if isinstance(result, TokenErrorResponse):
        # RFC 6749 section 5.2: client authentication failures are 401.
        if result.error == "invalid_client":
            return JSONResponse(
                content=result.model_dump(exclude_none=True),
                status_code=status.HTTP_401_UNAUTHORIZED,
                headers={"WWW-Authenticate": "Basic"},
            )
        return JSONResponse(
            content=result.model_dump(exclude_none=True),
            status_code=status.HTTP_400_BAD_REQUEST,
        )
    return result


@router.get("/callback")
async def callback(
    request: Request,
    code: Optional[str] = Query(None),
    state: Optional[str] = Query(None),
    error: Optional[str] = Query(None),
):
    """Identity provider redirect target."""
    return _redirect(
        await _run(request, complete_upstream_login(_env(request), code, state, error))
    )


@router.get("/test-client")
async def test_client(request: Request, redirect_uri: Optional[str] = Query(None)):
    if not getattr(request.app.state, "enable_test_client", False):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")
    redirect_uris = [redirect_uri or str(request.url_for("callback"))]
    client = await _run(request, register_test_client(_env(request), redirect_uris))
    return client.model_dump(exclude_none=True)


@router.get("/health")
async def health(request: Request):
    redis_ok = await _env(request).store.ping()
    return {"status": "ok" if redis_ok else "degraded", "redis": redis_ok}
