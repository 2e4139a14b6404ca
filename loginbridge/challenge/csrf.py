"""
Double-submit CSRF protection for the browser forms: the same random token goes
into an HttpOnly cookie and a hidden form field, and a POST must echo both.
"""

import secrets
from typing import Optional

from fastapi import Request
from fastapi.responses import Response

from loginbridge.constants import CSRF_COOKIE_NAME, CSRF_TTL_SECONDS
from loginbridge.errors import PolicyRejected


def csrf_token_for(request: Request) -> str:
    """Reuse the browser's current token so several open forms stay valid."""
    return request.cookies.get(CSRF_COOKIE_NAME) or secrets.token_urlsafe(32)


def set_csrf_cookie(response: Response, token: str, secure: bool = False) -> Response:
    response.set_cookie(
        CSRF_COOKIE_NAME,
        token,
        max_age=CSRF_TTL_SECONDS,
        httponly=True,
        samesite="lax",
        secure=secure,
    )
    return response


def verify_csrf(request: Request, form_token: Optional[str]) -> None:
    cookie_token = request.cookies.get(CSRF_COOKIE_NAME)
    if not cookie_token or not form_token:
        raise PolicyRejected("Missing CSRF token", error="csrf_missing")
    if not secrets.compare_digest(cookie_token.encode(), form_token.encode()):
        raise PolicyRejected("CSRF token mismatch", error="csrf_mismatch")
