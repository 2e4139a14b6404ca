"""
Closed error taxonomy for challenge resolution.

Every upstream failure (authorization server, identity provider, session store) is
mapped into one of these before it leaves the client wrappers.
"""

from typing import Any, Optional, Tuple


class AppError(Exception):
    """Base class for all bridge errors."""

    error = "server_error"
    status_code = 500

    def __init__(
        self,
        description: str = "",
        *,
        redirect_to: Optional[str] = None,
        upstream_status: Optional[int] = None,
        body: Any = None,
    ):
        super().__init__(description or self.error)
        self.description = description or self.error
        self.redirect_to = redirect_to
        self.upstream_status = upstream_status
        self.body = body

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.description!r}, upstream_status={self.upstream_status})"


class ChallengeNotFound(AppError):
    """Challenge ID unknown or expired upstream."""

    error = "invalid_request"
    status_code = 404


class ChallengeAlreadyResolved(AppError):
    """Accept/reject called twice for the same challenge."""

    error = "invalid_request"
    status_code = 409


class UpstreamUnavailable(AppError):
    """Network failure, timeout or unexpected status from an upstream service."""

    error = "temporarily_unavailable"
    status_code = 502


class MalformedUpstreamResponse(AppError):
    """Required field missing or wrong shape in an otherwise-successful response."""

    error = "server_error"
    status_code = 502


class PolicyRejected(AppError):
    """A flow policy declined to accept the challenge."""

    error = "access_denied"
    status_code = 403

    def __init__(self, description: str = "", *, error: Optional[str] = None, **kwargs):
        super().__init__(description, **kwargs)
        if error:
            self.error = error


def error_from_status(status: int, body: Any = None, operation: str = "") -> AppError:
    """
    Map a non-2xx upstream HTTP status to the taxonomy.

    Hydra answers 404 for unknown/expired challenges and 409/410 for challenges
    that were already accepted or rejected. 400/401/403 are refusals of the request
    itself, such as a wrong device user code.
    """
    detail = _describe(body)
    if status in (400, 401, 403):
        error, message = _error_fields(body)
        return PolicyRejected(
            message or f"{operation}: upstream refused the request with HTTP {status}",
            error=error or "invalid_request",
            upstream_status=status,
            body=body,
        )
    if status == 404:
        return ChallengeNotFound(
            f"{operation}: challenge not found{detail}", upstream_status=status, body=body
        )
    if status in (409, 410):
        return ChallengeAlreadyResolved(
            f"{operation}: challenge already resolved{detail}", upstream_status=status, body=body
        )
    return UpstreamUnavailable(
        f"{operation}: upstream responded with HTTP {status}{detail}",
        upstream_status=status,
        body=body,
    )


def _error_fields(body: Any) -> Tuple[Optional[str], Optional[str]]:
    if not isinstance(body, dict):
        return None, None
    return body.get("error"), body.get("error_description")


def _describe(body: Any) -> str:
    error, description = _error_fields(body)
    message = description or error
    return f" ({message})" if message else ""
