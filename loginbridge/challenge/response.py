"""
Response models for token relays.
"""

from typing import Optional
from pydantic import BaseModel


class TokenResponse(BaseModel):
    """OAuth2 token response following RFC 6749."""

    access_token: str
    token_type: str = "bearer"
    expires_in: Optional[int] = None
    refresh_token: Optional[str] = None
    scope: Optional[str] = None
    id_token: Optional[str] = None


class TokenErrorResponse(BaseModel):
    """OAuth2 error response following RFC 6749."""

    error: str
    error_description: Optional[str] = None
    error_uri: Optional[str] = None
