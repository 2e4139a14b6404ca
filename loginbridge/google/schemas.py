"""
Google token and userinfo payloads.
"""

from typing import Optional

from pydantic import AliasChoices, BaseModel, Field


class GoogleTokens(BaseModel):
    access_token: str
    expires_in: Optional[int] = None
    token_type: str = "Bearer"
    scope: Optional[str] = None
    id_token: Optional[str] = None
    refresh_token: Optional[str] = None


class GoogleUserInfo(BaseModel):
    sub: str
    email: Optional[str] = None
    # OIDC userinfo says email_verified, the legacy v2 endpoint says verified_email.
    email_verified: bool = Field(
        default=False, validation_alias=AliasChoices("email_verified", "verified_email")
    )
    name: Optional[str] = None
    picture: Optional[str] = None
    locale: Optional[str] = None
