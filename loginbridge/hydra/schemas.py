"""
Authorization server (Hydra) payload models.

Only the fields the bridge reads are declared; everything else in Hydra's responses
is ignored.
"""

from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


class HydraClient(BaseModel):
    """OAuth2 client as returned by the admin API."""

    client_id: Optional[str] = None
    client_name: Optional[str] = None
    client_secret: Optional[str] = None
    redirect_uris: List[str] = Field(default_factory=list)
    grant_types: List[str] = Field(default_factory=list)
    response_types: List[str] = Field(default_factory=list)
    scope: Optional[str] = None
    token_endpoint_auth_method: Optional[str] = None

    @field_validator("redirect_uris", "grant_types", "response_types", mode="before")
    @classmethod
    def null_to_list(cls, value):
        return value or []


class LoginRequest(BaseModel):
    challenge: Optional[str] = None
    client: HydraClient = Field(default_factory=HydraClient)
    subject: Optional[str] = None
    skip: bool = False
    request_url: Optional[str] = None
    requested_scope: List[str] = Field(default_factory=list)
    requested_access_token_audience: List[str] = Field(default_factory=list)

    @field_validator("requested_scope", "requested_access_token_audience", mode="before")
    @classmethod
    def null_to_list(cls, value):
        return value or []


class ConsentRequest(BaseModel):
    challenge: Optional[str] = None
    client: HydraClient = Field(default_factory=HydraClient)
    subject: Optional[str] = None
    skip: bool = False
    requested_scope: List[str] = Field(default_factory=list)
    requested_access_token_audience: List[str] = Field(default_factory=list)

    @field_validator("requested_scope", "requested_access_token_audience", mode="before")
    @classmethod
    def null_to_list(cls, value):
        return value or []


class LogoutRequest(BaseModel):
    challenge: Optional[str] = None
    subject: Optional[str] = None
    sid: Optional[str] = None
    request_url: Optional[str] = None
    rp_initiated: bool = False
    client: Optional[HydraClient] = None


class RedirectTo(BaseModel):
    redirect_to: str = Field(min_length=1)


class DeviceAuthorization(BaseModel):
    """Response of the public device authorization endpoint (RFC 8628 section 3.2)."""

    device_code: str
    user_code: str
    verification_uri: str
    verification_uri_complete: Optional[str] = None
    expires_in: int
    interval: Optional[int] = None
