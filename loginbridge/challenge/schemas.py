"""
Challenge kinds, decisions and device-flow state.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field

from loginbridge.challenge.response import TokenResponse
from loginbridge.constants import (
    CONSENT_REMEMBER,
    CONSENT_REMEMBER_FOR_SECONDS,
    DEVICE_DEFAULT_INTERVAL_SECONDS,
    LOGIN_ACR,
    LOGIN_REMEMBER,
    LOGIN_REMEMBER_FOR_SECONDS,
)


class ChallengeKind(str, Enum):
    LOGIN = "login"
    CONSENT = "consent"
    LOGOUT = "logout"
    DEVICE = "device"


class Accept(BaseModel):
    """Base for accept decisions; every accept is bound to a subject."""

    subject: str = Field(min_length=1)

    def to_body(self) -> Dict[str, Any]:
        return self.model_dump(exclude={"subject"}, exclude_none=True)


class AcceptLogin(Accept):
    remember: bool = LOGIN_REMEMBER
    remember_for: int = LOGIN_REMEMBER_FOR_SECONDS
    acr: str = LOGIN_ACR

    def to_body(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class ConsentSession(BaseModel):
    """Extra claims injected into the issued tokens."""

    id_token: Dict[str, Any] = Field(default_factory=dict)
    access_token: Dict[str, Any] = Field(default_factory=dict)


class AcceptConsent(Accept):
    grant_scope: List[str] = Field(default_factory=list)
    grant_access_token_audience: List[str] = Field(default_factory=list)
    remember: bool = CONSENT_REMEMBER
    remember_for: int = CONSENT_REMEMBER_FOR_SECONDS
    session: ConsentSession = Field(default_factory=ConsentSession)


class AcceptLogout(Accept):
    def to_body(self) -> Dict[str, Any]:
        return {}


class Reject(BaseModel):
    error: str = "access_denied"
    error_description: str = ""
    status_code: int = 403

    def to_body(self) -> Dict[str, Any]:
        return self.model_dump()


Decision = Union[AcceptLogin, AcceptConsent, AcceptLogout, Reject]


class LogoutInfo(BaseModel):
    """What the logout confirmation page needs."""

    challenge: str
    subject: Optional[str] = None
    client_id: Optional[str] = None


class DeviceStatus(str, Enum):
    PENDING = "pending"
    SLOW_DOWN = "slow_down"
    DENIED = "denied"
    AUTHORIZED = "authorized"
    EXPIRED = "expired"

    @property
    def terminal(self) -> bool:
        return self in (DeviceStatus.DENIED, DeviceStatus.AUTHORIZED, DeviceStatus.EXPIRED)


# RFC 8628 section 3.5 error codes, keyed by status.
DEVICE_ERROR_CODES = {
    DeviceStatus.PENDING: "authorization_pending",
    DeviceStatus.SLOW_DOWN: "slow_down",
    DeviceStatus.DENIED: "access_denied",
    DeviceStatus.EXPIRED: "expired_token",
}


class DeviceSession(BaseModel):
    """
    A device authorization as handed to the polling device.

    The authorization server owns the real state machine; this only carries what
    the poller was told (codes, interval, expiry).
    """

    device_code: str
    user_code: str = ""
    verification_uri: str = ""
    verification_uri_complete: Optional[str] = None
    interval: int = DEVICE_DEFAULT_INTERVAL_SECONDS
    expires_at: Optional[datetime] = None

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.expires_at is None:
            return False
        now = now or datetime.now(timezone.utc)
        expires_at = self.expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return now >= expires_at


class DevicePollResult(BaseModel):
    status: DeviceStatus
    interval: int = DEVICE_DEFAULT_INTERVAL_SECONDS
    tokens: Optional[TokenResponse] = None
    error_description: Optional[str] = None

    @property
    def terminal(self) -> bool:
        return self.status.terminal

    @property
    def error(self) -> Optional[str]:
        return DEVICE_ERROR_CODES.get(self.status)
