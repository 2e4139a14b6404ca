"""
PKCE/session state kept in the shared store between the login redirect and the
identity provider callback.
"""

import base64
import hashlib
import secrets
import time
from typing import Literal, Optional, Self

from pydantic import BaseModel, Field


def generate_code_verifier() -> str:
    # RFC 7636: 43-128 chars from the unreserved set; 32 random bytes -> 43 chars.
    return secrets.token_urlsafe(32)


def code_challenge_s256(verifier: str) -> str:
    """BASE64URL(SHA256(code_verifier)) without padding."""
    digest = hashlib.sha256(verifier.encode()).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


class PKCEState(BaseModel):
    state: str
    login_challenge: str
    code_verifier: str
    code_challenge: str
    code_challenge_method: Literal["S256"] = "S256"
    client_id: Optional[str] = None
    created_at: float = Field(default_factory=time.time)

    @classmethod
    def create(cls, login_challenge: str, client_id: Optional[str] = None) -> Self:
        verifier = generate_code_verifier()
        return cls(
            state=secrets.token_urlsafe(24),
            login_challenge=login_challenge,
            code_verifier=verifier,
            code_challenge=code_challenge_s256(verifier),
            client_id=client_id,
        )

    def to_json(self) -> str:
        return self.model_dump_json()

    @classmethod
    def from_json(cls, raw) -> Self:
        if isinstance(raw, bytes):
            raw = raw.decode()
        return cls.model_validate_json(raw)
