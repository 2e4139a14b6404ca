"""
Application settings, loaded from LOGINBRIDGE_* environment variables (and .env).
"""

from functools import lru_cache
from typing import Any, Dict, List, Literal, Union

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from loginbridge.constants import (
    DEFAULT_CONSENT_SCOPES,
    FLOW_TIMEOUT_SECONDS,
    LOGIN_REMEMBER_FOR_SECONDS,
    PKCE_SESSION_TTL_SECONDS,
    UPSTREAM_TIMEOUT_SECONDS,
)


def _split_csv(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    if isinstance(value, (list, tuple, set)):
        return [str(item).strip() for item in value if str(item).strip()]
    raise TypeError("Expected a comma-separated string or a list.")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="LOGINBRIDGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # Authorization server (Ory Hydra).
    hydra_admin_url: str = "http://127.0.0.1:4445"
    hydra_public_url: str = "http://127.0.0.1:4444"

    # Shared session/PKCE store.
    redis_url: str = "redis://127.0.0.1:6379/0"

    # Upstream identity provider (Google).
    google_client_id: str = ""
    google_client_secret: str = ""
    google_redirect_uri: str = "http://127.0.0.1:3000/callback"

    # Flow policies.
    login_mode: Literal["auto", "upstream"] = "auto"
    default_subject: str = "claude@claude.ai"
    remember_for: int = LOGIN_REMEMBER_FOR_SECONDS
    # Union[str, ...] lets pydantic-settings hand raw comma-separated strings to the validator.
    consent_allowed_scopes: Union[str, List[str]] = list(DEFAULT_CONSENT_SCOPES)
    consent_client_scopes: Dict[str, List[str]] = {}
    consent_denied_clients: Union[str, List[str]] = []
    logout_declined_url: str = "https://www.ory.sh/"
    pkce_ttl: int = PKCE_SESSION_TTL_SECONDS

    # Timeouts (seconds).
    upstream_timeout: float = UPSTREAM_TIMEOUT_SECONDS
    flow_timeout: float = FLOW_TIMEOUT_SECONDS

    # Browser forms.
    cookie_secure: bool = False

    # Misc.
    enable_test_client: bool = False
    log_level: str = "INFO"
    log_json: bool = False
    host: str = "0.0.0.0"
    port: int = 3000

    @field_validator("consent_allowed_scopes", "consent_denied_clients", mode="before")
    @classmethod
    def parse_comma_separated(cls, value: Any) -> List[str]:
        return _split_csv(value)

    @field_validator("hydra_admin_url", "hydra_public_url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


@lru_cache()
def get_settings() -> Settings:
    return Settings()
