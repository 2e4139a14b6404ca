"""
The immutable collaborator bundle threaded through every flow.
"""

from dataclasses import dataclass
from typing import Any, Optional

from loguru import logger

from loginbridge.challenge.policy import FlowPolicy
from loginbridge.config import Settings
from loginbridge.google.client import GoogleOAuthClient
from loginbridge.hydra.client import HydraAdminClient
from loginbridge.session.store import SessionStore


@dataclass(frozen=True)
class Environment:
    hydra: HydraAdminClient
    store: SessionStore
    logger: Any
    policy: FlowPolicy
    google: Optional[GoogleOAuthClient] = None
    default_subject: Optional[str] = None
    upstream_login: bool = False


def build_environment(settings: Settings, redis_client) -> Environment:
    """Wire real collaborators from settings."""
    google = None
    if settings.google_client_id:
        google = GoogleOAuthClient(
            client_id=settings.google_client_id,
            client_secret=settings.google_client_secret,
            redirect_uri=settings.google_redirect_uri,
            timeout=settings.upstream_timeout,
        )
    elif settings.login_mode == "upstream":
        logger.warning("login_mode=upstream but no Google client configured; upstream logins will fail")
    return Environment(
        hydra=HydraAdminClient(
            admin_url=settings.hydra_admin_url,
            public_url=settings.hydra_public_url,
            timeout=settings.upstream_timeout,
        ),
        store=SessionStore(redis_client),
        logger=logger.bind(component="resolver"),
        policy=FlowPolicy.from_settings(settings),
        google=google,
        default_subject=settings.default_subject,
        upstream_login=settings.login_mode == "upstream",
    )
