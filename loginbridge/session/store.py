"""
Redis-backed PKCE/session store.

Keys are disjoint per session (``pkce_session:<state>``), so concurrent flows never
contend; single-use reads go through GETDEL.
"""

from typing import Optional

from pydantic import ValidationError
from redis.exceptions import RedisError

from loginbridge.constants import PKCE_SESSION_PREFIX, PKCE_SESSION_TTL_SECONDS
from loginbridge.errors import MalformedUpstreamResponse, UpstreamUnavailable
from loginbridge.session.schemas import PKCEState


class SessionStore:
    def __init__(self, redis_client, prefix: str = PKCE_SESSION_PREFIX):
        self.redis_client = redis_client
        self.prefix = prefix

    def _key(self, state: str) -> str:
        return f"{self.prefix}{state}"

    async def save_pkce_state(
        self, pkce: PKCEState, ttl: int = PKCE_SESSION_TTL_SECONDS
    ) -> None:
        try:
            await self.redis_client.set(self._key(pkce.state), pkce.to_json(), ex=ttl)
        except RedisError as exc:
            raise UpstreamUnavailable(f"session store write failed: {exc}") from exc

    async def pop_pkce_state(self, state: str) -> Optional[PKCEState]:
        """Atomically read and delete; None when missing or expired."""
        try:
            raw = await self.redis_client.getdel(self._key(state))
        except RedisError as exc:
            raise UpstreamUnavailable(f"session store read failed: {exc}") from exc
        if not raw:
            return None
        try:
            return PKCEState.from_json(raw)
        except ValidationError as exc:
            raise MalformedUpstreamResponse(f"corrupt PKCE state for {state}") from exc

    async def ping(self) -> bool:
        try:
            return bool(await self.redis_client.ping())
        except RedisError:
            return False
