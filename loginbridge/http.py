"""
Shared aiohttp plumbing for upstream JSON APIs.
"""

import asyncio
import json
from typing import Any, Dict, Optional, Tuple, Type, TypeVar

import aiohttp
from pydantic import BaseModel, ValidationError

from loginbridge.constants import UPSTREAM_TIMEOUT_SECONDS
from loginbridge.errors import MalformedUpstreamResponse, UpstreamUnavailable

ModelT = TypeVar("ModelT", bound=BaseModel)


def parse_json(text: str) -> Any:
    if not text:
        return None
    try:
        return json.loads(text)
    except ValueError:
        return None


def validate_payload(model: Type[ModelT], body: Any, operation: str) -> ModelT:
    """Validate an upstream JSON body, mapping shape errors to MalformedUpstreamResponse."""
    if not isinstance(body, dict):
        raise MalformedUpstreamResponse(f"{operation}: expected a JSON object", body=body)
    try:
        return model.model_validate(body)
    except ValidationError as exc:
        raise MalformedUpstreamResponse(
            f"{operation}: unexpected response shape: {exc.error_count()} validation error(s)",
            body=body,
        ) from exc


class UpstreamHttpClient:
    """
    Base for upstream API wrappers.

    Each call opens a short-lived aiohttp session bounded by ``timeout`` seconds; a
    timed out call is abandoned and surfaces as UpstreamUnavailable.
    """

    def __init__(self, timeout: float = UPSTREAM_TIMEOUT_SECONDS):
        self.timeout = aiohttp.ClientTimeout(total=timeout)

    async def _send(
        self,
        method: str,
        url: str,
        *,
        params: Optional[Dict[str, str]] = None,
        json_body: Optional[Dict[str, Any]] = None,
        form: Optional[Dict[str, str]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Tuple[int, str]:
        """Perform one HTTP exchange, returning (status, body text)."""
        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.request(
                    method, url, params=params, json=json_body, data=form, headers=headers
                ) as response:
                    return response.status, await response.text()
        except asyncio.TimeoutError as exc:
            raise UpstreamUnavailable(
                f"{method} {url}: timed out after {self.timeout.total}s"
            ) from exc
        except aiohttp.ClientError as exc:
            raise UpstreamUnavailable(f"{method} {url}: {exc}") from exc
