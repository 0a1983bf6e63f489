"""Resilient HTTP client for the Roblox web API.

The ApiClient owns the shared rate and auth state and the pipeline built
around them, so every request issued through one client sees the same
rate budget and CSRF token. Construct one per process and close it on
shutdown (or use it as an async context manager).

Example:
    >>> async with ApiClient(StaticCredentialProvider("cookie")) as client:
    ...     response = await client.get("https://apis.roblox.com/...")
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

from rbxconfigs import __version__
from rbxconfigs.domain.interfaces.credentials import CredentialProvider
from rbxconfigs.domain.models.http import ReplayableRequest
from rbxconfigs.infrastructure.http.pipeline import HttpxTransport, Pipeline, Transport
from rbxconfigs.infrastructure.resilience.api_retry import DEFAULT_MAX_RETRIES, TransientRetryMiddleware
from rbxconfigs.infrastructure.resilience.auth import DEFAULT_MAX_WRITE_CONFLICT_RETRIES, AuthMiddleware
from rbxconfigs.infrastructure.resilience.rate_limiter import (
    DEFAULT_CUSHION_S,
    DEFAULT_MAX_429_RETRIES,
    RateLimitMiddleware,
)
from rbxconfigs.infrastructure.resilience.state import SharedAuthState, SharedRateState

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_S = 30.0
DEFAULT_HEADERS: Dict[str, str] = {
    "user-agent": f"rbx-configs/{__version__}",
    "cache-control": "no-cache",
    "pragma": "no-cache",
    "referer": "https://create.roblox.com",
    "origin": "https://create.roblox.com",
    "priority": "u=1, i",
}


def build_default_pipeline(
    rate_state: SharedRateState,
    auth_state: SharedAuthState,
    transport: Transport,
    max_429_retries: int = DEFAULT_MAX_429_RETRIES,
    cushion_s: float = DEFAULT_CUSHION_S,
    max_transient_retries: int = DEFAULT_MAX_RETRIES,
    max_write_conflict_retries: int = DEFAULT_MAX_WRITE_CONFLICT_RETRIES,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> Pipeline:
    """Wires Auth -> RateLimit -> TransientRetry -> transport."""
    return Pipeline(
        [
            AuthMiddleware(auth_state, max_write_conflict_retries=max_write_conflict_retries, sleep=sleep),
            RateLimitMiddleware(rate_state, max_retries=max_429_retries, cushion_s=cushion_s, sleep=sleep),
            TransientRetryMiddleware(max_retries=max_transient_retries, sleep=sleep),
        ],
        transport,
    )


class ApiClient:
    """Issues requests through the auth/rate-limit/retry pipeline."""

    def __init__(
        self,
        credential_provider: CredentialProvider,
        max_429_retries: int = DEFAULT_MAX_429_RETRIES,
        cushion_s: float = DEFAULT_CUSHION_S,
        max_transient_retries: int = DEFAULT_MAX_RETRIES,
        max_write_conflict_retries: int = DEFAULT_MAX_WRITE_CONFLICT_RETRIES,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """Initializes the client and fetches the session credential once.

        Args:
            credential_provider: Supplies the session credential.
            max_429_retries: Replays allowed for rate-limited requests.
            cushion_s: Extra seconds added to every rate limit wait.
            max_transient_retries: Backoff retries for network failures and 5xx.
            max_write_conflict_retries: Replays allowed for ETagMismatch conflicts.
            timeout_s: httpx timeout for each send.
            transport: Optional httpx transport (e.g. httpx.MockTransport in tests).
            sleep: Awaitable sleep shared by every middleware.

        Raises:
            CredentialError: If the provider has no credential.
        """
        self.rate_state = SharedRateState()
        self.auth_state = SharedAuthState(session_credential=credential_provider.get_credential())
        self._http = httpx.AsyncClient(headers=DEFAULT_HEADERS, timeout=timeout_s, transport=transport)
        self.pipeline = build_default_pipeline(
            self.rate_state,
            self.auth_state,
            HttpxTransport(self._http),
            max_429_retries=max_429_retries,
            cushion_s=cushion_s,
            max_transient_retries=max_transient_retries,
            max_write_conflict_retries=max_write_conflict_retries,
            sleep=sleep,
        )
        logger.info(
            f"ApiClient initialized: max_429_retries={max_429_retries}, cushion={cushion_s}s, "
            f"max_transient_retries={max_transient_retries}, "
            f"max_write_conflict_retries={max_write_conflict_retries}"
        )

    async def send(self, request: ReplayableRequest) -> httpx.Response:
        return await self.pipeline.send(request)

    async def request(self, method: str, url: str, json: Any = None) -> httpx.Response:
        if json is None:
            return await self.send(ReplayableRequest(method, url))
        return await self.send(ReplayableRequest.json(method, url, json))

    async def get(self, url: str) -> httpx.Response:
        return await self.request("GET", url)

    async def post(self, url: str, json: Any = None) -> httpx.Response:
        return await self.request("POST", url, json=json)

    async def put(self, url: str, json: Any = None) -> httpx.Response:
        return await self.request("PUT", url, json=json)

    async def delete(self, url: str, json: Any = None) -> httpx.Response:
        return await self.request("DELETE", url, json=json)

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()
