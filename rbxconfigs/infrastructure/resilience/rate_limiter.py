"""Server-driven rate limiting middleware.

Tracks the rate budget the server reports in ``x-ratelimit-remaining`` and
``x-ratelimit-reset`` and throttles in two ways:

- Proactively: before sending, if the cached budget is exhausted, wait
  for the cached reset window to pass.
- Reactively: on a 429, wait for ``retry-after`` (or the reset window)
  and replay the request, up to ``max_retries`` times.

Every wait adds a small cushion to absorb clock skew between client and
server.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

import httpx

from rbxconfigs.domain.models.http import ReplayableRequest
from rbxconfigs.infrastructure.http.pipeline import Middleware, Next
from rbxconfigs.infrastructure.resilience.state import SharedRateState

logger = logging.getLogger(__name__)

REMAINING_HEADER = "x-ratelimit-remaining"
RESET_HEADER = "x-ratelimit-reset"
RETRY_AFTER_HEADER = "retry-after"

DEFAULT_MAX_429_RETRIES = 5
DEFAULT_CUSHION_S = 0.075
DEFAULT_RETRY_WAIT_S = 1


def parse_seconds(value: Optional[str]) -> Optional[int]:
    """Parses a non-negative integer header value; anything else counts as absent."""
    if value is None:
        return None
    try:
        seconds = int(value.strip())
    except ValueError:
        return None
    return seconds if seconds >= 0 else None


def retry_wait_from_headers(response: httpx.Response) -> int:
    """Seconds to wait before replaying a rate-limited request.

    Prefers ``retry-after``, then ``x-ratelimit-reset``, then one second.
    """
    for header in (RETRY_AFTER_HEADER, RESET_HEADER):
        seconds = parse_seconds(response.headers.get(header))
        if seconds is not None:
            return seconds
    return DEFAULT_RETRY_WAIT_S


class RateLimitMiddleware(Middleware):
    """Honours the server's rate budget and retries 429 responses."""

    def __init__(
        self,
        rate_state: SharedRateState,
        max_retries: int = DEFAULT_MAX_429_RETRIES,
        cushion_s: float = DEFAULT_CUSHION_S,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """Initializes the rate limit middleware.

        Args:
            rate_state: Shared record of the last-known budget.
            max_retries: Replays allowed after the first 429 (at most
                max_retries + 1 sends per request).
            cushion_s: Extra seconds added to every wait.
            sleep: Awaitable sleep, injectable for tests.
        """
        if max_retries < 0:
            raise ValueError("max_retries must not be negative.")
        self.rate_state = rate_state
        self.max_retries = max_retries
        self.cushion_s = cushion_s
        self._sleep = sleep
        logger.debug(f"RateLimitMiddleware initialized: max_retries={max_retries}, cushion={cushion_s}s")

    async def wait_for_budget(self) -> None:
        """Waits while the cached budget is known to be exhausted."""
        while True:
            remaining, reset_after, generation = await self.rate_state.window()
            if remaining != 0 or not reset_after:
                return
            wait_time = reset_after + self.cushion_s
            logger.info(f"Rate budget exhausted. Waiting {wait_time:.3f} seconds before sending.")
            # Lock is released; concurrent requests wait side by side.
            await self._sleep(wait_time)
            await self.rate_state.consume_window(generation)

    async def ingest_headers(self, response: httpx.Response) -> None:
        remaining = parse_seconds(response.headers.get(REMAINING_HEADER))
        reset_after = parse_seconds(response.headers.get(RESET_HEADER))
        if remaining is None and reset_after is None:
            return
        await self.rate_state.ingest(remaining, reset_after)

    async def handle(self, request: ReplayableRequest, next_: Next) -> httpx.Response:
        await self.wait_for_budget()

        for attempt in range(self.max_retries + 1):
            replay = request.try_clone()

            response = await next_(request)
            if not response.is_success:
                logger.debug(f"request failed with status {response.status_code}")

            await self.ingest_headers(response)

            if response.status_code != 429:
                return response

            if attempt >= self.max_retries:
                logger.warning(f"Rate limited after {attempt + 1} attempts; giving up.")
                return response

            if replay is None:
                logger.warning("Rate limited and the request body cannot be replayed; not retrying.")
                return response

            wait = retry_wait_from_headers(response)
            logger.warning(f"Rate limited on attempt {attempt + 1}, retrying after {wait} seconds...")
            await self._sleep(wait + self.cushion_s)
            request = replay

        # The loop always returns on its last attempt.
        raise AssertionError("unreachable")
