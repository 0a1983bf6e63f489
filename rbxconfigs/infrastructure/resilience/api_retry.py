"""Middleware for retrying requests on transient failures.

Implements exponential backoff for connection failures, timeouts and
server errors (5xx), independent of the auth and rate limit handling that
sits above it in the pipeline. Backoff is delegated to tenacity.
"""

import asyncio
import logging
from typing import Awaitable, Callable

import httpx
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    before_sleep_log,
    retry_if_exception_type,
    retry_if_result,
    stop_after_attempt,
    wait_random_exponential,
)

from rbxconfigs.domain.exceptions import TransientError
from rbxconfigs.domain.models.http import ReplayableRequest
from rbxconfigs.infrastructure.http.pipeline import Middleware, Next

logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 5
DEFAULT_BACKOFF_MULTIPLIER_S = 0.5
DEFAULT_MAX_BACKOFF_S = 30.0


def is_server_error(response: httpx.Response) -> bool:
    return response.status_code >= 500


def _return_last_outcome(retry_state: RetryCallState) -> httpx.Response:
    # Hands back the final 5xx response, or re-raises the final transport error.
    return retry_state.outcome.result()


class TransientRetryMiddleware(Middleware):
    """Retries network failures and 5xx responses with exponential backoff."""

    def __init__(
        self,
        max_retries: int = DEFAULT_MAX_RETRIES,
        backoff_multiplier_s: float = DEFAULT_BACKOFF_MULTIPLIER_S,
        max_backoff_s: float = DEFAULT_MAX_BACKOFF_S,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """Initializes the TransientRetryMiddleware.

        Args:
            max_retries: Maximum number of retry attempts after the first send.
            backoff_multiplier_s: Scale of the exponential backoff.
            max_backoff_s: Upper bound for a single backoff delay.
            sleep: Awaitable sleep, injectable for tests.
        """
        if max_retries < 0:
            raise ValueError("max_retries must not be negative.")
        self.max_retries = max_retries
        self.backoff_multiplier_s = backoff_multiplier_s
        self.max_backoff_s = max_backoff_s
        self._sleep = sleep
        logger.debug(
            f"TransientRetryMiddleware initialized: max_retries={max_retries}, "
            f"multiplier={backoff_multiplier_s}s, max_backoff={max_backoff_s}s"
        )

    def _retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            stop=stop_after_attempt(self.max_retries + 1),
            wait=wait_random_exponential(multiplier=self.backoff_multiplier_s, max=self.max_backoff_s),
            retry=retry_if_exception_type(httpx.TransportError) | retry_if_result(is_server_error),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            retry_error_callback=_return_last_outcome,
            sleep=self._sleep,
        )

    async def handle(self, request: ReplayableRequest, next_: Next) -> httpx.Response:
        attempts = 0

        async def send_attempt() -> httpx.Response:
            nonlocal attempts
            attempts += 1
            # A fresh copy per attempt; the request itself is never consumed.
            return await next_(request.try_clone() or request)

        try:
            if not request.is_replayable:
                return await send_attempt()
            return await self._retrying()(send_attempt)
        except httpx.TransportError as e:
            logger.error(f"Request {request.method} {request.url} failed after {attempts} attempts: {e}")
            raise TransientError(e, attempts) from e
