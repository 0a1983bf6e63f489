"""Session authentication middleware.

Injects the session cookie and the current CSRF token into every request,
picks up rotated CSRF tokens from responses, and recovers from the two
auth-related rejections the Roblox web API produces:

- 403 carrying a fresh ``x-csrf-token``: the token we sent was stale. The
  request is replayed once with the new token.
- 400 ``ETagMismatch``: a previous write has not propagated yet. The
  request is replayed after a delay, up to a bounded number of times.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

import httpx

from rbxconfigs.domain.exceptions import NonRetryableError, WriteConflictError
from rbxconfigs.domain.models.common import CsrfToken
from rbxconfigs.domain.models.http import ReplayableRequest
from rbxconfigs.infrastructure.http.pipeline import Middleware, Next
from rbxconfigs.infrastructure.resilience.state import SharedAuthState

logger = logging.getLogger(__name__)

CSRF_HEADER = "x-csrf-token"
SESSION_COOKIE_NAME = ".ROBLOSECURITY"
WRITE_CONFLICT_MESSAGE = "ETagMismatch"

DEFAULT_MAX_WRITE_CONFLICT_RETRIES = 5
DEFAULT_WRITE_CONFLICT_DELAY_S = 1.0


def error_message(response: httpx.Response) -> str:
    """Extracts the server message from an error response.

    Roblox error bodies look like ``{"message": "..."}``; anything else is
    returned as raw text.
    """
    try:
        body = response.json()
    except ValueError:
        return response.text
    if isinstance(body, dict) and isinstance(body.get("message"), str):
        return body["message"]
    return response.text


class AuthMiddleware(Middleware):
    """Injects credentials and retries stale-token and write-conflict rejections."""

    def __init__(
        self,
        auth_state: SharedAuthState,
        max_write_conflict_retries: int = DEFAULT_MAX_WRITE_CONFLICT_RETRIES,
        write_conflict_delay_s: float = DEFAULT_WRITE_CONFLICT_DELAY_S,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """Initializes the AuthMiddleware.

        Args:
            auth_state: Shared credential and CSRF token record.
            max_write_conflict_retries: Retries allowed for ETagMismatch before
                WriteConflictError is raised.
            write_conflict_delay_s: Base delay; the n-th retry waits n times this.
            sleep: Awaitable sleep, injectable for tests.
        """
        if max_write_conflict_retries < 0:
            raise ValueError("max_write_conflict_retries must not be negative.")
        self.auth_state = auth_state
        self.max_write_conflict_retries = max_write_conflict_retries
        self.write_conflict_delay_s = write_conflict_delay_s
        self._sleep = sleep

    async def _prepare(self, request: ReplayableRequest) -> ReplayableRequest:
        credential = self.auth_state.session_credential
        if credential:
            request = request.with_header("cookie", f"{SESSION_COOKIE_NAME}={credential}")
        token = await self.auth_state.get_csrf_token()
        if token:
            request = request.with_header(CSRF_HEADER, token)
        return request

    async def _ingest_token(self, response: httpx.Response) -> bool:
        """Stores a rotated CSRF token. Returns True if the response carried one."""
        new_token = response.headers.get(CSRF_HEADER)
        if not new_token:
            return False
        await self.auth_state.set_csrf_token(CsrfToken(new_token))
        logger.debug("Updated CSRF token from response headers")
        return True

    async def handle(self, request: ReplayableRequest, next_: Next) -> httpx.Response:
        stale_token_retried = False
        write_conflicts = 0
        owns_conflict_flag = False
        try:
            while True:
                prepared = await self._prepare(request)
                replay: Optional[ReplayableRequest] = request.try_clone()

                response = await next_(prepared)
                token_updated = await self._ingest_token(response)

                if response.status_code == 403:
                    if token_updated and not stale_token_retried and replay is not None:
                        stale_token_retried = True
                        logger.debug("Retrying request with new CSRF token...")
                        request = replay
                        continue
                    return response

                if response.status_code != 400:
                    return response

                message = error_message(response)
                if message != WRITE_CONFLICT_MESSAGE:
                    raise NonRetryableError(response.status_code, message)

                if replay is None:
                    logger.debug("Write conflict on a request that cannot be replayed; returning response")
                    return response

                write_conflicts += 1
                if write_conflicts > self.max_write_conflict_retries:
                    raise WriteConflictError(response.status_code, message, self.max_write_conflict_retries)

                if not owns_conflict_flag:
                    owns_conflict_flag = await self.auth_state.mark_write_conflict()
                    if owns_conflict_flag:
                        logger.warning("Waiting for Roblox ETag to propagate...")

                await self._sleep(self.write_conflict_delay_s * write_conflicts)
                request = replay
        finally:
            if owns_conflict_flag:
                await self.auth_state.clear_write_conflict()
