"""Middleware pipeline around an httpx transport.

A request flows through each middleware in order; each middleware only
knows the ``next_`` callable that runs the rest of the chain. The last
link is the transport, which performs the actual network I/O.
"""

import abc
import functools
import logging
from typing import Awaitable, Callable, List, Sequence

import httpx

from rbxconfigs.domain.models.http import ReplayableRequest

logger = logging.getLogger(__name__)

Next = Callable[[ReplayableRequest], Awaitable[httpx.Response]]


class Middleware(abc.ABC):
    """A request/response interceptor."""

    @abc.abstractmethod
    async def handle(self, request: ReplayableRequest, next_: Next) -> httpx.Response:
        """Processes ``request``, delegating to ``next_`` zero or more times.

        Args:
            request: The outgoing request.
            next_: Sends a request through the remainder of the pipeline.

        Returns:
            The response to hand back to the previous layer.
        """
        pass


class Transport(abc.ABC):
    """Terminal link of the pipeline."""

    @abc.abstractmethod
    async def send(self, request: ReplayableRequest) -> httpx.Response:
        pass


class HttpxTransport(Transport):
    """Sends requests with an httpx.AsyncClient."""

    def __init__(self, client: httpx.AsyncClient):
        self._client = client

    async def send(self, request: ReplayableRequest) -> httpx.Response:
        logger.debug(f"-> {request.method} {request.url}")
        response = await self._client.send(self._client.build_request(
            request.method,
            request.url,
            headers=list(request.headers),
            content=request.stream if request.stream is not None else request.content,
        ))
        logger.debug(f"<- {response.status_code} {request.method} {request.url}")
        return response


class Pipeline:
    """Routes requests through the middlewares and into the transport.

    Holds no state beyond the routing itself.
    """

    def __init__(self, middlewares: Sequence[Middleware], transport: Transport):
        self._middlewares: List[Middleware] = list(middlewares)
        self._transport = transport

    @property
    def middlewares(self) -> List[Middleware]:
        return list(self._middlewares)

    async def send(self, request: ReplayableRequest) -> httpx.Response:
        return await self._dispatch(0, request)

    async def _dispatch(self, index: int, request: ReplayableRequest) -> httpx.Response:
        if index == len(self._middlewares):
            return await self._transport.send(request)
        next_ = functools.partial(self._dispatch, index + 1)
        return await self._middlewares[index].handle(request, next_)
