import pytest
from typer.testing import CliRunner
from typing import Callable, List, Optional, Sequence, Union

import httpx

from rbxconfigs.domain.models.http import ReplayableRequest
from rbxconfigs.infrastructure.config.settings import clear_test_config

UNIVERSE_ID = 1234567


class RecordingSleep:
    """Awaitable stand-in for asyncio.sleep that records each delay."""

    def __init__(self):
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


class ScriptedNext:
    """A pipeline ``next_`` callable answering from a fixed script.

    Each script item is either an httpx.Response, an exception to raise, or
    a callable taking the request and returning one of those. The last
    item repeats once the script runs out.
    """

    def __init__(self, script: Sequence[Union[httpx.Response, Exception, Callable]]):
        self.script = list(script)
        self.requests: List[ReplayableRequest] = []

    async def __call__(self, request: ReplayableRequest) -> httpx.Response:
        self.requests.append(request)
        index = min(len(self.requests), len(self.script)) - 1
        item = self.script[index]
        if callable(item) and not isinstance(item, httpx.Response):
            item = item(request)
        if isinstance(item, Exception):
            raise item
        return item

    @property
    def calls(self) -> int:
        return len(self.requests)


async def _one_chunk():
    yield b"chunk"


def stream_request(method: str = "POST", url: str = "https://example.test/upload") -> ReplayableRequest:
    """A request whose body is a one-shot stream (never replayable)."""
    return ReplayableRequest(method, url, stream=_one_chunk())


@pytest.fixture(scope="session")
def runner():
    """Provides a Typer CliRunner instance."""
    return CliRunner()


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
def scripted_next() -> Callable[..., ScriptedNext]:
    """Factory for ScriptedNext so each test defines its own script."""
    def factory(*script) -> ScriptedNext:
        return ScriptedNext(script)
    return factory


@pytest.fixture
def get_request() -> ReplayableRequest:
    return ReplayableRequest("GET", "https://example.test/resource")


@pytest.fixture(autouse=True)
def ensure_cookie_for_tests(monkeypatch):
    """Ensure a dummy session cookie is set so client construction succeeds."""
    monkeypatch.setenv("RBX_COOKIE", "DUMMY_TEST_COOKIE")
    yield
    clear_test_config()


def json_response(status_code: int, body: Optional[object] = None, headers: Optional[dict] = None) -> httpx.Response:
    if body is None:
        return httpx.Response(status_code, headers=headers)
    return httpx.Response(status_code, json=body, headers=headers)
