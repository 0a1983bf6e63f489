import pytest

import httpx

from conftest import json_response, stream_request
from rbxconfigs.domain.models.http import ReplayableRequest
from rbxconfigs.infrastructure.resilience.rate_limiter import (
    RateLimitMiddleware,
    parse_seconds,
    retry_wait_from_headers,
)
from rbxconfigs.infrastructure.resilience.state import SharedRateState


@pytest.fixture
def rate_state():
    return SharedRateState()


@pytest.fixture
def middleware(rate_state, recording_sleep):
    return RateLimitMiddleware(rate_state, max_retries=5, cushion_s=0.075, sleep=recording_sleep)


def test_parse_seconds():
    assert parse_seconds("7") == 7
    assert parse_seconds(" 12 ") == 12
    assert parse_seconds("0") == 0
    assert parse_seconds(None) is None
    assert parse_seconds("soon") is None
    assert parse_seconds("-3") is None
    assert parse_seconds("1.5") is None


def test_retry_wait_prefers_retry_after_then_reset_then_default():
    assert retry_wait_from_headers(httpx.Response(429, headers={"retry-after": "4", "x-ratelimit-reset": "9"})) == 4
    assert retry_wait_from_headers(httpx.Response(429, headers={"x-ratelimit-reset": "9"})) == 9
    assert retry_wait_from_headers(httpx.Response(429, headers={"retry-after": "later"})) == 1
    assert retry_wait_from_headers(httpx.Response(429)) == 1


def test_negative_retry_bound_rejected(rate_state):
    with pytest.raises(ValueError):
        RateLimitMiddleware(rate_state, max_retries=-1)


@pytest.mark.asyncio
async def test_success_passes_through_without_sleeping(middleware, get_request, scripted_next, recording_sleep):
    next_ = scripted_next(json_response(200, {"ok": True}))

    response = await middleware.handle(get_request, next_)

    assert response.status_code == 200
    assert next_.calls == 1
    assert recording_sleep.calls == []


@pytest.mark.asyncio
async def test_exhausted_budget_waits_for_reset_before_sending(
    middleware, rate_state, get_request, scripted_next, recording_sleep
):
    await rate_state.ingest(0, 3)
    next_ = scripted_next(json_response(200))

    response = await middleware.handle(get_request, next_)

    assert response.status_code == 200
    assert recording_sleep.calls == [pytest.approx(3.075)]
    assert next_.calls == 1
    # The window slept through is forgotten
    assert await rate_state.snapshot() == (0, None)


@pytest.mark.asyncio
async def test_window_reported_again_while_waiting_is_honoured(rate_state, get_request, scripted_next):
    delays = []

    async def sleep(seconds):
        delays.append(seconds)
        if len(delays) == 1:
            # Another request sees the same exhausted window meanwhile
            await rate_state.ingest(0, 3)

    middleware = RateLimitMiddleware(rate_state, max_retries=5, cushion_s=0.075, sleep=sleep)
    await rate_state.ingest(0, 3)
    next_ = scripted_next(json_response(200))

    await middleware.handle(get_request, next_)

    assert delays == [pytest.approx(3.075), pytest.approx(3.075)]
    assert next_.calls == 1


@pytest.mark.asyncio
async def test_remaining_budget_does_not_wait(middleware, rate_state, get_request, scripted_next, recording_sleep):
    await rate_state.ingest(4, 30)
    next_ = scripted_next(json_response(200))

    await middleware.handle(get_request, next_)

    assert recording_sleep.calls == []


@pytest.mark.asyncio
async def test_budget_reported_by_one_response_throttles_the_next_request(
    middleware, get_request, scripted_next, recording_sleep
):
    next_ = scripted_next(json_response(200, headers={"x-ratelimit-remaining": "0", "x-ratelimit-reset": "2"}))

    await middleware.handle(get_request, next_)
    assert recording_sleep.calls == []

    await middleware.handle(get_request, next_)
    assert recording_sleep.calls == [pytest.approx(2.075)]


@pytest.mark.asyncio
async def test_response_without_rate_headers_leaves_state_untouched(middleware, rate_state, get_request, scripted_next):
    await rate_state.ingest(10, 20)
    next_ = scripted_next(json_response(200))

    await middleware.handle(get_request, next_)

    assert await rate_state.snapshot() == (10, 20)


@pytest.mark.asyncio
async def test_partial_rate_headers_update_only_known_fields(middleware, rate_state, get_request, scripted_next):
    await rate_state.ingest(10, 20)
    next_ = scripted_next(json_response(200, headers={"x-ratelimit-remaining": "9"}))

    await middleware.handle(get_request, next_)

    assert await rate_state.snapshot() == (9, 20)


@pytest.mark.asyncio
async def test_always_rate_limited_gives_up_after_bound(rate_state, get_request, scripted_next, recording_sleep):
    middleware = RateLimitMiddleware(rate_state, max_retries=3, cushion_s=0.075, sleep=recording_sleep)
    next_ = scripted_next(json_response(429, headers={"retry-after": "1"}))

    response = await middleware.handle(get_request, next_)

    assert response.status_code == 429
    assert next_.calls == 4
    assert len(recording_sleep.calls) == 3


@pytest.mark.asyncio
async def test_recovers_after_five_rate_limited_attempts(middleware, get_request, scripted_next, recording_sleep):
    limited = json_response(429, headers={"retry-after": "2"})
    next_ = scripted_next(limited, limited, limited, limited, limited, json_response(200, {"ok": True}))

    response = await middleware.handle(get_request, next_)

    assert response.status_code == 200
    assert next_.calls == 6
    assert recording_sleep.calls == [pytest.approx(2.075)] * 5


@pytest.mark.asyncio
async def test_retry_resends_the_same_request(middleware, scripted_next):
    request = ReplayableRequest.json("POST", "https://example.test/items", {"a": 1})
    next_ = scripted_next(json_response(429), json_response(201))

    await middleware.handle(request, next_)

    assert next_.requests[0] == next_.requests[1]
    assert next_.requests[1].content == b'{"a": 1}'


@pytest.mark.asyncio
async def test_stream_body_is_not_retried(middleware, scripted_next, recording_sleep):
    next_ = scripted_next(json_response(429, headers={"retry-after": "1"}))

    response = await middleware.handle(stream_request(), next_)

    assert response.status_code == 429
    assert next_.calls == 1
    assert recording_sleep.calls == []


@pytest.mark.asyncio
async def test_zero_retry_bound_sends_once(rate_state, get_request, scripted_next, recording_sleep):
    middleware = RateLimitMiddleware(rate_state, max_retries=0, sleep=recording_sleep)
    next_ = scripted_next(json_response(429))

    response = await middleware.handle(get_request, next_)

    assert response.status_code == 429
    assert next_.calls == 1
    assert recording_sleep.calls == []
