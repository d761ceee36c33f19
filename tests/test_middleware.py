import asyncio
import logging

import pytest

from modiopy.exceptions import RateLimitError
from modiopy.middleware import DEFAULT_MIN_WAIT, RetryAfterMiddleware

from conftest import FakeResponse


class Recorder:
    def __init__(self):
        self.waits = []

    async def __call__(self, seconds):
        self.waits.append(seconds)


def _responses(*items):
    queue = list(items)
    sent = []

    def call():
        resp = queue.pop(0)
        sent.append(resp)
        return resp

    return call, sent


def test_passes_through_without_retry_after():
    sleep = Recorder()
    call, sent = _responses(FakeResponse(200, {"ok": True}))
    resp = asyncio.run(RetryAfterMiddleware(sleep=sleep).send(call))
    assert resp.json() == {"ok": True}
    assert sleep.waits == []


def test_waits_and_reissues():
    sleep = Recorder()
    limited = FakeResponse(429, headers={"Retry-After": "2"})
    call, sent = _responses(limited, FakeResponse(429, headers={"retry-after": "1"}), FakeResponse(200, {"ok": 1}))

    resp = asyncio.run(RetryAfterMiddleware(sleep=sleep).send(call, label="GET /mods"))
    assert resp.status_code == 200
    assert sleep.waits == [2.0, 1.0]
    assert len(sent) == 3
    assert limited.closed


def test_any_status_with_retry_after_is_retried():
    sleep = Recorder()
    call, sent = _responses(FakeResponse(503, headers={"Retry-After": "0"}), FakeResponse(200, {}))
    asyncio.run(RetryAfterMiddleware(sleep=sleep).send(call))
    assert len(sent) == 2


def test_unusable_header_waits_at_least_min_wait(caplog):
    sleep = Recorder()
    call, sent = _responses(
        *[FakeResponse(503, headers={"Retry-After": value})
          for value in ("soon", "0", "Wed, 21 Oct 2015 07:28:00 GMT")],
        FakeResponse(200, {}),
    )
    with caplog.at_level(logging.WARNING, logger="modiopy.middleware"):
        asyncio.run(RetryAfterMiddleware(sleep=sleep, min_wait=0.5).send(call, label="GET /mods"))
    assert sleep.waits == [0.5, 0.5, 0.5]
    assert len(sent) == 4
    assert "retrying after 0.5s: GET /mods" in caplog.text


def test_default_min_wait_is_positive():
    sleep = Recorder()
    call, _ = _responses(FakeResponse(429, headers={"Retry-After": "soon"}), FakeResponse(200, {}))
    asyncio.run(RetryAfterMiddleware(sleep=sleep).send(call))
    assert sleep.waits == [DEFAULT_MIN_WAIT]
    assert DEFAULT_MIN_WAIT > 0
    with pytest.raises(ValueError):
        RetryAfterMiddleware(min_wait=0)


def test_cap_raises_rate_limit_error():
    sleep = Recorder()
    call, sent = _responses(*[FakeResponse(429, headers={"Retry-After": "1"}) for _ in range(3)])
    with pytest.raises(RateLimitError) as exc:
        asyncio.run(RetryAfterMiddleware(max_retries=2, sleep=sleep).send(call))
    assert exc.value.code == 429
    assert len(sent) == 3
    assert sleep.waits == [1.0, 1.0]


def test_negative_cap_rejected():
    with pytest.raises(ValueError):
        RetryAfterMiddleware(max_retries=-1)
