"""
modiopy.middleware
------------------

Retry-After handling beneath every backend request.

mod.io answers with a ``Retry-After`` header once a client exceeds its rate
limit. The middleware sleeps for the announced duration and re-issues the
identical request. A header it cannot use (garbage, zero, a past date) waits
`min_wait` seconds instead. By default there is no cap on the number of attempts, so a
backend that stays rate limited stalls the call; pass `max_retries` to bound it.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from typing import Awaitable, Callable, Optional

import requests

from .exceptions import RateLimitError
from .utils import parse_retry_after

logger = logging.getLogger(__name__)

SleepFunc = Callable[[float], Awaitable[None]]

DEFAULT_MIN_WAIT = 1.0


class RetryAfterMiddleware:
    """
    Parameters
    ----------
    max_retries : Optional[int]
        Maximum number of re-issued requests per call. None means unbounded.
    sleep : SleepFunc
        Coroutine used to wait (asyncio.sleep; replaceable in tests).
    min_wait : float
        Seconds to wait when the header is unparseable, zero or a past date.
    """

    def __init__(self,
                 max_retries: Optional[int] = None,
                 sleep: SleepFunc = asyncio.sleep,
                 *,
                 min_wait: float = DEFAULT_MIN_WAIT):
        if max_retries is not None and max_retries < 0:
            raise ValueError("max_retries must be >= 0 or None")
        if min_wait <= 0:
            raise ValueError("min_wait must be > 0")
        self.max_retries = max_retries
        self.min_wait = float(min_wait)
        self._sleep = sleep
        self._requests = itertools.count()

    async def send(self, call: Callable[[], requests.Response], *, label: str = "") -> requests.Response:
        """
        Run the blocking `call` in a worker thread until its response carries no Retry-After header.

        Parameters
        ----------
        call : Callable[[], requests.Response]
            Issues one request. Called again, unchanged, for every retry.
        label : str
            Request path for log records.

        Raises
        ------
        RateLimitError
            If `max_retries` is set and exhausted.
        """
        retries = 0
        while True:
            logger.info("request started %d %s", next(self._requests), label)
            resp = await asyncio.to_thread(call)
            retry_after = resp.headers.get("Retry-After")
            if retry_after is None:
                return resp
            if self.max_retries is not None and retries >= self.max_retries:
                resp.close()
                raise RateLimitError(
                    f"still rate limited after {retries} retries: {label}",
                    resp.status_code,
                    resp,
                )
            wait = parse_retry_after(retry_after)
            if wait <= 0:
                wait = self.min_wait
            logger.warning("rate limited, retrying after %.1fs: %s", wait, label)
            resp.close()
            retries += 1
            await self._sleep(wait)

    def __repr__(self) -> str:
        return f"<RetryAfterMiddleware max_retries={self.max_retries!r}>"
