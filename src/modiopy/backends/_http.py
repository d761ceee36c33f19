"""
Shared HTTP plumbing of the backends.

HttpTransport owns a requests.Session, builds URLs, sends every request
through the RetryAfterMiddleware and maps failures onto TransportError
subclasses. Blocking requests calls run in worker threads so the provider can
keep many of them in flight from one event loop.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, AsyncIterator, Dict, Optional

import requests

from ..exceptions import ConfigurationError, InvalidResponseError, NetworkError, map_http_status
from ..middleware import RetryAfterMiddleware
from ..utils import DEFAULT_USER_AGENT

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 64 * 1024


def int_parameter(parameters: Dict[str, str], key: str, default: Optional[int] = None) -> Optional[int]:
    """Read an optional integer provider parameter; empty strings count as unset."""
    raw = parameters.get(key)
    if raw is None or str(raw).strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"parameter {key!r} must be an integer, got {raw!r}") from exc


def float_parameter(parameters: Dict[str, str], key: str, default: float) -> float:
    raw = parameters.get(key)
    if raw is None or str(raw).strip() == "":
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"parameter {key!r} must be a number, got {raw!r}") from exc


class HttpTransport:
    """
    Parameters
    ----------
    base_url : str
        API root, without trailing slash.
    session : Optional[requests.Session]
        Session to use. A new one is created if omitted.
    timeout : float
        Per-request timeout in seconds.
    middleware : Optional[RetryAfterMiddleware]
        Retry policy. Defaults to an unbounded RetryAfterMiddleware.
    user_agent : str
        User-Agent header value.
    headers : Optional[Dict[str, str]]
        Extra default headers (e.g. Authorization).
    """

    def __init__(self,
                 base_url: str,
                 *,
                 session: Optional[requests.Session] = None,
                 timeout: float = 30.0,
                 middleware: Optional[RetryAfterMiddleware] = None,
                 user_agent: str = DEFAULT_USER_AGENT,
                 headers: Optional[Dict[str, str]] = None):
        if not isinstance(base_url, str) or not base_url.startswith("http"):
            raise ValueError("base_url must be an http/https URL")
        self.base_url = base_url.rstrip("/")
        self.timeout = float(timeout)
        self.middleware = middleware or RetryAfterMiddleware()
        self.session = session or requests.Session()
        self.session.headers.update({"Accept": "application/json", "User-Agent": user_agent})
        if headers:
            self.session.headers.update(headers)

    def build_url(self, path: str, **path_params: Any) -> str:
        """
        Build a fully qualified URL from a relative path template.

        Example:
            build_url("/games/{game_id}/mods/{mod_id}", game_id=2475, mod_id=3)
        """
        try:
            path = path.format(**path_params) if path_params else path
        except (KeyError, IndexError) as e:
            raise ValueError(f"Failed to format endpoint path '{path}' with {path_params}: {e}") from e
        if not path.startswith("/"):
            path = "/" + path
        return f"{self.base_url}{path}"

    async def request(self,
                      method: str,
                      path: str,
                      *,
                      params: Optional[Dict[str, Any]] = None,
                      json_body: Optional[Any] = None,
                      path_params: Optional[Dict[str, Any]] = None,
                      expect_json: bool = True) -> Any:
        """
        Perform one API call and return the decoded JSON body.

        Raises
        ------
        TransportError subclass
            For HTTP >= 400, connection failures and undecodable bodies.
        """
        method = method.upper()
        url = self.build_url(path, **(path_params or {}))

        def call() -> requests.Response:
            return self.session.request(method, url, params=params, json=json_body, timeout=self.timeout)

        try:
            resp = await self.middleware.send(call, label=f"{method} {url}")
        except requests.RequestException as exc:
            raise NetworkError(f"Connection error: {exc}") from exc

        try:
            if resp.status_code >= 400:
                content_text = resp.text[:1000] if resp.text else ""
                raise map_http_status(resp.status_code, f"{method} {url}: {content_text}", resp)
            if not expect_json:
                return None
            try:
                return resp.json()
            except ValueError as exc:
                raise InvalidResponseError(f"Invalid JSON from {url}: {exc}", resp.status_code, resp) from exc
        finally:
            resp.close()

    async def stream(self, url: str, *, chunk_size: int = DEFAULT_CHUNK_SIZE) -> AsyncIterator[bytes]:
        """
        Stream a (possibly absolute, off-API) URL in chunks.

        The response is closed when the iterator is exhausted or closed early.
        """
        def call() -> requests.Response:
            return self.session.get(url, stream=True, timeout=self.timeout)

        try:
            resp = await self.middleware.send(call, label=f"GET {url}")
        except requests.RequestException as exc:
            raise NetworkError(f"Connection error: {exc}") from exc

        try:
            if resp.status_code >= 400:
                raise map_http_status(resp.status_code, f"GET {url}: {resp.reason}", resp)
            chunks = resp.iter_content(chunk_size=chunk_size)
            while True:
                try:
                    chunk = await asyncio.to_thread(next, chunks, None)
                except requests.RequestException as exc:
                    raise NetworkError(f"Connection error while streaming {url}: {exc}") from exc
                if chunk is None:
                    break
                if chunk:
                    yield chunk
        finally:
            resp.close()

    def close(self) -> None:
        """
        Close the underlying requests session and free resources.
        """
        self.session.close()

    def __repr__(self) -> str:
        return f"<HttpTransport base_url={self.base_url!r}>"
