"""
exceptions.py

Error types raised by modiopy.

Resolution errors come from the provider itself: a reference it cannot parse,
a slug that matches zero or several mods, a mod without files, a download of
an unpinned reference or a cancelled fetch. Transport errors come from the
backends when a remote call fails.

Every error keeps the numeric status (when there is one) and the raw response
that produced it.
"""

from typing import Any, Dict, Optional, Type


class ModioError(Exception):
    """
    Root of the modiopy error tree.

    Attributes
    ----------
    message: str
        What went wrong.
    code: Optional[int]
        HTTP status, when the error comes from a response.
    response: Optional[Any]
        The requests.Response (or decoded payload) behind the error.
    """

    def __init__(self, message: str, code: Optional[int] = None, response: Optional[Any] = None):
        self.message = message
        self.code = code
        self.response = response
        super().__init__(str(self))

    def __str__(self) -> str:
        if self.code is None:
            return f"[ModioError] {self.message}"
        return f"[ModioError] {self.message} (code={self.code})"

    def __repr__(self) -> str:
        return f"<{type(self).__name__} code={self.code!r} message={self.message!r}>"


# Resolution errors
class InvalidReferenceError(ModioError):
    """The string is not a mod.io mod page URL."""


class PreviewNotSupportedError(ModioError):
    """Preview share links (``?preview=``) cannot be resolved."""


class AmbiguousSlugError(ModioError):
    """A slug search matched more than one mod."""


class NotFoundError(ModioError):
    """A slug search matched nothing."""


class NoFileAvailableError(ModioError):
    """The mod has no latest file to pin to."""


class UnpinnedDownloadError(ModioError):
    """Downloads need a reference with a file id."""


class FetchCancelledError(ModioError):
    """The consumer closed the progress channel mid-download."""


class ConfigurationError(ModioError):
    """A provider parameter is missing or malformed."""


# Transport errors
class TransportError(ModioError):
    """A backend call failed. The provider never retries these."""


class BadRequestError(TransportError):
    """400: the API rejected the query parameters."""


class UnauthorizedError(TransportError):
    """401: OAuth token missing, expired or revoked."""


class ForbiddenError(TransportError):
    """403: the token may not read this resource."""


class ResourceNotFoundError(TransportError):
    """404: no such mod, file or game."""


class RateLimitError(TransportError):
    """Still rate limited after the configured number of Retry-After waits."""


class ServerError(TransportError):
    """5xx from the API."""


class NetworkError(TransportError):
    """The request never got a response (DNS, refused connection, timeout)."""


class InvalidResponseError(TransportError):
    """The response body could not be decoded into what the endpoint promises."""


_STATUS_ERRORS: Dict[int, Type[TransportError]] = {
    400: BadRequestError,
    401: UnauthorizedError,
    403: ForbiddenError,
    404: ResourceNotFoundError,
    429: RateLimitError,
}


def map_http_status(status_code: int, message: str = "", response: Optional[Any] = None) -> TransportError:
    """
    Pick the TransportError subclass for an HTTP error status.

    Parameters
    ----------
    status_code : int
        Status of the failed response.
    message : str
        Text for the error; defaults to ``HTTP <status>``.
    response : Any
        Attached to the returned error.

    Returns
    -------
    TransportError
        Not raised; the caller raises it.
    """
    if status_code in _STATUS_ERRORS:
        cls = _STATUS_ERRORS[status_code]
    elif 500 <= status_code <= 599:
        cls = ServerError
    else:
        cls = TransportError
    return cls(message or f"HTTP {status_code}", status_code, response)
