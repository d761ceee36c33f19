from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Optional, Union

import dateutil.parser as _dateutil_parser

__all__ = [
    "logger_setup",
    "parse_retry_after",
    "parse_timestamp",
    "to_unix_seconds",
    "EPOCH",
]

DEFAULT_USER_AGENT = "modiopy/0.1"

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%H:%M:%S"


def logger_setup(name: str = "modiopy",
                 level: int = logging.INFO,
                 *,
                 log_to_file: Optional[str] = None,
                 file_level: Optional[int] = None) -> logging.Logger:
    """
    Attach handlers to the `name` logger so an application sees modiopy's records.

    modiopy modules only log through ``logging.getLogger(__name__)``; nothing
    is printed until an application calls this (or configures logging itself).
    A stderr handler at `level` is always added, plus a UTF-8 file handler
    when `log_to_file` is given. Calling it again for the same name is a no-op.

    Parameters
    ----------
    name : str
        Logger to configure. "modiopy" covers every module of the package.
    level : int
        Threshold of the stderr handler.
    log_to_file : Optional[str]
        Path of an additional log file.
    file_level : Optional[int]
        Threshold of the file handler; `level` if omitted.

    Example
    -------
    >>> log = logger_setup(level=logging.DEBUG, log_to_file="modio.log")
    >>> log.debug("cache loaded")
    """
    log = logging.getLogger(name)
    if getattr(log, "_modiopy_setup_done", False):
        return log

    formatter = logging.Formatter(LOG_FORMAT, LOG_DATE_FORMAT)
    handlers = [(logging.StreamHandler(), level)]
    if log_to_file:
        handlers.append((logging.FileHandler(log_to_file, encoding="utf-8"), file_level or level))

    for handler, handler_level in handlers:
        handler.setLevel(handler_level)
        handler.setFormatter(formatter)
        log.addHandler(handler)
    log.setLevel(min(level, file_level or level))
    log._modiopy_setup_done = True
    return log


def parse_retry_after(value: Optional[Union[str, int, float]]) -> float:
    """
    Seconds to wait according to a ``Retry-After`` header.

    mod.io sends a number of seconds; RFC 9110 also allows an HTTP-date.
    Anything unparseable, negative or already past yields 0.0.

    Example
    -------
    >>> parse_retry_after("60")
    60.0
    """
    if value is None:
        return 0.0
    if isinstance(value, (int, float)):
        return max(float(value), 0.0)

    text = str(value).strip()
    try:
        return max(float(text), 0.0)
    except ValueError:
        pass

    try:
        when = parsedate_to_datetime(text)
    except (TypeError, ValueError):
        return 0.0
    if when is None:
        return 0.0
    return max(when.timestamp() - time.time(), 0.0)


def parse_timestamp(value: Optional[Union[str, int, float, datetime]]) -> Optional[datetime]:
    """
    Normalize a timestamp into an aware UTC datetime.

    Accepts unix seconds, ISO-8601 strings (anything dateutil understands) or
    datetimes. Naive values are assumed to be UTC. None stays None.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    else:
        s = str(value).strip()
        if s.isdigit():
            return datetime.fromtimestamp(int(s), tz=timezone.utc)
        dt = _dateutil_parser.isoparse(s)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_unix_seconds(value: Optional[datetime]) -> int:
    """Whole seconds since the epoch; None maps to 0 (the epoch)."""
    if value is None:
        return 0
    return max(0, int(value.timestamp()))
