"""
modiopy.reference
-----------------

Parse and format mod references.

A reference is the public page URL of a mod, optionally followed by the
numeric mod id and file id::

    https://mod.io/g/drg/m/<slug>
    https://mod.io/g/drg/m/<slug>#<mod_id>
    https://mod.io/g/drg/m/<slug>#<mod_id>/<file_id>

The last form is "pinned": it names one exact uploaded file.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Pattern

from .exceptions import InvalidReferenceError

DEFAULT_HOST = "mod.io"
DEFAULT_GAME = "drg"
PREVIEW_MARKER = "?preview="


@dataclass(frozen=True)
class Reference:
    """
    Components of a parsed reference.

    Attributes
    ----------
    url : str
        The exact string that was parsed.
    slug : str
        Human-readable mod identifier (mod.io ``name_id``).
    mod_id : Optional[int]
        Numeric mod id, if present.
    file_id : Optional[int]
        Numeric file id, if present. Only possible together with ``mod_id``.
    """
    url: str
    slug: str
    mod_id: Optional[int] = None
    file_id: Optional[int] = None

    @property
    def is_pinned(self) -> bool:
        return self.file_id is not None


class ReferenceCodec:
    """
    Grammar for references of one game on one host.

    Parameters
    ----------
    host : str
        Site host name (``mod.io``).
    game : str
        Game short name used in the URL path (``drg``).
    """

    def __init__(self, host: str = DEFAULT_HOST, game: str = DEFAULT_GAME):
        self.host = host
        self.game = game
        self.pattern: Pattern[str] = re.compile(
            r"^https://"
            + re.escape(host)
            + "/g/"
            + re.escape(game)
            + r"/m/(?P<slug>[^/#]+)(?:#(?P<mod_id>\d+)(?:/(?P<file_id>\d+))?)?$"
        )

    def matches(self, url: str) -> bool:
        """Return True if `url` follows the reference grammar."""
        return self.pattern.match(url) is not None

    def parse(self, url: str) -> Reference:
        """
        Split a reference into its components.

        Raises
        ------
        InvalidReferenceError
            If `url` does not follow the grammar.
        """
        m = self.pattern.match(url)
        if m is None:
            raise InvalidReferenceError(f"invalid modio URL {url}")
        mod_id = m.group("mod_id")
        file_id = m.group("file_id")
        return Reference(
            url=url,
            slug=m.group("slug"),
            mod_id=int(mod_id) if mod_id is not None else None,
            file_id=int(file_id) if file_id is not None else None,
        )

    def format(self, slug: str, mod_id: int, file_id: Optional[int] = None) -> str:
        """
        Build the canonical reference for a mod, pinned when `file_id` is given.

        Example
        -------
        >>> ReferenceCodec().format("rock-drill", 3, 5)
        'https://mod.io/g/drg/m/rock-drill#3/5'
        """
        base = f"https://{self.host}/g/{self.game}/m/{slug}#{mod_id}"
        if file_id is not None:
            return f"{base}/{file_id}"
        return base

    def __repr__(self) -> str:
        return f"<ReferenceCodec host={self.host!r} game={self.game!r}>"


def is_preview(url: str) -> bool:
    """Preview links are private share links that cannot be resolved."""
    return PREVIEW_MARKER in url


DEFAULT_CODEC = ReferenceCodec()


def parse_reference(url: str) -> Reference:
    return DEFAULT_CODEC.parse(url)


def format_reference(slug: str, mod_id: int, file_id: Optional[int] = None) -> str:
    return DEFAULT_CODEC.format(slug, mod_id, file_id)
