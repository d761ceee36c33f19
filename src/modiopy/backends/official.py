"""
Official mod.io REST API backend.

Authenticates with an OAuth access token (``Authorization: Bearer``) and
reads everything from one game's namespace. List endpoints are paged with
``_limit``/``_offset``; `_collect` walks every page.
"""

from __future__ import annotations

import logging
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence, Set

import requests

from ..capability import RemoteRepository
from ..exceptions import ConfigurationError, InvalidResponseError
from ..middleware import RetryAfterMiddleware
from ..types_models import ModEntry, ModSummary, RemoteFile
from ._http import HttpTransport, float_parameter, int_parameter

logger = logging.getLogger(__name__)

MODIO_DRG_ID = 2475
PAGE_SIZE = 100
IGNORED_EVENTS = ("MOD_COMMENT_ADDED", "MOD_COMMENT_DELETED")


class MODIOAPIURLS:
    """
    Relative paths of the mod.io REST API endpoints used by the provider.

    Usage:
        >>> transport.build_url(MODIOAPIURLS.GET_MOD, game_id=2475, mod_id=3)
    """

    BASE_URL = "https://api.mod.io/v1"

    MODS = "/games/{game_id}/mods"
    """GET → Search mods of a game (filters as query parameters)."""

    GET_MOD = "/games/{game_id}/mods/{mod_id}"
    """GET → One mod object."""

    MOD_FILES = "/games/{game_id}/mods/{mod_id}/files"
    """GET → Paged list of a mod's files."""

    MOD_FILE = "/games/{game_id}/mods/{mod_id}/files/{file_id}"
    """GET → One file, including ``filesize`` and ``download.binary_url``."""

    MOD_DEPENDENCIES = "/games/{game_id}/mods/{mod_id}/dependencies"
    """GET → Paged list of ``{"mod_id": ...}`` dependency records."""

    MOD_EVENTS = "/games/{game_id}/mods/events"
    """GET → Paged list of mod events (filters as query parameters)."""


class ModioApi(RemoteRepository):
    """
    Parameters
    ----------
    oauth_token : str
        mod.io OAuth access token.
    game_id : int
        Numeric game id (Deep Rock Galactic by default).
    base_url : Optional[str]
        API root override.
    timeout : float
        Per-request timeout in seconds.
    max_rate_limit_retries : Optional[int]
        Cap for Retry-After retries. None retries forever.
    session : Optional[requests.Session]
        Session to use (handy for tests).
    """

    def __init__(self,
                 oauth_token: str,
                 *,
                 game_id: int = MODIO_DRG_ID,
                 base_url: Optional[str] = None,
                 timeout: float = 30.0,
                 max_rate_limit_retries: Optional[int] = None,
                 session: Optional[requests.Session] = None):
        if not oauth_token:
            raise ConfigurationError("missing OAuth token param")
        self.game_id = game_id
        self.transport = HttpTransport(
            base_url or MODIOAPIURLS.BASE_URL,
            session=session,
            timeout=timeout,
            middleware=RetryAfterMiddleware(max_retries=max_rate_limit_retries),
            headers={"Authorization": f"Bearer {oauth_token}"},
        )

    @classmethod
    def with_parameters(cls, parameters: Dict[str, str]) -> "ModioApi":
        token = parameters.get("oauth")
        if not token:
            raise ConfigurationError("missing OAuth token param")
        return cls(
            token,
            base_url=parameters.get("base_url") or None,
            timeout=float_parameter(parameters, "timeout", 30.0),
            max_rate_limit_retries=int_parameter(parameters, "max_rate_limit_retries"),
        )

    async def _get(self, path: str, params: Optional[Dict[str, Any]] = None, **path_params: Any) -> Any:
        return await self.transport.request(
            "GET", path, params=params, path_params={"game_id": self.game_id, **path_params}
        )

    async def _collect(self, path: str, params: Optional[Dict[str, Any]] = None, **path_params: Any) -> List[Dict[str, Any]]:
        """Fetch every page of a list endpoint."""
        items: List[Dict[str, Any]] = []
        offset = 0
        while True:
            page_params = dict(params or {})
            page_params.update({"_limit": PAGE_SIZE, "_offset": offset})
            payload = await self._get(path, page_params, **path_params)
            if not isinstance(payload, dict) or not isinstance(payload.get("data"), list):
                raise InvalidResponseError(f"expected a paged list from {path}")
            data = payload["data"]
            items.extend(data)
            offset += len(data)
            total = payload.get("result_total")
            if not data or total is None or offset >= int(total):
                return items

    async def check(self) -> None:
        await self._get(MODIOAPIURLS.MODS, {"id": 0})

    async def fetch_mod(self, mod_id: int) -> ModEntry:
        files = await self._collect(MODIOAPIURLS.MOD_FILES, {"id-not": 0}, mod_id=mod_id)
        mod = await self._get(MODIOAPIURLS.GET_MOD, mod_id=mod_id)
        return ModEntry.from_dict(mod, files=files)

    async def fetch_files(self, mod_id: int) -> ModEntry:
        return await self.fetch_mod(mod_id)

    async def fetch_file(self, mod_id: int, file_id: int) -> RemoteFile:
        payload = await self._get(MODIOAPIURLS.MOD_FILE, mod_id=mod_id, file_id=file_id)
        return RemoteFile.from_dict(payload)

    async def fetch_dependencies(self, mod_id: int) -> List[int]:
        deps = await self._collect(MODIOAPIURLS.MOD_DEPENDENCIES, mod_id=mod_id)
        return [int(d["mod_id"]) for d in deps]

    async def search_by_slug(self, slug: str) -> List[ModSummary]:
        mods = await self._collect(MODIOAPIURLS.MODS, {"name_id": slug, "visible-in": "0,1"})
        return [ModSummary.from_dict(m) for m in mods]

    async def fetch_by_ids(self, mod_ids: Sequence[int]) -> List[ModSummary]:
        if not mod_ids:
            return []
        mods = await self._collect(MODIOAPIURLS.MODS, {"id-in": ",".join(str(i) for i in mod_ids)})
        return [ModSummary.from_dict(m) for m in mods]

    async def fetch_changed_since(self, mod_ids: Sequence[int], timestamp: int) -> Set[int]:
        if not mod_ids:
            return set()
        events = await self._collect(MODIOAPIURLS.MOD_EVENTS, {
            "event_type-not-in": ",".join(IGNORED_EVENTS),
            "mod_id-in": ",".join(str(i) for i in mod_ids),
            "date_added-gt": int(timestamp),
        })
        return {int(e["mod_id"]) for e in events}

    def download(self, remote_file: RemoteFile) -> AsyncIterator[bytes]:
        if not remote_file.download_url:
            raise InvalidResponseError(f"file {remote_file.id} has no download URL")
        return self.transport.stream(remote_file.download_url)

    def close(self) -> None:
        self.transport.close()

    def __repr__(self) -> str:
        return f"<ModioApi game_id={self.game_id} base_url={self.transport.base_url!r}>"
