"""
Mirrored mod.io API backend (mods.swiss.dev).

The mirror needs no credentials and serves mods already in the cached
ModEntry shape. Batch lookups and change detection are POSTs with a JSON list
of ids, so long id lists do not hit URL length limits.
"""

from __future__ import annotations

import logging
from typing import AsyncIterator, Dict, List, Optional, Sequence, Set

import requests

from ..capability import RemoteRepository
from ..exceptions import InvalidResponseError
from ..middleware import RetryAfterMiddleware
from ..types_models import ModEntry, ModSummary, RemoteFile
from ._http import HttpTransport, float_parameter, int_parameter

logger = logging.getLogger(__name__)

MIRROR_API_URL = "https://mods.swiss.dev/api/v1"


class MirrorApi(RemoteRepository):
    """
    Parameters
    ----------
    base_url : str
        Mirror API root.
    timeout : float
        Per-request timeout in seconds.
    max_rate_limit_retries : Optional[int]
        Cap for Retry-After retries. None retries forever.
    session : Optional[requests.Session]
        Session to use (handy for tests).
    """

    def __init__(self,
                 base_url: str = MIRROR_API_URL,
                 *,
                 timeout: float = 30.0,
                 max_rate_limit_retries: Optional[int] = None,
                 session: Optional[requests.Session] = None):
        self.transport = HttpTransport(
            base_url,
            session=session,
            timeout=timeout,
            middleware=RetryAfterMiddleware(max_retries=max_rate_limit_retries),
        )

    @classmethod
    def with_parameters(cls, parameters: Dict[str, str]) -> "MirrorApi":
        return cls(
            parameters.get("base_url") or MIRROR_API_URL,
            timeout=float_parameter(parameters, "timeout", 30.0),
            max_rate_limit_retries=int_parameter(parameters, "max_rate_limit_retries"),
        )

    @staticmethod
    def _expect_list(payload, what: str) -> list:
        if not isinstance(payload, list):
            raise InvalidResponseError(f"expected a list of {what}, got {type(payload).__name__}")
        return payload

    async def check(self) -> None:
        await self.transport.request("GET", "/status", expect_json=False)

    async def fetch_mod(self, mod_id: int) -> ModEntry:
        payload = await self.transport.request("GET", "/mods/{mod_id}", path_params={"mod_id": mod_id})
        return ModEntry.from_dict(payload)

    async def fetch_files(self, mod_id: int) -> ModEntry:
        # the mirror returns files together with the mod
        return await self.fetch_mod(mod_id)

    async def fetch_file(self, mod_id: int, file_id: int) -> RemoteFile:
        payload = await self.transport.request(
            "GET", "/mods/{mod_id}/files/{file_id}", path_params={"mod_id": mod_id, "file_id": file_id}
        )
        return RemoteFile.from_dict(payload)

    async def fetch_dependencies(self, mod_id: int) -> List[int]:
        payload = await self.transport.request("GET", "/mods/{mod_id}/dependencies", path_params={"mod_id": mod_id})
        return [int(i) for i in self._expect_list(payload, "dependency ids")]

    async def search_by_slug(self, slug: str) -> List[ModSummary]:
        payload = await self.transport.request("GET", "/mods", params={"name_id": slug})
        return [ModSummary.from_dict(m) for m in self._expect_list(payload, "mods")]

    async def fetch_by_ids(self, mod_ids: Sequence[int]) -> List[ModSummary]:
        if not mod_ids:
            return []
        payload = await self.transport.request("POST", "/mods", json_body=[int(i) for i in mod_ids])
        return [ModSummary.from_dict(m) for m in self._expect_list(payload, "mods")]

    async def fetch_changed_since(self, mod_ids: Sequence[int], timestamp: int) -> Set[int]:
        if not mod_ids:
            return set()
        payload = await self.transport.request(
            "POST", "/mods", params={"last_update": int(timestamp)}, json_body=[int(i) for i in mod_ids]
        )
        return {int(i) for i in self._expect_list(payload, "mod ids")}

    def download(self, remote_file: RemoteFile) -> AsyncIterator[bytes]:
        if not remote_file.download_url:
            raise InvalidResponseError(f"file {remote_file.id} has no download URL")
        return self.transport.stream(remote_file.download_url)

    def close(self) -> None:
        self.transport.close()

    def __repr__(self) -> str:
        return f"<MirrorApi base_url={self.transport.base_url!r}>"
