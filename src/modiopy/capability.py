"""
modiopy.capability
------------------

What a backend has to offer for the provider to work on top of it.

Two implementations ship with the package: the official mod.io API
(`modiopy.backends.official.ModioApi`) and a read-only mirror of it
(`modiopy.backends.mirror.MirrorApi`). The provider never assumes which one
it was given.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import AsyncIterator, Dict, List, Sequence, Set

from .types_models import ModEntry, ModSummary, RemoteFile


class RemoteRepository(ABC):
    """Remote repository capability. Every method may raise TransportError."""

    @classmethod
    @abstractmethod
    def with_parameters(cls, parameters: Dict[str, str]) -> "RemoteRepository":
        """Build a backend from the provider parameters chosen by the user."""

    @abstractmethod
    async def check(self) -> None:
        """Cheap call proving the backend (and credentials) are usable."""

    @abstractmethod
    async def fetch_mod(self, mod_id: int) -> ModEntry:
        """Mod metadata including its file list."""

    @abstractmethod
    async def fetch_files(self, mod_id: int) -> ModEntry:
        """Same shape as fetch_mod; used after a batch lookup to fill in file lists."""

    @abstractmethod
    async def fetch_file(self, mod_id: int, file_id: int) -> RemoteFile:
        """One file with its size and download location."""

    @abstractmethod
    async def fetch_dependencies(self, mod_id: int) -> List[int]:
        """Mod ids the mod depends on."""

    @abstractmethod
    async def search_by_slug(self, slug: str) -> List[ModSummary]:
        """Visible mods whose slug is exactly `slug`."""

    @abstractmethod
    async def fetch_by_ids(self, mod_ids: Sequence[int]) -> List[ModSummary]:
        """Batch lookup of id, slug and name."""

    @abstractmethod
    async def fetch_changed_since(self, mod_ids: Sequence[int], timestamp: int) -> Set[int]:
        """Subset of `mod_ids` with events after `timestamp` (unix seconds)."""

    @abstractmethod
    def download(self, remote_file: RemoteFile) -> AsyncIterator[bytes]:
        """Stream the payload of `remote_file` chunk by chunk."""
