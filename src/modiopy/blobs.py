"""
modiopy.blobs
-------------

Local storage for downloaded payloads.

The provider only relies on two operations: `write(bytes) -> BlobReference`
and `get_path(BlobReference) -> Optional[Path]`. FileBlobStore addresses
payloads by their sha256 digest, so writing the same bytes twice stores them
once.
"""

from __future__ import annotations

import hashlib
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union

from .fileops import atomic_write

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BlobReference:
    """Opaque handle of a stored payload."""
    id: str
    size: Optional[int] = None

    @classmethod
    def from_dict(cls, d: Union[Dict[str, Any], str]) -> "BlobReference":
        if isinstance(d, str):
            return cls(id=d)
        return cls(id=d["id"], size=d.get("size"))

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "size": self.size}


class BlobStore(ABC):
    """Storage contract used by the fetch pipeline."""

    @abstractmethod
    def write(self, data: bytes) -> BlobReference:
        """Store `data` and return its reference."""

    @abstractmethod
    def get_path(self, ref: BlobReference) -> Optional[Path]:
        """Local path of a stored payload, or None if it is gone."""


class FileBlobStore(BlobStore):
    """
    Content-addressed file store.

    Each payload lives at ``<root>/<sha256>``.

    Parameters
    ----------
    root : str | Path
        Directory holding the payloads (created if missing).
    """

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def _path_for(self, blob_id: str) -> Optional[Path]:
        root = self.root.resolve()
        candidate = (self.root / blob_id).resolve()
        try:
            candidate.relative_to(root)
        except ValueError:
            return None
        return candidate

    def write(self, data: bytes) -> BlobReference:
        digest = hashlib.sha256(data).hexdigest()
        path = self._path_for(digest)
        if path.exists() and path.stat().st_size == len(data):
            logger.debug("blob %s already stored", digest)
        else:
            atomic_write(path, data, tmp_suffix=".part")
        return BlobReference(id=digest, size=len(data))

    def get_path(self, ref: BlobReference) -> Optional[Path]:
        path = self._path_for(ref.id)
        if path is None or not path.is_file():
            return None
        return path

    def __repr__(self) -> str:
        return f"<FileBlobStore root={str(self.root)!r}>"
