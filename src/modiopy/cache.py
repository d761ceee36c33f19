"""
modiopy.cache
-------------

In-memory memo of everything a provider learned from its backend.

ProviderCache holds five indices:
 - slug -> mod id
 - mod id -> ModEntry
 - mod id -> dependency mod ids (an empty list means "fetched, none")
 - file id -> BlobReference of the downloaded payload
 - the time of the last successful incremental update

Entries are only ever inserted or overwritten, never deleted, so a failed
call leaves earlier knowledge intact.

Access goes through a reader/writer lock: any number of concurrent readers or
one writer. Every public method takes the lock for exactly one read or one
mutation; callers must not hold it while awaiting network I/O.

ProviderCaches is the container an application persists: one ProviderCache
per provider id.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Iterable, Iterator, List, Optional

from .blobs import BlobReference
from .types_models import ModEntry
from .utils import parse_timestamp

logger = logging.getLogger(__name__)

CACHE_FORMAT_VERSION = 1


class ReadWriteLock:
    """Many readers or one writer. Writers are not starved: new readers wait while a writer is queued."""

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._waiting_writers = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._waiting_writers:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if not self._readers:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            self._waiting_writers += 1
            while self._writer or self._readers:
                self._cond.wait()
            self._waiting_writers -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class ProviderCache:
    """
    Mutable, serializable cache of one provider.

    Parameters
    ----------
    mod_ids : Optional[Dict[str, int]]
        Slug index.
    mods : Optional[Dict[int, ModEntry]]
        Mod index.
    dependencies : Optional[Dict[int, List[int]]]
        Dependency index.
    blobs : Optional[Dict[int, BlobReference]]
        Downloaded payloads by file id.
    last_update : Optional[datetime]
        When the last incremental update started. None means never.
    """

    def __init__(self,
                 mod_ids: Optional[Dict[str, int]] = None,
                 mods: Optional[Dict[int, ModEntry]] = None,
                 dependencies: Optional[Dict[int, List[int]]] = None,
                 blobs: Optional[Dict[int, BlobReference]] = None,
                 last_update: Optional[datetime] = None):
        self._lock = ReadWriteLock()
        self._mod_ids: Dict[str, int] = dict(mod_ids or {})
        self._mods: Dict[int, ModEntry] = dict(mods or {})
        self._dependencies: Dict[int, List[int]] = {k: list(v) for k, v in (dependencies or {}).items()}
        self._blobs: Dict[int, BlobReference] = dict(blobs or {})
        self._last_update: Optional[datetime] = last_update

    # reads
    def get_mod_id(self, slug: str) -> Optional[int]:
        with self._lock.read():
            return self._mod_ids.get(slug)

    def get_mod(self, mod_id: int) -> Optional[ModEntry]:
        with self._lock.read():
            return self._mods.get(mod_id)

    def get_dependencies(self, mod_id: int) -> Optional[List[int]]:
        """Dependency ids, or None if they were never fetched."""
        with self._lock.read():
            deps = self._dependencies.get(mod_id)
            return list(deps) if deps is not None else None

    def get_blob(self, file_id: int) -> Optional[BlobReference]:
        with self._lock.read():
            return self._blobs.get(file_id)

    def get_slugs(self, mod_ids: Iterable[int]) -> Dict[int, str]:
        """Slugs of those `mod_ids` that have a cached entry."""
        with self._lock.read():
            return {i: self._mods[i].slug for i in mod_ids if i in self._mods}

    def known_mods(self) -> Dict[int, str]:
        """Every cached mod id with its slug."""
        with self._lock.read():
            return {i: m.slug for i, m in self._mods.items()}

    @property
    def last_update(self) -> Optional[datetime]:
        with self._lock.read():
            return self._last_update

    # writes
    def put_mod(self, mod_id: int, entry: ModEntry) -> None:
        """Store `entry` and index its slug."""
        with self._lock.write():
            self._mods[mod_id] = entry
            self._mod_ids[entry.slug] = mod_id

    def put_dependencies(self, mod_id: int, dependencies: Iterable[int]) -> None:
        with self._lock.write():
            self._dependencies[mod_id] = list(dependencies)

    def put_blob(self, file_id: int, ref: BlobReference) -> BlobReference:
        """Record a downloaded payload. The first reference stored for a file id is kept and returned."""
        with self._lock.write():
            existing = self._blobs.get(file_id)
            if existing is not None:
                logger.debug("blob for file %s already recorded, keeping %s", file_id, existing.id)
                return existing
            self._blobs[file_id] = ref
            return ref

    def set_last_update(self, when: datetime) -> None:
        with self._lock.write():
            self._last_update = when

    # serialization
    def to_dict(self) -> Dict[str, Any]:
        with self._lock.read():
            return {
                "mod_id_map": dict(self._mod_ids),
                "mods": {str(k): v.to_dict() for k, v in self._mods.items()},
                "dependencies": {str(k): list(v) for k, v in self._dependencies.items()},
                "modfile_blobs": {str(k): v.to_dict() for k, v in self._blobs.items()},
                "last_update_time": self._last_update.isoformat() if self._last_update else None,
            }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ProviderCache":
        d = d or {}
        return cls(
            mod_ids={k: int(v) for k, v in (d.get("mod_id_map") or {}).items()},
            mods={int(k): ModEntry.from_dict(v) for k, v in (d.get("mods") or {}).items()},
            dependencies={int(k): [int(x) for x in v] for k, v in (d.get("dependencies") or {}).items()},
            blobs={int(k): BlobReference.from_dict(v) for k, v in (d.get("modfile_blobs") or {}).items()},
            last_update=parse_timestamp(d.get("last_update_time")),
        )

    def __repr__(self) -> str:
        with self._lock.read():
            return (f"<ProviderCache mods={len(self._mods)} blobs={len(self._blobs)} "
                    f"last_update={self._last_update!r}>")


class ProviderCaches:
    """All provider caches of an application, keyed by provider id."""

    def __init__(self, caches: Optional[Dict[str, ProviderCache]] = None):
        self._lock = threading.Lock()
        self._caches: Dict[str, ProviderCache] = dict(caches or {})

    def get(self, provider_id: str) -> Optional[ProviderCache]:
        """The provider's cache, or None if it never stored anything."""
        with self._lock:
            return self._caches.get(provider_id)

    def get_or_create(self, provider_id: str) -> ProviderCache:
        with self._lock:
            cache = self._caches.get(provider_id)
            if cache is None:
                cache = self._caches[provider_id] = ProviderCache()
            return cache

    def to_dict(self) -> Dict[str, Any]:
        with self._lock:
            caches = dict(self._caches)
        return {
            "version": CACHE_FORMAT_VERSION,
            "cache": {pid: c.to_dict() for pid, c in caches.items()},
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ProviderCaches":
        d = d or {}
        version = d.get("version", CACHE_FORMAT_VERSION)
        if version != CACHE_FORMAT_VERSION:
            logger.warning("unknown cache format version %r, starting empty", version)
            return cls()
        return cls({pid: ProviderCache.from_dict(c) for pid, c in (d.get("cache") or {}).items()})
