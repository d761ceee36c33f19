"""
modiopy.provider
----------------

ModioProvider turns mod references into resolved, downloadable mods.

Resolution is a single-step transition; callers loop until they get
`Resolved` (see `resolve_fully`):

    slug only            -> Redirect(slug#mod_id/latest_file_id)
    slug#mod_id          -> Redirect(slug#mod_id/latest_file_id)
    slug#mod_id/file_id  -> Resolved(ModInfo)

Every step reads the provider's cache first (unless `update` is set) and
writes back what it fetched. The cache lock is taken for one read or one
write at a time and is never held while a backend call is awaited, so two
concurrent resolutions of the same mod may both hit the backend.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from .blobs import BlobStore
from .cache import ProviderCache, ProviderCaches
from .capability import RemoteRepository
from .download import FetchPipeline, ProgressChannel
from .exceptions import (
    AmbiguousSlugError,
    ModioError,
    NoFileAvailableError,
    NotFoundError,
    PreviewNotSupportedError,
)
from .reference import DEFAULT_CODEC, Reference, ReferenceCodec, is_preview
from .tags import process_tags
from .types_models import ModEntry, ModInfo, Redirect, Resolved, ResolutionResult
from .updater import UpdateWalker

logger = logging.getLogger(__name__)

MODIO_PROVIDER_ID = "modio"


class ModioProvider:
    """
    Parameters
    ----------
    repository : RemoteRepository
        Backend (official API or mirror).
    provider_id : str
        Key of this provider's cache and value of `ModInfo.provider`.
    codec : Optional[ReferenceCodec]
        Reference grammar; mod.io/drg by default.
    """

    def __init__(self,
                 repository: RemoteRepository,
                 *,
                 provider_id: str = MODIO_PROVIDER_ID,
                 codec: Optional[ReferenceCodec] = None):
        self.repository = repository
        self.provider_id = provider_id
        self.codec = codec or DEFAULT_CODEC
        self.pipeline = FetchPipeline(repository, self.codec)

    def _cache(self, caches: ProviderCaches) -> ProviderCache:
        return caches.get_or_create(self.provider_id)

    # resolution
    async def resolve_mod(self, reference: str, update: bool, caches: ProviderCaches) -> ResolutionResult:
        """
        Advance `reference` by one resolution step.

        Parameters
        ----------
        reference : str
            Any accepted reference form.
        update : bool
            Ignore cached metadata and refetch (the fresh data overwrites the cache).
        caches : ProviderCaches
            Application caches; this provider's entry is created on first use.

        Raises
        ------
        PreviewNotSupportedError, InvalidReferenceError, NotFoundError,
        AmbiguousSlugError, NoFileAvailableError, TransportError
        """
        if is_preview(reference):
            raise PreviewNotSupportedError(
                "Preview mod links cannot be added directly, please subscribe to the mod on mod.io "
                "and then use the non-preview link."
            )
        ref = self.codec.parse(reference)
        cache = self._cache(caches)

        if ref.is_pinned:
            return Resolved(await self._resolve_pinned(ref, update, cache))
        if ref.mod_id is not None:
            entry = await self._load_mod(ref.mod_id, update, cache)
            return Redirect(self._pin_latest(entry.slug, ref.mod_id, entry, reference))
        return Redirect(await self._resolve_slug(ref, update, cache))

    async def resolve_fully(self,
                            reference: str,
                            update: bool,
                            caches: ProviderCaches) -> Tuple[str, ModInfo]:
        """Follow redirects until the reference resolves; returns ``(reference, info)``."""
        current = reference
        while True:
            result = await self.resolve_mod(current, update, caches)
            if isinstance(result, Resolved):
                return reference, result.info
            if result.reference == current:
                raise ModioError(f"resolution of {reference} did not progress past {current}")
            current = result.reference

    async def _load_mod(self, mod_id: int, update: bool, cache: ProviderCache) -> ModEntry:
        entry = None if update else cache.get_mod(mod_id)
        if entry is not None:
            logger.debug("mod %s: cache hit", mod_id)
            return entry
        entry = await self.repository.fetch_mod(mod_id)
        cache.put_mod(mod_id, entry)
        return entry

    async def _load_dependencies(self, mod_id: int, update: bool, cache: ProviderCache) -> List[int]:
        deps = None if update else cache.get_dependencies(mod_id)
        if deps is not None:
            return deps
        deps = await self.repository.fetch_dependencies(mod_id)
        cache.put_dependencies(mod_id, deps)
        return deps

    async def _name_dependencies(self, dep_ids: Sequence[int], cache: ProviderCache) -> Dict[int, str]:
        """Map dependency ids to slugs, fetching and caching the mods not cached yet."""
        names = cache.get_slugs(dep_ids)
        missing = [i for i in dict.fromkeys(dep_ids) if i not in names]
        if not missing:
            return names

        summaries = await self.repository.fetch_by_ids(missing)
        for summary in summaries:
            if summary.slug:
                names[summary.id] = summary.slug
        # TODO: fetch_by_ids already returned the mods; only their file lists are missing
        for summary in summaries:
            entry = await self.repository.fetch_files(summary.id)
            cache.put_mod(summary.id, entry)
            names[summary.id] = entry.slug
        return names

    async def _resolve_pinned(self, ref: Reference, update: bool, cache: ProviderCache) -> ModInfo:
        mod_id = ref.mod_id
        entry = await self._load_mod(mod_id, update, cache)
        dep_ids = await self._load_dependencies(mod_id, update, cache)
        names = await self._name_dependencies(dep_ids, cache)

        deps = []
        for dep_id in dep_ids:
            name = names.get(dep_id)
            if name is None:
                logger.warning("dependency ID missing from name map: %s", dep_id)
                continue
            deps.append(self.codec.format(name, dep_id))
        return self._build_info(ref.url, mod_id, entry, deps)

    async def _resolve_slug(self, ref: Reference, update: bool, cache: ProviderCache) -> str:
        cached_id = None if update else cache.get_mod_id(ref.slug)
        if cached_id is not None:
            entry = None if update else cache.get_mod(cached_id)
            if entry is None or entry.latest_file_id is None:
                entry = await self.repository.fetch_mod(cached_id)
                cache.put_mod(cached_id, entry)
            return self._pin_latest(ref.slug, cached_id, entry, ref.url)

        mods = await self.repository.search_by_slug(ref.slug)
        if len(mods) > 1:
            raise AmbiguousSlugError(f"multiple mods returned for mod name_id {ref.slug}")
        if not mods:
            raise NotFoundError(f"no mods returned for mod name_id {ref.slug}")

        mod_id = mods[0].id
        entry = await self.repository.fetch_mod(mod_id)
        cache.put_mod(mod_id, entry)
        return self._pin_latest(ref.slug, mod_id, entry, ref.url)

    def _pin_latest(self, slug: str, mod_id: int, entry: ModEntry, url: str) -> str:
        if entry.latest_file_id is None:
            raise NoFileAvailableError(f"mod {url} does not have an associated modfile")
        return self.codec.format(slug, mod_id, entry.latest_file_id)

    def _build_info(self, resolution: str, mod_id: int, entry: ModEntry, deps: List[str]) -> ModInfo:
        return ModInfo(
            provider=self.provider_id,
            reference=self.codec.format(entry.slug, mod_id),
            name=entry.name,
            versions=[self.codec.format(entry.slug, mod_id, f.id) for f in entry.files],
            resolution=resolution,
            suggested_require="RequiredByAll" in entry.tags,
            suggested_dependencies=deps,
            tags=process_tags(entry.tags),
            mod_id=mod_id,
        )

    # downloads and updates
    async def fetch_mod(self,
                        resolution: str,
                        caches: ProviderCaches,
                        blobs: BlobStore,
                        progress: Optional[ProgressChannel] = None) -> Path:
        """Local path of the payload of a pinned reference, downloading it if needed."""
        return await self.pipeline.fetch(resolution, self._cache(caches), blobs, progress)

    async def update_cache(self, caches: ProviderCaches) -> Dict[str, ModInfo]:
        """Re-resolve every cached mod changed since the last update, plus new dependencies."""
        return await UpdateWalker(self).run(caches)

    async def check(self) -> None:
        """Raise if the backend is unreachable or rejects the credentials."""
        await self.repository.check()

    # cache-only queries
    def _cached_mod_id(self, ref: Reference, cache: Optional[ProviderCache]) -> Optional[int]:
        if ref.mod_id is not None:
            return ref.mod_id
        if cache is None:
            return None
        return cache.get_mod_id(ref.slug)

    def get_mod_info(self, reference: str, caches: ProviderCaches) -> Optional[ModInfo]:
        """
        Rebuild the resolved ModInfo of `reference` from the cache alone.

        Returns None if the reference is invalid, or the mod, its dependency
        list or any dependency is not cached.
        """
        if not self.codec.matches(reference):
            return None
        ref = self.codec.parse(reference)
        cache = caches.get(self.provider_id)
        mod_id = self._cached_mod_id(ref, cache)
        if cache is None or mod_id is None:
            return None
        entry = cache.get_mod(mod_id)
        dep_ids = cache.get_dependencies(mod_id)
        if entry is None or dep_ids is None:
            return None
        names = cache.get_slugs(dep_ids)
        if len(names) < len(set(dep_ids)):
            return None
        deps = [self.codec.format(names[i], i) for i in dep_ids]
        return self._build_info(reference, mod_id, entry, deps)

    def is_pinned(self, reference: str) -> bool:
        return self.codec.parse(reference).is_pinned

    def get_version_name(self, reference: str, caches: ProviderCaches) -> Optional[str]:
        """
        Human label of the version a reference points at.

        "latest" for unpinned references, "<file_id> - <version>" when the
        file's version label is cached, else the bare file id. None when the
        mod is not cached.
        """
        ref = self.codec.parse(reference)
        cache = caches.get(self.provider_id)
        mod_id = self._cached_mod_id(ref, cache)
        if cache is None or mod_id is None:
            return None
        entry = cache.get_mod(mod_id)
        if entry is None:
            return None
        if ref.file_id is None:
            return "latest"
        f = entry.find_file(ref.file_id)
        if f is not None and f.version is not None:
            return f"{f.id} - {f.version}"
        return str(ref.file_id)

    def __repr__(self) -> str:
        return f"<ModioProvider id={self.provider_id!r} repository={self.repository!r}>"
