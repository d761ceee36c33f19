"""
modiopy.updater
---------------

Incremental refresh of a provider cache.

The walk asks the backend which cached mods changed since the last update,
re-resolves them with `update=True`, then follows their dependencies until
no unseen reference is left. At most `concurrency` resolutions are in flight
at any time. References are deduplicated by exact string, so a cyclic
dependency graph is walked once and the walk terminates.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Deque, Dict, Set, Tuple

from .cache import ProviderCaches
from .types_models import ModInfo
from .utils import EPOCH, to_unix_seconds

if TYPE_CHECKING:
    from .provider import ModioProvider

logger = logging.getLogger(__name__)

UPDATE_CONCURRENCY = 5


class UpdateWalker:
    """
    Parameters
    ----------
    provider : ModioProvider
        Provider whose cache is refreshed.
    concurrency : int
        Maximum number of simultaneous resolutions.
    """

    def __init__(self, provider: "ModioProvider", concurrency: int = UPDATE_CONCURRENCY):
        if concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        self.provider = provider
        self.concurrency = concurrency

    async def run(self, caches: ProviderCaches) -> Dict[str, ModInfo]:
        """
        Refresh the cache and return every resolved mod keyed by the reference it was resolved from.

        Nothing happens when the provider has no cache yet. On success the
        cache's last update time is set to the moment the walk started; on
        failure it is left unchanged and the error propagates.
        """
        started = datetime.now(timezone.utc)
        cache = caches.get(self.provider.provider_id)
        if cache is None:
            logger.debug("no cache for provider %s, nothing to update", self.provider.provider_id)
            return {}

        last_update = cache.last_update or EPOCH
        known = cache.known_mods()
        changed = await self.provider.repository.fetch_changed_since(sorted(known), to_unix_seconds(last_update))
        logger.info("%d of %d cached mods changed since %s", len(changed), len(known), last_update.isoformat())

        seen: Set[str] = set()
        queue: Deque[str] = deque()
        for mod_id in sorted(changed):
            slug = known.get(mod_id)
            if slug is None:
                continue
            reference = self.provider.codec.format(slug, mod_id)
            if reference not in seen:
                seen.add(reference)
                queue.append(reference)

        resolved: Dict[str, ModInfo] = {}
        in_flight: Dict["asyncio.Future[Tuple[str, ModInfo]]", str] = {}
        try:
            while queue or in_flight:
                while queue and len(in_flight) < self.concurrency:
                    reference = queue.popleft()
                    task = asyncio.ensure_future(self.provider.resolve_fully(reference, True, caches))
                    in_flight[task] = reference
                finished, _ = await asyncio.wait(in_flight, return_when=asyncio.FIRST_COMPLETED)
                for task in finished:
                    del in_flight[task]
                    reference, info = task.result()
                    resolved[reference] = info
                    for dep in info.suggested_dependencies:
                        if dep not in seen:
                            seen.add(dep)
                            queue.append(dep)
        finally:
            for task in in_flight:
                task.cancel()
            if in_flight:
                await asyncio.gather(*in_flight, return_exceptions=True)

        cache.set_last_update(started)
        logger.info("updated %d mods", len(resolved))
        return resolved
