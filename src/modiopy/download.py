"""
modiopy.download
----------------

Fetch pipeline: turn a pinned reference into a local file.

Features
- Zero network calls for files already in the blob store
- Streaming download with one progress event per received chunk
- Payload written to the blob store only once the stream completed
- Progress channel that the consumer may close to cancel the download
- tqdm rendering of a progress channel
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Optional

from tqdm import tqdm

from .blobs import BlobStore
from .cache import ProviderCache
from .capability import RemoteRepository
from .exceptions import FetchCancelledError, ModioError, UnpinnedDownloadError
from .reference import ReferenceCodec
from .types_models import FetchComplete, FetchProgress, ProgressEvent

logger = logging.getLogger(__name__)

_END = object()


class ProgressChannel:
    """
    Single-producer, single-consumer stream of progress events for one fetch.

    The fetch pipeline sends ``FetchProgress`` events followed by exactly one
    ``FetchComplete``. Iterate it with ``async for``; iteration stops after the
    completion event, or when the fetch ended without one (it failed).

    Calling `close()` from the consumer side cancels the fetch: the pipeline
    stops streaming and raises FetchCancelledError.

    Example
    -------
    >>> channel = ProgressChannel()
    >>> task = asyncio.create_task(provider.fetch_mod(url, caches, blobs, channel))
    >>> async for event in channel:
    ...     print(event)
    >>> path = await task
    """

    def __init__(self):
        self._queue: "asyncio.Queue[Any]" = asyncio.Queue()
        self._closed = False
        self._ended = False

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Drop interest in further events."""
        self._closed = True

    async def send(self, event: ProgressEvent) -> bool:
        """Queue `event`; returns False if the consumer closed the channel."""
        if self._closed:
            return False
        await self._queue.put(event)
        return True

    def end(self) -> None:
        """Mark the end of the event stream (called by the producer when the fetch finishes)."""
        if not self._ended:
            self._ended = True
            self._queue.put_nowait(_END)

    def __aiter__(self) -> "ProgressChannel":
        return self

    async def __anext__(self) -> ProgressEvent:
        if self._closed:
            raise StopAsyncIteration
        event = await self._queue.get()
        if event is _END:
            self._closed = True
            raise StopAsyncIteration
        return event


async def _emit(channel: Optional[ProgressChannel], event: ProgressEvent) -> bool:
    if channel is None:
        return True
    return await channel.send(event)


class FetchPipeline:
    """
    Download payloads for one provider.

    Parameters
    ----------
    repository : RemoteRepository
        Backend to download from.
    codec : ReferenceCodec
        Grammar used to read the pinned reference.
    """

    def __init__(self, repository: RemoteRepository, codec: ReferenceCodec):
        self.repository = repository
        self.codec = codec

    async def fetch(self,
                    resolution: str,
                    cache: ProviderCache,
                    blobs: BlobStore,
                    progress: Optional[ProgressChannel] = None) -> Path:
        """
        Return the local path of the payload `resolution` points at.

        Parameters
        ----------
        resolution : str
            Pinned reference (``slug#mod_id/file_id``).
        cache : ProviderCache
            Provider cache holding the file id -> blob index.
        blobs : BlobStore
            Where payloads are stored.
        progress : Optional[ProgressChannel]
            Receives progress events; ended when this call returns or raises.

        Raises
        ------
        UnpinnedDownloadError
            If `resolution` has no file id.
        FetchCancelledError
            If the consumer closed `progress` during the download.
        TransportError
            If the backend call or the stream fails.
        """
        try:
            ref = self.codec.parse(resolution)
            if ref.mod_id is None or ref.file_id is None:
                raise UnpinnedDownloadError(f"download URL must be fully specified: {resolution}")

            blob = cache.get_blob(ref.file_id)
            path = blobs.get_path(blob) if blob is not None else None
            if path is not None:
                logger.debug("file %s already downloaded: %s", ref.file_id, path)
                await _emit(progress, FetchComplete(resolution))
                return path

            remote = await self.repository.fetch_file(ref.mod_id, ref.file_id)
            logger.info("downloading mod %s...", resolution)

            data = bytearray()
            stream = self.repository.download(remote)
            try:
                async for chunk in stream:
                    data.extend(chunk)
                    if not await _emit(progress, FetchProgress(resolution, len(data), remote.filesize)):
                        logger.info("download of %s cancelled after %d bytes", resolution, len(data))
                        raise FetchCancelledError(f"download of {resolution} cancelled")
            finally:
                aclose = getattr(stream, "aclose", None)
                if aclose is not None:
                    await aclose()

            written = await asyncio.to_thread(blobs.write, bytes(data))
            stored = cache.put_blob(ref.file_id, written)
            path = blobs.get_path(stored)
            if path is None:
                raise ModioError(f"blob {stored.id} for {resolution} missing from blob store")

            logger.info("downloaded mod %s (%d bytes)", resolution, len(data))
            await _emit(progress, FetchComplete(resolution))
            return path
        finally:
            if progress is not None:
                progress.end()


async def render_progress(channel: ProgressChannel, desc: Optional[str] = None, **tqdm_kwargs: Any) -> int:
    """
    Consume `channel` into a tqdm progress bar. Returns the number of bytes reported.

    Example
    -------
    >>> task = asyncio.create_task(provider.fetch_mod(url, caches, blobs, channel))
    >>> await render_progress(channel, desc="rock-drill")
    >>> path = await task
    """
    options = {"unit": "B", "unit_scale": True, "ncols": 80}
    options.update(tqdm_kwargs)
    downloaded = 0
    with tqdm(total=None, desc=desc, **options) as bar:
        async for event in channel:
            if isinstance(event, FetchProgress):
                if event.total_size and bar.total != event.total_size:
                    bar.total = event.total_size
                    bar.refresh()
                bar.update(event.bytes_downloaded - downloaded)
                downloaded = event.bytes_downloaded
    return downloaded
