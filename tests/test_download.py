import asyncio
import io

import pytest

from modiopy.blobs import FileBlobStore
from modiopy.download import ProgressChannel, render_progress
from modiopy.exceptions import FetchCancelledError, ResourceNotFoundError, UnpinnedDownloadError
from modiopy.types_models import FetchComplete, FetchProgress

PINNED = "https://mod.io/g/drg/m/rock-drill#3/5"


async def _fetch_collecting(provider, caches, blobs, resolution=PINNED):
    channel = ProgressChannel()
    task = asyncio.ensure_future(provider.fetch_mod(resolution, caches, blobs, channel))
    events = [event async for event in channel]
    return await task, events


def test_cold_fetch_streams_progress_then_completes(provider, repo, caches, tmp_path):
    blobs = FileBlobStore(tmp_path)
    path, events = asyncio.run(_fetch_collecting(provider, caches, blobs))

    assert path.read_bytes() == b"rock drill payload"
    assert events[-1] == FetchComplete(PINNED)
    progress = events[:-1]
    # 18 bytes in chunks of 4
    assert [e.bytes_downloaded for e in progress] == [4, 8, 12, 16, 18]
    assert all(isinstance(e, FetchProgress) and e.total_size == 18 for e in progress)
    assert caches.get("modio").get_blob(5).size == 18


def test_cached_fetch_makes_no_backend_calls(provider, repo, caches, tmp_path):
    blobs = FileBlobStore(tmp_path)
    first, _ = asyncio.run(_fetch_collecting(provider, caches, blobs))
    repo.calls.clear()

    second, events = asyncio.run(_fetch_collecting(provider, caches, blobs))
    assert second == first
    assert events == [FetchComplete(PINNED)]
    assert not repo.calls


def test_missing_blob_is_downloaded_again(provider, repo, caches, tmp_path):
    blobs = FileBlobStore(tmp_path)
    path = asyncio.run(provider.fetch_mod(PINNED, caches, blobs))
    path.unlink()
    again = asyncio.run(provider.fetch_mod(PINNED, caches, blobs))
    assert again.read_bytes() == b"rock drill payload"
    assert repo.calls["download"] == 2


def test_unpinned_reference_rejected(provider, repo, caches, tmp_path):
    channel = ProgressChannel()
    with pytest.raises(UnpinnedDownloadError):
        asyncio.run(provider.fetch_mod("https://mod.io/g/drg/m/rock-drill#3", caches, FileBlobStore(tmp_path), channel))
    assert not repo.calls

    async def drain():
        return [e async for e in channel]

    assert asyncio.run(drain()) == []


def test_closed_channel_cancels_download(provider, repo, caches, tmp_path):
    channel = ProgressChannel()
    channel.close()
    with pytest.raises(FetchCancelledError):
        asyncio.run(provider.fetch_mod(PINNED, caches, FileBlobStore(tmp_path), channel))
    assert repo.calls["download"] == 1
    assert caches.get("modio").get_blob(5) is None
    assert not list(tmp_path.iterdir())


def test_consumer_closing_mid_stream(provider, repo, caches, tmp_path):
    async def run():
        channel = ProgressChannel()
        task = asyncio.ensure_future(provider.fetch_mod(PINNED, caches, FileBlobStore(tmp_path), channel))
        async for event in channel:
            assert isinstance(event, FetchProgress)
            channel.close()
        with pytest.raises(FetchCancelledError):
            await task

    asyncio.run(run())
    assert caches.get("modio").get_blob(5) is None


def test_backend_error_propagates_and_ends_channel(provider, repo, caches, tmp_path):
    del repo.payloads[5]

    async def run():
        channel = ProgressChannel()
        task = asyncio.ensure_future(provider.fetch_mod(PINNED, caches, FileBlobStore(tmp_path), channel))
        events = [e async for e in channel]
        with pytest.raises(ResourceNotFoundError):
            await task
        return events

    assert asyncio.run(run()) == []


def test_render_progress(provider, caches, tmp_path):
    async def run():
        channel = ProgressChannel()
        task = asyncio.ensure_future(provider.fetch_mod(PINNED, caches, FileBlobStore(tmp_path), channel))
        total = await render_progress(channel, desc="rock-drill", file=io.StringIO())
        await task
        return total

    assert asyncio.run(run()) == 18
