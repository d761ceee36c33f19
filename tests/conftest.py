from __future__ import annotations

import asyncio
import dataclasses
from collections import Counter
from typing import Dict, Iterable, List, Optional

import pytest
from requests.structures import CaseInsensitiveDict

from modiopy.cache import ProviderCaches
from modiopy.capability import RemoteRepository
from modiopy.exceptions import NetworkError, ResourceNotFoundError
from modiopy.provider import ModioProvider
from modiopy.types_models import ModEntry, ModFile, ModSummary, RemoteFile


def make_mod(slug: str, latest: Optional[int] = None, files: Iterable[int] = (), *, name: Optional[str] = None,
             tags: Iterable[str] = (), versions: Optional[Dict[int, str]] = None) -> ModEntry:
    versions = versions or {}
    return ModEntry(
        slug=slug,
        name=name or slug.replace("-", " ").title(),
        latest_file_id=latest,
        files=[ModFile(id=f, date_added=1700000000 + f, version=versions.get(f)) for f in files],
        tags=set(tags),
    )


class FakeRepository(RemoteRepository):
    """In-memory backend recording every call."""

    def __init__(self,
                 mods: Optional[Dict[int, ModEntry]] = None,
                 dependencies: Optional[Dict[int, List[int]]] = None,
                 payloads: Optional[Dict[int, bytes]] = None,
                 changed: Iterable[int] = (),
                 *,
                 chunk_size: int = 4,
                 delay: float = 0.0):
        self.mods = dict(mods or {})
        self.dependencies = dict(dependencies or {})
        self.payloads = dict(payloads or {})
        self.changed = set(changed)
        self.chunk_size = chunk_size
        self.delay = delay
        self.calls: Counter = Counter()
        self.log: List[tuple] = []
        self.check_error: Optional[Exception] = None
        self.in_flight = 0
        self.max_in_flight = 0

    @classmethod
    def with_parameters(cls, parameters):
        return cls()

    def _record(self, name: str, *args) -> None:
        self.calls[name] += 1
        self.log.append((name,) + args)

    async def _pause(self) -> None:
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
        finally:
            self.in_flight -= 1

    def _entry(self, mod_id: int) -> ModEntry:
        if mod_id not in self.mods:
            raise ResourceNotFoundError(f"mod {mod_id} not found", 404)
        return dataclasses.replace(self.mods[mod_id])

    async def check(self) -> None:
        self._record("check")
        if self.check_error is not None:
            raise self.check_error

    async def fetch_mod(self, mod_id):
        self._record("fetch_mod", mod_id)
        await self._pause()
        return self._entry(mod_id)

    async def fetch_files(self, mod_id):
        self._record("fetch_files", mod_id)
        await self._pause()
        return self._entry(mod_id)

    async def fetch_file(self, mod_id, file_id):
        self._record("fetch_file", mod_id, file_id)
        payload = self.payloads.get(file_id)
        if payload is None:
            raise ResourceNotFoundError(f"file {file_id} not found", 404)
        return RemoteFile(
            file=ModFile(id=file_id),
            filesize=len(payload),
            download_url=f"https://download.example/{mod_id}/{file_id}",
        )

    async def fetch_dependencies(self, mod_id):
        self._record("fetch_dependencies", mod_id)
        await self._pause()
        return list(self.dependencies.get(mod_id, []))

    async def search_by_slug(self, slug):
        self._record("search_by_slug", slug)
        return [ModSummary(id=i, slug=m.slug, name=m.name) for i, m in self.mods.items() if m.slug == slug]

    async def fetch_by_ids(self, mod_ids):
        self._record("fetch_by_ids", tuple(mod_ids))
        return [ModSummary(id=i, slug=self.mods[i].slug, name=self.mods[i].name) for i in mod_ids if i in self.mods]

    async def fetch_changed_since(self, mod_ids, timestamp):
        self._record("fetch_changed_since", tuple(mod_ids), timestamp)
        return {i for i in mod_ids if i in self.changed} | (self.changed - set(self.mods))

    def download(self, remote_file):
        self._record("download", remote_file.id)
        payload = self.payloads[remote_file.id]

        async def chunks():
            for start in range(0, len(payload), self.chunk_size):
                await asyncio.sleep(0)
                yield payload[start:start + self.chunk_size]

        return chunks()


class FakeResponse:
    """Just enough of requests.Response for the transport."""

    def __init__(self, status_code: int = 200, json_data=None, *, headers=None, content: bytes = b"",
                 text: Optional[str] = None, reason: str = "OK"):
        self.status_code = status_code
        self._json = json_data
        self.headers = CaseInsensitiveDict(headers or {})
        self.content = content
        self.text = text if text is not None else ("" if json_data is None else str(json_data))
        self.reason = reason
        self.closed = False

    def json(self):
        if self._json is None:
            raise ValueError("no JSON body")
        return self._json

    def iter_content(self, chunk_size=1):
        for start in range(0, len(self.content), chunk_size):
            yield self.content[start:start + chunk_size]

    def close(self):
        self.closed = True


class FakeSession:
    """Replays queued responses and records requests."""

    def __init__(self, responses: Optional[List[FakeResponse]] = None):
        self.headers = CaseInsensitiveDict()
        self.responses = list(responses or [])
        self.requests: List[dict] = []
        self.closed = False

    def _next(self) -> FakeResponse:
        if not self.responses:
            raise AssertionError("unexpected request")
        return self.responses.pop(0)

    def request(self, method, url, params=None, json=None, timeout=None):
        self.requests.append({"method": method, "url": url, "params": params, "json": json})
        return self._next()

    def get(self, url, stream=False, timeout=None):
        self.requests.append({"method": "GET", "url": url, "params": None, "json": None, "stream": stream})
        return self._next()

    def close(self):
        self.closed = True


ROCK_DRILL = "https://mod.io/g/drg/m/rock-drill"


@pytest.fixture
def caches():
    return ProviderCaches()


@pytest.fixture
def repo():
    return FakeRepository(
        mods={3: make_mod("rock-drill", latest=5, files=[4, 5], name="Rock Drill", versions={5: "1.2"})},
        dependencies={3: []},
        payloads={5: b"rock drill payload"},
    )


@pytest.fixture
def provider(repo):
    return ModioProvider(repo)


@pytest.fixture
def network_error():
    return NetworkError("connection refused")
