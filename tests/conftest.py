import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from pastebin.analytics import InMemoryAnalytics
from pastebin.database import InMemoryBackend
from pastebin.security import ContentValidator
from pastebin.services.creation import CreationService
from pastebin.services.retrieval import RetrievalService
from pastebin.storage import PasteStore

BASE_URL = "http://paste.test"


class FakeClock:
    """Mutable clock; advancing it never triggers a backend sweep."""

    def __init__(self, start=None):
        self.now = start or datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += timedelta(seconds=seconds)


class FailingBackend(InMemoryBackend):
    """In-memory backend whose selected operations raise like a dropped connection."""

    def __init__(self, clock, fail=("get", "set", "delete", "exists", "scan", "incr", "ping")):
        super().__init__(clock=clock)
        self.fail = set(fail)

    def _maybe_fail(self, op):
        if op in self.fail:
            raise RedisConnectionError(f"{op} failed")

    async def get(self, key):
        self._maybe_fail("get")
        return await super().get(key)

    async def set(self, key, value, ttl_seconds=None):
        self._maybe_fail("set")
        await super().set(key, value, ttl_seconds)

    async def delete(self, key):
        self._maybe_fail("delete")
        await super().delete(key)

    async def exists(self, key):
        self._maybe_fail("exists")
        return await super().exists(key)

    async def scan(self, cursor=0, match="*", count=10):
        self._maybe_fail("scan")
        return await super().scan(cursor, match, count)

    async def incr(self, key, amount=1, ttl_seconds=None):
        self._maybe_fail("incr")
        return await super().incr(key, amount, ttl_seconds)

    async def ping(self):
        self._maybe_fail("ping")
        return True


class SlowDeleteBackend(InMemoryBackend):
    """Yields to the event loop before deleting, opening the consume race window."""

    async def delete(self, key):
        await asyncio.sleep(0)
        await super().delete(key)


class ExplodingAnalytics(InMemoryAnalytics):
    async def track_created(self, language, size, client_ip):
        raise RuntimeError("analytics down")

    async def track_viewed(self, paste_id, client_ip):
        raise RuntimeError("analytics down")

    async def track_expired(self, paste_id):
        raise RuntimeError("analytics down")

    async def track_error(self, kind, client_ip=None):
        raise RuntimeError("analytics down")


def paste_keys(backend):
    return [k for k in backend.store if k.startswith("paste:")]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def backend(clock):
    return InMemoryBackend(clock=clock)


@pytest.fixture
def store(backend, clock):
    return PasteStore(backend, clock=clock)


@pytest.fixture
def analytics(clock):
    return InMemoryAnalytics(clock=clock)


@pytest.fixture
def validator():
    return ContentValidator()


@pytest.fixture
def creation_service(store, validator, analytics, clock):
    return CreationService(store, validator, analytics, base_url=BASE_URL, clock=clock)


@pytest.fixture
def retrieval_service(store, analytics, clock):
    return RetrievalService(store, analytics, clock=clock)
