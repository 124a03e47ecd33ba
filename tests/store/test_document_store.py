import json

import pytest
from redis.exceptions import WatchError

from application.ports.document_store import SERVER_TIMESTAMP, Increment, PreconditionFailed
from infrastructure.document_store import InMemoryDocumentStore, create_document_store
from infrastructure.document_store.base import apply_write
from infrastructure.document_store.redis import RedisDocumentStore
from core.config import StoreSettings


def test_apply_write_deep_merges_and_resolves_sentinels():
    existing = {"a": 1, "nested": {"keep": True, "count": 2}}
    doc = apply_write(
        existing,
        {"nested": {"count": Increment(3), "at": SERVER_TIMESTAMP}, "b": 2},
        merge=True,
        now="2025-01-01T00:00:00Z",
    )
    assert doc == {"a": 1, "b": 2, "nested": {"keep": True, "count": 5, "at": "2025-01-01T00:00:00Z"}}
    assert existing == {"a": 1, "nested": {"keep": True, "count": 2}}


def test_apply_write_without_merge_replaces():
    assert apply_write({"a": 1}, {"b": Increment(1)}, merge=False, now="t") == {"b": 1}


@pytest.mark.asyncio
async def test_batch_is_all_or_nothing_on_failed_requirement():
    store = InMemoryDocumentStore({"orders": {"o1": {"status": "paid"}}})
    batch = store.batch()
    batch.require("orders", "o1", lambda doc: doc is not None and doc.get("status") == "pending", "not pending")
    batch.set("orders", "o1", {"status": "paid", "again": True})
    batch.set("availability", "2025-11-01", {"huntersBooked": Increment(2)})

    with pytest.raises(PreconditionFailed) as exc_info:
        await batch.commit()

    assert "not pending" in str(exc_info.value)
    assert store.dump("orders") == {"o1": {"status": "paid"}}
    assert store.dump("availability") == {}
    assert store.commits == 0


@pytest.mark.asyncio
async def test_repeated_writes_to_one_document_in_a_batch_stack():
    store = InMemoryDocumentStore()
    batch = store.batch()
    batch.set("availability", "d", {"huntersBooked": Increment(2)})
    batch.set("availability", "d", {"huntersBooked": Increment(3)})
    await batch.commit()
    assert (await store.get("availability", "d")) == {"huntersBooked": 5}


@pytest.mark.asyncio
async def test_empty_batch_does_not_commit():
    store = InMemoryDocumentStore()
    await store.batch().commit()
    assert store.commits == 0


@pytest.mark.asyncio
async def test_get_returns_copies():
    store = InMemoryDocumentStore({"orders": {"o1": {"status": "pending"}}})
    doc = await store.get("orders", "o1")
    doc["status"] = "mutated"
    assert (await store.get("orders", "o1"))["status"] == "pending"
    assert await store.get("orders", "missing") is None


def test_factory_picks_backend():
    assert isinstance(create_document_store(StoreSettings()), InMemoryDocumentStore)
    with pytest.raises(ValueError):
        create_document_store(StoreSettings(backend="firestore"))
    with pytest.raises(RuntimeError):
        create_document_store(StoreSettings(backend="redis"))


# Redis backend against a scripted client: only the WATCH/MULTI surface is modelled


class _ScriptedPipeline:
    def __init__(self, client):
        self.client = client
        self.pending: dict[str, str] = {}

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    async def watch(self, *keys):
        self.client.watched.append(keys)

    async def mget(self, *keys):
        return [self.client.data.get(k) for k in keys]

    def multi(self):
        self.pending = {}

    def set(self, key, value):
        self.pending[key] = value

    async def execute(self):
        if self.client.conflicts:
            self.client.conflicts -= 1
            raise WatchError("watched key changed")
        self.client.data.update(self.pending)
        return [True] * len(self.pending)


class _ScriptedRedis:
    def __init__(self, conflicts=0):
        self.data: dict[str, str] = {}
        self.watched: list[tuple] = []
        self.conflicts = conflicts
        self.closed = False

    async def get(self, key):
        return self.data.get(key)

    def pipeline(self, transaction=True):
        return _ScriptedPipeline(self)

    async def aclose(self):
        self.closed = True


@pytest.mark.asyncio
async def test_redis_batch_retries_on_watch_conflict():
    client = _ScriptedRedis(conflicts=2)
    store = RedisDocumentStore(client, namespace="test", watch_retries=5)

    batch = store.batch()
    batch.set("availability", "d1", {"huntersBooked": Increment(2)})
    batch.set("orders", "o1", {"status": "paid"})
    await batch.commit()

    assert len(client.watched) == 3
    assert client.watched[0] == ("test:availability:d1", "test:orders:o1")
    assert json.loads(client.data["test:availability:d1"]) == {"huntersBooked": 2}
    assert await store.get("orders", "o1") == {"status": "paid"}


@pytest.mark.asyncio
async def test_redis_batch_gives_up_after_configured_attempts():
    client = _ScriptedRedis(conflicts=10)
    store = RedisDocumentStore(client, watch_retries=2)
    with pytest.raises(WatchError):
        await store.set("orders", "o1", {"status": "paid"})
    assert client.data == {}


@pytest.mark.asyncio
async def test_redis_requirement_failure_writes_nothing():
    client = _ScriptedRedis()
    client.data["orders:o1"] = json.dumps({"status": "paid"})
    store = RedisDocumentStore(client)

    batch = store.batch()
    batch.require("orders", "o1", lambda doc: doc["status"] == "pending", "not pending")
    batch.set("availability", "d1", {"huntersBooked": Increment(1)})
    with pytest.raises(PreconditionFailed):
        await batch.commit()

    assert "availability:d1" not in client.data
    await store.aclose()
    assert client.closed
