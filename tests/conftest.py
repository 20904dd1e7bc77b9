"""Shared pytest fixtures."""

from types import SimpleNamespace
from typing import Any

import pytest

from postviews.app import App
from postviews.config import Config
from postviews.core.core import Core
from postviews.core.modules.counter.models import CounterPage
from postviews.core.modules.counter.store import MemoryCounterStore
from postviews.errors import StoreUnavailableError, TransientStoreError


class FlakyStore(MemoryCounterStore):
    """Memory store that can be told to fail."""

    def __init__(self) -> None:
        super().__init__()
        self.unavailable = False
        self.transient_failures = 0  # Number of upcoming increments that fail transiently
        self.get_calls = 0
        self.increment_calls = 0

    async def get(self, content_id: str) -> int:
        self.get_calls += 1
        if self.unavailable:
            raise StoreUnavailableError("store down")
        return await super().get(content_id)

    async def increment(self, content_id: str) -> int:
        self.increment_calls += 1
        if self.unavailable:
            raise StoreUnavailableError("store down")
        if self.transient_failures > 0:
            self.transient_failures -= 1
            raise TransientStoreError("connection reset")
        return await super().increment(content_id)

    async def order_by_count(self, limit: int, offset: int, descending: bool = True) -> CounterPage:
        if self.unavailable:
            raise StoreUnavailableError("store down")
        return await super().order_by_count(limit, offset, descending)


class FakeCursor:
    """Just enough of AsyncCursor for find().sort().skip().limit()."""

    def __init__(self, docs: list[dict[str, Any]]) -> None:
        self._docs = docs
        self.sort_spec: list[tuple[str, int]] | None = None

    def sort(self, spec: list[tuple[str, int]]) -> "FakeCursor":
        self.sort_spec = spec
        # Stable sorts applied from the least significant key
        for field, direction in reversed(spec):
            self._docs.sort(key=lambda doc: doc[field], reverse=direction == -1)
        return self

    def skip(self, n: int) -> "FakeCursor":
        self._docs = self._docs[n:]
        return self

    def limit(self, n: int) -> "FakeCursor":
        self._docs = self._docs[:n]
        return self

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for doc in self._docs:
            yield doc


class FakeCollection:
    """In-memory stand-in for the async counters collection.

    Exceptions queued in `errors` are raised by the next calls, in order.
    Exceptions queued in `errors_after_write` are raised by the next updates
    after the increment was applied, like a reply lost on the network.
    """

    def __init__(self) -> None:
        self.docs: dict[str, dict[str, Any]] = {}
        self.indexes: list[list[tuple[str, int]]] = []
        self.errors: list[Exception] = []
        self.errors_after_write: list[Exception] = []
        self.last_cursor: FakeCursor | None = None

    def _maybe_fail(self) -> None:
        if self.errors:
            raise self.errors.pop(0)

    async def create_index(self, keys: list[tuple[str, int]], **kwargs: Any) -> str:
        self._maybe_fail()
        self.indexes.append(keys)
        return "_".join(f"{field}_{direction}" for field, direction in keys)

    async def find_one(self, query: dict[str, Any], projection: Any = None) -> dict[str, Any] | None:
        self._maybe_fail()
        doc = self.docs.get(query["_id"])
        return dict(doc) if doc is not None else None

    async def find_one_and_update(
        self, query: dict[str, Any], update: dict[str, Any], upsert: bool = False, **kwargs: Any
    ) -> dict[str, Any] | None:
        self._maybe_fail()
        doc = self.docs.get(query["_id"])
        if doc is None:
            if not upsert:
                return None
            doc = self.docs[query["_id"]] = {"_id": query["_id"]}
        for field, amount in update["$inc"].items():
            doc[field] = doc.get(field, 0) + amount
        if self.errors_after_write:
            raise self.errors_after_write.pop(0)
        return dict(doc)

    async def count_documents(self, query: dict[str, Any]) -> int:
        self._maybe_fail()
        return len(self.docs)

    def find(self, query: dict[str, Any]) -> FakeCursor:
        self.last_cursor = FakeCursor([dict(doc) for doc in self.docs.values()])
        return self.last_cursor

    async def delete_one(self, query: dict[str, Any]) -> SimpleNamespace:
        self._maybe_fail()
        existed = self.docs.pop(query["_id"], None) is not None
        return SimpleNamespace(deleted_count=int(existed))


@pytest.fixture
def config():
    """Configuration for tests: memory backend and no retry delay."""
    return Config(
        database_url="mongodb://localhost:27017/postviews_test",
        store_backend="memory",
        store_retry_attempts=3,
        store_retry_delay=0.0,
    )


@pytest.fixture
def memory_store():
    return MemoryCounterStore()


@pytest.fixture
def flaky_store():
    return FlakyStore()


@pytest.fixture
def fake_collection():
    return FakeCollection()


@pytest.fixture
def core(config, flaky_store):
    """Core wired to a flaky memory store."""
    return Core(config, store=flaky_store)


@pytest.fixture
def app(config, flaky_store):
    """App facade wired to a flaky memory store."""
    return App(config, store=flaky_store)
