"""Counter storage backends.

Both backends guarantee that concurrent increments of one id are never lost:
MongoDB through the server-side $inc, the memory store through sharded locks
around the read-modify-write.
"""

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, Protocol, Self
from urllib.parse import urlparse

import structlog
from pymongo import AsyncMongoClient, ReturnDocument
from pymongo.asynchronous.collection import AsyncCollection
from pymongo.errors import DuplicateKeyError, PyMongoError, ServerSelectionTimeoutError

from postviews.config import Config
from postviews.core.modules.counter.models import CounterPage, CounterRecord
from postviews.core.modules.sort.rewriter import build_counter_sort
from postviews.errors import StoreUnavailableError, TransientStoreError

logger = structlog.get_logger(__name__)


class CounterStore(Protocol):
    """Durable mapping of content id to view count."""

    async def setup(self) -> None: ...

    async def close(self) -> None: ...

    async def get(self, content_id: str) -> int: ...

    async def increment(self, content_id: str) -> int: ...

    async def order_by_count(self, limit: int, offset: int, descending: bool = True) -> CounterPage: ...

    async def delete(self, content_id: str) -> bool: ...


class MemoryCounterStore:
    """In-process counter store. Counts are lost when the process exits.

    Each id hashes to one of `shards` locks, so increments of different ids
    rarely contend while increments of the same id are serialized, whether
    they come from asyncio tasks or from threads.
    """

    def __init__(self, shards: int = 16) -> None:
        if shards < 1:
            raise ValueError("shards must be positive")
        self._counts: dict[str, int] = {}
        self._locks = tuple(threading.Lock() for _ in range(shards))

    def _lock_for(self, content_id: str) -> threading.Lock:
        return self._locks[hash(content_id) % len(self._locks)]

    async def setup(self) -> None:
        pass

    async def close(self) -> None:
        pass

    async def get(self, content_id: str) -> int:
        return self._counts.get(content_id, 0)

    async def increment(self, content_id: str) -> int:
        with self._lock_for(content_id):
            count = self._counts.get(content_id, 0) + 1
            self._counts[content_id] = count
        return count

    async def order_by_count(self, limit: int, offset: int, descending: bool = True) -> CounterPage:
        snapshot = self._counts.copy()
        if descending:
            ordered = sorted(snapshot.items(), key=lambda item: (-item[1], item[0]))
        else:
            ordered = sorted(snapshot.items(), key=lambda item: (item[1], item[0]))
        items = [CounterRecord(id=content_id, count=count) for content_id, count in ordered[offset : offset + limit]]
        return CounterPage(items=items, total=len(snapshot), limit=limit, offset=offset)

    async def delete(self, content_id: str) -> bool:
        with self._lock_for(content_id):
            return self._counts.pop(content_id, None) is not None


@contextmanager
def translate_store_errors(operation: str, content_id: str | None = None) -> Iterator[None]:
    """Map pymongo failures onto the store error taxonomy."""
    try:
        yield
    except ServerSelectionTimeoutError as e:
        # No server was selected, so nothing was sent. Other network errors may
        # arrive after the server applied the write and are left to the driver.
        logger.debug("counter_store_transient_error", operation=operation, content_id=content_id, error=str(e))
        raise TransientStoreError(f"Counter store {operation} failed: {e}") from e
    except PyMongoError as e:
        logger.warning("counter_store_error", operation=operation, content_id=content_id, error=str(e))
        raise StoreUnavailableError(f"Counter store {operation} failed: {e}") from e


class MongoCounterStore:
    """Counter store backed by a MongoDB collection."""

    def __init__(
        self, collection: AsyncCollection[dict[str, Any]], client: AsyncMongoClient[dict[str, Any]] | None = None
    ) -> None:
        self._collection = collection
        self._client = client

    @classmethod
    def from_url(cls, database_url: str, collection_name: str) -> Self:
        """Create a store that owns its client; the database name comes from the URL path."""
        client: AsyncMongoClient[dict[str, Any]] = AsyncMongoClient(database_url, retryWrites=True)
        database = client.get_database(urlparse(database_url).path[1:] or "postviews")
        return cls(database.get_collection(collection_name), client)

    async def setup(self) -> None:
        """Create the ordering index."""
        with translate_store_errors("setup"):
            await self._collection.create_index([("count", -1), ("_id", 1)])

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()

    async def get(self, content_id: str) -> int:
        with translate_store_errors("get", content_id):
            doc = await self._collection.find_one({"_id": content_id}, {"count": 1})
        if doc is None:
            return 0
        return int(doc["count"])

    async def _inc(self, content_id: str) -> dict[str, Any] | None:
        return await self._collection.find_one_and_update(
            {"_id": content_id},
            {"$inc": {"count": 1}},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )

    async def increment(self, content_id: str) -> int:
        """Atomically increment and return the new count."""
        with translate_store_errors("increment", content_id):
            try:
                doc = await self._inc(content_id)
            except DuplicateKeyError:
                # Two first-time upserts raced on one _id; the retry matches the winner's document
                doc = await self._inc(content_id)
        if doc is None:
            raise StoreUnavailableError(f"Counter store increment returned no document for '{content_id}'")
        return int(doc["count"])

    async def order_by_count(self, limit: int, offset: int, descending: bool = True) -> CounterPage:
        with translate_store_errors("order_by_count"):
            total = await self._collection.count_documents({})
            cursor = self._collection.find({}).sort(build_counter_sort(descending)).skip(offset).limit(limit)
            items = await CounterRecord.list_cursor(cursor)
        return CounterPage(items=items, total=total, limit=limit, offset=offset)

    async def delete(self, content_id: str) -> bool:
        with translate_store_errors("delete", content_id):
            result = await self._collection.delete_one({"_id": content_id})
        return result.deleted_count > 0


def create_store(config: Config) -> CounterStore:
    """Build the counter store selected by configuration."""
    if config.store_backend == "memory":
        logger.warning("memory_counter_store_selected", durable=False)
        return MemoryCounterStore()
    return MongoCounterStore.from_url(config.database_url, config.counters_collection)
