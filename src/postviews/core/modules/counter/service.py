import asyncio
from collections import OrderedDict

import structlog

from postviews.core.core import Service
from postviews.core.modules.counter.models import CounterPage
from postviews.core.modules.counter.store import CounterStore
from postviews.errors import InvalidIdentifierError, StoreUnavailableError, TransientStoreError
from postviews.utils import to_content_id

logger = structlog.get_logger(__name__)


class CounterService(Service):
    """Reads and increments view counters with bounded retries and read degradation."""

    def __init__(self, store: CounterStore) -> None:
        super().__init__(store)
        # Last committed value per id, served when the store cannot be read
        self._last_known: OrderedDict[str, int] = OrderedDict()

    def _remember(self, content_id: str, count: int) -> None:
        # Counts never decrease, so a late-arriving older read must not win
        previous = self._last_known.pop(content_id, 0)
        self._last_known[content_id] = max(previous, count)
        while len(self._last_known) > self.core.config.last_known_cache_size:
            self._last_known.popitem(last=False)

    async def get(self, content_id: object) -> int:
        """Get the view count for a content item. Never raises.

        Invalid ids read as 0. If the store is unavailable the last known
        count for the id is returned, or 0 if none was seen.
        """
        try:
            cid = to_content_id(content_id)
        except InvalidIdentifierError:
            logger.debug("counter_read_invalid_id", content_id=repr(content_id))
            return 0

        try:
            count = await self.store.get(cid)
        except StoreUnavailableError as e:
            fallback = self._last_known.get(cid, 0)
            logger.warning("counter_read_degraded", content_id=cid, fallback=fallback, error=str(e))
            return fallback

        self._remember(cid, count)
        return count

    async def increment(self, content_id: object) -> int:
        """Increment the view count by one and return the new value.

        Raises:
            InvalidIdentifierError: If the id is malformed (nothing is written)
            StoreUnavailableError: If the write failed after all retries
        """
        cid = to_content_id(content_id)
        attempts = max(1, self.core.config.store_retry_attempts)
        delay = self.core.config.store_retry_delay

        attempt = 1
        while True:
            try:
                count = await self.store.increment(cid)
            except TransientStoreError as e:
                if attempt >= attempts:
                    logger.warning("counter_increment_failed", content_id=cid, attempts=attempt, error=str(e))
                    raise
                logger.debug("counter_increment_retry", content_id=cid, attempt=attempt, error=str(e))
                await asyncio.sleep(delay * 2 ** (attempt - 1))
                attempt += 1
            else:
                self._remember(cid, count)
                return count

    async def order_by_count(self, limit: int = 20, offset: int = 0, descending: bool = True) -> CounterPage:
        """Get a page of counters ordered by count, ties broken by id ascending."""
        if limit < 1:
            raise ValueError(f"limit must be at least 1, got {limit}")
        if offset < 0:
            raise ValueError(f"offset must not be negative, got {offset}")

        page = await self.store.order_by_count(limit, offset, descending)
        logger.debug(
            "order_by_count",
            descending=descending,
            total=page.total,
            limit=limit,
            offset=offset,
            returned=len(page.items),
        )
        return page

    async def purge(self, content_id: object) -> bool:
        """Remove the counter of a destroyed content item.

        Only for the content lifecycle owner; counting itself never deletes.
        """
        cid = to_content_id(content_id)
        self._last_known.pop(cid, None)
        deleted = await self.store.delete(cid)
        logger.info("counter_purged", content_id=cid, deleted=deleted)
        return deleted
