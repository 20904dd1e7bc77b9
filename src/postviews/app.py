from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog

from postviews.config import Config
from postviews.core.core import Core
from postviews.core.modules.counter.models import CounterPage
from postviews.core.modules.counter.store import CounterStore
from postviews.core.modules.display.service import ViewsTransform
from postviews.core.modules.gate.models import ViewDecisionContext
from postviews.core.modules.gate.rules import is_counted_content, should_count
from postviews.core.modules.sort.models import ListingQuery
from postviews.errors import InvalidIdentifierError, StoreUnavailableError

logger = structlog.get_logger(__name__)


class App:
    """Facade for host integrations.

    Every method is safe to call on the render path: failures are logged and
    degrade to a neutral value instead of raising.
    """

    def __init__(self, config: Config, store: CounterStore | None = None) -> None:
        self._core = Core(config, store)

    @asynccontextmanager
    async def lifespan(self) -> AsyncGenerator[None]:
        """Lifespan management - delegates to Core."""
        async with self._core.lifespan():
            yield

    # === Counting ===
    async def track_view(self, content_id: object, ctx: ViewDecisionContext) -> int | None:
        """Count a view of a content item if the request qualifies.

        Returns the new count, or None when the view was not counted.
        """
        if not should_count(ctx, self._core.config.counted_content_types):
            return None
        try:
            count = await self._core.services.counter.increment(content_id)
        except InvalidIdentifierError:
            logger.debug("view_not_counted_invalid_id", content_id=repr(content_id))
            return None
        except StoreUnavailableError as e:
            logger.warning("view_count_failed", content_id=str(content_id), error=str(e))
            return None
        logger.debug("view_counted", content_id=str(content_id), count=count)
        return count

    async def get_views(self, content_id: object) -> int:
        """Get the raw view count (0 if unknown or unreadable)."""
        return await self._core.services.counter.get(content_id)

    async def purge_views(self, content_id: object) -> bool:
        """Drop the counter of a deleted content item."""
        try:
            return await self._core.services.counter.purge(content_id)
        except (InvalidIdentifierError, StoreUnavailableError) as e:
            logger.warning("views_purge_failed", content_id=str(content_id), error=str(e))
            return False

    # === Display ===
    async def get_formatted_views(self, content_id: object) -> str:
        """Get the display fragment, e.g. "1,250 Views" wrapped in a span."""
        return await self._core.services.display.formatted_views(content_id)

    async def render_content(self, content: str, content_id: object, ctx: ViewDecisionContext) -> str:
        """Append the views footer to single post content when enabled."""
        if not self._core.config.append_to_content:
            return content
        if not is_counted_content(ctx, self._core.config.counted_content_types):
            return content
        return await self._core.services.display.append_to_content(content, content_id)

    def register_views_transform(self, transform: ViewsTransform) -> None:
        """Register a post-processing transform for formatted views."""
        self._core.services.display.register_transform(transform)

    def remove_views_transform(self, transform: ViewsTransform) -> bool:
        return self._core.services.display.remove_transform(transform)

    # === Admin listing ===
    def listing_columns(self, columns: dict[str, str]) -> dict[str, str]:
        return self._core.services.sort.columns(columns)

    def sortable_columns(self, columns: dict[str, str]) -> dict[str, str]:
        return self._core.services.sort.sortable(columns)

    async def admin_column_value(self, column_name: str, content_id: object) -> str | None:
        """Cell text for the views column, None for columns this app does not own."""
        if column_name != self._core.config.sort_field:
            return None
        return await self._core.services.display.column_value(content_id)

    def rewrite_sort(self, query: ListingQuery) -> ListingQuery:
        """Rewrite a listing sort on the views column; other queries pass through unchanged."""
        return self._core.services.sort.rewrite(query)

    async def list_by_views(self, query: ListingQuery, limit: int = 20, offset: int = 0) -> CounterPage:
        """Page of counters for a rewritten listing query.

        A query that is not ordered by views, or a store outage, yields an empty
        page. limit and offset are clamped to 1 and 0 at least.
        """
        limit = max(1, limit)
        offset = max(0, offset)
        if query.counter_sort is None:
            return CounterPage(items=[], total=0, limit=limit, offset=offset)
        try:
            return await self._core.services.sort.list_by_views(query, limit, offset)
        except StoreUnavailableError as e:
            logger.warning("list_by_views_degraded", limit=limit, offset=offset, error=str(e))
            return CounterPage(items=[], total=0, limit=limit, offset=offset)
