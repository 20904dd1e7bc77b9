import structlog

from postviews.core.core import Service
from postviews.core.modules.counter.models import CounterPage
from postviews.core.modules.sort.models import ListingQuery
from postviews.core.modules.sort.rewriter import listing_columns, rewrite_sort_request, sortable_columns

logger = structlog.get_logger(__name__)


class SortService(Service):
    """Connects the admin listing's sort requests to the counter ordering."""

    def rewrite(self, query: ListingQuery) -> ListingQuery:
        rewritten = rewrite_sort_request(query, self.core.config.sort_field)
        if rewritten is not query:
            logger.debug("sort_request_rewritten", orderby=query.orderby, order=query.order)
        return rewritten

    def columns(self, columns: dict[str, str]) -> dict[str, str]:
        return listing_columns(columns, self.core.config.sort_field, self.core.config.column_title)

    def sortable(self, columns: dict[str, str]) -> dict[str, str]:
        return sortable_columns(columns, self.core.config.sort_field)

    async def list_by_views(self, query: ListingQuery, limit: int = 20, offset: int = 0) -> CounterPage:
        """Execute a rewritten query against the counter store.

        Raises:
            ValueError: If the query was not rewritten to a counter ordering
        """
        if query.counter_sort is None:
            raise ValueError("Listing query is not ordered by view count")
        return await self.core.services.counter.order_by_count(limit, offset, descending=query.counter_sort.descending)
