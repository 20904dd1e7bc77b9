"""Pure functions translating listing sort requests into counter orderings."""

from collections.abc import Mapping

from postviews.core.modules.sort.models import CounterSort, ListingQuery, SortDirection

DEFAULT_SORT_FIELD = "post_views"
# orderby value of a rewritten query, numeric ordering on the stored count
COUNTER_ORDERBY = "view_count_num"


def rewrite_sort_request(query: ListingQuery, sort_field: str = DEFAULT_SORT_FIELD) -> ListingQuery:
    """Rewrite a sort on the view-count column into a counter ordering.

    Only the primary admin listing query sorting exactly on sort_field is
    rewritten; any other query is returned as is (the same object).
    """
    if not query.is_admin or not query.is_primary_query:
        return query
    if query.orderby != sort_field:
        return query
    return query.model_copy(
        update={
            "orderby": COUNTER_ORDERBY,
            "counter_sort": CounterSort(descending=query.order == SortDirection.DESC),
        }
    )


def build_counter_sort(descending: bool = True) -> list[tuple[str, int]]:
    """Build MongoDB sort specification; ties on count are broken by id ascending."""
    return [("count", -1 if descending else 1), ("_id", 1)]


def listing_columns(columns: Mapping[str, str], field: str = DEFAULT_SORT_FIELD, title: str = "Views") -> dict[str, str]:
    """Add the views column to a listing's column map."""
    return {**columns, field: title}


def sortable_columns(columns: Mapping[str, str], field: str = DEFAULT_SORT_FIELD) -> dict[str, str]:
    """Register the views column as sortable by its own key."""
    return {**columns, field: field}
