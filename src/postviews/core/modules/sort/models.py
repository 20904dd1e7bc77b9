"""Listing sort requests from the host's admin table."""

from enum import StrEnum

from pydantic import BaseModel, Field


class SortDirection(StrEnum):
    ASC = "asc"
    DESC = "desc"


class CounterSort(BaseModel):
    """Ordering instruction the counter store can execute."""

    descending: bool = True


class ListingQuery(BaseModel):
    """Sort request issued by a listing, plus the context it runs in."""

    orderby: str | None = Field(None, description="Requested sort field")
    order: SortDirection = Field(SortDirection.DESC, description="Requested sort direction")
    is_admin: bool = Field(False, description="Query runs in the admin listing")
    is_primary_query: bool = Field(False, description="Main listing query, not a widget or embedded query")
    counter_sort: CounterSort | None = Field(None, description="Set when the request was rewritten to a counter ordering")
