"""Cumulative view counters keyed by content id."""

from pydantic import BaseModel, Field

from postviews.core.db import MongoModel

MAX_COUNT = 2**63 - 1


class CounterRecord(MongoModel):
    """View count for one content item.

    Created by the first increment; an absent record reads as 0.
    Stored as {"_id": content_id, "count": n}, indexed on (count desc, _id asc).
    """

    count: int = Field(0, ge=0, le=MAX_COUNT)


class CounterPage(BaseModel):
    """One page of counters ordered by count."""

    items: list[CounterRecord] = Field(..., description="Counters in the current page")
    total: int = Field(..., description="Total number of counters across all pages", ge=0)
    limit: int = Field(..., description="Maximum items per page", ge=1)
    offset: int = Field(..., description="Number of items skipped", ge=0)

    @property
    def has_more(self) -> bool:
        """Whether there are more counters beyond the current page."""
        return self.offset + len(self.items) < self.total
