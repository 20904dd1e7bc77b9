"""Pure decision rules for counting a view."""

from collections.abc import Collection

from postviews.core.modules.gate.models import ViewDecisionContext

DEFAULT_COUNTED_TYPES = ("post",)


def is_counted_content(ctx: ViewDecisionContext, counted_types: Collection[str] = DEFAULT_COUNTED_TYPES) -> bool:
    """Whether the request is a primary query for a single item of a counted type."""
    return ctx.is_single and ctx.is_primary_query and ctx.content_type in counted_types


def should_count(ctx: ViewDecisionContext, counted_types: Collection[str] = DEFAULT_COUNTED_TYPES) -> bool:
    """Whether this request should increment the item's view count.

    Editors are excluded so internal review traffic does not inflate
    public counts.
    """
    return is_counted_content(ctx, counted_types) and not ctx.viewer_can_edit
