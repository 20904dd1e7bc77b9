"""Pure functions for rendering view counts."""

from functools import lru_cache

import structlog
from liquid import BoundTemplate, Environment

from postviews.config import DEFAULT_FRAGMENT_TEMPLATE

logger = structlog.get_logger(__name__)

# Every {{ }} output is HTML escaped, including in custom fragment templates.
_ENV = Environment(autoescape=True)


def format_count(count: int, separator: str = ",") -> str:
    """Group thousands, e.g. 1250 -> "1,250" (or "1.250" with separator=".")."""
    grouped = f"{count:,}"
    if separator == ",":
        return grouped
    return grouped.replace(",", separator)


def views_label(count: int, singular: str = "View", plural: str = "Views") -> str:
    return singular if count == 1 else plural


@lru_cache(maxsize=16)
def _compile(template: str) -> BoundTemplate:
    return _ENV.from_string(template)


def render_views_fragment(
    count: int,
    content_id: str = "",
    template: str = DEFAULT_FRAGMENT_TEMPLATE,
    singular: str = "View",
    plural: str = "Views",
    separator: str = ",",
) -> str:
    """Render the display fragment for a count.

    Args:
        count: Raw view count
        content_id: Content item the count belongs to
        template: Liquid template; receives count_text, label, count and content_id, all autoescaped
        singular: Label used when count is exactly 1
        plural: Label used otherwise
        separator: Thousands separator

    Returns:
        HTML fragment, e.g. <span class="post-views-count" aria-label="1,250 Views">1,250 Views</span>

    Raises:
        ValueError: If the template cannot be parsed or rendered
    """
    try:
        return _compile(template).render(
            count=count,
            count_text=format_count(count, separator),
            label=views_label(count, singular, plural),
            content_id=content_id,
        )
    except Exception as e:
        logger.exception("views_fragment_render_failed", error=str(e), template=template[:100])
        raise ValueError(f"Failed to render views fragment: {e}") from e
