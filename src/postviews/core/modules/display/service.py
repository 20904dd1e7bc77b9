import html
from collections.abc import Callable

import structlog

from postviews.core.core import Service
from postviews.core.modules.counter.store import CounterStore
from postviews.core.modules.display.formatter import format_count, render_views_fragment
from postviews.errors import InvalidIdentifierError
from postviews.utils import to_content_id

logger = structlog.get_logger(__name__)

# (fragment, count, content_id) -> fragment
ViewsTransform = Callable[[str, int, str], str]


class DisplayService(Service):
    """Formats view counts for output and runs registered post-processing transforms."""

    def __init__(self, store: CounterStore) -> None:
        super().__init__(store)
        self._transforms: list[ViewsTransform] = []

    def register_transform(self, transform: ViewsTransform) -> None:
        """Add a transform; transforms run in registration order, the last one has the final say."""
        self._transforms.append(transform)

    def remove_transform(self, transform: ViewsTransform) -> bool:
        try:
            self._transforms.remove(transform)
        except ValueError:
            return False
        return True

    def clear_transforms(self) -> None:
        self._transforms.clear()

    def format(self, count: int, content_id: str = "") -> str:
        """Render the fragment for a count and pass it through the transforms.

        Raises:
            ValueError: If the configured template fails to render
        """
        config = self.core.config
        fragment = render_views_fragment(
            count,
            content_id,
            template=config.fragment_template,
            singular=config.singular_label,
            plural=config.plural_label,
            separator=config.thousands_separator,
        )
        for transform in list(self._transforms):
            try:
                fragment = transform(fragment, count, content_id)
            except Exception:
                # A broken transform must not take the page down; skip it
                logger.exception(
                    "views_transform_failed",
                    transform=getattr(transform, "__qualname__", repr(transform)),
                    content_id=content_id,
                )
        return fragment

    async def formatted_views(self, content_id: object) -> str:
        """Get and format the count for a content item, or "" if that is not possible."""
        try:
            cid = to_content_id(content_id)
        except InvalidIdentifierError:
            return ""
        count = await self.core.services.counter.get(cid)
        try:
            return self.format(count, cid)
        except ValueError:
            return ""

    async def column_value(self, content_id: object) -> str:
        """Cell text for the admin listing column."""
        count = await self.core.services.counter.get(content_id)
        if count <= 0:
            return "0"
        return html.escape(format_count(count, self.core.config.thousands_separator))

    async def append_to_content(self, content: str, content_id: object) -> str:
        """Append the views fragment to rendered item content."""
        views_html = await self.formatted_views(content_id)
        if not views_html:
            return content
        return f'{content}<div class="post-views-footer">{views_html}</div>'
