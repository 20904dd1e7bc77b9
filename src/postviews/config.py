from typing import Literal

from pydantic_settings import BaseSettings

DEFAULT_FRAGMENT_TEMPLATE = (
    '<span class="post-views-count" aria-label="{{ count_text }} {{ label }}">'
    "{{ count_text }} {{ label }}</span>"
)


class Config(BaseSettings):
    """View counter configuration loaded from environment variables."""

    database_url: str = "mongodb://localhost:27017/postviews"
    debug: bool = False
    log_format: Literal["console", "json"] | None = None  # Defaults to console in debug, JSON otherwise
    store_backend: Literal["mongo", "memory"] = "mongo"  # memory is not durable, for tests and single-process hosts
    counters_collection: str = "post_view_counts"
    counted_content_types: list[str] = ["post"]
    singular_label: str = "View"
    plural_label: str = "Views"
    thousands_separator: str = ","
    fragment_template: str = DEFAULT_FRAGMENT_TEMPLATE  # Liquid template with count_text, label, count, content_id
    append_to_content: bool = False  # Append the views fragment to single post content
    sort_field: str = "post_views"  # Listing column key that sorts by view count
    column_title: str = "Views"
    store_retry_attempts: int = 3  # Total attempts for an increment on transient store errors
    store_retry_delay: float = 0.05  # Seconds before the first retry, doubled on each retry
    last_known_cache_size: int = 10_000

    model_config = {
        "env_file": [".env"],
        "env_prefix": "POSTVIEWS_",
        "extra": "ignore",
    }
