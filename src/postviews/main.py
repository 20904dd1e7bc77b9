"""Bootstrap for hosts embedding the view counter."""

from postviews.app import App
from postviews.config import Config
from postviews.core.modules.counter.store import CounterStore
from postviews.logging import setup_logging


def create_app(config: Config | None = None, store: CounterStore | None = None) -> App:
    """Load configuration from the environment, configure logging and build the App.

    Hosts that already configure structlog themselves construct App directly.
    """
    if config is None:
        config = Config()
    setup_logging(config.debug, config.log_format)
    return App(config, store)
