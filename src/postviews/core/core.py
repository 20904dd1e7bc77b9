from __future__ import annotations

import importlib
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, cast

from postviews.config import Config
from postviews.core.modules.counter.store import CounterStore, create_store

if TYPE_CHECKING:
    from postviews.core.modules.counter.service import CounterService
    from postviews.core.modules.display.service import DisplayService
    from postviews.core.modules.sort.service import SortService


class Service:
    """Base class for services working against the counter store."""

    def __init__(self, store: CounterStore) -> None:
        self.store = store
        self._core: Core | None = None

    async def on_start(self) -> None:
        """Initialize service on startup."""

    async def on_stop(self) -> None:
        """Cleanup service on shutdown."""

    @property
    def core(self) -> Core:
        """Get the core context."""
        if self._core is None:
            raise RuntimeError("Core not set for service")
        return self._core

    def set_core(self, core: Core) -> None:
        """Set the core context."""
        self._core = core


class Services:
    """Service registry that imports and initializes services in dependency order."""

    counter: CounterService
    display: DisplayService
    sort: SortService

    def __init__(self, store: CounterStore) -> None:
        self._services: list[Service] = []

        # (attribute_name, module_path, class_name); counter first, the others read through it
        service_configs = [
            ("counter", "postviews.core.modules.counter.service", "CounterService"),
            ("display", "postviews.core.modules.display.service", "DisplayService"),
            ("sort", "postviews.core.modules.sort.service", "SortService"),
        ]

        for attr_name, module_path, class_name in service_configs:
            module = importlib.import_module(module_path)
            service_class = cast(type[Service], getattr(module, class_name))
            service_instance = service_class(store)
            setattr(self, attr_name, service_instance)
            self._services.append(service_instance)

    def set_core(self, core: Core) -> None:
        for service in self._services:
            service.set_core(core)

    async def start_all(self) -> None:
        for service in self._services:
            await service.on_start()

    async def stop_all(self) -> None:
        for service in reversed(self._services):
            await service.on_stop()


class Core:
    """Container providing config, the counter store, and all service instances.

    The store is injected rather than shared process-wide so that each Core
    (and each test) works against its own counters.
    """

    config: Config
    store: CounterStore
    services: Services

    def __init__(self, config: Config, store: CounterStore | None = None) -> None:
        self.config = config
        self.store = store if store is not None else create_store(config)
        self.services = Services(self.store)
        self.services.set_core(self)

    @asynccontextmanager
    async def lifespan(self) -> AsyncGenerator[None]:
        """Manage startup and shutdown."""
        await self.on_start()
        try:
            yield
        finally:
            await self.on_stop()

    async def on_start(self) -> None:
        """Prepare the store (indexes) and start services."""
        await self.store.setup()
        await self.services.start_all()

    async def on_stop(self) -> None:
        """Stop services and release the store connection."""
        await self.services.stop_all()
        await self.store.close()
