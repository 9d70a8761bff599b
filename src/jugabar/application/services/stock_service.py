"""JugaBar stock service

Wires the quote client, portfolio store, aggregator, scheduler and symbol
directory together and exposes the operations presentation layers call.
"""

import asyncio
from collections.abc import Callable

from loguru import logger

from jugabar.application.events import EventBus
from jugabar.application.services.quote_aggregator import QuoteAggregator
from jugabar.application.services.scheduler import RefreshScheduler
from jugabar.application.services.symbol_directory import SymbolDirectory
from jugabar.core.config import Config
from jugabar.domain.models import (
    DirectoryEntry,
    Event,
    EventType,
    PortfolioSnapshot,
)
from jugabar.infrastructure.database import PortfolioStore
from jugabar.infrastructure.quotes import NaverQuoteClient, QuoteProvider
from jugabar.shared.exceptions import PersistenceFailed


class StockService:
    """Stock portfolio service

    Manages shared components and delegates to the aggregator
    """

    def __init__(
        self,
        config: Config,
        provider: QuoteProvider | None = None,
        store: PortfolioStore | None = None,
        event_bus: EventBus | None = None,
    ):
        """Initialise service with configuration"""
        logger.info("Initialising JugaBar stock service...")
        self.config = config
        self.provider = provider or NaverQuoteClient(
            timeout=config.http_timeout,
            page_size=config.directory_page_size,
        )
        self.store = store or PortfolioStore(config.db_path)
        self.event_bus = event_bus or EventBus()

        self.aggregator = QuoteAggregator(
            self.provider, self.store, self.event_bus
        )
        self.directory = SymbolDirectory(
            self.provider, pages=config.directory_pages
        )
        self.scheduler = RefreshScheduler(self.aggregator.refresh_all)

        self._startup_task: asyncio.Task | None = None
        self._listeners: dict[Callable, Callable] = {}

    async def start(self) -> None:
        """Migrate and load saved data, then start refreshing

        The initial refresh and directory build run in the background.
        """
        try:
            if self.store.has_legacy_codes():
                logger.info("Migrating legacy watched codes")
                self.store.migrate_legacy()
        except PersistenceFailed as e:
            logger.error(f"Legacy migration failed: {e}")

        self.aggregator.load()
        self.aggregator.refresh_interval = self._load_interval()

        await self.event_bus.start()
        self._startup_task = asyncio.create_task(self._initial_load())
        self.scheduler.set_interval(self.aggregator.refresh_interval)
        logger.info("Stock service started")

    async def _initial_load(self) -> None:
        await self.aggregator.refresh_all()
        await self.directory.build()
        await self.event_bus.publish(
            Event(type=EventType.DIRECTORY_BUILT, data={"size": self.directory.size})
        )

    async def wait_until_ready(self) -> None:
        """Wait for the initial refresh and directory build"""
        if self._startup_task is not None:
            await self._startup_task

    async def stop(self) -> None:
        """Stop scheduling, finish background work and release resources"""
        await self.scheduler.stop()
        if self._startup_task is not None and not self._startup_task.done():
            self._startup_task.cancel()
            await asyncio.gather(self._startup_task, return_exceptions=True)
        await self.aggregator.wait_pending()
        if self.event_bus.is_running:
            await self.event_bus.stop()
        if isinstance(self.provider, NaverQuoteClient):
            await self.provider.aclose()
        self.store.close()
        logger.info("Stock service stopped")

    def _load_interval(self) -> float:
        default = self.config.default_refresh_interval
        try:
            return self.store.load_refresh_interval(default)
        except PersistenceFailed as e:
            logger.error(f"Could not read refresh interval: {e}")
            return default

    @property
    def refresh_interval(self) -> float:
        return self.scheduler.interval

    def set_refresh_interval(self, seconds: float) -> None:
        """Persist a new interval and restart the schedule

        Raises:
            ValueError: If seconds is negative or not a finite number
        """
        self.scheduler.set_interval(seconds)
        self.aggregator.refresh_interval = self.scheduler.interval
        try:
            self.store.save_refresh_interval(seconds)
        except PersistenceFailed as e:
            logger.error(f"Refresh interval not saved: {e}")

    async def refresh_now(self) -> None:
        await self.scheduler.trigger()

    async def on_view_opened(self) -> None:
        """Refresh when the view opens, only in manual mode"""
        if self.refresh_interval == 0:
            await self.scheduler.trigger()

    def add_instrument(self, code: str) -> asyncio.Task | None:
        return self.aggregator.add_instrument(code)

    def remove_instrument(self, code: str) -> bool:
        return self.aggregator.remove_instrument(code)

    def update_holding(
        self,
        code: str,
        quantity: int | None = None,
        average_price: float | None = None,
    ) -> None:
        self.aggregator.update_holding(code, quantity, average_price)

    def reset_portfolio(self) -> None:
        self.aggregator.reset_portfolio()

    def search(self, query: str, limit: int | None = None) -> list[DirectoryEntry]:
        return self.directory.search(query, limit=limit)

    def snapshot(self) -> PortfolioSnapshot:
        return self.aggregator.snapshot()

    def subscribe(self, callback: Callable[[PortfolioSnapshot], None]) -> None:
        """Call back with a fresh snapshot after every state change"""

        def _listener(event: Event) -> None:
            if event.data and "snapshot" in event.data:
                callback(event.data["snapshot"])

        self._listeners[callback] = _listener
        self.event_bus.add_handler(_listener)

    def unsubscribe(self, callback: Callable[[PortfolioSnapshot], None]) -> None:
        listener = self._listeners.pop(callback, None)
        if listener is not None:
            self.event_bus.remove_handler(listener)
