"""Quote aggregator - owns the in-memory quote list and portfolio state

Fetches indices and portfolio instruments, merges results in order-list
order, fills in holdings and computes per-instrument and aggregate
metrics. All state lives on one event loop; no locking is needed.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

from loguru import logger

from jugabar.application.events import create_event
from jugabar.domain.models import (
    EventType,
    Holding,
    MarketComparison,
    Outcome,
    PortfolioSnapshot,
    PortfolioState,
    Quote,
)
from jugabar.shared.constants import (
    INDEX_CODES,
    SEGMENT_KOSPI,
    SEGMENT_TO_INDEX,
    SEGMENTS,
)
from jugabar.shared.exceptions import FetchFailed, PersistenceFailed

if TYPE_CHECKING:
    from jugabar.application.events import EventBus
    from jugabar.infrastructure.database import PortfolioStore
    from jugabar.infrastructure.quotes import QuoteProvider

# Below this a segment's user return counts as "no holdings"
_RETURN_EPSILON = 0.0001


class QuoteAggregator:
    """Merges fetched quotes with the persisted portfolio"""

    def __init__(
        self,
        provider: QuoteProvider,
        store: PortfolioStore | None = None,
        event_bus: EventBus | None = None,
    ):
        """Initialise aggregator

        Args:
            provider: Source of quotes (NaverQuoteClient or a fake)
            store: Portfolio store; None keeps state in memory only
            event_bus: Optional bus notified after every state change
        """
        self.provider = provider
        self.store = store
        self.event_bus = event_bus
        self.refresh_interval = 0.0

        self._state = PortfolioState()
        self._quotes: list[Quote] = []
        self._indices: list[Quote] = []
        self._pending: set[asyncio.Task] = set()

        # Derived from the last merged instrument, not from the indices
        self.is_market_open = False
        self.is_main_market_open = False

    @property
    def codes(self) -> list[str]:
        return list(self._state.codes)

    @property
    def holdings(self) -> dict[str, Holding]:
        return dict(self._state.holdings)

    def load(self) -> None:
        """Load order list and holdings from the store"""
        if self.store is None:
            return
        try:
            self._state = self.store.load()
        except PersistenceFailed as e:
            logger.error(f"Could not load portfolio, starting empty: {e}")
            self._state = PortfolioState()
            return
        logger.info(
            f"Portfolio loaded: {len(self._state.codes)} instruments, "
            f"{len(self._state.holdings)} holdings"
        )

    def _persist(self) -> None:
        if self.store is None:
            return
        try:
            self.store.save(self._state.copy())
        except PersistenceFailed as e:
            logger.error(f"Portfolio not saved, keeping in-memory state: {e}")

    async def refresh_all(self) -> None:
        """Fetch both indices, then every instrument in order, one at a time

        A failed fetch leaves that instrument's previous quote in place.
        """
        await self.refresh_indices()

        merged = 0
        codes = list(self._state.codes)
        for code in codes:
            if await self.refresh_instrument(code):
                merged += 1

        logger.info(f"Refresh complete: {merged}/{len(codes)} instruments")
        self._publish(
            EventType.REFRESH_COMPLETED, merged=merged, total=len(codes)
        )

    async def refresh_indices(self) -> None:
        for code in INDEX_CODES:
            try:
                index = await self.provider.fetch_index(code)
            except FetchFailed as e:
                logger.warning(f"Index fetch failed for {code}: {e}")
                self._publish(EventType.FETCH_FAILED, code=code, error=str(e))
                continue
            self._merge_index(index)
            self._publish(EventType.INDEX_UPDATED, code=index.code)

    async def refresh_instrument(self, code: str) -> bool:
        """Fetch and merge a single instrument

        Returns:
            True if the quote was merged
        """
        try:
            quote = await self.provider.fetch_instrument(code)
        except FetchFailed as e:
            logger.warning(f"Fetching error for {code}: {e}")
            self._publish(EventType.FETCH_FAILED, code=code, error=str(e))
            return False

        if quote.code not in self._state.codes:
            logger.debug(f"{quote.code}: no longer tracked, discarding quote")
            return False

        self.is_main_market_open = quote.is_main_open
        self.is_market_open = quote.is_main_open or quote.is_nxt_open

        self._merge(quote.with_holding(self._state.holdings.get(quote.code)))
        self._publish(EventType.QUOTE_UPDATED, code=quote.code)
        return True

    def _merge(self, quote: Quote) -> None:
        """Replace or append by code, then follow the order list"""
        for i, existing in enumerate(self._quotes):
            if existing.code == quote.code:
                self._quotes[i] = quote
                break
        else:
            self._quotes.append(quote)

        order = {code: i for i, code in enumerate(self._state.codes)}
        self._quotes = sorted(
            (q for q in self._quotes if q.code in order),
            key=lambda q: order[q.code],
        )

    def _merge_index(self, index: Quote) -> None:
        for i, existing in enumerate(self._indices):
            if existing.code == index.code:
                self._indices[i] = index
                break
        else:
            self._indices.append(index)

        rank = {code: i for i, code in enumerate(INDEX_CODES)}
        self._indices.sort(key=lambda q: rank.get(q.code, len(rank)))

    def add_instrument(self, code: str) -> asyncio.Task | None:
        """Append an instrument and fetch it in the background

        Returns:
            The fetch task, or None if the code was already tracked

        Raises:
            ValueError: If code is empty
        """
        code = code.strip()
        if not code:
            raise ValueError("Instrument code cannot be empty")
        if code in self._state.codes:
            logger.debug(f"{code}: already tracked")
            return None

        self._state.codes.append(code)
        self._persist()
        logger.info(f"Added instrument {code}")
        self._publish(EventType.PORTFOLIO_CHANGED, action="add", code=code)

        return self._spawn(self.refresh_instrument(code))

    def remove_instrument(self, code: str) -> bool:
        """Drop an instrument from the order list, holdings and quotes

        Returns:
            True if anything was removed
        """
        was_tracked = code in self._state.codes
        had_holding = code in self._state.holdings

        self._state.codes = [c for c in self._state.codes if c != code]
        self._state.holdings.pop(code, None)
        self._quotes = [q for q in self._quotes if q.code != code]

        if not (was_tracked or had_holding):
            return False

        self._persist()
        logger.info(f"Removed instrument {code}")
        self._publish(EventType.PORTFOLIO_CHANGED, action="remove", code=code)
        return True

    def update_holding(
        self,
        code: str,
        quantity: int | None = None,
        average_price: float | None = None,
    ) -> None:
        """Create, replace or clear the holding for an instrument

        Args:
            code: Instrument code
            quantity: Shares held; None or 0 clears the holding
            average_price: Optional cost per share; non-positive is ignored

        Raises:
            ValueError: If quantity is negative
        """
        if quantity is not None and quantity < 0:
            raise ValueError(f"{code}: quantity cannot be negative")
        if average_price is not None and average_price <= 0:
            average_price = None

        holding = None
        if quantity:
            holding = Holding(
                code=code, quantity=quantity, average_price=average_price
            )
            self._state.holdings[code] = holding
        else:
            self._state.holdings.pop(code, None)

        for i, existing in enumerate(self._quotes):
            if existing.code == code:
                self._quotes[i] = existing.with_holding(holding)
                break

        self._persist()
        logger.info(
            f"Updated holding {code}: quantity={quantity}, average={average_price}"
        )
        self._publish(EventType.PORTFOLIO_CHANGED, action="holding", code=code)

    def reset_portfolio(self) -> None:
        """Clear order list, holdings and quotes"""
        self._state = PortfolioState()
        self._quotes = []
        self._persist()
        logger.info("Portfolio reset")
        self._publish(EventType.PORTFOLIO_CHANGED, action="reset")

    def _spawn(self, coro: Any) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def wait_pending(self) -> None:
        """Wait for background fetches started by add_instrument"""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)

    def current_quotes(self) -> list[Quote]:
        return list(self._quotes)

    def indices(self) -> list[Quote]:
        return list(self._indices)

    @property
    def total_value(self) -> float:
        return sum(q.total_value for q in self._quotes)

    @property
    def total_daily_gain(self) -> float:
        return sum(q.daily_gain for q in self._quotes)

    @property
    def total_nxt_daily_gain(self) -> float:
        return sum(q.nxt_daily_gain for q in self._quotes)

    @property
    def total_lifetime_gain(self) -> float:
        return sum(q.total_gain or 0.0 for q in self._quotes)

    @property
    def total_primary_lifetime_gain(self) -> float:
        return sum(q.primary_total_gain or 0.0 for q in self._quotes)

    def user_return(self, segment: str) -> float:
        """Value-weighted effective change rate of held quotes in a segment"""
        held = [
            q
            for q in self._quotes
            if (q.segment or SEGMENT_KOSPI) == segment and q.is_held
        ]
        total = sum(q.total_value for q in held)
        if total <= 0:
            return 0.0
        return sum(q.current_change_rate * q.total_value / total for q in held)

    def index_return(self, segment: str) -> float:
        index_code = SEGMENT_TO_INDEX.get(segment, segment)
        for index in self._indices:
            if index.code == index_code:
                return index.current_change_rate
        return 0.0

    def compare(self, segment: str) -> MarketComparison:
        user = self.user_return(segment)
        market = self.index_return(segment)
        if abs(user) <= _RETURN_EPSILON:
            outcome = Outcome.NO_HOLDINGS
        elif not self.is_market_open:
            outcome = Outcome.CLOSED
        elif user > market:
            outcome = Outcome.WIN
        else:
            outcome = Outcome.LOSS
        return MarketComparison(
            segment=segment,
            user_return=user,
            index_return=market,
            outcome=outcome,
        )

    def snapshot(self) -> PortfolioSnapshot:
        return PortfolioSnapshot(
            quotes=tuple(self._quotes),
            indices=tuple(self._indices),
            total_value=self.total_value,
            total_daily_gain=self.total_daily_gain,
            total_nxt_daily_gain=self.total_nxt_daily_gain,
            total_lifetime_gain=self.total_lifetime_gain,
            total_primary_lifetime_gain=self.total_primary_lifetime_gain,
            comparisons=tuple(self.compare(s) for s in SEGMENTS),
            is_market_open=self.is_market_open,
            is_main_market_open=self.is_main_market_open,
            refresh_interval=self.refresh_interval,
        )

    def _publish(self, event_type: EventType, **data: Any) -> None:
        if self.event_bus is None:
            return
        data["snapshot"] = self.snapshot()
        self.event_bus.publish_sync(create_event(event_type, data))
