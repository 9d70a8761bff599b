"""Read-only view model handed to presentation layers"""

from dataclasses import dataclass
from enum import Enum

from .quote import Quote


class Outcome(Enum):
    """How the portfolio fared against its market index"""

    WIN = "win"
    LOSS = "loss"
    CLOSED = "closed"
    NO_HOLDINGS = "no_holdings"


@dataclass(frozen=True)
class MarketComparison:
    """User return against the index return for one segment"""

    segment: str
    user_return: float
    index_return: float
    outcome: Outcome

    @property
    def spread(self) -> float:
        return self.user_return - self.index_return


@dataclass(frozen=True)
class PortfolioSnapshot:
    """Immutable snapshot of the quote engine state

    Valid until the next merge completes; a new snapshot is published
    after every state change.
    """

    quotes: tuple[Quote, ...] = ()
    indices: tuple[Quote, ...] = ()
    total_value: float = 0.0
    total_daily_gain: float = 0.0
    total_nxt_daily_gain: float = 0.0
    total_lifetime_gain: float = 0.0
    total_primary_lifetime_gain: float = 0.0
    comparisons: tuple[MarketComparison, ...] = ()
    is_market_open: bool = False
    is_main_market_open: bool = False
    refresh_interval: float = 0.0

    @property
    def has_extended_quotes(self) -> bool:
        return any(q.has_extended_quote for q in self.quotes)

    @property
    def any_extended_open(self) -> bool:
        return any(q.is_nxt_open for q in self.quotes)

    @property
    def is_empty(self) -> bool:
        return not self.quotes

    def comparison(self, segment: str) -> MarketComparison | None:
        for item in self.comparisons:
            if item.segment == segment:
                return item
        return None
