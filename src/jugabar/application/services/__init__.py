"""Application services"""

from .quote_aggregator import QuoteAggregator
from .scheduler import RefreshScheduler, SchedulerState
from .stock_service import StockService
from .symbol_directory import SymbolDirectory

__all__ = [
    "QuoteAggregator",
    "RefreshScheduler",
    "SchedulerState",
    "StockService",
    "SymbolDirectory",
]
