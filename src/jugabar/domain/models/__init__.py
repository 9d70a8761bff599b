"""Domain models"""

from .directory import DirectoryEntry
from .event import Event, EventType
from .holding import Holding, PortfolioState
from .quote import Quote
from .snapshot import MarketComparison, Outcome, PortfolioSnapshot

__all__ = [
    "Quote",
    "Holding",
    "PortfolioState",
    "DirectoryEntry",
    "MarketComparison",
    "Outcome",
    "PortfolioSnapshot",
    "Event",
    "EventType",
]
