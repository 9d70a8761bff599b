"""Quote provider protocol.

Lets the aggregator and directory run against any source that satisfies
this interface (the Naver client in production, fakes in tests).
"""

from typing import Protocol, runtime_checkable

from jugabar.domain.models import DirectoryEntry, Quote


@runtime_checkable
class QuoteProvider(Protocol):
    """Protocol for quote retrieval."""

    async def fetch_instrument(self, code: str) -> Quote:
        """Fetch a single instrument quote, raising FetchFailed on failure."""
        ...

    async def fetch_index(self, code: str) -> Quote:
        """Fetch a market index quote, raising FetchFailed on failure."""
        ...

    async def fetch_market_page(
        self, market: str, page: int
    ) -> list[DirectoryEntry]:
        """Fetch one page of a market listing."""
        ...
