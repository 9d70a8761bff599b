"""Symbol directory - searchable catalog of listed instruments"""

from __future__ import annotations

from typing import TYPE_CHECKING

from loguru import logger

from jugabar.domain.models import DirectoryEntry
from jugabar.shared.constants import DIRECTORY_PAGES, INDEX_CODES
from jugabar.shared.exceptions import DirectoryBuildPartial, FetchFailed

if TYPE_CHECKING:
    from jugabar.infrastructure.quotes import QuoteProvider


class SymbolDirectory:
    """Catalog built once per process from the market-value listings

    Markets are paged in order (KOSPI then KOSDAQ), a fixed number of pages
    each. Failed pages are skipped; the directory just has fewer entries.
    """

    def __init__(
        self,
        provider: QuoteProvider,
        markets: tuple[str, ...] = INDEX_CODES,
        pages: int = DIRECTORY_PAGES,
    ):
        self.provider = provider
        self.markets = markets
        self.pages = pages
        self._entries: list[DirectoryEntry] = []
        self._built = False

    @property
    def is_built(self) -> bool:
        return self._built

    @property
    def size(self) -> int:
        return len(self._entries)

    async def build(self) -> int:
        """Page through every market listing once

        Returns:
            Number of entries in the directory
        """
        if self._built:
            logger.debug("Symbol directory already built")
            return len(self._entries)

        entries: list[DirectoryEntry] = []
        failed: list[tuple[str, int]] = []
        for market in self.markets:
            for page in range(1, self.pages + 1):
                try:
                    entries.extend(
                        await self.provider.fetch_market_page(market, page)
                    )
                except FetchFailed as e:
                    logger.debug(f"Directory page {market}#{page} failed: {e}")
                    failed.append((market, page))

        self._entries = entries
        self._built = True

        if failed:
            logger.warning(str(DirectoryBuildPartial(failed)))
        logger.info(f"Symbol directory built: {len(entries)} entries")
        return len(entries)

    def search(self, query: str, limit: int | None = None) -> list[DirectoryEntry]:
        """Find entries by name (case-insensitive) or code substring

        An empty query returns no results rather than everything.
        """
        query = query.strip()
        if not query:
            return []
        results = [entry for entry in self._entries if entry.matches(query)]
        if limit is not None:
            results = results[:limit]
        return results
