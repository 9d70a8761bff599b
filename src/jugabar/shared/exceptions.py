"""Consolidated exceptions for JugaBar.

All custom exceptions are defined here to provide a single source of truth
for error handling across the application.
"""


class JugaBarError(Exception):
    """Base exception for JugaBar errors"""

    pass


class QuoteClientError(JugaBarError):
    """Base exception for quote client errors"""

    pass


class FetchFailed(QuoteClientError):
    """Raised when a quote, index or directory page cannot be fetched

    Covers network errors, timeouts, bad status codes and decode failures.
    """

    def __init__(self, code: str, cause: BaseException | str) -> None:
        self.code = code
        self.cause = cause
        super().__init__(f"Fetch failed for {code}: {cause}")


class PersistenceFailed(JugaBarError):
    """Raised when the portfolio store cannot read or write"""

    pass


class DirectoryBuildPartial(JugaBarError):
    """Raised when some symbol directory pages could not be fetched"""

    def __init__(self, failed_pages: list[tuple[str, int]]) -> None:
        self.failed_pages = failed_pages
        pages = ", ".join(f"{market}#{page}" for market, page in failed_pages)
        super().__init__(f"Directory build incomplete, failed pages: {pages}")


class ConfigurationError(JugaBarError):
    """Raised when configuration is invalid or missing"""

    pass
