"""NaverQuoteClient - async HTTP access to the Naver mobile stock API"""

import logging
from typing import Any

import httpx
from loguru import logger

from jugabar.domain.models import DirectoryEntry, Quote
from jugabar.shared.constants import (
    BASE_URL,
    DIRECTORY_PAGE_SIZE,
    INDEX_TO_SEGMENT,
)
from jugabar.shared.exceptions import FetchFailed

from .parsing import QuoteDecodeError, decode_market_page, decode_quote


class _LoguruHandler(logging.Handler):
    """Bridge stdlib logging into loguru"""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno
        logger.opt(depth=6, exception=record.exc_info).log(
            level, record.getMessage()
        )


class NaverQuoteClient:
    """Quote client for instruments, indices and market listings

    Responsibilities:
    - HTTP request execution (one request per call, no retries)
    - JSON envelope decoding into domain models
    - Mapping every failure to FetchFailed
    """

    BASE_URL = BASE_URL
    USER_AGENT = (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 14_0) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
    )
    _logging_bridge_installed = False

    def __init__(
        self,
        timeout: float = 10.0,
        page_size: int = DIRECTORY_PAGE_SIZE,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize quote client

        Args:
            timeout: Per-request timeout in seconds
            page_size: Number of entries requested per directory page
            transport: Optional transport (for testing)
        """
        self.timeout = timeout
        self.page_size = page_size
        self._transport = transport
        self._http_client: httpx.AsyncClient | None = None
        self.install_logging_bridge()

    @classmethod
    def install_logging_bridge(cls) -> None:
        """Bridge stdlib logging used by httpx into loguru once."""
        if cls._logging_bridge_installed:
            return

        handler = _LoguruHandler()
        std_logger = logging.getLogger("httpx")
        std_logger.setLevel(logging.WARNING)
        std_logger.addHandler(handler)
        std_logger.propagate = False

        cls._logging_bridge_installed = True

    def _build_http_client(self) -> httpx.AsyncClient:
        """Create an AsyncClient with httpx request/response logging hooks."""
        return httpx.AsyncClient(
            base_url=self.BASE_URL,
            timeout=self.timeout,
            transport=self._transport,
            headers={"User-Agent": self.USER_AGENT},
            event_hooks={
                "request": [self._log_httpx_request],
                "response": [self._log_httpx_response],
            },
        )

    async def _log_httpx_request(self, request: httpx.Request) -> None:
        logger.debug(f"HTTPX request: {request.method} {request.url}")

    async def _log_httpx_response(self, response: httpx.Response) -> None:
        logger.debug(
            f"HTTPX response: status={response.status_code} url={response.url}"
        )

    def set_http_client(self, client: httpx.AsyncClient) -> None:
        """Set the HTTP client (for testing or external management)"""
        self._http_client = client

    def _get_http_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = self._build_http_client()
        return self._http_client

    async def aclose(self) -> None:
        """Close the underlying HTTP client"""
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    async def __aenter__(self) -> "NaverQuoteClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def _get_json(
        self, code: str, endpoint: str, params: dict | None = None
    ) -> Any:
        """GET an endpoint and return its JSON body

        Raises:
            FetchFailed: On network error, timeout, bad status or invalid JSON
        """
        try:
            response = await self._get_http_client().get(endpoint, params=params)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            raise FetchFailed(
                code, f"HTTP {e.response.status_code} from {endpoint}"
            ) from e
        except httpx.HTTPError as e:
            raise FetchFailed(code, e) from e
        except ValueError as e:
            raise FetchFailed(code, f"invalid JSON: {e}") from e

    async def fetch_instrument(self, code: str) -> Quote:
        """Fetch the current quote of a single instrument

        Args:
            code: Exchange code, e.g. "005930"

        Returns:
            Decoded Quote

        Raises:
            ValueError: If code is empty
            FetchFailed: If the request or decoding fails
        """
        if not code:
            raise ValueError("Instrument code cannot be empty")
        payload = await self._get_json(code, f"/stock/{code}/basic")
        try:
            return decode_quote(payload)
        except QuoteDecodeError as e:
            raise FetchFailed(code, e) from e

    async def fetch_index(self, code: str) -> Quote:
        """Fetch a market index (KOSPI or KOSDAQ)

        The index segment is its own code.
        """
        if not code:
            raise ValueError("Index code cannot be empty")
        payload = await self._get_json(code, f"/index/{code}/basic")
        try:
            return decode_quote(payload, segment=code)
        except QuoteDecodeError as e:
            raise FetchFailed(code, e) from e

    async def fetch_market_page(
        self, market: str, page: int
    ) -> list[DirectoryEntry]:
        """Fetch one page of a market listing ordered by market value

        Args:
            market: Market name (KOSPI or KOSDAQ)
            page: 1-based page number

        Returns:
            Directory entries tagged with the market's segment
        """
        if not market:
            raise ValueError("Market cannot be empty")
        if page < 1:
            raise ValueError(f"Page must be positive, got {page}")

        label = f"{market}#{page}"
        payload = await self._get_json(
            label,
            f"/stocks/marketValue/{market}",
            params={"page": page, "pageSize": self.page_size},
        )
        try:
            return decode_market_page(
                payload, segment=INDEX_TO_SEGMENT.get(market, market)
            )
        except QuoteDecodeError as e:
            raise FetchFailed(label, e) from e
