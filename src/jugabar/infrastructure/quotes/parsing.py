"""Decoding of Naver stock API envelopes.

Numbers arrive as strings with thousands separators ("71,500"). They are
parsed leniently: a missing or unparseable number becomes 0.0. Missing
structural fields are a decode failure and raise ``QuoteDecodeError``.
"""

from typing import Any

from jugabar.domain.models import DirectoryEntry, Quote
from jugabar.shared.constants import (
    DIRECTION_FALLING,
    DIRECTION_RISING,
    STATUS_OPEN,
)


class QuoteDecodeError(ValueError):
    """Raised when a response does not match the expected envelope"""

    pass


def parse_number(value: str | int | float | None) -> float:
    """Parse a provider number, returning 0.0 when it cannot be read

    Args:
        value: Raw value such as "71,500", "-1.25" or None

    Returns:
        Parsed float, or 0.0
    """
    if value is None:
        return 0.0
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    cleaned = str(value).replace(",", "").strip()
    try:
        return float(cleaned)
    except ValueError:
        return 0.0


def parse_optional_number(value: str | int | float | None) -> float | None:
    if value is None:
        return None
    return parse_number(value)


def _require(payload: dict[str, Any], key: str) -> Any:
    if key not in payload or payload[key] is None:
        raise QuoteDecodeError(f"missing field '{key}'")
    return payload[key]


def _direction(payload: Any) -> tuple[bool, bool]:
    """Map a compareToPreviousPrice object to (is_rising, is_falling)"""
    if not isinstance(payload, dict):
        return False, False
    code = str(payload.get("code", ""))
    return code == DIRECTION_RISING, code == DIRECTION_FALLING


def decode_quote(payload: Any, segment: str | None = None) -> Quote:
    """Decode a /basic envelope into a Quote

    Args:
        payload: Parsed JSON body
        segment: Segment override (used for indices); otherwise taken from
            stockExchangeType.code

    Returns:
        Normalized Quote

    Raises:
        QuoteDecodeError: If required fields are missing
    """
    if not isinstance(payload, dict):
        raise QuoteDecodeError(f"expected object, got {type(payload).__name__}")

    code = str(_require(payload, "itemCode"))
    name = str(_require(payload, "stockName"))
    price = _require(payload, "closePrice")
    change_amount = _require(payload, "compareToPreviousClosePrice")
    change_rate = _require(payload, "fluctuationsRatio")
    compare = _require(payload, "compareToPreviousPrice")
    if not isinstance(compare, dict) or "code" not in compare:
        raise QuoteDecodeError("malformed field 'compareToPreviousPrice'")
    is_rising, is_falling = _direction(compare)

    if segment is None:
        exchange = payload.get("stockExchangeType")
        if isinstance(exchange, dict) and exchange.get("code"):
            segment = str(exchange["code"])

    over = payload.get("overMarketPriceInfo")
    if over is not None and not isinstance(over, dict):
        raise QuoteDecodeError("malformed field 'overMarketPriceInfo'")
    over = over or {}
    is_nxt_rising, is_nxt_falling = _direction(over.get("compareToPreviousPrice"))

    try:
        return Quote(
            code=code,
            name=name,
            price=parse_number(price),
            change_amount=parse_number(change_amount),
            change_rate=parse_number(change_rate),
            is_rising=is_rising,
            is_falling=is_falling,
            segment=segment,
            nxt_price=parse_optional_number(over.get("overPrice")),
            nxt_change_amount=parse_optional_number(
                over.get("compareToPreviousClosePrice")
            ),
            nxt_change_rate=parse_optional_number(over.get("fluctuationsRatio")),
            is_nxt_rising=is_nxt_rising,
            is_nxt_falling=is_nxt_falling,
            is_nxt_open=over.get("overMarketStatus") == STATUS_OPEN,
            is_main_open=payload.get("marketStatus") == STATUS_OPEN,
        )
    except ValueError as e:
        raise QuoteDecodeError(str(e)) from e


def decode_market_page(payload: Any, segment: str) -> list[DirectoryEntry]:
    """Decode a marketValue page into directory entries

    Args:
        payload: Parsed JSON body with a "stocks" list
        segment: Segment assigned to every entry (KS or KQ)

    Raises:
        QuoteDecodeError: If the stocks list or its fields are missing
    """
    if not isinstance(payload, dict):
        raise QuoteDecodeError(f"expected object, got {type(payload).__name__}")
    stocks = _require(payload, "stocks")
    if not isinstance(stocks, list):
        raise QuoteDecodeError("field 'stocks' is not a list")

    entries = []
    for item in stocks:
        if not isinstance(item, dict):
            raise QuoteDecodeError("stock entry is not an object")
        entries.append(
            DirectoryEntry(
                code=str(_require(item, "itemCode")),
                name=str(_require(item, "stockName")),
                segment=segment,
            )
        )
    return entries
