"""Unit tests for the terminal front end helpers"""

import pytest
from rich.console import Console

from jugabar.cli import (
    build_parser,
    extended_label,
    format_comparison,
    format_rate,
    format_won,
    render_snapshot,
)
from jugabar.domain.models import MarketComparison, Outcome, PortfolioSnapshot
from tests.factories import QuoteFactory


@pytest.mark.parametrize(
    "value,signed,expected",
    [
        (1234567.9, False, "1,234,567"),
        (1500.0, True, "+1,500"),
        (-1500.0, True, "-1,500"),
        (0.0, True, "0"),
    ],
)
def test_format_won(value, signed, expected):
    assert format_won(value, signed=signed) == expected


def test_format_rate():
    assert format_rate(1.234) == "+1.23%"
    assert format_rate(-0.5) == "-0.50%"


def test_format_comparison():
    win = MarketComparison("KS", 1.5, 0.5, Outcome.WIN)
    none = MarketComparison("KQ", 0.0, 0.5, Outcome.NO_HOLDINGS)

    assert format_comparison(win) == "WIN +1.0%"
    assert format_comparison(none) == "-"


def test_extended_label():
    nxt_closed = QuoteFactory.quote(nxt_price=70100.0, is_nxt_open=False)
    nxt_open = QuoteFactory.quote(nxt_price=70100.0, is_nxt_open=True)

    assert extended_label(PortfolioSnapshot(quotes=(nxt_closed,))) == "NXT·F"
    assert extended_label(PortfolioSnapshot(quotes=(nxt_open,))) == "NXT"
    assert (
        extended_label(
            PortfolioSnapshot(quotes=(nxt_open,), is_main_market_open=True)
        )
        is None
    )
    assert extended_label(PortfolioSnapshot(quotes=(QuoteFactory.quote(),))) is None


def test_render_snapshot_contains_quotes_and_totals():
    quote = QuoteFactory.quote(quantity=10, average_price=60000.0)
    snapshot = PortfolioSnapshot(
        quotes=(quote,),
        indices=(QuoteFactory.index(),),
        total_value=quote.total_value,
        total_lifetime_gain=quote.total_gain,
        refresh_interval=30,
    )
    console = Console(record=True, width=120)

    console.print(render_snapshot(snapshot))
    output = console.export_text()

    assert "005930" in output
    assert "700,000" in output
    assert "+100,000" in output
    assert "every 30s" in output


def test_parser_commands():
    parser = build_parser()

    hold = parser.parse_args(["hold", "005930", "10", "65000"])
    clear = parser.parse_args(["hold", "005930"])
    interval = parser.parse_args(["interval", "0"])

    assert (hold.code, hold.quantity, hold.average_price) == ("005930", 10, 65000.0)
    assert clear.quantity is None
    assert interval.seconds == 0.0


def _render_text(snapshot: PortfolioSnapshot) -> str:
    console = Console(record=True, width=120)
    console.print(render_snapshot(snapshot))
    return console.export_text()


def test_render_snapshot_shows_primary_gain_with_extended_session():
    quote = QuoteFactory.quote(
        nxt_price=71000.0,
        is_nxt_open=True,
        is_main_open=False,
        quantity=10,
        average_price=60000.0,
    )
    snapshot = PortfolioSnapshot(
        quotes=(quote,),
        total_lifetime_gain=quote.total_gain,
        total_primary_lifetime_gain=quote.primary_total_gain,
    )

    output = _render_text(snapshot)

    assert "KRX" in output
    assert "+110,000" in output
    assert "+100,000" in output


def test_render_snapshot_hides_primary_gain_in_main_session():
    quote = QuoteFactory.quote(quantity=10, average_price=60000.0)
    snapshot = PortfolioSnapshot(quotes=(quote,), is_main_market_open=True)

    assert "KRX" not in _render_text(snapshot)


def test_render_empty_snapshot_hints_how_to_add():
    assert "jugabar add <code>" in _render_text(PortfolioSnapshot())
