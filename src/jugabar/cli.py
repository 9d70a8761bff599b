"""Terminal front end for JugaBar.

Renders the stock service snapshot with rich. Holds no state of its own.
"""

import argparse
import asyncio
import sys

from dotenv import load_dotenv
from loguru import logger
from rich.console import Console, Group
from rich.live import Live
from rich.table import Table

from jugabar.application.services import StockService
from jugabar.core.config import Config
from jugabar.domain.models import MarketComparison, Outcome, PortfolioSnapshot
from jugabar.shared.constants import REFRESH_INTERVAL_PRESETS
from jugabar.shared.exceptions import ConfigurationError


def format_won(value: float, signed: bool = False) -> str:
    """Format an amount in won with thousands separators

    Args:
        value: Amount (truncated to whole won)
        signed: Prefix positive amounts with "+"
    """
    amount = int(value)
    text = f"{amount:,}"
    if signed and amount > 0:
        text = "+" + text
    return text


def format_rate(value: float) -> str:
    return f"{value:+.2f}%"


def _style_for(value: float) -> str:
    if value > 0:
        return "red"
    if value < 0:
        return "blue"
    return "white"


def format_comparison(comparison: MarketComparison) -> str:
    if comparison.outcome is Outcome.NO_HOLDINGS:
        return "-"
    label = comparison.outcome.value.upper()
    return f"{label} {comparison.spread:+.1f}%"


def extended_label(snapshot: PortfolioSnapshot) -> str | None:
    """Label for the extended-session figure, None when not shown"""
    if snapshot.is_main_market_open or not snapshot.has_extended_quotes:
        return None
    return "NXT" if snapshot.any_extended_open else "NXT·F"


def render_snapshot(snapshot: PortfolioSnapshot) -> Group:
    """Build the rich renderable for a snapshot"""
    indices = Table(title="Market", show_header=False)
    for index in snapshot.indices:
        indices.add_row(
            index.name,
            f"{index.current_price:,.2f}",
            f"[{_style_for(index.current_change_rate)}]"
            f"{format_rate(index.current_change_rate)}[/]",
        )

    quotes = Table(title="Portfolio")
    quotes.add_column("Code", style="cyan", width=8)
    quotes.add_column("Name")
    quotes.add_column("Price", justify="right")
    quotes.add_column("Change", justify="right")
    quotes.add_column("Shares", justify="right")
    quotes.add_column("Gain", justify="right")
    if snapshot.is_empty:
        quotes.caption = "No instruments tracked. Add one with: jugabar add <code>"

    for quote in snapshot.quotes:
        price = f"{quote.current_price:,.0f}"
        if quote.is_nxt_open and quote.nxt_price is not None:
            price += " (NXT)"
        gain = quote.total_gain
        if gain is None:
            gain = quote.daily_gain if quote.is_held else None
        quotes.add_row(
            quote.code,
            quote.name,
            price,
            f"[{_style_for(quote.current_change_rate)}]"
            f"{format_rate(quote.current_change_rate)}[/]",
            f"{quote.quantity:,}" if quote.quantity else "-",
            f"[{_style_for(gain)}]{format_won(gain, signed=True)}[/]"
            if gain is not None
            else "-",
        )

    summary = Table(show_header=False)
    summary.add_row("Total Value", f"{format_won(snapshot.total_value)} 원")
    summary.add_row(
        "Daily Change", f"{format_won(snapshot.total_daily_gain, signed=True)} 원"
    )
    label = extended_label(snapshot)
    if label is not None:
        summary.add_row(
            label, f"{format_won(snapshot.total_nxt_daily_gain, signed=True)} 원"
        )
    summary.add_row(
        "Total Return", f"{format_won(snapshot.total_lifetime_gain, signed=True)} 원"
    )
    if label is not None:
        summary.add_row(
            "KRX",
            f"{format_won(snapshot.total_primary_lifetime_gain, signed=True)} 원",
        )
    for comparison in snapshot.comparisons:
        summary.add_row(f"vs {comparison.segment}", format_comparison(comparison))
    summary.add_row(
        "Refresh",
        "manual"
        if snapshot.refresh_interval == 0
        else f"every {snapshot.refresh_interval:g}s",
    )

    return Group(indices, quotes, summary)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="jugabar", description="Korean stock portfolio tracker"
    )
    parser.add_argument(
        "--verbose", action="store_true", help="Enable verbose logging"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("watch", help="Show live prices until interrupted")
    sub.add_parser("show", help="Refresh once and print the portfolio")

    add = sub.add_parser("add", help="Track an instrument")
    add.add_argument("code")

    remove = sub.add_parser("remove", help="Stop tracking an instrument")
    remove.add_argument("code")

    hold = sub.add_parser("hold", help="Set or clear a holding")
    hold.add_argument("code")
    hold.add_argument("quantity", type=int, nargs="?")
    hold.add_argument("average_price", type=float, nargs="?")

    sub.add_parser("reset", help="Clear the whole portfolio")

    search = sub.add_parser("search", help="Search listed instruments")
    search.add_argument("query")
    search.add_argument("--limit", type=int, default=20)

    interval = sub.add_parser("interval", help="Set the refresh interval")
    interval.add_argument(
        "seconds",
        type=float,
        help=f"Seconds between refreshes, 0 for manual "
        f"(presets: {', '.join(f'{p:g}' for p in REFRESH_INTERVAL_PRESETS)})",
    )
    return parser


async def _watch(service: StockService, console: Console) -> None:
    with Live(
        render_snapshot(service.snapshot()), console=console, auto_refresh=False
    ) as live:

        def _update(snapshot: PortfolioSnapshot) -> None:
            live.update(render_snapshot(snapshot), refresh=True)

        service.subscribe(_update)
        await service.start()
        try:
            await asyncio.Event().wait()
        finally:
            service.unsubscribe(_update)


async def run(args: argparse.Namespace, config: Config, console: Console) -> int:
    service = StockService(config)
    try:
        if args.command == "watch":
            await _watch(service, console)
            return 0

        await service.start()
        if args.command == "add":
            service.add_instrument(args.code)
        elif args.command == "remove":
            if not service.remove_instrument(args.code):
                console.print(f"[yellow]{args.code} is not tracked[/yellow]")
        elif args.command == "hold":
            service.update_holding(args.code, args.quantity, args.average_price)
        elif args.command == "reset":
            service.reset_portfolio()
        elif args.command == "interval":
            service.set_refresh_interval(args.seconds)

        await service.wait_until_ready()
        await service.aggregator.wait_pending()

        if args.command == "search":
            table = Table(title=f"Search: {args.query}")
            table.add_column("Code", style="cyan", width=8)
            table.add_column("Name")
            table.add_column("Market")
            for entry in service.search(args.query, limit=args.limit):
                table.add_row(entry.code, entry.name, entry.segment or "-")
            console.print(table)
        else:
            console.print(render_snapshot(service.snapshot()))
        return 0
    finally:
        await service.stop()


def main() -> int:
    """CLI entry point

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    args = build_parser().parse_args()

    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if args.verbose else "WARNING")
    logger.add(
        "logs/jugabar_{time}.log",
        rotation="1 day",
        retention="30 days",
        compression="gz",
        level="INFO",
    )

    load_dotenv()
    console = Console()

    try:
        config = Config.from_env()
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return 1

    try:
        return asyncio.run(run(args, config, console))
    except KeyboardInterrupt:
        logger.info("Stopped by user")
        return 0
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        return 1
    except Exception as e:
        logger.critical(f"Unhandled exception: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
