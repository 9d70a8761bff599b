"""Unit tests for QuoteAggregator"""

import asyncio
from unittest.mock import MagicMock

import pytest

from jugabar.application.events import EventBus
from jugabar.application.services import QuoteAggregator
from jugabar.domain.models import EventType, Holding, Outcome, PortfolioState
from jugabar.shared.exceptions import PersistenceFailed
from tests.factories import QuoteFactory


@pytest.fixture
def aggregator(provider, store):
    return QuoteAggregator(provider, store)


def _codes(aggregator):
    return [q.code for q in aggregator.current_quotes()]


@pytest.mark.asyncio
async def test_refresh_all_fetches_indices_then_instruments_in_order(
    aggregator, provider, store
):
    store.save(PortfolioState(codes=["000660", "005930"]))
    aggregator.load()

    await aggregator.refresh_all()

    assert provider.calls == ["KOSPI", "KOSDAQ", "000660", "005930"]
    assert _codes(aggregator) == ["000660", "005930"]
    assert [i.code for i in aggregator.indices()] == ["KOSPI", "KOSDAQ"]


@pytest.mark.asyncio
async def test_visible_order_follows_add_order_not_completion_order(
    aggregator, provider
):
    gate = asyncio.Event()
    provider.gates["005930"] = gate

    first = aggregator.add_instrument("005930")
    second = aggregator.add_instrument("000660")
    await second
    assert _codes(aggregator) == ["000660"]

    gate.set()
    await first

    assert _codes(aggregator) == ["005930", "000660"]


@pytest.mark.asyncio
async def test_partial_failure_keeps_previous_quote(aggregator, provider):
    for code in ("005930", "000660", "035720"):
        aggregator.add_instrument(code)
    await aggregator.wait_pending()
    old_b = aggregator.current_quotes()[1]

    provider.quotes["005930"] = QuoteFactory.quote(price=72000.0)
    provider.quotes["035720"] = QuoteFactory.quote(
        code="035720", name="Kakao", price=41000.0
    )
    provider.quotes["000660"] = QuoteFactory.quote(code="000660", price=1.0)
    provider.failing.add("000660")

    await aggregator.refresh_all()

    a, b, c = aggregator.current_quotes()
    assert a.price == 72000.0
    assert b is old_b
    assert c.price == 41000.0


@pytest.mark.asyncio
async def test_failure_for_never_fetched_instrument_leaves_it_absent(
    aggregator, provider, store
):
    store.save(PortfolioState(codes=["005930", "999999"]))
    aggregator.load()

    await aggregator.refresh_all()

    assert _codes(aggregator) == ["005930"]


@pytest.mark.asyncio
async def test_index_failure_does_not_abort_refresh(aggregator, provider, store):
    provider.failing.add("KOSPI")
    store.save(PortfolioState(codes=["005930"]))
    aggregator.load()

    await aggregator.refresh_all()

    assert [i.code for i in aggregator.indices()] == ["KOSDAQ"]
    assert _codes(aggregator) == ["005930"]


@pytest.mark.asyncio
async def test_add_instrument_is_noop_when_present(aggregator, provider):
    await aggregator.add_instrument("005930")

    assert aggregator.add_instrument("005930") is None
    assert aggregator.codes == ["005930"]
    assert provider.calls.count("005930") == 1


@pytest.mark.asyncio
async def test_add_instrument_persists_before_fetch(aggregator, provider, store):
    gate = asyncio.Event()
    provider.gates["005930"] = gate

    task = aggregator.add_instrument(" 005930 ")

    assert store.load().codes == ["005930"]
    assert _codes(aggregator) == []
    gate.set()
    await task
    assert _codes(aggregator) == ["005930"]


def test_add_instrument_rejects_empty_code(aggregator):
    with pytest.raises(ValueError):
        aggregator.add_instrument("  ")


@pytest.mark.asyncio
async def test_remove_instrument_clears_everything(aggregator, store):
    await aggregator.add_instrument("005930")
    await aggregator.add_instrument("000660")
    aggregator.update_holding("005930", 10, 60000.0)

    assert aggregator.remove_instrument("005930") is True

    assert aggregator.codes == ["000660"]
    assert "005930" not in aggregator.holdings
    assert _codes(aggregator) == ["000660"]
    persisted = store.load()
    assert persisted.codes == ["000660"]
    assert persisted.holdings == {}


def test_remove_unknown_instrument(aggregator):
    assert aggregator.remove_instrument("123456") is False


@pytest.mark.asyncio
async def test_removed_instrument_fetch_in_flight_is_discarded(
    aggregator, provider
):
    gate = asyncio.Event()
    provider.gates["005930"] = gate
    task = aggregator.add_instrument("005930")

    aggregator.remove_instrument("005930")
    gate.set()
    await task

    assert _codes(aggregator) == []


@pytest.mark.asyncio
async def test_update_holding_updates_quote_synchronously(aggregator, store):
    await aggregator.add_instrument("005930")

    aggregator.update_holding("005930", 10, 65000.0)

    quote = aggregator.current_quotes()[0]
    assert (quote.quantity, quote.average_price) == (10, 65000.0)
    assert store.load().holdings["005930"] == Holding("005930", 10, 65000.0)


@pytest.mark.asyncio
async def test_update_holding_without_average_price(aggregator):
    await aggregator.add_instrument("005930")
    aggregator.update_holding("005930", 10, 65000.0)

    aggregator.update_holding("005930", 5)

    quote = aggregator.current_quotes()[0]
    assert (quote.quantity, quote.average_price) == (5, None)
    assert quote.total_gain is None


@pytest.mark.asyncio
@pytest.mark.parametrize("quantity", [None, 0])
async def test_update_holding_clears_on_none_or_zero(aggregator, store, quantity):
    await aggregator.add_instrument("005930")
    aggregator.update_holding("005930", 10, 65000.0)

    aggregator.update_holding("005930", quantity)

    quote = aggregator.current_quotes()[0]
    assert quote.quantity is None
    assert store.load().holdings == {}


def test_update_holding_rejects_negative_quantity(aggregator):
    with pytest.raises(ValueError):
        aggregator.update_holding("005930", -1)


@pytest.mark.asyncio
async def test_holdings_applied_to_fetched_quotes(aggregator, store):
    store.save(
        PortfolioState(
            codes=["005930"], holdings={"005930": Holding("005930", 3, 50000.0)}
        )
    )
    aggregator.load()

    await aggregator.refresh_all()

    quote = aggregator.current_quotes()[0]
    assert quote.quantity == 3
    assert quote.total_gain == pytest.approx(60000.0)


@pytest.mark.asyncio
async def test_reset_portfolio_then_fresh_add(aggregator, store):
    await aggregator.add_instrument("005930")
    aggregator.update_holding("005930", 1)

    aggregator.reset_portfolio()

    assert aggregator.current_quotes() == []
    assert store.load() == PortfolioState()

    await aggregator.add_instrument("000660")
    assert aggregator.codes == ["000660"]
    assert _codes(aggregator) == ["000660"]


@pytest.mark.asyncio
async def test_market_open_follows_last_fetched_instrument(
    aggregator, provider, store
):
    # Known quirk: the flag reflects whichever instrument was merged last
    provider.quotes["005930"] = QuoteFactory.quote(is_main_open=True)
    provider.quotes["000660"] = QuoteFactory.quote(
        code="000660", is_main_open=False, is_nxt_open=True
    )
    store.save(PortfolioState(codes=["005930", "000660"]))
    aggregator.load()

    await aggregator.refresh_all()

    assert aggregator.is_main_market_open is False
    assert aggregator.is_market_open is True


@pytest.mark.asyncio
async def test_indices_alone_do_not_set_market_open(aggregator, provider):
    provider.indices["KOSPI"] = QuoteFactory.index(is_main_open=True)

    await aggregator.refresh_all()

    assert aggregator.is_market_open is False
    assert aggregator.is_main_market_open is False


@pytest.mark.asyncio
async def test_weighted_user_return(aggregator, provider):
    provider.quotes["A"] = QuoteFactory.quote(
        code="A", price=70.0, change_rate=2.0, segment="KQ"
    )
    provider.quotes["B"] = QuoteFactory.quote(
        code="B", price=30.0, change_rate=-1.0, segment="KQ"
    )
    await aggregator.add_instrument("A")
    await aggregator.add_instrument("B")
    aggregator.update_holding("A", 10)
    aggregator.update_holding("B", 10)

    assert aggregator.user_return("KQ") == pytest.approx(1.1)
    assert aggregator.user_return("KS") == 0.0


@pytest.mark.asyncio
async def test_user_return_treats_missing_segment_as_kospi(aggregator, provider):
    provider.quotes["A"] = QuoteFactory.quote(
        code="A", change_rate=1.5, segment=None
    )
    await aggregator.add_instrument("A")
    aggregator.update_holding("A", 1)

    assert aggregator.user_return("KS") == pytest.approx(1.5)


@pytest.mark.asyncio
async def test_aggregates(aggregator, provider):
    provider.quotes["005930"] = QuoteFactory.quote(
        price=70000.0,
        change_amount=1000.0,
        nxt_price=71000.0,
        nxt_change_amount=2000.0,
        nxt_change_rate=2.9,
        is_nxt_open=True,
    )
    await aggregator.add_instrument("005930")
    await aggregator.add_instrument("000660")
    aggregator.update_holding("005930", 10, 60000.0)
    aggregator.update_holding("000660", 2)

    assert aggregator.total_value == pytest.approx(710000.0 + 360000.0)
    assert aggregator.total_daily_gain == pytest.approx(10000.0 - 4000.0)
    assert aggregator.total_nxt_daily_gain == pytest.approx(20000.0)
    assert aggregator.total_lifetime_gain == pytest.approx(110000.0)
    assert aggregator.total_primary_lifetime_gain == pytest.approx(100000.0)


@pytest.mark.asyncio
async def test_index_return_and_comparison(aggregator, store):
    store.save(PortfolioState(codes=["005930"]))
    aggregator.load()
    await aggregator.refresh_all()
    aggregator.update_holding("005930", 1)

    ks = aggregator.compare("KS")
    kq = aggregator.compare("KQ")

    assert aggregator.index_return("KS") == 0.5
    assert aggregator.index_return("KQ") == -0.3
    assert ks.outcome is Outcome.WIN
    assert ks.spread == pytest.approx(1.45 - 0.5)
    assert kq.outcome is Outcome.NO_HOLDINGS


@pytest.mark.asyncio
async def test_comparison_reports_closed_market(aggregator, provider):
    provider.quotes["005930"] = QuoteFactory.quote(is_main_open=False)
    await aggregator.add_instrument("005930")
    aggregator.update_holding("005930", 1)

    assert aggregator.compare("KS").outcome is Outcome.CLOSED


@pytest.mark.asyncio
async def test_snapshot_is_detached_from_later_changes(aggregator):
    await aggregator.add_instrument("005930")
    snapshot = aggregator.snapshot()

    aggregator.reset_portfolio()

    assert [q.code for q in snapshot.quotes] == ["005930"]
    assert aggregator.snapshot().quotes == ()
    assert [c.segment for c in snapshot.comparisons] == ["KS", "KQ"]


@pytest.mark.asyncio
async def test_persistence_failure_is_not_fatal(provider):
    store = MagicMock()
    store.save.side_effect = PersistenceFailed("disk full")
    aggregator = QuoteAggregator(provider, store)

    await aggregator.add_instrument("005930")
    aggregator.update_holding("005930", 2)

    assert aggregator.codes == ["005930"]
    assert aggregator.current_quotes()[0].quantity == 2


def test_load_failure_starts_empty(provider):
    store = MagicMock()
    store.load.side_effect = PersistenceFailed("corrupt")
    aggregator = QuoteAggregator(provider, store)

    aggregator.load()

    assert aggregator.codes == []


@pytest.mark.asyncio
async def test_events_published_with_snapshots(provider, store):
    bus = EventBus()
    received = []
    bus.add_handler(received.append)
    aggregator = QuoteAggregator(provider, store, bus)

    await bus.start()
    await aggregator.add_instrument("005930")
    await aggregator.refresh_all()
    await bus.stop()

    types = [event.type for event in received]
    assert types[0] is EventType.PORTFOLIO_CHANGED
    assert EventType.QUOTE_UPDATED in types
    assert EventType.INDEX_UPDATED in types
    assert types[-1] is EventType.REFRESH_COMPLETED
    last = received[-1].data["snapshot"]
    assert [q.code for q in last.quotes] == ["005930"]
