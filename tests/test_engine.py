import time
from decimal import Decimal

import pytest

from arbwatch.engine import (
    Engine,
    create_arbitrage_data,
    extract_quote_currency,
    is_significantly_different,
)
from arbwatch.models import ArbitrageData, PriceData, Side


def _now():
    return int(time.time() * 1000)


def _quote(exchange, side, price, qty="1", symbol="BTC/USDT", ts=None):
    return PriceData(
        exchange=exchange,
        symbol=symbol,
        price=Decimal(price),
        quantity=Decimal(qty),
        time=_now() if ts is None else ts,
        side=side,
    )


def _drain(queue):
    items = []
    while not queue.empty():
        items.append(queue.get_nowait())
    return items


def test_extract_quote_currency():
    assert extract_quote_currency("BTC/USDT") == "USDT"
    assert extract_quote_currency("ETH/USDC") == "USDC"
    assert extract_quote_currency("BTCUSDT") == "USDT"
    assert extract_quote_currency("A/B/C") == "USDT"


def test_create_arbitrage_uses_smaller_quantity():
    arb = create_arbitrage_data(
        "BTC/USDT", "OKX", "Binance", Decimal("100"), Decimal("101"), Decimal("1"),
        Decimal("0.5"), Decimal("2"),
    )
    assert arb.amount == Decimal("0.5")
    assert arb.buy_exchange == "OKX" and arb.sell_exchange == "Binance"
    assert arb.currency == "USDT"
    assert arb.no_chance is False
    assert arb.spread > 0


def test_create_arbitrage_caps_btc_at_max():
    arb = create_arbitrage_data(
        "BTC/USDT", "OKX", "Binance", Decimal("100"), Decimal("101"), Decimal("1"),
        Decimal("5"), Decimal("7"),
    )
    assert arb.amount == Decimal("1.0")


def test_create_arbitrage_raises_btc_to_min():
    arb = create_arbitrage_data(
        "BTC/USDT", "OKX", "Binance", Decimal("100"), Decimal("101"), Decimal("1"),
        Decimal("0.000001"), Decimal("0.000002"),
    )
    assert arb.amount == Decimal("0.00001")


def test_create_arbitrage_eth_and_default_limits():
    eth = create_arbitrage_data(
        "ETH/USDT", "Binance", "OKX", Decimal("10"), Decimal("11"), Decimal("1"),
        Decimal("50"), Decimal("60"),
    )
    assert eth.amount == Decimal("10.0")
    other = create_arbitrage_data(
        "SOL/USDC", "Binance", "OKX", Decimal("10"), Decimal("11"), Decimal("1"),
        Decimal("0.0000001"), Decimal("60"),
    )
    assert other.amount == Decimal("0.001")
    assert other.currency == "USDC"


def test_create_arbitrage_ratio_times_price_recovers_spread():
    arb = create_arbitrage_data(
        "BTC/USDT", "OKX", "Binance", Decimal("200"), Decimal("250"), Decimal("50"),
        Decimal("0.3"), Decimal("0.4"),
    )
    assert arb.spread_ratio * arb.buy_price == Decimal("50")


def test_create_arbitrage_zero_buy_price_raises():
    with pytest.raises(ArithmeticError):
        create_arbitrage_data(
            "BTC/USDT", "OKX", "Binance", Decimal("0"), Decimal("1"), Decimal("1"),
            Decimal("1"), Decimal("1"),
        )


def test_is_significantly_different():
    base = ArbitrageData.no_chance_for("BTC/USDT")
    assert is_significantly_different(base, base) is False
    changed = ArbitrageData(**{**base.__dict__, "buy_exchange": "OKX"})
    assert is_significantly_different(base, changed) is True
    price_changed = ArbitrageData(**{**base.__dict__, "sell_price": Decimal("1")})
    assert is_significantly_different(base, price_changed) is True
    ratio_only = ArbitrageData(**{**base.__dict__, "spread_ratio": Decimal("1")})
    assert is_significantly_different(base, ratio_only) is False


def test_single_side_sends_nothing():
    engine = Engine()
    queue = engine.subscribe()
    engine.update_price(_quote("Binance", Side.BID, "101"))
    assert queue.empty()


def test_opportunity_buy_okx_sell_binance():
    engine = Engine()
    queue = engine.subscribe()
    engine.update_price(_quote("OKX", Side.ASK, "100", qty="0.5"))
    engine.update_price(_quote("Binance", Side.BID, "101", qty="2"))
    [arb] = _drain(queue)
    assert arb.no_chance is False
    assert arb.buy_exchange == "OKX"
    assert arb.sell_exchange == "Binance"
    assert arb.amount == Decimal("0.5")
    assert engine.last_sent["BTC/USDT"] == arb


def test_no_profit_sends_no_chance():
    engine = Engine()
    queue = engine.subscribe()
    engine.update_price(_quote("OKX", Side.ASK, "102"))
    engine.update_price(_quote("Binance", Side.BID, "101"))
    [arb] = _drain(queue)
    assert arb == ArbitrageData.no_chance_for("BTC/USDT")


def test_same_exchange_only_sends_no_chance():
    engine = Engine()
    queue = engine.subscribe()
    engine.update_price(_quote("Binance", Side.ASK, "100"))
    engine.update_price(_quote("Binance", Side.BID, "101"))
    items = _drain(queue)
    assert items and all(item.no_chance for item in items)


def test_stale_quotes_are_ignored():
    engine = Engine()
    queue = engine.subscribe()
    engine.update_price(_quote("OKX", Side.ASK, "100", ts=_now() - 10_000))
    engine.update_price(_quote("Binance", Side.BID, "101"))
    assert queue.empty()


def test_best_of_two_patterns_chosen():
    engine = Engine()
    queue = engine.subscribe()
    engine.update_price(_quote("OKX", Side.ASK, "100", qty="1"))
    engine.update_price(_quote("Binance", Side.ASK, "90", qty="1"))
    engine.update_price(_quote("Binance", Side.BID, "101", qty="1"))
    engine.update_price(_quote("OKX", Side.BID, "120", qty="1"))
    last = _drain(queue)[-1]
    assert last.buy_exchange == "Binance"
    assert last.sell_exchange == "OKX"


def test_full_queue_drops_updates():
    engine = Engine()
    queue = engine.subscribe()
    engine.update_price(_quote("OKX", Side.ASK, "100"))
    for _ in range(15):
        engine.update_price(_quote("Binance", Side.BID, "101"))
    assert queue.qsize() == queue.maxsize


def test_current_prices_keys_and_copy():
    engine = Engine()
    engine.update_price(_quote("OKX", Side.ASK, "100"))
    engine.update_price(_quote("Binance", Side.BID, "101"))
    prices = engine.current_prices()
    assert set(prices["BTC/USDT"]) == {"OKX_ask", "Binance_bid"}
    assert prices["BTC/USDT"]["OKX_ask"].price == Decimal("100")
    prices["BTC/USDT"].clear()
    assert len(engine.current_prices()["BTC/USDT"]) == 2


@pytest.mark.asyncio
async def test_subscriber_receives_via_await():
    engine = Engine()
    queue = engine.subscribe()
    engine.update_price(_quote("Binance", Side.ASK, "100", symbol="ETH/USDT"))
    engine.update_price(_quote("OKX", Side.BID, "105", symbol="ETH/USDT"))
    arb = await queue.get()
    assert arb.pair == "ETH/USDT"
    assert arb.buy_exchange == "Binance"