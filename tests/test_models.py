import dataclasses
import json
from decimal import Decimal

import pytest

from arbwatch.models import ArbitrageData, ExchangeConfig, PriceData, Side, TradingPair


def _sample_arb():
    return ArbitrageData(
        pair="BTC/USDT",
        buy_exchange="OKX",
        sell_exchange="Binance",
        buy_price=Decimal("100.5"),
        sell_price=Decimal("101.25"),
        amount=Decimal("0.5"),
        spread=Decimal("0.375"),
        spread_ratio=Decimal("0.25"),
        currency="USDT",
    )


def test_side_values_match_wire_strings():
    assert Side("bid") is Side.BID
    assert Side("ask") is Side.ASK
    assert Side.BID == "bid"


def test_side_rejects_unknown_value():
    with pytest.raises(ValueError):
        Side("mid")


def test_price_data_is_immutable():
    price = PriceData("Binance", "BTC/USDT", Decimal("1"), Decimal("2"), 5, Side.BID)
    with pytest.raises(dataclasses.FrozenInstanceError):
        price.price = Decimal("3")  # type: ignore[misc]


def test_no_chance_for_uses_quote_currency():
    arb = ArbitrageData.no_chance_for("ETH/USDC")
    assert arb.pair == "ETH/USDC"
    assert arb.currency == "USDC"
    assert arb.no_chance is True
    assert arb.buy_exchange == "" and arb.sell_exchange == ""
    assert arb.buy_price == arb.sell_price == arb.amount == arb.spread == arb.spread_ratio == 0


def test_no_chance_for_defaults_currency():
    assert ArbitrageData.no_chance_for("BTCUSDT").currency == "USDT"


def test_to_json_keys_and_values():
    arb = _sample_arb()
    data = arb.to_json()
    assert set(data) == {f.name for f in dataclasses.fields(ArbitrageData)}
    assert data["buy_price"] == 100.5
    assert data["sell_price"] == 101.25
    assert data["amount"] == 0.5
    assert data["pair"] == "BTC/USDT"
    assert data["no_chance"] is False
    assert all(isinstance(data[k], float) for k in ("buy_price", "sell_price", "amount", "spread", "spread_ratio"))


def test_to_json_is_serialisable_round_trip():
    data = _sample_arb().to_json()
    assert json.loads(json.dumps(data)) == data


def test_to_json_no_chance_zeroes():
    data = ArbitrageData.no_chance_for("BTC/USDT").to_json()
    assert data["spread"] == 0.0
    assert data["no_chance"] is True


def test_exchange_config_defaults():
    cfg = ExchangeConfig(name="X", ws_url="wss://example.com/ws", rest_url="https://example.com")
    assert cfg.pairs == []
    assert cfg.enabled is True
    other = ExchangeConfig(name="Y", ws_url="", rest_url="")
    other.pairs.append(TradingPair("A-B", "A", "B", "1"))
    assert cfg.pairs == []