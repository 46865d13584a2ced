"""Price quotes, arbitrage opportunities and exchange configuration records."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any

log = logging.getLogger(__name__)

DEFAULT_QUOTE_CURRENCY = "USDT"


def _quote_currency(symbol: str) -> str:
    parts = symbol.split("/")
    if len(parts) == 2:
        return parts[1]
    return DEFAULT_QUOTE_CURRENCY


class Side(str, Enum):
    """Which side of the order book a quote comes from."""

    BID = "bid"
    ASK = "ask"


@dataclass(frozen=True)
class PriceData:
    """Best price and size on one side of one exchange's book."""

    exchange: str
    symbol: str
    price: Decimal
    quantity: Decimal
    time: int
    side: Side


@dataclass(frozen=True)
class ArbitrageData:
    """An arbitrage opportunity, or the absence of one, for a trading pair."""

    pair: str
    buy_exchange: str
    sell_exchange: str
    buy_price: Decimal
    sell_price: Decimal
    amount: Decimal
    spread: Decimal
    spread_ratio: Decimal
    currency: str
    no_chance: bool = False

    @staticmethod
    def no_chance_for(symbol: str) -> ArbitrageData:
        """Build the notification sent when no profitable trade exists."""
        zero = Decimal(0)
        return ArbitrageData(
            pair=symbol,
            buy_exchange="",
            sell_exchange="",
            buy_price=zero,
            sell_price=zero,
            amount=zero,
            spread=zero,
            spread_ratio=zero,
            currency=_quote_currency(symbol),
            no_chance=True,
        )

    def to_json(self) -> dict[str, Any]:
        """Return a JSON-ready mapping with decimal fields as floats."""
        result = {
            "pair": self.pair,
            "buy_exchange": self.buy_exchange,
            "sell_exchange": self.sell_exchange,
            "buy_price": float(self.buy_price),
            "sell_price": float(self.sell_price),
            "amount": float(self.amount),
            "spread": float(self.spread),
            "spread_ratio": float(self.spread_ratio),
            "currency": self.currency,
            "no_chance": self.no_chance,
        }
        log.debug(
            "JSON conversion %s: buy %s -> %f, sell %s -> %f, amount %s -> %f, spread %s -> %f",
            self.pair,
            self.buy_price, result["buy_price"],
            self.sell_price, result["sell_price"],
            self.amount, result["amount"],
            self.spread, result["spread"],
        )
        return result


@dataclass(frozen=True)
class TradingPair:
    """A trading pair as listed by one exchange."""

    symbol: str
    base_asset: str
    quote_asset: str
    min_trade_size: str


@dataclass
class ExchangeConfig:
    """Connection settings and pairs for one exchange."""

    name: str
    ws_url: str
    rest_url: str
    pairs: list[TradingPair] = field(default_factory=list)
    enabled: bool = True