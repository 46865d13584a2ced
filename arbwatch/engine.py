"""Cross-exchange arbitrage detection over best bid/ask quotes."""

from __future__ import annotations

import asyncio
import copy
import logging
import time
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from arbwatch.models import ArbitrageData, PriceData, Side, _quote_currency

log = logging.getLogger(__name__)

BINANCE = "Binance"
OKX = "OKX"
SUBSCRIBER_BUFFER = 10
DEFAULT_STALE_AFTER_MS = 5000

_DIVISION_QUANTUM = Decimal("1e-16")

# symbol -> (max amount, min amount)
_AMOUNT_LIMITS = {
    "BTC/USDT": (Decimal("1.0"), Decimal("0.00001")),
    "ETH/USDT": (Decimal("10.0"), Decimal("0.0001")),
}
_DEFAULT_AMOUNT_LIMITS = (Decimal("1.0"), Decimal("0.001"))


def extract_quote_currency(symbol: str) -> str:
    """Return the quote currency of a "BASE/QUOTE" symbol, or USDT."""
    return _quote_currency(symbol)


def create_arbitrage_data(
    symbol: str,
    buy_exchange: str,
    sell_exchange: str,
    buy_price: Decimal,
    sell_price: Decimal,
    spread: Decimal,
    buy_qty: Decimal,
    sell_qty: Decimal,
) -> ArbitrageData:
    """Size a trade within per-symbol limits and compute its profit.

    The returned ``spread`` is the total profit of the sized trade; the
    ``spread_ratio`` is the per-unit price spread relative to the buy price.
    """
    amount = min(buy_qty, sell_qty)
    max_amount, min_amount = _AMOUNT_LIMITS.get(symbol, _DEFAULT_AMOUNT_LIMITS)
    if amount > max_amount:
        amount = max_amount
    if amount < min_amount:
        amount = min_amount

    spread_ratio = (spread / buy_price).quantize(_DIVISION_QUANTUM, rounding=ROUND_HALF_UP)
    profit = amount * sell_price - amount * buy_price

    return ArbitrageData(
        pair=symbol,
        buy_exchange=buy_exchange,
        sell_exchange=sell_exchange,
        buy_price=buy_price,
        sell_price=sell_price,
        amount=amount,
        spread=profit,
        spread_ratio=spread_ratio,
        currency=extract_quote_currency(symbol),
        no_chance=False,
    )


def is_significantly_different(last: ArbitrageData, current: ArbitrageData) -> bool:
    """Tell whether two opportunities differ in exchanges, prices, amount or spread."""
    return (
        last.buy_exchange != current.buy_exchange
        or last.sell_exchange != current.sell_exchange
        or last.buy_price != current.buy_price
        or last.sell_price != current.sell_price
        or last.amount != current.amount
        or last.spread != current.spread
    )


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


class Engine:
    """Keeps the latest quotes per symbol and exchange and reports arbitrage.

    Meant to be driven from a single event loop: subscriber queues are
    ``asyncio.Queue`` objects fed without blocking, dropping updates when full.
    """

    def __init__(self, stale_after_ms: int = DEFAULT_STALE_AFTER_MS) -> None:
        self.stale_after_ms = stale_after_ms
        self._bids: dict[str, dict[str, PriceData]] = {}
        self._asks: dict[str, dict[str, PriceData]] = {}
        self._subscribers: list[asyncio.Queue[ArbitrageData]] = []
        self.last_sent: dict[str, ArbitrageData] = {}

    def update_price(self, price: PriceData) -> None:
        """Record a quote and re-check its symbol for arbitrage."""
        log.debug(
            "Received price data: %s %s %s - price %s, quantity %s",
            price.exchange, price.symbol, getattr(price.side, "value", price.side),
            price.price, price.quantity,
        )
        if price.side == Side.BID:
            self._bids.setdefault(price.symbol, {})[price.exchange] = price
        elif price.side == Side.ASK:
            self._asks.setdefault(price.symbol, {})[price.exchange] = price
        self._check_arbitrage(price.symbol)

    def subscribe(self) -> asyncio.Queue[ArbitrageData]:
        """Return a new bounded queue that receives every notification."""
        queue: asyncio.Queue[ArbitrageData] = asyncio.Queue(maxsize=SUBSCRIBER_BUFFER)
        self._subscribers.append(queue)
        return queue

    def current_prices(self) -> dict[str, dict[str, PriceData]]:
        """Return a copy of all quotes keyed by symbol, then "<exchange>_<side>"."""
        result: dict[str, dict[str, PriceData]] = {}
        for suffix, book in (("_bid", self._bids), ("_ask", self._asks)):
            for symbol, by_exchange in book.items():
                entry = result.setdefault(symbol, {})
                for exchange, price in by_exchange.items():
                    entry[exchange + suffix] = copy.copy(price)
        return result

    def _check_arbitrage(self, symbol: str) -> None:
        bids = self._bids.get(symbol, {})
        asks = self._asks.get(symbol, {})
        if not bids or not asks:
            return

        now = _now_ms()
        fresh_bids = {ex: p for ex, p in bids.items() if now - p.time <= self.stale_after_ms}
        fresh_asks = {ex: p for ex, p in asks.items() if now - p.time <= self.stale_after_ms}
        if not fresh_bids or not fresh_asks:
            return

        candidates: list[ArbitrageData] = []
        for buy_ex, sell_ex in ((OKX, BINANCE), (BINANCE, OKX)):
            ask = fresh_asks.get(buy_ex)
            bid = fresh_bids.get(sell_ex)
            if ask is not None and bid is not None and bid.price > ask.price:
                candidates.append(
                    create_arbitrage_data(
                        symbol, buy_ex, sell_ex, ask.price, bid.price,
                        bid.price - ask.price, ask.quantity, bid.quantity,
                    )
                )

        best: ArbitrageData | None = None
        for candidate in candidates:
            if best is None or candidate.spread > best.spread:
                best = candidate

        stamp = datetime.now().strftime("%H:%M:%S.%f")[:-3]
        if best is not None and best.spread > 0:
            log.info(
                "[%s] Arbitrage opportunity: %s - Buy %s at %s, Sell %s at %s - Spread: $%s",
                stamp, best.pair, best.buy_exchange, best.buy_price,
                best.sell_exchange, best.sell_price, best.spread,
            )
            self._send(symbol, best)
            return

        if best is not None:
            log.info(
                "[%s] No profitable arbitrage for %s - Best spread: $%s (Loss)",
                stamp, best.pair, best.spread,
            )
        self._send(symbol, ArbitrageData.no_chance_for(symbol))

    def _send(self, symbol: str, arb: ArbitrageData) -> None:
        self.last_sent[symbol] = arb
        for queue in self._subscribers:
            try:
                queue.put_nowait(arb)
            except asyncio.QueueFull:
                pass