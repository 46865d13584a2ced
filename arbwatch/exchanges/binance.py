"""Binance partial book depth feed."""

from __future__ import annotations

import json
import time
from decimal import Decimal, InvalidOperation
from typing import Any

from arbwatch.exchanges.base import ExchangeClient
from arbwatch.models import PriceData, Side

BINANCE = "Binance"
STREAM_BASE_URL = "wss://stream.binance.com:443/stream"
DEPTH_SUFFIX = "@depth5"

_SYMBOLS = {"BTCUSDT": "BTC/USDT", "ETHUSDT": "ETH/USDT"}


def convert_symbol(symbol: str) -> str:
    """Map a Binance symbol such as BTCUSDT to BTC/USDT; others pass through."""
    return _SYMBOLS.get(symbol, symbol)


def _decimal(value: Any, what: str) -> Decimal:
    if not isinstance(value, str):
        raise ValueError(f"failed to parse {what}: {value!r} is not a string")
    try:
        number = Decimal(value)
    except InvalidOperation as exc:
        raise ValueError(f"failed to parse {what}: {value!r}") from exc
    if not number.is_finite():
        raise ValueError(f"failed to parse {what}: {value!r}")
    return number


def _levels(data: dict[str, Any], key: str) -> list[Any]:
    levels = data.get(key) or []
    if not isinstance(levels, list) or not all(isinstance(level, list) for level in levels):
        raise ValueError(f"invalid {key} in Binance message")
    return levels


def parse_depth_message(message: str | bytes, timestamp: int) -> list[PriceData]:
    """Extract the best bid and ask quotes from a combined depth5 stream frame.

    Returns an empty list when the book has no usable top level, and raises
    ValueError for frames that are not valid depth messages.
    """
    try:
        payload = json.loads(message)
    except json.JSONDecodeError as exc:
        raise ValueError(f"invalid Binance message: {exc}") from exc
    if not isinstance(payload, dict):
        raise ValueError("invalid Binance message: not an object")

    stream = payload.get("stream") or ""
    data = payload.get("data") or {}
    if not isinstance(stream, str) or not isinstance(data, dict):
        raise ValueError("invalid Binance message: bad stream or data")

    symbol = convert_symbol(stream.split("@")[0].upper())
    bids = _levels(data, "bids")
    asks = _levels(data, "asks")
    if not bids or not asks:
        return []
    best_bid, best_ask = bids[0], asks[0]
    if len(best_bid) < 2 or len(best_ask) < 2:
        return []

    bid_price = _decimal(best_bid[0], "bid price")
    ask_price = _decimal(best_ask[0], "ask price")
    bid_quantity = _decimal(best_bid[1], "bid quantity")
    ask_quantity = _decimal(best_ask[1], "ask quantity")

    return [
        PriceData(BINANCE, symbol, bid_price, bid_quantity, timestamp, Side.BID),
        PriceData(BINANCE, symbol, ask_price, ask_quantity, timestamp, Side.ASK),
    ]


class BinanceClient(ExchangeClient):
    """Streams top-of-book quotes for the given Binance symbols."""

    name = BINANCE
    ping_interval = 30.0

    def stream_url(self) -> str:
        """Return the combined stream URL for all configured symbols."""
        streams = "/".join(symbol.lower() + DEPTH_SUFFIX for symbol in self.symbols)
        return f"{STREAM_BASE_URL}?streams={streams}"

    def _endpoint(self) -> str:
        return self.stream_url()

    def _parse_message(self, text: str) -> list[PriceData]:
        return parse_depth_message(text, time.time_ns() // 1_000_000)