"""OKX five-level order book feed."""

from __future__ import annotations

import json
import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

import aiohttp

from arbwatch.exchanges.base import ExchangeClient
from arbwatch.models import PriceData, Side

log = logging.getLogger(__name__)

OKX = "OKX"
PUBLIC_WS_URL = "wss://ws.okx.com:8443/ws/v5/public"
BOOKS_CHANNEL = "books5"
MIN_LEVEL_FIELDS = 4

_SYMBOLS = {"BTC-USDT": "BTC/USDT", "ETH-USDT": "ETH/USDT"}


class _Malformed(Exception):
    """Raised internally when a frame does not have the order book shape."""


def convert_symbol(symbol: str) -> str:
    """Map an OKX instrument id such as BTC-USDT to BTC/USDT; others pass through."""
    return _SYMBOLS.get(symbol, symbol)


def _parse_decimal(value: str) -> Optional[Decimal]:
    try:
        number = Decimal(value)
    except InvalidOperation:
        return None
    return number if number.is_finite() else None


def _string(value: Any) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise _Malformed
    return value


def _object(value: Any) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise _Malformed
    return value


def _levels(value: Any) -> list[list[str]]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise _Malformed
    levels = []
    for level in value:
        if level is None:
            levels.append([])
            continue
        if not isinstance(level, list) or not all(isinstance(item, str) for item in level):
            raise _Malformed
        levels.append(level)
    return levels


def _timestamp(raw: str, now_ms: int) -> int:
    if raw:
        parsed = _parse_decimal(raw)
        if parsed is not None:
            return int(parsed)
    return now_ms


def _best_quote(
    levels: list[list[str]], side: Side, symbol: str, timestamp: int
) -> Optional[PriceData]:
    if not levels or len(levels[0]) < MIN_LEVEL_FIELDS:
        return None
    best = levels[0]
    price = _parse_decimal(best[0])
    if price is None:
        log.warning("Failed to parse OKX %s price: %r", side.value, best[0])
        return None
    quantity = _parse_decimal(best[1])
    if quantity is None:
        log.warning("Failed to parse OKX %s quantity: %r", side.value, best[1])
        return None
    return PriceData(OKX, symbol, price, quantity, timestamp, side)


def parse_order_book_message(message: str | bytes, now_ms: int) -> list[PriceData]:
    """Extract the best bid and ask quotes from a books5 push frame.

    Frames that are not order book pushes (subscription confirmations,
    other channels, undecodable text) yield an empty list. A side whose
    top level cannot be parsed is left out. The exchange timestamp is used
    when present and numeric, ``now_ms`` otherwise.
    """
    try:
        payload = json.loads(message)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return []
    try:
        root = _object(payload)
        arg = _object(root.get("arg"))
        channel = _string(arg.get("channel"))
        inst_id = _string(arg.get("instId"))
        data = root.get("data")
        if data is None:
            data = []
        if not isinstance(data, list):
            raise _Malformed
        entries = [_object(entry) for entry in data]
        books = [
            (
                _levels(entry.get("bids")),
                _levels(entry.get("asks")),
                _string(entry.get("ts")),
                _string(entry.get("checksum")),
            )
            for entry in entries
        ]
    except _Malformed:
        return []

    if channel != BOOKS_CHANNEL or not books:
        return []

    bids, asks, raw_ts, _checksum = books[0]
    timestamp = _timestamp(raw_ts, now_ms)
    symbol = convert_symbol(inst_id)

    quotes = [
        _best_quote(bids, Side.BID, symbol, timestamp),
        _best_quote(asks, Side.ASK, symbol, timestamp),
    ]
    return [quote for quote in quotes if quote is not None]


class OKXClient(ExchangeClient):
    """Streams top-of-book quotes for the given OKX instrument ids."""

    name = OKX
    ping_interval = 5.0

    def subscribe_request(self) -> dict[str, Any]:
        """Return the subscription request for the books5 channel of every symbol."""
        return {
            "op": "subscribe",
            "args": [{"channel": BOOKS_CHANNEL, "instId": symbol} for symbol in self.symbols],
        }

    def _endpoint(self) -> str:
        return PUBLIC_WS_URL

    async def _on_open(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        await ws.send_json(self.subscribe_request())

    def _parse_message(self, text: str) -> list[PriceData]:
        import time

        return parse_order_book_message(text, time.time_ns() // 1_000_000)