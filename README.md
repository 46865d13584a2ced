# arbwatch

arbwatch follows the top of the order book for BTC/USDT and ETH/USDT on
Binance and OKX. It looks for price gaps between the two exchanges that
could be traded for a profit. Every time a quote changes, it sends the result
to all connected WebSocket clients.

## Installation

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## Running the server

```
arbwatch
arbwatch --host 127.0.0.1 --port 9000
```

`--host` and `--port` override the listening address. By default the server
listens on `0.0.0.0:8080`. It has three kinds of route:

- `/ws`: a WebSocket stream of arbitrage updates, sent as JSON objects.
- `/health`: a one-line status. It shows the number of connected WebSocket
  clients and whether Binance and OKX are connected.
- any other path: a short human-readable summary, sent with permissive CORS
  headers. An `OPTIONS` request gets an empty reply with the same headers.

The server subscribes to the `btcusdt@depth5` and `ethusdt@depth5` streams on
Binance and to the `books5` channel for `BTC-USDT` and `ETH-USDT` on OKX. If a
connection drops, the client reconnects with exponential backoff, from 1 s up
to 60 s. The connection state of both exchanges goes to the log every 30
seconds. If an exchange cannot be reached at startup, the server runs without
it.

Stop the server with Ctrl-C or SIGTERM. It closes the exchange connections
before it exits.

## Messages

Each WebSocket message has these fields:

```json
{
  "pair": "BTC/USDT",
  "buy_exchange": "OKX",
  "sell_exchange": "Binance",
  "buy_price": 64000.1,
  "sell_price": 64003.5,
  "amount": 0.25,
  "spread": 0.85,
  "spread_ratio": 0.0000531,
  "currency": "USDT",
  "no_chance": false
}
```

- `spread` is the profit in the quote currency for the tradeable `amount`.
- `spread_ratio` is the per-unit price difference divided by the buy price.
- `amount` is the smaller of the two best-level quantities, clamped to limits
  for each pair: 0.00001 to 1 for BTC/USDT, 0.0001 to 10 for ETH/USDT, and
  0.001 to 1 for any other pair.
- `currency` is the part of the pair after `/`, or `USDT` if the pair has no
  such part.
- If no profitable opportunity exists, the message has `no_chance: true`,
  empty exchange names and every number zero.

Quotes older than 5 seconds are ignored. A client that lets 256 messages pile
up unsent is disconnected.

## Using the pieces directly

`arbwatch.engine.Engine` works without the network:

```python
import time
from decimal import Decimal

from arbwatch.engine import Engine
from arbwatch.models import PriceData, Side

engine = Engine()                 # Engine(stale_after_ms=...) changes the 5 s window
updates = engine.subscribe()      # an asyncio.Queue of ArbitrageData
now = int(time.time() * 1000)

engine.update_price(PriceData("OKX", "BTC/USDT", Decimal("100"), Decimal("2"), now, Side.ASK))
engine.update_price(PriceData("Binance", "BTC/USDT", Decimal("101"), Decimal("1"), now, Side.BID))

arb = updates.get_nowait()
print(arb.to_json())
```

`Engine.current_prices()` returns a copy of the latest quotes, keyed by symbol
and then by `"<exchange>_bid"` or `"<exchange>_ask"`.

The other modules are:

- `arbwatch.models`: `PriceData`, `ArbitrageData`, `Side`, `TradingPair` and
  `ExchangeConfig`.
- `arbwatch.config`: `default_config()` returns the default `Config`.
- `arbwatch.exchanges.binance` and `arbwatch.exchanges.okx`: `BinanceClient`
  and `OKXClient`. They are async clients: `await client.connect()`, then read
  quotes from `client.prices`, and `await client.close()` at the end. Both can
  also be used as `async with` blocks. The frame parsers
  `parse_depth_message` and `parse_order_book_message` can be used on their
  own.
- `arbwatch.hub`: `Hub` keeps one queue per WebSocket client and broadcasts
  `ArbitrageData` to all of them.
- `arbwatch.app`: `create_app` joins the engine, the hub and the exchange
  clients into an aiohttp application, and `run` serves it until a signal
  arrives.

## What it does not do

arbwatch only reports opportunities. It places no orders and keeps no record
of past opportunities. It covers only Binance and OKX and the two pairs above.
Apart from `--host` and `--port`, its settings cannot be changed without
building a `Config` in code and passing it to `run`.