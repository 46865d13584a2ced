"""HTTP server wiring the exchange feeds, the arbitrage engine and the hub."""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import signal
from collections.abc import Awaitable, Callable
from typing import Any, Optional, Protocol

from aiohttp import web

from arbwatch.config import Config, default_config
from arbwatch.engine import Engine
from arbwatch.exchanges.base import ExchangeClient
from arbwatch.exchanges.binance import BinanceClient
from arbwatch.exchanges.okx import OKXClient
from arbwatch.hub import Hub

log = logging.getLogger(__name__)

BINANCE_SYMBOLS = ["BTCUSDT", "ETHUSDT"]
OKX_SYMBOLS = ["BTC-USDT", "ETH-USDT"]
MONITOR_INTERVAL = 30.0

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


class _Connectable(Protocol):
    @property
    def connected(self) -> bool: ...


def exchange_status(client: Optional[_Connectable]) -> str:
    """Return "Connected" for a connected client, "Disconnected" otherwise."""
    if client is not None and client.connected:
        return "Connected"
    return "Disconnected"


def create_app(
    config: Config,
    engine: Engine,
    hub: Hub,
    binance: Optional[_Connectable],
    okx: Optional[_Connectable],
) -> web.Application:
    """Build the web application with the WebSocket, health and status routes."""

    async def health(request: web.Request) -> web.Response:
        return web.Response(
            text=(
                f"OK - WebSocket Clients: {hub.client_count()}, "
                f"Binance: {exchange_status(binance)}, OKX: {exchange_status(okx)}"
            )
        )

    async def index(request: web.Request) -> web.Response:
        if request.method == "OPTIONS":
            return web.Response(headers=CORS_HEADERS)
        text = (
            "Crypto Arbitrage Detection Server is running!\n"
            f"WebSocket endpoint: ws://localhost:{config.server.port}/ws\n"
            f"Connected clients: {hub.client_count()}\n"
            f"Exchange Status - Binance: {exchange_status(binance)}, "
            f"OKX: {exchange_status(okx)}\n"
        )
        return web.Response(text=text, headers=CORS_HEADERS)

    app = web.Application()
    app["engine"] = engine
    app["hub"] = hub
    app.router.add_get(config.server.ws_path, hub.handle_websocket)
    app.router.add_route("*", "/health", health)
    app.router.add_route("*", "/{tail:.*}", index)
    return app


async def _pump(queue: "asyncio.Queue[Any]", handler: Callable[[Any], None]) -> None:
    while True:
        handler(await queue.get())


async def _monitor_connections(
    binance: Optional[_Connectable], okx: Optional[_Connectable], interval: float
) -> None:
    while True:
        await asyncio.sleep(interval)
        log.info(
            "Exchange Status - Binance: %s, OKX: %s",
            exchange_status(binance),
            exchange_status(okx),
        )


async def _start_client(
    client: ExchangeClient, engine: Engine, tasks: list["asyncio.Task[None]"]
) -> bool:
    try:
        await client.connect()
    except ConnectionError as exc:
        log.error("Failed to connect to %s: %s", client.name, exc)
        return False
    tasks.append(asyncio.create_task(_pump(client.prices, engine.update_price)))
    return True


def _install_stop_handlers(stop: asyncio.Event) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError, RuntimeError):
            loop.add_signal_handler(sig, stop.set)


async def run(config: Optional[Config] = None) -> None:
    """Run the server until an interrupt or termination signal arrives."""
    log.info("Starting Crypto Arbitrage Detection Server...")
    config = config or default_config()
    engine = Engine()
    hub = Hub()
    tasks: list[asyncio.Task[None]] = [
        asyncio.create_task(_pump(engine.subscribe(), hub.broadcast))
    ]

    binance = BinanceClient(BINANCE_SYMBOLS)
    okx = OKXClient(OKX_SYMBOLS)
    connected: list[ExchangeClient] = [
        client for client in (binance, okx) if await _start_client(client, engine, tasks)
    ]
    tasks.append(asyncio.create_task(_monitor_connections(binance, okx, MONITOR_INTERVAL)))

    runner = web.AppRunner(create_app(config, engine, hub, binance, okx))
    await runner.setup()
    address = f"{config.server.host}:{config.server.port}"
    try:
        site = web.TCPSite(runner, config.server.host, int(config.server.port))
        await site.start()
        log.info("Server starting on %s", address)
        log.info("WebSocket endpoint: ws://%s%s", address, config.server.ws_path)

        stop = asyncio.Event()
        _install_stop_handlers(stop)
        await stop.wait()
        log.info("Shutting down server...")
    finally:
        for client in connected:
            await client.close()
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        await runner.cleanup()
        log.info("Server stopped")


def _parse_args(argv: Optional[list[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="arbwatch", description="Detect crypto arbitrage between Binance and OKX."
    )
    parser.add_argument("--host", help="address to listen on")
    parser.add_argument("--port", help="port to listen on")
    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> None:
    """Command-line entry point."""
    args = _parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(message)s")
    config = default_config()
    if args.host:
        config.server.host = args.host
    if args.port:
        config.server.port = args.port
    runner: Callable[[], Awaitable[None]] = lambda: run(config)
    with contextlib.suppress(KeyboardInterrupt):
        asyncio.run(runner())


if __name__ == "__main__":
    main()