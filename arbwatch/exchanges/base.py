"""Shared WebSocket lifecycle for exchange order-book feeds."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable
from typing import Optional

import aiohttp

from arbwatch.models import PriceData

log = logging.getLogger(__name__)

PRICE_BUFFER = 100


class ExchangeClient(ABC):
    """Streams best bid/ask quotes from one exchange into ``prices``.

    After a successful :meth:`connect`, the client keeps reading in the
    background and reconnects with exponential backoff whenever the
    connection drops, until :meth:`close` is called.
    """

    name = "Exchange"
    ping_interval = 30.0
    read_timeout = 60.0
    handshake_timeout = 10.0
    initial_backoff = 1.0
    max_backoff = 60.0

    def __init__(self, symbols: Iterable[str]) -> None:
        self.symbols = list(symbols)
        self.prices: asyncio.Queue[PriceData] = asyncio.Queue(maxsize=PRICE_BUFFER)
        self._session: Optional[aiohttp.ClientSession] = None
        self._ws: Optional[aiohttp.ClientWebSocketResponse] = None
        self._connected = False
        self._closed = False
        self._runner: Optional[asyncio.Task[None]] = None
        self._keepalive: Optional[asyncio.Task[None]] = None

    @abstractmethod
    def _endpoint(self) -> str:
        """Return the WebSocket URL to connect to."""

    @abstractmethod
    def _parse_message(self, text: str) -> Iterable[PriceData]:
        """Turn one text frame into quotes; raise ValueError if malformed."""

    async def _on_open(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        """Run right after the socket opens, e.g. to send subscriptions."""

    @property
    def connected(self) -> bool:
        """Whether a WebSocket connection is currently open."""
        return self._connected

    def publish(self, price: PriceData) -> bool:
        """Queue a quote; return False if the buffer is full and it was dropped."""
        try:
            self.prices.put_nowait(price)
        except asyncio.QueueFull:
            return False
        return True

    async def connect(self) -> None:
        """Connect once, then keep the feed alive in the background.

        Raises ConnectionError if the first connection attempt fails.
        """
        if self._closed:
            raise RuntimeError(f"{self.name} client is closed")
        try:
            await self._connect_once()
        except ConnectionError:
            await self._close_session()
            raise
        self._runner = asyncio.create_task(self._run())

    async def close(self) -> None:
        """Stop the background tasks and close the connection."""
        self._closed = True
        current = asyncio.current_task()
        tasks = [t for t in (self._runner, self._keepalive) if t is not None and t is not current]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._runner = None
        self._keepalive = None
        if self._ws is not None:
            await self._ws.close()
            self._ws = None
        self._connected = False
        await self._close_session()

    async def __aenter__(self) -> ExchangeClient:
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def _close_session(self) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None

    async def _connect_once(self) -> None:
        url = self._endpoint()
        log.info("Connecting to %s WebSocket: %s", self.name, url)
        if self._session is None:
            self._session = aiohttp.ClientSession()
        try:
            ws = await asyncio.wait_for(
                self._session.ws_connect(url, autoping=True), self.handshake_timeout
            )
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as exc:
            raise ConnectionError(f"failed to connect to {self.name}: {exc}") from exc

        try:
            await self._on_open(ws)
        except (aiohttp.ClientError, OSError, RuntimeError, ValueError) as exc:
            await ws.close()
            raise ConnectionError(f"failed to subscribe on {self.name}: {exc}") from exc

        self._ws = ws
        self._connected = True
        self._keepalive = asyncio.create_task(self._keep_alive(ws))
        log.info("Connected to %s WebSocket", self.name)

    async def _run(self) -> None:
        while not self._closed:
            await self._read_messages()
            if self._closed:
                return
            await self._reconnect()

    async def _read_messages(self) -> None:
        ws = self._ws
        if ws is None:
            return
        try:
            while not self._closed:
                msg = await ws.receive(timeout=self.read_timeout)
                if msg.type == aiohttp.WSMsgType.TEXT:
                    self._dispatch(msg.data)
                elif msg.type == aiohttp.WSMsgType.BINARY:
                    self._dispatch(msg.data.decode("utf-8", errors="replace"))
                elif msg.type in (
                    aiohttp.WSMsgType.CLOSE,
                    aiohttp.WSMsgType.CLOSING,
                    aiohttp.WSMsgType.CLOSED,
                    aiohttp.WSMsgType.ERROR,
                ):
                    log.warning("%s WebSocket read error: connection closed", self.name)
                    return
        except asyncio.TimeoutError:
            log.warning("%s WebSocket read error: no data for %ss", self.name, self.read_timeout)
        finally:
            await self._drop_connection(ws)

    def _dispatch(self, text: str) -> None:
        try:
            quotes = list(self._parse_message(text))
        except ValueError as exc:
            log.warning("Failed to parse %s message: %s", self.name, exc)
            return
        for quote in quotes:
            self.publish(quote)

    async def _drop_connection(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        keepalive = self._keepalive
        if keepalive is not None and keepalive is not asyncio.current_task():
            keepalive.cancel()
            await asyncio.gather(keepalive, return_exceptions=True)
        self._keepalive = None
        await ws.close()
        if self._ws is ws:
            self._ws = None
        was_connected = self._connected
        self._connected = False
        if was_connected and not self._closed:
            log.info("%s WebSocket disconnected, attempting to reconnect...", self.name)

    async def _reconnect(self) -> None:
        delay = self.initial_backoff
        while not self._closed:
            try:
                await self._connect_once()
            except ConnectionError as exc:
                log.warning("%s reconnection failed: %s, retrying in %ss", self.name, exc, delay)
                await asyncio.sleep(delay)
                if delay < self.max_backoff:
                    delay *= 2
            else:
                log.info("%s WebSocket reconnected successfully", self.name)
                return

    async def _keep_alive(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        while True:
            await asyncio.sleep(self.ping_interval)
            try:
                await ws.ping()
            except (aiohttp.ClientError, OSError, RuntimeError) as exc:
                log.warning("%s ping failed: %s", self.name, exc)
                await ws.close()
                return