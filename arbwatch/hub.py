"""Fan-out of arbitrage notifications to WebSocket clients."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

from aiohttp import WSMsgType, web

from arbwatch.models import ArbitrageData

log = logging.getLogger(__name__)

SEND_BUFFER = 256
WRITER_SHUTDOWN_TIMEOUT = 5.0

ClientQueue = "asyncio.Queue[Optional[dict[str, Any]]]"


class Hub:
    """Tracks connected clients and broadcasts notifications to all of them.

    Each client owns a bounded queue of JSON-ready mappings. A client whose
    queue is full when a broadcast arrives is dropped. When a client is
    removed, ``None`` is queued so its writer can finish and close the socket.
    """

    def __init__(self) -> None:
        self._clients: set[asyncio.Queue[Optional[dict[str, Any]]]] = set()

    def add_client(self) -> asyncio.Queue[Optional[dict[str, Any]]]:
        """Register a new client and return the queue it receives messages on."""
        # One slot beyond the buffer is kept free for the closing marker.
        queue: asyncio.Queue[Optional[dict[str, Any]]] = asyncio.Queue(maxsize=SEND_BUFFER + 1)
        self._clients.add(queue)
        log.info("Client connected. Total clients: %d", len(self._clients))
        return queue

    def remove_client(self, queue: asyncio.Queue[Optional[dict[str, Any]]]) -> None:
        """Unregister a client and mark its queue as finished; unknown queues are ignored."""
        if queue in self._clients:
            self._drop(queue)
        log.info("Client disconnected. Total clients: %d", len(self._clients))

    def broadcast(self, data: ArbitrageData) -> None:
        """Queue a notification for every client, dropping clients that lag behind."""
        payload = data.to_json()
        for queue in list(self._clients):
            if queue.qsize() >= SEND_BUFFER:
                self._drop(queue)
            else:
                queue.put_nowait(payload)

    def client_count(self) -> int:
        """Return the number of connected clients."""
        return len(self._clients)

    def _drop(self, queue: asyncio.Queue[Optional[dict[str, Any]]]) -> None:
        self._clients.discard(queue)
        queue.put_nowait(None)

    async def handle_websocket(self, request: web.Request) -> web.StreamResponse:
        """Upgrade the request to a WebSocket and stream notifications to it."""
        ws = web.WebSocketResponse()
        if not ws.can_prepare(request).ok:
            log.warning("WebSocket upgrade error: request is not a WebSocket handshake")
            return web.Response(status=400, text="Bad Request")
        await ws.prepare(request)

        queue = self.add_client()
        writer = asyncio.create_task(self._write(ws, queue))
        try:
            async for msg in ws:
                if msg.type == WSMsgType.ERROR:
                    log.warning("WebSocket error: %s", ws.exception())
                    break
        finally:
            self.remove_client(queue)
            try:
                await asyncio.wait_for(writer, WRITER_SHUTDOWN_TIMEOUT)
            except asyncio.TimeoutError:
                pass
            await ws.close()
        return ws

    @staticmethod
    async def _write(
        ws: web.WebSocketResponse, queue: asyncio.Queue[Optional[dict[str, Any]]]
    ) -> None:
        while True:
            item = await queue.get()
            if item is None:
                await ws.close()
                return
            try:
                await ws.send_json(item)
            except (ConnectionResetError, RuntimeError) as exc:
                log.debug("WebSocket write failed: %s", exc)