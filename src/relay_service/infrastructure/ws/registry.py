"""In-process registry of live WebSocket connections."""
from __future__ import annotations

import asyncio
import contextlib
import logging
import uuid

from fastapi import WebSocket

from relay_service.application.ports.realtime import Connection

logger = logging.getLogger(__name__)


class WebSocketConnection:
    """Adapts a Starlette WebSocket to the Connection port."""

    def __init__(self, ws: WebSocket) -> None:
        self.id = uuid.uuid4().hex
        self._ws = ws
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def mark_closed(self) -> None:
        self._closed = True

    async def send_text(self, data: str) -> None:
        await self._ws.send_text(data)

    async def close(self) -> None:
        self._closed = True
        with contextlib.suppress(Exception):
            await self._ws.close(code=1011)


class ConnectionRegistry:
    """Tracks the open connections of this process and fans payloads out to them.

    One instance per application; the live set is guarded by an asyncio lock
    that is never held across a send.
    """

    def __init__(self, *, send_timeout: float | None = None) -> None:
        self._connections: dict[str, Connection] = {}
        self._lock = asyncio.Lock()
        self._send_timeout = send_timeout

    def __len__(self) -> int:
        return len(self._connections)

    def connection_ids(self) -> list[str]:
        return list(self._connections)

    async def register(self, conn: Connection) -> bool:
        async with self._lock:
            if conn.id in self._connections:
                logger.warning("Connection %s already registered, ignoring", conn.id)
                return False
            self._connections[conn.id] = conn
            total = len(self._connections)
        logger.debug("WS connected: %s (total=%d)", conn.id, total)
        return True

    async def unregister(self, conn: Connection) -> None:
        async with self._lock:
            removed = self._connections.pop(conn.id, None)
        conn.mark_closed()
        if removed is not None:
            logger.debug("WS disconnected: %s", conn.id)

    async def broadcast(self, payload: str) -> int:
        """Send ``payload`` to every registered connection.

        Returns the number of successful deliveries. A failing recipient is
        logged, dropped from the registry and its transport closed; it never
        affects the others.
        """
        async with self._lock:
            targets = list(self._connections.values())
        if not targets:
            return 0

        results = await asyncio.gather(*(self._deliver(c, payload) for c in targets))
        dead = [c for c, ok in zip(targets, results) if ok is None]
        for conn in dead:
            await self.unregister(conn)
            # the read loop sees the disconnect and the client can reconnect
            await conn.close()
        return sum(1 for ok in results if ok)

    async def _deliver(self, conn: Connection, payload: str) -> bool | None:
        # True = delivered, False = skipped (already closed), None = failed
        if conn.closed:
            return False
        try:
            if self._send_timeout is None:
                await conn.send_text(payload)
            else:
                async with asyncio.timeout(self._send_timeout):
                    await conn.send_text(payload)
        except Exception:
            logger.warning("Broadcast to %s failed, dropping connection", conn.id, exc_info=True)
            return None
        return True
