from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from relay_service.api.deps import RegistryDep, RelayDep
from relay_service.application.exceptions import PersistenceError, ValidationError
from relay_service.config import settings
from relay_service.infrastructure.ws.protocol import SEND_MESSAGE, WsInbound, WsOutbound
from relay_service.infrastructure.ws.registry import WebSocketConnection
from relay_service.services.message_relay import MessageRelay

logger = logging.getLogger(__name__)
router = APIRouter(tags=["websocket"])


@router.websocket("/ws")
async def ws_relay(
    websocket: WebSocket,
    relay: RelayDep,
    registry: RegistryDep,
) -> None:
    await websocket.accept()
    conn = WebSocketConnection(websocket)
    await registry.register(conn)

    heartbeat_task = asyncio.create_task(
        _heartbeat(websocket), name=f"ws-heartbeat-{conn.id}",
    )
    try:
        await _read_loop(websocket, conn, relay)
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception("WS error for %s", conn.id)
    finally:
        heartbeat_task.cancel()
        await registry.unregister(conn)


async def _heartbeat(ws: WebSocket) -> None:
    interval = settings.WS_HEARTBEAT_SECONDS
    try:
        while True:
            await asyncio.sleep(interval)
            await ws.send_text(WsOutbound(type="pong", data={}).model_dump_json())
    except asyncio.CancelledError:
        pass
    except Exception:
        logger.debug("Heartbeat stopped", exc_info=True)


async def _send_error(ws: WebSocket, code: str, **extra: str) -> None:
    await ws.send_text(WsOutbound(type="error", data={"code": code, **extra}).model_dump_json())


async def _read_loop(ws: WebSocket, conn: WebSocketConnection, relay: MessageRelay) -> None:
    while True:
        raw = await ws.receive_text()
        try:
            msg = WsInbound.model_validate_json(raw)
        except Exception:
            await _send_error(ws, "invalid_payload")
            continue

        if msg.type == "ping":
            await ws.send_text(WsOutbound(type="pong", data={}).model_dump_json())

        elif msg.type == SEND_MESSAGE:
            try:
                await relay.handle_incoming(conn, msg.data)
            except ValidationError as exc:
                await _send_error(ws, "invalid_payload", detail=exc.detail)
            except PersistenceError:
                await _send_error(ws, "send_failed")

        else:
            await _send_error(ws, "unknown_type", type=msg.type)
