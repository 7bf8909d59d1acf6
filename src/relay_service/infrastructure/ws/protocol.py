"""WebSocket message envelope models."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel

SEND_MESSAGE = "send_message"
RECEIVE_MESSAGE = "receive_message"


class WsInbound(BaseModel):
    """Client → Server."""

    type: str  # send_message | ping
    data: dict[str, Any] = {}


class WsOutbound(BaseModel):
    """Server → Client."""

    type: str  # receive_message | error | pong
    data: dict[str, Any] = {}
