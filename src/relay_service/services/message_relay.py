from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import pydantic

from relay_service.application.dto.message import InboundMessage, message_to_wire
from relay_service.application.exceptions import (
    PersistenceError,
    ValidationError,
    describe_errors,
)
from relay_service.application.ports.bus import EventPublisher
from relay_service.application.ports.clock import Clock
from relay_service.application.ports.realtime import Broadcaster, Connection
from relay_service.application.repositories.message import MessageLog
from relay_service.domain.entities.message import Message
from relay_service.domain.value_objects.enums import DeliveryPolicy
from relay_service.infrastructure.ws.protocol import RECEIVE_MESSAGE, WsOutbound

logger = logging.getLogger(__name__)


class MessageRelay:
    """Stamps inbound chat messages, persists them, then fans them out.

    ``policy`` decides what a failed append means for delivery:
    ``BEST_EFFORT`` logs it and broadcasts anyway, ``DURABLE_FIRST`` raises
    and nothing is broadcast.
    """

    def __init__(
        self,
        log: MessageLog,
        broadcaster: Broadcaster,
        clock: Clock,
        *,
        policy: DeliveryPolicy = DeliveryPolicy.BEST_EFFORT,
        fanout: EventPublisher | None = None,
        history_limit: int = 100,
        history_max_limit: int = 100,
    ) -> None:
        self._log = log
        self._broadcaster = broadcaster
        self._clock = clock
        self._fanout = fanout
        self.policy = policy
        self.history_limit = history_limit
        self.history_max_limit = history_max_limit

    async def handle_incoming(
        self,
        connection: Connection,
        raw_data: Mapping[str, Any],
    ) -> Message:
        message = self._stamp(raw_data)

        try:
            await self._log.append(message)
        except PersistenceError:
            if self.policy == DeliveryPolicy.DURABLE_FIRST:
                logger.error("Append failed for message from %s, not broadcasting", connection.id)
                raise
            logger.exception("Append failed for message from %s, broadcasting anyway", connection.id)

        data = message_to_wire(message)
        raw = WsOutbound(type=RECEIVE_MESSAGE, data=data).model_dump_json()
        delivered = await self._broadcaster.broadcast(raw)
        logger.debug("Message from %s delivered to %d connections", connection.id, delivered)

        if self._fanout is not None:
            try:
                await self._fanout.publish(RECEIVE_MESSAGE, data)
            except Exception:
                logger.exception("Fan-out publish failed")

        return message

    async def history(self, limit: int | None = None) -> list[Message]:
        """Earliest messages in ascending order, at most ``history_max_limit``."""
        if limit is None:
            limit = self.history_limit
        if limit < 1:
            raise ValidationError("limit must be positive", code="invalidLimit")
        return await self._log.query_recent(min(limit, self.history_max_limit))

    def _stamp(self, raw_data: Mapping[str, Any]) -> Message:
        if not isinstance(raw_data, Mapping):
            raise ValidationError("message payload must be an object", code="malformed")
        try:
            inbound = InboundMessage.model_validate(dict(raw_data))
        except pydantic.ValidationError as exc:
            raise ValidationError(describe_errors(exc.errors()), code="malformed") from exc
        return Message(
            kind=inbound.kind,
            sender=inbound.sender,
            created_at=self._clock.now_ms(),
            body=inbound.body,
            media_url=inbound.media_url,
        )
