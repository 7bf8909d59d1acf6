"""Boundary models for chat messages on the wire (camelCase keys)."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic.alias_generators import to_camel

from relay_service.domain.entities.message import Message
from relay_service.domain.value_objects.enums import MessageKind


class InboundMessage(BaseModel):
    """Client-submitted ``send_message`` payload.

    Unknown keys (including any client ``createdAt``) are dropped.
    """

    kind: MessageKind
    sender: str
    body: str | None = None
    media_url: str | None = None

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    @model_validator(mode="after")
    def _check_kind_fields(self) -> InboundMessage:
        if self.kind == MessageKind.TEXT:
            if not self.body:
                raise ValueError("text message requires a non-empty body")
        elif not self.media_url:
            raise ValueError(f"{self.kind.value} message requires mediaUrl")
        return self


class MessagePayload(BaseModel):
    """Stamped message as broadcast and returned from history."""

    kind: MessageKind
    sender: str
    body: str | None = None
    media_url: str | None = None
    created_at: int

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


def message_to_wire(message: Message) -> dict[str, Any]:
    return MessagePayload.model_validate(message).model_dump(
        mode="json", by_alias=True, exclude_none=True,
    )


def message_from_wire(data: dict[str, Any]) -> Message:
    payload = MessagePayload.model_validate(data)
    return Message(
        kind=payload.kind,
        sender=payload.sender,
        created_at=payload.created_at,
        body=payload.body,
        media_url=payload.media_url,
    )
